# nullscan - Null-Access Static Analyzer
# Copyright (C) 2026 nullscan Project Contributors
#
# This program is free software: you can redistribute it and/or modify
# it under the terms of the GNU Affero General Public License as published
# by the Free Software Foundation, either version 3 of the License, or
# (at your option) any later version.
#
# This program is distributed in the hope that it will be useful,
# but WITHOUT ANY WARRANTY; without even the implied warranty of
# MERCHANTABILITY or FITNESS FOR A PARTICULAR PURPOSE. See the
# GNU Affero General Public License for more details.
#
# You should have received a copy of the GNU Affero General Public License
# along with this program. If not, see <https://www.gnu.org/licenses/>.

"""False-positive filter for unsafe-access findings.

Pure filtering: findings are only ever removed, never created or changed.
"""

from __future__ import annotations

import logging
import re
from typing import Optional

from nullscan.models.findings import UnsafeAccessFinding

logger = logging.getLogger(__name__)

# Globals that are always defined in browser and Node runtimes.
RESERVED_GLOBALS = frozenset({
    "console",
    "window",
    "document",
    "process",
    "module",
    "exports",
    "globalThis",
    "JSON",
    "Math",
})

# How far back to look for an enclosing `try {`.
TRY_SCAN_WINDOW = 100

TRY_OPEN_RE = re.compile(r"^\s*(?:\}\s*)?try\s*\{")


def _inside_try(line: int, lines: list[str], block_ends: dict[int, int]) -> bool:
    """True when a preceding `try {` within the window still encloses line.

    A try block whose closing brace is unknown is assumed to enclose it.
    """
    start = max(1, line - TRY_SCAN_WINDOW)
    for candidate in range(line - 1, start - 1, -1):
        if TRY_OPEN_RE.search(lines[candidate - 1]):
            end = block_ends.get(candidate)
            if end is None or line < end:
                return True
    return False


def filter_false_positives(
    findings: list[UnsafeAccessFinding],
    lines: list[str],
    block_ends: Optional[dict[int, int]] = None,
) -> list[UnsafeAccessFinding]:
    """Drop findings on reserved globals, inside try blocks, or on _names."""
    block_ends = block_ends or {}
    kept = []
    for finding in findings:
        if finding.binding_name in RESERVED_GLOBALS:
            continue
        if finding.binding_name.startswith("_"):
            continue
        if _inside_try(finding.line, lines, block_ends):
            logger.debug("Dropping %s: inside try block", finding.location)
            continue
        kept.append(finding)
    return kept
