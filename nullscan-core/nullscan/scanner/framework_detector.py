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

"""Detection of known framework calling conventions.

A framework pattern exempts every function whose parameter list equals one
of its signatures, e.g. Express route handlers `(req, res, next)`. Before
enabling one, detect_framework_usage shows where it would apply.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Optional

from pydantic import BaseModel

from nullscan.scanner.binding_classifier import (
    ARROW_DECL_RE,
    FUNCTION_DECL_RE,
    ROUTE_HANDLER_RE,
)
from nullscan.scanner.js_source import is_comment_line, param_names, read_source_lines, strip_js_comments

logger = logging.getLogger(__name__)

# Matches needed before the CLI suggests enabling a pattern.
FRAMEWORK_PROMPT_THRESHOLD = 3


KNOWN_FRAMEWORKS: dict[str, dict] = {
    "express": {
        "description": "Express.js route handlers and middleware",
        "signatures": [
            ["req", "res", "next"],
            ["req", "res"],
            ["request", "response", "next"],
            ["request", "response"],
            ["err", "req", "res", "next"],
        ],
    },
}


class FrameworkMatch(BaseModel):
    """A declaration whose parameters match a framework signature."""

    file: str
    line: int
    function: str = ""
    params: list[str]


def known_framework(name: str) -> Optional[dict]:
    return KNOWN_FRAMEWORKS.get(name)


def _declarations(line: str):
    for m in FUNCTION_DECL_RE.finditer(line):
        yield m.group(1), m.group(2)
    m = ARROW_DECL_RE.search(line)
    if m:
        yield m.group(1), m.group(2)
    m = ROUTE_HANDLER_RE.search(line)
    if m:
        yield "", m.group(1)


def detect_framework_usage(
    root: Path,
    files: list[str],
    signatures: list[list[str]],
) -> tuple[list[FrameworkMatch], list[str]]:
    """Find declarations matching any of signatures.

    Returns:
        (matches, unreadable_files)
    """
    matches: list[FrameworkMatch] = []
    unreadable: list[str] = []

    for rel in files:
        try:
            lines = read_source_lines(root / rel)
        except OSError as e:
            logger.warning("Could not read %s: %s", rel, e)
            unreadable.append(rel)
            continue

        for line_number, raw in enumerate(lines, start=1):
            if is_comment_line(raw):
                continue
            code = strip_js_comments(raw)
            for function_name, param_text in _declarations(code):
                params = param_names(param_text)
                if params in signatures:
                    matches.append(FrameworkMatch(
                        file=rel,
                        line=line_number,
                        function=function_name,
                        params=params,
                    ))

    return matches, unreadable


def should_suggest(matches: list[FrameworkMatch], already_enabled: bool) -> bool:
    """True when enough matches exist to suggest enabling the pattern."""
    return not already_enabled and len(matches) >= FRAMEWORK_PROMPT_THRESHOLD
