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

"""In-source suppression markers and code extraction.

Consumer marker, directly above the suppressed line:

    // @validation-ignore null-access
    // @reason: initThreads() drops threads without a user
    // @dependency: initThreads() at line 15 [in src/threads.js]
    // @whitelist-id: null-access-001

Provider marker, directly above a dependency's declaration:

    // @validation-dependency null-access-001, null-access-004
    // @required-by: line 42 (renderThread)
    // @contract: every thread has a user

Only consecutive `//` lines count as the block; a blank line ends it.
"""

from __future__ import annotations

import re
from typing import Optional

from nullscan.models.ledger import ConsumerMarker, DependencyRef, ProviderMarker

# Lines taken when a dependency function has no braces to match.
FUNCTION_FALLBACK_LINES = 10

# How far above the declared line to look for the function header.
FUNCTION_HEADER_LOOKBACK = 10

COMMENT_LINE_RE = re.compile(r"^\s*//\s?(.*)$")

IGNORE_TAG_RE = re.compile(r"@validation-ignore\s+([\w-]+)")
REASON_TAG_RE = re.compile(r"@reason:\s*(.+)")
DEPENDENCY_TAG_RE = re.compile(
    r"@dependency:\s*([\w$.]+)\s*(?:\(\))?\s+at\s+line\s+(\d+)(?:\s+\[?in\s+([^\]\s]+)\]?)?"
)
WHITELIST_ID_TAG_RE = re.compile(r"@whitelist-id:\s*([\w-]+)")

PROVIDER_TAG_RE = re.compile(r"@validation-dependency\s+([\w\s,-]+)")
REQUIRED_BY_TAG_RE = re.compile(r"@required-by:\s*(.+)")
CONTRACT_TAG_RE = re.compile(r"@contract:\s*(.+)")

WHITESPACE_RE = re.compile(r"\s+")


def comment_block_above(lines: list[str], line_number: int) -> tuple[list[str], Optional[int]]:
    """Return the text of the // block directly above line_number.

    Returns:
        (comment texts top to bottom, first comment line number or None)
    """
    texts: list[str] = []
    first: Optional[int] = None
    idx = line_number - 2
    while idx >= 0:
        m = COMMENT_LINE_RE.match(lines[idx])
        if not m:
            break
        texts.append(m.group(1).strip())
        first = idx + 1
        idx -= 1
    texts.reverse()
    return texts, first


def parse_consumer_marker(lines: list[str], line_number: int) -> ConsumerMarker:
    """Parse the consumer marker above line_number (1-based)."""
    texts, first = comment_block_above(lines, line_number)
    marker = ConsumerMarker(comment_start_line=first)

    for text in texts:
        m = IGNORE_TAG_RE.search(text)
        if m:
            marker.found = True
            marker.category = m.group(1)
            continue
        m = REASON_TAG_RE.search(text)
        if m:
            marker.reason = m.group(1).strip()
            continue
        m = DEPENDENCY_TAG_RE.search(text)
        if m:
            marker.dependencies.append(
                DependencyRef(function=m.group(1), line=int(m.group(2)), file=m.group(3))
            )
            continue
        m = WHITELIST_ID_TAG_RE.search(text)
        if m:
            marker.whitelist_id = m.group(1)

    return marker


def parse_provider_marker(lines: list[str], line_number: int) -> ProviderMarker:
    """Parse the provider marker above line_number (1-based)."""
    texts, _ = comment_block_above(lines, line_number)
    marker = ProviderMarker()

    for text in texts:
        m = PROVIDER_TAG_RE.search(text)
        if m:
            marker.found = True
            ids = [part.strip() for part in re.split(r"[,\s]+", m.group(1))]
            marker.whitelist_ids.extend(i for i in ids if i)
            continue
        m = REQUIRED_BY_TAG_RE.search(text)
        if m:
            marker.required_by.append(m.group(1).strip())
            continue
        m = CONTRACT_TAG_RE.search(text)
        if m:
            marker.contract = m.group(1).strip()

    return marker


def find_consumer_markers(lines: list[str]) -> list[tuple[int, ConsumerMarker]]:
    """Every (flagged line, marker) pair in a file.

    The flagged line is the first line after a comment block that carries
    @validation-ignore.
    """
    results = []
    for idx, line in enumerate(lines):
        if COMMENT_LINE_RE.match(line):
            continue
        if idx == 0 or not COMMENT_LINE_RE.match(lines[idx - 1]):
            continue
        line_number = idx + 1
        marker = parse_consumer_marker(lines, line_number)
        if marker.found:
            results.append((line_number, marker))
    return results


def extract_code_line(lines: list[str], line_number: int) -> Optional[str]:
    """The stripped source at line_number, or None past end of file."""
    if line_number < 1 or line_number > len(lines):
        return None
    return lines[line_number - 1].strip()


def extract_function_body(
    lines: list[str],
    line_number: int,
    function_name: str,
) -> Optional[str]:
    """Extract a function's text by brace matching from its header.

    The header is the nearest line at or above line_number (within
    FUNCTION_HEADER_LOOKBACK) that contains `function` or the function
    name. Without braces, FUNCTION_FALLBACK_LINES lines are returned.
    Returns None when line_number is outside the file.
    """
    if line_number < 1 or line_number > len(lines):
        return None

    bare_name = function_name.rstrip("()").split(".")[-1]
    start = line_number - 1
    for idx in range(line_number - 1, max(-1, line_number - 1 - FUNCTION_HEADER_LOOKBACK), -1):
        if "function" in lines[idx] or (bare_name and bare_name in lines[idx]):
            start = idx
            break

    depth = 0
    seen_open = False
    for idx in range(start, len(lines)):
        for ch in lines[idx]:
            if ch == "{":
                depth += 1
                seen_open = True
            elif ch == "}":
                depth -= 1
        if seen_open and depth <= 0:
            return "\n".join(lines[start:idx + 1])

    return "\n".join(lines[start:start + FUNCTION_FALLBACK_LINES])


def normalize_whitespace(code: str) -> str:
    """Collapse every whitespace run to one space and trim."""
    return WHITESPACE_RE.sub(" ", code).strip()
