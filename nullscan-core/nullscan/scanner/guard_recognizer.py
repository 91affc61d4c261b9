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

"""Guard recognizer: finds the regions where a binding cannot be absent.

For one binding name, every line of the file is checked for guard shapes.
Each match yields a SafeZone whose scope rule says which lines it covers:

  ThisLineOnly  inline optional access (name?.x)
  AfterLine     early-exit guards and default coalescing
  InsideBlock   if / while / for conditions

InsideBlock zones end at the closing brace of the guard's block when the
block extent is known, and otherwise after BLOCK_WINDOW lines. AfterLine
zones end with the block that encloses the guard, so a guard in one
function says nothing about a parameter of the same name in the next.
"""

from __future__ import annotations

import re
from typing import Optional

from nullscan.models.findings import GuardKind, SafeZone, ZoneScope
from nullscan.scanner.js_source import is_comment_line, strip_js_comments

# Fallback length of an InsideBlock zone when no brace extent is known.
BLOCK_WINDOW = 150

# Lines searched for the exit statement of a block-form early return.
EARLY_EXIT_LOOKAHEAD = 5

EXIT_STATEMENT_RE = re.compile(r"^\s*(?:return|throw)\b")


def _operand(name: str) -> str:
    """Regex for name used as a whole value (not name.x or name[i])."""
    return rf"(?<![\w$.]){re.escape(name)}(?![\w$.\[])"


def _compile_guards(name: str) -> dict[GuardKind, list[re.Pattern]]:
    g = _operand(name)
    n = re.escape(name)
    return {
        GuardKind.EARLY_RETURN: [
            re.compile(
                rf"\bif\s*\([^)]*!\s*{g}[^)]*\)\s*\{{?\s*(?:return|throw|continue|break)\b[^;}}]*;?\s*\}}?"
            ),
            re.compile(
                rf"\bif\s*\(\s*{g}\s*===?\s*(?:null|undefined)\s*\)\s*\{{?\s*(?:return|throw)\b[^;}}]*;?\s*\}}?"
            ),
        ],
        GuardKind.TRUTHINESS: [
            re.compile(rf"\bif\s*\(\s*!?\s*{g}\s*\)"),
        ],
        GuardKind.COMPOUND: [
            re.compile(rf"\bif\s*\([^)]*(?:{g}\s*&&|&&\s*{g})[^)]*\)"),
        ],
        GuardKind.EXPLICIT_ABSENCE: [
            re.compile(rf"\bif\s*\(\s*{g}\s*!==?\s*(?:null|undefined)\b"),
            re.compile(rf"\bif\s*\(\s*(?:null|undefined)\s*!==?\s*{g}"),
            re.compile(rf"\bif\s*\(\s*typeof\s+{g}\s*!==?\s*['\"]undefined['\"]"),
        ],
        GuardKind.LOOP: [
            re.compile(rf"\bwhile\s*\(\s*{g}\s*(?:&&[^)]*)?\)"),
            re.compile(rf"\bfor\s*\([^;]*;[^;]*{g}[^;]*;"),
        ],
        GuardKind.EARLY_RETURN_BLOCK: [
            re.compile(
                rf"\bif\s*\(\s*(?:!\s*{g}|{g}\s*===?\s*(?:null|undefined))\s*\)\s*\{{\s*$"
            ),
        ],
        GuardKind.DEFAULT_COALESCE: [
            re.compile(rf"(?<![\w$.]){n}\s*=\s*{g}\s*(?:\|\||\?\?)"),
            re.compile(rf"(?<![\w$.]){n}\s*(?:\?\?=|\|\|=)"),
        ],
        GuardKind.OPTIONAL_ACCESS: [
            re.compile(rf"(?<![\w$.]){n}\?\."),
        ],
    }


_INSIDE_BLOCK_KINDS = (
    GuardKind.TRUTHINESS,
    GuardKind.COMPOUND,
    GuardKind.EXPLICIT_ABSENCE,
    GuardKind.LOOP,
)


def block_end_for(line_number: int, lines: list[str], block_ends: dict[int, int]) -> Optional[int]:
    """Closing line of the block opened by the statement on line_number."""
    if line_number in block_ends:
        return block_ends[line_number]
    nxt = line_number + 1
    if nxt <= len(lines) and lines[nxt - 1].lstrip().startswith("{") and nxt in block_ends:
        return block_ends[nxt]
    return None


def line_start_depths(lines: list[str]) -> list[int]:
    """Brace depth before each line, clamped at 0 like ScopeTracker."""
    depths = []
    depth = 0
    for line in lines:
        depths.append(depth)
        depth = _advance(depth, line)
    return depths


def _advance(depth: int, text: str) -> int:
    for ch in text:
        if ch == "{":
            depth += 1
        elif ch == "}" and depth > 0:
            depth -= 1
    return depth


def enclosing_block_end(
    line_number: int,
    col: int,
    lines: list[str],
    start_depths: list[int],
) -> Optional[int]:
    """Closing line of the innermost block around (line_number, col).

    Returns None at top level or when the block never closes.
    """
    line = lines[line_number - 1]
    target = _advance(start_depths[line_number - 1], line[:col])
    if target == 0:
        return None
    depth = target
    for index in range(line_number - 1, len(lines)):
        text = line[col:] if index == line_number - 1 else lines[index]
        for ch in text:
            if ch == "{":
                depth += 1
            elif ch == "}":
                depth -= 1
                if depth < target:
                    return index + 1
    return None


def _has_exit_after(line_number: int, lines: list[str], end: Optional[int]) -> bool:
    last = end if end is not None else line_number + EARLY_EXIT_LOOKAHEAD
    last = min(last, line_number + EARLY_EXIT_LOOKAHEAD, len(lines))
    for candidate in lines[line_number:last]:
        if EXIT_STATEMENT_RE.search(candidate):
            return True
    return False


def find_safe_zones(
    lines: list[str],
    name: str,
    block_ends: Optional[dict[int, int]] = None,
) -> list[SafeZone]:
    """Return every SafeZone for name, in line order.

    Args:
        lines: the file's lines.
        name: the binding name.
        block_ends: open line -> close line map from the scope pass.
    """
    block_ends = block_ends or {}
    guards = _compile_guards(name)
    start_depths = line_start_depths(lines)
    zones: list[SafeZone] = []

    for line_number, raw in enumerate(lines, start=1):
        if is_comment_line(raw):
            continue
        line = strip_js_comments(raw)
        if name not in line:
            continue

        for pattern in guards[GuardKind.EARLY_RETURN]:
            m = pattern.search(line)
            if m:
                zones.append(SafeZone(
                    kind=GuardKind.EARLY_RETURN,
                    start_line=line_number,
                    start_col=m.end(),
                    end_line=enclosing_block_end(line_number, m.start(), lines, start_depths),
                    scope=ZoneScope.AFTER_LINE,
                ))
                break

        for kind in _INSIDE_BLOCK_KINDS:
            if any(p.search(line) for p in guards[kind]):
                end = block_end_for(line_number, lines, block_ends)
                zones.append(SafeZone(
                    kind=kind,
                    start_line=line_number,
                    end_line=end if end is not None else line_number + BLOCK_WINDOW,
                    scope=ZoneScope.INSIDE_BLOCK,
                ))

        for pattern in guards[GuardKind.EARLY_RETURN_BLOCK]:
            m = pattern.search(line)
            if m:
                end = block_end_for(line_number, lines, block_ends)
                if _has_exit_after(line_number, lines, end):
                    zones.append(SafeZone(
                        kind=GuardKind.EARLY_RETURN_BLOCK,
                        start_line=end if end is not None else line_number,
                        end_line=enclosing_block_end(line_number, m.start(), lines, start_depths),
                        scope=ZoneScope.AFTER_LINE,
                    ))
                break

        for pattern in guards[GuardKind.DEFAULT_COALESCE]:
            m = pattern.search(line)
            if m:
                zones.append(SafeZone(
                    kind=GuardKind.DEFAULT_COALESCE,
                    start_line=line_number,
                    start_col=m.end(),
                    end_line=enclosing_block_end(line_number, m.start(), lines, start_depths),
                    scope=ZoneScope.AFTER_LINE,
                ))
                break

        if guards[GuardKind.OPTIONAL_ACCESS][0].search(line):
            zones.append(SafeZone(
                kind=GuardKind.OPTIONAL_ACCESS,
                start_line=line_number,
                scope=ZoneScope.THIS_LINE_ONLY,
            ))

    return zones
