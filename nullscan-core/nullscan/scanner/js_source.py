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

"""Line-level helpers shared by the JS/TS analysis passes."""

from __future__ import annotations

import re
from pathlib import Path

# Identifier as written in JS/TS sources (ASCII subset).
IDENTIFIER_RE = re.compile(r"^[A-Za-z_$][\w$]*$")


def read_source_lines(file_path: Path) -> list[str]:
    """Read a source file as LF-normalized lines.

    Raises OSError when the file cannot be read.
    """
    content = file_path.read_text(encoding="utf-8", errors="replace")
    content = content.replace("\r\n", "\n").replace("\r", "\n")
    lines = content.split("\n")
    if lines and lines[-1] == "":
        lines.pop()
    return lines


def is_comment_line(line: str) -> bool:
    """True for lines that are entirely a comment (// or block-comment body)."""
    stripped = line.lstrip()
    return stripped.startswith("//") or stripped.startswith("*") or stripped.startswith("/*")


def strip_js_comments(line: str) -> str:
    """Strip a trailing // comment from a JS line (best-effort, quote-aware)."""
    in_single = False
    in_double = False
    in_backtick = False
    for i, ch in enumerate(line):
        if ch == "'" and not in_double and not in_backtick:
            in_single = not in_single
        elif ch == '"' and not in_single and not in_backtick:
            in_double = not in_double
        elif ch == "`" and not in_single and not in_double:
            in_backtick = not in_backtick
        elif ch == "/" and not in_single and not in_double and not in_backtick:
            if i + 1 < len(line) and line[i + 1] == "/":
                return line[:i]
    return line


def split_params(param_text: str) -> list[str]:
    """Split a parameter list and keep the names that can be absent.

    Drops rest parameters, parameters with a default value, destructuring
    patterns and anything else that is not a plain identifier. TypeScript
    annotations and optional markers are stripped.
    """
    names = []
    for raw in param_text.split(","):
        param = raw.strip()
        if not param or param.startswith("...") or "=" in param:
            continue
        param = param.split(":", 1)[0].strip().rstrip("?").strip()
        if IDENTIFIER_RE.match(param):
            names.append(param)
    return names


def param_names(param_text: str) -> list[str]:
    """All identifier names of a parameter list, in order (for signatures)."""
    names = []
    for raw in param_text.split(","):
        param = raw.strip().lstrip(".")
        param = re.split(r"[:=?]", param, maxsplit=1)[0].strip()
        if param:
            names.append(param)
    return names
