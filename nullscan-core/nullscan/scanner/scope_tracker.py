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

"""Lexical scope model: brace counting with nested binding lookup.

The tracker walks a file top to bottom. Each line moves the nesting depth by
its `{` and `}` characters, taken left to right. Braces inside strings and
comments are counted too; there is no tokenizer behind this.

Bindings are stored under (name, depth). Lookup walks from the current depth
out to depth 0 and returns the nearest match, so an inner declaration shadows
an outer one of the same name.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Optional

from nullscan.models.findings import Binding

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ScopeEntry:
    """Where a block was opened, kept for diagnostics."""

    depth: int
    line: int
    snippet: str


class ScopeTracker:
    """Tracks nesting depth and the bindings declared at each depth."""

    def __init__(self) -> None:
        self.depth = 0
        self.bindings: dict[tuple[str, int], Binding] = {}
        self.scope_stack: list[ScopeEntry] = []
        self.warnings: list[str] = []
        # open line -> close line for every matched brace pair
        self._block_ends: dict[int, int] = {}
        self._open_lines: list[int] = []

    def process_line(self, line: str, line_number: int) -> int:
        """Apply one line's braces and return the depth after it."""
        snippet = line.strip()[:50]
        for ch in line:
            if ch == "{":
                self.depth += 1
                self.scope_stack.append(ScopeEntry(self.depth, line_number, snippet))
                self._open_lines.append(line_number)
            elif ch == "}":
                if self.depth == 0:
                    message = f"Line {line_number}: unbalanced '}}', depth clamped at 0"
                    self.warnings.append(message)
                    logger.debug(message)
                    continue
                self.depth -= 1
                if self.scope_stack:
                    self.scope_stack.pop()
                if self._open_lines:
                    opened = self._open_lines.pop()
                    # Outer braces close last, so a line maps to its outermost block.
                    self._block_ends[opened] = line_number
        return self.depth

    def current_depth(self) -> int:
        return self.depth

    def add_binding(self, binding: Binding) -> None:
        """Record a binding at its depth; replaces any earlier one there."""
        self.bindings[binding.key] = binding

    def lookup(self, name: str, depth: Optional[int] = None) -> Optional[Binding]:
        """Return the nearest binding for name, searching outward from depth."""
        start = self.depth if depth is None else depth
        for d in range(start, -1, -1):
            binding = self.bindings.get((name, d))
            if binding is not None:
                return binding
        return None

    @property
    def block_ends(self) -> dict[int, int]:
        """Map of opening line to closing line for every closed block."""
        return dict(self._block_ends)


def compute_block_extents(lines: list[str]) -> dict[int, int]:
    """Run a bare tracker over lines and return its block extents."""
    tracker = ScopeTracker()
    for line_number, line in enumerate(lines, start=1):
        tracker.process_line(line, line_number)
    return tracker.block_ends
