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

"""Finding generator: the second pass that reports unguarded dereferences.

The pass re-derives scope depth with its own ScopeTracker, looks up each
risky binding through enclosing depths, and checks four access shapes in a
fixed order (method call, member access, index access, conditional access).
The first shape that matches is reported and the rest of the line is left
alone, so `x.y.z()` yields one finding.
"""

from __future__ import annotations

import logging
import re
from typing import Optional

from nullscan.models.findings import (
    ACCESS_SEVERITY,
    AccessKind,
    Binding,
    SafeZone,
    UnsafeAccessFinding,
)
from nullscan.scanner.guard_recognizer import find_safe_zones
from nullscan.scanner.js_source import is_comment_line, strip_js_comments
from nullscan.scanner.scope_tracker import ScopeTracker

logger = logging.getLogger(__name__)

CONDITION_START_RE = re.compile(r"\b(?:if|while)\s*\(")


def condition_spans(line: str) -> list[tuple[int, int]]:
    """Character spans of every if/while condition on a line."""
    spans = []
    for m in CONDITION_START_RE.finditer(line):
        depth = 1
        i = m.end()
        while i < len(line) and depth:
            if line[i] == "(":
                depth += 1
            elif line[i] == ")":
                depth -= 1
            i += 1
        spans.append((m.end(), i))
    return spans


def _in_spans(pos: int, spans: list[tuple[int, int]]) -> bool:
    return any(start <= pos < end for start, end in spans)


class AccessMatcher:
    """Compiled per-name patterns for access shapes and same-line guards."""

    def __init__(self, name: str) -> None:
        n = re.escape(name)
        ref = rf"(?<![\w$.]){n}"
        self.name = name
        self.method_call = re.compile(rf"{ref}(?:\.[\w$]+)+\s*\(")
        self.member = re.compile(rf"{ref}\.[\w$]+")
        self.index = re.compile(rf"{ref}\[")
        self.optional = re.compile(rf"{ref}\?\.")
        self.fallback = re.compile(rf"{ref}(?:\??\.[\w$]+)*\s*(?:\|\||\?\?)\s*\S")
        self.ternary = re.compile(rf"{ref}\s*\?(?!\.)[^:]*{ref}[.\[]")
        self.conjunction = re.compile(
            rf"{ref}(?![\w$.\[])\s*&&|!\s*{ref}(?![\w$.\[])\s*\|\||{ref}\s*==\s*null\s*\|\|"
        )
        self.if_guard = re.compile(rf"\bif\s*\(\s*{ref}(?![\w$.\[])\s*(?:&&[^)]*)?\)")

    def same_line_guarded(self, text: str) -> bool:
        """True when the line itself already guards the binding."""
        return bool(
            self.optional.search(text)
            or self.fallback.search(text)
            or self.ternary.search(text)
            or self.conjunction.search(text)
            or self._if_guard_precedes_access(text)
        )

    def _if_guard_precedes_access(self, text: str) -> bool:
        m = self.if_guard.search(text)
        if not m:
            return False
        return bool(self.member.search(text, m.end()) or self.index.search(text, m.end()))

    def first_access(self, text: str) -> Optional[tuple[AccessKind, int]]:
        """Return (kind, column) of the highest-priority access, if any."""
        m = self.method_call.search(text)
        if m:
            return AccessKind.METHOD_CALL, m.start()

        spans = condition_spans(text)
        conditional_col = None
        for m in self.member.finditer(text):
            if not _in_spans(m.start(), spans):
                return AccessKind.MEMBER_ACCESS, m.start()
            if conditional_col is None:
                conditional_col = m.start()

        m = self.index.search(text)
        if m:
            return AccessKind.INDEX_ACCESS, m.start()

        if conditional_col is not None:
            return AccessKind.CONDITIONAL_ACCESS, conditional_col
        return None


def generate_findings(
    file: str,
    lines: list[str],
    bindings: list[Binding],
    block_ends: Optional[dict[int, int]] = None,
) -> list[UnsafeAccessFinding]:
    """Report every unguarded dereference of a risky binding.

    Args:
        file: relative file name stored on each finding.
        lines: the file's lines.
        bindings: risky bindings from the classification pass, in
            declaration order. Each one is introduced when the walk reaches
            its origin line, so a later declaration only shadows an earlier
            one from that point on.
        block_ends: block extents from the classification pass.
    """
    if not bindings:
        return []

    pending: dict[int, list[Binding]] = {}
    for binding in bindings:
        pending.setdefault(binding.origin_line, []).append(binding)

    tracker = ScopeTracker()
    names = list(dict.fromkeys(b.name for b in bindings))
    matchers = {name: AccessMatcher(name) for name in names}
    zones: dict[str, list[SafeZone]] = {
        name: find_safe_zones(lines, name, block_ends) for name in names
    }

    findings: list[UnsafeAccessFinding] = []
    seen: set[tuple[int, str]] = set()

    for line_number, raw in enumerate(lines, start=1):
        depth = tracker.process_line(raw, line_number)
        for binding in pending.get(line_number, ()):
            tracker.add_binding(binding)
        if is_comment_line(raw):
            continue
        code = strip_js_comments(raw)

        for name in names:
            if name not in code or (line_number, name) in seen:
                continue
            binding = tracker.lookup(name, depth)
            if binding is None:
                continue

            offset = binding.origin_col if binding.origin_line == line_number else 0
            text = code[offset:]
            matcher = matchers[name]

            if matcher.same_line_guarded(text):
                continue

            access = matcher.first_access(text)
            if access is None:
                continue
            kind, col = access
            col += offset

            # A guard written before the declaration belongs to another binding.
            if any(
                zone.start_line >= binding.origin_line and zone.covers(line_number, col)
                for zone in zones[name]
            ):
                continue

            seen.add((line_number, name))
            findings.append(
                UnsafeAccessFinding(
                    file=file,
                    line=line_number,
                    col=col,
                    binding_name=name,
                    access_kind=kind,
                    severity=ACCESS_SEVERITY[kind],
                    source_line=raw.strip(),
                    binding_kind=binding.kind,
                    binding_line=binding.origin_line,
                    reason=binding.reason,
                )
            )

    findings.sort(key=lambda f: (f.line, f.binding_name))
    return findings
