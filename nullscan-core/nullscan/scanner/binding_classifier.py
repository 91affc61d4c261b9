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

"""Binding classifier: decides which declarations introduce risky bindings.

Two kinds of binding are suspect:
- parameters of functions and closures, unless the function follows a
  calling convention that always supplies them (event handlers, array
  iteration callbacks, loop variables, enabled framework signatures)
- variables initialized from an expression that may yield an absent value,
  as decided by the source-rule table (see policy/rule_engine.py)

Parameters with a default value and rest parameters are never risky.
"""

from __future__ import annotations

import logging
import re
from typing import Optional

from nullscan.models.findings import (
    ASSIGNMENT_REASON,
    PARAMETER_REASON,
    Binding,
    BindingKind,
)
from nullscan.models.rules import SourceRuleSet
from nullscan.policy.rule_engine import evaluate_source
from nullscan.scanner.js_source import param_names, split_params

logger = logging.getLogger(__name__)

# Lines to look back for a `.length` check guarding an indexed read.
LENGTH_CHECK_WINDOW = 5


# ── Declaration patterns ──

FUNCTION_DECL_RE = re.compile(r"\bfunction\b\s*\*?\s*([\w$]*)\s*\(([^)]*)\)")

ARROW_DECL_RE = re.compile(
    r"\b(?:const|let|var)\s+([\w$]+)\s*=\s*(?:async\s+)?\(([^)]*)\)\s*=>"
)

ARROW_SINGLE_PARAM_RE = re.compile(
    r"\b(?:const|let|var)\s+([\w$]+)\s*=\s*(?:async\s+)?([A-Za-z_$][\w$]*)\s*=>"
)

ROUTE_HANDLER_RE = re.compile(
    r"\b(?:app|router)\.(?:get|post|put|patch|delete|use|all)\s*\([^,]+,\s*"
    r"(?:async\s+)?\(([^)]*)\)\s*=>"
)

ASSIGNMENT_RE = re.compile(
    r"\b(?:const|let|var)\s+([A-Za-z_$][\w$]*)\s*(?::\s*[^=]+?)?=(?![=>])\s*(.+)"
)

# ── Always-safe calling conventions ──

FOR_EACH_LOOP_RE = re.compile(r"\bfor\s*(?:await\s*)?\(\s*(?:const|let|var)\s+[^;]*?\b(?:of|in)\b")

EVENT_REGISTRATION_RE = re.compile(
    r"\.(?:addEventListener|removeEventListener|on|once)\s*\("
)

ARRAY_CALLBACK_PREFIX_RE = re.compile(
    r"\.(?:filter|map|forEach|find|findIndex|findLast|findLastIndex|some|every|"
    r"reduce|reduceRight|sort|flatMap)\s*\(\s*(?:async\s+)?$"
)

ASSIGNED_NAME_RE = re.compile(r"([\w$]+)\s*[:=]\s*(?:async\s+)?$")

EVENT_PARAM_NAMES = {"event", "evt", "ev"}

HANDLER_PREFIX_RE = re.compile(r"^(?:on|handle)(?:[A-Z_]|$)")
HANDLER_SUFFIX_RE = re.compile(r"(?:handler|listener|callback|menu)$", re.IGNORECASE)
HANDLER_WORD_RE = re.compile(r"click|submit|change|input|keydown|keyup|mouse|scroll|resize", re.IGNORECASE)

INDEXED_RHS_RE = re.compile(r"^([\w$.]+)\[(\d+)\]")


def looks_like_event_handler(function_name: str) -> bool:
    """True when a function's name follows event-handler naming."""
    if not function_name:
        return False
    return bool(
        HANDLER_PREFIX_RE.search(function_name)
        or HANDLER_SUFFIX_RE.search(function_name)
        or HANDLER_WORD_RE.search(function_name)
    )


class BindingClassifier:
    """Classifies the declarations on one line into risky bindings."""

    def __init__(
        self,
        rules: SourceRuleSet,
        framework_signatures: Optional[list[list[str]]] = None,
    ) -> None:
        self.rules = rules
        self.framework_signatures = [list(s) for s in (framework_signatures or [])]

    def matches_framework(self, param_text: str) -> bool:
        """True if the parameter list equals an enabled framework signature."""
        if not self.framework_signatures:
            return False
        return param_names(param_text) in self.framework_signatures

    def classify(
        self,
        line: str,
        line_number: int,
        depth: int,
        lines: list[str],
    ) -> list[Binding]:
        """Return the risky bindings declared on line.

        Args:
            line: comment-stripped code of the line.
            line_number: 1-based line number.
            depth: scope depth after the line was processed.
            lines: the whole file, for look-back checks.
        """
        if FOR_EACH_LOOP_RE.search(line):
            return []

        bindings: list[Binding] = []
        declared_function = False

        # ── function name(params) / function (params) ──
        for m in FUNCTION_DECL_RE.finditer(line):
            declared_function = True
            if self._is_conventional_callback(line, m.start()):
                continue
            function_name = m.group(1)
            if not function_name:
                # const onClick = function (e) / onClick: function (e)
                named = ASSIGNED_NAME_RE.search(line[:m.start()])
                function_name = named.group(1) if named else ""
            bindings.extend(
                self._parameter_bindings(function_name, m.group(2), line, line_number, depth, m.end())
            )

        # ── const name = (params) => / const name = param => ──
        for regex in (ARROW_DECL_RE, ARROW_SINGLE_PARAM_RE):
            m = regex.search(line)
            if m:
                declared_function = True
                bindings.extend(
                    self._parameter_bindings(m.group(1), m.group(2), line, line_number, depth, m.end())
                )

        # ── app.get('/path', (req, res) => ...) ──
        m = ROUTE_HANDLER_RE.search(line)
        if m:
            declared_function = True
            bindings.extend(
                self._parameter_bindings("", m.group(1), line, line_number, depth, m.end())
            )

        if declared_function:
            return self._dedupe(bindings)

        # ── const name = <rhs> ──
        m = ASSIGNMENT_RE.search(line)
        if m:
            binding = self._assignment_binding(m, line_number, depth, lines)
            if binding is not None:
                bindings.append(binding)

        return bindings

    def _is_conventional_callback(self, line: str, start: int) -> bool:
        """True for a function expression passed to an array method or listener."""
        prefix = line[:start]
        if ARRAY_CALLBACK_PREFIX_RE.search(prefix):
            return True
        if EVENT_REGISTRATION_RE.search(prefix):
            return True
        return False

    def _parameter_bindings(
        self,
        function_name: str,
        param_text: str,
        line: str,
        line_number: int,
        depth: int,
        origin_col: int,
    ) -> list[Binding]:
        if self.matches_framework(param_text):
            logger.debug("Line %d: parameters match an enabled framework pattern", line_number)
            return []

        registers_listener = bool(EVENT_REGISTRATION_RE.search(line))
        handler_named = looks_like_event_handler(function_name)

        bindings = []
        for name in split_params(param_text):
            if name in EVENT_PARAM_NAMES:
                continue
            if name == "e" and (handler_named or registers_listener):
                continue
            bindings.append(
                Binding(
                    name=name,
                    depth=depth,
                    origin_line=line_number,
                    origin_col=origin_col,
                    kind=BindingKind.PARAMETER,
                    reason=PARAMETER_REASON,
                )
            )
        return bindings

    def _assignment_binding(
        self,
        m: re.Match,
        line_number: int,
        depth: int,
        lines: list[str],
    ) -> Optional[Binding]:
        name = m.group(1)
        rhs = m.group(2).strip().rstrip(";").strip()
        if not rhs:
            return None

        # Fallback operators already supply a value.
        if "??" in rhs or "||" in rhs:
            return None

        match = evaluate_source(rhs, self.rules)
        if not match.may_be_absent:
            return None

        indexed = INDEXED_RHS_RE.match(rhs)
        if indexed and self._length_checked(indexed.group(1), int(indexed.group(2)), line_number, lines):
            return None

        return Binding(
            name=name,
            depth=depth,
            origin_line=line_number,
            origin_col=m.end(),
            kind=BindingKind.ASSIGNMENT,
            reason=ASSIGNMENT_REASON,
            source=rhs,
            rule_id=match.rule_id,
        )

    @staticmethod
    def _length_checked(path: str, index: int, line_number: int, lines: list[str]) -> bool:
        """True if one of the preceding lines checks path.length past index."""
        p = re.escape(path)
        checks = [
            re.compile(rf"if\s*\([^)]*{p}[^)]*\.length\s*>\s*{index}\b"),
            re.compile(rf"if\s*\([^)]*{p}[^)]*\.length\s*>=\s*{index + 1}\b"),
        ]
        start = max(0, line_number - 1 - LENGTH_CHECK_WINDOW)
        for prev in lines[start:line_number - 1]:
            if any(c.search(prev) for c in checks):
                return True
        return False

    @staticmethod
    def _dedupe(bindings: list[Binding]) -> list[Binding]:
        """Keep the last binding per name (last write wins at one depth)."""
        by_name: dict[str, Binding] = {}
        for binding in bindings:
            by_name[binding.name] = binding
        return list(by_name.values())
