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

"""Source-rule evaluation engine.

Evaluates the right-hand side of an assignment against the pattern-to-verdict
table in rules/source_patterns.yaml. Precedence-ordered: always_value rules
first, then may_be_absent, then the unknown default.

Used at:
- Classification time: decide whether an assigned binding is risky
- Report time: name the rule that made a binding risky
"""

from __future__ import annotations

import logging
import re
from pathlib import Path
from typing import Optional

import yaml

from nullscan.models.rules import (
    ExpressionShape,
    SourceRule,
    SourceRuleSet,
    SourceVerdict,
)

logger = logging.getLogger(__name__)

DEFAULT_RULES_PATH = Path(__file__).parent.parent / "rules" / "source_patterns.yaml"


class SourceMatch:
    """Result of source-rule evaluation."""

    def __init__(
        self,
        verdict: SourceVerdict,
        rule_id: Optional[str] = None,
        shape: Optional[ExpressionShape] = None,
        is_default: bool = False,
    ) -> None:
        self.verdict = verdict
        self.rule_id = rule_id
        self.shape = shape
        self.is_default = is_default

    @property
    def may_be_absent(self) -> bool:
        return self.verdict == SourceVerdict.MAY_BE_ABSENT

    def __repr__(self) -> str:
        return f"SourceMatch(verdict={self.verdict}, rule_id={self.rule_id}, is_default={self.is_default})"


def load_source_rules(rules_path: str | Path | None = None) -> SourceRuleSet:
    """Load the pattern-to-verdict table from YAML.

    Invalid regular expressions are dropped with a warning so one bad
    entry does not disable the whole table.
    """
    path = Path(rules_path) if rules_path else DEFAULT_RULES_PATH
    try:
        with open(path, "r", encoding="utf-8") as f:
            data = yaml.safe_load(f) or {}
    except FileNotFoundError:
        logger.warning("Source rules not found at %s", path)
        return SourceRuleSet()

    rules = []
    for rule_data in data.get("rules", []):
        rule = SourceRule(**rule_data)
        try:
            re.compile(rule.pattern)
        except re.error as e:
            logger.warning("Skipping source rule %s: bad pattern (%s)", rule.id, e)
            continue
        rules.append(rule)

    ruleset = SourceRuleSet(rules=rules, version=data.get("version", 1))
    if "precedence" in data:
        ruleset.precedence = [SourceVerdict(v) for v in data["precedence"]]
    return ruleset


def mask_call_arguments(rhs: str) -> str:
    """Replace everything inside call parentheses with `_`.

    The outermost parentheses stay, so `a.get(key)` becomes `a.get(___)`
    and `String(id)` inside an argument can no longer decide the verdict
    of the expression around it. Parentheses inside string literals are
    not counted.
    """
    out = []
    depth = 0
    quote = None
    escaped = False
    for ch in rhs:
        if quote:
            if escaped:
                escaped = False
            elif ch == "\\":
                escaped = True
            elif ch == quote:
                quote = None
            out.append("_" if depth else ch)
            continue
        if ch in "'\"`":
            quote = ch
            out.append("_" if depth else ch)
        elif ch == "(":
            out.append("_" if depth else ch)
            depth += 1
        elif ch == ")" and depth:
            depth -= 1
            out.append("_" if depth else ch)
        else:
            out.append("_" if depth else ch)
    return "".join(out)


def evaluate_source(rhs: str, ruleset: SourceRuleSet) -> SourceMatch:
    """Evaluate an initializer expression against the rule table.

    Rules are matched against the expression with call arguments masked
    (see mask_call_arguments), so the outer call decides.

    Evaluation order:
    1. Verdicts in ruleset.precedence order (always_value first by default)
    2. Within a verdict, highest priority first, then file order
    3. SourceVerdict.UNKNOWN when nothing matches

    Args:
        rhs: the text after `=` in a declaration.
        ruleset: the loaded rule table.

    Returns:
        SourceMatch with verdict, matched rule ID and expression shape.
    """
    outer = mask_call_arguments(rhs)
    for verdict in ruleset.precedence:
        candidates = sorted(
            (r for r in ruleset.rules if r.verdict == verdict),
            key=lambda r: r.priority,
            reverse=True,
        )
        for rule in candidates:
            if re.search(rule.pattern, outer):
                return SourceMatch(verdict=verdict, rule_id=rule.id, shape=rule.shape)

    return SourceMatch(verdict=SourceVerdict.UNKNOWN, is_default=True)
