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

"""Pydantic models for source-expression rules and scan configuration."""

from __future__ import annotations

from enum import Enum
from typing import Optional

from pydantic import BaseModel, Field


class SourceVerdict(str, Enum):
    """What an initializer expression says about the assigned value."""

    MAY_BE_ABSENT = "may_be_absent"
    ALWAYS_VALUE = "always_value"
    UNKNOWN = "unknown"


class ExpressionShape(str, Enum):
    """Recognized initializer shapes."""

    ELEMENT_LOOKUP = "element_lookup"
    SEQUENCE_EXTRACTION = "sequence_extraction"
    KEYED_LOOKUP = "keyed_lookup"
    CONSTRUCTION = "construction"
    COERCION = "coercion"
    COLLECTION = "collection"
    MEASUREMENT = "measurement"
    EVENT_PROPERTY = "event_property"
    LITERAL = "literal"


class SourceRule(BaseModel):
    """One pattern-to-verdict mapping."""

    id: str
    pattern: str  # regex searched against the right-hand side
    verdict: SourceVerdict
    shape: ExpressionShape
    priority: int = 0
    description: Optional[str] = None


class SourceRuleSet(BaseModel):
    """The full pattern-to-verdict table.

    precedence lists the verdicts in evaluation order; the first matching
    rule wins.
    """

    version: int = 1
    precedence: list[SourceVerdict] = Field(
        default_factory=lambda: [SourceVerdict.ALWAYS_VALUE, SourceVerdict.MAY_BE_ABSENT]
    )
    rules: list[SourceRule] = Field(default_factory=list)


class DefaultSeverity(str, Enum):
    """Report level applied to high-severity findings."""

    WARNING = "warning"
    ERROR = "error"


class ScanConfig(BaseModel):
    """Project configuration (.nullscan.yaml)."""

    enforce_suppression_comments: bool = False
    default_severity: DefaultSeverity = DefaultSeverity.ERROR
    ledger: str = ".nullscan-whitelist.json"
    extensions: list[str] = Field(
        default_factory=lambda: [".js", ".mjs", ".cjs", ".jsx", ".ts", ".tsx"]
    )
    ignore: list[str] = Field(default_factory=list)
