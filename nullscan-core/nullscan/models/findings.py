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

"""Pydantic models for bindings, safe zones and unsafe-access findings."""

from __future__ import annotations

from enum import Enum
from typing import Optional

from pydantic import BaseModel, Field


class BindingKind(str, Enum):
    """How a risky binding was introduced."""

    PARAMETER = "parameter"
    ASSIGNMENT = "assignment"


PARAMETER_REASON = "parameter without guarantee"
ASSIGNMENT_REASON = "assigned from a possibly-absent source"


class Binding(BaseModel):
    """A binding the classifier suspects may hold an absent value.

    Identity is (name, depth). A later declaration of the same name at the
    same depth replaces the earlier one.
    """

    name: str
    depth: int = 0
    origin_line: int
    origin_col: int = 0  # first column after the declaration text
    kind: BindingKind
    reason: str = ""
    source: str = ""  # right-hand side text for assignments
    rule_id: Optional[str] = None

    @property
    def key(self) -> tuple[str, int]:
        return (self.name, self.depth)


class GuardKind(str, Enum):
    """Textual guard shapes recognized by the guard recognizer."""

    TRUTHINESS = "truthiness"
    COMPOUND = "compound"
    EXPLICIT_ABSENCE = "explicit-absence"
    EARLY_RETURN = "early-return"
    EARLY_RETURN_BLOCK = "early-return-block"
    DEFAULT_COALESCE = "default-coalesce"
    OPTIONAL_ACCESS = "optional-access"
    LOOP = "loop"


class ZoneScope(str, Enum):
    """Which lines a safe zone neutralizes."""

    THIS_LINE_ONLY = "this-line-only"
    AFTER_LINE = "after-line"
    INSIDE_BLOCK = "inside-block"


class SafeZone(BaseModel):
    """A region where a named binding is known not to be absent."""

    kind: GuardKind
    start_line: int
    scope: ZoneScope
    start_col: int = 0
    # exclusive bound for INSIDE_BLOCK, inclusive for AFTER_LINE (None: no end)
    end_line: Optional[int] = None

    def covers(self, line: int, col: int = 0) -> bool:
        """Return True if an access at (line, col) falls inside this zone."""
        if self.scope == ZoneScope.THIS_LINE_ONLY:
            return line == self.start_line
        if self.scope == ZoneScope.AFTER_LINE:
            if self.end_line is not None and line > self.end_line:
                return False
            if line == self.start_line:
                return col >= self.start_col
            return line > self.start_line
        end = self.end_line if self.end_line is not None else self.start_line
        return self.start_line < line < end


class AccessKind(str, Enum):
    """Dereference shapes, in the priority order they are checked."""

    METHOD_CALL = "method-call"
    MEMBER_ACCESS = "member-access"
    INDEX_ACCESS = "index-access"
    CONDITIONAL_ACCESS = "conditional-access"


class FindingSeverity(str, Enum):
    """Severity of an unsafe access."""

    HIGH = "high"
    MEDIUM = "medium"


ACCESS_SEVERITY: dict[AccessKind, FindingSeverity] = {
    AccessKind.METHOD_CALL: FindingSeverity.HIGH,
    AccessKind.MEMBER_ACCESS: FindingSeverity.HIGH,
    AccessKind.INDEX_ACCESS: FindingSeverity.MEDIUM,
    AccessKind.CONDITIONAL_ACCESS: FindingSeverity.MEDIUM,
}


class UnsafeAccessFinding(BaseModel):
    """A single dereference of a risky binding with no applicable guard.

    Core fields:
      file, line, binding_name, access_kind, severity, source_line

    Enrichment fields (filled in after generation):
      level         - "error" or "warning" after applying the configured
                      default severity
      suggested_fix - remediation text for the report
    """

    file: str
    line: int
    col: int = 0
    binding_name: str
    access_kind: AccessKind
    severity: FindingSeverity
    source_line: str = ""
    category: str = "null-access"
    binding_kind: BindingKind = BindingKind.PARAMETER
    binding_line: int = 0
    reason: str = ""
    level: str = "error"
    suggested_fix: Optional[str] = None
    tags: list[str] = Field(default_factory=list)

    @property
    def location(self) -> str:
        return f"{self.file}:{self.line}"
