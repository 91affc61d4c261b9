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

"""Pydantic models for the suppression ledger (whitelist) file."""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Optional

from pydantic import BaseModel, Field

LEDGER_VERSION = "1.0"


def today() -> str:
    """Return today's UTC date as YYYY-MM-DD."""
    return datetime.now(timezone.utc).date().isoformat()


class Dependency(BaseModel):
    """Another location whose code justifies a suppression."""

    target_file: str
    target_function: str
    target_line: int
    code_snapshot: str = ""


class WhitelistEntry(BaseModel):
    """A human-approved finding, matched by exact file:line."""

    id: str
    category: str = "null-access"
    file: str
    line: int
    approved_code_snapshot: str
    reason: str = ""
    approved_date: str = Field(default_factory=today)
    dependencies: list[Dependency] = Field(default_factory=list)
    last_validated_date: Optional[str] = None

    @property
    def location(self) -> str:
        return f"{self.file}:{self.line}"


class FrameworkStats(BaseModel):
    """Usage counts recorded when a framework pattern is enabled."""

    functions_matched: int = 0
    files_affected: int = 0


class FrameworkPatternEntry(BaseModel):
    """Bulk exemption for parameters that follow a known calling convention.

    Each signature is an exact, ordered list of parameter names.
    """

    id: str
    enabled: bool = True
    signature_list: list[list[str]] = Field(default_factory=list)
    description: str = ""
    verified_date: str = Field(default_factory=today)
    verified_by: str = "manual"
    stats: FrameworkStats = Field(default_factory=FrameworkStats)


class Ledger(BaseModel):
    """The persisted suppression ledger.

    Keys are sorted alphabetically in canonical JSON output.
    Line endings are LF.
    """

    version: str = LEDGER_VERSION
    last_updated: str = Field(default_factory=today)
    frameworks: dict[str, FrameworkPatternEntry] = Field(default_factory=dict)
    entries: list[WhitelistEntry] = Field(default_factory=list)
    categories: dict[str, int] = Field(default_factory=dict)


# ── In-source markers ──


class DependencyRef(BaseModel):
    """A dependency as written in a consumer marker, before snapshotting."""

    function: str
    line: int
    file: Optional[str] = None


class ConsumerMarker(BaseModel):
    """Parsed comment block directly above a suppressed line."""

    found: bool = False
    category: Optional[str] = None
    reason: Optional[str] = None
    dependencies: list[DependencyRef] = Field(default_factory=list)
    whitelist_id: Optional[str] = None
    comment_start_line: Optional[int] = None


class ProviderMarker(BaseModel):
    """Parsed comment block directly above a dependency's declaration."""

    found: bool = False
    whitelist_ids: list[str] = Field(default_factory=list)
    required_by: list[str] = Field(default_factory=list)
    contract: Optional[str] = None
