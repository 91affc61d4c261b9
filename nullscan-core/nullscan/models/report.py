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

"""Pydantic models for drift verdicts and the scan report."""

from __future__ import annotations

from datetime import datetime, timezone
from enum import Enum
from typing import Optional

from pydantic import BaseModel, Field

from nullscan import __version__
from nullscan.models.findings import UnsafeAccessFinding


class DriftState(str, Enum):
    """Verdict on a ledger entry.

    Unverified -> Valid -> {Drifted, Broken}. Only VALID suppresses a finding.
    """

    UNVERIFIED = "unverified"
    VALID = "valid"
    DRIFTED = "drifted"
    BROKEN = "broken"


# Reasons attached to a ValidationResult.
REASON_FILE_ERROR = "File error"
REASON_CODE_NOT_FOUND = "Code not found at line"
REASON_CODE_CHANGED = "Code changed"
REASON_MISSING_CONSUMER = "Missing consumer marker"
REASON_MISSING_PROVIDER = "Missing provider marker"
REASON_MISMATCHED_PROVIDER = "Mismatched provider id"
REASON_DEPENDENCY_FILE_ERROR = "Dependency file error"
REASON_DEPENDENCY_NOT_FOUND = "Dependency function not found"
REASON_DEPENDENCY_CHANGED = "Dependency code changed"


class ValidationIssue(BaseModel):
    """One failed check, with enough context to act on it."""

    reason: str
    message: str = ""
    file: str = ""
    line: int = 0
    expected: Optional[str] = None
    actual: Optional[str] = None


class ValidationResult(BaseModel):
    """Outcome of validating a single ledger entry."""

    entry_id: str
    file: str = ""
    line: int = 0
    state: DriftState = DriftState.UNVERIFIED
    reason: str = ""
    issues: list[ValidationIssue] = Field(default_factory=list)
    warnings: list[str] = Field(default_factory=list)

    @property
    def is_valid(self) -> bool:
        return self.state == DriftState.VALID


class WhitelistedFinding(BaseModel):
    """A finding suppressed by a Valid ledger entry."""

    finding: UnsafeAccessFinding
    entry_id: str


class DriftItem(BaseModel):
    """A ledger entry that needs a human decision.

    finding is None when the approved line no longer produces a finding.
    """

    entry_id: str
    file: str
    line: int
    state: DriftState
    reason: str
    finding: Optional[UnsafeAccessFinding] = None
    issues: list[ValidationIssue] = Field(default_factory=list)


class FileError(BaseModel):
    """A source file that could not be analyzed."""

    file: str
    error: str


class ScanSummary(BaseModel):
    """Counts shown at the top of a report."""

    files_scanned: int = 0
    new: int = 0
    new_errors: int = 0
    whitelisted: int = 0
    drift: int = 0
    file_errors: int = 0


class ScanReport(BaseModel):
    """The complete scan report (nullscan_report.json)."""

    nullscan_version: str = __version__
    scan_target: str = ""
    scan_timestamp: str = Field(
        default_factory=lambda: datetime.now(timezone.utc).isoformat()
    )
    default_severity: str = "error"
    new: list[UnsafeAccessFinding] = Field(default_factory=list)
    whitelisted: list[WhitelistedFinding] = Field(default_factory=list)
    drift: list[DriftItem] = Field(default_factory=list)
    errors: list[FileError] = Field(default_factory=list)
    summary: ScanSummary = Field(default_factory=ScanSummary)

    @property
    def should_fail(self) -> bool:
        """True when the run must exit non-zero."""
        if self.drift:
            return True
        return any(f.level == "error" for f in self.new)
