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

"""Report assembler: merges findings with ledger verdicts.

Buckets:
  new          findings with no ledger entry at their file:line
  whitelisted  findings covered by a Valid entry
  drift        findings covered by a Drifted/Broken entry, plus non-Valid
               entries in scanned files whose finding no longer appears
  errors       files that could not be read
"""

from __future__ import annotations

import logging
from typing import Optional

from nullscan.ledger.drift import DriftValidator
from nullscan.ledger.store import SuppressionLedger
from nullscan.models.findings import FindingSeverity, UnsafeAccessFinding
from nullscan.models.ledger import WhitelistEntry
from nullscan.models.report import (
    DriftItem,
    FileError,
    ScanReport,
    ScanSummary,
    ValidationResult,
    WhitelistedFinding,
)
from nullscan.models.rules import DefaultSeverity
from nullscan.scanner.fix_suggestions import populate_fix_suggestions

logger = logging.getLogger(__name__)

FileResult = tuple[str, list[UnsafeAccessFinding], Optional[str]]


def level_for(finding: UnsafeAccessFinding, default_severity: DefaultSeverity) -> str:
    """Report level: high findings take the configured default, medium warn."""
    if finding.severity == FindingSeverity.HIGH:
        return default_severity.value
    return "warning"


def _drift_item(entry: WhitelistEntry, result: ValidationResult, finding: Optional[UnsafeAccessFinding]) -> DriftItem:
    return DriftItem(
        entry_id=entry.id,
        file=entry.file,
        line=entry.line,
        state=result.state,
        reason=result.reason,
        finding=finding,
        issues=list(result.issues),
    )


def assemble_report(
    file_results: list[FileResult],
    ledger: SuppressionLedger,
    validator: DriftValidator,
    default_severity: DefaultSeverity = DefaultSeverity.ERROR,
    scan_target: str = "",
) -> ScanReport:
    """Group per-file findings into the report buckets.

    Each ledger entry is validated at most once per call.
    """
    report = ScanReport(scan_target=scan_target, default_severity=default_severity.value)
    verdicts: dict[str, ValidationResult] = {}

    def verdict(entry: WhitelistEntry) -> ValidationResult:
        if entry.id not in verdicts:
            verdicts[entry.id] = validator.validate_entry(entry)
        return verdicts[entry.id]

    scanned: set[str] = set()
    covered: set[str] = set()

    for file, findings, error in file_results:
        scanned.add(file)
        if error is not None:
            report.errors.append(FileError(file=file, error=error))
            continue
        for finding in findings:
            finding.level = level_for(finding, default_severity)
            entry = ledger.find_entry(finding.file, finding.line, finding.category)
            if entry is None:
                report.new.append(finding)
                continue
            covered.add(entry.id)
            result = verdict(entry)
            if result.is_valid:
                report.whitelisted.append(WhitelistedFinding(finding=finding, entry_id=entry.id))
            else:
                report.drift.append(_drift_item(entry, result, finding))

    for entry in ledger.entries:
        if entry.id in covered or entry.file not in scanned:
            continue
        result = verdict(entry)
        if not result.is_valid:
            report.drift.append(_drift_item(entry, result, None))

    populate_fix_suggestions(report.new)
    populate_fix_suggestions([item.finding for item in report.drift if item.finding is not None])

    report.summary = ScanSummary(
        files_scanned=len(scanned),
        new=len(report.new),
        new_errors=sum(1 for f in report.new if f.level == "error"),
        whitelisted=len(report.whitelisted),
        drift=len(report.drift),
        file_errors=len(report.errors),
    )
    logger.debug(
        "Report: %d new, %d whitelisted, %d drift",
        report.summary.new, report.summary.whitelisted, report.summary.drift,
    )
    return report
