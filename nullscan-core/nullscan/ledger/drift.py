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

"""Drift validator: re-checks ledger entries against the current code.

States per entry: Unverified -> Valid -> {Drifted, Broken}. Checks run in
order and the first failing stage decides the state:

  1. read the entry's file             unreadable          -> Broken
  2. compare the approved line         changed or missing  -> Drifted
  3. consumer marker (if enforced)     missing             -> Broken
  4. provider marker per dependency    missing/mismatched  -> Broken
  5. dependency function bodies        changed or missing  -> Drifted

Only Valid suppresses a finding.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Optional

from nullscan.ledger.markers import (
    extract_code_line,
    extract_function_body,
    normalize_whitespace,
    parse_consumer_marker,
    parse_provider_marker,
)
from nullscan.ledger.store import SuppressionLedger
from nullscan.models.ledger import Dependency, WhitelistEntry, today
from nullscan.models.report import (
    REASON_CODE_CHANGED,
    REASON_CODE_NOT_FOUND,
    REASON_DEPENDENCY_CHANGED,
    REASON_DEPENDENCY_FILE_ERROR,
    REASON_DEPENDENCY_NOT_FOUND,
    REASON_FILE_ERROR,
    REASON_MISMATCHED_PROVIDER,
    REASON_MISSING_CONSUMER,
    REASON_MISSING_PROVIDER,
    DriftState,
    ValidationIssue,
    ValidationResult,
)
from nullscan.scanner.js_source import read_source_lines

logger = logging.getLogger(__name__)


def resolve_under_root(root: Path, file: str) -> Path:
    """Resolve a ledger path; relative paths are taken from root."""
    path = Path(file)
    return path if path.is_absolute() else root / path


class DriftValidator:
    """Validates entries against files under root.

    File contents are cached for the validator's lifetime; create one per run.
    """

    def __init__(self, root: Path, enforce_suppression_comments: bool = False) -> None:
        self.root = root
        self.enforce_suppression_comments = enforce_suppression_comments
        self._lines: dict[str, list[str]] = {}
        self._errors: dict[str, str] = {}

    def read_lines(self, file: str) -> list[str]:
        """Return the lines of file; raises OSError (cached) when unreadable."""
        if file in self._lines:
            return self._lines[file]
        if file in self._errors:
            raise OSError(self._errors[file])
        try:
            lines = read_source_lines(resolve_under_root(self.root, file))
        except OSError as e:
            self._errors[file] = e.strerror or str(e)
            raise
        self._lines[file] = lines
        return lines

    def validate_entry(self, entry: WhitelistEntry) -> ValidationResult:
        """Run every check on one entry and return its verdict."""
        result = ValidationResult(entry_id=entry.id, file=entry.file, line=entry.line)

        # ── 1. File ──
        try:
            lines = self.read_lines(entry.file)
        except OSError as e:
            return self._fail(result, DriftState.BROKEN, ValidationIssue(
                reason=REASON_FILE_ERROR,
                message=f"{REASON_FILE_ERROR}: {e.strerror or e}",
                file=entry.file,
                line=entry.line,
            ))

        # ── 2. Approved line ──
        current = extract_code_line(lines, entry.line)
        if current is None:
            return self._fail(result, DriftState.DRIFTED, ValidationIssue(
                reason=REASON_CODE_NOT_FOUND,
                message=f"{REASON_CODE_NOT_FOUND} {entry.line}",
                file=entry.file,
                line=entry.line,
                expected=entry.approved_code_snapshot,
            ))
        if current != entry.approved_code_snapshot.strip():
            return self._fail(result, DriftState.DRIFTED, ValidationIssue(
                reason=REASON_CODE_CHANGED,
                message=REASON_CODE_CHANGED,
                file=entry.file,
                line=entry.line,
                expected=entry.approved_code_snapshot,
                actual=current,
            ))

        # ── 3. Consumer marker ──
        if self.enforce_suppression_comments:
            consumer = parse_consumer_marker(lines, entry.line)
            if not consumer.found:
                return self._fail(result, DriftState.BROKEN, ValidationIssue(
                    reason=REASON_MISSING_CONSUMER,
                    message=f"{REASON_MISSING_CONSUMER}: expected @validation-ignore above line {entry.line}",
                    file=entry.file,
                    line=entry.line,
                ))
            if consumer.whitelist_id and consumer.whitelist_id != entry.id:
                result.warnings.append(
                    f"Consumer marker names {consumer.whitelist_id}, ledger has {entry.id}"
                )

        # ── 4. Provider markers ──
        provider_issues = []
        for dep in entry.dependencies:
            issue = self._check_provider(entry.id, dep)
            if issue is not None:
                provider_issues.append(issue)
        if provider_issues:
            return self._fail(result, DriftState.BROKEN, *provider_issues)

        # ── 5. Dependency bodies ──
        body_issues = []
        for dep in entry.dependencies:
            issue = self._check_dependency_body(dep)
            if issue is not None:
                body_issues.append(issue)
        if body_issues:
            state = DriftState.DRIFTED
            if any(i.reason == REASON_DEPENDENCY_FILE_ERROR for i in body_issues):
                state = DriftState.BROKEN
            return self._fail(result, state, *body_issues)

        result.state = DriftState.VALID
        return result

    def _check_provider(self, entry_id: str, dep: Dependency) -> Optional[ValidationIssue]:
        try:
            lines = self.read_lines(dep.target_file)
        except OSError as e:
            return ValidationIssue(
                reason=REASON_DEPENDENCY_FILE_ERROR,
                message=f"{REASON_DEPENDENCY_FILE_ERROR}: {e.strerror or e}",
                file=dep.target_file,
                line=dep.target_line,
            )

        provider = parse_provider_marker(lines, dep.target_line)
        if not provider.found:
            return ValidationIssue(
                reason=REASON_MISSING_PROVIDER,
                message=(
                    f"{REASON_MISSING_PROVIDER}: add `// @validation-dependency {entry_id}` "
                    f"above {dep.target_function} in {dep.target_file}:{dep.target_line}"
                ),
                file=dep.target_file,
                line=dep.target_line,
            )
        if entry_id not in provider.whitelist_ids:
            return ValidationIssue(
                reason=REASON_MISMATCHED_PROVIDER,
                message=(
                    f"{REASON_MISMATCHED_PROVIDER}: {dep.target_file}:{dep.target_line} "
                    f"lists {', '.join(provider.whitelist_ids) or 'no ids'}"
                ),
                file=dep.target_file,
                line=dep.target_line,
                expected=entry_id,
                actual=", ".join(provider.whitelist_ids),
            )
        return None

    def _check_dependency_body(self, dep: Dependency) -> Optional[ValidationIssue]:
        try:
            lines = self.read_lines(dep.target_file)
        except OSError as e:
            return ValidationIssue(
                reason=REASON_DEPENDENCY_FILE_ERROR,
                message=f"{REASON_DEPENDENCY_FILE_ERROR}: {e.strerror or e}",
                file=dep.target_file,
                line=dep.target_line,
            )

        body = extract_function_body(lines, dep.target_line, dep.target_function)
        if body is None:
            return ValidationIssue(
                reason=REASON_DEPENDENCY_NOT_FOUND,
                message=f"{REASON_DEPENDENCY_NOT_FOUND}: {dep.target_function} at line {dep.target_line}",
                file=dep.target_file,
                line=dep.target_line,
            )
        if normalize_whitespace(body) != normalize_whitespace(dep.code_snapshot):
            return ValidationIssue(
                reason=REASON_DEPENDENCY_CHANGED,
                message=f"{REASON_DEPENDENCY_CHANGED}: {dep.target_function} in {dep.target_file}",
                file=dep.target_file,
                line=dep.target_line,
            )
        return None

    @staticmethod
    def _fail(result: ValidationResult, state: DriftState, *issues: ValidationIssue) -> ValidationResult:
        result.state = state
        result.reason = issues[0].reason
        result.issues.extend(issues)
        logger.debug("Entry %s: %s (%s)", result.entry_id, state.value, result.reason)
        return result


def validate_all(
    ledger: SuppressionLedger,
    validator: DriftValidator,
    touch: bool = False,
) -> list[ValidationResult]:
    """Validate every ledger entry.

    With touch, Valid entries get today's last_validated_date and the
    ledger is saved once.
    """
    results = [validator.validate_entry(entry) for entry in ledger.entries]
    if touch:
        stamp = today()
        changed = False
        for result in results:
            if result.is_valid:
                entry = ledger.get_entry(result.entry_id)
                if entry is not None and entry.last_validated_date != stamp:
                    entry.last_validated_date = stamp
                    changed = True
        if changed:
            ledger.save()
    return results
