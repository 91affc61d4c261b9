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

"""Approval of findings into the ledger, by API call or in-source marker."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Optional

from pydantic import BaseModel, Field

from nullscan.ledger.drift import resolve_under_root
from nullscan.ledger.markers import (
    extract_code_line,
    extract_function_body,
    find_consumer_markers,
)
from nullscan.ledger.store import DuplicateEntryError, LedgerError, SuppressionLedger
from nullscan.models.ledger import Dependency, DependencyRef, WhitelistEntry
from nullscan.scanner.js_source import read_source_lines

logger = logging.getLogger(__name__)

DEFAULT_CATEGORY = "null-access"


class ApprovalError(LedgerError):
    """The location to approve cannot be snapshotted."""


class SyncResult(BaseModel):
    """What a marker sync did."""

    added: list[str] = Field(default_factory=list)
    skipped: list[str] = Field(default_factory=list)
    errors: list[str] = Field(default_factory=list)


def _read(root: Path, file: str) -> list[str]:
    try:
        return read_source_lines(resolve_under_root(root, file))
    except OSError as e:
        raise ApprovalError(f"Cannot read {file}: {e.strerror or e}") from e


def snapshot_dependencies(root: Path, refs: list[DependencyRef], default_file: str) -> list[Dependency]:
    """Capture the current body of every referenced function."""
    dependencies = []
    for ref in refs:
        target_file = ref.file or default_file
        lines = _read(root, target_file)
        body = extract_function_body(lines, ref.line, ref.function)
        if body is None:
            raise ApprovalError(
                f"Dependency {ref.function} at {target_file}:{ref.line} is outside the file"
            )
        dependencies.append(Dependency(
            target_file=target_file,
            target_function=ref.function,
            target_line=ref.line,
            code_snapshot=body,
        ))
    return dependencies


def approve_location(
    ledger: SuppressionLedger,
    root: Path,
    file: str,
    line: int,
    reason: str,
    category: str = DEFAULT_CATEGORY,
    dependencies: Optional[list[DependencyRef]] = None,
    entry_id: Optional[str] = None,
) -> WhitelistEntry:
    """Snapshot file:line (and its dependencies) and add a ledger entry."""
    lines = _read(root, file)
    snapshot = extract_code_line(lines, line)
    if snapshot is None:
        raise ApprovalError(f"{file} has no line {line}")

    entry = WhitelistEntry(
        id=entry_id or "",
        category=category,
        file=file,
        line=line,
        approved_code_snapshot=snapshot,
        reason=reason,
        dependencies=snapshot_dependencies(root, dependencies or [], file),
    )
    added_id = ledger.add_entry(entry)
    return ledger.get_entry(added_id)


def reapprove(ledger: SuppressionLedger, root: Path, entry_id: str) -> WhitelistEntry:
    """Refresh an entry's snapshots from the current code."""
    entry = ledger.get_entry(entry_id)
    if entry is None:
        raise ApprovalError(f"No ledger entry {entry_id}")

    lines = _read(root, entry.file)
    snapshot = extract_code_line(lines, entry.line)
    if snapshot is None:
        raise ApprovalError(f"{entry.file} has no line {entry.line}")

    refs = [
        DependencyRef(function=d.target_function, line=d.target_line, file=d.target_file)
        for d in entry.dependencies
    ]
    return ledger.update_entry(
        entry_id,
        approved_code_snapshot=snapshot,
        dependencies=snapshot_dependencies(root, refs, entry.file),
    )


def sync_from_markers(ledger: SuppressionLedger, root: Path, files: list[str]) -> SyncResult:
    """Approve every marked location the ledger does not cover yet.

    Errors are collected per marker; one bad marker does not stop the sync.
    """
    result = SyncResult()

    for file in files:
        try:
            lines = _read(root, file)
        except ApprovalError as e:
            result.errors.append(str(e))
            continue

        for line_number, marker in find_consumer_markers(lines):
            location = f"{file}:{line_number}"
            category = marker.category or DEFAULT_CATEGORY
            if ledger.find_entry(file, line_number, category) is not None:
                result.skipped.append(location)
                continue
            if not marker.reason:
                result.errors.append(f"{location}: marker has no @reason")
                continue
            try:
                entry = approve_location(
                    ledger,
                    root,
                    file,
                    line_number,
                    marker.reason,
                    category=category,
                    dependencies=marker.dependencies,
                    entry_id=marker.whitelist_id,
                )
            except (ApprovalError, DuplicateEntryError) as e:
                result.errors.append(f"{location}: {e}")
                continue
            result.added.append(entry.id)
            logger.info("Approved %s as %s from marker", location, entry.id)

    return result
