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

"""Fix suggestions for unsafe-access findings.

Maps (access kind, binding kind) to remediation text. Every finding gets a
suggested_fix before the report is rendered.
"""

from __future__ import annotations

from typing import Optional

from nullscan.models.findings import AccessKind, BindingKind, UnsafeAccessFinding
from nullscan.models.report import DriftItem, DriftState


# ── Access shape → Fix mapping ──
# Order matters: first match wins, so (kind, binding kind) pairs go before
# the kind-only fallbacks (binding kind None).

ACCESS_FIXES: list[tuple[AccessKind, Optional[BindingKind], str]] = [
    (
        AccessKind.METHOD_CALL,
        BindingKind.ASSIGNMENT,
        "Use optional chaining: `{name}?.method()`, or check the lookup result: `if (!{name}) return;`",
    ),
    (
        AccessKind.MEMBER_ACCESS,
        BindingKind.ASSIGNMENT,
        "Use optional chaining: `{name}?.property`, or add a fallback at the assignment: `?? defaultValue`",
    ),
    (
        AccessKind.METHOD_CALL,
        None,
        "Use optional chaining: `{name}?.method()` OR add a null check: `if (!{name}) return;`",
    ),
    (
        AccessKind.MEMBER_ACCESS,
        None,
        "Use optional chaining: `{name}?.property` OR add a null check: `if (!{name}) return;`",
    ),
    (
        AccessKind.INDEX_ACCESS,
        None,
        "Use optional chaining: `{name}?.[key]` OR add a null check: `if (!{name}) return;`",
    ),
    (
        AccessKind.CONDITIONAL_ACCESS,
        None,
        "Guard the condition: `if ({name} && {name}.property)` or use `{name}?.property`",
    ),
]


# ── Drift state → Fix mapping ──

DRIFT_FIXES: dict[DriftState, str] = {
    DriftState.DRIFTED: (
        "Review the change. If the suppression still holds, run "
        "`nullscan whitelist reapprove {entry_id}`; otherwise fix the code and "
        "remove the entry with `nullscan whitelist remove {entry_id}`."
    ),
    DriftState.BROKEN: (
        "Restore the missing file or marker, or remove the entry with "
        "`nullscan whitelist remove {entry_id}`."
    ),
}


def get_fix_for_finding(finding: UnsafeAccessFinding) -> str | None:
    """Get a fix suggestion for a finding based on its access shape.

    Returns the fix suggestion string, or None if no match.
    """
    for kind, binding_kind, fix in ACCESS_FIXES:
        if kind != finding.access_kind:
            continue
        if binding_kind is not None and binding_kind != finding.binding_kind:
            continue
        return fix.format(name=finding.binding_name)
    return None


def get_fix_for_drift(item: DriftItem) -> str | None:
    """Get the follow-up action for a drifted or broken ledger entry."""
    fix = DRIFT_FIXES.get(item.state)
    return fix.format(entry_id=item.entry_id) if fix else None


def populate_fix_suggestions(findings: list[UnsafeAccessFinding]) -> None:
    """Populate suggested_fix on all findings.

    Modifies the objects in-place.
    """
    for finding in findings:
        if finding.suggested_fix is None:
            finding.suggested_fix = get_fix_for_finding(finding)
