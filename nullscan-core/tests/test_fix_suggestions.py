"""Tests for fix suggestions."""

from nullscan.models.findings import AccessKind, BindingKind, FindingSeverity, UnsafeAccessFinding
from nullscan.models.report import DriftItem, DriftState
from nullscan.scanner.fix_suggestions import (
    get_fix_for_drift,
    get_fix_for_finding,
    populate_fix_suggestions,
)


def _finding(kind: AccessKind, binding_kind: BindingKind = BindingKind.PARAMETER) -> UnsafeAccessFinding:
    return UnsafeAccessFinding(
        file="a.js",
        line=1,
        binding_name="user",
        access_kind=kind,
        severity=FindingSeverity.HIGH,
        binding_kind=binding_kind,
    )


class TestFindingFixes:
    """Every access kind has a fix that names the binding."""

    def test_all_kinds_covered(self):
        for kind in AccessKind:
            fix = get_fix_for_finding(_finding(kind))
            assert fix is not None
            assert "user" in fix

    def test_assignment_specific_fix(self):
        parameter = get_fix_for_finding(_finding(AccessKind.MEMBER_ACCESS))
        assignment = get_fix_for_finding(_finding(AccessKind.MEMBER_ACCESS, BindingKind.ASSIGNMENT))
        assert parameter != assignment
        assert "??" in assignment

    def test_index_fix(self):
        assert "user?.[key]" in get_fix_for_finding(_finding(AccessKind.INDEX_ACCESS))

    def test_populate_keeps_existing(self):
        preset = _finding(AccessKind.METHOD_CALL)
        preset.suggested_fix = "custom"
        fresh = _finding(AccessKind.METHOD_CALL)
        populate_fix_suggestions([preset, fresh])
        assert preset.suggested_fix == "custom"
        assert fresh.suggested_fix


class TestDriftFixes:
    """Drift items point at the ledger command to run."""

    def _item(self, state: DriftState) -> DriftItem:
        return DriftItem(entry_id="null-access-003", file="a.js", line=2, state=state, reason="x")

    def test_drifted(self):
        fix = get_fix_for_drift(self._item(DriftState.DRIFTED))
        assert "nullscan whitelist reapprove null-access-003" in fix

    def test_broken(self):
        assert "null-access-003" in get_fix_for_drift(self._item(DriftState.BROKEN))

    def test_valid_has_none(self):
        assert get_fix_for_drift(self._item(DriftState.VALID)) is None
