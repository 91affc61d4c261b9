"""Tests for the suppression ledger store."""

import json
from pathlib import Path

import pytest

from nullscan.ledger.store import (
    DuplicateEntryError,
    LedgerError,
    LedgerWriteError,
    SuppressionLedger,
    UnknownEntryError,
)
from nullscan.models.ledger import FrameworkStats, WhitelistEntry


def _entry(file: str = "app.js", line: int = 3, entry_id: str = "", category: str = "null-access") -> WhitelistEntry:
    return WhitelistEntry(
        id=entry_id,
        category=category,
        file=file,
        line=line,
        approved_code_snapshot="return user.name;",
        reason="user is set by the router",
    )


@pytest.fixture
def ledger(tmp_path: Path) -> SuppressionLedger:
    return SuppressionLedger.load(tmp_path / ".nullscan-whitelist.json")


class TestLoad:
    """Loading never fails and never writes."""

    def test_missing_file(self, tmp_path: Path):
        path = tmp_path / "ledger.json"
        ledger = SuppressionLedger.load(path)
        assert ledger.entries == []
        assert not path.exists()

    def test_corrupt_file(self, tmp_path: Path):
        path = tmp_path / "ledger.json"
        path.write_text("{not json")
        ledger = SuppressionLedger.load(path)
        assert ledger.entries == []
        assert path.read_text() == "{not json"

    def test_round_trip(self, ledger: SuppressionLedger):
        ledger.add_entry(_entry())
        reloaded = SuppressionLedger.load(ledger.path)
        assert reloaded.get_entry("null-access-001").location == "app.js:3"


class TestEntries:
    """Entry identity, lookup and persistence."""

    def test_generated_ids(self, ledger: SuppressionLedger):
        assert ledger.add_entry(_entry(line=1)) == "null-access-001"
        assert ledger.add_entry(_entry(line=2)) == "null-access-002"

    def test_generate_id_uses_highest(self, ledger: SuppressionLedger):
        ledger.add_entry(_entry(line=1, entry_id="null-access-007"))
        ledger.add_entry(_entry(line=2, entry_id="style-001", category="style"))
        assert ledger.generate_id("null-access") == "null-access-008"
        assert ledger.generate_id("style") == "style-002"
        assert ledger.generate_id("other") == "other-001"

    def test_duplicate_location_rejected(self, ledger: SuppressionLedger):
        ledger.add_entry(_entry())
        with pytest.raises(DuplicateEntryError):
            ledger.add_entry(_entry())
        assert len(ledger.entries) == 1

    def test_duplicate_id_rejected(self, ledger: SuppressionLedger):
        ledger.add_entry(_entry(line=1, entry_id="null-access-001"))
        with pytest.raises(DuplicateEntryError):
            ledger.add_entry(_entry(line=2, entry_id="null-access-001"))

    def test_find_entry(self, ledger: SuppressionLedger):
        ledger.add_entry(_entry())
        assert ledger.find_entry("app.js", 3) is not None
        assert ledger.find_entry("app.js", 4) is None
        assert ledger.find_entry("app.js", 3, "style") is None

    def test_save_writes_categories(self, ledger: SuppressionLedger):
        ledger.add_entry(_entry(line=1))
        ledger.add_entry(_entry(line=2, category="style"))
        data = json.loads(ledger.path.read_text())
        assert data["categories"] == {"null-access": 1, "style": 1}
        assert data["version"] == "1.0"

    def test_canonical_format(self, ledger: SuppressionLedger):
        ledger.add_entry(_entry())
        text = ledger.path.read_text()
        assert text.endswith("\n")
        assert "\r" not in text
        assert list(json.loads(text)) == sorted(json.loads(text))

    def test_update_entry(self, ledger: SuppressionLedger):
        ledger.add_entry(_entry())
        ledger.update_entry("null-access-001", reason="checked upstream")
        reloaded = SuppressionLedger.load(ledger.path)
        assert reloaded.get_entry("null-access-001").reason == "checked upstream"

    def test_update_unknown_or_id(self, ledger: SuppressionLedger):
        with pytest.raises(UnknownEntryError):
            ledger.update_entry("null-access-404", reason="x")
        ledger.add_entry(_entry())
        with pytest.raises(LedgerError):
            ledger.update_entry("null-access-001", id="other")

    def test_rejected_update_changes_nothing(self, ledger: SuppressionLedger):
        ledger.add_entry(_entry())
        with pytest.raises(LedgerError):
            ledger.update_entry("null-access-001", reason="changed", bogus=1)
        assert ledger.get_entry("null-access-001").reason == "user is set by the router"
        ledger.save()
        reloaded = SuppressionLedger.load(ledger.path)
        assert reloaded.get_entry("null-access-001").reason == "user is set by the router"

    def test_add_does_not_modify_caller_entry(self, ledger: SuppressionLedger):
        ledger.add_entry(_entry())
        duplicate = _entry()
        with pytest.raises(DuplicateEntryError):
            ledger.add_entry(duplicate)
        assert duplicate.id == ""
        fresh = _entry(line=4)
        assert ledger.add_entry(fresh) == "null-access-002"
        assert fresh.id == ""

    def test_remove_entry(self, ledger: SuppressionLedger):
        ledger.add_entry(_entry())
        assert ledger.remove_entry("null-access-001")
        assert not ledger.remove_entry("null-access-001")
        assert SuppressionLedger.load(ledger.path).entries == []


class TestWriteFailure:
    """A failed write leaves the ledger as it was."""

    def test_add_rolls_back(self, tmp_path: Path):
        blocker = tmp_path / "blocker"
        blocker.write_text("not a directory")
        ledger = SuppressionLedger.load(blocker / "ledger.json")
        with pytest.raises(LedgerWriteError) as exc:
            ledger.add_entry(_entry())
        assert exc.value.path == blocker / "ledger.json"
        assert isinstance(exc.value.cause, OSError)
        assert ledger.entries == []

    def test_framework_rolls_back(self, tmp_path: Path):
        blocker = tmp_path / "blocker"
        blocker.write_text("")
        ledger = SuppressionLedger.load(blocker / "ledger.json")
        with pytest.raises(LedgerWriteError):
            ledger.add_framework_pattern("express", [["req", "res"]])
        assert ledger.data.frameworks == {}


class TestFrameworkPatterns:
    """Bulk calling-convention exemptions."""

    def test_add_and_signatures(self, ledger: SuppressionLedger):
        pattern_id = ledger.add_framework_pattern(
            "express",
            [["req", "res", "next"], ["req", "res"]],
            description="Express handlers",
            stats=FrameworkStats(functions_matched=4, files_affected=2),
        )
        assert pattern_id == "framework-express-001"
        assert ledger.is_pattern_enabled("express")
        assert ledger.enabled_signatures() == [["req", "res", "next"], ["req", "res"]]
        saved = json.loads(ledger.path.read_text())["frameworks"]["express"]
        assert saved["stats"] == {"files_affected": 2, "functions_matched": 4}

    def test_disable_and_remove(self, ledger: SuppressionLedger):
        ledger.add_framework_pattern("express", [["req", "res"]])
        ledger.set_pattern_enabled("express", False)
        assert ledger.enabled_signatures() == []
        assert not ledger.is_pattern_enabled("express")
        assert ledger.remove_framework_pattern("express")
        assert not ledger.remove_framework_pattern("express")

    def test_unknown_pattern(self, ledger: SuppressionLedger):
        with pytest.raises(UnknownEntryError):
            ledger.set_pattern_enabled("koa", True)
