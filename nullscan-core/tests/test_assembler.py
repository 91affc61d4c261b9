"""Tests for report assembly: new, whitelisted, drift and errors."""

from pathlib import Path

import pytest

from nullscan.ledger.drift import DriftValidator
from nullscan.ledger.store import SuppressionLedger
from nullscan.ledger.sync import approve_location
from nullscan.models.report import REASON_CODE_CHANGED, DriftState
from nullscan.models.rules import DefaultSeverity
from nullscan.policy.rule_engine import load_source_rules
from nullscan.reporter.assembler import assemble_report, level_for
from nullscan.reporter.json_out import to_canonical_json
from nullscan.scanner.analyzer import scan_files

SOURCE = """\
function render(user) {
  return user.name;
}
"""


@pytest.fixture
def project(tmp_path: Path) -> Path:
    (tmp_path / "app.js").write_text(SOURCE)
    return tmp_path


def _report(root: Path, files=("app.js",), severity=DefaultSeverity.ERROR, enforce=False):
    ledger = SuppressionLedger.load(root / ".nullscan-whitelist.json")
    results = scan_files(root, list(files), load_source_rules())
    return assemble_report(results, ledger, DriftValidator(root, enforce), default_severity=severity)


def _approve(root: Path, line: int = 2) -> None:
    ledger = SuppressionLedger.load(root / ".nullscan-whitelist.json")
    approve_location(ledger, root, "app.js", line, "render is only called with a user")


class TestBuckets:
    """Findings land in exactly one bucket."""

    def test_new_finding(self, project: Path):
        report = _report(project)
        assert [f.location for f in report.new] == ["app.js:2"]
        assert report.new[0].level == "error"
        assert report.new[0].suggested_fix
        assert report.summary.new == 1
        assert report.summary.new_errors == 1
        assert report.should_fail

    def test_whitelisted(self, project: Path):
        _approve(project)
        report = _report(project)
        assert report.new == []
        assert [w.entry_id for w in report.whitelisted] == ["null-access-001"]
        assert not report.should_fail

    def test_drifted_finding(self, project: Path):
        _approve(project)
        (project / "app.js").write_text(SOURCE.replace("user.name", "user.fullName"))
        report = _report(project)
        assert report.new == []
        assert len(report.drift) == 1
        item = report.drift[0]
        assert item.state == DriftState.DRIFTED
        assert item.reason == REASON_CODE_CHANGED
        assert item.finding is not None
        assert report.should_fail

    def test_drift_without_finding(self, project: Path):
        _approve(project)
        (project / "app.js").write_text(SOURCE.replace("user.name", "user?.name"))
        report = _report(project)
        assert report.new == []
        assert len(report.drift) == 1
        assert report.drift[0].finding is None

    def test_entries_for_unscanned_files_ignored(self, project: Path):
        _approve(project)
        (project / "other.js").write_text("const a = 1;\n")
        (project / "app.js").unlink()
        report = _report(project, files=("other.js",))
        assert report.drift == []
        assert not report.should_fail

    def test_unreadable_file(self, project: Path):
        report = _report(project, files=("app.js", "missing.js"))
        assert [e.file for e in report.errors] == ["missing.js"]
        assert report.summary.files_scanned == 2
        assert report.summary.file_errors == 1

    def test_marker_enforcement_breaks_entry(self, project: Path):
        _approve(project)
        report = _report(project, enforce=True)
        assert [d.state for d in report.drift] == [DriftState.BROKEN]


class TestLevels:
    """Default severity applies to high findings only."""

    def test_warning_default_passes(self, project: Path):
        report = _report(project, severity=DefaultSeverity.WARNING)
        assert report.new[0].level == "warning"
        assert not report.should_fail

    def test_medium_is_warning(self, tmp_path: Path):
        (tmp_path / "app.js").write_text("function f(rows) {\n  return rows[0];\n}\n")
        report = _report(tmp_path)
        assert report.new[0].level == "warning"
        assert not report.should_fail

    def test_level_for(self, project: Path):
        finding = _report(project).new[0]
        assert level_for(finding, DefaultSeverity.ERROR) == "error"
        assert level_for(finding, DefaultSeverity.WARNING) == "warning"


class TestSerialization:
    """The report serializes to canonical JSON."""

    def test_json_keys(self, project: Path):
        text = to_canonical_json(_report(project))
        assert text.endswith("\n")
        assert '"new": [' in text
        assert '"nullscan_version"' in text
