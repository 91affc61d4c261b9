"""Integration tests for the nullscan CLI.

Tests end-to-end scan, whitelist and framework workflows in temporary
project copies.
"""

import json
import shutil
from pathlib import Path

import pytest
from typer.testing import CliRunner

from nullscan import __version__
from nullscan.cli import app

runner = CliRunner()
FIXTURES = Path(__file__).parent / "fixtures"

SOURCE = """\
function render(user) {
  return user.name;
}
"""


@pytest.fixture
def project(tmp_path: Path) -> Path:
    (tmp_path / "app.js").write_text(SOURCE)
    return tmp_path


def _ledger(root: Path) -> dict:
    return json.loads((root / ".nullscan-whitelist.json").read_text())


class TestScan:
    """nullscan scan exit codes and outputs."""

    def test_clean_project_passes(self, tmp_path: Path):
        (tmp_path / "app.js").write_text("function render(user) {\n  return user?.name;\n}\n")
        result = runner.invoke(app, ["scan", "--root", str(tmp_path)])
        assert result.exit_code == 0

    def test_new_finding_fails(self, project: Path):
        result = runner.invoke(app, ["scan", "--root", str(project), "--quiet"])
        assert result.exit_code == 1

    def test_human_report(self, project: Path):
        result = runner.invoke(app, ["scan", "--root", str(project)])
        assert result.exit_code == 1
        assert "app.js" in result.output
        assert "user" in result.output

    def test_json_output(self, project: Path):
        result = runner.invoke(app, ["scan", "--root", str(project), "--json"])
        assert result.exit_code == 1
        data = json.loads(result.stdout)
        assert data["summary"]["new"] == 1
        assert data["new"][0]["binding_name"] == "user"
        assert data["new"][0]["access_kind"] == "member-access"

    def test_output_file(self, project: Path):
        out = project / "out" / "report.json"
        runner.invoke(app, ["scan", "--root", str(project), "--quiet", "--output", str(out)])
        assert json.loads(out.read_text())["summary"]["files_scanned"] == 1

    def test_warning_severity_passes(self, project: Path):
        result = runner.invoke(app, ["scan", "--root", str(project), "--quiet", "--default-severity", "warning"])
        assert result.exit_code == 0

    def test_config_file_severity(self, project: Path):
        (project / ".nullscan.yaml").write_text("default_severity: warning\n")
        result = runner.invoke(app, ["scan", "--root", str(project), "--quiet"])
        assert result.exit_code == 0

    def test_explicit_paths(self, project: Path):
        (project / "clean.js").write_text("const a = 1;\n")
        result = runner.invoke(app, ["scan", str(project / "clean.js"), "--root", str(project), "--quiet"])
        assert result.exit_code == 0

    def test_fixture_widget(self, tmp_path: Path):
        target = tmp_path / "widget"
        shutil.copytree(FIXTURES / "browser_widget", target)
        result = runner.invoke(app, ["scan", "--root", str(target), "--json"])
        data = json.loads(result.stdout)
        assert [(f["line"], f["binding_name"]) for f in data["new"]] == [(4, "root")]

    def test_bad_root(self, tmp_path: Path):
        result = runner.invoke(app, ["scan", "--root", str(tmp_path / "nope")])
        assert result.exit_code == 1


class TestWhitelist:
    """Approve, validate, drift and remove."""

    def test_add_then_scan_passes(self, project: Path):
        result = runner.invoke(app, [
            "whitelist", "add", str(project / "app.js"), "2",
            "--reason", "render is only called with a user",
            "--root", str(project),
        ])
        assert result.exit_code == 0
        assert _ledger(project)["entries"][0]["id"] == "null-access-001"
        assert runner.invoke(app, ["scan", "--root", str(project), "--quiet"]).exit_code == 0

    def test_drift_fails_scan_and_validate(self, project: Path):
        runner.invoke(app, ["whitelist", "add", str(project / "app.js"), "2", "--reason", "x", "--root", str(project)])
        (project / "app.js").write_text(SOURCE.replace("user.name", "user.title"))

        scan = runner.invoke(app, ["scan", "--root", str(project), "--json"])
        assert scan.exit_code == 1
        assert json.loads(scan.stdout)["drift"][0]["state"] == "drifted"

        validate = runner.invoke(app, ["whitelist", "validate", "--root", str(project)])
        assert validate.exit_code == 1

        reapproved = runner.invoke(app, ["whitelist", "reapprove", "null-access-001", "--root", str(project)])
        assert reapproved.exit_code == 0
        assert runner.invoke(app, ["whitelist", "validate", "--root", str(project)]).exit_code == 0

    def test_validate_json_and_touch(self, project: Path):
        runner.invoke(app, ["whitelist", "add", str(project / "app.js"), "2", "--reason", "x", "--root", str(project)])
        result = runner.invoke(app, ["whitelist", "validate", "--root", str(project), "--json", "--touch"])
        assert result.exit_code == 0
        assert json.loads(result.stdout)[0]["state"] == "valid"
        assert _ledger(project)["entries"][0]["last_validated_date"]

    def test_add_with_dependency(self, project: Path):
        (project / "threads.js").write_text(
            "// @validation-dependency null-access-001\n"
            "function initThreads(threads) {\n"
            "  return threads.filter(t => t.user);\n"
            "}\n"
        )
        result = runner.invoke(app, [
            "whitelist", "add", str(project / "app.js"), "2", "--reason", "x",
            "--dependency", "initThreads:2:threads.js", "--root", str(project),
        ])
        assert result.exit_code == 0
        dep = _ledger(project)["entries"][0]["dependencies"][0]
        assert dep["target_file"] == "threads.js"
        assert runner.invoke(app, ["whitelist", "validate", "--root", str(project)]).exit_code == 0

    def test_bad_dependency_syntax(self, project: Path):
        result = runner.invoke(app, [
            "whitelist", "add", str(project / "app.js"), "2", "--reason", "x",
            "--dependency", "initThreads", "--root", str(project),
        ])
        assert result.exit_code != 0

    def test_duplicate_add_exits_1(self, project: Path):
        args = ["whitelist", "add", str(project / "app.js"), "2", "--reason", "x", "--root", str(project)]
        runner.invoke(app, args)
        assert runner.invoke(app, args).exit_code == 1

    def test_write_failure_exits_2(self, project: Path):
        (project / "blocker").write_text("")
        result = runner.invoke(app, [
            "whitelist", "add", str(project / "app.js"), "2", "--reason", "x",
            "--root", str(project), "--ledger", str(project / "blocker" / "ledger.json"),
        ])
        assert result.exit_code == 2

    def test_remove(self, project: Path):
        runner.invoke(app, ["whitelist", "add", str(project / "app.js"), "2", "--reason", "x", "--root", str(project)])
        assert runner.invoke(app, ["whitelist", "remove", "null-access-001", "--root", str(project)]).exit_code == 0
        assert _ledger(project)["entries"] == []
        assert runner.invoke(app, ["whitelist", "remove", "null-access-001", "--root", str(project)]).exit_code == 1

    def test_list(self, project: Path):
        runner.invoke(app, ["whitelist", "add", str(project / "app.js"), "2", "--reason", "x", "--root", str(project)])
        result = runner.invoke(app, ["whitelist", "list", "--root", str(project), "--json"])
        assert result.exit_code == 0
        assert json.loads(result.stdout)["categories"] == {"null-access": 1}

    def test_sync(self, project: Path):
        (project / "app.js").write_text(
            "function render(user) {\n"
            "  // @validation-ignore null-access\n"
            "  // @reason: render is only called with a user\n"
            "  return user.name;\n"
            "}\n"
        )
        result = runner.invoke(app, ["whitelist", "sync", "--root", str(project)])
        assert result.exit_code == 0
        assert _ledger(project)["entries"][0]["line"] == 4
        assert runner.invoke(app, ["scan", "--root", str(project), "--quiet", "--enforce-comments"]).exit_code == 0


class TestFrameworks:
    """Framework detection and enabling."""

    @pytest.fixture
    def express(self, tmp_path: Path) -> Path:
        target = tmp_path / "express_app"
        shutil.copytree(FIXTURES / "express_app", target)
        return target

    def test_detect_suggests(self, express: Path):
        result = runner.invoke(app, ["frameworks", "detect", "--root", str(express)])
        assert result.exit_code == 0
        assert "frameworks enable express" in result.output

    def test_enable_silences_handlers(self, express: Path):
        assert runner.invoke(app, ["scan", "--root", str(express), "--quiet"]).exit_code == 1
        enabled = runner.invoke(app, ["frameworks", "enable", "express", "--root", str(express)])
        assert enabled.exit_code == 0
        pattern = _ledger(express)["frameworks"]["express"]
        assert pattern["id"] == "framework-express-001"
        assert pattern["stats"]["functions_matched"] == 3
        assert runner.invoke(app, ["scan", "--root", str(express), "--quiet"]).exit_code == 0

    def test_disable_and_remove(self, express: Path):
        runner.invoke(app, ["frameworks", "enable", "express", "--root", str(express)])
        assert runner.invoke(app, ["frameworks", "disable", "express", "--root", str(express)]).exit_code == 0
        assert _ledger(express)["frameworks"]["express"]["enabled"] is False
        assert runner.invoke(app, ["scan", "--root", str(express), "--quiet"]).exit_code == 1
        assert runner.invoke(app, ["frameworks", "remove", "express", "--root", str(express)]).exit_code == 0
        assert _ledger(express)["frameworks"] == {}

    def test_custom_signature(self, tmp_path: Path):
        (tmp_path / "h.js").write_text("function handle(ctx, done) {\n  ctx.body = done.value;\n}\n")
        result = runner.invoke(app, [
            "frameworks", "enable", "koa", "--signature", "ctx,done", "--root", str(tmp_path),
        ])
        assert result.exit_code == 0
        assert runner.invoke(app, ["scan", "--root", str(tmp_path), "--quiet"]).exit_code == 0

    def test_unknown_framework(self, tmp_path: Path):
        result = runner.invoke(app, ["frameworks", "enable", "koa", "--root", str(tmp_path)])
        assert result.exit_code == 1

    def test_list(self, express: Path):
        runner.invoke(app, ["frameworks", "enable", "express", "--root", str(express)])
        result = runner.invoke(app, ["frameworks", "list", "--root", str(express)])
        assert result.exit_code == 0
        assert "express" in result.output


def test_version():
    result = runner.invoke(app, ["version"])
    assert result.exit_code == 0
    assert __version__ in result.output
