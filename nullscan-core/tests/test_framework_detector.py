"""Tests for framework calling-convention detection."""

from pathlib import Path

from nullscan.scanner.framework_detector import (
    FRAMEWORK_PROMPT_THRESHOLD,
    KNOWN_FRAMEWORKS,
    detect_framework_usage,
    known_framework,
    should_suggest,
)

FIXTURES = Path(__file__).parent / "fixtures"
EXPRESS = KNOWN_FRAMEWORKS["express"]["signatures"]


class TestDetection:
    """Declarations are matched name for name against signatures."""

    def test_express_fixture(self):
        matches, unreadable = detect_framework_usage(FIXTURES / "express_app", ["routes.js"], EXPRESS)
        assert unreadable == []
        assert [(m.line, m.params) for m in matches] == [
            (4, ["req", "res"]),
            (8, ["req", "res", "next"]),
            (13, ["err", "req", "res", "next"]),
        ]
        assert matches[2].function == "errorHandler"

    def test_partial_signature_not_matched(self, tmp_path: Path):
        (tmp_path / "a.js").write_text("function handler(req, body) {\n}\n")
        matches, _ = detect_framework_usage(tmp_path, ["a.js"], EXPRESS)
        assert matches == []

    def test_unreadable_files_listed(self, tmp_path: Path):
        matches, unreadable = detect_framework_usage(tmp_path, ["gone.js"], EXPRESS)
        assert matches == []
        assert unreadable == ["gone.js"]

    def test_comments_skipped(self, tmp_path: Path):
        (tmp_path / "a.js").write_text("// function old(req, res) {\n")
        matches, _ = detect_framework_usage(tmp_path, ["a.js"], EXPRESS)
        assert matches == []


class TestSuggestion:
    """The CLI suggests enabling a pattern once it is used enough."""

    def test_threshold(self):
        matches, _ = detect_framework_usage(FIXTURES / "express_app", ["routes.js"], EXPRESS)
        assert len(matches) >= FRAMEWORK_PROMPT_THRESHOLD
        assert should_suggest(matches, already_enabled=False)
        assert not should_suggest(matches, already_enabled=True)
        assert not should_suggest(matches[:FRAMEWORK_PROMPT_THRESHOLD - 1], already_enabled=False)

    def test_catalogue(self):
        assert known_framework("express")["signatures"] == EXPRESS
        assert known_framework("koa") is None
