"""Tests for the false-positive filter."""

from nullscan.models.findings import AccessKind, FindingSeverity, UnsafeAccessFinding
from nullscan.scanner.false_positive_filter import filter_false_positives
from nullscan.scanner.scope_tracker import compute_block_extents


def _finding(name: str, line: int = 1) -> UnsafeAccessFinding:
    return UnsafeAccessFinding(
        file="a.js",
        line=line,
        binding_name=name,
        access_kind=AccessKind.MEMBER_ACCESS,
        severity=FindingSeverity.HIGH,
    )


class TestReservedNames:
    """Runtime globals and underscore names are never reported."""

    def test_globals_dropped(self):
        findings = [_finding("console"), _finding("window"), _finding("process")]
        assert filter_false_positives(findings, ["x"]) == []

    def test_underscore_dropped(self):
        assert filter_false_positives([_finding("_cache")], ["x"]) == []

    def test_ordinary_name_kept(self):
        findings = [_finding("user")]
        assert filter_false_positives(findings, ["user.name;"]) == findings


class TestTryBlocks:
    """Findings lexically inside a try block are dropped."""

    def test_inside_try(self):
        lines = ["try {", "  user.name;", "} catch (e) {}", "user.name;"]
        ends = compute_block_extents(lines)
        kept = filter_false_positives([_finding("user", 2), _finding("user", 4)], lines, ends)
        assert [f.line for f in kept] == [4]

    def test_unclosed_try_encloses(self):
        lines = ["try {", "  user.name;"]
        assert filter_false_positives([_finding("user", 2)], lines, {}) == []

    def test_closed_try_before_outer_try(self):
        lines = [
            "try {",
            "  try {",
            "    a();",
            "  } catch (e) {}",
            "  user.name;",
            "} catch (e) {}",
        ]
        ends = compute_block_extents(lines)
        assert filter_false_positives([_finding("user", 5)], lines, ends) == []

    def test_only_removes(self):
        findings = [_finding("user", 1), _finding("order", 1)]
        kept = filter_false_positives(findings, ["user.a; order.b;"])
        assert kept == findings
