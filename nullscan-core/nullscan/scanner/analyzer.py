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

"""JavaScript/TypeScript null-access analyzer: per-file pipeline.

Each file gets its own AnalysisContext; nothing survives between files.

  1. classification pass  - ScopeTracker + BindingClassifier build the
                            risky-binding table and the block extents
  2. finding pass         - generate_findings re-walks the file with its
                            own tracker, consulting per-name safe zones
  3. filtering            - filter_false_positives drops known-safe idioms
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Optional

from nullscan.models.findings import Binding, UnsafeAccessFinding
from nullscan.models.rules import SourceRuleSet
from nullscan.policy.rule_engine import load_source_rules
from nullscan.scanner.binding_classifier import BindingClassifier
from nullscan.scanner.false_positive_filter import filter_false_positives
from nullscan.scanner.finding_generator import generate_findings
from nullscan.scanner.js_source import is_comment_line, read_source_lines, strip_js_comments
from nullscan.scanner.scope_tracker import ScopeTracker

logger = logging.getLogger(__name__)


class AnalysisContext:
    """Everything one file's analysis needs, owned by that analysis."""

    def __init__(
        self,
        file: str,
        lines: list[str],
        rules: SourceRuleSet,
        framework_signatures: Optional[list[list[str]]] = None,
    ) -> None:
        self.file = file
        self.lines = lines
        self.rules = rules
        self.classifier = BindingClassifier(rules, framework_signatures)
        self.scope = ScopeTracker()
        self.block_ends: dict[int, int] = {}
        # every risky binding in declaration order, including shadowed ones
        self.declared: list[Binding] = []

    @property
    def bindings(self) -> dict[tuple[str, int], Binding]:
        return self.scope.bindings

    @property
    def warnings(self) -> list[str]:
        return self.scope.warnings

    def classify(self) -> dict[tuple[str, int], Binding]:
        """First pass: record risky bindings at the depth they are declared."""
        for line_number, raw in enumerate(self.lines, start=1):
            depth = self.scope.process_line(raw, line_number)
            if is_comment_line(raw):
                continue
            code = strip_js_comments(raw)
            for binding in self.classifier.classify(code, line_number, depth, self.lines):
                self.scope.add_binding(binding)
                self.declared.append(binding)
        self.block_ends = self.scope.block_ends
        return self.bindings

    def run(self) -> list[UnsafeAccessFinding]:
        """Run both passes and the filter; return the surviving findings."""
        self.classify()
        findings = generate_findings(self.file, self.lines, self.declared, self.block_ends)
        findings = filter_false_positives(findings, self.lines, self.block_ends)
        if self.warnings:
            logger.debug("%s: %d scope warning(s)", self.file, len(self.warnings))
        return findings


def analyze_source(
    source: str,
    relative_name: str = "<source>",
    rules: Optional[SourceRuleSet] = None,
    framework_signatures: Optional[list[list[str]]] = None,
) -> list[UnsafeAccessFinding]:
    """Analyze JS/TS source text and return its unsafe-access findings."""
    lines = source.replace("\r\n", "\n").replace("\r", "\n").split("\n")
    if lines and lines[-1] == "":
        lines.pop()
    context = AnalysisContext(
        relative_name,
        lines,
        rules if rules is not None else load_source_rules(),
        framework_signatures,
    )
    return context.run()


def analyze_file(
    file_path: Path,
    relative_name: str,
    rules: Optional[SourceRuleSet] = None,
    framework_signatures: Optional[list[list[str]]] = None,
) -> tuple[list[UnsafeAccessFinding], Optional[str]]:
    """Analyze one file.

    Returns:
        (findings, error) where error is None on success. A read error is
        logged and returned; it never raises.
    """
    try:
        lines = read_source_lines(file_path)
    except OSError as e:
        logger.warning("Could not read %s: %s", file_path, e)
        return [], str(e)

    context = AnalysisContext(
        relative_name,
        lines,
        rules if rules is not None else load_source_rules(),
        framework_signatures,
    )
    return context.run(), None


def scan_files(
    root: Path,
    files: list[str],
    rules: Optional[SourceRuleSet] = None,
    framework_signatures: Optional[list[list[str]]] = None,
) -> list[tuple[str, list[UnsafeAccessFinding], Optional[str]]]:
    """Analyze root-relative files one by one.

    Returns one (file, findings, error) tuple per file, in input order.
    """
    rules = rules if rules is not None else load_source_rules()
    results = []
    for rel in files:
        path = Path(rel)
        if not path.is_absolute():
            path = root / path
        findings, error = analyze_file(path, rel, rules, framework_signatures)
        results.append((rel, findings, error))
    return results
