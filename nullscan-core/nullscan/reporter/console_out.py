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

"""Rich terminal output for scan reports and ledger commands.

The report reads top-down the way a reviewer works through it:
  1. New findings, with a suggested fix for each
  2. Drift: approvals that need a human decision
  3. Whitelisted findings (verbose only)
"""

from __future__ import annotations

from collections import defaultdict
from typing import Any

from rich.console import Console
from rich.markup import escape
from rich.panel import Panel
from rich.table import Table
from rich.text import Text

from nullscan.ledger.sync import SyncResult
from nullscan.models.findings import FindingSeverity, UnsafeAccessFinding
from nullscan.models.ledger import Ledger
from nullscan.models.report import DriftItem, DriftState, ScanReport, ValidationResult
from nullscan.scanner.fix_suggestions import get_fix_for_drift
from nullscan.scanner.framework_detector import FrameworkMatch


def _make_console() -> Console:
    """Console with soft wrap. No fixed width; uses live terminal size."""
    return Console(soft_wrap=True)


console = _make_console()


def _safe_print(*args: Any, **kwargs: Any) -> None:
    """Print without cropping long source lines."""
    kwargs.setdefault("crop", False)
    kwargs.setdefault("overflow", "fold")
    console.print(*args, **kwargs)


# ── Verdict icons ──

ICON_PASS = "[bold green][OK][/bold green]"
ICON_WARN = "[bold yellow][WARN][/bold yellow]"
ICON_DANGER = "[bold red][ALERT][/bold red]"
ICON_INFO = "[bold blue][INFO][/bold blue]"

WHITELIST_HINT = (
    "To approve a finding that cannot be absent, add above the line:\n"
    "  // @validation-ignore null-access\n"
    "  // @reason: <why the value is always present>\n"
    "  // @dependency: <function>() at line <N> [in <file>]\n"
    "then run [white]nullscan whitelist sync[/white]."
)


def _level_icon(finding: UnsafeAccessFinding) -> str:
    return ICON_DANGER if finding.level == "error" else ICON_WARN


def _state_style(state: DriftState) -> str:
    return {
        DriftState.VALID: "green",
        DriftState.DRIFTED: "yellow",
        DriftState.BROKEN: "red",
    }.get(state, "dim")


def print_scan_header(report: ScanReport) -> None:
    s = report.summary
    _safe_print(
        f"\n[bold cyan]nullscan[/bold cyan] [dim]{escape(report.scan_target)}[/dim]\n"
        f"[dim]{s.files_scanned} file(s) | {s.new} new | {s.whitelisted} whitelisted | "
        f"{s.drift} drift | {s.file_errors} unreadable[/dim]"
    )


def print_new_findings(findings: list[UnsafeAccessFinding]) -> None:
    """Print new findings grouped by file."""
    if not findings:
        _safe_print(f"\n  {ICON_PASS}  No new unsafe accesses.")
        return

    by_file: dict[str, list[UnsafeAccessFinding]] = defaultdict(list)
    for f in findings:
        by_file[f.file].append(f)

    _safe_print(f"\n[bold]New findings ({len(findings)})[/bold]")
    for file in sorted(by_file):
        _safe_print(f"\n  [bold white]{escape(file)}[/bold white]")
        for f in by_file[file]:
            severity_style = "red" if f.severity == FindingSeverity.HIGH else "yellow"
            _safe_print(
                f"    {_level_icon(f)} line {f.line}: [{severity_style}]{f.access_kind.value}[/{severity_style}] "
                f"of [bold]{escape(f.binding_name)}[/bold] [dim]({escape(f.reason)}, line {f.binding_line})[/dim]"
            )
            _safe_print(Text(f"        {f.source_line}", style="dim"))
            if f.suggested_fix:
                _safe_print(f"        [cyan]Fix:[/cyan] {escape(f.suggested_fix)}")


def print_drift(items: list[DriftItem]) -> None:
    """Print approvals whose code no longer matches."""
    if not items:
        return

    body_lines = []
    for item in items:
        style = _state_style(item.state)
        body_lines.append(
            f"[{style}]{item.state.value.upper()}[/{style}] {escape(item.entry_id)} "
            f"at {escape(item.file)}:{item.line}: {escape(item.reason)}"
        )
        for issue in item.issues:
            if issue.message and issue.message != item.reason:
                body_lines.append(f"    [dim]{escape(issue.message)}[/dim]")
            if issue.expected is not None and issue.actual is not None:
                body_lines.append(f"    [dim]approved:[/dim] {escape(issue.expected)}")
                body_lines.append(f"    [dim]current: [/dim] {escape(issue.actual)}")
        fix = get_fix_for_drift(item)
        if fix:
            body_lines.append(f"    [cyan]Next:[/cyan] {escape(fix)}")

    _safe_print(
        Panel(
            "\n".join(body_lines),
            border_style="yellow",
            title=f"[bold yellow]Drift ({len(items)})[/bold yellow]",
            expand=True,
            safe_box=True,
        )
    )


def print_whitelisted(report: ScanReport) -> None:
    if not report.whitelisted:
        return
    table = Table(show_header=True, header_style="bold green", border_style="dim", expand=True)
    table.add_column("Entry", style="green", min_width=8)
    table.add_column("File", style="white", ratio=2, overflow="fold")
    table.add_column("Line", style="dim", justify="right", min_width=4)
    table.add_column("Binding", style="cyan", min_width=6)
    for item in report.whitelisted:
        f = item.finding
        table.add_row(item.entry_id, f.file, str(f.line), f.binding_name)
    _safe_print("\n[bold dim]Whitelisted findings (--verbose):[/bold dim]")
    _safe_print(table)


def print_report(report: ScanReport, verbose: bool = False) -> None:
    """Print the full human-readable report."""
    print_scan_header(report)

    for error in report.errors:
        _safe_print(f"  {ICON_WARN}  Could not read {escape(error.file)}: {escape(error.error)}")

    print_new_findings(report.new)
    print_drift(report.drift)
    if verbose:
        print_whitelisted(report)

    if report.new:
        _safe_print(f"\n[dim]{WHITELIST_HINT}[/dim]")

    if report.should_fail:
        _safe_print(f"\n  {ICON_DANGER}  [bold red]Scan failed[/bold red]")
    else:
        _safe_print(f"\n  {ICON_PASS}  [bold green]Scan passed[/bold green]")


def print_validation_results(results: list[ValidationResult]) -> None:
    """Print per-entry drift verdicts."""
    if not results:
        _safe_print(f"  {ICON_INFO}  The ledger has no entries.")
        return

    table = Table(show_header=True, header_style="bold", border_style="dim", expand=True)
    table.add_column("Entry", min_width=8)
    table.add_column("Location", ratio=2, overflow="fold")
    table.add_column("State", min_width=8)
    table.add_column("Reason", ratio=2, overflow="fold")
    for r in results:
        style = _state_style(r.state)
        reason = r.reason or ("; ".join(r.warnings) if r.warnings else "")
        table.add_row(r.entry_id, f"{r.file}:{r.line}", Text(r.state.value, style=style), reason)
    _safe_print(table)

    passed = all(r.is_valid for r in results)
    if passed:
        _safe_print(f"  {ICON_PASS}  [bold green]All {len(results)} entries are valid[/bold green]")
    else:
        failed = sum(1 for r in results if not r.is_valid)
        _safe_print(f"  {ICON_DANGER}  [bold red]{failed} of {len(results)} entries need attention[/bold red]")


def print_ledger_entries(ledger: Ledger) -> None:
    if not ledger.entries:
        _safe_print(f"  {ICON_INFO}  The ledger has no entries.")
        return
    table = Table(show_header=True, header_style="bold", border_style="dim", expand=True)
    table.add_column("Entry", min_width=8)
    table.add_column("Location", ratio=2, overflow="fold")
    table.add_column("Code", ratio=3, overflow="fold")
    table.add_column("Reason", ratio=2, overflow="fold")
    table.add_column("Deps", justify="right")
    table.add_column("Validated", style="dim")
    for e in ledger.entries:
        table.add_row(
            e.id,
            e.location,
            Text(e.approved_code_snapshot, style="dim"),
            e.reason,
            str(len(e.dependencies)),
            e.last_validated_date or "-",
        )
    _safe_print(table)
    counts = ", ".join(f"{k}: {v}" for k, v in sorted(ledger.categories.items()))
    if counts:
        _safe_print(f"[dim]{escape(counts)}[/dim]")


def print_frameworks(ledger: Ledger) -> None:
    if not ledger.frameworks:
        _safe_print(f"  {ICON_INFO}  No framework patterns configured.")
        return
    for name in sorted(ledger.frameworks):
        p = ledger.frameworks[name]
        status = "[green]enabled[/green]" if p.enabled else "[dim]disabled[/dim]"
        sigs = " | ".join("(" + ", ".join(s) + ")" for s in p.signature_list)
        _safe_print(f"  [bold]{escape(name)}[/bold] {status} [dim]{escape(p.id)}[/dim]")
        _safe_print(f"      {escape(sigs)}")
        _safe_print(
            f"      [dim]{p.stats.functions_matched} function(s) in "
            f"{p.stats.files_affected} file(s), verified {p.verified_date}[/dim]"
        )


def print_framework_matches(name: str, matches: list[FrameworkMatch], suggest: bool) -> None:
    if not matches:
        _safe_print(f"  {ICON_INFO}  No {escape(name)} handlers found.")
        return
    _safe_print(f"\n[bold]{escape(name)}[/bold]: {len(matches)} matching function(s)")
    for m in matches:
        label = m.function or "<anonymous>"
        _safe_print(f"  {escape(m.file)}:{m.line}  {escape(label)}({escape(', '.join(m.params))})")
    if suggest:
        _safe_print(
            f"\n  {ICON_INFO}  Run [white]nullscan frameworks enable {escape(name)}[/white] "
            "to stop flagging these parameters."
        )


def print_sync_result(result: SyncResult) -> None:
    for entry_id in result.added:
        _safe_print(f"  {ICON_PASS}  Added {escape(entry_id)}")
    for location in result.skipped:
        _safe_print(f"  [dim]Already approved: {escape(location)}[/dim]")
    for error in result.errors:
        _safe_print(f"  {ICON_WARN}  {escape(error)}")
    if not (result.added or result.skipped or result.errors):
        _safe_print(f"  {ICON_INFO}  No suppression markers found.")


def print_error(message: str) -> None:
    _safe_print(f"[red]Error: {escape(message)}[/red]")
