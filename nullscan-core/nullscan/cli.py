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

"""nullscan CLI: Typer entry point.

Commands:
- nullscan scan [PATHS]     Analyze files, merge with the ledger, report
- nullscan whitelist ...    Approve, list, validate and sync ledger entries
- nullscan frameworks ...   Detect and manage framework calling conventions
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import NoReturn, Optional

import typer

from nullscan import __version__
from nullscan.ledger.drift import DriftValidator, validate_all
from nullscan.ledger.store import LedgerError, LedgerWriteError, SuppressionLedger
from nullscan.ledger.sync import approve_location, reapprove, sync_from_markers
from nullscan.models.ledger import DependencyRef, FrameworkStats
from nullscan.models.rules import DefaultSeverity, ScanConfig
from nullscan.policy.config import load_config, resolve_ledger_path
from nullscan.policy.rule_engine import load_source_rules
from nullscan.reporter.assembler import assemble_report
from nullscan.reporter.console_out import (
    console,
    print_error,
    print_framework_matches,
    print_frameworks,
    print_ledger_entries,
    print_report,
    print_sync_result,
    print_validation_results,
)
from nullscan.reporter.json_out import to_canonical_json, write_report
from nullscan.scanner.analyzer import scan_files
from nullscan.scanner.coordinator import collect_targets
from nullscan.scanner.framework_detector import (
    KNOWN_FRAMEWORKS,
    detect_framework_usage,
    known_framework,
    should_suggest,
)

app = typer.Typer(
    name="nullscan",
    help=(
        "nullscan: static detection of unguarded null/undefined access in JavaScript. "
        "Run 'nullscan <command> --help' for flags."
    ),
    add_completion=False,
)
whitelist_app = typer.Typer(help="Manage approved findings in the suppression ledger.")
frameworks_app = typer.Typer(help="Detect and manage framework calling conventions.")
app.add_typer(whitelist_app, name="whitelist")
app.add_typer(frameworks_app, name="frameworks")

logger = logging.getLogger("nullscan")


def _configure_logging(verbose: bool = False, quiet: bool = False) -> None:
    if quiet:
        logging.basicConfig(level=logging.ERROR)
    elif verbose:
        logging.basicConfig(level=logging.DEBUG)
    else:
        logging.basicConfig(level=logging.WARNING)


def _resolve_root(root: Optional[str]) -> Path:
    target = Path(root or ".").resolve()
    if not target.is_dir():
        print_error(f"Not a directory: {target}")
        raise typer.Exit(code=1)
    return target


def _open_ledger(root: Path, config: ScanConfig, ledger: Optional[str]) -> SuppressionLedger:
    return SuppressionLedger.load(resolve_ledger_path(root, config, ledger))


def _ledger_failure(e: LedgerError) -> NoReturn:
    """Print a ledger error and exit: 2 for a failed write, 1 otherwise."""
    print_error(str(e))
    if isinstance(e, LedgerWriteError):
        raise typer.Exit(code=2)
    raise typer.Exit(code=1)


def _parse_dependency(raw: str) -> DependencyRef:
    """Parse `function:line[:file]`."""
    parts = raw.split(":", 2)
    if len(parts) < 2 or not parts[1].strip().isdigit():
        raise typer.BadParameter(f"Expected function:line[:file], got {raw!r}", param_hint="--dependency")
    file = parts[2].strip() if len(parts) == 3 and parts[2].strip() else None
    return DependencyRef(function=parts[0].strip(), line=int(parts[1]), file=file)


def _relative_file(root: Path, file: str) -> str:
    """Ledger key for a file argument: root-relative when under root."""
    path = Path(file)
    if not path.is_absolute():
        path = Path.cwd() / path
    try:
        return path.resolve().relative_to(root).as_posix()
    except ValueError:
        return file


# ── scan ──


@app.command()
def scan(
    paths: Optional[list[str]] = typer.Argument(None, help="Files or directories to scan (default: the root)"),
    root: Optional[str] = typer.Option(None, "--root", help="Project root; ledger paths are relative to it (default: .)"),
    ledger: Optional[str] = typer.Option(None, "--ledger", help="Ledger file (default: <root>/.nullscan-whitelist.json)"),
    output_json: bool = typer.Option(False, "--json", help="Output the report as JSON to stdout (for CI)"),
    output: Optional[str] = typer.Option(None, "--output", "-o", help="Also write the JSON report to a file"),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Show whitelisted findings and debug logs"),
    quiet: bool = typer.Option(False, "--quiet", "-q", help="Suppress all output except errors"),
    default_severity: Optional[DefaultSeverity] = typer.Option(
        None, "--default-severity", help="Report level for high-severity findings",
    ),
    enforce_comments: Optional[bool] = typer.Option(
        None, "--enforce-comments/--no-enforce-comments",
        help="Require a @validation-ignore marker above every approved line",
    ),
) -> None:
    """Scan JavaScript/TypeScript files for unguarded null access.

    Exits 1 when a new error-level finding or any drift is reported,
    2 when the ledger cannot be written.
    """
    _configure_logging(verbose, quiet)
    target_root = _resolve_root(root)

    config = load_config(target_root, {
        "default_severity": default_severity,
        "enforce_suppression_comments": enforce_comments,
        "ledger": ledger,
    })

    # ── Step 1: Discover files ──
    files = collect_targets(target_root, paths, config.extensions, config.ignore)
    logger.debug("Scanning %d file(s) under %s", len(files), target_root)

    # ── Step 2: Analyze ──
    suppression = _open_ledger(target_root, config, None)
    results = scan_files(
        target_root,
        files,
        load_source_rules(),
        suppression.enabled_signatures(),
    )

    # ── Step 3: Merge with the ledger ──
    validator = DriftValidator(target_root, config.enforce_suppression_comments)
    report = assemble_report(
        results,
        suppression,
        validator,
        default_severity=config.default_severity,
        scan_target=str(target_root),
    )

    # ── Step 4: Output ──
    if output:
        write_report(report, Path(output))
    if output_json:
        print(to_canonical_json(report), end="")
    elif not quiet:
        print_report(report, verbose=verbose)

    if report.should_fail:
        raise typer.Exit(code=1)


# ── whitelist ──


@whitelist_app.command("list")
def whitelist_list(
    root: Optional[str] = typer.Option(None, "--root", help="Project root (default: .)"),
    ledger: Optional[str] = typer.Option(None, "--ledger", help="Ledger file"),
    output_json: bool = typer.Option(False, "--json", help="Output the ledger as JSON"),
) -> None:
    """List approved findings."""
    target_root = _resolve_root(root)
    suppression = _open_ledger(target_root, load_config(target_root), ledger)
    if output_json:
        print(to_canonical_json(suppression.data), end="")
    else:
        print_ledger_entries(suppression.data)


@whitelist_app.command("add")
def whitelist_add(
    file: str = typer.Argument(..., help="File containing the finding"),
    line: int = typer.Argument(..., help="Line of the finding (1-based)"),
    reason: str = typer.Option(..., "--reason", help="Why the value can never be absent here"),
    category: str = typer.Option("null-access", "--category", help="Finding category"),
    dependency: Optional[list[str]] = typer.Option(
        None, "--dependency", help="Function the approval relies on: function:line[:file] (repeatable)",
    ),
    entry_id: Optional[str] = typer.Option(None, "--id", help="Entry id (default: next <category>-NNN)"),
    root: Optional[str] = typer.Option(None, "--root", help="Project root (default: .)"),
    ledger: Optional[str] = typer.Option(None, "--ledger", help="Ledger file"),
) -> None:
    """Approve a finding at FILE:LINE."""
    _configure_logging()
    target_root = _resolve_root(root)
    suppression = _open_ledger(target_root, load_config(target_root), ledger)
    refs = [_parse_dependency(d) for d in dependency or []]
    rel = _relative_file(target_root, file)

    try:
        entry = approve_location(
            suppression, target_root, rel, line, reason,
            category=category, dependencies=refs, entry_id=entry_id,
        )
    except LedgerError as e:
        _ledger_failure(e)

    console.print(f"[green]Approved {entry.location} as {entry.id}[/green]")
    for dep in entry.dependencies:
        console.print(
            f"[dim]Add above {dep.target_function} in {dep.target_file}:{dep.target_line}:[/dim]\n"
            f"  // @validation-dependency {entry.id}"
        )


@whitelist_app.command("remove")
def whitelist_remove(
    entry_id: str = typer.Argument(..., help="Entry id to remove"),
    root: Optional[str] = typer.Option(None, "--root", help="Project root (default: .)"),
    ledger: Optional[str] = typer.Option(None, "--ledger", help="Ledger file"),
) -> None:
    """Remove an approved finding."""
    _configure_logging()
    target_root = _resolve_root(root)
    suppression = _open_ledger(target_root, load_config(target_root), ledger)
    try:
        removed = suppression.remove_entry(entry_id)
    except LedgerError as e:
        _ledger_failure(e)
    if not removed:
        print_error(f"No ledger entry {entry_id}")
        raise typer.Exit(code=1)
    console.print(f"[green]Removed {entry_id}[/green]")


@whitelist_app.command("reapprove")
def whitelist_reapprove(
    entry_id: str = typer.Argument(..., help="Entry id to refresh"),
    root: Optional[str] = typer.Option(None, "--root", help="Project root (default: .)"),
    ledger: Optional[str] = typer.Option(None, "--ledger", help="Ledger file"),
) -> None:
    """Refresh an entry's code snapshots after reviewing a drift."""
    _configure_logging()
    target_root = _resolve_root(root)
    suppression = _open_ledger(target_root, load_config(target_root), ledger)
    try:
        entry = reapprove(suppression, target_root, entry_id)
    except LedgerError as e:
        _ledger_failure(e)
    console.print(f"[green]Re-approved {entry.id} at {entry.location}[/green]")


@whitelist_app.command("validate")
def whitelist_validate(
    root: Optional[str] = typer.Option(None, "--root", help="Project root (default: .)"),
    ledger: Optional[str] = typer.Option(None, "--ledger", help="Ledger file"),
    touch: bool = typer.Option(False, "--touch", help="Record today's date on valid entries"),
    output_json: bool = typer.Option(False, "--json", help="Output results as JSON"),
    enforce_comments: Optional[bool] = typer.Option(
        None, "--enforce-comments/--no-enforce-comments",
        help="Require a @validation-ignore marker above every approved line",
    ),
) -> None:
    """Check every ledger entry for drift. Exits 1 if any entry is not valid."""
    _configure_logging()
    target_root = _resolve_root(root)
    config = load_config(target_root, {"enforce_suppression_comments": enforce_comments})
    suppression = _open_ledger(target_root, config, ledger)
    validator = DriftValidator(target_root, config.enforce_suppression_comments)

    try:
        results = validate_all(suppression, validator, touch=touch)
    except LedgerError as e:
        _ledger_failure(e)

    if output_json:
        print(to_canonical_json([r.model_dump(mode="json") for r in results]), end="")
    else:
        print_validation_results(results)

    if not all(r.is_valid for r in results):
        raise typer.Exit(code=1)


@whitelist_app.command("sync")
def whitelist_sync(
    paths: Optional[list[str]] = typer.Argument(None, help="Files or directories to read markers from"),
    root: Optional[str] = typer.Option(None, "--root", help="Project root (default: .)"),
    ledger: Optional[str] = typer.Option(None, "--ledger", help="Ledger file"),
) -> None:
    """Approve every location carrying a @validation-ignore marker."""
    _configure_logging()
    target_root = _resolve_root(root)
    config = load_config(target_root)
    suppression = _open_ledger(target_root, config, ledger)
    files = collect_targets(target_root, paths, config.extensions, config.ignore)

    try:
        result = sync_from_markers(suppression, target_root, files)
    except LedgerWriteError as e:
        _ledger_failure(e)

    print_sync_result(result)
    if result.errors:
        raise typer.Exit(code=1)


# ── frameworks ──


@frameworks_app.command("list")
def frameworks_list(
    root: Optional[str] = typer.Option(None, "--root", help="Project root (default: .)"),
    ledger: Optional[str] = typer.Option(None, "--ledger", help="Ledger file"),
) -> None:
    """Show configured framework patterns and the built-in catalogue."""
    target_root = _resolve_root(root)
    suppression = _open_ledger(target_root, load_config(target_root), ledger)
    print_frameworks(suppression.data)
    console.print(f"\n[dim]Built-in: {', '.join(sorted(KNOWN_FRAMEWORKS))}[/dim]")


@frameworks_app.command("detect")
def frameworks_detect(
    paths: Optional[list[str]] = typer.Argument(None, help="Files or directories to search"),
    name: str = typer.Option("express", "--name", help="Built-in framework to look for"),
    root: Optional[str] = typer.Option(None, "--root", help="Project root (default: .)"),
    ledger: Optional[str] = typer.Option(None, "--ledger", help="Ledger file"),
) -> None:
    """List functions whose parameters follow a framework's convention."""
    _configure_logging()
    framework = known_framework(name)
    if framework is None:
        print_error(f"Unknown framework {name}; built-in: {', '.join(sorted(KNOWN_FRAMEWORKS))}")
        raise typer.Exit(code=1)

    target_root = _resolve_root(root)
    config = load_config(target_root)
    suppression = _open_ledger(target_root, config, ledger)
    files = collect_targets(target_root, paths, config.extensions, config.ignore)

    matches, _ = detect_framework_usage(target_root, files, framework["signatures"])
    print_framework_matches(name, matches, should_suggest(matches, suppression.is_pattern_enabled(name)))


@frameworks_app.command("enable")
def frameworks_enable(
    name: str = typer.Argument(..., help="Framework name"),
    signature: Optional[list[str]] = typer.Option(
        None, "--signature", help="Comma-separated parameter names, for frameworks outside the catalogue (repeatable)",
    ),
    description: str = typer.Option("", "--description", help="What the convention covers"),
    root: Optional[str] = typer.Option(None, "--root", help="Project root (default: .)"),
    ledger: Optional[str] = typer.Option(None, "--ledger", help="Ledger file"),
) -> None:
    """Enable a framework pattern, creating it if needed."""
    _configure_logging()
    target_root = _resolve_root(root)
    config = load_config(target_root)
    suppression = _open_ledger(target_root, config, ledger)

    try:
        existing = suppression.data.frameworks.get(name)
        if existing is not None and not signature:
            suppression.set_pattern_enabled(name, True)
            console.print(f"[green]Enabled {existing.id}[/green]")
            return

        framework = known_framework(name)
        if signature:
            signatures = [[p.strip() for p in s.split(",") if p.strip()] for s in signature]
        elif framework is not None:
            signatures = framework["signatures"]
            description = description or framework["description"]
        else:
            print_error(f"Unknown framework {name}; pass --signature to define it")
            raise typer.Exit(code=1)

        files = collect_targets(target_root, None, config.extensions, config.ignore)
        matches, _ = detect_framework_usage(target_root, files, signatures)
        stats = FrameworkStats(
            functions_matched=len(matches),
            files_affected=len({m.file for m in matches}),
        )
        pattern_id = suppression.add_framework_pattern(name, signatures, description, stats)
    except LedgerError as e:
        _ledger_failure(e)

    console.print(
        f"[green]Enabled {pattern_id}[/green] [dim]({stats.functions_matched} function(s) "
        f"in {stats.files_affected} file(s))[/dim]"
    )


@frameworks_app.command("disable")
def frameworks_disable(
    name: str = typer.Argument(..., help="Framework name"),
    root: Optional[str] = typer.Option(None, "--root", help="Project root (default: .)"),
    ledger: Optional[str] = typer.Option(None, "--ledger", help="Ledger file"),
) -> None:
    """Disable a framework pattern without deleting it."""
    _configure_logging()
    target_root = _resolve_root(root)
    suppression = _open_ledger(target_root, load_config(target_root), ledger)
    try:
        suppression.set_pattern_enabled(name, False)
    except LedgerError as e:
        _ledger_failure(e)
    console.print(f"Disabled {name}")


@frameworks_app.command("remove")
def frameworks_remove(
    name: str = typer.Argument(..., help="Framework name"),
    root: Optional[str] = typer.Option(None, "--root", help="Project root (default: .)"),
    ledger: Optional[str] = typer.Option(None, "--ledger", help="Ledger file"),
) -> None:
    """Delete a framework pattern."""
    _configure_logging()
    target_root = _resolve_root(root)
    suppression = _open_ledger(target_root, load_config(target_root), ledger)
    try:
        removed = suppression.remove_framework_pattern(name)
    except LedgerError as e:
        _ledger_failure(e)
    if not removed:
        print_error(f"No framework pattern {name}")
        raise typer.Exit(code=1)
    console.print(f"Removed {name}")


@app.command()
def version() -> None:
    """Show the nullscan version."""
    console.print(f"nullscan v{__version__}")


if __name__ == "__main__":
    app()
