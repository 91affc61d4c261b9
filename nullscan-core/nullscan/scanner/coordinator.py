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

"""File walker: discovers source files to scan using git or directory fallback.

Primary strategy: git ls-files (if .git/ exists)
Fallback: recursive directory walk with .nullscanignore support
"""

from __future__ import annotations

import logging
import subprocess
from pathlib import Path
from typing import Iterable, Optional

logger = logging.getLogger(__name__)

# Default patterns to ignore when using directory walk fallback
DEFAULT_IGNORE_PATTERNS = {
    ".git",
    ".hg",
    ".svn",
    "node_modules",
    "bower_components",
    "dist",
    "build",
    "coverage",
    ".next",
    ".nuxt",
    ".cache",
    "*.min.js",
    "*.bundle.js",
    "*.map",
    # nullscan's own output files
    "nullscan_report.json",
    ".nullscan-whitelist.json",
}

# File extensions analyzed by default
JS_EXTENSIONS = {".js", ".mjs", ".cjs", ".jsx", ".ts", ".tsx"}

IGNORE_FILENAME = ".nullscanignore"


def _load_ignore_patterns(target_dir: Path, extra: Iterable[str] = ()) -> set[str]:
    """Load .nullscanignore patterns from the target directory."""
    ignore_file = target_dir / IGNORE_FILENAME
    patterns = set(DEFAULT_IGNORE_PATTERNS)
    patterns.update(extra)

    if ignore_file.exists():
        for line in ignore_file.read_text(encoding="utf-8").splitlines():
            line = line.strip()
            if line and not line.startswith("#"):
                patterns.add(line)

    return patterns


def _should_ignore(path: Path, ignore_patterns: set[str]) -> bool:
    """Check if a path matches any ignore pattern."""
    for pattern in ignore_patterns:
        if pattern.startswith("*"):
            # Glob-style suffix matching
            suffix = pattern.lstrip("*")
            if path.name.endswith(suffix):
                return True
        elif path.name == pattern or pattern in path.parts:
            return True
    return False


def get_files_git(target_dir: Path) -> list[Path] | None:
    """Get tracked and untracked-but-not-ignored files using git ls-files.

    Returns None if git is not available or target_dir is not a git repo.
    """
    try:
        result = subprocess.run(
            ["git", "ls-files", "--cached", "--others", "--exclude-standard"],
            cwd=str(target_dir),
            capture_output=True,
            text=True,
            timeout=30,
        )
    except FileNotFoundError:
        logger.debug("git not found in PATH")
        return None
    except subprocess.TimeoutExpired:
        logger.warning("git ls-files timed out")
        return None

    if result.returncode != 0:
        logger.debug("git ls-files failed: %s", result.stderr)
        return None

    return sorted(Path(line) for line in result.stdout.splitlines() if line)


def get_files_directory(target_dir: Path, extra_ignore: Iterable[str] = ()) -> list[Path]:
    """Get files via recursive directory walk with .nullscanignore.

    Fallback when git is not available.
    """
    ignore_patterns = _load_ignore_patterns(target_dir, extra_ignore)
    files = []

    for item in sorted(target_dir.rglob("*")):
        if item.is_file():
            rel_path = item.relative_to(target_dir)
            if not _should_ignore(rel_path, ignore_patterns):
                files.append(rel_path)

    return sorted(files)


def get_source_files(all_files: list[Path], extensions: Optional[Iterable[str]] = None) -> list[Path]:
    """Filter to analyzable source files."""
    allowed = set(extensions) if extensions else JS_EXTENSIONS
    return [f for f in all_files if f.suffix in allowed]


def discover_files(
    target_dir: Path,
    extra_ignore: Iterable[str] = (),
) -> tuple[list[Path], str]:
    """Discover files under target_dir, relative to it.

    Returns:
        tuple of (files, manifest_source) where manifest_source is
        "git" or "directory".
    """
    target_dir = target_dir.resolve()

    if not target_dir.exists():
        raise FileNotFoundError(f"Target directory does not exist: {target_dir}")

    if not target_dir.is_dir():
        raise NotADirectoryError(f"Target path is not a directory: {target_dir}")

    extra_ignore = list(extra_ignore)

    # Try git first
    if (target_dir / ".git").exists():
        files = get_files_git(target_dir)
        if files is not None:
            ignore_patterns = set(DEFAULT_IGNORE_PATTERNS).union(extra_ignore)
            files = [f for f in files if not _should_ignore(f, ignore_patterns)]
            logger.info("Using git-derived file list (%d files)", len(files))
            return files, "git"

    # Fallback to directory walk
    files = get_files_directory(target_dir, extra_ignore)
    logger.info("Using directory walk file list (%d files)", len(files))
    return files, "directory"


def collect_targets(
    root: Path,
    paths: Optional[list[str]] = None,
    extensions: Optional[Iterable[str]] = None,
    extra_ignore: Iterable[str] = (),
) -> list[str]:
    """Expand file and directory arguments into root-relative source paths.

    With no paths, the whole root is discovered. Files named explicitly are
    kept even when their extension is not in the default set. Paths outside
    root are kept as given (resolved).
    """
    root = root.resolve()
    targets: list[str] = []

    for raw in paths or [str(root)]:
        path = Path(raw)
        if not path.is_absolute():
            path = (Path.cwd() / path).resolve()
        if path.is_dir():
            files, _ = discover_files(path, extra_ignore)
            for f in get_source_files(files, extensions):
                targets.append(_relative_to_root(path / f, root))
        else:
            targets.append(_relative_to_root(path, root))

    # Keep first occurrence, preserve order
    return list(dict.fromkeys(targets))


def _relative_to_root(path: Path, root: Path) -> str:
    try:
        return path.resolve().relative_to(root).as_posix()
    except ValueError:
        return path.resolve().as_posix()
