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

"""Suppression ledger: the persisted whitelist of approved findings.

Two independently keyed tables live in one JSON file:
- entries: approved findings, matched by exact file:line
- frameworks: bulk calling-convention exemptions, keyed by name

Every mutating call is its own durable write. The ledger has no locking;
callers running analyses in parallel must serialize writes.
"""

from __future__ import annotations

import json
import logging
import re
from pathlib import Path
from typing import Any, Optional

from pydantic import ValidationError

from nullscan.models.ledger import (
    FrameworkPatternEntry,
    FrameworkStats,
    Ledger,
    WhitelistEntry,
    today,
)
from nullscan.reporter.json_out import write_ledger

logger = logging.getLogger(__name__)

DEFAULT_LEDGER_NAME = ".nullscan-whitelist.json"


class LedgerError(Exception):
    """Base class for ledger failures."""


class DuplicateEntryError(LedgerError):
    """An entry with the same id or location already exists."""


class UnknownEntryError(LedgerError):
    """No entry or framework pattern with the requested key."""


class LedgerWriteError(LedgerError):
    """The ledger file could not be written."""

    def __init__(self, path: Path, cause: OSError) -> None:
        self.path = path
        self.cause = cause
        super().__init__(f"Could not write ledger {path}: {cause.strerror or cause}")


class SuppressionLedger:
    """In-memory view of the ledger file with write-through mutations."""

    def __init__(self, path: Path, data: Optional[Ledger] = None) -> None:
        self.path = path
        self.data = data if data is not None else Ledger()

    # ── Persistence ──

    @classmethod
    def load(cls, path: Path) -> "SuppressionLedger":
        """Return the persisted ledger, or an empty one if absent or corrupt."""
        if not path.exists():
            logger.debug("No ledger at %s, starting empty", path)
            return cls(path)
        try:
            raw = json.loads(path.read_text(encoding="utf-8"))
            return cls(path, Ledger.model_validate(raw))
        except (OSError, json.JSONDecodeError, ValidationError) as e:
            logger.warning("Ledger %s is unreadable, starting empty: %s", path, e)
            return cls(path)

    def save(self) -> None:
        """Recompute category counts and the last-updated stamp, then write."""
        counts: dict[str, int] = {}
        for entry in self.data.entries:
            counts[entry.category] = counts.get(entry.category, 0) + 1
        self.data.categories = counts
        self.data.last_updated = today()
        try:
            write_ledger(self.data, self.path)
        except OSError as e:
            raise LedgerWriteError(self.path, e) from e

    def _persist(self, previous: Ledger) -> None:
        """Save, restoring previous in memory if the write fails."""
        try:
            self.save()
        except LedgerWriteError:
            self.data = previous
            raise

    # ── Entries ──

    @property
    def entries(self) -> list[WhitelistEntry]:
        return self.data.entries

    def get_entry(self, entry_id: str) -> Optional[WhitelistEntry]:
        for entry in self.data.entries:
            if entry.id == entry_id:
                return entry
        return None

    def find_entry(self, file: str, line: int, category: Optional[str] = None) -> Optional[WhitelistEntry]:
        """Return the entry approved at file:line, if any."""
        for entry in self.data.entries:
            if entry.file == file and entry.line == line:
                if category is None or entry.category == category:
                    return entry
        return None

    def generate_id(self, category: str) -> str:
        """Next unused id in category: <category>-NNN (zero-padded)."""
        pattern = re.compile(rf"^{re.escape(category)}-(\d+)$")
        highest = 0
        for entry in self.data.entries:
            m = pattern.match(entry.id)
            if m:
                highest = max(highest, int(m.group(1)))
        return f"{category}-{highest + 1:03d}"

    def add_entry(self, entry: WhitelistEntry) -> str:
        """Append an entry and persist it.

        An empty id is replaced by generate_id(entry.category) on a copy;
        the caller's entry is never modified. Raises
        DuplicateEntryError before touching anything if the id or the
        location is already taken. If the write fails the entry is removed
        again and LedgerWriteError propagates.
        """
        if not entry.id:
            entry = entry.model_copy(update={"id": self.generate_id(entry.category)})
        if self.get_entry(entry.id) is not None:
            raise DuplicateEntryError(f"Entry id {entry.id} already exists")
        existing = self.find_entry(entry.file, entry.line, entry.category)
        if existing is not None:
            raise DuplicateEntryError(
                f"{entry.location} is already approved as {existing.id}"
            )

        previous = self.data.model_copy(deep=True)
        self.data.entries.append(entry)
        self._persist(previous)
        logger.info("Added ledger entry %s (%s)", entry.id, entry.location)
        return entry.id

    def update_entry(self, entry_id: str, **updates: Any) -> WhitelistEntry:
        """Apply field updates to an entry and persist."""
        entry = self.get_entry(entry_id)
        if entry is None:
            raise UnknownEntryError(f"No ledger entry {entry_id}")
        for key in updates:
            if key not in WhitelistEntry.model_fields or key == "id":
                raise LedgerError(f"Cannot update field {key!r}")
        previous = self.data.model_copy(deep=True)
        for key, value in updates.items():
            setattr(entry, key, value)
        self._persist(previous)
        return entry

    def remove_entry(self, entry_id: str) -> bool:
        """Delete an entry and persist. Returns False if it did not exist."""
        entry = self.get_entry(entry_id)
        if entry is None:
            return False
        previous = self.data.model_copy(deep=True)
        self.data.entries.remove(entry)
        self._persist(previous)
        logger.info("Removed ledger entry %s", entry_id)
        return True

    # ── Framework patterns ──

    def add_framework_pattern(
        self,
        name: str,
        signatures: list[list[str]],
        description: str = "",
        stats: Optional[FrameworkStats] = None,
        verified_by: str = "manual",
    ) -> str:
        """Create or replace the framework pattern called name; persist."""
        entry = FrameworkPatternEntry(
            id=f"framework-{name}-001",
            enabled=True,
            signature_list=[list(s) for s in signatures],
            description=description,
            verified_by=verified_by,
            stats=stats or FrameworkStats(),
        )
        previous = self.data.model_copy(deep=True)
        self.data.frameworks[name] = entry
        self._persist(previous)
        logger.info("Enabled framework pattern %s", name)
        return entry.id

    def set_pattern_enabled(self, name: str, enabled: bool) -> None:
        pattern = self.data.frameworks.get(name)
        if pattern is None:
            raise UnknownEntryError(f"No framework pattern {name}")
        previous = self.data.model_copy(deep=True)
        pattern.enabled = enabled
        self._persist(previous)

    def remove_framework_pattern(self, name: str) -> bool:
        if name not in self.data.frameworks:
            return False
        previous = self.data.model_copy(deep=True)
        del self.data.frameworks[name]
        self._persist(previous)
        return True

    def is_pattern_enabled(self, name: str) -> bool:
        pattern = self.data.frameworks.get(name)
        return bool(pattern and pattern.enabled)

    def enabled_signatures(self) -> list[list[str]]:
        """Signatures of every enabled framework pattern, in name order."""
        signatures: list[list[str]] = []
        for name in sorted(self.data.frameworks):
            pattern = self.data.frameworks[name]
            if pattern.enabled:
                signatures.extend(pattern.signature_list)
        return signatures
