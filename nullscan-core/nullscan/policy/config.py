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

"""Project configuration loading (.nullscan.yaml)."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Any

import yaml
from pydantic import ValidationError

from nullscan.models.rules import ScanConfig

logger = logging.getLogger(__name__)

CONFIG_FILENAME = ".nullscan.yaml"


def load_config(root: Path, overrides: dict[str, Any] | None = None) -> ScanConfig:
    """Load <root>/.nullscan.yaml and apply CLI overrides.

    A missing file yields defaults. An unreadable or invalid file is logged
    and also yields defaults; configuration problems never abort a scan.
    Overrides whose value is None are ignored.
    """
    config_path = root / CONFIG_FILENAME
    data: dict[str, Any] = {}

    if config_path.exists():
        try:
            with open(config_path, encoding="utf-8") as f:
                loaded = yaml.safe_load(f) or {}
            if isinstance(loaded, dict):
                data = loaded
            else:
                logger.warning("Ignoring %s: top level must be a mapping", config_path)
        except (OSError, yaml.YAMLError) as e:
            logger.warning("Could not read %s: %s", config_path, e)

    for key, value in (overrides or {}).items():
        if value is not None:
            data[key] = value

    try:
        return ScanConfig(**data)
    except ValidationError as e:
        logger.warning("Invalid configuration in %s, using defaults: %s", config_path, e)
        return ScanConfig()


def resolve_ledger_path(root: Path, config: ScanConfig, ledger: str | None = None) -> Path:
    """Return the ledger path, relative paths being taken from root."""
    path = Path(ledger or config.ledger)
    if not path.is_absolute():
        path = root / path
    return path
