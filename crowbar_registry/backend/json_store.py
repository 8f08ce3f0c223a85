"""File-based JSON storage for role records and data bags.

Storage layout under the backend directory:
- ``roles/<name>.json`` -- one role record per file
- ``data_bags/<bag>/<item>.json`` -- one data bag item per file

Search queries use the ``field:pattern`` form, where ``pattern`` may contain
``*`` and ``?`` wildcards, e.g. ``name:nova-config-*``.
"""

from __future__ import annotations

import json
import logging
import os
import tempfile
from fnmatch import fnmatchcase
from pathlib import Path
from typing import Optional

from crowbar_registry.backend.base import SearchResult
from crowbar_registry.errors import NotFoundError, TransportError

logger = logging.getLogger(__name__)


class JsonConfigBackend:
    """File-based :class:`~crowbar_registry.backend.base.ConfigBackend`."""

    ROLES_DIR = "roles"
    DATA_BAGS_DIR = "data_bags"

    def __init__(self, base_dir: str | Path) -> None:
        self._base = Path(base_dir)
        self._roles = self._base / self.ROLES_DIR
        self._bags = self._base / self.DATA_BAGS_DIR
        self._roles.mkdir(parents=True, exist_ok=True)
        self._bags.mkdir(parents=True, exist_ok=True)

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    @staticmethod
    def _check_key(name: str) -> str:
        if not name or "/" in name or name.startswith("."):
            raise TransportError("lookup", f"invalid record name '{name}'")
        return name

    def _role_path(self, name: str) -> Path:
        return self._roles / f"{self._check_key(name)}.json"

    def _bag_path(self, name: str) -> Path:
        bag, _, item = name.partition("/")
        self._check_key(bag)
        return self._bags / bag / f"{self._check_key(item or bag)}.json"

    @staticmethod
    def _write_json(path: Path, data: dict) -> None:
        # Readers must never see a half-written record.
        path.parent.mkdir(parents=True, exist_ok=True)
        fd, tmp = tempfile.mkstemp(dir=path.parent, suffix=".tmp")
        try:
            with os.fdopen(fd, "w") as f:
                json.dump(data, f, indent=2, sort_keys=True)
            os.replace(tmp, path)
        except BaseException:
            Path(tmp).unlink(missing_ok=True)
            raise

    @staticmethod
    def _matches(record: object, query: Optional[str]) -> bool:
        if query is None:
            return True
        field_name, sep, pattern = query.partition(":")
        if not sep:
            field_name, pattern = "name", query
        if not isinstance(record, dict):
            return False
        value = record.get(field_name.strip())
        return value is not None and fnmatchcase(str(value), pattern.strip())

    # ------------------------------------------------------------------
    # Roles
    # ------------------------------------------------------------------

    def load_role(self, name: str) -> dict:
        """Load a role record by name."""
        path = self._role_path(name)
        if not path.is_file():
            raise NotFoundError("role", name)
        try:
            return json.loads(path.read_text())
        except (json.JSONDecodeError, OSError) as e:
            raise TransportError("load", f"role {name}: {e}") from e

    def search_roles(self, query: Optional[str] = None) -> SearchResult:
        """Return the raw records matching ``query``, sorted by file name.

        Records that cannot be decoded are skipped; a failure to list the
        roles directory yields a zero status.
        """
        try:
            paths = sorted(self._roles.glob("*.json"))
        except OSError as e:
            logger.error("Cannot list roles in %s: %s", self._roles, e)
            return SearchResult(rows=[], total=0, status=0)

        rows = []
        for path in paths:
            try:
                record = json.loads(path.read_text())
            except (json.JSONDecodeError, OSError) as e:
                logger.debug("Skipping unreadable role file %s: %s", path, e)
                continue
            if self._matches(record, query):
                rows.append(record)
        return SearchResult(rows=rows, total=len(rows), status=1)

    def save_role(self, record: dict) -> None:
        """Create or replace a role record."""
        name = record.get("name", "")
        try:
            self._write_json(self._role_path(name), record)
        except OSError as e:
            raise TransportError("save", f"role {name}: {e}") from e

    def destroy_role(self, name: str) -> None:
        """Delete a role record."""
        path = self._role_path(name)
        try:
            path.unlink()
        except FileNotFoundError:
            raise NotFoundError("role", name) from None
        except OSError as e:
            raise TransportError("destroy", f"role {name}: {e}") from e

    # ------------------------------------------------------------------
    # Data bags
    # ------------------------------------------------------------------

    def load_data_bag(self, name: str) -> dict:
        """Load a ``bag/item`` data bag record, or ``{}`` if it cannot be read."""
        try:
            data = json.loads(self._bag_path(name).read_text())
        except (TransportError, json.JSONDecodeError, OSError) as e:
            logger.debug("Data bag %s unavailable: %s", name, e)
            return {}
        return data if isinstance(data, dict) else {}

    def save_data_bag(self, name: str, data: dict) -> None:
        """Create or replace a ``bag/item`` data bag record."""
        try:
            self._write_json(self._bag_path(name), data)
        except OSError as e:
            raise TransportError("save", f"data bag {name}: {e}") from e
