"""Barclamp catalog — capabilities of each barclamp, resolved by table lookup.

The catalog file maps barclamp names to their display name, category and
whether several proposals (deployments) of the barclamp may coexist::

    barclamps:
      nfs_client:
        display: NFS Client
        category: Utilities
        allow_multiple_proposals: true
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

import yaml

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class BarclampService:
    """What the registry needs to know about one barclamp."""

    name: str
    display_name: str
    category: str = ""
    allows_multiple_proposals: bool = False


def default_display_name(barclamp: str) -> str:
    return barclamp.replace("_", " ").title()


class BarclampCatalog:
    """Table of :class:`BarclampService` records keyed by barclamp name."""

    def __init__(self, services: Optional[dict[str, BarclampService]] = None) -> None:
        self._services = dict(services or {})

    @classmethod
    def from_file(cls, path: str | Path) -> BarclampCatalog:
        """Load a catalog file. A missing or unreadable file gives an empty catalog."""
        path = Path(path)
        try:
            with open(path) as f:
                data = yaml.safe_load(f) or {}
        except (OSError, yaml.YAMLError) as e:
            logger.warning("Cannot read barclamp catalog %s: %s", path, e)
            return cls()
        return cls.from_dict(data)

    @classmethod
    def from_dict(cls, data: dict) -> BarclampCatalog:
        services = {}
        entries = data.get("barclamps", {}) if isinstance(data, dict) else {}
        for name, entry in (entries or {}).items():
            entry = entry if isinstance(entry, dict) else {}
            services[name] = BarclampService(
                name=name,
                display_name=entry.get("display") or default_display_name(name),
                category=entry.get("category") or "",
                allows_multiple_proposals=bool(entry.get("allow_multiple_proposals", False)),
            )
        return cls(services)

    def lookup(self, barclamp: str) -> BarclampService:
        """Return the barclamp's record, with defaults for unlisted barclamps."""
        service = self._services.get(barclamp)
        if service is None:
            return BarclampService(name=barclamp, display_name=default_display_name(barclamp))
        return service
