"""Configuration backend — where role records and data bags live.

The registries only depend on the :class:`ConfigBackend` protocol. The
JSON-file backend keeps one record per file and serves development,
single-node and test use.
"""

from crowbar_registry.backend.base import ConfigBackend, SearchResult
from crowbar_registry.backend.json_store import JsonConfigBackend

__all__ = ["ConfigBackend", "SearchResult", "JsonConfigBackend"]
