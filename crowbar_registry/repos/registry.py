"""Repository registry — the merged catalog and its repositories.

Lifecycle: a registry reads its two layers once, on :meth:`load` or on first
use, and keeps the merged result until :meth:`reload` is called. Nothing
reloads implicitly. Concurrent reloads are not synchronized; the last one to
finish wins.
"""

from __future__ import annotations

import dataclasses
import logging
from pathlib import Path
from typing import Iterable, Optional

import yaml

from crowbar_registry.backend.base import ConfigBackend
from crowbar_registry.config import Settings
from crowbar_registry.errors import BackendError, RepositoryNotFoundError
from crowbar_registry.repos.models import RepositoryConfig, merge_layers
from crowbar_registry.repos.repository import Repository

logger = logging.getLogger(__name__)

ACTIVE_REPOSITORIES_BAG = "crowbar/repositories"


class RepositoryRegistry:
    """Per-platform repositories merged from a catalog and an override file.

    Repositories on a platform listed in ``optional_platforms`` are always
    reported as optional, whatever level the catalog gives them.
    """

    def __init__(
        self,
        catalog_path: str | Path,
        override_path: Optional[str | Path] = None,
        repos_root: str | Path = "/srv/tftpboot",
        backend: Optional[ConfigBackend] = None,
        admin_address: str = "127.0.0.1",
        web_port: int = 8091,
        optional_platforms: Iterable[str] = (),
    ) -> None:
        self.catalog_path = Path(catalog_path)
        self.override_path = Path(override_path) if override_path else None
        self.repos_root = Path(repos_root)
        self.backend = backend
        self.admin_address = admin_address
        self.web_port = web_port
        self.optional_platforms = frozenset(optional_platforms)
        self._merged: Optional[dict] = None
        self._repositories: dict[tuple[str, str], Repository] = {}

    @classmethod
    def from_settings(
        cls, settings: Settings, backend: Optional[ConfigBackend] = None
    ) -> RepositoryRegistry:
        return cls(
            catalog_path=settings.repos_catalog,
            override_path=settings.repos_override,
            repos_root=settings.repos_root,
            backend=backend,
            admin_address=settings.admin_address,
            web_port=settings.web_port,
            optional_platforms=settings.optional_platforms,
        )

    # ------------------------------------------------------------------
    # Loading
    # ------------------------------------------------------------------

    def _read_catalog(self) -> dict:
        with open(self.catalog_path) as f:
            data = yaml.safe_load(f) or {}
        if not isinstance(data, dict):
            raise ValueError(f"Repository catalog {self.catalog_path} is not a mapping")
        return data

    def _read_override(self) -> dict:
        if self.override_path is None or not self.override_path.exists():
            return {}
        try:
            with open(self.override_path) as f:
                data = yaml.safe_load(f) or {}
        except (OSError, yaml.YAMLError) as e:
            logger.warning("Ignoring repository override %s: %s", self.override_path, e)
            return {}
        if not isinstance(data, dict):
            logger.warning("Ignoring repository override %s: not a mapping", self.override_path)
            return {}
        return data

    def load(self) -> dict:
        """Read and merge both layers, replacing any cached result."""
        merged = merge_layers(self._read_catalog(), self._read_override())
        self._repositories = {}
        self._merged = merged
        logger.debug(
            "Loaded %d platform(s) from %s (override: %s)",
            len(merged),
            self.catalog_path,
            self.override_path,
        )
        return merged

    def reload(self) -> dict:
        return self.load()

    @property
    def loaded(self) -> bool:
        return self._merged is not None

    @property
    def catalog(self) -> dict:
        """The merged catalog, loaded on first use."""
        if self._merged is None:
            self.load()
        return self._merged

    # ------------------------------------------------------------------
    # Lookup
    # ------------------------------------------------------------------

    def platforms(self) -> list[str]:
        return list(self.catalog)

    def repository_ids(self, platform: str) -> list[str]:
        entry = self.catalog.get(platform)
        if not isinstance(entry, dict):
            return []
        repos = entry.get("repos")
        return list(repos) if isinstance(repos, dict) else []

    def get(self, platform: str, repo_id: str) -> Repository:
        """Return the repository ``repo_id`` of ``platform``, built on first request."""
        key = (platform, repo_id)
        repository = self._repositories.get(key)
        if repository is not None:
            return repository

        if repo_id not in self.repository_ids(platform):
            raise RepositoryNotFoundError(platform, repo_id)

        config = RepositoryConfig.from_dict(repo_id, self.catalog[platform]["repos"][repo_id])
        if platform in self.optional_platforms and config.required != "optional":
            config = dataclasses.replace(config, required="optional")
        repository = Repository(self, platform, repo_id, config)
        self._repositories[key] = repository
        return repository

    def enumerate(self, platform: Optional[str] = None, name: Optional[str] = None) -> list[Repository]:
        """Repositories of ``platform`` (all when omitted) named ``name`` (any when omitted)."""
        platforms = [platform] if platform is not None else self.platforms()
        repositories = []
        for p in platforms:
            for repo_id in self.repository_ids(p):
                repository = self.get(p, repo_id)
                if name is None or repository.name == name:
                    repositories.append(repository)
        return repositories

    def enumerate_all(self) -> list[Repository]:
        return self.enumerate()

    def active_repositories(self) -> dict:
        """The published ``platform -> {id -> item}`` record of enabled repositories."""
        if self.backend is None:
            return {}
        try:
            return self.backend.load_data_bag(ACTIVE_REPOSITORIES_BAG) or {}
        except BackendError as e:
            logger.debug("Active repositories unavailable: %s", e)
            return {}

    def feature_enabled(self, feature: str, platform: Optional[str] = None) -> bool:
        """Whether a repository providing ``feature`` is active on ``platform`` (any when omitted)."""
        providers = [r for r in self.enumerate(platform) if feature in r.features]
        return any(r.active() for r in providers)
