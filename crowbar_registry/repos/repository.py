"""A single repository of the merged catalog and its trust checks."""

from __future__ import annotations

import functools
import hashlib
import logging
import xml.etree.ElementTree as ET
from pathlib import Path
from typing import TYPE_CHECKING, Callable

from crowbar_registry.repos.models import RepositoryConfig

if TYPE_CHECKING:
    from crowbar_registry.repos.registry import RepositoryRegistry

logger = logging.getLogger(__name__)

REPOMD_FILE = "repomd.xml"
REPOMD_KEY_FILE = "repomd.xml.key"
DEFAULT_CHECKSUM_ALGORITHM = "md5"


def _guarded(check: Callable[[Repository], bool]) -> Callable[[Repository], bool]:
    """Turn I/O and parse failures inside a check into a failed check."""

    @functools.wraps(check)
    def wrapper(self: Repository) -> bool:
        try:
            return check(self)
        except (OSError, ET.ParseError, ValueError) as e:
            logger.debug("%s check failed for %s/%s: %s", check.__name__, self.platform, self.id, e)
            return False

    return wrapper


def file_checksum(path: Path, algorithm: str = DEFAULT_CHECKSUM_ALGORITHM) -> str:
    digest = hashlib.new(algorithm)
    with open(path, "rb") as f:
        for chunk in iter(lambda: f.read(65536), b""):
            digest.update(chunk)
    return digest.hexdigest()


def read_repomd_tag(path: Path) -> str | None:
    """Return the text of ``tags/repo`` in a repomd file, ignoring namespaces."""
    root = ET.parse(path).getroot()
    element = root.find("{*}tags/{*}repo")
    if element is None or element.text is None:
        return None
    return element.text.strip()


class Repository:
    """One (platform, id) entry of a :class:`RepositoryRegistry`."""

    def __init__(
        self,
        registry: RepositoryRegistry,
        platform: str,
        repo_id: str,
        config: RepositoryConfig,
    ) -> None:
        self.registry = registry
        self.platform = platform
        self.id = repo_id
        self.config = config

    def __repr__(self) -> str:
        return f"Repository({self.platform!r}, {self.id!r})"

    @property
    def name(self) -> str:
        return self.config.name

    @property
    def required(self) -> str:
        return self.config.required

    @property
    def features(self) -> tuple[str, ...]:
        return self.config.features

    # ------------------------------------------------------------------
    # Paths
    # ------------------------------------------------------------------

    @property
    def repos_path(self) -> Path:
        return self.registry.repos_root / self.platform / "repos"

    @property
    def path(self) -> Path:
        return self.repos_path / self.name

    @property
    def repodata_path(self) -> Path:
        return self.path / "repodata"

    # ------------------------------------------------------------------
    # Checks
    # ------------------------------------------------------------------

    def remote(self) -> bool:
        return bool(self.config.url)

    def exist(self) -> bool:
        return self.remote() or self._check_directory()

    def valid_repo(self) -> bool:
        return self.remote() or self._check_repo_tag()

    def valid_key_file(self) -> bool:
        return self.remote() or self._check_key_file()

    def available(self) -> bool:
        """Whether nodes can be pointed at this repository."""
        return self.remote() or (
            self._check_directory() and self._check_repo_tag() and self._check_key_file()
        )

    def active(self) -> bool:
        """Whether the provisioner published this repository as enabled."""
        enabled = self.registry.active_repositories().get(self.platform)
        return isinstance(enabled, dict) and self.id in enabled

    @_guarded
    def _check_directory(self) -> bool:
        return self.path.is_dir()

    @_guarded
    def _check_repo_tag(self) -> bool:
        expected = self.config.integrity.tag
        if not expected:
            return True
        repomd = self.repodata_path / REPOMD_FILE
        if not repomd.is_file():
            return False
        return read_repomd_tag(repomd) == expected

    @_guarded
    def _check_key_file(self) -> bool:
        expected = self.config.integrity.checksum
        if not expected:
            return True
        key_file = self.repodata_path / REPOMD_KEY_FILE
        if not key_file.is_file():
            return False
        algorithm, sep, value = expected.partition(":")
        if not sep:
            algorithm, value = DEFAULT_CHECKSUM_ALGORITHM, expected
        return file_checksum(key_file, algorithm.lower()) == value.strip().lower()

    # ------------------------------------------------------------------
    # Publishing
    # ------------------------------------------------------------------

    def url(self) -> str:
        if self.config.url:
            return self.config.url
        return (
            f"http://{self.registry.admin_address}:{self.registry.web_port}"
            f"/{self.platform}/repos/{self.name}/"
        )

    def to_databag_item(self) -> dict:
        return {
            "name": self.name,
            "url": self.url(),
            "ask_on_error": self.config.ask_on_error,
        }
