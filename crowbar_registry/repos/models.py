"""Repository configuration models and the catalog/override merge."""

from __future__ import annotations

import copy
import logging
from dataclasses import dataclass, field
from typing import Any, Optional

logger = logging.getLogger(__name__)

REQUIRED_LEVELS = ("mandatory", "recommended", "optional")

# The only attributes a host-local override may change on a catalog repository.
OVERRIDABLE_KEYS = ("url", "ask_on_error")


def _text(value: Any) -> Optional[str]:
    """Integrity values as text, including all-digit values YAML reads as numbers."""
    if value is None or value == "":
        return None
    return str(value)


@dataclass(frozen=True)
class IntegrityDescriptor:
    """Expected repomd tag and key file checksum of a mirrored repository."""

    tag: Optional[str] = None
    checksum: Optional[str] = None  # "<hex>" (MD5) or "<algorithm>:<hex>"


@dataclass(frozen=True)
class RepositoryConfig:
    """One repository entry of the merged catalog."""

    name: str
    url: Optional[str] = None
    required: str = "optional"
    ask_on_error: bool = False
    features: tuple[str, ...] = ()
    integrity: IntegrityDescriptor = field(default_factory=IntegrityDescriptor)

    @classmethod
    def from_dict(cls, repo_id: str, data: Any) -> RepositoryConfig:
        data = data if isinstance(data, dict) else {}

        # "repomd: {tag, md5}" is the older spelling of "integrity".
        integrity = data.get("integrity")
        if not isinstance(integrity, dict):
            integrity = data.get("repomd")
        integrity = integrity if isinstance(integrity, dict) else {}

        required = data.get("required") or "optional"
        if required not in REQUIRED_LEVELS:
            logger.warning("Repository %s has unknown required level %r, using optional", repo_id, required)
            required = "optional"

        features = data.get("features") or []
        if isinstance(features, str):
            features = [features]

        return cls(
            name=str(data.get("name") or repo_id),
            url=data.get("url") or None,
            required=required,
            ask_on_error=bool(data.get("ask_on_error", False)),
            features=tuple(features),
            integrity=IntegrityDescriptor(
                tag=_text(integrity.get("tag")),
                checksum=_text(integrity.get("checksum")) or _text(integrity.get("md5")),
            ),
        )


def _repos_of(platform: str, entry: Any, source: str) -> Optional[dict]:
    repos = entry.get("repos") if isinstance(entry, dict) else None
    if repos is None and isinstance(entry, dict):
        return {}
    if not isinstance(repos, dict):
        logger.warning("Ignoring platform %s in %s: 'repos' is not a mapping", platform, source)
        return None
    return repos


def merge_layers(catalog: dict, override: Optional[dict]) -> dict:
    """Merge a host-local override into the catalog without touching either.

    Repositories known to the catalog only take ``url`` and ``ask_on_error``
    from the override. Unknown repositories and unknown platforms are
    adopted as the override declares them.
    """
    merged = copy.deepcopy(catalog)
    for platform, entry in (override or {}).items():
        override_repos = _repos_of(platform, entry, "override")
        if override_repos is None:
            continue

        if platform not in merged:
            merged[platform] = copy.deepcopy(entry)
            merged[platform].setdefault("repos", {})
            continue

        target = merged[platform].setdefault("repos", {})
        for repo_id, repo in override_repos.items():
            if repo_id in target:
                if not isinstance(repo, dict):
                    continue
                if not isinstance(target[repo_id], dict):
                    target[repo_id] = {}
                for key in OVERRIDABLE_KEYS:
                    if key in repo:
                        target[repo_id][key] = repo[key]
            else:
                target[repo_id] = copy.deepcopy(repo)
    return merged
