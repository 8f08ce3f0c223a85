"""Repositories — the per-platform catalog of install sources.

The registry merges the bundled catalog with an optional host-local override
file and hands out :class:`Repository` objects whose checks decide whether a
repository can be trusted:

- Remote: the repository has an explicit URL and is trusted as is
- Mirrored and pinned: the local mirror exists and matches the expected
  repomd tag and key checksum
- Mirrored and unpinned: the local mirror exists
"""

from crowbar_registry.repos.models import IntegrityDescriptor, RepositoryConfig, merge_layers
from crowbar_registry.repos.registry import RepositoryRegistry
from crowbar_registry.repos.repository import Repository

__all__ = [
    "IntegrityDescriptor",
    "RepositoryConfig",
    "Repository",
    "RepositoryRegistry",
    "merge_layers",
]
