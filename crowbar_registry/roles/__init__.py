"""Roles — versioned configuration records shared between barclamps.

Each barclamp writes its own sub-tree of a role's override attributes and
stamps it with a revision. Saves are serialized per role name through a
named lock so that two writers of the same barclamp notice each other.
"""

from crowbar_registry.roles.models import REVISION_KEY, RevisionRace, Role
from crowbar_registry.roles.registry import RoleRegistry
from crowbar_registry.roles.services import BarclampCatalog, BarclampService

__all__ = [
    "REVISION_KEY",
    "Role",
    "RevisionRace",
    "RoleRegistry",
    "BarclampCatalog",
    "BarclampService",
]
