"""Role registry — lookup, search and lock-guarded saves of roles.

Different barclamps write disjoint sub-trees of the same role record, so
only writers of the same barclamp can overwrite each other. ``save`` bumps
the barclamp's revision and, holding the role's named lock, compares it with
the persisted one:

- ``warn`` policy (default): a persisted revision at or above the new one is
  logged and recorded as a :class:`RevisionRace`; the write still happens
  and the last writer wins.
- ``reject`` policy: the write only happens if the persisted revision is the
  one the writer started from; otherwise :class:`RevisionConflictError` is
  raised and the caller must re-read and retry.

``destroy`` does not take the lock.
"""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Optional

from crowbar_registry.backend.base import ConfigBackend
from crowbar_registry.errors import NotFoundError, RevisionConflictError
from crowbar_registry.locks import NamedLockService, hold
from crowbar_registry.roles.models import REVISION_KEY, RevisionRace, Role, revision_of
from crowbar_registry.roles.services import BarclampCatalog, BarclampService

logger = logging.getLogger(__name__)

_MISSING = object()


class RoleRegistry:
    """Role CRUD and search over a :class:`ConfigBackend`."""

    def __init__(
        self,
        backend: ConfigBackend,
        locks: NamedLockService,
        catalog: Optional[BarclampCatalog] = None,
        conflict_policy: str = "warn",
    ) -> None:
        if conflict_policy not in ("warn", "reject"):
            raise ValueError(f"Unknown conflict policy '{conflict_policy}'")
        self.backend = backend
        self.locks = locks
        self.catalog = catalog or BarclampCatalog()
        self.conflict_policy = conflict_policy
        self.races: list[RevisionRace] = []

    # ------------------------------------------------------------------
    # Lookup
    # ------------------------------------------------------------------

    def find_by_name(self, name: str) -> Optional[Role]:
        """Load a role, or None if the backend does not know it."""
        try:
            record = self.backend.load_role(name)
        except NotFoundError:
            return None
        role = Role.from_record(record)
        if role is None:
            logger.warning("Ignoring malformed record for role %s", name)
        return role

    def find_by_search(self, query: Optional[str] = None) -> list[Role]:
        """Run a backend search, keeping backend order and dropping bad records."""
        result = self.backend.search_roles(query)
        if not result.ok:
            return []
        roles = []
        for row in result.rows:
            role = Role.from_record(row)
            if role is not None:
                roles.append(role)
        return roles

    def find_by_name_pattern(self, pattern: str) -> list[Role]:
        return self.find_by_search(f"name:{pattern}")

    def all(self) -> list[Role]:
        return self.find_by_search(None)

    def list_active(
        self, barclamp: Optional[str] = None, instance: Optional[str] = None
    ) -> list[tuple[str, str]]:
        """Return ``(barclamp, instance)`` for every deployed configuration role."""
        if barclamp is None:
            pattern = "*-config-*"
        else:
            pattern = f"{barclamp}-config-{instance or '*'}"
        return [(r.barclamp, r.instance) for r in self.find_by_name_pattern(pattern)]

    def service(self, role: Role) -> BarclampService:
        """Capabilities of the barclamp owning ``role``."""
        return self.catalog.lookup(role.barclamp)

    def category(self, role: Role) -> str:
        return self.service(role).category

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------

    def save(self, role: Role) -> Optional[RevisionRace]:
        """Bump the barclamp revision of ``role`` and persist it.

        Returns the detected race, if any. If the save raises, the revision
        bump is undone so that the caller can retry with the same role.
        """
        barclamp = role.barclamp
        section = role.override_attributes.get(barclamp)
        if not isinstance(section, dict):
            section = role.override_attributes[barclamp] = {}
        stored = section.get(REVISION_KEY, _MISSING)
        previous = revision_of(section)
        revision = 0 if previous is None else previous + 1
        section[REVISION_KEY] = revision
        logger.debug("Saving role: %s - %s", role.name, revision)

        race = None
        try:
            with hold(self.locks, f"role:{role.name}"):
                observed = self._persisted_revision(role.name, barclamp)
                if self.conflict_policy == "reject" and observed != previous:
                    raise RevisionConflictError(role.name, barclamp, previous, observed)
                if observed is not None and observed >= revision:
                    race = RevisionRace(role.name, barclamp, observed, revision)
                    self.races.append(race)
                    logger.warning(
                        "Revision race for role %s (previous revision %s)",
                        role.name,
                        observed,
                    )
                self.backend.save_role(role.to_record())
        except BaseException:
            if stored is _MISSING:
                del section[REVISION_KEY]
            else:
                section[REVISION_KEY] = stored
            raise

        logger.debug("Done saving role: %s - %s", role.name, revision)
        return race

    def destroy(self, role: Role) -> None:
        """Delete the role's backend record."""
        logger.debug("Destroying role: %s - %s", role.name, role.revision)
        self.backend.destroy_role(role.name)
        logger.debug("Done removing role: %s", role.name)

    def export(self, role: Role, directory: str | Path) -> Path:
        """Write the role record to ``role-<name>.json`` in ``directory``."""
        directory = Path(directory)
        directory.mkdir(parents=True, exist_ok=True)
        path = directory / f"role-{role.name}.json"
        path.write_text(json.dumps(role.to_record(), indent=2, sort_keys=True))
        return path

    def _persisted_revision(self, name: str, barclamp: str) -> Optional[int]:
        current = self.find_by_name(name)
        if current is None:
            return None
        return revision_of(current.override_attributes.get(barclamp))
