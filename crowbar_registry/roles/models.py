"""Role data models — the role record and detected revision races."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Optional

REVISION_KEY = "crowbar-revision"

# Role name prefixes that do not match the barclamp owning the role.
BARCLAMP_EXCEPTIONS = {
    "switch_config": "network",
    "bmc": "ipmi",
    "nfs": "nfs_client",
}


def barclamp_for(role_name: str) -> str:
    """Return the barclamp owning ``role_name``."""
    prefix = role_name.split("-")[0]
    return BARCLAMP_EXCEPTIONS.get(prefix, prefix)


def revision_of(section: Any) -> Optional[int]:
    """Return the revision stamped on a barclamp section, None if absent or not an integer."""
    if not isinstance(section, dict):
        return None
    revision = section.get(REVISION_KEY)
    if isinstance(revision, bool) or not isinstance(revision, int):
        return None
    return revision


def _or_default(value: Any, default: Any) -> Any:
    return default if value is None else value


@dataclass
class Role:
    """A role record as stored in the configuration backend."""

    name: str
    description: str = ""
    default_attributes: dict[str, Any] = field(default_factory=dict)
    override_attributes: dict[str, Any] = field(default_factory=dict)
    run_list: list[str] = field(default_factory=list)

    @property
    def barclamp(self) -> str:
        return barclamp_for(self.name)

    @property
    def instance(self) -> str:
        return self.name.replace(f"{self.barclamp}-config-", "")

    @property
    def proposal_id(self) -> str:
        return f"{self.barclamp}_{self.instance}"

    @property
    def revision(self) -> Optional[int]:
        """Revision of this role's own barclamp section, None if never saved."""
        return revision_of(self.override_attributes.get(self.barclamp))

    @property
    def elements(self) -> dict[str, list[str]]:
        """Node assignments per element role of the deployment."""
        section = self.override_attributes.get(self.barclamp)
        if not isinstance(section, dict):
            return {}
        return section.get("elements") or {}

    @classmethod
    def from_record(cls, record: Any) -> Optional[Role]:
        """Build a role from a raw backend record, or None if it is malformed."""
        if not isinstance(record, dict):
            return None
        name = record.get("name")
        if not isinstance(name, str) or not name:
            return None

        default_attributes = _or_default(record.get("default_attributes"), {})
        override_attributes = _or_default(record.get("override_attributes"), {})
        run_list = _or_default(record.get("run_list"), [])
        if not isinstance(default_attributes, dict) or not isinstance(override_attributes, dict):
            return None
        if not isinstance(run_list, list):
            return None

        return cls(
            name=name,
            description=record.get("description") or "",
            default_attributes=default_attributes,
            override_attributes=override_attributes,
            run_list=run_list,
        )

    def to_record(self) -> dict[str, Any]:
        return {
            "name": self.name,
            "description": self.description,
            "json_class": "Chef::Role",
            "chef_type": "role",
            "default_attributes": self.default_attributes,
            "override_attributes": self.override_attributes,
            "run_list": self.run_list,
        }


@dataclass
class RevisionRace:
    """A save that found a persisted revision at or above its own."""

    role_name: str
    barclamp: str
    observed_revision: int
    written_revision: int
