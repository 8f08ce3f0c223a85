"""Runtime settings for the crowbar registry.

Defaults match an admin node layout. Every value can be overridden through a
``CROWBAR_*`` environment variable via :meth:`Settings.from_env`.
"""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from pathlib import Path

PACKAGE_DIR = Path(__file__).parent

DEFAULT_REPOS_CATALOG = PACKAGE_DIR / "repos" / "data" / "repos.yml"
DEFAULT_BARCLAMP_CATALOG = PACKAGE_DIR / "roles" / "data" / "barclamps.yml"
DEFAULT_REPOS_OVERRIDE = Path("/etc/crowbar/repos.yml")
DEFAULT_REPOS_ROOT = Path("/srv/tftpboot")

CONFLICT_POLICIES = ("warn", "reject")


@dataclass
class Settings:
    """Paths, addresses and policies shared by the CLI and the registries."""

    backend_dir: Path = field(default_factory=lambda: Path.home() / ".crowbar" / "backend")
    lock_dir: Path = field(default_factory=lambda: Path.home() / ".crowbar" / "locks")
    lock_timeout: float = 60.0
    conflict_policy: str = "warn"

    barclamp_catalog: Path = DEFAULT_BARCLAMP_CATALOG
    repos_catalog: Path = DEFAULT_REPOS_CATALOG
    repos_override: Path = DEFAULT_REPOS_OVERRIDE
    repos_root: Path = DEFAULT_REPOS_ROOT
    optional_platforms: frozenset[str] = frozenset()

    admin_address: str = "127.0.0.1"
    web_port: int = 8091

    log_level: str = "INFO"

    def __post_init__(self) -> None:
        if self.conflict_policy not in CONFLICT_POLICIES:
            raise ValueError(
                f"Invalid conflict policy '{self.conflict_policy}'. "
                f"Must be one of: {', '.join(CONFLICT_POLICIES)}"
            )

    @classmethod
    def from_env(cls, environ: dict[str, str] | None = None) -> Settings:
        """Build settings from ``CROWBAR_*`` variables, falling back to defaults."""
        env = os.environ if environ is None else environ
        defaults = cls()

        def _path(key: str, default: Path) -> Path:
            value = env.get(key)
            return Path(value).expanduser() if value else default

        platforms = env.get("CROWBAR_OPTIONAL_REPO_PLATFORMS", "")

        return cls(
            backend_dir=_path("CROWBAR_BACKEND_DIR", defaults.backend_dir),
            lock_dir=_path("CROWBAR_LOCK_DIR", defaults.lock_dir),
            lock_timeout=float(env.get("CROWBAR_LOCK_TIMEOUT", defaults.lock_timeout)),
            conflict_policy=env.get("CROWBAR_CONFLICT_POLICY", defaults.conflict_policy),
            barclamp_catalog=_path("CROWBAR_BARCLAMP_CATALOG", defaults.barclamp_catalog),
            repos_catalog=_path("CROWBAR_REPOS_CATALOG", defaults.repos_catalog),
            repos_override=_path("CROWBAR_REPOS_OVERRIDE", defaults.repos_override),
            repos_root=_path("CROWBAR_REPOS_ROOT", defaults.repos_root),
            optional_platforms=frozenset(
                p.strip() for p in platforms.split(",") if p.strip()
            ),
            admin_address=env.get("CROWBAR_ADMIN_ADDRESS", defaults.admin_address),
            web_port=int(env.get("CROWBAR_WEB_PORT", defaults.web_port)),
            log_level=env.get("CROWBAR_LOG_LEVEL", defaults.log_level),
        )
