"""Exceptions raised by the crowbar registry.

Only conditions the caller must react to are exceptions. A repository
check that fails is a ``False`` result and a detected revision race is a
:class:`~crowbar_registry.roles.models.RevisionRace` record, not an error.
"""

from __future__ import annotations

from typing import Optional


class CrowbarRegistryError(Exception):
    """Base exception for all registry errors."""

    def __init__(self, message: str, details: Optional[dict] = None):
        self.message = message
        self.details = details or {}
        super().__init__(self.message)


class BackendError(CrowbarRegistryError):
    """Raised when the configuration backend cannot serve a request."""


class NotFoundError(BackendError):
    """Raised by a backend when the requested record does not exist."""

    def __init__(self, kind: str, name: str):
        super().__init__(
            message=f"{kind} not found: {name}",
            details={"kind": kind, "name": name},
        )


class TransportError(BackendError):
    """Raised when the backend is unreachable or answers with a protocol fault."""

    def __init__(self, operation: str, reason: Optional[str] = None):
        message = f"Backend {operation} failed"
        if reason:
            message += f": {reason}"
        super().__init__(
            message=message, details={"operation": operation, "reason": reason}
        )


class LockError(CrowbarRegistryError):
    """Raised when a named lock cannot be acquired or released."""


class LockTimeoutError(LockError):
    """Raised when a named lock is still held elsewhere after the timeout."""

    def __init__(self, name: str, timeout: float):
        super().__init__(
            message=f"Timed out after {timeout:g}s waiting for lock '{name}'",
            details={"name": name, "timeout": timeout},
        )


class RevisionConflictError(CrowbarRegistryError):
    """Raised when a compare-and-swap save finds a revision it did not expect."""

    def __init__(
        self,
        role_name: str,
        barclamp: str,
        expected: Optional[int],
        observed: Optional[int],
    ):
        super().__init__(
            message=(
                f"Revision conflict on role {role_name} ({barclamp}): "
                f"expected {expected}, found {observed}"
            ),
            details={
                "role": role_name,
                "barclamp": barclamp,
                "expected": expected,
                "observed": observed,
            },
        )


class RepositoryNotFoundError(CrowbarRegistryError):
    """Raised when a (platform, id) pair is not in the merged catalog."""

    def __init__(self, platform: str, repo_id: str):
        super().__init__(
            message=f"Unknown repository {repo_id} on platform {platform}",
            details={"platform": platform, "id": repo_id},
        )
