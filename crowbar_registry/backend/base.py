"""Backend contract shared by every configuration backend."""

from __future__ import annotations

from typing import Any, NamedTuple, Optional, Protocol


class SearchResult(NamedTuple):
    """Raw answer of a backend search.

    ``status`` is 0 when the search itself failed; ``rows`` is then
    meaningless and callers treat the result as empty.
    """

    rows: list[Any]
    total: int
    status: int

    @property
    def ok(self) -> bool:
        return self.status != 0


class ConfigBackend(Protocol):
    """Role and data bag storage.

    Implementations raise :class:`~crowbar_registry.errors.NotFoundError`
    for absent records and :class:`~crowbar_registry.errors.TransportError`
    for every other failure, except :meth:`load_data_bag` which answers
    ``{}`` when the bag cannot be read.
    """

    def load_role(self, name: str) -> dict: ...

    def search_roles(self, query: Optional[str] = None) -> SearchResult: ...

    def save_role(self, record: dict) -> None: ...

    def destroy_role(self, name: str) -> None: ...

    def load_data_bag(self, name: str) -> dict: ...
