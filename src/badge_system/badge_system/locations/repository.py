from __future__ import annotations

from typing import Protocol, Sequence

from .model import AuthorizedSite


class LocationRepository(Protocol):
    def list_authorized_sites(self) -> Sequence[AuthorizedSite]:
        """Rows that carry a network address, in table order."""

        raise NotImplementedError
