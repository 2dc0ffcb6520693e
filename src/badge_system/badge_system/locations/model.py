from __future__ import annotations

from dataclasses import dataclass
from typing import Optional


@dataclass(frozen=True)
class AuthorizedSite:
    """One row of the authorization table: an address or CIDR range and its site."""

    address: str
    site_name: str
    latitude: Optional[float] = None
    longitude: Optional[float] = None


@dataclass(frozen=True)
class LocationVerdict:
    authorized: bool
    site_name: Optional[str] = None
    latitude: Optional[float] = None
    longitude: Optional[float] = None
    address: Optional[str] = None

    @property
    def has_site(self) -> bool:
        return self.authorized and self.site_name is not None
