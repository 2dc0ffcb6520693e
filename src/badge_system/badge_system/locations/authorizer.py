from __future__ import annotations

import logging
import threading
import time
from typing import Callable, Optional, Sequence

from ..core.constants import DEFAULT_SITES_CACHE_SECONDS
from .model import AuthorizedSite, LocationVerdict
from .repository import LocationRepository

logger = logging.getLogger(__name__)


def _octets(address: str) -> Optional[list[str]]:
    parts = address.strip().split(".")
    if len(parts) != 4 or not all(p.isdigit() for p in parts):
        return None
    return [str(int(p)) for p in parts]


def _prefix(entry: str) -> Optional[tuple[list[str], int]]:
    """Split 'a.b.c.d/m' into (octets, mask); None for plain addresses or bad masks."""
    if "/" not in entry:
        return None
    base, _, mask = entry.partition("/")
    octets = _octets(base)
    if octets is None or not mask.strip().isdigit():
        return None
    return octets, int(mask)


def match_site(address: str, sites: Sequence[AuthorizedSite]) -> Optional[AuthorizedSite]:
    """Exact match first, then whole-octet prefix match (longest mask wins).

    /24 compares 3 octets, /16 two, /8 one; masks below /8 never match.
    """

    address = (address or "").strip()
    for site in sites:
        if site.address == address:
            return site

    caller = _octets(address)
    if caller is None:
        return None

    candidates: list[tuple[int, int, AuthorizedSite]] = []
    for index, site in enumerate(sites):
        parsed = _prefix(site.address)
        if not parsed:
            continue
        octets, mask = parsed
        width = min(mask // 8, 4)
        if width == 0:
            continue
        if caller[:width] == octets[:width]:
            candidates.append((-mask, index, site))

    if not candidates:
        return None
    candidates.sort(key=lambda c: (c[0], c[1]))
    return candidates[0][2]


def welcome_message(site_name: Optional[str] = None) -> str:
    if site_name:
        return f"Bienvenue au kit de badgeage - {site_name}"
    return "Bienvenue au kit de badgeage"


class LocationAuthorizer:
    """Decides whether the caller's network position is a known site.

    Any lookup failure fails open (authorized, no site) so that an outage of
    the store never blocks badging. The site table is re-read at most every
    `sites_ttl` seconds; `refresh()` forces the next lookup to hit the store.
    """

    def __init__(
        self,
        locations: LocationRepository,
        *,
        address_provider: Optional[Callable[[], str]] = None,
        sites_ttl: float = DEFAULT_SITES_CACHE_SECONDS,
        clock: Callable[[], float] = time.monotonic,
    ):
        self._locations = locations
        self._address_provider = address_provider
        self._sites_ttl = float(sites_ttl)
        self._clock = clock
        self._lock = threading.Lock()
        self._sites: Optional[list[AuthorizedSite]] = None
        self._sites_loaded_at = 0.0
        self._address: Optional[str] = None

    def _authorized_sites(self) -> list[AuthorizedSite]:
        with self._lock:
            now = self._clock()
            if self._sites is None or now - self._sites_loaded_at >= self._sites_ttl:
                self._sites = list(self._locations.list_authorized_sites())
                self._sites_loaded_at = now
            return self._sites

    def authorize(self, address: str) -> LocationVerdict:
        try:
            sites = self._authorized_sites()
        except Exception:
            logger.warning("Authorized sites lookup failed for %s; failing open", address, exc_info=True)
            return LocationVerdict(authorized=True, address=address)

        site = match_site(address, sites)
        if site is None:
            return LocationVerdict(authorized=False, address=address)
        return LocationVerdict(
            authorized=True,
            site_name=site.site_name,
            latitude=site.latitude,
            longitude=site.longitude,
            address=address,
        )

    def current_verdict(self) -> LocationVerdict:
        """Verdict for the configured caller address; the address is resolved once."""
        if self._address is None:
            if self._address_provider is None:
                raise RuntimeError("No caller address provider configured")
            try:
                self._address = self._address_provider()
            except Exception:
                logger.warning("Caller address lookup failed; failing open", exc_info=True)
                return LocationVerdict(authorized=True)
        return self.authorize(self._address)

    def refresh(self) -> None:
        with self._lock:
            self._sites = None
        self._address = None
        logger.info("Authorized sites cache cleared")
