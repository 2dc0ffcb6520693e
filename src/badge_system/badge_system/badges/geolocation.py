from __future__ import annotations

import logging
from concurrent.futures import ThreadPoolExecutor, TimeoutError as FutureTimeout
from dataclasses import dataclass
from typing import Optional, Protocol

from ..core.constants import DEFAULT_GEOLOCATION_TIMEOUT_SECONDS
from ..core.exceptions import GeolocationUnavailableError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Position:
    latitude: float
    longitude: float


class GeolocationProvider(Protocol):
    def current_position(self) -> Position:
        """Return a GPS fix or raise when none is available."""

        raise NotImplementedError


def round_position(position: Position, decimals: Optional[int]) -> Position:
    if decimals is None:
        return position
    return Position(latitude=round(position.latitude, decimals), longitude=round(position.longitude, decimals))


def acquire_position(
    provider: Optional[GeolocationProvider],
    *,
    timeout: float = DEFAULT_GEOLOCATION_TIMEOUT_SECONDS,
) -> Position:
    """Wait at most `timeout` seconds for a fix."""

    if provider is None:
        raise GeolocationUnavailableError("La géolocalisation n'est pas disponible")

    executor = ThreadPoolExecutor(max_workers=1, thread_name_prefix="geolocation")
    try:
        future = executor.submit(provider.current_position)
        try:
            return future.result(timeout=timeout)
        except FutureTimeout as e:
            logger.warning("Geolocation timed out after %.1fs", timeout)
            raise GeolocationUnavailableError("Impossible d'obtenir la position GPS (délai dépassé)") from e
        except GeolocationUnavailableError:
            raise
        except Exception as e:
            raise GeolocationUnavailableError(f"Impossible d'obtenir la position GPS : {e}") from e
    finally:
        # A hung provider must not block the caller past the timeout.
        executor.shutdown(wait=False, cancel_futures=True)
