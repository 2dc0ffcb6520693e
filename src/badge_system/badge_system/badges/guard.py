from __future__ import annotations

import threading
from contextlib import contextmanager
from typing import Hashable, Iterator


class SingleFlight:
    """At most one in-flight badge write per key.

    A second attempt for a key that is still being written is dropped, not
    queued. Attempts for other keys go through.
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._inflight: set = set()

    @contextmanager
    def attempt(self, key: Hashable) -> Iterator[bool]:
        with self._lock:
            acquired = key not in self._inflight
            if acquired:
                self._inflight.add(key)
        try:
            yield acquired
        finally:
            if acquired:
                with self._lock:
                    self._inflight.discard(key)
