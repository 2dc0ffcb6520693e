from __future__ import annotations

import logging
import threading
from typing import Callable, Optional, Protocol

from ..core.exceptions import ConflictError

logger = logging.getLogger(__name__)


class NfcReader(Protocol):
    def read_serial(self, timeout: float) -> Optional[str]:
        """Block up to `timeout` seconds; return a tag serial or None."""

        raise NotImplementedError


class NfcReaderHandle:
    """Exclusive ownership of the hardware reader."""

    def __init__(self, reader: NfcReader):
        self._reader = reader
        self._lock = threading.Lock()
        self._owner_lock = threading.Lock()
        self._owner: Optional["NfcScanSession"] = None

    @property
    def reader(self) -> NfcReader:
        return self._reader

    @property
    def owner(self) -> Optional["NfcScanSession"]:
        return self._owner

    def acquire(self, session: "NfcScanSession") -> None:
        if not self._lock.acquire(blocking=False):
            raise ConflictError("Le lecteur NFC est déjà utilisé par un autre scan")
        with self._owner_lock:
            self._owner = session

    def release(self, session: "NfcScanSession") -> None:
        with self._owner_lock:
            if self._owner is not session:
                return
            self._owner = None
            self._lock.release()


class NfcScanSession:
    """Cancellable background scan loop feeding tag serials to `on_tag`.

    Only one session can own the reader at a time; `cancel()` stops the loop
    and frees the reader for the next scan session.
    """

    def __init__(
        self,
        handle: NfcReaderHandle,
        on_tag: Callable[[str], None],
        *,
        poll_timeout: float = 0.5,
    ):
        self._handle = handle
        self._on_tag = on_tag
        self._poll_timeout = float(poll_timeout)
        self._cancelled = threading.Event()
        self._thread: Optional[threading.Thread] = None

    @property
    def running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    def start(self) -> "NfcScanSession":
        if self._thread is not None:
            raise ConflictError("Ce scan NFC a déjà été démarré")
        self._handle.acquire(self)
        self._thread = threading.Thread(target=self._loop, name="nfc-scan", daemon=True)
        self._thread.start()
        return self

    def cancel(self, *, timeout: Optional[float] = None) -> None:
        self._cancelled.set()
        if self._thread is not None and self._thread is not threading.current_thread():
            self._thread.join(timeout=timeout if timeout is not None else self._poll_timeout * 4)
        self._handle.release(self)

    def _loop(self) -> None:
        try:
            while not self._cancelled.is_set():
                serial = self._handle.reader.read_serial(self._poll_timeout)
                if self._cancelled.is_set():
                    break
                if not serial:
                    continue
                try:
                    self._on_tag(serial)
                except Exception:
                    # One bad tap must not kill the listener.
                    logger.exception("NFC tag handler failed for serial %s", serial)
        finally:
            self._handle.release(self)

    def __enter__(self) -> "NfcScanSession":
        return self.start()

    def __exit__(self, *exc) -> None:
        self.cancel()
