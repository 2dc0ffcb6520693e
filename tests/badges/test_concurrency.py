from __future__ import annotations

import threading
import time

import pytest

from src.badge_system.badge_system.badges.geolocation import Position, acquire_position, round_position
from src.badge_system.badge_system.badges.nfc import NfcReaderHandle, NfcScanSession
from src.badge_system.badge_system.core.exceptions import ConflictError, GeolocationUnavailableError

from tests.fakes import ScriptedReader


class SlowGps:
    def __init__(self, delay):
        self.delay = delay

    def current_position(self):
        time.sleep(self.delay)
        return Position(1.0, 2.0)


class BrokenGps:
    def current_position(self):
        raise OSError("permission denied")


def test_geolocation_times_out():
    started = time.monotonic()

    with pytest.raises(GeolocationUnavailableError):
        acquire_position(SlowGps(1.0), timeout=0.05)

    assert time.monotonic() - started < 0.9


def test_geolocation_success_and_errors():
    assert acquire_position(SlowGps(0), timeout=1.0) == Position(1.0, 2.0)

    with pytest.raises(GeolocationUnavailableError):
        acquire_position(BrokenGps(), timeout=1.0)
    with pytest.raises(GeolocationUnavailableError):
        acquire_position(None)


def test_round_position():
    assert round_position(Position(1.23456, 6.54321), 3) == Position(1.235, 6.543)
    assert round_position(Position(1.23456, 6.54321), None) == Position(1.23456, 6.54321)


def test_nfc_session_delivers_serials_until_cancelled():
    seen = []
    got_two = threading.Event()

    def on_tag(serial):
        seen.append(serial)
        if len(seen) == 2:
            got_two.set()

    handle = NfcReaderHandle(ScriptedReader(["04:A1", "04:B2"]))
    session = NfcScanSession(handle, on_tag, poll_timeout=0.05).start()

    assert got_two.wait(2)
    session.cancel(timeout=1)

    assert seen == ["04:A1", "04:B2"]
    assert not session.running
    assert handle.owner is None


def test_reader_is_exclusive_until_cancel():
    handle = NfcReaderHandle(ScriptedReader())
    first = NfcScanSession(handle, lambda s: None, poll_timeout=0.05).start()

    with pytest.raises(ConflictError):
        NfcScanSession(handle, lambda s: None, poll_timeout=0.05).start()

    first.cancel(timeout=1)

    with NfcScanSession(handle, lambda s: None, poll_timeout=0.05) as second:
        assert handle.owner is second
    assert handle.owner is None


def test_failing_handler_does_not_stop_the_loop():
    seen = []
    done = threading.Event()

    def on_tag(serial):
        if serial == "bad":
            raise RuntimeError("boom")
        seen.append(serial)
        done.set()

    handle = NfcReaderHandle(ScriptedReader(["bad", "good"]))
    session = NfcScanSession(handle, on_tag, poll_timeout=0.05).start()

    assert done.wait(2)
    session.cancel(timeout=1)
    assert seen == ["good"]
