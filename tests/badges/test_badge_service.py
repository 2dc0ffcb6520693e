from __future__ import annotations

import threading
from datetime import datetime

import pytest

from src.badge_system.badge_system.badges.context import BadgeScanContext, ScanState
from src.badge_system.badge_system.badges.geolocation import Position
from src.badge_system.badge_system.badges.guard import SingleFlight
from src.badge_system.badge_system.badges.model import Badge
from src.badge_system.badge_system.badges.nfc import NfcReaderHandle
from src.badge_system.badge_system.badges.service import BadgeService
from src.badge_system.badge_system.container import assemble
from src.badge_system.badge_system.core.enums import BadgeAction, Role
from src.badge_system.badge_system.core.exceptions import ConflictError, DataIntegrityError, ValidationError
from src.badge_system.badge_system.locations.authorizer import LocationAuthorizer
from src.badge_system.badge_system.locations.model import AuthorizedSite, LocationVerdict

from tests.fakes import (
    InMemoryBadges,
    InMemoryLocations,
    InMemoryRequests,
    InMemorySchedules,
    InMemoryUsers,
    ScriptedReader,
    make_user,
)

NOW = datetime(2026, 3, 2, 8, 30)
KIOSK = AuthorizedSite(address="10.0.0.0/24", site_name="Kiosk A", latitude=48.85, longitude=2.35)


class FixedGps:
    def current_position(self):
        return Position(44.1234567, 5.7654321)


def _service(users, badges=None, *, guard=None, geolocation=None):
    badges = badges or InMemoryBadges()
    authorizer = LocationAuthorizer(InMemoryLocations([KIOSK]), address_provider=lambda: "10.0.0.7")
    return BadgeService(badges, InMemoryUsers(users), authorizer, guard=guard, geolocation=geolocation), badges


def test_on_site_scan_appends_event_and_updates_presence():
    service, badges = _service([make_user(1)])

    ctx = service.badge(1, now=NOW)

    assert ctx.state == ScanState.SUBMITTED
    assert ctx.badge_event_id == badges.events[0].badge_event_id
    ev = badges.events[0]
    assert ev.type_action == BadgeAction.ENTREE
    assert ev.lieux == "Kiosk A"
    assert ev.code == "B001"
    assert service._users.presence_updates == [(1, "Kiosk A", "Entré")]


def test_second_scan_follows_last_action():
    service, badges = _service([make_user(1)])

    service.badge(1, now=NOW)
    service.badge(1, now=NOW.replace(hour=17))

    assert [e.type_action for e in badges.events] == [BadgeAction.ENTREE, BadgeAction.SORTIE]


def test_fail_open_verdict_records_hors_site_presence():
    service, badges = _service([make_user(1)])

    service.badge(1, verdict=LocationVerdict(authorized=True), now=NOW)

    assert badges.events[0].lieux is None
    assert service._users.presence_updates[-1] == (1, "Hors site", "Entré")


def test_off_site_standard_uses_geolocation_provider():
    service, badges = _service([make_user(1)], geolocation=FixedGps())

    service.badge(
        1,
        verdict=LocationVerdict(authorized=False),
        action="entrée",
        comment="Visite client",
        now=NOW,
    )

    ev = badges.events[0]
    assert (ev.latitude, ev.longitude) == (44.1234567, 5.7654321)
    assert ev.commentaire == "Visite client"


def test_validation_failure_writes_nothing():
    service, badges = _service([make_user(1)])

    with pytest.raises(ValidationError):
        service.badge(1, verdict=LocationVerdict(authorized=False), action="entrée", now=NOW)

    assert badges.events == []
    assert service._users.presence_updates == []


def test_unknown_user_is_data_integrity_error():
    service, _ = _service([])

    with pytest.raises(DataIntegrityError):
        service.badge(42, now=NOW)


def test_user_without_any_badge_code_is_rejected():
    service, badges = _service([make_user(1, numero_badge=None)])

    with pytest.raises(DataIntegrityError):
        service.badge(1, now=NOW)
    assert badges.events == []


def test_badge_code_falls_back_to_active_badge():
    badges = InMemoryBadges([Badge(badge_id=9, utilisateur_id=1, numero_badge="NFC-9", uid_tag="04:AA")])
    service, _ = _service([make_user(1, numero_badge=None)], badges)

    service.badge(1, now=NOW)

    assert badges.events[0].code == "NFC-9"


def test_badge_from_tag_uses_the_tag_owner():
    badges = InMemoryBadges([Badge(badge_id=9, utilisateur_id=2, numero_badge="NFC-9", uid_tag="04:AA")])
    service, _ = _service([make_user(2)], badges)

    service.badge_from_tag("04:AA", now=NOW)

    assert badges.events[0].utilisateur_id == 2
    assert badges.events[0].code == "NFC-9"

    with pytest.raises(DataIntegrityError):
        service.badge_from_tag("FF:FF", now=NOW)


def test_scan_while_a_write_is_in_flight_is_ignored():
    guard = SingleFlight()
    service, badges = _service([make_user(1)], guard=guard)

    with guard.attempt(1) as acquired:
        assert acquired
        assert service.badge(1, now=NOW) is None

    assert badges.events == []
    assert service.badge(1, now=NOW) is not None


def test_concurrent_scans_produce_at_most_one_event():
    release = threading.Event()
    entered = threading.Event()

    class SlowBadges(InMemoryBadges):
        def append(self, event):
            entered.set()
            release.wait(2)
            return super().append(event)

    service, badges = _service([make_user(1)], SlowBadges())
    results = []
    first = threading.Thread(target=lambda: results.append(service.badge(1, now=NOW)))
    first.start()
    assert entered.wait(2)

    second = service.badge(1, now=NOW)
    release.set()
    first.join(2)

    assert second is None
    assert len(badges.events) == 1
    assert results[0].state == ScanState.SUBMITTED


def test_pending_write_does_not_block_another_user():
    release = threading.Event()
    entered = threading.Event()

    class SlowBadges(InMemoryBadges):
        def append(self, event):
            if event.utilisateur_id == 1:
                entered.set()
                release.wait(2)
            return super().append(event)

    service, badges = _service([make_user(1), make_user(2)], SlowBadges())
    first = threading.Thread(target=service.badge, args=(1,), kwargs={"now": NOW})
    first.start()
    assert entered.wait(2)

    other = service.badge(2, now=NOW)
    release.set()
    first.join(2)

    assert other is not None
    assert other.state == ScanState.SUBMITTED
    assert sorted(e.utilisateur_id for e in badges.events) == [1, 2]


def test_guard_keys_are_independent():
    guard = SingleFlight()

    with guard.attempt(1) as first:
        with guard.attempt(1) as again, guard.attempt(2) as other:
            assert first and other
            assert not again

    with guard.attempt(1) as released:
        assert released


def test_plan_for_reports_required_inputs():
    service, _ = _service([make_user(1, role=Role.STANDARD)])

    plan = service.plan_for(1, verdict=LocationVerdict(authorized=False))

    assert plan.needs_comment and plan.needs_gps and plan.needs_action_choice


def test_scan_context_rejects_illegal_transition():
    ctx = BadgeScanContext()

    with pytest.raises(ValidationError) as exc:
        ctx.submitted(1)
    assert exc.value.code == "illegal_transition"
    assert ctx.state == ScanState.IDLE


class SignallingBadges(InMemoryBadges):
    def __init__(self, badges=()):
        super().__init__(badges)
        self.appended = threading.Event()

    def append(self, event):
        eid = super().append(event)
        self.appended.set()
        return eid


def test_nfc_tap_is_badged_once():
    badges = SignallingBadges([Badge(badge_id=9, utilisateur_id=1, numero_badge="NFC-9", uid_tag="04:AA")])
    service, _ = _service([make_user(1)], badges)
    handle = NfcReaderHandle(ScriptedReader(["FF:FF", "04:AA"]))

    session = service.start_nfc_scan(handle, poll_timeout=0.05)
    assert badges.appended.wait(2)
    session.cancel(timeout=1)

    assert [(e.utilisateur_id, e.code) for e in badges.events] == [(1, "NFC-9")]
    assert handle.owner is None


def test_container_routes_reader_taps_to_badging():
    badges = SignallingBadges([Badge(badge_id=1, utilisateur_id=1, numero_badge="B001", uid_tag="04:AA")])
    container = assemble(
        users_repo=InMemoryUsers([make_user(1)]),
        badges_repo=badges,
        locations_repo=InMemoryLocations([AuthorizedSite(address="127.0.0.1", site_name="Kiosk A")]),
        schedules_repo=InMemorySchedules(),
        requests_repo=InMemoryRequests(badges),
        caller_address="127.0.0.1",
        nfc_reader=ScriptedReader(["04:AA"]),
    )

    session = container.start_nfc_scan(poll_timeout=0.05)
    try:
        assert badges.appended.wait(2)
        with pytest.raises(ConflictError):
            container.start_nfc_scan(poll_timeout=0.05)
    finally:
        session.cancel(timeout=1)

    assert len(badges.events) == 1
    assert badges.events[0].lieux == "Kiosk A"


def test_container_without_reader_cannot_scan():
    badges = InMemoryBadges()
    container = assemble(
        users_repo=InMemoryUsers(),
        badges_repo=badges,
        locations_repo=InMemoryLocations(),
        schedules_repo=InMemorySchedules(),
        requests_repo=InMemoryRequests(badges),
    )

    with pytest.raises(ConflictError) as exc:
        container.start_nfc_scan()
    assert exc.value.code == "nfc_unavailable"
