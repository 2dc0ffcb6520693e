from __future__ import annotations

from datetime import datetime

import pytest

from src.badge_system.badge_system.badges.model import Badge
from src.badge_system.badge_system.core.enums import BadgeAction, RequestStatus, Role
from src.badge_system.badge_system.core.exceptions import (
    AuthorizationError,
    ConflictError,
    DataIntegrityError,
    ValidationError,
)
from src.badge_system.badge_system.requests.service import ModificationWorkflow

from tests.fakes import InMemoryBadges, InMemoryRequests, InMemoryUsers, make_user

ADMIN_ID = 9


def t(h, m=0, day=2):
    return datetime(2026, 3, day, h, m)


@pytest.fixture()
def env():
    badges = InMemoryBadges([Badge(badge_id=1, utilisateur_id=1, numero_badge="B001")])
    requests = InMemoryRequests(badges)
    users = InMemoryUsers([make_user(1), make_user(2), make_user(ADMIN_ID, role=Role.ADMIN)])
    workflow = ModificationWorkflow(requests, badges, users)
    entree = badges.add(1, BadgeAction.ENTREE, t(9))
    sortie = badges.add(1, BadgeAction.SORTIE, t(17))
    return workflow, badges, requests, entree, sortie


# -------- modifications --------


def test_reference_must_be_own_entry_event(env):
    workflow, _, _, entree, sortie = env

    for requester, ref in [(1, 999), (2, entree), (1, sortie)]:
        with pytest.raises(ValidationError) as exc:
            workflow.create_modification(requester_id=requester, entree_id=ref, pause_delta_minutes=15)
        assert exc.value.code == "invalid_entry_reference"


def test_request_identical_to_session_is_noop(env):
    workflow, _, _, entree, _ = env

    with pytest.raises(ValidationError) as exc:
        workflow.create_modification(
            requester_id=1,
            entree_id=entree,
            proposed_entree_ts=t(9),
            proposed_sortie_ts=t(17),
        )
    assert exc.value.code == "noop_request"


def test_exit_before_entry_is_invalid(env):
    workflow, _, _, entree, _ = env

    with pytest.raises(ValidationError) as exc:
        workflow.create_modification(requester_id=1, entree_id=entree, proposed_entree_ts=t(18))
    assert exc.value.code == "invalid_times"


def test_one_pending_request_per_session(env):
    workflow, _, _, entree, _ = env
    workflow.create_modification(requester_id=1, entree_id=entree, proposed_sortie_ts=t(18))

    with pytest.raises(ConflictError):
        workflow.create_modification(requester_id=1, entree_id=entree, proposed_sortie_ts=t(18, 30))


class RacingRequests(InMemoryRequests):
    """The pre-check sees nothing pending, but the store's unique index fires."""

    def has_pending_modification(self, entree_id):
        return False

    def has_pending_oubli(self, user_id, day):
        return False

    def create_modification(self, req):
        raise ConflictError("Une demande est déjà en attente pour cet élément")

    def create_oubli(self, req):
        raise ConflictError("Une demande est déjà en attente pour cet élément")


def test_store_unique_index_wins_a_pending_race(env):
    _, badges, _, entree, _ = env
    requests = RacingRequests(badges)
    workflow = ModificationWorkflow(requests, badges, InMemoryUsers([make_user(1)]))

    with pytest.raises(ConflictError):
        workflow.create_modification(requester_id=1, entree_id=entree, proposed_sortie_ts=t(18))
    with pytest.raises(ConflictError):
        workflow.create_oubli(user_id=1, date_heure_entree=t(8, day=3), date_heure_sortie=t(16, day=3), raison="x")

    assert requests.modifications == {}
    assert requests.oublis == {}


def test_modification_lifecycle(env):
    workflow, _, requests, entree, _ = env
    assert workflow.modification_status(entree).status == RequestStatus.NONE

    modif = workflow.create_modification(
        requester_id=1,
        entree_id=entree,
        proposed_sortie_ts=t(18),
        motif="  Réunion tardive ",
    )
    status = workflow.modification_status(entree)
    assert status.status == RequestStatus.PENDING
    assert status.request.motif == "Réunion tardive"
    assert status.request.proposed_entree_ts is None

    workflow.validate_modification(
        current_role=Role.ADMIN, validator_id=ADMIN_ID, modif_id=modif, approve=True, comment="ok"
    )
    status = workflow.modification_status(entree)
    assert status.status == RequestStatus.APPROVED
    assert status.validation.validateur_id == ADMIN_ID
    assert status.validation.commentaire == "ok"
    assert requests.list_pending_modifications() == []

    # a new request may follow a resolved one
    workflow.create_modification(requester_id=1, entree_id=entree, pause_delta_minutes=10)
    assert workflow.modification_status(entree).status == RequestStatus.PENDING


def test_only_admins_validate_and_never_their_own(env):
    workflow, badges, _, entree, _ = env
    modif = workflow.create_modification(requester_id=1, entree_id=entree, proposed_sortie_ts=t(18))

    with pytest.raises(AuthorizationError):
        workflow.validate_modification(current_role=Role.MANAGER, validator_id=2, modif_id=modif, approve=True)

    own_entry = badges.add(ADMIN_ID, BadgeAction.ENTREE, t(8, day=3))
    badges.add(ADMIN_ID, BadgeAction.SORTIE, t(16, day=3))
    own = workflow.create_modification(requester_id=ADMIN_ID, entree_id=own_entry, pause_delta_minutes=20)
    with pytest.raises(AuthorizationError):
        workflow.validate_modification(current_role=Role.ADMIN, validator_id=ADMIN_ID, modif_id=own, approve=True)


def test_resolved_or_missing_request_cannot_be_validated(env):
    workflow, _, _, entree, _ = env
    modif = workflow.create_modification(requester_id=1, entree_id=entree, proposed_sortie_ts=t(18))
    workflow.validate_modification(current_role=Role.ADMIN, validator_id=ADMIN_ID, modif_id=modif, approve=False)

    with pytest.raises(DataIntegrityError):
        workflow.validate_modification(current_role=Role.ADMIN, validator_id=ADMIN_ID, modif_id=modif, approve=True)
    with pytest.raises(DataIntegrityError):
        workflow.validate_modification(current_role=Role.ADMIN, validator_id=ADMIN_ID, modif_id=404, approve=True)


def test_lost_race_is_a_conflict(env):
    workflow, _, requests, entree, _ = env
    modif = workflow.create_modification(requester_id=1, entree_id=entree, proposed_sortie_ts=t(18))
    requests.decide_modification = lambda **kw: False

    with pytest.raises(ConflictError):
        workflow.validate_modification(current_role=Role.ADMIN, validator_id=ADMIN_ID, modif_id=modif, approve=True)


# -------- oublis --------


def _oubli(workflow, **kw):
    params = dict(
        user_id=1,
        date_heure_entree=t(8, day=4),
        date_heure_sortie=t(16, day=4),
        raison="Badge oublié",
    )
    params.update(kw)
    return workflow.create_oubli(**params)


def test_oubli_with_pause_appends_four_ordered_events(env):
    workflow, badges, requests, _, _ = env
    oid = _oubli(workflow, date_heure_pause_debut=t(12, day=4), date_heure_pause_fin=t(12, 30, day=4))

    ids = workflow.validate_oubli(current_role=Role.ADMIN, validator_id=ADMIN_ID, oubli_id=oid, approve=True)

    added = [badges.get_event(i) for i in ids]
    assert [e.type_action for e in added] == [
        BadgeAction.ENTREE,
        BadgeAction.PAUSE,
        BadgeAction.RETOUR,
        BadgeAction.SORTIE,
    ]
    assert [e.date_heure for e in added] == sorted(e.date_heure for e in added)
    assert all(e.commentaire == "Oubli de badgeage: Badge oublié" for e in added)
    assert all(e.code == "B001" for e in added)
    assert requests.get_oubli(oid).status == RequestStatus.APPROVED


def test_oubli_without_pause_appends_entry_and_exit(env):
    workflow, badges, _, _, _ = env
    oid = _oubli(workflow)

    ids = workflow.validate_oubli(current_role=Role.ADMIN, validator_id=ADMIN_ID, oubli_id=oid, approve=True)

    assert [badges.get_event(i).type_action for i in ids] == [BadgeAction.ENTREE, BadgeAction.SORTIE]


def test_rejected_oubli_writes_no_event(env):
    workflow, badges, requests, _, _ = env
    before = len(badges.events)
    oid = _oubli(workflow)

    assert workflow.validate_oubli(current_role=Role.ADMIN, validator_id=ADMIN_ID, oubli_id=oid, approve=False) == []
    assert len(badges.events) == before
    assert requests.get_oubli(oid).status == RequestStatus.REJECTED


def test_oubli_for_user_without_badge_is_not_approved(env):
    workflow, badges, requests, _, _ = env
    before = len(badges.events)
    oid = _oubli(workflow, user_id=2)

    with pytest.raises(DataIntegrityError):
        workflow.validate_oubli(current_role=Role.ADMIN, validator_id=ADMIN_ID, oubli_id=oid, approve=True)

    assert len(badges.events) == before
    assert requests.get_oubli(oid).status == RequestStatus.PENDING


def test_failed_event_write_leaves_request_pending():
    badges = InMemoryBadges([Badge(badge_id=1, utilisateur_id=1, numero_badge="B001")])
    requests = InMemoryRequests(badges, fail_event_insert=True)
    workflow = ModificationWorkflow(requests, badges, InMemoryUsers([make_user(1), make_user(ADMIN_ID, role=Role.ADMIN)]))
    oid = _oubli(workflow)

    with pytest.raises(RuntimeError):
        workflow.validate_oubli(current_role=Role.ADMIN, validator_id=ADMIN_ID, oubli_id=oid, approve=True)

    assert badges.events == []
    assert requests.get_oubli(oid).status == RequestStatus.PENDING


def test_one_pending_oubli_per_user_and_day(env):
    workflow, _, _, _, _ = env
    _oubli(workflow)

    with pytest.raises(ConflictError):
        _oubli(workflow, date_heure_entree=t(9, day=4), date_heure_sortie=t(17, day=4))
    _oubli(workflow, date_heure_entree=t(9, day=5), date_heure_sortie=t(17, day=5))


@pytest.mark.parametrize(
    "kw, code",
    [
        (dict(raison="   "), "missing_reason"),
        (dict(date_heure_sortie=t(7, day=4)), "invalid_times"),
        (dict(date_heure_sortie=t(9, day=5)), "invalid_times"),
        (dict(date_heure_pause_debut=t(12, day=4)), "invalid_times"),
        (dict(date_heure_pause_debut=t(12, day=4), date_heure_pause_fin=t(11, day=4)), "invalid_times"),
        (dict(date_heure_pause_debut=t(15, day=4), date_heure_pause_fin=t(17, day=4)), "invalid_times"),
    ],
)
def test_oubli_input_validation(env, kw, code):
    workflow, _, _, _, _ = env

    with pytest.raises(ValidationError) as exc:
        _oubli(workflow, **kw)
    assert exc.value.code == code


def test_oubli_already_resolved(env):
    workflow, _, _, _, _ = env
    oid = _oubli(workflow)
    workflow.validate_oubli(current_role=Role.ADMIN, validator_id=ADMIN_ID, oubli_id=oid, approve=False)

    with pytest.raises(DataIntegrityError):
        workflow.validate_oubli(current_role=Role.ADMIN, validator_id=ADMIN_ID, oubli_id=oid, approve=True)


def test_list_pending_groups_both_kinds(env):
    workflow, _, _, entree, _ = env
    workflow.create_modification(requester_id=1, entree_id=entree, pause_delta_minutes=5)
    _oubli(workflow)

    pending = workflow.list_pending()

    assert len(pending["modifications"]) == 1
    assert len(pending["oublis"]) == 1
