from __future__ import annotations

from datetime import date, datetime
from typing import Any, Optional, Sequence

from ..badges.model import NewBadgeEvent
from ..badges.mysql_badge_repository import INSERT_EVENT_SQL, event_params
from ..core.enums import RequestStatus
from ..core.exceptions import ConflictError
from ..database.connection import DatabaseConnection
from ..database.mysql_base import db_cursor, fetchall, fetchone, in_clause
from .model import (
    ModificationRequest,
    ModificationValidation,
    NewModificationRequest,
    NewOubliRequest,
    OubliRequest,
)
from .repository import RequestRepository

_MODIF_COLUMNS = """
    id, entree_id, utilisateur_id, proposed_entree_ts, proposed_sortie_ts,
    pause_delta_minutes, motif, commentaire, created_at, status
"""

_OUBLI_COLUMNS = """
    id, utilisateur_id, date_heure_saisie, date_heure_entree, date_heure_sortie,
    date_heure_pause_debut, date_heure_pause_fin, raison, commentaire, perte_badge,
    status, validateur_id, date_validation, validator_comment
"""


def _row_to_modification(r: dict[str, Any]) -> ModificationRequest:
    return ModificationRequest(
        modif_id=int(r["id"]),
        entree_id=int(r["entree_id"]),
        utilisateur_id=int(r["utilisateur_id"]),
        proposed_entree_ts=r.get("proposed_entree_ts"),
        proposed_sortie_ts=r.get("proposed_sortie_ts"),
        pause_delta_minutes=int(r.get("pause_delta_minutes") or 0),
        motif=r.get("motif"),
        commentaire=r.get("commentaire"),
        created_at=r["created_at"],
        status=RequestStatus(r["status"]),
    )


def _row_to_oubli(r: dict[str, Any]) -> OubliRequest:
    return OubliRequest(
        oubli_id=int(r["id"]),
        utilisateur_id=int(r["utilisateur_id"]),
        date_heure_saisie=r["date_heure_saisie"],
        date_heure_entree=r["date_heure_entree"],
        date_heure_sortie=r["date_heure_sortie"],
        date_heure_pause_debut=r.get("date_heure_pause_debut"),
        date_heure_pause_fin=r.get("date_heure_pause_fin"),
        raison=r["raison"],
        commentaire=r.get("commentaire"),
        perte_badge=bool(r.get("perte_badge")),
        status=RequestStatus(r["status"]),
        validateur_id=r.get("validateur_id"),
        date_validation=r.get("date_validation"),
        validator_comment=r.get("validator_comment"),
    )


def _fmt(value: Optional[datetime], pattern: str = "%Y-%m-%d %H:%M") -> str:
    return value.strftime(pattern) if value else "-"


class MySQLRequestRepository(RequestRepository):
    def __init__(self, conn_factory: DatabaseConnection):
        self._conn_factory = conn_factory

    # -------- Session modifications --------
    def create_modification(self, req: NewModificationRequest) -> int:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                INSERT INTO appbadge_session_modifs(
                    entree_id, utilisateur_id, proposed_entree_ts, proposed_sortie_ts,
                    pause_delta_minutes, motif, commentaire, status
                )
                VALUES(%s,%s,%s,%s,%s,%s,%s,%s)
                """,
                (
                    int(req.entree_id),
                    int(req.utilisateur_id),
                    req.proposed_entree_ts,
                    req.proposed_sortie_ts,
                    int(req.pause_delta_minutes),
                    req.motif,
                    req.commentaire,
                    RequestStatus.PENDING.value,
                ),
            )
            return int(cur.lastrowid)

    def get_modification(self, modif_id: int) -> Optional[ModificationRequest]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(f"SELECT {_MODIF_COLUMNS} FROM appbadge_session_modifs WHERE id=%s", (int(modif_id),))
            r = fetchone(cur)
            return _row_to_modification(r) if r else None

    def get_latest_modification(self, entree_id: int) -> Optional[ModificationRequest]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"""
                SELECT {_MODIF_COLUMNS} FROM appbadge_session_modifs
                WHERE entree_id=%s
                ORDER BY created_at DESC, id DESC
                LIMIT 1
                """,
                (int(entree_id),),
            )
            r = fetchone(cur)
            return _row_to_modification(r) if r else None

    def has_pending_modification(self, entree_id: int) -> bool:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                "SELECT 1 AS found FROM appbadge_session_modifs WHERE entree_id=%s AND status=%s LIMIT 1",
                (int(entree_id), RequestStatus.PENDING.value),
            )
            return fetchone(cur) is not None

    def get_validation(self, modif_id: int) -> Optional[ModificationValidation]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                SELECT modif_id, validateur_id, approuve, commentaire, validated_at
                FROM appbadge_session_modif_validations
                WHERE modif_id=%s
                """,
                (int(modif_id),),
            )
            r = fetchone(cur)
            if not r:
                return None
            return ModificationValidation(
                modif_id=int(r["modif_id"]),
                validateur_id=int(r["validateur_id"]),
                approuve=bool(r["approuve"]),
                commentaire=r.get("commentaire"),
                validated_at=r["validated_at"],
            )

    def list_approved_modifications(self, entree_ids: Sequence[int]) -> Sequence[ModificationRequest]:
        ids = [int(i) for i in entree_ids]
        if not ids:
            return []
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"""
                SELECT {_MODIF_COLUMNS} FROM appbadge_session_modifs
                WHERE status=%s AND entree_id IN ({in_clause(ids)})
                ORDER BY created_at ASC, id ASC
                """,
                tuple([RequestStatus.APPROVED.value] + ids),
            )
            return [_row_to_modification(r) for r in fetchall(cur)]

    def decide_modification(
        self,
        *,
        modif_id: int,
        validateur_id: int,
        approuve: bool,
        commentaire: Optional[str],
        validated_at: datetime,
    ) -> bool:
        status = RequestStatus.APPROVED if approuve else RequestStatus.REJECTED
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                "UPDATE appbadge_session_modifs SET status=%s WHERE id=%s AND status=%s",
                (status.value, int(modif_id), RequestStatus.PENDING.value),
            )
            if cur.rowcount == 0:
                return False
            cur.execute(
                """
                INSERT INTO appbadge_session_modif_validations(
                    modif_id, validateur_id, approuve, commentaire, validated_at
                )
                VALUES(%s,%s,%s,%s,%s)
                """,
                (int(modif_id), int(validateur_id), 1 if approuve else 0, commentaire, validated_at),
            )
            return True

    def list_pending_modifications(self, *, limit: int = 500) -> Sequence[dict]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                SELECT m.id, m.entree_id, m.utilisateur_id, u.nom, u.prenom, u.email,
                       b.date_heure AS entree_ts, b.lieux,
                       m.proposed_entree_ts, m.proposed_sortie_ts, m.pause_delta_minutes,
                       m.motif, m.commentaire, m.created_at
                FROM appbadge_session_modifs m
                JOIN appbadge_utilisateurs u ON u.id = m.utilisateur_id
                JOIN appbadge_badgeages b ON b.id = m.entree_id
                WHERE m.status=%s
                ORDER BY m.created_at ASC
                LIMIT %s
                """,
                (RequestStatus.PENDING.value, int(limit)),
            )
            out: list[dict] = []
            for r in fetchall(cur):
                out.append(
                    {
                        "modif_id": int(r["id"]),
                        "entree_id": int(r["entree_id"]),
                        "utilisateur_id": int(r["utilisateur_id"]),
                        "full_name": f"{r.get('prenom') or ''} {r.get('nom') or ''}".strip(),
                        "email": r.get("email") or "",
                        "entree_ts": _fmt(r.get("entree_ts")),
                        "lieux": r.get("lieux") or "",
                        "proposed_entree_ts": _fmt(r.get("proposed_entree_ts")),
                        "proposed_sortie_ts": _fmt(r.get("proposed_sortie_ts")),
                        "pause_delta_minutes": int(r.get("pause_delta_minutes") or 0),
                        "motif": r.get("motif") or "",
                        "commentaire": r.get("commentaire") or "",
                        "created_at": _fmt(r.get("created_at")),
                    }
                )
            return out

    # -------- Oublis --------
    def create_oubli(self, req: NewOubliRequest) -> int:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                INSERT INTO appbadge_oubli_badgeages(
                    utilisateur_id, date_heure_entree, date_heure_sortie,
                    date_heure_pause_debut, date_heure_pause_fin,
                    raison, commentaire, perte_badge, status
                )
                VALUES(%s,%s,%s,%s,%s,%s,%s,%s,%s)
                """,
                (
                    int(req.utilisateur_id),
                    req.date_heure_entree,
                    req.date_heure_sortie,
                    req.date_heure_pause_debut,
                    req.date_heure_pause_fin,
                    req.raison,
                    req.commentaire,
                    1 if req.perte_badge else 0,
                    RequestStatus.PENDING.value,
                ),
            )
            return int(cur.lastrowid)

    def get_oubli(self, oubli_id: int) -> Optional[OubliRequest]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(f"SELECT {_OUBLI_COLUMNS} FROM appbadge_oubli_badgeages WHERE id=%s", (int(oubli_id),))
            r = fetchone(cur)
            return _row_to_oubli(r) if r else None

    def has_pending_oubli(self, user_id: int, day: date) -> bool:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                SELECT 1 AS found FROM appbadge_oubli_badgeages
                WHERE utilisateur_id=%s AND DATE(date_heure_entree)=%s AND status=%s
                LIMIT 1
                """,
                (int(user_id), day, RequestStatus.PENDING.value),
            )
            return fetchone(cur) is not None

    def reject_oubli(
        self,
        *,
        oubli_id: int,
        validateur_id: int,
        commentaire: Optional[str],
        validated_at: datetime,
    ) -> bool:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                UPDATE appbadge_oubli_badgeages
                SET status=%s, validateur_id=%s, date_validation=%s, validator_comment=%s
                WHERE id=%s AND status=%s
                """,
                (
                    RequestStatus.REJECTED.value,
                    int(validateur_id),
                    validated_at,
                    commentaire,
                    int(oubli_id),
                    RequestStatus.PENDING.value,
                ),
            )
            return cur.rowcount > 0

    def approve_oubli(
        self,
        *,
        oubli_id: int,
        validateur_id: int,
        commentaire: Optional[str],
        validated_at: datetime,
        events: Sequence[NewBadgeEvent],
    ) -> list[int]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                UPDATE appbadge_oubli_badgeages
                SET status=%s, validateur_id=%s, date_validation=%s, validator_comment=%s
                WHERE id=%s AND status=%s
                """,
                (
                    RequestStatus.APPROVED.value,
                    int(validateur_id),
                    validated_at,
                    commentaire,
                    int(oubli_id),
                    RequestStatus.PENDING.value,
                ),
            )
            if cur.rowcount == 0:
                raise ConflictError("La demande a déjà été traitée")

            ids: list[int] = []
            for event in events:
                cur.execute(INSERT_EVENT_SQL, event_params(event))
                ids.append(int(cur.lastrowid))
            return ids

    def list_pending_oublis(self, *, limit: int = 500) -> Sequence[dict]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                SELECT o.id, o.utilisateur_id, u.nom, u.prenom, u.email,
                       o.date_heure_saisie, o.date_heure_entree, o.date_heure_sortie,
                       o.date_heure_pause_debut, o.date_heure_pause_fin,
                       o.raison, o.commentaire, o.perte_badge
                FROM appbadge_oubli_badgeages o
                JOIN appbadge_utilisateurs u ON u.id = o.utilisateur_id
                WHERE o.status=%s
                ORDER BY o.date_heure_saisie ASC
                LIMIT %s
                """,
                (RequestStatus.PENDING.value, int(limit)),
            )
            out: list[dict] = []
            for r in fetchall(cur):
                out.append(
                    {
                        "oubli_id": int(r["id"]),
                        "utilisateur_id": int(r["utilisateur_id"]),
                        "full_name": f"{r.get('prenom') or ''} {r.get('nom') or ''}".strip(),
                        "email": r.get("email") or "",
                        "date_heure_saisie": _fmt(r.get("date_heure_saisie")),
                        "date_heure_entree": _fmt(r.get("date_heure_entree")),
                        "date_heure_sortie": _fmt(r.get("date_heure_sortie")),
                        "date_heure_pause_debut": _fmt(r.get("date_heure_pause_debut")),
                        "date_heure_pause_fin": _fmt(r.get("date_heure_pause_fin")),
                        "raison": r.get("raison") or "",
                        "commentaire": r.get("commentaire") or "",
                        "perte_badge": bool(r.get("perte_badge")),
                    }
                )
            return out
