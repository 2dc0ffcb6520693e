"""Live user list kept current from store change notifications.

Notifications are pushed into a bounded queue by the subscription callback and
applied by a single consumer. Applying is idempotent and last-writer-wins per
user id, so duplicated or out-of-order notifications converge to the same
board.
"""

from __future__ import annotations

import logging
import queue
import threading
from dataclasses import dataclass, replace
from datetime import datetime
from typing import Any, Optional, Sequence

from ..core.constants import DEFAULT_PRESENCE_QUEUE_SIZE
from ..core.enums import ChangeKind
from ..core.exceptions import TransientIOError
from .model import User, status_sort_key, user_from_row

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class UserChange:
    kind: ChangeKind
    user_id: int
    committed_at: datetime
    row: Optional[dict[str, Any]] = None


@dataclass(frozen=True)
class _Entry:
    committed_at: datetime
    user: Optional[User]  # None = tombstone


class PresenceBoard:
    """Snapshot of active users, keyed by id.

    Every entry carries the store's own commit time: `updated_at` for snapshot
    rows, `commit_timestamp` for change notifications. Rows without one rank
    below any change.
    """

    def __init__(self, users: Sequence[User] = ()):
        self._entries: dict[int, _Entry] = {}
        self.loaded = False
        if users:
            self.load(users)

    def load(self, users: Sequence[User]) -> None:
        """Merge a full snapshot; entries already newer than a row are kept."""
        for u in users:
            stamp = u.updated_at or datetime.min
            current = self._entries.get(u.user_id)
            if current is None or stamp > current.committed_at:
                self._entries[u.user_id] = _Entry(stamp, u)
        self.loaded = True

    def apply(self, change: UserChange) -> bool:
        """Apply one change; returns False when it was stale or a duplicate."""
        current = self._entries.get(change.user_id)
        if current is not None and change.committed_at <= current.committed_at:
            logger.debug("Ignoring stale change %s for user %s", change.kind.value, change.user_id)
            return False

        if change.kind == ChangeKind.DELETE:
            self._entries[change.user_id] = _Entry(change.committed_at, None)
            return True

        row = dict(change.row or {})
        row.setdefault("id", change.user_id)
        # The notification's commit time stamps the entry.
        row.pop("updated_at", None)
        if change.kind == ChangeKind.UPDATE and current is not None and current.user is not None:
            # Partial rows keep the fields we already know.
            merged = {
                "id": current.user.user_id,
                "nom": current.user.nom,
                "prenom": current.user.prenom,
                "email": current.user.email,
                "role": current.user.role.value,
                "service": current.user.service,
                "lieux": current.user.lieux,
                "status": current.user.status,
                "numero_badge": current.user.numero_badge,
                "heures_contractuelles_semaine": current.user.heures_contractuelles_semaine,
                "actif": current.user.actif,
            }
            merged.update(row)
            row = merged

        user = replace(user_from_row(row), updated_at=change.committed_at)
        self._entries[change.user_id] = _Entry(change.committed_at, user if user.actif else None)
        return True

    def get(self, user_id: int) -> Optional[User]:
        entry = self._entries.get(int(user_id))
        return entry.user if entry else None

    def users(self) -> list[User]:
        live = [e.user for e in self._entries.values() if e.user is not None]
        return sorted(live, key=status_sort_key)


class PresenceFeed:
    """Bounded message channel between the store subscription and the board."""

    def __init__(self, board: PresenceBoard, *, maxsize: int = DEFAULT_PRESENCE_QUEUE_SIZE, put_timeout: float = 1.0):
        self._board = board
        self._queue: "queue.Queue[UserChange]" = queue.Queue(maxsize=int(maxsize))
        self._put_timeout = float(put_timeout)

    @property
    def board(self) -> PresenceBoard:
        return self._board

    def publish(self, change: UserChange) -> None:
        try:
            self._queue.put(change, timeout=self._put_timeout)
        except queue.Full as e:
            raise TransientIOError("File de notifications saturée") from e

    def drain(self) -> int:
        """Apply every queued change; returns how many were applied."""
        applied = 0
        while True:
            try:
                change = self._queue.get_nowait()
            except queue.Empty:
                return applied
            try:
                if self._board.apply(change):
                    applied += 1
            finally:
                self._queue.task_done()

    def run(self, stop: threading.Event, *, poll_interval: float = 0.5) -> None:
        """Consumer loop; returns once `stop` is set and the queue is empty."""
        while not stop.is_set() or not self._queue.empty():
            try:
                change = self._queue.get(timeout=poll_interval)
            except queue.Empty:
                continue
            try:
                self._board.apply(change)
            finally:
                self._queue.task_done()
