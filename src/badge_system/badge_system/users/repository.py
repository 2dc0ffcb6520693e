from __future__ import annotations

from typing import Optional, Protocol, Sequence

from .model import User


class UserRepository(Protocol):
    """Repository interface for users.

    Services depend on this protocol, never on a concrete database.
    """

    def get_by_id(self, user_id: int) -> Optional[User]:
        raise NotImplementedError

    def list_active(self) -> Sequence[User]:
        raise NotImplementedError

    def update_presence(self, user_id: int, *, lieux: Optional[str], status: str) -> bool:
        """Side effect of a badge event: last site and live status."""

        raise NotImplementedError
