from __future__ import annotations

from typing import Optional, Protocol, Sequence

from ..core.enums import Role
from .model import Profile


class ProfileRepository(Protocol):
    """Persistence interface for profiles.

    Services depend on this protocol, never on a concrete database.
    """

    def get_by_id(self, profile_id: int) -> Optional[Profile]:
        raise NotImplementedError

    def get_by_email(self, email: str) -> Optional[Profile]:
        raise NotImplementedError

    def create(self, *, email: str, name: str, company: Optional[str], role: Role, password_hash: str) -> int:
        raise NotImplementedError

    def update_role(self, profile_id: int, *, role: Role) -> bool:
        raise NotImplementedError

    def set_active(self, profile_id: int, *, is_active: bool) -> bool:
        raise NotImplementedError

    def list_all(self) -> Sequence[Profile]:
        raise NotImplementedError
