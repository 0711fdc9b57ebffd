from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Optional

from ..core.enums import Role


@dataclass(frozen=True)
class Profile:
    """Application user (domain entity, no DB access)."""

    id: int
    email: str
    name: str
    company: Optional[str]
    role: Role
    password_hash: str
    is_active: bool = True
    created_at: Optional[datetime] = None


@dataclass(frozen=True)
class Actor:
    """The logged-in user performing an operation.

    Built from the Flask session by controllers and passed down to services,
    which stamp `user_id` columns and write activity logs with it.
    """

    user_id: int
    name: str
    email: str
    role: Role
    ip_address: Optional[str] = None
    user_agent: Optional[str] = None
