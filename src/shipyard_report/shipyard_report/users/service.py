from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from typing import Optional, Sequence

from werkzeug.security import check_password_hash, generate_password_hash

from ..common.validators import optional_text, require_min_length, require_non_empty
from ..core.constants import MIN_PASSWORD_LENGTH
from ..core.enums import Permission, Role
from ..core.exceptions import AuthenticationError, AuthorizationError, NotFoundError, ValidationError
from ..core.permissions import has_permission
from .model import Actor, Profile
from .repository import ProfileRepository

logger = logging.getLogger(__name__)

_EMAIL_RE = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")

DEFAULT_ROLE = Role.OPERATION


@dataclass(frozen=True)
class SessionUser:
    """What we store into the Flask session after login."""

    user_id: int
    name: str
    email: str
    company: Optional[str]
    role: Role


def require_permission(actor: Actor, permission: Permission) -> None:
    if not has_permission(actor.role, permission):
        raise AuthorizationError("You do not have permission to perform this action")


class AuthService:
    """Use cases: login and self-registration."""

    def __init__(self, profiles: ProfileRepository):
        self._profiles = profiles

    def authenticate(self, email: str, password: str) -> SessionUser:
        email = (email or "").strip()
        profile = self._profiles.get_by_email(email) if email else None
        if not profile or not profile.is_active:
            raise AuthenticationError("Invalid email or password")

        try:
            ok = check_password_hash(profile.password_hash, password or "")
        except ValueError:
            # Placeholder or corrupted hashes never match.
            ok = False

        if not ok:
            logger.info("Failed login for %s", email)
            raise AuthenticationError("Invalid email or password")

        return SessionUser(
            user_id=profile.id,
            name=profile.name,
            email=profile.email,
            company=profile.company,
            role=profile.role,
        )

    def register(self, *, email: str, name: str, company: str, password: str, confirm_password: str) -> int:
        email = require_non_empty(email, "Email").lower()
        if not _EMAIL_RE.match(email):
            raise ValidationError("Email is invalid")
        name = require_non_empty(name, "Name")
        require_min_length(password, "Password", MIN_PASSWORD_LENGTH)
        if password != confirm_password:
            raise ValidationError("Passwords do not match")

        if self._profiles.get_by_email(email):
            raise ValidationError("An account with this email already exists")

        profile_id = self._profiles.create(
            email=email,
            name=name,
            company=optional_text(company),
            role=DEFAULT_ROLE,
            password_hash=generate_password_hash(password),
        )
        logger.info("Registered profile %s (%s)", profile_id, email)
        return profile_id


class UserService:
    """Use cases: manage accounts (MASTER / ADMIN)."""

    def __init__(self, profiles: ProfileRepository):
        self._profiles = profiles

    def list_users(self, actor: Actor) -> Sequence[Profile]:
        require_permission(actor, Permission.MANAGE_USERS)
        return self._profiles.list_all()

    def _get_other(self, actor: Actor, profile_id: int) -> Profile:
        require_permission(actor, Permission.MANAGE_USERS)
        profile = self._profiles.get_by_id(int(profile_id))
        if not profile:
            raise NotFoundError("User not found")
        if profile.id == actor.user_id:
            raise ValidationError("You cannot change your own account here")
        return profile

    def change_role(self, actor: Actor, *, profile_id: int, role: str) -> None:
        profile = self._get_other(actor, profile_id)
        try:
            new_role = Role(role)
        except ValueError:
            raise ValidationError("Unknown role")
        if new_role == Role.MASTER and actor.role != Role.MASTER:
            raise AuthorizationError("Only MASTER can grant the MASTER role")
        if not self._profiles.update_role(profile.id, role=new_role):
            raise ValidationError("Failed to update role")
        logger.info("Profile %s role %s -> %s by %s", profile.id, profile.role.value, new_role.value, actor.user_id)

    def set_active(self, actor: Actor, *, profile_id: int, is_active: bool) -> None:
        profile = self._get_other(actor, profile_id)
        if profile.role == Role.MASTER and actor.role != Role.MASTER:
            raise AuthorizationError("Only MASTER can deactivate a MASTER account")
        if not self._profiles.set_active(profile.id, is_active=is_active):
            raise ValidationError("Failed to update account")
        logger.info("Profile %s active=%s by %s", profile.id, is_active, actor.user_id)
