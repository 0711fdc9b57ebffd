from __future__ import annotations

import pytest
from werkzeug.security import generate_password_hash

from src.shipyard_report.shipyard_report.core.enums import Permission, Role
from src.shipyard_report.shipyard_report.core.exceptions import AuthenticationError, AuthorizationError, ValidationError
from src.shipyard_report.shipyard_report.core.permissions import has_any_permission, has_permission
from src.shipyard_report.shipyard_report.users.service import AuthService, UserService
from tests.fakes import InMemoryProfiles, actor


def _register(svc: AuthService, email: str = "budi@yard.test", password: str = "secret123") -> int:
    return svc.register(email=email, name="Budi", company="PT Galangan", password=password, confirm_password=password)


def test_register_then_login():
    profiles = InMemoryProfiles()
    svc = AuthService(profiles)
    profile_id = _register(svc, email="Budi@Yard.test")

    user = svc.authenticate("budi@yard.test", "secret123")

    assert user.user_id == profile_id
    assert user.role == Role.OPERATION
    assert profiles.get_by_id(profile_id).password_hash != "secret123"


def test_wrong_password_and_inactive_account_fail_the_same_way():
    profiles = InMemoryProfiles()
    svc = AuthService(profiles)
    profile_id = _register(svc)

    with pytest.raises(AuthenticationError, match="Invalid email or password"):
        svc.authenticate("budi@yard.test", "wrong-pass")

    profiles.set_active(profile_id, is_active=False)
    with pytest.raises(AuthenticationError, match="Invalid email or password"):
        svc.authenticate("budi@yard.test", "secret123")


def test_placeholder_hash_never_matches():
    profiles = InMemoryProfiles()
    profiles.create(email="old@yard.test", name="Old", company=None, role=Role.ADMIN, password_hash="not-a-hash")
    with pytest.raises(AuthenticationError):
        AuthService(profiles).authenticate("old@yard.test", "not-a-hash")


@pytest.mark.parametrize(
    "kwargs",
    [
        {"email": "not-an-email", "password": "secret123", "confirm_password": "secret123"},
        {"email": "a@yard.test", "password": "123", "confirm_password": "123"},
        {"email": "a@yard.test", "password": "secret123", "confirm_password": "secret124"},
    ],
)
def test_register_validation(kwargs):
    with pytest.raises(ValidationError):
        AuthService(InMemoryProfiles()).register(name="A", company="", **kwargs)


def test_duplicate_email_is_rejected():
    svc = AuthService(InMemoryProfiles())
    _register(svc)
    with pytest.raises(ValidationError, match="already exists"):
        _register(svc)


def test_admin_cannot_grant_master():
    profiles = InMemoryProfiles()
    target = profiles.create(
        email="ops@yard.test", name="Ops", company=None, role=Role.OPERATION, password_hash=generate_password_hash("x")
    )
    admin = actor(Role.ADMIN, user_id=99)

    with pytest.raises(AuthorizationError):
        UserService(profiles).change_role(admin, profile_id=target, role="MASTER")

    UserService(profiles).change_role(admin, profile_id=target, role="FINANCE")
    assert profiles.get_by_id(target).role == Role.FINANCE


def test_users_cannot_change_their_own_account():
    profiles = InMemoryProfiles()
    own_id = profiles.create(email="m@yard.test", name="M", company=None, role=Role.MASTER, password_hash="x")
    with pytest.raises(ValidationError):
        UserService(profiles).set_active(actor(Role.MASTER, user_id=own_id), profile_id=own_id, is_active=False)


def test_role_permission_matrix():
    assert has_permission(Role.MASTER, Permission.MANAGE_USERS)
    assert has_permission("ADMIN", Permission.MANAGE_USERS)
    assert not has_permission(Role.ADMIN, Permission.CREATE_INVOICES)
    assert has_permission(Role.FINANCE, Permission.CREATE_INVOICES)
    assert not has_permission(Role.FINANCE, Permission.MANAGE_WORK_PROGRESS)
    assert has_permission(Role.PRODUCTION, Permission.VERIFY_WORK)
    assert not has_permission("CAPTAIN", Permission.VIEW_VESSELS)
    assert not has_permission(None, Permission.VIEW_VESSELS)
    assert has_any_permission(Role.FINANCE, [Permission.MANAGE_VESSELS, Permission.EXPORT_DATA])
