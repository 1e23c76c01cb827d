from __future__ import annotations

import logging
import re
from typing import Optional

from django.core.exceptions import PermissionDenied, ValidationError
from django.db import transaction

from .activity import log_activity
from .models import ActivityLog, User

logger = logging.getLogger(__name__)

LOGIN_ID_NOT_FOUND = 'User ID not found. Please check your User ID and try again.'
ACCOUNT_DISABLED = 'Your account has been disabled. Please contact the administrator.'
INVALID_PASSWORD = 'Invalid password. Please try again.'


class LoginError(Exception):
    def __init__(self, message: str, code: str):
        super().__init__(message)
        self.message = message
        self.code = code


def clean_login_name(name: str) -> str:
    cleaned = re.sub(r'\s+', '_', (name or '').strip().lower())
    return re.sub(r'[^a-z0-9_]', '', cleaned) or 'user'


def generate_login_id(name: str, role: str) -> str:
    """``<name>_<role>_<NN>`` where NN counts existing ids for the role."""
    base = clean_login_name(name)
    sequence = User.objects.filter(username__contains=f"_{role}_").count() + 1
    login_id = f"{base}_{role}_{sequence:02d}"
    while User.objects.filter(username=login_id).exists():
        sequence += 1
        login_id = f"{base}_{role}_{sequence:02d}"
    return login_id


def _require_admin(actor: Optional[User]) -> None:
    if not (actor and actor.is_authenticated and actor.is_admin):
        raise PermissionDenied('Only admins can manage user accounts.')


@transaction.atomic
def create_user(
    *,
    actor: Optional[User],
    name: str,
    email: str,
    password: str,
    role: str,
    phone: str = '',
    address: str = '',
    manager: Optional[User] = None,
) -> User:
    _require_admin(actor)
    missing = [label for label, value in (('name', name), ('email', email), ('password', password), ('role', role)) if not value]
    if missing:
        raise ValidationError({field: 'This field is required.' for field in missing})
    if role not in User.Roles.values:
        raise ValidationError({'role': f"Unknown role: {role}."})
    user = User(
        username=generate_login_id(name, role),
        name=name.strip(),
        email=email.strip(),
        phone=phone,
        address=address,
        role=role,
        manager=manager,
    )
    user.set_password(password)
    user.full_clean(exclude=['password'])
    user.save()
    logger.info('Created %s account %s', role, user.username)
    log_activity(
        actor=actor,
        module='users',
        action=ActivityLog.Action.CREATED,
        details=f"Created {role} account {user.username} for {user.display_name}",
    )
    return user


def set_user_status(user: User, status: str, *, actor: Optional[User]) -> User:
    _require_admin(actor)
    if status not in User.Status.values:
        raise ValidationError({'status': f"Unknown status: {status}."})
    if user.pk == actor.pk and status == User.Status.INACTIVE:
        raise ValidationError({'status': 'You cannot disable your own account.'})
    user.status = status
    user.save(update_fields=['status'])
    log_activity(
        actor=actor,
        module='users',
        action=ActivityLog.Action.UPDATED,
        details=f"Marked {user.username} as {user.get_status_display().lower()}",
    )
    return user


def toggle_user_status(user: User, *, actor: Optional[User]) -> User:
    target = User.Status.INACTIVE if user.status == User.Status.ACTIVE else User.Status.ACTIVE
    return set_user_status(user, target, actor=actor)


def reset_password(user: User, password: str, *, actor: Optional[User]) -> User:
    _require_admin(actor)
    if not password:
        raise ValidationError({'password': 'This field is required.'})
    user.set_password(password)
    user.save(update_fields=['password'])
    log_activity(
        actor=actor,
        module='users',
        action=ActivityLog.Action.UPDATED,
        details=f"Reset password for {user.username}",
    )
    return user


def check_credentials(login_id: str, password: str) -> User:
    """Resolve a login id and password to an active user or raise LoginError."""
    user = User.objects.filter(username__iexact=(login_id or '').strip()).first()
    if user is None:
        raise LoginError(LOGIN_ID_NOT_FOUND, 'login_id_not_found')
    if user.status != User.Status.ACTIVE:
        raise LoginError(ACCOUNT_DISABLED, 'account_disabled')
    if not user.check_password(password or ''):
        raise LoginError(INVALID_PASSWORD, 'invalid_password')
    return user
