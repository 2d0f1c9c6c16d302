"""
FILE: jedi_organizer/core/users.py
PURPOSE: Business logic layer for user accounts
EXPORTS:
  - create_user(email, first_name, last_name, ...) -> User
  - get_user(user_id) -> User
  - get_user_by_email(email) -> User
  - get_user_by_external_id(external_id) -> User
  - update_user(user_id, update) -> User
  - update_preferences(user_id, **changes) -> User
  - record_login(user_id) -> User
  - deactivate_user(user_id) / reactivate_user(user_id) -> User
  - upsert_from_external_identity(email, first_name, last_name, external_id, profile_image_url) -> User
  - list_active_users(), list_inactive_users(days_threshold), list_new_users(days_back)
  - count_users(), count_active_users()
  - delete_user(user_id) -> None
DEPENDENCIES:
  - jedi_organizer.core.repository (storage)
  - jedi_organizer.core.exceptions
  - logging, datetime (stdlib)
NOTES:
  - Emails are trimmed and lower-cased before storage and lookup
  - Deactivation is a soft delete (active flag); delete_user is permanent
  - Token issuance/OAuth handshakes happen elsewhere; this module only
    records the resulting identity
"""

import logging
from dataclasses import fields
from datetime import datetime, timedelta
from typing import List, Optional

from . import repository
from .constants import REMINDER_HOUR_MAX, REMINDER_HOUR_MIN
from .exceptions import UserNotFoundError, ValidationError
from .models import User, UserPreferences, UserUpdate

logger = logging.getLogger(__name__)


def _normalize_email(email: Optional[str]) -> str:
    if email is None or not email.strip():
        raise ValidationError("MISSING_EMAIL", "Email is required")
    email = email.strip().lower()
    if "@" not in email:
        raise ValidationError("INVALID_EMAIL", f"Invalid email address '{email}'")
    return email


def _display_name(first_name: Optional[str], last_name: Optional[str]) -> Optional[str]:
    name = " ".join(part for part in (first_name, last_name) if part)
    return name or None


def _load(user_id: int) -> User:
    user = repository.get_user(user_id) if user_id is not None else None
    if user is None:
        raise UserNotFoundError(user_id)
    return user


def create_user(
    email: str,
    first_name: Optional[str] = None,
    last_name: Optional[str] = None,
    display_name: Optional[str] = None,
    external_id: Optional[str] = None,
    profile_image_url: Optional[str] = None,
    preferences: Optional[UserPreferences] = None,
) -> User:
    """
    Create a new user.

    Raises:
        ValidationError: Missing/invalid email, or email already registered

    Notes:
        - display_name defaults to "first last"
        - created_at is set here; last_login_at stays empty until a login
    """
    email = _normalize_email(email)
    if repository.get_user_by_email(email):
        raise ValidationError("DUPLICATE_EMAIL", f"User with email {email} already exists")
    if external_id and repository.get_user_by_external_id(external_id):
        raise ValidationError(
            "DUPLICATE_EXTERNAL_ID", "External identity is already linked to another user"
        )

    user = User(
        email=email,
        first_name=first_name,
        last_name=last_name,
        display_name=display_name or _display_name(first_name, last_name),
        external_id=external_id,
        profile_image_url=profile_image_url,
        created_at=datetime.now(),
        preferences=preferences or UserPreferences(),
    )
    return repository.create_user(user)


def get_user(user_id: int) -> User:
    """
    Raises:
        UserNotFoundError: No user with this id
    """
    return _load(user_id)


def get_user_by_email(email: str) -> User:
    user = repository.get_user_by_email(_normalize_email(email))
    if user is None:
        raise UserNotFoundError(email)
    return user


def get_user_by_external_id(external_id: str) -> User:
    user = repository.get_user_by_external_id(external_id) if external_id else None
    if user is None:
        raise UserNotFoundError(external_id)
    return user


def update_user(user_id: int, update: UserUpdate) -> User:
    """
    Apply a partial profile update (UNSET fields are left alone).

    Notes:
        - Blank strings clear a field
        - A display name derived from the old first/last name follows a name
          change; an explicitly chosen one is kept
    """
    changes = {}
    for name, value in update.present().items():
        if value is not None and not isinstance(value, str):
            raise ValidationError("INVALID_PROFILE", f"{name} must be text")
        changes[name] = value.strip() or None if value is not None else None

    user = _load(user_id)
    derived = _display_name(user.first_name, user.last_name)
    for name, value in changes.items():
        setattr(user, name, value)
    renamed = "first_name" in changes or "last_name" in changes
    if renamed and "display_name" not in changes and user.display_name == derived:
        user.display_name = _display_name(user.first_name, user.last_name)
    return repository.update_user(user)


def update_preferences(user_id: int, **changes) -> User:
    """
    Change individual preferences.

    Raises:
        ValidationError: Unknown preference, value of the wrong type,
        max_daily_tasks < 1, or reflection_reminder_hour outside 0-23
    """
    known = {f.name: f.type for f in fields(UserPreferences)}
    unknown = sorted(set(changes) - set(known))
    if unknown:
        raise ValidationError("UNKNOWN_PREFERENCE", f"Unknown preference(s): {', '.join(unknown)}")
    for name, value in changes.items():
        if known[name] is bool and not isinstance(value, bool):
            raise ValidationError("INVALID_PREFERENCE", f"{name} must be true or false")
        if known[name] is str and (not isinstance(value, str) or not value.strip()):
            raise ValidationError("INVALID_PREFERENCE", f"{name} must be non-empty text")

    if "max_daily_tasks" in changes:
        value = changes["max_daily_tasks"]
        if isinstance(value, bool) or not isinstance(value, int) or value < 1:
            raise ValidationError("INVALID_PREFERENCE", "max_daily_tasks must be a positive integer")
    if "reflection_reminder_hour" in changes:
        value = changes["reflection_reminder_hour"]
        if (
            isinstance(value, bool)
            or not isinstance(value, int)
            or not REMINDER_HOUR_MIN <= value <= REMINDER_HOUR_MAX
        ):
            raise ValidationError(
                "INVALID_PREFERENCE",
                f"reflection_reminder_hour must be between {REMINDER_HOUR_MIN} and {REMINDER_HOUR_MAX}",
            )

    user = _load(user_id)
    for name, value in changes.items():
        setattr(user.preferences, name, value)
    return repository.update_user(user)


def record_login(user_id: int) -> User:
    user = _load(user_id)
    user.last_login_at = datetime.now()
    return repository.update_user(user)


def deactivate_user(user_id: int) -> User:
    """Soft delete: the account stays but is flagged inactive."""
    user = _load(user_id)
    user.active = False
    logger.info("Deactivated user %s", user_id)
    return repository.update_user(user)


def reactivate_user(user_id: int) -> User:
    user = _load(user_id)
    user.active = True
    logger.info("Reactivated user %s", user_id)
    return repository.update_user(user)


def upsert_from_external_identity(
    email: str,
    first_name: Optional[str],
    last_name: Optional[str],
    external_id: str,
    profile_image_url: Optional[str] = None,
) -> User:
    """
    Create or update a user after an external (OAuth) sign-in.

    Resolution order:
        1. A user already linked to external_id: refresh names, display
           name and image, record the login
        2. A user with the same email: link external_id, refresh the image,
           record the login
        3. Otherwise create a new user linked to external_id

    Raises:
        ValidationError: Missing external_id or invalid email
    """
    if not external_id:
        raise ValidationError("MISSING_EXTERNAL_ID", "External identity id is required")
    email = _normalize_email(email)
    now = datetime.now()

    user = repository.get_user_by_external_id(external_id)
    if user:
        user.first_name = first_name
        user.last_name = last_name
        user.display_name = _display_name(first_name, last_name)
        user.profile_image_url = profile_image_url
        user.last_login_at = now
        return repository.update_user(user)

    user = repository.get_user_by_email(email)
    if user:
        logger.info("Linking external identity to existing user %s", user.id)
        user.external_id = external_id
        user.profile_image_url = profile_image_url
        user.last_login_at = now
        return repository.update_user(user)

    user = User(
        email=email,
        first_name=first_name,
        last_name=last_name,
        display_name=_display_name(first_name, last_name),
        external_id=external_id,
        profile_image_url=profile_image_url,
        created_at=now,
        last_login_at=now,
    )
    return repository.create_user(user)


def _cutoff(days: int, label: str) -> datetime:
    if isinstance(days, bool) or not isinstance(days, int) or days < 0:
        raise ValidationError("INVALID_DAYS", f"{label} must be a non-negative integer")
    return datetime.now() - timedelta(days=days)


def list_active_users() -> List[User]:
    return repository.list_active_users()


def list_inactive_users(days_threshold: int) -> List[User]:
    """Users whose last login is older than days_threshold days."""
    return repository.list_users_last_login_before(_cutoff(days_threshold, "days_threshold"))


def list_new_users(days_back: int) -> List[User]:
    return repository.list_users_created_after(_cutoff(days_back, "days_back"))


def count_users() -> int:
    return repository.count_users()


def count_active_users() -> int:
    return repository.count_active_users()


def delete_user(user_id: int) -> None:
    """
    Delete a user permanently.

    Raises:
        UserNotFoundError: No user with this id
    """
    _load(user_id)
    repository.delete_user(user_id)
