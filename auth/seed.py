"""
auth/seed.py -- Bootstrap admin provisioning.

The bootstrap account is created with a hash generated here from the
configured SEED_ADMIN_PASSWORD -- never from a literal hash string. While
the stored admin password is still the documented default, a warning is
logged on every startup. Rotating it with `python main.py set-password`
silences the warning whatever SEED_ADMIN_PASSWORD says.
"""

from __future__ import annotations

import logging

from sqlalchemy.exc import IntegrityError

from auth.models import ROLE_ADMIN, User
from auth.store import UserStore
from auth.tokens import hash_password, verify_password
from core.config import DEFAULT_ADMIN_PASSWORD, Settings

logger = logging.getLogger("admindesk.auth")


def _warn_default_password(username: str) -> None:
    logger.warning(
        "Bootstrap admin uses the documented default password. "
        "Rotate it with: python main.py set-password %s",
        username,
    )


def ensure_default_admin(store: UserStore, settings: Settings) -> bool:
    """Create the bootstrap admin if its username is free. Returns True if created.

    Safe to call on every startup. Two processes racing here both pass the
    lookup; the UNIQUE constraint makes one insert fail with IntegrityError,
    which is treated as "already provisioned".
    """
    username = settings.seed_admin_username
    existing = store.get_by_username(username)
    if existing is not None:
        if verify_password(DEFAULT_ADMIN_PASSWORD, existing.hashed_password or ""):
            _warn_default_password(username)
        return False

    admin = User(
        username=username,
        email=settings.seed_admin_email,
        role=ROLE_ADMIN,
        hashed_password=hash_password(settings.seed_admin_password),
    )
    try:
        store.create_user(admin)
    except IntegrityError:
        return False
    logger.info("Bootstrap admin %r created", username)
    if settings.seed_admin_password == DEFAULT_ADMIN_PASSWORD:
        _warn_default_password(username)
    return True
