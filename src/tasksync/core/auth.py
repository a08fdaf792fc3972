# src/tasksync/core/auth.py

from __future__ import annotations

import logging

from .errors import NotAuthenticatedError
from .ports import AuthProvider, CurrentUser

logger = logging.getLogger(__name__)


class StaticAuthProvider:
    """Auth provider for a worker acting as one configured account."""

    def __init__(self, user: CurrentUser | None = None) -> None:
        self._user = user

    @classmethod
    def from_settings(cls, settings) -> StaticAuthProvider:
        uid = (getattr(settings, "user_id", None) or "").strip()
        if not uid:
            return cls(None)
        return cls(
            CurrentUser(
                uid=uid,
                email=getattr(settings, "user_email", None),
                display_name=getattr(settings, "user_display_name", None),
            )
        )

    def current_user(self) -> CurrentUser | None:
        return self._user

    def sign_in(self, user: CurrentUser) -> None:
        self._user = user

    def sign_out(self) -> None:
        self._user = None


def require_user(auth: AuthProvider, action: str) -> CurrentUser:
    """Return the signed-in user or abort the action (logged, no retry)."""
    user = auth.current_user()
    if user is None:
        logger.error("%s aborted: no signed-in user", action)
        raise NotAuthenticatedError(f"{action} requires a signed-in user")
    return user
