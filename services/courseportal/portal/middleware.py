"""Portal session middleware.

After `/login` the session holds a small payload: user id, email and role.
This middleware turns that payload into `request.portal_user` before any view
runs, so guards and views read one explicit object instead of poking at the
session themselves.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass

from .models import Role, User

logger = logging.getLogger(__name__)

SESSION_USER_KEY = "portal_user"

_SESSION_SKIP_PREFIXES = ("/static/",)
_SESSION_SKIP_EXACT = {"/healthz"}


@dataclass(frozen=True)
class SessionUser:
    """The authenticated identity carried by one browser session."""

    id: int
    email: str
    role: Role

    @property
    def is_admin(self) -> bool:
        return self.role.can_administer()

    @classmethod
    def from_user(cls, user: User) -> "SessionUser":
        role = user.role_enum
        if role is None:
            raise ValueError(f"user {user.id} has unknown role {user.role!r}")
        return cls(id=int(user.id), email=user.email, role=role)

    @classmethod
    def from_payload(cls, payload) -> "SessionUser | None":
        """Parse the session payload; anything malformed yields None."""
        if not isinstance(payload, dict):
            return None
        role = Role.parse(payload.get("role"))
        if role is None:
            return None
        try:
            user_id = int(payload.get("id") or 0)
        except (TypeError, ValueError):
            return None
        email = str(payload.get("email") or "").strip()
        if user_id <= 0 or not email:
            return None
        return cls(id=user_id, email=email, role=role)

    def to_payload(self) -> dict:
        return {"id": self.id, "email": self.email, "role": self.role.value}


def store_session_user(session, user: SessionUser) -> None:
    session[SESSION_USER_KEY] = user.to_payload()


def _clear_session_user(session) -> None:
    session.pop(SESSION_USER_KEY, None)


class PortalSessionMiddleware:
    """Attach `request.portal_user` (a SessionUser or None) to each request."""

    def __init__(self, get_response):
        self.get_response = get_response

    def __call__(self, request):
        request.portal_user = None
        path = (getattr(request, "path", "") or "").strip()
        if path in _SESSION_SKIP_EXACT or any(path.startswith(prefix) for prefix in _SESSION_SKIP_PREFIXES):
            return self.get_response(request)

        payload = request.session.get(SESSION_USER_KEY)
        if payload is not None:
            user = SessionUser.from_payload(payload)
            if user is None:
                # Unknown role or broken payload: never let it through.
                logger.warning("portal_session_payload_invalid")
                _clear_session_user(request.session)
            request.portal_user = user

        return self.get_response(request)
