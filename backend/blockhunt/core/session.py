from __future__ import annotations

from dataclasses import dataclass, field
from typing import Optional

from ..extensions import db
from ..models.user import User
from ..security import verify_token


@dataclass
class Session:
    """Who is making the current request.

    Built once per request by :func:`load_session` and handed to the code that
    needs it instead of being read from global state.
    """

    user_id: Optional[int] = None
    role: Optional[str] = None
    email: Optional[str] = None
    display_name: Optional[str] = None
    user: Optional[User] = field(default=None, repr=False)

    @property
    def is_authenticated(self) -> bool:
        return self.user_id is not None

    @property
    def is_admin(self) -> bool:
        return (self.role or "").lower() == "admin"


ANONYMOUS = Session()


def session_for_user(user: User | None, role_override: str | None = None) -> Session:
    if user is None:
        return Session()
    return Session(
        user_id=int(user.id),
        role=role_override or user.role,
        email=user.email,
        display_name=user.display_name,
        user=user,
    )


def load_session(authorization: str | None, dev_user_id: str | None = None, debug: bool = False) -> Session:
    """Resolve request credentials into a :class:`Session`.

    A bearer token always wins. With ``debug`` on, ``X-User-Id`` or
    ``Authorization: User <id>`` are accepted to simplify local testing.
    """
    uid: int | None = None
    role: str | None = None
    auth = authorization or ""
    if auth.lower().startswith("bearer "):
        uid, role = verify_token(auth[7:].strip())
    elif debug:
        raw = dev_user_id or ""
        if not raw and auth.lower().startswith("user "):
            raw = auth[5:].strip()
        if raw:
            try:
                cand = int(raw)
                if cand > 0:
                    uid = cand
            except ValueError:
                uid = None
    if uid is None:
        return Session()
    user = db.session.get(User, uid)
    # A token's role never elevates beyond what the stored user holds
    if user is not None and role and role != user.role:
        role = user.role
    return session_for_user(user, role)
