import logging

from flask import current_app, request, jsonify, g
from sqlalchemy import func
from sqlalchemy.exc import SQLAlchemyError
from werkzeug.security import generate_password_hash, check_password_hash

from ...extensions import db
from ...models.user import User
from . import bp
from ...security import issue_token

logger = logging.getLogger(__name__)


def _json_error(message: str, status: int = 400):
    return jsonify({"error": message}), status


def _user_payload(user: User, token: str | None = None) -> dict:
    out = {
        "id": user.id,
        "email": user.email,
        "displayName": user.display_name,
        "role": user.role,
    }
    if token:
        out["token"] = token
    return out


@bp.post("/register")
def register():
    """Create a student (``user``) account.

    Body JSON: email, password (min 8), displayName. Passing ``role: admin``
    requires an authenticated admin or the ADMIN_INVITE_CODE.
    """
    data = request.get_json(silent=True) or {}

    email = (data.get("email") or "").strip().lower()
    display_name = (data.get("displayName") or data.get("display_name") or "").strip()
    password = data.get("password") or ""
    role = (data.get("role") or "user").strip().lower()

    if not email or "@" not in email:
        return _json_error("Valid email is required")
    if not display_name:
        return _json_error("Display name is required")
    if not password or len(password) < 8:
        return _json_error("Password must be at least 8 characters")
    if role not in ("user", "admin"):
        return _json_error("Invalid role")

    if role == "admin":
        sess = getattr(g, "session", None)
        provided = (request.headers.get("X-Admin-Invite") or data.get("invite") or "").strip()
        expected = current_app.config.get("ADMIN_INVITE_CODE") or ""
        invite_ok = bool(provided and expected and provided == expected)
        if not (sess and sess.is_admin) and not invite_ok:
            return _json_error("Admin registration not permitted", 403)

    if User.query.filter_by(email=email).first():
        return _json_error("Email already in use", 409)

    user = User(
        email=email,
        display_name=display_name,
        role=role,
        password_hash=generate_password_hash(password),
    )
    db.session.add(user)
    db.session.commit()
    logger.info("Registered %s account %s", role, user.id)

    token = issue_token(int(user.id), user.role or "user")
    return jsonify(_user_payload(user, token)), 201


@bp.post("/login")
def login():
    data = request.get_json(silent=True) or {}

    email = (data.get("email") or "").strip().lower()
    password = data.get("password") or ""

    if not email or "@" not in email:
        return _json_error("Valid email is required")
    if not password:
        return _json_error("Password is required")

    user = User.query.filter_by(email=email).first()
    if not user or not user.password_hash or not check_password_hash(user.password_hash, password):
        return _json_error("Invalid email or password", 401)

    # Update last login timestamp
    try:
        user.last_login_at = func.now()
        db.session.commit()
    except SQLAlchemyError as e:
        db.session.rollback()
        logger.warning("Could not record login time for user %s: %s", user.id, e)

    token = issue_token(int(user.id), user.role or "user")
    return jsonify(_user_payload(user, token))


@bp.get("/me")
def me():
    sess = getattr(g, "session", None)
    if not sess or not sess.is_authenticated or sess.user is None:
        return _json_error("Authentication required", 401)
    return jsonify({"user": _user_payload(sess.user)})
