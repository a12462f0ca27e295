from flask import Blueprint, Flask, g, request, current_app

from ...modules.auth import bp as auth_bp
from ...modules.blocks.routes import bp as blocks_bp
from ...modules.qrcodes.routes import bp as qrcodes_bp
from ...modules.users.routes import bp as users_bp
from ...modules.challenges.routes import questions_bp, submissions_bp
from ...modules.events.routes import bp as events_bp


def register_api(app: Flask) -> None:
    api_v1 = Blueprint("api_v1", __name__, url_prefix="/api/v1")

    # Build the explicit per-request session. In development (DEBUG=True) an
    # `X-User-Id` header or `Authorization: User <id>` is accepted as well;
    # otherwise only a signed bearer token issued by this app counts.
    @api_v1.before_request  # type: ignore
    def _load_session():  # pragma: no cover - simple request context helper
        from ...core.session import load_session
        sess = load_session(
            request.headers.get("Authorization"),
            dev_user_id=request.headers.get("X-User-Id"),
            debug=bool(current_app.config.get("DEBUG")),
        )
        g.session = sess  # type: ignore[attr-defined]
        g.current_user = sess.user  # type: ignore[attr-defined]
        g.current_user_id = sess.user_id  # type: ignore[attr-defined]

    @api_v1.teardown_request  # type: ignore
    def _drop_session(exc=None):  # pragma: no cover
        g.pop("session", None)

    # Mount feature blueprints
    api_v1.register_blueprint(auth_bp)
    api_v1.register_blueprint(blocks_bp)
    api_v1.register_blueprint(qrcodes_bp)
    api_v1.register_blueprint(users_bp)
    api_v1.register_blueprint(questions_bp)
    api_v1.register_blueprint(submissions_bp)
    api_v1.register_blueprint(events_bp)

    app.register_blueprint(api_v1)
