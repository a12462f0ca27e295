from datetime import datetime, timedelta, timezone

import pytest
from werkzeug.security import generate_password_hash

from blockhunt import create_app
from blockhunt.core.catalog import seed_blocks
from blockhunt.extensions import db
from blockhunt.models.qr_code import QRCode
from blockhunt.models.user import User
from blockhunt.security import issue_token


@pytest.fixture
def app():
    app = create_app("testing")
    with app.app_context():
        db.create_all()
        seed_blocks()
        yield app
        db.session.remove()
        db.drop_all()


@pytest.fixture
def client(app):
    return app.test_client()


def _make_user(email: str, role: str = "user") -> User:
    u = User(
        email=email,
        display_name=email.split("@")[0],
        role=role,
        password_hash=generate_password_hash("correct-horse"),
    )
    db.session.add(u)
    db.session.commit()
    return u


@pytest.fixture
def student(app):
    return _make_user("student@example.com")


@pytest.fixture
def admin(app):
    return _make_user("instructor@example.com", role="admin")


@pytest.fixture
def auth_headers():
    def _headers(user: User) -> dict:
        return {"Authorization": f"Bearer {issue_token(int(user.id), user.role)}"}
    return _headers


@pytest.fixture
def make_code(app):
    def _make(code_id: str = "qr_1", block_id: str = "controls_if", is_active: bool = True,
              start: datetime | None = None, end: datetime | None = None) -> QRCode:
        row = QRCode(
            id=code_id,
            name=f"Code {code_id}",
            block_id=block_id,
            is_active=is_active,
            start_date=start,
            end_date=end,
        )
        db.session.add(row)
        db.session.commit()
        return row
    return _make


@pytest.fixture
def now():
    return datetime(2026, 10, 17, 12, 0, tzinfo=timezone.utc)


@pytest.fixture
def days():
    return lambda n: timedelta(days=n)
