from sqlalchemy import func
from ..extensions import db
from .enums import BigIntPK, role_enum


class User(db.Model):
    __tablename__ = "users"

    id = db.Column(BigIntPK, primary_key=True)
    email = db.Column(db.String(255), unique=True, nullable=False)
    display_name = db.Column(db.String(120))
    role = db.Column(role_enum, nullable=False, server_default="user")
    password_hash = db.Column(db.Text)
    # Touched whenever the owned-block set changes
    blocks_updated_at = db.Column(db.DateTime(timezone=True))
    last_login_at = db.Column(db.DateTime(timezone=True))
    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=func.now())
    updated_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=func.now(), onupdate=func.now())

    owned_blocks = db.relationship(
        "UserBlock",
        back_populates="user",
        lazy=True,
        cascade="all, delete-orphan",
    )
    scan_records = db.relationship(
        "ScanRecord",
        back_populates="user",
        lazy=True,
        cascade="all, delete-orphan",
    )
    submissions = db.relationship(
        "Submission",
        back_populates="user",
        foreign_keys="Submission.user_id",
        lazy=True,
    )

    @property
    def is_admin(self) -> bool:
        return str(self.role or "").lower() == "admin"
