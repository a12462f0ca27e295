from sqlalchemy import func
from ..extensions import db
from .enums import block_category_enum


class Block(db.Model):
    """An editor capability that can be default or QR-gated."""

    __tablename__ = "blocks"

    id = db.Column(db.String(80), primary_key=True)
    name = db.Column(db.String(120), nullable=False)
    category = db.Column(block_category_enum, nullable=False)
    icon = db.Column(db.String(80))
    is_default_block = db.Column(db.Boolean, nullable=False, default=False, server_default="0")
    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=func.now())
    updated_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=func.now(), onupdate=func.now())

    qr_codes = db.relationship("QRCode", back_populates="block", lazy=True)
