from sqlalchemy import Index, UniqueConstraint, func
from ..extensions import db
from .enums import BigIntPK


class UserBlock(db.Model):
    """One member of a user's owned-block set."""

    __tablename__ = "user_blocks"

    id = db.Column(BigIntPK, primary_key=True)
    user_id = db.Column(db.BigInteger, db.ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    block_id = db.Column(db.String(80), db.ForeignKey("blocks.id", ondelete="CASCADE"), nullable=False)
    qr_code_id = db.Column(db.String(64), db.ForeignKey("qr_codes.id", ondelete="SET NULL"))
    acquired_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=func.now())

    user = db.relationship("User", back_populates="owned_blocks")
    block = db.relationship("Block")

    __table_args__ = (
        UniqueConstraint("user_id", "block_id", name="uq_user_block"),
        Index("idx_user_blocks_user", "user_id"),
    )
