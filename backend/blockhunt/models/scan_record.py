from sqlalchemy import Index, func
from ..extensions import db
from .enums import BigIntPK


class ScanRecord(db.Model):
    __tablename__ = "scan_records"

    id = db.Column(BigIntPK, primary_key=True)
    user_id = db.Column(db.BigInteger, db.ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    qr_code_id = db.Column(db.String(64), nullable=False)
    block_id = db.Column(db.String(80), nullable=False)
    scanned_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=func.now())

    user = db.relationship("User", back_populates="scan_records")

    __table_args__ = (
        Index("idx_scan_records_user_scanned", "user_id", "scanned_at"),
    )
