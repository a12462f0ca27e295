from __future__ import annotations

import io
import logging
import secrets
from datetime import date, datetime, time, timezone
from typing import Optional

import qrcode
from sqlalchemy.exc import SQLAlchemyError

from ..extensions import db
from ..models.block import Block
from ..models.qr_code import QRCode
from .errors import StorageError
from .payload import build_scan_payload
from .resolver import as_utc

logger = logging.getLogger(__name__)

TEST_QR_ID = "test_qr_123"
TEST_QR_BLOCK = "controls_if"


def parse_window_bound(value: str | None, end: bool = False) -> Optional[datetime]:
    """Parse an admin-supplied start/end date.

    Accepts ISO-8601 datetimes or plain dates. A plain end date covers the
    whole day. Raises ValueError on anything else.
    """
    if value is None:
        return None
    value = str(value).strip()
    if not value:
        return None
    if len(value) == 10:
        d = date.fromisoformat(value)
        return datetime.combine(d, time.max if end else time.min, tzinfo=timezone.utc)
    if value.endswith("Z"):
        value = value[:-1] + "+00:00"
    return as_utc(datetime.fromisoformat(value))


def _new_code_id() -> str:
    for _ in range(10):
        cand = "qr_" + secrets.token_urlsafe(8).replace("_", "").replace("-", "").lower()
        if not db.session.get(QRCode, cand):
            return cand
    # Fallback to longer code
    return "qr_" + secrets.token_urlsafe(12).replace("_", "").replace("-", "").lower()


def qr_payload_text(row: QRCode) -> str:
    return build_scan_payload(row.id, row.block_id, name=row.name, timestamp=as_utc(row.created_at))


def create_qr_code(name: str, block_id: str, is_active: bool = True, start_date: datetime | None = None,
                   end_date: datetime | None = None, created_by: int | None = None,
                   code_id: str | None = None) -> QRCode:
    """Create one QR record granting ``block_id``. Caller validates the block exists."""
    row = QRCode(
        id=code_id or _new_code_id(),
        name=name,
        block_id=block_id,
        is_active=is_active,
        start_date=start_date or datetime.now(timezone.utc),
        end_date=end_date,
        created_by=created_by,
    )
    try:
        db.session.add(row)
        db.session.commit()
    except SQLAlchemyError as e:
        db.session.rollback()
        logger.error("Creating QR code for block %s failed: %s", block_id, e)
        raise StorageError("Could not save the QR code") from e
    logger.info("QR code %s created for block %s", row.id, block_id)
    return row


def create_test_qr_code(created_by: int | None = None) -> QRCode:
    """Upsert the fixed development QR code that grants ``controls_if``."""
    if db.session.get(Block, TEST_QR_BLOCK) is None:
        from .catalog import seed_blocks
        seed_blocks()
    row = db.session.get(QRCode, TEST_QR_ID)
    if row is not None:
        row.is_active = True
        row.end_date = None
        db.session.commit()
        return row
    return create_qr_code(
        name="Test QR - Logic Block",
        block_id=TEST_QR_BLOCK,
        created_by=created_by,
        code_id=TEST_QR_ID,
    )


def render_qr_png(text: str, box_size: int = 10) -> io.BytesIO:
    qr = qrcode.QRCode(version=None, error_correction=qrcode.constants.ERROR_CORRECT_M, box_size=box_size, border=2)
    qr.add_data(text)
    qr.make(fit=True)
    img = qr.make_image(fill_color="black", back_color="white")
    buf = io.BytesIO()
    img.save(buf, format="PNG")
    buf.seek(0)
    return buf
