from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Optional

from flask import Blueprint, jsonify, current_app, request, send_file, g
from marshmallow import ValidationError

from ...extensions import db
from ...models.block import Block
from ...models.qr_code import QRCode
from ...schemas.qr_code import QRCodeCreateSchema, QRCodeUpdateSchema
from ...core.errors import StorageError
from ...core.qrcodes import (
    create_qr_code,
    create_test_qr_code,
    parse_window_bound,
    qr_payload_text,
    render_qr_png,
)
from ...core.resolver import as_utc, process_scan
from ..events.bus import publish as publish_event

logger = logging.getLogger(__name__)

bp = Blueprint("qrcodes", __name__, url_prefix="/qrcodes")

# HTTP status per scan error code
_SCAN_STATUS = {
    "invalid_payload": 400,
    "unknown_code": 404,
    "unknown_user": 404,
    "inactive_code": 403,
    "not_yet_active": 403,
    "expired_code": 410,
    "storage_error": 503,
}


def _json_error(message: str, status: int = 400):
    return jsonify({"error": message}), status


def _session():
    return getattr(g, "session", None)


def _is_admin() -> bool:
    sess = _session()
    return bool(sess and sess.is_admin)


def _iso(value: Optional[datetime]) -> Optional[str]:
    value = as_utc(value)
    return value.isoformat() if value else None


def _code_status(row: QRCode, now: datetime) -> str:
    end = as_utc(row.end_date)
    start = as_utc(row.start_date)
    if end is not None and end < now:
        return "expired"
    if not row.is_active:
        return "inactive"
    if start is not None and start > now:
        return "scheduled"
    return "active"


def _qr_to_dict(row: QRCode, now: datetime | None = None) -> dict:
    now = now or datetime.now(timezone.utc)
    return {
        "id": row.id,
        "name": row.name,
        "block": row.block_id,
        "blockName": row.block.name if row.block else None,
        "isActive": bool(row.is_active),
        "status": _code_status(row, now),
        "startDate": _iso(row.start_date),
        "endDate": _iso(row.end_date),
        "createdBy": row.created_by,
        "createdAt": _iso(row.created_at),
        "updatedAt": _iso(row.updated_at),
        "qrData": qr_payload_text(row),
    }


def _parse_bounds(data: dict) -> tuple[Optional[datetime], Optional[datetime]]:
    try:
        start = parse_window_bound(data.get("start_date"))
        end = parse_window_bound(data.get("end_date"), end=True)
    except ValueError:
        raise ValueError("Invalid date") from None
    if start and end and end < start:
        raise ValueError("endDate must not be before startDate")
    return start, end


@bp.post("")
def create_code():
    """Admin: create one QR code that grants a single block.

    Body JSON: { name, block, isActive?, startDate?, endDate? }
    Dates are ISO-8601; a plain end date includes that whole day.
    """
    if not _is_admin():
        return _json_error("Admin access required", 403)
    try:
        data = QRCodeCreateSchema().load(request.get_json(silent=True) or {})
    except ValidationError as e:
        return jsonify({"error": "Invalid QR code data", "details": e.messages}), 400
    try:
        start, end = _parse_bounds(data)
    except ValueError as e:
        return _json_error(str(e))

    block = db.session.get(Block, data["block"].strip())
    if not block:
        return _json_error("Block not found", 404)

    try:
        row = create_qr_code(
            name=data["name"].strip(),
            block_id=block.id,
            is_active=data["is_active"],
            start_date=start,
            end_date=end,
            created_by=_session().user_id,
        )
    except StorageError as e:
        return _json_error(e.message, 503)
    return jsonify({"qrcode": _qr_to_dict(row)}), 201


@bp.get("")
def list_codes():
    """Admin: all QR codes, newest first."""
    if not _is_admin():
        return _json_error("Admin access required", 403)
    rows = QRCode.query.order_by(QRCode.created_at.desc(), QRCode.id.desc()).all()
    now = datetime.now(timezone.utc)
    return jsonify({"qrcodes": [_qr_to_dict(r, now) for r in rows]})


@bp.get("/<string:code_id>")
def get_code(code_id: str):
    if not _is_admin():
        return _json_error("Admin access required", 403)
    row = db.session.get(QRCode, code_id)
    if not row:
        return _json_error("QR code not found", 404)
    return jsonify({"qrcode": _qr_to_dict(row)})


@bp.patch("/<string:code_id>")
def update_code(code_id: str):
    """Admin: rename, toggle or reschedule a QR code.

    Body JSON (all optional): { name, isActive, startDate, endDate }.
    Passing null for a date clears that bound.
    """
    if not _is_admin():
        return _json_error("Admin access required", 403)
    row = db.session.get(QRCode, code_id)
    if not row:
        return _json_error("QR code not found", 404)
    try:
        data = QRCodeUpdateSchema().load(request.get_json(silent=True) or {})
    except ValidationError as e:
        return jsonify({"error": "Invalid QR code data", "details": e.messages}), 400

    try:
        if "start_date" in data:
            row.start_date = parse_window_bound(data["start_date"])
        if "end_date" in data:
            row.end_date = parse_window_bound(data["end_date"], end=True)
    except ValueError:
        return _json_error("Invalid date")
    if row.start_date and row.end_date and as_utc(row.end_date) < as_utc(row.start_date):
        db.session.rollback()
        return _json_error("endDate must not be before startDate")
    if "name" in data:
        row.name = data["name"].strip()
    if "is_active" in data:
        row.is_active = data["is_active"]

    db.session.commit()
    logger.info("QR code %s updated by user %s: %s", code_id, _session().user_id, sorted(data))
    return jsonify({"qrcode": _qr_to_dict(row)})


@bp.delete("/<string:code_id>")
def delete_code(code_id: str):
    if not _is_admin():
        return _json_error("Admin access required", 403)
    row = db.session.get(QRCode, code_id)
    if not row:
        return _json_error("QR code not found", 404)
    db.session.delete(row)
    db.session.commit()
    logger.info("QR code %s deleted by user %s", code_id, _session().user_id)
    return jsonify({"deleted": code_id})


@bp.get("/<string:code_id>/image")
def qrcode_image(code_id: str):
    if not _is_admin():
        return _json_error("Admin access required", 403)
    # If code does not exist, 404 to avoid generating arbitrary QR
    row = db.session.get(QRCode, code_id)
    if not row:
        return _json_error("QR code not found", 404)
    size = request.args.get("size")
    try:
        box_size = max(1, min(20, int(size))) if size is not None else int(current_app.config.get("QR_BOX_SIZE", 10))
    except ValueError:
        box_size = 10
    buf = render_qr_png(qr_payload_text(row), box_size=box_size)
    return send_file(buf, mimetype="image/png", max_age=60, download_name=f"{row.id}.png")


@bp.post("/test")
def create_test_code():
    """Admin: (re)create the fixed development QR code."""
    if not _is_admin():
        return _json_error("Admin access required", 403)
    try:
        row = create_test_qr_code(created_by=_session().user_id)
    except StorageError as e:
        return _json_error(e.message, 503)
    return jsonify({"qrcode": _qr_to_dict(row)}), 201


@bp.post("/scan")
def scan():
    """Redeem scanned (or manually typed) QR text for the current user.

    Body JSON: { qrData: string }. The response is always a discriminated
    result: ``success`` plus either the unlock fields or an ``error`` object.
    """
    sess = _session()
    if not sess or not sess.is_authenticated:
        return _json_error("Authentication required", 401)
    data = request.get_json(silent=True) or {}
    text = data.get("qrData")
    if text is not None and not isinstance(text, str):
        text = None

    outcome = process_scan(int(sess.user_id), text)
    if not outcome.success:
        return jsonify(outcome.to_dict()), _SCAN_STATUS.get(outcome.error.code, 400)

    if outcome.result.is_new:
        publish_event(int(sess.user_id), {
            "type": "block_unlocked",
            "blockId": outcome.result.block_id,
            "qrId": outcome.result.qr_id,
            "totalOwnedCount": outcome.result.total_owned_count,
        })
    return jsonify(outcome.to_dict())
