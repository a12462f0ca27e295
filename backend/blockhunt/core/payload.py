from __future__ import annotations

import json
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Optional

from marshmallow import ValidationError

from ..schemas.scan_payload import PAYLOAD_TYPE, ScanPayloadSchema
from .errors import InvalidPayloadError

_schema = ScanPayloadSchema()


@dataclass(frozen=True)
class ScanPayload:
    qr_id: str
    block: str
    name: Optional[str] = None
    timestamp: Optional[datetime] = None


def _first_error(messages: dict) -> str:
    for field, errs in messages.items():
        msg = errs[0] if isinstance(errs, list) and errs else errs
        return f"{field}: {msg}"
    return "Invalid QR code format"


def parse_scan_payload(text: str | bytes | None) -> ScanPayload:
    """Parse decoded QR text into a :class:`ScanPayload`.

    Only the single-block form ``{"type": "blockhunt_blocks", "qrId", "block"}``
    is accepted; payloads carrying the legacy ``blocks`` array alone are
    rejected. Raises :class:`InvalidPayloadError` and never touches storage.
    """
    if isinstance(text, bytes):
        try:
            text = text.decode("utf-8")
        except UnicodeDecodeError:
            raise InvalidPayloadError("QR code is not valid UTF-8 text")
    text = (text or "").strip()
    if not text:
        raise InvalidPayloadError("QR code is empty")
    try:
        data = json.loads(text)
    except (ValueError, RecursionError):
        raise InvalidPayloadError()
    if not isinstance(data, dict):
        raise InvalidPayloadError()

    if data.get("type") == PAYLOAD_TYPE and "block" not in data and "blocks" in data:
        raise InvalidPayloadError("Multi-block QR codes are no longer supported; regenerate this code")

    try:
        loaded = _schema.load(data)
    except ValidationError as e:
        raise InvalidPayloadError(_first_error(e.messages))  # type: ignore[arg-type]

    ts = loaded.get("timestamp")
    if ts is not None and ts.tzinfo is None:
        ts = ts.replace(tzinfo=timezone.utc)
    return ScanPayload(
        qr_id=loaded["qr_id"].strip(),
        block=loaded["block"].strip(),
        name=loaded.get("name"),
        timestamp=ts,
    )


def build_scan_payload(qr_id: str, block_id: str, name: str | None = None, timestamp: datetime | None = None) -> str:
    """Return the JSON text to embed in a QR code image."""
    ts = timestamp or datetime.now(timezone.utc)
    body = {
        "type": PAYLOAD_TYPE,
        "qrId": qr_id,
        "block": block_id,
        "name": name,
        "timestamp": ts.isoformat(),
    }
    return json.dumps(body, separators=(",", ":"))
