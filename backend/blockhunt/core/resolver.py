from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Dict, Iterable, Optional

from sqlalchemy.exc import SQLAlchemyError

from ..extensions import db
from ..models.qr_code import QRCode
from ..models.scan_record import ScanRecord
from ..models.user import User
from .collection import CollectionStore
from .errors import (
    BlockHuntError,
    ExpiredCodeError,
    InactiveCodeError,
    NotYetActiveError,
    StorageError,
    UnknownCodeError,
    UnknownUserError,
)
from .payload import ScanPayload, parse_scan_payload

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class UnlockResult:
    is_new: bool
    block_id: str
    total_owned_count: int
    qr_id: str

    def to_dict(self) -> Dict[str, Any]:
        return {
            "isNew": self.is_new,
            "blockId": self.block_id,
            "totalOwnedCount": self.total_owned_count,
            "qrId": self.qr_id,
        }


@dataclass(frozen=True)
class ScanOutcome:
    """Discriminated result of a scan: either ``result`` or ``error`` is set."""

    success: bool
    result: Optional[UnlockResult] = None
    error: Optional[BlockHuntError] = None

    @property
    def message(self) -> str:
        if self.error is not None:
            return self.error.message
        if self.result is not None and not self.result.is_new:
            return "You already have this block!"
        return "New block unlocked!"

    def to_dict(self) -> Dict[str, Any]:
        out: Dict[str, Any] = {"success": self.success, "message": self.message}
        if self.result is not None:
            out.update(self.result.to_dict())
        if self.error is not None:
            out["error"] = self.error.to_dict()
        return out


def as_utc(value: datetime | None) -> datetime | None:
    # SQLite hands back naive datetimes; everything is stored in UTC
    if value is None:
        return None
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def check_code_window(code: QRCode, now: datetime) -> None:
    """Raise if ``code`` cannot be redeemed at ``now``.

    Expiry is checked before the active flag so an elapsed code reports as
    expired whatever its toggle says. Both window bounds are inclusive.
    """
    end = as_utc(code.end_date)
    if end is not None and end < now:
        raise ExpiredCodeError()
    if not code.is_active:
        raise InactiveCodeError()
    start = as_utc(code.start_date)
    if start is not None and start > now:
        raise NotYetActiveError()


def is_unlocked(block_id: str, owned: Iterable[str], is_default_block: bool) -> bool:
    """Editor predicate: a block is usable when it is default or owned."""
    if is_default_block:
        return True
    return block_id in set(owned or ())


class UnlockResolver:
    def __init__(self, store: CollectionStore | None = None, session=None):
        self.session = session or db.session
        self.store = store or CollectionStore(self.session)

    def _get_code(self, qr_id: str) -> Optional[QRCode]:
        try:
            return self.session.get(QRCode, qr_id)
        except SQLAlchemyError as e:
            self.session.rollback()
            logger.error("QR lookup failed for %s: %s", qr_id, e)
            raise StorageError() from e

    def _get_user(self, user_id: int) -> Optional[User]:
        try:
            return self.session.get(User, user_id)
        except SQLAlchemyError as e:
            self.session.rollback()
            logger.error("User lookup failed for %s: %s", user_id, e)
            raise StorageError() from e

    def resolve(self, user_id: int, payload: ScanPayload, now: datetime | None = None) -> UnlockResult:
        now = as_utc(now) or datetime.now(timezone.utc)

        code = self._get_code(payload.qr_id)
        if code is None:
            raise UnknownCodeError()
        check_code_window(code, now)

        if self._get_user(user_id) is None:
            raise UnknownUserError()

        block_id = code.block_id
        if payload.block and payload.block != block_id:
            logger.warning(
                "QR %s payload names block %s but the record grants %s; crediting the record",
                code.id, payload.block, block_id,
            )

        owned = self.store.owned_blocks(user_id)
        if block_id in owned:
            return UnlockResult(is_new=False, block_id=block_id, total_owned_count=len(owned), qr_id=code.id)

        inserted = self.store.add_block(user_id, block_id, qr_code_id=code.id, commit=False)
        try:
            if inserted:
                self.session.add(ScanRecord(user_id=user_id, qr_code_id=code.id, block_id=block_id, scanned_at=now))
            self.session.commit()
        except SQLAlchemyError as e:
            self.session.rollback()
            logger.error("Persisting unlock of %s for user %s failed: %s", block_id, user_id, e)
            raise StorageError() from e

        total = self.store.count(user_id)
        return UnlockResult(is_new=inserted, block_id=block_id, total_owned_count=total, qr_id=code.id)


def process_scan(user_id: int, text: str | bytes | None, now: datetime | None = None,
                 resolver: UnlockResolver | None = None) -> ScanOutcome:
    """Validate scanned text and resolve it, reporting failures as data."""
    try:
        payload = parse_scan_payload(text)
        result = (resolver or UnlockResolver()).resolve(user_id, payload, now=now)
    except BlockHuntError as e:
        level = logging.ERROR if isinstance(e, StorageError) else logging.INFO
        logger.log(level, "Scan rejected for user %s: %s (%s)", user_id, e.code, e.message)
        return ScanOutcome(success=False, error=e)

    logger.info(
        "Scan by user %s of %s: block %s %s (owned=%d)",
        user_id, result.qr_id, result.block_id,
        "unlocked" if result.is_new else "already owned", result.total_owned_count,
    )
    return ScanOutcome(success=True, result=result)
