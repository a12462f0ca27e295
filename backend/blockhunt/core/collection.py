from __future__ import annotations

import logging
from datetime import datetime, timezone

from sqlalchemy import delete, func, select, update
from sqlalchemy.dialects.postgresql import insert as pg_insert
from sqlalchemy.dialects.sqlite import insert as sqlite_insert
from sqlalchemy.exc import IntegrityError, SQLAlchemyError

from ..extensions import db
from ..models.user import User
from ..models.user_block import UserBlock
from .errors import StorageError

logger = logging.getLogger(__name__)

_UPSERT_DIALECTS = {
    "postgresql": pg_insert,
    "sqlite": sqlite_insert,
}


class CollectionStore:
    """Reads and writes a user's owned-block set.

    Both mutations are idempotent: adding a present id and removing an absent
    id leave the set untouched. Database failures are rolled back and raised
    as :class:`StorageError`; nothing is retried here.
    """

    def __init__(self, session=None):
        self.session = session or db.session

    def owned_blocks(self, user_id: int) -> set[str]:
        try:
            rows = self.session.execute(
                select(UserBlock.block_id).where(UserBlock.user_id == user_id)
            ).scalars()
            return set(rows)
        except SQLAlchemyError as e:
            self._fail("read owned blocks", user_id, e)

    def count(self, user_id: int) -> int:
        try:
            n = self.session.execute(
                select(func.count(UserBlock.id)).where(UserBlock.user_id == user_id)
            ).scalar()
            return int(n or 0)
        except SQLAlchemyError as e:
            self._fail("count owned blocks", user_id, e)

    def add_block(self, user_id: int, block_id: str, qr_code_id: str | None = None, commit: bool = True) -> bool:
        """Add ``block_id`` to the set; return True only if it was not there yet."""
        try:
            inserted = self._insert_ignore(user_id, block_id, qr_code_id)
            if inserted:
                self._touch(user_id)
            if commit:
                self.session.commit()
            return inserted
        except SQLAlchemyError as e:
            self._fail("add block", user_id, e)

    def remove_block(self, user_id: int, block_id: str, commit: bool = True) -> bool:
        """Remove ``block_id`` from the set; return True only if it was there."""
        try:
            result = self.session.execute(
                delete(UserBlock).where(UserBlock.user_id == user_id, UserBlock.block_id == block_id)
            )
            removed = bool(result.rowcount)
            if removed:
                self._touch(user_id)
            if commit:
                self.session.commit()
            return removed
        except SQLAlchemyError as e:
            self._fail("remove block", user_id, e)

    def _insert_ignore(self, user_id: int, block_id: str, qr_code_id: str | None) -> bool:
        values = {"user_id": user_id, "block_id": block_id, "qr_code_id": qr_code_id}
        dialect = self.session.get_bind().dialect.name
        insert_fn = _UPSERT_DIALECTS.get(dialect)
        if insert_fn is not None:
            stmt = (
                insert_fn(UserBlock.__table__)
                .values(**values)
                .on_conflict_do_nothing(index_elements=["user_id", "block_id"])
            )
            return self.session.execute(stmt).rowcount == 1

        # Other backends: let the unique constraint arbitrate inside a savepoint
        try:
            with self.session.begin_nested():
                self.session.add(UserBlock(**values))
            return True
        except IntegrityError:
            return False

    def _touch(self, user_id: int) -> None:
        self.session.execute(
            update(User).where(User.id == user_id).values(blocks_updated_at=datetime.now(timezone.utc))
        )

    def _fail(self, action: str, user_id: int, exc: Exception):
        self.session.rollback()
        logger.error("Collection store failed to %s for user %s: %s", action, user_id, exc)
        raise StorageError() from exc
