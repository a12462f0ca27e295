from __future__ import annotations

import logging
from typing import Callable, Optional

from sqlalchemy.exc import SQLAlchemyError

from ..extensions import db
from ..models.block import Block
from .errors import StorageError

logger = logging.getLogger(__name__)

# Full editor catalog. Default blocks are available to everyone; the rest are
# unlocked by scanning.
INITIAL_BLOCKS = [
    # Logic
    {"id": "controls_if", "name": "if / else", "category": "Logic", "icon": "bi-braces", "isDefaultBlock": True},
    {"id": "logic_compare", "name": "compare", "category": "Logic", "icon": "bi-braces", "isDefaultBlock": True},
    {"id": "logic_operation", "name": "and / or", "category": "Logic", "icon": "bi-braces", "isDefaultBlock": False},
    {"id": "logic_negate", "name": "not", "category": "Logic", "icon": "bi-braces", "isDefaultBlock": False},
    {"id": "logic_boolean", "name": "true / false", "category": "Logic", "icon": "bi-braces", "isDefaultBlock": True},
    # Loops
    {"id": "controls_repeat_ext", "name": "repeat", "category": "Loops", "icon": "bi-arrow-repeat", "isDefaultBlock": True},
    {"id": "controls_whileUntil", "name": "while / until", "category": "Loops", "icon": "bi-arrow-repeat", "isDefaultBlock": False},
    {"id": "controls_for", "name": "count with", "category": "Loops", "icon": "bi-arrow-repeat", "isDefaultBlock": False},
    {"id": "controls_forEach", "name": "for each", "category": "Loops", "icon": "bi-arrow-repeat", "isDefaultBlock": False},
    {"id": "controls_flow_statements", "name": "break / continue", "category": "Loops", "icon": "bi-arrow-repeat", "isDefaultBlock": False},
    # Math
    {"id": "math_number", "name": "number", "category": "Math", "icon": "bi-123", "isDefaultBlock": True},
    {"id": "math_arithmetic", "name": "+ - × ÷", "category": "Math", "icon": "bi-123", "isDefaultBlock": True},
    {"id": "math_single", "name": "sqrt, abs, ...", "category": "Math", "icon": "bi-123", "isDefaultBlock": False},
    {"id": "math_trig", "name": "sin, cos, tan", "category": "Math", "icon": "bi-123", "isDefaultBlock": False},
    {"id": "math_constant", "name": "π, e, ...", "category": "Math", "icon": "bi-123", "isDefaultBlock": False},
    {"id": "math_modulo", "name": "remainder of", "category": "Math", "icon": "bi-123", "isDefaultBlock": False},
    # Text
    {"id": "text", "name": "text", "category": "Text", "icon": "bi-chat-dots", "isDefaultBlock": True},
    {"id": "text_print", "name": "print", "category": "Text", "icon": "bi-chat-dots", "isDefaultBlock": True},
    {"id": "text_join", "name": "join", "category": "Text", "icon": "bi-chat-dots", "isDefaultBlock": False},
    {"id": "text_append", "name": "append text", "category": "Text", "icon": "bi-chat-dots", "isDefaultBlock": False},
    {"id": "text_length", "name": "length", "category": "Text", "icon": "bi-chat-dots", "isDefaultBlock": False},
    # Lists
    {"id": "lists_create_with", "name": "make list", "category": "Lists", "icon": "bi-list-ul", "isDefaultBlock": True},
    {"id": "lists_create_empty", "name": "empty list", "category": "Lists", "icon": "bi-list-ul", "isDefaultBlock": False},
    {"id": "lists_repeat", "name": "repeat item", "category": "Lists", "icon": "bi-list-ul", "isDefaultBlock": False},
    {"id": "lists_length", "name": "length", "category": "Lists", "icon": "bi-list-ul", "isDefaultBlock": False},
    {"id": "lists_isEmpty", "name": "is empty", "category": "Lists", "icon": "bi-list-ul", "isDefaultBlock": False},
    {"id": "lists_indexOf", "name": "find", "category": "Lists", "icon": "bi-list-ul", "isDefaultBlock": False},
    {"id": "lists_getIndex", "name": "get item", "category": "Lists", "icon": "bi-list-ul", "isDefaultBlock": False},
    # Variables
    {"id": "variables_get", "name": "get variable", "category": "Variables", "icon": "bi-box", "isDefaultBlock": True},
    {"id": "variables_set", "name": "set variable", "category": "Variables", "icon": "bi-box", "isDefaultBlock": True},
    # Functions
    {"id": "procedures_defnoreturn", "name": "define function", "category": "Functions", "icon": "bi-gear", "isDefaultBlock": False},
    {"id": "procedures_defreturn", "name": "function with return", "category": "Functions", "icon": "bi-gear", "isDefaultBlock": True},
    {"id": "procedures_ifreturn", "name": "if return", "category": "Functions", "icon": "bi-gear", "isDefaultBlock": True},
]

# Blocks the editor always needs; admins cannot make them QR-gated
ALWAYS_DEFAULT = frozenset({"variables_set", "procedures_defreturn", "procedures_ifreturn"})


def seed_blocks(progress: Optional[Callable[[int], None]] = None) -> dict:
    """Insert any catalog blocks that are missing.

    Existing rows are left alone so an admin's ``is_default_block`` choices
    survive re-running the migration. ``progress`` receives 0-100.
    """
    created = 0
    skipped = 0
    total = len(INITIAL_BLOCKS)
    try:
        existing = {b.id for b in Block.query.with_entities(Block.id).all()}
        for i, entry in enumerate(INITIAL_BLOCKS, start=1):
            if entry["id"] in existing:
                skipped += 1
            else:
                db.session.add(Block(
                    id=entry["id"],
                    name=entry["name"],
                    category=entry["category"],
                    icon=entry["icon"],
                    is_default_block=bool(entry["isDefaultBlock"]),
                ))
                created += 1
                logger.debug("Seeding block %s (%s)", entry["id"], entry["name"])
            if progress:
                progress(round(i * 100 / total))
        db.session.commit()
    except SQLAlchemyError as e:
        db.session.rollback()
        logger.error("Block migration failed: %s", e)
        raise StorageError("Block migration failed") from e

    defaults = sum(1 for b in INITIAL_BLOCKS if b["isDefaultBlock"])
    logger.info("Block migration done: %d created, %d already present", created, skipped)
    return {
        "total": total,
        "created": created,
        "skipped": skipped,
        "defaultBlocks": defaults,
        "qrBlocks": total - defaults,
    }


def sorted_blocks() -> list[Block]:
    blocks = Block.query.all()
    return sorted(blocks, key=lambda b: (b.category or "", b.name or ""))
