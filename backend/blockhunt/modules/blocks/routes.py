from __future__ import annotations

import logging

from flask import Blueprint, jsonify, request, g

from ...extensions import db
from ...models.block import Block
from ...core.catalog import ALWAYS_DEFAULT, sorted_blocks
from ...core.collection import CollectionStore
from ...core.errors import StorageError
from ...core.resolver import is_unlocked

logger = logging.getLogger(__name__)

bp = Blueprint("blocks", __name__, url_prefix="/blocks")


def _json_error(message: str, status: int = 400):
    return jsonify({"error": message}), status


def _block_to_dict(b: Block) -> dict:
    return {
        "id": b.id,
        "name": b.name,
        "category": b.category,
        "icon": b.icon,
        "isDefaultBlock": bool(b.is_default_block),
        "updatedAt": b.updated_at.isoformat() if b.updated_at else None,
    }


@bp.get("")
def list_blocks():
    """Full catalog sorted by category, then name."""
    return jsonify({"blocks": [_block_to_dict(b) for b in sorted_blocks()]})


@bp.get("/toolbox")
def toolbox():
    """Catalog annotated with ``isUnlocked`` for the current user.

    The block editor shows a block in its toolbox when it is a default block
    or the user owns it.
    """
    sess = getattr(g, "session", None)
    if not sess or not sess.is_authenticated:
        return _json_error("Authentication required", 401)
    try:
        owned = CollectionStore().owned_blocks(int(sess.user_id))
    except StorageError as e:
        return jsonify({"error": e.message}), 503

    out = []
    for b in sorted_blocks():
        d = _block_to_dict(b)
        d["owned"] = b.id in owned
        d["isUnlocked"] = is_unlocked(b.id, owned, bool(b.is_default_block))
        out.append(d)
    return jsonify({"blocks": out, "ownedCount": len(owned)})


@bp.get("/<string:block_id>")
def get_block(block_id: str):
    b = db.session.get(Block, block_id)
    if not b:
        return _json_error("Block not found", 404)
    return jsonify({"block": _block_to_dict(b)})


@bp.patch("/<string:block_id>")
def update_block_settings(block_id: str):
    """Admin: toggle whether a block is available without scanning.

    Body JSON: { isDefaultBlock: bool }
    """
    sess = getattr(g, "session", None)
    if not sess or not sess.is_admin:
        return _json_error("Admin access required", 403)
    b = db.session.get(Block, block_id)
    if not b:
        return _json_error("Block not found", 404)

    data = request.get_json(silent=True) or {}
    if "isDefaultBlock" not in data or not isinstance(data.get("isDefaultBlock"), bool):
        return _json_error("isDefaultBlock (boolean) is required")
    value = data["isDefaultBlock"]
    if block_id in ALWAYS_DEFAULT and not value:
        return _json_error("This block is always available and cannot be QR-gated")

    b.is_default_block = value
    db.session.commit()
    logger.info("Block %s isDefaultBlock=%s set by user %s", block_id, value, sess.user_id)
    return jsonify({"block": _block_to_dict(b)})
