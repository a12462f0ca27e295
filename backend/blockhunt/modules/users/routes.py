from flask import Blueprint, jsonify, request, g

from ...extensions import db
from ...models.block import Block
from ...models.scan_record import ScanRecord
from ...models.user import User
from ...models.user_block import UserBlock
from ...core.collection import CollectionStore
from ...core.errors import StorageError


bp = Blueprint("users", __name__, url_prefix="/users")


def _json_error(message: str, status: int = 400):
    return jsonify({"error": message}), status


def _current_user_id() -> int | None:
    sess = getattr(g, "session", None)
    if not sess or not sess.is_authenticated:
        return None
    return int(sess.user_id)


def _user_to_dict(u: User) -> dict:
    return {
        "id": u.id,
        "email": u.email,
        "displayName": u.display_name,
        "role": u.role,
        "blocksUpdatedAt": u.blocks_updated_at.isoformat() if u.blocks_updated_at else None,
        "createdAt": u.created_at.isoformat() if u.created_at else None,
        "updatedAt": u.updated_at.isoformat() if u.updated_at else None,
    }


@bp.get("/me")
def get_me():
    uid = _current_user_id()
    if uid is None:
        return _json_error("Authentication required", 401)
    u = db.session.get(User, uid)
    if not u:
        return _json_error("User not found", 404)
    return jsonify({"user": _user_to_dict(u)})


@bp.patch("/me")
def update_me():
    uid = _current_user_id()
    if uid is None:
        return _json_error("Authentication required", 401)
    u = db.session.get(User, uid)
    if not u:
        return _json_error("User not found", 404)
    data = request.get_json(silent=True) or {}
    if "displayName" in data:
        v = (data.get("displayName") or "").strip()
        if not v:
            return _json_error("Display name is required")
        u.display_name = v
    db.session.commit()
    return jsonify({"user": _user_to_dict(u)})


@bp.get("/me/blocks")
def list_my_blocks():
    """Blocks the current user collected, most recent first."""
    uid = _current_user_id()
    if uid is None:
        return _json_error("Authentication required", 401)
    rows = (
        db.session.query(UserBlock, Block)
        .join(Block, Block.id == UserBlock.block_id)
        .filter(UserBlock.user_id == uid)
        .order_by(UserBlock.acquired_at.desc(), UserBlock.id.desc())
        .all()
    )
    blocks = [
        {
            "id": b.id,
            "name": b.name,
            "category": b.category,
            "icon": b.icon,
            "acquiredAt": ub.acquired_at.isoformat() if ub.acquired_at else None,
            "qrId": ub.qr_code_id,
        }
        for ub, b in rows
    ]
    return jsonify({"blocks": blocks, "total": len(blocks)})


@bp.delete("/me/blocks/<string:block_id>")
def remove_my_block(block_id: str):
    """Remove a collected block from the current user's set.

    This is the only way a block leaves the set; removing a block the user
    does not own is a no-op reported as ``removed: false``.
    """
    uid = _current_user_id()
    if uid is None:
        return _json_error("Authentication required", 401)
    store = CollectionStore()
    try:
        removed = store.remove_block(uid, block_id)
        total = store.count(uid)
    except StorageError as e:
        return _json_error(e.message, 503)
    return jsonify({"removed": removed, "blockId": block_id, "totalOwnedCount": total})


@bp.get("/me/scans")
def list_my_scans():
    uid = _current_user_id()
    if uid is None:
        return _json_error("Authentication required", 401)
    try:
        limit = min(max(int(request.args.get("limit", 50)), 1), 200)
    except ValueError:
        limit = 50
    rows = (
        ScanRecord.query.filter(ScanRecord.user_id == uid)
        .order_by(ScanRecord.scanned_at.desc(), ScanRecord.id.desc())
        .limit(limit)
        .all()
    )
    return jsonify({
        "scans": [
            {
                "qrCodeId": r.qr_code_id,
                "blockObtained": r.block_id,
                "scannedAt": r.scanned_at.isoformat() if r.scanned_at else None,
            }
            for r in rows
        ]
    })
