from __future__ import annotations

from flask import Blueprint, jsonify, Response, g, stream_with_context
import json
import time
from queue import Empty
from .bus import subscribe, unsubscribe

bp = Blueprint("events", __name__, url_prefix="/events")


@bp.get("/stream")
def stream_events():
    """Server-Sent Events stream of the current user's unlock events.

    The scan UI listens here to play the overlay celebration when a block is
    credited from another device or tab.
    """
    sess = getattr(g, "session", None)
    if not sess or not sess.is_authenticated:
        return jsonify({"error": "Authentication required"}), 401
    uid = int(sess.user_id)

    q = subscribe(uid)

    def event_stream():
        try:
            # Initial comment to establish stream
            yield ": connected\n\n"
            while True:
                try:
                    # Keep below gunicorn's timeout to ensure periodic yields
                    evt = q.get(timeout=15)
                except Empty:
                    # Keep-alive
                    yield "event: ping\n" + f"data: {json.dumps({'ts': int(time.time())})}\n\n"
                    continue
                yield f"event: {evt.get('type', 'message')}\n" + f"data: {json.dumps(evt)}\n\n"
        finally:
            unsubscribe(uid, q)

    headers = {
        "Content-Type": "text/event-stream",
        "Cache-Control": "no-cache",
        "Connection": "keep-alive",
        "X-Accel-Buffering": "no",
    }
    return Response(stream_with_context(event_stream()), headers=headers)
