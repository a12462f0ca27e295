from __future__ import annotations

from queue import Full, Queue
from threading import Lock
from typing import Any, Dict, List

# Simple in-memory pub/sub for SSE. Not suitable for multi-process deployments.
_subs: dict[int, List[Queue]] = {}
_lock = Lock()

# Bounded so a stalled client cannot grow memory without limit
MAX_PENDING = 100


def subscribe(user_id: int) -> Queue:
    q: Queue = Queue(maxsize=MAX_PENDING)
    with _lock:
        _subs.setdefault(user_id, []).append(q)
    return q


def unsubscribe(user_id: int, q: Queue) -> None:
    with _lock:
        arr = _subs.get(user_id)
        if not arr:
            return
        try:
            arr.remove(q)
        except ValueError:
            pass
        if not arr:
            _subs.pop(user_id, None)


def subscriber_count(user_id: int) -> int:
    with _lock:
        return len(_subs.get(user_id, []))


def publish(user_id: int, event: Dict[str, Any]) -> int:
    """Deliver ``event`` to every open stream of ``user_id``; return deliveries.

    Best-effort: a full queue drops the event for that subscriber.
    """
    with _lock:
        arr = list(_subs.get(user_id, []))
    delivered = 0
    for q in arr:
        try:
            q.put_nowait(event)
            delivered += 1
        except Full:
            pass
    return delivered
