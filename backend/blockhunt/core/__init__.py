from .errors import (
    BlockHuntError,
    CameraPermissionError,
    ExpiredCodeError,
    InactiveCodeError,
    InvalidPayloadError,
    NotYetActiveError,
    StorageError,
    UnknownCodeError,
    UnknownUserError,
    UnlockError,
)
from .payload import ScanPayload, build_scan_payload, parse_scan_payload
from .collection import CollectionStore
from .resolver import ScanOutcome, UnlockResolver, UnlockResult, is_unlocked, process_scan

__all__ = [
    "BlockHuntError",
    "CameraPermissionError",
    "CollectionStore",
    "ExpiredCodeError",
    "InactiveCodeError",
    "InvalidPayloadError",
    "NotYetActiveError",
    "ScanOutcome",
    "ScanPayload",
    "StorageError",
    "UnknownCodeError",
    "UnknownUserError",
    "UnlockError",
    "UnlockResolver",
    "UnlockResult",
    "build_scan_payload",
    "is_unlocked",
    "parse_scan_payload",
    "process_scan",
]
