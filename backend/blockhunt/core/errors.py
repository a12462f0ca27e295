from __future__ import annotations


class BlockHuntError(Exception):
    """Base class for failures that are shown to the user verbatim."""

    code = "error"
    default_message = "Something went wrong"

    def __init__(self, message: str | None = None):
        super().__init__(message or self.default_message)
        self.message = message or self.default_message

    def to_dict(self) -> dict:
        return {"code": self.code, "message": self.message}


class InvalidPayloadError(BlockHuntError):
    code = "invalid_payload"
    default_message = "Invalid QR code format. Try entering the data manually."


class UnlockError(BlockHuntError):
    """A well-formed scan that cannot be honoured because of code or user state."""


class UnknownCodeError(UnlockError):
    code = "unknown_code"
    default_message = "QR code not found"


class InactiveCodeError(UnlockError):
    code = "inactive_code"
    default_message = "This QR code is no longer active"


class ExpiredCodeError(UnlockError):
    code = "expired_code"
    default_message = "This QR code has expired"


class NotYetActiveError(UnlockError):
    code = "not_yet_active"
    default_message = "This QR code is not active yet"


class UnknownUserError(UnlockError):
    code = "unknown_user"
    default_message = "User profile not found"


class StorageError(BlockHuntError):
    code = "storage_error"
    default_message = "Could not reach the block collection. Please scan again."


class CameraPermissionError(BlockHuntError, PermissionError):
    code = "camera_permission"
    default_message = "Camera access was denied. Enter the QR data manually instead."
