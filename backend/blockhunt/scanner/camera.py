from __future__ import annotations

import logging
from enum import Enum
from typing import Callable, List, Optional

import cv2
import numpy as np

from ..core.errors import CameraPermissionError

logger = logging.getLogger(__name__)


class CameraState(str, Enum):
    IDLE = "idle"
    SCANNING = "scanning"
    DECODED = "decoded"
    PERMISSION_DENIED = "permission_denied"
    STOPPED = "stopped"


class CameraDecoder:
    """Reads frames from a camera and decodes the first QR code it sees.

    Each call to :meth:`start` opens a decode session. The first successful
    decode, or the first manual entry, invokes ``on_decode`` once and ends the
    session; later frames are still delivered for display but no longer
    decoded. A camera that cannot be opened puts the decoder in
    ``PERMISSION_DENIED`` and manual entry becomes the way forward.
    """

    def __init__(
        self,
        on_decode: Callable[[str], None],
        camera_index: int = 0,
        capture_factory: Callable[[int], "cv2.VideoCapture"] = cv2.VideoCapture,
        detector=None,
        max_probe: int = 5,
    ):
        self.on_decode = on_decode
        self.camera_index = camera_index
        self.capture_factory = capture_factory
        self.detector = detector if detector is not None else cv2.QRCodeDetector()
        self.max_probe = max_probe
        self.state = CameraState.IDLE
        self.error: Optional[CameraPermissionError] = None
        self.decoded_text: Optional[str] = None
        self._cap = None
        self._fired = False
        self._cameras: Optional[List[int]] = None

    @property
    def manual_entry_offered(self) -> bool:
        return self.state == CameraState.PERMISSION_DENIED

    def list_cameras(self, refresh: bool = False) -> List[int]:
        """Find available camera indexes by probing the first few devices."""
        if self._cameras is not None and not refresh:
            return list(self._cameras)
        found = []
        for i in range(self.max_probe):
            if self._cap is not None and i == self.camera_index:
                found.append(i)
                continue
            cap = self.capture_factory(i)
            try:
                if cap.isOpened():
                    found.append(i)
            finally:
                cap.release()
        self._cameras = found
        return list(found)

    def _open(self) -> bool:
        cap = self.capture_factory(self.camera_index)
        if not cap.isOpened():
            cap.release()
            return False
        self._cap = cap
        return True

    def start(self) -> CameraState:
        """Open the camera and begin a new decode session."""
        self._release()
        self._fired = False
        self.decoded_text = None
        self.error = None
        if not self._open():
            self.error = CameraPermissionError()
            self.state = CameraState.PERMISSION_DENIED
            logger.warning("Camera %s could not be opened; offering manual entry", self.camera_index)
            return self.state
        self.state = CameraState.SCANNING
        logger.info("Camera %s ready, scanning for QR codes", self.camera_index)
        return self.state

    def switch_camera(self) -> int:
        """Move to the next available camera, keeping the current session."""
        cameras = self.list_cameras()
        if len(cameras) < 2:
            return self.camera_index
        try:
            idx = cameras.index(self.camera_index)
        except ValueError:
            idx = -1
        self.camera_index = cameras[(idx + 1) % len(cameras)]
        if self._cap is not None:
            self._cap.release()
            self._cap = None
            if not self._open():
                self.error = CameraPermissionError()
                self.state = CameraState.PERMISSION_DENIED
        logger.info("Switched to camera %s", self.camera_index)
        return self.camera_index

    def decode(self, frame: np.ndarray) -> Optional[str]:
        """Try to decode one frame. A miss returns None and is not an error."""
        try:
            data, _points, _ = self.detector.detectAndDecode(frame)
        except cv2.error as e:
            logger.debug("Frame decode failed: %s", e)
            return None
        if data and data.strip():
            return data.strip()
        return None

    def poll(self) -> Optional[np.ndarray]:
        """Read one frame, decoding it while the session is still open."""
        if self._cap is None:
            return None
        ok, frame = self._cap.read()
        if not ok or frame is None:
            return None
        if self.state == CameraState.SCANNING and not self._fired:
            text = self.decode(frame)
            if text is not None:
                self._deliver(text)
        return frame

    def submit_manual(self, text: str) -> bool:
        """Hand typed QR text to the callback; False if the session already fired."""
        text = (text or "").strip()
        if not text or self._fired:
            return False
        self._deliver(text)
        return True

    def _deliver(self, text: str) -> None:
        self._fired = True
        self.decoded_text = text
        self.state = CameraState.DECODED
        logger.info("QR payload captured (%d chars)", len(text))
        self.on_decode(text)

    def _release(self) -> None:
        if self._cap is not None:
            self._cap.release()
            self._cap = None

    def stop(self) -> None:
        self._release()
        self.state = CameraState.STOPPED
