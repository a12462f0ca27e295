from __future__ import annotations

import logging
import sys
import time
from concurrent.futures import Future, ThreadPoolExecutor
from typing import Callable, Optional

import cv2

from ..core.errors import BlockHuntError, StorageError
from ..core.resolver import ScanOutcome
from .camera import CameraDecoder, CameraState
from .overlay import OverlayRenderer

logger = logging.getLogger(__name__)

WINDOW_NAME = "BlockHunt Scanner"


class ScanSession:
    """Runs one scan: camera decode, unlock resolution and overlay feedback.

    Resolution happens on a single background worker so the frame loop keeps
    drawing while the database round-trips. The loop checks the pending
    future once per frame. Closing the session does not cancel an in-flight
    resolution; its outcome is simply dropped.
    """

    def __init__(
        self,
        resolve: Callable[[str], ScanOutcome],
        decoder: Optional[CameraDecoder] = None,
        overlay: Optional[OverlayRenderer] = None,
        camera_index: int = 0,
        celebrate_seconds: float = 3.0,
        clock: Callable[[], float] = time.monotonic,
        executor: Optional[ThreadPoolExecutor] = None,
    ):
        self.resolve = resolve
        self.clock = clock
        self.decoder = decoder or CameraDecoder(self._on_decode, camera_index=camera_index)
        if decoder is not None:
            decoder.on_decode = self._on_decode
        self.overlay = overlay or OverlayRenderer(640, 480, celebrate_seconds=celebrate_seconds)
        self._executor = executor or ThreadPoolExecutor(max_workers=1, thread_name_prefix="blockhunt-resolve")
        self._pending: Optional[Future] = None
        self.outcome: Optional[ScanOutcome] = None
        self.closed = False

    def _on_decode(self, text: str) -> None:
        if self.closed:
            return
        self._pending = self._executor.submit(self.resolve, text)

    def start(self) -> CameraState:
        self.closed = False
        self.outcome = None
        return self.decoder.start()

    def submit_manual(self, text: str) -> bool:
        return self.decoder.submit_manual(text)

    @property
    def busy(self) -> bool:
        return self._pending is not None

    def check_pending(self) -> Optional[ScanOutcome]:
        """Collect a finished resolution, if any. Never blocks."""
        fut = self._pending
        if fut is None or not fut.done():
            return None
        self._pending = None
        try:
            outcome = fut.result()
        except BlockHuntError as e:
            outcome = ScanOutcome(success=False, error=e)
        except Exception:
            logger.exception("Unlock resolution crashed")
            outcome = ScanOutcome(success=False, error=StorageError())
        if self.closed:
            logger.info("Scan session closed before resolution finished; dropping result")
            return None
        self.outcome = outcome
        if outcome.success and outcome.result is not None:
            self.overlay.celebrate(outcome.result.block_id, self.clock())
        return outcome

    def step(self):
        """Advance one frame: read/decode, collect results, draw the overlay."""
        frame = self.decoder.poll()
        self.check_pending()
        if frame is not None:
            self.overlay.render(frame, self.clock())
        return frame

    def close(self) -> None:
        self.closed = True
        self.decoder.stop()
        self._executor.shutdown(wait=False)

    def run(self, manual_input: Callable[[str], str] = input) -> Optional[ScanOutcome]:
        """Interactive OpenCV loop.

        Keys: ESC/q quit, c switch camera, m type QR text, r scan again.
        """
        state = self.start()
        if state == CameraState.PERMISSION_DENIED:
            print(self.decoder.error.message, file=sys.stderr)
            text = manual_input("QR data: ")
            self.submit_manual(text)
            while self.busy:
                time.sleep(0.05)
                self.check_pending()
            self.close()
            return self.outcome

        shown: Optional[ScanOutcome] = None
        try:
            while True:
                frame = self.step()
                if self.outcome is not None and self.outcome is not shown:
                    shown = self.outcome
                    print(self.outcome.message)
                if frame is not None:
                    cv2.imshow(WINDOW_NAME, frame)
                key = cv2.waitKey(1) & 0xFF
                if key in (27, ord("q")):
                    break
                if key == ord("c"):
                    self.decoder.switch_camera()
                elif key == ord("m"):
                    self.submit_manual(manual_input("QR data: "))
                elif key == ord("r") and not self.busy:
                    self.start()
        finally:
            self.close()
            cv2.destroyAllWindows()
        return self.outcome
