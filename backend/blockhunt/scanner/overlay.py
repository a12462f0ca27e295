from __future__ import annotations

import logging
import math
from enum import Enum
from typing import Dict, Optional

import cv2
import numpy as np

from .display_config import get_block_display_config

logger = logging.getLogger(__name__)

# Unit block model: a cube of half-size 0.05 scene units, scaled per block
_HALF = 0.05
_CUBE = np.array(
    [
        [-_HALF, -_HALF, -_HALF],
        [_HALF, -_HALF, -_HALF],
        [_HALF, _HALF, -_HALF],
        [-_HALF, _HALF, -_HALF],
        [-_HALF, -_HALF, _HALF],
        [_HALF, -_HALF, _HALF],
        [_HALF, _HALF, _HALF],
        [-_HALF, _HALF, _HALF],
    ],
    dtype=np.float64,
)
_EDGES = (
    (0, 1), (1, 2), (2, 3), (3, 0),
    (4, 5), (5, 6), (6, 7), (7, 4),
    (0, 4), (1, 5), (2, 6), (3, 7),
)

IDLE_COLOR = (255, 200, 0)
CELEBRATE_COLOR = (0, 220, 90)


class OverlayState(str, Enum):
    IDLE = "idle"
    CELEBRATING = "celebrating"


def _rotation(rx: float, ry: float, rz: float) -> np.ndarray:
    cx, sx = math.cos(rx), math.sin(rx)
    cy, sy = math.cos(ry), math.sin(ry)
    cz, sz = math.cos(rz), math.sin(rz)
    mx = np.array([[1, 0, 0], [0, cx, -sx], [0, sx, cx]])
    my = np.array([[cy, 0, sy], [0, 1, 0], [-sy, 0, cy]])
    mz = np.array([[cz, -sz, 0], [sz, cz, 0], [0, 0, 1]])
    return mz @ my @ mx


class OverlayRenderer:
    """Draws the AR feedback layer over video frames.

    A pinhole camera looks down -z with the video's aspect ratio. In ``IDLE``
    the block floats and turns slowly; :meth:`celebrate` switches to a pulsing
    block labelled with the unlocked id for ``celebrate_seconds`` and then
    reverts. The renderer knows nothing about decoding or unlocking.
    """

    def __init__(
        self,
        width: int,
        height: int,
        celebrate_seconds: float = 3.0,
        fov_degrees: float = 60.0,
        display_overrides: Optional[Dict[str, Dict]] = None,
    ):
        self.celebrate_seconds = float(celebrate_seconds)
        self.fov_degrees = float(fov_degrees)
        self.display_overrides = display_overrides or {}
        self.state = OverlayState.IDLE
        self.block_id: Optional[str] = None
        self._celebrate_started: Optional[float] = None
        self._config = get_block_display_config(None)
        self.resize(width, height)

    def resize(self, width: int, height: int) -> None:
        """Re-project the scene camera for new video dimensions."""
        if width <= 0 or height <= 0:
            raise ValueError("Video dimensions must be positive")
        self.width = int(width)
        self.height = int(height)
        self.aspect = self.width / self.height
        # Vertical field of view is fixed; horizontal follows the aspect ratio
        self.focal = (self.height / 2.0) / math.tan(math.radians(self.fov_degrees) / 2.0)
        self.center = (self.width / 2.0, self.height / 2.0)
        logger.debug("Overlay projection %dx%d (aspect %.3f)", self.width, self.height, self.aspect)

    def celebrate(self, block_id: str, now: float) -> None:
        self.state = OverlayState.CELEBRATING
        self.block_id = block_id
        self._celebrate_started = now
        self._config = get_block_display_config(block_id, self.display_overrides)

    def update(self, now: float) -> OverlayState:
        if self.state == OverlayState.CELEBRATING and self._celebrate_started is not None:
            if now - self._celebrate_started >= self.celebrate_seconds:
                self.state = OverlayState.IDLE
                self._celebrate_started = None
        return self.state

    def project(self, points: np.ndarray) -> np.ndarray:
        """Project camera-space points (N, 3) to pixel coordinates (N, 2)."""
        depth = np.maximum(-points[:, 2], 1e-6)
        u = self.center[0] + self.focal * points[:, 0] / depth
        v = self.center[1] - self.focal * points[:, 1] / depth
        return np.stack([u, v], axis=1)

    def _model_points(self, now: float) -> np.ndarray:
        cfg = self._config
        rot = cfg["rotation"]
        pos = cfg["position"]
        off = cfg["centerOffset"]
        scale = float(cfg["scale"])
        if self.state == OverlayState.CELEBRATING:
            elapsed = now - (self._celebrate_started or now)
            scale *= 1.0 + 0.25 * math.sin(2 * math.pi * 2.0 * elapsed)
            yaw = rot["y"] + 2.0 * elapsed
            bob = 0.0
        else:
            yaw = rot["y"] + 0.5 * now
            bob = 0.02 * math.sin(2 * math.pi * 0.5 * now)
        offset = np.array([off["x"], off["y"], off["z"]])
        r = _rotation(rot["x"], yaw, rot["z"])
        pts = ((_CUBE + offset) * scale) @ r.T
        pts += np.array([pos["x"], pos["y"] + bob, pos["z"]])
        return pts

    def render(self, frame: np.ndarray, now: float) -> np.ndarray:
        """Draw the overlay onto ``frame`` in place and return it."""
        h, w = frame.shape[:2]
        if (w, h) != (self.width, self.height):
            self.resize(w, h)
        self.update(now)

        pts = self._model_points(now)
        px = np.round(self.project(pts)).astype(np.int32)
        celebrating = self.state == OverlayState.CELEBRATING
        color = CELEBRATE_COLOR if celebrating else IDLE_COLOR
        thickness = 3 if celebrating else 2
        for a, b in _EDGES:
            cv2.line(frame, (int(px[a, 0]), int(px[a, 1])), (int(px[b, 0]), int(px[b, 1])), color, thickness, cv2.LINE_AA)

        if celebrating and self.block_id:
            label = f"Unlocked: {self.block_id}"
            org = (max(10, int(px[:, 0].min())), max(30, int(px[:, 1].min()) - 12))
            cv2.putText(frame, label, org, cv2.FONT_HERSHEY_SIMPLEX, 0.8, color, 2, cv2.LINE_AA)
        return frame
