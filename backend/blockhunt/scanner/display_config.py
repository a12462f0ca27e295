"""Per-block display settings for the AR overlay.

Each block can override the size, position and rotation of its overlay
model. Overrides live in a JSON file keyed by block id; anything missing
falls back to :data:`DEFAULT_CONFIG`.
"""
from __future__ import annotations

import copy
import json
import logging
import os
from typing import Any, Dict, Optional

logger = logging.getLogger(__name__)

DEFAULT_CONFIG: Dict[str, Any] = {
    "scale": 5.0,
    "position": {"x": 0.0, "y": 0.0, "z": -1.5},
    "rotation": {"x": 0.0, "y": 0.0, "z": 0.0},
    "centerOffset": {"x": 0.0, "y": 0.0, "z": 0.0},
    "autoCenter": True,
}

_VECTOR_KEYS = ("position", "rotation", "centerOffset")


def load_display_configs(path: Optional[str]) -> Dict[str, Dict[str, Any]]:
    """Read block overrides from ``path``; a missing file means no overrides."""
    if not path or not os.path.isfile(path):
        return {}
    with open(path, "r", encoding="utf-8") as f:
        data = json.load(f)
    if not isinstance(data, dict):
        raise ValueError(f"Block display config {path} must be a JSON object")
    return {str(k): v for k, v in data.items() if isinstance(v, dict)}


def get_block_display_config(block_id: Optional[str], overrides: Optional[Dict[str, Dict[str, Any]]] = None) -> Dict[str, Any]:
    config = copy.deepcopy(DEFAULT_CONFIG)
    override = (overrides or {}).get(block_id or "")
    if not override:
        if block_id:
            logger.debug("No display config for block %s, using defaults", block_id)
        return config
    for key, value in override.items():
        if key in _VECTOR_KEYS and isinstance(value, dict):
            config[key].update({axis: float(v) for axis, v in value.items() if axis in ("x", "y", "z")})
        elif key == "scale":
            config["scale"] = float(value)
        elif key == "autoCenter":
            config["autoCenter"] = bool(value)
    return config
