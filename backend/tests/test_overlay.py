import json

import numpy as np
import pytest

from blockhunt.scanner.display_config import (
    DEFAULT_CONFIG,
    get_block_display_config,
    load_display_configs,
)
from blockhunt.scanner.overlay import OverlayRenderer, OverlayState


def test_resize_tracks_aspect_ratio():
    overlay = OverlayRenderer(640, 480)
    assert overlay.aspect == pytest.approx(4 / 3)

    overlay.resize(1280, 720)
    assert overlay.aspect == pytest.approx(16 / 9)
    assert overlay.center == (640.0, 360.0)


def test_resize_rejects_empty_video():
    with pytest.raises(ValueError):
        OverlayRenderer(0, 480)


def test_celebration_reverts_to_idle():
    overlay = OverlayRenderer(640, 480, celebrate_seconds=3.0)
    overlay.celebrate("controls_if", now=10.0)

    assert overlay.update(11.5) == OverlayState.CELEBRATING
    assert overlay.update(13.0) == OverlayState.IDLE


def test_render_draws_on_frame():
    overlay = OverlayRenderer(320, 240)
    frame = np.zeros((240, 320, 3), dtype=np.uint8)

    out = overlay.render(frame, now=0.0)

    assert out is frame
    assert frame.any()


def test_render_follows_frame_size():
    overlay = OverlayRenderer(640, 480)
    overlay.render(np.zeros((360, 640, 3), dtype=np.uint8), now=1.0)
    assert (overlay.width, overlay.height) == (640, 360)


def test_celebration_changes_drawing():
    idle = np.zeros((240, 320, 3), dtype=np.uint8)
    party = np.zeros((240, 320, 3), dtype=np.uint8)

    OverlayRenderer(320, 240).render(idle, now=0.0)
    overlay = OverlayRenderer(320, 240)
    overlay.celebrate("logic_negate", now=0.0)
    overlay.render(party, now=0.1)

    assert not np.array_equal(idle, party)


def test_projection_centers_origin_axis():
    overlay = OverlayRenderer(640, 480)
    px = overlay.project(np.array([[0.0, 0.0, -2.0]]))
    assert px[0].tolist() == [320.0, 240.0]


def test_display_overrides_merge_with_defaults(tmp_path):
    path = tmp_path / "display.json"
    path.write_text(json.dumps({"controls_if": {"scale": 8, "position": {"y": 0.5}}}))

    overrides = load_display_configs(str(path))
    cfg = get_block_display_config("controls_if", overrides)

    assert cfg["scale"] == 8.0
    assert cfg["position"] == {"x": 0.0, "y": 0.5, "z": -1.5}
    assert get_block_display_config("logic_negate", overrides) == DEFAULT_CONFIG


def test_missing_display_file_means_defaults(tmp_path):
    assert load_display_configs(str(tmp_path / "nope.json")) == {}
