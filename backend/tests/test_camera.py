import cv2
import numpy as np

from blockhunt.scanner.camera import CameraDecoder, CameraState


class FakeCapture:
    def __init__(self, index, opened=True, frames=None):
        self.index = index
        self.opened = opened
        self.frames = list(frames or [])
        self.released = False

    def isOpened(self):
        return self.opened

    def read(self):
        if not self.frames:
            return False, None
        return True, self.frames.pop(0)

    def release(self):
        self.released = True


class FakeDetector:
    """Returns queued texts, one per frame; empty string means no QR."""

    def __init__(self, texts):
        self.texts = list(texts)
        self.calls = 0

    def detectAndDecode(self, frame):
        self.calls += 1
        text = self.texts.pop(0) if self.texts else ""
        return text, None, None


def _frame():
    return np.zeros((48, 64, 3), dtype=np.uint8)


def _factory(available=(0,), frames=5):
    made = []

    def make(index):
        cap = FakeCapture(index, opened=index in available, frames=[_frame() for _ in range(frames)])
        made.append(cap)
        return cap

    make.made = made
    return make


def test_first_decode_fires_callback_once():
    seen = []
    detector = FakeDetector(["", '{"qrId":"a"}', '{"qrId":"b"}'])
    cam = CameraDecoder(seen.append, capture_factory=_factory(), detector=detector)

    assert cam.start() == CameraState.SCANNING
    for _ in range(4):
        cam.poll()

    assert seen == ['{"qrId":"a"}']
    assert cam.state == CameraState.DECODED
    assert detector.calls == 2


def test_frames_keep_flowing_after_decode():
    cam = CameraDecoder(lambda t: None, capture_factory=_factory(frames=3), detector=FakeDetector(["x"]))
    cam.start()
    frames = [cam.poll() for _ in range(3)]
    assert all(f is not None for f in frames)


def test_restart_opens_new_session():
    seen = []
    cam = CameraDecoder(seen.append, capture_factory=_factory(), detector=FakeDetector(["one", "two"]))
    cam.start()
    cam.poll()
    cam.start()
    cam.poll()
    assert seen == ["one", "two"]


def test_unopenable_camera_offers_manual_entry():
    seen = []
    cam = CameraDecoder(seen.append, capture_factory=_factory(available=()), detector=FakeDetector([]))

    assert cam.start() == CameraState.PERMISSION_DENIED
    assert cam.manual_entry_offered
    assert cam.error.code == "camera_permission"
    assert cam.poll() is None

    assert cam.submit_manual("  typed text  ") is True
    assert seen == ["typed text"]
    assert cam.state == CameraState.DECODED


def test_manual_entry_is_ignored_after_decode():
    seen = []
    cam = CameraDecoder(seen.append, capture_factory=_factory(), detector=FakeDetector(["camera"]))
    cam.start()
    cam.poll()
    assert cam.submit_manual("typed") is False
    assert cam.submit_manual("") is False
    assert seen == ["camera"]


def test_switch_camera_cycles_available_devices():
    factory = _factory(available=(0, 2))
    cam = CameraDecoder(lambda t: None, capture_factory=factory, detector=FakeDetector([]), max_probe=4)
    cam.start()

    assert cam.list_cameras() == [0, 2]
    assert cam.switch_camera() == 2
    assert cam.state == CameraState.SCANNING
    assert cam.switch_camera() == 0


def test_switch_with_single_camera_is_noop():
    cam = CameraDecoder(lambda t: None, capture_factory=_factory(), detector=FakeDetector([]))
    cam.start()
    assert cam.switch_camera() == 0


def test_decode_errors_count_as_miss():
    class Exploding:
        def detectAndDecode(self, frame):
            raise cv2.error("bad frame")

    cam = CameraDecoder(lambda t: None, capture_factory=_factory(), detector=Exploding())
    assert cam.decode(_frame()) is None


def test_stop_releases_capture():
    factory = _factory()
    cam = CameraDecoder(lambda t: None, capture_factory=factory, detector=FakeDetector([]))
    cam.start()
    cam.stop()
    assert cam.state == CameraState.STOPPED
    assert factory.made[-1].released
