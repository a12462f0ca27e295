from concurrent.futures import Future

import numpy as np

from blockhunt.core.errors import UnknownCodeError
from blockhunt.core.resolver import ScanOutcome, UnlockResult
from blockhunt.scanner.camera import CameraDecoder
from blockhunt.scanner.overlay import OverlayRenderer, OverlayState
from blockhunt.scanner.session import ScanSession


class HeldExecutor:
    """Executor whose futures complete only when the test says so."""

    def __init__(self):
        self.jobs = []

    def submit(self, fn, *args):
        fut = Future()
        self.jobs.append((fut, fn, args))
        return fut

    def finish(self):
        for fut, fn, args in self.jobs:
            try:
                fut.set_result(fn(*args))
            except Exception as e:
                fut.set_exception(e)
        self.jobs = []

    def shutdown(self, wait=True):
        pass


class OneFrameCapture:
    def __init__(self, index):
        pass

    def isOpened(self):
        return True

    def read(self):
        return True, np.zeros((120, 160, 3), dtype=np.uint8)

    def release(self):
        pass


class FixedDetector:
    def __init__(self, text):
        self.text = text

    def detectAndDecode(self, frame):
        return self.text, None, None


def _unlocked(text):
    return ScanOutcome(success=True, result=UnlockResult(True, "controls_if", 1, "qr_1"))


def _session(resolve, text="qr text", clock=lambda: 0.0):
    executor = HeldExecutor()
    decoder = CameraDecoder(None, capture_factory=OneFrameCapture, detector=FixedDetector(text))
    overlay = OverlayRenderer(160, 120, celebrate_seconds=3.0)
    session = ScanSession(resolve, decoder=decoder, overlay=overlay, clock=clock, executor=executor)
    return session, executor


def test_frame_loop_does_not_wait_for_resolution():
    session, executor = _session(_unlocked)
    session.start()

    assert session.step() is not None
    assert session.busy
    assert session.step() is not None
    assert session.outcome is None

    executor.finish()
    session.step()
    assert not session.busy
    assert session.outcome.success


def test_success_triggers_celebration():
    now = [5.0]
    session, executor = _session(_unlocked, clock=lambda: now[0])
    session.start()
    session.step()
    executor.finish()
    session.check_pending()

    assert session.overlay.state == OverlayState.CELEBRATING
    assert session.overlay.block_id == "controls_if"
    now[0] = 9.0
    session.step()
    assert session.overlay.state == OverlayState.IDLE


def test_failure_does_not_celebrate():
    session, executor = _session(
        lambda text: ScanOutcome(success=False, error=UnknownCodeError())
    )
    session.start()
    session.step()
    executor.finish()

    outcome = session.check_pending()
    assert outcome.error.code == "unknown_code"
    assert session.overlay.state == OverlayState.IDLE


def test_resolver_crash_becomes_storage_error():
    def _boom(text):
        raise RuntimeError("db gone")

    session, executor = _session(_boom)
    session.start()
    session.step()
    executor.finish()

    assert session.check_pending().error.code == "storage_error"


def test_raised_unlock_error_is_reported():
    def _raise(text):
        raise UnknownCodeError()

    session, executor = _session(_raise)
    session.start()
    session.step()
    executor.finish()

    assert session.check_pending().error.code == "unknown_code"


def test_result_after_close_is_dropped():
    session, executor = _session(_unlocked)
    session.start()
    session.step()
    session.close()
    executor.finish()

    assert session.check_pending() is None
    assert session.outcome is None
    assert session.overlay.state == OverlayState.IDLE


def test_manual_entry_is_resolved():
    seen = []

    def resolve(text):
        seen.append(text)
        return _unlocked(text)

    session, executor = _session(resolve, text="")
    session.start()
    session.step()
    assert not session.busy

    assert session.submit_manual("typed payload")
    executor.finish()
    session.check_pending()
    assert seen == ["typed payload"]
