"""
Shared fixtures for the test suite.

Nothing here touches audio hardware, the network or a real ONNX model.
"""

from typing import Callable, Dict, List, Optional

import numpy as np
import pytest
from PySide6.QtCore import QCoreApplication

from imitune.audio.types import CaptureFormat, DecodedSignal
from imitune.utils.exceptions import DeviceUnavailable

# ---------------------------------------------------------------------------
# Qt
# ---------------------------------------------------------------------------


@pytest.fixture(scope="session", autouse=True)
def qt_core_app():
    """One QCoreApplication for the whole run so QObject signals behave."""
    app = QCoreApplication.instance() or QCoreApplication([])
    yield app


# ---------------------------------------------------------------------------
# Synthetic signals
# ---------------------------------------------------------------------------


def make_signal(
    duration: float,
    sample_rate: int = 44100,
    channels: int = 1,
    value: float = 0.8,
) -> DecodedSignal:
    """Constant-amplitude signal of the given shape."""
    frames = int(round(duration * sample_rate))
    samples = np.full((frames, channels), value, dtype=np.float32)
    return DecodedSignal(samples, sample_rate, channels)


def padded_burst(
    lead: float,
    body: float,
    tail: float,
    sample_rate: int = 1000,
    value: float = 0.5,
) -> np.ndarray:
    """Mono buffer: silence, then ``body`` seconds at ``value``, then silence."""
    return np.concatenate(
        [
            np.zeros(int(round(lead * sample_rate)), dtype=np.float32),
            np.full(int(round(body * sample_rate)), value, dtype=np.float32),
            np.zeros(int(round(tail * sample_rate)), dtype=np.float32),
        ]
    )


# ---------------------------------------------------------------------------
# Fake capture device
# ---------------------------------------------------------------------------


class FakeCaptureDevice:
    """In-memory capture device; tests push sample blocks through it."""

    def __init__(self, sample_rate: int = 44100, channels: int = 1) -> None:
        self.capture_format = CaptureFormat(sample_rate, channels)
        self.fail_open = False
        self.open_count = 0
        self.closed = False
        self._is_open = False
        self._on_chunk: Optional[Callable[[bytes], None]] = None
        self._on_error: Optional[Callable[[str], None]] = None

    @property
    def is_open(self) -> bool:
        return self._is_open

    def open(self) -> CaptureFormat:
        if self.fail_open:
            raise DeviceUnavailable("Permission denied")
        if not self._is_open:
            self.open_count += 1
            self._is_open = True
        return self.capture_format

    def start(self, on_chunk, on_error=None) -> None:
        self._on_chunk = on_chunk
        self._on_error = on_error

    def stop(self) -> None:
        self._on_chunk = None
        self._on_error = None

    def close(self) -> None:
        self.stop()
        self._is_open = False
        self.closed = True

    @property
    def streaming(self) -> bool:
        return self._on_chunk is not None

    def push(self, samples: np.ndarray, chunk_frames: int = 4096) -> None:
        """Deliver samples in callback-sized blocks as float32 bytes."""
        samples = np.asarray(samples, dtype=np.float32)
        if samples.ndim == 1:
            samples = samples[:, None]
        for offset in range(0, len(samples), chunk_frames):
            if self._on_chunk is None:
                return
            block = samples[offset : offset + chunk_frames]
            self._on_chunk(block.astype("<f4").tobytes())

    def raise_error(self, reason: str) -> None:
        if self._on_error is not None:
            self._on_error(reason)


@pytest.fixture
def fake_device():
    return FakeCaptureDevice()


# ---------------------------------------------------------------------------
# Fake timer
# ---------------------------------------------------------------------------


class FakeTimer:
    """Stands in for threading.Timer; fires only when told to."""

    def __init__(self, interval: float, function: Callable[[], None]) -> None:
        self.interval = interval
        self.function = function
        self.daemon = False
        self.started = False
        self.cancelled = False

    def start(self) -> None:
        self.started = True

    def cancel(self) -> None:
        self.cancelled = True

    def fire(self) -> None:
        if not self.cancelled:
            self.function()


@pytest.fixture
def timers() -> List[FakeTimer]:
    return []


@pytest.fixture
def timer_factory(timers):
    def factory(interval, function):
        timer = FakeTimer(interval, function)
        timers.append(timer)
        return timer

    return factory


# ---------------------------------------------------------------------------
# Fake inference engine
# ---------------------------------------------------------------------------


class FakeEngine:
    """Deterministic engine returning a fixed ``[1, D]`` embedding."""

    def __init__(self, dim: int = 8, output_name: str = "embedding") -> None:
        self.dim = dim
        self.output_name = output_name
        self.calls: List[Dict[str, np.ndarray]] = []
        self.side_effect = None

    @property
    def input_names(self) -> List[str]:
        return ["waveform"]

    @property
    def output_names(self) -> List[str]:
        return [self.output_name]

    def run(self, feeds: Dict[str, np.ndarray]) -> Dict[str, np.ndarray]:
        self.calls.append(feeds)
        if self.side_effect is not None:
            effect = self.side_effect
            if isinstance(effect, list):
                effect = effect.pop(0) if effect else None
            if isinstance(effect, BaseException):
                raise effect
            if callable(effect):
                effect()
        vector = np.arange(self.dim, dtype=np.float32)[None, :] / self.dim
        return {self.output_name: vector}


@pytest.fixture
def fake_engine():
    return FakeEngine()
