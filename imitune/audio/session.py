"""Bounded-duration recording session.

States: IDLE -> RECORDING -> FINALIZING -> READY, with READY -> RECORDING on
re-record and RECORDING -> IDLE on device failure. Every finalized recording
is published as one immutable ``Take``; the previous take is dropped by a
single reference swap.
"""

import threading
import time
from enum import Enum
from typing import Callable, List, Optional

import psutil
from PySide6.QtCore import QObject, Signal

from imitune.audio.bounds import BoundsAnalyzer
from imitune.audio.capture import CaptureDevice
from imitune.audio.decoding import decode_capture
from imitune.audio.types import CaptureFormat, Take
from imitune.audio.waveform import WaveformSummarizer
from imitune.utils.exceptions import DecodeError, DeviceUnavailable, InvalidStateError
from imitune.utils.logger import setup_logger

logger = setup_logger(__name__)

TimerFactory = Callable[[float, Callable[[], None]], threading.Timer]


class SessionState(Enum):
    """Recording session state."""

    IDLE = "idle"
    RECORDING = "recording"
    FINALIZING = "finalizing"
    READY = "ready"


class RecordingSession(QObject):
    """Owns the capture device, the capture buffer and the current take."""

    state_changed = Signal(str)
    take_ready = Signal(object)
    error = Signal(str)

    def __init__(
        self,
        device: CaptureDevice,
        bounds_analyzer: Optional[BoundsAnalyzer] = None,
        summarizer: Optional[WaveformSummarizer] = None,
        max_duration_seconds: float = 10.0,
        buffer_size_limit_mb: int = 50,
        enable_buffer_monitoring: bool = True,
        timer_factory: TimerFactory = threading.Timer,
    ) -> None:
        """Initialize the recording session.

        Args:
            device: Capture device adapter; opened lazily, closed on dispose.
            bounds_analyzer: Content-bounds analyzer for finalized signals.
            summarizer: Waveform summarizer for finalized signals.
            max_duration_seconds: Recording stops automatically after this long.
            buffer_size_limit_mb: Recording stops when raw capture exceeds this
                size (0 disables the limit).
            enable_buffer_monitoring: Log buffer and process memory periodically.
            timer_factory: Builds the max-duration timer.
        """
        super().__init__()
        self.device = device
        self.bounds_analyzer = bounds_analyzer or BoundsAnalyzer()
        self.summarizer = summarizer or WaveformSummarizer()
        self.max_duration_seconds = max_duration_seconds
        self.buffer_size_limit_mb = buffer_size_limit_mb
        self.enable_buffer_monitoring = enable_buffer_monitoring
        self._timer_factory = timer_factory

        self._state = SessionState.IDLE
        self._sequence = 0
        self._take: Optional[Take] = None
        self._format: Optional[CaptureFormat] = None

        self._chunks: List[bytes] = []
        self._total_bytes = 0
        self._stop_requested = False
        self._chunk_lock = threading.Lock()
        self._lock = threading.RLock()
        self._timer: Optional[threading.Timer] = None
        self._disposed = False
        self.recording_start_time = 0.0
        self._last_memory_check = 0.0

        logger.info(
            f"RecordingSession initialized: max {max_duration_seconds}s, "
            f"buffer limit {buffer_size_limit_mb}MB"
        )

    # State

    @property
    def state(self) -> SessionState:
        return self._state

    @property
    def sequence(self) -> int:
        """Identifier of the most recent recording (increments on every start)."""
        return self._sequence

    @property
    def current_take(self) -> Optional[Take]:
        return self._take

    def is_current(self, sequence: int) -> bool:
        """True if no newer recording has started since ``sequence``."""
        return sequence == self._sequence

    def _set_state(self, state: SessionState) -> None:
        if state is self._state:
            return
        logger.debug(f"Session state: {self._state.value} → {state.value}")
        self._state = state
        self.state_changed.emit(state.value)

    # Operations

    def start(self) -> None:
        """Begin a new recording, discarding the previous take.

        Raises:
            InvalidStateError: If already recording/finalizing or disposed.
            DeviceUnavailable: If the capture device cannot be opened.
        """
        with self._lock:
            if self._disposed:
                raise InvalidStateError("Session has been disposed")
            if self._state in (SessionState.RECORDING, SessionState.FINALIZING):
                raise InvalidStateError(f"Cannot start while {self._state.value}")

            try:
                self._format = self.device.open()
            except DeviceUnavailable as e:
                logger.error(f"🛑 Cannot start recording: {e}")
                self.error.emit(str(e))
                raise

            self._take = None
            with self._chunk_lock:
                self._chunks = []
                self._total_bytes = 0
                self._stop_requested = False
            self._sequence += 1
            self.recording_start_time = time.time()
            self._set_state(SessionState.RECORDING)

            try:
                self.device.start(self.append_chunk, self.fail)
            except DeviceUnavailable as e:
                self._reset_to_idle()
                self.error.emit(str(e))
                raise

            self._timer = self._timer_factory(
                self.max_duration_seconds, self._on_max_duration
            )
            self._timer.daemon = True
            self._timer.start()

        logger.info(f"🟢 Recording #{self._sequence} started")

    def append_chunk(self, chunk: bytes) -> None:
        """Append one raw capture chunk. Empty chunks are ignored."""
        if not chunk:
            return

        with self._chunk_lock:
            if self._state is not SessionState.RECORDING:
                return
            self._chunks.append(bytes(chunk))
            self._total_bytes += len(chunk)
            over_limit = (
                not self._stop_requested
                and self.buffer_size_limit_mb > 0
                and self._total_bytes > self.buffer_size_limit_mb * 1024 * 1024
            )
            if over_limit:
                self._stop_requested = True
            chunk_count = len(self._chunks)

        if over_limit:
            logger.warning(
                "🟡 Capture buffer limit reached: "
                f"{self._total_bytes / 1024 / 1024:.1f}MB"
            )
            # Finalize off the audio thread
            threading.Thread(target=self._stop_quietly, daemon=True).start()
        elif chunk_count % 100 == 0:
            self._check_memory_usage()

    def stop(self) -> Optional[Take]:
        """Finish the recording and publish a new take.

        Does nothing unless recording.

        Returns:
            The new take, or None if the session was not recording.

        Raises:
            DecodeError: If the captured audio is empty or undecodable. The
                session returns to IDLE and the user may record again.
        """
        with self._lock:
            if self._state is not SessionState.RECORDING:
                logger.debug("stop() ignored: not recording")
                return None

            self._cancel_timer()
            self.device.stop()
            self._set_state(SessionState.FINALIZING)

            with self._chunk_lock:
                chunks, self._chunks = self._chunks, []
                self._total_bytes = 0
            blob = b"".join(chunks)
            del chunks

            try:
                signal = decode_capture(blob, self._format)
            except DecodeError as e:
                logger.error(
                    f"🛑 Recording #{self._sequence} could not be decoded: {e}"
                )
                self._set_state(SessionState.IDLE)
                self.error.emit(str(e))
                raise

            # Raw PCM is fully represented by the decoded signal
            if self._format.encoding != "container":
                blob = None

            bounds = self.bounds_analyzer.analyze(signal)
            summary = self.summarizer.summarize(signal, bounds)
            take = Take(
                sequence=self._sequence,
                blob=blob,
                capture_format=self._format,
                signal=signal,
                bounds=bounds,
                summary=summary,
            )
            self._take = take
            self._set_state(SessionState.READY)

        logger.info(
            f"Stopped recording #{take.sequence}: {signal.duration_seconds:.2f}s, "
            f"content {bounds.trimmed_duration_seconds:.2f}s"
        )
        self.take_ready.emit(take)
        return take

    def fail(self, reason: str) -> None:
        """Abort the current recording after a device failure (RECORDING -> IDLE)."""
        with self._lock:
            if self._state is not SessionState.RECORDING:
                return
            logger.error(f"🛑 Recording #{self._sequence} aborted: {reason}")
            self._reset_to_idle()
        self.error.emit(reason)

    def dispose(self) -> None:
        """Release the timer and the capture device. Safe to call repeatedly."""
        with self._lock:
            if self._disposed:
                return
            self._disposed = True
            self._cancel_timer()
            try:
                self.device.stop()
            finally:
                self.device.close()
                with self._chunk_lock:
                    self._chunks = []
                    self._total_bytes = 0
                self._take = None
                self._set_state(SessionState.IDLE)
        logger.info("RecordingSession disposed")

    def __enter__(self) -> "RecordingSession":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.dispose()

    # Internals

    def _reset_to_idle(self) -> None:
        self._cancel_timer()
        self.device.stop()
        with self._chunk_lock:
            self._chunks = []
            self._total_bytes = 0
        self._set_state(SessionState.IDLE)

    def _cancel_timer(self) -> None:
        timer, self._timer = self._timer, None
        if timer is not None:
            timer.cancel()

    def _on_max_duration(self) -> None:
        logger.info(f"Max duration {self.max_duration_seconds}s reached")
        self._stop_quietly()

    def _stop_quietly(self) -> None:
        # Background stop: DecodeError is already reported through self.error
        try:
            self.stop()
        except DecodeError:
            pass

    def _check_memory_usage(self) -> None:
        """Log capture buffer and process memory, at most every 10 seconds."""
        if not self.enable_buffer_monitoring:
            return

        current_time = time.time()
        if current_time - self._last_memory_check < 10:
            return
        self._last_memory_check = current_time

        stats = self.get_memory_stats()
        logger.debug(
            f"📊 Recording stats: {stats['duration_seconds']:.1f}s, "
            f"{stats['buffer_size_mb']:.1f}MB buffer, "
            f"{stats['process_rss_mb']:.1f}MB RSS"
        )
        if (
            self.buffer_size_limit_mb > 0
            and stats["buffer_size_mb"] > self.buffer_size_limit_mb * 0.8
        ):
            logger.warning(
                "🟡 Approaching buffer size limit: "
                f"{stats['buffer_size_mb']:.1f}MB / {self.buffer_size_limit_mb}MB"
            )

    def get_memory_stats(self) -> dict:
        """Get current capture buffer and process memory statistics.

        Returns:
            Dictionary with memory stats.
        """
        recording = self._state is SessionState.RECORDING
        duration = time.time() - self.recording_start_time if recording else 0.0
        with self._chunk_lock:
            buffer_size_mb = self._total_bytes / (1024 * 1024)
            chunk_count = len(self._chunks)

        memory_info = psutil.Process().memory_info()
        return {
            "state": self._state.value,
            "sequence": self._sequence,
            "duration_seconds": duration,
            "buffer_size_mb": buffer_size_mb,
            "audio_chunks": chunk_count,
            "max_duration": self.max_duration_seconds,
            "max_buffer_mb": self.buffer_size_limit_mb,
            "process_rss_mb": memory_info.rss / (1024 * 1024),
            "process_vms_mb": memory_info.vms / (1024 * 1024),
        }
