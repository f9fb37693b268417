"""Playback progress mapping and a sounddevice output clock."""

import threading
from typing import Callable, Optional, Protocol

import numpy as np
import sounddevice as sd

from imitune.audio.types import DecodedSignal, Take
from imitune.utils.logger import setup_logger

logger = setup_logger(__name__)


class AudioClock(Protocol):
    """External audio output whose position drives the progress indicator."""

    @property
    def current_time(self) -> float: ...

    @property
    def is_playing(self) -> bool: ...

    def seek(self, seconds: float) -> None: ...

    def play(self) -> None: ...

    def pause(self) -> None: ...


class PlaybackController:
    """Maps an audio clock position to progress through the trimmed content.

    Time zero is the first non-silent sample, so the indicator lines up with
    the trimmed waveform.
    """

    def __init__(
        self, leading_silence_seconds: float, trimmed_duration_seconds: float
    ) -> None:
        self.leading_silence_seconds = max(0.0, leading_silence_seconds)
        self.trimmed_duration_seconds = trimmed_duration_seconds
        self.progress = 0.0

    @classmethod
    def from_take(cls, take: Take) -> "PlaybackController":
        return cls(
            take.bounds.leading_silence_seconds,
            take.bounds.trimmed_duration_seconds,
        )

    def progress_at(self, current_time: float) -> float:
        if self.trimmed_duration_seconds <= 0:
            return 0.0
        effective_time = max(0.0, current_time - self.leading_silence_seconds)
        progress = effective_time / self.trimmed_duration_seconds
        return min(1.0, max(0.0, progress))

    def play(self, clock: AudioClock) -> None:
        """Start playback at the first non-silent sample."""
        clock.seek(self.leading_silence_seconds)
        self.progress = 0.0
        clock.play()

    def on_position(self, current_time: float) -> float:
        self.progress = self.progress_at(current_time)
        return self.progress

    def pause(self, clock: Optional[AudioClock] = None) -> None:
        if clock is not None:
            clock.pause()
        self.progress = 0.0

    def on_ended(self) -> None:
        self.progress = 0.0


class SoundDevicePlayer:
    """Plays a decoded signal and exposes its position as an audio clock."""

    def __init__(
        self,
        signal: DecodedSignal,
        device: Optional[int] = None,
        on_finished: Optional[Callable[[], None]] = None,
    ) -> None:
        self.signal = signal
        self.device = device
        self.on_finished = on_finished
        self._frame = 0
        self._lock = threading.Lock()
        self.stream: Optional[sd.OutputStream] = None

    @property
    def current_time(self) -> float:
        with self._lock:
            return self._frame / float(self.signal.sample_rate)

    @property
    def is_playing(self) -> bool:
        return self.stream is not None and self.stream.active

    def seek(self, seconds: float) -> None:
        frame = int(round(max(0.0, seconds) * self.signal.sample_rate))
        with self._lock:
            self._frame = min(frame, self.signal.frame_count)

    def play(self) -> None:
        if self.is_playing:
            return
        self.close()
        self.stream = sd.OutputStream(
            device=self.device,
            samplerate=self.signal.sample_rate,
            channels=self.signal.channel_count,
            dtype=np.float32,
            callback=self._callback,
            finished_callback=self._finished,
        )
        self.stream.start()
        logger.debug(f"Playback started at {self.current_time:.3f}s")

    def pause(self) -> None:
        if self.stream is not None and self.stream.active:
            self.stream.stop()

    def close(self) -> None:
        stream, self.stream = self.stream, None
        if stream is not None:
            try:
                stream.close()
            except Exception as e:
                logger.warning(f"🟡 Error closing output stream: {e}")

    def _callback(self, outdata: np.ndarray, frames: int, time_info, status) -> None:
        if status:
            logger.debug(f"Playback status: {status}")
        with self._lock:
            start = self._frame
            block = self.signal.samples[start : start + frames]
            self._frame = start + len(block)
        outdata[: len(block)] = block
        if len(block) < frames:
            outdata[len(block) :] = 0
            raise sd.CallbackStop()

    def _finished(self) -> None:
        with self._lock:
            ended = self._frame >= self.signal.frame_count
        if ended and self.on_finished is not None:
            self.on_finished()
