"""Value types shared by the capture and preprocessing pipeline.

All of these are immutable once built. A new recording produces new
instances; nothing here is updated in place.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

import numpy as np


def _readonly(array: np.ndarray) -> np.ndarray:
    array.setflags(write=False)
    return array


@dataclass(frozen=True)
class CaptureFormat:
    """Describes how raw capture chunks are encoded."""

    sample_rate: int
    channels: int
    encoding: str = "pcm_f32le"  # or "container" (WAV/FLAC/OGG bytes)


@dataclass(frozen=True, eq=False)
class DecodedSignal:
    """Decoded capture: float32 samples shaped ``(frames, channels)``."""

    samples: np.ndarray
    sample_rate: int
    channel_count: int

    def __post_init__(self) -> None:
        samples = np.asarray(self.samples, dtype=np.float32)
        if samples.ndim == 1:
            samples = samples[:, None]
        if samples.ndim != 2:
            raise ValueError(f"Expected 1-D or 2-D samples, got shape {samples.shape}")
        if self.sample_rate <= 0:
            raise ValueError("Sample rate must be positive")
        if samples.shape[1] != self.channel_count or self.channel_count <= 0:
            raise ValueError(
                f"Channel count {self.channel_count} does not match samples "
                f"shape {samples.shape}"
            )
        object.__setattr__(self, "samples", _readonly(np.array(samples, copy=True)))

    @classmethod
    def from_mono(cls, samples: np.ndarray, sample_rate: int) -> "DecodedSignal":
        return cls(np.asarray(samples, dtype=np.float32)[:, None], sample_rate, 1)

    @property
    def frame_count(self) -> int:
        return int(self.samples.shape[0])

    @property
    def duration_seconds(self) -> float:
        return self.frame_count / float(self.sample_rate)

    def channel(self, index: int) -> np.ndarray:
        return self.samples[:, index]

    def to_mono(self) -> np.ndarray:
        """Mean over channels; single-channel signals are returned as-is."""
        if self.channel_count == 1:
            return self.samples[:, 0]
        return self.samples.mean(axis=1, dtype=np.float32)


@dataclass(frozen=True)
class ContentBounds:
    """Sample range bracketing the non-silent part of a signal.

    ``end_sample`` is the inclusive index of the last loud sample.
    """

    start_sample: int
    end_sample: int
    leading_silence_seconds: float
    trimmed_duration_seconds: float
    is_silent: bool = False

    def __post_init__(self) -> None:
        if self.start_sample < 0 or self.end_sample < self.start_sample:
            raise ValueError(
                f"Invalid bounds [{self.start_sample}, {self.end_sample}]"
            )
        if self.leading_silence_seconds < 0:
            raise ValueError("Leading silence cannot be negative")


@dataclass(frozen=True, eq=False)
class PreparedAudio:
    """Fixed-length mono buffer, the only input the embedding adapter accepts."""

    samples: np.ndarray
    sample_rate: int
    source_duration_seconds: float
    truncated: bool = False

    def __post_init__(self) -> None:
        samples = np.asarray(self.samples, dtype=np.float32)
        if samples.ndim != 1:
            raise ValueError("Prepared audio must be mono (1-D)")
        object.__setattr__(self, "samples", _readonly(np.array(samples, copy=True)))

    def __len__(self) -> int:
        return int(self.samples.shape[0])

    @property
    def duration_seconds(self) -> float:
        return len(self) / float(self.sample_rate)


@dataclass(frozen=True, eq=False)
class WaveformSummary:
    """Per-column (min, max) peaks of a signal for display only."""

    mins: np.ndarray
    maxs: np.ndarray
    stroked: np.ndarray
    is_silent: bool = False

    def __post_init__(self) -> None:
        for name in ("mins", "maxs", "stroked"):
            values = np.array(getattr(self, name), copy=True)
            object.__setattr__(self, name, _readonly(values))
        if not (len(self.mins) == len(self.maxs) == len(self.stroked)):
            raise ValueError("Waveform summary arrays must have equal length")

    @property
    def width(self) -> int:
        return int(len(self.mins))

    def peaks(self) -> list[tuple[float, float]]:
        return list(zip(self.mins.tolist(), self.maxs.tolist()))


@dataclass(frozen=True, eq=False)
class Take:
    """Everything derived from one recording, swapped in as a single unit."""

    sequence: int
    blob: Optional[bytes]  # container captures only; raw PCM lives in signal
    capture_format: CaptureFormat
    signal: DecodedSignal
    bounds: ContentBounds
    summary: WaveformSummary

    @property
    def is_silent(self) -> bool:
        return self.bounds.is_silent
