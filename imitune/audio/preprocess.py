"""Downmix, resample and length-normalize decoded audio for the embedding model."""

from math import gcd
from typing import Tuple

import numpy as np
from scipy.signal import resample_poly

from imitune.audio.types import DecodedSignal, PreparedAudio
from imitune.utils.logger import setup_logger

logger = setup_logger(__name__)

RESAMPLE_METHODS = ("polyphase", "linear")


def downmix(samples: np.ndarray) -> np.ndarray:
    """Average same-index samples across channels.

    Args:
        samples: Array shaped ``(frames,)`` or ``(frames, channels)``.

    Returns:
        Mono float32 array shaped ``(frames,)``.
    """
    samples = np.asarray(samples, dtype=np.float32)
    if samples.ndim == 1:
        return samples
    if samples.shape[1] == 1:
        return samples[:, 0]
    return samples.mean(axis=1, dtype=np.float32)


def resampled_length(frame_count: int, source_rate: int, target_rate: int) -> int:
    """Output length for a rate change: ``round(duration * target_rate)``."""
    return int(round(frame_count / float(source_rate) * target_rate))


def resample(
    mono: np.ndarray,
    source_rate: int,
    target_rate: int,
    method: str = "polyphase",
) -> np.ndarray:
    """Resample a mono signal to a new rate.

    ``polyphase`` applies an anti-aliasing FIR filter and is the default.
    ``linear`` interpolates between neighbouring samples without filtering;
    it is lossier and aliases on downsampling, so only use it for
    lower-fidelity deployments.

    Args:
        mono: Mono float32 samples.
        source_rate: Sample rate of ``mono``.
        target_rate: Desired sample rate.
        method: ``"polyphase"`` or ``"linear"``.

    Returns:
        Resampled float32 array of length ``round(duration * target_rate)``.
    """
    if method not in RESAMPLE_METHODS:
        raise ValueError(f"Resample method must be one of: {RESAMPLE_METHODS}")

    mono = np.asarray(mono, dtype=np.float32)
    if source_rate == target_rate:
        return mono

    new_length = resampled_length(len(mono), source_rate, target_rate)
    if len(mono) == 0 or new_length == 0:
        return np.zeros(new_length, dtype=np.float32)

    if method == "polyphase":
        divisor = gcd(int(source_rate), int(target_rate))
        up = int(target_rate) // divisor
        down = int(source_rate) // divisor
        resampled = resample_poly(mono, up, down).astype(np.float32)
        # resample_poly yields ceil(n * up / down); trim or pad to the rounded length
        if len(resampled) >= new_length:
            resampled = resampled[:new_length]
        else:
            resampled = np.pad(resampled, (0, new_length - len(resampled)))
    else:
        resampled = np.interp(
            np.linspace(0, len(mono) - 1, new_length),
            np.arange(len(mono)),
            mono,
        ).astype(np.float32)

    logger.debug(
        f"Resampled ({method}): {len(mono)} samples @ {source_rate}Hz → "
        f"{len(resampled)} samples @ {target_rate}Hz"
    )
    return resampled


def normalize_length(mono: np.ndarray, target_length: int) -> Tuple[np.ndarray, bool]:
    """Zero-pad or truncate at the tail to exactly ``target_length`` samples.

    Args:
        mono: Mono float32 samples.
        target_length: Required output length.

    Returns:
        Tuple of (fixed-length array, whether trailing content was dropped).
    """
    mono = np.asarray(mono, dtype=np.float32)
    if len(mono) < target_length:
        out = np.zeros(target_length, dtype=np.float32)
        out[: len(mono)] = mono
        return out, False

    truncated = len(mono) > target_length
    if truncated:
        # Known lossy edge case: trailing content is discarded
        logger.warning(
            f"🟡 Truncating {len(mono)} samples to {target_length}; "
            f"{len(mono) - target_length} trailing samples dropped"
        )
    return np.array(mono[:target_length], dtype=np.float32, copy=True), truncated


class AudioPreprocessor:
    """Turns a decoded signal into fixed-shape model input."""

    def __init__(
        self,
        target_sample_rate: int = 32000,
        target_duration_seconds: float = 10.0,
        method: str = "polyphase",
    ) -> None:
        if method not in RESAMPLE_METHODS:
            raise ValueError(f"Resample method must be one of: {RESAMPLE_METHODS}")
        self.target_sample_rate = target_sample_rate
        self.target_duration_seconds = target_duration_seconds
        self.method = method
        self.target_length = int(round(target_sample_rate * target_duration_seconds))

        if method == "linear":
            logger.warning(
                "🟡 Linear resampling selected: lower fidelity, aliasing possible"
            )
        logger.info(
            f"AudioPreprocessor initialized: {target_sample_rate}Hz mono, "
            f"{target_duration_seconds}s ({self.target_length} samples)"
        )

    def prepare(self, signal: DecodedSignal) -> PreparedAudio:
        """Downmix, resample and length-normalize, in that order.

        Args:
            signal: Decoded signal of any rate and channel count.

        Returns:
            Prepared audio of exactly ``target_length`` samples.
        """
        mono = downmix(signal.samples)
        mono = resample(mono, signal.sample_rate, self.target_sample_rate, self.method)
        fixed, truncated = normalize_length(mono, self.target_length)

        return PreparedAudio(
            samples=fixed,
            sample_rate=self.target_sample_rate,
            source_duration_seconds=signal.duration_seconds,
            truncated=truncated,
        )
