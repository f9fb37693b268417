"""Decoding of finalized capture blobs into signals, and WAV encoding."""

import io

import numpy as np
import soundfile as sf

from imitune.audio.types import CaptureFormat, DecodedSignal
from imitune.utils.exceptions import DecodeError
from imitune.utils.logger import setup_logger

logger = setup_logger(__name__)

_FLOAT32_BYTES = 4

_CONTAINER_MAGIC = (
    (b"RIFF", "audio/wav"),
    (b"fLaC", "audio/flac"),
    (b"OggS", "audio/ogg"),
)


def decode_capture(blob: bytes, capture_format: CaptureFormat) -> DecodedSignal:
    """Decode a concatenated capture blob.

    Args:
        blob: All capture chunks of one recording, in order.
        capture_format: How the chunks were encoded.

    Returns:
        The decoded signal.

    Raises:
        DecodeError: If the blob is empty or cannot be parsed.
    """
    if not blob:
        raise DecodeError("No audio was captured")

    if capture_format.encoding == "pcm_f32le":
        signal = _decode_raw_float32(blob, capture_format)
    elif capture_format.encoding == "container":
        signal = _decode_container(blob)
    else:
        raise DecodeError(f"Unknown capture encoding: {capture_format.encoding}")

    if signal.frame_count == 0:
        raise DecodeError("Captured audio contains no frames")

    logger.debug(
        f"Decoded {signal.frame_count} frames @ {signal.sample_rate}Hz, "
        f"{signal.channel_count}ch ({signal.duration_seconds:.2f}s)"
    )
    return signal


def _decode_raw_float32(blob: bytes, capture_format: CaptureFormat) -> DecodedSignal:
    frame_bytes = _FLOAT32_BYTES * capture_format.channels
    if len(blob) % frame_bytes:
        raise DecodeError(
            f"Capture length {len(blob)} is not a whole number of "
            f"{capture_format.channels}-channel float32 frames"
        )
    samples = np.frombuffer(blob, dtype="<f4").reshape(-1, capture_format.channels)
    return DecodedSignal(
        samples.astype(np.float32),
        capture_format.sample_rate,
        capture_format.channels,
    )


def _decode_container(blob: bytes) -> DecodedSignal:
    try:
        samples, sample_rate = sf.read(
            io.BytesIO(blob), dtype="float32", always_2d=True
        )
    except (RuntimeError, TypeError, ValueError) as e:
        raise DecodeError(f"Unsupported or corrupt audio: {e}") from e
    return DecodedSignal(samples, int(sample_rate), int(samples.shape[1]))


def encode_wav(signal: DecodedSignal, subtype: str = "PCM_16") -> bytes:
    """Encode a signal as WAV bytes.

    Args:
        signal: Signal to encode.
        subtype: soundfile subtype; ``"FLOAT"`` keeps samples exact.

    Returns:
        WAV file contents.
    """
    buffer = io.BytesIO()
    sf.write(
        buffer,
        np.clip(signal.samples, -1.0, 1.0),
        signal.sample_rate,
        format="WAV",
        subtype=subtype,
    )
    return buffer.getvalue()


def guess_mime_type(blob: bytes) -> str:
    """MIME type of a container blob from its magic bytes."""
    for magic, mime_type in _CONTAINER_MAGIC:
        if blob.startswith(magic):
            return mime_type
    return "application/octet-stream"
