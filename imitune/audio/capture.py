"""Microphone capture adapter.

The stream is opened once and kept warm across recordings; chunks are only
forwarded while a sink is attached.
"""

import threading
from typing import Callable, Optional, Protocol

import numpy as np
import sounddevice as sd

from imitune.audio.device_manager import recommend_input_device
from imitune.audio.types import CaptureFormat
from imitune.utils.exceptions import DeviceUnavailable
from imitune.utils.logger import setup_logger

logger = setup_logger(__name__)

ChunkSink = Callable[[bytes], None]
ErrorSink = Callable[[str], None]


class CaptureDevice(Protocol):
    """What a recording session needs from a capture device."""

    @property
    def is_open(self) -> bool: ...

    def open(self) -> CaptureFormat: ...

    def start(
        self, on_chunk: ChunkSink, on_error: Optional[ErrorSink] = None
    ) -> None: ...

    def stop(self) -> None: ...

    def close(self) -> None: ...


class SoundDeviceCapture:
    """Captures float32 PCM from a PortAudio input device."""

    def __init__(
        self,
        device: Optional[int] = None,
        sample_rate: Optional[int] = None,
        channels: int = 1,
        chunk_size: int = 1024,
    ) -> None:
        """Initialize the capture adapter.

        Args:
            device: Input device index, or None to pick one.
            sample_rate: Capture rate, or None for the device default.
            channels: Channels to request (clamped to what the device has).
            chunk_size: Frames per callback block.
        """
        self.device = device
        self.requested_sample_rate = sample_rate
        self.requested_channels = channels
        self.chunk_size = chunk_size

        self.stream: Optional[sd.InputStream] = None
        self.format: Optional[CaptureFormat] = None
        self._sink: Optional[ChunkSink] = None
        self._error_sink: Optional[ErrorSink] = None
        self._lock = threading.Lock()

    @property
    def is_open(self) -> bool:
        return self.stream is not None

    def open(self) -> CaptureFormat:
        """Open and start the input stream if not already open.

        Returns:
            The format of delivered chunks.

        Raises:
            DeviceUnavailable: If no device or stream can be obtained.
        """
        if self.stream is not None and self.format is not None:
            return self.format

        device = recommend_input_device(self.device)
        try:
            if device is not None:
                device_info = sd.query_devices(device)
            else:
                device_info = sd.query_devices(kind="input")
            max_channels = int(device_info["max_input_channels"])
            if max_channels < 1:
                raise DeviceUnavailable(f"Device '{device_info['name']}' has no inputs")

            channels = max(1, min(self.requested_channels, max_channels))
            sample_rate = int(
                self.requested_sample_rate or device_info["default_samplerate"]
            )

            stream = sd.InputStream(
                device=device,
                channels=channels,
                samplerate=sample_rate,
                blocksize=self.chunk_size,
                dtype=np.float32,
                callback=self._audio_callback,
                finished_callback=self._on_stream_finished,
            )
            stream.start()
        except DeviceUnavailable:
            raise
        except Exception as e:
            logger.error(f"🛑 Failed to open input device {device}: {e}")
            raise DeviceUnavailable(f"Microphone unavailable: {e}") from e

        self.device = device
        self.stream = stream
        self.format = CaptureFormat(sample_rate=sample_rate, channels=channels)
        logger.info(
            f"Input stream open: device {device}, {sample_rate}Hz, {channels}ch"
        )
        return self.format

    def start(self, on_chunk: ChunkSink, on_error: Optional[ErrorSink] = None) -> None:
        """Forward captured blocks to ``on_chunk`` until ``stop()``."""
        if self.stream is None:
            raise DeviceUnavailable("Input stream is not open")
        with self._lock:
            self._sink = on_chunk
            self._error_sink = on_error

    def stop(self) -> None:
        """Detach the sink; the stream stays open for the next recording."""
        with self._lock:
            self._sink = None
            self._error_sink = None

    def close(self) -> None:
        """Stop and close the stream."""
        self.stop()
        stream, self.stream = self.stream, None
        self.format = None
        if stream is not None:
            try:
                if stream.active:
                    stream.stop()
                stream.close()
                logger.info("Input stream closed")
            except Exception as e:
                logger.warning(f"🟡 Error closing input stream: {e}")

    def _audio_callback(
        self, indata: np.ndarray, frames: int, time_info, status: sd.CallbackFlags
    ) -> None:
        if status:
            logger.warning(f"Audio callback status: {status}")
        with self._lock:
            sink = self._sink
        if sink is not None:
            sink(indata.astype("<f4", copy=False).tobytes())

    def _on_stream_finished(self) -> None:
        with self._lock:
            error_sink = self._error_sink
        if error_sink is not None:
            error_sink("Input stream stopped unexpectedly")
