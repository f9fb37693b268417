"""Audio capture and deterministic preprocessing.

This package turns a microphone stream into fixed-shape model input:
- capture: SoundDeviceCapture, the warm PortAudio input stream
- device_manager: Device enumeration and validation
- session: RecordingSession state machine producing immutable takes
- decoding: Capture blob decoding and WAV encoding
- bounds: Content-bounds (silence) analysis
- preprocess: Downmix, resample and length normalization
- waveform: Peak summaries for display
- playback: Progress mapping and output clock
"""

from imitune.audio.bounds import BoundsAnalyzer
from imitune.audio.preprocess import AudioPreprocessor
from imitune.audio.session import RecordingSession, SessionState
from imitune.audio.types import (
    CaptureFormat,
    ContentBounds,
    DecodedSignal,
    PreparedAudio,
    Take,
    WaveformSummary,
)
from imitune.audio.waveform import WaveformSummarizer

__all__ = [
    "AudioPreprocessor",
    "BoundsAnalyzer",
    "CaptureFormat",
    "ContentBounds",
    "DecodedSignal",
    "PreparedAudio",
    "RecordingSession",
    "SessionState",
    "Take",
    "WaveformSummarizer",
    "WaveformSummary",
]
