"""Peak summaries of a take for waveform rendering.

The summary is a lossy display view. It is never model input.
"""

from typing import Optional

import numpy as np

from imitune.audio.types import ContentBounds, DecodedSignal, WaveformSummary
from imitune.utils.logger import setup_logger

logger = setup_logger(__name__)

DEFAULT_EPSILON = 0.001


class WaveformSummarizer:
    """Reduces a signal to one (min, max) pair per pixel column."""

    def __init__(self, epsilon: float = DEFAULT_EPSILON, width: int = 600) -> None:
        """Initialize the summarizer.

        Args:
            epsilon: Columns whose excursion is not above this are not stroked.
            width: Default rendering width in columns.
        """
        self.epsilon = epsilon
        self.width = width

    def summarize(
        self,
        signal: DecodedSignal,
        bounds: Optional[ContentBounds] = None,
        width: Optional[int] = None,
    ) -> WaveformSummary:
        """Summarize the content window of a signal.

        Args:
            signal: Decoded signal.
            bounds: Content bounds. The full signal is used when omitted or silent.
            width: Rendering width in columns (defaults to the configured width).

        Returns:
            Peak summary normalized so the tallest excursion reaches +/-1.
        """
        width = width or self.width
        if width < 1:
            raise ValueError("Waveform width must be at least 1")

        mono = signal.to_mono()
        silent = bounds is not None and bounds.is_silent
        if bounds is not None and not silent:
            window = mono[bounds.start_sample : bounds.end_sample + 1]
        else:
            window = mono

        peak = float(np.max(np.abs(window))) if window.size else 0.0
        scale = 1.0 / peak if peak > 0 else 1.0

        samples_per_column = max(1, len(window) // width)
        usable = min(len(window), samples_per_column * width)

        mins = np.zeros(width, dtype=np.float32)
        maxs = np.zeros(width, dtype=np.float32)
        if usable:
            scaled = window[:usable].astype(np.float32) * np.float32(scale)
            columns = usable // samples_per_column
            blocks = scaled[: columns * samples_per_column].reshape(
                columns, samples_per_column
            )
            # Seed at zero: a column always spans the centre line
            mins[:columns] = np.minimum(blocks.min(axis=1), 0.0)
            maxs[:columns] = np.maximum(blocks.max(axis=1), 0.0)

        stroked = np.abs(maxs - mins) > self.epsilon

        logger.debug(
            f"Waveform summary: {width} columns, {samples_per_column} samples/column, "
            f"{int(stroked.sum())} stroked"
        )
        return WaveformSummary(mins=mins, maxs=maxs, stroked=stroked, is_silent=silent)
