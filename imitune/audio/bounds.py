"""Content-bounds detection: where the non-silent part of a take starts and ends."""

import numpy as np

from imitune.audio.types import ContentBounds, DecodedSignal
from imitune.utils.logger import setup_logger

logger = setup_logger(__name__)

DEFAULT_SILENCE_THRESHOLD = 0.01
DEFAULT_MIN_DISPLAY_DURATION = 0.1


class BoundsAnalyzer:
    """Finds the first and last sample above a silence threshold."""

    def __init__(
        self,
        threshold: float = DEFAULT_SILENCE_THRESHOLD,
        min_display_duration: float = DEFAULT_MIN_DISPLAY_DURATION,
    ) -> None:
        """Initialize the analyzer.

        Args:
            threshold: Absolute amplitude a sample must exceed to count as content.
            min_display_duration: Floor applied to the trimmed duration so the
                playback mapping never divides by zero.
        """
        self.threshold = threshold
        self.min_display_duration = min_display_duration

    def analyze(self, signal: DecodedSignal) -> ContentBounds:
        """Compute content bounds for a decoded signal.

        Multi-channel input is downmixed once before scanning. A signal with
        no sample above the threshold is reported as silent with bounds that
        span the whole buffer.

        Args:
            signal: Decoded signal.

        Returns:
            New content bounds.
        """
        mono = signal.to_mono()
        loud = np.flatnonzero(np.abs(mono) > self.threshold)

        if loud.size == 0:
            logger.warning(
                f"🟡 Silent recording: no sample above {self.threshold} "
                f"in {signal.duration_seconds:.2f}s"
            )
            return ContentBounds(
                start_sample=0,
                end_sample=max(0, signal.frame_count - 1),
                leading_silence_seconds=0.0,
                trimmed_duration_seconds=max(
                    self.min_display_duration, signal.duration_seconds
                ),
                is_silent=True,
            )

        start = int(loud[0])
        end = int(loud[-1])
        leading = start / float(signal.sample_rate)
        content = (end - start) / float(signal.sample_rate)

        bounds = ContentBounds(
            start_sample=start,
            end_sample=end,
            leading_silence_seconds=leading,
            trimmed_duration_seconds=max(self.min_display_duration, content),
        )
        logger.debug(
            f"Content bounds [{start}, {end}], leading silence {leading:.3f}s, "
            f"content {content:.3f}s"
        )
        return bounds
