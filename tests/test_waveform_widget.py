"""Tests for the plotting helper in imitune/ui/waveform_widget.py."""

import numpy as np

from imitune.audio.types import WaveformSummary
from imitune.ui.waveform_widget import summary_segments


class TestSummarySegments:
    def test_only_stroked_columns_are_drawn(self):
        summary = WaveformSummary(
            mins=np.array([-1.0, 0.0, -0.5]),
            maxs=np.array([1.0, 0.0, 0.25]),
            stroked=np.array([True, False, True]),
        )

        x, y, connect = summary_segments(summary)

        np.testing.assert_array_equal(x, [0, 0, 2, 2])
        np.testing.assert_array_equal(y, [-1.0, 1.0, -0.5, 0.25])
        np.testing.assert_array_equal(connect, [True, False, True, False])

    def test_empty_summary(self):
        summary = WaveformSummary(
            mins=np.zeros(3), maxs=np.zeros(3), stroked=np.zeros(3, dtype=bool)
        )
        x, y, connect = summary_segments(summary)
        assert len(x) == len(y) == len(connect) == 0
