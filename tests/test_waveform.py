"""Tests for imitune/audio/waveform.py: per-column peak summaries."""

import numpy as np
import pytest

from imitune.audio.bounds import BoundsAnalyzer
from imitune.audio.types import ContentBounds, DecodedSignal
from imitune.audio.waveform import WaveformSummarizer
from tests.conftest import padded_burst


@pytest.fixture
def summarizer():
    return WaveformSummarizer(epsilon=0.001, width=600)


class TestSummary:
    def test_width_and_normalization(self, summarizer):
        signal = DecodedSignal.from_mono(padded_burst(0.2, 1.0, 0.2, value=0.25), 8000)
        bounds = BoundsAnalyzer().analyze(signal)

        summary = summarizer.summarize(signal, bounds)

        assert summary.width == 600
        assert summary.maxs.max() == pytest.approx(1.0)
        assert not summary.is_silent

    def test_columns_seeded_at_zero(self, summarizer):
        """An all-positive column still reaches down to the centre line."""
        samples = np.full(8, 0.5, dtype=np.float32)
        summary = summarizer.summarize(DecodedSignal.from_mono(samples, 8), width=4)

        np.testing.assert_array_equal(summary.mins, np.zeros(4))
        np.testing.assert_allclose(summary.maxs, np.ones(4))
        assert summary.stroked.all()

    def test_alternating_signal(self, summarizer):
        samples = np.array([0.5, -0.25, 0.5, -0.5], dtype=np.float32)
        summary = summarizer.summarize(DecodedSignal.from_mono(samples, 4), width=2)
        assert summary.peaks() == [(-0.5, 1.0), (-1.0, 1.0)]

    def test_flat_columns_are_not_stroked(self):
        samples = np.array([0.0, 0.0, 0.0005, 0.0, 0.9, -0.9], dtype=np.float32)
        summary = WaveformSummarizer(epsilon=0.001).summarize(
            DecodedSignal.from_mono(samples, 6), width=3
        )
        np.testing.assert_array_equal(summary.stroked, [False, False, True])

    def test_short_window_leaves_empty_columns(self, summarizer):
        """Fewer samples than columns: trailing columns are (0, 0) and unstroked."""
        samples = np.array([0.5, -0.5, 0.25], dtype=np.float32)
        summary = summarizer.summarize(DecodedSignal.from_mono(samples, 3), width=5)

        assert summary.peaks()[3:] == [(0.0, 0.0), (0.0, 0.0)]
        np.testing.assert_array_equal(
            summary.stroked, [True, True, True, False, False]
        )

    def test_window_follows_bounds(self, summarizer):
        """Only samples inside [start, end] are summarized."""
        samples = np.array([1.0, 0.0, 0.25, -0.5, 0.0, 1.0], dtype=np.float32)
        bounds = ContentBounds(2, 3, 0.5, 0.5)

        summary = summarizer.summarize(
            DecodedSignal.from_mono(samples, 4), bounds, width=2
        )

        assert summary.peaks() == [(0.0, 0.5), (-1.0, 0.0)]


class TestSilentSummary:
    def test_silent_signal_is_flat_and_flagged(self, summarizer):
        signal = DecodedSignal.from_mono(np.zeros(1000, dtype=np.float32), 1000)
        bounds = BoundsAnalyzer().analyze(signal)

        summary = summarizer.summarize(signal, bounds)

        assert summary.is_silent
        assert not summary.stroked.any()
        np.testing.assert_array_equal(summary.maxs, np.zeros(600))

    def test_no_bounds_is_not_silent(self, summarizer):
        signal = DecodedSignal.from_mono(np.zeros(100, dtype=np.float32), 100)
        assert not summarizer.summarize(signal).is_silent


class TestValidation:
    def test_negative_width_rejected(self, summarizer):
        signal = DecodedSignal.from_mono(np.ones(10, dtype=np.float32), 10)
        with pytest.raises(ValueError):
            summarizer.summarize(signal, width=-1)
