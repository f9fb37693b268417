"""Tests for imitune/audio/preprocess.py: downmix, resample, fixed length."""

import numpy as np
import pytest

from imitune.audio.preprocess import (
    AudioPreprocessor,
    downmix,
    normalize_length,
    resample,
    resampled_length,
)
from imitune.audio.types import DecodedSignal
from tests.conftest import make_signal

TARGET_LENGTH = 320000


@pytest.fixture
def preprocessor():
    return AudioPreprocessor(target_sample_rate=32000, target_duration_seconds=10.0)


class TestFixedLength:
    @pytest.mark.parametrize("duration", [0.1, 10.0, 37.0])
    def test_output_length_is_constant(self, preprocessor, duration):
        prepared = preprocessor.prepare(make_signal(duration, 44100, 2))
        assert len(prepared) == TARGET_LENGTH
        assert prepared.samples.dtype == np.float32
        assert prepared.sample_rate == 32000

    def test_target_length(self, preprocessor):
        assert preprocessor.target_length == TARGET_LENGTH

    def test_long_input_is_flagged_truncated(self, preprocessor):
        prepared = preprocessor.prepare(make_signal(37.0, 44100, 1))
        assert prepared.truncated
        assert prepared.source_duration_seconds == pytest.approx(37.0)

    def test_short_input_is_not_truncated(self, preprocessor):
        assert not preprocessor.prepare(make_signal(2.0, 44100, 1)).truncated

    def test_prepared_samples_are_read_only(self, preprocessor):
        prepared = preprocessor.prepare(make_signal(1.0, 32000, 1))
        with pytest.raises(ValueError):
            prepared.samples[0] = 1.0


class TestLaws:
    def test_identity_at_target_shape(self, preprocessor):
        """Mono, 32 kHz, exactly N samples passes through unchanged."""
        rng = np.random.default_rng(1)
        samples = rng.uniform(-1, 1, TARGET_LENGTH).astype(np.float32)

        prepared = preprocessor.prepare(DecodedSignal.from_mono(samples, 32000))

        np.testing.assert_array_equal(prepared.samples, samples)
        assert not prepared.truncated

    def test_idempotent(self, preprocessor):
        first = preprocessor.prepare(make_signal(3.0, 48000, 2, value=0.3))
        second = preprocessor.prepare(DecodedSignal.from_mono(first.samples, 32000))
        np.testing.assert_array_equal(first.samples, second.samples)

    def test_short_native_rate_input_is_zero_padded(self, preprocessor):
        """3 s of 0.5 at 32 kHz: samples kept exactly, zeros after."""
        prepared = preprocessor.prepare(make_signal(3.0, 32000, 1, value=0.5))

        assert len(prepared) == TARGET_LENGTH
        assert np.all(prepared.samples[:96000] == 0.5)
        assert np.all(prepared.samples[96000:] == 0.0)
        assert not prepared.truncated

    def test_padding_law(self, preprocessor):
        """0.5 s at 96 kHz: 16000 resampled samples, zeros after."""
        rng = np.random.default_rng(2)
        samples = rng.uniform(-0.5, 0.5, 48000).astype(np.float32)

        prepared = preprocessor.prepare(DecodedSignal.from_mono(samples, 96000))

        assert len(prepared) == TARGET_LENGTH
        assert np.any(prepared.samples[:16000] != 0)
        assert np.all(prepared.samples[16000:] == 0)

    def test_downmix_law(self):
        left = np.array([1.0, 0.5, -1.0], dtype=np.float32)
        right = np.array([0.0, 0.5, 1.0], dtype=np.float32)
        np.testing.assert_allclose(
            downmix(np.stack([left, right], axis=1)), [0.5, 0.5, 0.0]
        )

    def test_downmix_mono_passthrough(self):
        samples = np.array([0.1, 0.2], dtype=np.float32)
        np.testing.assert_array_equal(downmix(samples[:, None]), samples)


class TestResample:
    def test_equal_rates_skip(self):
        samples = np.array([0.1, 0.2, 0.3], dtype=np.float32)
        np.testing.assert_array_equal(resample(samples, 16000, 16000), samples)

    @pytest.mark.parametrize("method", ["polyphase", "linear"])
    @pytest.mark.parametrize("source_rate", [8000, 22050, 44100, 48000])
    def test_output_length(self, method, source_rate):
        samples = np.zeros(source_rate * 2 + 7, dtype=np.float32)
        out = resample(samples, source_rate, 32000, method)
        assert len(out) == resampled_length(len(samples), source_rate, 32000)

    def test_polyphase_preserves_constant(self):
        samples = np.full(44100, 0.8, dtype=np.float32)
        out = resample(samples, 44100, 32000)
        assert np.abs(out[1000:-1000] - 0.8).max() < 1e-2

    def test_unknown_method(self):
        with pytest.raises(ValueError, match="Resample method"):
            resample(np.zeros(10, dtype=np.float32), 8000, 16000, "cubic")

    def test_preprocessor_rejects_unknown_method(self):
        with pytest.raises(ValueError):
            AudioPreprocessor(method="sinc")


class TestNormalizeLength:
    def test_pads_tail_with_zeros(self):
        out, truncated = normalize_length(np.ones(3, dtype=np.float32), 5)
        np.testing.assert_array_equal(out, [1, 1, 1, 0, 0])
        assert not truncated

    def test_truncates_tail(self):
        out, truncated = normalize_length(np.arange(6, dtype=np.float32), 4)
        np.testing.assert_array_equal(out, [0, 1, 2, 3])
        assert truncated

    def test_exact_length(self):
        out, truncated = normalize_length(np.ones(4, dtype=np.float32), 4)
        assert len(out) == 4 and not truncated
