"""Tests for imitune/embedding: tensor contract and engine loading."""

import numpy as np
import pytest

from imitune.audio.types import PreparedAudio
from imitune.embedding.adapter import EmbeddingAdapter
from imitune.embedding.engine import OnnxInferenceEngine
from imitune.utils.exceptions import EngineUnavailable, InferenceError

N = 320


def prepared(length: int = N) -> PreparedAudio:
    return PreparedAudio(np.zeros(length, dtype=np.float32), 32, length / 32)


@pytest.fixture
def adapter(fake_engine):
    return EmbeddingAdapter(fake_engine, expected_length=N)


class TestTensorContract:
    def test_input_tensor_shape_and_name(self, adapter, fake_engine):
        adapter.embed(prepared())

        feeds = fake_engine.calls[0]
        assert list(feeds) == ["waveform"]
        assert feeds["waveform"].shape == (1, N)
        assert feeds["waveform"].dtype == np.float32

    def test_returns_flat_vector(self, adapter):
        vector = adapter.embed(prepared())
        assert vector.shape == (8,)
        assert vector.dtype == np.float32

    def test_wrong_length_rejected(self, adapter, fake_engine):
        with pytest.raises(InferenceError, match="Input length"):
            adapter.embed(prepared(N - 1))
        assert fake_engine.calls == []

    def test_raw_array_rejected(self, adapter):
        with pytest.raises(InferenceError, match="PreparedAudio"):
            adapter.embed(np.zeros(N, dtype=np.float32))

    def test_missing_output_rejected(self, fake_engine):
        fake_engine.output_name = "logits"
        adapter = EmbeddingAdapter(fake_engine, expected_length=N)
        with pytest.raises(InferenceError, match="'embedding' missing"):
            adapter.embed(prepared())

    def test_bad_output_shape_rejected(self, mocker):
        engine = mocker.Mock()
        engine.run.return_value = {"embedding": np.zeros((2, 8), dtype=np.float32)}
        adapter = EmbeddingAdapter(engine, expected_length=N)
        with pytest.raises(InferenceError, match=r"\[1, D\]"):
            adapter.embed(prepared())

    def test_dimension_mismatch_rejected(self, fake_engine):
        adapter = EmbeddingAdapter(fake_engine, expected_length=N, embedding_dim=16)
        with pytest.raises(InferenceError, match="dimension"):
            adapter.embed(prepared())

    def test_non_finite_output_rejected(self, mocker):
        engine = mocker.Mock()
        engine.run.return_value = {"embedding": np.array([[0.1, np.nan, 0.3]])}
        adapter = EmbeddingAdapter(engine, expected_length=N)
        with pytest.raises(InferenceError, match="NaN"):
            adapter.embed(prepared())


class TestEngineFailures:
    def test_engine_exception_wrapped(self, adapter, fake_engine):
        fake_engine.side_effect = RuntimeError("bad node")
        with pytest.raises(InferenceError, match="bad node"):
            adapter.embed(prepared())

    def test_transient_not_retried_by_default(self, adapter, fake_engine):
        fake_engine.side_effect = [EngineUnavailable("busy")]
        with pytest.raises(EngineUnavailable):
            adapter.embed(prepared())
        assert len(fake_engine.calls) == 1

    def test_transient_retried_once_when_enabled(self, fake_engine):
        fake_engine.side_effect = [EngineUnavailable("busy")]
        adapter = EmbeddingAdapter(fake_engine, expected_length=N, retry_transient=True)

        vector = adapter.embed(prepared())

        assert vector.shape == (8,)
        assert len(fake_engine.calls) == 2

    def test_retry_gives_up_after_one(self, fake_engine):
        fake_engine.side_effect = [EngineUnavailable("busy"), EngineUnavailable("busy")]
        adapter = EmbeddingAdapter(fake_engine, expected_length=N, retry_transient=True)
        with pytest.raises(EngineUnavailable):
            adapter.embed(prepared())
        assert len(fake_engine.calls) == 2


class TestOnnxEngine:
    def _fake_session(self, mocker):
        session = mocker.Mock()
        waveform = mocker.Mock()
        waveform.name = "waveform"
        embedding = mocker.Mock()
        embedding.name = "embedding"
        session.get_inputs.return_value = [waveform]
        session.get_outputs.return_value = [embedding]
        session.run.return_value = [np.ones((1, 4), dtype=np.float32)]
        return session

    def test_missing_model_file(self, tmp_path):
        with pytest.raises(InferenceError, match="not found"):
            OnnxInferenceEngine.load(str(tmp_path / "missing.onnx"))

    def test_load_local_file(self, tmp_path, mocker):
        model = tmp_path / "model.onnx"
        model.write_bytes(b"onnx")
        session = self._fake_session(mocker)
        factory = mocker.patch(
            "imitune.embedding.engine.ort.InferenceSession", return_value=session
        )

        engine = OnnxInferenceEngine.load(str(model))

        factory.assert_called_once_with(b"onnx", providers=["CPUExecutionProvider"])
        assert engine.input_names == ["waveform"]
        assert engine.output_names == ["embedding"]
        outputs = engine.run({"waveform": np.zeros((1, 4), dtype=np.float32)})
        assert outputs["embedding"].shape == (1, 4)

    def test_falls_back_to_cpu(self, tmp_path, mocker):
        model = tmp_path / "model.onnx"
        model.write_bytes(b"onnx")
        session = self._fake_session(mocker)
        factory = mocker.patch(
            "imitune.embedding.engine.ort.InferenceSession",
            side_effect=[RuntimeError("no CUDA"), session],
        )

        OnnxInferenceEngine.load(str(model), providers=["CUDAExecutionProvider"])

        assert factory.call_count == 2
        assert factory.call_args.kwargs["providers"] == ["CPUExecutionProvider"]

    def test_cpu_failure_raises(self, tmp_path, mocker):
        model = tmp_path / "model.onnx"
        model.write_bytes(b"garbage")
        mocker.patch(
            "imitune.embedding.engine.ort.InferenceSession",
            side_effect=RuntimeError("invalid protobuf"),
        )
        with pytest.raises(InferenceError, match="invalid protobuf"):
            OnnxInferenceEngine.load(str(model))

    def test_download_from_url(self, mocker):
        response = mocker.Mock(content=b"remote-onnx")
        get = mocker.patch("imitune.embedding.engine.httpx.get", return_value=response)
        factory = mocker.patch(
            "imitune.embedding.engine.ort.InferenceSession",
            return_value=self._fake_session(mocker),
        )

        OnnxInferenceEngine.load("https://example.com/model.onnx")

        get.assert_called_once()
        assert factory.call_args.args[0] == b"remote-onnx"
