"""Packages prepared audio into the model's tensor contract and unpacks the embedding.

Contract: input ``waveform`` float32 ``[1, N]``, output ``embedding`` float32
``[1, D]``. Anything else is a hard error.
"""

from typing import Optional

import numpy as np

from imitune.audio.types import PreparedAudio
from imitune.embedding.engine import InferenceEngine
from imitune.utils.exceptions import EngineUnavailable, InferenceError
from imitune.utils.logger import setup_logger

logger = setup_logger(__name__)


class EmbeddingAdapter:
    """Runs the inference engine on one prepared buffer at a time."""

    def __init__(
        self,
        engine: InferenceEngine,
        expected_length: int,
        input_name: str = "waveform",
        output_name: str = "embedding",
        embedding_dim: Optional[int] = None,
        retry_transient: bool = False,
    ) -> None:
        """Initialize the adapter.

        Args:
            engine: Loaded inference engine.
            expected_length: N, the fixed number of input samples.
            input_name: Name of the input tensor.
            output_name: Name of the output tensor.
            embedding_dim: D, if known; outputs of another width are rejected.
            retry_transient: Resubmit once when the engine raises EngineUnavailable.
        """
        self.engine = engine
        self.expected_length = expected_length
        self.input_name = input_name
        self.output_name = output_name
        self.embedding_dim = embedding_dim
        self.retry_transient = retry_transient

    def embed(self, prepared: PreparedAudio) -> np.ndarray:
        """Compute the embedding vector for prepared audio.

        Args:
            prepared: Fixed-length mono buffer.

        Returns:
            Float32 vector of shape ``(D,)``.

        Raises:
            InferenceError: If the contract is violated or the engine fails.
        """
        if not isinstance(prepared, PreparedAudio):
            raise InferenceError(
                f"Embedding input must be PreparedAudio, got {type(prepared).__name__}"
            )
        if len(prepared) != self.expected_length:
            raise InferenceError(
                f"Input length {len(prepared)} != expected {self.expected_length}"
            )

        tensor = np.ascontiguousarray(prepared.samples, dtype=np.float32).reshape(
            1, self.expected_length
        )
        feeds = {self.input_name: tensor}
        logger.debug(f"Running inference with feeds: {list(feeds)} {tensor.shape}")

        try:
            outputs = self._run(feeds)
        except EngineUnavailable as e:
            if not self.retry_transient:
                raise
            logger.warning(f"🟡 Engine unavailable ({e}), retrying once")
            outputs = self._run(feeds)

        return self._extract(outputs)

    def _run(self, feeds: dict) -> dict:
        try:
            return self.engine.run(feeds)
        except InferenceError:
            raise
        except Exception as e:
            logger.error(f"🛑 Inference failed: {e}")
            raise InferenceError(f"Inference failed: {e}") from e

    def _extract(self, outputs: dict) -> np.ndarray:
        if self.output_name not in outputs:
            raise InferenceError(
                f"Engine output '{self.output_name}' missing; got {sorted(outputs)}"
            )
        output = np.asarray(outputs[self.output_name])
        if output.ndim != 2 or output.shape[0] != 1 or output.shape[1] < 1:
            raise InferenceError(
                f"Expected output shape [1, D], got {list(output.shape)}"
            )
        if self.embedding_dim is not None and output.shape[1] != self.embedding_dim:
            raise InferenceError(
                f"Embedding dimension {output.shape[1]} != "
                f"expected {self.embedding_dim}"
            )

        vector = np.array(output[0], dtype=np.float32)
        if not np.all(np.isfinite(vector)):
            raise InferenceError("Embedding contains NaN or infinite values")
        logger.info(f"Embedding extracted, vector length: {len(vector)}")
        return vector
