"""Inference engines: the black-box model behind the embedding adapter."""

from pathlib import Path
from typing import Dict, List, Optional, Protocol, Sequence

import httpx
import numpy as np
import onnxruntime as ort

from imitune.utils.exceptions import InferenceError
from imitune.utils.logger import setup_logger

logger = setup_logger(__name__)


class InferenceEngine(Protocol):
    """A loaded model that maps named input tensors to named output tensors."""

    @property
    def input_names(self) -> List[str]: ...

    @property
    def output_names(self) -> List[str]: ...

    def run(self, feeds: Dict[str, np.ndarray]) -> Dict[str, np.ndarray]: ...


class OnnxInferenceEngine:
    """Wraps an ``onnxruntime.InferenceSession``."""

    def __init__(self, session: ort.InferenceSession) -> None:
        self.session = session

    @classmethod
    def load(
        cls,
        model_path: str,
        providers: Optional[Sequence[str]] = None,
        timeout: float = 60.0,
    ) -> "OnnxInferenceEngine":
        """Load a model from a local path or an http(s) URL.

        Falls back to the CPU provider once if the requested providers fail.

        Args:
            model_path: ``.onnx`` file path or URL.
            providers: onnxruntime execution providers, in preference order.
            timeout: Download timeout for URLs.

        Returns:
            Loaded engine.

        Raises:
            InferenceError: If the model cannot be fetched or loaded.
        """
        providers = list(providers or ["CPUExecutionProvider"])
        model_bytes = cls._read_model(model_path, timeout)
        logger.info(f"Model loaded, size: {len(model_bytes)} bytes")

        try:
            session = ort.InferenceSession(model_bytes, providers=providers)
        except Exception as e:
            if providers == ["CPUExecutionProvider"]:
                raise InferenceError(f"Failed to create inference session: {e}") from e
            logger.warning(
                f"🟡 Session creation with {providers} failed ({e}), trying CPU"
            )
            try:
                session = ort.InferenceSession(
                    model_bytes, providers=["CPUExecutionProvider"]
                )
            except Exception as fallback_error:
                raise InferenceError(
                    f"Failed to create inference session: {fallback_error}"
                ) from fallback_error

        engine = cls(session)
        logger.info(
            f"🟢 Inference session ready: inputs {engine.input_names}, "
            f"outputs {engine.output_names}"
        )
        return engine

    @staticmethod
    def _read_model(model_path: str, timeout: float) -> bytes:
        if model_path.startswith(("http://", "https://")):
            try:
                response = httpx.get(model_path, timeout=timeout, follow_redirects=True)
                response.raise_for_status()
            except httpx.HTTPError as e:
                raise InferenceError(f"Failed to download model: {e}") from e
            return response.content

        path = Path(model_path)
        if not path.exists():
            raise InferenceError(f"Model file not found: {path}")
        return path.read_bytes()

    @property
    def input_names(self) -> List[str]:
        return [i.name for i in self.session.get_inputs()]

    @property
    def output_names(self) -> List[str]:
        return [o.name for o in self.session.get_outputs()]

    def run(self, feeds: Dict[str, np.ndarray]) -> Dict[str, np.ndarray]:
        names = self.output_names
        outputs = self.session.run(names, feeds)
        return dict(zip(names, outputs))
