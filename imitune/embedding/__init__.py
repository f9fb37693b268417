"""Embedding model invocation."""

from imitune.embedding.adapter import EmbeddingAdapter
from imitune.embedding.engine import InferenceEngine, OnnxInferenceEngine

__all__ = ["EmbeddingAdapter", "InferenceEngine", "OnnxInferenceEngine"]
