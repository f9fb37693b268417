"""Take -> prepared audio -> embedding -> search, with typed outcomes."""

from concurrent.futures import Future, ThreadPoolExecutor
from dataclasses import dataclass, field
from enum import Enum
from typing import List, Optional, Sequence

import numpy as np

from imitune.audio.decoding import encode_wav, guess_mime_type
from imitune.audio.preprocess import AudioPreprocessor
from imitune.audio.session import RecordingSession
from imitune.audio.types import PreparedAudio, Take
from imitune.embedding.adapter import EmbeddingAdapter
from imitune.services.feedback_client import FeedbackClient, FeedbackResponse, Rating
from imitune.services.search_client import SearchClient, SearchResult
from imitune.utils.exceptions import ConfigurationError, InferenceError, NetworkError
from imitune.utils.logger import setup_logger

logger = setup_logger(__name__)

SILENT_MESSAGE = "We couldn't hear anything. Try again, a little louder."
INFERENCE_MESSAGE = "Couldn't analyse that recording. Please try again."
NETWORK_MESSAGE = "Search is unavailable right now. Please try again."


class OutcomeStatus(Enum):
    """How a search attempt ended."""

    OK = "ok"
    SILENT = "silent"
    INFERENCE_ERROR = "inference_error"
    NETWORK_ERROR = "network_error"
    STALE = "stale"


@dataclass(frozen=True, eq=False)
class SearchOutcome:
    """Result of running one take through the pipeline."""

    status: OutcomeStatus
    sequence: int
    results: List[SearchResult] = field(default_factory=list)
    embedding: Optional[np.ndarray] = None
    prepared: Optional[PreparedAudio] = None
    message: str = ""

    @property
    def ok(self) -> bool:
        return self.status is OutcomeStatus.OK


class ImitationPipeline:
    """Runs recorded takes through preprocessing, inference and search."""

    def __init__(
        self,
        session: RecordingSession,
        preprocessor: AudioPreprocessor,
        adapter: EmbeddingAdapter,
        search_client: SearchClient,
        feedback_client: Optional[FeedbackClient] = None,
    ) -> None:
        self.session = session
        self.preprocessor = preprocessor
        self.adapter = adapter
        self.search_client = search_client
        self.feedback_client = feedback_client
        self._executor = ThreadPoolExecutor(
            max_workers=1, thread_name_prefix="imitune-pipeline"
        )

    def run(self, take: Take) -> SearchOutcome:
        """Search for sounds similar to a take.

        Silent takes are never embedded. Results for a take that has been
        replaced by a newer recording are discarded.

        Args:
            take: Finalized recording.

        Returns:
            Typed outcome; this method does not raise for pipeline errors.
        """
        if take.is_silent:
            logger.warning(f"🟡 Take #{take.sequence} is silent, not searching")
            return SearchOutcome(
                OutcomeStatus.SILENT, take.sequence, message=SILENT_MESSAGE
            )

        prepared = self.preprocessor.prepare(take.signal)
        try:
            embedding = self.adapter.embed(prepared)
        except InferenceError as e:
            logger.error(f"🛑 Embedding failed for take #{take.sequence}: {e}")
            return self._guard(
                take,
                SearchOutcome(
                    OutcomeStatus.INFERENCE_ERROR,
                    take.sequence,
                    prepared=prepared,
                    message=f"{INFERENCE_MESSAGE} ({e})",
                ),
            )

        if not self.session.is_current(take.sequence):
            return self._stale(take)

        try:
            results = self.search_client.search(embedding)
        except NetworkError as e:
            return self._guard(
                take,
                SearchOutcome(
                    OutcomeStatus.NETWORK_ERROR,
                    take.sequence,
                    embedding=embedding,
                    prepared=prepared,
                    message=f"{NETWORK_MESSAGE} ({e})",
                ),
            )

        return self._guard(
            take,
            SearchOutcome(
                OutcomeStatus.OK,
                take.sequence,
                results=results,
                embedding=embedding,
                prepared=prepared,
            ),
        )

    def submit_async(self, take: Take) -> "Future[SearchOutcome]":
        """Run ``run(take)`` on the pipeline worker thread."""
        return self._executor.submit(self.run, take)

    def submit_feedback(
        self,
        take: Take,
        results: Sequence[SearchResult],
        ratings: Sequence[Rating],
    ) -> FeedbackResponse:
        """Send the take's audio with one rating per result.

        Raises:
            ConfigurationError: If no feedback endpoint is configured.
            NetworkError: If the submission fails.
        """
        if self.feedback_client is None:
            raise ConfigurationError("No feedback endpoint configured")

        if take.capture_format.encoding == "container":
            blob, mime_type = take.blob, guess_mime_type(take.blob)
        else:
            # Raw float32 chunks have no header; wrap the same samples in WAV
            blob, mime_type = encode_wav(take.signal, subtype="FLOAT"), "audio/wav"

        return self.feedback_client.submit(
            blob, [r.url for r in results], ratings, mime_type=mime_type
        )

    def submit_feedback_async(
        self,
        take: Take,
        results: Sequence[SearchResult],
        ratings: Sequence[Rating],
    ) -> "Future[FeedbackResponse]":
        """Run ``submit_feedback`` on the pipeline worker thread."""
        return self._executor.submit(self.submit_feedback, take, results, ratings)

    def close(self) -> None:
        """Stop the worker and dispose the recording session."""
        try:
            self._executor.shutdown(wait=False, cancel_futures=True)
        finally:
            self.session.dispose()

    def _guard(self, take: Take, outcome: SearchOutcome) -> SearchOutcome:
        if not self.session.is_current(take.sequence):
            return self._stale(take)
        return outcome

    def _stale(self, take: Take) -> SearchOutcome:
        logger.info(
            f"Discarding result for take #{take.sequence}; "
            f"recording #{self.session.sequence} is newer"
        )
        return SearchOutcome(OutcomeStatus.STALE, take.sequence)


def build_pipeline() -> ImitationPipeline:
    """Wire a pipeline from the global configuration.

    Raises:
        ConfigurationError: If the config is invalid or the model path or
            search endpoint is missing.
        InferenceError: If the model cannot be loaded.
    """
    from imitune.audio.bounds import BoundsAnalyzer
    from imitune.audio.capture import SoundDeviceCapture
    from imitune.audio.waveform import WaveformSummarizer
    from imitune.config.config_loader import config
    from imitune.embedding.engine import OnnxInferenceEngine

    settings = config.validated
    if not settings.embedding.model_path:
        raise ConfigurationError("embedding.model_path is not configured")
    if not settings.api.search_url:
        raise ConfigurationError("api.search_url is not configured")

    device = SoundDeviceCapture(
        device=settings.audio.device,
        sample_rate=settings.audio.sample_rate,
        channels=settings.audio.channels,
        chunk_size=settings.audio.chunk_size,
    )
    session = RecordingSession(
        device,
        bounds_analyzer=BoundsAnalyzer(
            threshold=settings.audio.silence_threshold,
            min_display_duration=settings.waveform.min_display_duration,
        ),
        summarizer=WaveformSummarizer(
            epsilon=settings.waveform.epsilon, width=settings.waveform.width
        ),
        max_duration_seconds=settings.audio.max_recording_duration,
        buffer_size_limit_mb=settings.audio.buffer_size_limit,
        enable_buffer_monitoring=settings.audio.enable_buffer_monitoring,
    )
    preprocessor = AudioPreprocessor(
        target_sample_rate=settings.preprocessing.target_sample_rate,
        target_duration_seconds=settings.preprocessing.target_duration_seconds,
        method=settings.preprocessing.resample_method,
    )
    engine = OnnxInferenceEngine.load(
        settings.embedding.model_path, providers=settings.embedding.providers
    )
    adapter = EmbeddingAdapter(
        engine,
        expected_length=preprocessor.target_length,
        input_name=settings.embedding.input_name,
        output_name=settings.embedding.output_name,
        embedding_dim=settings.embedding.embedding_dim,
        retry_transient=settings.embedding.retry_transient,
    )
    search_client = SearchClient(settings.api.search_url, timeout=settings.api.timeout)
    feedback_client = None
    if settings.api.feedback_url:
        feedback_client = FeedbackClient(
            settings.api.feedback_url, timeout=settings.api.timeout
        )

    return ImitationPipeline(
        session, preprocessor, adapter, search_client, feedback_client
    )
