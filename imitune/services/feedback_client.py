"""Rating feedback submission."""

import base64
from dataclasses import dataclass
from enum import Enum
from typing import Optional, Sequence

import httpx

from imitune.utils.exceptions import NetworkError
from imitune.utils.logger import setup_logger

logger = setup_logger(__name__)


class Rating(Enum):
    """User rating for one search result."""

    LIKE = "like"
    DISLIKE = "dislike"
    NEUTRAL = "neutral"

    def to_wire(self) -> Optional[str]:
        # The backend encodes "no opinion" as null
        return None if self is Rating.NEUTRAL else self.value


@dataclass(frozen=True)
class FeedbackResponse:
    """Backend acknowledgement of a feedback submission."""

    message: str
    audio_id: str
    audio_url: str
    metadata_url: str


def to_data_url(blob: bytes, mime_type: str) -> str:
    encoded = base64.b64encode(blob).decode("ascii")
    return f"data:{mime_type};base64,{encoded}"


class FeedbackClient:
    """Sends the recorded imitation with per-result ratings."""

    def __init__(
        self,
        feedback_url: str,
        timeout: float = 15.0,
        client: Optional[httpx.Client] = None,
    ) -> None:
        self.feedback_url = feedback_url
        self.timeout = timeout
        self._client = client

    def submit(
        self,
        blob: bytes,
        result_urls: Sequence[Optional[str]],
        ratings: Sequence[Rating],
        mime_type: str = "audio/wav",
    ) -> FeedbackResponse:
        """Submit ratings for a set of results.

        Args:
            blob: Encoded recording.
            result_urls: URLs of the rated results, in display order.
            ratings: One rating per URL.
            mime_type: MIME type of ``blob``.

        Returns:
            Parsed backend response.

        Raises:
            ValueError: If URLs and ratings differ in length.
            NetworkError: On transport failure or HTTP error.
        """
        if len(result_urls) != len(ratings):
            raise ValueError(
                f"{len(result_urls)} result URLs but {len(ratings)} ratings"
            )

        body = {
            "audioQuery": to_data_url(blob, mime_type),
            "freesound_urls": list(result_urls),
            "ratings": [Rating(r).to_wire() for r in ratings],
        }

        try:
            if self._client is not None:
                response = self._client.post(
                    self.feedback_url, json=body, timeout=self.timeout
                )
            else:
                response = httpx.post(
                    self.feedback_url, json=body, timeout=self.timeout
                )
        except httpx.HTTPError as e:
            logger.error(f"🛑 Feedback request failed: {e}")
            raise NetworkError(f"Feedback submit failed: {e}") from e

        if response.is_error:
            message = "Feedback submit failed"
            try:
                data = response.json()
                if isinstance(data, dict) and data.get("error"):
                    message = str(data["error"])
            except ValueError:
                pass
            logger.error(f"🛑 {message} (HTTP {response.status_code})")
            raise NetworkError(
                f"{message} (HTTP {response.status_code})",
                status_code=response.status_code,
            )

        try:
            data = response.json()
        except ValueError as e:
            raise NetworkError(f"Malformed feedback response: {e}") from e
        if not isinstance(data, dict):
            raise NetworkError("Malformed feedback response: expected an object")

        logger.info(f"Feedback submitted: {data.get('audioId', '?')}")
        return FeedbackResponse(
            message=str(data.get("message", "")),
            audio_id=str(data.get("audioId", "")),
            audio_url=str(data.get("audioUrl", "")),
            metadata_url=str(data.get("metadataUrl", "")),
        )
