"""Similarity search client."""

from dataclasses import dataclass
from typing import Any, List, Optional

import httpx
import numpy as np

from imitune.utils.exceptions import NetworkError
from imitune.utils.logger import setup_logger

logger = setup_logger(__name__)


@dataclass(frozen=True)
class SearchResult:
    """One ranked match from the search backend."""

    id: str
    score: float
    url: str


class SearchClient:
    """Posts an embedding vector to the search endpoint and parses ranked results."""

    def __init__(
        self,
        search_url: str,
        timeout: float = 15.0,
        client: Optional[httpx.Client] = None,
    ) -> None:
        self.search_url = search_url
        self.timeout = timeout
        self._client = client

    def search(self, vector: np.ndarray) -> List[SearchResult]:
        """Search for sounds similar to an embedding.

        Args:
            vector: Embedding vector.

        Returns:
            Results ranked by descending score.

        Raises:
            NetworkError: On a non-finite vector, transport failure, HTTP error
                or malformed response.
        """
        values = np.asarray(vector, dtype=np.float64).ravel()
        if not np.all(np.isfinite(values)):
            raise NetworkError("Cannot send a vector with NaN or infinite values")
        payload = {"vector": values.tolist()}

        try:
            if self._client is not None:
                response = self._client.post(
                    self.search_url, json=payload, timeout=self.timeout
                )
            else:
                response = httpx.post(
                    self.search_url, json=payload, timeout=self.timeout
                )
        except httpx.HTTPError as e:
            logger.error(f"🛑 Search request failed: {e}")
            raise NetworkError(f"Search request failed: {e}") from e

        if response.is_error:
            logger.error(f"🛑 Search API error {response.status_code}")
            raise NetworkError(
                f"API error {response.status_code}: {response.text}",
                status_code=response.status_code,
            )

        try:
            data = response.json()
        except ValueError as e:
            raise NetworkError(f"Malformed search response: {e}") from e

        results = parse_results(data)
        logger.info(f"Search returned {len(results)} results")
        return results


def parse_results(data: Any) -> List[SearchResult]:
    """Parse a search response body.

    Accepts a list of ``{id, score, url}`` objects, the same list under a
    ``results`` key, objects using ``freesound_url`` instead of ``url``, and the
    bare ``{"urls": [...]}`` form.

    Raises:
        NetworkError: If the body has none of these shapes.
    """
    if isinstance(data, dict):
        if isinstance(data.get("results"), list):
            data = data["results"]
        elif isinstance(data.get("urls"), list):
            data = [{"url": url} for url in data["urls"]]
    if not isinstance(data, list):
        raise NetworkError("Malformed search response: expected a list of results")

    results: List[SearchResult] = []
    for rank, item in enumerate(data):
        if isinstance(item, str):
            item = {"url": item}
        if not isinstance(item, dict):
            raise NetworkError(f"Malformed search result at position {rank}")
        url = item.get("url") or item.get("freesound_url")
        if not url:
            raise NetworkError(f"Search result at position {rank} has no url")
        try:
            score = float(item.get("score", 0.0))
        except (TypeError, ValueError) as e:
            raise NetworkError(
                f"Search result at position {rank} has a bad score"
            ) from e
        results.append(SearchResult(id=str(item.get("id", rank)), score=score, url=url))

    # sorted() is stable, so equal scores keep backend order
    return sorted(results, key=lambda r: r.score, reverse=True)
