"""
OpenAI-based implementation of the Encoder interface.

This module calls an OpenAI-compatible ``/embeddings`` endpoint over HTTP.
All verse texts of one batch job go out in a single request, and the
returned vectors are put back in input order using each item's ``index``.

Example:
    ```python
    encoder = OpenAIEncoder()
    vectors = encoder.encode(["first verse ...", "second verse ..."])
    assert len(vectors[0]) == encoder.dim  # 1536 for ada-002
    ```
"""
import logging
from typing import List, Optional

import requests

from lyricsearch.config.settings import EMBEDDING_CONFIG
from lyricsearch.core.interfaces.encoder import Encoder, EmbeddingError

logger = logging.getLogger(__name__)


class OpenAIEncoder(Encoder):
    """
    Remote text encoder backed by the OpenAI embeddings API.

    Attributes:
        dim: The dimensionality of the output vectors
        base_url: Base URL of the embeddings API
        model: Embedding model name
        timeout: Request timeout in seconds
        session: Shared HTTP session carrying the auth header
    """

    def __init__(self, cfg: Optional[dict] = None, session: Optional[requests.Session] = None):
        """
        Initialize the encoder.

        Args:
            cfg: Embedding configuration (default: EMBEDDING_CONFIG)
            session: Optional pre-built session, mostly for tests
        """
        cfg = cfg or EMBEDDING_CONFIG
        self.base_url = cfg["base_url"].rstrip("/")
        self.model = cfg["model"]
        self.dim = cfg["dim"]
        self.timeout = cfg["timeout"]
        self.session = session or requests.Session()
        self.session.headers.update({"Content-Type": "application/json"})
        if cfg.get("api_key"):
            self.session.headers.update({"Authorization": f"Bearer {cfg['api_key']}"})

    def encode(self, texts: List[str]) -> List[List[float]]:
        """
        Fetch one embedding per text in a single request.

        Raises:
            EmbeddingError: On transport failure, a non-2xx status, a body
                that is not an embeddings list, or a response whose length
                does not match the input
        """
        if not texts:
            return []

        logger.info("Requesting %d embeddings from %s", len(texts), self.model)
        try:
            response = self.session.post(
                f"{self.base_url}/embeddings",
                json={"model": self.model, "input": list(texts)},
                timeout=self.timeout,
            )
        except requests.RequestException as e:
            raise EmbeddingError(f"Embedding request failed: {e}") from e

        if not response.ok:
            raise EmbeddingError(
                f"Embedding request failed: HTTP {response.status_code} {response.text[:200]}"
            )

        try:
            data = response.json()["data"]
            if len(data) != len(texts):
                raise EmbeddingError(f"Expected {len(texts)} embeddings, got {len(data)}")
            data = sorted(data, key=lambda item: item["index"])
            return [item["embedding"] for item in data]
        except (ValueError, KeyError, TypeError) as e:
            raise EmbeddingError(f"Malformed embedding response: {e!r}") from e
