"""
Encoder interface for the lyricsearch project.

This module defines the interface for turning verse texts into vector
embeddings. Implementations may call a remote embedding service (OpenAI)
or run a local model (sentence-transformers); the batch jobs only depend
on this protocol.

Example:
    ```python
    class SentenceTransformerEncoder(Encoder):
        dim = 768  # MPNet base dimension

        def encode(self, texts: List[str]) -> List[List[float]]:
            # Implementation here
            return [[0.1, 0.2, ...], [0.3, 0.4, ...]]
    ```
"""
from typing import List, Protocol


class EmbeddingError(RuntimeError):
    """Raised when the embedding service fails or returns an unusable response."""


class Encoder(Protocol):
    """
    Interface for encoding text into vectors.

    ``encode`` is called once per batch with every verse of the batch, so
    implementations receive many texts per request.

    Attributes:
        dim: The dimensionality of the output vectors
    """
    dim: int  # vector length

    def encode(self, texts: List[str]) -> List[List[float]]:
        """
        Encode texts into vectors.

        Args:
            texts: List of texts to encode

        Returns:
            One vector per input text, in the same order

        Raises:
            EmbeddingError: If the service call fails

        Example:
            >>> encoder = MyEncoder()
            >>> vectors = encoder.encode(["Hello world", "How are you"])
            >>> len(vectors)
            2
            >>> all(len(v) == encoder.dim for v in vectors)
            True
        """
        ...
