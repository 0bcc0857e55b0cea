"""
MPNet-based implementation of the Encoder interface.

This module provides a local text encoder using the MPNet model from
sentence-transformers, for running the pipeline without a remote
embedding service. Select it with
``LYRICSEARCH_ENCODER=lyricsearch.core.implementations.mpnet_encoder.MpnetEncoder``
and create the verses table with a matching vector dimension.

Example:
    ```python
    encoder = MpnetEncoder()
    vectors = encoder.encode(["Hello world", "How are you"])
    assert len(vectors[0]) == 768
    ```
"""
from typing import List

from sentence_transformers import SentenceTransformer

from lyricsearch.config.settings import MODEL_CONFIG
from lyricsearch.core.interfaces.encoder import Encoder


class MpnetEncoder(Encoder):
    """
    MPNet-based text encoder.

    Attributes:
        dim: The dimensionality of the output vectors (768 for MPNet base)
        _model: The underlying sentence-transformers model
    """
    dim = MODEL_CONFIG["dim"]

    def __init__(self, model_name: str = MODEL_CONFIG["name"]):
        self._model = SentenceTransformer(model_name)

    def encode(self, texts: List[str]) -> List[List[float]]:
        """
        Encode texts into normalized vectors.

        Example:
            >>> encoder = MpnetEncoder()
            >>> len(encoder.encode(["Hello world"])[0])
            768
        """
        if not texts:
            return []
        return self._model.encode(
            texts,
            normalize_embeddings=True,
            show_progress_bar=False
        ).tolist()
