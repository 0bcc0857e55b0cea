"""
Semantic verse search for the lyricsearch project.

This module finds lyric verses similar in meaning to a free-text query:
• Encodes the query with the same encoder used for verses
• Lets PostgreSQL/pgvector rank verses by cosine distance
• Formats results with song title, artist and a verse preview

Example:
    ```python
    # Search from command line
    python -m lyricsearch.search "driving at night missing someone"

    # Search programmatically
    with SemanticSearch() as search:
        results = search.search("driving at night missing someone", top_k=5)
        print(search.format_results(results))
    ```
"""
from typing import List, Optional, Tuple
import sys

from lyricsearch.config.settings import DB_CONFIG, ENCODER_CLS_NAME, SEARCH_CONFIG, STORAGE_CLS_NAME
from lyricsearch.core.interfaces.encoder import Encoder
from lyricsearch.core.interfaces.storage import Storage
from lyricsearch.jobs.songs import get_class_from_name


class SemanticSearch:
    def __init__(self, storage: Optional[Storage] = None, encoder: Optional[Encoder] = None):
        self.storage = storage or get_class_from_name(STORAGE_CLS_NAME)(DB_CONFIG)
        self.encoder = encoder or get_class_from_name(ENCODER_CLS_NAME)()

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.storage.close()

    def search(self, question: str, top_k: int = SEARCH_CONFIG["top_k"]) -> List[Tuple[str, str, str, float]]:
        """Return ``(title, artist, verse, score)`` for the closest verses."""
        q_vec = self.encoder.encode([question])[0]
        return self.storage.search_verses(q_vec, top_k)

    def format_results(self, results: List[Tuple[str, str, str, float]]) -> str:
        """Format search results for display."""
        output = []
        for rank, (title, artist, verse, score) in enumerate(results, 1):
            output.append(f"\n#{rank}  score={score:.3f}  {artist} - {title}\n{verse[:300]}…")
        return "\n".join(output)


def main():
    if len(sys.argv) < 2:
        print("Usage: python -m lyricsearch.search.semantic \"your question\"")
        sys.exit(1)

    question = " ".join(sys.argv[1:])
    with SemanticSearch() as search:
        results = search.search(question)
        print(search.format_results(results))


if __name__ == "__main__":
    main()
