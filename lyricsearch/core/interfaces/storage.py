"""
Storage interface for the lyricsearch project.

This module defines the records that move between the batch jobs and the
record store, and the protocol every store backend implements. Each
mutating method is expected to run as one atomic transaction: either all
of its writes apply or none do.

Example:
    ```python
    class MyStorage(Storage):
        def get_unprocessed_batch(self, limit: int, min_views: int) -> List[SongBatchItem]:
            # Implementation here
            return [SongBatchItem(id=1, lyrics="...")]
    ```
"""
from typing import List, NamedTuple, Optional, Protocol, Sequence, Tuple


class Song(NamedTuple):
    """
    One source lyric document, as handed to ``add_songs``.

    The ``processed`` flag is not part of the input; stores create every
    song with ``processed = False``.

    Example:
        >>> song = Song(
        ...     genius_id=378195,
        ...     genre="rap",
        ...     artist="Kendrick Lamar",
        ...     title="HUMBLE.",
        ...     year=2017,
        ...     lyrics="[Intro]\\nNobody pray for me...",
        ...     features="",
        ...     genius_views=8_000_000,
        ... )
        >>> song.genius_id
        378195
    """
    genius_id: int
    genre: str
    artist: str
    title: str
    year: int
    lyrics: str
    features: str
    genius_views: int


class SongBatchItem(NamedTuple):
    """An unprocessed song selected for verse extraction."""
    id: int
    lyrics: str


class Verse(NamedTuple):
    """A deduplicated lyric excerpt and its embedding, owned by one song."""
    song_id: int
    text: str
    embedding: List[float]


class Storage(Protocol):
    """
    Interface for storing songs and their verse embeddings.

    Queries select bounded pages of work; a page shorter than the requested
    limit tells the caller the backlog is exhausted. Mutations are atomic
    per call.
    """

    def add_songs(self, songs: Sequence[Song]) -> int:
        """
        Insert every song whose ``genius_id`` is not stored yet.

        Returns:
            Number of songs actually inserted; duplicates are skipped.
        """
        ...

    def get_unprocessed_batch(self, limit: int, min_views: int) -> List[SongBatchItem]:
        """Return up to ``limit`` unprocessed songs with at least ``min_views`` views."""
        ...

    def get_processed_batch(self, limit: int) -> List[int]:
        """Return the ids of up to ``limit`` processed songs."""
        ...

    def get_song_batch(self, limit: int) -> List[int]:
        """Return the ids of up to ``limit`` songs, processed or not."""
        ...

    def add_verses_and_mark_processed(self, song_ids: Sequence[int], verses: Sequence[Verse]) -> List[int]:
        """
        Set ``processed = True`` on the songs in ``song_ids`` that are still
        unprocessed and store the ``verses`` belonging to those songs.

        Songs without any verse are still marked processed. Songs another
        invocation already committed are left alone and their verses
        dropped.

        Returns:
            Ids of the songs this call marked processed
        """
        ...

    def unprocess_songs(self, song_ids: Sequence[int]) -> None:
        """Delete all verses of the given songs and reset them to unprocessed."""
        ...

    def delete_songs(self, song_ids: Sequence[int]) -> None:
        """Delete all verses of the given songs, then the songs themselves."""
        ...

    def count_songs(self, processed: Optional[bool] = None, min_views: int = 0) -> int:
        ...

    def count_verses(self, song_id: Optional[int] = None) -> int:
        ...

    def search_verses(self, vector: List[float], top_k: int) -> List[Tuple[str, str, str, float]]:
        """Return ``(title, artist, text, score)`` for the closest verses."""
        ...

    def close(self) -> None:
        ...
