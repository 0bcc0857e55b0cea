"""
Batch jobs that keep verse embeddings in sync with the song table.

Each job handles one bounded batch and, to drain a larger backlog,
schedules its own successor through the scheduler instead of looping:

• process_song_batch: select unprocessed songs → segment into verses →
  embed every verse of the batch in one request → store verses and mark
  songs processed in one transaction → reschedule while the batch was
  non-empty
• unprocess_song_batch: select processed songs → delete their verses and
  reset the flag → reschedule while the batch was full
• clear_all: delete verses, then songs (processed or not), 100 at a
  time → reschedule while the page was full

A job that raises schedules no successor, so a failure halts its chain
until an operator starts it again. Re-running any job is harmless.

Example:
    ```python
    with build_jobs() as jobs:
        jobs.add_batch(songs)
        jobs.scheduler.run_after(0, PROCESS_JOB, {"limit": 20, "min_views": 0, "recursive": True})
        jobs.scheduler.run_until_empty()
    ```
"""
import importlib
import logging
from typing import Optional, Sequence

from lyricsearch.config.settings import (
    DB_CONFIG,
    ENCODER_CLS_NAME,
    JOB_CONFIG,
    SCHEDULER_CLS_NAME,
    STORAGE_CLS_NAME,
)
from lyricsearch.core.interfaces.encoder import Encoder, EmbeddingError
from lyricsearch.core.interfaces.scheduler import Scheduler
from lyricsearch.core.interfaces.storage import Song, Storage, Verse
from lyricsearch.embedder.segmenter import VerseSegmenter

logger = logging.getLogger(__name__)

PROCESS_JOB = "process_song_batch"
UNPROCESS_JOB = "unprocess_song_batch"
CLEAR_JOB = "clear_all"

CLEAR_PAGE_SIZE = JOB_CONFIG["clear_page_size"]


def get_class_from_name(class_name: str):
    """Dynamically import a class from its full name"""
    module_name, class_name = class_name.rsplit('.', 1)
    module = importlib.import_module(module_name)
    return getattr(module, class_name)


def _check_limit(limit: int) -> None:
    if limit <= 0:
        raise ValueError(f"limit must be positive, got {limit}")


class SongJobs:
    """
    Entry points for song ingestion and verse processing.

    Attributes:
        storage: Record store holding songs and verses
        encoder: Embedding client
        scheduler: Runs successor invocations
        segmenter: Splits lyrics into verses
    """

    def __init__(
        self,
        storage: Storage,
        encoder: Encoder,
        scheduler: Scheduler,
        segmenter: Optional[VerseSegmenter] = None,
    ):
        self.storage = storage
        self.encoder = encoder
        self.scheduler = scheduler
        self.segmenter = segmenter or VerseSegmenter()

    def __enter__(self):
        """Context manager entry point."""
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        """Context manager exit point - close the store and a durable scheduler."""
        self.storage.close()
        if hasattr(self.scheduler, "close"):
            self.scheduler.close()

    def register(self) -> "SongJobs":
        """Register the drainable jobs with the scheduler."""
        self.scheduler.register(PROCESS_JOB, self.process_song_batch)
        self.scheduler.register(UNPROCESS_JOB, self.unprocess_song_batch)
        self.scheduler.register(CLEAR_JOB, self.clear_all)
        return self

    def add_batch(self, songs: Sequence[Song]) -> int:
        """
        Add songs that are not stored yet, keyed by genius_id.

        Returns:
            Number of songs inserted
        """
        inserted = self.storage.add_songs(songs)
        logger.info("Added %d of %d song(s); %d already present", inserted, len(songs), len(songs) - inserted)
        return inserted

    def process_song_batch(self, limit: int, min_views: int, recursive: bool = False) -> int:
        """
        Extract and embed verses for one batch of unprocessed songs.

        Every verse of the batch goes to the encoder in a single request.
        Verses and processed flags are written in one transaction only after
        embedding succeeds. Songs that yield no verse are still marked
        processed.

        Args:
            limit: Maximum number of songs to take
            min_views: Only songs with at least this many views are taken
            recursive: Schedule another invocation while songs remain

        Returns:
            Number of songs in the batch; 0 means the backlog is drained

        Raises:
            ValueError: If limit is not positive
            EmbeddingError: If the encoder fails or returns the wrong count
        """
        _check_limit(limit)
        batch = self.storage.get_unprocessed_batch(limit, min_views)
        if not batch:
            logger.info("✅  Nothing left to process (min_views=%d).", min_views)
            return 0

        pairs = [
            (song.id, text)
            for song in batch
            for text in self.segmenter.segment(song.lyrics)
        ]
        vectors = self.encoder.encode([text for _, text in pairs]) if pairs else []
        if len(vectors) != len(pairs):
            raise EmbeddingError(f"Expected {len(pairs)} embeddings, got {len(vectors)}")

        verses = [
            Verse(song_id=song_id, text=text, embedding=vec)
            for (song_id, text), vec in zip(pairs, vectors)
        ]
        # Songs an overlapping invocation committed first come back unmarked
        marked = set(self.storage.add_verses_and_mark_processed([song.id for song in batch], verses))
        stored = sum(1 for v in verses if v.song_id in marked)
        logger.info("🔍  Processed %d song(s) into %d verse(s)", len(marked), stored)

        if recursive:
            self.scheduler.run_after(
                0, PROCESS_JOB, {"limit": limit, "min_views": min_views, "recursive": True}
            )
        return len(batch)

    def unprocess_song_batch(self, limit: int, recursive: bool = False) -> int:
        """
        Delete the verses of one batch of processed songs and reset their flag.

        Reschedules only when the batch was full; a short batch means the
        backlog is exhausted.

        Returns:
            Number of songs reset
        """
        _check_limit(limit)
        song_ids = self.storage.get_processed_batch(limit)
        if song_ids:
            self.storage.unprocess_songs(song_ids)
        logger.info("Unprocessed %d song(s)", len(song_ids))

        if recursive and len(song_ids) == limit:
            self.scheduler.run_after(0, UNPROCESS_JOB, {"limit": limit, "recursive": True})
        return len(song_ids)

    def clear_all(self) -> int:
        """
        Delete one page of songs together with their verses.

        Pages over every song, processed or not, so a finished chain leaves
        the store empty; unprocessed songs are deleted too. Always
        reschedules itself while the page was full.

        Returns:
            Number of songs deleted
        """
        song_ids = self.storage.get_song_batch(CLEAR_PAGE_SIZE)
        if song_ids:
            self.storage.delete_songs(song_ids)
        logger.info("Cleared %d song(s)", len(song_ids))

        if len(song_ids) == CLEAR_PAGE_SIZE:
            self.scheduler.run_after(0, CLEAR_JOB, {})
        return len(song_ids)


def build_jobs() -> SongJobs:
    """
    Build registered jobs from the component class names in settings.

    Example:
        >>> with build_jobs() as jobs:
        ...     jobs.process_song_batch(limit=20, min_views=0)
    """
    storage = get_class_from_name(STORAGE_CLS_NAME)(DB_CONFIG)
    encoder = get_class_from_name(ENCODER_CLS_NAME)()
    scheduler = get_class_from_name(SCHEDULER_CLS_NAME)()
    return SongJobs(storage, encoder, scheduler).register()
