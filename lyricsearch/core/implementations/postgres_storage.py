"""
PostgreSQL storage implementation for the lyricsearch project.

This module provides a PostgreSQL-based storage backend that:
• Stores songs and their processed flag
• Stores verse texts with pgvector embeddings
• Selects bounded pages of work through the (processed, genius_views) index
• Runs every mutation in a single transaction

Database schema (see lyricsearch.scripts.init_db):
- songs: one row per lyric document, unique on genius_id
- verses: deduplicated lyric excerpts with embedding vectors
- verses.song_id has no ON DELETE CASCADE; verses are deleted explicitly

Example:
    ```python
    with PostgresStorage(DB_CONFIG) as storage:
        storage.add_songs([song])
        batch = storage.get_unprocessed_batch(limit=20, min_views=0)
    ```
"""
import logging
import threading
from contextlib import contextmanager
from typing import List, Optional, Sequence, Tuple

import psycopg2
from psycopg2.extras import execute_values

from lyricsearch.config.settings import SEARCH_CONFIG
from lyricsearch.core.interfaces.storage import Song, SongBatchItem, Storage, Verse

logger = logging.getLogger(__name__)


class PostgresStorage(Storage):
    """
    PostgreSQL-based storage implementation.

    Every public method runs in its own transaction, which commits when
    the block succeeds and rolls back when it raises, so a failed commit
    step leaves no partial verses or flags behind. A lock serializes
    transactions when the API and the scheduler worker share one instance.

    Attributes:
        conn: PostgreSQL connection
    """

    def __init__(self, db_cfg):
        """
        Initialize PostgreSQL storage.

        Args:
            db_cfg: Dictionary of PostgreSQL connection parameters

        Example:
            >>> storage = PostgresStorage({
            ...     "dbname": "lyricsearch",
            ...     "user": "postgres"
            ... })
            >>> storage.conn is not None
            True
        """
        self.conn = psycopg2.connect(**db_cfg)
        self._lock = threading.RLock()

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()

    def close(self) -> None:
        if not self.conn.closed:
            self.conn.close()

    @contextmanager
    def _transaction(self):
        with self._lock, self.conn, self.conn.cursor() as cur:
            yield cur

    def add_songs(self, songs: Sequence[Song]) -> int:
        """
        Insert each song unless one with the same genius_id already exists.

        Returns:
            Number of rows inserted
        """
        inserted = 0
        with self._transaction() as cur:
            for song in songs:
                cur.execute("SELECT 1 FROM songs WHERE genius_id = %s", (song.genius_id,))
                if cur.fetchone() is not None:
                    continue
                cur.execute(
                    """
                    INSERT INTO songs (
                        genius_id, genre, artist, title, year,
                        lyrics, features, genius_views, processed
                    ) VALUES (%s, %s, %s, %s, %s, %s, %s, %s, FALSE)
                    ON CONFLICT (genius_id) DO NOTHING
                    """,
                    (
                        song.genius_id, song.genre, song.artist, song.title, song.year,
                        song.lyrics, song.features, song.genius_views,
                    ),
                )
                inserted += cur.rowcount
        return inserted

    def get_unprocessed_batch(self, limit: int, min_views: int) -> List[SongBatchItem]:
        with self._transaction() as cur:
            cur.execute(
                """
                SELECT id, lyrics
                FROM songs
                WHERE processed = FALSE AND genius_views >= %s
                ORDER BY genius_views, id
                LIMIT %s
                """,
                (min_views, limit),
            )
            return [SongBatchItem(id=row[0], lyrics=row[1]) for row in cur.fetchall()]

    def get_processed_batch(self, limit: int) -> List[int]:
        with self._transaction() as cur:
            cur.execute(
                "SELECT id FROM songs WHERE processed = TRUE ORDER BY id LIMIT %s",
                (limit,),
            )
            return [row[0] for row in cur.fetchall()]

    def get_song_batch(self, limit: int) -> List[int]:
        with self._transaction() as cur:
            cur.execute("SELECT id FROM songs ORDER BY id LIMIT %s", (limit,))
            return [row[0] for row in cur.fetchall()]

    def add_verses_and_mark_processed(self, song_ids: Sequence[int], verses: Sequence[Verse]) -> List[int]:
        """
        Store verse embeddings and mark their songs as processed.

        Only songs still unprocessed when the transaction runs are marked,
        and only their verses are inserted, so an overlapping invocation
        that committed the same songs first wins and nothing is stored twice.

        Args:
            song_ids: Every song of the batch, including songs without verses
            verses: Verses to insert

        Returns:
            Ids of the songs this call marked processed
        """
        with self._transaction() as cur:
            cur.execute(
                """
                UPDATE songs SET processed = TRUE
                WHERE id = ANY(%s) AND processed = FALSE
                RETURNING id
                """,
                (list(song_ids),),
            )
            marked = [row[0] for row in cur.fetchall()]
            owned = set(marked)
            fresh = [v for v in verses if v.song_id in owned]
            if fresh:
                execute_values(
                    cur,
                    "INSERT INTO verses (song_id, text, embedding) VALUES %s",
                    [(v.song_id, v.text, list(v.embedding)) for v in fresh],
                    template="(%s, %s, %s::vector)",
                )
        if len(marked) < len(song_ids):
            logger.info("Skipped %d song(s) already processed elsewhere", len(song_ids) - len(marked))
        logger.debug("Stored %d verse(s) for %d song(s)", len(fresh), len(marked))
        return marked

    def unprocess_songs(self, song_ids: Sequence[int]) -> None:
        with self._transaction() as cur:
            cur.execute("DELETE FROM verses WHERE song_id = ANY(%s)", (list(song_ids),))
            cur.execute(
                "UPDATE songs SET processed = FALSE WHERE id = ANY(%s)",
                (list(song_ids),),
            )

    def delete_songs(self, song_ids: Sequence[int]) -> None:
        with self._transaction() as cur:
            cur.execute("DELETE FROM verses WHERE song_id = ANY(%s)", (list(song_ids),))
            cur.execute("DELETE FROM songs WHERE id = ANY(%s)", (list(song_ids),))

    def count_songs(self, processed: Optional[bool] = None, min_views: int = 0) -> int:
        with self._transaction() as cur:
            if processed is None:
                cur.execute("SELECT COUNT(*) FROM songs WHERE genius_views >= %s", (min_views,))
            else:
                cur.execute(
                    "SELECT COUNT(*) FROM songs WHERE processed = %s AND genius_views >= %s",
                    (processed, min_views),
                )
            return cur.fetchone()[0]

    def count_verses(self, song_id: Optional[int] = None) -> int:
        with self._transaction() as cur:
            if song_id is None:
                cur.execute("SELECT COUNT(*) FROM verses")
            else:
                cur.execute("SELECT COUNT(*) FROM verses WHERE song_id = %s", (song_id,))
            return cur.fetchone()[0]

    def search_verses(self, vector: List[float], top_k: int) -> List[Tuple[str, str, str, float]]:
        """
        Find the verses closest to ``vector`` by cosine distance.

        Example:
            >>> storage.search_verses(query_vec, top_k=3)
            [('HUMBLE.', 'Kendrick Lamar', 'Nobody pray for me...', 0.83), ...]
        """
        with self._transaction() as cur:
            cur.execute("SET LOCAL hnsw.ef_search = %s", (SEARCH_CONFIG["ef_search"],))
            # pgvector cosine distance operator <=>  (smaller = closer)
            cur.execute(
                """
                WITH q AS (SELECT %s::vector AS qv)
                SELECT s.title,
                       s.artist,
                       vs.text,
                       1 - (vs.embedding <=> (SELECT qv FROM q)) AS score
                FROM verses vs
                JOIN songs s ON s.id = vs.song_id
                ORDER BY vs.embedding <=> (SELECT qv FROM q)
                LIMIT %s
                """,
                (list(vector), top_k),
            )
            return [(row[0], row[1], row[2], float(row[3])) for row in cur.fetchall()]
