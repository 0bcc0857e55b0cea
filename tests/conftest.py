"""
Shared fixtures: an in-memory record store, fake encoders and a real
QueueScheduler wired into SongJobs.
"""
from typing import Dict, List, Optional

import pytest

from lyricsearch.core.implementations.queue_scheduler import QueueScheduler
from lyricsearch.core.interfaces.encoder import EmbeddingError
from lyricsearch.core.interfaces.storage import Song, SongBatchItem, Verse
from lyricsearch.jobs.songs import SongJobs


def words(prefix: str, n: int) -> str:
    """``n`` distinct tokens starting with ``prefix``: 'a0 a1 a2 ...'."""
    return " ".join(f"{prefix}{i}" for i in range(n))


class MemoryStorage:
    """
    Storage double with the same atomicity as the Postgres store.

    Every mutation validates first and applies afterwards, and
    ``fail_writes`` makes mutations raise before touching anything.
    """

    def __init__(self):
        self.songs: Dict[int, dict] = {}
        self.verses: List[Verse] = []
        self.fail_writes = False
        self.closed = False
        self._next_id = 1

    def _check_write(self):
        if self.fail_writes:
            raise RuntimeError("write failed")

    def add_songs(self, songs):
        self._check_write()
        inserted = 0
        for song in songs:
            if any(s["genius_id"] == song.genius_id for s in self.songs.values()):
                continue
            self.songs[self._next_id] = dict(song._asdict(), processed=False)
            self._next_id += 1
            inserted += 1
        return inserted

    def get_unprocessed_batch(self, limit, min_views):
        rows = sorted(
            (s["genius_views"], song_id)
            for song_id, s in self.songs.items()
            if not s["processed"] and s["genius_views"] >= min_views
        )
        return [SongBatchItem(id=song_id, lyrics=self.songs[song_id]["lyrics"]) for _, song_id in rows[:limit]]

    def get_processed_batch(self, limit):
        return sorted(song_id for song_id, s in self.songs.items() if s["processed"])[:limit]

    def get_song_batch(self, limit):
        return sorted(self.songs)[:limit]

    def add_verses_and_mark_processed(self, song_ids, verses):
        self._check_write()
        for verse in verses:
            assert verse.song_id in self.songs, "verse owner must exist"
        marked = [song_id for song_id in song_ids if not self.songs[song_id]["processed"]]
        owned = set(marked)
        self.verses.extend(v for v in verses if v.song_id in owned)
        for song_id in marked:
            self.songs[song_id]["processed"] = True
        return marked

    def unprocess_songs(self, song_ids):
        self._check_write()
        ids = set(song_ids)
        self.verses = [v for v in self.verses if v.song_id not in ids]
        for song_id in ids:
            self.songs[song_id]["processed"] = False

    def delete_songs(self, song_ids):
        self._check_write()
        ids = set(song_ids)
        self.verses = [v for v in self.verses if v.song_id not in ids]
        for song_id in ids:
            del self.songs[song_id]

    def count_songs(self, processed: Optional[bool] = None, min_views: int = 0):
        return sum(
            1
            for s in self.songs.values()
            if s["genius_views"] >= min_views and (processed is None or s["processed"] == processed)
        )

    def count_verses(self, song_id: Optional[int] = None):
        return sum(1 for v in self.verses if song_id is None or v.song_id == song_id)

    def search_verses(self, vector, top_k):
        scored = []
        for verse in self.verses:
            score = sum(a * b for a, b in zip(vector, verse.embedding))
            song = self.songs[verse.song_id]
            scored.append((song["title"], song["artist"], verse.text, score))
        return sorted(scored, key=lambda row: row[3], reverse=True)[:top_k]

    def close(self):
        self.closed = True


class FakeEncoder:
    """Deterministic 3-dim encoder that records every request."""
    dim = 3

    def __init__(self):
        self.calls: List[List[str]] = []

    def encode(self, texts):
        self.calls.append(list(texts))
        return [[float(len(text.split())), float(i), 1.0] for i, text in enumerate(texts)]


class FailingEncoder(FakeEncoder):
    def encode(self, texts):
        self.calls.append(list(texts))
        raise EmbeddingError("embedding service unavailable")


class ShortEncoder(FakeEncoder):
    """Returns one vector fewer than requested."""

    def encode(self, texts):
        return super().encode(texts)[:-1]


@pytest.fixture
def storage():
    return MemoryStorage()


@pytest.fixture
def encoder():
    return FakeEncoder()


@pytest.fixture
def scheduler():
    return QueueScheduler(poll_interval=0.01)


@pytest.fixture
def jobs(storage, encoder, scheduler):
    return SongJobs(storage, encoder, scheduler).register()


@pytest.fixture
def make_song():
    def _make(genius_id: int, lyrics: Optional[str] = None, views: int = 1000) -> Song:
        if lyrics is None:
            lyrics = f"[Verse 1]\n{words(f's{genius_id}a', 20)}\n\n[Chorus]\n{words(f's{genius_id}b', 18)}"
        return Song(
            genius_id=genius_id,
            genre="pop",
            artist=f"Artist {genius_id}",
            title=f"Song {genius_id}",
            year=2020,
            lyrics=lyrics,
            features="",
            genius_views=views,
        )
    return _make
