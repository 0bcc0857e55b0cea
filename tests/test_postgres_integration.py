"""
Integration tests against a real PostgreSQL with pgvector.

Set LYRICSEARCH_TEST_DSN (e.g. "dbname=lyricsearch_test user=postgres")
to run them; every test starts from empty tables.
"""
import os

import pytest
from conftest import FakeEncoder, words

psycopg2 = pytest.importorskip("psycopg2")

from lyricsearch.core.implementations.postgres_scheduler import PostgresScheduler  # noqa: E402
from lyricsearch.core.implementations.postgres_storage import PostgresStorage  # noqa: E402
from lyricsearch.core.interfaces.storage import Verse  # noqa: E402
from lyricsearch.jobs.songs import CLEAR_JOB, PROCESS_JOB, UNPROCESS_JOB, SongJobs  # noqa: E402
from lyricsearch.scripts.init_db import init_db  # noqa: E402

DSN = os.getenv("LYRICSEARCH_TEST_DSN")

pytestmark = pytest.mark.skipif(not DSN, reason="LYRICSEARCH_TEST_DSN not set")


@pytest.fixture(scope="module")
def db_cfg():
    cfg = {"dsn": DSN}
    init_db(cfg, dim=FakeEncoder.dim)
    return cfg


@pytest.fixture
def pg_storage(db_cfg):
    storage = PostgresStorage(db_cfg)
    with storage.conn, storage.conn.cursor() as cur:
        cur.execute("TRUNCATE verses, songs, scheduled_jobs RESTART IDENTITY")
    yield storage
    storage.close()


@pytest.fixture
def pg_scheduler(db_cfg, pg_storage):
    scheduler = PostgresScheduler(db_cfg, poll_interval=0.01)
    yield scheduler
    scheduler.close()


@pytest.fixture
def pg_jobs(pg_storage, pg_scheduler):
    return SongJobs(pg_storage, FakeEncoder(), pg_scheduler).register()


def test_add_songs_skips_known_genius_ids(pg_storage, make_song):
    assert pg_storage.add_songs([make_song(1), make_song(2)]) == 2
    assert pg_storage.add_songs([make_song(2), make_song(3)]) == 1
    assert pg_storage.count_songs() == 3
    assert pg_storage.count_songs(processed=False) == 3


def test_unprocessed_batch_filters_and_orders_by_views(pg_storage, make_song):
    pg_storage.add_songs([make_song(1, views=900), make_song(2, views=5), make_song(3, views=300)])

    batch = pg_storage.get_unprocessed_batch(limit=5, min_views=100)
    assert [item.lyrics for item in batch] == [make_song(3).lyrics, make_song(1).lyrics]
    assert pg_storage.count_songs(processed=False, min_views=100) == 2


def test_commit_is_atomic(pg_storage, make_song):
    pg_storage.add_songs([make_song(1)])
    song_id = pg_storage.get_song_batch(1)[0]

    # The second vector has the wrong dimension, so nothing is written
    bad = [Verse(song_id, "kept?", [1.0, 0.0, 0.0]), Verse(song_id, "too short", [0.0, 1.0])]
    with pytest.raises(psycopg2.Error):
        pg_storage.add_verses_and_mark_processed([song_id], bad)

    assert pg_storage.count_verses() == 0
    assert pg_storage.count_songs(processed=True) == 0


def test_commit_skips_songs_committed_by_another_run(pg_storage, make_song):
    pg_storage.add_songs([make_song(1), make_song(2)])
    first, second = pg_storage.get_song_batch(2)
    pg_storage.add_verses_and_mark_processed([first], [Verse(first, "early", [1.0, 0.0, 0.0])])

    marked = pg_storage.add_verses_and_mark_processed(
        [first, second],
        [Verse(first, "late", [1.0, 0.0, 0.0]), Verse(second, "new", [0.0, 1.0, 0.0])],
    )

    assert marked == [second]
    assert pg_storage.count_verses(first) == 1
    assert pg_storage.count_verses(second) == 1


def test_process_unprocess_clear(pg_jobs, pg_storage, make_song):
    pg_jobs.add_batch([make_song(1), make_song(2)])

    assert pg_jobs.process_song_batch(limit=10, min_views=0) == 2
    assert pg_storage.count_songs(processed=True) == 2
    assert pg_storage.count_verses() == 4

    assert pg_jobs.unprocess_song_batch(limit=10) == 2
    assert pg_storage.count_songs(processed=False) == 2
    assert pg_storage.count_verses() == 0

    pg_jobs.process_song_batch(limit=10, min_views=0)
    assert pg_jobs.clear_all() == 2
    assert pg_storage.count_songs() == 0
    assert pg_storage.count_verses() == 0


def test_search_ranks_by_cosine_distance(pg_jobs, pg_storage, make_song):
    pg_jobs.add_batch([make_song(1, lyrics=words("only", 20))])
    pg_jobs.process_song_batch(limit=10, min_views=0)

    results = pg_storage.search_verses([20.0, 0.0, 1.0], top_k=3)
    assert len(results) == 1
    title, artist, verse, score = results[0]
    assert (title, artist, verse) == ("Song 1", "Artist 1", words("only", 20))
    assert score == pytest.approx(1.0)


def test_scheduler_drains_chain_durably(pg_jobs, pg_scheduler, pg_storage, make_song):
    pg_jobs.add_batch([make_song(i) for i in range(1, 6)])

    pg_scheduler.run_after(0, PROCESS_JOB, {"limit": 2, "min_views": 0, "recursive": True})
    assert pg_scheduler.pending() == 1

    assert pg_scheduler.run_until_empty() == 4
    assert pg_scheduler.pending() == 0
    assert pg_storage.count_songs(processed=False) == 0

    pg_scheduler.run_after(0, UNPROCESS_JOB, {"limit": 5, "recursive": True})
    assert pg_scheduler.run_until_empty() == 2
    pg_scheduler.run_after(0, CLEAR_JOB, {})
    assert pg_scheduler.run_until_empty() == 1
    assert pg_storage.count_songs() == 0


def test_scheduler_skips_rows_not_yet_due(pg_jobs, pg_scheduler):
    pg_scheduler.run_after(60_000, CLEAR_JOB, {})
    assert pg_scheduler.run_next() is False
    assert pg_scheduler.pending() == 1


def test_failed_job_row_is_removed(pg_scheduler):
    def boom():
        raise RuntimeError("boom")

    pg_scheduler.register("boom", boom)
    pg_scheduler.run_after(0, "boom", {})
    with pytest.raises(RuntimeError):
        pg_scheduler.run_next()
    assert pg_scheduler.pending() == 0
