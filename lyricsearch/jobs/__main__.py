"""
lyricsearch.jobs.__main__
=========================

Command-line entry point that drains a job chain synchronously.

Example
-------
    python -m lyricsearch.jobs process 20 100000
    python -m lyricsearch.jobs unprocess 50
    python -m lyricsearch.jobs clear
    python -m lyricsearch.jobs status
    LYRICSEARCH_SCHEDULER=lyricsearch.core.implementations.postgres_scheduler.PostgresScheduler \
        python -m lyricsearch.jobs worker
"""

import logging
import sys

from tqdm import tqdm

from lyricsearch.config.settings import JOB_CONFIG
from .songs import CLEAR_JOB, PROCESS_JOB, UNPROCESS_JOB, build_jobs

USAGE = """Usage: python -m lyricsearch.jobs [command]
Commands:
  process [limit] [min_views]  - Embed verses of every unprocessed song
  unprocess [limit]            - Delete all verses and reset processed flags
  clear                        - Delete all songs and verses
  status                       - Print song and verse counts
  worker                       - Serve scheduled jobs until interrupted"""


def drain(jobs, job: str, args: dict, remaining) -> None:
    """Schedule ``job`` and run its chain, showing how much backlog is left."""
    total = remaining()
    jobs.scheduler.run_after(0, job, args)
    with tqdm(total=total, desc=job, unit="song") as bar:
        while jobs.scheduler.run_next():
            bar.n = total - remaining()
            bar.refresh()


def main() -> None:
    logging.basicConfig(level=logging.INFO)

    if len(sys.argv) < 2:
        print(USAGE)
        sys.exit(1)

    command, params = sys.argv[1], [int(p) for p in sys.argv[2:]]

    with build_jobs() as jobs:
        storage = jobs.storage
        if command == "process":
            limit = params[0] if len(params) > 0 else JOB_CONFIG["limit"]
            min_views = params[1] if len(params) > 1 else JOB_CONFIG["min_views"]
            drain(
                jobs,
                PROCESS_JOB,
                {"limit": limit, "min_views": min_views, "recursive": True},
                lambda: storage.count_songs(processed=False, min_views=min_views),
            )
        elif command == "unprocess":
            limit = params[0] if params else JOB_CONFIG["limit"]
            drain(
                jobs,
                UNPROCESS_JOB,
                {"limit": limit, "recursive": True},
                lambda: storage.count_songs(processed=True),
            )
        elif command == "clear":
            drain(jobs, CLEAR_JOB, {}, storage.count_songs)
        elif command == "worker":
            if not hasattr(jobs.scheduler, "run_forever"):
                print(f"❌ {type(jobs.scheduler).__name__} has no durable queue to serve")
                sys.exit(1)
            try:
                jobs.scheduler.run_forever()
            except KeyboardInterrupt:
                print("🛑 Worker stopped")
        elif command == "status":
            print(f"📄 Songs: {storage.count_songs()}")
            print(f"✅ Processed: {storage.count_songs(processed=True)}")
            print(f"⏳ Unprocessed: {storage.count_songs(processed=False)}")
            print(f"📝 Verses: {storage.count_verses()}")
        else:
            print(f"❌ Unknown command: {command}")
            print(USAGE)
            sys.exit(1)


if __name__ == "__main__":  # pragma: no cover
    main()
