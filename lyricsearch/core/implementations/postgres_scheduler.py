"""
Durable PostgreSQL implementation of the Scheduler interface.

Scheduled invocations are rows in the ``scheduled_jobs`` table, so a
drain chain survives process restarts. Any number of workers may poll
the table: a row is claimed with ``FOR UPDATE SKIP LOCKED`` and deleted
in the same transaction that ran it. If a worker dies mid-job its
transaction rolls back and the row is picked up again (at-least-once).

Example:
    ```python
    scheduler = PostgresScheduler(DB_CONFIG)
    scheduler.register("clear_all", jobs.clear_all)
    scheduler.run_after(0, "clear_all", {})
    scheduler.run_forever()
    ```
"""
import logging
import time
from typing import Any, Callable, Dict, Optional

import psycopg2
from psycopg2.extras import Json

from lyricsearch.config.settings import DB_CONFIG, JOB_CONFIG
from lyricsearch.core.interfaces.scheduler import Scheduler, UnknownJobError

logger = logging.getLogger(__name__)


class PostgresScheduler(Scheduler):
    """
    Scheduler backed by the ``scheduled_jobs`` table.

    Attributes:
        conn: PostgreSQL connection used for the queue table only
        poll_interval: Seconds to sleep when no row is due
    """

    def __init__(self, db_cfg: Optional[dict] = None, poll_interval: float = JOB_CONFIG["poll_interval"]):
        self.conn = psycopg2.connect(**(db_cfg or DB_CONFIG))
        self.poll_interval = poll_interval
        self._jobs: Dict[str, Callable[..., Any]] = {}
        self._claimed = False

    def close(self) -> None:
        if not self.conn.closed:
            self.conn.close()

    def register(self, name: str, fn: Callable[..., Any]) -> None:
        self._jobs[name] = fn

    def run_after(self, delay_ms: int, job: str, args: Dict[str, Any]) -> None:
        """
        Insert a row for ``job``.

        Called from inside a running job, the insert joins the transaction
        that claimed the current row, so the successor is committed together
        with the removal of its predecessor.
        """
        if job not in self._jobs:
            raise UnknownJobError(job)
        sql = """
            INSERT INTO scheduled_jobs (job, args, run_at)
            VALUES (%s, %s, NOW() + %s * INTERVAL '1 millisecond')
        """
        params = (job, Json(args), max(delay_ms, 0))
        if self._claimed:
            with self.conn.cursor() as cur:
                cur.execute(sql, params)
            return
        with self.conn, self.conn.cursor() as cur:
            cur.execute(sql, params)

    def pending(self) -> int:
        with self.conn, self.conn.cursor() as cur:
            cur.execute("SELECT COUNT(*) FROM scheduled_jobs")
            return cur.fetchone()[0]

    def run_next(self) -> bool:
        """
        Claim and run one due row.

        Returns:
            False if nothing was due, True once a job has run

        Raises:
            UnknownJobError: If the row names a job this worker does not know
            Whatever the job raised; the row is deleted anyway, there is no
            automatic retry
        """
        with self.conn, self.conn.cursor() as cur:
            cur.execute(
                """
                SELECT id, job, args
                FROM scheduled_jobs
                WHERE run_at <= NOW()
                ORDER BY run_at, id
                LIMIT 1
                FOR UPDATE SKIP LOCKED
                """
            )
            row = cur.fetchone()
            if row is None:
                return False
            job_id, job, args = row
            fn = self._jobs.get(job)
            if fn is None:
                raise UnknownJobError(job)

            logger.info("Running %s (scheduled job %d)", job, job_id)
            self._claimed = True
            try:
                fn(**(args or {}))
            except Exception:
                cur.execute("DELETE FROM scheduled_jobs WHERE id = %s", (job_id,))
                self.conn.commit()
                raise
            finally:
                self._claimed = False
            cur.execute("DELETE FROM scheduled_jobs WHERE id = %s", (job_id,))
        return True

    def run_until_empty(self) -> int:
        ran = 0
        while self.run_next():
            ran += 1
        return ran

    def run_forever(self) -> None:
        """Poll for due rows until interrupted."""
        logger.info("Polling scheduled_jobs every %ss", self.poll_interval)
        while True:
            try:
                if self.run_next():
                    continue
            except UnknownJobError:
                raise
            except Exception:
                # The failed job scheduled no successor, so its chain stops here.
                logger.exception("Scheduled job failed")
            time.sleep(self.poll_interval)
