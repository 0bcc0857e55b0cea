"""
Database initialization script for the lyricsearch project.
"""
import psycopg2
from lyricsearch.config.settings import DB_CONFIG, EMBEDDING_CONFIG


def init_db(db_cfg=None, dim: int = EMBEDDING_CONFIG["dim"]):
    conn = psycopg2.connect(**(db_cfg or DB_CONFIG))
    cur = conn.cursor()

    # Create the vector extension if it doesn't exist
    cur.execute("CREATE EXTENSION IF NOT EXISTS vector;")

    # Verses are deleted explicitly by the jobs, so no ON DELETE CASCADE
    cur.execute(
        f"""
        CREATE TABLE IF NOT EXISTS songs (
            id            bigserial PRIMARY KEY,
            genius_id     bigint NOT NULL UNIQUE,
            genre         text,
            artist        text,
            title         text,
            year          bigint,
            lyrics        text,
            features      text,
            genius_views  bigint NOT NULL DEFAULT 0,
            processed     boolean NOT NULL DEFAULT FALSE
        );

        CREATE TABLE IF NOT EXISTS verses (
            id         bigserial PRIMARY KEY,
            song_id    bigint NOT NULL REFERENCES songs(id),
            text       text NOT NULL,
            embedding  vector({int(dim)}) NOT NULL
        );

        CREATE TABLE IF NOT EXISTS scheduled_jobs (
            id      bigserial PRIMARY KEY,
            job     text NOT NULL,
            args    jsonb NOT NULL DEFAULT '{{}}',
            run_at  timestamptz NOT NULL DEFAULT NOW()
        );
        """
    )

    # Unprocessed-batch selection and verse lookups by song
    cur.execute(
        """
        CREATE INDEX IF NOT EXISTS idx_songs_processed_views ON songs(processed, genius_views);
        CREATE INDEX IF NOT EXISTS idx_verses_song_id ON verses(song_id);
        CREATE INDEX IF NOT EXISTS idx_scheduled_jobs_run_at ON scheduled_jobs(run_at);
        """
    )

    # Create HNSW index for faster similarity search
    cur.execute(
        """
        CREATE INDEX IF NOT EXISTS verses_embedding_idx ON verses
        USING hnsw (embedding vector_cosine_ops)
        WITH (m = 16, ef_construction = 64);
        """
    )

    conn.commit()
    cur.close()
    conn.close()
    print("✅ Database initialized successfully!")


if __name__ == "__main__":
    init_db()
