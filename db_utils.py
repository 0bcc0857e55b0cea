#!/usr/bin/env python3
"""
Database utilities for the lyricsearch project.
Consolidated script for database status checks and initialization.
"""

import psycopg2
from lyricsearch.config.settings import DB_CONFIG
from lyricsearch.scripts.init_db import init_db


def check_database_status():
    """Check overall database status and statistics."""
    try:
        conn = psycopg2.connect(**DB_CONFIG)
        cur = conn.cursor()

        print("📊 Database Status Report")
        print("=" * 50)

        cur.execute("SELECT COUNT(*), COUNT(*) FILTER (WHERE processed) FROM songs")
        total_songs, processed_songs = cur.fetchone()
        print(f"📄 Total songs: {total_songs}")
        print(f"✅ Processed songs: {processed_songs}")
        print(f"⏳ Unprocessed songs: {total_songs - processed_songs}")

        cur.execute("SELECT COUNT(*) FROM verses")
        total_verses = cur.fetchone()[0]
        print(f"📝 Total verses: {total_verses}")

        # Processed songs that ended up without any verse
        cur.execute("""
            SELECT COUNT(*)
            FROM songs s
            WHERE s.processed
              AND NOT EXISTS (SELECT 1 FROM verses v WHERE v.song_id = s.id)
        """)
        print(f"🕳️  Processed songs without verses: {cur.fetchone()[0]}")

        cur.execute("SELECT COUNT(*), MIN(run_at) FROM scheduled_jobs")
        pending, next_run = cur.fetchone()
        print(f"⏱️  Pending scheduled jobs: {pending}" + (f" (next at {next_run})" if next_run else ""))

        cur.execute("""
            SELECT s.artist, s.title, COUNT(v.id) AS verses
            FROM songs s
            JOIN verses v ON v.song_id = s.id
            GROUP BY s.id
            ORDER BY verses DESC
            LIMIT 5
        """)
        print(f"\n🎤 Songs with most verses:")
        for artist, title, verses in cur.fetchall():
            print(f"   {artist} - {title}: {verses} verses")

        cur.close()
        conn.close()
        return True

    except Exception as e:
        print(f"❌ Database check failed: {e}")
        return False


def main():
    """Main function to run database utilities."""
    import sys

    if len(sys.argv) < 2:
        print("Usage: python db_utils.py [command]")
        print("Commands:")
        print("  status     - Check database status and statistics")
        print("  init       - Initialize database schema")
        return

    command = sys.argv[1]

    if command == "status":
        check_database_status()
    elif command == "init":
        init_db()
    else:
        print(f"❌ Unknown command: {command}")


if __name__ == "__main__":
    main()
