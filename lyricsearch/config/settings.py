"""
Central configuration for the lyricsearch project.
"""
import os
from typing import Dict

# Database configuration
DB_CONFIG = {
    "dbname": os.getenv("LYRICSEARCH_DB_NAME", "lyricsearch"),
    "user": os.getenv("LYRICSEARCH_DB_USER", "postgres"),
    "password": os.getenv("LYRICSEARCH_DB_PASSWORD", "postgres"),
    "host": os.getenv("LYRICSEARCH_DB_HOST", "localhost"),
    "port": int(os.getenv("LYRICSEARCH_DB_PORT", "5432")),
}

# Remote embedding service (OpenAI-compatible /embeddings endpoint)
EMBEDDING_CONFIG = {
    "base_url": os.getenv("OPENAI_BASE_URL", "https://api.openai.com/v1"),
    "api_key": os.getenv("OPENAI_API_KEY", ""),
    "model": os.getenv("OPENAI_EMBEDDING_MODEL", "text-embedding-ada-002"),
    "dim": int(os.getenv("LYRICSEARCH_EMBEDDING_DIM", "1536")),
    "timeout": int(os.getenv("OPENAI_TIMEOUT", "60")),
}

# Local model configuration (used by MpnetEncoder)
MODEL_CONFIG = {
    "name": "sentence-transformers/all-mpnet-base-v2",
    "dim": 768,
}

# Verse segmentation
SEGMENTER_CONFIG = {
    "min_tokens": 17,
    "prefix_tokens": 16,
}

# Batch job defaults
JOB_CONFIG: Dict[str, int] = {
    "limit": int(os.getenv("LYRICSEARCH_BATCH_LIMIT", "20")),
    "min_views": int(os.getenv("LYRICSEARCH_MIN_VIEWS", "0")),
    "clear_page_size": 100,
    "poll_interval": 1,  # seconds between scheduler polls when idle
}

# Search configuration
SEARCH_CONFIG = {
    "top_k": 5,
    "ef_search": 200,  # HNSW search parameter
}

# Component class names (to avoid circular imports)
STORAGE_CLS_NAME = "lyricsearch.core.implementations.postgres_storage.PostgresStorage"
ENCODER_CLS_NAME = os.getenv(
    "LYRICSEARCH_ENCODER", "lyricsearch.core.implementations.openai_encoder.OpenAIEncoder"
)
SCHEDULER_CLS_NAME = os.getenv(
    "LYRICSEARCH_SCHEDULER", "lyricsearch.core.implementations.queue_scheduler.QueueScheduler"
)
