"""Centralized configuration for the Mindweave backend.

Re-exports everything from mindweave.infrastructure.settings, then adds typed
constants for database, LLM, content, import, upload, rate-limiting and API
settings. Environment variable overrides use safe defaults so the app starts
without extra env configuration.
"""

from __future__ import annotations

import os

from mindweave.infrastructure.settings import *  # noqa: F401, F403


# --- App ---
APP_VERSION: str = "1.0.0"

# --- Database ---
DB_POOL_SIZE: int = int(os.getenv("MINDWEAVE_DB_POOL_SIZE", "5"))
DB_POOL_TIMEOUT: float = 5.0
DB_CONNECT_TIMEOUT: float = 30.0
DB_TEMP_CONN_MAX: int = 10
DB_RETRY_MAX: int = 5
DB_RETRY_BASE_DELAY: float = 0.1
DB_RETRY_MAX_DELAY: float = 2.0
DB_RETRY_JITTER: float = 0.1

# --- LLM ---
LLM_TIMEOUT_SECONDS: int = int(os.getenv("MINDWEAVE_LLM_TIMEOUT", "30"))
LLM_MAX_RETRIES: int = int(os.getenv("MINDWEAVE_LLM_MAX_RETRIES", "3"))

# --- Embeddings ---
EMBEDDING_MODEL: str = os.getenv("MINDWEAVE_EMBEDDING_MODEL", "gemini-embedding-001")
EMBEDDING_DIMENSIONS: int = 768
EMBEDDING_TEXT_MAX_CHARS: int = 10000

# --- Content ---
CONTENT_TITLE_MAX: int = 500
CONTENT_BODY_MAX: int = 50000
CONTENT_TYPES: tuple[str, ...] = ("note", "link", "file")
BULK_ACTION_MAX_IDS: int = 100

# --- Search ---
SEARCH_QUERY_MAX: int = 200
SEMANTIC_QUERY_MAX: int = 1000
SEMANTIC_LIMIT_MAX: int = 50
RECOMMENDATION_LIMIT_MAX: int = 20
RECOMMENDATION_MIN_SIMILARITY: float = 0.5
QUESTION_MAX: int = 500
QUESTION_CONTEXT_MAX: int = 20
SUGGESTIONS_MAX: int = 6

# --- Clustering ---
CLUSTER_MAX_K: int = 8
CLUSTER_MAX_ITERATIONS: int = 50

# --- Graph ---
GRAPH_EDGE_LIMIT: int = 200
PUBLIC_GRAPH_EDGE_LIMIT: int = 500
PUBLIC_GRAPH_MIN_SIMILARITY: float = 0.3

# --- Import ---
IMPORT_MAX_ITEMS: int = 1000
IMPORT_BATCH_SIZE: int = 10
IMPORT_MAX_FILE_BYTES: int = 50 * 1024 * 1024

# --- Uploads ---
UPLOAD_MAX_BYTES: int = 10 * 1024 * 1024

# --- Rate Limiting ---
# (max requests, window seconds)
RATE_LIMITS: dict[str, tuple[int, int]] = {
    "api": (100, 60),
    "auth": (10, 15 * 60),
    "upload": (20, 3600),
    "import": (5, 3600),
    "export": (10, 3600),
    "ai": (30, 60),
    "serverAction": (60, 60),
    "serverActionAI": (20, 60),
    "serverActionBulk": (10, 60),
    "passwordReset": (3, 3600),
    "fileServing": (200, 60),
    "webhook": (60, 60),
    "wrappedGeneration": (3, 3600),
    "connectionGeneration": (10, 60),
}
RATE_LIMIT_MAX_KEYS: int = 10000

# --- API ---
API_LIST_LIMIT_DEFAULT: int = 20
API_LIST_LIMIT_MAX: int = 100
API_KEY_PREFIX: str = "mw_"
API_KEY_MAX_ACTIVE: int = 10

# --- Digest ---
DIGEST_RESEND_HOURS: int = 23
DIGEST_LOOKBACK_DAYS: int = 7
DIGEST_ITEM_LIMIT: int = 10

# --- Webhooks ---
SLACK_SIGNATURE_MAX_AGE_SECONDS: int = 300

# --- Collection sharing ---
COLLECTION_INVITATION_DAYS: int = 7

# --- View tracking ---
VIEW_DEBOUNCE_SECONDS: int = 30
RECENTLY_VIEWED_DEFAULT: int = 10
RECENTLY_VIEWED_MAX: int = 50
