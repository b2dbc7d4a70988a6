"""
Database schema for Mindweave.

Holds the DDL and the schema validation used at startup. List and object
columns (tags, metadata, embeddings, stats) are JSON text.
"""

from __future__ import annotations

import sqlite3
from pathlib import Path

from mindweave.observability.logging import get_logger

logger = get_logger(__name__)

SCHEMA_SQL = """
    CREATE TABLE IF NOT EXISTS users (
        id TEXT PRIMARY KEY,
        email TEXT NOT NULL UNIQUE,
        name TEXT,
        image TEXT,
        created_at TEXT NOT NULL,
        updated_at TEXT NOT NULL
    );

    CREATE TABLE IF NOT EXISTS content (
        id TEXT PRIMARY KEY,
        user_id TEXT NOT NULL REFERENCES users(id) ON DELETE CASCADE,
        type TEXT NOT NULL CHECK (type IN ('note', 'link', 'file')),
        title TEXT NOT NULL,
        body TEXT,
        url TEXT,
        tags TEXT NOT NULL DEFAULT '[]',
        auto_tags TEXT NOT NULL DEFAULT '[]',
        summary TEXT,
        metadata TEXT NOT NULL DEFAULT '{}',
        is_favorite INTEGER NOT NULL DEFAULT 0,
        is_shared INTEGER NOT NULL DEFAULT 0,
        share_id TEXT UNIQUE,
        created_at TEXT NOT NULL,
        updated_at TEXT NOT NULL
    );

    CREATE TABLE IF NOT EXISTS embeddings (
        id TEXT PRIMARY KEY,
        content_id TEXT NOT NULL UNIQUE REFERENCES content(id) ON DELETE CASCADE,
        embedding TEXT NOT NULL,
        model TEXT NOT NULL,
        created_at TEXT NOT NULL
    );

    CREATE TABLE IF NOT EXISTS collections (
        id TEXT PRIMARY KEY,
        user_id TEXT NOT NULL REFERENCES users(id) ON DELETE CASCADE,
        name TEXT NOT NULL,
        description TEXT,
        color TEXT,
        created_at TEXT NOT NULL,
        updated_at TEXT NOT NULL
    );

    CREATE TABLE IF NOT EXISTS content_collections (
        content_id TEXT NOT NULL REFERENCES content(id) ON DELETE CASCADE,
        collection_id TEXT NOT NULL REFERENCES collections(id) ON DELETE CASCADE,
        added_at TEXT NOT NULL,
        PRIMARY KEY (content_id, collection_id)
    );

    CREATE TABLE IF NOT EXISTS digest_settings (
        user_id TEXT PRIMARY KEY REFERENCES users(id) ON DELETE CASCADE,
        enabled INTEGER NOT NULL DEFAULT 0,
        frequency TEXT NOT NULL DEFAULT 'weekly',
        preferred_day INTEGER NOT NULL DEFAULT 1,
        preferred_hour INTEGER NOT NULL DEFAULT 9,
        last_sent_at TEXT,
        created_at TEXT NOT NULL,
        updated_at TEXT NOT NULL
    );

    CREATE TABLE IF NOT EXISTS webhook_configs (
        id TEXT PRIMARY KEY,
        user_id TEXT NOT NULL REFERENCES users(id) ON DELETE CASCADE,
        name TEXT NOT NULL,
        type TEXT NOT NULL CHECK (type IN ('slack', 'discord', 'generic')),
        secret TEXT NOT NULL,
        is_active INTEGER NOT NULL DEFAULT 1,
        config TEXT NOT NULL DEFAULT '{}',
        last_received_at TEXT,
        total_received INTEGER NOT NULL DEFAULT 0,
        created_at TEXT NOT NULL,
        updated_at TEXT NOT NULL
    );

    CREATE TABLE IF NOT EXISTS api_keys (
        id TEXT PRIMARY KEY,
        user_id TEXT NOT NULL REFERENCES users(id) ON DELETE CASCADE,
        name TEXT NOT NULL,
        key_prefix TEXT NOT NULL,
        key_hash TEXT NOT NULL UNIQUE,
        is_active INTEGER NOT NULL DEFAULT 1,
        last_used_at TEXT,
        expires_at TEXT,
        created_at TEXT NOT NULL
    );

    CREATE TABLE IF NOT EXISTS public_graphs (
        id TEXT PRIMARY KEY,
        user_id TEXT NOT NULL REFERENCES users(id) ON DELETE CASCADE,
        graph_id TEXT NOT NULL UNIQUE,
        title TEXT NOT NULL,
        description TEXT,
        graph_data TEXT NOT NULL,
        settings TEXT NOT NULL DEFAULT '{}',
        created_at TEXT NOT NULL
    );

    CREATE TABLE IF NOT EXISTS generated_posts (
        id TEXT PRIMARY KEY,
        user_id TEXT NOT NULL REFERENCES users(id) ON DELETE CASCADE,
        post_content TEXT NOT NULL,
        tone TEXT NOT NULL,
        length TEXT NOT NULL,
        include_hashtags INTEGER NOT NULL DEFAULT 1,
        source_content_ids TEXT NOT NULL DEFAULT '[]',
        source_content_titles TEXT NOT NULL DEFAULT '[]',
        created_at TEXT NOT NULL
    );

    CREATE TABLE IF NOT EXISTS daily_highlights (
        id TEXT PRIMARY KEY,
        user_id TEXT NOT NULL REFERENCES users(id) ON DELETE CASCADE,
        content_id TEXT NOT NULL REFERENCES content(id) ON DELETE CASCADE,
        insight TEXT NOT NULL,
        highlight_date TEXT NOT NULL,
        created_at TEXT NOT NULL,
        UNIQUE(user_id, highlight_date)
    );

    CREATE TABLE IF NOT EXISTS knowledge_wrapped (
        id TEXT PRIMARY KEY,
        user_id TEXT NOT NULL REFERENCES users(id) ON DELETE CASCADE,
        share_id TEXT NOT NULL UNIQUE,
        stats TEXT NOT NULL,
        period TEXT NOT NULL DEFAULT 'all-time',
        created_at TEXT NOT NULL
    );

    CREATE TABLE IF NOT EXISTS connections (
        id TEXT PRIMARY KEY,
        user_id TEXT NOT NULL REFERENCES users(id) ON DELETE CASCADE,
        content_id_a TEXT NOT NULL REFERENCES content(id) ON DELETE CASCADE,
        content_id_b TEXT NOT NULL REFERENCES content(id) ON DELETE CASCADE,
        insight TEXT NOT NULL,
        similarity INTEGER NOT NULL,
        tag_group_a TEXT NOT NULL DEFAULT '[]',
        tag_group_b TEXT NOT NULL DEFAULT '[]',
        created_at TEXT NOT NULL
    );

    CREATE TABLE IF NOT EXISTS search_history (
        id TEXT PRIMARY KEY,
        user_id TEXT NOT NULL REFERENCES users(id) ON DELETE CASCADE,
        query TEXT NOT NULL,
        created_at TEXT NOT NULL
    );

    CREATE TABLE IF NOT EXISTS collection_members (
        collection_id TEXT NOT NULL REFERENCES collections(id) ON DELETE CASCADE,
        user_id TEXT NOT NULL REFERENCES users(id) ON DELETE CASCADE,
        role TEXT NOT NULL DEFAULT 'viewer' CHECK (role IN ('editor', 'viewer')),
        joined_at TEXT NOT NULL,
        PRIMARY KEY (collection_id, user_id)
    );

    CREATE TABLE IF NOT EXISTS collection_invitations (
        id TEXT PRIMARY KEY,
        collection_id TEXT NOT NULL REFERENCES collections(id) ON DELETE CASCADE,
        email TEXT NOT NULL,
        role TEXT NOT NULL DEFAULT 'viewer' CHECK (role IN ('editor', 'viewer')),
        token TEXT NOT NULL UNIQUE,
        status TEXT NOT NULL DEFAULT 'pending'
            CHECK (status IN ('pending', 'accepted', 'declined')),
        invited_by TEXT NOT NULL REFERENCES users(id) ON DELETE CASCADE,
        expires_at TEXT NOT NULL,
        created_at TEXT NOT NULL
    );

    CREATE TABLE IF NOT EXISTS reminders (
        id TEXT PRIMARY KEY,
        user_id TEXT NOT NULL REFERENCES users(id) ON DELETE CASCADE,
        content_id TEXT NOT NULL REFERENCES content(id) ON DELETE CASCADE,
        interval TEXT NOT NULL CHECK (interval IN ('1d', '3d', '7d', '30d')),
        status TEXT NOT NULL DEFAULT 'active' CHECK (status IN ('active', 'completed')),
        next_remind_at TEXT NOT NULL,
        created_at TEXT NOT NULL,
        updated_at TEXT NOT NULL
    );

    CREATE TABLE IF NOT EXISTS content_views (
        id TEXT PRIMARY KEY,
        user_id TEXT NOT NULL REFERENCES users(id) ON DELETE CASCADE,
        content_id TEXT NOT NULL REFERENCES content(id) ON DELETE CASCADE,
        viewed_at TEXT NOT NULL
    );

    CREATE INDEX IF NOT EXISTS idx_content_user_created ON content(user_id, created_at);
    CREATE INDEX IF NOT EXISTS idx_content_user_type ON content(user_id, type);
    CREATE INDEX IF NOT EXISTS idx_collections_user ON collections(user_id);
    CREATE INDEX IF NOT EXISTS idx_content_collections_collection
        ON content_collections(collection_id);
    CREATE INDEX IF NOT EXISTS idx_webhook_configs_user ON webhook_configs(user_id);
    CREATE INDEX IF NOT EXISTS idx_api_keys_user ON api_keys(user_id);
    CREATE INDEX IF NOT EXISTS idx_generated_posts_user ON generated_posts(user_id, created_at);
    CREATE INDEX IF NOT EXISTS idx_connections_user ON connections(user_id, created_at);
    CREATE INDEX IF NOT EXISTS idx_search_history_user ON search_history(user_id, created_at);
    CREATE INDEX IF NOT EXISTS idx_collection_members_user ON collection_members(user_id);
    CREATE INDEX IF NOT EXISTS idx_collection_invitations_email
        ON collection_invitations(email, status);
    CREATE INDEX IF NOT EXISTS idx_reminders_due ON reminders(status, next_remind_at);
    CREATE INDEX IF NOT EXISTS idx_reminders_user ON reminders(user_id, status);
    CREATE INDEX IF NOT EXISTS idx_content_views_user ON content_views(user_id, viewed_at);
"""


def init_database(db_path: Path) -> None:
    """
    Create all tables and indexes (idempotent)

    Args:
        db_path: Path to the database file

    Side Effects:
        - Creates the parent directory if needed
        - Creates missing tables and indexes
    """
    db_path.parent.mkdir(parents=True, exist_ok=True)

    conn = sqlite3.connect(db_path)
    try:
        conn.execute("PRAGMA journal_mode=WAL")
        conn.executescript(SCHEMA_SQL)
        conn.commit()
    finally:
        conn.close()

    logger.info("Database schema ready at %s", db_path)


def validate_schema(conn: sqlite3.Connection) -> bool:
    """
    Check required tables and columns exist

    Raises:
        ValueError: If a table or column is missing
    """
    required_tables = {
        "users": ["id", "email"],
        "content": ["id", "user_id", "type", "title", "tags", "auto_tags", "metadata"],
        "embeddings": ["content_id", "embedding", "model"],
        "collections": ["id", "user_id", "name", "color"],
        "content_collections": ["content_id", "collection_id"],
        "digest_settings": ["user_id", "enabled", "frequency", "preferred_day", "preferred_hour"],
        "webhook_configs": ["id", "user_id", "type", "secret", "config"],
        "api_keys": ["id", "user_id", "key_hash", "key_prefix"],
        "public_graphs": ["graph_id", "graph_data"],
        "generated_posts": ["id", "user_id", "post_content", "tone"],
        "daily_highlights": ["user_id", "content_id", "highlight_date"],
        "knowledge_wrapped": ["share_id", "stats"],
        "connections": ["content_id_a", "content_id_b", "insight"],
        "search_history": ["user_id", "query"],
        "collection_members": ["collection_id", "user_id", "role"],
        "collection_invitations": ["id", "collection_id", "email", "token", "status"],
        "reminders": ["id", "user_id", "content_id", "interval", "status", "next_remind_at"],
        "content_views": ["user_id", "content_id", "viewed_at"],
    }

    cursor = conn.execute("SELECT name FROM sqlite_master WHERE type='table'")
    existing_tables = {row[0] for row in cursor.fetchall()}

    missing_tables = set(required_tables) - existing_tables
    if missing_tables:
        raise ValueError(f"Database missing tables: {sorted(missing_tables)}")

    for table, required_cols in required_tables.items():
        columns = {row[1] for row in conn.execute(f"PRAGMA table_info({table})").fetchall()}
        missing_cols = set(required_cols) - columns
        if missing_cols:
            raise ValueError(f"Table {table} missing columns: {sorted(missing_cols)}")

    return True
