"""
Database schema for Draftwise.

Column names are snake_case and match the pydantic model fields one to one.
"""

from __future__ import annotations

import sqlite3
from pathlib import Path

from draftwise.observability.logging import get_logger

logger = get_logger(__name__)

EXPECTED_TABLES = (
    "suggestions",
    "analysis_cache",
    "modified_areas",
    "change_records",
    "paragraph_tags",
    "rubrics",
    "rubric_feedback",
    "progress_settings",
    "quality_metrics",
)


def init_database(db_path: Path) -> None:
    """
    Initialize database with schema (idempotent)

    Side Effects:
    - Creates the parent directory if needed
    - Creates tables and indexes if they don't exist
    """
    db_path.parent.mkdir(parents=True, exist_ok=True)

    conn = sqlite3.connect(db_path)
    try:
        conn.executescript("""
            CREATE TABLE IF NOT EXISTS suggestions (
                id TEXT PRIMARY KEY,
                document_id TEXT NOT NULL,
                user_id TEXT NOT NULL,
                type TEXT NOT NULL,
                category TEXT NOT NULL,
                severity TEXT NOT NULL,
                original_text TEXT NOT NULL,
                suggested_text TEXT NOT NULL,
                explanation TEXT NOT NULL DEFAULT '',
                confidence REAL NOT NULL,
                start_index INTEGER NOT NULL,
                end_index INTEGER NOT NULL,
                status TEXT NOT NULL DEFAULT 'pending',
                grammar_rule TEXT,
                analysis_id TEXT,
                created_at TEXT NOT NULL,
                updated_at TEXT NOT NULL,
                CHECK (start_index <= end_index)
            );

            CREATE INDEX IF NOT EXISTS idx_suggestions_doc
                ON suggestions(user_id, document_id, status);

            CREATE TABLE IF NOT EXISTS analysis_cache (
                id TEXT PRIMARY KEY,
                user_id TEXT NOT NULL,
                content_hash TEXT NOT NULL,
                analysis TEXT NOT NULL,
                metadata TEXT NOT NULL,
                created_at TEXT NOT NULL,
                last_accessed_at TEXT NOT NULL,
                access_count INTEGER NOT NULL DEFAULT 0,
                expires_at TEXT NOT NULL
            );

            CREATE INDEX IF NOT EXISTS idx_analysis_cache_user
                ON analysis_cache(user_id, last_accessed_at);

            CREATE TABLE IF NOT EXISTS modified_areas (
                id TEXT PRIMARY KEY,
                document_id TEXT NOT NULL,
                user_id TEXT NOT NULL,
                start_index INTEGER NOT NULL,
                end_index INTEGER NOT NULL,
                type TEXT NOT NULL,
                modification_count INTEGER NOT NULL DEFAULT 1,
                last_modified TEXT NOT NULL
            );

            CREATE INDEX IF NOT EXISTS idx_modified_areas_doc
                ON modified_areas(user_id, document_id);

            CREATE TABLE IF NOT EXISTS change_records (
                id TEXT PRIMARY KEY,
                document_id TEXT NOT NULL,
                user_id TEXT NOT NULL,
                paragraph_index INTEGER NOT NULL,
                change_type TEXT NOT NULL,
                old_text TEXT,
                new_text TEXT,
                created_at TEXT NOT NULL
            );

            CREATE INDEX IF NOT EXISTS idx_change_records_created
                ON change_records(created_at);

            CREATE TABLE IF NOT EXISTS paragraph_tags (
                id TEXT PRIMARY KEY,
                document_id TEXT NOT NULL,
                user_id TEXT NOT NULL,
                paragraph_index INTEGER NOT NULL,
                start_index INTEGER NOT NULL,
                end_index INTEGER NOT NULL,
                text TEXT NOT NULL,
                tag_type TEXT NOT NULL,
                note TEXT,
                created_at TEXT NOT NULL,
                updated_at TEXT NOT NULL
            );

            CREATE INDEX IF NOT EXISTS idx_paragraph_tags_doc
                ON paragraph_tags(user_id, document_id);

            CREATE TABLE IF NOT EXISTS rubrics (
                id TEXT PRIMARY KEY,
                document_id TEXT NOT NULL,
                user_id TEXT NOT NULL,
                title TEXT,
                raw_text TEXT NOT NULL,
                parsed TEXT NOT NULL,
                created_at TEXT NOT NULL
            );

            CREATE TABLE IF NOT EXISTS rubric_feedback (
                id TEXT PRIMARY KEY,
                document_id TEXT NOT NULL,
                user_id TEXT NOT NULL,
                overall_score REAL NOT NULL,
                feedback TEXT NOT NULL,
                created_at TEXT NOT NULL
            );

            CREATE TABLE IF NOT EXISTS progress_settings (
                user_id TEXT PRIMARY KEY,
                weekly_goal INTEGER NOT NULL,
                last_login_date TEXT,
                current_streak INTEGER NOT NULL DEFAULT 0,
                created_at TEXT NOT NULL,
                updated_at TEXT NOT NULL
            );

            CREATE TABLE IF NOT EXISTS quality_metrics (
                user_id TEXT NOT NULL,
                document_id TEXT NOT NULL,
                error_rate REAL NOT NULL,
                suggestion_density REAL NOT NULL,
                word_count INTEGER NOT NULL,
                created_at TEXT NOT NULL,
                PRIMARY KEY (user_id, document_id)
            );
        """)
        conn.commit()
    finally:
        conn.close()

    logger.info("Database schema initialized at %s", db_path)


def validate_schema(conn: sqlite3.Connection) -> bool:
    """
    Raises:
        ValueError: If tables are missing
    """
    rows = conn.execute("SELECT name FROM sqlite_master WHERE type='table'").fetchall()
    present = {row[0] for row in rows}
    missing = [t for t in EXPECTED_TABLES if t not in present]
    if missing:
        raise ValueError(f"Missing tables: {', '.join(missing)}")
    return True
