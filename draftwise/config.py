"""Centralized configuration for the Draftwise backend.

Re-exports everything from draftwise.infrastructure.settings, then adds typed
constants for the database, caching, analysis, LLM, and rate-limiting layers.
Environment variable overrides use safe defaults so the app starts without
extra env configuration.
"""

from __future__ import annotations

import os

from draftwise.infrastructure.settings import *  # noqa: F401, F403

# --- App ---
APP_VERSION: str = "1.0.0"

# --- Database ---
DB_POOL_SIZE: int = int(os.getenv("DRAFTWISE_DB_POOL_SIZE", "5"))
DB_POOL_TIMEOUT: float = float(os.getenv("DRAFTWISE_DB_POOL_TIMEOUT", "5.0"))
DB_CONNECT_TIMEOUT: float = float(os.getenv("DRAFTWISE_DB_CONNECT_TIMEOUT", "30.0"))
DB_TEMP_CONN_MAX: int = int(os.getenv("DRAFTWISE_DB_TEMP_CONN_MAX", "10"))
DB_RETRY_MAX: int = int(os.getenv("DRAFTWISE_DB_RETRY_MAX", "5"))
DB_RETRY_BASE_DELAY: float = float(os.getenv("DRAFTWISE_DB_RETRY_BASE_DELAY", "0.1"))
DB_RETRY_MAX_DELAY: float = float(os.getenv("DRAFTWISE_DB_RETRY_MAX_DELAY", "2.0"))
DB_RETRY_JITTER: float = float(os.getenv("DRAFTWISE_DB_RETRY_JITTER", "0.1"))

# --- Analysis Cache ---
CACHE_TTL_HOURS: int = int(os.getenv("DRAFTWISE_CACHE_TTL_HOURS", "24"))
CACHE_MAX_ENTRIES_PER_USER: int = int(os.getenv("DRAFTWISE_CACHE_MAX_ENTRIES", "1000"))
CACHE_CLEANUP_BATCH: int = 50
CACHE_KEY_VERSION: str = "1.0"

# --- Differential Analysis ---
FALLBACK_THRESHOLD: float = 0.6
DEFAULT_CONTEXT_RADIUS: int = 1
CHARS_PER_TOKEN: int = 4

# --- Suggestions ---
MAX_ACCEPTED_IN_PROMPT: int = 5
RETRY_SUGGESTION_CAP: int = 50
DEFAULT_CONFIDENCE: float = 0.85
EXCLUSION_THRESHOLDS: dict[str, int] = {"engagement": 1, "clarity": 2}
MAX_PER_ANALYSIS: dict[str, int] = {"engagement": 1, "clarity": 3}
MIN_CONFIDENCE: dict[str, float] = {"engagement": 0.85, "clarity": 0.80}
CHANGE_RETENTION_DAYS: int = 7
TAG_SIMILARITY_THRESHOLD: float = 0.8

# --- LLM ---
LLM_TIMEOUT_SECONDS: int = int(os.getenv("DRAFTWISE_LLM_TIMEOUT", "30"))
LLM_MAX_RETRIES: int = int(os.getenv("DRAFTWISE_LLM_MAX_RETRIES", "3"))
ANALYSIS_TEMPERATURE: float = 0.1
DEFAULT_TEMPERATURE: float = 0.5

# --- Rate Limiting ---
RATE_LIMIT_RPH: int = int(os.getenv("DRAFTWISE_RATE_LIMIT_RPH", "1000"))
RATE_LIMIT_WINDOW_SECONDS: int = 3600
RATE_LIMIT_MAX_USERS: int = 10000

# --- Progress ---
DEFAULT_WEEKLY_GOAL: int = 3
TREND_WINDOW: int = 5  # documents per averaging window
TREND_THRESHOLD: float = 0.1  # error-rate points per 100 words

# --- API ---
API_LIST_LIMIT_DEFAULT: int = 100
API_LIST_LIMIT_MAX: int = 500
