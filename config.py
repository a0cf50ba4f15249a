"""
Runtime configuration for the VidVerse backend.

Values come from environment variables so the same build can run locally,
in CI (with mongomock) and in production.
"""
import os

DATABASE_URL = os.getenv("DATABASE_URL")
DATABASE_NAME = os.getenv("DATABASE_NAME", "vidverse")

PORT = int(os.getenv("PORT", 8000))
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()

CORS_ORIGINS = [o.strip() for o in os.getenv("CORS_ORIGINS", "*").split(",") if o.strip()]

UPLOAD_DIR = os.getenv("UPLOAD_DIR", os.path.join(os.getcwd(), "uploads"))
STATIC_URL = "/static"

# Pagination
DEFAULT_PAGE_LIMIT = int(os.getenv("DEFAULT_PAGE_LIMIT", 10))
MAX_PAGE_LIMIT = int(os.getenv("MAX_PAGE_LIMIT", 50))

# Most recent entries kept in a user's watch history
WATCH_HISTORY_LIMIT = int(os.getenv("WATCH_HISTORY_LIMIT", 100))
