"""Runtime configuration read from the environment."""
import os

# Use PostgreSQL in production (from DATABASE_URL env var), SQLite locally
DATABASE_URL = os.getenv("DATABASE_URL", "sqlite:///./audit.db")

# Fix for Render/Heroku: they use postgres:// but SQLAlchemy needs postgresql://
if DATABASE_URL.startswith("postgres://"):
    DATABASE_URL = DATABASE_URL.replace("postgres://", "postgresql://", 1)

LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()

CORS_ORIGINS = [
    origin.strip()
    for origin in os.getenv("CORS_ORIGINS", "*").split(",")
    if origin.strip()
]

# Upper bound on uncorrelated records pulled in for heuristic grouping.
# Groups beyond this cap are not visible to pagination.
UNCORRELATED_FETCH_CAP = int(os.getenv("AUDIT_UNCORRELATED_CAP", "5000"))

# Upper bound on records grouped in memory when a free-text search is active
SEARCH_FETCH_CAP = int(os.getenv("AUDIT_SEARCH_CAP", "5000"))

# Pending appends held for the background writer before new ones are dropped
APPEND_QUEUE_SIZE = int(os.getenv("AUDIT_QUEUE_SIZE", "1000"))

# 0 disables the periodic retention sweep
RETENTION_DAYS = int(os.getenv("AUDIT_RETENTION_DAYS", "0"))
RETENTION_INTERVAL_SECONDS = int(os.getenv("AUDIT_RETENTION_INTERVAL_SECONDS", "86400"))
