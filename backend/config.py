"""
Central configuration for the presentation collaboration backend.

All settings loaded from .env file or environment variables.
See .env.example for available options.
"""
import os
from pathlib import Path
from dotenv import load_dotenv

# Load .env file from backend directory
load_dotenv(Path(__file__).parent / ".env")

# SQLAlchemy database URL for the authoritative document store
DATABASE_URL = os.getenv("DATABASE_URL", "sqlite:///./presentations.db")

# Echo SQL statements (noisy, debugging only)
SQL_ECHO = os.getenv("SQL_ECHO", "false").lower() in ("1", "true", "yes")

LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()

# Retry policy for the slide compaction path
RETRY_MAX_ATTEMPTS = int(os.getenv("RETRY_MAX_ATTEMPTS", "3"))
# Seconds; attempt n sleeps RETRY_BASE_DELAY * 2**n
RETRY_BASE_DELAY = float(os.getenv("RETRY_BASE_DELAY", "0.1"))

# How many times a single-field update is re-applied after losing a version race
STORE_APPLY_ATTEMPTS = int(os.getenv("STORE_APPLY_ATTEMPTS", "10"))

# Undo history depth kept by editing clients
HISTORY_LIMIT = int(os.getenv("HISTORY_LIMIT", "50"))

# Comma separated; "*" allows any origin
CORS_ORIGINS = [o.strip() for o in os.getenv("CORS_ORIGINS", "*").split(",") if o.strip()]

HOST = os.getenv("HOST", "0.0.0.0")
PORT = int(os.getenv("PORT", "8000"))
