"""Configuration from environment."""
import os

from dotenv import load_dotenv

load_dotenv()


def _str(value: str | None) -> str:
    return (value or "").strip()


def _float(value: str | None, default: float) -> float:
    try:
        return float((value or "").strip()) if value else default
    except ValueError:
        return default


def _int(value: str | None, default: int) -> int:
    try:
        return int((value or "").strip()) if value else default
    except ValueError:
        return default


def _bool(value: str | None, default: bool) -> bool:
    v = _str(value).lower()
    if not v:
        return default
    return v in ("1", "true", "yes", "on")


# Model
EMBEDDING_MODEL = _str(os.getenv("EMBEDDING_MODEL")) or "all-MiniLM-L6-v2"

# Batch embedding: lines per chunk; a progress notification follows every chunk
EMBED_BATCH_SIZE = max(1, _int(os.getenv("EMBED_BATCH_SIZE"), 50))

# Seconds to wait for each worker reply; 0 waits forever
EMBED_TIMEOUT_SECONDS = max(0.0, _float(os.getenv("EMBED_TIMEOUT_SECONDS"), 0.0))

# Seconds close() waits for the worker thread to exit
WORKER_JOIN_TIMEOUT_SECONDS = max(0.0, _float(os.getenv("WORKER_JOIN_TIMEOUT_SECONDS"), 10.0))

# Blank lines keep their slot but are never sent to the model
SKIP_BLANK_LINES = _bool(os.getenv("SKIP_BLANK_LINES"), True)

# Search
DEFAULT_TOP_K = max(1, _int(os.getenv("DEFAULT_TOP_K"), 5))

# Server
LOG_LEVEL = (_str(os.getenv("LOG_LEVEL")) or "INFO").upper()
HOST = _str(os.getenv("HOST")) or "0.0.0.0"
PORT = _int(os.getenv("PORT"), 8000)
