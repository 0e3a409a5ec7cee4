# Utility for loading environment variables
import logging
import os
from dotenv import load_dotenv

load_dotenv()

logger = logging.getLogger(__name__)


def _env_int(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None or raw == "":
        return default
    try:
        return int(raw)
    except ValueError:
        logger.warning(f"Ignoring non-integer {name}={raw!r}, using {default}")
        return default


def _env_float(name: str, default: float) -> float:
    raw = os.getenv(name)
    if raw is None or raw == "":
        return default
    try:
        return float(raw)
    except ValueError:
        logger.warning(f"Ignoring non-numeric {name}={raw!r}, using {default}")
        return default


MONGO_CONNECTION_STRING = os.getenv("MONGO_CONNECTION_STRING", "mongodb://localhost:27017/")
MONGO_DATABASE = os.getenv("MONGO_DATABASE", "mplads")

# Lok Sabha term used when a request does not pick one ("17", "18" or "both")
DEFAULT_LS_TERM = os.getenv("DEFAULT_LS_TERM", "18").strip().lower()

CACHE_MAX_KEYS = _env_int("CACHE_MAX_KEYS", 1000)
CACHE_MAX_MEMORY_MB = _env_float("CACHE_MAX_MEMORY_MB", 512.0)
CACHE_CLEANUP_THRESHOLD = _env_float("CACHE_CLEANUP_THRESHOLD", 0.8)

# Upper bound on raw rows read per record set per aggregation query
AGGREGATION_ROW_LIMIT = _env_int("AGGREGATION_ROW_LIMIT", 200_000)

if not os.getenv("MONGO_CONNECTION_STRING"):
    logger.debug("MONGO_CONNECTION_STRING not set; using local default")
