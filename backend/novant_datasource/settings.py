"""Centralised settings for the Novant data source backend."""
import logging
import os
from datetime import tzinfo
from typing import List, Optional
from zoneinfo import ZoneInfo

NOVANT_API_URL = os.getenv("NOVANT_API_URL", "https://api.novant.io/v1").rstrip("/")
NOVANT_API_KEY = os.getenv("NOVANT_API_KEY", "")
NOVANT_TIMEOUT_S = float(os.getenv("NOVANT_TIMEOUT_S", "30"))

# Day buckets follow this calendar when set, else the time range's own zone.
NOVANT_TIMEZONE = os.getenv("NOVANT_TIMEZONE") or None

# Not configurable per query yet.
NOVANT_TREND_INTERVAL = "15min"

# Workers above 1 run batch queries on a thread pool, one session per query.
NOVANT_QUERY_WORKERS = int(os.getenv("NOVANT_QUERY_WORKERS", "1"))
NOVANT_LOG_LEVEL = os.getenv("NOVANT_LOG_LEVEL", "INFO").upper()
CORS_ORIGINS: List[str] = [
    o.strip() for o in os.getenv("NOVANT_CORS_ORIGINS", "*").split(",") if o.strip()
]

LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s %(message)s"


def setup_logging(level: Optional[str] = None) -> None:
    """Configure console logging for the backend process."""
    logging.basicConfig(
        level=getattr(logging, (level or NOVANT_LOG_LEVEL).upper(), logging.INFO),
        format=LOG_FORMAT,
        handlers=[logging.StreamHandler()],
        force=True,
    )


def resolve_timezone(name: Optional[str] = None) -> Optional[tzinfo]:
    name = name or NOVANT_TIMEZONE
    if not name:
        return None
    return ZoneInfo(name)
