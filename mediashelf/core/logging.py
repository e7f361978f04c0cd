from __future__ import annotations

import logging
import os
import sys

# HTTP clients log every metadata API request at INFO; the engine logs SQL
QUIET_LOGGERS = {
    "httpx": logging.WARNING,
    "httpcore": logging.WARNING,
    "sqlalchemy.engine": logging.WARNING,
    "alembic.runtime.migration": logging.INFO,
    "uvicorn.access": logging.WARNING,
    "asyncio": logging.WARNING,
}


def setup_logging() -> None:
    """
    Configure root logging from ``LOG_LEVEL`` (default INFO).

    ``LOG_SQL=1`` keeps SQLAlchemy's statement log on.
    """
    level = os.getenv("LOG_LEVEL", "INFO").upper()
    logging.basicConfig(
        level=level,
        format="%(asctime)s %(levelname)s %(name)s :: %(message)s",
        stream=sys.stdout,
    )

    for name, quiet_level in QUIET_LOGGERS.items():
        logging.getLogger(name).setLevel(quiet_level)
    if os.getenv("LOG_SQL") == "1":
        logging.getLogger("sqlalchemy.engine").setLevel(logging.INFO)
