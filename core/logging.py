"""
Logging configuration
"""

import logging
import sys
import uuid
from typing import Optional
from core.config import settings

LOG_FORMAT = "%(asctime)s | %(levelname)-8s | %(name)s | %(message)s"

# Library loggers pinned to WARNING; job milestones come from our own modules
QUIET_LOGGERS = ("sqlalchemy.engine", "sqlalchemy.pool", "httpx", "httpcore", "apscheduler")


def setup_logging(level: Optional[str] = None):
    """Configure application logging once for the API or a script"""

    level_name = (level or settings.LOG_LEVEL).upper()

    logging.basicConfig(
        level=getattr(logging, level_name, logging.INFO),
        format=LOG_FORMAT,
        datefmt="%Y-%m-%d %H:%M:%S",
        handlers=[logging.StreamHandler(sys.stdout)]
    )

    for name in QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)

    logging.getLogger(__name__).info(f"Logging configured at {level_name} level")


class JobLogAdapter(logging.LoggerAdapter):
    """Prefixes every message with the short id of the import job"""

    def process(self, msg, kwargs):
        return f"[job {self.extra['job']}] {msg}", kwargs


def job_logger(logger: logging.Logger, job_id: uuid.UUID) -> JobLogAdapter:
    return JobLogAdapter(logger, {"job": str(job_id)[:8]})
