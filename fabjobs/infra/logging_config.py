"""
Logging setup for fabjobs.

Records go to the console and to one file per calendar day. Records emitted
while a job command runs are tagged with the job's device and uuid, including
records from tasks started inside the command (the tracker's tick loop).
"""

import contextvars
import logging
import os
from contextlib import contextmanager
from datetime import datetime
from logging.handlers import BaseRotatingHandler
from pathlib import Path
from typing import Iterator, Optional

LOGGER_NAME = "fabjobs"
LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(job_context)s%(message)s"

PROCESS_STARTED = datetime.now()

_job_context: contextvars.ContextVar[str] = contextvars.ContextVar("fabjobs_job_context", default="")


@contextmanager
def job_log_context(device_id: str, job_uuid: str) -> Iterator[None]:
    """Tag every record logged inside the block with the job."""
    token = _job_context.set(f"[{device_id}/{job_uuid}] ")
    try:
        yield
    finally:
        _job_context.reset(token)


class JobContextFilter(logging.Filter):
    """Sets record.job_context ("" outside a job command)."""

    def filter(self, record: logging.LogRecord) -> bool:
        record.job_context = _job_context.get()
        return True


class DailyRotatingFileHandler(BaseRotatingHandler):
    """
    Writes logs/fabjobs_YYYYMMDD_HHMMSS.log.

    HHMMSS is the process start time; the date part follows the day the
    record was created.
    """

    def __init__(
        self,
        log_dir: str | Path = "logs",
        encoding: str = "utf-8",
        started: Optional[datetime] = None,
    ):
        self.log_dir = Path(log_dir)
        self.log_dir.mkdir(parents=True, exist_ok=True)
        self.started = started or PROCESS_STARTED
        self.day = datetime.now().strftime("%Y%m%d")
        super().__init__(self.path_for(self.day), mode="a", encoding=encoding)

    def path_for(self, day: str) -> str:
        return os.path.abspath(self.log_dir / f"{LOGGER_NAME}_{day}_{self.started:%H%M%S}.log")

    def shouldRollover(self, record: logging.LogRecord) -> bool:
        return datetime.fromtimestamp(record.created).strftime("%Y%m%d") != self.day

    def doRollover(self) -> None:
        if self.stream:
            self.stream.close()
            self.stream = None
        self.day = datetime.now().strftime("%Y%m%d")
        self.baseFilename = self.path_for(self.day)
        self.stream = self._open()


def setup_logging(log_level: str = "INFO", log_dir: str | Path = "logs") -> logging.Logger:
    """
    Configure the fabjobs logger tree and return its root.

    Safe to call again: previous handlers are closed and replaced.

    Args:
        log_level: DEBUG, INFO, WARNING, ERROR or CRITICAL (unknown -> INFO)
        log_dir: Directory for the daily files
    """
    level = logging.getLevelName(log_level.upper())
    if not isinstance(level, int):
        level = logging.INFO

    logger = logging.getLogger(LOGGER_NAME)
    logger.setLevel(level)
    logger.propagate = False

    for handler in list(logger.handlers):
        logger.removeHandler(handler)
        handler.close()

    formatter = logging.Formatter(LOG_FORMAT)
    context_filter = JobContextFilter()
    file_handler = DailyRotatingFileHandler(log_dir=log_dir)
    for handler in (logging.StreamHandler(), file_handler):
        handler.setLevel(level)
        handler.setFormatter(formatter)
        handler.addFilter(context_filter)
        logger.addHandler(handler)

    logger.info(f"Logging started - level: {logging.getLevelName(level)}, log file: {file_handler.baseFilename}")
    return logger
