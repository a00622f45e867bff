"""Tests for the fabjobs logging setup."""

import asyncio
import logging
from datetime import datetime

import pytest

from fabjobs.infra.logging_config import (
    DailyRotatingFileHandler,
    JobContextFilter,
    job_log_context,
    setup_logging,
)


def _record(message: str) -> logging.LogRecord:
    return logging.LogRecord("fabjobs.test", logging.INFO, "", 0, message, (), None)


def _file_text(log_dir) -> str:
    for handler in logging.getLogger("fabjobs").handlers:
        handler.flush()
    return "".join(p.read_text() for p in sorted(log_dir.glob("fabjobs_*.log")))


class TestDailyRotatingFileHandler:
    """Per-day files named after the process start time."""

    def test_file_name_uses_day_and_start_time(self, tmp_path):
        started = datetime(2026, 3, 1, 7, 8, 9)
        handler = DailyRotatingFileHandler(tmp_path / "logs", started=started)
        handler.close()

        today = datetime.now().strftime("%Y%m%d")
        assert handler.baseFilename.endswith(f"fabjobs_{today}_070809.log")
        assert (tmp_path / "logs").is_dir()

    def test_new_day_switches_file(self, tmp_path):
        handler = DailyRotatingFileHandler(tmp_path, started=datetime(2026, 3, 1, 7, 8, 9))
        handler.setFormatter(logging.Formatter("%(message)s"))
        handler.day = "19990101"

        handler.emit(_record("after midnight"))
        handler.close()

        assert handler.day == datetime.now().strftime("%Y%m%d")
        assert "after midnight" in (tmp_path / handler.baseFilename).read_text()

    def test_same_day_keeps_file(self, tmp_path):
        handler = DailyRotatingFileHandler(tmp_path)
        handler.setFormatter(logging.Formatter("%(message)s"))
        first = handler.baseFilename

        handler.emit(_record("one"))
        handler.emit(_record("two"))
        handler.close()

        assert handler.baseFilename == first
        assert len(list(tmp_path.glob("fabjobs_*.log"))) == 1


class TestJobLogContext:
    """Job tagging of records."""

    def test_filter_outside_job_is_empty(self):
        record = _record("idle")

        JobContextFilter().filter(record)

        assert record.job_context == ""

    def test_filter_inside_job(self):
        record = _record("busy")

        with job_log_context("D1", "J1"):
            JobContextFilter().filter(record)

        assert record.job_context == "[D1/J1] "

    def test_context_is_reset_after_block(self):
        with job_log_context("D1", "J1"):
            pass

        record = _record("later")
        JobContextFilter().filter(record)
        assert record.job_context == ""

    @pytest.mark.asyncio
    async def test_tasks_started_in_block_inherit_context(self):
        seen = []

        async def tick():
            record = _record("tick")
            JobContextFilter().filter(record)
            seen.append(record.job_context)

        with job_log_context("D1", "J1"):
            task = asyncio.create_task(tick())
        await task

        assert seen == ["[D1/J1] "]


class TestSetupLogging:
    """setup_logging()."""

    def test_console_and_file_handlers(self, tmp_path):
        logger = setup_logging("DEBUG", log_dir=tmp_path)

        assert logger.name == "fabjobs"
        assert logger.level == logging.DEBUG
        assert logger.propagate is False
        kinds = {type(h) for h in logger.handlers}
        assert kinds == {logging.StreamHandler, DailyRotatingFileHandler}

    def test_setup_twice_replaces_handlers(self, tmp_path):
        setup_logging("INFO", log_dir=tmp_path)
        logger = setup_logging("INFO", log_dir=tmp_path)

        assert len(logger.handlers) == 2

    def test_unknown_level_is_info(self, tmp_path):
        assert setup_logging("LOUD", log_dir=tmp_path).level == logging.INFO

    def test_job_records_are_tagged_in_file(self, tmp_path):
        setup_logging("INFO", log_dir=tmp_path)
        module_logger = logging.getLogger("fabjobs.jobs.job")

        with job_log_context("/dev/ttyACM0", "J7"):
            module_logger.info("Transitioning from ready to starting.")
        module_logger.info("untagged line")

        text = _file_text(tmp_path)
        assert "[/dev/ttyACM0/J7] Transitioning from ready to starting." in text
        assert "INFO - untagged line" in text

    @pytest.mark.asyncio
    async def test_process_command_tags_transition_logs(self, tmp_path, make_job):
        setup_logging("INFO", log_dir=tmp_path)
        job = make_job(job_uuid="J1")

        await job.process_command("start")

        assert "[D1/J1] Device D1 Job J1 event start" in _file_text(tmp_path)
