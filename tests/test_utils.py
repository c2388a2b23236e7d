import datetime
import logging
from logging.handlers import RotatingFileHandler

import pytest

from user_focus.logging_setup import setup_logger
from user_focus.utils import format_duration, format_elapsed, from_iso, to_iso


class TestFormatElapsed:
    @pytest.mark.parametrize(
        "seconds, expected",
        [
            (0, "00:00"),
            (5, "00:05"),
            (125, "02:05"),
            (3599, "59:59"),
            (3600, "01:00:00"),
            (3661.9, "01:01:01"),
            (36000, "10:00:00"),
            (-4, "00:00"),
        ],
    )
    def test_format(self, seconds, expected):
        assert format_elapsed(seconds) == expected


class TestFormatDuration:
    @pytest.mark.parametrize(
        "seconds, expected",
        [(0, "0m"), (59, "0m"), (600, "10m"), (3600, "1h 0m"), (5430, "1h 30m")],
    )
    def test_format(self, seconds, expected):
        assert format_duration(seconds) == expected


class TestIso:
    def test_round_trip_keeps_offset(self):
        ts = datetime.datetime(2026, 3, 6, 9, 0, 0, 123456, tzinfo=datetime.timezone.utc)
        assert from_iso(to_iso(ts)) == ts


class TestSetupLogger:
    def test_single_rotating_handler(self, tmp_path):
        log_file = str(tmp_path / "logs" / "user_focus.log")
        logger = setup_logger(log_file)
        try:
            setup_logger(log_file)
            handlers = [h for h in logger.handlers if isinstance(h, RotatingFileHandler)]
            assert len(handlers) == 1
            assert logger.level == logging.INFO
        finally:
            for h in list(logger.handlers):
                if isinstance(h, RotatingFileHandler):
                    logger.removeHandler(h)
                    h.close()
