"""Tests for the service log format."""

import logging
import unittest

from filevault.main import LOG_DATE_FORMAT, LOG_FORMAT, configure_logging
from support import make_settings


class TestConfigureLogging(unittest.TestCase):
    def test_timestamps_are_utc(self) -> None:
        configure_logging(make_settings())
        record = logging.LogRecord("filevault", logging.INFO, __file__, 1, "started", None, None)
        record.created = 0.0
        formatter = logging.Formatter(LOG_FORMAT, LOG_DATE_FORMAT)
        self.assertEqual(formatter.formatTime(record, LOG_DATE_FORMAT), "1970-01-01T00:00:00Z")
        self.assertEqual(formatter.format(record), "1970-01-01T00:00:00Z INFO filevault started")


if __name__ == "__main__":
    unittest.main()
