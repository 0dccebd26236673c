"""Unit tests for app.core.log_config: UTC timestamps and a single root handler."""

import logging
import unittest

from app.core.log_config import LOG_DATEFMT, LOG_FORMAT, UTCFormatter, configure_logging


class TestUTCFormatter(unittest.TestCase):
    def test_timestamp_is_utc(self) -> None:
        record = logging.LogRecord("app.test", logging.INFO, __file__, 1, "hello", None, None)
        record.created = 0.0
        record.msecs = 0.0
        line = UTCFormatter(LOG_FORMAT, LOG_DATEFMT).format(record)
        self.assertTrue(line.startswith("1970-01-01T00:00:00Z INFO app.test hello"), line)


class TestConfigureLogging(unittest.TestCase):
    def setUp(self) -> None:
        self.root = logging.getLogger()
        self.saved_handlers = list(self.root.handlers)
        self.saved_level = self.root.level

    def tearDown(self) -> None:
        self.root.handlers = self.saved_handlers
        self.root.setLevel(self.saved_level)

    def test_repeated_calls_add_one_handler(self) -> None:
        configure_logging("INFO")
        configure_logging("DEBUG")
        utc_handlers = [h for h in self.root.handlers if isinstance(h.formatter, UTCFormatter)]
        self.assertEqual(len(utc_handlers), 1)
        self.assertEqual(self.root.level, logging.DEBUG)


if __name__ == "__main__":
    unittest.main()
