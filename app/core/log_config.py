"""Process-wide logging setup (stdlib logging, one line per record, UTC timestamps)."""

import logging
import time

LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s %(message)s"
LOG_DATEFMT = "%Y-%m-%dT%H:%M:%SZ"


class UTCFormatter(logging.Formatter):
    converter = time.gmtime


def configure_logging(level: str = "INFO") -> None:
    """Install one stderr handler on the root logger; later calls only adjust the level."""
    root = logging.getLogger()
    if not any(isinstance(h.formatter, UTCFormatter) for h in root.handlers):
        handler = logging.StreamHandler()
        handler.setFormatter(UTCFormatter(LOG_FORMAT, LOG_DATEFMT))
        root.addHandler(handler)
    root.setLevel(level)
