"""Logging setup for command-line entry points. Library modules only call getLogger()."""
import logging
import sys


LOG_FORMAT = "%(asctime)s [%(name)s] %(levelname)s: %(message)s"


def setup_logging(level: str = "INFO") -> None:
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format=LOG_FORMAT,
        handlers=[logging.StreamHandler(sys.stdout)],
        force=True,
    )
    # requests/urllib3 connection chatter
    logging.getLogger("urllib3").setLevel(logging.WARNING)
