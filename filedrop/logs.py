"""Logging setup: stderr for the CLI and the append-only sync log."""
import contextlib
import logging
import os
from datetime import datetime
from typing import Iterator

SYNC_LOGGER = "filedrop.sync"


class IsoFormatter(logging.Formatter):
    """Render `<ISO-8601 timestamp> <message>`, like `date -Is`."""

    def __init__(self):
        super().__init__("%(asctime)s %(message)s")

    def formatTime(self, record, datefmt=None):
        return datetime.fromtimestamp(record.created).astimezone().isoformat(timespec="seconds")


def configure_logging(verbose: bool = False) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )


@contextlib.contextmanager
def sync_log(path: str) -> Iterator[logging.Logger]:
    """Attach `path` to the sync logger for one run, then detach it."""
    parent = os.path.dirname(path)
    if parent:
        os.makedirs(parent, exist_ok=True)

    log = logging.getLogger(SYNC_LOGGER)
    log.setLevel(logging.INFO)
    handler = logging.FileHandler(path, mode="a", encoding="utf-8")
    handler.setFormatter(IsoFormatter())
    log.addHandler(handler)
    try:
        yield log
    finally:
        log.removeHandler(handler)
        handler.close()
