"""Centralized logging for buildpipe.

Modules log through ``logging.getLogger(__name__)``; everything under the
``buildpipe`` package shares the one stderr handler configured here.
"""

from __future__ import annotations

import logging
import sys
import threading

ROOT_LOGGER = "buildpipe"

_lock = threading.Lock()
_setup_done = False


class _TagFormatter(logging.Formatter):
    """Render records as ``[tag] message`` where *tag* is the module path below ``buildpipe``.

    ``buildpipe.pipeline.executor`` becomes ``[pipeline.executor]``. The record
    itself is left untouched so other handlers see the original message.
    """

    def __init__(self) -> None:
        super().__init__("[%(tag)s] %(message)s")

    def format(self, record: logging.LogRecord) -> str:
        tag = record.name.removeprefix(f"{ROOT_LOGGER}.")
        return super().format(logging.makeLogRecord({**record.__dict__, "tag": tag}))


def setup_logging(verbose: bool = False) -> None:
    """Configure the ``buildpipe`` root logger.

    The handler is attached once; later calls only adjust the level, so
    ``--verbose`` still takes effect after an earlier implicit setup.
    """
    global _setup_done
    logger = logging.getLogger(ROOT_LOGGER)
    with _lock:
        if not _setup_done:
            handler = logging.StreamHandler(sys.stderr)
            handler.setFormatter(_TagFormatter())
            logger.addHandler(handler)
            logger.propagate = False
            _setup_done = True
        logger.setLevel(logging.DEBUG if verbose else logging.WARNING)
