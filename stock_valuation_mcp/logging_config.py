"""Queue-based logging configuration

Log records are handed to a background listener thread so handlers never
block the event loop. Output goes to stderr (stdout carries the stdio
protocol) and optionally to a file. Modules call get_logger(__name__).
"""

from __future__ import annotations

import logging
import logging.handlers
import sys
from pathlib import Path
from queue import Queue
from typing import List, Optional, Union

LOG_FORMAT = "[%(asctime)s] [%(levelname)s] %(name)s: %(message)s"

# Chatty third-party loggers, held at INFO when we run at DEBUG
NOISY_LOGGERS = ("httpx", "httpcore", "uvicorn.access", "asyncio")


class QueueLoggingManager:
    """Owns the log queue and its listener so setup/shutdown are idempotent"""

    def __init__(self) -> None:
        self.log_queue: "Queue[logging.LogRecord]" = Queue(-1)
        self.listener: Optional[logging.handlers.QueueListener] = None

    def setup(self, level: Union[int, str] = logging.INFO, log_file: Optional[Path] = None) -> None:
        """Route the root logger through a QueueHandler.

        Calling this twice replaces the previous listener.
        """
        if isinstance(level, str):
            level = logging.getLevelName(level.upper())
            if not isinstance(level, int):
                level = logging.INFO

        self.shutdown()

        formatter = logging.Formatter(LOG_FORMAT)
        handlers: List[logging.Handler] = []

        console_handler = logging.StreamHandler(sys.stderr)
        console_handler.setFormatter(formatter)
        handlers.append(console_handler)

        if log_file is not None:
            log_file.parent.mkdir(parents=True, exist_ok=True)
            file_handler = logging.FileHandler(log_file)
            file_handler.setFormatter(formatter)
            handlers.append(file_handler)

        self.listener = logging.handlers.QueueListener(
            self.log_queue, *handlers, respect_handler_level=True
        )
        self.listener.start()

        root = logging.getLogger()
        root.setLevel(level)
        root.handlers.clear()
        root.addHandler(logging.handlers.QueueHandler(self.log_queue))

        if level < logging.INFO:
            for name in NOISY_LOGGERS:
                logging.getLogger(name).setLevel(logging.INFO)

    def shutdown(self) -> None:
        """Flush queued records and stop the listener thread."""
        if self.listener is not None:
            self.listener.stop()
            self.listener = None


_manager = QueueLoggingManager()


def setup_logging(level: Union[int, str] = logging.INFO, log_file: Optional[Path] = None) -> None:
    _manager.setup(level, log_file)


def shutdown_logging() -> None:
    _manager.shutdown()


def get_logger(name: str) -> logging.Logger:
    return logging.getLogger(name)
