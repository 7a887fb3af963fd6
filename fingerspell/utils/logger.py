"""
Structured logging with letter-stream and training event logging.
"""

import os
import logging
import logging.handlers
import time
from functools import wraps


def setup_logging(level="INFO", log_file=None, max_size_mb=10, backup_count=3):
    """Configure structured logging for the application."""
    # Compact console format
    console_format = "%(asctime)s  %(levelname)-5s  %(message)s"
    # Verbose format for log file
    file_format = "%(asctime)s [%(levelname)-7s] %(name)-25s | %(message)s"
    date_format = "%H:%M:%S"

    root_logger = logging.getLogger()
    root_logger.setLevel(getattr(logging, str(level).upper(), logging.INFO))

    # Remove existing handlers
    root_logger.handlers.clear()

    console = logging.StreamHandler()
    console.setLevel(root_logger.level)
    console.setFormatter(logging.Formatter(console_format, datefmt=date_format))
    root_logger.addHandler(console)

    # File handler (rotating)
    if log_file:
        log_dir = os.path.dirname(log_file)
        if log_dir:
            os.makedirs(log_dir, exist_ok=True)
        file_handler = logging.handlers.RotatingFileHandler(
            log_file,
            maxBytes=max_size_mb * 1024 * 1024,
            backupCount=backup_count,
        )
        file_handler.setLevel(logging.DEBUG)
        file_handler.setFormatter(logging.Formatter(file_format, datefmt=date_format))
        root_logger.addHandler(file_handler)

    return root_logger


class LetterLogger:
    """Specialized logger for emitted letters and training samples."""

    def __init__(self, max_history: int = 500):
        self.logger = logging.getLogger("letter_events")
        self._history = []
        self._max_history = max_history

    def log_letter(self, letter, confidence, source=None, text=None):
        """Log an emitted letter."""
        self._record({
            "timestamp": time.time(),
            "kind": "letter",
            "letter": letter,
            "confidence": confidence,
            "source": source,
        })
        self.logger.info(
            "Letter: %s | Confidence: %.2f | Source: %-5s | Text: %s",
            letter,
            confidence,
            source or "n/a",
            text if text is not None else "",
        )

    def log_sample(self, letter, count, target=None, durable=True):
        """Log a recorded training sample."""
        self._record({
            "timestamp": time.time(),
            "kind": "sample",
            "letter": letter,
            "count": count,
        })
        self.logger.info(
            "Sample: %s | %s | Durable: %s",
            letter,
            f"{count}/{target}" if target else count,
            durable,
        )

    def _record(self, entry):
        self._history.append(entry)
        if len(self._history) > self._max_history:
            self._history = self._history[-self._max_history:]

    def get_history(self, last_n=None):
        """Get recent letter/sample history."""
        if last_n:
            return self._history[-last_n:]
        return self._history.copy()

    @property
    def total_letters(self):
        return sum(1 for e in self._history if e["kind"] == "letter")


def log_timing(func):
    """Decorator to log function execution time."""
    logger = logging.getLogger(func.__module__)

    @wraps(func)
    def wrapper(*args, **kwargs):
        start = time.perf_counter()
        result = func(*args, **kwargs)
        elapsed = (time.perf_counter() - start) * 1000
        logger.debug("%s took %.2fms", func.__name__, elapsed)
        return result

    return wrapper
