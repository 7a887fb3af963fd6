"""
Timed training recorder.

While a recording session is active, incoming hand frames bypass
classification and are added to the sample store at a fixed minimum
spacing until the target count is reached, after which recording stops
on its own.
"""

import time
import logging
from dataclasses import dataclass
from typing import Optional

from fingerspell.core.types import RecordingProgress, normalize_letter

logger = logging.getLogger(__name__)


@dataclass
class RecorderConfig:
    """Training recorder configuration."""
    target_samples: int = 15
    interval_ms: int = 180

    @classmethod
    def from_dict(cls, config: dict) -> "RecorderConfig":
        """Create config from dictionary."""
        return cls(
            target_samples=config.get("target_samples", 15),
            interval_ms=config.get("interval_ms", 180),
        )


class TrainingRecorder:
    """Feeds spaced frames for one letter into a SampleStore."""

    def __init__(self, store, config: Optional[RecorderConfig] = None):
        self._store = store
        self.config = config or RecorderConfig()
        self._letter: Optional[str] = None
        self._count = 0
        self._last_record_time: Optional[float] = None

    @property
    def is_recording(self) -> bool:
        return self._letter is not None

    @property
    def letter(self) -> Optional[str]:
        return self._letter

    @property
    def progress(self) -> RecordingProgress:
        return RecordingProgress(
            letter=self._letter,
            count=self._count,
            target=self.config.target_samples,
            active=self.is_recording,
        )

    def start(self, letter) -> RecordingProgress:
        """Begin recording samples for a letter.

        Raises:
            ValueError: If letter is not a single A-Z character.
        """
        label = normalize_letter(letter)
        if label is None:
            raise ValueError("Cannot record samples for %r: expected a letter A-Z" % (letter,))
        if self.is_recording:
            logger.info("Recording %s replaced by %s at %d/%d",
                        self._letter, label, self._count, self.config.target_samples)
        self._letter = label
        self._count = 0
        self._last_record_time = None
        logger.info("Recording started for %s (target %d)", label, self.config.target_samples)
        return self.progress

    def cancel(self) -> RecordingProgress:
        """Discard the in-progress session. Saved samples are kept."""
        progress = self.progress
        if self.is_recording:
            logger.info("Recording cancelled for %s at %d/%d",
                        self._letter, self._count, self.config.target_samples)
        self._letter = None
        self._count = 0
        self._last_record_time = None
        return progress

    def offer(self, frame, now: Optional[float] = None) -> bool:
        """Record a frame if the spacing interval has elapsed.

        Returns:
            True if a sample was added to the store on this call
        """
        if not self.is_recording or frame is None:
            return False
        now = time.time() if now is None else now

        if (self._last_record_time is not None
                and round((now - self._last_record_time) * 1000) < self.config.interval_ms):
            return False

        self._last_record_time = now
        if not self._store.add_sample(self._letter, frame):
            return False

        self._count += 1
        if self._count >= self.config.target_samples:
            logger.info("Recording complete for %s (%d samples)", self._letter, self._count)
            self._letter = None
            self._count = 0
            self._last_record_time = None
        return True
