"""
Temporal Stabilizer
===================

Turns noisy per-frame letter guesses into a clean letter stream.

    NoHand      no hand this tick -> vote buffer fully cleared, no emission
    Detecting   hand present -> classifier result pushed every tick (empty
                results included), oldest entry evicted at capacity
    Stable      some letter fills >= vote_majority of the buffer

Emission fires only for a stable letter: a new letter is appended to the
text immediately, the same letter repeats only after letter_hold_ms.
"""

import time
import logging
from collections import Counter, deque
from dataclasses import dataclass
from typing import Deque, List, Optional, Tuple

from fingerspell.core.types import ClassificationResult, TickResult

logger = logging.getLogger(__name__)


@dataclass
class StabilizerConfig:
    """Temporal stabilizer configuration."""
    vote_size: int = 8              # Vote buffer capacity
    vote_majority: int = 5          # Occurrences needed for a stable letter
    min_confidence: float = 0.5     # Below this a result votes as "no letter"
    letter_hold_ms: int = 500       # Minimum gap before repeating a letter

    @classmethod
    def from_dict(cls, config: dict) -> "StabilizerConfig":
        """Create config from dictionary."""
        return cls(
            vote_size=config.get("vote_size", 8),
            vote_majority=config.get("vote_majority", 5),
            min_confidence=config.get("min_confidence", 0.5),
            letter_hold_ms=config.get("letter_hold_ms", 500),
        )


class VoteBuffer:
    """Fixed-capacity FIFO of recent (letter, confidence) votes."""

    def __init__(self, size: int = 8, majority: int = 5):
        self._majority = majority
        self._votes: Deque[Tuple[Optional[str], float]] = deque(maxlen=size)

    def push(self, letter: Optional[str], confidence: float):
        if letter is None:
            confidence = 0.0
        self._votes.append((letter, confidence))

    def clear(self):
        self._votes.clear()

    def __len__(self) -> int:
        return len(self._votes)

    @property
    def capacity(self) -> int:
        return self._votes.maxlen

    @property
    def contents(self) -> List[Optional[str]]:
        """Buffered letters, oldest first, for debugging."""
        return [letter for letter, _ in self._votes]

    def stable_letter(self) -> Optional[str]:
        """Most common non-empty letter, if it reaches the majority."""
        if len(self._votes) < self._majority:
            return None
        counts = Counter(letter for letter, _ in self._votes if letter is not None)
        if not counts:
            return None
        letter, count = counts.most_common(1)[0]
        return letter if count >= self._majority else None

    def mean_confidence(self) -> float:
        """Mean over all entries; empty votes count as zero."""
        if not self._votes:
            return 0.0
        return sum(c for _, c in self._votes) / len(self._votes)


class LetterEmitter:
    """Emission state: last emitted letter, its time, and accumulated text."""

    def __init__(self, hold_ms: int = 500):
        self._hold_ms = hold_ms
        self.last_letter: Optional[str] = None
        self.last_time: Optional[float] = None
        self.text = ""

    def offer(self, letter: str, now: float) -> bool:
        """Append a stable letter if it is new or held long enough.

        Args:
            letter: Stable letter for this tick
            now: Current time in seconds

        Returns:
            True if the letter was appended
        """
        is_new = letter != self.last_letter
        # Whole milliseconds: float seconds can land a hair under the hold
        held = self.last_time is None or round((now - self.last_time) * 1000) >= self._hold_ms
        if not (is_new or held):
            return False
        self.last_letter = letter
        self.last_time = now
        self.text += letter
        return True

    def clear_text(self):
        self.text = ""
        self.last_letter = None

    def reset(self):
        self.text = ""
        self.last_letter = None
        self.last_time = None


class TemporalStabilizer:
    """
    Multi-frame vote buffer and debounced letter emission.

    Example:
        >>> stabilizer = TemporalStabilizer(arbiter)
        >>>
        >>> while running:
        ...     result = stabilizer.process_tick(detector.next_frame())
        ...     if result.emitted:
        ...         print(result.text)
    """

    def __init__(self, classifier=None, config: Optional[StabilizerConfig] = None):
        """
        Args:
            classifier: Anything with classify(frame) -> ClassificationResult,
                        normally the ClassifierArbiter. Only needed for
                        process_tick().
            config: ``stabilizer`` section from config.yaml
        """
        self.config = config or StabilizerConfig()
        self._classifier = classifier
        self._buffer = VoteBuffer(self.config.vote_size, self.config.vote_majority)
        self._emitter = LetterEmitter(self.config.letter_hold_ms)

    def process_tick(self, frame, now: Optional[float] = None) -> TickResult:
        """Process one incoming frame (None when no hand is present).

        Args:
            frame: 21 hand landmarks, or None
            now: Tick time in seconds (defaults to time.time())
        """
        if frame is None:
            return self.hand_lost(now)
        if self._classifier is None:
            raise RuntimeError("TemporalStabilizer.process_tick() needs a classifier")
        return self.update(self._classifier.classify(frame), now)

    def update(self, result: ClassificationResult, now: Optional[float] = None) -> TickResult:
        """Push one classifier result and apply the emission rule."""
        now = time.time() if now is None else now

        if result.letter is not None and result.confidence >= self.config.min_confidence:
            self._buffer.push(result.letter, result.confidence)
            raw_letter = result.letter
        else:
            self._buffer.push(None, 0.0)
            raw_letter = None

        stable = self._buffer.stable_letter()
        emitted = None
        if stable is not None and self._emitter.offer(stable, now):
            emitted = stable
            logger.debug("Emitted %s -> %r", stable, self._emitter.text)

        return TickResult(
            stable_letter=stable,
            mean_confidence=self._buffer.mean_confidence(),
            text=self._emitter.text,
            emitted=emitted,
            current_letter=stable or raw_letter,
            hand_detected=True,
            raw=result,
            timestamp=now,
        )

    def hand_lost(self, now: Optional[float] = None) -> TickResult:
        """No hand this tick: clear the vote buffer, never emit."""
        now = time.time() if now is None else now
        self._buffer.clear()
        return TickResult(text=self._emitter.text, timestamp=now)

    def reset_session(self):
        """Clear vote buffer and emission state."""
        self._buffer.clear()
        self._emitter.reset()

    def clear_text(self):
        """Clear accumulated text and votes, keep the session running."""
        self._buffer.clear()
        self._emitter.clear_text()

    def commit_text(self) -> str:
        """Return the trimmed accumulated text and start a fresh line."""
        text = self._emitter.text.strip()
        self._emitter.clear_text()
        return text

    @property
    def text(self) -> str:
        return self._emitter.text

    @property
    def last_emitted(self) -> Optional[str]:
        return self._emitter.last_letter

    @property
    def stable_letter(self) -> Optional[str]:
        return self._buffer.stable_letter()

    @property
    def buffer(self) -> VoteBuffer:
        return self._buffer

    @property
    def buffer_contents(self) -> List[Optional[str]]:
        return self._buffer.contents
