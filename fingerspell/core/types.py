"""
Shared domain types for the fingerspelling recognizer.

Centralizes the alphabet, result containers and confidence tiers used
across modules to eliminate circular imports and ensure type consistency.
"""

import string
import time
from dataclasses import dataclass, field
from enum import Enum
from typing import Optional


# =============================================================================
# Alphabet
# =============================================================================

ALPHABET = tuple(string.ascii_uppercase)


def normalize_letter(letter) -> Optional[str]:
    """Uppercase a single A-Z letter, or return None if it is not one."""
    if not isinstance(letter, str):
        return None
    letter = letter.strip().upper()
    if len(letter) != 1 or letter not in ALPHABET:
        return None
    return letter


class ConfidenceTier(Enum):
    """Fixed confidence levels assigned by the rule cascade."""
    LOW = "low"
    MID = "mid"
    HIGH = "high"


class ResultSource(Enum):
    """Which classifier produced a result."""
    NONE = ""
    RULES = "rules"
    KNN = "knn"


# =============================================================================
# Data Containers
# =============================================================================

@dataclass(frozen=True)
class ClassificationResult:
    """Per-frame classifier output. Never persisted."""
    letter: Optional[str]
    confidence: float
    source: ResultSource = ResultSource.NONE

    @property
    def is_valid(self) -> bool:
        return self.letter is not None and self.confidence > 0.0

    @staticmethod
    def none() -> "ClassificationResult":
        """Create an empty (no letter) result."""
        return ClassificationResult(letter=None, confidence=0.0)

    def __repr__(self):
        return f"ClassificationResult({self.letter}, conf={self.confidence:.2f}, {self.source.value or 'none'})"


@dataclass(frozen=True)
class RecordingProgress:
    """Snapshot of a training recording session."""
    letter: Optional[str]
    count: int
    target: int
    active: bool

    @property
    def fraction(self) -> float:
        return min(1.0, self.count / self.target) if self.target else 1.0


@dataclass
class TickResult:
    """Result of processing one incoming hand frame."""
    stable_letter: Optional[str] = None
    mean_confidence: float = 0.0
    text: str = ""
    emitted: Optional[str] = None
    current_letter: Optional[str] = None
    hand_detected: bool = False
    recording: Optional[RecordingProgress] = None
    raw: Optional[ClassificationResult] = None
    timestamp: float = field(default_factory=time.time)

    @property
    def is_stable(self) -> bool:
        return self.stable_letter is not None
