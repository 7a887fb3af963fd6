"""
ClassifierArbiter: trained-model-first letter classifier with rule-based
fallback.

Priority order:
    1. Nearest-neighbor model  (once the sample store is trained and the
                                result is confident enough)
    2. Rule cascade            (always available, no training needed)

A trained model silently shadows the rules for any input it is confident
about. Letters the user never trained still fall through to the rules.
"""

import logging
from dataclasses import dataclass
from typing import Optional

from fingerspell.core.errors import InvalidFrame
from fingerspell.core.types import ClassificationResult
from fingerspell.detection.landmarks import to_landmark_array
from fingerspell.utils.logger import log_timing

logger = logging.getLogger(__name__)


@dataclass
class ArbiterConfig:
    """Arbiter configuration."""
    model_confidence_threshold: float = 0.55

    @classmethod
    def from_dict(cls, config: dict) -> "ArbiterConfig":
        """Create config from dictionary."""
        return cls(
            model_confidence_threshold=config.get("model_confidence_threshold", 0.55),
        )


class ClassifierArbiter:
    """Chooses between the KNN model and the rule cascade per frame.

    Usage::

        arbiter = ClassifierArbiter(rule_classifier, knn_classifier)
        result = arbiter.classify(landmarks)
    """

    def __init__(self, rule_classifier, knn_classifier=None,
                 config: Optional[ArbiterConfig] = None):
        """
        Args:
            rule_classifier: RuleClassifier used whenever the model is not
                             ready or not confident.
            knn_classifier: KNNClassifier backed by the sample store.
            config: ``arbiter`` section from config.yaml
        """
        self._rule_classifier = rule_classifier
        self._knn_classifier = knn_classifier
        self.config = config or ArbiterConfig()

        # Stats
        self._knn_calls = 0
        self._rule_calls = 0
        self._fallback_count = 0

    @property
    def backend(self) -> str:
        """Backend that would be tried first for the next frame."""
        if self._knn_classifier is not None and self._knn_classifier.is_ready:
            return "knn"
        return "rules"

    @property
    def stats(self) -> dict:
        """Classification statistics."""
        total = self._knn_calls + self._rule_calls
        return {
            "backend": self.backend,
            "knn_calls": self._knn_calls,
            "rule_calls": self._rule_calls,
            "fallback_count": self._fallback_count,
            "knn_ratio": self._knn_calls / max(total, 1),
        }

    @log_timing
    def classify(self, frame) -> ClassificationResult:
        """Classify a hand frame.

        Priority: trained KNN model -> rule cascade.

        Args:
            frame: 21 hand landmarks

        Returns:
            ClassificationResult; empty for invalid frames
        """
        try:
            landmarks = to_landmark_array(frame)
        except InvalidFrame as e:
            logger.debug("Arbiter rejected frame: %s", e)
            return ClassificationResult.none()

        if self._knn_classifier is not None and self._knn_classifier.is_ready:
            result = self._knn_classifier.classify(landmarks)
            self._knn_calls += 1
            if result.letter is not None and result.confidence >= self.config.model_confidence_threshold:
                return result

            self._fallback_count += 1
            logger.debug(
                "KNN confidence %.3f < %.3f, falling back to rules",
                result.confidence, self.config.model_confidence_threshold,
            )

        self._rule_calls += 1
        return self._rule_classifier.classify(landmarks)
