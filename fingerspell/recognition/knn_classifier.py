"""
Trainable nearest-neighbor letter classifier.

Queries the sample store with distance-weighted k-NN voting in the
63-dim normalized landmark space:

    k          = min(k_neighbors, sample_count)
    weight     = 1 / (1 + distance)                per neighbor
    letter     = argmax of summed weight per letter (ties -> smallest letter)
    confidence = clamp(1 - mean_k_distance * distance_scale, 0.5, 0.95)
"""

import logging
from dataclasses import dataclass
from typing import Optional

import numpy as np

from fingerspell.core.errors import InvalidFrame, DegenerateGeometry, NotTrained
from fingerspell.core.types import ClassificationResult, ResultSource
from fingerspell.recognition.features import FeatureConfig, normalize

logger = logging.getLogger(__name__)


@dataclass
class KNNConfig:
    """Nearest-neighbor configuration."""
    k_neighbors: int = 5
    distance_scale: float = 0.4
    min_confidence: float = 0.5
    max_confidence: float = 0.95

    @classmethod
    def from_dict(cls, config: dict) -> "KNNConfig":
        """Create config from dictionary."""
        return cls(
            k_neighbors=config.get("k_neighbors", 5),
            distance_scale=config.get("distance_scale", 0.4),
            min_confidence=config.get("min_confidence", 0.5),
            max_confidence=config.get("max_confidence", 0.95),
        )


class KNNClassifier:
    """Distance-weighted k-NN over a SampleStore.

    Usage::

        knn = KNNClassifier(store)
        result = knn.classify(landmarks)
    """

    def __init__(self, store, config: Optional[KNNConfig] = None,
                 feature_config: Optional[FeatureConfig] = None):
        """
        Args:
            store: SampleStore providing snapshot() and is_trained()
            config: ``knn`` section from config.yaml
        """
        self._store = store
        self.config = config or KNNConfig()
        self._feature_config = feature_config or FeatureConfig()

    @property
    def is_ready(self) -> bool:
        return self._store.is_trained()

    def classify(self, frame) -> ClassificationResult:
        """Classify a frame, failing closed to an empty result.

        Returns an empty result when the store is not trained or the
        frame is invalid or degenerate.
        """
        try:
            return self.predict(frame)
        except NotTrained:
            return ClassificationResult.none()
        except (InvalidFrame, DegenerateGeometry) as e:
            logger.debug("KNN rejected frame: %s", e)
            return ClassificationResult.none()

    def predict(self, frame) -> ClassificationResult:
        """Strict variant of classify().

        Raises:
            NotTrained: Store below the readiness bar.
            InvalidFrame: Fewer than 21 landmarks.
            DegenerateGeometry: Palm size below epsilon.
        """
        if not self._store.is_trained():
            raise NotTrained("Sample store below readiness bar (%d samples)" % len(self._store))

        vector = normalize(frame, self._feature_config)
        letters, matrix = self._store.snapshot()
        if not letters:
            raise NotTrained("Sample store is empty")

        distances = np.linalg.norm(matrix - vector, axis=1)
        k = min(self.config.k_neighbors, len(letters))
        nearest = np.argsort(distances, kind="stable")[:k]

        votes = {}
        for idx in nearest:
            letter = letters[idx]
            votes[letter] = votes.get(letter, 0.0) + 1.0 / (1.0 + float(distances[idx]))

        # Deterministic tie-break: highest weight, then alphabetical
        best_letter = min(votes, key=lambda l: (-votes[l], l))

        mean_dist = float(np.mean(distances[nearest]))
        confidence = 1.0 - mean_dist * self.config.distance_scale
        confidence = max(self.config.min_confidence, min(self.config.max_confidence, confidence))

        return ClassificationResult(best_letter, confidence, ResultSource.KNN)
