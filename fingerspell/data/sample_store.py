"""
Training Sample Store
=====================

Append-only, per-letter collection of normalized hand vectors collected
from the user. Persists as a flat JSON list of {letter, vector} records
under a single storage key (one file per key).

Readers always see a complete snapshot: every append builds a new
immutable snapshot and swaps it in with one assignment. Writers are
serialized on a lock so the store can be shared across threads.
"""

import os
import json
import logging
import threading
from collections import Counter
from dataclasses import dataclass
from pathlib import Path
from typing import Dict, List, NamedTuple, Optional, Tuple

import numpy as np

from fingerspell.core.errors import InvalidFrame, DegenerateGeometry, StorePersistenceFailure
from fingerspell.core.types import normalize_letter
from fingerspell.recognition.features import FeatureConfig, VECTOR_DIM, normalize

logger = logging.getLogger(__name__)


@dataclass
class SampleStoreConfig:
    """Sample store configuration."""
    data_dir: Optional[str] = "data"
    storage_key: str = "fingerspell_asl_trained"
    min_total_samples: int = 10
    min_samples_per_letter: int = 5
    min_trained_letters: int = 2

    @classmethod
    def from_dict(cls, config: dict) -> "SampleStoreConfig":
        """Create config from dictionary."""
        return cls(
            data_dir=config.get("data_dir", "data"),
            storage_key=config.get("storage_key", "fingerspell_asl_trained"),
            min_total_samples=config.get("min_total_samples", 10),
            min_samples_per_letter=config.get("min_samples_per_letter", 5),
            min_trained_letters=config.get("min_trained_letters", 2),
        )

    @property
    def path(self) -> Optional[Path]:
        if not self.data_dir:
            return None
        return Path(self.data_dir) / f"{self.storage_key}.json"


class TrainingSample(NamedTuple):
    """A single labelled training vector."""
    letter: str
    vector: Tuple[float, ...]

    def to_dict(self) -> dict:
        return {"letter": self.letter, "vector": list(self.vector)}


class _Snapshot(NamedTuple):
    letters: Tuple[str, ...]
    matrix: np.ndarray  # (N, 63)


_EMPTY = _Snapshot((), np.zeros((0, VECTOR_DIM)))


class SampleStore:
    """
    Durable store of training samples.

    Example:
        >>> store = SampleStore(SampleStoreConfig(data_dir="data"))
        >>> store.add_sample("a", landmarks)
        True
        >>> store.get_sample_counts()
        {'A': 1}
    """

    def __init__(self, config: Optional[SampleStoreConfig] = None,
                 feature_config: Optional[FeatureConfig] = None):
        self.config = config or SampleStoreConfig()
        self._feature_config = feature_config or FeatureConfig()
        self._path = self.config.path
        self._lock = threading.Lock()
        self._snapshot = _EMPTY
        self.last_error: Optional[StorePersistenceFailure] = None

        if self._path is not None:
            self._snapshot = self._load()

    # ------------------------------------------------------------------
    # Read side
    # ------------------------------------------------------------------

    @property
    def path(self) -> Optional[Path]:
        return self._path

    @property
    def is_durable(self) -> bool:
        """False when the last write did not reach disk (or no path is set)."""
        return self._path is not None and self.last_error is None

    def snapshot(self) -> Tuple[Tuple[str, ...], np.ndarray]:
        """Letters and (N, 63) vector matrix, consistent with each other."""
        snap = self._snapshot
        return snap.letters, snap.matrix

    def samples(self) -> List[TrainingSample]:
        snap = self._snapshot
        return [
            TrainingSample(letter, tuple(float(v) for v in row))
            for letter, row in zip(snap.letters, snap.matrix)
        ]

    def __len__(self) -> int:
        return len(self._snapshot.letters)

    @property
    def letters(self) -> List[str]:
        """Distinct trained letters, sorted."""
        return sorted(set(self._snapshot.letters))

    def get_sample_counts(self) -> Dict[str, int]:
        """Sample count per letter, e.g. {'A': 15, 'B': 12}."""
        return dict(Counter(self._snapshot.letters))

    def is_trained(self) -> bool:
        """Whether there is enough data for the nearest-neighbor classifier."""
        cfg = self.config
        letters = self._snapshot.letters
        if len(letters) < cfg.min_total_samples:
            return False
        counts = Counter(letters)
        ready = sum(1 for c in counts.values() if c >= cfg.min_samples_per_letter)
        return ready >= cfg.min_trained_letters

    # ------------------------------------------------------------------
    # Write side
    # ------------------------------------------------------------------

    def add_sample(self, letter, frame) -> bool:
        """Normalize a frame and append it as a sample for a letter.

        Returns:
            False if the letter is missing/invalid or the frame cannot be
            normalized (nothing is stored). True once the sample is in the
            store, even if persisting it failed (see last_error).
        """
        label = normalize_letter(letter)
        if label is None:
            logger.warning("Rejected training sample: invalid letter %r", letter)
            return False

        try:
            vector = normalize(frame, self._feature_config)
        except (InvalidFrame, DegenerateGeometry) as e:
            logger.debug("Rejected training sample for %s: %s", label, e)
            return False

        with self._lock:
            snap = self._snapshot
            self._snapshot = _Snapshot(
                snap.letters + (label,),
                np.vstack([snap.matrix, vector[np.newaxis, :]]),
            )
            self._save()

        logger.debug("Added sample for %s (%d total)", label, len(self))
        return True

    def clear_samples(self):
        """Remove all stored samples."""
        with self._lock:
            self._snapshot = _EMPTY
            self._save()
        logger.info("Cleared all training samples")

    # ------------------------------------------------------------------
    # Persistence
    # ------------------------------------------------------------------

    def _save(self):
        """Write the current snapshot atomically. Caller holds the lock."""
        if self._path is None:
            return
        records = [s.to_dict() for s in self.samples()]
        tmp_path = self._path.with_name(self._path.name + ".tmp")
        try:
            os.makedirs(self._path.parent, exist_ok=True)
            with open(tmp_path, "w") as f:
                json.dump(records, f)
            os.replace(tmp_path, self._path)
            self.last_error = None
        except OSError as e:
            self.last_error = StorePersistenceFailure(self._path, e)
            logger.error("Failed to save training samples: %s", e)
            try:
                os.remove(tmp_path)
            except OSError:
                pass

    def _load(self) -> _Snapshot:
        try:
            with open(self._path, "r") as f:
                records = json.load(f)
        except FileNotFoundError:
            logger.info("No training samples at %s", self._path)
            return _EMPTY
        except (OSError, ValueError) as e:
            self.last_error = StorePersistenceFailure(self._path, e)
            logger.error("Failed to load training samples: %s", e)
            return _EMPTY

        if not isinstance(records, list):
            logger.warning("Ignoring sample file %s: expected a list", self._path)
            return _EMPTY

        letters, rows = [], []
        skipped = 0
        for record in records:
            try:
                letter = normalize_letter(record["letter"])
                vector = np.asarray(record["vector"], dtype=np.float64)
            except (KeyError, TypeError, ValueError):
                skipped += 1
                continue
            if letter is None or vector.shape != (VECTOR_DIM,):
                skipped += 1
                continue
            letters.append(letter)
            rows.append(vector)

        if skipped:
            logger.warning("Skipped %d malformed training records in %s", skipped, self._path)
        logger.info("Loaded %d training samples from %s", len(letters), self._path)

        if not rows:
            return _EMPTY
        return _Snapshot(tuple(letters), np.vstack(rows))
