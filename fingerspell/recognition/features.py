"""
Feature extraction: 21-point hand landmarks -> normalized vector and
geometric hand-shape features.

Two independent outputs are produced from a validated (21, 3) frame:

    normalize()          63-dim vector, wrist at origin, scaled by palm size.
                         Used by the trainable nearest-neighbor classifier.
    extract_features()   HandFeatures: finger extension masks plus thumb
                         and index/middle predicates. Used by the rule
                         cascade.

Both are translation and uniform-scale invariant. Neither is rotation
invariant.
"""

import logging
from dataclasses import dataclass
from typing import Tuple

import numpy as np

from fingerspell.core.errors import DegenerateGeometry
from fingerspell.detection.landmarks import (
    LandmarkIndex, FINGER_TIPS, FINGER_PIPS, FINGER_MCPS, to_landmark_array,
)

logger = logging.getLogger(__name__)

WRIST = LandmarkIndex.WRIST
THUMB_MCP = LandmarkIndex.THUMB_MCP
THUMB_IP = LandmarkIndex.THUMB_IP
THUMB_TIP = LandmarkIndex.THUMB_TIP
INDEX_MCP = LandmarkIndex.INDEX_MCP
INDEX_TIP = LandmarkIndex.INDEX_TIP
MIDDLE_MCP = LandmarkIndex.MIDDLE_MCP
MIDDLE_TIP = LandmarkIndex.MIDDLE_TIP

VECTOR_DIM = 63


@dataclass
class FeatureConfig:
    """Geometric thresholds. These are load-bearing: changing any of them
    changes which letter the rule cascade produces."""
    palm_epsilon: float = 1e-6
    fallback_palm_size: float = 0.08   # Used by features only, never by normalize()
    denominator_floor: float = 0.01
    lenient_extension: float = 0.78
    strict_extension: float = 0.95
    thumb_out_ratio: float = 0.75
    thumb_sideways_ratio: float = 1.1
    thumb_folded_ratio: float = 0.7
    spread_ratio: float = 1.2
    together_ratio: float = 0.4

    @classmethod
    def from_dict(cls, config: dict) -> "FeatureConfig":
        """Create config from dictionary."""
        return cls(
            palm_epsilon=config.get("palm_epsilon", 1e-6),
            fallback_palm_size=config.get("fallback_palm_size", 0.08),
            denominator_floor=config.get("denominator_floor", 0.01),
            lenient_extension=config.get("lenient_extension", 0.78),
            strict_extension=config.get("strict_extension", 0.95),
            thumb_out_ratio=config.get("thumb_out_ratio", 0.75),
            thumb_sideways_ratio=config.get("thumb_sideways_ratio", 1.1),
            thumb_folded_ratio=config.get("thumb_folded_ratio", 0.7),
            spread_ratio=config.get("spread_ratio", 1.2),
            together_ratio=config.get("together_ratio", 0.4),
        )


@dataclass(frozen=True)
class HandFeatures:
    """Geometric features of one hand frame.

    Masks are in (thumb, index, middle, ring, pinky) order.
    """
    palm_size: float
    extension_ratios: Tuple[float, ...]
    extended: Tuple[bool, ...]         # lenient
    strict_extended: Tuple[bool, ...]  # strict
    thumb_out: bool
    thumb_sideways: bool
    thumb_folded: bool
    index_middle_spread: bool
    index_middle_together: bool
    pinch_distance: float

    @property
    def extended_mask(self) -> int:
        """Lenient mask as a 5-bit integer, thumb = most significant bit."""
        return _to_bits(self.extended)

    @property
    def strict_mask(self) -> int:
        """Strict mask as a 5-bit integer, thumb = most significant bit."""
        return _to_bits(self.strict_extended)


def _to_bits(flags) -> int:
    value = 0
    for flag in flags:
        value = (value << 1) | int(flag)
    return value


def _dist(a: np.ndarray, b: np.ndarray) -> float:
    return float(np.linalg.norm(a - b))


def palm_size(landmarks: np.ndarray) -> float:
    """Distance between the wrist and the middle-finger MCP."""
    return _dist(landmarks[WRIST], landmarks[MIDDLE_MCP])


def normalize(frame, config: FeatureConfig = None) -> np.ndarray:
    """Map a hand frame to a 63-dim translation/scale invariant vector.

    Each point becomes (point - wrist) / palm_size, flattened x, y, z per
    point in landmark order.

    Raises:
        InvalidFrame: Fewer than 21 landmarks.
        DegenerateGeometry: Palm size below epsilon.
    """
    config = config or FeatureConfig()
    landmarks = to_landmark_array(frame)
    scale = palm_size(landmarks)
    if scale < config.palm_epsilon:
        raise DegenerateGeometry("Palm size %.2e below epsilon %.0e" % (scale, config.palm_epsilon))
    return ((landmarks - landmarks[WRIST]) / scale).reshape(VECTOR_DIM)


class FeatureExtractor:
    """Derives finger-extension and shape predicates from a hand frame.

    Example:
        >>> extractor = FeatureExtractor()
        >>> features = extractor.extract(landmarks)
        >>> features.extended
        (False, True, False, False, False)
    """

    def __init__(self, config: FeatureConfig = None):
        self.config = config or FeatureConfig()

    def extract(self, frame) -> HandFeatures:
        """Compute HandFeatures for a frame.

        Raises:
            InvalidFrame: Fewer than 21 landmarks.
        """
        lm = to_landmark_array(frame)
        cfg = self.config

        palm = palm_size(lm) or cfg.fallback_palm_size

        ratios = tuple(
            self._ratio(lm[tip], lm[pip], lm[mcp])
            for tip, pip, mcp in zip(FINGER_TIPS, FINGER_PIPS, FINGER_MCPS)
        )
        extended = tuple(r > cfg.lenient_extension for r in ratios)
        strict = tuple(r > cfg.strict_extension for r in ratios)

        thumb_out = self._ratio(lm[THUMB_TIP], lm[THUMB_IP], lm[THUMB_MCP]) > cfg.thumb_out_ratio
        thumb_sideways = (
            _dist(lm[THUMB_TIP], lm[WRIST])
            > _dist(lm[THUMB_MCP], lm[WRIST]) * cfg.thumb_sideways_ratio
        )
        palm_center = (lm[INDEX_MCP] + lm[MIDDLE_MCP]) / 2.0
        thumb_folded = _dist(lm[THUMB_TIP], palm_center) < palm * cfg.thumb_folded_ratio

        tip_gap = _dist(lm[INDEX_TIP], lm[MIDDLE_TIP])
        mcp_gap = _dist(lm[INDEX_MCP], lm[MIDDLE_MCP]) or cfg.denominator_floor

        return HandFeatures(
            palm_size=palm,
            extension_ratios=ratios,
            extended=extended,
            strict_extended=strict,
            thumb_out=thumb_out,
            thumb_sideways=thumb_sideways,
            thumb_folded=thumb_folded,
            index_middle_spread=tip_gap > mcp_gap * cfg.spread_ratio,
            index_middle_together=tip_gap < palm * cfg.together_ratio,
            pinch_distance=_dist(lm[THUMB_TIP], lm[INDEX_TIP]),
        )

    def _ratio(self, tip: np.ndarray, mid: np.ndarray, base: np.ndarray) -> float:
        """Straightness: tip-to-mid over mid-to-base, with a floored denominator."""
        denom = _dist(mid, base) or self.config.denominator_floor
        return _dist(tip, mid) / denom
