"""
Rule-Based Letter Classifier
============================

Deterministic decision cascade over geometric hand features. Rules are
evaluated top to bottom and the first match wins. Several rules overlap
(rule C and rules O/F all need thumb-out with only the index extended),
so list position is the tie-break, not predicate specificity.
"""

import logging
from dataclasses import dataclass
from typing import Callable, List, Optional, Tuple

from fingerspell.core.errors import InvalidFrame
from fingerspell.core.types import ClassificationResult, ConfidenceTier, ResultSource
from fingerspell.recognition.features import FeatureExtractor, FeatureConfig, HandFeatures

logger = logging.getLogger(__name__)

HIGH = ConfidenceTier.HIGH
MID = ConfidenceTier.MID


@dataclass
class RuleClassifierConfig:
    """Rule cascade configuration."""
    low_confidence: float = 0.58
    mid_confidence: float = 0.72
    high_confidence: float = 0.88
    o_pinch_ratio: float = 0.42
    f_pinch_ratio: float = 0.55
    debug: bool = False

    @classmethod
    def from_dict(cls, config: dict) -> "RuleClassifierConfig":
        """Create config from dictionary."""
        tiers = config.get("confidence_tiers", {})
        return cls(
            low_confidence=tiers.get("low", 0.58),
            mid_confidence=tiers.get("mid", 0.72),
            high_confidence=tiers.get("high", 0.88),
            o_pinch_ratio=config.get("o_pinch_ratio", 0.42),
            f_pinch_ratio=config.get("f_pinch_ratio", 0.55),
            debug=config.get("debug", False),
        )

    def tier(self, level: ConfidenceTier) -> float:
        return {
            ConfidenceTier.LOW: self.low_confidence,
            ConfidenceTier.MID: self.mid_confidence,
            ConfidenceTier.HIGH: self.high_confidence,
        }[level]


Match = Optional[Tuple[str, ConfidenceTier]]
Rule = Tuple[str, Callable[[HandFeatures], Match]]


class RuleClassifier:
    """
    Ordered geometric rule cascade for fingerspelled letters.

    Recognizes A, B, C, D, E, O, F, I, L, K, H, V, U, W and Y. Y sits after
    I in the cascade and I's predicate covers it, so Y is only produced
    by a trained model.

    Example:
        >>> classifier = RuleClassifier()
        >>> result = classifier.classify(landmarks)
        >>> if result.is_valid:
        ...     print(f"Detected: {result.letter} ({result.confidence:.2f})")
    """

    def __init__(self, config: Optional[RuleClassifierConfig] = None,
                 feature_config: Optional[FeatureConfig] = None):
        self.config = config or RuleClassifierConfig()
        self._extractor = FeatureExtractor(feature_config)
        self._rules = self._build_rules()

    @property
    def rule_names(self) -> List[str]:
        return [name for name, _ in self._rules]

    def classify(self, frame) -> ClassificationResult:
        """
        Classify a hand frame.

        Args:
            frame: 21 hand landmarks

        Returns:
            Letter with its fixed tier confidence, or an empty result
        """
        try:
            features = self._extractor.extract(frame)
        except InvalidFrame as e:
            logger.debug("Rule classifier rejected frame: %s", e)
            return ClassificationResult.none()
        return self.classify_features(features)

    def classify_features(self, features: HandFeatures) -> ClassificationResult:
        """Run the cascade over precomputed features."""
        for name, rule in self._rules:
            match = rule(features)
            if match is not None:
                letter, tier = match
                if self.config.debug:
                    logger.debug("Rule %s matched -> %s (%s)", name, letter, tier.value)
                return ClassificationResult(letter, self.config.tier(tier), ResultSource.RULES)
        return ClassificationResult.none()

    def _build_rules(self) -> List[Rule]:
        cfg = self.config

        def four_folded(f):
            _, i, m, r, p = f.extended
            return not i and not m and not r and not p

        def index_only(f):
            _, i, m, r, p = f.extended
            return i and not m and not r and not p

        def rule_a(f):
            if four_folded(f) and f.thumb_sideways:
                return "A", HIGH

        def rule_b(f):
            _, i, m, r, p = f.strict_extended
            if i and m and r and p and f.thumb_folded:
                return "B", HIGH

        def rule_c(f):
            # Curved index: lenient but not strict
            if f.thumb_out and index_only(f) and not f.strict_extended[1]:
                return "C", MID

        def rule_d(f):
            if index_only(f) and not f.thumb_out:
                return "D", MID

        def rule_e(f):
            if four_folded(f) and not f.thumb_sideways:
                return "E", MID

        def rule_o(f):
            if (f.thumb_out and index_only(f)
                    and f.pinch_distance < f.palm_size * cfg.o_pinch_ratio):
                return "O", MID

        def rule_f(f):
            if (f.thumb_out and index_only(f)
                    and f.pinch_distance < f.palm_size * cfg.f_pinch_ratio):
                return "F", MID

        def rule_i(f):
            _, i, m, r, p = f.extended
            if not i and not m and not r and p:
                return "I", HIGH

        def rule_l(f):
            if index_only(f) and f.thumb_out:
                return "L", HIGH

        def rule_two_fingers(f):
            _, i, m, r, p = f.extended
            if not (i and m and not r and not p):
                return None
            if f.thumb_out:
                return "K", MID
            if f.index_middle_together:
                return "H", MID
            if f.index_middle_spread:
                return "V", HIGH
            return "U", MID

        def rule_w(f):
            _, i, m, r, p = f.extended
            if i and m and r and not p:
                return "W", HIGH

        def rule_y(f):
            _, i, m, r, p = f.extended
            if not i and not m and not r and p and f.thumb_out:
                return "Y", HIGH

        # Order is significant. Do not sort or regroup.
        return [
            ("A", rule_a),
            ("B", rule_b),
            ("C", rule_c),
            ("D", rule_d),
            ("E", rule_e),
            ("O", rule_o),
            ("F", rule_f),
            ("I", rule_i),
            ("L", rule_l),
            ("KHVU", rule_two_fingers),
            ("W", rule_w),
            ("Y", rule_y),
        ]
