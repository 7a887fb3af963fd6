"""
Centralized configuration manager.
Loads the YAML config and provides typed access with defaults.

    - Schema validation for the recognition sections
    - Type-safe access with warnings on invalid types
    - Reset support for testing
"""

import os
import yaml
import logging

logger = logging.getLogger(__name__)

_BASE_DIR = os.path.dirname(os.path.dirname(os.path.dirname(os.path.abspath(__file__))))
_CONFIG_DIR = os.path.join(_BASE_DIR, "config")

# Schema: expected sections and their field types
_CONFIG_SCHEMA = {
    "features": {
        "lenient_extension": float,
        "strict_extension": float,
        "thumb_out_ratio": float,
        "thumb_sideways_ratio": float,
        "thumb_folded_ratio": float,
        "spread_ratio": float,
        "together_ratio": float,
    },
    "rules": {
        "confidence_tiers": dict,
        "o_pinch_ratio": float,
        "f_pinch_ratio": float,
    },
    "knn": {
        "k_neighbors": int,
        "distance_scale": float,
    },
    "arbiter": {
        "model_confidence_threshold": float,
    },
    "stabilizer": {
        "vote_size": int,
        "vote_majority": int,
        "min_confidence": float,
        "letter_hold_ms": int,
    },
    "recorder": {
        "target_samples": int,
        "interval_ms": int,
    },
    "storage": {
        "data_dir": str,
        "storage_key": str,
        "min_total_samples": int,
        "min_samples_per_letter": int,
    },
}


def _deep_merge(base: dict, override: dict) -> dict:
    """Recursively merge override into base dict."""
    merged = base.copy()
    for key, value in override.items():
        if key in merged and isinstance(merged[key], dict) and isinstance(value, dict):
            merged[key] = _deep_merge(merged[key], value)
        else:
            merged[key] = value
    return merged


class Config:
    """Singleton configuration manager."""

    _instance = None
    _data = {}

    def __new__(cls):
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def load(self, config_path=None, overrides=None):
        """Load configuration from a YAML file, then apply overrides."""
        config_path = config_path or os.path.join(_CONFIG_DIR, "config.yaml")

        try:
            with open(config_path, "r") as f:
                self._data = yaml.safe_load(f) or {}
            logger.info("Loaded config from %s", config_path)
        except FileNotFoundError:
            logger.warning("Config file not found: %s, using defaults", config_path)
            self._data = {}

        if overrides:
            self._data = _deep_merge(self._data, overrides)

        self._validate()

        return self

    def _validate(self):
        """Validate config fields against schema."""
        warnings = []
        for section_name, fields in _CONFIG_SCHEMA.items():
            section = self._data.get(section_name)
            if section is None:
                warnings.append(f"Missing config section: '{section_name}'")
                continue
            if not isinstance(section, dict):
                warnings.append(f"Section '{section_name}' should be a dict, got {type(section).__name__}")
                continue
            for field_name, expected_type in fields.items():
                if field_name in section:
                    value = section[field_name]
                    # Allow int where float is expected
                    if expected_type is float and isinstance(value, (int, float)):
                        continue
                    if not isinstance(value, expected_type):
                        warnings.append(
                            f"{section_name}.{field_name}: expected {expected_type.__name__}, "
                            f"got {type(value).__name__} ({value!r})"
                        )

        if warnings:
            for w in warnings:
                logger.warning("Config validation: %s", w)
        else:
            logger.debug("Config validation passed")
        return warnings

    def get(self, key_path: str, default=None):
        """Get nested config value using dot notation: 'stabilizer.vote_size'."""
        keys = key_path.split(".")
        value = self._data
        for key in keys:
            if isinstance(value, dict) and key in value:
                value = value[key]
            else:
                return default
        return value

    def get_section(self, section: str) -> dict:
        """Get an entire config section."""
        return self._data.get(section, {}) or {}

    @property
    def features(self) -> dict:
        return self.get_section("features")

    @property
    def rules(self) -> dict:
        return self.get_section("rules")

    @property
    def knn(self) -> dict:
        return self.get_section("knn")

    @property
    def arbiter(self) -> dict:
        return self.get_section("arbiter")

    @property
    def stabilizer(self) -> dict:
        return self.get_section("stabilizer")

    @property
    def recorder(self) -> dict:
        return self.get_section("recorder")

    @property
    def storage(self) -> dict:
        return self.get_section("storage")

    @property
    def logging(self) -> dict:
        return self.get_section("logging")

    @property
    def base_dir(self) -> str:
        return _BASE_DIR

    @classmethod
    def reset(cls):
        """Reset singleton instance (for testing)."""
        cls._instance = None
        cls._data = {}
