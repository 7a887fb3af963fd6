"""
Fingerspell Letter Recognition
==============================

Real-time fingerspelling recognition from 21-point hand landmarks.

Modules:
    - detection: Hand frame validation and landmark-detector adapters
    - recognition: Geometric features, rule cascade, trainable KNN,
      classifier arbiter, temporal stabilizer, training recorder
    - data: Durable training sample storage
    - core: Shared types, errors, event bus and the per-tick pipeline
    - utils: Configuration and logging
"""

__version__ = "1.0.0"
