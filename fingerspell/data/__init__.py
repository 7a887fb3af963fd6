"""Training data storage."""
from .sample_store import SampleStore, SampleStoreConfig, TrainingSample

__all__ = ["SampleStore", "SampleStoreConfig", "TrainingSample"]
