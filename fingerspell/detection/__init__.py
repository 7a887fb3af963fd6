"""Hand landmark input module."""
from .landmarks import LandmarkIndex, Landmark, to_landmark_array, from_mediapipe

__all__ = ["LandmarkIndex", "Landmark", "to_landmark_array", "from_mediapipe"]
