"""
Hand Landmark Input
===================

Validates incoming hand frames and converts them into a fixed (21, 3)
array. The landmark detector itself is an external collaborator; this
module only adapts its output shape.
"""

import logging
from enum import IntEnum
from typing import NamedTuple, Optional, Tuple

import numpy as np

from fingerspell.core.errors import InvalidFrame

logger = logging.getLogger(__name__)

NUM_LANDMARKS = 21


class LandmarkIndex(IntEnum):
    """Hand landmark indices following MediaPipe convention."""
    WRIST = 0
    THUMB_CMC = 1
    THUMB_MCP = 2
    THUMB_IP = 3
    THUMB_TIP = 4
    INDEX_MCP = 5
    INDEX_PIP = 6
    INDEX_DIP = 7
    INDEX_TIP = 8
    MIDDLE_MCP = 9
    MIDDLE_PIP = 10
    MIDDLE_DIP = 11
    MIDDLE_TIP = 12
    RING_MCP = 13
    RING_PIP = 14
    RING_DIP = 15
    RING_TIP = 16
    PINKY_MCP = 17
    PINKY_PIP = 18
    PINKY_DIP = 19
    PINKY_TIP = 20


# Per-finger joints in (thumb, index, middle, ring, pinky) order
FINGER_TIPS = (4, 8, 12, 16, 20)
FINGER_PIPS = (3, 6, 10, 14, 18)
FINGER_MCPS = (2, 5, 9, 13, 17)


class Landmark(NamedTuple):
    """A single landmark point with normalized coordinates."""
    x: float  # 0.0 to 1.0, normalized by image width
    y: float  # 0.0 to 1.0, normalized by image height
    z: float = 0.0  # Depth relative to wrist


def _point(p) -> Tuple[float, float, float]:
    if hasattr(p, "x") and hasattr(p, "y"):
        z = getattr(p, "z", 0.0)
        return (float(p.x), float(p.y), float(z or 0.0))
    if len(p) == 2:
        return (float(p[0]), float(p[1]), 0.0)
    return (float(p[0]), float(p[1]), float(p[2] if p[2] is not None else 0.0))


def to_landmark_array(frame) -> np.ndarray:
    """Convert a hand frame to a float64 array of shape (21, 3).

    Accepts a numpy array of shape (N, 2) or (N, 3), a sequence of
    (x, y[, z]) tuples, or a sequence of objects exposing .x/.y[/.z].
    Extra points beyond 21 are ignored.

    Raises:
        InvalidFrame: If the frame is missing or has fewer than 21 points.
    """
    if frame is None:
        raise InvalidFrame("No hand frame")

    if isinstance(frame, np.ndarray):
        arr = np.asarray(frame, dtype=np.float64)
        if arr.ndim != 2 or arr.shape[1] not in (2, 3):
            raise InvalidFrame("Expected (21, 3) landmarks, got %s" % str(arr.shape))
        if arr.shape[1] == 2:
            arr = np.hstack([arr, np.zeros((arr.shape[0], 1))])
    else:
        try:
            points = list(frame)
        except TypeError:
            raise InvalidFrame("Hand frame is not a sequence: %r" % type(frame).__name__)
        if len(points) < NUM_LANDMARKS:
            raise InvalidFrame("Expected %d landmarks, got %d" % (NUM_LANDMARKS, len(points)))
        try:
            arr = np.array([_point(p) for p in points[:NUM_LANDMARKS]], dtype=np.float64)
        except (TypeError, ValueError, IndexError) as e:
            raise InvalidFrame("Malformed landmark: %s" % e)

    if arr.shape[0] < NUM_LANDMARKS:
        raise InvalidFrame("Expected %d landmarks, got %d" % (NUM_LANDMARKS, arr.shape[0]))
    if arr.shape[0] > NUM_LANDMARKS:
        logger.debug("Frame has %d landmarks, using first %d", arr.shape[0], NUM_LANDMARKS)
        arr = arr[:NUM_LANDMARKS]
    if not np.all(np.isfinite(arr)):
        raise InvalidFrame("Frame contains non-finite coordinates")
    return arr


def is_valid_frame(frame) -> bool:
    """Check whether a frame would pass to_landmark_array()."""
    try:
        to_landmark_array(frame)
    except InvalidFrame:
        return False
    return True


def from_mediapipe(result) -> Optional[np.ndarray]:
    """Extract the first detected hand from a MediaPipe result.

    Supports both the Tasks API (``result.hand_landmarks``: list of lists
    of NormalizedLandmark) and the legacy solutions API
    (``result.multi_hand_landmarks``: list of protos with ``.landmark``).

    Returns:
        np.ndarray of shape (21, 3), or None when no hand is present
    """
    if result is None:
        return None

    hands = getattr(result, "hand_landmarks", None)
    if hands is None:
        legacy = getattr(result, "multi_hand_landmarks", None)
        hands = [h.landmark for h in legacy] if legacy else None

    if not hands:
        return None

    try:
        return to_landmark_array(hands[0])
    except InvalidFrame as e:
        logger.debug("Discarding detector output: %s", e)
        return None
