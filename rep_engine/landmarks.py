"""Pose landmark types and conversions between wire, MediaPipe and numpy forms."""

from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Iterable, Mapping, Optional, Sequence, Tuple

import numpy as np

NUM_LANDMARKS = 33

# MediaPipe Pose index mapping.
LANDMARK_INDEX = {
    "nose": 0,
    "left_shoulder": 11,
    "right_shoulder": 12,
    "left_elbow": 13,
    "right_elbow": 14,
    "left_wrist": 15,
    "right_wrist": 16,
    "left_hip": 23,
    "right_hip": 24,
    "left_knee": 25,
    "right_knee": 26,
    "left_ankle": 27,
    "right_ankle": 28,
}

# Shoulders, hips, knees, ankles.
KEY_LANDMARKS = (11, 12, 23, 24, 25, 26, 27, 28)


@dataclass(frozen=True)
class PoseLandmark:
    x: float
    y: float
    z: float = 0.0
    visibility: Optional[float] = None

    @property
    def confidence(self) -> float:
        """Visibility with the MediaPipe convention that a missing value means visible."""
        return 1.0 if self.visibility is None else float(self.visibility)


LandmarkFrame = Tuple[PoseLandmark, ...]

_MISSING = PoseLandmark(0.0, 0.0, 0.0, 0.0)


def _pad(landmarks: Sequence[PoseLandmark]) -> LandmarkFrame:
    out = list(landmarks[:NUM_LANDMARKS])
    if len(out) < NUM_LANDMARKS:
        out.extend([_MISSING] * (NUM_LANDMARKS - len(out)))
    return tuple(out)


def _as_float(value: object, label: str) -> float:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise ValueError(f"'{label}' must be numeric")
    if not math.isfinite(value):
        raise ValueError(f"'{label}' must be finite")
    return float(value)


def frame_from_dicts(landmarks: object) -> LandmarkFrame:
    """Parse a JSON landmark list (``[{x, y, z?, visibility?}, ...]``).

    Raises ``ValueError`` for malformed payloads.
    """
    if not isinstance(landmarks, (list, tuple)):
        raise ValueError("'landmarks' must be an array")
    if not landmarks:
        raise ValueError("'landmarks' must not be empty")

    parsed = []
    for index, raw in enumerate(landmarks):
        if not isinstance(raw, Mapping):
            raise ValueError(f"Landmark {index} must be an object")
        if "x" not in raw or "y" not in raw:
            raise ValueError(f"Landmark {index} is missing 'x' or 'y'")
        visibility = raw.get("visibility")
        parsed.append(
            PoseLandmark(
                x=_as_float(raw["x"], f"landmarks[{index}].x"),
                y=_as_float(raw["y"], f"landmarks[{index}].y"),
                z=_as_float(raw.get("z", 0.0), f"landmarks[{index}].z"),
                visibility=(
                    None
                    if visibility is None
                    else _as_float(visibility, f"landmarks[{index}].visibility")
                ),
            )
        )
    return _pad(parsed)


def frame_from_mediapipe(landmarks: Iterable[object]) -> LandmarkFrame:
    """Convert MediaPipe landmark objects (x/y/z/visibility attributes)."""
    parsed = []
    for lm in landmarks:
        visibility = getattr(lm, "visibility", None)
        parsed.append(
            PoseLandmark(
                x=float(lm.x),
                y=float(lm.y),
                z=float(getattr(lm, "z", 0.0) or 0.0),
                visibility=None if visibility is None else float(visibility),
            )
        )
    return _pad(parsed)


def frame_to_np(frame: Sequence[PoseLandmark]) -> np.ndarray:
    """Convert a frame to float64 (33, 4): x, y, z, visibility."""
    out = np.zeros((NUM_LANDMARKS, 4), dtype=np.float64)
    count = min(NUM_LANDMARKS, len(frame))
    for i in range(count):
        lm = frame[i]
        out[i] = (lm.x, lm.y, lm.z, lm.confidence)
    return out


def frame_from_np(arr: np.ndarray) -> LandmarkFrame:
    return tuple(
        PoseLandmark(float(row[0]), float(row[1]), float(row[2]), float(row[3]))
        for row in arr[:NUM_LANDMARKS]
    )


def frame_to_dicts(frame: Sequence[PoseLandmark]) -> list[dict[str, float]]:
    return [
        {"x": lm.x, "y": lm.y, "z": lm.z, "visibility": lm.confidence}
        for lm in frame
    ]
