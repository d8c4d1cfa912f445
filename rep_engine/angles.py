"""Joint-angle geometry and scalar smoothing."""

from __future__ import annotations

import math
from typing import Optional

from .landmarks import PoseLandmark


def compute_angle(a: PoseLandmark, b: PoseLandmark, c: PoseLandmark) -> float:
    """Angle at ``b`` between rays b->a and b->c, in degrees [0, 180].

    Returns 0.0 when either ray has zero length.
    """
    bax, bay, baz = a.x - b.x, a.y - b.y, a.z - b.z
    bcx, bcy, bcz = c.x - b.x, c.y - b.y, c.z - b.z

    dot = (bax * bcx) + (bay * bcy) + (baz * bcz)
    norm_ba = math.sqrt((bax * bax) + (bay * bay) + (baz * baz))
    norm_bc = math.sqrt((bcx * bcx) + (bcy * bcy) + (bcz * bcz))

    if norm_ba == 0.0 or norm_bc == 0.0:
        return 0.0

    cosine = max(min(dot / (norm_ba * norm_bc), 1.0), -1.0)
    angle = math.degrees(math.acos(cosine))
    return angle if math.isfinite(angle) else 0.0


def knee_flexion_angle(hip: PoseLandmark, knee: PoseLandmark, ankle: PoseLandmark) -> float:
    return compute_angle(hip, knee, ankle)


def hip_flexion_angle(shoulder: PoseLandmark, hip: PoseLandmark, knee: PoseLandmark) -> float:
    return compute_angle(shoulder, hip, knee)


def shoulder_flexion_angle(hip: PoseLandmark, shoulder: PoseLandmark, elbow: PoseLandmark) -> float:
    return compute_angle(hip, shoulder, elbow)


def elbow_flexion_angle(shoulder: PoseLandmark, elbow: PoseLandmark, wrist: PoseLandmark) -> float:
    return compute_angle(shoulder, elbow, wrist)


def torso_lean_angle(hip: PoseLandmark, shoulder: PoseLandmark) -> float:
    """Unsigned lean of the hip->shoulder line from vertical (0 = upright).

    Image y grows downwards, so an upright torso has the shoulder above the hip.
    """
    dx = shoulder.x - hip.x
    rise = hip.y - shoulder.y
    if dx == 0.0 and rise == 0.0:
        return 0.0
    return abs(math.degrees(math.atan2(dx, rise)))


def ema(previous: Optional[float], current: float, alpha: float) -> float:
    if previous is None:
        return current
    return alpha * current + (1 - alpha) * previous


class EmaFilter:
    def __init__(self, alpha: float = 0.8):
        self.alpha = alpha
        self.smoothed_value: Optional[float] = None

    def update(self, raw_value: float) -> float:
        self.smoothed_value = ema(self.smoothed_value, raw_value, self.alpha)
        return self.smoothed_value

    def reset(self) -> None:
        self.smoothed_value = None
