"""
Per-frame landmark conditioning applied before any angle math.

Steps, in order: visibility gating, smoothing with outlier damping,
tracking-quality score, full-body visibility check.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional, Sequence

import numpy as np

from . import config
from .landmarks import (
    KEY_LANDMARKS,
    LANDMARK_INDEX,
    LandmarkFrame,
    PoseLandmark,
    frame_from_np,
    frame_to_np,
)

_HEAD = LANDMARK_INDEX["nose"]
_ANKLES = (LANDMARK_INDEX["left_ankle"], LANDMARK_INDEX["right_ankle"])


@dataclass(frozen=True)
class ConditionerParams:
    low_visibility: float = config.LOW_VISIBILITY_THRESHOLD
    max_jump: float = config.MAX_JUMP_FRACTION
    smoothing_alpha: float = config.LANDMARK_SMOOTHING_ALPHA
    outlier_alpha: float = config.LANDMARK_OUTLIER_ALPHA
    body_visibility_floor: float = config.FULL_BODY_VISIBILITY_FLOOR
    min_body_coverage: float = config.FULL_BODY_MIN_COVERAGE


@dataclass(frozen=True)
class ConditionedFrame:
    landmarks: LandmarkFrame
    tracking_quality: float
    full_body_visible: bool


def tracking_quality(arr: np.ndarray) -> float:
    """Mean visibility of shoulders, hips, knees and ankles, scaled to 0-100."""
    vis = np.clip(arr[list(KEY_LANDMARKS), 3], 0.0, 1.0)
    return float(vis.mean() * 100.0)


def full_body_visible(arr: np.ndarray, floor: float, min_coverage: float) -> bool:
    if arr[_HEAD, 3] <= floor:
        return False
    ankle_ys = [float(arr[i, 1]) for i in _ANKLES if arr[i, 3] > floor]
    if not ankle_ys:
        return False
    return (max(ankle_ys) - float(arr[_HEAD, 1])) > min_coverage


def _drop_non_finite(arr: np.ndarray) -> np.ndarray:
    """Mark landmarks with NaN/inf components as unseen (zeroed, visibility 0)."""
    bad = ~np.isfinite(arr).all(axis=1)
    if not bad.any():
        return arr
    out = arr.copy()
    out[bad] = 0.0
    return out


def _smooth(raw: np.ndarray, previous: np.ndarray, params: ConditionerParams) -> np.ndarray:
    raw_vis = raw[:, 3]
    prev_vis = previous[:, 3]

    # Occluded this frame but trusted last frame: hold the last position.
    gated = (raw_vis < params.low_visibility) & (prev_vis > params.low_visibility)
    position = np.where(gated[:, None], previous[:, :3], raw[:, :3])

    jump = np.hypot(position[:, 0] - previous[:, 0], position[:, 1] - previous[:, 1])
    alpha = np.where(jump > params.max_jump, params.outlier_alpha, params.smoothing_alpha)

    out = np.empty_like(raw)
    out[:, :3] = alpha[:, None] * position + (1.0 - alpha[:, None]) * previous[:, :3]
    out[:, 3] = raw_vis
    return out


def condition_frame(
    raw: Optional[Sequence[PoseLandmark]],
    previous: Optional[Sequence[PoseLandmark]] = None,
    params: Optional[ConditionerParams] = None,
) -> Optional[ConditionedFrame]:
    """Condition one raw frame against the previous conditioned frame.

    Returns ``None`` when no pose was detected.
    """
    if raw is None:
        return None
    params = params or ConditionerParams()

    raw_arr = _drop_non_finite(frame_to_np(raw))
    if previous is None:
        out = raw_arr
    else:
        out = _smooth(raw_arr, frame_to_np(previous), params)

    return ConditionedFrame(
        landmarks=frame_from_np(out),
        tracking_quality=tracking_quality(out),
        full_body_visible=full_body_visible(
            out, params.body_visibility_floor, params.min_body_coverage
        ),
    )


class LandmarkConditioner:
    """Holds the previous conditioned frame for one camera stream."""

    def __init__(self, params: Optional[ConditionerParams] = None) -> None:
        self.params = params or ConditionerParams()
        self.previous: Optional[LandmarkFrame] = None
        self.tracking_quality = 0.0
        self.full_body_visible = False

    def condition(self, raw: Optional[Sequence[PoseLandmark]]) -> Optional[ConditionedFrame]:
        result = condition_frame(raw, self.previous, self.params)
        if result is None:
            self.tracking_quality = 0.0
            self.full_body_visible = False
            return None
        self.previous = result.landmarks
        self.tracking_quality = result.tracking_quality
        self.full_body_visible = result.full_body_visible
        return result

    def reset(self) -> None:
        self.previous = None
        self.tracking_quality = 0.0
        self.full_body_visible = False
