"""Error spotlight: which limb segment is behind the current deviation, and which way to move it."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

from .exercises import ExerciseSpec


@dataclass(frozen=True)
class ErrorSpotlight:
    limb_segment: Optional[str] = None
    error_magnitude: float = 0.0
    correction_direction: tuple[float, float] = (0.0, 0.0)
    message: str = ""

    def to_dict(self) -> dict:
        return {
            "limbSegment": self.limb_segment,
            "errorMagnitude": round(self.error_magnitude, 3),
            "correctionDirection": {
                "x": self.correction_direction[0],
                "y": self.correction_direction[1],
            },
            "message": self.message,
        }


NO_ERROR = ErrorSpotlight()


def error_spotlight(
    spec: ExerciseSpec,
    angle: float,
    target_angle: float,
    side: str,
    phase: str,
) -> ErrorSpotlight:
    """Compare the smoothed angle against the deep-enough target for the active phase."""
    params = spec.spotlight
    if phase == "ready":
        return NO_ERROR
    if params.down_phase_only and phase != "down":
        return NO_ERROR

    excess = angle - target_angle
    if excess <= params.margin:
        return NO_ERROR

    return ErrorSpotlight(
        limb_segment=f"{side}_{params.limb}",
        error_magnitude=min(excess / params.scale, params.cap),
        correction_direction=params.direction,
        message=f"{params.verb} ({round(angle)}° → {round(target_angle)}°)",
    )
