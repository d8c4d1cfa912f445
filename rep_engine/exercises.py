#!/usr/bin/env python3
"""Exercise registry: thresholds, landmark triples and coaching parameters per exercise."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Callable, Optional

from .angles import elbow_flexion_angle, hip_flexion_angle, knee_flexion_angle
from .landmarks import LANDMARK_INDEX, PoseLandmark


class DifficultyLevel(str, Enum):
    EASY = "easy"
    NORMAL = "normal"
    HARD = "hard"


class ExerciseKind(str, Enum):
    SQUAT = "squat"
    SLR = "slr"
    ELBOW_FLEXION = "elbow_flexion"


@dataclass(frozen=True)
class ThresholdSet:
    """Angle boundaries (degrees) for one phase cycle.

    enter: ready -> down once the angle drops below it.
    deep: down -> bottom once the angle drops below it.
    exit: up -> ready (rep) or down -> ready (abort) once the angle rises above it.
    """

    enter: float
    deep: float
    exit: float


@dataclass(frozen=True)
class SpotlightParams:
    margin: float
    scale: float
    cap: float
    direction: tuple[float, float]
    verb: str
    limb: str
    down_phase_only: bool = False


@dataclass(frozen=True)
class ExerciseSpec:
    kind: ExerciseKind
    display_name: str
    angle_name: str
    thresholds: dict[DifficultyLevel, ThresholdSet]
    landmark_names: tuple[str, str, str]
    angle_fn: Callable[[PoseLandmark, PoseLandmark, PoseLandmark], float]
    rise_margin: float
    initial_target_rom: float
    rom_floor: float
    ready_instruction: str
    visibility_prompt: str
    spotlight: SpotlightParams

    def indices(self, side: str) -> tuple[int, int, int]:
        return tuple(LANDMARK_INDEX[f"{side}_{name}"] for name in self.landmark_names)

    def threshold_set(self, difficulty: DifficultyLevel) -> ThresholdSet:
        return self.thresholds[DifficultyLevel(difficulty)]


EXERCISE_SPECS: dict[ExerciseKind, ExerciseSpec] = {
    ExerciseKind.SQUAT: ExerciseSpec(
        kind=ExerciseKind.SQUAT,
        display_name="Squat",
        angle_name="knee flexion",
        thresholds={
            DifficultyLevel.EASY: ThresholdSet(enter=130, deep=115, exit=150),
            DifficultyLevel.NORMAL: ThresholdSet(enter=110, deep=95, exit=160),
            DifficultyLevel.HARD: ThresholdSet(enter=100, deep=85, exit=165),
        },
        landmark_names=("hip", "knee", "ankle"),
        angle_fn=knee_flexion_angle,
        rise_margin=10.0,
        initial_target_rom=90.0,
        rom_floor=60.0,
        ready_instruction="Stand facing camera, feet shoulder-width apart",
        visibility_prompt="Move so your full body is visible in camera",
        spotlight=SpotlightParams(
            margin=25.0,
            scale=80.0,
            cap=0.8,
            direction=(0.0, 1.0),
            verb="Go lower",
            limb="knee",
            down_phase_only=True,
        ),
    ),
    ExerciseKind.SLR: ExerciseSpec(
        kind=ExerciseKind.SLR,
        display_name="Straight Leg Raise",
        angle_name="hip flexion",
        thresholds={
            DifficultyLevel.EASY: ThresholdSet(enter=170, deep=135, exit=170),
            DifficultyLevel.NORMAL: ThresholdSet(enter=165, deep=110, exit=165),
            DifficultyLevel.HARD: ThresholdSet(enter=160, deep=95, exit=160),
        },
        landmark_names=("shoulder", "hip", "knee"),
        angle_fn=hip_flexion_angle,
        rise_margin=10.0,
        initial_target_rom=70.0,
        rom_floor=60.0,
        ready_instruction="Lie flat on your back, keep leg straight",
        visibility_prompt="Lie flat - ensure hip and leg are visible",
        spotlight=SpotlightParams(
            margin=15.0,
            scale=50.0,
            cap=1.0,
            direction=(0.0, -1.0),
            verb="Lift higher",
            limb="hip",
        ),
    ),
    ExerciseKind.ELBOW_FLEXION: ExerciseSpec(
        kind=ExerciseKind.ELBOW_FLEXION,
        display_name="Elbow Flexion",
        angle_name="elbow flexion",
        thresholds={
            DifficultyLevel.EASY: ThresholdSet(enter=160, deep=80, exit=155),
            DifficultyLevel.NORMAL: ThresholdSet(enter=150, deep=60, exit=160),
            DifficultyLevel.HARD: ThresholdSet(enter=140, deep=45, exit=165),
        },
        landmark_names=("shoulder", "elbow", "wrist"),
        angle_fn=elbow_flexion_angle,
        rise_margin=15.0,
        initial_target_rom=120.0,
        rom_floor=60.0,
        ready_instruction="Stand with arm at side, palm facing forward",
        visibility_prompt="Show your full arm to the camera",
        spotlight=SpotlightParams(
            margin=20.0,
            scale=60.0,
            cap=1.0,
            direction=(0.0, -1.0),
            verb="Curl higher",
            limb="elbow",
        ),
    ),
}

EXERCISE_ALIASES = {
    "straight_leg_raise": ExerciseKind.SLR,
    "leg_raise": ExerciseKind.SLR,
    "elbow": ExerciseKind.ELBOW_FLEXION,
    "curl": ExerciseKind.ELBOW_FLEXION,
    "bicep_curl": ExerciseKind.ELBOW_FLEXION,
    "squats": ExerciseKind.SQUAT,
}

# Checked in order; first keyword match wins.
_NAME_KEYWORDS = (
    ("elbow", ExerciseKind.ELBOW_FLEXION),
    ("bicep", ExerciseKind.ELBOW_FLEXION),
    ("slr", ExerciseKind.SLR),
    ("straight leg", ExerciseKind.SLR),
    ("leg raise", ExerciseKind.SLR),
    ("squat", ExerciseKind.SQUAT),
)


def canonical_exercise_key(name: str | ExerciseKind) -> ExerciseKind:
    if isinstance(name, ExerciseKind):
        return name
    n = str(name).strip().lower().replace("-", "_").replace(" ", "_")
    for kind in ExerciseKind:
        if n == kind.value:
            return kind
    if n in EXERCISE_ALIASES:
        return EXERCISE_ALIASES[n]
    raise KeyError(f"Unknown exercise: {name}")


def resolve_exercise_kind(
    exercise_name: str | None,
    default: Optional[ExerciseKind] = ExerciseKind.SQUAT,
) -> Optional[ExerciseKind]:
    """Map a free-form prescribed exercise name to a detector kind.

    Names with no known keyword map to ``default`` (squat unless overridden).
    """
    name = (exercise_name or "").lower().replace("_", " ").replace("-", " ")
    for keyword, kind in _NAME_KEYWORDS:
        if keyword in name:
            return kind
    return default


def get_exercise_spec(name: str | ExerciseKind) -> ExerciseSpec:
    return EXERCISE_SPECS[canonical_exercise_key(name)]


def available_exercises() -> list[str]:
    return sorted(kind.value for kind in EXERCISE_SPECS)
