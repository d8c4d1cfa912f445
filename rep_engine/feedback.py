"""Coaching strings for the live overlay and the audio announcer."""

from __future__ import annotations

import random
from typing import Optional

from .exercises import ExerciseKind, get_exercise_spec

# Degrees from target under which the descent cue turns to encouragement.
_NEAR_TARGET = {
    ExerciseKind.SQUAT: 10,
    ExerciseKind.SLR: 15,
    ExerciseKind.ELBOW_FLEXION: 15,
}

_PHASE_TEXT = {
    ExerciseKind.SQUAT: {
        "near": "Almost there! ({angle}°)",
        "far": "Push hips back, bend knees ({angle}° → {target}°)",
        "bottom": "Great depth! Hold briefly... ({angle}°)",
        "up": "Push through heels, stand tall! ({angle}°)",
    },
    ExerciseKind.SLR: {
        "near": "Good height! ({angle}°)",
        "far": "Lift leg higher ({angle}° → {target}°)",
        "bottom": "Hold at top... ({angle}°)",
        "up": "Lower slowly with control ({angle}°)",
    },
    ExerciseKind.ELBOW_FLEXION: {
        "near": "Good squeeze! ({angle}°)",
        "far": "Curl up more ({angle}° → {target}°)",
        "bottom": "Squeeze! ({angle}°)",
        "up": "Extend arm slowly with control ({angle}°)",
    },
}

PRAISE_PHRASES = ("Nice!", "Great form!", "Perfect!", "Excellent!", "Good job!")
PRAISE_MIN_FORM_SCORE = 85
PRAISE_CHANCE = 0.4


def feedback_text(
    phase: str,
    current_angle: float,
    target_angle: float,
    exercise: ExerciseKind,
) -> str:
    spec = get_exercise_spec(exercise)
    if phase == "ready":
        return spec.ready_instruction

    angle = round(current_angle)
    target = round(target_angle)
    texts = _PHASE_TEXT[spec.kind]
    if phase == "down":
        key = "near" if angle - target < _NEAR_TARGET[spec.kind] else "far"
    elif phase in ("bottom", "up"):
        key = phase
    else:
        return "Move steadily"
    return texts[key].format(angle=angle, target=target)


class PraisePicker:
    """Occasional praise after a well-formed rep.

    The random source is injectable and seeded by default so runs are repeatable.
    """

    def __init__(self, rng: Optional[random.Random] = None) -> None:
        self.rng = rng if rng is not None else random.Random(0)

    def pick(self, form_score: float) -> Optional[str]:
        if form_score < PRAISE_MIN_FORM_SCORE:
            return None
        if self.rng.random() >= PRAISE_CHANCE:
            return None
        return self.rng.choice(PRAISE_PHRASES)
