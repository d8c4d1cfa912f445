"""Real-time exercise rep detection and form scoring from pose landmarks."""

from .angles import (
    EmaFilter,
    compute_angle,
    elbow_flexion_angle,
    ema,
    hip_flexion_angle,
    knee_flexion_angle,
    shoulder_flexion_angle,
    torso_lean_angle,
)
from .conditioner import ConditionedFrame, LandmarkConditioner, condition_frame
from .detector import Phase, RepDetector, RepOutput, RepRecord, create_detector
from .exercises import (
    DifficultyLevel,
    ExerciseKind,
    ThresholdSet,
    canonical_exercise_key,
    get_exercise_spec,
    resolve_exercise_kind,
)
from .feedback import PraisePicker, feedback_text
from .landmarks import LANDMARK_INDEX, LandmarkFrame, PoseLandmark
from .scoring import PersonalizedROM, form_score, tempo_score, update_personalized_rom
from .session_reps import FormQuality, SessionRepPayload, rep_to_session_payload
from .spotlight import ErrorSpotlight, error_spotlight

__all__ = [
    "ConditionedFrame",
    "DifficultyLevel",
    "EmaFilter",
    "ErrorSpotlight",
    "ExerciseKind",
    "FormQuality",
    "LANDMARK_INDEX",
    "LandmarkConditioner",
    "LandmarkFrame",
    "PersonalizedROM",
    "Phase",
    "PoseLandmark",
    "PraisePicker",
    "RepDetector",
    "RepOutput",
    "RepRecord",
    "SessionRepPayload",
    "ThresholdSet",
    "canonical_exercise_key",
    "compute_angle",
    "condition_frame",
    "create_detector",
    "elbow_flexion_angle",
    "ema",
    "error_spotlight",
    "feedback_text",
    "form_score",
    "get_exercise_spec",
    "hip_flexion_angle",
    "knee_flexion_angle",
    "rep_to_session_payload",
    "resolve_exercise_kind",
    "shoulder_flexion_angle",
    "tempo_score",
    "torso_lean_angle",
    "update_personalized_rom",
]
