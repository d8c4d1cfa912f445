"""Map completed rep records to the payload the session store consumes."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Optional

from .detector import RepRecord


class FormQuality(str, Enum):
    GOOD = "good"
    TOO_SHALLOW = "too_shallow"
    TOO_FAST = "too_fast"
    # Not produced by the current detectors; kept for rows already stored.
    COMPENSATED = "compensated"


# Numeric column used by the sessions table.
FORM_QUALITY_SCORES = {
    FormQuality.GOOD: 90,
    FormQuality.TOO_SHALLOW: 65,
    FormQuality.TOO_FAST: 70,
    FormQuality.COMPENSATED: 60,
}


@dataclass(frozen=True)
class SessionRepPayload:
    exercise_id: str
    rep_index: int
    rom_max: int
    rom_target: int
    accuracy_score: int
    tempo_score: int
    form_quality: FormQuality
    timestamp_ms: int
    error_segment: Optional[str] = None

    def to_dict(self) -> dict:
        out = {
            "exerciseId": self.exercise_id,
            "repIndex": self.rep_index,
            "romMax": self.rom_max,
            "romTarget": self.rom_target,
            "accuracyScore": self.accuracy_score,
            "tempoScore": self.tempo_score,
            "formQuality": self.form_quality.value,
            "timestampMs": self.timestamp_ms,
        }
        if self.error_segment is not None:
            out["errorSegment"] = self.error_segment
        return out

    def to_row(self) -> dict:
        """Snake-case row for the session completion request."""
        return {
            "exercise_id": self.exercise_id,
            "rep_index": self.rep_index,
            "rom_max": self.rom_max,
            "rom_target": self.rom_target,
            "accuracy_score": self.accuracy_score,
            "tempo_score": self.tempo_score,
            "form_quality": form_quality_score(self.form_quality),
            "error_segment": self.error_segment,
            "timestamp_ms": self.timestamp_ms,
        }


def form_quality(record: RepRecord) -> FormQuality:
    if record.too_shallow:
        return FormQuality.TOO_SHALLOW
    if record.too_fast:
        return FormQuality.TOO_FAST
    return FormQuality.GOOD


def form_quality_score(quality: Optional[str]) -> Optional[int]:
    if quality is None:
        return None
    try:
        return FORM_QUALITY_SCORES[FormQuality(quality)]
    except ValueError:
        return None


def rep_to_session_payload(record: RepRecord, exercise_id: str) -> SessionRepPayload:
    return SessionRepPayload(
        exercise_id=exercise_id,
        rep_index=record.rep_index,
        rom_max=int(round(record.rom_achieved)),
        rom_target=int(round(record.rom_target)),
        accuracy_score=record.form_score,
        tempo_score=record.tempo_score,
        form_quality=form_quality(record),
        timestamp_ms=int(round(record.timestamp_ms)),
        error_segment=record.error_segment,
    )
