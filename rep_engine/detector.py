"""
Rep detection state machine shared by every exercise kind.

One detector instance serves one (patient, exercise, camera session) and is
fed one conditioned landmark frame per video frame. Phases follow the cycle
ready -> down -> bottom -> up -> ready; a rep is counted when the cycle
closes and took longer than the minimum duration.
"""

from __future__ import annotations

import logging
import math
import random
from dataclasses import dataclass
from enum import Enum
from typing import Optional, Sequence

from . import config
from .angles import EmaFilter
from .exercises import (
    DifficultyLevel,
    ExerciseKind,
    ExerciseSpec,
    ThresholdSet,
    get_exercise_spec,
)
from .feedback import PraisePicker, feedback_text
from .landmarks import PoseLandmark
from .scoring import PersonalizedROM, form_score, tempo_score, update_personalized_rom
from .spotlight import ErrorSpotlight, error_spotlight

logger = logging.getLogger(__name__)

FULL_EXTENSION_DEG = 180.0
FAST_REP_MS = 1000.0


def _finite(lm: PoseLandmark) -> bool:
    return all(math.isfinite(v) for v in (lm.x, lm.y, lm.z, lm.confidence))


class Phase(str, Enum):
    READY = "ready"
    DOWN = "down"
    BOTTOM = "bottom"
    UP = "up"


@dataclass(frozen=True)
class RepRecord:
    rep_index: int
    min_angle: float
    max_angle: float
    form_score: int
    tempo_score: int
    rom_achieved: float
    rom_target: float
    duration_ms: float
    timestamp_ms: float
    too_shallow: bool = False
    too_fast: bool = False
    error_segment: Optional[str] = None

    def to_dict(self) -> dict:
        return {
            "minAngle": round(self.min_angle, 1),
            "maxAngle": round(self.max_angle, 1),
            "formScore": self.form_score,
            "tempoScore": self.tempo_score,
        }


@dataclass
class RepOutput:
    rep_count: int
    feedback: str
    last_rep: Optional[RepRecord] = None
    current_angle: Optional[int] = None
    personalized_rom: Optional[PersonalizedROM] = None
    error_spotlight: Optional[ErrorSpotlight] = None
    debug: Optional[str] = None
    phase: str = Phase.READY.value
    rep_completed: bool = False
    praise: Optional[str] = None

    def to_dict(self) -> dict:
        out: dict = {
            "repCount": self.rep_count,
            "feedback": self.feedback,
            "phase": self.phase,
            "repCompleted": self.rep_completed,
        }
        if self.last_rep is not None:
            out["lastRep"] = self.last_rep.to_dict()
        if self.current_angle is not None:
            out["currentAngle"] = self.current_angle
        if self.personalized_rom is not None:
            out["personalizedROM"] = self.personalized_rom.to_dict()
        if self.error_spotlight is not None:
            out["errorSpotlight"] = self.error_spotlight.to_dict()
        if self.praise:
            out["praise"] = self.praise
        if self.debug:
            out["debug"] = self.debug
        return out


@dataclass
class _CycleState:
    start_ms: float = 0.0
    extreme_angle: float = FULL_EXTENSION_DEG
    error_segment: Optional[str] = None


class RepDetector:
    """Counts reps of one exercise kind from conditioned landmark frames."""

    def __init__(
        self,
        exercise: ExerciseKind | str,
        side: str = config.DEFAULT_SIDE,
        difficulty: DifficultyLevel | str = config.DEFAULT_DIFFICULTY,
        smoothing_alpha: Optional[float] = None,
        min_visibility: Optional[float] = None,
        min_rep_duration_ms: Optional[float] = None,
        rng: Optional[random.Random] = None,
        debug: Optional[bool] = None,
    ) -> None:
        if side not in ("left", "right"):
            raise ValueError(f"side must be 'left' or 'right', got {side!r}")
        self.spec: ExerciseSpec = get_exercise_spec(exercise)
        self.side = side
        self.difficulty = DifficultyLevel(difficulty)
        self.min_visibility = (
            config.MIN_LANDMARK_VISIBILITY if min_visibility is None else min_visibility
        )
        self.min_rep_duration_ms = (
            config.MIN_REP_DURATION_MS if min_rep_duration_ms is None else min_rep_duration_ms
        )
        self.debug = config.REP_DEBUG_OUTPUT if debug is None else debug
        self.indices = self.spec.indices(side)
        self.filter = EmaFilter(
            alpha=config.ANGLE_SMOOTHING_ALPHA if smoothing_alpha is None else smoothing_alpha
        )
        self.praise = PraisePicker(rng)
        self.personalized_rom = PersonalizedROM(target_rom=self.spec.initial_target_rom)
        self.reset()

    @property
    def exercise(self) -> ExerciseKind:
        return self.spec.kind

    def reset(self) -> None:
        """Clear phase, smoothing and counters; the personalized ROM is kept."""
        self.phase = Phase.READY
        self.rep_count = 0
        self.filter.reset()
        self.cycle = _CycleState()
        self.last_rep: Optional[RepRecord] = None

    def set_difficulty(self, level: DifficultyLevel | str) -> None:
        self.difficulty = DifficultyLevel(level)
        logger.info(
            "%s difficulty set to %s (%s)",
            self.spec.display_name,
            self.difficulty.value,
            self.spec.threshold_set(self.difficulty),
        )

    def get_personalized_rom(self) -> PersonalizedROM:
        return self.personalized_rom

    def target_angle(self) -> float:
        """Joint angle the user is coached towards: personalized once a rep exists."""
        if self.personalized_rom.rep_count > 0:
            return FULL_EXTENSION_DEG - self.personalized_rom.target_rom
        return self.spec.threshold_set(self.difficulty).deep

    def _required_landmarks(
        self, landmarks: Optional[Sequence[PoseLandmark]]
    ) -> Optional[tuple[PoseLandmark, PoseLandmark, PoseLandmark]]:
        if not landmarks:
            return None
        points = []
        for idx in self.indices:
            if idx >= len(landmarks) or landmarks[idx] is None:
                return None
            lm = landmarks[idx]
            if lm.confidence < self.min_visibility or not _finite(lm):
                return None
            points.append(lm)
        return points[0], points[1], points[2]

    def update(
        self, landmarks: Optional[Sequence[PoseLandmark]], timestamp_ms: float
    ) -> RepOutput:
        """Advance the state machine by one frame. Never raises on frame data."""
        points = self._required_landmarks(landmarks)
        if points is None:
            return RepOutput(
                rep_count=self.rep_count,
                feedback=self.spec.visibility_prompt,
                personalized_rom=self.personalized_rom,
                phase=self.phase.value,
            )

        thresholds = self.spec.threshold_set(self.difficulty)
        raw_angle = self.spec.angle_fn(*points)
        angle = self.filter.update(raw_angle)

        completed = self._advance(angle, thresholds, timestamp_ms)

        target = self.target_angle()
        spotlight = error_spotlight(self.spec, angle, target, self.side, self.phase.value)
        if spotlight.limb_segment is not None:
            self.cycle.error_segment = spotlight.limb_segment

        return RepOutput(
            rep_count=self.rep_count,
            feedback=feedback_text(self.phase.value, angle, target, self.spec.kind),
            last_rep=self.last_rep,
            current_angle=int(round(angle)),
            personalized_rom=self.personalized_rom,
            error_spotlight=spotlight if self.phase is not Phase.READY else None,
            debug=(
                f"phase={self.phase.value} raw={raw_angle:.1f} smooth={angle:.1f} "
                f"extreme={self.cycle.extreme_angle:.1f}"
                if self.debug
                else None
            ),
            phase=self.phase.value,
            rep_completed=completed is not None,
            praise=self.praise.pick(completed.form_score) if completed else None,
        )

    def _advance(
        self, angle: float, thresholds: ThresholdSet, timestamp_ms: float
    ) -> Optional[RepRecord]:
        name = self.spec.display_name
        if self.phase is Phase.READY:
            if angle < thresholds.enter:
                self.phase = Phase.DOWN
                self.cycle = _CycleState(start_ms=timestamp_ms, extreme_angle=angle)
                logger.debug("%s: started rep at %.0f ms", name, timestamp_ms)
            return None

        self.cycle.extreme_angle = min(self.cycle.extreme_angle, angle)

        if self.phase is Phase.DOWN:
            if angle < thresholds.deep:
                self.phase = Phase.BOTTOM
                logger.debug("%s: hit bottom at %.1f deg", name, angle)
            elif angle > thresholds.exit:
                self.phase = Phase.READY
                logger.debug("%s: aborted before bottom at %.1f deg", name, angle)
        elif self.phase is Phase.BOTTOM:
            if angle > thresholds.deep + self.spec.rise_margin:
                self.phase = Phase.UP
                logger.debug("%s: rising at %.1f deg", name, angle)
        elif self.phase is Phase.UP:
            if angle > thresholds.exit:
                record = self._close_cycle(thresholds, timestamp_ms)
                self.phase = Phase.READY
                self.cycle = _CycleState()
                return record
        return None

    def _close_cycle(
        self, thresholds: ThresholdSet, timestamp_ms: float
    ) -> Optional[RepRecord]:
        duration = timestamp_ms - self.cycle.start_ms
        if duration <= self.min_rep_duration_ms:
            logger.debug(
                "%s: discarded %.0f ms cycle (minimum %.0f ms)",
                self.spec.display_name,
                duration,
                self.min_rep_duration_ms,
            )
            return None

        self.rep_count += 1
        extreme = self.cycle.extreme_angle
        rom_achieved = FULL_EXTENSION_DEG - extreme
        tempo = tempo_score(duration)
        form = form_score(rom_achieved, FULL_EXTENSION_DEG - thresholds.deep, tempo)
        personal_target = self.personalized_rom.target_rom
        self.personalized_rom = update_personalized_rom(
            self.personalized_rom, rom_achieved, self.spec.rom_floor
        )

        self.last_rep = RepRecord(
            rep_index=self.rep_count,
            min_angle=extreme,
            max_angle=FULL_EXTENSION_DEG,
            form_score=form,
            tempo_score=tempo,
            rom_achieved=rom_achieved,
            rom_target=personal_target,
            duration_ms=duration,
            timestamp_ms=timestamp_ms,
            too_shallow=rom_achieved < personal_target,
            too_fast=duration < FAST_REP_MS,
            error_segment=self.cycle.error_segment,
        )
        logger.debug(
            "%s: rep %d completed %s personalized=%s",
            self.spec.display_name,
            self.rep_count,
            self.last_rep,
            self.personalized_rom,
        )
        return self.last_rep


def create_detector(
    exercise: ExerciseKind | str,
    side: str = config.DEFAULT_SIDE,
    difficulty: DifficultyLevel | str = config.DEFAULT_DIFFICULTY,
    **kwargs,
) -> RepDetector:
    return RepDetector(exercise, side=side, difficulty=difficulty, **kwargs)
