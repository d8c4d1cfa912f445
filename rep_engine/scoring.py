"""Tempo and form scoring, and the adaptive per-detector ROM target."""

from __future__ import annotations

import math
from dataclasses import asdict, dataclass

# (upper bound in ms, score); the ideal rep takes 2-3 s.
TEMPO_TABLE = (
    (500, 20),
    (1000, 40),
    (1500, 60),
    (2000, 85),
    (3000, 100),
    (4000, 80),
    (5000, 60),
)
SLOW_TEMPO_SCORE = 40

ROM_WEIGHT = 70.0
TEMPO_WEIGHT = 30.0
MAX_ROM_RATIO = 1.2
TARGET_FRACTION_OF_BEST = 0.8


def tempo_score(duration_ms: float) -> int:
    for upper_ms, score in TEMPO_TABLE:
        if duration_ms < upper_ms:
            return score
    return SLOW_TEMPO_SCORE


def form_score(rom_achieved: float, rom_target: float, tempo: float) -> int:
    """ROM contributes up to 70 points, tempo up to 30."""
    if rom_target <= 0:
        rom_ratio = MAX_ROM_RATIO
    else:
        rom_ratio = min(rom_achieved / rom_target, MAX_ROM_RATIO)
    rom_points = min(rom_ratio * ROM_WEIGHT, ROM_WEIGHT)
    tempo_points = (tempo / 100.0) * TEMPO_WEIGHT
    return int(math.floor(rom_points + tempo_points + 0.5))


@dataclass(frozen=True)
class PersonalizedROM:
    best_achieved: float = 0.0
    avg_achieved: float = 0.0
    rep_count: int = 0
    target_rom: float = 90.0

    def to_dict(self) -> dict:
        data = asdict(self)
        return {
            "bestAchieved": data["best_achieved"],
            "avgAchieved": data["avg_achieved"],
            "repCount": data["rep_count"],
            "targetROM": data["target_rom"],
        }


def update_personalized_rom(
    current: PersonalizedROM, rom_achieved: float, floor: float
) -> PersonalizedROM:
    rep_count = current.rep_count + 1
    best = max(current.best_achieved, rom_achieved)
    avg = ((current.avg_achieved * current.rep_count) + rom_achieved) / rep_count
    return PersonalizedROM(
        best_achieved=best,
        avg_achieved=avg,
        rep_count=rep_count,
        target_rom=max(best * TARGET_FRACTION_OF_BEST, floor),
    )
