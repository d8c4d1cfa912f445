#!/usr/bin/env python3
"""Tests for tempo/form scoring and the personalized ROM target."""

import sys
from pathlib import Path

import pytest

sys.path.insert(0, str(Path(__file__).resolve().parent.parent))

from rep_engine.scoring import (
    PersonalizedROM,
    form_score,
    tempo_score,
    update_personalized_rom,
)


class TestTempoScore:
    @pytest.mark.parametrize(
        "duration_ms, expected",
        [
            (300, 20),
            (499, 20),
            (500, 40),
            (600, 40),
            (1200, 60),
            (1999, 85),
            (2000, 100),
            (2999, 100),
            (3500, 80),
            (4500, 60),
            (5000, 40),
            (12000, 40),
        ],
    )
    def test_table(self, duration_ms, expected):
        assert tempo_score(duration_ms) == expected


class TestFormScore:
    def test_on_target_ideal_tempo(self):
        assert form_score(65, 65, 100) == 100

    def test_rom_points_capped(self):
        assert form_score(200, 65, 0) == 70

    def test_shallow_and_fast(self):
        # 40/80 ROM -> 35 points, tempo 40 -> 12 points.
        assert form_score(40, 80, 40) == 47

    def test_rounds_to_nearest(self):
        # 35 + 12.9 -> 47.9
        assert form_score(40, 80, 43) == 48

    def test_normal_squat_at_fast_tempo(self):
        """Normal-difficulty squat reaching ~91 deg in 600 ms."""
        assert form_score(180 - 91.41, 180 - 95, tempo_score(600)) == 82

    def test_zero_target_counts_as_full_rom(self):
        assert form_score(10, 0, 100) == 100


class TestPersonalizedROM:
    def test_defaults(self):
        rom = PersonalizedROM()
        assert rom.rep_count == 0
        assert rom.target_rom == 90.0

    def test_first_update(self):
        rom = update_personalized_rom(PersonalizedROM(), 88.59, floor=60)
        assert rom.rep_count == 1
        assert rom.best_achieved == pytest.approx(88.59)
        assert rom.avg_achieved == pytest.approx(88.59)
        assert rom.target_rom == pytest.approx(70.872)

    def test_floor(self):
        rom = update_personalized_rom(PersonalizedROM(), 40, floor=60)
        assert rom.target_rom == 60

    def test_best_never_decreases(self):
        rom = PersonalizedROM()
        for achieved in (100, 80, 120, 60):
            prev_best = rom.best_achieved
            rom = update_personalized_rom(rom, achieved, floor=60)
            assert rom.best_achieved >= prev_best
            assert rom.target_rom >= 60
        assert rom.best_achieved == 120
        assert rom.avg_achieved == pytest.approx(90.0)
        assert rom.target_rom == pytest.approx(96.0)

    def test_update_does_not_mutate(self):
        start = PersonalizedROM()
        update_personalized_rom(start, 100, floor=60)
        assert start == PersonalizedROM()

    def test_to_dict_keys(self):
        assert PersonalizedROM().to_dict() == {
            "bestAchieved": 0.0,
            "avgAchieved": 0.0,
            "repCount": 0,
            "targetROM": 90.0,
        }
