#!/usr/bin/env python3
"""Tests for visibility gating, outlier-damped smoothing and tracking quality."""

import math
import sys
from pathlib import Path

import pytest

sys.path.insert(0, str(Path(__file__).resolve().parent))
sys.path.insert(0, str(Path(__file__).resolve().parent.parent))

from synthetic import base_frame

from rep_engine.conditioner import (
    ConditionerParams,
    LandmarkConditioner,
    condition_frame,
)
from rep_engine.landmarks import KEY_LANDMARKS, LANDMARK_INDEX, PoseLandmark

KNEE = LANDMARK_INDEX["left_knee"]
NOSE = LANDMARK_INDEX["nose"]


def _moved(frame, index, dx=0.0, dy=0.0, visibility=None):
    out = list(frame)
    lm = out[index]
    out[index] = PoseLandmark(
        lm.x + dx, lm.y + dy, lm.z, lm.visibility if visibility is None else visibility
    )
    return out


# ---------------------------------------------------------------------------
# 1. Smoothing
# ---------------------------------------------------------------------------

class TestSmoothing:
    def test_first_frame_passes_through(self):
        raw = base_frame()
        result = condition_frame(raw)
        assert result.landmarks[KNEE].x == pytest.approx(raw[KNEE].x)
        assert len(result.landmarks) == 33

    def test_normal_move_is_halved(self):
        prev = base_frame()
        raw = _moved(prev, KNEE, dx=0.1)
        result = condition_frame(raw, prev)
        assert result.landmarks[KNEE].x == pytest.approx(prev[KNEE].x + 0.05)

    def test_large_jump_is_damped(self):
        prev = base_frame()
        raw = _moved(prev, KNEE, dx=0.3)
        result = condition_frame(raw, prev)
        assert result.landmarks[KNEE].x == pytest.approx(prev[KNEE].x + 0.03)

    def test_jump_measured_in_image_plane(self):
        """A large depth change alone is not an outlier."""
        prev = base_frame()
        out = list(prev)
        out[KNEE] = PoseLandmark(prev[KNEE].x, prev[KNEE].y, 0.5, 1.0)
        result = condition_frame(out, prev)
        assert result.landmarks[KNEE].z == pytest.approx(0.25)

    def test_custom_params(self):
        prev = base_frame()
        raw = _moved(prev, KNEE, dx=0.1)
        params = ConditionerParams(smoothing_alpha=1.0)
        result = condition_frame(raw, prev, params)
        assert result.landmarks[KNEE].x == pytest.approx(prev[KNEE].x + 0.1)


# ---------------------------------------------------------------------------
# 2. Visibility gating
# ---------------------------------------------------------------------------

class TestGating:
    def test_occluded_landmark_holds_position(self):
        prev = base_frame()
        raw = _moved(prev, KNEE, dx=0.2, dy=0.1, visibility=0.1)
        result = condition_frame(raw, prev)
        assert result.landmarks[KNEE].x == pytest.approx(prev[KNEE].x)
        assert result.landmarks[KNEE].y == pytest.approx(prev[KNEE].y)
        assert result.landmarks[KNEE].visibility == pytest.approx(0.1)

    def test_still_occluded_landmark_follows_raw(self):
        prev = _moved(base_frame(), KNEE, visibility=0.1)
        raw = _moved(prev, KNEE, dx=0.1, visibility=0.1)
        result = condition_frame(raw, prev)
        assert result.landmarks[KNEE].x == pytest.approx(prev[KNEE].x + 0.05)


# ---------------------------------------------------------------------------
# 3. Quality and full-body check
# ---------------------------------------------------------------------------

class TestQuality:
    def test_quality_is_mean_key_visibility(self):
        raw = base_frame()
        for i in KEY_LANDMARKS[:4]:
            raw = _moved(raw, i, visibility=0.0)
        result = condition_frame(raw)
        assert result.tracking_quality == pytest.approx(50.0)

    def test_full_quality(self):
        assert condition_frame(base_frame()).tracking_quality == pytest.approx(100.0)

    def test_full_body_visible(self):
        assert condition_frame(base_frame()).full_body_visible

    def test_hidden_head_is_not_full_body(self):
        raw = _moved(base_frame(), NOSE, visibility=0.3)
        assert not condition_frame(raw).full_body_visible

    def test_hidden_ankles_are_not_full_body(self):
        raw = base_frame()
        for name in ("left_ankle", "right_ankle"):
            raw = _moved(raw, LANDMARK_INDEX[name], visibility=0.3)
        assert not condition_frame(raw).full_body_visible

    def test_one_visible_ankle_is_enough(self):
        raw = _moved(base_frame(), LANDMARK_INDEX["right_ankle"], visibility=0.0)
        assert condition_frame(raw).full_body_visible

    def test_cropped_body_is_not_full_body(self):
        raw = base_frame()
        for name in ("left_ankle", "right_ankle"):
            raw = _moved(raw, LANDMARK_INDEX[name], dy=-0.5)
        assert not condition_frame(raw).full_body_visible


# ---------------------------------------------------------------------------
# 4. Stateful conditioner
# ---------------------------------------------------------------------------

class TestLandmarkConditioner:
    def test_tracks_previous_frame(self):
        cond = LandmarkConditioner()
        first = base_frame()
        cond.condition(first)
        result = cond.condition(_moved(first, KNEE, dx=0.1))
        assert result.landmarks[KNEE].x == pytest.approx(first[KNEE].x + 0.05)
        assert cond.previous == result.landmarks

    def test_missing_pose_resets_status_but_keeps_history(self):
        cond = LandmarkConditioner()
        cond.condition(base_frame())
        kept = cond.previous
        assert cond.condition(None) is None
        assert cond.tracking_quality == 0.0
        assert cond.full_body_visible is False
        assert cond.previous is kept

    def test_reset(self):
        cond = LandmarkConditioner()
        cond.condition(base_frame())
        cond.reset()
        assert cond.previous is None
        moved = _moved(base_frame(), KNEE, dx=0.1)
        result = cond.condition(moved)
        assert result.landmarks[KNEE].x == pytest.approx(moved[KNEE].x)


# ---------------------------------------------------------------------------
# 5. Non-finite input
# ---------------------------------------------------------------------------

class TestNonFinite:
    def test_nan_landmark_holds_previous_position(self):
        prev = base_frame()
        raw = list(prev)
        raw[KNEE] = PoseLandmark(float("nan"), prev[KNEE].y, 0.0, 1.0)
        result = condition_frame(raw, prev)
        assert result.landmarks[KNEE].x == pytest.approx(prev[KNEE].x)
        assert result.landmarks[KNEE].visibility == 0.0

    def test_first_frame_nan_is_unseen(self):
        raw = base_frame()
        raw[KNEE] = PoseLandmark(0.4, float("inf"), 0.0, 1.0)
        result = condition_frame(raw)
        assert result.landmarks[KNEE] == PoseLandmark(0.0, 0.0, 0.0, 0.0)

    def test_history_recovers_after_nan(self):
        cond = LandmarkConditioner()
        first = base_frame()
        cond.condition(first)
        bad = list(first)
        bad[KNEE] = PoseLandmark(float("nan"), float("nan"), 0.0, float("nan"))
        cond.condition(bad)
        result = cond.condition(_moved(first, KNEE, dx=0.1))
        assert result.landmarks[KNEE].x == pytest.approx(first[KNEE].x + 0.05)
        for lm in result.landmarks:
            assert all(math.isfinite(v) for v in (lm.x, lm.y, lm.z, lm.visibility))
