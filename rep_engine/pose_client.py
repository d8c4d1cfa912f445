"""
MediaPipe PoseLandmarker wrapper producing LandmarkFrames.

MediaPipe is imported when the client starts so the rest of the engine
can run from landmark payloads without it installed.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Any, Optional

import numpy as np

from . import config
from .landmarks import LandmarkFrame, frame_from_mediapipe

logger = logging.getLogger(__name__)


def first_pose(result: Any) -> Optional[LandmarkFrame]:
    """Take the first detected person from a PoseLandmarker result, if any."""
    poses = getattr(result, "pose_landmarks", None)
    if not poses:
        return None
    return frame_from_mediapipe(poses[0])


class PoseClient:
    def __init__(self, model_path: str | Path = config.POSE_MODEL_PATH) -> None:
        self.model_path = Path(model_path)
        self.landmarker = None

    @property
    def is_ready(self) -> bool:
        return self.landmarker is not None

    def start(self) -> None:
        if self.landmarker is not None:
            return
        if not self.model_path.exists():
            raise FileNotFoundError(f"Pose model not found: {self.model_path}")

        from mediapipe.tasks.python import BaseOptions
        from mediapipe.tasks.python.vision import (
            PoseLandmarker,
            PoseLandmarkerOptions,
            RunningMode,
        )

        self.landmarker = PoseLandmarker.create_from_options(
            PoseLandmarkerOptions(
                base_options=BaseOptions(model_asset_path=str(self.model_path)),
                running_mode=RunningMode.IMAGE,
                num_poses=1,
                min_pose_detection_confidence=0.5,
            )
        )
        logger.info("Pose landmarker loaded from %s", self.model_path)

    def detect(self, rgb: np.ndarray) -> Optional[LandmarkFrame]:
        """Run pose detection on an RGB frame. Failures yield ``None`` for that frame."""
        if self.landmarker is None:
            return None
        import mediapipe as mp

        try:
            image = mp.Image(image_format=mp.ImageFormat.SRGB, data=rgb)
            result = self.landmarker.detect(image)
        except Exception as error:
            logger.warning("Pose detection failed: %s", error)
            return None
        return first_pose(result)

    def close(self) -> None:
        if self.landmarker is not None:
            self.landmarker.close()
            self.landmarker = None
