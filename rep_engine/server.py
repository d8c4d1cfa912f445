"""
FastAPI WebSocket server for real-time rep counting.

Clients either send landmark frames as JSON text messages or raw JPEG
frames as binary messages (requires the pose model). Each frame is
conditioned, fed to the connection's rep detector, and answered with the
detector output plus a session-rep payload whenever a rep completes.

    /ws/reps?exercise=squat&side=left&difficulty=easy&exercise_id=abc
"""

from __future__ import annotations

import asyncio
import json
import logging
import math
import time
from concurrent.futures import ThreadPoolExecutor
from contextlib import asynccontextmanager
from typing import Any, Mapping, Optional

import cv2
import numpy as np
import uvicorn
from fastapi import FastAPI, WebSocket, WebSocketDisconnect

from . import config
from .conditioner import LandmarkConditioner
from .detector import RepDetector, create_detector
from .exercises import EXERCISE_SPECS, ExerciseKind, canonical_exercise_key, resolve_exercise_kind
from .landmarks import LandmarkFrame, frame_from_dicts
from .pose_client import PoseClient
from .session_reps import rep_to_session_payload

logger = logging.getLogger(__name__)

_executor = ThreadPoolExecutor(max_workers=2)

pose_client: Optional[PoseClient] = None


@asynccontextmanager
async def lifespan(_app: FastAPI):
    global pose_client
    client = PoseClient()
    try:
        client.start()
        pose_client = client
    except (FileNotFoundError, ImportError) as error:
        logger.warning("Pose model unavailable, JPEG frames disabled (%s)", error)
    yield
    if pose_client is not None:
        pose_client.close()
        pose_client = None


app = FastAPI(title="PT Rep Engine", lifespan=lifespan)


@app.get("/health")
def health():
    return {"status": "ok", "pose_model_loaded": pose_client is not None}


@app.get("/exercises")
def exercises():
    return [
        {
            "key": spec.kind.value,
            "name": spec.display_name,
            "angle": spec.angle_name,
            "thresholds": {
                level.value: {"enter": t.enter, "deep": t.deep, "exit": t.exit}
                for level, t in spec.thresholds.items()
            },
        }
        for spec in EXERCISE_SPECS.values()
    ]


def decode_frame_bytes(data: bytes) -> np.ndarray:
    """Decode raw JPEG bytes into an RGB numpy array."""
    if not data:
        raise ValueError("Empty frame data")
    arr = np.frombuffer(data, dtype=np.uint8)
    bgr = cv2.imdecode(arr, cv2.IMREAD_COLOR)
    if bgr is None:
        raise ValueError("Failed to decode JPEG frame")
    return cv2.cvtColor(bgr, cv2.COLOR_BGR2RGB)


def frame_from_payload(payload: Mapping[str, Any]) -> tuple[Optional[LandmarkFrame], float]:
    """Parse ``{"landmarks": [...] | null, "timestamp_ms": number}``."""
    timestamp = payload.get("timestamp_ms")
    if isinstance(timestamp, bool) or not isinstance(timestamp, (int, float)):
        raise ValueError("'timestamp_ms' must be numeric")
    if not math.isfinite(timestamp):
        raise ValueError("'timestamp_ms' must be finite")
    raw = payload.get("landmarks")
    if raw is None:
        return None, float(timestamp)
    return frame_from_dicts(raw), float(timestamp)


def session_exercise_kind(name: str) -> ExerciseKind:
    """Exact key or alias first, then a keyword match on a prescribed exercise name."""
    try:
        return canonical_exercise_key(name)
    except KeyError:
        kind = resolve_exercise_kind(name, default=None)
        if kind is None:
            raise
        return kind


class RepSession:
    """Conditioner + detector pair for one WebSocket connection."""

    def __init__(
        self,
        exercise: str,
        side: str = config.DEFAULT_SIDE,
        difficulty: str = config.DEFAULT_DIFFICULTY,
        exercise_id: Optional[str] = None,
    ) -> None:
        kind = session_exercise_kind(exercise)
        self.exercise_id = exercise_id or kind.value
        self.conditioner = LandmarkConditioner()
        self.detector: RepDetector = create_detector(kind, side=side, difficulty=difficulty)

    def process(self, landmarks: Optional[LandmarkFrame], timestamp_ms: float) -> dict:
        conditioned = self.conditioner.condition(landmarks)
        output = self.detector.update(
            conditioned.landmarks if conditioned is not None else None, timestamp_ms
        )
        session_rep = None
        if output.rep_completed and output.last_rep is not None:
            session_rep = rep_to_session_payload(output.last_rep, self.exercise_id).to_dict()
        return {
            "exercise": output.to_dict(),
            "tracking": {
                "quality": round(self.conditioner.tracking_quality, 1),
                "fullBodyVisible": self.conditioner.full_body_visible,
            },
            "sessionRep": session_rep,
        }

    def handle(self, payload: object) -> dict:
        if not isinstance(payload, Mapping):
            raise ValueError("Message must be a JSON object")
        message_type = payload.get("type", "frame")
        if message_type == "frame":
            landmarks, timestamp_ms = frame_from_payload(payload)
            return self.process(landmarks, timestamp_ms)
        if message_type == "set_difficulty":
            self.detector.set_difficulty(str(payload.get("difficulty")))
            return {"status": "ok", "difficulty": self.detector.difficulty.value}
        if message_type == "reset":
            self.detector.reset()
            self.conditioner.reset()
            return {
                "status": "reset",
                "personalizedROM": self.detector.get_personalized_rom().to_dict(),
            }
        raise ValueError(f"Unknown message type: {message_type}")


@app.websocket("/ws/reps")
async def ws_reps(websocket: WebSocket):
    params = websocket.query_params
    await websocket.accept()
    try:
        session = RepSession(
            exercise=params.get("exercise", config.DEFAULT_EXERCISE),
            side=params.get("side", config.DEFAULT_SIDE),
            difficulty=params.get("difficulty", config.DEFAULT_DIFFICULTY),
            exercise_id=params.get("exercise_id"),
        )
    except (KeyError, ValueError) as error:
        await websocket.send_json({"error": str(error)})
        await websocket.close(code=1008)
        return

    logger.info(
        "Rep session opened: %s (%s side, %s)",
        session.detector.spec.display_name,
        session.detector.side,
        session.detector.difficulty.value,
    )
    try:
        while True:
            msg = await websocket.receive()
            if msg.get("type") == "websocket.disconnect":
                break

            try:
                if msg.get("bytes"):
                    if pose_client is None:
                        raise ValueError("Pose model not loaded; send landmark JSON instead")
                    rgb = decode_frame_bytes(msg["bytes"])
                    loop = asyncio.get_running_loop()
                    landmarks = await loop.run_in_executor(_executor, pose_client.detect, rgb)
                    response = session.process(landmarks, time.monotonic() * 1000.0)
                else:
                    response = session.handle(json.loads(msg.get("text") or ""))
            except ValueError as error:
                logger.warning("Ignoring invalid message: %s", error)
                await websocket.send_json({"error": str(error)})
                continue

            await websocket.send_json(response)
    except WebSocketDisconnect:
        pass
    logger.info("Rep session closed after %d reps", session.detector.rep_count)


def main() -> None:
    logging.basicConfig(
        level=config.LOG_LEVEL,
        format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
    )
    uvicorn.run(app, host=config.SERVER_HOST, port=config.SERVER_PORT)


if __name__ == "__main__":
    main()
