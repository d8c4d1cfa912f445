from __future__ import annotations

import os
import shlex
from pathlib import Path

PACKAGE_DIR = Path(__file__).resolve().parent
ENV_PATH = PACKAGE_DIR.parent / ".env"


def _load_env_file(path: Path) -> None:
    if not path.exists():
        return

    for raw_line in path.read_text(encoding="utf-8").splitlines():
        line = raw_line.strip()
        if not line or line.startswith("#") or "=" not in line:
            continue

        if line.startswith("export "):
            line = line[len("export ") :].strip()

        key, value = line.split("=", 1)
        key = key.strip()

        lexer = shlex.shlex(value.strip(), posix=True)
        lexer.whitespace_split = True
        lexer.commenters = "#"
        parsed = " ".join(list(lexer)).strip().strip('"').strip("'")

        if key and key not in os.environ:
            os.environ[key] = parsed


def _bool_env(name: str, default: bool) -> bool:
    raw = os.getenv(name)
    if raw is None:
        return default
    return raw.strip().lower() in {"1", "true", "yes", "y", "on"}


def _float_env(name: str, default: float) -> float:
    raw = os.getenv(name)
    if raw is None:
        return default
    try:
        return float(raw)
    except ValueError:
        return default


def _int_env(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None:
        return default
    try:
        return int(raw)
    except ValueError:
        return default


_load_env_file(ENV_PATH)

# Rep detector
MIN_LANDMARK_VISIBILITY = _float_env("REP_MIN_LANDMARK_VISIBILITY", 0.5)
MIN_REP_DURATION_MS = _float_env("REP_MIN_DURATION_MS", 300.0)
ANGLE_SMOOTHING_ALPHA = _float_env("REP_ANGLE_SMOOTHING_ALPHA", 0.8)
REP_DEBUG_OUTPUT = _bool_env("REP_DEBUG_OUTPUT", False)
DEFAULT_EXERCISE = os.getenv("REP_DEFAULT_EXERCISE", "squat").strip().lower()
DEFAULT_DIFFICULTY = os.getenv("REP_DEFAULT_DIFFICULTY", "easy").strip().lower()
DEFAULT_SIDE = os.getenv("REP_DEFAULT_SIDE", "left").strip().lower()

# Landmark conditioner
LOW_VISIBILITY_THRESHOLD = _float_env("LANDMARK_LOW_VISIBILITY", 0.2)
MAX_JUMP_FRACTION = _float_env("LANDMARK_MAX_JUMP_FRACTION", 0.15)
LANDMARK_SMOOTHING_ALPHA = _float_env("LANDMARK_SMOOTHING_ALPHA", 0.5)
LANDMARK_OUTLIER_ALPHA = _float_env("LANDMARK_OUTLIER_ALPHA", 0.1)
FULL_BODY_VISIBILITY_FLOOR = _float_env("FULL_BODY_VISIBILITY_FLOOR", 0.5)
FULL_BODY_MIN_COVERAGE = _float_env("FULL_BODY_MIN_COVERAGE", 0.4)

# Server / pose model
SERVER_HOST = os.getenv("REP_SERVER_HOST", "0.0.0.0")
SERVER_PORT = _int_env("REP_SERVER_PORT", 8001)
POSE_MODEL_PATH = os.getenv(
    "POSE_MODEL_PATH",
    str(PACKAGE_DIR.parent / "models" / "pose_landmarker_full.task"),
)
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").strip().upper()

MIN_LANDMARK_VISIBILITY = max(0.0, min(1.0, MIN_LANDMARK_VISIBILITY))
MIN_REP_DURATION_MS = max(0.0, MIN_REP_DURATION_MS)
ANGLE_SMOOTHING_ALPHA = max(0.01, min(1.0, ANGLE_SMOOTHING_ALPHA))
LOW_VISIBILITY_THRESHOLD = max(0.0, min(1.0, LOW_VISIBILITY_THRESHOLD))
MAX_JUMP_FRACTION = max(0.01, min(1.0, MAX_JUMP_FRACTION))
LANDMARK_SMOOTHING_ALPHA = max(0.01, min(1.0, LANDMARK_SMOOTHING_ALPHA))
LANDMARK_OUTLIER_ALPHA = max(0.01, min(1.0, LANDMARK_OUTLIER_ALPHA))
FULL_BODY_VISIBILITY_FLOOR = max(0.0, min(1.0, FULL_BODY_VISIBILITY_FLOOR))
FULL_BODY_MIN_COVERAGE = max(0.0, min(1.0, FULL_BODY_MIN_COVERAGE))
if DEFAULT_SIDE not in {"left", "right"}:
    DEFAULT_SIDE = "left"
if DEFAULT_DIFFICULTY not in {"easy", "normal", "hard"}:
    DEFAULT_DIFFICULTY = "easy"
