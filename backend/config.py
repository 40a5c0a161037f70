import os


def _env_float(name, default):
    return float(os.environ.get(name, default))


def _env_int(name, default):
    return int(os.environ.get(name, default))


class Config:
    """Application configuration"""

    SECRET_KEY = os.environ.get("SECRET_KEY") or "dev-secret-key-change-in-production"
    SESSION_COOKIE_HTTPONLY = True
    SESSION_COOKIE_SAMESITE = "Lax"
    SESSION_COOKIE_NAME = "interview_session"

    LOG_LEVEL = os.environ.get("LOG_LEVEL", "INFO")

    # ========================================
    # Camera
    # ========================================
    CAMERA_INDEX = _env_int("CAMERA_INDEX", 0)
    CAMERA_WIDTH = _env_int("CAMERA_WIDTH", 640)
    CAMERA_HEIGHT = _env_int("CAMERA_HEIGHT", 480)

    # ========================================
    # Proctoring
    # ========================================
    PROCTOR_VARIANT = os.environ.get("PROCTOR_VARIANT", "landmarks")  # or "counts"
    MAX_NUM_FACES = _env_int("MAX_NUM_FACES", 2)
    MIN_DETECTION_CONFIDENCE = _env_float("MIN_DETECTION_CONFIDENCE", 0.5)
    MIN_TRACKING_CONFIDENCE = _env_float("MIN_TRACKING_CONFIDENCE", 0.5)
    MODEL_LOAD_TIMEOUT = _env_float("MODEL_LOAD_TIMEOUT", 10.0)  # seconds
    EVALUATION_INTERVAL = _env_float("EVALUATION_INTERVAL", 1.0)  # seconds
    HEAD_TURN_TOLERANCE = _env_float("HEAD_TURN_TOLERANCE", 0.12)
    GAZE_TOLERANCE = _env_float("GAZE_TOLERANCE", 0.04)
    MIN_FACE_HEIGHT = _env_float("MIN_FACE_HEIGHT", 0.18)
    PERSON_MODEL = os.environ.get("PERSON_MODEL", "yolov8n.pt")

    # ========================================
    # Voice call
    # ========================================
    VOICE_WORKFLOW_ID = os.environ.get("VOICE_WORKFLOW_ID", "interview-generator")
    INTERVIEWER = os.environ.get("INTERVIEWER", "interviewer")
    CALL_TIMEOUT = _env_float("CALL_TIMEOUT", 30.0)  # seconds a request waits on the call loop
