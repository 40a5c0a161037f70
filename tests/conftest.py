import os
import sys
import tempfile
from pathlib import Path

# Modules under backend/ import each other as top-level modules
_backend = str(Path(__file__).resolve().parent.parent / "backend")
if _backend not in sys.path:
    sys.path.insert(0, _backend)

# database reads this at import time
os.environ.setdefault("PROCTOR_DB", os.path.join(tempfile.mkdtemp(prefix="interviews-"), "test.db"))

from proctor_ai.landmarks import FaceLandmarks, LANDMARK_INDEX  # noqa: E402

MESH_POINTS = 478


def make_face(mid_x=0.5, iris_offset=0.0, top=0.3, bottom=0.7, eye_span=0.1):
    """Synthetic refined face mesh.

    Eye outer corners sit `eye_span` apart around `mid_x`, both irises are
    shifted by `iris_offset` from their corner, and every point lies at `top`
    except one chin point at `bottom`.
    """
    points = [(mid_x, top, 0.0)] * MESH_POINTS
    left_x = mid_x - eye_span / 2
    right_x = mid_x + eye_span / 2
    points[LANDMARK_INDEX["left_eye_outer"]] = (left_x, top, 0.0)
    points[LANDMARK_INDEX["right_eye_outer"]] = (right_x, top, 0.0)
    points[LANDMARK_INDEX["left_iris"]] = (left_x + iris_offset, top, 0.0)
    points[LANDMARK_INDEX["right_iris"]] = (right_x + iris_offset, top, 0.0)
    points[152] = (mid_x, bottom, 0.0)
    return FaceLandmarks.from_points(points)
