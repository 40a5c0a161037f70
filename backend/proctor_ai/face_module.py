import asyncio
import logging
import threading

import cv2

from proctor_ai.errors import InferenceError, ModelLoadFailure, ModelLoadTimeout
from proctor_ai.landmarks import FaceLandmarks


_log = logging.getLogger(__name__)


class FaceMeshSource:
    """MediaPipe face mesh with iris refinement, one instance per call."""

    def __init__(
        self,
        max_num_faces=2,
        refine_landmarks=True,
        min_detection_confidence=0.5,
        min_tracking_confidence=0.5,
    ):
        self.options = dict(
            static_image_mode=False,
            max_num_faces=max_num_faces,
            refine_landmarks=refine_landmarks,
            min_detection_confidence=min_detection_confidence,
            min_tracking_confidence=min_tracking_confidence,
        )
        self._mesh = None
        self._closed = False
        # mesh.process() and mesh.close() never overlap
        self._lock = threading.Lock()

    @property
    def ready(self):
        return self._mesh is not None and not self._closed

    def _build(self):
        import mediapipe as mp

        mesh = mp.solutions.face_mesh.FaceMesh(**self.options)
        with self._lock:
            if not self._closed:
                self._mesh = mesh
                return
        # closed while loading
        mesh.close()

    async def load(self):
        await asyncio.to_thread(self._build)
        return self

    async def estimate_faces(self, frame_bgr):
        if not self.ready:
            raise InferenceError("face mesh is not loaded")
        try:
            return await asyncio.to_thread(self._process, frame_bgr)
        except Exception as exc:
            raise InferenceError(str(exc)) from exc

    def _process(self, frame_bgr):
        rgb = cv2.cvtColor(frame_bgr, cv2.COLOR_BGR2RGB)
        with self._lock:
            # a job queued before close() may only start afterwards
            if self._closed or self._mesh is None:
                raise InferenceError("face mesh is closed")
            results = self._mesh.process(rgb)
        if not results.multi_face_landmarks:
            return []
        return [FaceLandmarks.from_mediapipe(face) for face in results.multi_face_landmarks]

    def close(self):
        if self._closed:
            return
        self._closed = True
        with self._lock:
            mesh, self._mesh = self._mesh, None
        if mesh is not None:
            mesh.close()


async def load_source(source, timeout=10.0):
    """Wait until `source` is ready, or raise ModelLoadTimeout/ModelLoadFailure."""
    try:
        return await asyncio.wait_for(source.load(), timeout)
    except asyncio.TimeoutError as exc:
        raise ModelLoadTimeout(f"landmark model not ready after {timeout:.1f}s") from exc
    except Exception as exc:
        raise ModelLoadFailure(str(exc)) from exc
