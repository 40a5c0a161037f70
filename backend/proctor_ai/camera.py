import asyncio
import logging
import threading
import time

import cv2

from proctor_ai.errors import CameraUnavailable, InferenceError


_log = logging.getLogger(__name__)


class CameraStream:
    """Video-only webcam capture at a fixed target resolution."""

    def __init__(self, index=0, width=640, height=480):
        self.index = index
        self.width = width
        self.height = height
        self._cap = None
        self._released = False
        # cap.read() and cap.release() never overlap
        self._lock = threading.Lock()

    @property
    def is_open(self):
        return self._cap is not None and not self._released

    def _open(self):
        cap = cv2.VideoCapture(self.index)
        if not cap.isOpened():
            cap.release()
            raise CameraUnavailable(f"cannot open camera {self.index}")
        cap.set(cv2.CAP_PROP_FRAME_WIDTH, self.width)
        cap.set(cv2.CAP_PROP_FRAME_HEIGHT, self.height)
        # keep only the newest frame, older ones are dropped by the driver
        cap.set(cv2.CAP_PROP_BUFFERSIZE, 1)
        with self._lock:
            if not self._released:
                self._cap = cap
                return
        cap.release()
        raise CameraUnavailable("camera released while opening")

    async def open(self):
        await asyncio.to_thread(self._open)
        _log.info("Camera %s opened at %dx%d", self.index, self.width, self.height)
        return self

    def _read(self):
        with self._lock:
            cap = self._cap
            if cap is None or self._released:
                return None
            ok, frame = cap.read()
        return frame if ok else None

    async def read(self):
        return await asyncio.to_thread(self._read)

    def release(self):
        if self._released:
            return
        self._released = True
        with self._lock:
            cap, self._cap = self._cap, None
        if cap is not None:
            cap.release()
            _log.info("Camera %s released", self.index)


class FrameFeeder:
    """Feeds camera frames to a landmark source, one inference at a time.

    `on_result(faces, now, people)` is called after every analyzed frame.
    """

    def __init__(self, camera, on_result, person_counter=None, clock=time.monotonic):
        self.camera = camera
        self.on_result = on_result
        self.person_counter = person_counter
        self.clock = clock
        self._task = None
        self._stopped = False

    @property
    def running(self):
        return self._task is not None and not self._task.done()

    async def open(self):
        return await self.camera.open()

    def run(self, source):
        if self._stopped:
            raise RuntimeError("feeder already stopped")
        if self._task is None:
            self._task = asyncio.create_task(self._loop(source))
        return self._task

    async def _loop(self, source):
        while not self._stopped:
            frame = await self.camera.read()
            if frame is None:
                await asyncio.sleep(0.01)
                continue
            try:
                faces = await source.estimate_faces(frame)
                people = None
                if self.person_counter is not None:
                    people = await self.person_counter.count(frame)
            except InferenceError as exc:
                _log.debug("Frame skipped: %s", exc)
                await asyncio.sleep(0)
                continue
            if self._stopped:
                break
            self.on_result(faces, self.clock(), people)
            # let other tasks run between frames
            await asyncio.sleep(0)

    async def stop(self):
        self._stopped = True
        task, self._task = self._task, None
        if task is not None:
            if not task.done():
                task.cancel()
                try:
                    await task
                except asyncio.CancelledError:
                    pass
            elif not task.cancelled() and task.exception() is not None:
                _log.error("Frame loop stopped with an error: %s", task.exception())
        self.camera.release()
