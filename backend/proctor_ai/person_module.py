import asyncio

from ultralytics import YOLO

from proctor_ai.errors import InferenceError


class PersonCounter:
    """Counts people in a frame with a YOLO detector, loaded on first use."""

    def __init__(self, weights="yolov8n.pt", imgsz=320, conf=0.25):
        self.weights = weights
        self.imgsz = imgsz
        self.conf = conf
        self._model = None

    def _get_model(self):
        if self._model is None:
            self._model = YOLO(self.weights)
        return self._model

    def count_people(self, image_bgr):
        model = self._get_model()
        results = model.predict(image_bgr, verbose=False, imgsz=self.imgsz, conf=self.conf)
        people = 0
        for result in results:
            for box in result.boxes:
                cls_id = int(box.cls[0])
                if result.names.get(cls_id, "") == "person":
                    people += 1
        return people

    async def count(self, image_bgr):
        try:
            return await asyncio.to_thread(self.count_people, image_bgr)
        except Exception as exc:
            raise InferenceError(str(exc)) from exc
