import logging

from proctor_ai.gaze_module import eyes_off_screen, head_turned_away, too_far


_log = logging.getLogger(__name__)

NO_FACE = "No face detected"
MULTIPLE_FACES = "Multiple faces detected"
HEAD_TURNED = "Head turned away"
EYES_OFF_SCREEN = "Eyes looking off-screen"
TOO_FAR = "Too far / slouching"


class RateLimitedEvaluator:
    """Admits at most one evaluation per `interval` seconds.

    A skipped call returns None and leaves the clock untouched, so callers
    can feed every frame and only publish what comes back.
    """

    def __init__(self, interval=1.0):
        self.interval = interval
        self.last_evaluated_at = None

    def _admit(self, now):
        if self.last_evaluated_at is not None and now - self.last_evaluated_at < self.interval:
            return False
        self.last_evaluated_at = now
        return True

    def evaluate(self, landmarks, now, people=None):
        if not self._admit(now):
            return None
        return self._alerts(list(landmarks or []), people)

    def _alerts(self, faces, people):
        raise NotImplementedError


class ProctoringEvaluator(RateLimitedEvaluator):

    def __init__(
        self,
        interval=1.0,
        head_turn_tolerance=0.12,
        gaze_tolerance=0.04,
        min_face_height=0.18,
    ):
        super().__init__(interval)
        # evaluation order is the order labels appear in
        self.rules = [
            (HEAD_TURNED, lambda face: head_turned_away(face, head_turn_tolerance)),
            (EYES_OFF_SCREEN, lambda face: eyes_off_screen(face, gaze_tolerance)),
            (TOO_FAR, lambda face: too_far(face, min_face_height)),
        ]

    def _alerts(self, faces, people):
        if len(faces) == 0:
            return [NO_FACE]
        if len(faces) > 1:
            return [MULTIPLE_FACES]

        face = faces[0]
        alerts = []
        for label, rule in self.rules:
            try:
                fired = rule(face)
            except Exception as exc:
                _log.warning("Rule %r skipped: %s", label, exc)
                continue
            if fired:
                alerts.append(label)
        return alerts


class CountEvaluator(RateLimitedEvaluator):
    """Face and person counts only, without landmark geometry."""

    def _alerts(self, faces, people):
        alerts = []
        if len(faces) != 1:
            alerts.append(f"Face count: {len(faces)}")
        if people is not None and people != 1:
            alerts.append(f"People detected: {people}")
        return alerts
