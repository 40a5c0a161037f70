import asyncio
import enum
import logging
import time
from dataclasses import dataclass, field
from typing import List, Optional

from proctor_ai.alert_state import AlertState
from proctor_ai.camera import FrameFeeder
from proctor_ai.errors import PersistenceFailure, ProctoringError, SessionError
from proctor_ai.face_module import load_source
from proctor_ai.session import CallStatus


_log = logging.getLogger(__name__)

LANDING_ROUTE = "/"


class ProctoringStatus(enum.Enum):
    OFF = "off"
    STARTING = "starting"
    RUNNING = "running"
    UNAVAILABLE = "unavailable"
    STOPPED = "stopped"


@dataclass
class InterviewContext:
    interview_id: str
    user_id: str
    user_name: str = ""
    call_type: str = "interview"
    questions: List[str] = field(default_factory=list)
    feedback_id: Optional[str] = None


class LifecycleCoordinator:
    """Runs one interview call and its webcam proctoring side by side.

    The call session drives CallStatus. Proctoring (camera, face mesh, frame
    loop, evaluator) is set up in the background when a call starts and torn
    down when it finishes; any setup failure only disables proctoring.
    Every call acquires a fresh camera, landmark source and evaluator.
    """

    def __init__(
        self,
        session,
        persist_feedback,
        context,
        camera_factory,
        source_factory,
        evaluator_factory,
        person_counter_factory=None,
        model_timeout=10.0,
        clock=time.monotonic,
        workflow_id=None,
        interviewer="interviewer",
    ):
        self.session = session
        self.persist_feedback = persist_feedback
        self.context = context
        self.camera_factory = camera_factory
        self.source_factory = source_factory
        self.evaluator_factory = evaluator_factory
        self.person_counter_factory = person_counter_factory
        self.model_timeout = model_timeout
        self.clock = clock
        self.workflow_id = workflow_id
        self.interviewer = interviewer

        self.alerts = AlertState()
        self.status = CallStatus.INACTIVE
        self.proctoring = ProctoringStatus.OFF
        self.transcript = []
        self.last_message = ""
        self.is_speaking = False
        self.redirect = None
        self.feedback_id = context.feedback_id

        self._feeder = None
        self._source = None
        self._evaluator = None
        self._setup_task = None
        self._finish_task = None
        self._subscribed = False
        self._handlers = {
            "call-start": self._on_call_start,
            "call-end": self._on_call_end,
            "speech-start": self._on_speech_start,
            "speech-end": self._on_speech_end,
            "message": self._on_message,
            "error": self._on_error,
        }

    def call_arguments(self):
        ctx = self.context
        if ctx.call_type == "generate":
            return self.workflow_id, {"username": ctx.user_name, "userid": ctx.user_id}
        questions = "\n".join(f"- {q}" for q in ctx.questions)
        return self.interviewer, {"questions": questions}

    # ---------------- CALL LIFECYCLE ----------------
    async def start_call(self):
        if self.status in (CallStatus.CONNECTING, CallStatus.ACTIVE):
            raise SessionError("a call is already in progress")
        if self._finish_task is not None and not self._finish_task.done():
            raise SessionError("the previous call is still finishing")

        self.status = CallStatus.CONNECTING
        self.transcript = []
        self.last_message = ""
        self.is_speaking = False
        self.redirect = None
        self.alerts.reset()
        self._finish_task = None

        self._subscribe()
        self._setup_task = asyncio.create_task(self._setup_proctoring())

        descriptor, variables = self.call_arguments()
        try:
            await self.session.start(descriptor, variables)
        except Exception as exc:
            _log.error("Failed to start call for interview %s: %s", self.context.interview_id, exc)
            self._unsubscribe()
            await self._teardown_proctoring()
            self.proctoring = ProctoringStatus.OFF
            self.status = CallStatus.INACTIVE
            if isinstance(exc, SessionError):
                raise
            raise SessionError(str(exc)) from exc

    async def end_call(self):
        """User disconnect. Returns the route to show next."""
        if self.status in (CallStatus.CONNECTING, CallStatus.ACTIVE):
            self._schedule_finish()
            try:
                await self.session.stop()
            except Exception as exc:
                _log.error("Call session did not stop cleanly: %s", exc)
        return await self.wait_finished()

    async def wait_finished(self):
        if self._finish_task is None:
            return self.redirect
        return await self._finish_task

    def _schedule_finish(self):
        if self._finish_task is None:
            self.status = CallStatus.FINISHED
            self._finish_task = asyncio.ensure_future(self._finish())

    async def _finish(self):
        self._unsubscribe()
        await self._teardown_proctoring()
        if self.proctoring in (ProctoringStatus.STARTING, ProctoringStatus.RUNNING):
            self.proctoring = ProctoringStatus.STOPPED
        self.redirect = await self._save_feedback()
        return self.redirect

    # ---------------- SESSION EVENTS ----------------
    def _subscribe(self):
        if self._subscribed:
            return
        for event, handler in self._handlers.items():
            self.session.on(event, handler)
        self._subscribed = True

    def _unsubscribe(self):
        if not self._subscribed:
            return
        for event, handler in self._handlers.items():
            self.session.off(event, handler)
        self._subscribed = False

    def _on_call_start(self):
        if self.status is CallStatus.CONNECTING:
            self.status = CallStatus.ACTIVE

    def _on_call_end(self):
        if self.status in (CallStatus.CONNECTING, CallStatus.ACTIVE):
            self._schedule_finish()

    def _on_speech_start(self):
        self.is_speaking = True

    def _on_speech_end(self):
        self.is_speaking = False

    def _on_message(self, message):
        if message.get("type") != "transcript" or message.get("transcriptType") != "final":
            return
        entry = {"role": message.get("role"), "content": message.get("transcript", "")}
        self.transcript.append(entry)
        self.last_message = entry["content"]

    def _on_error(self, error):
        _log.error("Call session error during interview %s: %s", self.context.interview_id, error)

    # ---------------- PROCTORING ----------------
    async def _setup_proctoring(self):
        self.proctoring = ProctoringStatus.STARTING
        self._evaluator = self.evaluator_factory()
        person_counter = self.person_counter_factory() if self.person_counter_factory else None
        feeder = FrameFeeder(self.camera_factory(), self._on_frame,
                             person_counter=person_counter, clock=self.clock)
        source = self.source_factory()
        self._feeder, self._source = feeder, source

        try:
            await feeder.open()
            await load_source(source, self.model_timeout)
        except ProctoringError as exc:
            _log.warning("Proctoring disabled for interview %s: %s",
                         self.context.interview_id, exc)
            await self._release_proctoring()
            self.proctoring = ProctoringStatus.UNAVAILABLE
            return
        except Exception:
            _log.exception("Proctoring setup failed for interview %s", self.context.interview_id)
            await self._release_proctoring()
            self.proctoring = ProctoringStatus.UNAVAILABLE
            return

        feeder.run(source).add_done_callback(self._on_feeder_done)
        self.proctoring = ProctoringStatus.RUNNING
        _log.info("Proctoring running for interview %s", self.context.interview_id)

    def _on_feeder_done(self, task):
        if task.cancelled() or task.exception() is None:
            return
        if self.status is CallStatus.FINISHED:
            return
        _log.error("Frame loop for interview %s died: %s",
                   self.context.interview_id, task.exception())
        # alerts from before the failure no longer apply
        self.alerts.reset()
        self.proctoring = ProctoringStatus.UNAVAILABLE

    def _on_frame(self, faces, now, people=None):
        if self.status is CallStatus.FINISHED:
            return
        alerts = self._evaluator.evaluate(faces, now, people=people)
        if alerts is not None:
            self.alerts.publish(alerts)

    async def _release_proctoring(self):
        feeder, self._feeder = self._feeder, None
        source, self._source = self._source, None
        if feeder is not None:
            await feeder.stop()
        if source is not None:
            source.close()

    async def _teardown_proctoring(self):
        task, self._setup_task = self._setup_task, None
        if task is not None and not task.done():
            task.cancel()
            try:
                await task
            except asyncio.CancelledError:
                pass
        await self._release_proctoring()

    # ---------------- FEEDBACK ----------------
    async def _save_feedback(self):
        ctx = self.context
        if ctx.call_type == "generate":
            return LANDING_ROUTE
        try:
            self.feedback_id = await self._persist()
        except PersistenceFailure as exc:
            _log.error("Feedback for interview %s not saved: %s", ctx.interview_id, exc)
            return LANDING_ROUTE
        return f"/interview/{ctx.interview_id}/feedback"

    async def _persist(self):
        ctx = self.context
        try:
            result = await asyncio.to_thread(
                self.persist_feedback,
                interview_id=ctx.interview_id,
                user_id=ctx.user_id,
                transcript=list(self.transcript),
                feedback_id=ctx.feedback_id,
            )
        except Exception as exc:
            raise PersistenceFailure(str(exc)) from exc
        if not result.get("success") or not result.get("feedback_id"):
            raise PersistenceFailure("feedback store reported failure")
        return result["feedback_id"]

    def snapshot(self):
        state = {
            "call_status": self.status.value,
            "proctoring": self.proctoring.value,
            "is_speaking": self.is_speaking,
            "last_message": self.last_message,
            "messages": len(self.transcript),
            "redirect": self.redirect,
        }
        state.update(self.alerts.snapshot())
        return state
