import logging

from flask import Flask, render_template, session, redirect, request

from auth import auth, current_user
from config import Config
from database import init_db
from interview_manager import (
    create_feedback,
    create_interview,
    get_feedback_by_interview,
    get_interview,
    get_interviews_by_user,
    get_latest_interviews,
)
from proctor_ai.camera import CameraStream
from proctor_ai.coordinator import InterviewContext, LifecycleCoordinator
from proctor_ai.errors import SessionError
from proctor_ai.face_module import FaceMeshSource
from proctor_ai.runtime import EventLoopThread
from proctor_ai.session import CallStatus, LocalCallSession
from proctor_ai.violation_engine import CountEvaluator, ProctoringEvaluator


logging.basicConfig(
    level=Config.LOG_LEVEL,
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
_log = logging.getLogger(__name__)

app = Flask(__name__)
app.config.from_object(Config)

init_db()
app.register_blueprint(auth)

# All calls run on one event loop; `calls` is only touched from coroutines on it.
loop = EventLoopThread()
calls = {}


# ---------------- PROCTORING FACTORIES ----------------
def make_camera():
    return CameraStream(
        app.config["CAMERA_INDEX"],
        width=app.config["CAMERA_WIDTH"],
        height=app.config["CAMERA_HEIGHT"],
    )


def make_source():
    return FaceMeshSource(
        max_num_faces=app.config["MAX_NUM_FACES"],
        min_detection_confidence=app.config["MIN_DETECTION_CONFIDENCE"],
        min_tracking_confidence=app.config["MIN_TRACKING_CONFIDENCE"],
    )


def make_evaluator():
    if app.config["PROCTOR_VARIANT"] == "counts":
        return CountEvaluator(app.config["EVALUATION_INTERVAL"])
    return ProctoringEvaluator(
        interval=app.config["EVALUATION_INTERVAL"],
        head_turn_tolerance=app.config["HEAD_TURN_TOLERANCE"],
        gaze_tolerance=app.config["GAZE_TOLERANCE"],
        min_face_height=app.config["MIN_FACE_HEIGHT"],
    )


def make_person_counter():
    from proctor_ai.person_module import PersonCounter

    return PersonCounter(app.config["PERSON_MODEL"])


def build_coordinator(user, interview, feedback_id=None):
    context = InterviewContext(
        interview_id=interview["id"],
        user_id=user["id"],
        user_name=user["name"],
        call_type=interview["type"],
        questions=interview["questions"],
        feedback_id=feedback_id,
    )
    counts = app.config["PROCTOR_VARIANT"] == "counts"
    return LifecycleCoordinator(
        LocalCallSession(),
        create_feedback,
        context,
        camera_factory=make_camera,
        source_factory=make_source,
        evaluator_factory=make_evaluator,
        person_counter_factory=make_person_counter if counts else None,
        model_timeout=app.config["MODEL_LOAD_TIMEOUT"],
        workflow_id=app.config["VOICE_WORKFLOW_ID"],
        interviewer=app.config["INTERVIEWER"],
    )


# ---------------- CALL LOOP COROUTINES ----------------
async def _start_call(key, user, interview, feedback_id):
    coordinator = calls.get(key)
    if coordinator is None or coordinator.status in (CallStatus.INACTIVE, CallStatus.FINISHED):
        coordinator = build_coordinator(user, interview, feedback_id)
        calls[key] = coordinator
    await coordinator.start_call()
    return coordinator.snapshot()


async def _end_call(key):
    coordinator = calls.get(key)
    if coordinator is None:
        return None
    await coordinator.end_call()
    # the final snapshot carries the redirect; the next call starts fresh
    if calls.get(key) is coordinator:
        del calls[key]
    return coordinator.snapshot()


async def _push_transcript(key, role, text, final):
    coordinator = calls.get(key)
    if coordinator is None or coordinator.status is not CallStatus.ACTIVE:
        return None
    coordinator.session.push_transcript(role, text, final=final)
    return coordinator.snapshot()


async def _set_speaking(key, speaking):
    coordinator = calls.get(key)
    if coordinator is None or coordinator.status is not CallStatus.ACTIVE:
        return None
    coordinator.session.speaking(speaking)
    return coordinator.snapshot()


async def _snapshot(key):
    coordinator = calls.get(key)
    if coordinator is None:
        return None
    state = coordinator.snapshot()
    if state["redirect"] is not None:
        # delivered once, then the interview page is idle again
        calls.pop(key, None)
    return state


def _call(coro):
    return loop.call(coro, timeout=app.config["CALL_TIMEOUT"])


def _idle_state():
    return {
        "call_status": CallStatus.INACTIVE.value,
        "proctoring": "off",
        "alerts": [],
        "evaluated": False,
        "all_clear": False,
        "is_speaking": False,
        "last_message": "",
        "messages": 0,
        "redirect": None,
    }


# ---------------- HOME ----------------
@app.route("/")
def home():
    user = current_user()
    if user is None:
        return redirect("/sign-in")

    interviews = get_interviews_by_user(user["id"]) + get_latest_interviews(user["id"])
    feedback = [get_feedback_by_interview(i["id"], user["id"]) for i in interviews]

    return render_template(
        "home.html",
        user=user,
        pending=[i for i, f in zip(interviews, feedback) if not f],
        completed=[i for i, f in zip(interviews, feedback) if f],
        message=session.pop("message", None),
    )


@app.route("/interview", methods=["POST"])
def new_interview():
    user = current_user()
    if user is None:
        return redirect("/sign-in")

    role = request.form.get("role", "").strip()
    interview_type = request.form.get("type", "interview").strip() or "interview"
    techstack = [t.strip() for t in request.form.get("techstack", "").split(",") if t.strip()]
    questions = [q.strip() for q in request.form.get("questions", "").splitlines() if q.strip()]

    if not role:
        session["message"] = "A role is required to create an interview."
        return redirect("/")

    interview_id = create_interview(user["id"], role, interview_type, techstack, questions)
    return redirect(f"/interview/{interview_id}")


# ---------------- INTERVIEW PAGE ----------------
@app.route("/interview/<interview_id>")
def interview_page(interview_id):
    user = current_user()
    if user is None:
        return redirect("/sign-in")

    interview = get_interview(interview_id)
    if interview is None:
        session["message"] = "Interview not found."
        return redirect("/")
    return render_template("interview.html", user=user, interview=interview)


@app.route("/interview/<interview_id>/call", methods=["POST"])
def start_call(interview_id):
    user = current_user()
    if user is None:
        return {"error": "unauthorized"}, 403

    interview = get_interview(interview_id)
    if interview is None:
        return {"error": "interview not found"}, 404

    existing = get_feedback_by_interview(interview_id, user["id"])
    feedback_id = existing["id"] if existing else None
    key = (user["id"], interview_id)
    try:
        return _call(_start_call(key, user, interview, feedback_id))
    except SessionError as exc:
        return {"error": str(exc)}, 409


@app.route("/interview/<interview_id>/disconnect", methods=["POST"])
def end_call(interview_id):
    user = current_user()
    if user is None:
        return {"error": "unauthorized"}, 403

    state = _call(_end_call((user["id"], interview_id)))
    if state is None:
        return {"error": "no call for this interview"}, 404
    return state


@app.route("/interview/<interview_id>/transcript", methods=["POST"])
def post_transcript(interview_id):
    user = current_user()
    if user is None:
        return {"error": "unauthorized"}, 403

    payload = request.get_json(silent=True) or {}
    role = payload.get("role")
    text = (payload.get("text") or "").strip()
    if role not in ("user", "assistant", "system") or not text:
        return {"error": "role and text are required"}, 400

    final = bool(payload.get("final", True))
    state = _call(_push_transcript((user["id"], interview_id), role, text, final))
    if state is None:
        return {"error": "call is not active"}, 409
    return state


@app.route("/interview/<interview_id>/speech", methods=["POST"])
def post_speech(interview_id):
    user = current_user()
    if user is None:
        return {"error": "unauthorized"}, 403

    payload = request.get_json(silent=True) or {}
    state = _call(_set_speaking((user["id"], interview_id), bool(payload.get("speaking"))))
    if state is None:
        return {"error": "call is not active"}, 409
    return state


@app.route("/interview/<interview_id>/state")
def call_state(interview_id):
    user = current_user()
    if user is None:
        return {"error": "unauthorized"}, 403

    state = _call(_snapshot((user["id"], interview_id)))
    return state if state is not None else _idle_state()


# ---------------- FEEDBACK ----------------
@app.route("/interview/<interview_id>/feedback")
def feedback_page(interview_id):
    user = current_user()
    if user is None:
        return redirect("/sign-in")

    interview = get_interview(interview_id)
    feedback = get_feedback_by_interview(interview_id, user["id"])
    if interview is None or feedback is None:
        session["message"] = "No feedback recorded for this interview yet."
        return redirect("/")
    return render_template("feedback.html", user=user, interview=interview, feedback=feedback)


if __name__ == "__main__":
    # Single process: the proctoring loop and camera live in this interpreter.
    app.run(host="0.0.0.0", port=5000, debug=True, use_reloader=False)
