import asyncio
import enum
import logging
from collections import defaultdict


_log = logging.getLogger(__name__)

EVENTS = ("call-start", "call-end", "speech-start", "speech-end", "message", "error")


class CallStatus(enum.Enum):
    INACTIVE = "INACTIVE"
    CONNECTING = "CONNECTING"
    ACTIVE = "ACTIVE"
    FINISHED = "FINISHED"


class CallSession:
    """Voice call capability. Subclasses implement start() and stop()."""

    def __init__(self):
        self._listeners = defaultdict(list)

    def on(self, event, handler):
        if event not in EVENTS:
            raise ValueError(f"unknown call event {event!r}")
        self._listeners[event].append(handler)

    def off(self, event, handler):
        handlers = self._listeners.get(event, [])
        if handler in handlers:
            handlers.remove(handler)

    def listener_count(self, event=None):
        if event is not None:
            return len(self._listeners.get(event, []))
        return sum(len(h) for h in self._listeners.values())

    def emit(self, event, *args):
        for handler in list(self._listeners.get(event, [])):
            handler(*args)

    async def start(self, descriptor, variables):
        raise NotImplementedError

    async def stop(self):
        raise NotImplementedError


class LocalCallSession(CallSession):
    """In-process call driven by the web UI.

    The browser does speech recognition and posts final transcripts; this
    session turns them into the same events a hosted voice SDK would emit.
    """

    def __init__(self):
        super().__init__()
        self.active = False
        self.descriptor = None
        self.variables = None

    async def start(self, descriptor, variables):
        self.descriptor = descriptor
        self.variables = dict(variables)
        await asyncio.sleep(0)
        self.active = True
        _log.info("Call started with %s", descriptor)
        self.emit("call-start")

    async def stop(self):
        if not self.active:
            return
        self.active = False
        _log.info("Call ended")
        self.emit("call-end")

    def push_transcript(self, role, text, final=True):
        self.emit("message", {
            "type": "transcript",
            "role": role,
            "transcript": text,
            "transcriptType": "final" if final else "interim",
        })

    def speaking(self, is_speaking):
        self.emit("speech-start" if is_speaking else "speech-end")

    def fail(self, error):
        self.emit("error", error)
