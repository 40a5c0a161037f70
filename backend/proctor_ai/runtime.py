import asyncio
import logging
import threading


_log = logging.getLogger(__name__)


class EventLoopThread:
    """One asyncio loop in a daemon thread, shared by all request handlers.

    Proctoring state is only ever touched from coroutines running here.
    """

    def __init__(self, name="proctor-loop"):
        self.name = name
        self._loop = None
        self._thread = None
        self._lock = threading.Lock()

    @property
    def running(self):
        return self._thread is not None and self._thread.is_alive()

    def start(self):
        with self._lock:
            if self.running:
                return
            self._loop = asyncio.new_event_loop()
            self._thread = threading.Thread(target=self._run, name=self.name, daemon=True)
            self._thread.start()
            _log.debug("Event loop thread %s started", self.name)

    def _run(self):
        asyncio.set_event_loop(self._loop)
        try:
            self._loop.run_forever()
        finally:
            self._loop.close()

    def submit(self, coro):
        self.start()
        return asyncio.run_coroutine_threadsafe(coro, self._loop)

    def call(self, coro, timeout=None):
        return self.submit(coro).result(timeout)

    def stop(self, timeout=5.0):
        with self._lock:
            if not self.running:
                return
            self._loop.call_soon_threadsafe(self._loop.stop)
            self._thread.join(timeout)
            self._thread = None
