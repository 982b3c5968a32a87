import asyncio
import concurrent.futures
import logging
import threading

logger = logging.getLogger(__name__)


def _log_late_failure(future):
    if future.cancelled():
        return
    error = future.exception()
    if error is not None:
        logger.error("Background task failed after its caller stopped waiting", exc_info=error)


class BackgroundLoop:
    """
    One asyncio event loop running in a daemon thread.

    Flask views are synchronous; they hand coroutines to this loop and
    block until the result is ready. Every per-scope lock and the history
    store live on this single loop.
    """

    def __init__(self, name="caixa-loop"):
        self.name = name
        self.loop = None
        self._thread = None
        self._ready = threading.Event()
        self._start_lock = threading.Lock()

    @property
    def running(self):
        return self._thread is not None and self._thread.is_alive()

    def start(self):
        with self._start_lock:
            if self.running:
                return
            self._ready.clear()
            self.loop = asyncio.new_event_loop()
            self._thread = threading.Thread(target=self._run, name=self.name, daemon=True)
            self._thread.start()
        self._ready.wait()
        logger.info("Background event loop started (%s)", self.name)

    def _run(self):
        asyncio.set_event_loop(self.loop)
        self.loop.call_soon(self._ready.set)
        self.loop.run_forever()

    def submit(self, coro, timeout=None):
        """
        Run a coroutine on the loop and wait for its result.

        Exceptions raised inside the coroutine are re-raised here. On timeout
        TimeoutError is raised but the coroutine keeps running to completion.
        """
        if not self.running:
            self.start()

        future = asyncio.run_coroutine_threadsafe(coro, self.loop)
        try:
            return future.result(timeout)
        except concurrent.futures.TimeoutError:
            future.add_done_callback(_log_late_failure)
            raise TimeoutError(f"coroutine did not finish within {timeout}s")

    def stop(self, timeout=5):
        if not self.running:
            return
        self.loop.call_soon_threadsafe(self.loop.stop)
        self._thread.join(timeout)
        self.loop.close()
        self._thread = None
        logger.info("Background event loop stopped (%s)", self.name)
