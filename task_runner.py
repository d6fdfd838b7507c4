"""Worker boundary and timers for the session.

Session state is owned by one event thread (the wx main loop in the GUI, a
SerialDispatcher when headless). Blocking backend calls run on a thread pool
and their outcome is handed back to the event thread through ``call_after``.
"""

from __future__ import annotations

import concurrent.futures
import logging
import threading

logger = logging.getLogger(__name__)


def call_inline(fn, *args):
    return fn(*args)


class SerialDispatcher:
    """A single worker thread acting as the event thread when there is no GUI."""

    def __init__(self):
        self._executor = concurrent.futures.ThreadPoolExecutor(max_workers=1, thread_name_prefix="session")

    def call_after(self, fn, *args):
        return self._executor.submit(self._run, fn, args)

    def call_and_wait(self, fn, *args, timeout=None):
        return self.call_after(fn, *args).result(timeout=timeout)

    def _run(self, fn, args):
        try:
            return fn(*args)
        except Exception:
            logger.exception("Unhandled error on the session thread")
            raise

    def shutdown(self, wait=True):
        self._executor.shutdown(wait=wait)


class TaskRunner:
    def __init__(self, call_after=call_inline, max_workers=4):
        self.call_after = call_after
        self.thread_pool = concurrent.futures.ThreadPoolExecutor(max_workers=max_workers, thread_name_prefix="backend")

    def submit(self, fn, args, on_success, on_error):
        """Run ``fn(*args)`` in the pool; report back via on_success(result) or on_error(exc)."""

        def _run():
            try:
                result = fn(*args)
            except Exception as e:
                self.call_after(on_error, e)
                return
            self.call_after(on_success, result)

        return self.thread_pool.submit(_run)

    def shutdown(self, wait=True):
        self.thread_pool.shutdown(wait=wait)


class ThreadTimer:
    """One-shot timer whose callback is dispatched to the event thread."""

    def __init__(self, delay_ms, fn, call_after=call_inline):
        self._timer = threading.Timer(delay_ms / 1000.0, call_after, args=(fn,))
        self._timer.daemon = True
        self._timer.start()

    def cancel(self):
        self._timer.cancel()


def thread_call_later(call_after=call_inline):
    def call_later(delay_ms, fn):
        return ThreadTimer(delay_ms, fn, call_after)

    return call_later


class Debouncer:
    """Coalesces rapid triggers into one call after ``delay_ms`` of quiet.

    At most one timer is ever armed: each trigger cancels the previous one
    before scheduling a new one.
    """

    def __init__(self, delay_ms, callback, call_later):
        self.delay_ms = delay_ms
        self.callback = callback
        self._call_later = call_later
        self._pending = None
        # A timer that already fired cannot be cancelled; its queued callback
        # is recognised as superseded by this counter instead.
        self._generation = 0

    @property
    def pending(self):
        return self._pending is not None

    def trigger(self):
        self.cancel()
        generation = self._generation
        self._pending = self._call_later(self.delay_ms, lambda: self._fire(generation))

    def cancel(self):
        self._generation += 1
        if self._pending is not None:
            self._pending.cancel()
            self._pending = None

    def _fire(self, generation):
        if generation != self._generation:
            return
        self._pending = None
        self.callback()
