import os
import sys

import pytest

sys.path.insert(0, os.path.abspath(os.path.join(os.path.dirname(__file__), '..')))

from models import AppConfig, ReplaceResult, ScanResult, TrackerEntry  # noqa: E402


class ManualScheduler:
    """call_later replacement driven by an explicit clock."""

    def __init__(self):
        self.now = 0
        self.timers = []

    def call_later(self, delay_ms, fn):
        timer = _ManualTimer(self.now + delay_ms, fn)
        self.timers.append(timer)
        return timer

    @property
    def live_timers(self):
        return [t for t in self.timers if not t.cancelled and not t.fired]

    def advance(self, ms):
        self.now += ms
        for t in list(self.timers):
            if not t.cancelled and not t.fired and t.due <= self.now:
                t.fired = True
                t.fn()


class _ManualTimer:
    def __init__(self, due, fn):
        self.due = due
        self.fn = fn
        self.cancelled = False
        self.fired = False

    def cancel(self):
        self.cancelled = True


class FakeRunner:
    """TaskRunner stand-in. Runs calls inline, or queues them when deferred."""

    def __init__(self):
        self.deferred = False
        self.pending = []
        self.submitted = []

    def call_after(self, fn, *args):
        fn(*args)

    def submit(self, fn, args, on_success, on_error):
        self.submitted.append(fn)
        call = (fn, args, on_success, on_error)
        if self.deferred:
            self.pending.append(call)
        else:
            self._run(call)

    def complete_next(self):
        self._run(self.pending.pop(0))

    def _run(self, call):
        fn, args, on_success, on_error = call
        try:
            result = fn(*args)
        except Exception as e:
            on_error(e)
            return
        on_success(result)

    def shutdown(self, wait=True):
        pass


class FakeBackend:
    def __init__(self):
        self.stored = None
        self.load_error = None
        self.save_error = None
        self.test_error = None
        self.test_message = "qBittorrent v4.6.3"
        self.trackers = []
        self.fetch_error = None
        self.scan_result = ScanResult(total_torrents=0, matched_torrents=0)
        self.scan_error = None
        self.replace_results = []
        self.execute_error = None
        self.saved = []
        self.calls = []

    def load_config(self):
        self.calls.append("load_config")
        if self.load_error:
            raise self.load_error
        return self.stored or AppConfig.default()

    def save_config(self, config):
        self.calls.append("save_config")
        if self.save_error:
            raise self.save_error
        self.saved.append(config)

    def test_connection(self, connection):
        self.calls.append("test_connection")
        if self.test_error:
            raise self.test_error
        return self.test_message

    def list_trackers(self, connection):
        self.calls.append("list_trackers")
        if self.fetch_error:
            raise self.fetch_error
        return list(self.trackers)

    def scan_torrents(self, config):
        self.calls.append("scan_torrents")
        if self.scan_error:
            raise self.scan_error
        return self.scan_result

    def execute_replace(self, config):
        self.calls.append("execute_replace")
        if self.execute_error:
            raise self.execute_error
        return list(self.replace_results)


@pytest.fixture
def scheduler():
    return ManualScheduler()


@pytest.fixture
def runner():
    return FakeRunner()


@pytest.fixture
def backend():
    return FakeBackend()


@pytest.fixture
def session(backend, runner, scheduler):
    from replace_session import ReplaceSession

    return ReplaceSession(backend, runner=runner, call_later=scheduler.call_later)


@pytest.fixture
def make_entries():
    def _make(*pairs):
        return [TrackerEntry(domain=d, count=c) for d, c in pairs]
    return _make


@pytest.fixture
def make_results():
    def _make(n, failed=0):
        out = [ReplaceResult(f"T{i}", f"http://old.example.com/{i}", f"http://new.example.com/{i}", True) for i in range(n - failed)]
        out += [ReplaceResult(f"F{i}", "http://old.example.com/x", "http://new.example.com/x", False, "boom") for i in range(failed)]
        return out
    return _make
