import threading

from task_runner import Debouncer, SerialDispatcher, TaskRunner


def test_debouncer_keeps_single_live_timer(scheduler):
    calls = []
    d = Debouncer(800, lambda: calls.append(scheduler.now), scheduler.call_later)
    for _ in range(5):
        d.trigger()
        scheduler.advance(100)
    assert len(scheduler.live_timers) == 1
    assert d.pending
    scheduler.advance(600)
    assert calls == []
    scheduler.advance(100)
    assert calls == [1200]
    assert not d.pending


def test_debouncer_cancel_drops_pending_call(scheduler):
    calls = []
    d = Debouncer(800, lambda: calls.append(1), scheduler.call_later)
    d.trigger()
    d.cancel()
    scheduler.advance(1000)
    assert calls == []
    assert scheduler.live_timers == []


def test_debouncer_ignores_superseded_fire(scheduler):
    calls = []
    d = Debouncer(800, lambda: calls.append(1), scheduler.call_later)
    d.trigger()
    stale = scheduler.live_timers[0]
    d.trigger()
    # A timer that had already fired before the retrigger reaches the callback late.
    stale.fn()
    assert calls == []
    scheduler.advance(800)
    assert calls == [1]


def test_task_runner_reports_success_and_error():
    runner = TaskRunner()
    got = []
    done = threading.Event()

    def on_error(e):
        got.append(("err", str(e)))
        done.set()

    def boom():
        raise ValueError("nope")

    runner.submit(lambda a, b: a + b, (2, 3), lambda r: got.append(("ok", r)), on_error).result(timeout=5)
    runner.submit(boom, (), lambda r: got.append(("ok", r)), on_error).result(timeout=5)
    assert done.wait(5)
    runner.shutdown()
    assert got == [("ok", 5), ("err", "nope")]


def test_task_runner_dispatches_through_call_after():
    dispatched = []
    runner = TaskRunner(call_after=lambda fn, *args: dispatched.append((fn, args)))
    runner.submit(lambda: "x", (), print, print).result(timeout=5)
    runner.shutdown()
    assert dispatched == [(print, ("x",))]


def test_serial_dispatcher_runs_on_one_thread():
    dispatcher = SerialDispatcher()
    names = [dispatcher.call_and_wait(lambda: threading.current_thread().name, timeout=5) for _ in range(3)]
    dispatcher.shutdown()
    assert len(set(names)) == 1
    assert names[0].startswith("session")
