import logging

from errors import ExecuteError, ScanError
from models import MatchedTorrent, Rule, ScanResult, WorkflowState


def _matches(n):
    return tuple(
        MatchedTorrent(f"h{i}", f"Torrent {i}", f"http://old.example.com/{i}", f"http://new.example.com/{i}")
        for i in range(n)
    )


def _ready(session, backend, total=10, matched=3):
    session.store.replace_rules([Rule("old.example.com", "new.example.com")])
    session.connection.test()
    backend.scan_result = ScanResult(total_torrents=total, matched_torrents=matched, matches=_matches(matched))


def test_scan_requires_connection(session):
    session.store.replace_rules([Rule("old.example.com", "new.example.com")])
    assert not session.workflow.can_scan
    assert session.workflow.scan() is False


def test_scan_requires_active_rule(session):
    session.connection.test()
    session.store.replace_rules([Rule("old.example.com", "new.example.com", enabled=False)])
    assert not session.workflow.can_scan


def test_scan_then_execute_clears_preview(session, backend, make_results):
    _ready(session, backend)
    assert session.workflow.scan() is True
    result = session.workflow.scan_result
    assert (result.total_torrents, result.matched_torrents, result.match_percent) == (10, 3, 30)
    assert session.workflow.can_execute

    backend.replace_results = make_results(3, failed=1)
    done = []
    assert session.workflow.execute(on_done=done.append) is True
    assert session.workflow.scan_result is None
    assert not session.workflow.show_matches
    assert session.workflow.state == WorkflowState.IDLE
    assert [r.success for r in done[0]] == [True, True, False]
    assert not session.workflow.can_execute


def test_execute_requires_matches(session, backend):
    _ready(session, backend, total=4, matched=0)
    session.workflow.scan()
    assert session.workflow.scan_result.matched_torrents == 0
    assert session.workflow.execute() is False
    assert "execute_replace" not in backend.calls


def test_scan_and_execute_are_exclusive(session, backend, runner):
    _ready(session, backend)
    runner.deferred = True
    session.workflow.scan()
    assert session.workflow.is_scanning
    assert session.workflow.scan() is False
    assert session.workflow.execute() is False
    runner.complete_next()

    session.workflow.execute()
    assert session.workflow.is_executing
    assert session.workflow.scan() is False
    assert session.workflow.execute() is False
    runner.complete_next()
    assert session.workflow.state == WorkflowState.IDLE


def test_rescan_drops_previous_result_first(session, backend, runner):
    _ready(session, backend)
    session.workflow.scan()
    session.workflow.toggle_matches()
    assert session.workflow.show_matches
    runner.deferred = True
    session.workflow.scan()
    assert session.workflow.scan_result is None
    assert not session.workflow.show_matches


def test_scan_failure_returns_to_idle(session, backend, caplog):
    _ready(session, backend)
    backend.scan_error = ScanError("Connection failed")
    with caplog.at_level(logging.ERROR):
        session.workflow.scan()
    assert session.workflow.state == WorkflowState.IDLE
    assert session.workflow.scan_result is None
    assert "Scan failed: Connection failed" in caplog.text


def test_execute_failure_keeps_preview(session, backend):
    _ready(session, backend)
    session.workflow.scan()
    backend.execute_error = ExecuteError("Connection failed")
    done = []
    session.workflow.execute(on_done=done.append)
    assert session.workflow.scan_result is not None
    assert session.workflow.can_execute
    assert done == []


def test_toggle_matches_without_result_is_noop(session):
    session.workflow.toggle_matches()
    assert not session.workflow.show_matches


def test_scan_uses_current_config(session, backend, runner):
    _ready(session, backend)
    runner.deferred = True
    session.workflow.scan()
    fn, args, _, _ = runner.pending[0]
    assert args[0].rules == (Rule("old.example.com", "new.example.com"),)
