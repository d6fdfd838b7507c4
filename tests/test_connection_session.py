import pytest

from connection_session import apply_connection_edit
from errors import ClientConnectionError
from models import ConnectionConfig, ConnectionStatus, coerce_port, default_port


@pytest.mark.parametrize("value, expected", [
    ("8080", 8080),
    (" 9091 ", 9091),
    ("", 0),
    ("abc", 0),
    ("70000", 0),
    ("-1", 0),
    (None, 0),
    (True, 0),
    (65535, 65535),
])
def test_coerce_port(value, expected):
    assert coerce_port(value) == expected


def test_default_ports():
    assert default_port("qbittorrent") == 8080
    assert default_port("transmission") == 9091
    assert default_port("transmission", use_https=True) == 443


def test_switching_type_and_scheme_resets_port():
    conn = ConnectionConfig(port=1234)
    conn = apply_connection_edit(conn, "downloader_type", "transmission")
    assert conn.port == 9091
    conn = apply_connection_edit(conn, "use_https", True)
    assert conn.port == 443
    conn = apply_connection_edit(conn, "use_https", False)
    assert conn.port == 9091


def test_port_edit_does_not_reset():
    conn = apply_connection_edit(ConnectionConfig(use_https=True, port=443), "port", "8443")
    assert conn.port == 8443
    assert conn.use_https is True


def test_unknown_field_rejected():
    with pytest.raises(KeyError):
        apply_connection_edit(ConnectionConfig(), "proxy", "x")


def test_successful_test_marks_connected(session, backend):
    session.connection.test()
    assert session.connection.status == ConnectionStatus.CONNECTED
    assert session.connection.message == "qBittorrent v4.6.3"
    assert session.connection.is_connected


def test_failed_test_marks_error(session, backend):
    backend.test_error = ClientConnectionError("Login failed: bad credentials")
    session.connection.test()
    assert session.connection.status == ConnectionStatus.ERROR
    assert session.connection.message == "Login failed: bad credentials"


def test_testing_state_blocks_new_test(session, runner):
    runner.deferred = True
    session.connection.test()
    assert session.connection.status == ConnectionStatus.TESTING
    assert not session.connection.can_test
    runner.complete_next()
    assert session.connection.can_test


def test_edit_resets_status_and_message(session):
    session.connection.test()
    session.connection.update("host", "10.0.0.5")
    assert session.connection.status == ConnectionStatus.IDLE
    assert session.connection.message == ""
    assert session.store.connection.host == "10.0.0.5"


def test_result_for_superseded_settings_is_discarded(session, runner):
    runner.deferred = True
    session.connection.test()
    session.connection.update("password", "changed")
    runner.complete_next()
    assert session.connection.status == ConnectionStatus.IDLE
    assert session.connection.message == ""


def test_edit_schedules_autosave(session, backend, scheduler):
    session.connection.update("downloader_type", "transmission")
    scheduler.advance(800)
    assert backend.saved[-1].connection.port == 9091
