import argparse
import logging
import os

from flask import Flask, jsonify, request, session

from backend import Backend
from log_setup import setup_logging
from replace_session import ReplaceSession
from task_runner import call_inline

logger = logging.getLogger(__name__)

app = Flask(__name__)
app.secret_key = os.urandom(24)

# Shared with whoever owns the session. 'call' runs a function on the
# session's event thread and returns its result.
WEB_CONFIG = {
    'session': None,
    'call': call_inline,
    'username': 'admin',
    'password': 'password',
    'host': '127.0.0.1',
    'port': 8787,
}


def login_required(f):
    def wrapper(*args, **kwargs):
        if not session.get('logged_in'):
            return "Unauthorized", 403
        if WEB_CONFIG['session'] is None:
            return "No session", 503
        return f(*args, **kwargs)
    wrapper.__name__ = f.__name__
    return wrapper


def _on_session_thread(fn, *args):
    return WEB_CONFIG['call'](fn, *args)


def _state():
    return jsonify(_on_session_thread(WEB_CONFIG['session'].snapshot))


def _form_or_json():
    if request.is_json:
        return request.get_json(silent=True) or {}
    return request.form


def _parse_value(field, value):
    if field in ('use_https', 'enabled') and isinstance(value, str):
        return value.strip().lower() in ("1", "true", "yes", "y", "on")
    return value


def _action(fn, *args):
    """Run a session action; 409 when its preconditions refused it."""
    sess = WEB_CONFIG['session']
    accepted = _on_session_thread(fn, *args)
    if accepted is False:
        return jsonify({'error': 'Action not allowed in the current state', 'state': _on_session_thread(sess.snapshot)}), 409
    return _state()


# Guarded actions: the check and the action run as one call on the session
# thread, so concurrent requests cannot both pass the check.

def _test_unless_running(sess):
    if not sess.connection.can_test:
        return False
    sess.connection.test()
    return True


def _add_rule_unless_used(sess, domain):
    if not sess.catalog.is_selectable(domain):
        return False
    sess.rules.add_from_domain(domain)
    return True


@app.route('/api/v2/auth/login', methods=['POST'])
def api_login():
    user = request.form.get('username')
    pw = request.form.get('password')
    if user == WEB_CONFIG['username'] and pw == WEB_CONFIG['password']:
        session['logged_in'] = True
        return "Ok."
    return "Fails.", 403


@app.route('/api/v2/auth/logout', methods=['POST'])
def api_logout():
    session.pop('logged_in', None)
    return "Ok."


@app.route('/api/v2/state')
@login_required
def get_state():
    return _state()


@app.route('/api/v2/connection', methods=['POST'])
@login_required
def update_connection():
    data = _form_or_json()
    field = data.get('field')
    if not field:
        return "Missing field", 400
    if data.get('value') is None:
        return "Missing value", 400
    try:
        return _action(WEB_CONFIG['session'].connection.update, field, _parse_value(field, data.get('value')))
    except KeyError:
        return f"Unknown field: {field}", 400


@app.route('/api/v2/connection/test', methods=['POST'])
@login_required
def test_connection():
    return _action(_test_unless_running, WEB_CONFIG['session'])


@app.route('/api/v2/rules/add', methods=['POST'])
@login_required
def add_rule():
    return _action(WEB_CONFIG['session'].rules.add)


@app.route('/api/v2/rules/update', methods=['POST'])
@login_required
def update_rule():
    data = _form_or_json()
    if data.get('value') is None:
        return "Missing value", 400
    try:
        index = int(data.get('index'))
        return _action(WEB_CONFIG['session'].rules.update, index, data.get('field'), _parse_value(data.get('field'), data.get('value')))
    except (TypeError, ValueError, KeyError, IndexError) as e:
        return f"Invalid rule update: {e}", 400


@app.route('/api/v2/rules/remove', methods=['POST'])
@login_required
def remove_rule():
    data = _form_or_json()
    try:
        index = int(data.get('index'))
    except (TypeError, ValueError):
        return "Invalid index", 400
    return _action(WEB_CONFIG['session'].rules.remove, index)


@app.route('/api/v2/rules/add_from_domain', methods=['POST'])
@login_required
def add_rule_from_domain():
    domain = _form_or_json().get('domain')
    if not domain:
        return "Missing domain", 400
    return _action(_add_rule_unless_used, WEB_CONFIG['session'], domain)


@app.route('/api/v2/trackers/fetch', methods=['POST'])
@login_required
def fetch_trackers():
    return _action(WEB_CONFIG['session'].catalog.fetch)


@app.route('/api/v2/trackers/close', methods=['POST'])
@login_required
def close_trackers():
    return _action(WEB_CONFIG['session'].catalog.close_picker)


@app.route('/api/v2/scan', methods=['POST'])
@login_required
def scan():
    return _action(WEB_CONFIG['session'].workflow.scan)


@app.route('/api/v2/execute', methods=['POST'])
@login_required
def execute():
    return _action(WEB_CONFIG['session'].workflow.execute)


@app.route('/api/v2/matches/toggle', methods=['POST'])
@login_required
def toggle_matches():
    return _action(WEB_CONFIG['session'].workflow.toggle_matches)


def run_server():
    app.run(host=WEB_CONFIG['host'], port=WEB_CONFIG['port'], threaded=True)


def serve_headless(host=None, port=None, username=None, password=None):
    """Run the API in the foreground with its own session thread."""
    setup_logging()
    sess = ReplaceSession(Backend())
    dispatcher = sess.dispatcher
    WEB_CONFIG.update({
        'session': sess,
        'call': dispatcher.call_and_wait,
        'host': host or WEB_CONFIG['host'],
        'port': port or WEB_CONFIG['port'],
        'username': username or WEB_CONFIG['username'],
        'password': password or WEB_CONFIG['password'],
    })
    dispatcher.call_and_wait(sess.start)
    try:
        run_server()
    finally:
        dispatcher.call_and_wait(sess.close)
        dispatcher.shutdown()


if __name__ == "__main__":
    parser = argparse.ArgumentParser(description="TrackerRelo web API")
    parser.add_argument("--host", default=WEB_CONFIG['host'])
    parser.add_argument("--port", type=int, default=WEB_CONFIG['port'])
    parser.add_argument("--username", default=WEB_CONFIG['username'])
    parser.add_argument("--password", default=WEB_CONFIG['password'])
    args = parser.parse_args()
    serve_headless(args.host, args.port, args.username, args.password)
