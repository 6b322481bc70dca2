#!/usr/bin/env python3
"""
supplyDash Web UI - Flask application for browsing, searching and editing
supplier, inventory and wheel-motor rows held in the hosted database.
"""

from flask import Flask, render_template, request, jsonify, redirect, url_for, flash, Response, g, session
from pathlib import Path
import sys
import os
import time
from functools import partial

# Prometheus metrics
from prometheus_client import CollectorRegistry, Counter, Histogram, generate_latest, CONTENT_TYPE_LATEST

# Add the parent directory to Python path to import supplydash modules
sys.path.insert(0, str(Path(__file__).parent.parent))

from supplydash.core.v1.config import (
    load_config,
    get_store_backend,
    get_collection_order_by,
    get_activity_settings,
)
from supplydash.core.v1.records import Record, SHAPE_FOR_COLLECTION, shape_for_collection
from supplydash.core.v1.editor import RowSetEditor, Notification
from supplydash.core.v1.filters import ALL_COUNTRIES
from supplydash.core.v1.store import open_store, connect_supabase
from supplydash.core.v1.session import open_auth, SessionError, MIN_PASSWORD_LENGTH
from supplydash.core.v1.activity import recent_activity
from supplydash.core.v1.metrics import dashboard_metrics, status_items, table_selector

app = Flask(__name__)
app.secret_key = os.environ.get('SD_WEB_SECRET', 'dev-only-insecure-secret')

DEFAULT_TABLE = 'suppliers'

# -----------------------
# Prometheus instrumentation
# -----------------------
_METRICS_ENV = os.environ.get('METRICS_ENV', 'prod')
_SERVICE_NAME = os.environ.get('SERVICE_NAME', 'app')

METRICS_REGISTRY = CollectorRegistry()

HTTP_REQUESTS_TOTAL = Counter(
    'sd_web_http_requests_total',
    'Total HTTP requests',
    ['method', 'path', 'status', 'env', 'service'],
    registry=METRICS_REGISTRY,
)

HTTP_REQUEST_DURATION_SECONDS = Histogram(
    'sd_web_http_request_duration_seconds',
    'HTTP request duration in seconds',
    ['method', 'path', 'status', 'env', 'service'],
    buckets=(0.05, 0.1, 0.3, 1, 3, 10),
    registry=METRICS_REGISTRY,
)

STORE_ERRORS_TOTAL = Counter(
    'sd_web_store_errors_total',
    'Backing store operations that failed',
    ['collection', 'env', 'service'],
    registry=METRICS_REGISTRY,
)

@app.before_request
def _metrics_before_request():
    g._metrics_t0 = time.time()

@app.after_request
def _metrics_after_request(response: Response):
    try:
        t0 = getattr(g, '_metrics_t0', None)
        dt = (time.time() - t0) if t0 is not None else None
        method = str(request.method or 'GET')
        # Prefer route rule (stable cardinality); fallback to path
        rule = request.url_rule.rule if getattr(request, 'url_rule', None) else None
        path_label = str(rule or request.path or '/')
        status = str(getattr(response, 'status_code', 0))
        HTTP_REQUESTS_TOTAL.labels(method, path_label, status, _METRICS_ENV, _SERVICE_NAME).inc()
        if dt is not None:
            HTTP_REQUEST_DURATION_SECONDS.labels(method, path_label, status, _METRICS_ENV, _SERVICE_NAME).observe(dt)
    except Exception as e:
        # Never break responses on metrics errors
        app.logger.debug(f"[supplyDash] metrics update failed: {e}")
    return response

@app.get('/metrics')
def _metrics_endpoint():
    data = generate_latest(METRICS_REGISTRY)
    return Response(response=data, status=200, mimetype=CONTENT_TYPE_LATEST)

# -----------------------
# Backing service adapters (lazily created, shared by all requests).
# The store client stays on the project key; sign-in and sign-out run on
# their own clients so one user's session never changes another's queries.
# -----------------------
_CLIENT = None
_STORE = None
_AUTH = None

def get_config() -> dict:
    return load_config()

def _get_client(cfg: dict):
    global _CLIENT
    if get_store_backend(cfg) != 'supabase':
        return None
    if _CLIENT is None:
        _CLIENT = connect_supabase(cfg)
    return _CLIENT

def get_store():
    global _STORE
    if _STORE is None:
        cfg = get_config()
        _STORE = open_store(cfg, client=_get_client(cfg))
        app.logger.info(f"[supplyDash] Using {get_store_backend(cfg)} store")
    return _STORE

def get_auth():
    global _AUTH
    if _AUTH is None:
        cfg = get_config()
        _AUTH = open_auth(cfg, client_factory=partial(connect_supabase, cfg))
    return _AUTH

# -----------------------
# Auth / Session helpers
# -----------------------
_PUBLIC_ENDPOINTS = {'auth_page', 'static', '_metrics_endpoint'}

def current_email() -> str | None:
    return session.get('user_email') or None

@app.before_request
def _require_session():
    if request.endpoint is None or request.endpoint in _PUBLIC_ENDPOINTS:
        return None
    if current_email():
        return None
    if request.path.startswith('/api/'):
        return jsonify({'success': False, 'error': 'Not signed in'}), 401
    return redirect(url_for('auth_page'))

@app.context_processor
def inject_user():
    return {'user_email': current_email()}

@app.route('/auth', methods=['GET', 'POST'])
def auth_page():
    """Sign-in form. Already signed-in users go straight to the dashboard."""
    if current_email():
        return redirect(url_for('index'))
    email = ''
    if request.method == 'POST':
        email = request.form.get('email', '')
        try:
            user = get_auth().sign_in(email, request.form.get('password', ''))
        except SessionError as e:
            flash(e.message, 'error')
            return render_template('auth.html', email=email, min_password_length=MIN_PASSWORD_LENGTH)
        session['user_email'] = user.email
        session['access_token'] = user.access_token
        app.logger.info(f"[supplyDash] Signed in {user.email}")
        return redirect(url_for('index'))
    return render_template('auth.html', email=email, min_password_length=MIN_PASSWORD_LENGTH)

@app.route('/logout', methods=['GET'])
def http_logout():
    """Sign out of the hosted auth service and clear the local session."""
    error = None
    try:
        get_auth().sign_out(session.get('access_token'))
    except SessionError as e:
        error = e.message
    session.clear()
    if error:
        flash(error, 'error')
    return redirect(url_for('auth_page'))

# -----------------------
# Record helpers
# -----------------------

def _flash_notification(n: Notification) -> None:
    flash(n.description, 'error' if n.destructive else 'success')

class _Collected:
    """Notifier that keeps notifications for a JSON response."""

    def __init__(self):
        self.items: list[Notification] = []

    def __call__(self, n: Notification) -> None:
        self.items.append(n)

    @property
    def error(self) -> str | None:
        errs = [n.description for n in self.items if n.destructive]
        return errs[-1] if errs else None

def _load_records(collection: str) -> list[Record]:
    cfg = get_config()
    return get_store().fetch_records(collection, order_by=get_collection_order_by(collection, cfg))

def _build_editor(collection: str, notify) -> RowSetEditor:
    shape = shape_for_collection(collection)
    editor = RowSetEditor(_load_records(collection), get_store(), notify, default_shape=shape)
    editor.search_term = request.values.get('q') or ''
    editor.selected_country = (request.values.get('country') or ALL_COUNTRIES).strip() or ALL_COUNTRIES
    return editor

def _find(editor: RowSetEditor, record_id: str) -> Record | None:
    for rec in editor.records:
        if rec.id == record_id:
            return rec
    return None

def _apply_fields(editor: RowSetEditor, values) -> None:
    """Feed submitted values through the dialog's per-field change callback."""
    for name in editor.dialog.record.fields:
        if name in values:
            val = values.get(name)
            editor.change_field(name, '' if val is None else str(val))

def _table_counts(current: str, current_count: int) -> dict:
    counts = {current: current_count}
    store = get_store()
    for collection in SHAPE_FOR_COLLECTION:
        if collection == current:
            continue
        try:
            counts[collection] = len(store.fetch_all(collection))
        except Exception as e:
            app.logger.warning(f"[supplyDash] Could not count {collection}: {e}")
            counts[collection] = 0
    return counts

def _back_to_table(collection: str):
    args = {'table': collection}
    q = request.values.get('q') or ''
    country = (request.values.get('country') or '').strip()
    if q:
        args['q'] = q
    if country and country != ALL_COUNTRIES:
        args['country'] = country
    return redirect(url_for('index', **args))

def _render_dashboard(collection: str, editor: RowSetEditor):
    cfg = get_config()
    act_collection, act_limit = get_activity_settings(cfg)
    try:
        activity = recent_activity(get_store(), current_email(), limit=act_limit, collection=act_collection)
    except Exception as e:
        app.logger.warning(f"[supplyDash] Activity feed unavailable: {e}")
        activity = []
    return render_template(
        'index.html',
        collection=collection,
        editor=editor,
        search_bar=editor.search_bar(),
        header=editor.header(),
        rows=editor.rows(),
        dialog=editor.dialog,
        metrics=dashboard_metrics(cfg),
        status=status_items(cfg),
        tiles=table_selector(_table_counts(collection, len(editor.records)), collection),
        activity=activity,
    )

def _selected_table() -> str:
    table = (request.args.get('table') or DEFAULT_TABLE).strip()
    if table not in SHAPE_FOR_COLLECTION:
        flash(f"Unknown table '{table}'", 'error')
        return DEFAULT_TABLE
    return table

# -----------------------
# Pages
# -----------------------

@app.route('/')
def index():
    """Main dashboard: metrics, table selector, records table, status and activity."""
    try:
        collection = _selected_table()
        editor = _build_editor(collection, _flash_notification)
        return _render_dashboard(collection, editor)
    except Exception as e:
        return render_template('error.html', error=str(e))

@app.route('/records/<collection>/add')
def records_add(collection):
    """Dashboard with the edit dialog open on a blank record."""
    if collection not in SHAPE_FOR_COLLECTION:
        flash(f"Unknown table '{collection}'", 'error')
        return redirect(url_for('index'))
    try:
        editor = _build_editor(collection, _flash_notification)
        editor.add()
        return _render_dashboard(collection, editor)
    except Exception as e:
        return render_template('error.html', error=str(e))

@app.route('/records/<collection>/edit')
def records_edit(collection):
    """Dashboard with the edit dialog open on an existing record."""
    if collection not in SHAPE_FOR_COLLECTION:
        flash(f"Unknown table '{collection}'", 'error')
        return redirect(url_for('index'))
    try:
        editor = _build_editor(collection, _flash_notification)
        rec = _find(editor, (request.args.get('id') or '').strip())
        if rec is None:
            flash('Item not found', 'error')
            return _back_to_table(collection)
        editor.edit(rec)
        return _render_dashboard(collection, editor)
    except Exception as e:
        return render_template('error.html', error=str(e))

@app.route('/records/<collection>/save', methods=['POST'])
def records_save(collection):
    """Insert (empty id) or update the submitted record.

    On failure the dashboard is rendered again with the dialog still open and
    the submitted values intact.
    """
    if collection not in SHAPE_FOR_COLLECTION:
        flash(f"Unknown table '{collection}'", 'error')
        return redirect(url_for('index'))
    try:
        editor = _build_editor(collection, _flash_notification)
        record_id = (request.form.get('id') or '').strip()
        if record_id:
            rec = _find(editor, record_id)
            if rec is None:
                flash('Item not found', 'error')
                return _back_to_table(collection)
            editor.edit(rec)
        else:
            editor.edit(Record.blank(shape_for_collection(collection)))
        _apply_fields(editor, request.form)
        if editor.save():
            return _back_to_table(collection)
        STORE_ERRORS_TOTAL.labels(collection, _METRICS_ENV, _SERVICE_NAME).inc()
        return _render_dashboard(collection, editor)
    except Exception as e:
        flash(f'Error saving item: {e}', 'error')
        return _back_to_table(collection)

@app.route('/records/<collection>/delete', methods=['POST'])
def records_delete(collection):
    """Delete a record by id, then return to the table."""
    if collection not in SHAPE_FOR_COLLECTION:
        flash(f"Unknown table '{collection}'", 'error')
        return redirect(url_for('index'))
    try:
        editor = _build_editor(collection, _flash_notification)
        rec = _find(editor, (request.form.get('id') or '').strip())
        if rec is None:
            flash('Item not found', 'error')
        elif not editor.delete(rec):
            STORE_ERRORS_TOTAL.labels(collection, _METRICS_ENV, _SERVICE_NAME).inc()
    except Exception as e:
        flash(f'Error deleting item: {e}', 'error')
    return _back_to_table(collection)

# -----------------------
# JSON API
# -----------------------

def _record_json(rec: Record) -> dict:
    return {
        'id': rec.id,
        'shape': rec.shape.name,
        'collection': rec.collection,
        'fields': dict(rec.values),
        'cells': rec.cells(),
    }

@app.route('/api/records/<collection>', methods=['GET'])
def api_records_list(collection):
    """List records of a collection.

    Query params:
      - q: search term over code and description (optional)
      - country: country selector, 'all' by default (optional)
    """
    if collection not in SHAPE_FOR_COLLECTION:
        return jsonify({'success': False, 'error': f"Unknown collection '{collection}'"}), 404
    try:
        editor = _build_editor(collection, _Collected())
        bar = editor.search_bar()
        return jsonify({
            'success': True,
            'collection': collection,
            'shape': editor.schema_shape().name,
            'columns': editor.header(),
            'countries': bar.options,
            'records': [_record_json(r) for r in editor.filtered()],
        })
    except Exception as e:
        return jsonify({'success': False, 'error': str(e)}), 400

@app.route('/api/records/<collection>', methods=['POST'])
def api_records_save(collection):
    """Insert or update a record from JSON.

    Request JSON body: { id: "" for new records, <field>: <string>, ... }
    """
    if collection not in SHAPE_FOR_COLLECTION:
        return jsonify({'success': False, 'error': f"Unknown collection '{collection}'"}), 404
    try:
        payload = request.get_json(silent=True) or {}
        notes = _Collected()
        editor = _build_editor(collection, notes)
        record_id = str(payload.get('id') or '').strip()
        if record_id:
            rec = _find(editor, record_id)
            if rec is None:
                return jsonify({'success': False, 'error': 'Item not found'}), 404
            editor.edit(rec)
        else:
            editor.edit(Record.blank(shape_for_collection(collection)))
        _apply_fields(editor, payload)
        record = editor.dialog.record
        if not editor.save():
            STORE_ERRORS_TOTAL.labels(collection, _METRICS_ENV, _SERVICE_NAME).inc()
            return jsonify({'success': False, 'error': notes.error, 'record': _record_json(record)}), 400
        return jsonify({'success': True, 'created': record.is_new, 'message': notes.items[-1].description})
    except Exception as e:
        return jsonify({'success': False, 'error': str(e)}), 400

@app.route('/api/records/<collection>/delete', methods=['POST'])
def api_records_delete(collection):
    """Delete a record. Request JSON body: { id }"""
    if collection not in SHAPE_FOR_COLLECTION:
        return jsonify({'success': False, 'error': f"Unknown collection '{collection}'"}), 404
    try:
        payload = request.get_json(silent=True) or {}
        record_id = str(payload.get('id') or '').strip()
        if not record_id:
            return jsonify({'success': False, 'error': 'Missing required field: id'}), 400
        notes = _Collected()
        editor = _build_editor(collection, notes)
        rec = _find(editor, record_id)
        if rec is None:
            return jsonify({'success': False, 'error': 'Item not found'}), 404
        if not editor.delete(rec):
            STORE_ERRORS_TOTAL.labels(collection, _METRICS_ENV, _SERVICE_NAME).inc()
            return jsonify({'success': False, 'error': notes.error}), 400
        return jsonify({'success': True, 'id': record_id})
    except Exception as e:
        return jsonify({'success': False, 'error': str(e)}), 400

@app.route('/api/activity', methods=['GET'])
def api_activity():
    """Recent activity for the signed-in user (newest first)."""
    try:
        act_collection, act_limit = get_activity_settings(get_config())
        entries = recent_activity(get_store(), current_email(), limit=act_limit, collection=act_collection)
        return jsonify({
            'success': True,
            'email': current_email(),
            'activity': [
                {'action': e.action, 'detail': e.detail, 'created_at': e.created_at} for e in entries
            ],
        })
    except Exception as e:
        return jsonify({'success': False, 'error': str(e)}), 400


if __name__ == '__main__':
    print(" Starting supplyDash Web UI...")
    print(" Access the interface at: http://localhost:8080")
    app.run(debug=True, host='0.0.0.0', port=8080)
