import os
import sys
import time
import threading

# Ensure backend/ is on sys.path so sibling imports work
sys.path.insert(0, os.path.dirname(os.path.abspath(__file__)))

from flask import Flask, g, jsonify, request
from werkzeug.exceptions import HTTPException
from dotenv import load_dotenv

from cascade import (
    all_prerequisites,
    apply_manual_transition,
    build_reverse_prereq_map,
    get_direct_unlocks,
    missing_prerequisites,
    prerequisite_edges,
    recompute,
)
from course_state import BLOCKED, cycle_state, normalize_state, to_backend_state
from data_loader import build_course_nodes, load_plan
from stats import compute_stats
from validators import find_stale_completed_courses, validate_nodes_payload

load_dotenv()

app = Flask(__name__)

VERSION = "1.0.0"

# ── Paths ─────────────────────────────────────────────────────────────────────
BACKEND_DIR = os.path.dirname(os.path.abspath(__file__))
PROJECT_ROOT = os.path.dirname(BACKEND_DIR)
_DEFAULT_DATA_PATH = os.path.join(PROJECT_ROOT, "data")
_env_data_path = os.environ.get("DATA_PATH")
if not _env_data_path:
    DATA_PATH = _DEFAULT_DATA_PATH
elif not os.path.isabs(_env_data_path):
    DATA_PATH = os.path.join(PROJECT_ROOT, _env_data_path)
else:
    DATA_PATH = _env_data_path
_data_lock = threading.Lock()
_data_mtime = None


def _env_float(name: str, default: float, minimum: float = 0.0) -> float:
    raw = os.environ.get(name, "")
    try:
        return max(minimum, float(raw))
    except (TypeError, ValueError):
        return default


_SLOW_REQUEST_LOG_MS = _env_float("SLOW_REQUEST_LOG_MS", 750.0, minimum=0.0)


def _data_file_mtime(path: str):
    try:
        if os.path.isdir(path):
            mtimes = [
                os.path.getmtime(os.path.join(path, f))
                for f in os.listdir(path)
                if f.endswith(".csv")
            ]
            return max(mtimes) if mtimes else None
        return os.path.getmtime(path)
    except OSError:
        return None


# ── Startup plan load ──────────────────────────────────────────────────────────
# /simulate/* works on request-supplied nodes, so a missing plan is not fatal.
_data = None
try:
    _data = load_plan(DATA_PATH)
    _data_mtime = _data_file_mtime(DATA_PATH)
    print(f"[OK] Loaded {len(_data['catalog_ids'])} courses from {DATA_PATH}")
except (FileNotFoundError, ValueError) as exc:
    print(f"[WARN] Plan data not loaded ({DATA_PATH}): {exc}", file=sys.stderr)


def _reload_data_if_changed(force: bool = False) -> bool:
    """
    Hot-reload plan data when DATA_PATH changes on disk.

    Returns True when a reload occurred, else False.
    """
    global _data, _data_mtime

    candidate_mtime = _data_file_mtime(DATA_PATH)
    if not force:
        if candidate_mtime is None:
            return False
        if _data_mtime is not None and candidate_mtime <= _data_mtime:
            return False

    with _data_lock:
        latest_mtime = _data_file_mtime(DATA_PATH)
        if not force:
            if latest_mtime is None:
                return False
            if _data_mtime is not None and latest_mtime <= _data_mtime:
                return False

        try:
            new_data = load_plan(DATA_PATH)
        except Exception as exc:
            print(f"[WARN] Plan reload failed; keeping previous plan: {exc}", file=sys.stderr)
            return False

        _data = new_data
        _data_mtime = latest_mtime if latest_mtime is not None else candidate_mtime
        print(f"[OK] Reloaded {len(new_data['catalog_ids'])} courses from {DATA_PATH}")
        return True


def _refresh_data_if_needed() -> None:
    try:
        _reload_data_if_changed()
    except Exception as exc:
        print(f"[WARN] Plan reload check failed: {exc}", file=sys.stderr)


# -- Request timing --------------------------------------------------------
@app.before_request
def _start_request_timer():
    g._request_start_time = time.perf_counter()


@app.after_request
def _add_security_headers(response):
    response.headers["X-Frame-Options"] = "DENY"
    response.headers["X-Content-Type-Options"] = "nosniff"
    response.headers["Referrer-Policy"] = "same-origin"

    started = getattr(g, "_request_start_time", None)
    if started is not None:
        duration_ms = (time.perf_counter() - started) * 1000.0
        if duration_ms >= _SLOW_REQUEST_LOG_MS:
            endpoint = request.endpoint or "unknown"
            print(
                f"[SLOW] {request.method} {request.path} "
                f"endpoint={endpoint} status={response.status_code} duration_ms={duration_ms:.1f}"
            )
    return response


# -- Response helpers ------------------------------------------------------
def _error_response(error_code: str, message: str, status: int, **extra):
    payload = {"mode": "error", "error": {"error_code": error_code, "message": message}}
    payload.update(extra)
    return jsonify(payload), status


def _serialize_node(node: dict) -> dict:
    return {**node, "all_prerequisites": all_prerequisites(node)}


def _serialize_missing(missing: dict) -> dict:
    return {
        "regularized_needed": [_serialize_node(n) for n in missing["regularized_needed"]],
        "approved_needed": [_serialize_node(n) for n in missing["approved_needed"]],
    }


def _simulation_payload(nodes: list[dict], **extra) -> dict:
    payload = {
        "nodes": [_serialize_node(n) for n in nodes],
        "stats": compute_stats(nodes),
        "warnings": find_stale_completed_courses(nodes),
    }
    payload.update(extra)
    return payload


def _read_nodes_body():
    """Returns (body, nodes, None) or (None, None, error_response)."""
    body = request.get_json(force=True, silent=True)
    if not isinstance(body, dict):
        return None, None, _error_response("INVALID_INPUT", "Request body must be a JSON object.", 400)
    nodes, error = validate_nodes_payload(body.get("nodes"))
    if error:
        return None, None, _error_response("INVALID_INPUT", error, 400)
    return body, nodes, None


def _find_target(body: dict, nodes: list[dict]):
    """Returns (node, None) or (None, error_response)."""
    raw_id = body.get("course_id")
    try:
        course_id = int(raw_id)
    except (TypeError, ValueError):
        return None, _error_response("INVALID_INPUT", "course_id must be an integer.", 400)
    node = next((n for n in nodes if n["id"] == course_id), None)
    if node is None:
        return None, _error_response("UNKNOWN_COURSE", f"Course {course_id} is not in nodes.", 404)
    return node, None


# -- Health endpoint --------------------------------------------------------
@app.route("/health", methods=["GET"])
def health_endpoint():
    return jsonify({
        "status": "ok",
        "version": VERSION,
        "plan_loaded": _data is not None,
    })


@app.errorhandler(Exception)
def handle_unexpected_error(e):
    if isinstance(e, HTTPException):
        return e
    print(f"[WARN] Unhandled error on {request.method} {request.path}: {e!r}", file=sys.stderr)
    return _error_response("SERVER_ERROR", "An unexpected server error occurred.", 500)


# ── Routes ─────────────────────────────────────────────────────────────────────
@app.route("/plan", methods=["GET", "POST"])
def plan_endpoint():
    """Default plan, cascaded. POST {"user_states": {id: backend_state}} merges a user's progress."""
    _refresh_data_if_needed()
    if _data is None:
        return _error_response("PLAN_NOT_LOADED", "Plan data is not loaded.", 503)

    user_states = {}
    if request.method == "POST":
        body = request.get_json(force=True, silent=True)
        if not isinstance(body, dict):
            return _error_response("INVALID_INPUT", "Request body must be a JSON object.", 400)
        raw_states = body.get("user_states") or {}
        if not isinstance(raw_states, dict):
            return _error_response("INVALID_INPUT", "user_states must be an object of course id → state.", 400)
        for key, value in raw_states.items():
            try:
                user_states[int(key)] = value
            except (TypeError, ValueError):
                return _error_response("INVALID_INPUT", f"user_states key '{key}' is not a course id.", 400)

    nodes = recompute(build_course_nodes(_data["courses_df"], _data["prereqs_df"], user_states))
    reverse_map = build_reverse_prereq_map(nodes)
    return jsonify(_simulation_payload(
        nodes,
        edges=prerequisite_edges(nodes),
        unlocks={str(cid): get_direct_unlocks(cid, reverse_map) for cid in reverse_map},
    ))


@app.route("/simulate/recompute", methods=["POST"])
def recompute_endpoint():
    _, nodes, error = _read_nodes_body()
    if error:
        return error
    return jsonify(_simulation_payload(recompute(nodes)))


@app.route("/simulate/transition", methods=["POST"])
def transition_endpoint():
    """Explicit state change from the course detail sheet (long press)."""
    body, nodes, error = _read_nodes_body()
    if error:
        return error
    target, error = _find_target(body, nodes)
    if error:
        return error

    state = normalize_state(body.get("state"))
    if state is None or state == BLOCKED:
        return _error_response(
            "INVALID_INPUT",
            "state must be one of: approved, regularized, available.",
            400,
        )
    if target["state"] == BLOCKED:
        return _error_response(
            "COURSE_BLOCKED",
            f"Course {target['id']} is blocked by missing prerequisites.",
            409,
            missing=_serialize_missing(missing_prerequisites(nodes, target)),
        )

    updated = apply_manual_transition(nodes, target["id"], state)
    return jsonify(_simulation_payload(
        updated,
        sync={"course_id": target["id"], "backend_state": to_backend_state(state)},
    ))


@app.route("/simulate/cycle", methods=["POST"])
def cycle_endpoint():
    """Quick tap: advance the course one state, or explain why it is blocked."""
    body, nodes, error = _read_nodes_body()
    if error:
        return error
    target, error = _find_target(body, nodes)
    if error:
        return error

    if target["state"] == BLOCKED:
        return jsonify(_simulation_payload(
            recompute(nodes),
            changed=False,
            missing=_serialize_missing(missing_prerequisites(nodes, target)),
        ))

    new_state = cycle_state(target["state"])
    updated = apply_manual_transition(nodes, target["id"], new_state)
    return jsonify(_simulation_payload(
        updated,
        changed=True,
        sync={"course_id": target["id"], "backend_state": to_backend_state(new_state)},
    ))


@app.route("/simulate/missing", methods=["POST"])
def missing_endpoint():
    body, nodes, error = _read_nodes_body()
    if error:
        return error
    target, error = _find_target(body, nodes)
    if error:
        return error
    return jsonify({
        "course_id": target["id"],
        "missing": _serialize_missing(missing_prerequisites(nodes, target)),
    })


# -- Canonical API routes for the mobile client ------------------------
app.add_url_rule("/api/health", endpoint="api_health", view_func=health_endpoint, methods=["GET"])
app.add_url_rule("/api/plan", endpoint="api_plan", view_func=plan_endpoint, methods=["GET", "POST"])
app.add_url_rule("/api/simulate/recompute", endpoint="api_recompute", view_func=recompute_endpoint, methods=["POST"])
app.add_url_rule("/api/simulate/transition", endpoint="api_transition", view_func=transition_endpoint, methods=["POST"])
app.add_url_rule("/api/simulate/cycle", endpoint="api_cycle", view_func=cycle_endpoint, methods=["POST"])
app.add_url_rule("/api/simulate/missing", endpoint="api_missing", view_func=missing_endpoint, methods=["POST"])


# -- API catch-all (404 for unknown /api/* routes) -------------------
@app.route("/api/<path:rest>", methods=["GET", "POST", "PUT", "DELETE", "PATCH"])
def api_catch_all(rest):
    return jsonify({"error": f"/api/{rest} not found"}), 404


if __name__ == "__main__":
    port = int(os.environ.get("PORT", 5000))
    debug = os.environ.get("FLASK_DEBUG", "1") == "1"
    app.run(host="0.0.0.0", port=port, debug=debug)
