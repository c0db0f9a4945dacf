# app.py: JSON endpoints around the optimiser; progress no-cache
from __future__ import annotations
import logging
import os
import time
from dataclasses import asdict
from typing import Any, Dict, Tuple

from flask import Flask, request, send_from_directory, jsonify, url_for

from solver.orchestrator import solve_orchestrator
from solver.run_layout import plan_run
from config import CFG
from inputs import parse_run_request
from io_files import write_result_json, write_summary
from models import InvalidInputs, OptimizerError

from progress import (
    reset as progress_reset,
    snapshot as progress_snapshot,
    start_timer,
    set_status, set_phase, set_attempt, set_elapsed, set_progress_pct,
    set_done, set_result_url,
)

log = logging.getLogger(__name__)

BASE_DIR = os.path.dirname(os.path.abspath(__file__))


def _resolve_output_paths(configured: str, fallback: str) -> Tuple[str, str, str]:
    name = (configured or "").strip() or fallback
    if os.path.isabs(name):
        full_path = name
    else:
        full_path = os.path.abspath(os.path.join(BASE_DIR, name))
    directory = os.path.dirname(full_path) or BASE_DIR
    filename = os.path.basename(full_path) or fallback
    return full_path, directory, filename


_RESULT_FULL_PATH, RESULT_DIR, RESULT_FILENAME = _resolve_output_paths(
    CFG.RESULT_JSON, "result.json"
)
_SUMMARY_FULL_PATH, SUMMARY_DIR, SUMMARY_FILENAME = _resolve_output_paths(
    CFG.SUMMARY_TXT, "summary.txt"
)

LAST_RESULT: Dict[str, Any] = {
    "ok": False,
    "reason": "No run yet",
    "elapsed_str": "0s",
    "result": None,
    "meta": {},
    "result_filename": RESULT_FILENAME,
    "summary_filename": SUMMARY_FILENAME,
}

app = Flask(__name__)


@app.after_request
def _no_cache_progress(resp):
    try:
        if request.path == "/progress":
            resp.headers["Cache-Control"] = "no-store, max-age=0"
            resp.headers["Pragma"] = "no-cache"
            resp.headers["Expires"] = "0"
    except Exception:
        pass
    return resp


def _fmt_elapsed(seconds: float) -> str:
    if seconds < 1:
        return "0s"
    m, s = divmod(int(seconds), 60)
    if m == 0:
        return f"{s}s"
    h, m = divmod(m, 60)
    if h == 0:
        return f"{m}m {s}s"
    return f"{h}h {m}m {s}s"


def _merge_like_mapping() -> Dict[str, Any]:
    merged: Dict[str, Any] = {}
    payload = request.get_json(silent=True)
    if isinstance(payload, dict):
        merged.update(payload)

    try:
        form_dict = request.form.to_dict(flat=False)
    except Exception:
        form_dict = dict(request.form or {})
    for k, v in form_dict.items():
        merged.setdefault(k, v if isinstance(v, list) else [v])

    try:
        args_dict = request.args.to_dict(flat=False)
    except Exception:
        args_dict = dict(request.args or {})
    for k, v in args_dict.items():
        merged.setdefault(k, v if isinstance(v, list) else [v])

    return merged


def _finalize_solver_progress(ok_flag: bool, reason_text: str) -> None:
    """Write the terminal solver status without clobbering failure states."""

    set_status("Solved" if ok_flag else "Error")
    set_done(ok_flag, reason=reason_text)


def _persist(result) -> None:
    try:
        write_result_json(result, BASE_DIR)
        write_summary(result, BASE_DIR)
    except OSError as e:
        log.warning("could not write result files: %s", e)


@app.route("/optimize", methods=["POST"])
def optimize():
    progress_reset()
    start_timer()
    set_status("Solving")
    set_phase("parse")
    set_attempt("")
    set_progress_pct(0)

    t0 = time.time()
    like = _merge_like_mapping()
    ok, result, reason, meta = solve_orchestrator(like)
    elapsed = time.time() - t0

    if ok and result is not None:
        _persist(result)
        body = {"ok": True, "result": result.to_dict(), "meta": meta}
        reason_text = "; ".join(result.alerts) or "Design selected"
    else:
        body = {"ok": False, "error": reason, "meta": meta}
        reason_text = reason or "No valid design found"

    _finalize_solver_progress(bool(ok), reason_text)
    set_elapsed(elapsed)
    LAST_RESULT.update({
        "ok": bool(ok),
        "reason": reason_text,
        "elapsed_str": _fmt_elapsed(elapsed),
        "result": body.get("result"),
        "meta": meta,
    })
    set_result_url(url_for("result_latest"))

    if not ok and isinstance(reason, str) and reason.startswith("Bad input"):
        return jsonify(body), 400
    if not ok:
        return jsonify(body), 422
    return jsonify(body)


@app.route("/run-layout", methods=["POST"])
def run_layout():
    like = _merge_like_mapping()
    try:
        run_length, centres = parse_run_request(like)
        layout = plan_run(run_length, centres)
    except InvalidInputs as e:
        return jsonify({"ok": False, "error": str(e)}), 400
    except OptimizerError as e:
        return jsonify({"ok": False, "error": str(e)}), 422
    return jsonify({"ok": True, "layout": asdict(layout)})


@app.route("/result/latest")
def result_latest():
    return jsonify(LAST_RESULT)


@app.route("/download/result")
def download_result():
    return send_from_directory(RESULT_DIR, RESULT_FILENAME, as_attachment=True)


@app.route("/download/summary")
def download_summary():
    return send_from_directory(SUMMARY_DIR, SUMMARY_FILENAME, as_attachment=True)


@app.route("/progress")
def progress():
    return jsonify(progress_snapshot())


if __name__ == "__main__":
    app.run(debug=False)
