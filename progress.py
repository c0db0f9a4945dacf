"""Shared optimisation progress for the ``/progress`` endpoint.

One lock-guarded dict, mirrored to a JSON file so a snapshot taken in another
worker process sees the running search.  Phase changes, search trace events
and run completion go to ``logs/solver_attempts.log``.
"""
from __future__ import annotations

import json
import logging
import math
import os
import time
import threading
from pathlib import Path
from typing import Any, Dict, Optional

PROGRESS_LOCK = threading.Lock()


def _state_file_path() -> Path:
    configured = os.environ.get("PROGRESS_STATE_FILE")
    if configured:
        return Path(configured)
    return Path(__file__).resolve().parent / "logs" / "progress_state.json"


STATE_FILE = _state_file_path()
STATE_FILE_TMP = STATE_FILE.with_name(STATE_FILE.name + ".tmp")
_LAST_STATE_MTIME: float = 0.0


def _init_logger() -> logging.Logger:
    logger = logging.getLogger("solver.attempt_log")
    if logger.handlers:
        return logger
    log_path = Path(__file__).resolve().parent / "logs" / "solver_attempts.log"
    try:
        log_path.parent.mkdir(parents=True, exist_ok=True)
        handler = logging.FileHandler(log_path, encoding="utf-8")
        handler.setFormatter(logging.Formatter("%(asctime)s [%(levelname)s] %(message)s",
                                               datefmt="%Y-%m-%d %H:%M:%S"))
        logger.addHandler(handler)
        logger.setLevel(logging.INFO)
        logger.propagate = False
    except OSError:
        # progress still works without the file log
        logger.handlers.clear()
    return logger


ATTEMPT_LOGGER = _init_logger()


def log_attempt_detail(event: str, **fields: Any) -> None:
    """One ``event | key=value ...`` line in the attempt log; empty fields are left out."""
    if not ATTEMPT_LOGGER.handlers:
        return
    extras = " ".join(f"{k}={v}" for k, v in fields.items() if v is not None and v != "")
    if extras:
        ATTEMPT_LOGGER.info("%s | %s", event, extras)
    else:
        ATTEMPT_LOGGER.info("%s", event)


class NullTracer:
    def event(self, name: str, **fields: Any) -> None:
        return None


class AttemptLogTracer:
    """Search trace events into the attempt log.

    ``skip`` names events too chatty for the file (per-candidate evaluations
    by default).
    """

    def __init__(self, skip: Optional[set] = None):
        self.skip = set(skip) if skip is not None else {"candidate_evaluated"}

    def event(self, name: str, **fields: Any) -> None:
        if name not in self.skip:
            log_attempt_detail(name, **fields)


PROGRESS: Dict[str, Any] = {
    "status": "Idle",          # Idle | Solving | Solved | Error
    "phase": "",               # parse | search | select | layout
    "phase_total": "",         # structural groups to scan
    "attempt": "",             # label of the running best candidate
    "percent": 0.0,            # 0..100
    "evaluated": 0,            # evaluator calls so far
    "pruned": 0,               # structural groups skipped by the bound
    "best_weight": None,       # kg/m of the running best
    "elapsed_start": None,     # run start (epoch seconds)
    "elapsed": 0.0,
    "message": "",
    "done": False,
    "ok": None,
    "result_url": "",
    "run_id": 0,               # bumped by every reset()
}

# (phase, started at) for the phase log line
_PHASE_CLOCK: Dict[str, Any] = {"phase": "", "since": None}


# ---------- helpers ----------

def _now() -> float:
    return time.time()


def _fmt_elapsed(seconds: float) -> str:
    seconds = max(0.0, float(seconds))
    if seconds < 60:
        return f"{int(seconds)}s"
    m, s = divmod(int(seconds), 60)
    if m < 60:
        return f"{m}m {s}s"
    h, m = divmod(m, 60)
    return f"{h}h {m}m"


def _persist_locked() -> None:
    global _LAST_STATE_MTIME
    try:
        STATE_FILE.parent.mkdir(parents=True, exist_ok=True)
        with STATE_FILE_TMP.open("w", encoding="utf-8") as fh:
            json.dump(PROGRESS, fh, ensure_ascii=False, separators=(",", ":"))
        STATE_FILE_TMP.replace(STATE_FILE)
        _LAST_STATE_MTIME = STATE_FILE.stat().st_mtime
    except OSError:
        # the in-memory state stays authoritative for this process
        pass


def _load_persisted_locked(force: bool = False) -> None:
    global _LAST_STATE_MTIME
    try:
        stat = STATE_FILE.stat()
    except OSError:
        return
    if not force and stat.st_mtime <= _LAST_STATE_MTIME:
        return
    try:
        with STATE_FILE.open("r", encoding="utf-8") as fh:
            data = json.load(fh)
    except (OSError, ValueError):
        return
    if isinstance(data, dict):
        for key in PROGRESS:
            if key in data:
                PROGRESS[key] = data[key]
    _LAST_STATE_MTIME = stat.st_mtime


def _touch_elapsed_locked() -> None:
    t0 = PROGRESS.get("elapsed_start")
    if t0 is not None:
        PROGRESS["elapsed"] = _now() - float(t0)


def _close_phase_locked(now: float) -> None:
    phase, since = _PHASE_CLOCK["phase"], _PHASE_CLOCK["since"]
    if phase and since is not None:
        log_attempt_detail("Phase finished", phase=phase, duration=f"{max(0.0, now - since):.2f}s")


# ---------- run lifecycle ----------

def reset() -> None:
    with PROGRESS_LOCK:
        try:
            run_id = int(PROGRESS.get("run_id", 0))
        except (TypeError, ValueError):
            run_id = 0
        PROGRESS.update({
            "status": "Idle", "phase": "", "phase_total": "", "attempt": "",
            "percent": 0.0, "evaluated": 0, "pruned": 0, "best_weight": None,
            "elapsed_start": None, "elapsed": 0.0, "message": "",
            "done": False, "ok": None, "result_url": "", "run_id": run_id + 1,
        })
        _PHASE_CLOCK.update(phase="", since=None)
        _persist_locked()


def start_timer() -> None:
    with PROGRESS_LOCK:
        PROGRESS["elapsed_start"] = _now()
        PROGRESS["elapsed"] = 0.0
        log_attempt_detail("Run started", run_id=PROGRESS["run_id"])
        _persist_locked()


def set_done(ok: Any = None, *, reason: Any = None, message: Any = None) -> None:
    """Mark the run complete.

    ``ok`` decides the final status when given (``Solved``/``Error``); without
    it a still-idle run is reported as solved.  ``message`` wins over
    ``reason`` for the text surfaced in the ``message`` field.
    """
    final_message = message if message is not None else reason
    with PROGRESS_LOCK:
        _touch_elapsed_locked()
        if ok is not None:
            PROGRESS["status"] = "Solved" if ok else "Error"
            PROGRESS["ok"] = bool(ok)
        elif PROGRESS.get("status") in ("", "Idle", None):
            PROGRESS["status"] = "Solved"
            PROGRESS["ok"] = True
        PROGRESS["percent"] = 100.0
        PROGRESS["done"] = True
        if final_message is not None:
            PROGRESS["message"] = str(final_message)
        _close_phase_locked(_now())
        _PHASE_CLOCK.update(phase="", since=None)
        log_attempt_detail(
            "Run finished",
            status=PROGRESS["status"],
            ok=PROGRESS["ok"],
            elapsed=f"{PROGRESS['elapsed']:.2f}s",
            evaluated=PROGRESS["evaluated"],
            pruned=PROGRESS["pruned"],
            best_weight=PROGRESS["best_weight"],
            message=PROGRESS["message"],
        )
        _persist_locked()


# ---------- setters (tolerant) ----------

def set_status(v: Any) -> None:
    with PROGRESS_LOCK:
        PROGRESS["status"] = str(v)
        _persist_locked()


def set_phase(v: Any) -> None:
    phase = "" if v is None else str(v)
    with PROGRESS_LOCK:
        PROGRESS["phase"] = phase
        if phase != _PHASE_CLOCK["phase"]:
            now = _now()
            _close_phase_locked(now)
            _PHASE_CLOCK.update(phase=phase, since=now)
            if phase:
                log_attempt_detail("Phase started", phase=phase)
        _persist_locked()


def set_phase_total(v: Any) -> None:
    with PROGRESS_LOCK:
        PROGRESS["phase_total"] = "" if v is None else str(v)
        _persist_locked()


def set_attempt(v: Any) -> None:
    with PROGRESS_LOCK:
        PROGRESS["attempt"] = "" if v is None else str(v)
        _persist_locked()


def set_progress_pct(pct: Any) -> None:
    try:
        f = float(pct)
    except (TypeError, ValueError):
        f = 0.0
    with PROGRESS_LOCK:
        PROGRESS["percent"] = max(0.0, min(100.0, f))
        _touch_elapsed_locked()
        _persist_locked()


def set_counters(evaluated: Any = None, pruned: Any = None) -> None:
    with PROGRESS_LOCK:
        for key, value in (("evaluated", evaluated), ("pruned", pruned)):
            if value is None:
                continue
            try:
                PROGRESS[key] = max(0, int(value))
            except (TypeError, ValueError):
                PROGRESS[key] = 0
        _touch_elapsed_locked()
        _persist_locked()


def set_best_weight(w: Any) -> None:
    try:
        f = float(w)
    except (TypeError, ValueError):
        f = None
    if f is not None and not math.isfinite(f):
        f = None
    with PROGRESS_LOCK:
        PROGRESS["best_weight"] = None if f is None else round(f, 4)
        _persist_locked()


def set_elapsed(seconds: Any) -> None:
    try:
        f = float(seconds)
    except (TypeError, ValueError):
        f = 0.0
    with PROGRESS_LOCK:
        PROGRESS["elapsed"] = max(0.0, f)
        _persist_locked()


def set_message(msg: Any) -> None:
    with PROGRESS_LOCK:
        PROGRESS["message"] = "" if msg is None else str(msg)
        _persist_locked()


def set_result_url(url: Any) -> None:
    with PROGRESS_LOCK:
        PROGRESS["result_url"] = "" if url is None else str(url)
        _persist_locked()


# ---------- snapshot ----------

def snapshot() -> Dict[str, Any]:
    with PROGRESS_LOCK:
        _load_persisted_locked()
        _touch_elapsed_locked()
        out = {key: PROGRESS[key] for key in PROGRESS if key != "elapsed_start"}
        out["elapsed_str"] = _fmt_elapsed(PROGRESS["elapsed"])
        return out


with PROGRESS_LOCK:
    _load_persisted_locked(force=True)
