# Orchestrator: generate -> bound-ordered search -> selection policy -> run layout
from __future__ import annotations

import time
import traceback
from dataclasses import replace
from typing import Any, Dict, List, Optional, Tuple

from channels import ChannelCatalogue
from evaluator import DefaultEvaluator
from inputs import parse_design_inputs
from models import (
    DesignInputs,
    InfeasibleDesign,
    InvalidInputs,
    OptimizationResult,
    OptimizerError,
    SearchCancelled,
)
from progress import (
    AttemptLogTracer,
    log_attempt_detail,
    set_attempt,
    set_best_weight,
    set_counters,
    set_elapsed,
    set_message,
    set_phase,
    set_phase_total,
    set_progress_pct,
    set_status,
)
from solver.bounds import group_candidates
from solver.combinations import generate_candidates
from solver.policy import select
from solver.run_layout import plan_run
from solver.search import CancelToken, SearchState, run_search, run_search_async

# share of the progress bar given to the search phase
_SEARCH_PCT = (5.0, 90.0)


# ---------- helpers ----------

def _search_progress(state: SearchState, total: int) -> None:
    lo, hi = _SEARCH_PCT
    frac = (state.groups_done / float(total)) if total else 1.0
    set_progress_pct(lo + (hi - lo) * frac)
    set_counters(state.evaluated, state.pruned)
    set_best_weight(state.best_weight)
    if state.best is not None:
        set_attempt(state.best.candidate.label())


def _prepare(inputs: DesignInputs, evaluator, catalogue: Optional[ChannelCatalogue]):
    evaluator = evaluator if evaluator is not None else DefaultEvaluator(catalogue)
    candidates = generate_candidates(inputs, catalogue)
    log_attempt_detail(
        "Run setup",
        slab=inputs.slab_thickness,
        cavity=inputs.cavity_width,
        bsl=inputs.support_level,
        load=round(inputs.characteristic_load, 3),
        candidates=len(candidates),
        extension=inputs.max_allowable_bracket_extension if inputs.enable_angle_extension else None,
    )
    return evaluator, candidates


def _finish(state: SearchState, inputs: DesignInputs, candidates: List, t0: float,
            top_n: Optional[int]) -> OptimizationResult:
    stats = {
        "candidates": len(candidates),
        "evaluated": state.evaluated,
        "pruned": state.pruned,
        "faults": state.faults,
        "stopped_early": state.stopped_early,
    }
    result = select(
        state.best,
        state.best_standard,
        state.alternatives,
        [design for _family, design in state.per_channel],
        bsl_above_slab_bottom=inputs.bsl_above_slab_bottom,
        top_n=top_n,
        stats=stats,
    )
    if inputs.run_length:
        result = _with_run_layout(result, inputs)
    result.stats["elapsed"] = round(time.time() - t0, 3)
    return result


def _with_run_layout(result: OptimizationResult, inputs: DesignInputs) -> OptimizationResult:
    centres = result.selected.candidate.bracket_centres
    try:
        layout = plan_run(inputs.run_length, centres)
    except OptimizerError as e:
        log_attempt_detail("Run layout failed", run_length=inputs.run_length, centres=centres, error=e)
        return replace(result, alerts=result.alerts + (f"Run layout unavailable: {e}",))
    return replace(result, run_layout=layout)


# ---------- public entry points ----------

def run_optimization(inputs: DesignInputs, *, evaluator=None, catalogue: Optional[ChannelCatalogue] = None,
                     tracer: Any = None, progress=None, cancel: Optional[CancelToken] = None,
                     prune: Optional[bool] = None, top_n: Optional[int] = None) -> OptimizationResult:
    """Lightest valid design for ``inputs`` with alternatives and alerts.

    Raises :class:`InfeasibleDesign` when no candidate validates.
    """
    t0 = time.time()
    evaluator, candidates = _prepare(inputs, evaluator, catalogue)
    state = run_search(candidates, inputs, evaluator, tracer=tracer, progress=progress,
                       cancel=cancel, prune=prune, top_n=top_n)
    return _finish(state, inputs, candidates, t0, top_n)


async def run_optimization_async(inputs: DesignInputs, *, evaluator=None,
                                 catalogue: Optional[ChannelCatalogue] = None, tracer: Any = None,
                                 progress=None, cancel: Optional[CancelToken] = None,
                                 prune: Optional[bool] = None, top_n: Optional[int] = None) -> OptimizationResult:
    t0 = time.time()
    evaluator, candidates = _prepare(inputs, evaluator, catalogue)
    state = await run_search_async(candidates, inputs, evaluator, tracer=tracer, progress=progress,
                                   cancel=cancel, prune=prune, top_n=top_n)
    return _finish(state, inputs, candidates, t0, top_n)


def solve_orchestrator(payload: Dict[str, Any], *, cancel: Optional[CancelToken] = None,
                       catalogue: Optional[ChannelCatalogue] = None) -> Tuple[bool, Optional[OptimizationResult], Optional[str], Dict[str, Any]]:
    """
    Returns: (ok, result, reason, meta)
    Drives the shared progress state; never raises for bad input or an
    infeasible design.
    """
    t0 = time.time()
    try:
        set_status("Solving")
        set_phase("parse")
        set_progress_pct(0.0)
        inputs = parse_design_inputs(payload, catalogue)

        set_phase("search")
        set_attempt("Generating combinations")
        set_progress_pct(_SEARCH_PCT[0])
        evaluator, candidates = _prepare(inputs, None, catalogue)
        set_phase_total(len(group_candidates(candidates)))
        state = run_search(candidates, inputs, evaluator, tracer=AttemptLogTracer(),
                           progress=_search_progress, cancel=cancel)

        set_phase("select")
        set_attempt("Applying selection policy")
        result = _finish(state, inputs, candidates, t0, None)

        elapsed = time.time() - t0
        set_status("Solved")
        set_elapsed(elapsed)
        set_best_weight(result.selected.weight)
        set_message(f"Selected {result.selected.candidate.label()} at {result.selected.weight:.3f} kg/m")
        return True, result, None, {"elapsed": elapsed, "stats": dict(result.stats)}

    except InvalidInputs as e:
        set_status("Error")
        set_message(str(e))
        return False, None, f"Bad input: {e}", {"reason": str(e)}
    except InfeasibleDesign as e:
        set_status("Error")
        set_message(str(e))
        return False, None, str(e), {"reason": str(e)}
    except SearchCancelled as e:
        set_status("Error")
        set_message("Cancelled")
        return False, None, "Cancelled", {"reason": str(e)}
    except Exception as e:
        set_status("Error")
        reason = f"orchestrator exception: {type(e).__name__}: {e}"
        log_attempt_detail("Run crashed", error=reason)
        traceback.print_exc()
        return False, None, reason, {"trace": reason}


__all__ = ["run_optimization", "run_optimization_async", "solve_orchestrator"]
