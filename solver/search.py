# Branch-and-bound search over structural groups
"""Bound-ordered search for the lightest valid design.

The scan is a left fold: every evaluated design produces a new immutable
:class:`SearchState`.  The core is a generator that hands control back every
``CFG.YIELD_EVERY`` evaluations; :func:`run_search` drives it to completion
and :func:`run_search_async` awaits between steps so an event loop stays
responsive.  A :class:`CancelToken` is checked at those same points.
"""
from __future__ import annotations

import asyncio
import logging
import math
import threading
from dataclasses import dataclass, replace
from typing import Any, Callable, Generator, Iterable, Optional, Tuple

from config import CFG
from models import (
    AngleOrientation,
    BracketType,
    Candidate,
    DesignInputs,
    EvaluatedDesign,
    EvaluationFault,
    InfeasibleDesign,
    SearchCancelled,
)
from progress import NullTracer
from solver.bounds import BoundFn, fixing_descent, group_candidates, order_groups

log = logging.getLogger(__name__)

Evaluator = Callable[[Candidate, DesignInputs], EvaluatedDesign]
ProgressFn = Callable[["SearchState", int], Any]


class CancelToken:
    def __init__(self):
        self._event = threading.Event()

    def cancel(self) -> None:
        self._event.set()

    @property
    def cancelled(self) -> bool:
        return self._event.is_set()

    def raise_if_cancelled(self) -> None:
        if self._event.is_set():
            raise SearchCancelled("search cancelled")


# ---------- accumulator ----------

@dataclass(frozen=True)
class SearchState:
    best: Optional[EvaluatedDesign] = None
    best_standard: Optional[EvaluatedDesign] = None
    per_channel: Tuple[Tuple[str, EvaluatedDesign], ...] = ()
    alternatives: Tuple[EvaluatedDesign, ...] = ()
    evaluated: int = 0
    faults: int = 0
    groups_done: int = 0
    pruned: int = 0
    stopped_early: bool = False

    @property
    def best_weight(self) -> float:
        return self.best.weight if self.best is not None else math.inf

    @property
    def best_standard_weight(self) -> float:
        return self.best_standard.weight if self.best_standard is not None else math.inf

    def channel_best(self, family: str) -> Optional[EvaluatedDesign]:
        for name, design in self.per_channel:
            if name == family:
                return design
        return None


def _lighter(design: EvaluatedDesign, current: Optional[EvaluatedDesign]) -> bool:
    return current is None or design.weight < current.weight


def fold_design(state: SearchState, design: EvaluatedDesign, top_n: int) -> SearchState:
    """Account one valid design; the first of equal-weight designs is kept as best."""
    best = design if _lighter(design, state.best) else state.best
    best_standard = state.best_standard
    if design.is_standard_pair and _lighter(design, best_standard):
        best_standard = design

    family = design.candidate.channel_family
    per_channel = state.per_channel
    if _lighter(design, state.channel_best(family)):
        per_channel = tuple((n, d) for n, d in per_channel if n != family) + ((family, design),)

    alternatives = state.alternatives
    if len(alternatives) < top_n or (alternatives and design.weight < alternatives[-1].weight):
        merged = sorted(alternatives + (design,), key=lambda d: d.weight)
        alternatives = tuple(merged[:top_n])

    return replace(
        state,
        best=best,
        best_standard=best_standard,
        per_channel=per_channel,
        alternatives=alternatives,
    )


# ---------- core ----------

def _evaluate(evaluator: Evaluator, candidate: Candidate, inputs: DesignInputs) -> EvaluatedDesign:
    try:
        return evaluator(candidate, inputs)
    except Exception as e:
        raise EvaluationFault(candidate, e) from e


def _report(progress: Optional[ProgressFn], state: SearchState, total: int) -> None:
    if progress is None:
        return
    try:
        progress(state, total)
    except Exception:
        log.debug("progress callback failed", exc_info=True)


def _is_standard_pair(candidate: Candidate) -> bool:
    return (
        candidate.bracket_type is BracketType.STANDARD
        and candidate.angle_orientation is AngleOrientation.STANDARD
    )


def iterate_search(
    candidates: Iterable[Candidate],
    inputs: DesignInputs,
    evaluator: Evaluator,
    *,
    bound: Optional[BoundFn] = None,
    prune: Optional[bool] = None,
    top_n: Optional[int] = None,
    yield_every: Optional[int] = None,
    tracer: Any = None,
    progress: Optional[ProgressFn] = None,
    cancel: Optional[CancelToken] = None,
) -> Generator[SearchState, None, SearchState]:
    """Generator core; yields the running state at each yield point and returns the final one.

    Groups are scanned in ascending bound order.  Once a bound reaches the best
    weight nothing later can be lighter, so the scan stops.  When the bearing is
    above the slab bottom the policy prefers a Standard/Standard design, so those
    groups keep being scanned until their bound also reaches the best such weight.
    """
    tracer = tracer if tracer is not None else NullTracer()
    prune = (not CFG.DISABLE_PRUNING) if prune is None else bool(prune)
    top_n = int(CFG.TOP_N if top_n is None else top_n)
    every = max(1, int(CFG.YIELD_EVERY if yield_every is None else yield_every))
    track_standard = inputs.bsl_above_slab_bottom

    ordered = order_groups(group_candidates(candidates), inputs, bound)
    total = len(ordered)
    state = SearchState()
    since_yield = 0
    tracer.event("search_started", groups=total, prune=prune)
    if cancel is not None:
        cancel.raise_if_cancelled()

    for group_bound, group in ordered:
        if prune and group_bound >= state.best_weight:
            if not (track_standard and group_bound < state.best_standard_weight):
                remaining = total - state.groups_done
                state = replace(state, pruned=state.pruned + remaining, stopped_early=True)
                tracer.event("search_pruned", bound=round(group_bound, 4),
                             best=round(state.best_weight, 4), remaining=remaining)
                break
            if not _is_standard_pair(group.representative):
                state = replace(state, groups_done=state.groups_done + 1, pruned=state.pruned + 1)
                continue

        for fixing in fixing_descent(group, inputs):
            candidate = group.representative.at_fixing(fixing)
            state = replace(state, evaluated=state.evaluated + 1)
            since_yield += 1
            found = False
            try:
                design = _evaluate(evaluator, candidate, inputs)
            except EvaluationFault as fault:
                log.warning("%s", fault)
                tracer.event("evaluation_fault", candidate=candidate.label(), error=str(fault.cause))
                state = replace(state, faults=state.faults + 1)
            else:
                tracer.event("candidate_evaluated", candidate=candidate.label(),
                             valid=design.is_valid, weight=design.weight)
                if design.is_valid and math.isfinite(design.weight):
                    found = True
                    if _lighter(design, state.best):
                        tracer.event("new_best", candidate=candidate.label(), weight=round(design.weight, 4))
                    state = fold_design(state, design, top_n)

            if since_yield >= every:
                since_yield = 0
                _report(progress, state, total)
                yield state
                if cancel is not None:
                    cancel.raise_if_cancelled()
            if found:
                break

        state = replace(state, groups_done=state.groups_done + 1)

    tracer.event("search_finished", evaluated=state.evaluated, pruned=state.pruned, faults=state.faults,
                 best=None if state.best is None else round(state.best.weight, 4))
    _report(progress, state, total)
    return state


def _finish(state: SearchState) -> SearchState:
    if state.best is None:
        raise InfeasibleDesign("No valid design found")
    return state


# ---------- drivers ----------

def run_search(candidates: Iterable[Candidate], inputs: DesignInputs, evaluator: Evaluator,
               **kwargs: Any) -> SearchState:
    """Run the search to completion.

    Raises :class:`InfeasibleDesign` when nothing validates and
    :class:`SearchCancelled` when the token fires.
    """
    steps = iterate_search(candidates, inputs, evaluator, **kwargs)
    while True:
        try:
            next(steps)
        except StopIteration as stop:
            return _finish(stop.value)


async def run_search_async(candidates: Iterable[Candidate], inputs: DesignInputs, evaluator: Evaluator,
                           **kwargs: Any) -> SearchState:
    steps = iterate_search(candidates, inputs, evaluator, **kwargs)
    while True:
        try:
            next(steps)
        except StopIteration as stop:
            return _finish(stop.value)
        await asyncio.sleep(0)


__all__ = [
    "CancelToken",
    "SearchState",
    "fold_design",
    "iterate_search",
    "run_search",
    "run_search_async",
]
