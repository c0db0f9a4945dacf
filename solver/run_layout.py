# Continuous-run angle layout on CP-SAT
from __future__ import annotations

import logging
import math
from typing import Dict, List, Optional, Sequence

from ortools.sat.python import cp_model as _cp

from config import CFG
from models import AnglePiece, InvalidInputs, OptimizerError, RunLayout

log = logging.getLogger(__name__)

MAX_ANGLE_LENGTH = 1490
GAP = 10
LENGTH_INCREMENT = 5
MIN_EDGE_DISTANCE = 35
SLOT_PITCH = 50
LONG_ANGLE_THRESHOLD = 150
MIN_BRACKETS_FOR_LONG_ANGLE = 2
# one piece of 1mm needs the two end gaps around it
MIN_RUN_LENGTH = 1 + 2 * GAP

STANDARD_LENGTH_TABLE: Dict[int, List[int]] = {
    500: [1490, 990],
    450: [1340, 890],
    400: [1190, 790],
    350: [1390, 1040, 690],
    300: [1490, 1190, 890, 590],
    250: [1490, 1240, 990, 740, 490],
    200: [1390, 1190, 990, 790, 590, 390],
}


# ---------- piece geometry ----------

def standard_lengths(bracket_centres: int, max_length: int = MAX_ANGLE_LENGTH) -> List[int]:
    """Stock lengths for a spacing: table values, else k*Bcc - gap on the 5mm grid."""
    if int(bracket_centres) in STANDARD_LENGTH_TABLE:
        return list(STANDARD_LENGTH_TABLE[int(bracket_centres)])
    out = []
    k = (max_length + GAP) // int(bracket_centres)
    while k >= 1:
        length = int(round((k * bracket_centres - GAP) / LENGTH_INCREMENT) * LENGTH_INCREMENT)
        if 0 < length <= max_length:
            out.append(length)
        k -= 1
    return out


def standard_piece(length: int, bracket_centres: int) -> AnglePiece:
    count = max(1, int(round((length + GAP) / float(bracket_centres))))
    start = bracket_centres / 2.0 - GAP / 2.0
    return AnglePiece(
        length=int(length),
        bracket_count=count,
        spacing=float(bracket_centres),
        start_offset=start,
        positions=tuple(start + i * bracket_centres for i in range(count)),
        is_standard=True,
    )


def non_standard_piece(length: int, bracket_centres: int) -> AnglePiece:
    """Bracket layout for a cut piece.

    Keeps the run spacing when the overhang lands between 35mm and Bcc/2,
    otherwise tries a slot-pitch spacing, adding brackets until one fits.
    Short pieces (under 150mm) carry a single central bracket.
    """
    if length <= 0:
        raise InvalidInputs("piece length must be positive")
    if length < LONG_ANGLE_THRESHOLD:
        return AnglePiece(int(length), 1, 0.0, length / 2.0, (length / 2.0,), False)

    e_min, e_max = float(MIN_EDGE_DISTANCE), bracket_centres / 2.0
    count = max(MIN_BRACKETS_FOR_LONG_ANGLE, int(math.ceil(length / float(bracket_centres))))
    while count <= 100:
        for spacing in (float(bracket_centres), math.ceil(length / count / SLOT_PITCH) * SLOT_PITCH):
            if spacing > bracket_centres:
                continue
            overhang = (length - (count - 1) * spacing) / 2.0
            if e_min <= overhang <= e_max:
                return AnglePiece(
                    length=int(length),
                    bracket_count=count,
                    spacing=float(spacing),
                    start_offset=overhang,
                    positions=tuple(overhang + i * spacing for i in range(count)),
                    is_standard=False,
                )
        count += 1
    raise OptimizerError(f"no bracket arrangement for a {length}mm piece at {bracket_centres}mm centres")


# ---------- solver ----------

def plan_run(run_length: float, bracket_centres: int, *, seconds: Optional[float] = None,
             lengths: Optional[Sequence[int]] = None) -> RunLayout:
    """Cut a run into stock pieces plus at most one make-up piece.

    Minimises total brackets, then the number of distinct lengths.  Pieces
    are separated (and bounded at both ends) by 10mm gaps.
    """
    run = int(round(float(run_length)))
    centres = int(bracket_centres)
    if run < MIN_RUN_LENGTH:
        raise InvalidInputs(f"run length must be at least {MIN_RUN_LENGTH}mm")
    if centres <= GAP:
        raise InvalidInputs("bracket centres must exceed the 10mm gap")
    stock = sorted(set(int(v) for v in (lengths or standard_lengths(centres))), reverse=True)

    m = _cp.CpModel()
    counts = []
    used = []
    for length in stock:
        cap = run // (length + GAP)
        n = m.NewIntVar(0, cap, f"n_{length}")
        y = m.NewBoolVar(f"use_{length}")
        m.Add(n >= y)
        m.Add(n <= cap * y)
        counts.append(n)
        used.append(y)

    makeup = m.NewIntVar(0, MAX_ANGLE_LENGTH, "makeup")
    has_makeup = m.NewBoolVar("has_makeup")
    m.Add(makeup >= has_makeup)
    m.Add(makeup <= MAX_ANGLE_LENGTH * has_makeup)

    long_makeup = m.NewBoolVar("long_makeup")
    m.Add(makeup >= LONG_ANGLE_THRESHOLD).OnlyEnforceIf(long_makeup)
    m.Add(makeup <= LONG_ANGLE_THRESHOLD - 1).OnlyEnforceIf(long_makeup.Not())

    max_makeup_brackets = MAX_ANGLE_LENGTH // MIN_EDGE_DISTANCE + MIN_BRACKETS_FOR_LONG_ANGLE
    makeup_brackets = m.NewIntVar(0, max_makeup_brackets, "makeup_brackets")
    m.Add(makeup_brackets >= has_makeup)
    m.Add(makeup_brackets * centres >= makeup)
    m.Add(makeup_brackets >= MIN_BRACKETS_FOR_LONG_ANGLE).OnlyEnforceIf(long_makeup)
    m.Add(makeup_brackets <= max_makeup_brackets * has_makeup)

    pieces = sum(counts) + has_makeup
    m.Add(sum(n * length for n, length in zip(counts, stock)) + makeup + GAP * (pieces + 1) == run)

    per_piece = [standard_piece(length, centres).bracket_count for length in stock]
    brackets = sum(n * k for n, k in zip(counts, per_piece)) + makeup_brackets
    m.Minimize(brackets * 1000 + sum(used) + has_makeup)

    solver = _cp.CpSolver()
    solver.parameters.max_time_in_seconds = float(CFG.LAYOUT_SECONDS if seconds is None else seconds)
    solver.parameters.num_search_workers = int(CFG.WORKERS)
    solver.parameters.random_seed = int(CFG.RANDOM_SEED)
    solver.parameters.log_search_progress = False

    res = solver.Solve(m)
    if res not in (_cp.OPTIMAL, _cp.FEASIBLE):
        raise OptimizerError(f"no run layout for {run}mm at {centres}mm centres ({solver.StatusName(res)})")

    out: List[AnglePiece] = []
    for n, length in zip(counts, stock):
        out.extend(standard_piece(length, centres) for _ in range(int(solver.Value(n))))
    cut = int(solver.Value(makeup)) if solver.Value(has_makeup) else 0
    if cut:
        out.append(non_standard_piece(cut, centres))

    layout = RunLayout(
        run_length=run,
        bracket_centres=centres,
        pieces=tuple(out),
        total_brackets=sum(p.bracket_count for p in out),
        unique_lengths=len({p.length for p in out}),
        status=solver.StatusName(res),
    )
    log.info("run layout %smm @%smm: %d pieces, %d brackets (%s)",
             run, centres, len(out), layout.total_brackets, layout.status)
    return layout


__all__ = [
    "STANDARD_LENGTH_TABLE",
    "standard_lengths",
    "standard_piece",
    "non_standard_piece",
    "plan_run",
]
