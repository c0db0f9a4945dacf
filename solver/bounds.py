# Structural grouping and admissible weight bounds for search ordering
from __future__ import annotations

from dataclasses import dataclass
from typing import Callable, Dict, Iterable, List, Optional, Tuple

from channels import ChannelCatalogue
from config import CFG
from geometry import (
    bracket_projection,
    fixing_edges,
    inverted_bracket_height,
    resolve_fixing_position,
    standard_bracket_height,
    standard_start_position,
)
from models import BracketType, Candidate, DesignInputs
from solver.extension import extension_active
from steel_weight import system_weight


@dataclass(frozen=True)
class StructuralGroup:
    """Every generated fixing position for one structural identity."""
    representative: Candidate
    positions: Tuple[float, ...]  # ascending

    @property
    def key(self):
        return self.representative.structural_key()

    @property
    def deepest(self) -> float:
        return self.positions[-1]


def group_candidates(candidates: Iterable[Candidate]) -> List[StructuralGroup]:
    """Collapse candidates to one group per structural identity, first-seen order."""
    order: List[tuple] = []
    firsts: Dict[tuple, Candidate] = {}
    positions: Dict[tuple, set] = {}
    for cand in candidates:
        key = cand.structural_key()
        if key not in firsts:
            order.append(key)
            firsts[key] = cand
            positions[key] = set()
        positions[key].add(float(cand.fixing_position))
    return [
        StructuralGroup(firsts[key], tuple(sorted(positions[key])))
        for key in order
    ]


# ---------- fixing positions tried per group ----------

def inverted_start(group: StructuralGroup, inputs: DesignInputs) -> float:
    """The reference fixing when generated for this group, else the shallowest one."""
    reference = resolve_fixing_position(inputs)
    if reference in group.positions:
        return reference
    return group.positions[0]


def fixing_descent(group: StructuralGroup, inputs: DesignInputs) -> Tuple[float, ...]:
    """Fixing positions in evaluation order.

    Standard brackets start at the deepest useful position and step up 5mm at
    a time towards the minimum; inverted brackets are tried once.
    """
    if group.representative.bracket_type is BracketType.INVERTED:
        return (inverted_start(group, inputs),)
    start = standard_start_position(inputs.support_level, group.deepest)
    steps = tuple(p for p in reversed(group.positions) if p <= start)
    return steps or (group.positions[0],)


# ---------- bound ----------

def _weight(rep: Candidate, inputs: DesignInputs, bracket_height: float, angle_height: float) -> float:
    return system_weight(
        bracket_height,
        bracket_projection(inputs.cavity_width),
        rep.bracket_thickness,
        rep.bracket_centres,
        rep.angle_thickness,
        angle_height,
    ).total_weight


def minimum_bracket_height(group: StructuralGroup, inputs: DesignInputs,
                           catalogue: Optional[ChannelCatalogue] = None) -> float:
    rep = group.representative
    if rep.bracket_type is BracketType.STANDARD:
        return standard_bracket_height(inputs.support_level, group.deepest)
    start = inverted_start(group, inputs)
    _top, bottom = fixing_edges(rep.at_fixing(start), inputs.slab_thickness, catalogue)
    return inverted_bracket_height(inputs.support_level, rep.angle_thickness, start, bottom)


def lower_bound(group: StructuralGroup, inputs: DesignInputs,
                catalogue: Optional[ChannelCatalogue] = None) -> float:
    """Weight no design in ``group`` can beat.

    Uses the smallest bracket height the group can reach and the bare vertical
    leg; an orientation-mismatch leg only ever adds height.  With the
    exclusion zone active, height may move 1:1 into the angle leg (up to the
    manufacturing ceiling), and weight is linear in that transfer, so the two
    ends of the range cover it.
    """
    rep = group.representative
    height = minimum_bracket_height(group, inputs, catalogue)
    leg = float(rep.vertical_leg)
    bound = _weight(rep, inputs, height, leg)
    if extension_active(inputs.enable_angle_extension, inputs.max_allowable_bracket_extension):
        transfer = max(0.0, min(max(height, 0.0), float(CFG.MAX_ANGLE_HEIGHT) - leg))
        if transfer > 0:
            bound = min(bound, _weight(rep, inputs, max(0.0, height - transfer), leg + transfer))
    return bound


BoundFn = Callable[[StructuralGroup, DesignInputs], float]


def order_groups(groups: Iterable[StructuralGroup], inputs: DesignInputs,
                 bound: Optional[BoundFn] = None) -> List[Tuple[float, StructuralGroup]]:
    """(bound, group) pairs ascending by bound; ties keep generation order."""
    fn = bound if bound is not None else lower_bound
    scored = [(float(fn(group, inputs)), idx, group) for idx, group in enumerate(groups)]
    scored.sort(key=lambda item: (item[0], item[1]))
    return [(b, group) for b, _idx, group in scored]


__all__ = [
    "StructuralGroup",
    "group_candidates",
    "inverted_start",
    "fixing_descent",
    "minimum_bracket_height",
    "lower_bound",
    "order_groups",
]
