"""Default candidate evaluator.

Combines the derived geometry, a set of screening checks and the steel weight
into an :class:`models.EvaluatedDesign`.  Checks are plain callables so a
caller can swap in a full structural verification suite.
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Callable, Optional, Sequence

from channels import CATALOGUE, ChannelCatalogue, ChannelSpec
from config import CFG
from geometry import derive_geometry
from models import (
    Candidate,
    DerivedGeometry,
    DesignInputs,
    EvaluatedDesign,
    ManufacturingLimitExceeded,
)
from steel_fixings import TENSION_FACTOR, bolt_size, capacity_for, edge_distance
from steel_weight import system_weight

DESIGN_CAVITY_ALLOWANCE = 20.0
LOAD_POSITION = 1.0 / 3.0


@dataclass(frozen=True)
class CheckResult:
    name: str
    passes: bool
    utilisation: Optional[float] = None
    note: str = ""


Check = Callable[[Candidate, DesignInputs, DerivedGeometry, Optional[ChannelSpec]], CheckResult]


def rise_to_bolts_check(candidate: Candidate, inputs: DesignInputs,
                        geometry: DerivedGeometry, channel: Optional[ChannelSpec]) -> CheckResult:
    minimum = float(CFG.MIN_RISE_TO_BOLTS)
    rise = geometry.rise_to_bolts
    return CheckResult(
        "rise_to_bolts",
        rise >= minimum,
        utilisation=(minimum / rise) if rise > 0 else math.inf,
        note=f"{rise:g}mm (min {minimum:g}mm)",
    )


def tensile_load(moment_knm: float, plate_width: float, rise: float, concrete_grade: float) -> Optional[float]:
    """Tension (kN) in the fixing from the compression-block quadratic; None when unsolvable."""
    if rise <= 0:
        return None
    fcd = concrete_grade * 1e6
    width_m = plate_width / 1000.0
    rise_m = rise / 1000.0
    a = (2.0 / 3.0) / (fcd * width_m)
    b = -rise_m
    c = moment_knm * 1000.0
    disc = b * b - 4 * a * c
    if disc < 0:
        return None
    tension_n = (-b - math.sqrt(disc)) / (2 * a)
    compression_zone = 2 * tension_n / (fcd * width_m)
    if compression_zone > rise_m:
        return None
    return tension_n / 1000.0


def _fixing_moment(inputs: DesignInputs, shear: float) -> float:
    lever = inputs.cavity_width + DESIGN_CAVITY_ALLOWANCE + inputs.masonry_thickness * LOAD_POSITION
    return shear * lever / 1000.0


def channel_capacity_check(candidate: Candidate, inputs: DesignInputs,
                           geometry: DerivedGeometry, channel: Optional[ChannelSpec]) -> CheckResult:
    if channel is None:
        return CheckResult("channel_capacity", False, note=f"no data for {candidate.channel_family}")
    shear = geometry.shear_load
    moment = _fixing_moment(inputs, shear)
    tension = tensile_load(moment, CFG.BASE_PLATE_WIDTH, geometry.rise_to_bolts, CFG.CONCRETE_GRADE)
    if tension is None:
        return CheckResult("channel_capacity", False, note="fixing moment cannot be resisted")
    t = tension / channel.max_tension
    s = shear / channel.max_shear
    combined = min(t ** 1.5 + s ** 1.5, (t + s) / 1.2)
    passes = t <= 1.0 and s <= 1.0 and combined <= 1.0
    return CheckResult(
        "channel_capacity",
        passes,
        utilisation=max(t, s, combined),
        note=f"N={tension:.2f}kN V={shear:.2f}kN",
    )


DEFAULT_CHECKS: Sequence[Check] = (rise_to_bolts_check, channel_capacity_check)


# ---------- steel frame ----------

def steel_edge_distance_check(candidate: Candidate, inputs: DesignInputs,
                              geometry: DerivedGeometry, channel: Optional[ChannelSpec]) -> CheckResult:
    size = bolt_size(candidate.bolt_diameter)
    required = edge_distance(size)
    rise = geometry.rise_to_bolts
    return CheckResult(
        "steel_edge_distance",
        rise >= required,
        utilisation=(required / rise) if rise > 0 else math.inf,
        note=f"{rise:g}mm (min {required:g}mm for {size})",
    )


def steel_fixing_check(candidate: Candidate, inputs: DesignInputs,
                       geometry: DerivedGeometry, channel: Optional[ChannelSpec]) -> CheckResult:
    """Shear plus tension interaction, V/Vrd + T/(1.4 Trd) <= 1."""
    size = bolt_size(candidate.bolt_diameter)
    capacity = capacity_for(candidate.fixing_method, size)
    if capacity is None:
        return CheckResult("steel_fixing", False, note=f"no capacity for {candidate.fixing_method} {size}")
    shear = geometry.shear_load
    moment = _fixing_moment(inputs, shear)
    tension = tensile_load(moment, CFG.BASE_PLATE_WIDTH, geometry.rise_to_bolts, CFG.STEEL_BEARING_STRENGTH)
    if tension is None:
        return CheckResult("steel_fixing", False, note="fixing moment cannot be resisted")
    combined = shear / capacity.shear + tension / (TENSION_FACTOR * capacity.tension)
    return CheckResult(
        "steel_fixing",
        combined <= 1.0,
        utilisation=combined,
        note=f"{capacity.method} {size} N={tension:.2f}kN V={shear:.2f}kN",
    )


STEEL_CHECKS: Sequence[Check] = (steel_edge_distance_check, steel_fixing_check)


class DefaultEvaluator:
    def __init__(self, catalogue: Optional[ChannelCatalogue] = None, checks: Optional[Sequence[Check]] = None,
                 steel_checks: Optional[Sequence[Check]] = None):
        self.catalogue = catalogue if catalogue is not None else CATALOGUE
        self.checks = tuple(checks) if checks is not None else tuple(DEFAULT_CHECKS)
        self.steel_checks = tuple(steel_checks) if steel_checks is not None else tuple(STEEL_CHECKS)

    def __call__(self, candidate: Candidate, inputs: DesignInputs) -> EvaluatedDesign:
        try:
            geometry = derive_geometry(candidate, inputs, self.catalogue)
        except ManufacturingLimitExceeded as e:
            return EvaluatedDesign(
                candidate, None, False,
                detail={"manufacturing_limit": {"height": e.resulting_height, "max": e.max_height}},
                reason=str(e),
            )

        if candidate.is_steel_fixing:
            channel, checks = None, self.steel_checks
        else:
            channel = self.catalogue.lookup(candidate.channel_family, inputs.slab_thickness, candidate.bracket_centres)
            checks = self.checks
        results = [check(candidate, inputs, geometry, channel) for check in checks]
        failed = [r for r in results if not r.passes]
        weights = system_weight(
            geometry.bracket_height,
            geometry.bracket_projection,
            candidate.bracket_thickness,
            candidate.bracket_centres,
            candidate.angle_thickness,
            geometry.angle_height,
        )
        detail = {
            "checks": {
                r.name: {"passes": r.passes, "utilisation": r.utilisation, "note": r.note}
                for r in results
            },
            "bracket_weight": weights.bracket_weight,
            "angle_weight": weights.angle_weight,
        }
        return EvaluatedDesign(
            candidate,
            geometry,
            not failed,
            weights.total_weight,
            detail=detail,
            reason=f"{failed[0].name} failed: {failed[0].note}" if failed else None,
        )


__all__ = [
    "CheckResult",
    "DefaultEvaluator",
    "DEFAULT_CHECKS",
    "channel_capacity_check",
    "rise_to_bolts_check",
    "STEEL_CHECKS",
    "steel_edge_distance_check",
    "steel_fixing_check",
    "tensile_load",
]
