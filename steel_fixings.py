"""Steel-frame fixings: bolt sizes, edge distances, capacities and fixing methods.

A bracket fixed to a steel section has no cast-in channel.  It is bolted
through the section with either set screws (I-beams) or blind bolts (hollow
sections, which cannot be reached from inside).  The section height takes the
place of the slab thickness in the bracket geometry.
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Dict, Optional, Tuple

# channel family carried by candidates fixed to steel
STEEL_FAMILY = "STEEL"

SET_SCREW = "SET_SCREW"
BLIND_BOLT = "BLIND_BOLT"
BOTH_METHODS = "BOTH"

I_BEAM = "I-BEAM"
RHS = "RHS"
SHS = "SHS"
SECTION_TYPES: Tuple[str, ...] = (I_BEAM, RHS, SHS)

STEEL_BOLT_SIZES: Tuple[str, ...] = ("M10", "M12", "M16")
HOLE_DIAMETERS: Dict[str, float] = {"M10": 11.0, "M12": 13.0, "M16": 18.0}
EDGE_DISTANCE_FACTOR = 1.2
TENSION_FACTOR = 1.4
POSITION_STEP = 5.0

# frame_fixing_type value -> section type
_FRAME_SECTIONS = {"steel-ibeam": I_BEAM, "steel-rhs": RHS, "steel-shs": SHS}


@dataclass(frozen=True)
class SteelFixingCapacity:
    method: str
    bolt_size: str
    tension: float  # kN
    shear: float    # kN

    @property
    def min_edge_distance(self) -> float:
        return edge_distance(self.bolt_size)


CAPACITIES: Dict[Tuple[str, str], SteelFixingCapacity] = {
    (BLIND_BOLT, "M10"): SteelFixingCapacity(BLIND_BOLT, "M10", 12.7, 19.5),
    (BLIND_BOLT, "M12"): SteelFixingCapacity(BLIND_BOLT, "M12", 22.0, 28.3),
    (BLIND_BOLT, "M16"): SteelFixingCapacity(BLIND_BOLT, "M16", 42.9, 52.8),
    (SET_SCREW, "M10"): SteelFixingCapacity(SET_SCREW, "M10", 20.9, 18.0),
    (SET_SCREW, "M12"): SteelFixingCapacity(SET_SCREW, "M12", 30.3, 26.2),
    (SET_SCREW, "M16"): SteelFixingCapacity(SET_SCREW, "M16", 56.5, 48.7),
}


# ---------- helpers ----------

def bolt_size(diameter: int) -> str:
    return f"M{int(diameter)}"


def bolt_diameter(size: str) -> int:
    return int(str(size)[1:])


def edge_distance(size: str) -> float:
    """Minimum edge distance for a bolt: 1.2 x hole diameter."""
    return round(HOLE_DIAMETERS[size] * EDGE_DISTANCE_FACTOR, 6)


def capacity_for(method: str, size: str) -> Optional[SteelFixingCapacity]:
    return CAPACITIES.get((method, size))


def section_type_for(frame_fixing_type: str) -> Optional[str]:
    return _FRAME_SECTIONS.get(str(frame_fixing_type or "").strip().lower())


# ---------- generation rules ----------

def position_limits(section_height: float) -> Tuple[float, float]:
    """(shallowest, deepest) fixing position in a steel section.

    Both sides keep half the largest bolt's edge distance, so every bolt size
    fits at every generated position.
    """
    per_side = edge_distance(STEEL_BOLT_SIZES[-1]) / 2.0
    shallowest = math.ceil(per_side / POSITION_STEP) * POSITION_STEP
    return shallowest, float(section_height) - per_side


def steel_fixing_positions(section_height: float) -> Tuple[float, ...]:
    shallowest, deepest = position_limits(section_height)
    out = []
    pos = shallowest
    while pos <= deepest + 1e-9:
        out.append(pos)
        pos += POSITION_STEP
    return tuple(out) if out else (shallowest,)


def steel_bolt_sizes(requested: Optional[str] = None) -> Tuple[str, ...]:
    """Every size, or only the requested one when a specific size is named."""
    if requested and requested.upper() != "ALL":
        return (requested.upper(),)
    return STEEL_BOLT_SIZES


def steel_fixing_methods(section_type: Optional[str], requested: Optional[str] = None) -> Tuple[str, ...]:
    """Hollow sections take blind bolts only; I-beams default to set screws."""
    requested = (requested or "").upper()
    if section_type == I_BEAM:
        if requested == BOTH_METHODS:
            return (SET_SCREW, BLIND_BOLT)
        if requested == BLIND_BOLT:
            return (BLIND_BOLT,)
        return (SET_SCREW,)
    return (BLIND_BOLT,)


__all__ = [
    "STEEL_FAMILY",
    "SET_SCREW",
    "BLIND_BOLT",
    "BOTH_METHODS",
    "SECTION_TYPES",
    "STEEL_BOLT_SIZES",
    "SteelFixingCapacity",
    "CAPACITIES",
    "bolt_size",
    "bolt_diameter",
    "edge_distance",
    "capacity_for",
    "section_type_for",
    "position_limits",
    "steel_fixing_positions",
    "steel_bolt_sizes",
    "steel_fixing_methods",
]
