"""Bracket/angle selection rules and derived bracket geometry.

All distances are millimetres.  The support offset (BSL) is signed relative to
the structural slab level: negative values are below the slab top.
"""

from __future__ import annotations

import math
from typing import Optional, Tuple

from channels import CATALOGUE, ChannelCatalogue
from config import CFG
from models import (
    AngleOrientation,
    BracketType,
    Candidate,
    DerivedGeometry,
    DesignInputs,
)
from solver.extension import FIXING_TO_BRACKET_TOP, resolve_extension

STANDARD_TYPE_THRESHOLD = -75.0
DEFAULT_FIXING_POSITION = 75.0
MIN_FIXING_POSITION = 75.0
FIXING_STEP = 5.0
WORST_CASE_ADJUSTMENT = 15.0
STANDARD_BRACKET_MIN_HEIGHT = 150.0
# minimum bearing (120) + slot tolerance (15) required below an inverted fixing
INVERTED_BELOW_FIXING = 135.0
PROJECTION_CLEARANCE = 10.0
# Dim D ladder for inverted brackets
DIM_D_MIN = 30.0
DIM_D_MAX = 450.0
DIM_D_STEP = 5.0

_BOTH = (AngleOrientation.STANDARD, AngleOrientation.INVERTED)


# ---------- bracket / angle selection ----------

def bracket_type(offset: float) -> BracketType:
    """Standard at or below -75mm, otherwise Inverted."""
    return BracketType.STANDARD if offset <= STANDARD_TYPE_THRESHOLD else BracketType.INVERTED


def valid_orientations(offset: float) -> Tuple[AngleOrientation, ...]:
    if offset >= 0:
        return _BOTH
    if -50 <= offset <= -25:
        return (AngleOrientation.STANDARD,)
    if -135 <= offset <= -75:
        return (AngleOrientation.INVERTED,)
    if -175 <= offset <= -150:
        return _BOTH
    # below -175 and the gaps between the bands
    return _BOTH


def allowed_pairs(offset: float) -> Tuple[Tuple[BracketType, AngleOrientation], ...]:
    kind = bracket_type(offset)
    return tuple((kind, orientation) for orientation in valid_orientations(offset))


# ---------- fixing position ----------

def snap_fixing(value: float) -> float:
    return max(MIN_FIXING_POSITION, math.floor(float(value) / FIXING_STEP) * FIXING_STEP)


def max_fixing_position(slab_thickness: float, bottom_edge: float) -> float:
    return float(slab_thickness) - float(bottom_edge)


def resolve_fixing_position(inputs: DesignInputs) -> float:
    """Reference fixing position.

    Precedence: the custom position when ``use_custom_fixing_position`` is
    set and a value is given; otherwise the 75mm default.
    """
    if inputs.use_custom_fixing_position and inputs.fixing_position is not None:
        return float(inputs.fixing_position)
    return DEFAULT_FIXING_POSITION


def fixing_positions(inputs: DesignInputs, bottom_edge: float) -> Tuple[float, ...]:
    """Fixing positions to generate for one channel (5mm steps from 75mm)."""
    if inputs.use_custom_fixing_position:
        return (resolve_fixing_position(inputs),)
    upper = max_fixing_position(inputs.slab_thickness, bottom_edge)
    out = []
    pos = MIN_FIXING_POSITION
    while pos <= upper + 1e-9:
        out.append(pos)
        pos += FIXING_STEP
    return tuple(out) if out else (MIN_FIXING_POSITION,)


def standard_start_position(support_level: float, max_fixing: float) -> float:
    """Deepest useful fixing: where the standard height just reaches the 150mm floor."""
    useful = abs(support_level) - (STANDARD_BRACKET_MIN_HEIGHT - FIXING_TO_BRACKET_TOP)
    return snap_fixing(max(MIN_FIXING_POSITION, min(max_fixing, useful)))


# ---------- heights ----------

def bracket_projection(cavity_width: float) -> float:
    return math.floor((float(cavity_width) - PROJECTION_CLEARANCE) / 5.0) * 5.0


def standard_bracket_height(support_level: float, fixing_position: float) -> float:
    raw = abs(support_level) - fixing_position + FIXING_TO_BRACKET_TOP
    return max(STANDARD_BRACKET_MIN_HEIGHT, raw)


def angle_height_adjustment(angle_thickness: float) -> float:
    return -7.0 if int(angle_thickness) == 8 else float(angle_thickness)


def inverted_components(support_level: float, angle_thickness: float,
                        fixing_position: float, bottom_edge: float) -> Tuple[float, float]:
    """(height above reference level, extension below slab) for an inverted bracket."""
    above = support_level + angle_height_adjustment(angle_thickness)
    extension = max(
        max(0.0, INVERTED_BELOW_FIXING - bottom_edge),
        max(0.0, abs(support_level) - fixing_position - bottom_edge),
    )
    return above, extension


def inverted_bracket_height(support_level: float, angle_thickness: float,
                            fixing_position: float, bottom_edge: float) -> float:
    above, extension = inverted_components(support_level, angle_thickness, fixing_position, bottom_edge)
    return above + fixing_position + bottom_edge + extension


def rise_to_bolts(bracket_height: float, support_level: float, slab_thickness: float,
                  fixing_position: float, bottom_edge: float) -> float:
    base = bracket_height - (FIXING_TO_BRACKET_TOP + WORST_CASE_ADJUSTMENT)
    if abs(support_level) > slab_thickness - fixing_position:
        return min(base, bottom_edge - WORST_CASE_ADJUSTMENT)
    return base


def notch_reduction(notch_height: float, support_level: float, slab_thickness: float) -> float:
    below_slab = max(0.0, abs(support_level) - slab_thickness)
    return max(0.0, notch_height - below_slab)


def orientation_mismatch(kind: BracketType, orientation: AngleOrientation) -> bool:
    return (kind is BracketType.STANDARD) != (orientation is AngleOrientation.STANDARD)


# ---------- loading ----------

def resolve_characteristic_load(characteristic_load: Optional[float], masonry_density: float,
                                masonry_height: float, masonry_thickness: float) -> float:
    """Line load in kN/m.

    Precedence: an explicit positive load; otherwise density (kg/m³) × height (m)
    × thickness (mm) converted through N/mm³.
    """
    if characteristic_load:
        return float(characteristic_load)
    area_load = float(masonry_density) * 9.81e-9 * float(masonry_height) * 1000.0
    return area_load * float(masonry_thickness)


def resolve_channel_edges(family: str, slab_thickness: float, bracket_centres: Optional[int] = None,
                          catalogue: Optional[ChannelCatalogue] = None) -> Tuple[float, float]:
    """(top, bottom) critical edges.

    Precedence: the catalogue entry for the family/slab/spacing; any entry for
    the family at that slab; 75mm top / 150mm bottom.
    """
    if catalogue is None:
        catalogue = CATALOGUE
    return catalogue.edges(family, slab_thickness, bracket_centres)


def fixing_edges(candidate: Candidate, slab_thickness: float,
                 catalogue: Optional[ChannelCatalogue] = None) -> Tuple[float, float]:
    """(top, bottom) edges for a candidate.

    A steel fixing has no channel: its edges are the distances from the bolt
    to the top and bottom of the section.
    """
    if candidate.is_steel_fixing:
        fixing = float(candidate.fixing_position)
        return fixing, float(slab_thickness) - fixing
    return resolve_channel_edges(candidate.channel_family, slab_thickness, candidate.bracket_centres, catalogue)


# ---------- derived geometry ----------

def derive_geometry(candidate: Candidate, inputs: DesignInputs,
                    catalogue: Optional[ChannelCatalogue] = None) -> DerivedGeometry:
    """Geometry for one candidate, exclusion zone applied.

    Raises :class:`models.ManufacturingLimitExceeded` through the extension
    resolver.
    """
    top_edge, bottom_edge = fixing_edges(candidate, inputs.slab_thickness, catalogue)
    bsl = float(inputs.support_level)
    slab = float(inputs.slab_thickness)
    fixing = float(candidate.fixing_position)
    leg = float(candidate.vertical_leg)

    if candidate.bracket_type is BracketType.STANDARD:
        height = standard_bracket_height(bsl, fixing)
        extension = resolve_extension(
            height, inputs.max_allowable_bracket_extension, candidate.bracket_type,
            candidate.angle_orientation, fixing, slab, leg,
            enabled=inputs.enable_angle_extension,
        )
        height = extension.limited_bracket_height
        drop = max(0.0, abs(bsl) - slab)
        rise = rise_to_bolts(height, bsl, slab, fixing, bottom_edge)
    else:
        above, below = inverted_components(bsl, candidate.angle_thickness, fixing, bottom_edge)
        height = above + fixing + bottom_edge + below
        extension = resolve_extension(
            height, inputs.max_allowable_bracket_extension, candidate.bracket_type,
            candidate.angle_orientation, fixing, slab, leg,
            enabled=inputs.enable_angle_extension, height_above_ssl=above,
        )
        below = max(0.0, below - extension.bracket_reduction)
        height = extension.limited_bracket_height
        drop = below
        rise = bottom_edge + below

    orientation = extension.final_orientation
    if orientation_mismatch(candidate.bracket_type, orientation):
        height += leg
        rise = rise_to_bolts(height, bsl, slab, fixing, bottom_edge)

    if inputs.notch_height > 0:
        rise -= notch_reduction(inputs.notch_height, bsl, slab)

    udl = float(inputs.characteristic_load)
    design_udl = udl * CFG.LOAD_FACTOR
    return DerivedGeometry(
        bracket_height=height,
        bracket_projection=bracket_projection(inputs.cavity_width),
        rise_to_bolts=rise,
        drop_below_slab=drop,
        angle_height=extension.extended_angle_height,
        angle_orientation=orientation,
        top_edge=top_edge,
        bottom_edge=bottom_edge,
        characteristic_udl=udl,
        design_udl=design_udl,
        shear_load=design_udl * candidate.bracket_centres / 1000.0,
        bsl_above_slab_bottom=inputs.bsl_above_slab_bottom,
        extension=extension,
    )


__all__ = [
    "bracket_type",
    "valid_orientations",
    "allowed_pairs",
    "snap_fixing",
    "max_fixing_position",
    "resolve_fixing_position",
    "fixing_positions",
    "standard_start_position",
    "bracket_projection",
    "standard_bracket_height",
    "inverted_bracket_height",
    "inverted_components",
    "rise_to_bolts",
    "resolve_characteristic_load",
    "resolve_channel_edges",
    "fixing_edges",
    "derive_geometry",
]
