# Enumerate the discrete bracket/angle design space for one set of inputs
from __future__ import annotations

import logging
from typing import List, Optional, Sequence, Tuple

from channels import CATALOGUE, ChannelCatalogue
from geometry import (
    DIM_D_MAX,
    DIM_D_MIN,
    DIM_D_STEP,
    STANDARD_BRACKET_MIN_HEIGHT,
    allowed_pairs,
    fixing_positions,
    resolve_channel_edges,
    resolve_fixing_position,
    standard_bracket_height,
)
from inputs import resolve_families
from models import AngleOrientation, BracketType, Candidate, DesignInputs
from solver.extension import classify_limit, extension_active, standard_reduction
from steel_fixings import (
    STEEL_FAMILY,
    bolt_diameter,
    steel_bolt_sizes,
    steel_fixing_methods,
    steel_fixing_positions,
)

log = logging.getLogger(__name__)

SPACING_LADDER: Tuple[int, ...] = (200, 250, 300, 350, 400, 450, 500)
BRACKET_THICKNESSES: Tuple[int, ...] = (3, 4)
ANGLE_THICKNESSES: Tuple[int, ...] = (3, 4, 5, 6, 8)
BOLT_DIAMETERS: Tuple[int, ...] = (10, 12)
DIM_D_LADDER: Tuple[int, ...] = tuple(range(int(DIM_D_MIN), int(DIM_D_MAX) + 1, int(DIM_D_STEP)))

HEAVY_LOAD = 5.0
THICK_BRACKET_LOAD = 4.0
MIN_EDGE_DISTANCE = 75.0
# largest Dim D still worth generating (450 ladder top + 100 for below-slab extension)
MAX_REQUIRED_DIM_D = 550.0


# ---------- per-dimension values ----------

def spacing_limit(load: float) -> int:
    return 500 if load > HEAVY_LOAD else 600


def bracket_spacings(load: float, valid_spacings: Sequence[int] = ()) -> List[int]:
    """Ladder values under the load limit, narrowed to the channel's spacings when it lists any."""
    limit = spacing_limit(load)
    ladder = [s for s in SPACING_LADDER if s <= limit]
    if valid_spacings:
        narrowed = [s for s in ladder if s in set(int(v) for v in valid_spacings)]
        if narrowed:
            return narrowed
    return ladder


def requires_thick_bracket(load: float, support_level: float, slab_thickness: float) -> bool:
    """4mm only when loaded over 4kN/m and the bearing sits well above or well below the slab."""
    return load > THICK_BRACKET_LOAD and (support_level > 50 or support_level < -slab_thickness - 50)


def bracket_thicknesses(load: float, support_level: float, slab_thickness: float) -> Tuple[int, ...]:
    if requires_thick_bracket(load, support_level, slab_thickness):
        return (4,)
    return BRACKET_THICKNESSES


def vertical_leg(angle_thickness: int) -> int:
    return 75 if int(angle_thickness) == 8 else 60


def dim_d_for(slab_thickness: float, fixing_position: float, custom: Optional[float] = None) -> Optional[float]:
    """Largest ladder value that fits between the fixing and the slab soffit.

    A custom Dim D is used as given when it fits, else nothing does.
    """
    room = slab_thickness - fixing_position
    if custom is not None:
        return float(custom) if custom <= room else None
    fitting = [d for d in DIM_D_LADDER if d <= room]
    return float(fitting[-1]) if fitting else None


# ---------- filters ----------

def inverted_is_practical(angle_thickness: int, orientation: AngleOrientation, fixing_position: float,
                          inputs: DesignInputs) -> bool:
    slab = float(inputs.slab_thickness)
    if fixing_position > slab - MIN_EDGE_DISTANCE:
        return False
    lift = (vertical_leg(angle_thickness) - angle_thickness) if orientation is AngleOrientation.STANDARD else 0
    minimum_height = max(slab + float(inputs.support_level) + lift, slab)
    return minimum_height - fixing_position <= MAX_REQUIRED_DIM_D


def exclusion_fixing_filter(positions: Sequence[float], inputs: DesignInputs) -> Tuple[float, ...]:
    """Drop Standard fixing positions whose limited bracket would fall below the 150mm floor.

    Returns the positions unchanged when the filter would leave none.
    """
    if not extension_active(inputs.enable_angle_extension, inputs.max_allowable_bracket_extension):
        return tuple(positions)
    zone = classify_limit(inputs.max_allowable_bracket_extension)
    kept = []
    for pos in positions:
        height = standard_bracket_height(inputs.support_level, pos)
        if height - standard_reduction(zone, height, pos) >= STANDARD_BRACKET_MIN_HEIGHT:
            kept.append(pos)
    if not kept:
        log.debug("exclusion zone rules out every fixing position; keeping all %d", len(positions))
        return tuple(positions)
    return tuple(kept)


# ---------- generator ----------

def generate_steel_candidates(inputs: DesignInputs) -> List[Candidate]:
    """Candidates for a steel frame.

    Bolt sizes and fixing methods take the place of channel families, and the
    fixing positions run the depth of the section less the bolt edge
    distances.  Inverted brackets take their Dim D per fixing position.
    """
    load = float(inputs.characteristic_load)
    bsl = float(inputs.support_level)
    height = float(inputs.slab_thickness)
    thicknesses = bracket_thicknesses(load, bsl, height)
    spacings = bracket_spacings(load)
    sizes = steel_bolt_sizes(inputs.steel_bolt_size)
    methods = steel_fixing_methods(inputs.steel_section_type, inputs.steel_fixing_method)
    if inputs.use_custom_fixing_position:
        positions: Tuple[float, ...] = (resolve_fixing_position(inputs),)
    else:
        positions = steel_fixing_positions(height)

    out: List[Candidate] = []
    skipped = 0
    for kind, orientation in allowed_pairs(bsl):
        for size in sizes:
            for method in methods:
                for pos in positions:
                    dim_d = None
                    if kind is BracketType.INVERTED:
                        dim_d = dim_d_for(height, pos, inputs.dim_d)
                        if dim_d is None:
                            skipped += 1
                            continue
                    for centres in spacings:
                        for bracket_t in thicknesses:
                            for angle_t in ANGLE_THICKNESSES:
                                out.append(Candidate(
                                    bracket_centres=centres,
                                    bracket_thickness=bracket_t,
                                    angle_thickness=angle_t,
                                    vertical_leg=vertical_leg(angle_t),
                                    bolt_diameter=bolt_diameter(size),
                                    bracket_type=kind,
                                    angle_orientation=orientation,
                                    channel_family=STEEL_FAMILY,
                                    fixing_position=float(pos),
                                    dim_d=dim_d,
                                    fixing_method=method,
                                ))
    log.debug("generated %d steel candidates (%d positions without Dim D) for %s, %s",
              len(out), skipped, "/".join(sizes), "/".join(methods))
    return out


def generate_candidates(inputs: DesignInputs, catalogue: Optional[ChannelCatalogue] = None) -> List[Candidate]:
    if inputs.uses_steel_frame:
        return generate_steel_candidates(inputs)
    if catalogue is None:
        catalogue = CATALOGUE
    load = float(inputs.characteristic_load)
    bsl = float(inputs.support_level)
    slab = float(inputs.slab_thickness)
    pairs = allowed_pairs(bsl)
    thicknesses = bracket_thicknesses(load, bsl, slab)
    families = resolve_families(inputs.allowed_channel_families)
    reference_fixing = resolve_fixing_position(inputs)

    out: List[Candidate] = []
    dropped = 0
    for family in families:
        valid = catalogue.valid_spacings(family, slab) if inputs.allowed_channel_families else ()
        spacings = bracket_spacings(load, valid)
        _top, bottom = resolve_channel_edges(family, slab, None, catalogue)
        positions = fixing_positions(inputs, bottom)
        standard_positions = exclusion_fixing_filter(positions, inputs)

        for kind, orientation in pairs:
            if kind is BracketType.STANDARD:
                kind_positions = standard_positions
                dim_d = None
            else:
                kind_positions = positions
                dim_d = dim_d_for(slab, reference_fixing, inputs.dim_d)
                if dim_d is None:
                    log.debug("no Dim D fits a %gmm slab at %gmm fixing", slab, reference_fixing)
                    continue
            for centres in spacings:
                for bracket_t in thicknesses:
                    for angle_t in ANGLE_THICKNESSES:
                        for bolt in BOLT_DIAMETERS:
                            for pos in kind_positions:
                                if kind is BracketType.INVERTED and not inverted_is_practical(
                                    angle_t, orientation, pos, inputs
                                ):
                                    dropped += 1
                                    continue
                                out.append(Candidate(
                                    bracket_centres=centres,
                                    bracket_thickness=bracket_t,
                                    angle_thickness=angle_t,
                                    vertical_leg=vertical_leg(angle_t),
                                    bolt_diameter=bolt,
                                    bracket_type=kind,
                                    angle_orientation=orientation,
                                    channel_family=family,
                                    fixing_position=float(pos),
                                    dim_d=dim_d,
                                ))
    log.debug("generated %d candidates (%d filtered) for %s", len(out), dropped, ", ".join(families))
    return out


__all__ = [
    "SPACING_LADDER",
    "DIM_D_LADDER",
    "bracket_spacings",
    "bracket_thicknesses",
    "requires_thick_bracket",
    "vertical_leg",
    "dim_d_for",
    "inverted_is_practical",
    "exclusion_fixing_filter",
    "generate_steel_candidates",
    "generate_candidates",
]
