# Exclusion zone: bracket height limit, angle-leg compensation, orientation flip
from __future__ import annotations

from dataclasses import dataclass
from typing import Optional, Union

from config import CFG
from models import (
    AngleOrientation,
    BracketType,
    ExtensionOutcome,
    ManufacturingLimitExceeded,
)

# Bracket top sits this far above the fixing centre.
FIXING_TO_BRACKET_TOP = 40.0
# Bottom edge assumed for inverted brackets when the zone is below slab top.
INVERTED_ZONE_BOTTOM_EDGE = 150.0


# ---------- exclusion-zone regimes ----------

@dataclass(frozen=True)
class AtOrAboveTop:
    """Limit at or above the slab top (limit >= 0)."""
    limit: float

    def max_rise_to_bolts(self, fixing_position: float) -> float:
        return fixing_position + self.limit

    def inverted_reduction(self, bracket_height: float, fixing_position: float,
                           height_above_ssl: float) -> float:
        # the part of the bracket above the reference level is what rises into the zone
        return max(0.0, height_above_ssl - self.limit)


@dataclass(frozen=True)
class BelowTop:
    """Limit below the slab top (limit < 0)."""
    limit: float

    def max_rise_to_bolts(self, fixing_position: float) -> float:
        return abs(self.limit - (-fixing_position))

    def inverted_reduction(self, bracket_height: float, fixing_position: float,
                           height_above_ssl: float) -> float:
        within_slab = fixing_position + INVERTED_ZONE_BOTTOM_EDGE
        extension_below = max(0.0, bracket_height - within_slab)
        required_rise = INVERTED_ZONE_BOTTOM_EDGE + extension_below
        max_rise = self.max_rise_to_bolts(fixing_position)
        if required_rise <= max_rise:
            return 0.0
        limited = within_slab + max(0.0, max_rise - INVERTED_ZONE_BOTTOM_EDGE)
        return max(0.0, bracket_height - limited)


ExclusionZone = Union[AtOrAboveTop, BelowTop]


def classify_limit(limit: float) -> ExclusionZone:
    limit = float(limit)
    if limit >= 0:
        return AtOrAboveTop(limit)
    return BelowTop(limit)


def extension_active(enabled: Optional[bool], limit: Optional[float]) -> bool:
    return bool(enabled) and limit is not None


def standard_reduction(zone: ExclusionZone, bracket_height: float, fixing_position: float) -> float:
    bracket_bottom = fixing_position + bracket_height - FIXING_TO_BRACKET_TOP
    allowed_bottom = abs(zone.limit)
    if bracket_bottom <= allowed_bottom:
        return 0.0
    limited = max(0.0, allowed_bottom - fixing_position + FIXING_TO_BRACKET_TOP)
    return bracket_height - limited


def flip_reason(extension: float) -> str:
    return (
        f"Inverted bracket with standard angle requires {extension:g}mm extension. "
        "Standard angles cannot extend beyond 60mm due to fixing point misalignment. "
        "Automatically flipped to inverted angle orientation for upward extension."
    )


def resolve_extension(
    bracket_height: float,
    limit: Optional[float],
    bracket_type: BracketType,
    angle_orientation: AngleOrientation,
    fixing_position: float,
    slab_thickness: float,
    angle_height: float,
    *,
    enabled: bool = True,
    height_above_ssl: float = 0.0,
    max_angle_height: Optional[float] = None,
) -> ExtensionOutcome:
    """Shorten the bracket to respect the exclusion zone and lengthen the angle leg 1:1.

    Raises :class:`ManufacturingLimitExceeded` when the extended leg would pass
    the manufacturing ceiling.  ``slab_thickness`` is accepted for symmetry with
    the other geometry helpers; neither regime depends on it.
    """
    bracket_height = float(bracket_height)
    angle_height = float(angle_height)
    if not extension_active(enabled, limit):
        return ExtensionOutcome.noop(bracket_height, angle_height, angle_orientation, limit)

    zone = classify_limit(limit)
    if bracket_type is BracketType.STANDARD:
        reduction = standard_reduction(zone, bracket_height, float(fixing_position))
    else:
        reduction = zone.inverted_reduction(bracket_height, float(fixing_position), float(height_above_ssl))
    reduction = max(0.0, reduction)

    extension = reduction
    final_orientation = angle_orientation
    reason = None
    flipped = (
        bracket_type is BracketType.INVERTED
        and angle_orientation is AngleOrientation.STANDARD
        and extension > 0
    )
    if flipped:
        final_orientation = AngleOrientation.INVERTED
        reason = flip_reason(extension)

    ceiling = float(CFG.MAX_ANGLE_HEIGHT if max_angle_height is None else max_angle_height)
    extended = angle_height + extension
    if extended > ceiling:
        raise ManufacturingLimitExceeded(extended, ceiling)

    return ExtensionOutcome(
        applied=reduction > 0,
        original_bracket_height=bracket_height,
        limited_bracket_height=bracket_height - reduction,
        bracket_reduction=reduction,
        original_angle_height=angle_height,
        extended_angle_height=extended,
        angle_extension=extension,
        max_extension_limit=float(limit),
        orientation_flipped=flipped,
        original_orientation=angle_orientation,
        final_orientation=final_orientation,
        flip_reason=reason,
    )


__all__ = [
    "AtOrAboveTop",
    "BelowTop",
    "ExclusionZone",
    "classify_limit",
    "extension_active",
    "standard_reduction",
    "resolve_extension",
]
