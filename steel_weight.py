"""Steel weight of one metre of bracket + angle support (kg/m)."""

from __future__ import annotations

from dataclasses import dataclass

STEEL_DENSITY_KG_MM3 = 7850e-9
ANGLE_HORIZONTAL_LEG = 90.0
# spine width for the pressed bracket profile, by bracket thickness
SPINE_WIDTH = {3: 43.17, 4: 40.55}


@dataclass(frozen=True)
class SystemWeight:
    bracket_weight: float  # kg per bracket
    angle_weight: float    # kg per metre of angle
    total_weight: float    # kg per metre of run


def spine_width(bracket_thickness: int) -> float:
    try:
        return SPINE_WIDTH[int(bracket_thickness)]
    except KeyError:
        raise ValueError(f"no spine width for {bracket_thickness}mm brackets") from None


def system_weight(bracket_height: float, bracket_projection: float, bracket_thickness: int,
                  bracket_centres: float, angle_thickness: float, vertical_leg: float) -> SystemWeight:
    bracket_volume = (bracket_projection * 2 + spine_width(bracket_thickness)) * bracket_height * bracket_thickness
    angle_volume = (vertical_leg + ANGLE_HORIZONTAL_LEG - angle_thickness) * 1000.0 * angle_thickness
    bracket_w = bracket_volume * STEEL_DENSITY_KG_MM3
    angle_w = angle_volume * STEEL_DENSITY_KG_MM3
    return SystemWeight(
        bracket_weight=bracket_w,
        angle_weight=angle_w,
        total_weight=angle_w + bracket_w * 1000.0 / float(bracket_centres),
    )
