import pytest

from steel_fixings import (
    CAPACITIES,
    capacity_for,
    edge_distance,
    position_limits,
    section_type_for,
    steel_bolt_sizes,
    steel_fixing_methods,
    steel_fixing_positions,
)


def test_edge_distances_are_1_2_hole_diameters():
    assert edge_distance("M10") == 13.2
    assert edge_distance("M12") == 15.6
    assert edge_distance("M16") == 21.6
    assert capacity_for("BLIND_BOLT", "M12").min_edge_distance == 15.6


def test_position_range_keeps_half_the_largest_edge_distance_each_side():
    shallowest, deepest = position_limits(200)
    assert shallowest == 15.0
    assert deepest == pytest.approx(189.2)
    positions = steel_fixing_positions(200)
    assert positions[0] == 15.0
    assert positions[-1] == 185.0
    assert all(b - a == 5.0 for a, b in zip(positions, positions[1:]))
    # a section too shallow for any step still gets the shallowest position
    assert steel_fixing_positions(20) == (15.0,)


def test_bolt_size_filter():
    assert steel_bolt_sizes() == ("M10", "M12", "M16")
    assert steel_bolt_sizes("all") == ("M10", "M12", "M16")
    assert steel_bolt_sizes("m16") == ("M16",)


@pytest.mark.parametrize("section, requested, expected", [
    ("RHS", None, ("BLIND_BOLT",)),
    ("RHS", "SET_SCREW", ("BLIND_BOLT",)),
    ("SHS", "BOTH", ("BLIND_BOLT",)),
    ("I-BEAM", None, ("SET_SCREW",)),
    ("I-BEAM", "blind_bolt", ("BLIND_BOLT",)),
    ("I-BEAM", "both", ("SET_SCREW", "BLIND_BOLT")),
    (None, None, ("BLIND_BOLT",)),
])
def test_fixing_methods_per_section(section, requested, expected):
    assert steel_fixing_methods(section, requested) == expected


def test_capacity_table_and_section_lookup():
    assert len(CAPACITIES) == 6
    screw = capacity_for("SET_SCREW", "M16")
    assert (screw.tension, screw.shear) == (56.5, 48.7)
    assert capacity_for("WELD", "M10") is None
    assert section_type_for("steel-shs") == "SHS"
    assert section_type_for("concrete") is None
