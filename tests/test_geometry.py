import pytest

from geometry import (
    allowed_pairs,
    bracket_projection,
    bracket_type,
    derive_geometry,
    fixing_positions,
    inverted_bracket_height,
    resolve_characteristic_load,
    resolve_fixing_position,
    rise_to_bolts,
    standard_bracket_height,
    standard_start_position,
    valid_orientations,
)
from models import AngleOrientation, BracketType, Candidate, DesignInputs

S = AngleOrientation.STANDARD
I = AngleOrientation.INVERTED


def _inputs(**kw):
    base = dict(slab_thickness=200, cavity_width=100, support_level=-100, characteristic_load=4)
    base.update(kw)
    return DesignInputs(**base)


def _cand(**kw):
    base = dict(
        bracket_centres=500, bracket_thickness=3, angle_thickness=5, vertical_leg=60,
        bolt_diameter=10, bracket_type=BracketType.STANDARD, angle_orientation=I,
        channel_family="CPRO38", fixing_position=75.0,
    )
    base.update(kw)
    return Candidate(**base)


def test_bracket_type_threshold():
    assert bracket_type(-75) is BracketType.STANDARD
    assert bracket_type(-74.9) is BracketType.INVERTED
    assert bracket_type(0) is BracketType.INVERTED
    assert bracket_type(-300) is BracketType.STANDARD


@pytest.mark.parametrize(
    "offset, expected",
    [
        (0, {S, I}),
        (40, {S, I}),
        (-25, {S}),
        (-50, {S}),
        (-75, {I}),
        (-100, {I}),
        (-135, {I}),
        (-150, {S, I}),
        (-175, {S, I}),
        (-250, {S, I}),
    ],
)
def test_valid_orientations_table(offset, expected):
    assert set(valid_orientations(offset)) == expected


def test_allowed_pairs_cross_type_with_orientations():
    assert allowed_pairs(-100) == ((BracketType.STANDARD, I),)
    assert set(allowed_pairs(-160)) == {(BracketType.STANDARD, S), (BracketType.STANDARD, I)}
    assert set(allowed_pairs(10)) == {(BracketType.INVERTED, S), (BracketType.INVERTED, I)}


def test_fixing_positions_sweep_and_thin_slab_fallback():
    assert fixing_positions(_inputs(slab_thickness=250), 150) == (75.0, 80.0, 85.0, 90.0, 95.0, 100.0)
    assert fixing_positions(_inputs(slab_thickness=200), 150) == (75.0,)
    custom = _inputs(use_custom_fixing_position=True, fixing_position=90)
    assert fixing_positions(custom, 150) == (90.0,)
    assert resolve_fixing_position(custom) == 90.0
    assert resolve_fixing_position(_inputs(fixing_position=90)) == 75.0


def test_standard_height_floor_and_start_position():
    assert standard_bracket_height(-300, 75) == 265
    assert standard_bracket_height(-100, 75) == 150
    # deepest useful fixing leaves exactly the 150mm floor
    assert standard_start_position(-300, 200) == 190
    assert standard_start_position(-300, 120) == 120
    assert standard_start_position(-100, 200) == 75


def test_inverted_height_uses_extension_below_slab():
    # above = 50 + 5, extension = max(135 - 125, 0)
    assert inverted_bracket_height(50, 5, 75, 125) == 55 + 75 + 125 + 10
    # 8mm angles sit 7mm lower
    assert inverted_bracket_height(50, 8, 75, 150) == 43 + 75 + 150 + 0


def test_inverted_height_has_no_fixed_floor():
    # a bearing just above the standard band gives a bracket under 175mm
    assert inverted_bracket_height(-60, 5, 75, 125) == 155.0
    design = derive_geometry(
        Candidate(200, 3, 5, 60, 10, BracketType.INVERTED, I, "CPRO38", 75.0, dim_d=125.0),
        _inputs(support_level=-60),
    )
    assert design.bracket_height == 155.0


def test_rise_to_bolts_capped_below_fixing_zone():
    assert rise_to_bolts(200, -100, 200, 75, 125) == 145
    assert rise_to_bolts(400, -300, 200, 75, 125) == 110


def test_projection_and_load_resolution():
    assert bracket_projection(100) == 90
    assert bracket_projection(103) == 90
    assert resolve_characteristic_load(6.5, 2000, 3, 102.5) == 6.5
    derived = resolve_characteristic_load(None, 2000, 3, 102.5)
    assert derived == pytest.approx(2000 * 9.81e-9 * 3000 * 102.5)


def test_derive_geometry_standard_with_mismatched_angle():
    geo = derive_geometry(_cand(), _inputs(support_level=-300, slab_thickness=225))
    # 265mm bracket plus the 60mm leg for the inverted angle
    assert geo.bracket_height == 325
    assert geo.drop_below_slab == 75
    assert geo.angle_orientation is I
    assert geo.extension.applied is False
    assert geo.shear_load == pytest.approx(4 * 1.35 * 0.5)


def test_derive_geometry_notch_reduces_rise():
    plain = derive_geometry(_cand(), _inputs())
    notched = derive_geometry(_cand(), _inputs(notch_height=30))
    assert plain.rise_to_bolts - notched.rise_to_bolts == 30
    assert notched.bsl_above_slab_bottom is True
