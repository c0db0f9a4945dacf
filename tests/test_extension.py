import random

import pytest

from models import AngleOrientation, BracketType, ManufacturingLimitExceeded
from solver.extension import (
    AtOrAboveTop,
    BelowTop,
    classify_limit,
    resolve_extension,
    standard_reduction,
)

STD = BracketType.STANDARD
INV = BracketType.INVERTED
S = AngleOrientation.STANDARD
I = AngleOrientation.INVERTED


def test_classify_limit_by_sign():
    assert isinstance(classify_limit(0), AtOrAboveTop)
    assert isinstance(classify_limit(25), AtOrAboveTop)
    assert isinstance(classify_limit(-0.5), BelowTop)


def test_max_rise_to_bolts_per_regime():
    assert AtOrAboveTop(20).max_rise_to_bolts(75) == 95
    assert BelowTop(-200).max_rise_to_bolts(75) == 125


@pytest.mark.parametrize("enabled, limit", [(False, -150), (True, None), (False, None)])
def test_disabled_or_missing_limit_is_noop(enabled, limit):
    rng = random.Random(7)
    for _ in range(50):
        height = rng.uniform(150, 600)
        out = resolve_extension(
            height, limit, rng.choice([STD, INV]), rng.choice([S, I]),
            rng.choice([75, 100, 125]), 250, 60, enabled=enabled,
        )
        assert out.applied is False
        assert out.limited_bracket_height == height
        assert out.angle_extension == 0
        assert out.orientation_flipped is False


def test_inverted_bracket_standard_angle_flips_when_extended():
    # 100mm of the bracket sits above the 0mm limit
    out = resolve_extension(300, 0, INV, S, 75, 225, 60, height_above_ssl=100)
    assert out.bracket_reduction == 100
    assert out.angle_extension == 100
    assert out.orientation_flipped is True
    assert out.original_orientation is S
    assert out.final_orientation is I
    assert "requires 100mm extension" in out.flip_reason


def test_no_flip_without_extension():
    out = resolve_extension(300, 200, INV, S, 75, 225, 60, height_above_ssl=100)
    assert out.angle_extension == 0
    assert out.orientation_flipped is False
    assert out.final_orientation is S


@pytest.mark.parametrize("kind, orientation", [(STD, S), (STD, I), (INV, I)])
def test_only_inverted_standard_pair_flips(kind, orientation):
    out = resolve_extension(400, -150, kind, orientation, 75, 225, 60, height_above_ssl=150)
    assert out.orientation_flipped is False
    assert out.final_orientation is orientation


def test_standard_reduction_caps_bracket_bottom():
    # bottom at 75 + 300 - 40 = 335, allowed 200 -> limited 165
    assert standard_reduction(BelowTop(-200), 300, 75) == 135
    assert standard_reduction(BelowTop(-400), 300, 75) == 0


def test_manufacturing_ceiling_is_a_hard_failure():
    with pytest.raises(ManufacturingLimitExceeded) as err:
        resolve_extension(600, -100, STD, S, 75, 225, 60)
    assert err.value.max_height == 400
    assert "Maximum allowed: 400mm" in str(err.value)


def test_compensation_identity_over_random_geometry():
    rng = random.Random(2024)
    applied = 0
    for _ in range(400):
        kind = rng.choice([STD, INV])
        orientation = rng.choice([S, I])
        leg = rng.choice([60, 75])
        try:
            out = resolve_extension(
                rng.uniform(150, 500), rng.choice([-250, -175, -100, 0, 30]), kind, orientation,
                rng.choice([75, 90, 110]), 250, leg, height_above_ssl=rng.uniform(-50, 200),
            )
        except ManufacturingLimitExceeded:
            continue
        if out.applied:
            applied += 1
            assert out.angle_extension == out.bracket_reduction
            assert out.extended_angle_height == leg + out.angle_extension
            assert out.extended_angle_height <= 400
            assert out.limited_bracket_height == out.original_bracket_height - out.bracket_reduction
    assert applied > 0
