import pytest

from rslkbot.collision import CollisionZone, from_bump_mask


def test_no_bumps_is_none():
    assert from_bump_mask(0) is CollisionZone.NONE


@pytest.mark.parametrize(
    "mask, zone",
    [
        (0x01, CollisionZone.LEFT),
        (0x02, CollisionZone.LEFT),
        (0x03, CollisionZone.LEFT),
        (0x04, CollisionZone.CENTER),
        (0x08, CollisionZone.CENTER),
        (0x0C, CollisionZone.CENTER),
        (0x10, CollisionZone.RIGHT),
        (0x20, CollisionZone.RIGHT),
        (0x30, CollisionZone.RIGHT),
    ],
)
def test_single_zone(mask, zone):
    assert from_bump_mask(mask) is zone


@pytest.mark.parametrize("mask", [0x05, 0x11, 0x24, 0x3F, 0x0C | 0x30])
def test_several_zones_is_multi(mask):
    assert from_bump_mask(mask) is CollisionZone.MULTI


def test_bits_above_switches_are_ignored():
    assert from_bump_mask(0xC0) is CollisionZone.NONE
    assert from_bump_mask(0xC0 | 0x03) is CollisionZone.LEFT


def test_none_exactly_when_no_switch_pressed():
    for mask in range(0x100):
        assert (from_bump_mask(mask) is CollisionZone.NONE) == ((mask & 0x3F) == 0)


def test_zone_is_same_for_subsets_within_one_zone():
    assert from_bump_mask(0x10) is from_bump_mask(0x30)


def test_zone_values_are_stable():
    masks = (0x00, 0x01, 0x04, 0x10, 0x3F)
    assert [from_bump_mask(m).value for m in masks] == [0, 1, 2, 3, 4]


@pytest.mark.parametrize("mask", [-1, 0x100])
def test_out_of_range_mask_raises(mask):
    with pytest.raises(ValueError):
        from_bump_mask(mask)