"""Front collision zones derived from the six-switch bump mask."""

from __future__ import annotations

from enum import IntEnum

LEFT_MASK = 0x03
CENTER_MASK = 0x0C
RIGHT_MASK = 0x30


class CollisionZone(IntEnum):
    NONE = 0
    LEFT = 1
    CENTER = 2
    RIGHT = 3
    MULTI = 4


_SINGLE_ZONES = {
    LEFT_MASK: CollisionZone.LEFT,
    CENTER_MASK: CollisionZone.CENTER,
    RIGHT_MASK: CollisionZone.RIGHT,
}


def from_bump_mask(bump_mask: int) -> CollisionZone:
    """Classify a bump mask (bit0..bit5 = Bump0..Bump5) into a collision zone.

    Bits above bit5 carry no switch and are ignored.
    """
    if not 0 <= bump_mask <= 0xFF:
        raise ValueError(f"bump mask out of range: {bump_mask!r}")

    zones_active = 0
    for zone_mask in (LEFT_MASK, CENTER_MASK, RIGHT_MASK):
        if bump_mask & zone_mask:
            zones_active |= zone_mask

    if zones_active == 0:
        return CollisionZone.NONE
    return _SINGLE_ZONES.get(zones_active, CollisionZone.MULTI)