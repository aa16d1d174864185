"""Bump-switch bit handling.

The six front switches sit on port pins 4.0, 4.2, 4.3, 4.5, 4.6 and 4.7 and
read low when pressed. The packed mask has bit0..bit5 = Bump0..Bump5, with
1 meaning pressed.
"""

from __future__ import annotations

PORT_PINS: tuple[int, ...] = (0, 2, 3, 5, 6, 7)
"""Port bit position of each bump switch, indexed by switch number."""

SWITCH_COUNT = len(PORT_PINS)
ALL_SWITCHES_MASK = (1 << SWITCH_COUNT) - 1


def pack_port_bits(port_value: int) -> int:
    """Turn a raw active-low port reading into the packed pressed-switch mask."""
    if not 0 <= port_value <= 0xFF:
        raise ValueError(f"port value out of range: {port_value!r}")
    active = ~port_value & 0xFF
    packed = 0
    for switch, pin in enumerate(PORT_PINS):
        packed |= ((active >> pin) & 1) << switch
    return packed


def pressed_switches(bump_mask: int) -> tuple[int, ...]:
    """Return the numbers of the pressed switches in a packed mask, lowest first."""
    if not 0 <= bump_mask <= ALL_SWITCHES_MASK:
        raise ValueError(f"bump mask out of range: {bump_mask!r}")
    return tuple(switch for switch in range(SWITCH_COUNT) if bump_mask & (1 << switch))