"""Shape tests on the 8-bit line-sensor mask and the ultrasonic symmetry metric."""

from __future__ import annotations

SENSOR_COUNT = 8
_EXTREME_LEFT_BITS = 0x03
_EXTREME_RIGHT_BITS = 0xC0
_WIDE_MIN = 4
_WIDE_MAX = 6


def _check_mask(mask: int) -> None:
    if not 0 <= mask <= 0xFF:
        raise ValueError(f"line mask out of range: {mask!r}")


def count_bits(mask: int) -> int:
    """Number of channels that see the line."""
    _check_mask(mask)
    return sum(1 for bit in range(SENSOR_COUNT) if mask & (1 << bit))


def longest_run(mask: int) -> int:
    """Length of the longest stretch of adjacent set channels."""
    _check_mask(mask)
    longest = 0
    current = 0
    for bit in range(SENSOR_COUNT):
        if mask & (1 << bit):
            current += 1
            longest = max(longest, current)
        else:
            current = 0
    return longest


def is_mask_contiguous(mask: int, count: int) -> bool:
    """True when ``count`` channels are set and they form one unbroken run."""
    return count > 0 and longest_run(mask) == count


def is_full_width_pattern(count: int, longest: int, full_width_n: int) -> bool:
    """True when at least ``full_width_n`` channels form a single run."""
    return count >= full_width_n and longest == count


def is_wide_pattern(mask: int, count: int, longest: int) -> bool:
    """True for a single run of four to six channels, as on a wide line."""
    return (
        _WIDE_MIN <= count <= _WIDE_MAX
        and is_mask_contiguous(mask, count)
        and longest == count
    )


def is_extreme_left(mask: int) -> bool:
    """True when only the two bit0-side channels see the line."""
    _check_mask(mask)
    return bool(mask & _EXTREME_LEFT_BITS) and not (mask & ~_EXTREME_LEFT_BITS & 0xFF)


def is_extreme_right(mask: int) -> bool:
    """True when only the two bit7-side channels see the line."""
    _check_mask(mask)
    return bool(mask & _EXTREME_RIGHT_BITS) and not (mask & ~_EXTREME_RIGHT_BITS & 0xFF)


def symmetry_metric_cm(us_left: float, us_right: float) -> int:
    """Absolute left/right range difference, rounded to whole centimetres."""
    return int(abs(us_left - us_right) + 0.5)