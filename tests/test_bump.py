import pytest

from rslkbot.bump import ALL_SWITCHES_MASK, PORT_PINS, pack_port_bits, pressed_switches


def test_all_lines_high_means_nothing_pressed():
    assert pack_port_bits(0xFF) == 0


def test_all_lines_low_means_every_switch_pressed():
    assert pack_port_bits(0x00) == ALL_SWITCHES_MASK


def test_all_switches_mask_covers_six_bits():
    assert pack_port_bits(0x00) == 0x3F
    assert pressed_switches(0x3F) == (0, 1, 2, 3, 4, 5)


@pytest.mark.parametrize("switch", range(len(PORT_PINS)))
def test_each_pin_maps_to_its_switch(switch):
    port = 0xFF & ~(1 << PORT_PINS[switch])
    mask = pack_port_bits(port)
    assert mask == 1 << switch
    assert pressed_switches(mask) == (switch,)


def test_unused_pins_are_ignored():
    # P4.1 and P4.4 carry no switch
    assert pack_port_bits(0xFF & ~0x12) == 0
    assert pack_port_bits(0x12) == ALL_SWITCHES_MASK


def test_pressed_switches_empty():
    assert pressed_switches(0) == ()


def test_pressed_switches_all():
    assert pressed_switches(ALL_SWITCHES_MASK) == tuple(range(len(PORT_PINS)))


def test_round_trip_pressed_count_matches_low_pins():
    for port in range(0x100):
        mask = pack_port_bits(port)
        low_pins = [pin for pin in PORT_PINS if not port & (1 << pin)]
        assert len(pressed_switches(mask)) == len(low_pins)


def test_pressed_switches_sorted_ascending():
    switches = pressed_switches(pack_port_bits(0x00 | (1 << PORT_PINS[2])))
    assert list(switches) == sorted(switches)
    assert 2 not in switches


@pytest.mark.parametrize("value", [-1, 0x100])
def test_pack_rejects_out_of_range(value):
    with pytest.raises(ValueError):
        pack_port_bits(value)


@pytest.mark.parametrize("value", [-1, ALL_SWITCHES_MASK + 1])
def test_pressed_rejects_out_of_range(value):
    with pytest.raises(ValueError):
        pressed_switches(value)