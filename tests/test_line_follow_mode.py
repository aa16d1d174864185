import pytest

from rslkbot.config import RobotConfig
from rslkbot.line_follow_mode import (
    CENTER_POSITION,
    LineRecovery,
    RecoveryCommand,
    RecoveryState,
    compute_line_error,
)


def _reverse_bits(mask):
    return int(f"{mask:08b}"[::-1], 2)


def test_error_of_empty_count_is_zero():
    assert compute_line_error(0xFF, 0) == 0


def test_error_extremes_follow_center_position():
    assert compute_line_error(0x01, 1) == CENTER_POSITION
    assert compute_line_error(0x80, 1) == -CENTER_POSITION


@pytest.mark.parametrize("mask", [0x18, 0x3C, 0x7E, 0xFF, 0x81])
def test_symmetric_masks_are_centred(mask):
    assert compute_line_error(mask, bin(mask).count("1")) == 0


@pytest.mark.parametrize("mask", [0x01, 0x03, 0x06, 0x0C, 0x30, 0xE0, 0x1C])
def test_mirrored_mask_negates_error(mask):
    count = bin(mask).count("1")
    assert compute_line_error(_reverse_bits(mask), count) == -compute_line_error(mask, count)


def test_error_rejects_bad_inputs():
    with pytest.raises(ValueError):
        compute_line_error(0x100, 1)
    with pytest.raises(ValueError):
        compute_line_error(0x01, -1)


def test_idle_step_is_done_without_reacquire():
    recovery = LineRecovery()
    step = recovery.step(0, 0)
    assert step.state is RecoveryState.IDLE
    assert step.done and not step.reacquired and not step.timed_out


def test_start_side_selects_first_pivot_direction():
    config = RobotConfig()
    recovery = LineRecovery(config)
    recovery.start(-1)
    step = recovery.step(0, 0)
    assert step.command is RecoveryCommand.LEFT
    assert step.left_duty == config.line_duty_pivot == step.right_duty
    assert step.total_cycles == 1

    recovery.start(0)
    assert recovery.step(0, 0).command is RecoveryCommand.RIGHT


def test_phase_sequence_with_short_config():
    config = RobotConfig(
        line_sweep_cycles=2, line_recover_reverse_cycles=1, line_recover_verify_cycles=2
    )
    recovery = LineRecovery(config)
    recovery.start(1)
    commands = []
    while True:
        step = recovery.step(0, 0)
        commands.append(step.command)
        if step.done:
            break
    assert commands == [
        RecoveryCommand.RIGHT,
        RecoveryCommand.RIGHT,
        RecoveryCommand.BACKWARD,
        RecoveryCommand.LEFT,
        RecoveryCommand.LEFT,
        RecoveryCommand.FORWARD,
        RecoveryCommand.STOP,
    ]
    assert step.timed_out
    assert step.state is RecoveryState.TIMEOUT_STOP


def test_full_search_times_out_after_max_cycles():
    config = RobotConfig()
    recovery = LineRecovery(config)
    recovery.start(1)
    steps = 0
    while True:
        steps += 1
        step = recovery.step(0, 0)
        if step.done:
            break
    assert steps == config.recover_max_cycles()
    assert step.timed_out and not step.reacquired
    assert step.left_duty == 0 and step.right_duty == 0


def test_step_after_timeout_stays_timed_out():
    config = RobotConfig(
        line_sweep_cycles=1, line_recover_reverse_cycles=1, line_recover_verify_cycles=1
    )
    recovery = LineRecovery(config)
    recovery.start(1)
    while not recovery.step(0, 0).done:
        pass
    again = recovery.step(0, 0)
    assert again.timed_out and again.command is RecoveryCommand.STOP


def test_reacquire_after_confirm_count():
    config = RobotConfig()
    recovery = LineRecovery(config)
    recovery.start(1)
    err = compute_line_error(0x18, 2)
    results = [recovery.step(2, err) for _ in range(config.line_recover_reacquire_n)]
    assert not any(step.done for step in results[:-1])
    assert results[-1].reacquired
    assert results[-1].state is RecoveryState.IDLE
    assert recovery.state is RecoveryState.IDLE


def test_off_centre_line_does_not_reacquire():
    config = RobotConfig()
    recovery = LineRecovery(config)
    recovery.start(1)
    far = compute_line_error(0x01, 1)
    for _ in range(5):
        step = recovery.step(1, far)
        assert not step.reacquired
    assert recovery.reacquire_count == 0


def test_bad_sample_resets_reacquire_count():
    recovery = LineRecovery()
    recovery.start(1)
    recovery.step(2, 0)
    assert recovery.reacquire_count == 1
    recovery.step(0, 0)
    assert recovery.reacquire_count == 0


def test_reset_returns_to_idle():
    recovery = LineRecovery()
    recovery.start(-1)
    recovery.step(0, 0)
    recovery.reset()
    assert recovery.state is RecoveryState.IDLE
    assert recovery.primary_side == 1
    assert recovery.total_cycles == 0