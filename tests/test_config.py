import dataclasses

import pytest

from rslkbot.config import RobotConfig


def test_default_duties_match_stock_tuning():
    cfg = RobotConfig()
    assert (cfg.line_duty_min, cfg.line_duty_slow, cfg.line_duty_cruise, cfg.line_duty_fast) == (
        60,
        110,
        170,
        210,
    )


def test_default_pid_gains():
    cfg = RobotConfig()
    assert cfg.kp_line == 1
    assert cfg.ki_line == 0
    assert cfg.pid_scale == 100
    assert cfg.pid_base_duty == 130


def test_default_feature_switches():
    cfg = RobotConfig()
    assert cfg.enable_obstacle_feature is True
    assert cfg.enable_ramp_feature is False


def test_recover_max_cycles_default():
    assert RobotConfig().recover_max_cycles() == 235


def test_recover_max_cycles_grows_with_sweep():
    base = RobotConfig()
    longer = dataclasses.replace(base, line_sweep_cycles=base.line_sweep_cycles + 5)
    assert longer.recover_max_cycles() - base.recover_max_cycles() == 10


def test_recover_max_cycles_grows_with_reverse_and_verify():
    base = RobotConfig()
    changed = dataclasses.replace(
        base,
        line_recover_reverse_cycles=base.line_recover_reverse_cycles + 1,
        line_recover_verify_cycles=base.line_recover_verify_cycles + 2,
    )
    assert changed.recover_max_cycles() - base.recover_max_cycles() == 3


def test_config_is_frozen():
    cfg = RobotConfig()
    with pytest.raises(dataclasses.FrozenInstanceError):
        cfg.line_duty_fast = 250  # type: ignore[misc]
    assert cfg.line_duty_fast == 210


def test_replace_keeps_other_values():
    cfg = dataclasses.replace(RobotConfig(), main_control_loop_ms=20)
    assert cfg.main_control_loop_ms == 20
    assert cfg.line_duty_fast == RobotConfig().line_duty_fast


@pytest.mark.parametrize(
    "changes",
    [
        {"line_duty_min": 300},
        {"line_duty_slow": 200, "line_duty_cruise": 150},
        {"main_control_loop_ms": 0},
        {"pid_scale": 0},
        {"line_err_div": 0},
        {"line_full_width_n": 9},
        {"line_full_width_n": 0},
    ],
)
def test_invalid_values_raise(changes):
    with pytest.raises(ValueError):
        RobotConfig(**changes)