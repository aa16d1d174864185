from rslkbot.collision import from_bump_mask
from rslkbot.config import RobotConfig
from rslkbot.demo import Demo, DemoStage
from rslkbot.hardware import Motion, RecordingMotors


class FixedBump:
    def __init__(self, value):
        self.value = value

    def read(self):
        return self.value


class FixedLine:
    def __init__(self, value):
        self.value = value
        self.sample_times = []

    def read(self, sample_us):
        self.sample_times.append(sample_us)
        return self.value


class FixedRanges:
    def read_left_cm(self):
        return 25.5

    def read_right_cm(self):
        return 30.0


class FixedIr:
    def read_raw(self):
        return 4321


class Leds:
    def __init__(self):
        self.state = {"red": False, "green": False, "blue": False}

    def set_leds(self, red, green, blue):
        self.state = {"red": red, "green": green, "blue": blue}

    def set_led(self, name, on):
        self.state[name] = on

    def toggle_led(self, name):
        self.state[name] = not self.state[name]


def make_demo(bump=0, emergency=False, config=None):
    motors = RecordingMotors()
    leds = Leds()
    calls = []
    line = FixedLine(0x18)
    demo = Demo(
        FixedBump(bump),
        line,
        FixedRanges(),
        FixedIr(),
        motors,
        leds,
        control_update=lambda: calls.append(True),
        emergency_active=lambda: emergency,
        config=config,
    )
    return demo, motors, leds, calls, line


def test_starts_stopped_with_green_led():
    demo, motors, leds, _, _ = make_demo()
    assert demo.stage is DemoStage.STARTUP
    assert motors.last().motion is Motion.STOP
    assert leds.state["green"] is True
    assert leds.state["blue"] is False


def test_snapshot_reports_sensor_values():
    demo, _, _, _, line = make_demo(bump=0x0C)
    snap = demo.update()
    assert snap.bump_state == 0x0C
    assert snap.collision_zone is from_bump_mask(0x0C)
    assert snap.line_data == 0x18
    assert snap.ultra_left_cm == 25.5
    assert snap.ultra_right_cm == 30.0
    assert snap.ir_raw == 4321
    assert snap.emergency_active is False
    assert line.sample_times == [RobotConfig().line_follow_sample_us]


def test_stage_sequence_follows_configured_lengths():
    cfg = RobotConfig()
    demo, _, _, _, _ = make_demo()
    for _ in range(cfg.demo_startup_cycles - 1):
        assert demo.update().stage is DemoStage.STARTUP
    assert demo.update().stage is DemoStage.SENSOR_CHECK
    for _ in range(cfg.demo_sensor_stage_cycles):
        demo.update()
    assert demo.stage is DemoStage.LINE_FOLLOW


def test_control_only_runs_after_sensor_stages():
    cfg = RobotConfig()
    demo, motors, _, calls, _ = make_demo()
    for _ in range(cfg.demo_startup_cycles + cfg.demo_sensor_stage_cycles):
        demo.update()
    assert calls == []
    assert all(cmd.motion is Motion.STOP for cmd in motors.commands)
    demo.update()
    assert len(calls) == 1


def test_final_stage_is_terminal_with_both_leds_on():
    cfg = RobotConfig(
        demo_startup_cycles=1,
        demo_sensor_stage_cycles=1,
        demo_line_stage_cycles=1,
        demo_avoid_stage_cycles=1,
        demo_collision_stage_cycles=1,
    )
    demo, _, leds, _, _ = make_demo(emergency=True, config=cfg)
    stages = [demo.update().stage for _ in range(8)]
    assert stages[:5] == [
        DemoStage.SENSOR_CHECK,
        DemoStage.LINE_FOLLOW,
        DemoStage.AVOID_CHECK,
        DemoStage.COLLISION_CHECK,
        DemoStage.EMERGENCY_CHECK,
    ]
    assert set(stages[4:]) == {DemoStage.EMERGENCY_CHECK}
    assert leds.state["green"] and leds.state["blue"]
    assert demo.update().emergency_active is True