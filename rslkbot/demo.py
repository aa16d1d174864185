"""Staged end-to-end verification run: sensor check first, then the control stack."""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass
from enum import IntEnum

from .collision import CollisionZone, from_bump_mask
from .config import RobotConfig
from .hardware import BumpSensor, IrSensor, LineSensor, MotorDriver, RangeSensors, StatusLeds


class DemoStage(IntEnum):
    STARTUP = 0
    SENSOR_CHECK = 1
    LINE_FOLLOW = 2
    AVOID_CHECK = 3
    COLLISION_CHECK = 4
    EMERGENCY_CHECK = 5


@dataclass(frozen=True)
class DemoSnapshot:
    """Sensor readings and stage after one demo cycle."""

    stage: DemoStage
    bump_state: int
    collision_zone: CollisionZone
    line_data: int
    ultra_left_cm: float
    ultra_right_cm: float
    ir_raw: int
    emergency_active: bool


_MOTIONLESS_STAGES = frozenset({DemoStage.STARTUP, DemoStage.SENSOR_CHECK})


class Demo:
    """Walks through the demo stages, one call to ``update`` per control cycle.

    The non-motion stages keep the motors stopped; later stages hand each cycle
    to ``control_update``, which keeps its own priority of emergency, avoidance
    and line following. ``emergency_active`` reports whether that stack is in
    its emergency state.
    """

    def __init__(
        self,
        bump: BumpSensor,
        line: LineSensor,
        ranges: RangeSensors,
        ir: IrSensor,
        motors: MotorDriver,
        leds: StatusLeds,
        control_update: Callable[[], None],
        emergency_active: Callable[[], bool] = lambda: False,
        config: RobotConfig | None = None,
    ) -> None:
        self.bump = bump
        self.line = line
        self.ranges = ranges
        self.ir = ir
        self.motors = motors
        self.leds = leds
        self.control_update = control_update
        self.emergency_active = emergency_active
        self.config = config if config is not None else RobotConfig()

        self.leds.set_led("green", False)
        self.leds.set_led("blue", False)
        self.motors.stop()
        self.stage = DemoStage.STARTUP
        self.stage_cycles = 0
        self._set_stage_leds()

    def _stage_length(self) -> int | None:
        cfg = self.config
        return {
            DemoStage.STARTUP: cfg.demo_startup_cycles,
            DemoStage.SENSOR_CHECK: cfg.demo_sensor_stage_cycles,
            DemoStage.LINE_FOLLOW: cfg.demo_line_stage_cycles,
            DemoStage.AVOID_CHECK: cfg.demo_avoid_stage_cycles,
            DemoStage.COLLISION_CHECK: cfg.demo_collision_stage_cycles,
        }.get(self.stage)

    def _advance_stage(self) -> None:
        self.stage_cycles += 1
        length = self._stage_length()
        if length is not None and self.stage_cycles >= length:
            self.stage = DemoStage(self.stage + 1)
            self.stage_cycles = 0

    def _set_stage_leds(self) -> None:
        leds = self.leds
        stage = self.stage
        if stage in (DemoStage.STARTUP, DemoStage.LINE_FOLLOW):
            leds.set_led("green", True)
            leds.set_led("blue", False)
        elif stage is DemoStage.SENSOR_CHECK:
            leds.toggle_led("green")
            leds.set_led("blue", False)
        elif stage is DemoStage.AVOID_CHECK:
            leds.set_led("green", False)
            leds.set_led("blue", True)
        elif stage is DemoStage.COLLISION_CHECK:
            leds.toggle_led("blue")
            leds.set_led("green", True)
        else:
            leds.set_led("green", True)
            leds.set_led("blue", True)

    def update(self) -> DemoSnapshot:
        """Sample every sensor, act for the current stage and move on when due."""
        bump_state = self.bump.read()
        line_data = self.line.read(self.config.line_follow_sample_us)
        ultra_left = self.ranges.read_left_cm()
        ultra_right = self.ranges.read_right_cm()
        ir_raw = self.ir.read_raw()

        if self.stage in _MOTIONLESS_STAGES:
            self.motors.stop()
        else:
            self.control_update()

        emergency = bool(self.emergency_active())
        self._advance_stage()
        self._set_stage_leds()
        return DemoSnapshot(
            stage=self.stage,
            bump_state=bump_state,
            collision_zone=from_bump_mask(bump_state),
            line_data=line_data,
            ultra_left_cm=ultra_left,
            ultra_right_cm=ultra_right,
            ir_raw=ir_raw,
            emergency_active=emergency,
        )