"""Line-position error and the lost-line recovery search."""

from __future__ import annotations

from dataclasses import dataclass
from enum import IntEnum

from .config import RobotConfig

SENSOR_COUNT = 8
CENTER_POSITION = 3500
_POSITION_STEP = 1000
_REACQUIRE_COUNT_LIMIT = 0xFF
_TOTAL_CYCLES_LIMIT = 0xFFFF


class RecoveryState(IntEnum):
    IDLE = 0
    PIVOT_PRIMARY = 1
    REVERSE = 2
    PIVOT_SECONDARY = 3
    FORWARD_VERIFY = 4
    TIMEOUT_STOP = 5


class RecoveryCommand(IntEnum):
    STOP = 0
    FORWARD = 1
    LEFT = 2
    RIGHT = 3
    BACKWARD = 4


@dataclass(frozen=True)
class RecoveryStep:
    """What the recovery search asks the motors to do for one control cycle."""

    state: RecoveryState
    command: RecoveryCommand = RecoveryCommand.STOP
    left_duty: int = 0
    right_duty: int = 0
    total_cycles: int = 0
    done: bool = False
    reacquired: bool = False
    timed_out: bool = False


def compute_line_error(mask: int, count: int) -> int:
    """Signed offset of the line from the array centre.

    Positive values mean the line lies towards bit0, negative towards bit7.
    ``count`` is the number of set bits the caller counted; zero yields zero.
    """
    if not 0 <= mask <= 0xFF:
        raise ValueError(f"line mask out of range: {mask!r}")
    if count < 0:
        raise ValueError(f"line count must not be negative: {count!r}")
    if count == 0:
        return 0
    weighted_sum = sum(
        bit * _POSITION_STEP for bit in range(SENSOR_COUNT) if mask & (1 << bit)
    )
    return CENTER_POSITION - weighted_sum // count


class LineRecovery:
    """Pivot, reverse, pivot the other way, then creep forward to find the line."""

    def __init__(self, config: RobotConfig | None = None) -> None:
        self.config = config if config is not None else RobotConfig()
        self.reset()

    def reset(self) -> None:
        """Return to idle with the primary sweep side set to the right."""
        self.state = RecoveryState.IDLE
        self.primary_side = 1
        self.state_cycles = 0
        self.total_cycles = 0
        self.reacquire_count = 0

    def start(self, side_hint: int) -> None:
        """Begin a search, sweeping first towards the side the line was last seen."""
        self.state = RecoveryState.PIVOT_PRIMARY
        self.primary_side = -1 if side_hint < 0 else 1
        self.state_cycles = 0
        self.total_cycles = 0
        self.reacquire_count = 0

    def _is_reacquired(self, count: int, err: int) -> bool:
        limit = self.config.line_e_recover_exit
        return count >= 1 and -limit < err < limit

    def _timeout(self) -> RecoveryStep:
        self.state = RecoveryState.TIMEOUT_STOP
        return RecoveryStep(
            state=RecoveryState.TIMEOUT_STOP,
            total_cycles=self.total_cycles,
            done=True,
            timed_out=True,
        )

    def step(self, line_count: int, line_err: int) -> RecoveryStep:
        """Advance the search by one cycle given the current line reading."""
        cfg = self.config

        if self.state is RecoveryState.IDLE:
            return RecoveryStep(
                state=RecoveryState.IDLE, total_cycles=self.total_cycles, done=True
            )

        if self._is_reacquired(line_count, line_err):
            self.reacquire_count = min(self.reacquire_count + 1, _REACQUIRE_COUNT_LIMIT)
        else:
            self.reacquire_count = 0

        if self.reacquire_count >= cfg.line_recover_reacquire_n:
            self.state = RecoveryState.IDLE
            return RecoveryStep(
                state=RecoveryState.IDLE,
                total_cycles=self.total_cycles,
                done=True,
                reacquired=True,
            )

        if self.total_cycles >= cfg.recover_max_cycles():
            return self._timeout()

        if self.state is RecoveryState.PIVOT_PRIMARY:
            command = RecoveryCommand.LEFT if self.primary_side < 0 else RecoveryCommand.RIGHT
            duty = cfg.line_duty_pivot
            self.state_cycles += 1
            if self.state_cycles >= cfg.line_sweep_cycles:
                self.state = RecoveryState.REVERSE
                self.state_cycles = 0
        elif self.state is RecoveryState.REVERSE:
            command = RecoveryCommand.BACKWARD
            duty = cfg.line_duty_slow
            self.state_cycles += 1
            if self.state_cycles >= cfg.line_recover_reverse_cycles:
                self.state = RecoveryState.PIVOT_SECONDARY
                self.state_cycles = 0
        elif self.state is RecoveryState.PIVOT_SECONDARY:
            command = RecoveryCommand.RIGHT if self.primary_side < 0 else RecoveryCommand.LEFT
            duty = cfg.line_duty_pivot
            self.state_cycles += 1
            if self.state_cycles >= cfg.line_sweep_cycles:
                self.state = RecoveryState.FORWARD_VERIFY
                self.state_cycles = 0
        elif self.state is RecoveryState.FORWARD_VERIFY:
            command = RecoveryCommand.FORWARD
            duty = cfg.line_duty_slow
            self.state_cycles += 1
            if self.state_cycles >= cfg.line_recover_verify_cycles:
                return self._timeout()
        else:
            return self._timeout()

        self.total_cycles = min(self.total_cycles + 1, _TOTAL_CYCLES_LIMIT)
        return RecoveryStep(
            state=self.state,
            command=command,
            left_duty=duty,
            right_duty=duty,
            total_cycles=self.total_cycles,
        )