"""Staged calibration of the bump switches, line array and ultrasonic baseline."""

from __future__ import annotations

import time
from collections.abc import Callable, Iterable, Sequence
from dataclasses import dataclass, field

from .config import RobotConfig
from .hardware import BumpSensor, LineSensor, RangeSensors, StatusLeds

LINE_CHANNELS = 8
_CAPTURE_INTERVAL_MS = 20
INVALID_BASELINE_CM = -1.0


def _zeros() -> list[int]:
    return [0] * LINE_CHANNELS


@dataclass
class CalibrationData:
    latest_line_reading: int = 0
    latest_bump_state: int = 0
    line_white_counts: list[int] = field(default_factory=_zeros)
    line_black_counts: list[int] = field(default_factory=_zeros)
    line_threshold_counts: list[int] = field(default_factory=_zeros)
    ultrasonic_left_baseline_cm: float = 0.0
    ultrasonic_right_baseline_cm: float = 0.0


def compute_thresholds(white_counts: Sequence[int], black_counts: Sequence[int]) -> list[int]:
    """Midpoint between the white and black hit counts of each channel."""
    if len(white_counts) != len(black_counts):
        raise ValueError("white and black counts must have the same length")
    return [(white + black) // 2 for white, black in zip(white_counts, black_counts)]


def average_valid(readings: Iterable[float]) -> float:
    """Mean of the positive readings, or -1.0 when there are none."""
    valid = [reading for reading in readings if reading > 0.0]
    if not valid:
        return INVALID_BASELINE_CM
    return sum(valid) / len(valid)


class Calibrator:
    """Runs the LED-guided calibration sequence and keeps its results in ``data``."""

    def __init__(
        self,
        line: LineSensor,
        bump: BumpSensor,
        ranges: RangeSensors,
        leds: StatusLeds,
        config: RobotConfig | None = None,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        self.line = line
        self.bump = bump
        self.ranges = ranges
        self.leds = leds
        self.config = config if config is not None else RobotConfig()
        self.data = CalibrationData()
        self._sleep = sleep
        self.leds.set_leds(False, False, False)

    def _delay_ms(self, ms: int) -> None:
        self._sleep(ms / 1000.0)

    def capture_line_counts(self, sample_count: int) -> list[int]:
        """Read the line array ``sample_count`` times and count black hits per channel."""
        if sample_count < 0:
            raise ValueError(f"sample count must not be negative: {sample_count!r}")
        counts = _zeros()
        for _ in range(sample_count):
            reading = self.line.read(self.config.cal_line_sample_us)
            self.data.latest_line_reading = reading
            self.data.latest_bump_state = self.bump.read()
            for bit in range(LINE_CHANNELS):
                if reading & (1 << bit):
                    counts[bit] += 1
            self._delay_ms(_CAPTURE_INTERVAL_MS)
        return counts

    def average_ultrasonic(self, left: bool, sample_count: int) -> float:
        """Average the valid readings of one ultrasonic sensor; -1.0 if none were valid."""
        if sample_count < 0:
            raise ValueError(f"sample count must not be negative: {sample_count!r}")
        read = self.ranges.read_left_cm if left else self.ranges.read_right_cm

        def samples():
            for _ in range(sample_count):
                yield read()
                self._delay_ms(self.config.cal_ultra_inter_sample_ms)

        return average_valid(samples())

    def run(self) -> CalibrationData:
        """Run every stage: bump check, white, black, floor baseline, done."""
        cfg = self.config
        data = self.data
        data.line_white_counts = _zeros()
        data.line_black_counts = _zeros()
        data.line_threshold_counts = _zeros()
        data.ultrasonic_left_baseline_cm = INVALID_BASELINE_CM
        data.ultrasonic_right_baseline_cm = INVALID_BASELINE_CM

        # Red: bump switches blink the LED while pressed.
        self.leds.set_leds(True, False, False)
        for _ in range(cfg.cal_bump_verify_ms):
            data.latest_bump_state = self.bump.read()
            if data.latest_bump_state:
                self.leds.toggle_led("red")
            self._delay_ms(1)
        self.leds.set_leds(False, False, False)

        # Green: robot over white.
        self.leds.set_leds(False, True, False)
        self._delay_ms(cfg.cal_stage_prep_ms)
        data.line_white_counts = self.capture_line_counts(cfg.cal_line_sample_count)
        self.leds.set_leds(False, False, False)

        # Blue: robot over black.
        self.leds.set_leds(False, False, True)
        self._delay_ms(cfg.cal_stage_prep_ms)
        data.line_black_counts = self.capture_line_counts(cfg.cal_line_sample_count)
        self.leds.set_leds(False, False, False)

        data.line_threshold_counts = compute_thresholds(
            data.line_white_counts, data.line_black_counts
        )

        # Green and blue: flat floor for the ultrasonic baseline.
        self.leds.set_leds(False, True, True)
        self._delay_ms(cfg.cal_stage_prep_ms)
        data.ultrasonic_left_baseline_cm = self.average_ultrasonic(True, cfg.cal_ultra_sample_count)
        data.ultrasonic_right_baseline_cm = self.average_ultrasonic(False, cfg.cal_ultra_sample_count)

        # All on: finished.
        self.leds.set_leds(True, True, True)
        self._delay_ms(cfg.cal_stage_done_ms)
        return data