"""Interfaces to the robot's sensors and actuators, plus a recording motor driver.

Line sensor: eight reflectance channels, bit0..bit7, 1 = black, 0 = white.
Bump sensor: packed mask bit0..bit5 = Bump0..Bump5, 1 = pressed.
IR sensor: raw reading of the centre front distance channel.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import IntEnum
from typing import Protocol, runtime_checkable


class Motion(IntEnum):
    STOP = 0
    FORWARD = 1
    LEFT = 2
    RIGHT = 3
    BACKWARD = 4


@dataclass(frozen=True)
class MotorCommand:
    motion: Motion
    left_duty: int = 0
    right_duty: int = 0
    emergency: bool = False


@runtime_checkable
class LineSensor(Protocol):
    def read(self, sample_us: int) -> int:
        """Charge, wait ``sample_us`` microseconds and return the 8-bit line mask."""


@runtime_checkable
class BumpSensor(Protocol):
    def read(self) -> int:
        """Return the packed pressed-switch mask."""


@runtime_checkable
class RangeSensors(Protocol):
    def read_left_cm(self) -> float:
        """Left ultrasonic range in centimetres; non-positive when invalid."""

    def read_right_cm(self) -> float:
        """Right ultrasonic range in centimetres; non-positive when invalid."""


@runtime_checkable
class IrSensor(Protocol):
    def read_raw(self) -> int:
        """Raw centre IR conversion result; 0 when the conversion timed out."""


@runtime_checkable
class MotorDriver(Protocol):
    def forward(self, left_duty: int, right_duty: int) -> None:
        """Drive both wheels forward."""

    def left(self, left_duty: int, right_duty: int) -> None:
        """Pivot to the left."""

    def right(self, left_duty: int, right_duty: int) -> None:
        """Pivot to the right."""

    def backward(self, left_duty: int, right_duty: int) -> None:
        """Drive both wheels backward."""

    def stop(self) -> None:
        """Stop both wheels."""

    def emergency_stop(self) -> None:
        """Stop both wheels immediately."""


@runtime_checkable
class StatusLeds(Protocol):
    def set_leds(self, red: bool, green: bool, blue: bool) -> None:
        """Set all three LEDs at once."""

    def set_led(self, name: str, on: bool) -> None:
        """Set one LED, named 'red', 'green' or 'blue'."""

    def toggle_led(self, name: str) -> None:
        """Invert one LED, named 'red', 'green' or 'blue'."""


@dataclass
class RecordingMotors:
    """Motor driver that keeps every command it receives, in order."""

    commands: list[MotorCommand] = field(default_factory=list)

    def _record(self, motion: Motion, left_duty: int, right_duty: int, emergency: bool = False) -> None:
        if left_duty < 0 or right_duty < 0:
            raise ValueError(f"duties must not be negative: {left_duty!r}, {right_duty!r}")
        self.commands.append(MotorCommand(motion, left_duty, right_duty, emergency))

    def forward(self, left_duty: int, right_duty: int) -> None:
        self._record(Motion.FORWARD, left_duty, right_duty)

    def left(self, left_duty: int, right_duty: int) -> None:
        self._record(Motion.LEFT, left_duty, right_duty)

    def right(self, left_duty: int, right_duty: int) -> None:
        self._record(Motion.RIGHT, left_duty, right_duty)

    def backward(self, left_duty: int, right_duty: int) -> None:
        self._record(Motion.BACKWARD, left_duty, right_duty)

    def stop(self) -> None:
        self._record(Motion.STOP, 0, 0)

    def emergency_stop(self) -> None:
        self._record(Motion.STOP, 0, 0, emergency=True)

    def last(self) -> MotorCommand:
        """The most recent command; raises LookupError when none was given."""
        if not self.commands:
            raise LookupError("no motor command recorded")
        return self.commands[-1]