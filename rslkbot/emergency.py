"""Latching bump emergency: any contact stops the motors until reset."""

from __future__ import annotations

from .hardware import BumpSensor, MotorDriver, StatusLeds


class EmergencyLatch:
    """Trips on the first pressed bump switch and stays tripped."""

    def __init__(self, bump: BumpSensor, motors: MotorDriver, leds: StatusLeds) -> None:
        self.bump = bump
        self.motors = motors
        self.leds = leds
        self.active = False
        self.bump_state = 0

    def is_active(self) -> bool:
        """Poll the bumpers while not tripped; return whether the latch is set."""
        if not self.active:
            self.bump_state = self.bump.read()
            if self.bump_state:
                self.motors.emergency_stop()
                self.active = True
        return self.active

    def update(self) -> None:
        """Hold the robot stopped and the red LED lit while in emergency."""
        self.bump_state = self.bump.read()
        self.motors.emergency_stop()
        self.leds.set_led("red", True)