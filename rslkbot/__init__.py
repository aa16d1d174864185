"""Control logic for a line-following robot: bump and line-mask handling, calibration,
line recovery, PID steering, the line-following state machine, emergency latch and demo flow."""

__version__ = "0.1.0"