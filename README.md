# rslkbot

Control logic for a small differential-drive robot. The robot has an
8-channel line sensor, six front bump switches, left and right ultrasonic
rangers and a centre IR sensor. All decision logic works on plain Python
values. Sensors, motors and LEDs are passed in as objects, so you can drive
the whole stack from scripted readings in tests or simulations.

## Installation

```
pip install .
```

To run the test suite:

```
pip install ".[test]"
pytest
```

## Modules

- `rslkbot.config`: `RobotConfig` is a frozen dataclass of tuning values, such
  as duty levels, error thresholds, cycle counts, PID gains, feature switches,
  calibration and demo timings. Creating it checks the values and raises
  `ValueError` for inconsistent ones, for example duties that are not ordered
  min ≤ slow ≤ cruise ≤ fast. `recover_max_cycles()` returns the total cycle
  budget of a line-recovery search.
- `rslkbot.collision`: `from_bump_mask(mask)` maps the 6-bit bump mask onto a
  `CollisionZone`: `NONE`, `LEFT`, `CENTER`, `RIGHT` or `MULTI`.
- `rslkbot.bump`: `pack_port_bits(port_value)` turns a raw active-low port
  reading into the compact bump mask, with bit0..bit5 = Bump0..Bump5 and 1
  meaning pressed. `pressed_switches(mask)` returns the numbers of the pressed
  switches.
- `rslkbot.line_follow_mode`: `compute_line_error(mask, count)` returns the
  signed offset of the line from the array centre. `LineRecovery` is the
  search for a lost line. It pivots, reverses, pivots the other way and then
  creeps forward. Each `step(line_count, line_err)` returns a `RecoveryStep`
  with a `RecoveryCommand`, its duties, and flags for reacquired and timed out.
- `rslkbot.hardware`: the sensor and actuator interfaces are `LineSensor`,
  `BumpSensor`, `RangeSensors`, `IrSensor`, `MotorDriver` and `StatusLeds`. The
  module also has the `Motion` and `MotorCommand` types. `RecordingMotors` is a
  motor driver that keeps every command in `commands`. `last()` returns the
  most recent one.
- `rslkbot.calibration`: `Calibrator` runs the LED-guided sequence and fills
  in `CalibrationData`. The stages are a bump check, white and black line
  capture, and an ultrasonic floor baseline. The helpers `compute_thresholds()`
  and `average_valid()` are public. Delays go through an injectable `sleep`
  function.
- `rslkbot.line_patterns`: checks on the line mask: `count_bits`,
  `longest_run`, contiguous, wide and full-width patterns, and extreme-edge
  checks. `symmetry_metric_cm` gives the left/right ultrasonic difference.
- `rslkbot.emergency`: `EmergencyLatch` polls the bumpers. On the first press
  it issues an emergency stop and then stays active for the life of the
  object. `update()` keeps the motors stopped and the red LED lit.
- `rslkbot.demo`: `Demo` steps through the `DemoStage` verification flow. Each
  `update()` returns a `DemoSnapshot` of the sensor readings and the stage.
  The later stages call a `control_update` callable that you supply.
- `rslkbot.pid`: `LinePid` is the steering controller. It uses a PID law with
  a deadband, a bounded integral that freezes while the output saturates, and
  a soft start. When PID is switched off in the config it falls back to a
  plain PD law. `compute()` returns a `PidResult`.
- `rslkbot.line_follow`: `LineFollower` is the line-following state machine.
  Its modes, listed in `LineFollowMode`, are follow, intersection lock, wide
  line, gap bridge, ramp traverse, recovery search and failsafe stop. Each
  `update()` reads the sensors once, drives the motors and returns the new
  mode.

## Example

```python
from rslkbot.collision import from_bump_mask
from rslkbot.line_follow_mode import LineRecovery, compute_line_error

print(compute_line_error(0b00011000, 2))   # 0: the line is centred
print(from_bump_mask(0b000011).name)       # LEFT

recovery = LineRecovery()
recovery.start(-1)
step = recovery.step(0, 0)
print(step.command.name, step.left_duty, step.right_duty)  # LEFT 120 120
```

## What this package does not do

- It has no drivers for real hardware. No GPIO, ADC, ultrasonic timing, motor
  PWM or LED code is included, only the interfaces in `rslkbot.hardware`.
  You supply objects that implement them.
- It has no obstacle-avoidance behaviour and no mission or mode manager that
  picks between line following, avoidance and ramps. `LineFollower` only takes
  an `obstacle_confidence` callable. `Demo` only takes a `control_update`
  callable.
- It does not read an IMU. For ramp handling, set the pitch yourself through
  `LineFollower.pitch_input_deg`.
- It has no command-line program and no main control loop. You call
  `update()` once per control cycle.