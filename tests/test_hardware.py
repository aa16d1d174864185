import pytest

from rslkbot.hardware import Motion, MotorCommand, MotorDriver, RecordingMotors


def test_motion_codes_match_command_encoding():
    motors = RecordingMotors()
    motors.stop()
    motors.forward(10, 10)
    motors.left(10, 10)
    motors.right(10, 10)
    motors.backward(10, 10)
    assert [c.motion.value for c in motors.commands] == [0, 1, 2, 3, 4]


@pytest.mark.parametrize(
    "method, motion",
    [
        ("forward", Motion.FORWARD),
        ("left", Motion.LEFT),
        ("right", Motion.RIGHT),
        ("backward", Motion.BACKWARD),
    ],
)
def test_drive_commands_are_recorded(method, motion):
    motors = RecordingMotors()
    getattr(motors, method)(110, 170)
    assert motors.last() == MotorCommand(motion, 110, 170)


def test_stop_and_emergency_stop():
    motors = RecordingMotors()
    motors.stop()
    assert motors.last() == MotorCommand(Motion.STOP, 0, 0, False)
    motors.emergency_stop()
    assert motors.last().emergency is True
    assert motors.last().motion is Motion.STOP


def test_commands_keep_order():
    motors = RecordingMotors()
    motors.forward(1, 2)
    motors.left(3, 4)
    motors.stop()
    assert [c.motion for c in motors.commands] == [Motion.FORWARD, Motion.LEFT, Motion.STOP]
    assert isinstance(motors, MotorDriver) and len(motors.commands) == 3


def test_last_without_commands_raises():
    with pytest.raises(LookupError):
        RecordingMotors().last()


def test_negative_duty_rejected():
    motors = RecordingMotors()
    with pytest.raises(ValueError):
        motors.forward(-1, 10)
    assert motors.commands == []