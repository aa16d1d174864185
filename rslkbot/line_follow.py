"""Line-following state machine: tracking, corner assist, ramps and line recovery."""

from __future__ import annotations

from collections.abc import Callable
from enum import IntEnum

from .config import RobotConfig
from .hardware import IrSensor, LineSensor, Motion, MotorDriver, RangeSensors
from .line_follow_mode import (
    LineRecovery,
    RecoveryCommand,
    RecoveryState,
    RecoveryStep,
    compute_line_error,
)
from .line_patterns import (
    count_bits,
    is_extreme_left,
    is_extreme_right,
    is_full_width_pattern,
    is_wide_pattern,
    longest_run,
    symmetry_metric_cm,
)
from .pid import LinePid, clamp_duty

_NO_OBSTACLE_CM = 1000.0
_SHARP_RECOVER_MARGIN = 50


class LineFollowMode(IntEnum):
    FOLLOW_LINE = 0
    INTERSECTION_LOCK = 1
    WIDE_LINE_STABILISE = 2
    GAP_BRIDGE = 3
    RAMP_TRAVERSE = 4
    RECOVER_SEARCH = 5
    FAILSAFE_STOP = 6


class LineFollower:
    """Reads the line array once per ``update`` and drives the motors to follow it.

    The public attributes mirror what the controller saw and decided on the
    last cycle, so they can be inspected between calls.
    """

    def __init__(
        self,
        line: LineSensor,
        ranges: RangeSensors,
        ir: IrSensor,
        motors: MotorDriver,
        config: RobotConfig | None = None,
        obstacle_confidence: Callable[[], int] | None = None,
    ) -> None:
        self.line = line
        self.ranges = ranges
        self.ir = ir
        self.motors = motors
        self.config = config if config is not None else RobotConfig()
        self.obstacle_confidence = obstacle_confidence or (lambda: 0)

        self.mode = LineFollowMode.FOLLOW_LINE
        self.mask = 0
        self.count = 0
        self.err = 0
        self.err_prev = 0
        self.base_duty = 0
        self.corr = 0
        self.us_left_cm = 0.0
        self.us_right_cm = 0.0
        self.ir_raw = 0
        self.ir_mm = 0
        self.pitch_deg = 0
        self.pitch_input_deg = 0
        self.ramp_conf = 0
        self.obs_conf = 0
        self.symmetry_metric = 0
        self.last_line_side = 0
        self.sweep_phase = 0
        self.sat_timer_ms = 0
        self.gap_timer_ms = 0
        self.gap_conf = 0
        self.lock_remaining_ms = 0
        self.mask_contiguous_score = 0
        self.avg_reflect = 0
        self.is_ramp_up = False
        self.is_ramp_down = False
        self.ramp_enter_counter = 0
        self.ramp_exit_counter = 0
        self.line_valid_at_startup = False
        self.startup_acquire_count = 0
        self.startup_line_latched = False
        self.current_state = LineFollowMode.FOLLOW_LINE
        self.active = False
        self.cmd_motion = Motion.STOP
        self.cmd_left_duty = 0
        self.cmd_right_duty = 0
        self.recover_state = RecoveryState.IDLE
        self.recover_cycles = 0

        self._center_ticks = 0
        self._gentle_ticks = 0
        self._sharp_ticks = 0
        self._gap_eligible_ticks = 0
        self._gap_timer_cycles = 0
        self._intersection_lock_cycles = 0
        self._wide_cycles = 0
        self._ramp_up_ticks = 0
        self._ramp_down_ticks = 0
        self._ramp_exit_ticks = 0
        self._ramp_direction = 0
        self._last_abs_err = 0
        self._startup_settle_remaining_ms = 0
        self._lost_confirm_count = 0
        self._corner_assist_cycles = 0

        self.recovery = LineRecovery(self.config)
        self.pid = LinePid(self.config)
        self.pid.reset(1)
        self.prime_startup_acquire()

    # ------------------------------------------------------------------ sensing

    def read_mask_resolved(self) -> int:
        """Read the line; on a near-full-width reading, re-sample longer to resolve it."""
        cfg = self.config
        mask = self.line.read(cfg.line_follow_sample_us)
        count = count_bits(mask)
        if count < cfg.line_full_width_n:
            return mask
        resolved = self.line.read(cfg.line_follow_resolve_sample_us)
        resolved_count = count_bits(resolved)
        if 0 < resolved_count < count:
            return resolved
        return mask

    def prime_startup_acquire(self) -> None:
        """Sample the line before moving and latch it when every sample sees it."""
        cfg = self.config
        if not cfg.enable_startup_line_acquire_fix:
            return
        self.startup_acquire_count = 0
        for _ in range(cfg.startup_acquire_n):
            mask = self.read_mask_resolved()
            count = count_bits(mask)
            if count > 0:
                self.startup_acquire_count += 1
                err = compute_line_error(mask, count)
                self.mask = mask
                self.count = count
                self.err = err
                self.err_prev = err
                self.last_line_side = (err > 0) - (err < 0)
            else:
                self.startup_acquire_count = 0

        if self.startup_acquire_count >= cfg.startup_acquire_n:
            self.line_valid_at_startup = True
            self.startup_line_latched = True
            self.active = True
            self.pid.first_sample = False
            self._startup_settle_remaining_ms = cfg.startup_settle_ms

    # ----------------------------------------------------------------- commands

    def _command(self, motion: Motion, left_duty: int, right_duty: int) -> None:
        self.cmd_motion = motion
        self.cmd_left_duty = left_duty
        self.cmd_right_duty = right_duty
        if motion is Motion.FORWARD:
            self.motors.forward(left_duty, right_duty)
        elif motion is Motion.LEFT:
            self.motors.left(left_duty, right_duty)
        elif motion is Motion.RIGHT:
            self.motors.right(left_duty, right_duty)
        elif motion is Motion.BACKWARD:
            self.motors.backward(left_duty, right_duty)
        else:
            self.motors.stop()

    def _stop(self) -> None:
        self._command(Motion.STOP, 0, 0)

    def _forward(self, left_duty: int, right_duty: int) -> None:
        self._command(Motion.FORWARD, left_duty, right_duty)

    def _pivot(self, to_left: bool) -> None:
        duty = self.config.line_corner_pivot_duty
        self._command(Motion.LEFT if to_left else Motion.RIGHT, duty, duty)

    _RECOVERY_MOTIONS = {
        RecoveryCommand.STOP: Motion.STOP,
        RecoveryCommand.FORWARD: Motion.FORWARD,
        RecoveryCommand.LEFT: Motion.LEFT,
        RecoveryCommand.RIGHT: Motion.RIGHT,
        RecoveryCommand.BACKWARD: Motion.BACKWARD,
    }

    def _apply_recovery_command(self, step: RecoveryStep) -> None:
        motion = self._RECOVERY_MOTIONS.get(step.command, Motion.STOP)
        if motion is Motion.STOP:
            self._stop()
        else:
            self._command(motion, step.left_duty, step.right_duty)

    def _apply_startup_hold(self) -> None:
        cfg = self.config
        duty = max(cfg.pid_base_duty, cfg.line_start_boost_duty)
        self.base_duty = duty
        self.corr = 0
        self._forward(duty, duty)

    def _apply_pd(self, err: int, base_duty: int, corr_clamp: int, soften: bool) -> None:
        cfg = self.config
        nearest = _NO_OBSTACLE_CM
        for reading in (self.us_left_cm, self.us_right_cm):
            if 0.0 < reading < nearest:
                nearest = reading
        obstacle_near = nearest < cfg.line_obs_warn_cm
        if cfg.enable_ramp_feature:
            obstacle_near = obstacle_near and self.ramp_conf == 0
        if obstacle_near:
            base_duty = min(base_duty, cfg.line_duty_cruise)

        result = self.pid.compute(
            err, self.err_prev, base_duty, corr_clamp, soften, line_valid=self.count > 0
        )
        self.base_duty = result.base_duty
        self.corr = result.corr

        if min(result.left_duty, result.right_duty) <= cfg.line_duty_min:
            self.sat_timer_ms += cfg.main_control_loop_ms
        else:
            self.sat_timer_ms = 0
        self._forward(result.left_duty, result.right_duty)

    # -------------------------------------------------------------------- ramps

    def _has_normal_line_stats(self, count: int, longest: int, abs_err: int) -> bool:
        return 1 <= count <= 3 and longest == count and abs_err < self.config.line_e_sharp

    def _clear_ramp(self) -> None:
        self._ramp_direction = 0
        self._ramp_exit_ticks = 0
        self.ramp_conf = 0
        self.is_ramp_up = False
        self.is_ramp_down = False

    def _update_ramp_traverse(self, count: int, longest: int, err: int) -> None:
        cfg = self.config
        abs_err = abs(err)
        if self._ramp_direction >= 0:
            self.is_ramp_up, self.is_ramp_down = True, False
            base = clamp_duty(cfg.line_duty_slow * cfg.ramp_factor_pct // 100, cfg)
            clamp = cfg.line_corr_clamp_normal
        else:
            self.is_ramp_up, self.is_ramp_down = False, True
            base = clamp_duty(cfg.line_duty_slow * cfg.ramp_down_factor_pct // 100, cfg)
            clamp = cfg.ramp_down_corr_clamp

        if count == 0 and self.last_line_side == 0:
            self.last_line_side = 1 if self._ramp_direction >= 0 else -1

        normal = self._has_normal_line_stats(count, longest, abs_err)
        leaving_up = self._ramp_direction > 0 and self.pitch_deg < cfg.ramp_pitch_exit_deg
        leaving_down = self._ramp_direction < 0 and self.pitch_deg > -cfg.ramp_pitch_exit_deg
        if normal and (leaving_up or leaving_down):
            self._ramp_exit_ticks += 1
        else:
            self._ramp_exit_ticks = 0
        self.ramp_exit_counter = self._ramp_exit_ticks

        if self._ramp_exit_ticks >= cfg.ramp_exit_n:
            self.mode = LineFollowMode.FOLLOW_LINE
            self._clear_ramp()
            return

        if count > 0:
            self._apply_pd(err, base, clamp, False)
        else:
            self.mode = LineFollowMode.FOLLOW_LINE
            self.ramp_conf = 0
            self._ramp_direction = 0
            self._update_follow_state(self.mask, count, err, longest)

    # ----------------------------------------------------------------- recovery

    def _start_recover_search(self, side: int) -> None:
        self.pid.reset(3)
        self.mode = LineFollowMode.RECOVER_SEARCH
        if self.config.enable_ramp_feature:
            self._clear_ramp()
        self.recovery.start(side)
        self.sweep_phase = int(self.recovery.state)
        self.recover_state = self.recovery.state
        self.recover_cycles = 0
        self._gap_timer_cycles = 0
        self.gap_timer_ms = 0

    def _update_recover_search(self, count: int, err: int) -> None:
        self.pid.reset(4)
        step = self.recovery.step(count, err)
        self.sweep_phase = int(step.state)
        self.recover_state = step.state
        self.recover_cycles = step.total_cycles
        self._apply_recovery_command(step)

        if step.reacquired:
            self.mode = LineFollowMode.FOLLOW_LINE
            self.sweep_phase = 0
            self.recover_state = RecoveryState.IDLE
            self.recover_cycles = 0
        elif step.timed_out:
            self.mode = LineFollowMode.FAILSAFE_STOP
            self.sweep_phase = int(RecoveryState.TIMEOUT_STOP)
            self.recover_state = RecoveryState.TIMEOUT_STOP

    # ---------------------------------------------------------------- following

    def _update_follow_state(self, mask: int, count: int, err: int, longest: int) -> None:
        cfg = self.config
        if self.recover_state is not RecoveryState.IDLE:
            self.recover_state = RecoveryState.IDLE
            self.recover_cycles = 0

        abs_err = abs(err)
        abs_derr = abs(err - self.err_prev)
        centered = 1 <= count <= 3 and abs_err < cfg.line_e_center
        gentle = 2 <= count <= 5 and cfg.line_e_center <= abs_err < cfg.line_e_sharp
        sharp = count > 0 and abs_err >= cfg.line_e_sharp
        low_curvature = abs_derr < cfg.line_e_center // 2

        self._center_ticks = self._center_ticks + 1 if centered else 0
        self._gentle_ticks = self._gentle_ticks + 1 if gentle else 0
        if sharp:
            self._sharp_ticks += 1
        else:
            self._sharp_ticks = 0
            self.sat_timer_ms = 0
        self._gap_eligible_ticks = (
            self._gap_eligible_ticks + 1 if centered and low_curvature else 0
        )

        if cfg.enable_ramp_feature and count > 0:
            for ticks, direction, reason in (
                (self._ramp_up_ticks, 1, 5),
                (self._ramp_down_ticks, -1, 6),
            ):
                if ticks >= cfg.ramp_n:
                    self.pid.reset(reason)
                    self.mode = LineFollowMode.RAMP_TRAVERSE
                    self._ramp_direction = direction
                    self._ramp_exit_ticks = 0
                    self.ramp_conf = ticks
                    return

        if cfg.enable_startup_line_acquire_fix and (
            self.startup_line_latched or self._startup_settle_remaining_ms > 0
        ):
            if count > 0:
                self.startup_line_latched = False
                self._apply_startup_hold()
            else:
                self._stop()
            if self._startup_settle_remaining_ms > cfg.main_control_loop_ms:
                self._startup_settle_remaining_ms -= cfg.main_control_loop_ms
            else:
                self._startup_settle_remaining_ms = 0
            return

        if is_full_width_pattern(count, longest, cfg.line_full_width_n):
            self._lost_confirm_count = 0
            self._corner_assist_cycles = 0
            self.pid.reset(11)
            self._apply_startup_hold()
            return

        if count == 1 and abs_err >= cfg.line_e_sharp:
            self._lost_confirm_count = 0
            self._corner_assist_cycles = 0
            self.pid.reset(12)
            self._pivot(to_left=err < 0)
            return

        if count == 0 and self._gap_eligible_ticks >= 3:
            self.gap_conf += 1
        elif count > 0:
            self.gap_conf = 0

        if count == 0 and self.gap_conf >= cfg.line_gap_n:
            self.pid.reset(9)
            self.mode = LineFollowMode.GAP_BRIDGE
            self._gap_timer_cycles = 0
            self.gap_timer_ms = 0
            self._forward(cfg.line_duty_cruise, cfg.line_duty_cruise)
            return

        if count == 0:
            if (
                self._last_abs_err >= cfg.line_e_sharp
                and self.last_line_side != 0
                and self._corner_assist_cycles < cfg.line_corner_assist_cycles
            ):
                self._corner_assist_cycles += 1
                self._lost_confirm_count = 0
                self.pid.reset(13)
                self._pivot(to_left=self.last_line_side < 0)
                return
            self._corner_assist_cycles = 0
            if self._lost_confirm_count < cfg.line_lost_confirm_n:
                self._lost_confirm_count += 1
        else:
            self._lost_confirm_count = 0
            self._corner_assist_cycles = 0

        if self._lost_confirm_count >= cfg.line_lost_confirm_n:
            if is_extreme_left(mask):
                self.last_line_side = -1
            elif is_extreme_right(mask):
                self.last_line_side = 1
            self._start_recover_search(self.last_line_side)
            return

        if self._sharp_ticks >= cfg.line_sharp_n:
            self._apply_pd(err, cfg.line_duty_slow, cfg.line_corr_clamp_sharp, False)
            if (
                self.sat_timer_ms >= cfg.line_sat_cycles * cfg.main_control_loop_ms
                and abs_err >= self._last_abs_err - _SHARP_RECOVER_MARGIN
            ):
                self._start_recover_search(self.last_line_side)
            return

        if self._gentle_ticks >= cfg.line_gentle_n:
            self._apply_pd(err, cfg.line_duty_cruise, cfg.line_corr_clamp_normal, False)
            return

        if self._center_ticks >= cfg.line_n_center:
            self._apply_pd(err, cfg.line_duty_fast, cfg.line_corr_clamp_normal, False)
            return

        if count > 0:
            self._lost_confirm_count = 0
            self._corner_assist_cycles = 0
            self._apply_pd(err, cfg.line_duty_cruise, cfg.line_corr_clamp_normal, False)
        else:
            self._corner_assist_cycles = 0
            self.pid.reset(10)
            self._stop()

    # ------------------------------------------------------------------- update

    def _update_ramp_counters(self, count: int) -> None:
        cfg = self.config
        if not cfg.enable_ramp_feature:
            self.ramp_conf = 0
            self.ramp_enter_counter = 0
            self.ramp_exit_counter = 0
            return
        enter = cfg.ramp_pitch_enter_deg
        self._ramp_up_ticks = self._ramp_up_ticks + 1 if self.pitch_deg > enter and count > 0 else 0
        self._ramp_down_ticks = (
            self._ramp_down_ticks + 1 if self.pitch_deg < -enter and count > 0 else 0
        )
        if self.mode is LineFollowMode.RAMP_TRAVERSE or max(
            self._ramp_up_ticks, self._ramp_down_ticks
        ) >= cfg.ramp_n:
            self.ramp_conf = cfg.ramp_n
        else:
            self.ramp_conf = 0
        self.ramp_enter_counter = max(self._ramp_up_ticks, self._ramp_down_ticks)
        self.ramp_exit_counter = self._ramp_exit_ticks

    def update(self) -> LineFollowMode:
        """Run one control cycle and return the mode it leaves the follower in."""
        cfg = self.config
        mask = self.read_mask_resolved()
        count = count_bits(mask)
        longest = longest_run(mask)
        err = compute_line_error(mask, count)

        self.mask = mask
        self.count = count
        self.err_prev = self.err
        self.err = err
        self.mask_contiguous_score = longest * 100 // count if count else 0
        self.avg_reflect = count * 1000
        self.us_left_cm = self.ranges.read_left_cm()
        self.us_right_cm = self.ranges.read_right_cm()
        self.ir_raw = self.ir.read_raw()
        self.ir_mm = self.ir_raw
        self.pitch_deg = self.pitch_input_deg if cfg.enable_ramp_feature else 0
        self.obs_conf = self.obstacle_confidence()
        self.symmetry_metric = symmetry_metric_cm(self.us_left_cm, self.us_right_cm)
        self.is_ramp_up = False
        self.is_ramp_down = False
        self.current_state = self.mode
        self.active = count > 0

        self._update_ramp_counters(count)

        if count > 0:
            half_center = cfg.line_e_center // 2
            if err < -half_center:
                self.last_line_side = -1
            elif err > half_center:
                self.last_line_side = 1

        mode = self.mode
        if mode is LineFollowMode.INTERSECTION_LOCK:
            self.pid.reset(2)
            self._forward(cfg.line_duty_slow, cfg.line_duty_slow)
            if self._intersection_lock_cycles > 0:
                self._intersection_lock_cycles -= 1
            self.lock_remaining_ms = self._intersection_lock_cycles * cfg.main_control_loop_ms
            if self._intersection_lock_cycles == 0:
                self.mode = LineFollowMode.FOLLOW_LINE
        elif mode is LineFollowMode.WIDE_LINE_STABILISE:
            self._wide_cycles += 1
            self._apply_pd(err, cfg.line_duty_slow, cfg.line_corr_clamp_normal // 2, True)
            if not is_wide_pattern(mask, count, longest) or self._wide_cycles >= cfg.line_wide_cycles:
                self._wide_cycles = 0
                self.mode = LineFollowMode.FOLLOW_LINE
        elif mode is LineFollowMode.RAMP_TRAVERSE:
            if cfg.enable_ramp_feature:
                self._update_ramp_traverse(count, longest, err)
            else:
                self.mode = LineFollowMode.FOLLOW_LINE
                self._update_follow_state(mask, count, err, longest)
        elif mode is LineFollowMode.GAP_BRIDGE:
            self._gap_timer_cycles += 1
            self.gap_timer_ms = self._gap_timer_cycles * cfg.main_control_loop_ms
            self._forward(cfg.line_duty_cruise, cfg.line_duty_cruise)
            if count > 0:
                self._gap_timer_cycles = 0
                self.gap_conf = 0
                self.gap_timer_ms = 0
                self.mode = LineFollowMode.FOLLOW_LINE
            elif self._gap_timer_cycles >= cfg.line_gap_max_cycles:
                self._start_recover_search(self.last_line_side)
        elif mode is LineFollowMode.RECOVER_SEARCH:
            self._update_recover_search(count, err)
        elif mode is LineFollowMode.FAILSAFE_STOP:
            self._stop()
            limit = cfg.line_e_recover_exit
            if count > 0 and -limit < err < limit:
                self.mode = LineFollowMode.FOLLOW_LINE
        else:
            self._update_follow_state(mask, count, err, longest)

        self._last_abs_err = abs(err)
        return self.mode