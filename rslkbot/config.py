"""Tuning constants for the robot's control stack."""

from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True)
class RobotConfig:
    """Immutable set of tuning values; the defaults are the robot's stock tuning."""

    # Motor
    motor_pwm_period_ticks: int = 375

    # Line-sensor sampling
    line_follow_sample_us: int = 1000
    line_follow_resolve_sample_us: int = 2000

    # Line-follow duties
    line_duty_min: int = 60
    line_duty_slow: int = 110
    line_duty_cruise: int = 170
    line_duty_fast: int = 210
    line_duty_pivot: int = 120

    # Line-error thresholds
    line_e_center: int = 300
    line_e_sharp: int = 1400
    line_e_recover_exit: int = 500

    # Proportional-derivative fallback gains
    line_kp_num: int = 1
    line_kd_num: int = 4
    line_err_div: int = 100
    line_corr_clamp_normal: int = 90
    line_corr_clamp_sharp: int = 150

    # Line-follow state confirmation counts
    line_n_center: int = 3
    line_gentle_n: int = 2
    line_sharp_n: int = 2
    line_sat_cycles: int = 50
    line_sweep_cycles: int = 100
    line_recover_reverse_cycles: int = 15
    line_recover_reacquire_n: int = 2
    line_recover_verify_cycles: int = 20
    line_wide_cycles: int = 90
    line_gap_n: int = 2
    line_gap_max_cycles: int = 25
    line_intersect_count_thr: int = 6
    line_intersect_n: int = 2
    line_intersect_lock_cycles: int = 35
    line_obs_warn_cm: float = 12.0

    # Feature switches
    enable_startup_line_acquire_fix: bool = True
    enable_pid_soft_start_fix: bool = True
    enable_pid_line_follow: bool = True
    enable_pid_integral: bool = True
    enable_pid_debug_watch: bool = True
    enable_obstacle_feature: bool = True
    enable_ramp_feature: bool = False
    enable_mpu6500_feature: bool = True

    # PID line-follow tuning
    kp_line: int = 1
    ki_line: int = 0
    kd_line: int = 1
    pid_scale: int = 100
    pid_corr_max: int = 60
    pid_i_sum_max: int = 600
    pid_d_term_max: int = 60
    pid_deadband_err: int = 120
    pid_base_duty: int = 130
    line_start_boost_duty: int = 150
    startup_acquire_n: int = 2
    startup_settle_ms: int = 50
    line_full_width_n: int = 7
    line_lost_confirm_n: int = 2
    line_corner_assist_cycles: int = 12
    line_corner_pivot_duty: int = 125

    # Ramp tuning
    ramp_pitch_enter_deg: int = 8
    ramp_pitch_exit_deg: int = 4
    ramp_n: int = 3
    ramp_exit_n: int = 4
    ramp_factor_pct: int = 70
    ramp_down_factor_pct: int = 60
    ramp_down_corr_clamp: int = 60

    # Obstacle handling
    avoid_timeout_ms: int = 4000
    obs_conf_max: int = 20

    # Ultrasonic
    ultra_trigger_pulse_us: int = 10
    ultra_start_timeout_us: int = 30000
    ultra_echo_timeout_us: int = 30000
    ultra_invalid_cm: float = -1.0

    # Calibration
    cal_line_sample_us: int = 1000
    cal_line_sample_count: int = 32
    cal_bump_verify_ms: int = 2000
    cal_stage_prep_ms: int = 1500
    cal_stage_done_ms: int = 2000
    cal_ultra_sample_count: int = 8
    cal_ultra_inter_sample_ms: int = 60

    # Demo stage lengths, in main-loop cycles
    demo_startup_cycles: int = 30
    demo_sensor_stage_cycles: int = 80
    demo_line_stage_cycles: int = 120
    demo_avoid_stage_cycles: int = 120
    demo_collision_stage_cycles: int = 120

    # Main loop
    main_control_loop_ms: int = 10
    main_cal_watch_update_ms: int = 100
    ir_busy_timeout_loops: int = 60000

    def __post_init__(self) -> None:
        if not (
            0 <= self.line_duty_min
            <= self.line_duty_slow
            <= self.line_duty_cruise
            <= self.line_duty_fast
        ):
            raise ValueError("line duties must satisfy min <= slow <= cruise <= fast")
        if self.main_control_loop_ms <= 0:
            raise ValueError("main_control_loop_ms must be positive")
        if self.pid_scale <= 0:
            raise ValueError("pid_scale must be positive")
        if self.line_err_div <= 0:
            raise ValueError("line_err_div must be positive")
        if not 1 <= self.line_full_width_n <= 8:
            raise ValueError("line_full_width_n must lie between 1 and 8")

    def recover_max_cycles(self) -> int:
        """Longest line-recovery search: two sweeps, a reverse and a verify run."""
        return (
            2 * self.line_sweep_cycles
            + self.line_recover_reverse_cycles
            + self.line_recover_verify_cycles
        )