"""Steering correction for line following: a PID law with a PD fallback."""

from __future__ import annotations

from dataclasses import dataclass

from .config import RobotConfig


def _div_trunc(numerator: int, denominator: int) -> int:
    """Integer division rounding towards zero."""
    quotient = abs(numerator) // abs(denominator)
    return quotient if (numerator >= 0) == (denominator > 0) else -quotient


def clamp_duty(duty: int, config: RobotConfig | None = None) -> int:
    """Limit a wheel duty to the line-follow range [min, fast]."""
    cfg = config if config is not None else RobotConfig()
    return max(cfg.line_duty_min, min(cfg.line_duty_fast, duty))


def clamp_signed(value: int, clamp_abs: int) -> int:
    """Limit ``value`` to the range [-clamp_abs, clamp_abs]."""
    if clamp_abs < 0:
        raise ValueError(f"clamp limit must not be negative: {clamp_abs!r}")
    return max(-clamp_abs, min(clamp_abs, value))


@dataclass(frozen=True)
class PidResult:
    """Outcome of one steering computation, with its terms for inspection."""

    err: int
    prev_err: int
    derr: int
    sum_err: int
    base_duty: int
    corr: int
    p_term: int
    i_term: int
    d_term: int
    left_duty: int
    right_duty: int
    clamped: bool
    integral_frozen: bool
    line_valid: bool

    @property
    def saturated(self) -> bool:
        """True when either wheel was pushed down to the minimum duty."""
        return min(self.left_duty, self.right_duty) <= self.base_floor

    base_floor: int = 0


class LinePid:
    """Turns the line error into left and right wheel duties, cycle by cycle.

    With ``enable_pid_line_follow`` set the full PID law runs, with a deadband,
    a bounded integral that freezes while the output saturates, and a soft start
    that ignores the derivative on the first valid sample. Otherwise a plain
    proportional-derivative law is used.
    """

    def __init__(self, config: RobotConfig | None = None) -> None:
        self.config = config if config is not None else RobotConfig()
        self.sum_state = 0
        self.first_sample = True
        self.reset_reason = 0
        self.enabled = self.config.enable_pid_line_follow
        self.last: PidResult | None = None

    def reset(self, reason: int) -> None:
        """Clear the integral and arm the soft start; ``reason`` is kept for diagnosis."""
        self.sum_state = 0
        self.first_sample = True
        self.reset_reason = reason
        self.enabled = self.config.enable_pid_line_follow
        self.last = None

    def compute(
        self,
        err: int,
        prev_err: int,
        base_duty: int,
        corr_clamp: int,
        soften: bool,
        line_valid: bool,
    ) -> PidResult:
        """Compute one correction and the resulting clamped wheel duties."""
        if base_duty < 0:
            raise ValueError(f"base duty must not be negative: {base_duty!r}")
        if corr_clamp < 0:
            raise ValueError(f"correction clamp must not be negative: {corr_clamp!r}")

        if self.config.enable_pid_line_follow:
            result = self._pid(err, prev_err, base_duty, corr_clamp, soften, line_valid)
        else:
            result = self._pd(err, prev_err, base_duty, corr_clamp, soften, line_valid)
        self.last = result
        return result

    def _finish(self, base_duty: int, corr: int, **terms) -> PidResult:
        cfg = self.config
        return PidResult(
            base_duty=base_duty,
            corr=corr,
            left_duty=clamp_duty(base_duty - corr, cfg),
            right_duty=clamp_duty(base_duty + corr, cfg),
            base_floor=cfg.line_duty_min,
            **terms,
        )

    def _pid(
        self,
        err: int,
        prev_err: int,
        base_duty: int,
        corr_clamp: int,
        soften: bool,
        line_valid: bool,
    ) -> PidResult:
        cfg = self.config

        prev_for_pid = prev_err
        if cfg.enable_pid_soft_start_fix and line_valid and self.first_sample:
            prev_for_pid = err

        effective = err
        if -cfg.pid_deadband_err < effective < cfg.pid_deadband_err:
            effective = 0

        sum_candidate = self.sum_state
        if cfg.enable_pid_integral:
            if line_valid:
                sum_candidate = clamp_signed(sum_candidate + effective, cfg.pid_i_sum_max)
            i_raw = cfg.ki_line * sum_candidate
        else:
            i_raw = 0

        derr = err - prev_for_pid
        d_raw = clamp_signed(cfg.kd_line * derr, cfg.pid_d_term_max * cfg.pid_scale)
        p_raw = cfg.kp_line * effective

        raw_limit = min(corr_clamp, cfg.pid_corr_max)
        base_duty = min(base_duty, cfg.pid_base_duty)
        if soften:
            raw_limit = _div_trunc(raw_limit, 2)

        total = p_raw + i_raw + d_raw
        frozen = False
        if cfg.enable_pid_integral:
            limit_raw = raw_limit * cfg.pid_scale
            if total > limit_raw:
                frozen = effective > 0
            elif total < -limit_raw:
                frozen = effective < 0
            if frozen:
                sum_candidate = self.sum_state
                i_raw = cfg.ki_line * sum_candidate
                total = p_raw + i_raw + d_raw

        corr = -_div_trunc(total, cfg.pid_scale)
        if soften:
            corr = _div_trunc(corr, 2)
        corr = clamp_signed(corr, raw_limit)

        self.sum_state = sum_candidate
        self.first_sample = False

        def scaled(raw: int) -> int:
            value = -_div_trunc(raw, cfg.pid_scale)
            return _div_trunc(value, 2) if soften else value

        return self._finish(
            base_duty,
            corr,
            err=effective,
            prev_err=prev_for_pid,
            derr=derr,
            sum_err=self.sum_state,
            p_term=scaled(p_raw),
            i_term=scaled(i_raw),
            d_term=scaled(d_raw),
            clamped=corr >= raw_limit or corr <= -raw_limit,
            integral_frozen=frozen,
            line_valid=line_valid,
        )

    def _pd(
        self,
        err: int,
        prev_err: int,
        base_duty: int,
        corr_clamp: int,
        soften: bool,
        line_valid: bool,
    ) -> PidResult:
        cfg = self.config
        derr = err - prev_err
        corr = _div_trunc(err * cfg.line_kp_num + derr * cfg.line_kd_num, cfg.line_err_div)
        if soften:
            corr = _div_trunc(corr, 2)
        corr = clamp_signed(corr, corr_clamp)

        return self._finish(
            base_duty,
            corr,
            err=err,
            prev_err=prev_err,
            derr=derr,
            sum_err=0,
            p_term=corr,
            i_term=0,
            d_term=0,
            clamped=corr >= corr_clamp or corr <= -corr_clamp,
            integral_frozen=False,
            line_valid=line_valid,
        )