"""Hours-of-service feasibility: regulatory clocks, legal deadlines, next-shift cost.

All clock arithmetic is done in absolute minutes from midnight of the day the
snapshot was taken, so a deadline after midnight stays later than one before
it. Clock-time strings returned to callers wrap at 24h.
"""

from __future__ import annotations

import json
import logging
import math
from dataclasses import dataclass
from typing import Any, Dict, List, Mapping, Optional, Tuple, Union

from .config import DEFAULT_DETENTION_RATE_PER_HOUR, DEFAULT_DOCK_DURATION_MINUTES, DEFAULT_LAYOVER_DAILY_RATE
from .contracts import DriverHOSStatus, HOSConfig
from .schemas import (
    HOSBindingConstraint,
    HOSClock,
    HOSFeasibilityResult,
    HOSStrategyConstraints,
    NextShiftCost,
    ValidationReport,
    round_cents,
)
from .time_utils import MINUTES_PER_DAY, format_minutes_to_human, minutes_to_time, parse_time_to_minutes

logger = logging.getLogger(__name__)

MAX_DRIVE_MINUTES = 660
MAX_WINDOW_MINUTES = 840
MAX_WINDOW_MINUTES_16H = 960
BREAK_THRESHOLD_MINUTES = 480
RESET_OFF_DUTY_MINUTES = 600
WEEKLY_LIMIT_60_7 = 3600
WEEKLY_LIMIT_70_8 = 4200

_BREAK_WARNING_LEAD_MINUTES = 60
_WINDOW_WARNING_MINUTES = 120
_WEEKLY_WARNING_MINUTES = 300

HOS_CONSTRAINT_DESCRIPTIONS: Dict[str, str] = {
    "14H_WINDOW": "14-hour on-duty window",
    "11H_DRIVE": "11-hour driving limit",
    "70_IN_8": "70-hour weekly limit",
    "60_IN_7": "60-hour weekly limit",
    "BREAK_REQUIRED": "30-minute break required",
}

TimeInput = Union[str, int]


@dataclass(frozen=True)
class HOSPreset:
    key: str
    label: str
    description: str
    remaining_drive_minutes: int
    remaining_window_minutes: int
    remaining_weekly_minutes: int
    minutes_since_last_break: int

    def to_status(self, config: Optional[HOSConfig] = None) -> DriverHOSStatus:
        return DriverHOSStatus(
            remaining_drive_minutes=self.remaining_drive_minutes,
            remaining_window_minutes=self.remaining_window_minutes,
            remaining_weekly_minutes=self.remaining_weekly_minutes,
            minutes_since_last_break=self.minutes_since_last_break,
            config=config or HOSConfig(),
        )


HOS_PRESETS: Dict[str, HOSPreset] = {
    "fresh_shift": HOSPreset(
        key="fresh_shift",
        label="Fresh Shift",
        description="Driver just started their shift after 10+ hours off-duty",
        remaining_drive_minutes=660,
        remaining_window_minutes=840,
        remaining_weekly_minutes=4200,
        minutes_since_last_break=0,
    ),
    "mid_shift": HOSPreset(
        key="mid_shift",
        label="Mid-Shift",
        description="Driver is midway through their shift",
        remaining_drive_minutes=360,
        remaining_window_minutes=480,
        remaining_weekly_minutes=2400,
        minutes_since_last_break=240,
    ),
    "end_of_shift": HOSPreset(
        key="end_of_shift",
        label="End of Shift",
        description="Driver is running low on available hours",
        remaining_drive_minutes=120,
        remaining_window_minutes=180,
        remaining_weekly_minutes=600,
        minutes_since_last_break=420,
    ),
}


def _as_minutes(value: TimeInput) -> int:
    if isinstance(value, int):
        return value
    parsed = parse_time_to_minutes(value)
    return parsed if parsed is not None else 0


def _weekly_constraint(status: DriverHOSStatus) -> HOSBindingConstraint:
    return "70_IN_8" if status.config.week_rule == "70_in_8" else "60_IN_7"


def is_break_required(status: DriverHOSStatus) -> bool:
    if status.config.short_haul_exempt:
        return False
    return status.minutes_since_last_break >= BREAK_THRESHOLD_MINUTES


def minutes_until_break_required(status: DriverHOSStatus) -> float:
    """Driving minutes left before a 30-minute break; ``inf`` when exempt."""

    if status.config.short_haul_exempt:
        return math.inf
    return max(0, BREAK_THRESHOLD_MINUTES - status.minutes_since_last_break)


def evaluate_hos_clocks(status: DriverHOSStatus, current_minutes: int) -> Tuple[HOSClock, ...]:
    """Every regulatory clock with its absolute expiry, soonest first.

    Ties keep the order window, drive, weekly, break.
    """

    clocks: List[HOSClock] = [
        HOSClock("14H_WINDOW", current_minutes + status.remaining_window_minutes),
        HOSClock("11H_DRIVE", current_minutes + status.remaining_drive_minutes),
        HOSClock(_weekly_constraint(status), current_minutes + status.remaining_weekly_minutes),
    ]
    if is_break_required(status):
        clocks.append(HOSClock("BREAK_REQUIRED", current_minutes))
    return tuple(sorted(clocks, key=lambda clock: clock.expires_at_minutes))


def get_binding_constraint(status: DriverHOSStatus) -> Tuple[HOSBindingConstraint, int]:
    """Return ``(constraint, remaining_minutes)`` for the clock that runs out first."""

    clock = evaluate_hos_clocks(status, 0)[0]
    return clock.constraint, clock.expires_at_minutes


def estimate_next_shift_cost(
    wait_minutes: int,
    detention_rate_per_hour: float = DEFAULT_DETENTION_RATE_PER_HOUR,
    layover_daily_rate: float = DEFAULT_LAYOVER_DAILY_RATE,
) -> NextShiftCost:
    hours = int(math.ceil(max(wait_minutes, 0) / 60.0))
    detention_cost = hours * detention_rate_per_hour
    layover_required = wait_minutes >= RESET_OFF_DUTY_MINUTES
    layover_cost = layover_daily_rate if layover_required else 0.0
    return NextShiftCost(
        driver_detention_hours=hours,
        detention_rate_per_hour=detention_rate_per_hour,
        detention_cost=round_cents(detention_cost),
        layover_required=layover_required,
        layover_daily_rate=layover_daily_rate,
        layover_cost=round_cents(layover_cost),
        total_next_shift_premium=round_cents(detention_cost + layover_cost),
    )


def calculate_hos_strategy_constraints(
    current_time: TimeInput,
    status: DriverHOSStatus,
    dock_duration_minutes: int = DEFAULT_DOCK_DURATION_MINUTES,
) -> HOSStrategyConstraints:
    """Latest absolute minute at which the truck can still start docking legally."""

    current = _as_minutes(current_time)
    binding = evaluate_hos_clocks(status, current)[0]
    latest = max(0, binding.expires_at_minutes - dock_duration_minutes)
    requires_next_shift = latest <= current

    return HOSStrategyConstraints(
        latest_feasible_time=minutes_to_time(latest),
        latest_feasible_minutes=latest,
        requires_next_shift=requires_next_shift,
        remaining_window_minutes=status.remaining_window_minutes,
        binding_constraint=binding.constraint,
        binding_constraint_remaining_minutes=binding.expires_at_minutes - current,
        next_shift_earliest_time=(
            minutes_to_time(current + RESET_OFF_DUTY_MINUTES) if requires_next_shift else None
        ),
    )


def calculate_latest_legal_dock_time(
    current_time: TimeInput,
    status: DriverHOSStatus,
    dock_duration_minutes: int = DEFAULT_DOCK_DURATION_MINUTES,
) -> str:
    return calculate_hos_strategy_constraints(current_time, status, dock_duration_minutes).latest_feasible_time


def _proposed_absolute(proposed_time: TimeInput, current: int, day_offset: int) -> int:
    if isinstance(proposed_time, int):
        return proposed_time
    minutes = parse_time_to_minutes(proposed_time)
    if minutes is None:
        minutes = 0
    if day_offset > 0:
        return day_offset * MINUTES_PER_DAY + minutes
    if minutes < current % MINUTES_PER_DAY:
        return (current // MINUTES_PER_DAY + 1) * MINUTES_PER_DAY + minutes
    return (current // MINUTES_PER_DAY) * MINUTES_PER_DAY + minutes


def _hos_warnings(status: DriverHOSStatus) -> List[str]:
    warnings: List[str] = []
    if (
        not status.config.short_haul_exempt
        and status.minutes_since_last_break >= BREAK_THRESHOLD_MINUTES - _BREAK_WARNING_LEAD_MINUTES
    ):
        left = BREAK_THRESHOLD_MINUTES - status.minutes_since_last_break
        if left > 0:
            warnings.append(f"30-minute break required after {left} more minutes of driving")
        else:
            warnings.append("30-minute break required before any more driving")
    if 0 < status.remaining_window_minutes <= _WINDOW_WARNING_MINUTES:
        warnings.append(f"14-hour window ends in {format_minutes_to_human(status.remaining_window_minutes)}")
    if status.remaining_weekly_minutes <= _WEEKLY_WARNING_MINUTES:
        warnings.append(f"Weekly limit: only {format_minutes_to_human(status.remaining_weekly_minutes)} remaining")
    return warnings


def check_hos_feasibility(
    proposed_time: TimeInput,
    current_time: TimeInput,
    status: DriverHOSStatus,
    dock_duration_minutes: int = DEFAULT_DOCK_DURATION_MINUTES,
    detention_rate_per_hour: float = DEFAULT_DETENTION_RATE_PER_HOUR,
    proposed_day_offset: int = 0,
) -> HOSFeasibilityResult:
    """Can the driver legally finish docking at ``proposed_time``?

    String times are wall-clock; a same-day proposal earlier than
    ``current_time`` is taken to mean the next day. Integer times are absolute
    minutes and are used as given.
    """

    current = _as_minutes(current_time)
    proposed = _proposed_absolute(proposed_time, current, proposed_day_offset)
    binding = evaluate_hos_clocks(status, current)[0]
    break_required = is_break_required(status)

    latest = max(0, binding.expires_at_minutes - dock_duration_minutes)
    feasible = proposed + dock_duration_minutes <= binding.expires_at_minutes and not break_required

    result = HOSFeasibilityResult(
        feasible=feasible,
        latest_legal_dock_time=minutes_to_time(latest),
        latest_legal_dock_minutes=latest,
        available_time_at_dock_minutes=max(0, binding.expires_at_minutes - proposed),
        requires_next_shift=not feasible,
        warnings=_hos_warnings(status),
    )

    if not feasible:
        result.binding_constraint = binding.constraint
        result.binding_constraint_description = HOS_CONSTRAINT_DESCRIPTIONS[binding.constraint]
        result.next_shift_earliest_start = minutes_to_time(current + RESET_OFF_DUTY_MINUTES)
        wait = max(0, proposed - current)
        result.next_shift_cost_premium = estimate_next_shift_cost(
            wait, detention_rate_per_hour, DEFAULT_LAYOVER_DAILY_RATE
        ).total_next_shift_premium
        logger.info(
            "HOS infeasible at %s: %s binds, latest legal dock %s",
            minutes_to_time(proposed),
            binding.constraint,
            result.latest_legal_dock_time,
        )

    return result


def would_cross_midnight(current_time: str, proposed_time: str) -> bool:
    current = parse_time_to_minutes(current_time) or 0
    proposed = parse_time_to_minutes(proposed_time) or 0
    return proposed < current


def validate_hos_status(status: DriverHOSStatus) -> ValidationReport:
    """Range checks for a driver snapshot; the engine itself trusts its input."""

    report = ValidationReport()
    if not 0 <= status.remaining_drive_minutes <= MAX_DRIVE_MINUTES:
        report.errors.append("Remaining drive time must be between 0 and 660 minutes (11 hours)")

    window_limit = MAX_WINDOW_MINUTES_16H if status.config.allow_16_hour_exception else MAX_WINDOW_MINUTES
    if not 0 <= status.remaining_window_minutes <= window_limit:
        report.errors.append(
            f"Remaining window time must be between 0 and {window_limit} minutes ({window_limit // 60} hours)"
        )

    if not 0 <= status.minutes_since_last_break <= BREAK_THRESHOLD_MINUTES:
        report.errors.append("Time since last break must be between 0 and 480 minutes (8 hours)")

    weekly_limit = WEEKLY_LIMIT_70_8 if status.config.week_rule == "70_in_8" else WEEKLY_LIMIT_60_7
    if not 0 <= status.remaining_weekly_minutes <= weekly_limit:
        report.errors.append(f"Remaining weekly time must be between 0 and {weekly_limit} minutes")

    if status.remaining_drive_minutes > status.remaining_window_minutes:
        report.errors.append("Remaining drive time cannot exceed remaining window time")
    return report


_CONFIG_FIELDS = (
    "weekRule",
    "week_rule",
    "shortHaulExempt",
    "short_haul_exempt",
    "canUseSplitSleeper",
    "can_use_split_sleeper",
    "allow16HourException",
    "allow_16_hour_exception",
)


def normalize_driver_hos(payload: Union[None, str, Mapping[str, Any], DriverHOSStatus]) -> Optional[DriverHOSStatus]:
    """Coerce a webhook/form payload into :class:`DriverHOSStatus`.

    Accepts a JSON string, a nested ``{"config": {...}}`` mapping or a flat
    mapping that carries the config keys alongside the clocks. Numeric strings
    are accepted for the clock values. Returns ``None`` for empty payloads.
    """

    if payload is None or isinstance(payload, DriverHOSStatus):
        return payload
    if isinstance(payload, str):
        if not payload.strip():
            return None
        payload = json.loads(payload)
    if not payload:
        return None

    data: Dict[str, Any] = dict(payload)
    if "config" not in data and any(key in data for key in _CONFIG_FIELDS):
        data["config"] = {key: data.pop(key) for key in _CONFIG_FIELDS if key in data}
    return DriverHOSStatus.model_validate(data)


__all__ = [
    "BREAK_THRESHOLD_MINUTES",
    "HOSPreset",
    "HOS_CONSTRAINT_DESCRIPTIONS",
    "HOS_PRESETS",
    "RESET_OFF_DUTY_MINUTES",
    "calculate_hos_strategy_constraints",
    "calculate_latest_legal_dock_time",
    "check_hos_feasibility",
    "estimate_next_shift_cost",
    "evaluate_hos_clocks",
    "get_binding_constraint",
    "is_break_required",
    "minutes_until_break_required",
    "normalize_driver_hos",
    "validate_hos_status",
    "would_cross_midnight",
]
