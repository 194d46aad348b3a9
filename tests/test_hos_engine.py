import math

import pytest
from pydantic import ValidationError

from slot_negotiation.contracts import DriverHOSStatus, HOSConfig
from slot_negotiation.hos_engine import (
    HOS_PRESETS,
    calculate_hos_strategy_constraints,
    calculate_latest_legal_dock_time,
    check_hos_feasibility,
    estimate_next_shift_cost,
    evaluate_hos_clocks,
    get_binding_constraint,
    is_break_required,
    minutes_until_break_required,
    normalize_driver_hos,
    validate_hos_status,
    would_cross_midnight,
)


def _status(drive=600, window=700, weekly=3000, since_break=0, **config) -> DriverHOSStatus:
    return DriverHOSStatus(
        remaining_drive_minutes=drive,
        remaining_window_minutes=window,
        remaining_weekly_minutes=weekly,
        minutes_since_last_break=since_break,
        config=HOSConfig(**config),
    )


def test_binding_constraint_is_the_soonest_clock() -> None:
    assert get_binding_constraint(_status(drive=300, window=200)) == ("14H_WINDOW", 200)
    assert get_binding_constraint(_status(drive=100, window=200)) == ("11H_DRIVE", 100)
    assert get_binding_constraint(_status(weekly=50)) == ("70_IN_8", 50)
    assert get_binding_constraint(_status(weekly=50, week_rule="60_in_7")) == ("60_IN_7", 50)


def test_ties_keep_declaration_order() -> None:
    clocks = evaluate_hos_clocks(_status(drive=200, window=200, weekly=200), 600)
    assert [clock.constraint for clock in clocks] == ["14H_WINDOW", "11H_DRIVE", "70_IN_8"]
    assert clocks[0].expires_at_minutes == 800


def test_break_required_binds_immediately_unless_exempt() -> None:
    status = _status(since_break=480)
    assert is_break_required(status)
    assert get_binding_constraint(status) == ("BREAK_REQUIRED", 0)
    assert minutes_until_break_required(status) == 0

    exempt = _status(since_break=480, short_haul_exempt=True)
    assert not is_break_required(exempt)
    assert math.isinf(minutes_until_break_required(exempt))


def test_latest_legal_dock_time_subtracts_dock_duration() -> None:
    arrival = 930
    constraints = calculate_hos_strategy_constraints(arrival, _status(window=150), 60)

    assert constraints.latest_feasible_minutes == arrival + 150 - 60
    assert constraints.latest_feasible_time == "17:00"
    assert constraints.binding_constraint == "14H_WINDOW"
    assert constraints.binding_constraint_remaining_minutes == 150
    assert constraints.requires_next_shift is False
    assert calculate_latest_legal_dock_time("15:30", _status(window=150)) == "17:00"


def test_exhausted_clock_requires_next_shift() -> None:
    constraints = calculate_hos_strategy_constraints("15:00", _status(window=30), 60)
    assert constraints.latest_feasible_minutes == 870
    assert constraints.requires_next_shift is True
    assert constraints.next_shift_earliest_time == "1:00"


def test_feasible_proposal() -> None:
    result = check_hos_feasibility("16:00", "15:00", _status(window=240))
    assert result.feasible
    assert result.binding_constraint is None
    assert result.available_time_at_dock_minutes == 180
    assert result.next_shift_cost_premium is None


def test_infeasible_proposal_prices_the_next_shift() -> None:
    result = check_hos_feasibility("18:30", "15:00", _status(window=180), detention_rate_per_hour=50)

    assert not result.feasible
    assert result.requires_next_shift
    assert result.binding_constraint == "14H_WINDOW"
    assert result.binding_constraint_description == "14-hour on-duty window"
    assert result.latest_legal_dock_time == "17:00"
    assert result.next_shift_earliest_start == "1:00"
    assert result.next_shift_cost_premium == 200


def test_break_required_makes_any_proposal_infeasible() -> None:
    result = check_hos_feasibility("15:05", "15:00", _status(since_break=480))
    assert not result.feasible
    assert result.binding_constraint == "BREAK_REQUIRED"
    assert "30-minute break required before any more driving" in result.warnings


def test_earlier_clock_time_means_next_day() -> None:
    result = check_hos_feasibility("06:00", "22:00", _status(drive=300, window=400))
    assert not result.feasible
    assert result.available_time_at_dock_minutes == 0
    assert would_cross_midnight("22:00", "06:00")
    assert not would_cross_midnight("06:00", "22:00")


def test_day_offset_places_proposal_on_later_day() -> None:
    same_day = check_hos_feasibility("14:00", "13:00", _status(window=840, drive=660))
    next_day = check_hos_feasibility("14:00", "13:00", _status(window=840, drive=660), proposed_day_offset=1)
    assert same_day.feasible
    assert not next_day.feasible


def test_warnings_for_low_clocks() -> None:
    result = check_hos_feasibility("15:10", "15:00", _status(drive=100, window=100, weekly=240, since_break=450))
    assert result.warnings == [
        "30-minute break required after 30 more minutes of driving",
        "14-hour window ends in 1h 40m",
        "Weekly limit: only 4h remaining",
    ]


@pytest.mark.parametrize(
    "wait, expected_hours, layover, total",
    [(0, 0, False, 0), (61, 2, False, 100), (600, 10, True, 650), (725, 13, True, 800)],
)
def test_next_shift_cost(wait, expected_hours, layover, total) -> None:
    cost = estimate_next_shift_cost(wait, 50, 150)
    assert cost.driver_detention_hours == expected_hours
    assert cost.layover_required is layover
    assert cost.total_next_shift_premium == total


def test_validate_hos_status_ranges() -> None:
    assert validate_hos_status(_status()).valid

    report = validate_hos_status(_status(drive=700, window=650, weekly=4000, week_rule="60_in_7"))
    assert "Remaining drive time must be between 0 and 660 minutes (11 hours)" in report.errors
    assert "Remaining weekly time must be between 0 and 3600 minutes" in report.errors
    assert "Remaining drive time cannot exceed remaining window time" in report.errors


def test_sixteen_hour_exception_extends_window_limit() -> None:
    assert not validate_hos_status(_status(window=900)).valid
    assert validate_hos_status(_status(window=900, allow_16_hour_exception=True)).valid


def test_normalize_driver_hos_accepts_flat_and_nested_payloads() -> None:
    flat = normalize_driver_hos(
        '{"remainingDriveMinutes": "300", "remainingWindowMinutes": 400, '
        '"remainingWeeklyMinutes": 2000, "minutesSinceLastBreak": 100, "weekRule": "60_in_7"}'
    )
    nested = normalize_driver_hos(
        {
            "remaining_drive_minutes": 300,
            "remaining_window_minutes": 400,
            "remaining_weekly_minutes": 2000,
            "minutes_since_last_break": 100,
            "config": {"weekRule": "60_in_7"},
        }
    )
    assert flat == nested
    assert flat.config.week_rule == "60_in_7"
    assert normalize_driver_hos(None) is None
    assert normalize_driver_hos("") is None


def test_normalize_driver_hos_rejects_bad_week_rule() -> None:
    with pytest.raises(ValidationError):
        normalize_driver_hos(
            {
                "remainingDriveMinutes": 1,
                "remainingWindowMinutes": 1,
                "remainingWeeklyMinutes": 1,
                "weekRule": "80_in_9",
            }
        )


def test_presets_are_valid_snapshots() -> None:
    for preset in HOS_PRESETS.values():
        assert validate_hos_status(preset.to_status()).valid
    assert HOS_PRESETS["end_of_shift"].to_status().remaining_window_minutes == 180
