import math
from dataclasses import replace
from datetime import datetime

import pytz

from slot_negotiation.contracts import (
    ComplianceRules,
    ContractRules,
    DriverHOSStatus,
    DwellTier,
    DwellTimeRules,
    PartyChargeback,
    SetupParams,
)
from slot_negotiation.offer_analyzer import analyze_time_offer, resolve_current_minutes
from slot_negotiation.schemas import CostThresholds, NegotiationState
from slot_negotiation.strategy import build_negotiation_strategy

SETUP = SetupParams(original_appointment="14:00", delay_minutes=90, shipment_value=50000, party_name="Walmart")
RULES = ContractRules(
    dwell_time=DwellTimeRules(
        free_hours=2,
        tiers=(
            DwellTier(from_hours=2, to_hours=4, rate_per_hour=50),
            DwellTier(from_hours=4, to_hours=6, rate_per_hour=65),
            DwellTier(from_hours=6, to_hours=math.inf, rate_per_hour=75),
        ),
    ),
    compliance=ComplianceRules(window_minutes=30),
    party_chargebacks={"Walmart": PartyChargeback(percentage=3, flat_fee=200)},
)


def _driver(window: int) -> DriverHOSStatus:
    return DriverHOSStatus(
        remaining_drive_minutes=min(window, 660),
        remaining_window_minutes=window,
        remaining_weekly_minutes=3000,
    )


def test_ideal_offer_is_accepted_without_counter() -> None:
    strategy = build_negotiation_strategy(SETUP, RULES)
    result = analyze_time_offer("4:00 PM", SETUP, RULES, strategy)

    assert result.acceptable
    assert result.combined_acceptable
    assert result.quality == "IDEAL"
    assert result.internal_reason == "IDEAL - Minimal cost ($1,700)"
    assert result.suggested_counter_offer is None
    assert result.parsed_offered_time == "4:00 PM"
    assert result.minutes_from_original == 120
    assert result.cost_breakdown.total_cost == 1700
    assert result.delay_hours == 2.0
    assert result.delay_description == "about 2 hours"


def test_late_offer_gets_counter_at_ideal_time() -> None:
    strategy = build_negotiation_strategy(SETUP, RULES)
    result = analyze_time_offer("19:00", SETUP, RULES, strategy)

    assert not result.acceptable
    assert result.should_pushback
    assert result.cost_breakdown.total_cost == 1865
    assert result.suggested_counter_offer == "4:00 PM"
    assert result.internal_reason.startswith("SUBOPTIMAL - Time too late in the day")


def test_next_day_offer_reports_multi_day_fields() -> None:
    strategy = build_negotiation_strategy(SETUP, RULES)
    result = analyze_time_offer("06:00", SETUP, RULES, strategy, day_offset=1)

    assert result.minutes_from_original == 960
    assert result.is_next_day
    assert result.formatted_time == "Tomorrow at 6 AM"
    assert result.quality == "SUBOPTIMAL"
    assert "significant delay" in result.internal_reason


def test_hos_infeasible_offer_is_countered_with_latest_legal_time() -> None:
    driver = _driver(150)
    strategy = build_negotiation_strategy(SETUP, RULES, driver_hos=driver, current_time="15:30")
    result = analyze_time_offer("18:00", SETUP, RULES, strategy, driver_hos=driver, current_time="15:30")

    assert not result.hos_feasible
    assert not result.combined_acceptable
    assert result.should_pushback
    assert result.hos_binding_constraint == "14H_WINDOW"
    assert result.hos_latest_legal_time == "5:00 PM"
    assert result.suggested_counter_offer == "5:00 PM"
    assert result.internal_reason == (
        "HOS INFEASIBLE - Driver cannot work at this time (14H_WINDOW). Latest: 5:00 PM"
    )


def test_exhausted_hos_clock_requires_next_shift() -> None:
    driver = _driver(30)
    strategy = build_negotiation_strategy(SETUP, RULES)
    result = analyze_time_offer("16:00", SETUP, RULES, strategy, driver_hos=driver, current_time="15:30")

    assert result.hos_requires_next_shift
    assert result.internal_reason.endswith("Next shift required.")


def test_cost_counter_offer_is_clamped_to_hos_deadline() -> None:
    strategy = build_negotiation_strategy(SETUP, RULES)
    strict = replace(strategy, cost_thresholds=CostThresholds(ideal=0, acceptable=0, reluctant=0))
    result = analyze_time_offer("14:45", SETUP, RULES, strict, driver_hos=_driver(120), current_time="14:00")

    assert result.hos_feasible
    assert result.quality == "SUBOPTIMAL"
    assert result.suggested_counter_offer == "3:00 PM"
    assert result.internal_reason.endswith("(Counter clamped to HOS limit: 3:00 PM)")


def test_exhausted_pushbacks_force_acceptance() -> None:
    strategy = build_negotiation_strategy(SETUP, RULES)
    result = analyze_time_offer("19:00", SETUP, RULES, strategy, state=NegotiationState(pushback_count=2))

    assert result.quality == "UNACCEPTABLE"
    assert result.acceptable
    assert not result.should_pushback
    assert result.suggested_counter_offer is None


def test_unparsable_offer() -> None:
    strategy = build_negotiation_strategy(SETUP, RULES)
    result = analyze_time_offer("after lunch", SETUP, RULES, strategy)

    assert result.quality == "UNKNOWN"
    assert not result.acceptable
    assert result.parsed_offered_time is None
    assert result.as_dict()["internalReason"] == "Could not parse time values"


def test_current_minutes_resolution() -> None:
    assert resolve_current_minutes("15:30") == 930
    assert resolve_current_minutes(100) == 100
    winter = datetime(2026, 1, 15, 21, 30, tzinfo=pytz.UTC)
    assert resolve_current_minutes(now=winter, tz_name="America/Chicago") == 930
    assert resolve_current_minutes(now=datetime(2026, 7, 15, 20, 30), tz_name="America/Chicago") == 930


def test_now_drives_hos_check_when_no_clock_time_given() -> None:
    driver = _driver(150)
    strategy = build_negotiation_strategy(SETUP, RULES, driver_hos=driver)
    now = pytz.timezone("America/Chicago").localize(datetime(2026, 3, 2, 15, 30))
    result = analyze_time_offer("16:30", SETUP, RULES, strategy, driver_hos=driver, now=now)

    assert result.hos_feasible
    assert result.hos_latest_legal_time == "5:00 PM"
