import pytest

from slot_negotiation.offer_evaluator import evaluate_offer, evaluate_offer_multi_day, get_evaluation_summary
from slot_negotiation.schemas import (
    CostThresholds,
    NegotiationState,
    NegotiationStrategy,
    NegotiationThreshold,
    NegotiationThresholds,
    StrategyDisplay,
)


def _strategy(max_pushbacks: int = 2) -> NegotiationStrategy:
    return NegotiationStrategy(
        thresholds=NegotiationThresholds(
            ideal=NegotiationThreshold(960, "Minimal delay cost", "$1,700"),
            acceptable=NegotiationThreshold(1050, "Manageable cost increase", "$1,774.17"),
            problematic=NegotiationThreshold(1110, "High cumulative cost", "Up to $1,831.42"),
        ),
        cost_thresholds=CostThresholds(ideal=1700, acceptable=1775, reluctant=1800),
        max_pushback_attempts=max_pushbacks,
        display=StrategyDisplay("4 PM", "5:30 PM", "6:30 PM", "3:30 PM"),
        arrival_minutes=930,
        curve_shape="LINEAR",
    )


@pytest.mark.parametrize(
    "time_offered, cost, quality, accept, pushback",
    [
        ("15:45", 1700, "IDEAL", True, False),
        ("4:00 PM", 1700, "IDEAL", True, False),
        ("17:00", 1760, "ACCEPTABLE", True, False),
        ("16:00", 1790, "ACCEPTABLE", True, False),
        ("18:00", 1800, "SUBOPTIMAL", False, True),
        ("16:30", 2500, "SUBOPTIMAL", False, True),
        ("sometime", 0, "UNKNOWN", False, False),
    ],
)
def test_offer_classification(time_offered, cost, quality, accept, pushback):
    evaluation = evaluate_offer(time_offered, cost, _strategy(), NegotiationState())
    assert evaluation.quality == quality
    assert evaluation.should_accept is accept
    assert evaluation.should_pushback is pushback


def test_reasons_distinguish_time_and_cost():
    assert evaluate_offer("18:00", 0, _strategy()).reason == "Time too late, attempting negotiation"
    assert evaluate_offer("16:30", 2500, _strategy()).reason == "Cost too high, attempting negotiation"
    assert evaluate_offer("15:45", 0, _strategy()).reason == "No cost impact"


def test_pushback_budget_exhaustion_forces_acceptance():
    strategy = _strategy()
    state = NegotiationState()

    for _ in range(strategy.max_pushback_attempts):
        evaluation = evaluate_offer("19:00", 1900, strategy, state)
        assert evaluation.quality == "SUBOPTIMAL"
        state = state.after_pushback()

    final = evaluate_offer("19:00", 1900, strategy, state)
    assert final.quality == "UNACCEPTABLE"
    assert final.should_accept is True
    assert final.should_pushback is False


def test_next_day_offer_is_never_earlier_than_today():
    same_day = evaluate_offer("06:00", 0, _strategy(), day_offset=0)
    next_day = evaluate_offer("06:00", 0, _strategy(), day_offset=1)
    assert same_day.quality == "IDEAL"
    assert next_day.quality == "SUBOPTIMAL"


def test_multi_day_evaluation_adds_day_fields():
    evaluation = evaluate_offer_multi_day("06:00", 2000, _strategy(), NegotiationState(), day_offset=1)
    assert evaluation.is_next_day
    assert evaluation.day_offset == 1
    assert evaluation.formatted_time == "Tomorrow at 6 AM"
    assert evaluation.as_dict()["isNextDay"] is True


def test_evaluation_summary():
    evaluation = evaluate_offer("18:00", 1800, _strategy())
    assert get_evaluation_summary(evaluation, 1800) == (
        "SUBOPTIMAL ($1800) - Negotiate: Time too late, attempting negotiation"
    )
