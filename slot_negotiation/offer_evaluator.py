"""Classify a single warehouse offer against a precomputed strategy."""

from __future__ import annotations

from typing import Optional

from .schemas import MultiDayOfferEvaluation, NegotiationState, NegotiationStrategy, OfferEvaluation
from .time_utils import format_time_with_day_offset, to_absolute_minutes


def _classify(
    offered_minutes: Optional[int],
    cost: float,
    strategy: NegotiationStrategy,
    state: NegotiationState,
) -> OfferEvaluation:
    if offered_minutes is None:
        return OfferEvaluation("UNKNOWN", False, False, "Could not parse offered time")

    thresholds = strategy.thresholds
    costs = strategy.cost_thresholds
    pushbacks_used = max(state.pushback_count, 0)

    if offered_minutes <= thresholds.ideal.max_minutes and cost <= costs.ideal:
        reason = "No cost impact" if cost == 0 else "Minimal cost impact"
        return OfferEvaluation("IDEAL", True, False, reason)

    if offered_minutes <= thresholds.acceptable.max_minutes and cost <= costs.acceptable:
        return OfferEvaluation("ACCEPTABLE", True, False, "Acceptable timeframe and cost")

    too_late = offered_minutes > thresholds.acceptable.max_minutes
    too_costly = cost > costs.reluctant

    if too_late or too_costly:
        if pushbacks_used < strategy.max_pushback_attempts:
            reason = (
                "Time too late, attempting negotiation" if too_late else "Cost too high, attempting negotiation"
            )
            return OfferEvaluation("SUBOPTIMAL", False, True, reason)
        return OfferEvaluation("UNACCEPTABLE", True, False, "No better options, must accept")

    return OfferEvaluation("ACCEPTABLE", True, False, "Within acceptable range")


def evaluate_offer(
    time_offered: str,
    cost: float,
    strategy: NegotiationStrategy,
    state: Optional[NegotiationState] = None,
    day_offset: int = 0,
) -> OfferEvaluation:
    """Return the decision for ``time_offered`` at ``cost``.

    Times are compared as absolute minutes so an offer on a later day is
    never mistaken for an earlier slot today. Unparsable times yield
    ``UNKNOWN`` with neither accept nor pushback.
    """

    offered = to_absolute_minutes(time_offered, day_offset)
    return _classify(offered, cost, strategy, state or NegotiationState())


def evaluate_offer_multi_day(
    time_offered: str,
    cost: float,
    strategy: NegotiationStrategy,
    state: Optional[NegotiationState] = None,
    day_offset: int = 0,
) -> MultiDayOfferEvaluation:
    evaluation = evaluate_offer(time_offered, cost, strategy, state, day_offset)
    day_offset = max(day_offset, 0)
    return MultiDayOfferEvaluation(
        quality=evaluation.quality,
        should_accept=evaluation.should_accept,
        should_pushback=evaluation.should_pushback,
        reason=evaluation.reason,
        day_offset=day_offset,
        is_next_day=day_offset > 0,
        formatted_time=format_time_with_day_offset(time_offered, day_offset),
    )


def get_evaluation_summary(evaluation: OfferEvaluation, cost: float) -> str:
    if evaluation.should_accept:
        action = "Accept"
    elif evaluation.should_pushback:
        action = "Negotiate"
    else:
        action = "Evaluate"
    return f"{evaluation.quality} (${cost:g}) - {action}: {evaluation.reason}"


__all__ = ["evaluate_offer", "evaluate_offer_multi_day", "get_evaluation_summary"]
