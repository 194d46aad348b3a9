"""Top-level decision for a live warehouse offer: cost, strategy and HOS combined."""

from __future__ import annotations

import logging
from datetime import datetime
from typing import Optional, Union

import pytz

from .config import DEFAULT_DETENTION_RATE_PER_HOUR, DEFAULT_DOCK_DURATION_MINUTES, LOCAL_TZ_NAME
from .contracts import ContractRules, DriverHOSStatus, SetupParams
from .cost_engine import calculate_cost_breakdown
from .hos_engine import check_hos_feasibility
from .offer_evaluator import evaluate_offer
from .schemas import (
    CostBreakdown,
    HOSFeasibilityResult,
    NegotiationState,
    NegotiationStrategy,
    OfferAnalysisResult,
    OfferEvaluation,
)
from .strategy import format_cost
from .time_utils import (
    MINUTES_PER_DAY,
    describe_delay,
    format_time_with_day_offset,
    minutes_to_time_12h,
    multi_day_time_difference,
    parse_time_to_minutes,
    round_up_to_five_minutes,
)

logger = logging.getLogger(__name__)


def resolve_current_minutes(
    current_time: Optional[Union[str, int]] = None,
    now: Optional[datetime] = None,
    tz_name: str = LOCAL_TZ_NAME,
) -> int:
    """Minutes from midnight "now" in the dispatcher's local time zone.

    An explicit ``current_time`` wins; otherwise ``now`` (naive values are
    taken as UTC) or the wall clock is converted to ``tz_name``.
    """

    if isinstance(current_time, int):
        return current_time
    if current_time:
        parsed = parse_time_to_minutes(current_time)
        if parsed is not None:
            return parsed
        logger.warning("Unparsable current time %r; falling back to the clock", current_time)

    moment = now or datetime.now(pytz.UTC)
    if moment.tzinfo is None:
        moment = moment.replace(tzinfo=pytz.UTC)
    local = moment.astimezone(pytz.timezone(tz_name))
    return local.hour * 60 + local.minute


def _delay_hours(delta_minutes: int) -> float:
    return round(delta_minutes / 60.0, 1)


def _delay_text(delta_minutes: int) -> str:
    if delta_minutes >= MINUTES_PER_DAY:
        return f"{describe_delay(delta_minutes)} later"
    return f"{_delay_hours(delta_minutes)} hours later"


def _counter_offer_minutes(strategy: NegotiationStrategy) -> int:
    return round_up_to_five_minutes(strategy.thresholds.ideal.max_minutes)


def _cost_reason(
    evaluation: OfferEvaluation,
    costs: CostBreakdown,
    strategy: NegotiationStrategy,
    delta_minutes: int,
    day_offset: int,
    counter_offer: Optional[str],
    state: NegotiationState,
) -> str:
    total = format_cost(costs.total_cost)
    if evaluation.quality == "IDEAL":
        return "IDEAL - No cost impact" if costs.total_cost == 0 else f"IDEAL - Minimal cost ({total})"
    if evaluation.quality == "ACCEPTABLE":
        if evaluation.reason == "Within acceptable range":
            return f"OK - Cost ({total}) within tolerance"
        return (
            f"ACCEPTABLE - Cost ({total}) within threshold "
            f"({format_cost(strategy.cost_thresholds.acceptable)})"
        )
    if evaluation.quality == "SUBOPTIMAL":
        if day_offset > 0:
            why = f"Offered time is {_delay_text(delta_minutes)} - significant delay"
        elif evaluation.reason.startswith("Time"):
            why = "Time too late in the day"
        else:
            why = "Cost too high"
        return (
            f"SUBOPTIMAL - {why}. Total delay: {delta_minutes} minutes ({_delay_text(delta_minutes)}). "
            f"Counter-offer: {counter_offer}."
        )
    return (
        f"UNACCEPTABLE - No better options after {state.pushback_count} pushbacks, "
        f"must accept ({total})"
    )


def _parse_error_result() -> OfferAnalysisResult:
    return OfferAnalysisResult(
        acceptable=False,
        quality="UNKNOWN",
        should_pushback=False,
        parsed_offered_time=None,
        minutes_from_original=None,
        internal_reason="Could not parse time values",
    )


def analyze_time_offer(
    offered_time_text: str,
    setup: SetupParams,
    rules: ContractRules,
    strategy: NegotiationStrategy,
    *,
    state: Optional[NegotiationState] = None,
    day_offset: int = 0,
    driver_hos: Optional[DriverHOSStatus] = None,
    current_time: Optional[Union[str, int]] = None,
    now: Optional[datetime] = None,
    detention_rate: float = DEFAULT_DETENTION_RATE_PER_HOUR,
    dock_duration_minutes: int = DEFAULT_DOCK_DURATION_MINUTES,
) -> OfferAnalysisResult:
    """Decide whether to accept ``offered_time_text`` and what to counter with.

    ``strategy`` must be the one shown to the dispatcher; it is never rebuilt
    here. ``day_offset`` is supplied by the caller (0 = same day as the
    original appointment). When ``driver_hos`` is given, an HOS-infeasible
    offer is countered with the latest legal dock time, and a cost-based
    counter-offer never goes past that deadline.
    """

    state = state or NegotiationState()
    day_offset = max(int(day_offset), 0)

    offered = parse_time_to_minutes(offered_time_text)
    delta = multi_day_time_difference(setup.original_appointment, offered_time_text, day_offset)
    if offered is None or delta is None:
        logger.info("Could not parse offer %r against %r", offered_time_text, setup.original_appointment)
        return _parse_error_result()

    costs = calculate_cost_breakdown(
        setup.original_appointment,
        offered_time_text,
        setup.shipment_value,
        setup.party_name,
        rules,
        day_offset,
    )
    evaluation = evaluate_offer(offered_time_text, costs.total_cost, strategy, state, day_offset)

    counter_minutes: Optional[int] = None
    if evaluation.should_pushback:
        counter_minutes = _counter_offer_minutes(strategy)
    counter_offer = minutes_to_time_12h(counter_minutes) if counter_minutes is not None else None
    reason = _cost_reason(evaluation, costs, strategy, delta, day_offset, counter_offer, state)

    hos: Optional[HOSFeasibilityResult] = None
    if driver_hos is not None:
        current = resolve_current_minutes(current_time, now)
        hos = check_hos_feasibility(
            offered_time_text,
            current,
            driver_hos,
            dock_duration_minutes,
            detention_rate,
            proposed_day_offset=day_offset,
        )
        latest = hos.latest_legal_dock_minutes
        latest_text = minutes_to_time_12h(latest)

        if not hos.feasible:
            counter_offer = latest_text
            if latest <= current:
                reason = (
                    f"HOS INFEASIBLE - Exceeds driver's {hos.binding_constraint} limit. Next shift required."
                )
            else:
                reason = (
                    f"HOS INFEASIBLE - Driver cannot work at this time ({hos.binding_constraint}). "
                    f"Latest: {latest_text}"
                )
            logger.warning("Offer %s overridden by HOS: %s", offered_time_text, reason)
        elif counter_minutes is not None and counter_minutes > latest:
            logger.warning("Counter-offer %s exceeds HOS limit %s; clamping", counter_offer, latest_text)
            counter_offer = latest_text
            reason += f" (Counter clamped to HOS limit: {latest_text})"

    hos_feasible = hos.feasible if hos is not None else True
    acceptable = evaluation.should_accept

    return OfferAnalysisResult(
        acceptable=acceptable,
        quality=evaluation.quality,
        should_pushback=evaluation.should_pushback or not hos_feasible,
        parsed_offered_time=minutes_to_time_12h(offered),
        minutes_from_original=delta,
        internal_reason=reason,
        suggested_counter_offer=counter_offer,
        cost_breakdown=costs,
        hos_feasible=hos_feasible,
        hos_binding_constraint=hos.binding_constraint if hos is not None else None,
        hos_latest_legal_time=minutes_to_time_12h(hos.latest_legal_dock_minutes) if hos is not None else None,
        hos_requires_next_shift=hos.requires_next_shift if hos is not None else False,
        combined_acceptable=acceptable and hos_feasible,
        day_offset=day_offset,
        is_next_day=day_offset > 0,
        formatted_time=format_time_with_day_offset(offered_time_text, day_offset),
        delay_hours=_delay_hours(delta),
        delay_description=describe_delay(delta),
    )


__all__ = ["analyze_time_offer", "resolve_current_minutes"]
