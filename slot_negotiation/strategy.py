"""Build the negotiation strategy once per negotiation.

The same :class:`NegotiationStrategy` is shown in the dispatcher UI and later
handed, unchanged, to the offer analyzer. Nothing here reads the clock or any
other ambient state, so identical inputs always produce an equal strategy.
"""

from __future__ import annotations

import logging
from typing import Optional, Tuple, Union

from .config import DEFAULT_DOCK_DURATION_MINUTES, NegotiationPolicy
from .contracts import ContractRules, DriverHOSStatus, SetupParams
from .cost_curve import analyze_cost_curve
from .cost_engine import build_cost_function
from .hos_engine import HOS_CONSTRAINT_DESCRIPTIONS, calculate_hos_strategy_constraints
from .schemas import (
    CostCurveAnalysis,
    CostThresholds,
    HOSStrategyConstraints,
    NegotiationStrategy,
    NegotiationThreshold,
    NegotiationThresholds,
    StrategyDisplay,
    round_cents,
)
from .time_utils import format_absolute_minutes, parse_time_to_minutes, round_up_to_five_minutes

logger = logging.getLogger(__name__)

_Placement = Tuple[int, str]


def format_cost(amount: float) -> str:
    """``1700 -> "$1,700"``, ``1762.5 -> "$1,762.50"``."""

    amount = round_cents(amount)
    if amount == int(amount):
        return f"${int(amount):,}"
    return f"${amount:,.2f}"


def _place_thresholds(
    curve: CostCurveAnalysis,
    policy: NegotiationPolicy,
) -> Tuple[_Placement, _Placement, _Placement]:
    arrival = curve.arrival_minutes

    if curve.shape == "STEP":
        jump = curve.step_jumps[0]
        if curve.zero_penalty_end is not None:
            ideal = (curve.zero_penalty_end, "No additional penalties")
        else:
            ideal = (arrival, "Lowest achievable cost")
        acceptable_at = max(jump.time_minutes - policy.step_buffer_minutes, ideal[0] + policy.step_buffer_minutes)
        acceptable = (acceptable_at, "Before major penalty increase")
        later_jumps = [step.time_minutes for step in curve.step_jumps[1:] if step.time_minutes > acceptable_at]
        if later_jumps:
            problematic = (later_jumps[0], "Next penalty increase")
        else:
            problematic = (acceptable_at + policy.step_fallback_problematic_minutes, "After penalty threshold")
        return ideal, acceptable, problematic

    if curve.shape == "LINEAR":
        return (
            (arrival + policy.linear_ideal_minutes, "Minimal delay cost"),
            (arrival + policy.linear_acceptable_minutes, "Manageable cost increase"),
            (arrival + policy.linear_problematic_minutes, "High cumulative cost"),
        )

    return (
        (arrival, "Cost remains constant"),
        (arrival + policy.flat_acceptable_minutes, "Flexible scheduling"),
        (arrival + policy.flat_problematic_minutes, "Extended delay"),
    )


def _apply_hos_ceiling(
    placements: Tuple[_Placement, _Placement, _Placement],
    hos: HOSStrategyConstraints,
) -> Tuple[_Placement, ...]:
    ceiling = hos.latest_feasible_minutes
    label = f"HOS limit: {HOS_CONSTRAINT_DESCRIPTIONS[hos.binding_constraint]}"
    clamped = []
    for minutes, description in placements:
        if minutes > ceiling:
            logger.warning(
                "Clamping threshold %s to HOS deadline %s (%s)",
                format_absolute_minutes(minutes),
                format_absolute_minutes(ceiling),
                hos.binding_constraint,
            )
            clamped.append((ceiling, label))
        else:
            clamped.append((minutes, description))
    return tuple(clamped)


def build_negotiation_strategy(
    setup: SetupParams,
    rules: ContractRules,
    *,
    driver_hos: Optional[DriverHOSStatus] = None,
    current_time: Optional[Union[str, int]] = None,
    dock_duration_minutes: int = DEFAULT_DOCK_DURATION_MINUTES,
    policy: Optional[NegotiationPolicy] = None,
) -> NegotiationStrategy:
    """Derive thresholds from the cost curve after arrival, capped by HOS.

    ``current_time`` is when the driver snapshot was taken; without it the
    snapshot is assumed to describe the driver at arrival.
    """

    policy = policy or NegotiationPolicy()
    original = parse_time_to_minutes(setup.original_appointment)
    if original is None:
        logger.warning("Unparsable original appointment %r; anchoring at midnight", setup.original_appointment)
        original = 0
    arrival = original + max(setup.delay_minutes, 0)

    cost_fn = build_cost_function(original, setup.shipment_value, setup.party_name, rules)
    curve = analyze_cost_curve(arrival, cost_fn, policy.curve)
    placements = _place_thresholds(curve, policy)

    hos: Optional[HOSStrategyConstraints] = None
    if driver_hos is not None:
        snapshot_at = current_time if current_time is not None else arrival
        hos = calculate_hos_strategy_constraints(snapshot_at, driver_hos, dock_duration_minutes)
        placements = _apply_hos_ceiling(placements, hos)

    def _cost_inside(minutes: int) -> float:
        return cost_fn(minutes - 1 if minutes > arrival else minutes)

    (ideal_at, ideal_desc), (acceptable_at, acceptable_desc), (problematic_at, problematic_desc) = placements
    ideal_cost = _cost_inside(ideal_at)
    acceptable_cost = _cost_inside(acceptable_at)
    problematic_cost = _cost_inside(problematic_at)

    strategy = NegotiationStrategy(
        thresholds=NegotiationThresholds(
            ideal=NegotiationThreshold(ideal_at, ideal_desc, format_cost(ideal_cost)),
            acceptable=NegotiationThreshold(acceptable_at, acceptable_desc, format_cost(acceptable_cost)),
            problematic=NegotiationThreshold(problematic_at, problematic_desc, f"Up to {format_cost(problematic_cost)}"),
        ),
        cost_thresholds=CostThresholds(
            ideal=ideal_cost,
            acceptable=acceptable_cost,
            reluctant=round_cents(acceptable_cost + (problematic_cost - acceptable_cost) * 0.5),
        ),
        max_pushback_attempts=policy.max_pushback_attempts,
        display=StrategyDisplay(
            ideal_before=_display(ideal_at),
            acceptable_before=_display(acceptable_at),
            problematic_after=_display(problematic_at),
            actual_arrival_time=_display(arrival),
        ),
        arrival_minutes=arrival,
        curve_shape=curve.shape,
        hos_constraints=hos,
    )
    logger.info(
        "Strategy (%s curve): ideal<=%s acceptable<=%s problematic>%s",
        curve.shape,
        strategy.display.ideal_before,
        strategy.display.acceptable_before,
        strategy.display.problematic_after,
    )
    return strategy


def _display(minutes: int) -> str:
    return format_absolute_minutes(round_up_to_five_minutes(minutes))


__all__ = ["build_negotiation_strategy", "format_cost"]
