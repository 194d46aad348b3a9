"""Result records produced by the negotiation engine."""

from __future__ import annotations

import math
from dataclasses import dataclass, field, replace
from decimal import ROUND_HALF_UP, Decimal
from typing import Any, Dict, List, Literal, Mapping, Optional, Tuple

OfferQuality = Literal["IDEAL", "ACCEPTABLE", "SUBOPTIMAL", "UNACCEPTABLE", "UNKNOWN"]
CurveShape = Literal["STEP", "LINEAR", "FLAT"]
HOSBindingConstraint = Literal["14H_WINDOW", "11H_DRIVE", "70_IN_8", "60_IN_7", "BREAK_REQUIRED"]


class StrategyPayloadError(ValueError):
    """Raised when a serialized strategy cannot be rebuilt."""


def round_cents(value: float) -> float:
    """Round to whole cents, halves away from zero (``0.125 -> 0.13``)."""

    value = float(value)
    if not math.isfinite(value):
        return value
    return float(Decimal(repr(value)).quantize(Decimal("0.01"), rounding=ROUND_HALF_UP))


@dataclass(frozen=True)
class DwellTimeLineItem:
    hours: float
    rate: float
    cost: float

    def as_dict(self) -> Dict[str, float]:
        return {"hours": self.hours, "rate": self.rate, "cost": self.cost}


@dataclass(frozen=True)
class DwellTimeCostResult:
    total: float = 0.0
    breakdown: Tuple[DwellTimeLineItem, ...] = ()

    def as_dict(self) -> Dict[str, object]:
        return {"total": self.total, "breakdown": [item.as_dict() for item in self.breakdown]}


@dataclass(frozen=True)
class PenaltyLineItem:
    description: str
    cost: float

    def as_dict(self) -> Dict[str, object]:
        return {"description": self.description, "cost": self.cost}


@dataclass(frozen=True)
class CompliancePenaltyResult:
    total: float = 0.0
    breakdown: Tuple[PenaltyLineItem, ...] = ()
    is_compliant: bool = True
    window_minutes: Optional[int] = None
    outside_window: bool = False

    def as_dict(self) -> Dict[str, object]:
        return {
            "total": self.total,
            "breakdown": [item.as_dict() for item in self.breakdown],
            "isCompliant": self.is_compliant,
            "windowMinutes": self.window_minutes,
            "outsideWindow": self.outside_window,
        }


@dataclass(frozen=True)
class TimeDifference:
    original_time: str
    new_time: str
    difference_minutes: int
    difference_hours: float
    day_offset: int = 0

    def as_dict(self) -> Dict[str, object]:
        return {
            "originalTime": self.original_time,
            "newTime": self.new_time,
            "differenceMinutes": self.difference_minutes,
            "differenceHours": self.difference_hours,
            "dayOffset": self.day_offset,
        }


@dataclass(frozen=True)
class TotalCostImpact:
    total_cost: float = 0.0
    time_difference: Optional[TimeDifference] = None
    dwell_time: Optional[DwellTimeCostResult] = None
    compliance: Optional[CompliancePenaltyResult] = None

    def as_dict(self) -> Dict[str, object]:
        calculations: Dict[str, object] = {}
        if self.time_difference is not None:
            calculations["timeDifference"] = self.time_difference.as_dict()
        if self.dwell_time is not None:
            calculations["dwellTime"] = self.dwell_time.as_dict()
        if self.compliance is not None:
            calculations["compliance"] = self.compliance.as_dict()
        return {"calculations": calculations, "totalCost": self.total_cost}


@dataclass(frozen=True)
class CostBreakdown:
    dwell_cost: float
    compliance_penalty: float
    total_cost: float
    is_late: bool

    def as_dict(self) -> Dict[str, object]:
        return {
            "dwellCost": self.dwell_cost,
            "compliancePenalty": self.compliance_penalty,
            "totalCost": self.total_cost,
            "isLate": self.is_late,
        }


@dataclass(frozen=True)
class CostSample:
    time_minutes: int
    cost: float


@dataclass(frozen=True)
class StepJump:
    time_minutes: int
    cost_before: float
    cost_after: float
    jump_amount: float


@dataclass(frozen=True)
class CostCurveAnalysis:
    """Shape of the cost function sampled forward from arrival."""

    arrival_minutes: int
    samples: Tuple[CostSample, ...]
    lowest_cost: float
    zero_penalty_end: Optional[int]
    step_jumps: Tuple[StepJump, ...]
    shape: CurveShape

    @property
    def has_step_jumps(self) -> bool:
        return bool(self.step_jumps)

    @property
    def is_linear_growth(self) -> bool:
        return self.shape == "LINEAR"

    @property
    def first_significant_jump(self) -> Optional[StepJump]:
        return self.step_jumps[0] if self.step_jumps else None


@dataclass(frozen=True)
class NegotiationThreshold:
    max_minutes: int
    description: str
    cost_impact: str

    def as_dict(self) -> Dict[str, object]:
        return {
            "maxMinutes": self.max_minutes,
            "description": self.description,
            "costImpact": self.cost_impact,
        }


@dataclass(frozen=True)
class NegotiationThresholds:
    ideal: NegotiationThreshold
    acceptable: NegotiationThreshold
    problematic: NegotiationThreshold

    def as_dict(self) -> Dict[str, object]:
        return {
            "ideal": self.ideal.as_dict(),
            "acceptable": self.acceptable.as_dict(),
            "problematic": self.problematic.as_dict(),
        }


@dataclass(frozen=True)
class CostThresholds:
    ideal: float
    acceptable: float
    reluctant: float

    def as_dict(self) -> Dict[str, float]:
        return {"ideal": self.ideal, "acceptable": self.acceptable, "reluctant": self.reluctant}


@dataclass(frozen=True)
class StrategyDisplay:
    ideal_before: str
    acceptable_before: str
    problematic_after: str
    actual_arrival_time: str

    def as_dict(self) -> Dict[str, str]:
        return {
            "idealBefore": self.ideal_before,
            "acceptableBefore": self.acceptable_before,
            "problematicAfter": self.problematic_after,
            "actualArrivalTime": self.actual_arrival_time,
        }


@dataclass(frozen=True)
class HOSStrategyConstraints:
    """Regulatory ceiling applied to a strategy."""

    latest_feasible_time: str
    latest_feasible_minutes: int
    requires_next_shift: bool
    remaining_window_minutes: int
    binding_constraint: HOSBindingConstraint
    binding_constraint_remaining_minutes: int
    next_shift_earliest_time: Optional[str] = None

    def as_dict(self) -> Dict[str, object]:
        return {
            "latestFeasibleTime": self.latest_feasible_time,
            "latestFeasibleMinutes": self.latest_feasible_minutes,
            "requiresNextShift": self.requires_next_shift,
            "remainingWindowMinutes": self.remaining_window_minutes,
            "bindingConstraint": self.binding_constraint,
            "bindingConstraintRemainingMinutes": self.binding_constraint_remaining_minutes,
            "nextShiftEarliestTime": self.next_shift_earliest_time,
        }


@dataclass(frozen=True)
class NegotiationStrategy:
    """Thresholds derived once per negotiation and reused for every offer."""

    thresholds: NegotiationThresholds
    cost_thresholds: CostThresholds
    max_pushback_attempts: int
    display: StrategyDisplay
    arrival_minutes: int
    curve_shape: CurveShape
    hos_constraints: Optional[HOSStrategyConstraints] = None

    def as_dict(self) -> Dict[str, object]:
        payload: Dict[str, object] = {
            "thresholds": self.thresholds.as_dict(),
            "costThresholds": self.cost_thresholds.as_dict(),
            "maxPushbackAttempts": self.max_pushback_attempts,
            "display": self.display.as_dict(),
            "arrivalMinutes": self.arrival_minutes,
            "curveShape": self.curve_shape,
        }
        if self.hos_constraints is not None:
            payload["hosConstraints"] = self.hos_constraints.as_dict()
        return payload

    @classmethod
    def from_dict(cls, payload: Mapping[str, Any]) -> "NegotiationStrategy":
        """Rebuild a strategy previously serialized with :meth:`as_dict`."""

        try:
            thresholds = payload["thresholds"]
            costs = payload["costThresholds"]
            display = payload["display"]
            hos = payload.get("hosConstraints")

            def _threshold(data: Mapping[str, Any]) -> NegotiationThreshold:
                return NegotiationThreshold(
                    max_minutes=int(data["maxMinutes"]),
                    description=str(data["description"]),
                    cost_impact=str(data["costImpact"]),
                )

            return cls(
                thresholds=NegotiationThresholds(
                    ideal=_threshold(thresholds["ideal"]),
                    acceptable=_threshold(thresholds["acceptable"]),
                    problematic=_threshold(thresholds["problematic"]),
                ),
                cost_thresholds=CostThresholds(
                    ideal=float(costs["ideal"]),
                    acceptable=float(costs["acceptable"]),
                    reluctant=float(costs["reluctant"]),
                ),
                max_pushback_attempts=int(payload["maxPushbackAttempts"]),
                display=StrategyDisplay(
                    ideal_before=str(display["idealBefore"]),
                    acceptable_before=str(display["acceptableBefore"]),
                    problematic_after=str(display["problematicAfter"]),
                    actual_arrival_time=str(display["actualArrivalTime"]),
                ),
                arrival_minutes=int(payload["arrivalMinutes"]),
                curve_shape=payload["curveShape"],
                hos_constraints=(
                    HOSStrategyConstraints(
                        latest_feasible_time=str(hos["latestFeasibleTime"]),
                        latest_feasible_minutes=int(hos["latestFeasibleMinutes"]),
                        requires_next_shift=bool(hos["requiresNextShift"]),
                        remaining_window_minutes=int(hos["remainingWindowMinutes"]),
                        binding_constraint=hos["bindingConstraint"],
                        binding_constraint_remaining_minutes=int(hos["bindingConstraintRemainingMinutes"]),
                        next_shift_earliest_time=hos.get("nextShiftEarliestTime"),
                    )
                    if hos
                    else None
                ),
            )
        except (KeyError, TypeError, ValueError) as exc:
            raise StrategyPayloadError(f"Invalid strategy payload: {exc}") from exc


@dataclass(frozen=True)
class NegotiationState:
    """Caller-owned negotiation progress; only the pushback counter matters here."""

    pushback_count: int = 0

    def after_pushback(self) -> "NegotiationState":
        return replace(self, pushback_count=self.pushback_count + 1)


@dataclass(frozen=True)
class OfferEvaluation:
    quality: OfferQuality
    should_accept: bool
    should_pushback: bool
    reason: str

    def as_dict(self) -> Dict[str, object]:
        return {
            "quality": self.quality,
            "shouldAccept": self.should_accept,
            "shouldPushback": self.should_pushback,
            "reason": self.reason,
        }


@dataclass(frozen=True)
class MultiDayOfferEvaluation(OfferEvaluation):
    day_offset: int = 0
    is_next_day: bool = False
    formatted_time: str = ""

    def as_dict(self) -> Dict[str, object]:
        payload = OfferEvaluation.as_dict(self)
        payload.update(
            {
                "dayOffset": self.day_offset,
                "isNextDay": self.is_next_day,
                "formattedTime": self.formatted_time,
            }
        )
        return payload


@dataclass(frozen=True)
class NextShiftCost:
    driver_detention_hours: int
    detention_rate_per_hour: float
    detention_cost: float
    layover_required: bool
    layover_daily_rate: float
    layover_cost: float
    total_next_shift_premium: float


@dataclass(frozen=True)
class HOSClock:
    constraint: HOSBindingConstraint
    expires_at_minutes: int


@dataclass
class HOSFeasibilityResult:
    feasible: bool
    latest_legal_dock_time: str
    latest_legal_dock_minutes: int
    available_time_at_dock_minutes: int
    requires_next_shift: bool
    binding_constraint: Optional[HOSBindingConstraint] = None
    binding_constraint_description: Optional[str] = None
    warnings: List[str] = field(default_factory=list)
    next_shift_earliest_start: Optional[str] = None
    next_shift_cost_premium: Optional[float] = None

    def as_dict(self) -> Dict[str, object]:
        return {
            "feasible": self.feasible,
            "bindingConstraint": self.binding_constraint,
            "bindingConstraintDescription": self.binding_constraint_description,
            "latestLegalDockTime": self.latest_legal_dock_time,
            "latestLegalDockMinutes": self.latest_legal_dock_minutes,
            "availableTimeAtDockMinutes": self.available_time_at_dock_minutes,
            "warnings": list(self.warnings),
            "requiresNextShift": self.requires_next_shift,
            "nextShiftEarliestStart": self.next_shift_earliest_start,
            "nextShiftCostPremium": self.next_shift_cost_premium,
        }


@dataclass
class ValidationReport:
    errors: List[str] = field(default_factory=list)
    warnings: List[str] = field(default_factory=list)

    @property
    def valid(self) -> bool:
        return not self.errors

    def as_dict(self) -> Dict[str, object]:
        return {"valid": self.valid, "errors": list(self.errors), "warnings": list(self.warnings)}


@dataclass
class OfferAnalysisResult:
    """Everything the voice/text layer needs to answer a warehouse offer."""

    acceptable: bool
    quality: OfferQuality
    should_pushback: bool
    parsed_offered_time: Optional[str]
    minutes_from_original: Optional[int]
    internal_reason: str
    suggested_counter_offer: Optional[str] = None
    cost_breakdown: Optional[CostBreakdown] = None
    hos_feasible: bool = True
    hos_binding_constraint: Optional[HOSBindingConstraint] = None
    hos_latest_legal_time: Optional[str] = None
    hos_requires_next_shift: bool = False
    combined_acceptable: bool = False
    day_offset: int = 0
    is_next_day: bool = False
    formatted_time: str = ""
    delay_hours: float = 0.0
    delay_description: str = ""

    def as_dict(self) -> Dict[str, object]:
        return {
            "acceptable": self.acceptable,
            "quality": self.quality,
            "shouldPushback": self.should_pushback,
            "parsedOfferedTime": self.parsed_offered_time,
            "minutesFromOriginal": self.minutes_from_original,
            "internalReason": self.internal_reason,
            "suggestedCounterOffer": self.suggested_counter_offer,
            "costBreakdown": self.cost_breakdown.as_dict() if self.cost_breakdown else None,
            "hosFeasible": self.hos_feasible,
            "hosBindingConstraint": self.hos_binding_constraint,
            "hosLatestLegalTime": self.hos_latest_legal_time,
            "hosRequiresNextShift": self.hos_requires_next_shift,
            "combinedAcceptable": self.combined_acceptable,
            "dayOffset": self.day_offset,
            "isNextDay": self.is_next_day,
            "formattedTime": self.formatted_time,
            "delayHours": self.delay_hours,
            "delayDescription": self.delay_description,
        }


__all__ = [
    "CompliancePenaltyResult",
    "CostBreakdown",
    "CostCurveAnalysis",
    "CostSample",
    "CostThresholds",
    "CurveShape",
    "DwellTimeCostResult",
    "DwellTimeLineItem",
    "HOSBindingConstraint",
    "HOSClock",
    "HOSFeasibilityResult",
    "HOSStrategyConstraints",
    "MultiDayOfferEvaluation",
    "NegotiationState",
    "NegotiationStrategy",
    "NegotiationThreshold",
    "NegotiationThresholds",
    "NextShiftCost",
    "OfferAnalysisResult",
    "OfferEvaluation",
    "OfferQuality",
    "PenaltyLineItem",
    "StepJump",
    "StrategyDisplay",
    "StrategyPayloadError",
    "TimeDifference",
    "TotalCostImpact",
    "ValidationReport",
    "round_cents",
]
