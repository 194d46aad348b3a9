"""Deterministic delay-cost calculations: dwell tiers and compliance chargebacks."""

from __future__ import annotations

import logging
from dataclasses import replace
from typing import Callable, Iterable, List, Mapping, Optional, Sequence, Tuple

from .config import DEFAULT_COMPLIANCE_WINDOW_MINUTES, NegotiationPolicy
from .contracts import (
    ComplianceRules,
    ContractRules,
    DwellTier,
    DwellTimeRules,
    ExtractedContractTerms,
    PartyChargeback,
    PartyPenalty,
)
from .schemas import (
    CompliancePenaltyResult,
    CostBreakdown,
    DwellTimeCostResult,
    DwellTimeLineItem,
    PenaltyLineItem,
    TimeDifference,
    TotalCostImpact,
    round_cents,
)
from .time_utils import multi_day_time_difference, time_difference_minutes

logger = logging.getLogger(__name__)

_DWELL_KEYWORDS = ("dwell", "detention")
_OTIF_KEYWORDS = ("otif", "on-time", "on time")
_LATE_DELIVERY_LABEL = "late delivery"


def calculate_dwell_time_cost(total_dwell_hours: float, rules: DwellTimeRules) -> DwellTimeCostResult:
    """Price ``total_dwell_hours`` against the free time and tier schedule."""

    if not rules.tiers:
        return DwellTimeCostResult()

    free_hours = rules.free_hours or 0.0
    if total_dwell_hours <= free_hours:
        return DwellTimeCostResult()

    remaining = total_dwell_hours - free_hours
    total = 0.0
    breakdown: List[DwellTimeLineItem] = []

    for tier in rules.tiers:
        if remaining <= 0:
            break
        hours = min(remaining, tier.span_hours)
        if hours <= 0:
            continue
        cost = hours * tier.rate_per_hour
        total += cost
        breakdown.append(
            DwellTimeLineItem(hours=round_cents(hours), rate=tier.rate_per_hour, cost=round_cents(cost))
        )
        remaining -= hours

    return DwellTimeCostResult(total=round_cents(total), breakdown=tuple(breakdown))


def _lookup_chargeback(
    party: Optional[str],
    chargebacks: Mapping[str, PartyChargeback],
) -> Optional[Tuple[str, PartyChargeback]]:
    if not chargebacks:
        return None
    if party:
        if party in chargebacks:
            return party, chargebacks[party]
        folded = party.strip().casefold()
        for name, rule in chargebacks.items():
            if name.strip().casefold() == folded:
                return name, rule
        return None
    if len(chargebacks) == 1:
        name, rule = next(iter(chargebacks.items()))
        return name, rule
    return None


def calculate_compliance_penalty(
    is_late: bool,
    shipment_value: float,
    party: Optional[str],
    chargebacks: Mapping[str, PartyChargeback],
) -> CompliancePenaltyResult:
    """Sum the matched party's percentage, flat and per-occurrence charges."""

    if not is_late:
        return CompliancePenaltyResult(is_compliant=True)

    match = _lookup_chargeback(party, chargebacks)
    if match is None:
        return CompliancePenaltyResult(is_compliant=False)

    label, rule = match
    breakdown: List[PenaltyLineItem] = []
    total = 0.0

    if rule.percentage:
        cost = shipment_value * (rule.percentage / 100.0)
        total += cost
        breakdown.append(PenaltyLineItem(f"{label} {rule.percentage:g}%", round_cents(cost)))

    if rule.flat_fee:
        total += rule.flat_fee
        breakdown.append(PenaltyLineItem(f"{label} flat", round_cents(rule.flat_fee)))

    if rule.per_occurrence:
        total += rule.per_occurrence
        breakdown.append(PenaltyLineItem(f"{label} occurrence", round_cents(rule.per_occurrence)))

    return CompliancePenaltyResult(total=round_cents(total), breakdown=tuple(breakdown), is_compliant=False)


def calculate_cost_for_delta(
    delta_minutes: float,
    shipment_value: float,
    party: Optional[str],
    rules: ContractRules,
) -> TotalCostImpact:
    """Price a schedule deviation of ``delta_minutes`` past the original appointment."""

    total = 0.0
    dwell: Optional[DwellTimeCostResult] = None
    delta_hours = delta_minutes / 60.0

    if delta_hours > 0:
        dwell = calculate_dwell_time_cost(delta_hours, rules.dwell_time)
        total += dwell.total

    window = rules.compliance.window_minutes
    is_late = delta_minutes > window
    penalty = calculate_compliance_penalty(is_late, shipment_value, party, rules.party_chargebacks)
    penalty = replace(penalty, window_minutes=window, outside_window=is_late)
    total += penalty.total

    return TotalCostImpact(total_cost=round_cents(max(total, 0.0)), dwell_time=dwell, compliance=penalty)


def calculate_total_cost_impact(
    original_time: str,
    new_time: str,
    shipment_value: float,
    party: Optional[str],
    rules: ContractRules,
    day_offset: int = 0,
) -> TotalCostImpact:
    """Cost of moving the appointment from ``original_time`` to ``new_time``.

    A positive ``day_offset`` places ``new_time`` on a later day so the delta is
    computed on absolute minutes and never goes negative across midnight.
    Unparsable times yield a zero-cost result without a time difference.
    """

    if day_offset > 0:
        delta = multi_day_time_difference(original_time, new_time, day_offset)
    else:
        delta = time_difference_minutes(original_time, new_time)

    if delta is None:
        logger.debug("Unparsable appointment times %r -> %r; cost left at $0", original_time, new_time)
        return TotalCostImpact()

    impact = calculate_cost_for_delta(delta, shipment_value, party, rules)
    return replace(
        impact,
        time_difference=TimeDifference(
            original_time=original_time,
            new_time=new_time,
            difference_minutes=delta,
            difference_hours=round_cents(delta / 60.0),
            day_offset=max(day_offset, 0),
        ),
    )


def calculate_cost_breakdown(
    original_time: str,
    new_time: str,
    shipment_value: float,
    party: Optional[str],
    rules: ContractRules,
    day_offset: int = 0,
) -> CostBreakdown:
    impact = calculate_total_cost_impact(original_time, new_time, shipment_value, party, rules, day_offset)
    return CostBreakdown(
        dwell_cost=impact.dwell_time.total if impact.dwell_time else 0.0,
        compliance_penalty=impact.compliance.total if impact.compliance else 0.0,
        total_cost=impact.total_cost,
        is_late=impact.compliance.outside_window if impact.compliance else False,
    )


def build_cost_function(
    original_minutes: int,
    shipment_value: float,
    party: Optional[str],
    rules: ContractRules,
) -> Callable[[int], float]:
    """Return ``cost(absolute_minutes)`` for appointments relative to ``original_minutes``."""

    def _cost_at(absolute_minutes: int) -> float:
        return calculate_cost_for_delta(absolute_minutes - original_minutes, shipment_value, party, rules).total_cost

    return _cost_at


# ---------------------------------------------------------------------------
# Extracted contract terms -> ContractRules
# ---------------------------------------------------------------------------


def _mentions(text: Optional[str], keywords: Iterable[str]) -> bool:
    if not text:
        return False
    lowered = text.lower()
    return any(keyword in lowered for keyword in keywords)


def _convert_dwell_rules(terms: ExtractedContractTerms, warnings: List[str]) -> DwellTimeRules:
    penalty = next(
        (item for item in terms.delay_penalties or () if _mentions(item.name, _DWELL_KEYWORDS)),
        None,
    )
    if penalty is None or not penalty.tiers:
        warnings.append("No dwell/detention penalties in contract - dwell cost will be $0")
        return DwellTimeRules()

    tiers: List[DwellTier] = []
    for index, tier in enumerate(penalty.tiers):
        if tier.from_minutes < 0 or tier.rate_per_hour < 0:
            warnings.append(f"Dwell tier {index} has negative values and was ignored")
            continue
        if tier.to_minutes is not None and tier.to_minutes <= tier.from_minutes:
            warnings.append(f"Dwell tier {index} ends before it starts and was ignored")
            continue
        tiers.append(
            DwellTier(
                from_hours=tier.from_minutes / 60.0,
                to_hours=tier.to_minutes / 60.0 if tier.to_minutes is not None else None,
                rate_per_hour=tier.rate_per_hour,
            )
        )

    free_hours = max(penalty.free_time_minutes, 0) / 60.0
    logger.debug("Dwell rules from %r: %.2f free hours, %d tiers", penalty.name, free_hours, len(tiers))
    return DwellTimeRules(free_hours=free_hours, tiers=tuple(tiers))


def _convert_compliance_window(terms: ExtractedContractTerms, warnings: List[str]) -> ComplianceRules:
    for window in terms.compliance_windows or ():
        if window.window_minutes > 0:
            return ComplianceRules(window_minutes=int(round(window.window_minutes)))
    warnings.append(
        f"No compliance window in contract - using standard {DEFAULT_COMPLIANCE_WINDOW_MINUTES} minute window"
    )
    return ComplianceRules()


def _has_numeric_value(penalty: PartyPenalty) -> bool:
    return any(value for value in (penalty.percentage, penalty.flat_fee, penalty.per_occurrence))


def _is_late_delivery(penalty: PartyPenalty) -> bool:
    return penalty.penalty_type.strip().lower() == _LATE_DELIVERY_LABEL


def _is_priced_otif(penalty: PartyPenalty) -> bool:
    return _mentions(penalty.penalty_type, _OTIF_KEYWORDS) and _has_numeric_value(penalty)


def _mentions_otif(penalty: PartyPenalty) -> bool:
    return _mentions(penalty.penalty_type, _OTIF_KEYWORDS) or _mentions(penalty.conditions, _OTIF_KEYWORDS)


_PENALTY_PRIORITY = (_is_late_delivery, _is_priced_otif, _mentions_otif)


def select_party_penalty(
    penalties: Sequence[PartyPenalty],
    party_name: Optional[str] = None,
) -> Optional[PartyPenalty]:
    """Pick the single chargeback clause that applies to a late arrival.

    Penalties are narrowed to ``party_name`` when any match, then the first hit
    of: exact "late delivery" label, OTIF penalty with a numeric value, any OTIF
    mention. Clauses are never summed.
    """

    candidates: Sequence[PartyPenalty] = []
    if party_name:
        needle = party_name.strip().lower()
        candidates = [item for item in penalties if needle and needle in item.party_name.lower()]
    if not candidates:
        candidates = penalties

    for matcher in _PENALTY_PRIORITY:
        for penalty in candidates:
            if matcher(penalty):
                return penalty
    return None


def _convert_party_chargebacks(
    terms: ExtractedContractTerms,
    party_name: Optional[str],
    warnings: List[str],
    percentage_ceiling: float,
) -> dict:
    penalties = terms.party_penalties or ()
    if not penalties:
        warnings.append("No party penalties in contract - chargeback cost will be $0")
        return {}

    penalty = select_party_penalty(penalties, party_name)
    if penalty is None:
        warnings.append("No late-delivery or OTIF penalty found - chargeback cost will be $0")
        return {}

    key = party_name or penalty.party_name or "default"
    percentage = penalty.percentage
    if percentage is not None and percentage > percentage_ceiling:
        message = (
            f"{key} penalty of {percentage:g}% exceeds {percentage_ceiling:g}% and was clamped "
            "(likely extraction error)"
        )
        logger.warning(message)
        warnings.append(message)
        percentage = percentage_ceiling

    if not _has_numeric_value(penalty):
        warnings.append(f"{key} penalty '{penalty.penalty_type}' has no amounts - chargeback cost will be $0")

    chargeback = PartyChargeback(
        percentage=percentage if percentage and percentage > 0 else None,
        flat_fee=penalty.flat_fee if penalty.flat_fee and penalty.flat_fee > 0 else None,
        per_occurrence=penalty.per_occurrence if penalty.per_occurrence and penalty.per_occurrence > 0 else None,
    )
    logger.debug("Chargeback for %s from %r: %s", key, penalty.penalty_type, chargeback)
    return {key: chargeback}


def convert_extracted_terms_to_rules(
    terms: Optional[ExtractedContractTerms],
    party_name: Optional[str] = None,
    *,
    policy: Optional[NegotiationPolicy] = None,
) -> ContractRules:
    """Normalize upstream-extracted contract terms into :class:`ContractRules`.

    Missing sections produce zero-cost rules and a warning; no default
    penalties are ever invented.
    """

    if terms is None:
        logger.warning("No extracted terms provided - using empty rules (zero costs)")
        return ContractRules.empty(("No extracted terms provided - all costs will be $0",))

    policy = policy or NegotiationPolicy()
    warnings: List[str] = []
    dwell_time = _convert_dwell_rules(terms, warnings)
    compliance = _convert_compliance_window(terms, warnings)
    chargebacks = _convert_party_chargebacks(terms, party_name, warnings, policy.percentage_ceiling)

    for warning in warnings:
        logger.info("Contract terms: %s", warning)

    return ContractRules(
        dwell_time=dwell_time,
        compliance=compliance,
        party_chargebacks=chargebacks,
        warnings=tuple(warnings),
    )


def calculate_total_cost_impact_with_terms(
    original_time: str,
    new_time: str,
    shipment_value: float,
    terms: Optional[ExtractedContractTerms],
    party_name: Optional[str] = None,
    day_offset: int = 0,
) -> TotalCostImpact:
    rules = convert_extracted_terms_to_rules(terms, party_name)
    return calculate_total_cost_impact(original_time, new_time, shipment_value, party_name, rules, day_offset)


__all__ = [
    "build_cost_function",
    "calculate_compliance_penalty",
    "calculate_cost_breakdown",
    "calculate_cost_for_delta",
    "calculate_dwell_time_cost",
    "calculate_total_cost_impact",
    "calculate_total_cost_impact_with_terms",
    "convert_extracted_terms_to_rules",
    "select_party_penalty",
]
