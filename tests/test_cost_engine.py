import math

import pytest

from slot_negotiation.contracts import (
    ComplianceRules,
    ContractRules,
    DwellTier,
    DwellTimeRules,
    ExtractedContractTerms,
    PartyChargeback,
    PartyPenalty,
)
from slot_negotiation.cost_engine import (
    calculate_compliance_penalty,
    calculate_cost_breakdown,
    calculate_dwell_time_cost,
    calculate_total_cost_impact,
    calculate_total_cost_impact_with_terms,
    convert_extracted_terms_to_rules,
    select_party_penalty,
)


def _rules(**chargebacks: PartyChargeback) -> ContractRules:
    return ContractRules(
        dwell_time=DwellTimeRules(
            free_hours=2,
            tiers=(
                DwellTier(from_hours=2, to_hours=4, rate_per_hour=50),
                DwellTier(from_hours=4, to_hours=6, rate_per_hour=65),
                DwellTier(from_hours=6, to_hours=math.inf, rate_per_hour=75),
            ),
        ),
        compliance=ComplianceRules(window_minutes=30),
        party_chargebacks=chargebacks or {"Walmart": PartyChargeback(percentage=3, flat_fee=200)},
    )


def _terms(**overrides) -> ExtractedContractTerms:
    payload = {
        "parties": {"shipper": "Acme Foods", "receiver": "Walmart"},
        "complianceWindows": [{"name": "OTIF Window", "windowMinutes": 30, "description": "30 min grace"}],
        "delayPenalties": [
            {
                "name": "Dwell Time",
                "freeTimeMinutes": 120,
                "tiers": [
                    {"fromMinutes": 120, "toMinutes": 240, "ratePerHour": 50},
                    {"fromMinutes": 240, "toMinutes": None, "ratePerHour": 75},
                ],
            }
        ],
        "partyPenalties": [
            {"partyName": "Walmart", "penaltyType": "OTIF Violation", "percentage": 3},
            {"partyName": "Walmart", "penaltyType": "Late Delivery", "perOccurrence": 250},
        ],
        "_meta": {"documentName": "walmart-msa.pdf", "confidence": "high"},
    }
    payload.update(overrides)
    return ExtractedContractTerms.model_validate(payload)


def test_arrival_inside_free_dwell_but_outside_compliance_window() -> None:
    impact = calculate_total_cost_impact("14:00", "15:30", 50000, "Walmart", _rules())

    assert impact.total_cost == 1700
    assert impact.dwell_time is not None and impact.dwell_time.total == 0
    assert impact.compliance.outside_window is True
    assert [line.description for line in impact.compliance.breakdown] == ["Walmart 3%", "Walmart flat"]
    assert impact.time_difference.difference_minutes == 90


@pytest.mark.parametrize(
    "hours, expected",
    [(0, 0), (1.5, 0), (2, 0), (3, 50), (5, 165), (8, 380)],
)
def test_dwell_time_walks_tiers_after_free_time(hours, expected) -> None:
    assert calculate_dwell_time_cost(hours, _rules().dwell_time).total == expected


def test_dwell_cost_is_non_decreasing_in_duration() -> None:
    dwell = _rules().dwell_time
    costs = [calculate_dwell_time_cost(q / 4, dwell).total for q in range(0, 48)]
    assert costs == sorted(costs)


def test_dwell_breakdown_lists_each_tier_consumed() -> None:
    result = calculate_dwell_time_cost(5, _rules().dwell_time)
    assert [(item.hours, item.rate, item.cost) for item in result.breakdown] == [(2, 50, 100), (1, 65, 65)]


def test_no_tiers_means_no_dwell_cost() -> None:
    assert calculate_dwell_time_cost(10, DwellTimeRules()).total == 0


def test_next_day_offer_uses_absolute_minutes() -> None:
    impact = calculate_total_cost_impact("14:00", "06:00", 50000, "Walmart", _rules(), day_offset=1)

    assert impact.time_difference.difference_minutes == 960
    assert impact.time_difference.day_offset == 1
    assert impact.dwell_time.total == 980
    assert impact.total_cost == 2680


def test_early_offer_costs_nothing() -> None:
    impact = calculate_total_cost_impact("14:00", "13:00", 50000, "Walmart", _rules())
    assert impact.total_cost == 0
    assert impact.dwell_time is None
    assert impact.compliance.is_compliant is True


def test_unparsable_time_costs_nothing() -> None:
    impact = calculate_total_cost_impact("14:00", "later", 50000, "Walmart", _rules())
    assert impact.total_cost == 0
    assert impact.time_difference is None


def test_compliance_lookup_falls_back_to_case_insensitive_match() -> None:
    chargebacks = {"Walmart": PartyChargeback(percentage=3, flat_fee=200, per_occurrence=50)}
    result = calculate_compliance_penalty(True, 10000, "walmart", chargebacks)
    assert result.total == 550
    assert len(result.breakdown) == 3


def test_compliance_lookup_without_party_uses_only_entry() -> None:
    chargebacks = {"Kroger": PartyChargeback(flat_fee=100)}
    assert calculate_compliance_penalty(True, 0, None, chargebacks).total == 100
    chargebacks["Target"] = PartyChargeback(flat_fee=300)
    assert calculate_compliance_penalty(True, 0, None, chargebacks).total == 0
    assert calculate_compliance_penalty(True, 0, "Costco", chargebacks).total == 0


def test_on_time_arrival_has_no_compliance_penalty() -> None:
    result = calculate_compliance_penalty(False, 50000, "Walmart", _rules().party_chargebacks)
    assert result.total == 0
    assert result.is_compliant is True


def test_cost_breakdown_summary() -> None:
    breakdown = calculate_cost_breakdown("14:00", "17:00", 50000, "Walmart", _rules())
    assert breakdown.dwell_cost == 50
    assert breakdown.compliance_penalty == 1700
    assert breakdown.total_cost == 1750
    assert breakdown.is_late is True
    assert breakdown.as_dict()["totalCost"] == 1750


def test_convert_terms_prefers_late_delivery_penalty() -> None:
    rules = convert_extracted_terms_to_rules(_terms(), "Walmart")

    assert rules.compliance.window_minutes == 30
    assert rules.dwell_time.free_hours == 2
    assert [(t.from_hours, t.to_hours, t.rate_per_hour) for t in rules.dwell_time.tiers] == [
        (2, 4, 50),
        (4, None, 75),
    ]
    chargeback = rules.party_chargebacks["Walmart"]
    assert chargeback.per_occurrence == 250
    assert chargeback.percentage is None
    assert rules.warnings == ()


def test_convert_terms_picks_priced_otif_before_bare_mention() -> None:
    terms = _terms(
        partyPenalties=[
            {"partyName": "Walmart", "penaltyType": "OTIF notice", "conditions": "Logged only"},
            {"partyName": "Walmart", "penaltyType": "OTIF chargeback", "percentage": 3, "flatFee": 200},
        ]
    )
    chargeback = convert_extracted_terms_to_rules(terms, "Walmart").party_chargebacks["Walmart"]
    assert chargeback.percentage == 3
    assert chargeback.flat_fee == 200


def test_convert_terms_matches_otif_mentioned_in_conditions() -> None:
    terms = _terms(
        partyPenalties=[
            {"partyName": "Kroger", "penaltyType": "Chargeback", "flatFee": 500, "conditions": "Missed on-time window"},
        ]
    )
    rules = convert_extracted_terms_to_rules(terms, None)
    assert rules.party_chargebacks == {"Kroger": PartyChargeback(flat_fee=500)}


def test_convert_terms_filters_by_party_name() -> None:
    terms = _terms(
        partyPenalties=[
            {"partyName": "Target Corp", "penaltyType": "Late Delivery", "flatFee": 900},
            {"partyName": "Walmart Inc.", "penaltyType": "Late Delivery", "flatFee": 400},
        ]
    )
    rules = convert_extracted_terms_to_rules(terms, "walmart")
    assert rules.party_chargebacks["walmart"].flat_fee == 400


def test_convert_terms_clamps_suspicious_percentage() -> None:
    terms = _terms(partyPenalties=[{"partyName": "Walmart", "penaltyType": "OTIF", "percentage": 40}])
    rules = convert_extracted_terms_to_rules(terms, "Walmart")

    assert rules.party_chargebacks["Walmart"].percentage == 25
    assert any("clamped" in warning for warning in rules.warnings)


def test_convert_terms_missing_sections_yield_zero_cost_rules() -> None:
    rules = convert_extracted_terms_to_rules(ExtractedContractTerms(parties={"receiver": "Walmart"}), "Walmart")

    assert rules.dwell_time.tiers == ()
    assert rules.compliance.window_minutes == 30
    assert rules.party_chargebacks == {}
    assert len(rules.warnings) == 3

    impact = calculate_total_cost_impact("14:00", "20:00", 50000, "Walmart", rules)
    assert impact.total_cost == 0


def test_convert_without_terms_returns_empty_rules() -> None:
    rules = convert_extracted_terms_to_rules(None)
    assert rules.party_chargebacks == {}
    assert rules.warnings


def test_convert_terms_skips_invalid_tiers() -> None:
    terms = _terms(
        delayPenalties=[
            {
                "name": "Detention",
                "freeTimeMinutes": 60,
                "tiers": [
                    {"fromMinutes": 60, "toMinutes": 30, "ratePerHour": 40},
                    {"fromMinutes": 60, "toMinutes": None, "ratePerHour": 40},
                ],
            }
        ]
    )
    rules = convert_extracted_terms_to_rules(terms, "Walmart")
    assert len(rules.dwell_time.tiers) == 1
    assert any("ignored" in warning for warning in rules.warnings)


def test_total_cost_with_terms() -> None:
    impact = calculate_total_cost_impact_with_terms("14:00", "15:30", 50000, _terms(), "Walmart")
    assert impact.total_cost == 250


def test_party_penalty_priority_prefers_late_delivery_then_priced_otif() -> None:
    penalties = [
        PartyPenalty(party_name="Walmart", penalty_type="OTIF compliance", conditions="on time in full"),
        PartyPenalty(party_name="Walmart", penalty_type="OTIF fine", percentage=3),
        PartyPenalty(party_name="Target", penalty_type="Late Delivery", flat_fee=500),
    ]

    assert select_party_penalty(penalties, "walmart").penalty_type == "OTIF fine"
    assert select_party_penalty(penalties, "Target").flat_fee == 500
    assert select_party_penalty(penalties, "Kroger").penalty_type == "Late Delivery"
    assert select_party_penalty([PartyPenalty(party_name="Walmart", penalty_type="Pallet fee")]) is None
