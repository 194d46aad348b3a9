"""Delay-cost and negotiation-decision engine for dock appointments."""

from .config import CurvePolicy, NegotiationPolicy, load_policy_from_env
from .contract_terms import are_terms_usable, validate_extracted_terms, validate_terms_for_cost_calculation
from .contracts import (
    ContractRules,
    DriverHOSStatus,
    DwellTier,
    DwellTimeRules,
    ExtractedContractTerms,
    HOSConfig,
    PartyChargeback,
    SetupParams,
)
from .cost_curve import analyze_cost_curve
from .cost_engine import (
    calculate_compliance_penalty,
    calculate_cost_breakdown,
    calculate_dwell_time_cost,
    calculate_total_cost_impact,
    calculate_total_cost_impact_with_terms,
    convert_extracted_terms_to_rules,
)
from .hos_engine import (
    HOS_PRESETS,
    calculate_hos_strategy_constraints,
    check_hos_feasibility,
    estimate_next_shift_cost,
    get_binding_constraint,
    normalize_driver_hos,
    validate_hos_status,
)
from .offer_analyzer import analyze_time_offer
from .offer_evaluator import evaluate_offer, evaluate_offer_multi_day, get_evaluation_summary
from .schemas import (
    CostBreakdown,
    NegotiationState,
    NegotiationStrategy,
    OfferAnalysisResult,
    OfferEvaluation,
    StrategyPayloadError,
)
from .strategy import build_negotiation_strategy

__all__ = [
    "ContractRules",
    "CostBreakdown",
    "CurvePolicy",
    "DriverHOSStatus",
    "DwellTier",
    "DwellTimeRules",
    "ExtractedContractTerms",
    "HOSConfig",
    "HOS_PRESETS",
    "NegotiationPolicy",
    "NegotiationState",
    "NegotiationStrategy",
    "OfferAnalysisResult",
    "OfferEvaluation",
    "PartyChargeback",
    "SetupParams",
    "StrategyPayloadError",
    "analyze_cost_curve",
    "analyze_time_offer",
    "are_terms_usable",
    "build_negotiation_strategy",
    "calculate_compliance_penalty",
    "calculate_cost_breakdown",
    "calculate_dwell_time_cost",
    "calculate_hos_strategy_constraints",
    "calculate_total_cost_impact",
    "calculate_total_cost_impact_with_terms",
    "check_hos_feasibility",
    "convert_extracted_terms_to_rules",
    "estimate_next_shift_cost",
    "evaluate_offer",
    "evaluate_offer_multi_day",
    "get_binding_constraint",
    "get_evaluation_summary",
    "load_policy_from_env",
    "normalize_driver_hos",
    "validate_extracted_terms",
    "validate_hos_status",
    "validate_terms_for_cost_calculation",
]
