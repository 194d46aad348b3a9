"""Sanity checks for contract terms returned by the upstream extractor."""

from __future__ import annotations

import logging
from typing import Optional

from .contracts import ExtractedContractTerms
from .schemas import ValidationReport

logger = logging.getLogger(__name__)

_DWELL_KEYWORDS = ("dwell", "detention")


def validate_extracted_terms(terms: ExtractedContractTerms) -> ValidationReport:
    """Structural validation of an extraction.

    Errors make the terms unusable; warnings flag sections that were returned
    empty or look like parsing mistakes.
    """

    report = ValidationReport()

    if not terms.parties:
        report.errors.append("No parties extracted from contract")

    meta = terms.meta
    if meta is None:
        report.errors.append("Missing metadata")
    else:
        if not meta.document_name:
            report.warnings.append("Document name not set")
        if not meta.confidence:
            report.warnings.append("Confidence level not set")

    if terms.compliance_windows is not None and not terms.compliance_windows:
        report.warnings.append("complianceWindows array is empty")

    if terms.delay_penalties is not None and not terms.delay_penalties:
        report.warnings.append("delayPenalties array is empty - contract may not specify delay penalties")

    for idx, penalty in enumerate(terms.delay_penalties or ()):
        if not penalty.tiers:
            report.warnings.append(f"delayPenalties[{idx}] ({penalty.name}) has no tiers")
        for tier_idx, tier in enumerate(penalty.tiers):
            where = f"delayPenalties[{idx}].tiers[{tier_idx}]"
            if tier.from_minutes < 0:
                report.errors.append(f"{where} has negative fromMinutes: {tier.from_minutes:g}")
            if tier.to_minutes is not None and tier.to_minutes <= tier.from_minutes:
                report.warnings.append(f"{where} has toMinutes <= fromMinutes")
            if tier.rate_per_hour < 0:
                report.warnings.append(f"{where} has negative rate: {tier.rate_per_hour:g}")

    for idx, window in enumerate(terms.compliance_windows or ()):
        if window.window_minutes <= 0:
            report.warnings.append(
                f"complianceWindows[{idx}] ({window.name}) has invalid windowMinutes: {window.window_minutes:g}"
            )

    if meta is not None and meta.confidence == "low":
        report.warnings.append("Extraction confidence is LOW - review extracted terms carefully")

    if report.errors:
        logger.warning("Extracted terms failed validation: %s", "; ".join(report.errors))
    return report


def are_terms_usable(terms: ExtractedContractTerms) -> bool:
    return validate_extracted_terms(terms).valid and (terms.meta is None or terms.meta.confidence != "low")


def validate_terms_for_cost_calculation(terms: Optional[ExtractedContractTerms]) -> ValidationReport:
    """Report which cost sections will come out as $0 for ``terms``.

    The report is valid when at least one of delay penalties, compliance
    windows or party penalties is present.
    """

    report = ValidationReport()
    if terms is None:
        report.errors.append("No extracted terms provided - all costs will be $0")
        return report

    delay_penalties = terms.delay_penalties or ()
    if not delay_penalties:
        report.warnings.append("No delay penalties in contract - dwell time cost will be $0")
    elif not any(any(k in p.name.lower() for k in _DWELL_KEYWORDS) for p in delay_penalties):
        report.warnings.append("No dwell/detention penalties found - dwell time cost will be $0")

    if not terms.compliance_windows:
        report.warnings.append("No compliance window specified - using standard 30 minute window")

    if not terms.party_penalties:
        report.warnings.append("No party penalties in contract - chargeback cost will be $0")

    if not (delay_penalties or terms.compliance_windows or terms.party_penalties):
        report.errors.append("Contract has no cost-relevant sections")
    return report


__all__ = ["are_terms_usable", "validate_extracted_terms", "validate_terms_for_cost_calculation"]
