"""Pydantic contracts for the inputs consumed by the negotiation engine."""

from __future__ import annotations

import math
from typing import Dict, Literal, Optional, Tuple

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, ValidationInfo, field_validator
from pydantic.alias_generators import to_camel

from .config import DEFAULT_COMPLIANCE_WINDOW_MINUTES

HOSWeekRule = Literal["60_in_7", "70_in_8"]


class DwellTier(BaseModel):
    """One billing tier of a dwell/detention schedule."""

    model_config = ConfigDict(frozen=True)

    from_hours: float = Field(..., ge=0, validation_alias=AliasChoices("from_hours", "fromHours"))
    to_hours: Optional[float] = Field(
        None,
        description="Upper bound in hours; ``None`` for an open-ended final tier",
        validation_alias=AliasChoices("to_hours", "toHours"),
    )
    rate_per_hour: float = Field(..., ge=0, validation_alias=AliasChoices("rate_per_hour", "ratePerHour"))

    @field_validator("to_hours", mode="before")
    @classmethod
    def normalize_open_end(cls, value):  # type: ignore[override]
        if value is None:
            return None
        if isinstance(value, (int, float)) and math.isinf(value):
            return None
        return value

    @field_validator("to_hours")
    @classmethod
    def validate_span(cls, hi: Optional[float], info: ValidationInfo):  # type: ignore[override]
        lo = info.data.get("from_hours")
        if hi is not None and lo is not None and hi <= lo:
            raise ValueError("to_hours must be greater than from_hours")
        return hi

    @property
    def span_hours(self) -> float:
        if self.to_hours is None:
            return math.inf
        return self.to_hours - self.from_hours


class DwellTimeRules(BaseModel):
    """Free time plus ascending, non-overlapping billing tiers."""

    model_config = ConfigDict(frozen=True)

    free_hours: float = Field(0.0, ge=0, validation_alias=AliasChoices("free_hours", "freeHours"))
    tiers: Tuple[DwellTier, ...] = ()

    @field_validator("tiers")
    @classmethod
    def sort_tiers(cls, tiers: Tuple[DwellTier, ...]):  # type: ignore[override]
        return tuple(sorted(tiers, key=lambda tier: tier.from_hours))


class ComplianceRules(BaseModel):
    """On-time compliance (OTIF) window, in minutes after the appointment."""

    model_config = ConfigDict(frozen=True)

    window_minutes: int = Field(
        DEFAULT_COMPLIANCE_WINDOW_MINUTES,
        ge=0,
        validation_alias=AliasChoices("window_minutes", "windowMinutes"),
    )


class PartyChargeback(BaseModel):
    model_config = ConfigDict(frozen=True)

    percentage: Optional[float] = Field(None, ge=0)
    flat_fee: Optional[float] = Field(None, ge=0, validation_alias=AliasChoices("flat_fee", "flatFee"))
    per_occurrence: Optional[float] = Field(
        None, ge=0, validation_alias=AliasChoices("per_occurrence", "perOccurrence")
    )


class ContractRules(BaseModel):
    """Normalized contract economics used by every cost calculation."""

    model_config = ConfigDict(frozen=True)

    dwell_time: DwellTimeRules = Field(
        default_factory=DwellTimeRules,
        validation_alias=AliasChoices("dwell_time", "dwellTime"),
    )
    compliance: ComplianceRules = Field(
        default_factory=ComplianceRules,
        validation_alias=AliasChoices("compliance", "otif"),
    )
    party_chargebacks: Dict[str, PartyChargeback] = Field(
        default_factory=dict,
        validation_alias=AliasChoices("party_chargebacks", "partyChargebacks"),
    )
    warnings: Tuple[str, ...] = ()

    @classmethod
    def empty(cls, warnings: Tuple[str, ...] = ()) -> "ContractRules":
        """Zero-cost rules: no dwell tiers and no chargebacks."""

        return cls(warnings=tuple(warnings))


class HOSConfig(BaseModel):
    model_config = ConfigDict(frozen=True, populate_by_name=True, alias_generator=to_camel)

    week_rule: HOSWeekRule = "70_in_8"
    short_haul_exempt: bool = False
    can_use_split_sleeper: bool = False
    allow_16_hour_exception: bool = Field(
        False, validation_alias=AliasChoices("allow_16_hour_exception", "allow16HourException")
    )


class DriverHOSStatus(BaseModel):
    """Snapshot of a driver's remaining hours-of-service clocks."""

    model_config = ConfigDict(frozen=True, populate_by_name=True, alias_generator=to_camel)

    remaining_drive_minutes: int
    remaining_window_minutes: int
    remaining_weekly_minutes: int
    minutes_since_last_break: int = 0
    config: HOSConfig = Field(default_factory=HOSConfig)


class SetupParams(BaseModel):
    """Appointment context supplied by the setup form."""

    model_config = ConfigDict(frozen=True, populate_by_name=True, alias_generator=to_camel)

    original_appointment: str
    delay_minutes: int = 0
    shipment_value: float = Field(0.0, ge=0)
    party_name: Optional[str] = None


class _ExtractedModel(BaseModel):
    model_config = ConfigDict(frozen=True, populate_by_name=True, alias_generator=to_camel)


class ComplianceWindow(_ExtractedModel):
    name: str = ""
    window_minutes: float = 0
    description: Optional[str] = None


class PenaltyTier(_ExtractedModel):
    from_minutes: float = 0
    to_minutes: Optional[float] = None
    rate_per_hour: float = 0


class DelayPenalty(_ExtractedModel):
    name: str = ""
    free_time_minutes: float = 0
    tiers: Tuple[PenaltyTier, ...] = ()


class PartyPenalty(_ExtractedModel):
    party_name: str = ""
    penalty_type: str = ""
    percentage: Optional[float] = None
    flat_fee: Optional[float] = None
    per_occurrence: Optional[float] = None
    conditions: Optional[str] = None


class OtherTerm(_ExtractedModel):
    name: str = ""
    description: str = ""
    financial_impact: Optional[str] = None
    raw_text: Optional[str] = None


class HOSRequirements(_ExtractedModel):
    max_continuous_driving_hours: Optional[float] = None
    required_rest_hours: Optional[float] = None
    break_requirements: Optional[str] = None
    driver_detention_rate_per_hour: Optional[float] = None
    layover_daily_rate: Optional[float] = None
    hos_clause_description: Optional[str] = None
    raw_text: Optional[str] = None


class HOSPenalty(_ExtractedModel):
    name: str = ""
    violation_type: str = ""
    penalty_amount: Optional[float] = None
    penalty_percentage: Optional[float] = None
    description: Optional[str] = None


class ExtractionMeta(_ExtractedModel):
    document_name: str = ""
    extracted_at: Optional[str] = None
    confidence: Optional[Literal["high", "medium", "low"]] = None
    warnings: Tuple[str, ...] = ()


class ExtractedContractTerms(_ExtractedModel):
    """Contract terms as returned by the upstream contract-analysis service.

    Sections are ``None`` when the extractor did not return them at all and an
    empty tuple when it returned an empty list; validation treats the two
    differently.
    """

    parties: Dict[str, Optional[str]] = Field(default_factory=dict)
    compliance_windows: Optional[Tuple[ComplianceWindow, ...]] = None
    delay_penalties: Optional[Tuple[DelayPenalty, ...]] = None
    party_penalties: Optional[Tuple[PartyPenalty, ...]] = None
    other_terms: Optional[Tuple[OtherTerm, ...]] = None
    hos_requirements: Optional[HOSRequirements] = None
    hos_penalties: Optional[Tuple[HOSPenalty, ...]] = None
    meta: Optional[ExtractionMeta] = Field(None, alias="_meta")


__all__ = [
    "ComplianceRules",
    "ComplianceWindow",
    "ContractRules",
    "DelayPenalty",
    "DriverHOSStatus",
    "DwellTier",
    "DwellTimeRules",
    "ExtractedContractTerms",
    "ExtractionMeta",
    "HOSConfig",
    "HOSPenalty",
    "HOSRequirements",
    "HOSWeekRule",
    "OtherTerm",
    "PartyChargeback",
    "PartyPenalty",
    "PenaltyTier",
    "SetupParams",
]
