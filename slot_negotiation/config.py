"""Tunable policy values for the negotiation engine."""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from typing import Mapping, Optional

_DEFAULT_SAMPLE_INTERVAL_MIN = int(os.getenv("SLOT_CURVE_SAMPLE_MINUTES", "15"))
_DEFAULT_HORIZON_MIN = int(os.getenv("SLOT_CURVE_HORIZON_MINUTES", "360"))
_DEFAULT_STEP_JUMP_THRESHOLD = float(os.getenv("SLOT_STEP_JUMP_THRESHOLD", "100"))

LOCAL_TZ_NAME = os.getenv("LOCAL_TZ", "America/Chicago")

DEFAULT_DOCK_DURATION_MINUTES = 60
DEFAULT_DETENTION_RATE_PER_HOUR = 50.0
DEFAULT_LAYOVER_DAILY_RATE = 150.0
DEFAULT_COMPLIANCE_WINDOW_MINUTES = 30
MAX_PUSHBACK_ATTEMPTS = 2


@dataclass(slots=True)
class CurvePolicy:
    """Sampling grid and significance threshold for cost-curve analysis.

    The $100 step and the 6h/15min grid are calibrated for typical
    grocery/retail contracts; large-value contracts may need recalibration.
    """

    sample_interval_minutes: int = _DEFAULT_SAMPLE_INTERVAL_MIN
    horizon_minutes: int = _DEFAULT_HORIZON_MIN
    step_jump_threshold: float = _DEFAULT_STEP_JUMP_THRESHOLD


@dataclass(slots=True)
class NegotiationPolicy:
    """Threshold placement offsets and negotiation budget."""

    curve: CurvePolicy = field(default_factory=CurvePolicy)
    max_pushback_attempts: int = MAX_PUSHBACK_ATTEMPTS
    step_buffer_minutes: int = 15
    step_fallback_problematic_minutes: int = 120
    linear_ideal_minutes: int = 30
    linear_acceptable_minutes: int = 120
    linear_problematic_minutes: int = 180
    flat_acceptable_minutes: int = 120
    flat_problematic_minutes: int = 240
    percentage_ceiling: float = 25.0


def load_policy_from_env(environ: Optional[Mapping[str, str]] = None) -> NegotiationPolicy:
    """Build a :class:`NegotiationPolicy` from ``SLOT_*`` environment variables."""

    env = os.environ if environ is None else environ
    curve = CurvePolicy(
        sample_interval_minutes=int(env.get("SLOT_CURVE_SAMPLE_MINUTES", _DEFAULT_SAMPLE_INTERVAL_MIN)),
        horizon_minutes=int(env.get("SLOT_CURVE_HORIZON_MINUTES", _DEFAULT_HORIZON_MIN)),
        step_jump_threshold=float(env.get("SLOT_STEP_JUMP_THRESHOLD", _DEFAULT_STEP_JUMP_THRESHOLD)),
    )
    return NegotiationPolicy(
        curve=curve,
        max_pushback_attempts=int(env.get("SLOT_MAX_PUSHBACK_ATTEMPTS", MAX_PUSHBACK_ATTEMPTS)),
        percentage_ceiling=float(env.get("SLOT_PERCENTAGE_CEILING", 25.0)),
    )


__all__ = [
    "CurvePolicy",
    "DEFAULT_COMPLIANCE_WINDOW_MINUTES",
    "DEFAULT_DETENTION_RATE_PER_HOUR",
    "DEFAULT_DOCK_DURATION_MINUTES",
    "DEFAULT_LAYOVER_DAILY_RATE",
    "LOCAL_TZ_NAME",
    "MAX_PUSHBACK_ATTEMPTS",
    "NegotiationPolicy",
    "load_policy_from_env",
]
