"""Sample a cost function forward from arrival and classify its shape."""

from __future__ import annotations

import logging
from typing import Callable, List, Optional

import pandas as pd

from .config import CurvePolicy
from .schemas import CostCurveAnalysis, CostSample, CurveShape, StepJump, round_cents

logger = logging.getLogger(__name__)


def sample_cost_curve(
    arrival_minutes: int,
    cost_fn: Callable[[int], float],
    policy: Optional[CurvePolicy] = None,
) -> pd.DataFrame:
    """Return a frame of ``time_minutes``/``cost`` rows from arrival to the horizon."""

    policy = policy or CurvePolicy()
    step = max(int(policy.sample_interval_minutes), 1)
    offsets = range(0, int(policy.horizon_minutes) + 1, step)
    rows = []
    for offset in offsets:
        time_minutes = arrival_minutes + offset
        rows.append({"time_minutes": time_minutes, "cost": round_cents(cost_fn(time_minutes))})
    return pd.DataFrame(rows, columns=["time_minutes", "cost"])


def _classify(frame: pd.DataFrame, jumps: List[StepJump]) -> CurveShape:
    if jumps:
        return "STEP"
    if frame["cost"].iloc[-1] > frame["cost"].iloc[0]:
        return "LINEAR"
    return "FLAT"


def analyze_cost_curve(
    arrival_minutes: int,
    cost_fn: Callable[[int], float],
    policy: Optional[CurvePolicy] = None,
) -> CostCurveAnalysis:
    """Classify the cost curve after ``arrival_minutes`` (absolute minutes).

    The flat zone is the leading run of samples whose cost equals the first
    sample; step jumps are consecutive-sample increases of at least the policy
    threshold. The analysis never assumes which contract clause causes a change.
    """

    policy = policy or CurvePolicy()
    frame = sample_cost_curve(arrival_minutes, cost_fn, policy)
    lowest_cost = float(frame["cost"].iloc[0])

    changed = frame["cost"].ne(lowest_cost)
    if changed.any():
        first_change = int(changed.to_numpy().argmax())
        flat = frame.iloc[:first_change]
    else:
        flat = frame
    zero_penalty_end = int(flat["time_minutes"].iloc[-1]) if not flat.empty else None

    deltas = frame["cost"].diff()
    jump_rows = frame.index[deltas >= policy.step_jump_threshold]
    jumps: List[StepJump] = []
    for idx in jump_rows:
        before = float(frame.at[idx - 1, "cost"])
        after = float(frame.at[idx, "cost"])
        jumps.append(
            StepJump(
                time_minutes=int(frame.at[idx, "time_minutes"]),
                cost_before=before,
                cost_after=after,
                jump_amount=round_cents(after - before),
            )
        )

    shape = _classify(frame, jumps)
    logger.debug(
        "Cost curve from %d: shape=%s flat_end=%s jumps=%d",
        arrival_minutes,
        shape,
        zero_penalty_end,
        len(jumps),
    )

    samples = tuple(
        CostSample(time_minutes=int(row.time_minutes), cost=float(row.cost))
        for row in frame.itertuples(index=False)
    )
    return CostCurveAnalysis(
        arrival_minutes=arrival_minutes,
        samples=samples,
        lowest_cost=lowest_cost,
        zero_penalty_end=zero_penalty_end,
        step_jumps=tuple(jumps),
        shape=shape,
    )


__all__ = ["analyze_cost_curve", "sample_cost_curve"]
