"""
Z-score normalization and the composite momentum score.

Scores only mean something inside the batch they were computed from: one
(year, month, nation) snapshot. Every column is standardized on its own
before the weights are applied.
"""

from typing import List, Sequence
import math

from core.exceptions import ScoringError

MOM_ABS_WEIGHT = 0.55
MOM_PCT_WEIGHT = 0.35
RANK_CHANGE_WEIGHT = 0.10


def z_scores(values: Sequence[float]) -> List[float]:
    """
    Standardize values as ``(v - mean) / stddev`` with the population stddev.

    A zero stddev (every value identical) is treated as 1, so a constant
    column comes back as all zeros. Empty input gives an empty list.
    """
    n = len(values)
    if n == 0:
        return []

    mean = sum(values) / n
    variance = sum((v - mean) ** 2 for v in values) / n
    std_dev = math.sqrt(variance) or 1.0

    return [(v - mean) / std_dev for v in values]


def composite_score(z_mom_abs: float, z_mom_pct: float, z_rank_change: float) -> float:
    """Weighted sum of the three standardized metrics; higher means stronger rise"""
    return (
        MOM_ABS_WEIGHT * z_mom_abs
        + MOM_PCT_WEIGHT * z_mom_pct
        + RANK_CHANGE_WEIGHT * z_rank_change
    )


def score_batch(
    mom_abs: Sequence[float],
    mom_pct: Sequence[float],
    rank_change: Sequence[float]
) -> List[float]:
    """
    Score every row of one batch.

    Args:
        mom_abs: Absolute month-over-month change per row
        mom_pct: Relative (capped) change per row
        rank_change: Rank movement per row

    Returns:
        Composite score per row, in input order

    Raises:
        ScoringError: If the columns differ in length
    """
    if not (len(mom_abs) == len(mom_pct) == len(rank_change)):
        raise ScoringError(
            "Metric columns must have the same length",
            context={
                "mom_abs": len(mom_abs),
                "mom_pct": len(mom_pct),
                "rank_change": len(rank_change)
            }
        )

    z_abs = z_scores(mom_abs)
    z_pct = z_scores(mom_pct)
    z_rank = z_scores(rank_change)

    return [
        composite_score(a, p, r)
        for a, p, r in zip(z_abs, z_pct, z_rank)
    ]
