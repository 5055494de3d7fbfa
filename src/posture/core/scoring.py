"""Scoring engine: function averages, risk classification and final score.

Everything here is pure and recomputed on every report; nothing is cached.
"""

from __future__ import annotations

import math
from collections.abc import Sequence

from ..models.question import NistFunction
from ..models.scoring import RISK_LEVELS, RiskCounts, RiskLevel, ScoreSummary
from ..models.submission import ResponseItem
from .catalog import group_by_function

MAX_MATURITY = 4

GAP_OBSERVATIONS: dict[str, str] = {
    "GOVERN": "Minimal leadership engagement, risk tolerance undefined",
    "IDENTIFY": "Asset inventory incomplete, weak data flow mapping",
    "PROTECT": "Controls inconsistent, MFA/segmentation gaps",
    "DETECT": "No centralized monitoring or alerting",
    "RESPOND": "Basic IR plan, not cloud-specific",
    "RECOVER": "DR planning immature",
}

GAP_THRESHOLD = 1.5
STRENGTH_THRESHOLD = 2.5

PROBABILITY_BANDS: tuple[str, ...] = ("Low", "Medium", "Medium-High", "High", "Critical")


def _key(fn: NistFunction | str) -> str:
    return fn.value if isinstance(fn, NistFunction) else str(fn)


def function_averages(responses: Sequence[ResponseItem]) -> dict[str, float]:
    """Mean maturity per NIST function, in first-seen function order."""
    averages: dict[str, float] = {}
    for fn, items in group_by_function(responses).items():
        total = sum(item.maturity for item in items)
        averages[_key(fn)] = total / len(items) if items else 0
    return averages


def classify_risk(maturity: int) -> RiskLevel:
    """Map a maturity rating (0-4) to a risk level.

    - Sustainable: 4
    - Moderate: 3
    - Severe: 2
    - Critical: 0 or 1
    """
    if maturity >= 4:
        return RiskLevel.SUSTAINABLE
    if maturity == 3:
        return RiskLevel.MODERATE
    if maturity == 2:
        return RiskLevel.SEVERE
    return RiskLevel.CRITICAL


def residual_maturity(maturity: int) -> int:
    """Maturity after one level of assumed in-progress mitigation."""
    return min(MAX_MATURITY, maturity + 1)


def severity_rank(level: RiskLevel) -> int:
    """0 for Sustainable up to 3 for Critical."""
    return RISK_LEVELS.index(level)


def risk_counts(responses: Sequence[ResponseItem]) -> RiskCounts:
    """Tally inherent and residual risk levels across all responses."""
    counts = RiskCounts.empty()
    for item in responses:
        counts.inherent[classify_risk(item.maturity)] += 1
        counts.residual[classify_risk(residual_maturity(item.maturity))] += 1
    return counts


def risk_percentages(bucket: dict[RiskLevel, int], total: int) -> list[list[str]]:
    """Dashboard rows: [level, count, "xx.xx%"] in Sustainable..Critical order."""
    denominator = total or 1
    rows = []
    for level in RISK_LEVELS:
        count = bucket.get(level, 0)
        rows.append([level.value, str(count), f"{100 * count / denominator:.2f}%"])
    return rows


def observation(function: NistFunction | str, average: float) -> str:
    """Qualitative comment for a function average."""
    if average < GAP_THRESHOLD:
        return GAP_OBSERVATIONS.get(_key(function), "Needs improvement")
    if average < STRENGTH_THRESHOLD:
        return "Developing capabilities with notable gaps"
    return "Solid capability with room to optimize"


def compliance_rows(averages: dict[str, float]) -> list[list[str]]:
    """Rows for the compliance table: function, average (2dp), observation."""
    return [[fn, f"{avg:.2f}", observation(fn, avg)] for fn, avg in averages.items()]


def risk_matrix_overview() -> tuple[list[str], list[list[str]]]:
    """Static probability x impact reference grid (header, rows).

    Identical on every report; it is not derived from submission data.
    """
    impacts = [level.value for level in RISK_LEVELS]
    header = ["Probability / Impact", *impacts]
    rows = []
    for p_idx, probability in enumerate(PROBABILITY_BANDS):
        row = [probability]
        for i_idx in range(len(impacts)):
            row.append(impacts[min(3, max(i_idx, p_idx - 1))])
        rows.append(row)
    return header, rows


def _round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


def score_summary(responses: Sequence[ResponseItem]) -> ScoreSummary:
    """Overall totals for the final summary page."""
    count = len(responses)
    total = sum(item.maturity for item in responses)
    average = total / count if count else 0.0
    return ScoreSummary(
        total_score=total,
        max_score=count * MAX_MATURITY,
        average=average,
        percentage=_round_half_up(average / MAX_MATURITY * 100),
    )
