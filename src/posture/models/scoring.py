"""Scoring data models."""

from __future__ import annotations

from enum import Enum

from pydantic import BaseModel


class RiskLevel(str, Enum):
    SUSTAINABLE = "Sustainable"
    MODERATE = "Moderate"
    SEVERE = "Severe"
    CRITICAL = "Critical"


# Least to most severe.
RISK_LEVELS: tuple[RiskLevel, ...] = (
    RiskLevel.SUSTAINABLE,
    RiskLevel.MODERATE,
    RiskLevel.SEVERE,
    RiskLevel.CRITICAL,
)


def _empty_buckets() -> dict[RiskLevel, int]:
    return {level: 0 for level in RISK_LEVELS}


class RiskCounts(BaseModel):
    inherent: dict[RiskLevel, int] = {}
    residual: dict[RiskLevel, int] = {}

    def model_post_init(self, __context) -> None:
        for bucket in (self.inherent, self.residual):
            for level in RISK_LEVELS:
                bucket.setdefault(level, 0)

    @classmethod
    def empty(cls) -> "RiskCounts":
        return cls(inherent=_empty_buckets(), residual=_empty_buckets())


class ScoreSummary(BaseModel):
    total_score: int = 0
    max_score: int = 0
    average: float = 0.0
    percentage: int = 0
