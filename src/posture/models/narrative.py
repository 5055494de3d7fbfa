"""Executive narrative data models.

Remote and locally synthesized narratives share this shape so the report
composer never branches on where the content came from.
"""

from __future__ import annotations

from enum import Enum
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator


class NarrativeSource(str, Enum):
    REMOTE = "remote"
    LOCAL = "local"


class Gap(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    name: str
    description: str = ""
    business_impact: str = Field(default="", alias="businessImpact")
    likelihood: str = "Medium"
    impact: str = "Medium"
    rating: str = "Medium"

    @field_validator("description", "business_impact", "likelihood", "impact", "rating", mode="before")
    @classmethod
    def none_to_default(cls, v, info):
        if v is None:
            return cls.model_fields[info.field_name].default
        return v


class Recommendation(BaseModel):
    action: str
    priority: str = "Medium"


class Narrative(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    source: NarrativeSource = NarrativeSource.REMOTE
    summary: str
    environment: Optional[str] = None
    strengths: list[str] = []
    gaps: list[Gap] = []
    compliance: str = ""
    recommendations: list[Recommendation] = []
    conclusion: str = ""

    @field_validator("recommendations", mode="before")
    @classmethod
    def normalize_recommendations(cls, v):
        """Accept bare strings alongside {action, priority} objects."""
        if v is None:
            return []
        return [{"action": item} if isinstance(item, str) else item for item in v]

    @field_validator("strengths", "gaps", mode="before")
    @classmethod
    def none_to_empty(cls, v):
        return [] if v is None else v

    @field_validator("compliance", "conclusion", mode="before")
    @classmethod
    def none_to_blank(cls, v):
        return "" if v is None else v


class NarrativeResult(BaseModel):
    narrative: Narrative
    function_averages: dict[str, float] = {}
    warning: Optional[str] = None
