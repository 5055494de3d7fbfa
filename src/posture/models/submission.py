"""Submission data models."""

from __future__ import annotations

import re
from datetime import datetime, timezone
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field, field_validator

from .question import Question

Maturity = Literal[0, 1, 2, 3, 4]

EMAIL_PATTERN = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")


class ResponseItem(BaseModel):
    meta: Question
    response: str = Field(min_length=1)
    maturity: Maturity


class Submission(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    organization: str = Field(min_length=2)
    contact_email: str = Field(alias="contactEmail")
    submitted_at: str = Field(alias="submittedAt")
    responses: list[ResponseItem] = Field(min_length=1)

    @field_validator("contact_email")
    @classmethod
    def validate_email(cls, v: str) -> str:
        if not EMAIL_PATTERN.match(v.strip()):
            raise ValueError(f"Invalid email format: {v}")
        return v.strip()

    @field_validator("submitted_at")
    @classmethod
    def validate_timestamp(cls, v: str) -> str:
        """Require an ISO-8601 timestamp; the original string is kept."""
        try:
            datetime.fromisoformat(v.replace("Z", "+00:00"))
        except ValueError:
            raise ValueError(f"submittedAt is not an ISO-8601 timestamp: {v}")
        return v

    @classmethod
    def build(
        cls,
        organization: str,
        contact_email: str,
        answers: list[tuple[Question, str, int]],
        submitted_at: datetime | None = None,
    ) -> "Submission":
        """Create a submission stamped with the current UTC time."""
        stamp = (submitted_at or datetime.now(timezone.utc)).isoformat()
        return cls(
            organization=organization,
            contact_email=contact_email,
            submitted_at=stamp,
            responses=[
                ResponseItem(meta=q, response=text, maturity=m)
                for q, text, m in answers
            ],
        )

    def to_payload(self) -> dict:
        """JSON-ready dict using the wire (camelCase) field names."""
        return self.model_dump(mode="json", by_alias=True)
