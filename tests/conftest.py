"""Shared fixtures for posture tests."""

from __future__ import annotations

import copy
import json
from typing import Optional

import pytest

from posture.core.catalog import QUESTIONS, sample_submission
from posture.core.config import DEFAULT_CONFIG
from posture.models.provider import CompletionResult
from posture.models.submission import Submission


class FakeProvider:
    """Stand-in AI provider returning a canned CompletionResult."""

    name = "fake"

    def __init__(self, result: CompletionResult, credentials: bool = True):
        self.result = result
        self.credentials = credentials
        self.calls: list[tuple[str, str]] = []

    def has_credentials(self) -> bool:
        return self.credentials

    async def complete(self, system_prompt: str, user_prompt: str, max_tokens: int = 0) -> CompletionResult:
        self.calls.append((system_prompt, user_prompt))
        return self.result


def make_submission(maturities: list[int] | int, response: str = "Documented and reviewed.") -> Submission:
    """Build a full-coverage submission; an int applies to every question."""
    if isinstance(maturities, int):
        maturities = [maturities] * len(QUESTIONS)
    answers = [(q, response, m) for q, m in zip(QUESTIONS, maturities)]
    return Submission.build("Example Org", "security@example.com", answers)


@pytest.fixture
def config() -> dict:
    return copy.deepcopy(DEFAULT_CONFIG)


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    for var in ("OPENAI_API_KEY", "OPENAI_API_TOKEN", "GPT_API_KEY", "ANTHROPIC_API_KEY", "DATABASE_URL"):
        monkeypatch.delenv(var, raising=False)


@pytest.fixture
def submission() -> Submission:
    return sample_submission()


@pytest.fixture
def submission_payload(submission: Submission) -> dict:
    return submission.to_payload()


@pytest.fixture
def remote_report() -> dict:
    """A narrative payload as the AI returns it."""
    return {
        "environment": "Azure with two tenants and Microsoft 365",
        "summary": "Contoso Education shows a developing cloud security posture.",
        "strengths": ["Conditional Access MFA", "Encryption at rest and in transit"],
        "gaps": [
            {
                "name": "Risk tolerance",
                "description": "Cloud risk appetite is not formalized",
                "businessImpact": "Unclear prioritization",
                "likelihood": "Medium",
                "impact": "High",
                "rating": "High",
            },
            {"name": "Monitoring coverage"},
        ],
        "compliance": "Partially aligned with NIST CSF 2.0.",
        "recommendations": [
            "Formalize cloud risk tolerance",
            {"action": "Extend Sentinel analytics", "priority": "High"},
        ],
        "conclusion": "Focus on GOVERN and DETECT over the next quarter.",
    }


@pytest.fixture
def remote_provider(remote_report: dict) -> FakeProvider:
    content = "Here is the report:\n" + json.dumps(remote_report)
    return FakeProvider(CompletionResult(success=True, content=content))


@pytest.fixture
def failing_provider() -> FakeProvider:
    return FakeProvider(CompletionResult(success=False, status_code=429, error="429 | quota exceeded"))


def pdf_text(data: bytes) -> str:
    from io import BytesIO

    from pypdf import PdfReader

    reader = PdfReader(BytesIO(data))
    return "\n".join(page.extract_text() or "" for page in reader.pages)


def pdf_page_count(data: bytes) -> int:
    from io import BytesIO

    from pypdf import PdfReader

    return len(PdfReader(BytesIO(data)).pages)
