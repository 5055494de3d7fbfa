"""End-to-end report generation: narrative, logo, composition."""

from __future__ import annotations

import asyncio
from typing import Optional

from pydantic import BaseModel

from ..core.narrative import resolve_narrative
from ..models.narrative import NarrativeResult
from ..models.submission import Submission
from ..providers.base import AIProvider
from .assets import fetch_logo
from .composer import compose_report


class ReportResult(BaseModel):
    pdf: bytes
    filename: str
    narrative: NarrativeResult

    @property
    def warning(self) -> Optional[str]:
        return self.narrative.warning


async def generate_report(
    submission: Submission,
    config: dict,
    use_ai: bool = True,
    provider: Optional[AIProvider] = None,
    fetch_assets: bool = True,
) -> ReportResult:
    """Produce the complete PDF for one submission.

    Each call owns its own canvas and buffer, so concurrent generations do
    not share state. Narrative failures degrade to the local summary;
    composition failures raise ReportError.
    """
    report_config = config["report"]

    narrative = await resolve_narrative(submission, config, use_ai=use_ai, provider=provider)
    logo = None
    if fetch_assets:
        logo = await fetch_logo(
            report_config.get("logo_url"), report_config.get("logo_timeout_seconds", 5)
        )

    # reportlab is synchronous; keep it off the event loop.
    pdf = await asyncio.to_thread(compose_report, submission, narrative, report_config, logo)
    return ReportResult(pdf=pdf, filename=report_config["filename"], narrative=narrative)
