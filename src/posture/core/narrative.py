"""Executive narrative: remote LLM generation with local fallback.

Both producers return a NarrativeResult holding the same Narrative shape.
The remote path is a single attempt with a bounded timeout; any failure
degrades to the locally synthesized narrative plus a user-visible warning.
"""

from __future__ import annotations

import json
from typing import Optional

from pydantic import ValidationError
from rich.console import Console

from ..models.narrative import Gap, Narrative, NarrativeResult, NarrativeSource, Recommendation
from ..models.submission import Submission
from ..providers.base import AIProvider, get_ai_provider
from ..utils.sanitize import sanitize_error, truncate
from .errors import NarrativeError, NarrativeUnavailable
from .scoring import GAP_THRESHOLD, STRENGTH_THRESHOLD, function_averages

console = Console(stderr=True)

DEFAULT_ENVIRONMENT = "Azure + Microsoft 365"

LOCAL_RECOMMENDATIONS: tuple[str, ...] = (
    "Close MFA and conditional access gaps; enforce admin protections",
    "Centralize logging to Sentinel and tune detections",
    "Harden data protection with DLP coverage and private endpoints",
    "Formalize cloud-specific IR and test DR scenarios",
)

LOCAL_COMPLIANCE = (
    "The table below summarizes average maturity by NIST function with brief observations."
)

LOCAL_CONCLUSION = (
    "Improving low-maturity functions will reduce residual risk and support business "
    "continuity. Prioritize the recommendations over the next 90 days and track progress "
    "via KPIs."
)

SYSTEM_PROMPT = (
    "You are a senior cloud security consultant creating an executive summary based on a "
    "Cloud Security Posture Assessment (CSPA). Use clear, concise language for executives. "
    "Map findings to business impact and NIST CSF. Output only valid JSON matching the "
    "response schema. Avoid markdown."
)

RESPONSE_SCHEMA = """{
  "environment": string (optional),
  "summary": string,
  "strengths": string[],
  "gaps": [{"name": string, "description": string, "businessImpact": string,
            "likelihood": "Low" | "Medium" | "High", "impact": "Low" | "Medium" | "High",
            "rating": "Low" | "Medium" | "High"}],
  "compliance": string,
  "recommendations": (string | {"action": string, "priority": string})[],
  "conclusion": string
}"""


def build_local_narrative(
    averages: dict[str, float],
    environment: str = DEFAULT_ENVIRONMENT,
) -> Narrative:
    """Synthesize the narrative from function averages alone."""
    overall = sum(averages.values()) / (len(averages) or 1)
    strong = [fn for fn, avg in averages.items() if avg >= STRENGTH_THRESHOLD]
    weak = [fn for fn, avg in averages.items() if avg < GAP_THRESHOLD]

    summary = (
        "This assessment summarizes your current cloud security posture. "
        f"Average maturity is {overall:.2f} of 4. "
        f"Stronger areas include {', '.join(strong) or 'none'}. "
        "Lower-maturity areas should be prioritized to reduce exposure and align with NIST CSF."
    )

    return Narrative(
        source=NarrativeSource.LOCAL,
        summary=summary,
        environment=environment,
        strengths=[f"{fn}: maturing capability" for fn in strong],
        gaps=[
            Gap(name=f"{fn} capability gap", likelihood="Medium", impact="High", rating="Severe")
            for fn in weak
        ],
        compliance=LOCAL_COMPLIANCE,
        recommendations=[Recommendation(action=text) for text in LOCAL_RECOMMENDATIONS],
        conclusion=LOCAL_CONCLUSION,
    )


def local_narrative_result(
    submission: Submission,
    environment: str = DEFAULT_ENVIRONMENT,
    warning: Optional[str] = None,
) -> NarrativeResult:
    averages = function_averages(submission.responses)
    return NarrativeResult(
        narrative=build_local_narrative(averages, environment),
        function_averages=averages,
        warning=warning,
    )


def build_narrative_prompts(submission: Submission, averages: dict[str, float]) -> tuple[str, str]:
    """Return (system_prompt, user_prompt) for the narrative request."""
    dataset = [
        {
            "id": item.meta.id,
            "nistFunction": item.meta.function.value,
            "category": item.meta.category,
            "control": item.meta.control,
            "prompt": item.meta.prompt,
            "response": item.response,
            "maturity": item.maturity,
        }
        for item in submission.responses
    ]

    user_prompt = (
        "Based on the following questionnaire responses from a Cloud Security Posture "
        "Assessment, generate a professional Executive Summary Report. The report should "
        "include:\n\n"
        "1. A high-level overview of the organization's cloud environment (e.g., Azure, AWS, GCP).\n"
        "2. Key strengths in cloud security posture (e.g., identity management, data protection, "
        "threat detection).\n"
        "3. Identified gaps or risks (e.g., misconfigurations, lack of logging, missing controls).\n"
        "4. Compliance alignment with NIST CSF.\n"
        "5. Strategic recommendations for remediation and improvement.\n"
        "6. Add a risk matrix summary (likelihood, impact, overall rating for each primary risk).\n"
        "7. A summary conclusion with business impact and next steps.\n\n"
        f"Organization: {submission.organization}\n"
        f"Contact: {submission.contact_email}\n"
        f"Submitted At: {submission.submitted_at}\n"
        f"NIST Function Averages (0-4): {json.dumps(averages)}\n\n"
        f"Questionnaire Responses (array of items):\n{json.dumps(dataset)}\n\n"
        f"Respond ONLY with JSON matching this shape (no markdown):\n{RESPONSE_SCHEMA}"
    )
    return SYSTEM_PROMPT, user_prompt


def parse_narrative_payload(content: Optional[str]) -> Narrative:
    """Extract and validate the narrative JSON from model output.

    Raises NarrativeError for empty content, unparseable JSON, or a payload
    that does not match the Narrative schema.
    """
    text = (content or "").strip()
    if not text:
        raise NarrativeError("Empty AI response")

    first, last = text.find("{"), text.rfind("}")
    if first != -1 and last > first:
        text = text[first:last + 1]

    try:
        data = json.loads(text)
    except json.JSONDecodeError as e:
        raise NarrativeError("Failed to parse AI JSON", details=str(e))

    if not isinstance(data, dict):
        raise NarrativeError("AI JSON did not match schema", details="top level is not an object")
    data.pop("source", None)

    try:
        return Narrative.model_validate({**data, "source": NarrativeSource.REMOTE})
    except ValidationError as e:
        raise NarrativeError("AI JSON did not match schema", details=str(e))


async def generate_remote_narrative(
    submission: Submission,
    config: dict,
    provider: Optional[AIProvider] = None,
) -> NarrativeResult:
    """Request the narrative from the configured AI provider, once.

    Raises NarrativeUnavailable when no provider or credential is configured
    and NarrativeError for any upstream or payload failure.
    """
    if provider is None:
        try:
            provider = get_ai_provider(config)
        except ValueError as e:
            raise NarrativeUnavailable("AI not configured", details=str(e)) from e
    if not provider.has_credentials():
        raise NarrativeUnavailable(
            "AI not configured",
            details="Set OPENAI_API_KEY environment variable to enable AI analysis.",
        )

    averages = function_averages(submission.responses)
    system_prompt, user_prompt = build_narrative_prompts(submission, averages)

    result = await provider.complete(system_prompt, user_prompt)
    if not result.success:
        raise NarrativeError("AI request failed", details=sanitize_error(result.error or ""))

    narrative = parse_narrative_payload(result.content)
    return NarrativeResult(narrative=narrative, function_averages=averages)


async def resolve_narrative(
    submission: Submission,
    config: dict,
    use_ai: bool = True,
    provider: Optional[AIProvider] = None,
) -> NarrativeResult:
    """Remote narrative when possible, otherwise the local synthesis.

    Never raises for narrative failures; the fallback carries a warning.
    """
    environment = config.get("report", {}).get("environment", DEFAULT_ENVIRONMENT)
    if not use_ai:
        return local_narrative_result(submission, environment)

    try:
        return await generate_remote_narrative(submission, config, provider)
    except NarrativeError as e:
        reason = f"{e}: {truncate(e.details, 160)}" if e.details else str(e)
        console.print(f"  [yellow]WARN[/yellow] {reason}. Using local summary.")
        return local_narrative_result(
            submission,
            environment,
            warning=f"AI analysis failed ({e}). Using local summary.",
        )
