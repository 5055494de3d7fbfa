"""Tests for core/narrative.py."""

from __future__ import annotations

import json

import pytest

from conftest import FakeProvider, make_submission
from posture.core.errors import NarrativeError, NarrativeUnavailable
from posture.core.narrative import (
    LOCAL_RECOMMENDATIONS,
    build_local_narrative,
    build_narrative_prompts,
    generate_remote_narrative,
    parse_narrative_payload,
    resolve_narrative,
)
from posture.core.scoring import function_averages
from posture.models.narrative import NarrativeSource
from posture.models.provider import CompletionResult


class TestBuildLocalNarrative:
    def test_all_twos_has_no_strengths_or_gaps(self):
        averages = function_averages(make_submission(2).responses)
        narrative = build_local_narrative(averages)
        assert narrative.source == NarrativeSource.LOCAL
        assert narrative.strengths == []
        assert narrative.gaps == []
        assert "Average maturity is 2.00 of 4" in narrative.summary
        assert "Stronger areas include none." in narrative.summary

    def test_strengths_and_gaps(self):
        averages = {"GOVERN": 1.0, "IDENTIFY": 2.5, "PROTECT": 3.0, "DETECT": 1.49}
        narrative = build_local_narrative(averages)
        assert narrative.strengths == ["IDENTIFY: maturing capability", "PROTECT: maturing capability"]
        assert [g.name for g in narrative.gaps] == ["GOVERN capability gap", "DETECT capability gap"]
        gap = narrative.gaps[0]
        assert (gap.likelihood, gap.impact, gap.rating) == ("Medium", "High", "Severe")
        assert "Stronger areas include IDENTIFY, PROTECT." in narrative.summary

    def test_overall_average_is_mean_of_function_averages(self):
        narrative = build_local_narrative({"GOVERN": 1.0, "DETECT": 4.0})
        assert "Average maturity is 2.50 of 4" in narrative.summary

    def test_fixed_content(self):
        narrative = build_local_narrative({"GOVERN": 2.0}, environment="AWS")
        assert narrative.environment == "AWS"
        assert [r.action for r in narrative.recommendations] == list(LOCAL_RECOMMENDATIONS)
        assert narrative.conclusion.startswith("Improving low-maturity functions")
        assert narrative.compliance

    def test_empty_averages(self):
        narrative = build_local_narrative({})
        assert "Average maturity is 0.00 of 4" in narrative.summary


class TestParseNarrativePayload:
    def test_extracts_json_from_text(self, remote_report):
        content = "Sure!\n```json\n" + json.dumps(remote_report) + "\n```"
        narrative = parse_narrative_payload(content)
        assert narrative.source == NarrativeSource.REMOTE
        assert narrative.summary.startswith("Contoso Education")
        assert len(narrative.gaps) == 2

    def test_defaults_applied(self, remote_report):
        narrative = parse_narrative_payload(json.dumps(remote_report))
        gap = narrative.gaps[1]
        assert gap.likelihood == "Medium"
        assert gap.impact == "Medium"
        assert gap.rating == "Medium"
        assert gap.description == ""

    def test_recommendations_normalized(self, remote_report):
        narrative = parse_narrative_payload(json.dumps(remote_report))
        assert narrative.recommendations[0].action == "Formalize cloud risk tolerance"
        assert narrative.recommendations[0].priority == "Medium"
        assert narrative.recommendations[1].priority == "High"

    def test_business_impact_alias(self, remote_report):
        narrative = parse_narrative_payload(json.dumps(remote_report))
        assert narrative.gaps[0].business_impact == "Unclear prioritization"

    def test_minimal_payload(self):
        narrative = parse_narrative_payload('{"summary": "Short."}')
        assert narrative.strengths == []
        assert narrative.conclusion == ""

    def test_empty_raises(self):
        with pytest.raises(NarrativeError, match="Empty"):
            parse_narrative_payload("   ")

    def test_invalid_json_raises(self):
        with pytest.raises(NarrativeError, match="parse"):
            parse_narrative_payload("{not json}")

    def test_schema_mismatch_raises(self):
        with pytest.raises(NarrativeError, match="schema"):
            parse_narrative_payload('{"strengths": []}')

    def test_source_cannot_be_spoofed(self):
        narrative = parse_narrative_payload('{"summary": "x", "source": "local"}')
        assert narrative.source == NarrativeSource.REMOTE


class TestBuildPrompts:
    def test_prompt_contents(self, submission):
        averages = function_averages(submission.responses)
        system, user = build_narrative_prompts(submission, averages)
        assert "senior cloud security consultant" in system
        assert "Organization: Contoso Education" in user
        assert '"GOVERN": 1.5' in user
        assert "GO.SC-1" in user


class TestGenerateRemoteNarrative:
    @pytest.mark.asyncio
    async def test_success(self, submission, config, remote_provider):
        result = await generate_remote_narrative(submission, config, remote_provider)
        assert result.narrative.source == NarrativeSource.REMOTE
        assert result.function_averages["DETECT"] == 1.0
        assert result.warning is None
        assert len(remote_provider.calls) == 1

    @pytest.mark.asyncio
    async def test_missing_credentials(self, submission, config):
        provider = FakeProvider(CompletionResult(success=True, content="{}"), credentials=False)
        with pytest.raises(NarrativeUnavailable):
            await generate_remote_narrative(submission, config, provider)
        assert provider.calls == []

    @pytest.mark.asyncio
    async def test_default_provider_without_key(self, submission, config):
        with pytest.raises(NarrativeUnavailable) as exc:
            await generate_remote_narrative(submission, config)
        assert exc.value.status_code == 503

    @pytest.mark.asyncio
    async def test_unknown_provider(self, submission, config):
        config["ai"]["provider"] = "azure-openai"
        with pytest.raises(NarrativeUnavailable) as exc:
            await generate_remote_narrative(submission, config)
        assert "azure-openai" in exc.value.details

    @pytest.mark.asyncio
    async def test_upstream_failure(self, submission, config, failing_provider):
        with pytest.raises(NarrativeError) as exc:
            await generate_remote_narrative(submission, config, failing_provider)
        assert exc.value.status_code == 502
        assert "429" in exc.value.details
        assert len(failing_provider.calls) == 1


class TestResolveNarrative:
    @pytest.mark.asyncio
    async def test_remote_used_when_available(self, submission, config, remote_provider):
        result = await resolve_narrative(submission, config, provider=remote_provider)
        assert result.narrative.source == NarrativeSource.REMOTE
        assert result.warning is None

    @pytest.mark.asyncio
    async def test_falls_back_once_on_failure(self, submission, config, failing_provider):
        result = await resolve_narrative(submission, config, provider=failing_provider)
        assert result.narrative.source == NarrativeSource.LOCAL
        assert "Using local summary" in result.warning
        assert len(failing_provider.calls) == 1

    @pytest.mark.asyncio
    async def test_falls_back_on_malformed_payload(self, submission, config):
        provider = FakeProvider(CompletionResult(success=True, content="no json here"))
        result = await resolve_narrative(submission, config, provider=provider)
        assert result.narrative.source == NarrativeSource.LOCAL
        assert result.warning

    @pytest.mark.asyncio
    async def test_falls_back_without_credentials(self, submission, config):
        result = await resolve_narrative(submission, config)
        assert result.narrative.source == NarrativeSource.LOCAL
        assert "AI not configured" in result.warning

    @pytest.mark.asyncio
    async def test_falls_back_on_unknown_provider(self, submission, config):
        config["ai"]["provider"] = "azure-openai"
        result = await resolve_narrative(submission, config)
        assert result.narrative.source == NarrativeSource.LOCAL
        assert "AI not configured" in result.warning

    @pytest.mark.asyncio
    async def test_ai_disabled_skips_provider(self, submission, config, remote_provider):
        result = await resolve_narrative(submission, config, use_ai=False, provider=remote_provider)
        assert result.narrative.source == NarrativeSource.LOCAL
        assert result.warning is None
        assert remote_provider.calls == []

    @pytest.mark.asyncio
    async def test_environment_from_config(self, submission, config):
        config["report"]["environment"] = "Google Cloud"
        result = await resolve_narrative(submission, config, use_ai=False)
        assert result.narrative.environment == "Google Cloud"

    @pytest.mark.asyncio
    async def test_same_shape_for_both_sources(self, submission, config, remote_provider):
        remote = await resolve_narrative(submission, config, provider=remote_provider)
        local = await resolve_narrative(submission, config, use_ai=False)
        assert set(remote.narrative.model_dump()) == set(local.narrative.model_dump())
        assert remote.function_averages == local.function_averages
