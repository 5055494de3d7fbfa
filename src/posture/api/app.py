"""HTTP handlers for persistence, narrative generation and PDF download."""

from __future__ import annotations

import logging
import os
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.concurrency import run_in_threadpool
from fastapi.responses import JSONResponse, Response
from pydantic import ValidationError

from .. import __version__
from ..core.config import get_effective_config
from ..core.errors import NarrativeError, NarrativeUnavailable, PersistenceError, ReportError, StorageUnavailable
from ..core.narrative import generate_remote_narrative
from ..models.submission import Submission
from ..providers.base import AIProvider
from ..report.pipeline import generate_report
from ..storage.db import persist_submission, require_engine

logger = logging.getLogger("posture.api")

INVALID_PAYLOAD = "Invalid submission payload"


def flatten_errors(error: ValidationError) -> dict:
    """Group validation errors by top-level field.

    Errors without a location are reported under formErrors.
    """
    form_errors: list[str] = []
    field_errors: dict[str, list[str]] = {}
    for err in error.errors():
        loc = err.get("loc") or ()
        if not loc:
            form_errors.append(err["msg"])
            continue
        path = ".".join(str(part) for part in loc)
        field_errors.setdefault(str(loc[0]), []).append(
            err["msg"] if len(loc) == 1 else f"{path}: {err['msg']}"
        )
    return {"formErrors": form_errors, "fieldErrors": field_errors}


async def _parse_submission(request: Request) -> Submission | JSONResponse:
    try:
        body = await request.json()
    except ValueError:
        return JSONResponse(
            status_code=400,
            content={"error": INVALID_PAYLOAD, "details": {"formErrors": ["Body is not valid JSON"], "fieldErrors": {}}},
        )
    try:
        return Submission.model_validate(body)
    except ValidationError as e:
        return JSONResponse(
            status_code=400,
            content={"error": INVALID_PAYLOAD, "details": flatten_errors(e)},
        )


def create_app(config: Optional[dict] = None, provider: Optional[AIProvider] = None) -> FastAPI:
    """Build the app. `provider` overrides the configured AI provider (tests)."""
    config = config or get_effective_config()
    app = FastAPI(title="Cloud Security Posture Assessment", version=__version__)

    @app.get("/api/ping")
    async def ping():
        return {"message": os.environ.get("PING_MESSAGE", "ping")}

    @app.post("/api/assessments")
    async def submit_assessment(request: Request):
        parsed = await _parse_submission(request)
        if isinstance(parsed, JSONResponse):
            return parsed

        try:
            engine = require_engine(config)
        except StorageUnavailable as e:
            return JSONResponse(
                status_code=e.status_code,
                content={"error": "Database not configured", "message": str(e)},
            )

        try:
            assessment_id = await run_in_threadpool(persist_submission, engine, parsed)
        except PersistenceError as e:
            logger.error("Failed to persist assessment: %s", e)
            return JSONResponse(status_code=500, content={"error": "Failed to persist assessment"})

        return JSONResponse(status_code=201, content={"ok": True, "id": assessment_id})

    @app.post("/api/assessments/generate-report")
    async def generate_assessment_report(request: Request):
        parsed = await _parse_submission(request)
        if isinstance(parsed, JSONResponse):
            return parsed

        try:
            result = await generate_remote_narrative(parsed, config, provider)
        except NarrativeUnavailable as e:
            return JSONResponse(
                status_code=503,
                content={"error": str(e), "message": e.details},
            )
        except NarrativeError as e:
            logger.warning("Narrative generation failed: %s %s", e, e.details)
            return JSONResponse(
                status_code=502,
                content={"error": str(e), "details": e.details},
            )

        report = result.narrative.model_dump(mode="json", by_alias=True, exclude={"source"})
        return {
            "ok": True,
            "report": report,
            "metrics": {
                "functionAverages": result.function_averages,
                "totalQuestions": len(parsed.responses),
            },
        }

    @app.post("/api/assessments/report.pdf")
    async def download_report(request: Request, ai: bool = True):
        parsed = await _parse_submission(request)
        if isinstance(parsed, JSONResponse):
            return parsed

        try:
            result = await generate_report(parsed, config, use_ai=ai, provider=provider)
        except ReportError as e:
            logger.error("Report generation failed: %s", e)
            return JSONResponse(status_code=500, content={"error": "Report generation failed"})

        headers = {"Content-Disposition": f'attachment; filename="{result.filename}"'}
        if result.warning:
            headers["X-Report-Warning"] = result.warning
        return Response(content=result.pdf, media_type="application/pdf", headers=headers)

    return app
