"""Relational persistence of raw submissions.

One transaction inserts the assessment header row and one row per response.
Any failure rolls the whole submission back.
"""

from __future__ import annotations

import os
from datetime import datetime, timezone
from typing import Optional

from sqlalchemy import (
    Column,
    DateTime,
    ForeignKey,
    Integer,
    MetaData,
    String,
    Table,
    Text,
    create_engine,
    insert,
)
from sqlalchemy.engine import Engine
from sqlalchemy.exc import SQLAlchemyError

from ..core.errors import PersistenceError, StorageUnavailable
from ..models.submission import Submission
from ..utils.sanitize import sanitize_error

metadata = MetaData()

assessments = Table(
    "assessments",
    metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("organization", String(255), nullable=False),
    Column("contact_email", String(320), nullable=False),
    Column("submitted_at", String(64), nullable=False),
    Column("created_at", DateTime(timezone=True), nullable=False),
)

assessment_responses = Table(
    "assessment_responses",
    metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("assessment_id", Integer, ForeignKey("assessments.id", ondelete="CASCADE"), nullable=False, index=True),
    Column("meta_id", String(32), nullable=False),
    Column("nist_function", String(16), nullable=False),
    Column("category", Text, nullable=False),
    Column("control", Text, nullable=False),
    Column("prompt", Text, nullable=False),
    Column("response", Text, nullable=False),
    Column("maturity", Integer, nullable=False),
)

_engines: dict[str, Engine] = {}


def get_database_url(config: dict) -> Optional[str]:
    env_var = config.get("storage", {}).get("database_url_env", "DATABASE_URL")
    return os.environ.get(env_var) or None


def get_engine(config: dict) -> Optional[Engine]:
    """Engine for the configured database, or None when storage is not configured."""
    url = get_database_url(config)
    if not url:
        return None
    if url not in _engines:
        kwargs: dict = {"pool_pre_ping": True}
        if not url.startswith("sqlite"):
            kwargs["pool_size"] = config.get("storage", {}).get("pool_size", 5)
        _engines[url] = create_engine(url, **kwargs)
    return _engines[url]


def require_engine(config: dict) -> Engine:
    engine = get_engine(config)
    if engine is None:
        env_var = config.get("storage", {}).get("database_url_env", "DATABASE_URL")
        raise StorageUnavailable(
            f"Database not configured. Set {env_var} to enable persistence."
        )
    return engine


def create_schema(engine: Engine) -> None:
    """Create the tables if they do not exist (bootstrap helper, not a migration tool)."""
    try:
        metadata.create_all(engine)
    except SQLAlchemyError as e:
        raise PersistenceError(f"Failed to create schema: {sanitize_error(str(e))}") from e


def persist_submission(engine: Engine, submission: Submission) -> int:
    """Insert one submission atomically and return the new assessment id."""
    try:
        with engine.begin() as conn:
            result = conn.execute(
                insert(assessments).values(
                    organization=submission.organization,
                    contact_email=submission.contact_email,
                    submitted_at=submission.submitted_at,
                    created_at=datetime.now(timezone.utc),
                )
            )
            assessment_id = result.inserted_primary_key[0]

            for item in submission.responses:
                conn.execute(
                    insert(assessment_responses).values(
                        assessment_id=assessment_id,
                        meta_id=item.meta.id,
                        nist_function=item.meta.function.value,
                        category=item.meta.category,
                        control=item.meta.control,
                        prompt=item.meta.prompt,
                        response=item.response,
                        maturity=item.maturity,
                    )
                )
    except SQLAlchemyError as e:
        raise PersistenceError(
            f"Failed to persist assessment: {sanitize_error(str(e))}"
        ) from e
    return int(assessment_id)
