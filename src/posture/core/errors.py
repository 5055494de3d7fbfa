"""Exception hierarchy.

Each error carries the HTTP status the API layer maps it to.
"""

from __future__ import annotations


class PostureError(Exception):
    status_code = 500


class NarrativeError(PostureError):
    """Upstream narrative failure: non-success reply or malformed payload."""

    status_code = 502

    def __init__(self, message: str, details: str = ""):
        super().__init__(message)
        self.details = details


class NarrativeUnavailable(NarrativeError):
    """No credential configured for the narrative service."""

    status_code = 503


class StorageUnavailable(PostureError):
    status_code = 503


class PersistenceError(PostureError):
    status_code = 500


class ReportError(PostureError):
    status_code = 500
