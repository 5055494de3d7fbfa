"""Cloud Security Posture Assessment: scoring, narrative and PDF reporting."""

__version__ = "1.0.0"
