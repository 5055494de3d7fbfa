"""Submission persistence."""
