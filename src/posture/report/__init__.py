"""PDF report composition."""
