"""AI providers for the executive narrative."""
