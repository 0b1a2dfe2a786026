"""Core authorization model, configuration and error types."""
