"""Logging initialization and structured error log."""
