"""Utility modules — logging setup and tracing helpers."""
