"""Shared helpers for configuration and LLM access."""
