"""Evalent tools: scoring, intake, storage and notification."""
