"""Intake of raw form submissions from the webhook."""
