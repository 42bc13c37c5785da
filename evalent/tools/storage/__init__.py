"""Submission and answer-key persistence."""
