"""Admissions assessment scoring and recommendation pipeline."""
