"""Candidate-pipeline orchestration engine for the recruiting console."""

__version__ = "0.1.0"
