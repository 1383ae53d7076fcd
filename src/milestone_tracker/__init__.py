"""Milestone Tracker: milestone ownership, tracking quotas and notifications."""

__version__ = "1.0.0"
