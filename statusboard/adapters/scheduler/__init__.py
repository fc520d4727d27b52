"""Scheduler adapters for driving the refresh cadence (watch mode)."""
