"""Shared types, errors, events and pipeline orchestration."""
