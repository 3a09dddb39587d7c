"""Scheduling of sweeps."""

from .apsched_adapter import APSchedulerAdapter

__all__ = ["APSchedulerAdapter"]
