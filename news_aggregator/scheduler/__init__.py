"""Scheduling of per-feed poll cycles."""

from .apsched_adapter import FeedScheduler, job_id

__all__ = ["FeedScheduler", "job_id"]
