"""
Domain models for jobserver.

This package contains pure domain logic with no storage or launcher coupling.
"""

from .job import (
    JobFilter,
    JobInfo,
    JobLogEntry,
    JobOutput,
    JobRecord,
    JobRequest,
    JobSpec,
    JobStatusEvent,
    JobStatusType,
    OutputStream,
    Pipeline,
    Transform,
)

__all__ = [
    "JobFilter",
    "JobInfo",
    "JobLogEntry",
    "JobOutput",
    "JobRecord",
    "JobRequest",
    "JobSpec",
    "JobStatusEvent",
    "JobStatusType",
    "OutputStream",
    "Pipeline",
    "Transform",
]
