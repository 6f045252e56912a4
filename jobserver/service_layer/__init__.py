"""
Service layer for business logic.

This package contains the job service which validates requests and joins
the persistence service and the launcher into one API.
"""

from .job_service import CreateState, JobService

__all__ = ["CreateState", "JobService"]
