"""
Error kinds raised by the job server.

Every failure coming out of a collaborator (launcher or persistence
service) is wrapped in an UpstreamError subclass which records the step
that failed. The original exception is kept as ``cause`` and chained as
``__cause__``.
"""

from typing import Optional


class JobServerError(Exception):
    pass


class InvalidArgumentError(JobServerError):
    pass


class NotFoundError(JobServerError):
    def __init__(self, job_id: str):
        super().__init__(f"job {job_id} not found")
        self.job_id = job_id


class UpstreamError(JobServerError):
    """A launcher or persistence call failed or timed out."""

    def __init__(self, step: str, cause: BaseException,
                 job_id: Optional[str] = None):
        where = f"{step} for job {job_id}" if job_id else step
        super().__init__(f"{where} failed: {cause}")
        self.step = step
        self.cause = cause
        self.job_id = job_id


class LaunchError(UpstreamError):
    pass


class PersistError(UpstreamError):
    pass


class OrphanedLaunchError(PersistError):
    """
    The launcher started the job but its record could not be written.

    The job is running on the cluster with no durable record. Nothing
    compensates for this; operators reconcile it using ``job_id``.
    """

    def __init__(self, job_id: str, cause: BaseException):
        super().__init__("create_job_record", cause, job_id=job_id)


class PartialAggregationError(JobServerError):
    """One of the reads joined into a job view failed."""

    def __init__(self, step: str, cause: BaseException, job_id: str):
        super().__init__(
            f"assembling job {job_id}: {step} failed: {cause}")
        self.step = step
        self.cause = cause
        self.job_id = job_id
