"""
Job service: creation, inspection, listing and log streaming.

This module contains the JobService class which sits in front of two
independent collaborators, the persistence service and the launcher. It
keeps no state of its own between requests.
"""

from __future__ import annotations

from contextlib import contextmanager
from enum import Enum
import logging
from typing import Iterable, Iterator, List, Optional

from jobserver.domain import (
    JobFilter,
    JobInfo,
    JobLogEntry,
    JobRecord,
    JobRequest,
    JobSpec,
    OutputStream,
)
from jobserver.errors import (
    JobServerError,
    LaunchError,
    OrphanedLaunchError,
    PartialAggregationError,
    PersistError,
)
from jobserver.launcher import Launcher
from jobserver.persist import PersistAPI
from jobserver.rpclog import logged
from jobserver.utils import newJobId, utcNow

LOG = logging.getLogger(__name__)


class CreateState(Enum):
    """Progress of a single create_job call."""

    PENDING = "pending"  # Validated, nothing external done yet
    LAUNCHED = "launched"  # Launcher accepted the job, no record yet
    PERSISTED = "persisted"  # Record written


@contextmanager
def _upstream(errorType, step: str, job_id: Optional[str] = None):
    """Wrap collaborator failures; our own errors pass through."""
    try:
        yield
    except JobServerError:
        raise
    except Exception as error:
        raise errorType(step, error, job_id=job_id) from error


class JobService:
    """
    Facade over the persistence service and the launcher.

    Creating a job launches it first and records it second. The two steps
    are not transactional: if the record cannot be written after a
    successful launch, OrphanedLaunchError is raised and the running job
    has no durable record.
    """

    def __init__(self, persist: PersistAPI, launcher: Launcher):
        """
        Initialize service.

        Args:
            persist: Persistence service for job records and sub-records
            launcher: Launcher that starts job workloads
        """
        self.persist = persist
        self.launcher = launcher

    @logged
    def create_job(self, request: JobRequest) -> str:
        """
        Create and launch a new job.

        Args:
            request: The job definition

        Returns:
            The new job id

        Raises:
            InvalidArgumentError: If not exactly one of transform and
                pipeline is set; nothing external has been called
            LaunchError: If the launcher failed; nothing was persisted
            OrphanedLaunchError: If the job was launched but its record
                could not be written
        """
        spec = JobSpec.from_request(request)
        record = JobRecord(
            job_id=newJobId(),
            spec=spec,
            input=request.input,
            output_parent=request.output_parent,
            created_at=utcNow(),
        )
        state = CreateState.PENDING

        with _upstream(LaunchError, "start_job", record.job_id):
            self.launcher.start_job(record)
        state = CreateState.LAUNCHED
        LOG.debug("job %s: %s", record.job_id, state.value)

        try:
            self.persist.create_job_record(record)
        except Exception as error:
            LOG.error("job %s is %s but has no record, reconcile it "
                      "manually: %s", record.job_id, state.value, error)
            raise OrphanedLaunchError(record.job_id, error) from error
        state = CreateState.PERSISTED
        LOG.info("job %s: %s (%s)", record.job_id, state.value, spec)

        return record.job_id

    @logged
    def inspect_job(self, job_id: str) -> JobInfo:
        """
        Get the assembled view of one job.

        Raises:
            NotFoundError: If there is no record for job_id
            PersistError: If the record could not be read
            PartialAggregationError: If its statuses or output could not
                be read
        """
        with _upstream(PersistError, "get_job_record", job_id):
            record = self.persist.get_job_record(job_id)
        return self._assemble(record)

    @logged
    def list_jobs(self, job_filter: Optional[JobFilter] = None) -> List[JobInfo]:
        """
        Get the assembled view of every job matching job_filter.

        Views keep the order of the persistence listing. If any job cannot
        be assembled the whole call fails.
        """
        with _upstream(PersistError, "list_job_records"):
            records = self.persist.list_job_records(job_filter)
        return [self._assemble(record) for record in records]

    @logged
    def get_job_logs(
        self, job_id: str, stream: OutputStream = OutputStream.ALL
    ) -> Iterator[bytes]:
        """
        Stream the stored log lines of a job.

        The stored entries are fetched before this returns, so a failed
        fetch raises here and nothing is yielded. The returned iterator
        yields the values of the entries tagged with stream, in stored
        order.
        """
        with _upstream(PersistError, "get_job_logs", job_id):
            entries = self.persist.get_job_logs(job_id)
        return self._filter_logs(entries, stream)

    @staticmethod
    def _filter_logs(
        entries: Iterable[JobLogEntry], stream: OutputStream
    ) -> Iterator[bytes]:
        for entry in entries:
            if stream.matches(entry.output_stream):
                yield entry.value

    # TODO: read statuses and outputs for a whole listing in one call each
    # once PersistAPI grows bulk getters.
    def _assemble(self, record: JobRecord) -> JobInfo:
        """Join a record with its status history and output."""
        job_id = record.job_id
        try:
            statuses = self.persist.get_job_statuses(job_id)
        except Exception as error:
            raise PartialAggregationError(
                "get_job_statuses", error, job_id) from error
        try:
            output = self.persist.get_job_output(job_id)
        except Exception as error:
            raise PartialAggregationError(
                "get_job_output", error, job_id) from error

        info = JobInfo(
            job_id=job_id,
            spec=record.spec,
            input=record.input,
            statuses=list(statuses),
        )
        if output is not None and output.output:
            info.output = output.output
        return info

    def close(self) -> None:
        """Close the persistence service."""
        self.persist.close()
