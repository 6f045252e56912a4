"""
Persistence service interface.

This module defines the abstract interface of the durable store for job
records, status events, outputs and log lines. The job service reads and
writes only through it.
"""

from abc import ABC, abstractmethod
from typing import Iterable, List, Optional

from jobserver.domain import (
    JobFilter,
    JobLogEntry,
    JobOutput,
    JobRecord,
    JobStatusEvent,
)


class PersistAPI(ABC):
    """
    Abstract persistence service.

    Implementations raise NotFoundError from get_job_record for an unknown
    job id. Any other failure is raised as whatever the backend raises;
    callers wrap it.
    """

    @abstractmethod
    def create_job_record(self, record: JobRecord) -> None:
        """
        Store a new job record.

        Args:
            record: The record to store
        """

    @abstractmethod
    def get_job_record(self, job_id: str) -> JobRecord:
        """
        Get a job record by id.

        Args:
            job_id: The job id

        Returns:
            The stored record

        Raises:
            NotFoundError: If no record exists for job_id
        """

    @abstractmethod
    def list_job_records(
        self, job_filter: Optional[JobFilter] = None
    ) -> List[JobRecord]:
        """
        List job records.

        Args:
            job_filter: Restrict the listing (None = all jobs)

        Returns:
            Matching records, oldest first
        """

    @abstractmethod
    def get_job_statuses(self, job_id: str) -> List[JobStatusEvent]:
        """
        Get the status history of a job.

        Args:
            job_id: The job id

        Returns:
            Status events in the order they were written
        """

    @abstractmethod
    def get_job_output(self, job_id: str) -> Optional[JobOutput]:
        """
        Get the output of a job.

        Args:
            job_id: The job id

        Returns:
            The output if the job has produced one, None otherwise
        """

    @abstractmethod
    def get_job_logs(self, job_id: str) -> Iterable[JobLogEntry]:
        """
        Get every stored log entry of a job.

        Args:
            job_id: The job id

        Returns:
            Log entries in the order they were written
        """

    @abstractmethod
    def create_job_status(self, event: JobStatusEvent) -> None:
        """
        Append a status event.

        Args:
            event: The event to append
        """

    @abstractmethod
    def create_job_output(self, output: JobOutput) -> None:
        """
        Record the output of a job.

        Args:
            output: The output to record
        """

    @abstractmethod
    def create_job_log(self, entry: JobLogEntry) -> None:
        """
        Append a log entry.

        Args:
            entry: The entry to append
        """

    @abstractmethod
    def close(self) -> None:
        """Close the service connection and release resources."""
