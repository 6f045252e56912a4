"""
Launcher interface.

A launcher starts the workload of a job on a cluster. It reports nothing
back besides success or failure of the start itself; progress is written
to the persistence service by the workload.
"""

from abc import ABC, abstractmethod

from jobserver.domain import JobRecord


class Launcher(ABC):
    @abstractmethod
    def start_job(self, record: JobRecord) -> None:
        """
        Start executing a job.

        Args:
            record: The job to start; it is not yet persisted

        Raises:
            Any exception if the job could not be started
        """
