"""Launcher handing jobs to a remote cluster API over HTTP."""

import logging
from typing import Optional

import requests

from jobserver.domain import JobRecord

from .interface import Launcher

LOG = logging.getLogger(__name__)


class ClusterLauncher(Launcher):
    def __init__(self, endpoint: str, timeout: float,
                 token: Optional[str] = None):
        self.endpoint = endpoint.rstrip("/")
        self.timeout = timeout
        self.token = token

    @property
    def jobsUri(self) -> str:
        return self.endpoint + "/jobs"

    def start_job(self, record: JobRecord) -> None:
        headers = {
            'Content-Type': 'application/json; charset=UTF-8',
        }
        if self.token:
            headers['Authorization'] = 'Bearer ' + self.token
        ret = requests.post(self.jobsUri, json=record.to_dict(),
                            headers=headers, timeout=self.timeout)
        ret.raise_for_status()
        LOG.info("cluster accepted job %s (HTTP %d)",
                 record.job_id, ret.status_code)
