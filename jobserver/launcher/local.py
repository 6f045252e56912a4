"""
Launcher running jobs as detached processes on this host.

Each job runs under ``python -m jobserver.runner`` in its own session. The
record and the resolved command are handed over on stdin, since the record
is not persisted until after the launch succeeds.
"""

from __future__ import annotations

import logging
from subprocess import DEVNULL, PIPE, Popen
import sys
import threading
from typing import Callable, List, Optional

import simplejson as json

from jobserver.domain import JobRecord

from .interface import Launcher

LOG = logging.getLogger(__name__)

PipelineLookup = Callable[[str], Optional[List[str]]]


class LocalLauncher(Launcher):
    def __init__(
        self, stateDir: str, rcFile: str, pipelineCmd: PipelineLookup
    ):
        """
        Args:
            stateDir: State directory the runner records results under
            rcFile: rc file the runner reads its configuration from
            pipelineCmd: Maps a pipeline name to the command it runs
        """
        self.stateDir = stateDir
        self.rcFile = rcFile
        self.pipelineCmd = pipelineCmd

    def resolveCmd(self, record: JobRecord) -> List[str]:
        spec = record.spec
        if spec.transform is not None:
            cmd = list(spec.transform.cmd)
        else:
            cmd = self.pipelineCmd(spec.pipeline_name)
            if cmd is None:
                raise ValueError(
                    f"no command configured for pipeline {spec.pipeline_name!r}")
        if not cmd:
            raise ValueError(f"empty command for job {record.job_id}")
        return cmd

    def runnerArgs(self) -> List[str]:
        return [
            sys.executable, "-m", "jobserver.runner",
            "--state-dir", self.stateDir,
            "--rc-file", self.rcFile,
        ]

    def start_job(self, record: JobRecord) -> None:
        payload = record.to_dict()
        payload["cmd"] = self.resolveCmd(record)
        proc = Popen(
            self.runnerArgs(),
            stdin=PIPE,
            stdout=DEVNULL,
            stderr=DEVNULL,
            start_new_session=True,
        )
        try:
            proc.stdin.write(json.dumps(payload).encode("utf-8"))
            proc.stdin.close()
        except OSError:
            LOG.debug("runner for job %s died at startup", record.job_id,
                      exc_info=True)
            proc.kill()
            proc.wait()
            raise
        # the runner outlives this call, reap it so it leaves no zombie
        threading.Thread(target=proc.wait, name=f"reap-{proc.pid}",
                         daemon=True).start()
        LOG.info("launched job %s as pid %d: %s",
                 record.job_id, proc.pid, payload["cmd"])
