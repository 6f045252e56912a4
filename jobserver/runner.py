#!/usr/bin/env python
"""
Job runner started by the local launcher.

Reads a serialised job record plus the command to run from stdin, runs
the command, and reports back through the persistence service: a STARTED
status, one log entry per output line, then SUCCESS with an output or
ERROR with the exit code.
"""

import argparse
from subprocess import PIPE, Popen
import sys
import threading
from typing import IO, List

import simplejson as json

import jobserver.logging

from .argparse import addArgumentParserBaseFlags
from .config import Config
from .domain import (
    JobLogEntry,
    JobOutput,
    JobRecord,
    JobStatusEvent,
    JobStatusType,
    OutputStream,
)
from .persist import PersistAPI, SqlitePersistAPI
from .utils import utcNow

_DEBUG_LOG_FILE_NAME = "jobserver-runner-debug"
LOG = jobserver.logging.getLogger(__name__)


def outputFor(record: JobRecord) -> str:
    if record.output_parent:
        return record.output_parent.rstrip("/") + "/" + record.job_id
    return record.job_id


def _status(persist: PersistAPI, jobId: str, statusType: JobStatusType,
            message: str = "") -> None:
    persist.create_job_status(JobStatusEvent(
        job_id=jobId, type=statusType, timestamp=utcNow(), message=message))


def _pump(persist: PersistAPI, jobId: str, stream: OutputStream,
          pipe: IO[bytes], failures: List[Exception]) -> None:
    """Record each line of pipe; keep draining it after a failed write."""
    failed = False
    try:
        for line in iter(pipe.readline, b""):
            if failed:
                continue
            try:
                persist.create_job_log(JobLogEntry(
                    job_id=jobId, output_stream=stream, value=line))
            except Exception as err:  # pylint: disable=broad-except
                LOG.error("job %s: cannot record %s: %s",
                          jobId, stream.value, err, exc_info=True)
                failures.append(err)
                failed = True
    finally:
        pipe.close()


def _feed(proc: Popen, jobId: str, lines: List[str]) -> None:
    try:
        if lines:
            proc.stdin.write(("\n".join(lines) + "\n").encode("utf-8"))
        proc.stdin.close()
    except BrokenPipeError:
        # the exit code decides how the job ends
        LOG.debug("job %s stopped reading stdin", jobId, exc_info=True)


def runJob(persist: PersistAPI, record: JobRecord, cmd: List[str]) -> int:
    """Run cmd for record and record its progress. Returns the exit code."""
    jobId = record.job_id
    LOG.info("execute job %s: %r", jobId, cmd)
    _status(persist, jobId, JobStatusType.STARTED, " ".join(cmd))
    try:
        proc = Popen(cmd, stdin=PIPE, stdout=PIPE, stderr=PIPE)
    except OSError as err:
        LOG.debug("OSError %s", err, exc_info=True)
        _status(persist, jobId, JobStatusType.ERROR, str(err))
        return -1 * (err.errno or 1)

    failures: List[Exception] = []
    pumps = [
        threading.Thread(target=_pump, name=f"{jobId[:8]}-{stream.value}",
                         args=(persist, jobId, stream, pipe, failures))
        for stream, pipe in ((OutputStream.STDOUT, proc.stdout),
                             (OutputStream.STDERR, proc.stderr))
    ]
    for pump in pumps:
        pump.start()

    stdin = []
    if record.spec.transform is not None:
        stdin = record.spec.transform.stdin
    _feed(proc, jobId, stdin)

    rc = proc.wait()
    for pump in pumps:
        pump.join()
    LOG.debug("job %s => rc=%d", jobId, rc)

    if failures:
        _status(persist, jobId, JobStatusType.ERROR,
                f"exit code {rc}, log capture failed: {failures[0]}")
    elif rc == 0:
        persist.create_job_output(JobOutput(job_id=jobId, output=outputFor(record)))
        _status(persist, jobId, JobStatusType.SUCCESS)
    else:
        _status(persist, jobId, JobStatusType.ERROR, f"exit code {rc}")
    return rc


def parseArgs(args=None):
    op = argparse.ArgumentParser(
        prog="jobserver.runner",
        description="Run one job handed over on stdin by the local launcher")
    addArgumentParserBaseFlags(op, _DEBUG_LOG_FILE_NAME)
    return op.parse_args(args)


def main(args=None, stdin=None):
    options = parseArgs(args)
    config = Config(options)
    jobserver.logging.setup(config.logDir, _DEBUG_LOG_FILE_NAME,
                            debug=options.debugFile or options.debug)

    payload = json.load(stdin or sys.stdin)
    record = JobRecord.from_dict(payload)
    persist = SqlitePersistAPI(config.dbFile, timeout=config.persistTimeout)
    try:
        return runJob(persist, record, payload["cmd"])
    finally:
        persist.close()


if __name__ == "__main__":
    sys.exit(main())
