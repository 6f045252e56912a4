from contextlib import contextmanager
from io import StringIO
import os
import sys
from typing import List

from jobserver.domain import JobRecord
from jobserver.launcher import Launcher

HOME = '/home/me'


def resetEnv():
    os.environ['HOME'] = HOME
    os.environ['JOBSERVER_STATE_DIR'] = '/tmp/BADDIR'


@contextmanager
def capturedOutput():
    ''' Used to capture stdout or stderr.
    eg.
    with capturedOutput() as (out, err):
        print("foo")

    self.assertEqual(out.getvalue(), "foo")
    '''
    newOut, newErr = StringIO(), StringIO()
    oldOut, oldErr = sys.stdout, sys.stderr
    try:
        sys.stdout, sys.stderr = newOut, newErr
        yield sys.stdout, sys.stderr
    finally:
        sys.stdout, sys.stderr = oldOut, oldErr


class RecordingLauncher(Launcher):
    """Launcher which remembers what it was asked to start."""

    def __init__(self, error=None):
        self.started: List[JobRecord] = []
        self.error = error

    def start_job(self, record: JobRecord) -> None:
        if self.error is not None:
            raise self.error
        self.started.append(record)
