"""
Tests for the job service.
"""

from datetime import datetime, timedelta
import os
import shutil
import tempfile
import unittest
from unittest import mock

from dateutil.tz import tzutc

from jobserver.domain import (
    JobFilter,
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
from jobserver.errors import (
    InvalidArgumentError,
    LaunchError,
    NotFoundError,
    OrphanedLaunchError,
    PartialAggregationError,
    PersistError,
)
from jobserver.persist import PersistAPI, SqlitePersistAPI
from jobserver.service_layer import JobService

from .helpers import RecordingLauncher

TRANSFORM = Transform(image="ubuntu", cmd=["wc", "-l"])


class TestJobService(unittest.TestCase):
    """Test JobService against a real store and a recording launcher."""

    def setUp(self):
        self.temp_dir = tempfile.mkdtemp()
        self.persist = SqlitePersistAPI(
            os.path.join(self.temp_dir, "jobs.sqlite"))
        self.launcher = RecordingLauncher()
        self.service = JobService(self.persist, self.launcher)

    def tearDown(self):
        self.service.close()
        shutil.rmtree(self.temp_dir)

    def test_create_transform_job(self):
        jobId = self.service.create_job(JobRequest(
            input="in/1", output_parent="out", transform=TRANSFORM))

        self.assertEqual(len(jobId), 32)
        self.assertEqual([r.job_id for r in self.launcher.started], [jobId])

        record = self.persist.get_job_record(jobId)
        self.assertEqual(record.spec.transform, TRANSFORM)
        self.assertIsNone(record.spec.pipeline_name)
        self.assertEqual(record.input, "in/1")
        self.assertEqual(record.output_parent, "out")
        self.assertIsNotNone(record.created_at)
        self.assertEqual(record, self.launcher.started[0])

    def test_create_pipeline_job_round_trip(self):
        jobId = self.service.create_job(JobRequest(pipeline=Pipeline("p1")))

        info = self.service.inspect_job(jobId)
        self.assertEqual(info.job_id, jobId)
        self.assertEqual(info.spec.pipeline, Pipeline("p1"))
        self.assertFalse(info.spec.is_transform)

    def test_invalid_requests_make_no_external_calls(self):
        persist = mock.MagicMock(PersistAPI)
        launcher = mock.MagicMock(RecordingLauncher)
        service = JobService(persist, launcher)

        for request in [
            JobRequest(input="in/1"),
            JobRequest(transform=TRANSFORM, pipeline=Pipeline("p1")),
        ]:
            with self.assertRaises(InvalidArgumentError):
                service.create_job(request)

        launcher.start_job.assert_not_called()
        persist.create_job_record.assert_not_called()

    def test_job_ids_unique(self):
        jobIds = [
            self.service.create_job(JobRequest(pipeline=Pipeline("p1")))
            for _ in range(50)
        ]
        self.assertEqual(len(set(jobIds)), 50)

    def test_launch_failure_persists_nothing(self):
        persist = mock.MagicMock(PersistAPI)
        cause = RuntimeError("cluster down")
        service = JobService(persist, RecordingLauncher(error=cause))

        with self.assertRaises(LaunchError) as ctx:
            service.create_job(JobRequest(transform=TRANSFORM))

        self.assertEqual(ctx.exception.step, "start_job")
        self.assertIs(ctx.exception.cause, cause)
        self.assertIs(ctx.exception.__cause__, cause)
        self.assertEqual(persist.create_job_record.call_count, 0)

    def test_persist_failure_after_launch(self):
        persist = mock.MagicMock(PersistAPI)
        cause = IOError("disk full")
        persist.create_job_record.side_effect = cause
        launcher = RecordingLauncher()
        service = JobService(persist, launcher)

        with self.assertLogs("jobserver.service_layer.job_service",
                             level="ERROR") as logs:
            with self.assertRaises(OrphanedLaunchError) as ctx:
                service.create_job(JobRequest(transform=TRANSFORM))

        error = ctx.exception
        self.assertIsInstance(error, PersistError)
        self.assertIs(error.cause, cause)
        self.assertIs(error.__cause__, cause)
        self.assertEqual(error.job_id, launcher.started[0].job_id)
        self.assertIn(error.job_id, "\n".join(logs.output))
        # No retry
        self.assertEqual(persist.create_job_record.call_count, 1)

    def test_inspect_assembles_statuses_in_order(self):
        jobId = self.service.create_job(JobRequest(transform=TRANSFORM))
        t1 = datetime.now(tzutc())
        t2 = t1 + timedelta(seconds=1)
        self.persist.create_job_status(
            JobStatusEvent(jobId, JobStatusType.STARTED, t1, "A"))
        self.persist.create_job_status(
            JobStatusEvent(jobId, JobStatusType.ERROR, t2, "B"))

        info = self.service.inspect_job(jobId)
        self.assertEqual(
            [(s.type, s.timestamp, s.message) for s in info.statuses],
            [(JobStatusType.STARTED, t1, "A"), (JobStatusType.ERROR, t2, "B")])
        self.assertIsNone(info.output)

        self.persist.create_job_output(JobOutput(jobId, "out/" + jobId))
        withOutput = self.service.inspect_job(jobId)
        self.assertEqual(withOutput.output, "out/" + jobId)
        self.assertEqual(withOutput.statuses, info.statuses)
        self.assertEqual(withOutput.spec, info.spec)
        self.assertEqual(withOutput.input, info.input)

    def test_inspect_empty_output_omitted(self):
        persist = mock.MagicMock(PersistAPI)
        persist.get_job_record.return_value = self.launcherRecord()
        persist.get_job_statuses.return_value = []
        persist.get_job_output.return_value = JobOutput("x", "")

        info = JobService(persist, RecordingLauncher()).inspect_job("x")
        self.assertIsNone(info.output)

    def test_inspect_not_found(self):
        with self.assertRaises(NotFoundError):
            self.service.inspect_job("missing")

    def test_inspect_record_read_failure(self):
        persist = mock.MagicMock(PersistAPI)
        persist.get_job_record.side_effect = ConnectionError("unreachable")

        with self.assertRaises(PersistError) as ctx:
            JobService(persist, RecordingLauncher()).inspect_job("x")
        self.assertEqual(ctx.exception.step, "get_job_record")

    def test_inspect_partial_failure(self):
        for failing in ["get_job_statuses", "get_job_output"]:
            persist = mock.MagicMock(PersistAPI)
            persist.get_job_record.return_value = self.launcherRecord()
            persist.get_job_statuses.return_value = []
            persist.get_job_output.return_value = None
            getattr(persist, failing).side_effect = TimeoutError("slow")

            with self.assertRaises(PartialAggregationError) as ctx:
                JobService(persist, RecordingLauncher()).inspect_job("x")
            self.assertEqual(ctx.exception.step, failing)
            self.assertEqual(ctx.exception.job_id, "x")

    def test_list_preserves_order(self):
        jobIds = [
            self.service.create_job(JobRequest(
                input="in/1", pipeline=Pipeline(f"p{i}")))
            for i in range(3)
        ]
        self.service.create_job(JobRequest(input="in/2", transform=TRANSFORM))

        infos = self.service.list_jobs(JobFilter(input="in/1"))
        self.assertEqual([i.job_id for i in infos], jobIds)
        self.assertEqual([i.spec.pipeline_name for i in infos],
                         ["p0", "p1", "p2"])
        self.assertEqual(len(self.service.list_jobs()), 4)

    def test_list_fails_whole_on_one_failure(self):
        persist = mock.MagicMock(PersistAPI)
        records = [self.launcherRecord("a"), self.launcherRecord("b")]
        persist.list_job_records.return_value = records
        persist.get_job_output.return_value = None

        def statuses(jobId):
            if jobId == "b":
                raise ConnectionError("lost")
            return []
        persist.get_job_statuses.side_effect = statuses

        with self.assertRaises(PartialAggregationError) as ctx:
            JobService(persist, RecordingLauncher()).list_jobs(JobFilter())
        self.assertEqual(ctx.exception.job_id, "b")

    def test_list_passes_filter_through(self):
        persist = mock.MagicMock(PersistAPI)
        persist.list_job_records.return_value = []
        jobFilter = JobFilter(pipeline_name="p1")

        self.assertEqual(
            JobService(persist, RecordingLauncher()).list_jobs(jobFilter), [])
        persist.list_job_records.assert_called_once_with(jobFilter)

    def test_logs_all_and_filtered(self):
        jobId = self.service.create_job(JobRequest(transform=TRANSFORM))
        for stream, value in [
            (OutputStream.STDOUT, b"o1\n"),
            (OutputStream.STDERR, b"e1\n"),
            (OutputStream.STDOUT, b"o2\n"),
        ]:
            self.persist.create_job_log(JobLogEntry(jobId, stream, value))

        self.assertEqual(list(self.service.get_job_logs(jobId)),
                         [b"o1\n", b"e1\n", b"o2\n"])
        self.assertEqual(
            list(self.service.get_job_logs(jobId, OutputStream.STDOUT)),
            [b"o1\n", b"o2\n"])
        self.assertEqual(
            list(self.service.get_job_logs(jobId, OutputStream.STDERR)),
            [b"e1\n"])

    def test_logs_no_match(self):
        jobId = self.service.create_job(JobRequest(transform=TRANSFORM))
        self.persist.create_job_log(
            JobLogEntry(jobId, OutputStream.STDOUT, b"o1\n"))

        self.assertEqual(
            list(self.service.get_job_logs(jobId, OutputStream.STDERR)), [])

    def test_logs_fetch_failure_raises_before_streaming(self):
        persist = mock.MagicMock(PersistAPI)
        persist.get_job_logs.side_effect = ConnectionError("unreachable")

        with self.assertRaises(PersistError) as ctx:
            JobService(persist, RecordingLauncher()).get_job_logs("x")
        self.assertEqual(ctx.exception.step, "get_job_logs")

    def test_logs_stream_lazily(self):
        consumed = []

        def entries():
            for value in [b"a", b"b"]:
                consumed.append(value)
                yield JobLogEntry("x", OutputStream.STDOUT, value)

        persist = mock.MagicMock(PersistAPI)
        persist.get_job_logs.return_value = entries()
        stream = JobService(persist, RecordingLauncher()).get_job_logs("x")

        self.assertEqual(next(stream), b"a")
        self.assertEqual(consumed, [b"a"])
        self.assertEqual(list(stream), [b"b"])

    @staticmethod
    def launcherRecord(jobId="x"):
        return JobRecord(job_id=jobId, spec=JobSpec.of_transform(TRANSFORM))


if __name__ == "__main__":
    unittest.main()
