#!/usr/bin/env python
import argparse
import os
import sys

import simplejson as json

import jobserver.logging

from .argparse import addArgumentParserBaseFlags
from .binutils import binDescriptionWithStandardFooter
from .config import Config, ConfigError
from .domain import JobFilter, JobRequest, OutputStream, Pipeline, Transform
from .errors import JobServerError
from .launcher import get_launcher
from .persist import SqlitePersistAPI
from .plugins import Plugins
from .service_layer import JobService
from .utils import autoDecode, sprint

DESC = binDescriptionWithStandardFooter("""
jobserver - create, inspect and list jobs, and read their logs

Jobs are started by the configured launcher and recorded in the state
directory.  A job runs either an explicit command (a transform) or a
named pipeline.

Examples:
    jobserver create-job --input data/in --output-parent data/out -- wc -l
    jobserver create-job --pipeline wordcount --input data/in
    jobserver list-job --pipeline wordcount
    jobserver get-logs <job id> --stream stderr
""")

_DEBUG_LOG_FILE_NAME = "jobserver-debug"
LOG = jobserver.logging.getLogger(__name__)


def makeService(config: Config, plugins=None) -> JobService:
    persist = SqlitePersistAPI(config.dbFile, timeout=config.persistTimeout)
    return JobService(persist, get_launcher(config, plugins))


def requestFromOptions(options) -> JobRequest:
    transform = None
    if options.cmd or options.image:
        transform = Transform(
            image=options.image or "",
            cmd=postCommand(options.cmd),
            stdin=options.stdin or [],
        )
    pipeline = Pipeline(options.pipeline) if options.pipeline else None
    return JobRequest(
        input=options.input,
        output_parent=options.output_parent,
        transform=transform,
        pipeline=pipeline,
    )


def postCommand(cmd):
    return cmd[1:] if cmd and cmd[0] == "--" else list(cmd or [])


def handleCreateJob(options, service: JobService):
    sprint(service.create_job(requestFromOptions(options)))


def handleInspectJob(options, service: JobService):
    info = service.inspect_job(options.job_id)
    sprint(json.dumps(info.to_dict(), indent=2))


def handleListJob(options, service: JobService):
    jobFilter = JobFilter(input=options.input, pipeline_name=options.pipeline)
    infos = service.list_jobs(jobFilter)
    sprint(json.dumps([info.to_dict() for info in infos], indent=2))


def handleGetLogs(options, service: JobService):
    stream = OutputStream(options.stream)
    for value in service.get_job_logs(options.job_id, stream):
        sys.stdout.write(autoDecode(value))
    sys.stdout.flush()


def parseArgs(args=None):
    if args is None:
        prog = sys.argv[0]
        args = sys.argv[1:]
    else:
        prog = None

    op = argparse.ArgumentParser(
        prog=os.path.basename(prog) if prog else "jobserver",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        description=DESC)
    addArgumentParserBaseFlags(op, _DEBUG_LOG_FILE_NAME)
    sub = op.add_subparsers(dest="command", metavar="COMMAND")
    sub.required = True

    create = sub.add_parser("create-job", help="Create and launch a job")
    create.set_defaults(handler=handleCreateJob)
    create.add_argument("--input", metavar="REF",
                        help="Reference to the job's input")
    create.add_argument("--output-parent", dest="output_parent", metavar="REF",
                        help="Reference the job's output is created under")
    create.add_argument("-p", "--pipeline", metavar="NAME",
                        help="Run the named pipeline")
    create.add_argument("--image", metavar="IMAGE",
                        help="Container image for the transform command")
    create.add_argument("--stdin", metavar="LINE", action="append",
                        help="Line fed to the transform command's stdin "
                        "(may be repeated)")
    create.add_argument("cmd", nargs=argparse.REMAINDER,
                        help="Transform command to run")

    inspect = sub.add_parser("inspect-job", help="Show one job as JSON")
    inspect.set_defaults(handler=handleInspectJob)
    inspect.add_argument("job_id", metavar="JOB_ID")

    listJob = sub.add_parser("list-job", help="Show matching jobs as JSON")
    listJob.set_defaults(handler=handleListJob)
    listJob.add_argument("--input", metavar="REF",
                         help="Only jobs reading this input")
    listJob.add_argument("-p", "--pipeline", metavar="NAME",
                         help="Only jobs of this pipeline")

    logs = sub.add_parser("get-logs", help="Print a job's stored log lines")
    logs.set_defaults(handler=handleGetLogs)
    logs.add_argument("job_id", metavar="JOB_ID")
    logs.add_argument("--stream", choices=[s.value for s in OutputStream],
                      default=OutputStream.ALL.value,
                      help="Output stream to show (default=%(default)s)")

    return op.parse_args(args)


def impl_main(args=None, plugins=None):
    options = parseArgs(args)
    try:
        config = Config(options)
    except ConfigError as error:
        sprint("Error:", error, file=sys.stderr)
        return 1

    jobserver.logging.setup(
        config.logDir,
        _DEBUG_LOG_FILE_NAME,
        debug=options.debugFile or options.debug)
    LOG.debug("starting with args %s", options)
    LOG.debug("python: %s", sys.version)

    try:
        service = makeService(config, plugins or Plugins())
    except ConfigError as error:
        sprint("Error:", error, file=sys.stderr)
        return 1
    try:
        options.handler(options, service)
    except JobServerError as error:
        LOG.debug("%s failed", options.command, exc_info=True)
        sprint("Error:", error, file=sys.stderr)
        return 1
    finally:
        service.close()
    return 0


def main(args=None):
    sys.exit(impl_main(args))


if __name__ == "__main__":
    main()
