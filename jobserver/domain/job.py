"""
Pure domain model for jobs.

This module contains the request, record and view types exchanged between
the job service, the persistence service and the launcher. None of them
know how they are stored or transported.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from shlex import quote
from typing import Any, Dict, List, Optional

from jobserver.errors import InvalidArgumentError

from .. import utils


class JobStatusType(Enum):
    """Job status event types, as written by the launcher side."""

    STARTED = "started"
    ERROR = "error"
    SUCCESS = "success"


class OutputStream(Enum):
    """Log stream tags. ALL is only meaningful as a filter."""

    STDOUT = "stdout"
    STDERR = "stderr"
    ALL = "all"

    def matches(self, stream: OutputStream) -> bool:
        return self is OutputStream.ALL or self is stream


@dataclass(frozen=True)
class Transform:
    """An explicit container command to run."""

    image: str = ""
    cmd: List[str] = field(default_factory=list)
    stdin: List[str] = field(default_factory=list)

    def cmd_str(self) -> str:
        return " ".join(quote(part) for part in self.cmd)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "image": self.image,
            "cmd": list(self.cmd),
            "stdin": list(self.stdin),
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> Transform:
        return cls(
            image=data.get("image", ""),
            cmd=list(data.get("cmd") or []),
            stdin=list(data.get("stdin") or []),
        )


@dataclass(frozen=True)
class Pipeline:
    name: str


@dataclass(frozen=True)
class JobRequest:
    """
    Request to create a job.

    Exactly one of transform or pipeline must be set. This is not checked
    here since a request is just what the caller sent; JobSpec.from_request
    does the validation.
    """

    input: Optional[str] = None
    output_parent: Optional[str] = None
    transform: Optional[Transform] = None
    pipeline: Optional[Pipeline] = None


@dataclass(frozen=True)
class JobSpec:
    """
    What a job runs: either a Transform or the name of a pipeline.

    Construction fails with InvalidArgumentError unless exactly one of
    the two cases is given.
    """

    transform: Optional[Transform] = None
    pipeline_name: Optional[str] = None

    def __post_init__(self):
        hasTransform = self.transform is not None
        hasPipeline = bool(self.pipeline_name)
        if hasTransform == hasPipeline:
            raise InvalidArgumentError(
                "exactly one of transform and pipeline must be set, got "
                f"transform={self.transform!r} "
                f"pipeline_name={self.pipeline_name!r}")

    @classmethod
    def of_transform(cls, transform: Transform) -> JobSpec:
        return cls(transform=transform)

    @classmethod
    def of_pipeline(cls, name: str) -> JobSpec:
        return cls(pipeline_name=name)

    @classmethod
    def from_request(cls, request: JobRequest) -> JobSpec:
        if request.transform is not None and request.pipeline is not None:
            raise InvalidArgumentError(
                f"both transform and pipeline are set on {request!r}")
        if request.transform is not None:
            return cls.of_transform(request.transform)
        if request.pipeline is not None and request.pipeline.name:
            return cls.of_pipeline(request.pipeline.name)
        raise InvalidArgumentError(
            f"both transform and pipeline are not set on {request!r}")

    @property
    def is_transform(self) -> bool:
        return self.transform is not None

    @property
    def is_pipeline(self) -> bool:
        return bool(self.pipeline_name)

    @property
    def pipeline(self) -> Optional[Pipeline]:
        if not self.is_pipeline:
            return None
        return Pipeline(self.pipeline_name)

    def to_dict(self) -> Dict[str, Any]:
        if self.transform is not None:
            return {"transform": self.transform.to_dict()}
        return {"pipeline": {"name": self.pipeline_name}}

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> JobSpec:
        if "transform" in data and "pipeline" in data:
            raise InvalidArgumentError(
                f"both transform and pipeline are set on {data!r}")
        if "transform" in data:
            return cls.of_transform(Transform.from_dict(data["transform"]))
        if "pipeline" in data:
            return cls.of_pipeline(data["pipeline"]["name"])
        raise InvalidArgumentError(
            f"both transform and pipeline are not set on {data!r}")

    def __str__(self) -> str:
        if self.transform is not None:
            return f"transform: {self.transform.cmd_str()}"
        return f"pipeline: {self.pipeline_name}"


@dataclass(frozen=True)
class JobRecord:
    """
    The durable record of a job, written once at submission.

    Status, output and logs live in separate records keyed by job_id.
    """

    job_id: str
    spec: JobSpec
    input: Optional[str] = None
    output_parent: Optional[str] = None
    created_at: Optional[datetime] = None

    def to_dict(self) -> Dict[str, Any]:
        data = {
            "job_id": self.job_id,
            "input": self.input,
            "output_parent": self.output_parent,
            "created_at": utils.toTimestamp(self.created_at)
            if self.created_at else None,
        }
        data.update(self.spec.to_dict())
        return data

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> JobRecord:
        createdAt = data.get("created_at")
        return cls(
            job_id=data["job_id"],
            spec=JobSpec.from_dict(data),
            input=data.get("input"),
            output_parent=data.get("output_parent"),
            created_at=utils.fromTimestamp(createdAt) if createdAt else None,
        )


@dataclass(frozen=True)
class JobStatusEvent:
    job_id: str
    type: JobStatusType
    timestamp: datetime
    message: str = ""

    def to_dict(self) -> Dict[str, Any]:
        return {
            "type": self.type.value,
            "timestamp": utils.toTimestamp(self.timestamp),
            "message": self.message,
        }


@dataclass(frozen=True)
class JobOutput:
    job_id: str
    output: str


@dataclass(frozen=True)
class JobLogEntry:
    job_id: str
    output_stream: OutputStream
    value: bytes


@dataclass(frozen=True)
class JobFilter:
    """
    Listing filter handed through to the persistence service.

    None fields do not filter.
    """

    input: Optional[str] = None
    pipeline_name: Optional[str] = None


@dataclass
class JobInfo:
    """
    The assembled view of one job: its record, status history and output.

    Built on demand for each request and never stored.
    """

    job_id: str
    spec: JobSpec
    input: Optional[str] = None
    statuses: List[JobStatusEvent] = field(default_factory=list)
    output: Optional[str] = None

    @property
    def state(self) -> Optional[JobStatusType]:
        """The type of the most recent status event, if any."""
        if not self.statuses:
            return None
        return self.statuses[-1].type

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {
            "job_id": self.job_id,
            "input": self.input,
            "statuses": [status.to_dict() for status in self.statuses],
        }
        data.update(self.spec.to_dict())
        if self.output is not None:
            data["output"] = self.output
        return data
