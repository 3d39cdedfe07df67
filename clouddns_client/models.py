from enum import Enum
from typing import Any, Dict, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, ValidationError

from clouddns_client.exceptions import UnexpectedResultError


class JobState(str, Enum):
    initialized = "INITIALIZED"
    running = "RUNNING"
    completed = "COMPLETED"
    error = "ERROR"
    unknown = "UNKNOWN"

    @classmethod
    def _missing_(cls, value):
        return cls.unknown

    @property
    def is_terminal(self) -> bool:
        return self in (JobState.completed, JobState.error)


class OperationStatus(BaseModel):
    """One snapshot of an asynchronous job as reported by the service"""

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    job_id: Optional[str] = Field(default=None, alias="jobId")
    status: JobState
    callback_url: Optional[str] = Field(default=None, alias="callbackUrl")
    verb: Optional[str] = None
    request_url: Optional[str] = Field(default=None, alias="requestUrl")
    raw_response: Dict[str, Any] = Field(default_factory=dict)

    @property
    def id(self) -> Optional[str]:
        return self.job_id

    @property
    def is_terminal(self) -> bool:
        return self.status.is_terminal


class RunningStatus(OperationStatus):
    pass


class UnknownStatus(OperationStatus):
    pass


class CompletedStatus(OperationStatus):
    response: Any = None


class ErrorStatus(OperationStatus):
    error: Any = None


_STATUS_TYPES = {
    JobState.initialized: RunningStatus,
    JobState.running: RunningStatus,
    JobState.completed: CompletedStatus,
    JobState.error: ErrorStatus,
    JobState.unknown: UnknownStatus,
}


def parse_status(body: Any, job_id: Optional[str] = None) -> OperationStatus:
    """Builds the snapshot variant matching the body's status field"""
    if not isinstance(body, dict):
        raise UnexpectedResultError(body)

    state = JobState(body.get("status"))
    body_job_id = body.get("jobId")
    fields = {
        "jobId": str(body_job_id) if body_job_id is not None else job_id,
        "status": state,
        "callbackUrl": body.get("callbackUrl"),
        "verb": body.get("verb"),
        "requestUrl": body.get("requestUrl"),
        "raw_response": body,
    }
    # response and error stay verbatim, whatever their shape
    if state == JobState.completed:
        fields["response"] = body.get("response")
    elif state == JobState.error:
        fields["error"] = body.get("error")

    try:
        return _STATUS_TYPES[state].model_validate(fields)
    except ValidationError as e:
        raise UnexpectedResultError(body) from e


class Domain(BaseModel):
    model_config = ConfigDict(extra="allow", populate_by_name=True)

    id: Optional[Union[int, str]] = None
    name: str
    email_address: Optional[str] = Field(default=None, alias="emailAddress")
    ttl: Optional[int] = None
    comment: Optional[str] = None
    account_id: Optional[Union[int, str]] = Field(default=None, alias="accountId")
    created: Optional[str] = None
    updated: Optional[str] = None


class DomainDetails(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    name: Optional[str] = None
    email_address: Optional[str] = Field(default=None, alias="emailAddress")
    ttl: Optional[Any] = None
    comment: Optional[str] = None


class DomainUpdate(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    id: Optional[Union[int, str]] = None
    ttl: Optional[int] = None
    email_address: Optional[str] = Field(default=None, alias="emailAddress")
    comment: Optional[str] = None


class ImportDetails(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    content_type: Optional[str] = Field(default=None, alias="contentType")
    contents: Optional[str] = None


class StatusPollingConfig(BaseModel):
    initial_delay: float = 2.0
    max_delay: float = 5.0
    backoff_factor: float = 1.5
    max_attempts: int = 100
    timeout: float = 300.0  # 5 minutes
    jitter: bool = True


class TransportResponse(BaseModel):
    status_code: int
    body: Any = Field(default_factory=dict)
    headers: Dict[str, str] = Field(default_factory=dict)
