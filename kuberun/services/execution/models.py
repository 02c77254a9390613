"""
Execution Data Model

Types threaded through a single kuberun session:
- ExecutionRequest: validated, immutable input (credentials in AuthInfo)
- ExecutionSession: per-run state, copied (never mutated) by each stage
- is_job_complete: the completion predicate over JobStatusEvent
- ExecutionResult: what the orchestrator hands back to the caller
"""

from dataclasses import dataclass, field, replace
from enum import Enum
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, field_validator

from ...errors import CleanupError, KubeRunError
from ..kubernetes.models import AuthInfo, JobStatusEvent

# timeout=0 waits "forever": the deadline timer still runs, just for ~68 years
MAX_TIMEOUT_SECONDS = 2**31 - 1


class ExecutionRequest(BaseModel):
    """A single command to run on the cluster."""
    model_config = ConfigDict(frozen=True)

    image: str
    command: List[str]
    namespace: Optional[str] = None
    timeout: int = 120  # seconds, 0 = unbounded
    cleanup: bool = True
    auth: AuthInfo = AuthInfo()

    @field_validator('image')
    @classmethod
    def validate_image(cls, v):
        if not v or not v.strip():
            raise ValueError('Image cannot be empty')
        return v.strip()

    @field_validator('command')
    @classmethod
    def validate_command(cls, v):
        if not v:
            raise ValueError('Command cannot be empty')
        return v

    @field_validator('namespace')
    @classmethod
    def validate_namespace(cls, v):
        if v is not None and not v.strip():
            return None
        return v

    @field_validator('timeout')
    @classmethod
    def validate_timeout(cls, v):
        if v < 0:
            raise ValueError('Timeout cannot be negative')
        return v

    @property
    def effective_timeout(self) -> int:
        """Deadline in seconds, with 0 mapped to the largest supported wait."""
        return self.timeout or MAX_TIMEOUT_SECONDS


class ExecutionOutcome(str, Enum):
    """Terminal state of a session."""

    PENDING = "pending"
    COMPLETED = "completed"
    TIMED_OUT = "timed_out"
    FAILED = "failed"

    def __str__(self) -> str:
        return self.value


@dataclass(frozen=True)
class NamespaceResolution:
    name: str
    owned: bool


@dataclass(frozen=True)
class JobNames:
    job: str
    container: str


@dataclass(frozen=True)
class ExecutionSession:
    """
    State of one run.

    Stages never mutate a session; they return a copy via ``advance`` so the
    orchestrator always holds the single current version.
    """
    request: ExecutionRequest
    namespace: str = ""
    namespace_owned: bool = False
    job_name: str = ""
    container_name: str = ""
    stdout: str = ""
    stderr: str = ""
    outcome: ExecutionOutcome = ExecutionOutcome.PENDING

    def advance(self, **changes) -> "ExecutionSession":
        return replace(self, **changes)


def is_job_complete(event: JobStatusEvent) -> bool:
    """A job is complete once at least one of its pods succeeded."""
    return event.succeeded > 0


@dataclass
class ExecutionResult:
    """
    Output of a run.

    ``error`` is the pipeline error (timeout, watch or log failure) and
    ``cleanup_error`` a trailing teardown failure. Captured output is kept
    regardless of either.
    """
    stdout: str = ""
    stderr: str = ""
    outcome: ExecutionOutcome = ExecutionOutcome.PENDING
    namespace: str = ""
    job_name: str = ""
    error: Optional[KubeRunError] = None
    cleanup_error: Optional[CleanupError] = None
    errors: List[KubeRunError] = field(default_factory=list)

    @property
    def succeeded(self) -> bool:
        return (
            self.outcome == ExecutionOutcome.COMPLETED
            and self.error is None
            and self.cleanup_error is None
        )

    @classmethod
    def from_session(
        cls,
        session: ExecutionSession,
        error: Optional[KubeRunError] = None,
        cleanup_error: Optional[CleanupError] = None
    ) -> "ExecutionResult":
        errors = [e for e in (error, cleanup_error) if e is not None]
        return cls(
            stdout=session.stdout,
            stderr=session.stderr,
            outcome=session.outcome,
            namespace=session.namespace,
            job_name=session.job_name,
            error=error,
            cleanup_error=cleanup_error,
            errors=errors
        )
