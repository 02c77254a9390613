"""
Kubernetes-facing data types.

- AuthInfo: how to reach and authenticate against the API server
- JobStatusEvent: the job fields a watch event is reduced to
"""

from dataclasses import dataclass
from typing import Optional

from pydantic import BaseModel, ConfigDict


class AuthInfo(BaseModel):
    """Cluster credentials. Empty fields fall back to kubeconfig / in-cluster config."""
    model_config = ConfigDict(frozen=True)

    master_url: str = ""
    username: str = ""
    password: str = ""
    token: str = ""
    config_file: str = ""
    context: str = ""
    insecure: bool = False


@dataclass(frozen=True)
class JobStatusEvent:
    """A job status snapshot delivered by the watch."""
    event_type: str
    job_name: str
    succeeded: int = 0
    failed: int = 0
    resource_version: Optional[str] = None

    @classmethod
    def from_job(cls, event_type: str, job) -> "JobStatusEvent":
        """Build an event from a V1Job, ignoring everything but its counters."""
        status = job.status
        return cls(
            event_type=event_type,
            job_name=job.metadata.name,
            succeeded=(status.succeeded or 0) if status else 0,
            failed=(status.failed or 0) if status else 0,
            resource_version=job.metadata.resource_version
        )
