"""
Execution Pipeline

Runs a single command as a Kubernetes Job:
1. NamespaceManager: resolve (and maybe create) the namespace
2. JobSubmitter: submit the job
3. CompletionWatcher: race the job watch against the deadline
4. LogCollector: read the pods' logs
5. CleanupManager: delete job, pods and owned namespace

ExecutionOrchestrator sequences the stages.
"""

from .models import (
    MAX_TIMEOUT_SECONDS,
    AuthInfo,
    ExecutionRequest,
    ExecutionOutcome,
    ExecutionSession,
    ExecutionResult,
    JobNames,
    JobStatusEvent,
    NamespaceResolution,
    is_job_complete,
)
from .naming import NameGenerator, generate_suffix
from .namespace import NamespaceManager
from .submitter import JobSubmitter
from .watcher import (
    Clock,
    AsyncioClock,
    JobEventSource,
    KubernetesJobEventSource,
    CompletionWatcher,
)
from .logs import LogCollector
from .cleanup import CleanupManager
from .orchestrator import ExecutionOrchestrator, execute

__all__ = [
    # Models
    "MAX_TIMEOUT_SECONDS",
    "AuthInfo",
    "ExecutionRequest",
    "ExecutionOutcome",
    "ExecutionSession",
    "ExecutionResult",
    "JobNames",
    "JobStatusEvent",
    "NamespaceResolution",
    "is_job_complete",
    # Stages
    "NameGenerator",
    "generate_suffix",
    "NamespaceManager",
    "JobSubmitter",
    "Clock",
    "AsyncioClock",
    "JobEventSource",
    "KubernetesJobEventSource",
    "CompletionWatcher",
    "LogCollector",
    "CleanupManager",
    # Orchestrator
    "ExecutionOrchestrator",
    "execute",
]
