"""
Execution Orchestrator

Runs one command on the cluster as a linear pipeline:

    namespace -> submit -> watch (vs. deadline) -> logs -> cleanup

Errors before the watch (namespace, submission) abort the run and are raised.
Once the job is being watched, every path ends in cleanup and the outcome is
returned as an ExecutionResult carrying the captured output, the pipeline
error (if any) and a trailing cleanup error (if any).
"""

import logging
from typing import Callable, Optional

from ...config import Settings, get_settings
from ...errors import (
    CleanupError,
    JobTimeoutError,
    KubeRunError,
    LogRetrievalError,
    SubmissionError,
    WatchError,
)
from ..kubernetes.client import KubernetesClient
from .cleanup import CleanupManager
from .logs import LogCollector
from .models import (
    ExecutionOutcome,
    ExecutionRequest,
    ExecutionResult,
    ExecutionSession,
)
from .namespace import NamespaceManager
from .naming import NameGenerator
from .submitter import JobSubmitter
from .watcher import Clock, CompletionWatcher, JobEventSource, KubernetesJobEventSource

logger = logging.getLogger(__name__)


class ExecutionOrchestrator:
    """
    Sequences the pipeline stages for a request.

    The session is created per run and passed from stage to stage; the
    orchestrator itself keeps no run state, so one instance can serve several
    runs one after another.
    """

    def __init__(
        self,
        k8s: KubernetesClient,
        settings: Optional[Settings] = None,
        names: Optional[NameGenerator] = None,
        event_source_factory: Optional[Callable[[], JobEventSource]] = None,
        clock: Optional[Clock] = None
    ):
        self.settings = settings or get_settings()
        self.k8s = k8s
        self.names = names or NameGenerator(
            prefix=self.settings.resource_prefix,
            suffix_length=self.settings.name_suffix_length
        )
        self.clock = clock
        self._event_source_factory = event_source_factory or (
            lambda: KubernetesJobEventSource(k8s, self.settings.watch_window_seconds)
        )

        managed_by = self.settings.managed_by_label
        self.namespaces = NamespaceManager(k8s, self.names, managed_by=managed_by)
        self.submitter = JobSubmitter(k8s, self.names, managed_by=managed_by)
        self.log_collector = LogCollector(k8s)
        self.cleanup_manager = CleanupManager(k8s)

    async def run(self, request: ExecutionRequest) -> ExecutionResult:
        """
        Execute a request end to end.

        Returns:
            ExecutionResult for every run that reached the watch

        Raises:
            NamespaceError: If the namespace could not be created
            SubmissionError: If the job could not be submitted
        """
        session = ExecutionSession(request=request)

        resolution = await self.namespaces.ensure_namespace(request.namespace)
        session = session.advance(
            namespace=resolution.name,
            namespace_owned=resolution.owned
        )

        try:
            names = await self.submitter.submit(session)
        except SubmissionError:
            await self._release_after_failure(session)
            raise
        session = session.advance(job_name=names.job, container_name=names.container)

        error: Optional[KubeRunError] = None
        watcher = CompletionWatcher(self._event_source_factory(), self.clock)
        try:
            outcome = await watcher.wait(
                session.namespace,
                session.job_name,
                request.effective_timeout
            )
        except WatchError as e:
            logger.error(f"[RUN] {e}")
            outcome = ExecutionOutcome.FAILED
            error = e
        session = session.advance(outcome=outcome)

        if outcome == ExecutionOutcome.COMPLETED:
            try:
                session = session.advance(stdout=await self.log_collector.collect(session))
            except LogRetrievalError as e:
                logger.error(f"[RUN] {e}")
                error = e
        elif outcome == ExecutionOutcome.TIMED_OUT:
            error = JobTimeoutError(session.job_name, request.timeout)

        cleanup_error: Optional[CleanupError] = None
        try:
            await self.cleanup_manager.cleanup(session)
        except CleanupError as e:
            logger.error(f"[RUN] {e}")
            cleanup_error = e

        logger.info(f"[RUN] Job {session.job_name} finished: {session.outcome}")
        return ExecutionResult.from_session(session, error=error, cleanup_error=cleanup_error)

    async def _release_after_failure(self, session: ExecutionSession) -> None:
        """Delete a namespace created for a run that never got a job."""
        try:
            await self.cleanup_manager.release_namespace(session)
        except CleanupError as e:
            logger.error(f"[RUN] {e}")


async def execute(
    request: ExecutionRequest,
    settings: Optional[Settings] = None
) -> ExecutionResult:
    """
    Connect to the cluster with the request's credentials and run it.

    Raises:
        ConfigError: If no cluster credentials can be resolved
        NamespaceError: If the namespace could not be created
        SubmissionError: If the job could not be submitted
    """
    settings = settings or get_settings()
    k8s = KubernetesClient.from_auth(request.auth, settings)
    try:
        return await ExecutionOrchestrator(k8s, settings).run(request)
    finally:
        k8s.close()
