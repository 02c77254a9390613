"""
Job Completion Watcher

Races a job watch against a deadline:

    Watching --(event with succeeded > 0)--> Completed
    Watching --(deadline reached)----------> TimedOut

The watch runs as its own task and reports through a single-slot queue:
the first qualifying event fills the slot, every later one is dropped.
Whichever of the slot and the deadline resolves first decides the outcome,
and the watch is stopped on both paths.

Both sides are abstractions (JobEventSource, Clock) so the race can be driven
by a fake event source and a fake clock.
"""

import asyncio
import logging
from abc import ABC, abstractmethod
from typing import Callable, Optional

from ...errors import WatchError
from ..kubernetes.client import KubernetesClient, WatchHandle, describe_error
from .models import ExecutionOutcome, JobStatusEvent, is_job_complete

logger = logging.getLogger(__name__)


class Clock(ABC):
    """Source of the deadline timer."""

    @abstractmethod
    async def sleep(self, seconds: float) -> None:
        pass


class AsyncioClock(Clock):
    """Wall clock backed by the event loop."""

    async def sleep(self, seconds: float) -> None:
        await asyncio.sleep(seconds)


class JobEventSource(ABC):
    """
    Delivers status events for one job.

    A source is single-use: once stopped it does not deliver again.
    """

    @abstractmethod
    async def run(
        self,
        namespace: str,
        job_name: str,
        deliver: Callable[[JobStatusEvent], None]
    ) -> None:
        """
        Call deliver (on the event loop) for every job event until stopped.

        Raises:
            WatchError: If the watch cannot be set up or breaks
        """
        pass

    @abstractmethod
    def stop(self) -> None:
        """Ask the source to stop delivering. Safe to call from any state."""
        pass


class KubernetesJobEventSource(JobEventSource):
    """
    Job watch against the Kubernetes API.

    The watch starts at the current resource version of the job list, so
    only changes after submission are seen. The blocking watch loop runs in
    a worker thread; events are handed back to the loop thread-safely, and
    stop() interrupts the open watch stream so the thread exits right away.
    """

    def __init__(self, k8s: KubernetesClient, window_seconds: int = 30):
        self.k8s = k8s
        self.window_seconds = window_seconds
        self._handle = WatchHandle()

    async def run(
        self,
        namespace: str,
        job_name: str,
        deliver: Callable[[JobStatusEvent], None]
    ) -> None:
        loop = asyncio.get_running_loop()

        try:
            resource_version = await self.k8s.get_jobs_resource_version(namespace, job_name)
        except Exception as e:
            raise WatchError(
                f"Error starting watch for job {job_name}: {describe_error(e)}"
            ) from e

        def forward(event: JobStatusEvent) -> None:
            if not self._handle.stopped:
                loop.call_soon_threadsafe(deliver, event)

        logger.debug(f"[WATCH] Watching job {job_name} from resource version {resource_version}")
        try:
            await asyncio.to_thread(
                self.k8s.watch_jobs,
                namespace,
                job_name,
                resource_version,
                forward,
                self._handle,
                self.window_seconds
            )
        except Exception as e:
            raise WatchError(
                f"Watch for job {job_name} failed: {describe_error(e)}"
            ) from e

    def stop(self) -> None:
        self._handle.stop()


class CompletionWatcher:
    """Waits for a job to succeed, or for its deadline."""

    def __init__(self, source: JobEventSource, clock: Optional[Clock] = None):
        self.source = source
        self.clock = clock or AsyncioClock()
        self.completion_event: Optional[JobStatusEvent] = None
        self.dropped_signals = 0

    async def wait(self, namespace: str, job_name: str, timeout: float) -> ExecutionOutcome:
        """
        Block until the job completes or the timeout elapses.

        Args:
            namespace: Namespace of the job
            job_name: Job to watch
            timeout: Deadline in seconds (callers map "unbounded" to a huge value)

        Returns:
            ExecutionOutcome.COMPLETED or ExecutionOutcome.TIMED_OUT

        Raises:
            WatchError: If the watch fails before either side resolves
        """
        signal: asyncio.Queue = asyncio.Queue(maxsize=1)

        def deliver(event: JobStatusEvent) -> None:
            if not is_job_complete(event):
                return
            try:
                signal.put_nowait(event)
            except asyncio.QueueFull:
                self.dropped_signals += 1
                logger.debug(f"[WATCH] Completion of {event.job_name} already signalled")

        subscription = asyncio.create_task(self.source.run(namespace, job_name, deliver))
        completion = asyncio.create_task(signal.get())
        deadline = asyncio.create_task(self.clock.sleep(timeout))

        logger.info(f"[WATCH] Waiting for job {job_name} to complete")
        try:
            done, _ = await asyncio.wait(
                {subscription, completion, deadline},
                return_when=asyncio.FIRST_COMPLETED
            )
        finally:
            self.source.stop()
            pending = [t for t in (subscription, completion, deadline) if not t.done()]
            for task in pending:
                task.cancel()
            await asyncio.gather(*pending, return_exceptions=True)

        if completion in done:
            self.completion_event = completion.result()
            logger.info(
                f"[WATCH] Job {job_name} completed "
                f"(succeeded={self.completion_event.succeeded})"
            )
            return ExecutionOutcome.COMPLETED

        if subscription in done:
            error = subscription.exception()
            if isinstance(error, WatchError):
                raise error
            if error is not None:
                raise WatchError(f"Watch for job {job_name} failed: {error}") from error
            raise WatchError(f"Watch for job {job_name} ended before the job completed")

        logger.error(f"[WATCH] Timeout while waiting for job {job_name} to be completed")
        return ExecutionOutcome.TIMED_OUT
