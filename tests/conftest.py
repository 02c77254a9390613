"""
Test configuration and fixtures for pytest.

Fixtures include: a mocked KubernetesClient, a deterministic name generator,
a fake clock and a fake job event source for driving the completion race.
"""

import asyncio
import json
import os
import threading
from datetime import datetime, timedelta, timezone
from unittest.mock import Mock

import pytest

from kubernetes import client

from kuberun.services.execution.watcher import Clock, JobEventSource


def pytest_configure(config):
    """
    Pytest hook called before test collection.
    Sets up test environment variables and registers custom markers.
    """
    # Keep the developer's environment out of Settings
    for key in list(os.environ):
        if key.startswith("KUBERUN_"):
            del os.environ[key]

    from kuberun.config import get_settings
    get_settings.cache_clear()

    # Register custom markers
    config.addinivalue_line("markers", "unit: mark test as a unit test")
    config.addinivalue_line("markers", "kubernetes: mark test as exercising the Kubernetes client layer")


class FakeClock(Clock):
    """Clock whose sleeps only finish when the test advances time."""

    def __init__(self):
        self.now = 0.0
        self.sleeps = []
        self._waiters = []

    async def sleep(self, seconds: float) -> None:
        self.sleeps.append(seconds)
        future = asyncio.get_running_loop().create_future()
        self._waiters.append((self.now + seconds, future))
        await future

    def advance(self, seconds: float) -> None:
        self.now += seconds
        for deadline, future in self._waiters:
            if deadline <= self.now and not future.done():
                future.set_result(None)

    async def wait_for_sleeper(self, attempts: int = 100) -> None:
        """Yield to the loop until something is sleeping on this clock."""
        for _ in range(attempts):
            if self._waiters:
                return
            await asyncio.sleep(0)
        raise AssertionError("nothing started sleeping on the fake clock")


class FakeJobEventSource(JobEventSource):
    """Event source fed by the test through emit()."""

    def __init__(self, error: Exception = None):
        self.error = error
        self.queue = asyncio.Queue()
        self.started = asyncio.Event()
        self.stopped = False
        self.delivered = 0
        self.namespace = None
        self.job_name = None

    def emit(self, *events) -> None:
        for event in events:
            self.queue.put_nowait(event)

    async def run(self, namespace, job_name, deliver):
        self.namespace = namespace
        self.job_name = job_name
        self.started.set()
        if self.error is not None:
            raise self.error
        while not self.stopped:
            event = await self.queue.get()
            self.delivered += 1
            deliver(event)

    def stop(self) -> None:
        self.stopped = True


@pytest.fixture
def fake_clock():
    """A clock driven by the test."""
    return FakeClock()


@pytest.fixture
def fake_event_source():
    """An event source driven by the test."""
    return FakeJobEventSource()


@pytest.fixture
def make_event_source():
    """Factory for fresh event sources, optionally failing with the given error."""
    return lambda error=None: FakeJobEventSource(error=error)


@pytest.fixture
def fixed_names():
    """Name generator that always uses the suffix 'abcde'."""
    from kuberun.services.execution import NameGenerator
    return NameGenerator(prefix="kuberun", suffix_factory=lambda: "abcde")


@pytest.fixture
def settings():
    """Default settings, independent of the environment."""
    from kuberun.config import Settings
    return Settings(_env_file=None)


@pytest.fixture
def mock_k8s():
    """KubernetesClient with every API call mocked (async methods are AsyncMocks)."""
    from kuberun.services.kubernetes import KubernetesClient
    k8s = Mock(spec=KubernetesClient)
    k8s.list_job_pods.return_value = []
    k8s.read_pod_log.return_value = ""
    return k8s


def make_pod(name: str, age_seconds: int = 0, job_name: str = "kuberun-job-abcde") -> client.V1Pod:
    """Build a V1Pod as the API would return it for a job."""
    created = datetime(2024, 1, 1, tzinfo=timezone.utc) + timedelta(seconds=age_seconds)
    return client.V1Pod(
        metadata=client.V1ObjectMeta(
            name=name,
            labels={"job-name": job_name},
            creation_timestamp=created
        )
    )


@pytest.fixture
def pod_factory():
    """Factory for job pods."""
    return make_pod


class IdleWatchResponse:
    """
    Stand-in for a watch's streaming HTTP response.

    Sends its events, then blocks like a quiet watch connection until it is
    shut down or idle_seconds pass (the server-side window).
    """

    def __init__(self, *events, idle_seconds: float = 10.0):
        self.lines = [json.dumps(event).encode() + b"\n" for event in events]
        self.idle_seconds = idle_seconds
        self.is_shut_down = threading.Event()
        self.closed = False

    def stream(self, amt=None, decode_content=None):
        yield from self.lines
        self.is_shut_down.wait(self.idle_seconds)

    read_chunked = stream

    def shutdown(self):
        self.is_shut_down.set()

    def close(self):
        self.closed = True

    def release_conn(self):
        pass


def job_event(event_type: str = "MODIFIED", succeeded: int = 1, resource_version: str = "105") -> dict:
    """Raw watch event for the test job, as the API server sends it."""
    return {
        "type": event_type,
        "object": {
            "apiVersion": "batch/v1",
            "kind": "Job",
            "metadata": {"name": "kuberun-job-abcde", "resourceVersion": resource_version},
            "status": {"succeeded": succeeded},
        },
    }


@pytest.fixture
def idle_watch_client():
    """
    Real KubernetesClient whose job watch sends one succeeded event and then
    stays silent. Returns (client, response).
    """
    from kuberun.services.kubernetes import KubernetesClient

    k8s = KubernetesClient()
    response = IdleWatchResponse(job_event())

    def list_namespaced_job(namespace, **kwargs):
        """
        :return: V1JobList
        :rtype: V1JobList
        """
        if kwargs.get("watch"):
            return response
        return client.V1JobList(items=[], metadata=client.V1ListMeta(resource_version="100"))

    k8s.batch_v1.list_namespaced_job = list_namespaced_job
    return k8s, response
