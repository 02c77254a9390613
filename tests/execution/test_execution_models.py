"""
Unit tests for the execution data model and resource naming.
"""

import pytest
from dataclasses import FrozenInstanceError

from kubernetes import client
from pydantic import ValidationError

from kuberun.errors import CleanupError, JobTimeoutError
from kuberun.services.execution import (
    MAX_TIMEOUT_SECONDS,
    ExecutionOutcome,
    ExecutionRequest,
    ExecutionResult,
    ExecutionSession,
    JobStatusEvent,
    NameGenerator,
    generate_suffix,
    is_job_complete,
)
from kuberun.services.execution.naming import SUFFIX_ALPHABET


@pytest.mark.unit
class TestExecutionRequest:
    """Test request validation."""

    def test_defaults(self):
        request = ExecutionRequest(image="alpine", command=["echo", "hi"])

        assert request.namespace is None
        assert request.timeout == 120
        assert request.cleanup is True
        assert request.auth.insecure is False

    @pytest.mark.parametrize("image", ["", "   "])
    def test_empty_image_rejected(self, image):
        with pytest.raises(ValidationError):
            ExecutionRequest(image=image, command=["echo"])

    def test_empty_command_rejected(self):
        with pytest.raises(ValidationError):
            ExecutionRequest(image="alpine", command=[])

    def test_negative_timeout_rejected(self):
        with pytest.raises(ValidationError):
            ExecutionRequest(image="alpine", command=["true"], timeout=-1)

    def test_blank_namespace_means_generate(self):
        request = ExecutionRequest(image="alpine", command=["true"], namespace="  ")

        assert request.namespace is None

    def test_zero_timeout_is_unbounded(self):
        """Test timeout=0 maps to the largest supported wait, not to no timer."""
        request = ExecutionRequest(image="alpine", command=["true"], timeout=0)

        assert request.effective_timeout == MAX_TIMEOUT_SECONDS

    def test_request_is_immutable(self):
        request = ExecutionRequest(image="alpine", command=["true"])

        with pytest.raises(ValidationError):
            request.image = "busybox"


@pytest.mark.unit
class TestExecutionSession:
    """Test session copies."""

    def test_advance_returns_new_session(self):
        session = ExecutionSession(request=ExecutionRequest(image="alpine", command=["true"]))

        advanced = session.advance(namespace="ns", namespace_owned=True)

        assert advanced.namespace == "ns"
        assert advanced.namespace_owned is True
        assert session.namespace == ""
        assert advanced.request is session.request

    def test_session_is_frozen(self):
        session = ExecutionSession(request=ExecutionRequest(image="alpine", command=["true"]))

        with pytest.raises(FrozenInstanceError):
            session.stdout = "x"


@pytest.mark.unit
class TestJobStatusEvent:
    """Test the typed watch event and completion predicate."""

    def test_from_job(self):
        job = client.V1Job(
            metadata=client.V1ObjectMeta(name="kuberun-job-abcde", resource_version="7"),
            status=client.V1JobStatus(succeeded=1, failed=None)
        )

        event = JobStatusEvent.from_job("MODIFIED", job)

        assert event == JobStatusEvent("MODIFIED", "kuberun-job-abcde", 1, 0, "7")

    def test_from_job_without_status(self):
        job = client.V1Job(metadata=client.V1ObjectMeta(name="j"))

        event = JobStatusEvent.from_job("ADDED", job)

        assert event.succeeded == 0
        assert event.failed == 0

    @pytest.mark.parametrize("succeeded,complete", [(0, False), (1, True), (3, True)])
    def test_completion_predicate(self, succeeded, complete):
        assert is_job_complete(JobStatusEvent("MODIFIED", "j", succeeded=succeeded)) is complete

    def test_failed_job_is_not_complete(self):
        assert not is_job_complete(JobStatusEvent("MODIFIED", "j", failed=1))


@pytest.mark.unit
class TestExecutionResult:
    """Test result aggregation."""

    def _session(self, **changes):
        session = ExecutionSession(request=ExecutionRequest(image="alpine", command=["true"]))
        return session.advance(**changes)

    def test_completed_run_succeeds(self):
        result = ExecutionResult.from_session(
            self._session(stdout="hi\n", outcome=ExecutionOutcome.COMPLETED)
        )

        assert result.succeeded
        assert result.stdout == "hi\n"
        assert result.errors == []

    def test_cleanup_error_keeps_output(self):
        cleanup_error = CleanupError("Error deleting job")
        result = ExecutionResult.from_session(
            self._session(stdout="hi\n", outcome=ExecutionOutcome.COMPLETED),
            cleanup_error=cleanup_error
        )

        assert not result.succeeded
        assert result.stdout == "hi\n"
        assert result.errors == [cleanup_error]

    def test_timeout_is_not_success(self):
        error = JobTimeoutError("kuberun-job-abcde", 1)
        result = ExecutionResult.from_session(
            self._session(outcome=ExecutionOutcome.TIMED_OUT),
            error=error
        )

        assert not result.succeeded
        assert result.errors == [error]


@pytest.mark.unit
class TestNameGenerator:
    """Test resource naming."""

    def test_job_and_container_share_suffix(self):
        names = NameGenerator(prefix="kuberun", suffix_factory=lambda: "k3x8n").job_names()

        assert names.job == "kuberun-job-k3x8n"
        assert names.container == "kuberun-container-k3x8n"

    def test_namespace_name(self):
        generator = NameGenerator(prefix="kuberun", suffix_factory=lambda: "a5b3c")

        assert generator.namespace_name() == "kuberun-ns-a5b3c"

    def test_each_call_draws_a_new_suffix(self):
        suffixes = iter(["aaaaa", "bbbbb"])
        generator = NameGenerator(prefix="kuberun", suffix_factory=lambda: next(suffixes))

        first = generator.job_names()
        second = generator.job_names()

        assert first.job != second.job

    def test_generate_suffix_is_dns_safe(self):
        suffix = generate_suffix(8)

        assert len(suffix) == 8
        assert set(suffix) <= set(SUFFIX_ALPHABET)

    def test_default_suffix_length(self):
        generator = NameGenerator(prefix="run", suffix_length=5)

        name = generator.namespace_name()

        assert name.startswith("run-ns-")
        assert len(name) == len("run-ns-") + 5


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
