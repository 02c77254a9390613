"""
Error taxonomy for a kuberun execution.

Each pipeline phase raises its own exception type so callers (and the CLI)
can tell where a run stopped. The underlying API error is always chained as
``__cause__``.
"""

from typing import Optional


class KubeRunError(Exception):
    """Base class for every error raised by a kuberun run."""
    pass


class ConfigError(KubeRunError):
    """No usable cluster credentials could be resolved."""
    pass


class NamespaceError(KubeRunError):
    """The target namespace could not be created."""
    pass


class SubmissionError(KubeRunError):
    """The job could not be submitted."""
    pass


class WatchError(KubeRunError):
    """The job watch could not be set up or broke while waiting."""
    pass


class JobTimeoutError(KubeRunError):
    """The deadline passed before the job reported success."""

    def __init__(self, job_name: str, timeout: int):
        self.job_name = job_name
        self.timeout = timeout
        super().__init__(
            f"Timeout while waiting for job {job_name} to complete ({timeout}s)"
        )


class LogRetrievalError(KubeRunError):
    """Reading the log of one of the job's pods failed."""

    def __init__(self, pod_name: str, reason: Optional[str] = None):
        self.pod_name = pod_name
        message = f"Error getting log for pod {pod_name}"
        if reason:
            message += f": {reason}"
        super().__init__(message)


class CleanupError(KubeRunError):
    """A teardown step failed; later steps were not attempted."""
    pass
