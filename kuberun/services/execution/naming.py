"""
Resource name generation.

Names follow "{prefix}-{kind}-{suffix}" where suffix is a short nanoid:
- Namespace: "kuberun-ns-k3x8n"
- Job: "kuberun-job-a5b3c"
- Container: "kuberun-container-a5b3c" (same suffix as its job)

All names are DNS-1123 compliant (lowercase alphanumeric + hyphens).
"""

from typing import Callable, Optional
from nanoid import generate

from .models import JobNames

SUFFIX_ALPHABET = '0123456789abcdefghijklmnopqrstuvwxyz'


def generate_suffix(length: int = 5) -> str:
    """
    Generate a short, DNS-safe random suffix.

    Args:
        length: Length of suffix (default 5 = 60M combinations)

    Returns:
        Random suffix (e.g., "k3x8n")
    """
    return generate(SUFFIX_ALPHABET, length)


class NameGenerator:
    """
    Builds resource names for a session.

    The suffix source is injectable so tests can use deterministic names.
    """

    def __init__(
        self,
        prefix: str = "kuberun",
        suffix_factory: Optional[Callable[[], str]] = None,
        suffix_length: int = 5
    ):
        self.prefix = prefix
        self._suffix_factory = suffix_factory or (lambda: generate_suffix(suffix_length))

    def suffix(self) -> str:
        return self._suffix_factory()

    def namespace_name(self) -> str:
        return f"{self.prefix}-ns-{self.suffix()}"

    def job_names(self) -> JobNames:
        """Job and container names sharing one suffix."""
        suffix = self.suffix()
        return JobNames(
            job=f"{self.prefix}-job-{suffix}",
            container=f"{self.prefix}-container-{suffix}"
        )
