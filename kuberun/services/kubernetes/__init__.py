"""
Kubernetes Module

This module contains all Kubernetes-specific code:
- KubernetesClient: Low-level Kubernetes API interactions
- Helpers: Manifest builders for namespaces and jobs, labels and selectors

These are used internally by the execution pipeline.
"""

from .client import KubernetesClient, WatchHandle, describe_error, resolve_kubeconfig
from .helpers import (
    JOB_NAME_LABEL,
    get_standard_labels,
    job_pod_selector,
    job_field_selector,
    create_namespace_manifest,
    create_job_manifest,
)

__all__ = [
    # Client
    "KubernetesClient",
    "WatchHandle",
    "describe_error",
    "resolve_kubeconfig",
    # Manifest Helpers
    "JOB_NAME_LABEL",
    "get_standard_labels",
    "job_pod_selector",
    "job_field_selector",
    "create_namespace_manifest",
    "create_job_manifest",
]
