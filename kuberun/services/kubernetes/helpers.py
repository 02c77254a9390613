"""
Kubernetes Manifest Helpers

This module builds the manifests a kuberun session submits:
- Namespace: only when the session has to create one
- Job: a single-container, single-attempt batch/v1 Job

Key components:
- Standard labels: every created resource is tagged with the managing tool
- Job label selector: pods spawned by a Job carry "job-name=<job>"
"""

from kubernetes import client
from typing import Dict, List, Optional

# Label the Job controller puts on every pod it spawns
JOB_NAME_LABEL = "job-name"


# =============================================================================
# Labels and Selectors
# =============================================================================

def get_standard_labels(
    managed_by: str,
    component: str,
    job_name: Optional[str] = None
) -> Dict[str, str]:
    """
    Get standard labels for kuberun resources.

    Args:
        managed_by: Value of the app.kubernetes.io/managed-by label
        component: Component name (namespace, job)
        job_name: Optional job name the resource belongs to

    Returns:
        Dict of labels
    """
    labels = {
        "app.kubernetes.io/managed-by": managed_by,
        "kuberun.io/component": component,
    }

    if job_name:
        labels["kuberun.io/job"] = job_name

    return labels


def job_pod_selector(job_name: str) -> str:
    """Label selector matching the pods spawned by a job."""
    return f"{JOB_NAME_LABEL}={job_name}"


def job_field_selector(job_name: str) -> str:
    """Field selector matching a single job by name."""
    return f"metadata.name={job_name}"


# =============================================================================
# Namespace Manifest
# =============================================================================

def create_namespace_manifest(name: str, managed_by: str) -> client.V1Namespace:
    """Create the manifest for a namespace owned by this session."""
    return client.V1Namespace(
        metadata=client.V1ObjectMeta(
            name=name,
            labels=get_standard_labels(managed_by=managed_by, component="namespace")
        )
    )


# =============================================================================
# Job Manifest
# =============================================================================

def create_job_manifest(
    namespace: str,
    job_name: str,
    container_name: str,
    image: str,
    command: List[str],
    managed_by: str
) -> client.V1Job:
    """
    Create the job manifest for a single command execution.

    The job runs exactly one container, once:
    - restart_policy "Never": a failed container is not restarted in place
    - backoff_limit 0: the Job controller does not spawn a replacement pod

    Args:
        namespace: Kubernetes namespace
        job_name: Job name (also ends up in the pods' job-name label)
        container_name: Name of the single container
        image: Container image
        command: Command and arguments, run verbatim (no shell)
        managed_by: Value of the app.kubernetes.io/managed-by label

    Returns:
        V1Job manifest
    """
    labels = get_standard_labels(
        managed_by=managed_by,
        component="job",
        job_name=job_name
    )

    container = client.V1Container(
        name=container_name,
        image=image,
        command=list(command)
    )

    return client.V1Job(
        api_version="batch/v1",
        kind="Job",
        metadata=client.V1ObjectMeta(
            name=job_name,
            namespace=namespace,
            labels=labels
        ),
        spec=client.V1JobSpec(
            backoff_limit=0,
            template=client.V1PodTemplateSpec(
                metadata=client.V1ObjectMeta(labels=labels),
                spec=client.V1PodSpec(
                    containers=[container],
                    restart_policy="Never"
                )
            )
        )
    )
