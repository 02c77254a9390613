"""
Session teardown.

Deletes, in order and stopping at the first failure:
1. the job
2. the job's pods
3. the namespace, only if this session created it

Nothing is deleted when the request disabled cleanup.
"""

import logging

from ...errors import CleanupError
from ..kubernetes.client import KubernetesClient, describe_error
from .models import ExecutionSession

logger = logging.getLogger(__name__)


class CleanupManager:
    """Best-effort removal of everything a session created."""

    def __init__(self, k8s: KubernetesClient):
        self.k8s = k8s

    async def cleanup(self, session: ExecutionSession) -> None:
        """
        Delete the session's job, pods and owned namespace.

        Raises:
            CleanupError: On the first failing step; later steps are skipped
        """
        if not session.request.cleanup:
            logger.info("[CLEANUP] Ignoring cleanup upon request")
            return

        logger.info(f"[CLEANUP] Cleaning up job {session.job_name} in {session.namespace}")

        try:
            await self.k8s.delete_job(session.job_name, session.namespace)
        except Exception as e:
            raise CleanupError(
                f"Error deleting job {session.job_name}: {describe_error(e)}"
            ) from e

        try:
            pods = await self.k8s.list_job_pods(session.namespace, session.job_name)
        except Exception as e:
            raise CleanupError(
                f"Error listing pods of job {session.job_name}: {describe_error(e)}"
            ) from e

        for pod in pods:
            pod_name = pod.metadata.name
            try:
                await self.k8s.delete_pod(pod_name, session.namespace)
            except Exception as e:
                raise CleanupError(f"Error deleting pod {pod_name}: {describe_error(e)}") from e

        await self.release_namespace(session)

    async def release_namespace(self, session: ExecutionSession) -> None:
        """
        Delete the session's namespace if it created it.

        Also used on its own when submission fails after the namespace was
        created, so an aborted run does not leave it behind.

        Raises:
            CleanupError: If the namespace could not be deleted
        """
        if not session.request.cleanup or not session.namespace_owned:
            return

        try:
            await self.k8s.delete_namespace(session.namespace)
        except Exception as e:
            raise CleanupError(
                f"Error deleting namespace {session.namespace}: {describe_error(e)}"
            ) from e
