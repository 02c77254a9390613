"""Job submission."""

import logging

from ...errors import SubmissionError
from ..kubernetes.client import KubernetesClient, describe_error
from ..kubernetes.helpers import create_job_manifest
from .models import ExecutionSession, JobNames
from .naming import NameGenerator

logger = logging.getLogger(__name__)


class JobSubmitter:
    """Builds the job for a session's request and submits it."""

    def __init__(
        self,
        k8s: KubernetesClient,
        names: NameGenerator,
        managed_by: str = "kuberun"
    ):
        self.k8s = k8s
        self.names = names
        self.managed_by = managed_by

    async def submit(self, session: ExecutionSession) -> JobNames:
        """
        Submit the job into the session's namespace.

        Returns:
            The job and container names

        Raises:
            SubmissionError: If the API rejects the job
        """
        names = self.names.job_names()
        request = session.request

        job = create_job_manifest(
            namespace=session.namespace,
            job_name=names.job,
            container_name=names.container,
            image=request.image,
            command=request.command,
            managed_by=self.managed_by
        )

        logger.info(f"[SUBMIT] Creating job {names.job} ({request.image}) in {session.namespace}")
        try:
            await self.k8s.create_job(job, session.namespace)
        except Exception as e:
            raise SubmissionError(
                f"Error creating job {names.job}: {describe_error(e)}"
            ) from e

        return names
