"""Log retrieval for a finished job."""

import logging

from ...errors import LogRetrievalError
from ..kubernetes.client import KubernetesClient, describe_error
from .models import ExecutionSession

logger = logging.getLogger(__name__)


class LogCollector:
    """Reads the logs of every pod a job spawned."""

    def __init__(self, k8s: KubernetesClient):
        self.k8s = k8s

    async def collect(self, session: ExecutionSession) -> str:
        """
        Fetch the job's output.

        Pods are read oldest first and their logs concatenated. The container
        runtime merges stdout and stderr into a single pod log, so all output
        ends up here.

        Returns:
            Concatenated pod logs

        Raises:
            LogRetrievalError: Naming the first pod whose log could not be read
        """
        try:
            pods = await self.k8s.list_job_pods(session.namespace, session.job_name)
        except Exception as e:
            raise LogRetrievalError(
                f"<pods of job {session.job_name}>", describe_error(e)
            ) from e

        logger.debug(f"[LOGS] Job {session.job_name} has {len(pods)} pod(s)")

        chunks = []
        for pod in pods:
            pod_name = pod.metadata.name
            try:
                chunks.append(await self.k8s.read_pod_log(pod_name, session.namespace))
            except Exception as e:
                raise LogRetrievalError(pod_name, describe_error(e)) from e

        return "".join(chunks)
