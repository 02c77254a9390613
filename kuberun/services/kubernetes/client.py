"""
Kubernetes Client for Single-Job Execution

This module provides the interface to the Kubernetes API that a kuberun
session needs: namespaces, jobs, pods, a job watch and pod logs.

All blocking API calls are pushed to a worker thread with asyncio.to_thread.
The watch loop itself is blocking and is meant to run in a worker thread too
(see KubernetesJobEventSource).
"""

from kubernetes import client, config, watch
from kubernetes.client.rest import ApiException
import os
import logging
import asyncio
import functools
import threading
from typing import Callable, List, Optional

from ...config import Settings, get_settings
from ...errors import ConfigError
from .models import AuthInfo, JobStatusEvent
from .helpers import job_field_selector, job_pod_selector

logger = logging.getLogger(__name__)

DEFAULT_KUBECONFIG = os.path.join("~", ".kube", "config")


def describe_error(error: Exception) -> str:
    """One-line description of an API error (ApiException str() dumps headers)."""
    if isinstance(error, ApiException):
        return f"({error.status}) {error.reason}"
    return str(error) or error.__class__.__name__


def resolve_kubeconfig(auth: AuthInfo, settings: Settings) -> str:
    """
    Find the kubeconfig file to use.

    Order: explicit auth.config_file, settings.kubeconfig, the first existing
    entry of $KUBECONFIG, then ~/.kube/config if it exists.

    Returns:
        Path to the kubeconfig, or "" if none is available
    """
    if auth.config_file:
        return auth.config_file
    if settings.kubeconfig:
        return settings.kubeconfig

    for candidate in os.environ.get("KUBECONFIG", "").split(os.pathsep):
        if candidate and os.path.exists(os.path.expanduser(candidate)):
            return os.path.expanduser(candidate)

    default_file = os.path.expanduser(DEFAULT_KUBECONFIG)
    if os.path.exists(default_file):
        logger.info(f"[K8S] Using {default_file} as kubeconfig")
        return default_file

    return ""


class WatchHandle:
    """
    Stop switch for a running watch_jobs loop.

    stop() may be called from any thread. Besides flagging the loop, it shuts
    down the read side of the open watch response, so a stream blocked waiting
    for the next event returns at once instead of at the end of its window.
    """

    def __init__(self):
        self._lock = threading.Lock()
        self._stopped = False
        self._watch: Optional[watch.Watch] = None
        self._response = None

    @property
    def stopped(self) -> bool:
        with self._lock:
            return self._stopped

    def stop(self) -> None:
        with self._lock:
            self._stopped = True
            current_watch, response = self._watch, self._response
        if current_watch is not None:
            current_watch.stop()
        if response is not None:
            self._interrupt(response)

    def attach(self, current_watch: Optional[watch.Watch], response=None) -> None:
        """Register the watch (and its response) now being read."""
        with self._lock:
            self._watch, self._response = current_watch, response
            stopped = self._stopped
        if stopped and response is not None:
            self._interrupt(response)

    def detach(self) -> None:
        self.attach(None)

    @staticmethod
    def _interrupt(response) -> None:
        try:
            response.shutdown()
        except (ValueError, RuntimeError, OSError) as e:
            # Already drained or released to the pool
            logger.debug(f"[K8S] Watch response not shut down: {e}")


class KubernetesClient:
    """
    Manages the Kubernetes resources of one execution.

    Provides create/delete for namespaces, jobs and pods, label-filtered pod
    listing, pod log retrieval and a blocking job watch.
    """

    def __init__(self, api_client: Optional[client.ApiClient] = None):
        """Initialize API clients on top of an already configured ApiClient."""
        self.api_client = api_client
        self.core_v1 = client.CoreV1Api(api_client)
        self.batch_v1 = client.BatchV1Api(api_client)

    @classmethod
    def from_auth(
        cls,
        auth: AuthInfo,
        settings: Optional[Settings] = None
    ) -> "KubernetesClient":
        """
        Build a client from the request's credentials.

        A kubeconfig is loaded when one can be found; an explicit master URL,
        token or username/password overrides what it says. With neither a
        kubeconfig nor a master URL, in-cluster configuration is tried.

        Raises:
            ConfigError: If no credentials can be resolved
        """
        settings = settings or get_settings()
        configuration = client.Configuration()

        config_file = resolve_kubeconfig(auth, settings)
        if config_file:
            try:
                config.load_kube_config(
                    config_file=config_file,
                    context=auth.context or settings.kube_context or None,
                    client_configuration=configuration
                )
                logger.info(f"[K8S] Loaded kubeconfig from {config_file}")
            except Exception as e:
                logger.error(f"[K8S] Failed to load kubeconfig {config_file}: {e}")
                raise ConfigError(f"Cannot load kubeconfig {config_file}: {e}") from e
        elif not auth.master_url:
            try:
                config.load_incluster_config(client_configuration=configuration)
                logger.info("[K8S] Loaded in-cluster Kubernetes configuration")
            except config.ConfigException as e:
                raise ConfigError("Kubeconfig file or master URL must be provided") from e

        if auth.master_url:
            configuration.host = auth.master_url
        if auth.token:
            configuration.api_key = {"authorization": auth.token}
            configuration.api_key_prefix = {"authorization": "Bearer"}
        if auth.username:
            configuration.username = auth.username
            configuration.password = auth.password
        if auth.insecure:
            configuration.verify_ssl = False
            logger.warning("[K8S] TLS verification disabled")

        logger.debug(f"[K8S] API server: {configuration.host}")
        return cls(client.ApiClient(configuration))

    def close(self) -> None:
        """Release the underlying connection pool."""
        if self.api_client is not None:
            self.api_client.close()

    # =========================================================================
    # NAMESPACE MANAGEMENT
    # =========================================================================

    async def read_namespace(self, name: str) -> client.V1Namespace:
        """Read a namespace. Raises ApiException (404 if it does not exist)."""
        return await asyncio.to_thread(
            self.core_v1.read_namespace,
            name=name
        )

    async def create_namespace(self, namespace: client.V1Namespace) -> None:
        """Create a namespace from a manifest."""
        await asyncio.to_thread(
            self.core_v1.create_namespace,
            body=namespace
        )
        logger.info(f"[K8S] Created namespace: {namespace.metadata.name}")

    async def delete_namespace(self, name: str) -> None:
        """Delete a namespace. A missing namespace is not an error."""
        try:
            await asyncio.to_thread(
                self.core_v1.delete_namespace,
                name=name
            )
            logger.info(f"[K8S] Deleted namespace: {name}")
        except ApiException as e:
            if e.status != 404:
                raise

    # =========================================================================
    # JOB LIFECYCLE
    # =========================================================================

    async def create_job(self, job: client.V1Job, namespace: str) -> client.V1Job:
        """Create a Job."""
        created = await asyncio.to_thread(
            self.batch_v1.create_namespaced_job,
            namespace=namespace,
            body=job
        )
        logger.info(f"[K8S] Created job: {job.metadata.name}")
        return created

    async def delete_job(self, name: str, namespace: str) -> None:
        """Delete a Job. A missing job is not an error."""
        try:
            await asyncio.to_thread(
                self.batch_v1.delete_namespaced_job,
                name=name,
                namespace=namespace,
                body=client.V1DeleteOptions(propagation_policy="Background")
            )
            logger.info(f"[K8S] Deleted job: {name}")
        except ApiException as e:
            if e.status != 404:
                raise

    async def get_jobs_resource_version(self, namespace: str, job_name: str) -> str:
        """Resource version to start a job watch from (no history replay)."""
        return await asyncio.to_thread(
            self._get_jobs_resource_version,
            namespace,
            job_name
        )

    def _get_jobs_resource_version(self, namespace: str, job_name: str) -> str:
        jobs = self.batch_v1.list_namespaced_job(
            namespace=namespace,
            field_selector=job_field_selector(job_name)
        )
        return jobs.metadata.resource_version

    def watch_jobs(
        self,
        namespace: str,
        job_name: str,
        resource_version: str,
        on_event: Callable[[JobStatusEvent], None],
        handle: WatchHandle,
        window_seconds: int = 30
    ) -> None:
        """
        Watch a job and call on_event for every change until handle is stopped.

        Blocking; run it in a worker thread. The watch is reopened every
        window_seconds from the last seen resource version. Stopping the
        handle interrupts the open stream, so the loop returns promptly even
        if no event arrives. A 410 Gone re-lists to get a fresh resource
        version.

        Raises:
            ApiException: On any API error other than 410
        """
        list_jobs = self.batch_v1.list_namespaced_job

        while not handle.stopped:
            w = watch.Watch()

            @functools.wraps(list_jobs)
            def open_stream(*args, **kwargs):
                response = list_jobs(*args, **kwargs)
                handle.attach(w, response)
                return response

            handle.attach(w)
            try:
                for raw in w.stream(
                    open_stream,
                    namespace=namespace,
                    field_selector=job_field_selector(job_name),
                    resource_version=resource_version,
                    timeout_seconds=window_seconds
                ):
                    if handle.stopped:
                        w.stop()
                        break

                    job = raw["object"]
                    if not isinstance(job, client.V1Job):
                        continue

                    event = JobStatusEvent.from_job(raw["type"], job)
                    resource_version = event.resource_version or resource_version
                    logger.debug(
                        f"[K8S] Job {event.job_name} {event.event_type}: "
                        f"succeeded={event.succeeded} failed={event.failed}"
                    )
                    on_event(event)
            except Exception as e:
                # An interrupted stream fails with whatever the read hit
                if handle.stopped:
                    break
                if not isinstance(e, ApiException) or e.status != 410:
                    raise
                logger.debug(f"[K8S] Watch for job {job_name} expired, re-listing")
                resource_version = self._get_jobs_resource_version(namespace, job_name)
            finally:
                handle.detach()

        logger.debug(f"[K8S] Watch for job {job_name} stopped")

    # =========================================================================
    # POD OPERATIONS
    # =========================================================================

    async def list_job_pods(self, namespace: str, job_name: str) -> List[client.V1Pod]:
        """List the pods spawned by a job, oldest first."""
        pods = await asyncio.to_thread(
            self.core_v1.list_namespaced_pod,
            namespace=namespace,
            label_selector=job_pod_selector(job_name)
        )
        return sorted(
            pods.items,
            key=lambda pod: (
                pod.metadata.creation_timestamp is None,
                pod.metadata.creation_timestamp or 0
            )
        )

    async def delete_pod(self, name: str, namespace: str) -> None:
        """Delete a pod. A missing pod is not an error."""
        try:
            await asyncio.to_thread(
                self.core_v1.delete_namespaced_pod,
                name=name,
                namespace=namespace
            )
            logger.info(f"[K8S] Deleted pod: {name}")
        except ApiException as e:
            if e.status != 404:
                raise

    async def read_pod_log(self, name: str, namespace: str) -> str:
        """Stream a pod's full log into memory."""
        return await asyncio.to_thread(self._read_pod_log, name, namespace)

    def _read_pod_log(self, name: str, namespace: str) -> str:
        response = self.core_v1.read_namespaced_pod_log(
            name=name,
            namespace=namespace,
            _preload_content=False
        )
        try:
            data = response.read()
        finally:
            response.release_conn()
        return data.decode("utf-8", errors="replace")
