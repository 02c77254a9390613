"""Namespace resolution for a session."""

import logging
from typing import Optional

from ...errors import NamespaceError
from ..kubernetes.client import KubernetesClient, describe_error
from ..kubernetes.helpers import create_namespace_manifest
from .models import NamespaceResolution
from .naming import NameGenerator

logger = logging.getLogger(__name__)


class NamespaceManager:
    """
    Makes sure the session has a namespace to run in.

    A namespace this session creates is owned (and later deleted by cleanup);
    a namespace that already existed is never touched.
    """

    def __init__(
        self,
        k8s: KubernetesClient,
        names: NameGenerator,
        managed_by: str = "kuberun"
    ):
        self.k8s = k8s
        self.names = names
        self.managed_by = managed_by

    async def ensure_namespace(self, candidate: Optional[str] = None) -> NamespaceResolution:
        """
        Resolve the namespace for this session, creating it if needed.

        A namespace that cannot be read (missing, forbidden, unreachable) is
        treated as absent and creation is attempted.

        Args:
            candidate: Namespace requested by the caller, or None/"" to generate one

        Returns:
            NamespaceResolution with the name and whether this session owns it

        Raises:
            NamespaceError: If the namespace had to be created and creation failed
        """
        owned = False

        if not candidate:
            name = self.names.namespace_name()
            owned = True
            logger.info(f"[NAMESPACE] No namespace provided, attempting to create {name}")
        else:
            name = candidate
            try:
                await self.k8s.read_namespace(name)
                logger.debug(f"[NAMESPACE] Using existing namespace {name}")
            except Exception as e:
                logger.info(
                    f"[NAMESPACE] Namespace {name} is not available {describe_error(e)}, "
                    f"attempting to create it"
                )
                owned = True

        if owned:
            try:
                await self.k8s.create_namespace(
                    create_namespace_manifest(name, managed_by=self.managed_by)
                )
            except Exception as e:
                raise NamespaceError(
                    f"Error creating namespace {name}: {describe_error(e)}"
                ) from e

        return NamespaceResolution(name=name, owned=owned)
