"""
Post-upgrade version verification.
"""

import logging
import shutil
from typing import Optional

from errors import UpgradeError, VerificationTimeoutError, VersionMismatchError
from kube import ClusterClient
from models import Phase
from polling import PollTimeoutError, poll_immediate
from runner import CommandError, CommandRunner
from versions import matches, normalize

logger = logging.getLogger(__name__)

CONTROL_PLANE_POLL_INTERVAL = 5
CONTROL_PLANE_POLL_TIMEOUT = 2 * 60


class VersionChecker:
    """Compares versions reported by the cluster with the wanted version."""

    def __init__(
        self,
        cluster: ClusterClient,
        poll_interval: float = CONTROL_PLANE_POLL_INTERVAL,
        poll_timeout: float = CONTROL_PLANE_POLL_TIMEOUT,
        runner: Optional[CommandRunner] = None,
    ):
        self.cluster = cluster
        self.poll_interval = poll_interval
        self.poll_timeout = poll_timeout
        self.runner = runner or CommandRunner()

    def trace_route_to_control_plane(self) -> None:
        """Log a traceroute to the API server. Never raises."""
        traceroute = shutil.which("traceroute")
        if not traceroute:
            logger.info("Could not find traceroute program")
            return
        try:
            address = self.cluster.api_address()
            stdout, _ = self.runner.run([traceroute, "-I", address])
        except CommandError as e:
            if e.stdout:
                logger.info(e.stdout)
            logger.info(f"Error while running traceroute: {e.stderr or e}")
            return
        except Exception as e:
            logger.info(f"Error while running traceroute: {e}")
            return
        if stdout:
            logger.info(stdout)

    def check_control_plane_version(self, want: str) -> str:
        """
        Validate the control plane version.

        Args:
            want: Expected version, without the leading "v"

        Returns:
            The observed (normalized) version

        Raises:
            VerificationTimeoutError: If the version could not be read in time
            VersionMismatchError: If the version does not start with want
        """
        logger.info("Checking control plane version")
        observed: Optional[str] = None
        last_error: Optional[BaseException] = None

        def version_available() -> bool:
            nonlocal observed, last_error
            try:
                observed = self.cluster.get_server_version()
            except Exception as e:
                last_error = e
                logger.warning(f"Could not get control plane version: {e}")
                self.trace_route_to_control_plane()
                return False
            return True

        try:
            poll_immediate(self.poll_interval, self.poll_timeout, version_available)
        except PollTimeoutError:
            raise VerificationTimeoutError(
                Phase.CONTROL_PLANE_VERIFY,
                "couldn't get the control plane version",
                last_error,
            )

        got = normalize(observed)
        if not matches(want, observed):
            raise VersionMismatchError(
                "control plane", "kube-apiserver", want, got, Phase.CONTROL_PLANE_VERIFY
            )
        logger.info(f"Control plane is at version {want}")
        return got

    def check_nodes_versions(self, want: str) -> int:
        """
        Validate kubelet and kube-proxy versions of every ready node.

        Args:
            want: Expected version, without the leading "v"

        Returns:
            Number of nodes checked

        Raises:
            UpgradeError: If there is no ready, schedulable node to check
            VersionMismatchError: On the first node field not matching want
        """
        nodes = self.cluster.list_ready_schedulable_nodes()
        if not nodes:
            raise UpgradeError(
                "there are currently no ready, schedulable nodes in the cluster",
                Phase.NODE_VERIFY,
            )
        for node in nodes:
            if not matches(want, node.kubelet_version):
                raise VersionMismatchError(
                    f"node {node.name}",
                    "kubelet",
                    want,
                    normalize(node.kubelet_version),
                    Phase.NODE_VERIFY,
                )
            if not matches(want, node.proxy_version):
                raise VersionMismatchError(
                    f"node {node.name}",
                    "kube-proxy",
                    want,
                    normalize(node.proxy_version),
                    Phase.NODE_VERIFY,
                )
        logger.info(f"All {len(nodes)} ready nodes are at version {want}")
        return len(nodes)
