"""
Kubernetes API access for observing cluster state.
"""

import logging
from typing import List, Optional, Tuple
from urllib.parse import urlparse

from kubernetes import client, config
from kubernetes.client.rest import ApiException

from models import NodeInfo
from polling import PollTimeoutError, poll_immediate

logger = logging.getLogger(__name__)

SSH_TUNNEL_POD = "ssh-tunnel-test"
SSH_TUNNEL_IMAGE = "busybox"
SSH_TUNNEL_TIMEOUT = 60
SSH_TUNNEL_INTERVAL = 5

UNSCHEDULABLE_TAINT_EFFECTS = {"NoSchedule", "NoExecute"}


def _condition_status(node, condition_type: str) -> Optional[str]:
    conditions = (node.status.conditions if node.status else None) or []
    for cond in conditions:
        if cond.type == condition_type:
            return cond.status
    return None


def is_node_ready(node) -> bool:
    """Node reports Ready=True."""
    return _condition_status(node, "Ready") == "True"


def has_network(node) -> bool:
    """Node does not report NetworkUnavailable=True."""
    return _condition_status(node, "NetworkUnavailable") != "True"


def is_node_schedulable(node) -> bool:
    """
    Node is ready, not cordoned, has networking and carries no taint that
    keeps ordinary pods off it.
    """
    if node.spec is not None and node.spec.unschedulable:
        return False
    if not is_node_ready(node):
        return False
    if not has_network(node):
        return False
    taints = (node.spec.taints if node.spec else None) or []
    return not any(t.effect in UNSCHEDULABLE_TAINT_EFFECTS for t in taints)


class ClusterClient:
    """Thin wrapper over the Kubernetes API used to verify upgrades."""

    def __init__(
        self,
        kubeconfig: Optional[str] = None,
        context: Optional[str] = None,
        api_client: Optional[client.ApiClient] = None,
    ):
        """
        Initialize the cluster client.

        Args:
            kubeconfig: Path to a kubeconfig file (default location if None)
            context: kubeconfig context to use (current context if None)
            api_client: Preconfigured ApiClient, skips kubeconfig loading
        """
        if api_client is None:
            config.load_kube_config(config_file=kubeconfig, context=context)
            api_client = client.ApiClient()
        self.api_client = api_client
        self.core = client.CoreV1Api(api_client)
        self.version_api = client.VersionApi(api_client)

    def get_server_version(self) -> str:
        """Return the API server git version, e.g. v1.28.3-gke.100."""
        return self.version_api.get_code().git_version

    def api_address(self) -> str:
        """Host name of the API server."""
        host = self.api_client.configuration.host
        return urlparse(host).hostname or host

    def list_nodes(self) -> list:
        return self.core.list_node().items

    def count_registered_nodes(self) -> int:
        return len(self.list_nodes())

    def node_counts(self) -> Tuple[int, int]:
        """
        Return (registered, ready) node counts from a single listing.

        A node counts as ready only if it is Ready and has networking.
        """
        nodes = self.list_nodes()
        ready = sum(1 for n in nodes if is_node_ready(n) and has_network(n))
        return len(nodes), ready

    def list_ready_schedulable_nodes(self) -> List[NodeInfo]:
        """Versions of every node that is ready and schedulable."""
        result = []
        for node in self.list_nodes():
            if not is_node_schedulable(node):
                continue
            info = node.status.node_info
            result.append(
                NodeInfo(
                    name=node.metadata.name,
                    kubelet_version=info.kubelet_version,
                    proxy_version=info.kube_proxy_version,
                )
            )
        return result

    def wait_for_ssh_tunnels(
        self,
        namespace: str,
        timeout: float = SSH_TUNNEL_TIMEOUT,
        interval: float = SSH_TUNNEL_INTERVAL,
    ) -> bool:
        """
        Wait until the API server can reach nodes again.

        Starts a short-lived pod and polls until its logs can be read through
        the API server. Best-effort: failures are logged, never raised.

        Returns:
            True if the pod logs became readable before the timeout
        """
        logger.info("Waiting for SSH tunnels to establish")
        pod = client.V1Pod(
            metadata=client.V1ObjectMeta(name=SSH_TUNNEL_POD),
            spec=client.V1PodSpec(
                restart_policy="Never",
                containers=[
                    client.V1Container(
                        name=SSH_TUNNEL_POD,
                        image=SSH_TUNNEL_IMAGE,
                        command=["echo", "Hello"],
                    )
                ],
            ),
        )
        try:
            self.core.create_namespaced_pod(namespace=namespace, body=pod)
        except ApiException as e:
            logger.warning(f"Could not create {SSH_TUNNEL_POD} pod: {e.reason}")

        def logs_readable() -> bool:
            self.core.read_namespaced_pod_log(name=SSH_TUNNEL_POD, namespace=namespace)
            return True

        try:
            poll_immediate(interval, timeout, logs_readable)
            return True
        except PollTimeoutError as e:
            logger.warning(f"SSH tunnels not confirmed: {e}")
            return False
        finally:
            try:
                self.core.delete_namespaced_pod(name=SSH_TUNNEL_POD, namespace=namespace)
            except ApiException as e:
                logger.warning(f"Could not delete {SSH_TUNNEL_POD} pod: {e.reason}")
