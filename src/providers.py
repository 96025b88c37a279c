"""
Provider-specific upgrade mechanisms.

Each driver performs the actual version swap for one provider. Drivers are
blocking: when a call returns the provider considers the work done, which the
orchestrator still verifies against the cluster.
"""

import logging
from abc import ABC, abstractmethod
from typing import Callable, Dict, List, Mapping, Optional

from clients import ContainerRestClient
from errors import UnsupportedProviderError
from kube import ClusterClient
from models import Provider, ProviderContext
from runner import CommandRunner

logger = logging.getLogger(__name__)

# Only used when downgrading etcd along with the control plane
ETCD_IMAGE = "3.4.9-1"


class UpgradeDriver(ABC):
    """Upgrade mechanism for one provider."""

    @abstractmethod
    def upgrade_control_plane(
        self, version: str, extra_envs: Optional[Mapping[str, str]] = None
    ) -> None:
        """Move the control plane to version."""

    @abstractmethod
    def upgrade_nodes(
        self,
        version: str,
        image: str = "",
        extra_envs: Optional[Mapping[str, str]] = None,
    ) -> None:
        """Move every node to version, optionally switching the node image."""


class GCEUpgradeDriver(UpgradeDriver):
    """Drives the GCE upgrade script."""

    def __init__(self, context: ProviderContext, runner: CommandRunner):
        self.context = context
        self.runner = runner

    def control_plane_env(
        self, extra_envs: Optional[Mapping[str, str]] = None
    ) -> Dict[str, str]:
        """Environment overlay for a control plane upgrade."""
        env = dict(extra_envs or {})
        # TODO: Remove the etcd variables once downgrades no longer need them.
        if self.context.etcd_upgrade_version and self.context.etcd_upgrade_storage:
            env["TEST_ETCD_VERSION"] = self.context.etcd_upgrade_version
            env["STORAGE_BACKEND"] = self.context.etcd_upgrade_storage
            env["TEST_ETCD_IMAGE"] = ETCD_IMAGE
        else:
            # Skip the interactive confirmation about implicit etcd upgrades.
            env["TEST_ALLOW_IMPLICIT_ETCD_UPGRADE"] = "true"
        return env

    def upgrade_control_plane(
        self, version: str, extra_envs: Optional[Mapping[str, str]] = None
    ) -> None:
        logger.info(f"Upgrading control plane to v{version} with {self.context.upgrade_script}")
        self.runner.run(
            [self.context.upgrade_script, "-M", f"v{version}"],
            env_overlay=self.control_plane_env(extra_envs),
        )

    def upgrade_nodes(
        self,
        version: str,
        image: str = "",
        extra_envs: Optional[Mapping[str, str]] = None,
    ) -> None:
        env = dict(extra_envs or {})
        args = [self.context.upgrade_script, "-N"]
        if image:
            env["KUBE_NODE_OS_DISTRIBUTION"] = image
            args.append("-o")
        args.append(f"v{version}")
        logger.info(f"Upgrading nodes to v{version} (image={image or 'unchanged'})")
        self.runner.run(args, env_overlay=env)


class GKEUpgradeDriver(UpgradeDriver):
    """Drives upgrades through the GKE management API."""

    def __init__(
        self,
        context: ProviderContext,
        api: ContainerRestClient,
        wait_for_tunnels: Callable[[str], object],
    ):
        """
        Args:
            context: Provider context of the cluster
            api: GKE REST client bound to the cluster
            wait_for_tunnels: Called with the namespace after each upgrade
                step to wait for node connectivity to come back
        """
        self.context = context
        self.api = api
        self.wait_for_tunnels = wait_for_tunnels

    def _ignore_envs(self, extra_envs: Optional[Mapping[str, str]]) -> None:
        if extra_envs:
            logger.debug(
                f"Ignoring environment overlay for API-driven upgrade: {sorted(extra_envs)}"
            )

    def upgrade_control_plane(
        self, version: str, extra_envs: Optional[Mapping[str, str]] = None
    ) -> None:
        self._ignore_envs(extra_envs)
        logger.info(f"Upgrading control plane to {version!r}")
        op_name = self.api.update_master(version)
        logger.info(f"Control plane upgrade started (op={op_name})")
        self.api.wait_for_operation(op_name)
        self.wait_for_tunnels(self.context.namespace)

    def node_pools(self) -> List[str]:
        """Node pools of the cluster, discovered fresh on every call."""
        return self.api.list_node_pools()

    def upgrade_nodes(
        self,
        version: str,
        image: str = "",
        extra_envs: Optional[Mapping[str, str]] = None,
    ) -> None:
        self._ignore_envs(extra_envs)
        logger.info(f"Upgrading nodes to version {version!r} and image {image!r}")
        pools = self.node_pools()
        logger.info(f"Found node pools {pools}")
        for pool in pools:
            op_name = self.api.update_node_pool(pool, version, image_type=image or None)
            logger.info(f"Node pool {pool} upgrade started (op={op_name})")
            self.api.wait_for_operation(op_name)
            self.wait_for_tunnels(self.context.namespace)


class UnsupportedUpgradeDriver(UpgradeDriver):
    """Stands in for providers without an upgrade mechanism."""

    def __init__(self, provider: str):
        self.provider = provider

    def upgrade_control_plane(
        self, version: str, extra_envs: Optional[Mapping[str, str]] = None
    ) -> None:
        raise UnsupportedProviderError(self.provider, "controlPlaneUpgrade")

    def upgrade_nodes(
        self,
        version: str,
        image: str = "",
        extra_envs: Optional[Mapping[str, str]] = None,
    ) -> None:
        raise UnsupportedProviderError(self.provider, "nodeUpgrade")


def make_upgrade_driver(
    context: ProviderContext,
    cluster: Optional[ClusterClient] = None,
    runner: Optional[CommandRunner] = None,
    api: Optional[ContainerRestClient] = None,
) -> UpgradeDriver:
    """
    Pick the driver for the context's provider.

    Collaborators that are not passed in are created on demand, so an
    unsupported provider never touches the network or the filesystem.
    """
    provider = Provider.parse(context.provider)
    if provider is Provider.GCE:
        return GCEUpgradeDriver(context, runner or CommandRunner())
    if provider is Provider.GKE:
        if api is None:
            api = ContainerRestClient(
                project_id=context.project_id,
                location=context.location,
                cluster=context.cluster,
            )
        if cluster is None:
            raise ValueError("GKE upgrades need a cluster client to wait for SSH tunnels")
        return GKEUpgradeDriver(context, api, cluster.wait_for_ssh_tunnels)
    return UnsupportedUpgradeDriver(context.provider)
