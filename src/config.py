"""
Configuration management for the cluster upgrade orchestrator.
"""

from dataclasses import dataclass, field
from typing import Dict, List, Optional

from models import ProviderContext

MODES = ("control-plane", "cluster", "downgrade")


def parse_env_pairs(pairs: Optional[List[str]]) -> Dict[str, str]:
    """
    Turn KEY=VALUE strings into a dictionary.

    Raises:
        ValueError: If an entry has no '=' or an empty key
    """
    env: Dict[str, str] = {}
    for pair in pairs or []:
        key, sep, value = pair.partition("=")
        if not sep or not key:
            raise ValueError(f"Invalid environment entry {pair!r}, expected KEY=VALUE")
        env[key] = value
    return env


@dataclass
class OrchestratorConfig:
    """Configuration for one orchestration run."""

    provider: str
    version: str
    mode: str = "cluster"
    node_image: str = ""
    project_id: str = ""
    cluster: str = ""
    zone: str = ""
    region: str = ""
    namespace: str = "default"
    etcd_upgrade_version: str = ""
    etcd_upgrade_storage: str = ""
    upgrade_script: str = "cluster/gce/upgrade.sh"
    kubeconfig: Optional[str] = None
    context: Optional[str] = None
    control_plane_envs: Dict[str, str] = field(default_factory=dict)
    node_envs: Dict[str, str] = field(default_factory=dict)
    node_ready_timeout: int = 300
    report_file: Optional[str] = None
    verbose: bool = False

    @classmethod
    def from_args(cls, args) -> "OrchestratorConfig":
        """
        Create configuration from command-line arguments.

        Args:
            args: Parsed argparse arguments

        Returns:
            OrchestratorConfig instance
        """
        return cls(
            provider=args.provider,
            version=args.version,
            mode=args.mode,
            node_image=args.node_image,
            project_id=args.project,
            cluster=args.cluster,
            zone=args.zone,
            region=args.region,
            namespace=args.namespace,
            etcd_upgrade_version=args.etcd_upgrade_version,
            etcd_upgrade_storage=args.etcd_upgrade_storage,
            upgrade_script=args.upgrade_script,
            kubeconfig=args.kubeconfig,
            context=args.context,
            control_plane_envs=parse_env_pairs(args.control_plane_env),
            node_envs=parse_env_pairs(args.node_env),
            node_ready_timeout=args.node_ready_timeout,
            report_file=args.report_file,
            verbose=args.verbose,
        )

    def to_context(self) -> ProviderContext:
        """Provider context handed to the upgrade driver."""
        return ProviderContext(
            provider=self.provider,
            project_id=self.project_id,
            cluster=self.cluster,
            zone=self.zone,
            region=self.region,
            namespace=self.namespace,
            etcd_upgrade_version=self.etcd_upgrade_version,
            etcd_upgrade_storage=self.etcd_upgrade_storage,
            upgrade_script=self.upgrade_script,
        )
