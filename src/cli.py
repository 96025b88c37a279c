"""Console entry point for the cluster upgrade orchestrator."""

from __future__ import annotations

import argparse
import logging
from typing import List

from config import MODES, OrchestratorConfig
from errors import UpgradeError
from kube import ClusterClient
from log_utils import setup_logging
from models import Provider, UpgradeTarget
from orchestrator import UpgradeOrchestrator
from providers import make_upgrade_driver
from readiness import ReadinessWaiter
from reporting import UpgradeReporter
from verification import VersionChecker

logger = logging.getLogger(__name__)


def build_parser() -> argparse.ArgumentParser:
    """Build and return the CLI argument parser."""
    parser = argparse.ArgumentParser(
        description="Upgrade or downgrade a Kubernetes cluster and verify the result"
    )
    parser.add_argument(
        "--provider", required=True, help="Cluster provider (gce or gke)"
    )
    parser.add_argument(
        "--version",
        required=True,
        help="Target version without the leading 'v' (e.g. 1.28.3-gke.100)",
    )
    parser.add_argument(
        "--mode",
        choices=MODES,
        default="cluster",
        help="control-plane only, full cluster upgrade, or full cluster downgrade",
    )
    parser.add_argument("--node-image", default="", help="Node image / OS distribution")
    parser.add_argument("--project", default="", help="GCP project ID")
    parser.add_argument("--cluster", default="", help="Cluster name")
    parser.add_argument("--zone", default="", help="Cluster zone")
    parser.add_argument("--region", default="", help="Cluster region (overrides zone)")
    parser.add_argument("--namespace", default="default")
    parser.add_argument("--etcd-upgrade-version", default="")
    parser.add_argument("--etcd-upgrade-storage", default="")
    parser.add_argument("--upgrade-script", default="cluster/gce/upgrade.sh")
    parser.add_argument("--kubeconfig", help="Path to kubeconfig")
    parser.add_argument("--context", help="kubeconfig context")
    parser.add_argument(
        "--control-plane-env",
        action="append",
        metavar="KEY=VALUE",
        help="Extra environment for the control plane upgrade (repeatable)",
    )
    parser.add_argument(
        "--node-env",
        action="append",
        metavar="KEY=VALUE",
        help="Extra environment for the node upgrade (repeatable)",
    )
    parser.add_argument("--node-ready-timeout", type=int, default=300)
    parser.add_argument("--report-file", help="Write a JSON report to this file")
    parser.add_argument("--verbose", action="store_true")
    return parser


def build_orchestrator(
    config: OrchestratorConfig, reporter: UpgradeReporter
) -> UpgradeOrchestrator:
    """Wire collaborators for the configured provider."""
    context = config.to_context()
    cluster = ClusterClient(kubeconfig=config.kubeconfig, context=config.context)
    driver = make_upgrade_driver(context, cluster=cluster)
    return UpgradeOrchestrator(
        driver=driver,
        checker=VersionChecker(cluster),
        waiter=ReadinessWaiter(cluster, timeout=config.node_ready_timeout),
        reporter=reporter,
    )


def main(argv: List[str] | None = None) -> int:
    """CLI main for console_scripts entry point."""
    parser = build_parser()
    args = parser.parse_args(args=argv)

    log_file = "cluster-downgrade.log" if args.mode == "downgrade" else "cluster-upgrade.log"
    setup_logging(verbose=args.verbose, log_file=log_file)

    try:
        config = OrchestratorConfig.from_args(args)
    except ValueError as e:
        parser.error(str(e))

    if Provider.parse(config.provider) is Provider.UNSUPPORTED:
        logger.warning(f"Provider {config.provider!r} has no upgrade mechanism")

    reporter = UpgradeReporter()
    orchestrator = build_orchestrator(config, reporter)
    target = UpgradeTarget(version=config.version, node_image=config.node_image)

    try:
        if config.mode == "control-plane":
            orchestrator.upgrade_control_plane_only(target, config.control_plane_envs)
        elif config.mode == "downgrade":
            orchestrator.downgrade_cluster(
                target, config.control_plane_envs, config.node_envs
            )
        else:
            orchestrator.upgrade_cluster(
                target, config.control_plane_envs, config.node_envs
            )
    except UpgradeError:
        # Already reported with phase and cause
        pass
    finally:
        reporter.print_report()
        if config.report_file:
            reporter.export_results_json(config.report_file)

    return 1 if reporter.failed else 0
