"""
Ordered cluster upgrade and downgrade.

Upgrades move the control plane first and nodes second. Downgrades do the
reverse: nodes must reach the older version before the control plane does,
otherwise a newer control plane is left serving older nodes that it may
reject. Any failing step stops the operation; nothing is rolled back.
"""

import logging
import time
from datetime import datetime
from typing import Callable, List, Mapping, Optional, Tuple

from errors import ProviderUpgradeError, UpgradeError
from models import OperationOutcome, Phase, UpgradeTarget
from providers import UpgradeDriver
from readiness import ReadinessWaiter
from reporting import UpgradeReporter
from verification import VersionChecker

logger = logging.getLogger(__name__)

Step = Tuple[Phase, Callable[[], object]]

UPGRADE_PHASES = {Phase.CONTROL_PLANE_UPGRADE, Phase.NODE_UPGRADE}


class UpgradeOrchestrator:
    """Runs control plane and node upgrades in a safe order."""

    def __init__(
        self,
        driver: UpgradeDriver,
        checker: VersionChecker,
        waiter: ReadinessWaiter,
        reporter: Optional[UpgradeReporter] = None,
    ):
        """
        Args:
            driver: Provider upgrade mechanism
            checker: Verifies observed versions
            waiter: Waits for nodes after a node upgrade
            reporter: Receives one outcome per operation
        """
        self.driver = driver
        self.checker = checker
        self.waiter = waiter
        self.reporter = reporter or UpgradeReporter()

    # Steps

    def _control_plane_upgrade(
        self, target: UpgradeTarget, extra_envs: Optional[Mapping[str, str]]
    ) -> List[Step]:
        return [
            (
                Phase.CONTROL_PLANE_UPGRADE,
                lambda: self.driver.upgrade_control_plane(target.version, extra_envs),
            ),
            (
                Phase.CONTROL_PLANE_VERIFY,
                lambda: self.checker.check_control_plane_version(target.version),
            ),
        ]

    def _node_upgrade(
        self, target: UpgradeTarget, extra_envs: Optional[Mapping[str, str]]
    ) -> List[Step]:
        return [
            (
                Phase.NODE_UPGRADE,
                lambda: self.driver.upgrade_nodes(
                    target.version, target.node_image, extra_envs
                ),
            ),
            (Phase.READINESS_WAIT, self.waiter.wait_for_nodes_ready_after_upgrade),
            (
                Phase.NODE_VERIFY,
                lambda: self.checker.check_nodes_versions(target.version),
            ),
        ]

    def _step(self, phase: Phase, action: Callable[[], object]) -> None:
        logger.info(f"--- {phase.value}")
        try:
            action()
        except UpgradeError as e:
            if e.phase is None:
                e.phase = phase
            raise
        except Exception as e:
            if phase in UPGRADE_PHASES:
                raise ProviderUpgradeError(phase, e) from e
            raise UpgradeError(f"{phase.value} failed: {e}", phase) from e

    def _run(self, name: str, target: UpgradeTarget, steps: List[Step]) -> OperationOutcome:
        """Run steps in order and report the outcome exactly once."""
        outcome = OperationOutcome(
            name=name,
            success=False,
            start_time=time.time(),
            target_version=target.version,
        )
        logger.info("=" * 70)
        logger.info(f"{name} to {target.version}")
        if target.node_image:
            logger.info(f"Node image: {target.node_image}")
        logger.info(f"Start time: {datetime.now().strftime('%Y-%m-%d %H:%M:%S')}")
        logger.info("=" * 70)
        try:
            for phase, action in steps:
                self._step(phase, action)
            outcome.success = True
            return outcome
        except Exception as e:
            outcome.error = e
            outcome.phase = getattr(e, "phase", None)
            raise
        finally:
            outcome.end_time = time.time()
            outcome.duration_seconds = outcome.end_time - outcome.start_time
            self.reporter.record(outcome)

    # Operations

    def upgrade_control_plane_only(
        self, target: UpgradeTarget, extra_envs: Optional[Mapping[str, str]] = None
    ) -> OperationOutcome:
        """Upgrade and verify the control plane, leaving nodes alone."""
        return self._run(
            "control-plane-upgrade",
            target,
            self._control_plane_upgrade(target, extra_envs),
        )

    def upgrade_cluster(
        self,
        target: UpgradeTarget,
        control_plane_extra_envs: Optional[Mapping[str, str]] = None,
        node_extra_envs: Optional[Mapping[str, str]] = None,
    ) -> OperationOutcome:
        """Upgrade the control plane, then the nodes."""
        return self._run(
            "cluster-upgrade",
            target,
            self._control_plane_upgrade(target, control_plane_extra_envs)
            + self._node_upgrade(target, node_extra_envs),
        )

    def downgrade_cluster(
        self,
        target: UpgradeTarget,
        control_plane_extra_envs: Optional[Mapping[str, str]] = None,
        node_extra_envs: Optional[Mapping[str, str]] = None,
    ) -> OperationOutcome:
        """Downgrade the nodes, then the control plane."""
        return self._run(
            "cluster-downgrade",
            target,
            self._node_upgrade(target, node_extra_envs)
            + self._control_plane_upgrade(target, control_plane_extra_envs),
        )

    # Harness entry points

    def control_plane_upgrade_func(
        self, target: UpgradeTarget, extra_envs: Optional[Mapping[str, str]] = None
    ) -> Callable[[], OperationOutcome]:
        return lambda: self.upgrade_control_plane_only(target, extra_envs)

    def cluster_upgrade_func(
        self,
        target: UpgradeTarget,
        control_plane_extra_envs: Optional[Mapping[str, str]] = None,
        node_extra_envs: Optional[Mapping[str, str]] = None,
    ) -> Callable[[], OperationOutcome]:
        return lambda: self.upgrade_cluster(
            target, control_plane_extra_envs, node_extra_envs
        )

    def cluster_downgrade_func(
        self,
        target: UpgradeTarget,
        control_plane_extra_envs: Optional[Mapping[str, str]] = None,
        node_extra_envs: Optional[Mapping[str, str]] = None,
    ) -> Callable[[], OperationOutcome]:
        return lambda: self.downgrade_cluster(
            target, control_plane_extra_envs, node_extra_envs
        )
