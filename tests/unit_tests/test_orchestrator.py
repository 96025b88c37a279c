"""
Unit tests for UpgradeOrchestrator sequencing.
"""

import unittest
from unittest.mock import MagicMock

from errors import (
    ProviderUpgradeError,
    ReadinessTimeoutError,
    UnsupportedProviderError,
    UpgradeError,
    VersionMismatchError,
)
from models import Phase, UpgradeTarget
from orchestrator import UpgradeOrchestrator
from providers import UnsupportedUpgradeDriver
from reporting import UpgradeReporter
from runner import CommandError

CONTROL_PLANE_UPGRADE = "driver.upgrade_control_plane"
CONTROL_PLANE_VERIFY = "checker.check_control_plane_version"
NODE_UPGRADE = "driver.upgrade_nodes"
READINESS_WAIT = "waiter.wait_for_nodes_ready_after_upgrade"
NODE_VERIFY = "checker.check_nodes_versions"


class OrchestratorTestCase(unittest.TestCase):
    """Records every collaborator call on one parent mock."""

    def setUp(self):
        self.calls = MagicMock()
        self.driver = self.calls.driver
        self.checker = self.calls.checker
        self.waiter = self.calls.waiter
        self.reporter = UpgradeReporter()
        self.orchestrator = UpgradeOrchestrator(
            driver=self.driver,
            checker=self.checker,
            waiter=self.waiter,
            reporter=self.reporter,
        )
        self.target = UpgradeTarget(version="1.2.3", node_image="cos")
        self.cp_envs = {"KUBE_CP": "1"}
        self.node_envs = {"KUBE_NODE": "1"}

    def call_order(self):
        return [c[0] for c in self.calls.mock_calls]


class TestCallOrder(OrchestratorTestCase):
    """Test the order of upgrade and verification steps."""

    def test_upgrade_cluster_order(self):
        """Test control plane goes first on upgrade."""
        outcome = self.orchestrator.upgrade_cluster(
            self.target, self.cp_envs, self.node_envs
        )

        self.assertTrue(outcome.success)
        self.assertEqual(
            self.call_order(),
            [
                CONTROL_PLANE_UPGRADE,
                CONTROL_PLANE_VERIFY,
                NODE_UPGRADE,
                READINESS_WAIT,
                NODE_VERIFY,
            ],
        )
        self.driver.upgrade_control_plane.assert_called_once_with("1.2.3", self.cp_envs)
        self.driver.upgrade_nodes.assert_called_once_with("1.2.3", "cos", self.node_envs)

    def test_downgrade_cluster_order(self):
        """Test nodes go first on downgrade."""
        outcome = self.orchestrator.downgrade_cluster(
            self.target, self.cp_envs, self.node_envs
        )

        self.assertTrue(outcome.success)
        self.assertEqual(
            self.call_order(),
            [
                NODE_UPGRADE,
                READINESS_WAIT,
                NODE_VERIFY,
                CONTROL_PLANE_UPGRADE,
                CONTROL_PLANE_VERIFY,
            ],
        )
        self.checker.check_nodes_versions.assert_called_once_with("1.2.3")
        self.checker.check_control_plane_version.assert_called_once_with("1.2.3")

    def test_control_plane_only_order(self):
        outcome = self.orchestrator.upgrade_control_plane_only(self.target, self.cp_envs)

        self.assertTrue(outcome.success)
        self.assertEqual(self.call_order(), [CONTROL_PLANE_UPGRADE, CONTROL_PLANE_VERIFY])


class TestAbort(OrchestratorTestCase):
    """Test the first failure stops the operation."""

    def test_upgrade_aborts_on_control_plane_failure(self):
        self.driver.upgrade_control_plane.side_effect = CommandError(
            ["upgrade.sh", "-M", "v1.2.3"], 1, stderr="boom"
        )

        with self.assertRaises(ProviderUpgradeError) as ctx:
            self.orchestrator.upgrade_cluster(self.target)

        self.assertEqual(ctx.exception.phase, Phase.CONTROL_PLANE_UPGRADE)
        self.assertIsInstance(ctx.exception.cause, CommandError)
        self.assertEqual(len(self.calls.mock_calls), 1)

    def test_downgrade_aborts_on_node_failure(self):
        self.driver.upgrade_nodes.side_effect = RuntimeError("update node pool failed")

        with self.assertRaises(ProviderUpgradeError) as ctx:
            self.orchestrator.downgrade_cluster(self.target)

        self.assertEqual(ctx.exception.phase, Phase.NODE_UPGRADE)
        self.assertEqual(len(self.calls.mock_calls), 1)

    def test_upgrade_stops_after_control_plane_mismatch(self):
        self.checker.check_control_plane_version.side_effect = VersionMismatchError(
            "control plane", "kube-apiserver", "1.2.3", "1.2.2"
        )

        with self.assertRaises(VersionMismatchError) as ctx:
            self.orchestrator.upgrade_cluster(self.target)

        self.assertEqual(ctx.exception.phase, Phase.CONTROL_PLANE_VERIFY)
        self.assertEqual(self.call_order(), [CONTROL_PLANE_UPGRADE, CONTROL_PLANE_VERIFY])

    def test_control_plane_only_does_not_retry_upgrade(self):
        self.checker.check_control_plane_version.side_effect = VersionMismatchError(
            "control plane", "kube-apiserver", "1.2.3", "1.2.2"
        )

        with self.assertRaises(VersionMismatchError):
            self.orchestrator.upgrade_control_plane_only(self.target)

        self.assertEqual(self.driver.upgrade_control_plane.call_count, 1)

    def test_downgrade_leaves_control_plane_alone_when_nodes_not_ready(self):
        self.waiter.wait_for_nodes_ready_after_upgrade.side_effect = (
            ReadinessTimeoutError(3, 2, 300)
        )

        with self.assertRaises(ReadinessTimeoutError):
            self.orchestrator.downgrade_cluster(self.target)

        self.assertEqual(self.call_order(), [NODE_UPGRADE, READINESS_WAIT])
        self.driver.upgrade_control_plane.assert_not_called()

    def test_unexpected_verification_error_gets_phase(self):
        self.checker.check_nodes_versions.side_effect = RuntimeError("apiserver gone")

        with self.assertRaises(UpgradeError) as ctx:
            self.orchestrator.upgrade_cluster(self.target)

        self.assertEqual(ctx.exception.phase, Phase.NODE_VERIFY)
        self.assertNotIsInstance(ctx.exception, ProviderUpgradeError)


class TestReporting(OrchestratorTestCase):
    """Test each operation reports exactly one outcome."""

    def test_success_reported_once(self):
        self.orchestrator.upgrade_cluster(self.target)

        self.assertEqual(len(self.reporter.outcomes), 1)
        outcome = self.reporter.outcomes[0]
        self.assertTrue(outcome.success)
        self.assertEqual(outcome.name, "cluster-upgrade")
        self.assertEqual(outcome.target_version, "1.2.3")
        self.assertIsNotNone(outcome.duration_seconds)
        self.assertGreaterEqual(outcome.end_time, outcome.start_time)

    def test_failure_reported_once(self):
        self.driver.upgrade_nodes.side_effect = RuntimeError("boom")

        with self.assertRaises(ProviderUpgradeError):
            self.orchestrator.downgrade_cluster(self.target)

        self.assertEqual(len(self.reporter.outcomes), 1)
        outcome = self.reporter.outcomes[0]
        self.assertFalse(outcome.success)
        self.assertEqual(outcome.name, "cluster-downgrade")
        self.assertEqual(outcome.phase, Phase.NODE_UPGRADE)
        self.assertIn("boom", outcome.error_message)
        self.assertEqual(self.reporter.failed, [outcome])

    def test_harness_callables(self):
        upgrade = self.orchestrator.cluster_upgrade_func(self.target)
        downgrade = self.orchestrator.cluster_downgrade_func(self.target)
        control_plane = self.orchestrator.control_plane_upgrade_func(self.target)

        self.calls.reset_mock()
        self.assertEqual(self.call_order(), [])

        upgrade()
        downgrade()
        control_plane()

        self.assertEqual(
            [o.name for o in self.reporter.outcomes],
            ["cluster-upgrade", "cluster-downgrade", "control-plane-upgrade"],
        )


class TestUnsupportedProvider(OrchestratorTestCase):
    """Test unsupported providers fail before touching the cluster."""

    def setUp(self):
        super().setUp()
        self.orchestrator.driver = UnsupportedUpgradeDriver("aws")

    def test_all_operations_fail_immediately(self):
        operations = [
            lambda: self.orchestrator.upgrade_control_plane_only(self.target),
            lambda: self.orchestrator.upgrade_cluster(self.target),
            lambda: self.orchestrator.downgrade_cluster(self.target),
        ]
        for operation in operations:
            with self.assertRaises(UnsupportedProviderError) as ctx:
                operation()
            self.assertIn("aws", str(ctx.exception))

        self.assertEqual(self.calls.mock_calls, [])
        self.assertEqual(len(self.reporter.outcomes), 3)

    def test_failing_phase_recorded(self):
        with self.assertRaises(UnsupportedProviderError) as ctx:
            self.orchestrator.downgrade_cluster(self.target)

        self.assertEqual(ctx.exception.phase, Phase.NODE_UPGRADE)


if __name__ == "__main__":
    unittest.main()
