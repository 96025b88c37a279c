"""
Unit tests for data models.
"""

import dataclasses
import unittest

from models import OperationOutcome, Phase, Provider, ProviderContext, UpgradeTarget


class TestProvider(unittest.TestCase):
    """Test provider parsing."""

    def test_known_providers(self):
        self.assertIs(Provider.parse("gce"), Provider.GCE)
        self.assertIs(Provider.parse(" GKE "), Provider.GKE)

    def test_unknown_provider(self):
        self.assertIs(Provider.parse("aws"), Provider.UNSUPPORTED)
        self.assertIs(Provider.parse(""), Provider.UNSUPPORTED)


class TestUpgradeTarget(unittest.TestCase):
    """Test UpgradeTarget data model."""

    def test_default_image(self):
        target = UpgradeTarget(version="1.2.3")
        self.assertEqual(target.node_image, "")

    def test_immutable(self):
        target = UpgradeTarget(version="1.2.3")
        with self.assertRaises(dataclasses.FrozenInstanceError):
            target.version = "1.2.4"


class TestProviderContext(unittest.TestCase):
    """Test ProviderContext data model."""

    def test_zone_location(self):
        context = ProviderContext(provider="gke", zone="us-central1-a")
        self.assertEqual(context.location, "us-central1-a")

    def test_region_wins(self):
        context = ProviderContext(
            provider="gke", zone="us-central1-a", region="us-central1"
        )
        self.assertEqual(context.location, "us-central1")


class TestOperationOutcome(unittest.TestCase):
    """Test OperationOutcome data model."""

    def test_success(self):
        outcome = OperationOutcome(name="cluster-upgrade", success=True, start_time=1.0)
        self.assertIsNone(outcome.error_message)
        self.assertIsNone(outcome.phase)

    def test_failure(self):
        outcome = OperationOutcome(
            name="cluster-downgrade",
            success=False,
            start_time=1.0,
            phase=Phase.NODE_VERIFY,
            error=RuntimeError("node node-2 had kube-proxy version 1.2.2"),
        )
        self.assertIn("node-2", outcome.error_message)
        self.assertEqual(outcome.phase.value, "node-verify")


if __name__ == "__main__":
    unittest.main()
