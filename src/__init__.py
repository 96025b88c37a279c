"""
Cluster upgrade orchestrator.
"""

from config import OrchestratorConfig
from errors import (
    NodeCountUnknownError,
    ProviderUpgradeError,
    ReadinessTimeoutError,
    UnsupportedProviderError,
    UpgradeError,
    VerificationTimeoutError,
    VersionMismatchError,
)
from log_utils import setup_logging
from models import OperationOutcome, Phase, Provider, ProviderContext, UpgradeTarget
from orchestrator import UpgradeOrchestrator
from providers import make_upgrade_driver
from readiness import ReadinessWaiter
from verification import VersionChecker

__all__ = [
    "OrchestratorConfig",
    "UpgradeError",
    "UnsupportedProviderError",
    "ProviderUpgradeError",
    "VerificationTimeoutError",
    "VersionMismatchError",
    "NodeCountUnknownError",
    "ReadinessTimeoutError",
    "setup_logging",
    "OperationOutcome",
    "Phase",
    "Provider",
    "ProviderContext",
    "UpgradeTarget",
    "UpgradeOrchestrator",
    "make_upgrade_driver",
    "ReadinessWaiter",
    "VersionChecker",
]
