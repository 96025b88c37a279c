"""
Data models for the cluster upgrade orchestrator.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Optional


class Provider(Enum):
    """Providers with a known upgrade mechanism."""

    GCE = "gce"
    GKE = "gke"
    UNSUPPORTED = "unsupported"

    @classmethod
    def parse(cls, value: str) -> "Provider":
        """Map a provider identifier to a Provider, UNSUPPORTED if unknown."""
        try:
            provider = cls((value or "").strip().lower())
        except ValueError:
            return cls.UNSUPPORTED
        return provider


class Phase(Enum):
    """Phases of an orchestration call."""

    CONTROL_PLANE_UPGRADE = "control-plane-upgrade"
    CONTROL_PLANE_VERIFY = "control-plane-verify"
    NODE_UPGRADE = "node-upgrade"
    NODE_VERIFY = "node-verify"
    READINESS_WAIT = "readiness-wait"


@dataclass(frozen=True)
class UpgradeTarget:
    """Desired end state of the cluster."""

    version: str  # e.g. 0.19.3-815-g50e67d4, without the leading "v"
    node_image: str = ""  # empty means no image change


@dataclass(frozen=True)
class ProviderContext:
    """Everything needed to talk to one provider about one cluster."""

    provider: str
    project_id: str = ""
    cluster: str = ""
    zone: str = ""
    region: str = ""
    namespace: str = "default"
    etcd_upgrade_version: str = ""
    etcd_upgrade_storage: str = ""
    upgrade_script: str = "cluster/gce/upgrade.sh"

    @property
    def location(self) -> str:
        """Region for regional clusters, zone otherwise."""
        return self.region or self.zone


@dataclass(frozen=True)
class NodeInfo:
    """Versions reported by a single node."""

    name: str
    kubelet_version: str
    proxy_version: str


@dataclass
class OperationOutcome:
    """Result of one orchestration call."""

    name: str  # "control-plane-upgrade", "cluster-upgrade", "cluster-downgrade"
    success: bool
    start_time: float
    end_time: Optional[float] = None
    duration_seconds: Optional[float] = None
    target_version: Optional[str] = None
    phase: Optional[Phase] = None  # failing phase
    error: Optional[BaseException] = None

    @property
    def error_message(self) -> Optional[str]:
        return str(self.error) if self.error is not None else None
