"""
Exception types raised by the cluster upgrade orchestrator.
"""

from typing import Optional

from models import Phase


class UpgradeError(Exception):
    """Base class for orchestration failures."""

    def __init__(self, message: str, phase: Optional[Phase] = None):
        super().__init__(message)
        self.phase = phase


class UnsupportedProviderError(UpgradeError):
    """The configured provider has no upgrade mechanism."""

    def __init__(self, provider: str, operation: str, phase: Optional[Phase] = None):
        super().__init__(
            f"{operation}() is not implemented for provider {provider}", phase
        )
        self.provider = provider
        self.operation = operation


class ProviderUpgradeError(UpgradeError):
    """The provider mechanism reported a failure."""

    def __init__(self, phase: Phase, cause: BaseException):
        super().__init__(f"{phase.value} failed: {cause}", phase)
        self.cause = cause


class VerificationTimeoutError(UpgradeError):
    """Cluster state could not be observed before the deadline."""

    def __init__(
        self, phase: Phase, message: str, last_error: Optional[BaseException] = None
    ):
        super().__init__(f"{message}: {last_error}", phase)
        self.last_error = last_error


class VersionMismatchError(UpgradeError):
    """Observed version does not start with the wanted version."""

    def __init__(
        self,
        who: str,
        component: str,
        want: str,
        got: str,
        phase: Optional[Phase] = None,
    ):
        super().__init__(
            f"{who} had {component} version {got} which does not start with {want}",
            phase,
        )
        self.who = who
        self.component = component
        self.want = want
        self.got = got


class NodeCountUnknownError(UpgradeError):
    """Number of registered nodes could not be determined."""

    def __init__(self, cause: BaseException):
        super().__init__(
            f"couldn't detect number of nodes: {cause}", Phase.READINESS_WAIT
        )
        self.cause = cause


class ReadinessTimeoutError(UpgradeError):
    """Nodes did not become ready before the deadline."""

    def __init__(
        self,
        expected: int,
        ready: Optional[int],
        timeout: float,
        last_error: Optional[BaseException] = None,
    ):
        message = (
            f"timed out after {timeout:.0f}s waiting for {expected} nodes to be ready "
            f"(last ready count: {ready if ready is not None else 'unknown'})"
        )
        if last_error is not None:
            message += f": {last_error}"
        super().__init__(message, Phase.READINESS_WAIT)
        self.expected = expected
        self.ready = ready
        self.last_error = last_error
