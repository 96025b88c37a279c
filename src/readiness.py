"""
Waiting for nodes to come back after an upgrade.
"""

import logging
from typing import Optional

from errors import NodeCountUnknownError, ReadinessTimeoutError
from kube import ClusterClient
from polling import PollTimeoutError, poll_immediate

logger = logging.getLogger(__name__)

# How long nodes get to become ready again after a restart
RESTART_NODE_READY_AGAIN_TIMEOUT = 5 * 60
READY_POLL_INTERVAL = 20


class ReadinessWaiter:
    """Polls node readiness until the expected count is reached."""

    def __init__(
        self,
        cluster: ClusterClient,
        timeout: float = RESTART_NODE_READY_AGAIN_TIMEOUT,
        poll_interval: float = READY_POLL_INTERVAL,
    ):
        self.cluster = cluster
        self.timeout = timeout
        self.poll_interval = poll_interval

    def wait_for_nodes_ready(self, expected: int, timeout: Optional[float] = None) -> int:
        """
        Wait until exactly `expected` nodes are registered and ready.

        Args:
            expected: Number of nodes that must be ready
            timeout: Seconds to wait (defaults to the waiter's timeout)

        Returns:
            Number of ready nodes

        Raises:
            ReadinessTimeoutError: If the count was not reached in time
        """
        timeout = self.timeout if timeout is None else timeout
        last_ready: Optional[int] = None

        def all_ready() -> bool:
            nonlocal last_ready
            registered, ready = self.cluster.node_counts()
            last_ready = ready
            logger.info(f"{ready}/{registered} nodes ready, want {expected}")
            return registered == expected and ready == expected

        try:
            poll_immediate(self.poll_interval, timeout, all_ready)
        except PollTimeoutError as e:
            raise ReadinessTimeoutError(expected, last_ready, timeout, e.last_error)
        return last_ready

    def wait_for_nodes_ready_after_upgrade(self) -> int:
        """
        Wait for all currently registered nodes to be ready.

        The node count is taken once, before waiting.

        Raises:
            NodeCountUnknownError: If the nodes could not be counted
            ReadinessTimeoutError: If they did not all become ready in time
        """
        try:
            num_nodes = self.cluster.count_registered_nodes()
        except Exception as e:
            raise NodeCountUnknownError(e)
        logger.info(
            f"Waiting up to {self.timeout:.0f}s for all {num_nodes} nodes to be ready after the upgrade"
        )
        return self.wait_for_nodes_ready(num_nodes)
