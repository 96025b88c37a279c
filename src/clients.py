"""
REST API client for Google Kubernetes Engine (container v1 API).
"""

import logging
import time
from typing import Dict, List, Optional

import google.auth
from google.auth.transport.requests import AuthorizedSession

logger = logging.getLogger(__name__)

API_BASE = "https://container.googleapis.com/v1"


class ContainerRestClient:
    """REST client for GKE cluster and node pool upgrades."""

    RETRYABLE_STATUS_CODES = {409, 429, 500, 502, 503, 504}
    # Upgrade requests are only resent when the server refused them outright
    MUTATING_RETRYABLE_STATUS_CODES = {429}

    def __init__(
        self,
        project_id: str,
        location: str,
        cluster: str,
        timeout_s: int = 60,
        max_retries: int = 5,
        base_delay: float = 5.0,
        poll_interval: int = 20,
        operation_timeout: int = 7200,
    ):
        """
        Initialize the GKE REST client.

        Args:
            project_id: GCP project ID
            location: Zone or region of the cluster
            cluster: Cluster name
            timeout_s: Request timeout in seconds
            max_retries: Maximum number of retries for transient errors
            base_delay: Base delay for exponential backoff
            poll_interval: Interval between operation polls (seconds)
            operation_timeout: Maximum time to wait for an operation (seconds)
        """
        self.project_id = project_id
        self.location = location
        self.cluster = cluster
        self.timeout_s = timeout_s
        self.max_retries = max_retries
        self.base_delay = base_delay
        self.poll_interval = poll_interval
        self.operation_timeout = operation_timeout

        creds, _ = google.auth.default(
            scopes=["https://www.googleapis.com/auth/cloud-platform"]
        )
        self.session = AuthorizedSession(creds)

    def _url(self, path: str) -> str:
        """Construct full API URL from path."""
        return f"{API_BASE}/{path.lstrip('/')}"

    @property
    def _parent(self) -> str:
        return f"projects/{self.project_id}/locations/{self.location}"

    @property
    def _cluster_name(self) -> str:
        return f"{self._parent}/clusters/{self.cluster}"

    def _request_with_retry(self, method: str, url: str, **kwargs) -> dict:
        """
        Execute HTTP request with exponential backoff retry for transient errors.

        GET requests are retried on any transient error. POST and PUT start
        upgrades, so they are retried only on 429 and never after a transport
        error, when the server may already have accepted them.

        Args:
            method: HTTP method (GET, POST, PUT)
            url: Request URL
            **kwargs: Additional request parameters

        Returns:
            Dictionary with 'response' and 'status_code' keys

        Raises:
            RuntimeError: If max retries exceeded
        """
        last_error = None
        mutating = method.upper() != "GET"
        retryable = (
            self.MUTATING_RETRYABLE_STATUS_CODES
            if mutating
            else self.RETRYABLE_STATUS_CODES
        )

        for attempt in range(self.max_retries + 1):
            try:
                if method.upper() == "GET":
                    resp = self.session.get(url, timeout=self.timeout_s, **kwargs)
                elif method.upper() == "POST":
                    resp = self.session.post(url, timeout=self.timeout_s, **kwargs)
                elif method.upper() == "PUT":
                    resp = self.session.put(url, timeout=self.timeout_s, **kwargs)
                else:
                    raise ValueError(f"Unsupported method: {method}")

                if resp.status_code in retryable:
                    delay = self._calculate_delay(attempt, resp)
                    error_info = ""
                    try:
                        error_data = resp.json()
                        error_info = error_data.get("error", {}).get("message", "")
                    except ValueError:
                        pass
                    logger.warning(
                        f"Retryable error {resp.status_code} ({error_info}), attempt {attempt + 1}/{self.max_retries + 1}, waiting {delay:.1f}s..."
                    )
                    last_error = (
                        f"HTTP {resp.status_code}: {error_info or resp.text[:200]}"
                    )
                    time.sleep(delay)
                    continue

                return {"response": resp, "status_code": resp.status_code}

            except ValueError:
                raise
            except Exception as e:
                if mutating:
                    raise RuntimeError(f"{method.upper()} {url} failed: {e}") from e
                delay = self._calculate_delay(attempt)
                logger.warning(
                    f"Request error: {e}, attempt {attempt + 1}/{self.max_retries + 1}, waiting {delay:.1f}s..."
                )
                last_error = str(e)
                time.sleep(delay)

        raise RuntimeError(f"Max retries exceeded. Last error: {last_error}")

    def _calculate_delay(self, attempt: int, resp=None) -> float:
        """
        Calculate delay with exponential backoff and jitter.

        Args:
            attempt: Current attempt number
            resp: Optional response object (to check Retry-After header)

        Returns:
            Delay in seconds
        """
        if resp is not None and "Retry-After" in resp.headers:
            try:
                return float(resp.headers["Retry-After"])
            except ValueError:
                pass

        # Another operation is already running on the cluster
        base = self.base_delay
        if resp is not None and resp.status_code == 409:
            base = 15.0

        delay = base * (2**attempt)
        jitter = delay * 0.2 * (0.5 - time.time() % 1)
        return min(delay + jitter, 180.0)

    def list_node_pools(self) -> List[str]:
        """
        List node pool names of the cluster in API order.

        Returns:
            List of node pool names (empty if the cluster has none)

        Raises:
            RuntimeError: If API call fails
        """
        url = self._url(f"{self._cluster_name}/nodePools")
        result = self._request_with_retry("GET", url)
        resp = result["response"]
        if resp.status_code != 200:
            raise RuntimeError(
                f"List node pools failed ({resp.status_code}): {resp.text}"
            )
        data = resp.json()
        return [np["name"] for np in data.get("nodePools", []) or []]

    def update_master(self, version: str) -> str:
        """
        Start a control plane upgrade.

        Args:
            version: Target Kubernetes version

        Returns:
            Operation name

        Raises:
            RuntimeError: If API call fails
        """
        url = self._url(f"{self._cluster_name}:updateMaster")
        result = self._request_with_retry(
            "POST", url, json={"masterVersion": version}
        )
        return self._operation_name(result["response"], "updateMaster")

    def update_node_pool(
        self, node_pool: str, version: str, image_type: Optional[str] = None
    ) -> str:
        """
        Start a node pool upgrade.

        Args:
            node_pool: Node pool name
            version: Target Kubernetes version
            image_type: Optional node image type override

        Returns:
            Operation name

        Raises:
            RuntimeError: If API call fails
        """
        url = self._url(f"{self._cluster_name}/nodePools/{node_pool}")
        body: Dict[str, str] = {"nodeVersion": version}
        if image_type:
            body["imageType"] = image_type
        result = self._request_with_retry("PUT", url, json=body)
        return self._operation_name(result["response"], "update node pool")

    def _operation_name(self, resp, what: str) -> str:
        if resp.status_code not in (200, 202):
            raise RuntimeError(f"{what} failed ({resp.status_code}): {resp.text}")
        data = resp.json()
        if "name" not in data:
            raise RuntimeError(f"{what} returned unexpected response: {data}")
        return data["name"]

    def get_operation(self, op_name: str) -> Dict:
        """
        Get status of a long-running operation.

        Args:
            op_name: Operation id as returned by the API

        Returns:
            Operation details as dictionary

        Raises:
            RuntimeError: If API call fails
        """
        url = self._url(f"{self._parent}/operations/{op_name.split('/')[-1]}")
        result = self._request_with_retry("GET", url)
        resp = result["response"]
        if resp.status_code != 200:
            raise RuntimeError(
                f"Get operation failed ({resp.status_code}): {resp.text}"
            )
        return resp.json()

    def wait_for_operation(self, op_name: str) -> Dict:
        """
        Block until an operation is DONE.

        Args:
            op_name: Operation id

        Returns:
            Final operation details

        Raises:
            RuntimeError: If the operation failed or timed out
        """
        start = time.time()
        while True:
            op = self.get_operation(op_name)
            if op.get("status") == "DONE":
                error = op.get("error")
                if error:
                    raise RuntimeError(
                        f"Operation {op_name} failed: {error.get('message', error)}"
                    )
                logger.info(f"Operation {op_name} COMPLETED")
                return op
            elapsed = time.time() - start
            if elapsed > self.operation_timeout:
                raise RuntimeError(
                    f"Operation {op_name} timed out after {elapsed:.0f}s (status={op.get('status')})"
                )
            logger.debug(
                f"Operation {op_name} is {op.get('status')} ({elapsed:.0f}s elapsed)"
            )
            time.sleep(self.poll_interval)
