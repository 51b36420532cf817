"""HTTP transport for JSON-RPC calls with retries, exponential backoff, and jitter."""

import time
import random
import logging
from typing import Any

import requests
from requests.adapters import HTTPAdapter
from urllib3.util.retry import Retry

logger = logging.getLogger(__name__)


class HttpClient:
    """Pooled HTTP session that POSTs JSON bodies and retries transient failures."""

    def __init__(
        self,
        base_url: str,
        timeout: float = 20.0,
        max_retries: int = 3,
        backoff_factor: float = 0.5,
        retry_statuses: tuple = (429, 500, 502, 503, 504),
    ):
        """
        Initialize HTTP client.

        Args:
            base_url: Node endpoint that receives every request
            timeout: Request timeout in seconds
            max_retries: Maximum number of retry attempts
            backoff_factor: Multiplier for exponential backoff
            retry_statuses: HTTP status codes that trigger a retry
        """
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self.max_retries = max_retries
        self.backoff_factor = backoff_factor
        self.retry_statuses = retry_statuses

        self.session = self._create_session()

    def _create_session(self) -> requests.Session:
        """Create a keep-alive session; urllib3 retries connection-level failures."""
        session = requests.Session()

        retry_strategy = Retry(
            connect=self.max_retries,
            read=0,
            status=0,
            backoff_factor=self.backoff_factor,
            allowed_methods=["POST"],
            raise_on_status=False,
        )

        adapter = HTTPAdapter(max_retries=retry_strategy)
        session.mount("http://", adapter)
        session.mount("https://", adapter)
        session.headers.update({"Content-Type": "application/json"})

        return session

    def _add_jitter(self, delay: float) -> float:
        """Add random jitter to delay (0-50% of delay)."""
        return delay + random.uniform(0, delay * 0.5)

    def _backoff(self, attempt: int, reason: str) -> None:
        delay = self._add_jitter(self.backoff_factor * (2**attempt))
        logger.warning(
            f"{reason}. Waiting {delay:.2f}s before retry. "
            f"Attempt {attempt + 1}/{self.max_retries + 1}"
        )
        time.sleep(delay)

    def post(self, payload: dict, path: str = "") -> requests.Response:
        """
        POST a JSON payload with retry logic.

        Connection failures are retried by the session adapter only; once it
        gives up the ConnectionError propagates.

        Args:
            payload: JSON-serializable request body
            path: Optional URL path appended to base_url

        Returns:
            Response object

        Raises:
            requests.RequestException: If all retries fail
        """
        url = f"{self.base_url}/{path.lstrip('/')}" if path else self.base_url
        attempt = 0

        while attempt <= self.max_retries:
            try:
                response = self.session.post(url, json=payload, timeout=self.timeout)
            except requests.exceptions.Timeout:
                if attempt == self.max_retries:
                    raise
                self._backoff(attempt, "Request timeout")
                attempt += 1
                continue

            if response.status_code not in self.retry_statuses or attempt == self.max_retries:
                return response

            if response.status_code == 429:
                retry_after = response.headers.get("Retry-After", "")
                delay = self._add_jitter(float(retry_after) if retry_after.isdigit() else 5.0)
                logger.warning(
                    f"Rate limited (429). Waiting {delay:.2f}s before retry. "
                    f"Attempt {attempt + 1}/{self.max_retries + 1}"
                )
                time.sleep(delay)
            else:
                self._backoff(attempt, f"Server error ({response.status_code})")
            attempt += 1

        raise requests.exceptions.RetryError(
            f"Max retries ({self.max_retries}) exceeded for {url}"
        )

    def post_json(self, payload: dict, path: str = "") -> Any:
        """
        POST a JSON payload and return the decoded JSON response.

        Raises:
            requests.RequestException: If the request fails or returns an error status
            ValueError: If response is not valid JSON
        """
        response = self.post(payload, path=path)
        response.raise_for_status()
        return response.json()

    def close(self) -> None:
        self.session.close()
