"""HTTP client with retries, exponential backoff, and jitter."""

import time
import random
import logging
from typing import Any, Optional

import requests
from requests.adapters import HTTPAdapter
from urllib3.util.retry import Retry

logger = logging.getLogger(__name__)


class HttpClient:
    """HTTP client wrapper with automatic retries and exponential backoff."""

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
            base_url: Base URL for all requests
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
        """Create a requests session with retry configuration."""
        session = requests.Session()

        # Connection-level retries; status retries are handled in request().
        retry_strategy = Retry(
            total=self.max_retries,
            backoff_factor=self.backoff_factor,
            status_forcelist=list(self.retry_statuses),
            allowed_methods=["GET", "POST", "PUT"],
            raise_on_status=False,
        )

        adapter = HTTPAdapter(max_retries=retry_strategy)
        session.mount("http://", adapter)
        session.mount("https://", adapter)

        return session

    def _add_jitter(self, delay: float) -> float:
        """Add random jitter to delay (0-50% of delay)."""
        jitter = random.uniform(0, delay * 0.5)
        return delay + jitter

    def request(
        self,
        method: str,
        path: str,
        json: Optional[Any] = None,
        params: Optional[dict] = None,
        headers: Optional[dict] = None,
    ) -> requests.Response:
        """
        Make a request with retry logic.

        Args:
            method: HTTP method (GET, POST, PUT)
            path: URL path (appended to base_url)
            json: JSON body
            params: Query parameters
            headers: Additional headers

        Returns:
            Response object

        Raises:
            requests.RequestException: If all retries fail
        """
        url = f"{self.base_url}/{path.lstrip('/')}"
        attempt = 0

        while attempt <= self.max_retries:
            try:
                response = self.session.request(
                    method,
                    url,
                    json=json,
                    params=params,
                    headers=headers,
                    timeout=self.timeout,
                )

                if response.status_code == 429:
                    retry_after = int(response.headers.get("Retry-After", 5))
                    delay = self._add_jitter(retry_after)
                    logger.warning(
                        f"Rate limited (429). Waiting {delay:.2f}s before retry. "
                        f"Attempt {attempt + 1}/{self.max_retries + 1}"
                    )
                    time.sleep(delay)
                    attempt += 1
                    continue

                if response.status_code in self.retry_statuses:
                    delay = self._add_jitter(self.backoff_factor * (2**attempt))
                    logger.warning(
                        f"Server error ({response.status_code}). "
                        f"Waiting {delay:.2f}s before retry. "
                        f"Attempt {attempt + 1}/{self.max_retries + 1}"
                    )
                    time.sleep(delay)
                    attempt += 1
                    continue

                return response

            except requests.exceptions.Timeout:
                delay = self._add_jitter(self.backoff_factor * (2**attempt))
                logger.warning(
                    f"Request timeout. Waiting {delay:.2f}s before retry. "
                    f"Attempt {attempt + 1}/{self.max_retries + 1}"
                )
                time.sleep(delay)
                attempt += 1

            except requests.exceptions.ConnectionError as e:
                delay = self._add_jitter(self.backoff_factor * (2**attempt))
                logger.warning(
                    f"Connection error: {e}. Waiting {delay:.2f}s before retry. "
                    f"Attempt {attempt + 1}/{self.max_retries + 1}"
                )
                time.sleep(delay)
                attempt += 1

        raise requests.exceptions.RetryError(
            f"Max retries ({self.max_retries}) exceeded for {method} {url}"
        )

    def get(self, path: str, params: Optional[dict] = None, headers: Optional[dict] = None) -> requests.Response:
        return self.request("GET", path, params=params, headers=headers)

    def post(self, path: str, json: Optional[Any] = None, headers: Optional[dict] = None) -> requests.Response:
        return self.request("POST", path, json=json, headers=headers)

    def put(self, path: str, json: Optional[Any] = None, params: Optional[dict] = None) -> requests.Response:
        return self.request("PUT", path, json=json, params=params)

    def post_json(self, path: str, json: Optional[Any] = None, headers: Optional[dict] = None) -> Any:
        """
        Make a POST request and return the JSON response.

        Raises:
            requests.HTTPError: If the response status is not 2xx
            ValueError: If response is not valid JSON
        """
        response = self.post(path, json=json, headers=headers)
        response.raise_for_status()
        return response.json()
