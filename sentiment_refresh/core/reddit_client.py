"""Authenticated, retrying JSON client for the upstream Reddit API."""

import asyncio
import logging
from typing import Any, Dict, Optional

import httpx

from sentiment_refresh.core.errors import FetchError
from sentiment_refresh.core.token_manager import TokenManager

logger = logging.getLogger(__name__)

RETRYABLE_THROTTLE_STATUSES = (403, 429)


class RateLimitedClient:
    """
    GET wrapper around a shared ``httpx.AsyncClient``.

    Each logical request gets at most ``max_attempts`` tries:

    - 401: the token is refreshed and the request retried straight away
    - 403 / 429: back off ``base_delay * attempt`` seconds, then retry
    - any other non-2xx status fails immediately

    Once the attempts are used up the last non-2xx response becomes a
    ``FetchError``. An ``AuthError`` raised while refreshing the token is
    not caught here.
    """

    def __init__(
        self,
        http_client: httpx.AsyncClient,
        token_manager: TokenManager,
        user_agent: str,
        api_base: str = "https://oauth.reddit.com",
        max_attempts: int = 3,
        base_delay: float = 0.9,
        prometheus_exporter=None,
    ):
        self.http_client = http_client
        self.token_manager = token_manager
        self.user_agent = user_agent
        self.api_base = api_base.rstrip("/")
        self.max_attempts = max(1, max_attempts)
        self.base_delay = base_delay
        self.prometheus_exporter = prometheus_exporter

    def build_url(self, path: str) -> str:
        return f"{self.api_base}/{path.lstrip('/')}"

    def _headers(self) -> Dict[str, str]:
        return {
            "Authorization": f"Bearer {self.token_manager.current_token()}",
            "User-Agent": self.user_agent,
            "Accept": "application/json",
        }

    async def get_json(self, url: str, params: Optional[Dict[str, Any]] = None) -> Any:
        """
        Fetch ``url`` and decode the JSON body.

        Args:
            url: Absolute URL or a path relative to ``api_base``
            params: Optional query parameters

        Returns:
            The decoded JSON document

        Raises:
            FetchError: On transport errors, undecodable bodies or non-2xx
                responses that survive the retry policy
        """
        if not url.startswith("http"):
            url = self.build_url(url)

        for attempt in range(1, self.max_attempts + 1):
            if self.prometheus_exporter:
                self.prometheus_exporter.record_fetch_operation("get")

            try:
                if self.prometheus_exporter:
                    with self.prometheus_exporter.time_request():
                        response = await self.http_client.get(url, params=params, headers=self._headers())
                else:
                    response = await self.http_client.get(url, params=params, headers=self._headers())
            except httpx.HTTPError as e:
                if self.prometheus_exporter:
                    self.prometheus_exporter.record_api_error("transport")
                raise FetchError(f"Reddit request failed: {url} :: {e}", url=url) from e

            status = response.status_code
            if response.is_success:
                try:
                    return response.json()
                except ValueError as e:
                    raise FetchError(
                        f"Reddit returned an undecodable body: {url}", status_code=status, url=url
                    ) from e

            if self.prometheus_exporter:
                self.prometheus_exporter.record_api_error(str(status))

            if attempt < self.max_attempts:
                if status == 401:
                    logger.warning(f"Received 401 from {url}, refreshing token (attempt {attempt}/{self.max_attempts})")
                    await self.token_manager.refresh()
                    continue
                if status in RETRYABLE_THROTTLE_STATUSES:
                    backoff = self.base_delay * attempt
                    logger.warning(
                        f"Received {status} from {url}, backing off {backoff:.2f}s "
                        f"(attempt {attempt}/{self.max_attempts})"
                    )
                    await asyncio.sleep(backoff)
                    continue

            raise FetchError(
                f"Reddit request failed ({status}): {response.url} :: {response.text}",
                status_code=status,
                url=str(response.url),
            )

        # Unreachable: the final attempt either returns or raises above.
        raise FetchError(f"Reddit request failed after {self.max_attempts} attempts: {url}", url=url)
