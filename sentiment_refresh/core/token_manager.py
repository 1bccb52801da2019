"""OAuth bearer token acquisition for the upstream Reddit API."""

import logging
from typing import Any, Dict, Optional

import httpx

from sentiment_refresh.core.errors import AuthError

logger = logging.getLogger(__name__)

UNAUTHORIZED_CLIENT = "unauthorized_client"
TOKEN_SCOPE = "read history"


class TokenManager:
    """
    Holds the single live bearer token for a run and knows how to replace it.

    With a username and password configured the password grant is tried first,
    falling back to the client-credentials grant only when Reddit answers with
    ``unauthorized_client`` (e.g. the app is not a "script" app). Without user
    credentials the client-credentials grant is used directly.
    """

    def __init__(
        self,
        http_client: httpx.AsyncClient,
        client_id: str,
        client_secret: str,
        user_agent: str,
        token_url: str,
        username: Optional[str] = None,
        password: Optional[str] = None,
        prometheus_exporter=None,
    ):
        """
        Args:
            http_client: Shared async HTTP client for the run
            client_id: Reddit application client id
            client_secret: Reddit application secret
            user_agent: User-Agent header sent with token requests
            token_url: OAuth access token endpoint
            username: Optional Reddit username for the password grant
            password: Optional Reddit password for the password grant
            prometheus_exporter: Optional Prometheus exporter for metrics
        """
        self.http_client = http_client
        self.client_id = client_id
        self.client_secret = client_secret
        self.user_agent = user_agent
        self.token_url = token_url
        self.username = username
        self.password = password
        self.prometheus_exporter = prometheus_exporter
        self.value: Optional[str] = None

    def current_token(self) -> str:
        if not self.value:
            raise AuthError("No Reddit access token has been acquired yet.")
        return self.value

    async def refresh(self) -> str:
        """
        Acquire a fresh token and replace the held value.

        Returns:
            The new bearer token

        Raises:
            AuthError: If credentials are missing or every applicable grant is rejected
        """
        token: Optional[str] = None

        if self.username and self.password:
            try:
                token = await self._request_token("password")
            except AuthError as e:
                if UNAUTHORIZED_CLIENT not in str(e):
                    raise
                logger.warning("Password grant rejected as unauthorized_client, falling back to client_credentials")

        if token is None:
            token = await self._request_token("client_credentials")

        self.value = token
        logger.info("Acquired Reddit access token")
        return token

    async def _request_token(self, grant_type: str) -> str:
        if not self.client_id or not self.client_secret:
            raise AuthError("Reddit client credentials are not configured.")

        data: Dict[str, str] = {"grant_type": grant_type, "scope": TOKEN_SCOPE}
        if grant_type == "password":
            data["username"] = self.username or ""
            data["password"] = self.password or ""

        if self.prometheus_exporter:
            self.prometheus_exporter.record_fetch_operation("token")

        try:
            response = await self.http_client.post(
                self.token_url,
                data=data,
                auth=(self.client_id, self.client_secret),
                headers={"User-Agent": self.user_agent},
            )
        except httpx.HTTPError as e:
            raise AuthError(f"Reddit auth request failed [{grant_type}]: {e}") from e

        text = response.text
        payload: Dict[str, Any] = {}
        try:
            parsed = response.json() if text else {}
            if isinstance(parsed, dict):
                payload = parsed
        except ValueError:
            payload = {}

        if not response.is_success:
            if self.prometheus_exporter:
                self.prometheus_exporter.record_api_error(str(response.status_code))
            reason = payload.get("error_description") or payload.get("error") or text
            raise AuthError(f"Reddit auth failed ({response.status_code}) [{grant_type}]: {reason}")

        access_token = payload.get("access_token")
        if not access_token:
            raise AuthError(f"Reddit auth response missing access token [{grant_type}]: {text}")

        return str(access_token)
