"""
Authenticated Graph sessions.

Two ways in: a bearer token acquired elsewhere (a front-end, `az account
get-access-token`, the caller of the HTTP surface), or the app-only client
credentials flow through Authlib's httpx OAuth2Client, which also renews the
token when it expires.
"""

import logging
from typing import Optional

import httpx
from authlib.integrations.httpx_client import OAuth2Client, OAuthError

from msg_grants.config import GRAPH_DEFAULT_SCOPE, Settings
from msg_grants.errors import AuthenticationError

logger = logging.getLogger(__name__)


class _BaseSession:
    _client: httpx.Client

    @property
    def client(self) -> httpx.Client:
        return self._client

    def close(self) -> None:
        self._client.close()

    def __enter__(self):
        return self

    def __exit__(self, *exc_info):
        self.close()


class AccessTokenSession(_BaseSession):
    """Session over a bearer token that is already in hand."""

    def __init__(
        self,
        access_token: str,
        base_url: str,
        timeout: float = 20.0,
        transport: Optional[httpx.BaseTransport] = None,
    ):
        self._token = (access_token or "").strip()
        if self._token.lower().startswith("bearer "):
            self._token = self._token[len("bearer "):].strip()
        self._client = httpx.Client(
            base_url=base_url,
            timeout=timeout,
            headers={"Authorization": f"Bearer {self._token}"},
            transport=transport,
        )

    def ensure_signed_in(self) -> None:
        if not self._token:
            raise AuthenticationError("No access token supplied")


class ClientCredentialsSession(_BaseSession):
    """App-only session using the OAuth2 client credentials grant."""

    def __init__(self, settings: Settings):
        self._settings = settings
        self._client = OAuth2Client(
            client_id=settings.client_id,
            client_secret=settings.client_secret,
            scope=GRAPH_DEFAULT_SCOPE,
            token_endpoint=settings.token_endpoint,
            grant_type="client_credentials",
            timeout=settings.timeout_seconds,
        )
        # Authlib only forwards a fixed set of httpx kwargs; base_url is not one.
        self._client.base_url = settings.graph_base_url

    def ensure_signed_in(self) -> None:
        if not self._settings.has_client_credentials:
            raise AuthenticationError(
                "AZURE_TENANT_ID, AZURE_CLIENT_ID and AZURE_CLIENT_SECRET must all be set"
            )
        if self._client.token:
            return
        try:
            self._client.fetch_token(
                self._settings.token_endpoint, grant_type="client_credentials"
            )
        except OAuthError as e:
            raise AuthenticationError(
                f"Token request rejected: {e}", tenant_id=self._settings.tenant_id
            ) from e
        except httpx.HTTPError as e:
            raise AuthenticationError(
                f"Token endpoint unreachable: {e}", tenant_id=self._settings.tenant_id
            ) from e
        logger.info("Signed in as application %s", self._settings.client_id)


def session_from_settings(
    settings: Settings, transport: Optional[httpx.BaseTransport] = None
):
    """Prefer an explicit access token; fall back to client credentials."""
    if settings.access_token:
        return AccessTokenSession(
            settings.access_token,
            settings.graph_base_url,
            settings.timeout_seconds,
            transport=transport,
        )
    return ClientCredentialsSession(settings)
