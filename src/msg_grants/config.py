"""
Environment configuration.

Entry points call load_dotenv() before anything here is read, so values from
.env and the real environment are both visible.

AZURE_TENANT_ID / AZURE_CLIENT_ID / AZURE_CLIENT_SECRET: app registration used
for the client-credentials flow. GRAPH_ACCESS_TOKEN, when set, wins over the
app registration. GRAPH_TIMEOUT_SECONDS bounds every individual HTTP call.
"""

import os
from dataclasses import dataclass
from typing import Optional

DEFAULT_GRAPH_BASE_URL = "https://graph.microsoft.com/v1.0"
DEFAULT_TIMEOUT_SECONDS = 20.0
GRAPH_DEFAULT_SCOPE = "https://graph.microsoft.com/.default"


def _graph_base_url() -> str:
    return os.getenv("GRAPH_BASE_URL", DEFAULT_GRAPH_BASE_URL).rstrip("/")


def _timeout_seconds() -> float:
    """Per-call timeout. Invalid values fall back to the default."""
    try:
        value = float(os.getenv("GRAPH_TIMEOUT_SECONDS", str(DEFAULT_TIMEOUT_SECONDS)))
    except ValueError:
        return DEFAULT_TIMEOUT_SECONDS
    return value if value > 0 else DEFAULT_TIMEOUT_SECONDS


def log_level() -> str:
    return os.getenv("MSG_GRANTS_LOG_LEVEL", "WARNING").upper()


@dataclass(frozen=True)
class Settings:
    tenant_id: Optional[str]
    client_id: Optional[str]
    client_secret: Optional[str]
    access_token: Optional[str]
    graph_base_url: str = DEFAULT_GRAPH_BASE_URL
    timeout_seconds: float = DEFAULT_TIMEOUT_SECONDS

    @property
    def token_endpoint(self) -> str:
        return f"https://login.microsoftonline.com/{self.tenant_id}/oauth2/v2.0/token"

    @property
    def has_client_credentials(self) -> bool:
        return bool(self.tenant_id and self.client_id and self.client_secret)


def load_settings() -> Settings:
    """Snapshot the environment. Missing credentials surface later, when signing in."""
    return Settings(
        tenant_id=os.getenv("AZURE_TENANT_ID") or None,
        client_id=os.getenv("AZURE_CLIENT_ID") or None,
        client_secret=os.getenv("AZURE_CLIENT_SECRET") or None,
        access_token=os.getenv("GRAPH_ACCESS_TOKEN") or None,
        graph_base_url=_graph_base_url(),
        timeout_seconds=_timeout_seconds(),
    )
