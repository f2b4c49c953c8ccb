"""
Microsoft Graph calls for oauth2PermissionGrants.

Each function issues exactly one HTTP request through the session's client and
classifies failures into the errors module's taxonomy. Nothing is retried here.
"""

import logging
from typing import Optional

import httpx
from authlib.common.errors import AuthlibBaseError
from pydantic import BaseModel, ValidationError

from msg_grants.errors import (
    AuthenticationError,
    AuthorizationError,
    DirectoryApiError,
    NotFoundError,
    TransientError,
)
from msg_grants.models import Grant, GrantPage, ServicePrincipal, User
from msg_grants.protocol import DirectorySession

logger = logging.getLogger(__name__)

GRANTS_PATH = "/oauth2PermissionGrants"


def _graph_error_message(response: httpx.Response) -> str:
    """Pull Graph's {"error": {"code", "message"}} out of a failed response."""
    try:
        body = response.json()
    except ValueError:
        return response.text[:200] or response.reason_phrase
    # Gateways in front of Graph answer with {"error": "Bad Gateway"}, lists, or bare strings.
    error = body.get("error") if isinstance(body, dict) else body
    if not isinstance(error, dict):
        return str(error) if error else response.reason_phrase
    code = error.get("code")
    message = error.get("message") or response.reason_phrase
    return f"{code}: {message}" if code else message


def _send(session: DirectorySession, method: str, url: str, **kwargs) -> httpx.Response:
    try:
        response = session.client.request(method, url, **kwargs)
    except AuthlibBaseError as e:
        # Authlib renews an expired client-credentials token inside request().
        raise AuthenticationError(f"Token renewal rejected: {e}") from e
    except httpx.TimeoutException as e:
        raise TransientError(f"Graph request timed out: {method} {url}") from e
    except httpx.HTTPError as e:
        raise TransientError(f"Graph request failed: {method} {url}: {e}") from e

    status = response.status_code
    if status < 400:
        return response

    message = _graph_error_message(response)
    if status in (401, 403):
        raise AuthorizationError(f"Graph refused {method} {url}: {message}", status_code=status)
    if status == 404:
        raise NotFoundError(f"Not found: {method} {url}: {message}", status_code=status)
    if status == 429 or status >= 500:
        raise TransientError(f"Graph unavailable ({status}) for {method} {url}: {message}")
    raise DirectoryApiError(f"Graph rejected {method} {url} ({status}): {message}", status_code=status)


def _parse(model: type, response: httpx.Response) -> BaseModel:
    try:
        return model.model_validate(response.json())
    except (ValueError, ValidationError) as e:
        # pydantic's ValidationError is a ValueError; both mean a malformed body.
        raise TransientError(
            f"Unexpected {model.__name__} payload from {response.request.url}: {e}"
        ) from e


def list_grants_page(
    session: DirectorySession, client_sp_id: str, next_link: Optional[str] = None
) -> GrantPage:
    """Fetch one page of grants for a client service principal."""
    url = next_link or f"/servicePrincipals/{client_sp_id}/oauth2PermissionGrants"
    response = _send(session, "GET", url)
    return _parse(GrantPage, response)


def create_grant(
    session: DirectorySession,
    client_sp_id: str,
    resource_id: str,
    consent_type: str,
    scope: str,
    principal_id: Optional[str] = None,
) -> Grant:
    """POST a new grant. Not safe to blindly retry: a second POST duplicates it."""
    body = {
        "clientId": client_sp_id,
        "consentType": consent_type,
        "resourceId": resource_id,
        "scope": scope,
    }
    if principal_id:
        body["principalId"] = principal_id
    response = _send(session, "POST", GRANTS_PATH, json=body)
    return _parse(Grant, response)


def update_grant_scope(session: DirectorySession, grant_id: str, scope: str) -> None:
    """PATCH the scope string of an existing grant."""
    _send(session, "PATCH", f"{GRANTS_PATH}/{grant_id}", json={"scope": scope})


def delete_grant(session: DirectorySession, grant_id: str) -> None:
    _send(session, "DELETE", f"{GRANTS_PATH}/{grant_id}")


def get_user(session: DirectorySession, user_id: str) -> User:
    response = _send(
        session,
        "GET",
        f"/users/{user_id}",
        params={"$select": "id,userPrincipalName,displayName"},
    )
    return _parse(User, response)


def get_service_principal_by_app_id(session: DirectorySession, app_id: str) -> ServicePrincipal:
    """Look up a service principal through Graph's appId alternate key."""
    response = _send(
        session,
        "GET",
        f"/servicePrincipals(appId='{app_id}')",
        params={"$select": "id,appId,displayName"},
    )
    return _parse(ServicePrincipal, response)
