"""
Delegated permission grant management for Microsoft Graph.

Exposes the engine entry point (run, GrantRequest), the pieces it is built from
(scope normalization, grant locator, reconciliation, mutator), the session
implementations and the FastAPI router factory (create_grants_router).
"""

from .engine import GrantRequest, GrantResponse, ViewResult, run
from .errors import (
    AmbiguousGrantError,
    AuthenticationError,
    AuthorizationError,
    DirectoryApiError,
    GrantError,
    InvalidArgumentError,
    TransientError,
)
from .locator import find_grant, list_matching_grants
from .models import Action, ConsentType, Grant, GrantSelector, Operation, ReconciliationResult
from .mutator import apply
from .reconcile import reconcile, reconcile_add, reconcile_remove
from .router import create_grants_router
from .scopes import normalize, serialize
from .session import AccessTokenSession, ClientCredentialsSession, session_from_settings

__all__ = [
    "run",
    "GrantRequest",
    "GrantResponse",
    "ViewResult",
    "normalize",
    "serialize",
    "find_grant",
    "list_matching_grants",
    "reconcile",
    "reconcile_add",
    "reconcile_remove",
    "apply",
    "Action",
    "ConsentType",
    "Grant",
    "GrantSelector",
    "Operation",
    "ReconciliationResult",
    "AccessTokenSession",
    "ClientCredentialsSession",
    "session_from_settings",
    "create_grants_router",
    "GrantError",
    "InvalidArgumentError",
    "AmbiguousGrantError",
    "TransientError",
    "AuthenticationError",
    "AuthorizationError",
    "DirectoryApiError",
]
