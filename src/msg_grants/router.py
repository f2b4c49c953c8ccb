"""
FastAPI router: GET /grants, POST /grants/add, POST /grants/remove.

The caller's own Graph bearer token (Authorization header) is used for every
Graph call, so Graph decides what the caller may change. Handlers are plain
`def`, which FastAPI runs on its worker thread pool: the whole reconciliation is
one unit of work and only its final result is returned.
"""

import logging
from typing import Callable, List, Optional, Union

from fastapi import APIRouter, Depends, Header, HTTPException, Query
from fastapi.responses import JSONResponse
from pydantic import BaseModel, Field

from msg_grants.config import load_settings
from msg_grants.engine import GrantRequest, run
from msg_grants.errors import (
    AmbiguousGrantError,
    AuthenticationError,
    AuthorizationError,
    DirectoryApiError,
    GrantError,
    InvalidArgumentError,
    NotFoundError,
    TransientError,
)
from msg_grants.models import ConsentType, Operation
from msg_grants.protocol import DirectorySession
from msg_grants.session import AccessTokenSession

logger = logging.getLogger(__name__)

SessionFactory = Callable[[str], DirectorySession]


class GrantChangeBody(BaseModel):
    client_id: Optional[str] = None
    client_app_id: Optional[str] = None
    resource_id: Optional[str] = None
    resource_app_id: Optional[str] = None
    consent_type: ConsentType = ConsentType.ALL_PRINCIPALS
    principal_id: Optional[str] = None
    scopes: Union[str, List[str]] = Field(default_factory=list)
    dry_run: bool = False


def _default_session_factory(token: str) -> DirectorySession:
    settings = load_settings()
    return AccessTokenSession(token, settings.graph_base_url, settings.timeout_seconds)


def _status_for(error: GrantError) -> int:
    """Map the error taxonomy onto HTTP statuses."""
    if isinstance(error, InvalidArgumentError):
        return 400
    if isinstance(error, AuthenticationError):
        return 401
    if isinstance(error, AuthorizationError):
        return error.status_code
    if isinstance(error, AmbiguousGrantError):
        return 409
    if isinstance(error, TransientError):
        return 503
    if isinstance(error, NotFoundError):
        return 404
    if isinstance(error, DirectoryApiError) and error.status_code and 400 <= error.status_code < 500:
        return 400
    return 502


def _error_response(error: GrantError) -> JSONResponse:
    body = {"error": error.code, "detail": str(error)}
    if isinstance(error, AuthorizationError):
        body["hint"] = error.hint
    if isinstance(error, AmbiguousGrantError):
        body["grant_ids"] = error.grant_ids
    return JSONResponse(body, status_code=_status_for(error))


def create_grants_router(session_factory: Optional[SessionFactory] = None) -> APIRouter:
    """Create an APIRouter exposing the grant engine."""
    make_session = session_factory or _default_session_factory
    router = APIRouter(prefix="/grants")

    def graph_session(authorization: Optional[str] = Header(None)):
        """Dependency: a Graph session over the caller's bearer token."""
        if not authorization or not authorization.lower().startswith("bearer "):
            raise HTTPException(status_code=401, detail="Bearer token required")
        session = make_session(authorization[len("bearer "):].strip())
        try:
            yield session
        finally:
            close = getattr(session, "close", None)
            if close:
                close()

    def _execute(session: DirectorySession, request: GrantRequest):
        try:
            return run(session, request).to_dict()
        except GrantError as e:
            logger.warning("Grant request failed: %s", e)
            return _error_response(e)

    @router.get("")
    def view_grants(
        client_id: Optional[str] = Query(None),
        client_app_id: Optional[str] = Query(None),
        resource_id: Optional[str] = Query(None),
        resource_app_id: Optional[str] = Query(None),
        consent_type: ConsentType = Query(ConsentType.ALL_PRINCIPALS),
        principal_id: Optional[str] = Query(None),
        session: DirectorySession = Depends(graph_session),
    ):
        """List grants matching the resource and consent type."""
        request = GrantRequest(
            operation=Operation.VIEW,
            consent_type=consent_type,
            client_sp_id=client_id,
            client_app_id=client_app_id,
            resource_id=resource_id,
            resource_app_id=resource_app_id,
            principal_id=principal_id,
        )
        return _execute(session, request)

    def _change(operation: Operation, body: GrantChangeBody, session: DirectorySession):
        request = GrantRequest(
            operation=operation,
            consent_type=body.consent_type,
            client_sp_id=body.client_id,
            client_app_id=body.client_app_id,
            resource_id=body.resource_id,
            resource_app_id=body.resource_app_id,
            principal_id=body.principal_id,
            scopes=body.scopes,
            dry_run=body.dry_run,
        )
        return _execute(session, request)

    @router.post("/add")
    def add_scopes(body: GrantChangeBody, session: DirectorySession = Depends(graph_session)):
        """Add scopes; creates the grant if it does not exist."""
        return _change(Operation.ADD, body, session)

    @router.post("/remove")
    def remove_scopes(body: GrantChangeBody, session: DirectorySession = Depends(graph_session)):
        """Remove scopes; deletes the grant once no scopes remain."""
        return _change(Operation.REMOVE, body, session)

    return router
