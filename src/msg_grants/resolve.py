"""
Resolve directory identifiers.

Service principals may be named by object id or by application (client) id.
Principal ids on grants are turned into user principal names for display only;
that lookup is best effort and tells a non-user object apart from a failed call.
"""

import logging
from typing import Optional

from msg_grants import graph
from msg_grants.errors import GrantError, InvalidArgumentError, NotFoundError
from msg_grants.protocol import DirectorySession

logger = logging.getLogger(__name__)


def resolve_service_principal_id(
    session: DirectorySession,
    object_id: Optional[str] = None,
    app_id: Optional[str] = None,
    role: str = "service principal",
) -> str:
    """Return the object id of a service principal given exactly one identifier."""
    if bool(object_id) == bool(app_id):
        raise InvalidArgumentError(f"Give either the {role} object id or its app id, not both or neither")
    if object_id:
        return object_id
    try:
        sp = graph.get_service_principal_by_app_id(session, app_id)
    except NotFoundError as e:
        raise InvalidArgumentError(f"No {role} with appId {app_id}", app_id=app_id) from e
    logger.debug("Resolved appId %s to %s (%s)", app_id, sp.id, sp.display_name)
    return sp.id


def describe_principal(session: DirectorySession, principal_id: Optional[str]) -> str:
    """
    Human-readable label for a grant's principal.

    404 means the id is not a user (group, service principal, deleted user) and is
    labelled as such. Any other failure is logged and the raw id is shown; the
    view is never aborted.
    """
    if not principal_id:
        return "all principals"
    try:
        user = graph.get_user(session, principal_id)
    except NotFoundError:
        return f"{principal_id} (not a user)"
    except GrantError as e:
        logger.warning("Could not resolve principal %s: %s", principal_id, e)
        return f"{principal_id} (lookup failed: {e.code})"
    return user.user_principal_name or user.display_name or principal_id
