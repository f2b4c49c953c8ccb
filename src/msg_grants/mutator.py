"""
Apply a ReconciliationResult to Graph.

One result maps to at most one mutating call (POST, PATCH or DELETE), so a
failure never leaves a half-applied change. With dry_run the call is skipped and
the outcome still carries the full result for previewing.
"""

import logging

from msg_grants import graph
from msg_grants.models import Action, ApplyOutcome, ReconciliationResult
from msg_grants.protocol import DirectorySession
from msg_grants.scopes import serialize

logger = logging.getLogger(__name__)


def apply(
    session: DirectorySession,
    client_sp_id: str,
    result: ReconciliationResult,
    dry_run: bool = False,
) -> ApplyOutcome:
    action = result.action
    grant_id = result.grant_id

    if action == Action.NOOP:
        return ApplyOutcome(result=result, dry_run=dry_run, applied=False, grant_id=grant_id)

    if dry_run:
        logger.info("Dry run: skipping %s of grant %s", action.value, grant_id or "<new>")
        return ApplyOutcome(result=result, dry_run=True, applied=False, grant_id=grant_id)

    scope = serialize(result.resulting_scopes)
    if action == Action.CREATE:
        selector = result.selector
        created = graph.create_grant(
            session,
            client_sp_id,
            resource_id=selector.resource_id,
            consent_type=selector.consent_type.value,
            scope=scope,
            principal_id=selector.principal_id,
        )
        grant_id = created.id
        logger.info("Created grant %s with scope '%s'", grant_id, scope)
    elif action == Action.UPDATE:
        graph.update_grant_scope(session, grant_id, scope)
        logger.info("Updated grant %s to scope '%s'", grant_id, scope)
    elif action == Action.DELETE:
        graph.delete_grant(session, grant_id)
        logger.info("Deleted grant %s", grant_id)

    return ApplyOutcome(result=result, dry_run=False, applied=True, grant_id=grant_id)
