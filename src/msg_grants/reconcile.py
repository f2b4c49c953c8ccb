"""
Decide what an Add or Remove does to a grant.

Pure functions over the located grant (or None) and the requested scopes. No
network calls, so a dry run and a live run compute the identical result.

Rules:
- Add only ever grows the scope set; scopes already present are skipped.
- Remove only touches the requested scopes; absent ones are skipped.
- A grant whose scope set would become empty is deleted, never left empty.
"""

import logging
from typing import Iterable, Optional, Union

from msg_grants.errors import InvalidArgumentError
from msg_grants.models import (
    Action,
    Grant,
    GrantSelector,
    Operation,
    ReconciliationResult,
)
from msg_grants.scopes import normalize

logger = logging.getLogger(__name__)

RawScopes = Union[str, Iterable[str], None]


def _requested(raw: RawScopes, operation: Operation):
    requested = normalize(raw)
    if not requested:
        raise InvalidArgumentError(
            f"{operation.value} needs at least one scope", action=operation.value
        )
    return requested


def reconcile_add(
    selector: GrantSelector, existing: Optional[Grant], raw_scopes: RawScopes
) -> ReconciliationResult:
    requested = _requested(raw_scopes, Operation.ADD)

    if existing is None:
        selector.validate(targeting=True)
        result = ReconciliationResult(
            operation=Operation.ADD,
            action=Action.CREATE,
            selector=selector,
            existing=None,
            requested=requested,
            added_scopes=requested,
            resulting_scopes=requested,
            reason="No grant exists; one will be created",
        )
    else:
        current = existing.scopes
        added = requested - current
        if not added:
            result = ReconciliationResult(
                operation=Operation.ADD,
                action=Action.NOOP,
                selector=selector,
                existing=existing,
                requested=requested,
                skipped_scopes=requested,
                resulting_scopes=current,
                reason="All requested scopes are already granted",
            )
        else:
            result = ReconciliationResult(
                operation=Operation.ADD,
                action=Action.UPDATE,
                selector=selector,
                existing=existing,
                requested=requested,
                added_scopes=added,
                skipped_scopes=requested & current,
                resulting_scopes=current | requested,
            )

    logger.info("Add on %s -> %s", selector.describe(), result.action.value)
    return result


def reconcile_remove(
    selector: GrantSelector, existing: Optional[Grant], raw_scopes: RawScopes
) -> ReconciliationResult:
    requested = _requested(raw_scopes, Operation.REMOVE)

    if existing is None:
        result = ReconciliationResult(
            operation=Operation.REMOVE,
            action=Action.NOOP,
            selector=selector,
            existing=None,
            requested=requested,
            skipped_scopes=requested,
            reason="No matching grant; nothing to remove",
        )
        logger.info("Remove on %s -> NoOp (no grant)", selector.describe())
        return result

    current = existing.scopes
    not_found = requested - current
    removed = requested & current
    remaining = current - requested

    if not removed:
        action, reason = Action.NOOP, "None of the requested scopes are granted"
    elif not remaining:
        action, reason = Action.DELETE, "No scopes would remain; the grant will be deleted"
    else:
        action, reason = Action.UPDATE, ""

    result = ReconciliationResult(
        operation=Operation.REMOVE,
        action=action,
        selector=selector,
        existing=existing,
        requested=requested,
        removed_scopes=removed,
        skipped_scopes=not_found,
        resulting_scopes=remaining,
        reason=reason,
    )
    logger.info("Remove on %s -> %s", selector.describe(), action.value)
    return result


def reconcile(
    operation: Operation,
    selector: GrantSelector,
    existing: Optional[Grant],
    raw_scopes: RawScopes,
) -> ReconciliationResult:
    if operation == Operation.ADD:
        return reconcile_add(selector, existing, raw_scopes)
    if operation == Operation.REMOVE:
        return reconcile_remove(selector, existing, raw_scopes)
    raise InvalidArgumentError(f"{operation.value} does not change grants", action=operation.value)
