"""
Single entry point for View / Add / Remove.

Every run is a fresh sign-in check, locate, reconcile and apply cycle; nothing is
cached between runs. Concurrent writers are not coordinated: Graph offers no
version token on grants, so the last write wins.

Decisions:
- Arguments are validated before the first network call.
- A failed Create must not be retried blindly; run() again so the locator sees
  whether the first POST landed.
"""

import logging
from dataclasses import dataclass, field
from typing import Iterable, List, Optional, Union

from msg_grants.errors import GrantError, InvalidArgumentError
from msg_grants.locator import find_grant, list_matching_grants
from msg_grants.models import Action, ApplyOutcome, ConsentType, GrantSelector, Operation
from msg_grants.mutator import apply
from msg_grants.protocol import DirectorySession
from msg_grants.reconcile import reconcile
from msg_grants.resolve import describe_principal, resolve_service_principal_id
from msg_grants.scopes import normalize, ordered

logger = logging.getLogger(__name__)


@dataclass
class GrantRequest:
    operation: Operation
    consent_type: ConsentType
    client_sp_id: Optional[str] = None
    client_app_id: Optional[str] = None
    resource_id: Optional[str] = None
    resource_app_id: Optional[str] = None
    principal_id: Optional[str] = None
    scopes: Union[str, Iterable[str], None] = None
    dry_run: bool = False

    def context(self) -> dict:
        return {
            "action": self.operation.value,
            "client_id": self.client_sp_id or self.client_app_id,
            "resource_id": self.resource_id or self.resource_app_id,
            "consent_type": self.consent_type.value,
            "principal_id": self.principal_id,
        }

    def validate(self) -> None:
        """Checks that need no network."""
        if bool(self.client_sp_id) == bool(self.client_app_id):
            raise InvalidArgumentError("Exactly one of client id or client app id is required")
        if bool(self.resource_id) == bool(self.resource_app_id):
            raise InvalidArgumentError("Exactly one of resource id or resource app id is required")
        if self.consent_type == ConsentType.ALL_PRINCIPALS and self.principal_id:
            raise InvalidArgumentError("principalId is only valid with consentType Principal")
        if self.operation == Operation.VIEW:
            return
        if self.consent_type == ConsentType.PRINCIPAL and not self.principal_id:
            raise InvalidArgumentError("consentType Principal requires a principal id")
        if not normalize(self.scopes):
            raise InvalidArgumentError(f"{self.operation.value} needs at least one scope")


@dataclass
class GrantResponse:
    """Outcome of Add/Remove, live or dry run."""

    operation: Operation
    action: Action
    dry_run: bool
    applied: bool
    added_scopes: List[str]
    removed_scopes: List[str]
    skipped_scopes: List[str]
    resulting_scopes: List[str]
    grant_id: Optional[str] = None
    reason: str = ""

    @classmethod
    def from_outcome(cls, outcome: ApplyOutcome) -> "GrantResponse":
        result = outcome.result
        return cls(
            operation=result.operation,
            action=result.action,
            dry_run=outcome.dry_run,
            applied=outcome.applied,
            added_scopes=ordered(result.added_scopes),
            removed_scopes=ordered(result.removed_scopes),
            skipped_scopes=ordered(result.skipped_scopes),
            resulting_scopes=ordered(result.resulting_scopes),
            grant_id=outcome.grant_id,
            reason=result.reason,
        )

    def to_dict(self) -> dict:
        return {
            "operation": self.operation.value,
            "action": self.action.value,
            "dry_run": self.dry_run,
            "applied": self.applied,
            "added_scopes": self.added_scopes,
            "removed_scopes": self.removed_scopes,
            "skipped_scopes": self.skipped_scopes,
            "resulting_scopes": self.resulting_scopes,
            "grant_id": self.grant_id,
            "reason": self.reason,
        }

    def summary(self) -> str:
        verb = f"Would {self.action.value}" if self.dry_run and self.action != Action.NOOP else self.action.value
        lines = [f"{verb} (grant {self.grant_id or 'n/a'})"]
        if self.reason:
            lines.append(f"  {self.reason}")
        labels = (
            ("Added", self.added_scopes),
            ("Removed", self.removed_scopes),
            ("Skipped", self.skipped_scopes),
            ("Resulting", self.resulting_scopes),
        )
        for label, scopes in labels:
            if scopes or label == "Resulting":
                lines.append(f"  {label}: {' '.join(scopes) or '(none)'}")
        return "\n".join(lines)


@dataclass
class GrantView:
    grant_id: Optional[str]
    consent_type: ConsentType
    principal_id: Optional[str]
    principal_display: str
    scopes: List[str]

    def to_dict(self) -> dict:
        return {
            "grant_id": self.grant_id,
            "consent_type": self.consent_type.value,
            "principal_id": self.principal_id,
            "principal_display": self.principal_display,
            "scopes": self.scopes,
        }


@dataclass
class ViewResult:
    operation: Operation = Operation.VIEW
    grants: List[GrantView] = field(default_factory=list)

    def to_dict(self) -> dict:
        return {"operation": self.operation.value, "grants": [g.to_dict() for g in self.grants]}

    def summary(self) -> str:
        if not self.grants:
            return "No matching grants"
        lines = []
        for g in self.grants:
            lines.append(f"Grant {g.grant_id} ({g.consent_type.value}, {g.principal_display})")
            lines.append(f"  Scopes: {' '.join(g.scopes) or '(none)'}")
        return "\n".join(lines)


def _view(session: DirectorySession, client_sp_id: str, selector: GrantSelector) -> ViewResult:
    grants = list_matching_grants(session, client_sp_id, selector)
    views = [
        GrantView(
            grant_id=g.id,
            consent_type=g.consent_type,
            principal_id=g.principal_id,
            principal_display=describe_principal(session, g.principal_id),
            scopes=ordered(g.scopes),
        )
        for g in grants
    ]
    return ViewResult(grants=views)


def run(session: DirectorySession, request: GrantRequest) -> Union[GrantResponse, ViewResult]:
    """
    Execute one request end to end.

    Raises a GrantError subclass, with the request's identifiers attached, on any
    fatal failure. NoOp and "no grant found" are successful results.
    """
    try:
        request.validate()
        session.ensure_signed_in()

        client_sp_id = resolve_service_principal_id(
            session, request.client_sp_id, request.client_app_id, role="client service principal"
        )
        resource_id = resolve_service_principal_id(
            session, request.resource_id, request.resource_app_id, role="resource service principal"
        )
        selector = GrantSelector(
            resource_id=resource_id,
            consent_type=request.consent_type,
            principal_id=request.principal_id,
        )

        if request.operation == Operation.VIEW:
            selector.validate(targeting=False)
            return _view(session, client_sp_id, selector)

        existing = find_grant(session, client_sp_id, selector)
        result = reconcile(request.operation, selector, existing, request.scopes)
        outcome = apply(session, client_sp_id, result, dry_run=request.dry_run)
        return GrantResponse.from_outcome(outcome)
    except GrantError as e:
        raise e.with_context(**request.context())
