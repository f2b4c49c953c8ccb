"""
Typed models for Graph payloads and reconciliation values.

Graph responses are parsed into pydantic models so a malformed page fails loudly
instead of being coerced. Values computed by the engine are plain frozen dataclasses.
"""

from dataclasses import dataclass
from enum import Enum
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

from msg_grants.errors import InvalidArgumentError
from msg_grants.scopes import ScopeSet, normalize


class ConsentType(str, Enum):
    ALL_PRINCIPALS = "AllPrincipals"
    PRINCIPAL = "Principal"

    @classmethod
    def _missing_(cls, value):
        # Accept any casing ("allprincipals") from CLI input and Graph alike.
        if isinstance(value, str):
            for member in cls:
                if member.value.lower() == value.strip().lower():
                    return member
        return None


class Operation(str, Enum):
    VIEW = "View"
    ADD = "Add"
    REMOVE = "Remove"

    @classmethod
    def _missing_(cls, value):
        if isinstance(value, str):
            for member in cls:
                if member.value.lower() == value.strip().lower():
                    return member
        return None


class Action(str, Enum):
    NOOP = "NoOp"
    CREATE = "Create"
    UPDATE = "Update"
    DELETE = "Delete"


def same_id(a: Optional[str], b: Optional[str]) -> bool:
    """Compare directory object ids; Graph GUIDs are case-insensitive."""
    if a is None or b is None:
        return a is b
    return a.strip().lower() == b.strip().lower()


class _GraphModel(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="ignore")


class Grant(_GraphModel):
    """An oauth2PermissionGrant as stored by Graph."""

    id: Optional[str] = None
    client_id: Optional[str] = Field(None, alias="clientId")
    consent_type: ConsentType = Field(alias="consentType")
    principal_id: Optional[str] = Field(None, alias="principalId")
    resource_id: str = Field(alias="resourceId")
    scope: str = ""

    @field_validator("scope", mode="before")
    @classmethod
    def _null_scope(cls, value):
        return "" if value is None else value

    @property
    def scopes(self) -> ScopeSet:
        return normalize(self.scope)


class GrantPage(_GraphModel):
    """One page of GET /servicePrincipals/{id}/oauth2PermissionGrants."""

    value: List[Grant]
    next_link: Optional[str] = Field(None, alias="@odata.nextLink")


class ServicePrincipal(_GraphModel):
    id: str
    app_id: Optional[str] = Field(None, alias="appId")
    display_name: Optional[str] = Field(None, alias="displayName")


class User(_GraphModel):
    id: Optional[str] = None
    user_principal_name: Optional[str] = Field(None, alias="userPrincipalName")
    display_name: Optional[str] = Field(None, alias="displayName")


@dataclass(frozen=True)
class GrantSelector:
    """Identifies one grant of a client service principal."""

    resource_id: str
    consent_type: ConsentType
    principal_id: Optional[str] = None

    def validate(self, targeting: bool = True) -> "GrantSelector":
        """
        Reject selectors that cannot be acted on.

        When targeting a single grant (Add/Remove) a Principal selector needs a
        principal id. For enumeration (View) it may be omitted and then matches
        every per-principal grant for the resource.
        """
        if not self.resource_id or not self.resource_id.strip():
            raise InvalidArgumentError("A resource service principal id is required")
        if self.consent_type == ConsentType.ALL_PRINCIPALS and self.principal_id:
            raise InvalidArgumentError(
                "principalId is only valid with consentType Principal",
                principal_id=self.principal_id,
            )
        if targeting and self.consent_type == ConsentType.PRINCIPAL and not self.principal_id:
            raise InvalidArgumentError(
                "consentType Principal requires a principal id",
                resource_id=self.resource_id,
            )
        return self

    def matches(self, grant: Grant) -> bool:
        if not same_id(grant.resource_id, self.resource_id):
            return False
        if grant.consent_type != self.consent_type:
            return False
        if self.consent_type == ConsentType.PRINCIPAL and self.principal_id:
            return same_id(grant.principal_id, self.principal_id)
        return True

    def describe(self) -> dict:
        return {
            "resource_id": self.resource_id,
            "consent_type": self.consent_type.value,
            "principal_id": self.principal_id,
        }


@dataclass(frozen=True)
class ReconciliationResult:
    """What an Add/Remove would do to the located grant. Never persisted."""

    operation: Operation
    action: Action
    selector: GrantSelector
    existing: Optional[Grant]
    requested: ScopeSet
    added_scopes: ScopeSet = frozenset()
    removed_scopes: ScopeSet = frozenset()
    skipped_scopes: ScopeSet = frozenset()
    resulting_scopes: ScopeSet = frozenset()
    reason: str = ""

    @property
    def grant_id(self) -> Optional[str]:
        return self.existing.id if self.existing else None


@dataclass(frozen=True)
class ApplyOutcome:
    result: ReconciliationResult
    dry_run: bool
    applied: bool
    grant_id: Optional[str] = None
