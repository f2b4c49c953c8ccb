import pytest

from msg_grants.errors import InvalidArgumentError
from msg_grants.models import Action, ConsentType, Grant, GrantSelector
from msg_grants.reconcile import reconcile_add, reconcile_remove
from msg_grants.scopes import normalize

SELECTOR = GrantSelector(resource_id="resource-1", consent_type=ConsentType.ALL_PRINCIPALS)


def grant(scope):
    return Grant(id="grant-1", consentType="AllPrincipals", resourceId="resource-1", scope=scope)


def test_add_merges_into_existing_grant():
    result = reconcile_add(SELECTOR, grant("User.Read"), "Mail.Read,User.Read")

    assert result.action == Action.UPDATE
    assert result.added_scopes == {"Mail.Read"}
    assert result.resulting_scopes == {"Mail.Read", "User.Read"}
    assert result.skipped_scopes == {"User.Read"}
    assert result.grant_id == "grant-1"


def test_add_of_present_scopes_is_noop():
    result = reconcile_add(SELECTOR, grant("Mail.Read User.Read"), ["User.Read", "User.Read"])

    assert result.action == Action.NOOP
    assert result.skipped_scopes == {"User.Read"}
    assert result.added_scopes == frozenset()
    assert result.resulting_scopes == {"Mail.Read", "User.Read"}


def test_add_without_grant_creates():
    result = reconcile_add(SELECTOR, None, "User.Read Mail.Read")

    assert result.action == Action.CREATE
    assert result.resulting_scopes == {"Mail.Read", "User.Read"}
    assert result.grant_id is None


def test_create_for_principal_needs_principal_id():
    selector = GrantSelector(resource_id="resource-1", consent_type=ConsentType.PRINCIPAL)
    with pytest.raises(InvalidArgumentError):
        reconcile_add(selector, None, "User.Read")


@pytest.mark.parametrize("raw", ["", " , ", [], None])
def test_empty_request_is_invalid(raw):
    with pytest.raises(InvalidArgumentError):
        reconcile_add(SELECTOR, grant("User.Read"), raw)
    with pytest.raises(InvalidArgumentError):
        reconcile_remove(SELECTOR, grant("User.Read"), raw)


@pytest.mark.parametrize(
    "existing, requested",
    [
        ("", "A"),
        ("A B", "B C"),
        ("A", "A"),
        ("Z y x", "a,B"),
    ],
)
def test_add_never_shrinks(existing, requested):
    result = reconcile_add(SELECTOR, grant(existing), requested)
    assert result.resulting_scopes >= normalize(existing)


def test_remove_some_scopes_updates():
    result = reconcile_remove(SELECTOR, grant("Mail.Read User.Read openid"), "openid Calendars.Read")

    assert result.action == Action.UPDATE
    assert result.removed_scopes == {"openid"}
    assert result.skipped_scopes == {"Calendars.Read"}
    assert result.resulting_scopes == {"Mail.Read", "User.Read"}


def test_removing_every_scope_deletes():
    result = reconcile_remove(SELECTOR, grant("User.Read Mail.Read"), "User.Read Mail.Read")

    assert result.action == Action.DELETE
    assert result.resulting_scopes == frozenset()


def test_removing_last_scope_among_unknown_ones_still_deletes():
    result = reconcile_remove(SELECTOR, grant("User.Read"), "User.Read,Nope.Read")

    assert result.action == Action.DELETE
    assert result.skipped_scopes == {"Nope.Read"}


def test_remove_without_grant_is_noop():
    result = reconcile_remove(SELECTOR, None, "User.Read")

    assert result.action == Action.NOOP
    assert result.skipped_scopes == {"User.Read"}
    assert "nothing to remove" in result.reason


def test_remove_of_absent_scopes_is_noop():
    result = reconcile_remove(SELECTOR, grant("User.Read"), "Mail.Read")

    assert result.action == Action.NOOP
    assert result.resulting_scopes == {"User.Read"}


def test_remove_never_leaves_removed_scopes():
    result = reconcile_remove(SELECTOR, grant("A B C D"), "B D E")
    assert not (result.resulting_scopes & result.removed_scopes)
    assert not (result.resulting_scopes & result.requested)


def test_add_then_remove_restores_original():
    original = grant("Mail.Read User.Read")
    added = reconcile_add(SELECTOR, original, "Files.Read Sites.Read.All")
    after_add = grant(" ".join(added.resulting_scopes))

    removed = reconcile_remove(SELECTOR, after_add, "Files.Read Sites.Read.All")

    assert removed.resulting_scopes == original.scopes
