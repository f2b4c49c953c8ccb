"""Provide an in-memory Microsoft Graph served through httpx.MockTransport."""

import json
import re

import httpx
import pytest

from msg_grants.session import AccessTokenSession

GRAPH_BASE = "https://graph.test/v1.0"
CLIENT_SP = "11111111-aaaa-aaaa-aaaa-000000000001"
GRAPH_SP = "22222222-bbbb-bbbb-bbbb-000000000002"
OTHER_SP = "33333333-cccc-cccc-cccc-000000000003"
USER_ID = "44444444-dddd-dddd-dddd-000000000004"
GRAPH_APP_ID = "00000003-0000-0000-c000-000000000000"

_GRANTS = re.compile(r"^/servicePrincipals/([^/]+)/oauth2PermissionGrants$")
_GRANT = re.compile(r"^/oauth2PermissionGrants/([^/]+)$")
_USER = re.compile(r"^/users/([^/]+)$")
_SP_BY_APP = re.compile(r"^/servicePrincipals\(appId='([^']+)'\)$")


class FakeGraph:
    """Just enough of Graph for oauth2PermissionGrants, users and app id lookups."""

    def __init__(self, page_size: int = 100):
        self.grants = []
        self.users = {}
        self.service_principals = {}
        self.page_size = page_size
        self.requests = []
        self.failures = []
        self._next_id = 1

    def add_grant(self, resource_id, scope, consent_type="AllPrincipals", principal_id=None, client_id=CLIENT_SP):
        grant = {
            "id": f"grant-{self._next_id}",
            "clientId": client_id,
            "consentType": consent_type,
            "principalId": principal_id,
            "resourceId": resource_id,
            "scope": scope,
        }
        self._next_id += 1
        self.grants.append(grant)
        return grant

    def fail(self, method: str, status: int, body=None, path_prefix: str = ""):
        """Make requests with this method (and path prefix) answer with status."""
        self.failures.append((method, path_prefix, status, body))

    @property
    def mutations(self):
        return [(m, p) for m, p in self.requests if m in ("POST", "PATCH", "DELETE")]

    def grant(self, grant_id):
        return next((g for g in self.grants if g["id"] == grant_id), None)

    def handler(self, request: httpx.Request) -> httpx.Response:
        path = request.url.path[len("/v1.0"):]
        method = request.method
        self.requests.append((method, path))

        for fail_method, prefix, status, body in self.failures:
            if fail_method == method and path.startswith(prefix):
                return httpx.Response(status, json=body or {"error": {"code": "Injected", "message": "boom"}})

        m = _GRANTS.match(path)
        if m and method == "GET":
            return self._list(m.group(1), int(request.url.params.get("$skiptoken", "0")))

        if path == "/oauth2PermissionGrants" and method == "POST":
            body = json.loads(request.content)
            grant = self.add_grant(
                body["resourceId"],
                body["scope"],
                consent_type=body["consentType"],
                principal_id=body.get("principalId"),
                client_id=body["clientId"],
            )
            return httpx.Response(201, json=grant)

        m = _GRANT.match(path)
        if m:
            grant = self.grant(m.group(1))
            if grant is None:
                return httpx.Response(404, json={"error": {"code": "Request_ResourceNotFound", "message": "gone"}})
            if method == "PATCH":
                grant["scope"] = json.loads(request.content)["scope"]
                return httpx.Response(204)
            if method == "DELETE":
                self.grants.remove(grant)
                return httpx.Response(204)

        m = _USER.match(path)
        if m and method == "GET":
            user = self.users.get(m.group(1))
            if user is None:
                return httpx.Response(404, json={"error": {"code": "Request_ResourceNotFound", "message": "no user"}})
            return httpx.Response(200, json=user)

        m = _SP_BY_APP.match(path)
        if m and method == "GET":
            sp = self.service_principals.get(m.group(1))
            if sp is None:
                return httpx.Response(404, json={"error": {"code": "Request_ResourceNotFound", "message": "no sp"}})
            return httpx.Response(200, json=sp)

        return httpx.Response(400, json={"error": {"code": "BadRequest", "message": f"unhandled {method} {path}"}})

    def _list(self, client_id, offset):
        mine = [g for g in self.grants if g["clientId"] == client_id]
        page = mine[offset:offset + self.page_size]
        body = {"value": page}
        if offset + self.page_size < len(mine):
            body["@odata.nextLink"] = (
                f"{GRAPH_BASE}/servicePrincipals/{client_id}/oauth2PermissionGrants"
                f"?$skiptoken={offset + self.page_size}"
            )
        return httpx.Response(200, json=body)


@pytest.fixture
def fake_graph():
    return FakeGraph()


@pytest.fixture
def session(fake_graph):
    with AccessTokenSession("test-token", GRAPH_BASE, transport=httpx.MockTransport(fake_graph.handler)) as s:
        yield s
