"""Tests for permission edge wiring."""
from provisioner.core.graph.models import SCOPE, RequiredResourceAccess, ResourceAccess
from provisioner.core.models import STATUS_ADOPTED, PermissionEdge, ProvisionOutcome, ResourceIdentity
from provisioner.core.permissions import PermissionWiring, merge_scope
from tests.fakes import api_error


def outcome_for(directory, name, scopes=()):
    app = directory.add_application(f"myapp-dev-{name}", scopes=scopes)
    return ProvisionOutcome(
        name=name,
        display_name=app.display_name,
        kind="web",
        identity=ResourceIdentity(app.object_id, app.app_id, None),
        status=STATUS_ADOPTED,
        credential="",
    )


def declared(directory, outcome):
    return directory.applications[outcome.identity.object_id]["requiredResourceAccess"]


# ─────────────────────────────────────────────────────────────────────────────
# merge_scope
# ─────────────────────────────────────────────────────────────────────────────
def test_merge_adds_new_resource_entry():
    updated, changed = merge_scope((), "target", "scope-1")

    assert changed
    assert updated == [RequiredResourceAccess("target", (ResourceAccess("scope-1", SCOPE),))]


def test_merge_extends_existing_resource_entry():
    entries = (
        RequiredResourceAccess("graph", (ResourceAccess("user-read"),)),
        RequiredResourceAccess("target", (ResourceAccess("scope-0"),)),
    )

    updated, changed = merge_scope(entries, "target", "scope-1")

    assert changed
    assert updated[0] == entries[0]
    assert [a.id for a in updated[1].resource_access] == ["scope-0", "scope-1"]


def test_merge_is_noop_when_already_declared():
    entries = (RequiredResourceAccess("target", (ResourceAccess("scope-1"),)),)

    updated, changed = merge_scope(entries, "target", "scope-1")

    assert not changed
    assert updated == list(entries)


# ─────────────────────────────────────────────────────────────────────────────
# PermissionWiring
# ─────────────────────────────────────────────────────────────────────────────
def test_edge_declares_target_scope_on_source(directory):
    source = outcome_for(directory, "client")
    target = outcome_for(directory, "api", scopes=("api.access",))
    scope_id = directory.applications[target.identity.object_id]["api"]["oauth2PermissionScopes"][0]["id"]

    warnings = PermissionWiring(directory).wire([source, target], [PermissionEdge("client", "api", "api.access")])

    assert warnings == []
    assert declared(directory, source) == [
        {"resourceAppId": target.identity.app_id, "resourceAccess": [{"id": scope_id, "type": "Scope"}]}
    ]


def test_rewiring_does_not_duplicate_grants(directory):
    source = outcome_for(directory, "client")
    target = outcome_for(directory, "api", scopes=("api.access",))
    edge = PermissionEdge("client", "api", "api.access")
    wiring = PermissionWiring(directory)

    wiring.wire([source, target], [edge])
    wiring.wire([source, target], [edge, edge])

    entries = declared(directory, source)
    assert len(entries) == 1
    assert len(entries[0]["resourceAccess"]) == 1
    assert directory.count("update_application") == 1


def test_existing_unrelated_permissions_are_preserved(directory):
    source = outcome_for(directory, "client")
    directory.applications[source.identity.object_id]["requiredResourceAccess"] = [
        {"resourceAppId": "graph", "resourceAccess": [{"id": "user-read", "type": "Scope"}]}
    ]
    target = outcome_for(directory, "api", scopes=("api.access",))

    PermissionWiring(directory).wire([source, target], [PermissionEdge("client", "api", "api.access")])

    assert [entry["resourceAppId"] for entry in declared(directory, source)] == ["graph", target.identity.app_id]


def test_missing_endpoint_is_skipped_with_warning(directory):
    source = outcome_for(directory, "client")

    warnings = PermissionWiring(directory).wire([source], [PermissionEdge("client", "api", "api.access")])

    assert warnings == ["Permission client -> api (api.access) skipped: api not provisioned"]
    assert directory.count("update_application") == 0


def test_unknown_scope_is_skipped_with_warning(directory):
    source = outcome_for(directory, "client")
    target = outcome_for(directory, "api", scopes=("other",))

    warnings = PermissionWiring(directory).wire([source, target], [PermissionEdge("client", "api", "api.access")])

    assert len(warnings) == 1
    assert "scope 'api.access' not exposed" in warnings[0]


def test_update_failure_does_not_stop_other_edges(directory):
    a = outcome_for(directory, "a")
    b = outcome_for(directory, "b")
    target = outcome_for(directory, "api", scopes=("api.access",))
    directory.fail("update_application", api_error(400, "Invalid requiredResourceAccess"))

    warnings = PermissionWiring(directory).wire(
        [a, b, target],
        [PermissionEdge("a", "api", "api.access"), PermissionEdge("b", "api", "api.access")],
    )

    assert len(warnings) == 1
    assert warnings[0].startswith("Permission a -> api (api.access) failed:")
    assert len(declared(directory, b)) == 1


def test_target_application_is_fetched_once(directory):
    a = outcome_for(directory, "a")
    b = outcome_for(directory, "b")
    target = outcome_for(directory, "api", scopes=("api.access",))

    PermissionWiring(directory).wire(
        [a, b, target],
        [PermissionEdge("a", "api", "api.access"), PermissionEdge("b", "api", "api.access")],
    )

    # one target read plus one read per source
    assert directory.count("get_application") == 3
