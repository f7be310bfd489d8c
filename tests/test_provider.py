"""Role resolution, replacement and deletion against the SQL node tree."""

from unittest import mock

import pytest

from accessroles.constants import (ACL_NODE, ASSIGNABLE_MIXIN, DEFAULT_ACCESS_ROLES,
                                   ROLE_PROPERTY)
from accessroles.exceptions import (InvalidAssignmentsError, NodeNotFoundError,
                                    StorageFailure)
from accessroles.interfaces import Node
from accessroles.provider import RbaclAccessRolesProvider


# ==================== RESOLUTION ====================

def test_local_acl_is_used_for_effective_and_direct_lookups(tree, provider):
    parent = tree.create_node("/a")
    child = tree.create_node("/a/b")
    provider.replace(parent, {"alice": {"writer"}})
    provider.replace(child, {"bob": {"reader"}})

    assert provider.resolve(child, effective=True) == {"bob": {"reader"}}
    assert provider.resolve(child, effective=False) == {"bob": {"reader"}}


def test_assignable_node_without_acl_resolves_to_empty_map(tree, provider, log_records):
    parent = tree.create_node("/a")
    provider.replace(parent, {"alice": {"writer"}})
    child = tree.create_node("/a/b")
    child.add_mixin(ASSIGNABLE_MIXIN)

    assert provider.resolve(child, effective=True) == {}
    assert provider.resolve(child, effective=False) == {}
    assert any(r["level"].name == "INFO" and "/a/b" in r["message"] for r in log_records)


def test_empty_acl_does_not_inherit(tree, provider):
    parent = tree.create_node("/a")
    provider.replace(parent, {"alice": {"writer"}})
    child = tree.create_node("/a/b")
    child.add_mixin(ASSIGNABLE_MIXIN)
    child.add_node(ACL_NODE)

    assert provider.resolve(child, effective=True) == {}


def test_direct_lookup_never_consults_ancestors(tree, provider):
    provider.replace(tree.get_root_node(), {"alice": {"admin"}})
    provider.replace(tree.create_node("/a"), {"bob": {"writer"}})
    node = tree.create_node("/a/b/c")

    assert provider.resolve(node, effective=False) is None


def test_inherits_from_parent(tree, provider):
    # Scenario: /a has alice=writer, /a/b has nothing of its own
    provider.replace(tree.create_node("/a"), {"alice": {"writer"}})
    node = tree.create_node("/a/b")

    assert provider.resolve(node, effective=True) == {"alice": {"writer"}}
    assert provider.resolve(node, effective=False) is None


def test_nearest_ancestor_wins(tree, provider):
    provider.replace(tree.get_root_node(), {"root-admin": {"admin"}})
    a = tree.create_node("/a")
    b = tree.create_node("/a/b")
    c = tree.create_node("/a/b/c")
    provider.replace(a, {"alice": {"writer"}})
    provider.replace(c, {"carol": {"reader"}})

    assert provider.resolve(c, effective=True) == {"carol": {"reader"}}
    assert provider.resolve(b, effective=True) == {"alice": {"writer"}}


def test_root_acl_governs_whole_tree(tree, provider):
    provider.replace(tree.get_root_node(), {"EVERYONE": {"reader"}})
    node = tree.create_node("/x/y/z")

    assert provider.resolve(node, effective=True) == {"EVERYONE": {"reader"}}


def test_defaults_when_no_acl_anywhere(tree, provider):
    node = tree.create_node("/a/b")

    assert provider.resolve(node, effective=True) == {"EVERYONE": {"admin"}}
    assert provider.resolve(tree.get_root_node(), effective=True) == {"EVERYONE": {"admin"}}


def test_default_roles_are_not_shared_with_callers(tree, provider):
    roles = provider.resolve(tree.create_node("/a"), effective=True)
    roles["EVERYONE"].add("intruder")
    roles["mallory"] = {"admin"}

    assert DEFAULT_ACCESS_ROLES == {"EVERYONE": frozenset({"admin"})}
    assert provider.resolve(tree.create_node("/b"), effective=True) == {"EVERYONE": {"admin"}}


def test_custom_default_roles(tree):
    provider = RbaclAccessRolesProvider({"guests": frozenset({"reader"})})

    assert provider.resolve(tree.create_node("/a"), effective=True) == {"guests": {"reader"}}


def test_resolve_requires_a_node(provider):
    with pytest.raises(ValueError):
        provider.resolve(None, effective=True)


# ==================== MERGING ====================

def test_malformed_record_is_skipped(tree, provider, raw_assignment, log_records):
    node = tree.create_node("/a")
    raw_assignment(node, "   ", ["writer"])
    raw_assignment(node, "bob", ["reader"])

    assert provider.resolve(node) == {"bob": {"reader"}}
    assert any(r["level"].name == "WARNING" for r in log_records)


def test_record_without_principal_property_is_skipped(tree, provider, raw_assignment):
    node = tree.create_node("/a")
    raw_assignment(node, None, ["writer"])
    raw_assignment(node, "bob", ["reader"])

    assert provider.resolve(node) == {"bob": {"reader"}}


def test_record_without_usable_roles_is_skipped(tree, provider, raw_assignment):
    node = tree.create_node("/a")
    raw_assignment(node, "alice", None)
    raw_assignment(node, "carol", ["", "  "])
    raw_assignment(node, "bob", ["reader"])

    assert provider.resolve(node) == {"bob": {"reader"}}


def test_blank_roles_are_dropped_from_valid_record(tree, provider, raw_assignment, log_records):
    node = tree.create_node("/a")
    raw_assignment(node, "alice", ["writer", " ", " reader "])

    assert provider.resolve(node) == {"alice": {"writer", "reader"}}
    assert any("empty role" in r["message"] for r in log_records)


def test_records_for_same_principal_are_merged(tree, provider, raw_assignment):
    node = tree.create_node("/a")
    raw_assignment(node, "alice", ["writer", "reader"])
    raw_assignment(node, "alice ", ["reader", "admin"])

    assert provider.resolve(node) == {"alice": {"writer", "reader", "admin"}}


# ==================== REPLACE ====================

def test_replace_is_total(tree, provider):
    # Scenario: writing M2 leaves no residue of M1
    node = tree.create_node("/a")
    provider.replace(node, {"alice": {"writer", "reader"}})
    provider.replace(node, {"carol": {"admin"}})

    assert provider.resolve(node, effective=False) == {"carol": {"admin"}}
    assert provider.resolve(node, effective=True) == {"carol": {"admin"}}
    assert len(list(node.get_node(ACL_NODE).get_nodes())) == 1


def test_replace_deduplicates_and_trims(tree, provider):
    node = tree.create_node("/a")
    provider.replace(node, {" alice ": ["writer", "writer ", " reader"]})

    assert provider.resolve(node) == {"alice": {"writer", "reader"}}
    record = next(node.get_node(ACL_NODE).get_nodes())
    assert record.get_property(ROLE_PROPERTY).values == ["reader", "writer"]


def test_replace_stores_same_state_for_any_iteration_order(tree, provider):
    first = tree.create_node("/first")
    second = tree.create_node("/second")
    provider.replace(first, {"alice": ["b", "a"], "bob": ["c"]})
    provider.replace(second, {"bob": ["c"], "alice": ["a", "b"]})

    def stored(node):
        return [
            (record.get_property("rbacl:principal").string, record.get_property(ROLE_PROPERTY).values)
            for record in node.get_node(ACL_NODE).get_nodes()
        ]

    assert stored(first) == stored(second) == [("alice", ["a", "b"]), ("bob", ["c"])]


def test_replace_sets_marker_and_creates_container(tree, provider):
    node = tree.create_node("/a")
    assert not node.is_node_type(ASSIGNABLE_MIXIN)
    assert not node.has_node(ACL_NODE)

    provider.replace(node, {"alice": {"writer"}})

    assert node.is_node_type(ASSIGNABLE_MIXIN)
    assert node.has_node(ACL_NODE)


def test_read_never_creates_container(tree, provider):
    node = tree.create_node("/a/b")
    provider.resolve(node, effective=True)

    assert not node.has_node(ACL_NODE)
    assert not tree.get_node("/a").has_node(ACL_NODE)


@pytest.mark.parametrize("assignments", [
    {},
    {"": {"writer"}},
    {"  ": {"writer"}},
    {"alice": set()},
    {"alice": None},
    {"alice": {" "}},
    {"alice": "writer"},
    {"alice": b"writer"},
])
def test_replace_rejects_invalid_input_without_writing(tree, provider, assignments):
    node = tree.create_node("/a")
    provider.replace(node, {"bob": {"reader"}})

    with pytest.raises(InvalidAssignmentsError):
        provider.replace(node, assignments)

    assert provider.resolve(node) == {"bob": {"reader"}}


def test_replace_invalid_input_leaves_plain_node_untouched(tree, provider):
    node = tree.create_node("/a")

    with pytest.raises(InvalidAssignmentsError):
        provider.replace(node, {})

    assert not node.is_node_type(ASSIGNABLE_MIXIN)
    assert provider.resolve(node) is None


# ==================== DELETE ====================

def test_delete_all_removes_acl_and_marker(tree, provider):
    provider.replace(tree.create_node("/a"), {"alice": {"writer"}})
    node = tree.create_node("/a/b")
    provider.replace(node, {"bob": {"reader"}})

    provider.delete_all(node)

    assert not node.is_node_type(ASSIGNABLE_MIXIN)
    assert not node.has_node(ACL_NODE)
    assert provider.resolve(node) is None
    assert provider.resolve(node, effective=True) == {"alice": {"writer"}}


def test_delete_all_is_idempotent(tree, provider):
    node = tree.create_node("/a")
    provider.replace(node, {"alice": {"writer"}})

    provider.delete_all(node)
    provider.delete_all(node)

    assert provider.resolve(node) is None


def test_delete_all_without_acl_is_noop(tree, provider):
    node = tree.create_node("/a")
    provider.delete_all(node)

    assert provider.resolve(node) is None
    assert node.mixins == []


def test_delete_all_tolerates_missing_container(tree, provider):
    node = tree.create_node("/a")
    node.add_mixin(ASSIGNABLE_MIXIN)

    provider.delete_all(node)

    assert not node.is_node_type(ASSIGNABLE_MIXIN)


# ==================== FAILURES ====================

def _plain_node(path, parent=None, parent_error=None):
    node = mock.MagicMock(spec=Node)
    node.path = path
    node.is_node_type.return_value = False
    if parent_error is not None:
        node.get_parent.side_effect = parent_error
    else:
        node.get_parent.return_value = parent
    return node


def test_broken_parent_chain_uses_defaults(provider):
    middle = _plain_node("/a/b", parent_error=NodeNotFoundError("/a"))
    node = _plain_node("/a/b/c", parent=middle)

    assert provider.resolve(node, effective=True) == {"EVERYONE": {"admin"}}


def test_storage_failure_during_walk_propagates(provider):
    middle = _plain_node("/a/b", parent_error=StorageFailure("disk unreadable"))
    node = _plain_node("/a/b/c", parent=middle)

    with pytest.raises(StorageFailure):
        provider.resolve(node, effective=True)


def test_storage_failure_reading_acl_propagates(provider):
    node = mock.MagicMock(spec=Node)
    node.path = "/a"
    node.is_node_type.return_value = True
    node.get_node.side_effect = StorageFailure("corrupt")

    with pytest.raises(StorageFailure):
        provider.resolve(node)
