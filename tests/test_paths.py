"""Path helpers and closest-existing-node lookup."""

from unittest import mock

import pytest

from accessroles.exceptions import NodeNotFoundError, StorageFailure
from accessroles.interfaces import TreeSession
from accessroles.paths import child_path, iter_ancestor_paths, normalize_path, parent_path


@pytest.mark.parametrize("raw, expected", [
    (None, "/"),
    ("", "/"),
    ("/", "/"),
    ("a", "/a"),
    ("/a/b/", "/a/b"),
    ("//a///b", "/a/b"),
    ("/a/./b", "/a/b"),
    ("/a/../b", "/b"),
    ("a/b/..", "/a"),
    ("/../../a", "/a"),
    ("/a/..", "/"),
])
def test_normalize_path(raw, expected):
    assert normalize_path(raw) == expected


def test_parent_path():
    assert parent_path("/a/b/c") == "/a/b"
    assert parent_path("/a") == "/"
    assert parent_path("/") is None


def test_iter_ancestor_paths_ends_at_root():
    assert list(iter_ancestor_paths("/a/b/c")) == ["/a/b/c", "/a/b", "/a", "/"]
    assert list(iter_ancestor_paths("/")) == ["/"]


def test_child_path():
    assert child_path("/", "a") == "/a"
    assert child_path("/a", "b") == "/a/b"


# ==================== LOCATE ====================

def test_locate_existing_node(tree, provider):
    node = tree.create_node("/a/b")

    assert provider.locate(tree, "/a/b") == node


def test_locate_walks_up_to_closest_existing_node(tree, provider):
    tree.create_node("/a/b")

    assert provider.locate(tree, "/a/b/not/yet/here").path == "/a/b"


def test_locate_falls_back_to_root(tree, provider):
    assert provider.locate(tree, "/missing/child").path == "/"


def test_resolve_by_path_uses_closest_node(tree, provider):
    provider.replace(tree.create_node("/a"), {"alice": {"writer"}})

    assert provider.resolve_by_path(tree, "/a/b/new-child") == {"alice": {"writer"}}
    assert provider.resolve_by_path(tree, "/other/new-child") == {"EVERYONE": {"admin"}}


def test_resolve_by_path_on_node_with_own_acl(tree, provider):
    provider.replace(tree.create_node("/a"), {"alice": {"writer"}})
    provider.replace(tree.create_node("/a/b"), {"bob": {"reader"}})

    assert provider.resolve_by_path(tree, "/a/b") == {"bob": {"reader"}}


def test_locate_unreadable_root_is_fatal(provider):
    session = mock.MagicMock(spec=TreeSession)
    session.get_node.side_effect = NodeNotFoundError("/a")
    session.get_root_node.side_effect = StorageFailure("root unreadable")

    with pytest.raises(StorageFailure):
        provider.locate(session, "/a/b")

    assert [c.args[0] for c in session.get_node.call_args_list] == ["/a/b", "/a"]


def test_locate_propagates_storage_failure(provider):
    session = mock.MagicMock(spec=TreeSession)
    session.get_node.side_effect = StorageFailure("io error")

    with pytest.raises(StorageFailure):
        provider.locate(session, "/a/b")
    session.get_root_node.assert_not_called()


def test_locate_collapses_dot_segments(tree, provider):
    tree.create_node("/a")

    assert provider.locate(tree, "/a/b/../c/./d").path == "/a"
    assert provider.locate(tree, "/a/../../a").path == "/a"
