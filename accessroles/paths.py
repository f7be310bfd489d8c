"""Helpers for absolute, slash-separated node paths."""

from typing import Iterator, Optional

ROOT_PATH = "/"


def normalize_path(path: Optional[str]) -> str:
    """
    Normalize a node path.

    Collapses repeated slashes, drops a trailing slash and makes the path
    absolute. An empty path is the root. "." segments are dropped and ".."
    removes the preceding segment; ".." never climbs above the root.

    Example:
        normalize_path("a//b/") -> "/a/b"
        normalize_path("/a/../b") -> "/b"
    """
    if not path:
        return ROOT_PATH
    segments = []
    for segment in path.split("/"):
        if segment in ("", "."):
            continue
        if segment == "..":
            if segments:
                segments.pop()
            continue
        segments.append(segment)
    return ROOT_PATH + "/".join(segments)


def parent_path(path: str) -> Optional[str]:
    """Return the parent of `path`, or None for the root."""
    path = normalize_path(path)
    if path == ROOT_PATH:
        return None
    head, _, _ = path.rpartition("/")
    return head or ROOT_PATH


def iter_ancestor_paths(path: str) -> Iterator[str]:
    """Yield `path` and then each of its ancestors, ending with the root."""
    current = normalize_path(path)
    while current is not None:
        yield current
        current = parent_path(current)


def child_path(path: str, name: str) -> str:
    path = normalize_path(path)
    if path == ROOT_PATH:
        return ROOT_PATH + name
    return f"{path}/{name}"
