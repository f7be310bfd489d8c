"""
SQLAlchemy-backed implementation of the tree interfaces.

SqlTreeSession wraps one SQLAlchemy Session (one unit of work); SqlNode
wraps one TreeNode row of that session. Missing nodes and properties
raise NodeNotFoundError; SQLAlchemy errors are re-raised as StorageFailure.
"""

from functools import wraps
from typing import Callable, Iterator, List, Optional, Union
import logging

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from accessroles.exceptions import NodeNotFoundError, StorageFailure
from accessroles.interfaces import Node, Property, TreeSession
from accessroles.paths import child_path, normalize_path
from storage.models import TreeNode
from storage.repository import NodeRepository, PropertyRepository

logger = logging.getLogger(__name__)


def translate_errors(func):
    """Re-raise SQLAlchemy errors as StorageFailure."""
    @wraps(func)
    def wrapper(*args, **kwargs):
        try:
            return func(*args, **kwargs)
        except SQLAlchemyError as e:
            logger.error(f"Storage error in {func.__name__}: {e}")
            raise StorageFailure(str(e)) from e
    return wrapper


class SqlNode(Node):
    """A tree node stored in the tree_nodes table."""

    def __init__(self, db: Session, row: TreeNode):
        self._db = db
        self._row = row

    def __repr__(self):
        return f"<SqlNode(path='{self._row.path}')>"

    def __eq__(self, other):
        return isinstance(other, SqlNode) and other._row.id == self._row.id

    def __hash__(self):
        return hash(self._row.id)

    @property
    def path(self) -> str:
        return self._row.path

    @property
    def name(self) -> str:
        return self._row.name

    @property
    def mixins(self) -> List[str]:
        return list(self._row.mixins or [])

    @translate_errors
    def get_parent(self) -> "SqlNode":
        if self._row.parent_id is None:
            raise NodeNotFoundError(self.path, "Root node has no parent")
        parent = NodeRepository.get_by_id(self._db, self._row.parent_id)
        if parent is None:
            raise NodeNotFoundError(self.path, f"Parent of {self.path} not found")
        return SqlNode(self._db, parent)

    def is_node_type(self, mixin: str) -> bool:
        return mixin in (self._row.mixins or [])

    @translate_errors
    def add_mixin(self, mixin: str) -> None:
        NodeRepository.add_mixin(self._db, self._row, mixin)

    @translate_errors
    def remove_mixin(self, mixin: str) -> None:
        NodeRepository.remove_mixin(self._db, self._row, mixin)

    @translate_errors
    def has_node(self, name: str) -> bool:
        return NodeRepository.get_child(self._db, self._row, name) is not None

    @translate_errors
    def get_node(self, name: str) -> "SqlNode":
        child = NodeRepository.get_child(self._db, self._row, name)
        if child is None:
            raise NodeNotFoundError(child_path(self.path, name))
        return SqlNode(self._db, child)

    @translate_errors
    def add_node(self, name: str) -> "SqlNode":
        return SqlNode(self._db, NodeRepository.create_child(self._db, self._row, name))

    @translate_errors
    def get_nodes(self) -> Iterator["SqlNode"]:
        children = NodeRepository.list_children(self._db, self._row)
        return iter([SqlNode(self._db, child) for child in children])

    @translate_errors
    def remove(self) -> None:
        NodeRepository.delete(self._db, self._row)

    @translate_errors
    def get_property(self, name: str) -> Property:
        prop = PropertyRepository.get(self._db, self._row, name)
        if prop is None:
            raise NodeNotFoundError(f"{self.path}/@{name}", f"Property {name} not found on {self.path}")
        return Property(name=prop.name, values=list(prop.values or []), multiple=prop.multiple)

    @translate_errors
    def set_property(self, name: str, value: Union[str, List[str]]) -> None:
        if isinstance(value, str):
            PropertyRepository.set(self._db, self._row, name, [value], multiple=False)
        else:
            PropertyRepository.set(self._db, self._row, name, list(value), multiple=True)


class SqlTreeSession(TreeSession):
    """
    One unit of work against the node tree.

    `on_logout` is called once, after the session is closed.

    Usage:
        tree = SqlTreeSession(SessionLocal())
        try:
            node = tree.get_node("/a/b")
            ...
            tree.save()
        finally:
            tree.logout()
    """

    def __init__(self, db: Session, on_logout: Optional[Callable[[], None]] = None):
        self.db = db
        self._on_logout = on_logout

    @translate_errors
    def get_node(self, path: str) -> SqlNode:
        row = NodeRepository.get_by_path(self.db, path)
        if row is None:
            raise NodeNotFoundError(normalize_path(path))
        return SqlNode(self.db, row)

    @translate_errors
    def get_root_node(self) -> SqlNode:
        row = NodeRepository.get_root(self.db)
        if row is None:
            raise StorageFailure("Root node is missing; the tree was not initialized")
        return SqlNode(self.db, row)

    @translate_errors
    def create_node(self, path: str) -> SqlNode:
        """Get or create the node at `path` along with any missing ancestors."""
        return SqlNode(self.db, NodeRepository.create_path(self.db, path))

    @translate_errors
    def save(self) -> None:
        try:
            self.db.commit()
        except SQLAlchemyError:
            self.db.rollback()
            raise

    def logout(self) -> None:
        try:
            self.db.close()
        except SQLAlchemyError as e:
            logger.error(f"Failed to close session: {e}")
        finally:
            # Runs once, even if logout() is called again
            on_logout, self._on_logout = self._on_logout, None
            if on_logout is not None:
                on_logout()
