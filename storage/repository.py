"""
Data access layer for the node tree.

The repository pattern isolates database operations from the node
abstraction used by the access roles core.

Repository methods never commit: every change is flushed into the
caller's transaction and persisted by TreeSession.save().

Repository methods:
- TreeNode: get_root, ensure_root, get_by_path, get_child, list_children,
  create_child, create_path, delete, add_mixin, remove_mixin
- NodeProperty: get, set
"""

from sqlalchemy.orm import Session
from typing import List, Optional
import logging

from accessroles.paths import ROOT_PATH, child_path, normalize_path, parent_path
from storage.models import NodeProperty, TreeNode

logger = logging.getLogger(__name__)


class NodeRepository:
    """
    Repository for TreeNode database operations.

    Encapsulates all SQL queries related to tree nodes.
    """

    @staticmethod
    def get_root(db: Session) -> Optional[TreeNode]:
        """
        Get the root node.

        Args:
            db: Database session

        Returns:
            Root TreeNode or None if the tree was never initialized
        """
        return db.query(TreeNode).filter(TreeNode.path == ROOT_PATH).first()

    @staticmethod
    def ensure_root(db: Session) -> TreeNode:
        """
        Create the root node if it does not exist yet (IDEMPOTENT).

        Args:
            db: Database session

        Returns:
            Root TreeNode
        """
        root = NodeRepository.get_root(db)
        if root is None:
            root = TreeNode(name="", path=ROOT_PATH, mixins=[])
            db.add(root)
            db.flush()
            logger.info("Created root node")
        return root

    @staticmethod
    def get_by_path(db: Session, path: str) -> Optional[TreeNode]:
        """
        Get node by absolute path.

        Args:
            db: Database session
            path: Absolute node path

        Returns:
            TreeNode or None if not found
        """
        return db.query(TreeNode).filter(TreeNode.path == normalize_path(path)).first()

    @staticmethod
    def get_by_id(db: Session, node_id: int) -> Optional[TreeNode]:
        return db.get(TreeNode, node_id)

    @staticmethod
    def get_child(db: Session, parent: TreeNode, name: str) -> Optional[TreeNode]:
        """
        Get the first child of `parent` with the given name.

        Args:
            db: Database session
            parent: Parent node
            name: Child name

        Returns:
            TreeNode or None if there is no such child
        """
        return db.query(TreeNode).filter(
            TreeNode.parent_id == parent.id,
            TreeNode.name == name
        ).order_by(TreeNode.id).first()

    @staticmethod
    def list_children(db: Session, parent: TreeNode) -> List[TreeNode]:
        """
        Get all children of a node, in creation order.

        Args:
            db: Database session
            parent: Parent node

        Returns:
            List of TreeNode objects
        """
        return db.query(TreeNode).filter(
            TreeNode.parent_id == parent.id
        ).order_by(TreeNode.id).all()

    @staticmethod
    def create_child(db: Session, parent: TreeNode, name: str) -> TreeNode:
        """
        Create a child node.

        Same-name siblings are allowed; the first keeps the plain path and
        later ones get an index suffix ("/a/b[2]").

        Args:
            db: Database session
            parent: Parent node
            name: Child name (no slashes, not "." or "..")

        Returns:
            Created TreeNode
        """
        if not name or "/" in name or name in (".", ".."):
            raise ValueError(f"Invalid node name: '{name}'")

        base_path = child_path(parent.path, name)
        path = base_path
        index = 2
        while NodeRepository.get_by_path(db, path) is not None:
            path = f"{base_path}[{index}]"
            index += 1

        node = TreeNode(parent=parent, name=name, path=path, mixins=[])
        db.add(node)
        db.flush()

        logger.debug(f"Created node {path}")
        return node

    @staticmethod
    def create_path(db: Session, path: str) -> TreeNode:
        """
        Get the node at `path`, creating it and any missing ancestors.

        Args:
            db: Database session
            path: Absolute node path

        Returns:
            TreeNode at `path`
        """
        path = normalize_path(path)
        existing = NodeRepository.get_by_path(db, path)
        if existing is not None:
            return existing
        if path == ROOT_PATH:
            return NodeRepository.ensure_root(db)

        parent = NodeRepository.create_path(db, parent_path(path))
        return NodeRepository.create_child(db, parent, path.rsplit("/", 1)[-1])

    @staticmethod
    def delete(db: Session, node: TreeNode) -> None:
        """
        Delete a node with all its descendants and properties.

        Args:
            db: Database session
            node: Node to delete
        """
        logger.debug(f"Deleting node {node.path}")
        parent = node.parent
        if parent is not None and node in parent.children:
            parent.children.remove(node)
        else:
            db.delete(node)
        db.flush()

    @staticmethod
    def add_mixin(db: Session, node: TreeNode, mixin: str) -> None:
        mixins = list(node.mixins or [])
        if mixin not in mixins:
            # Reassign so the JSON column is flagged as changed
            node.mixins = mixins + [mixin]
            db.flush()

    @staticmethod
    def remove_mixin(db: Session, node: TreeNode, mixin: str) -> None:
        mixins = list(node.mixins or [])
        if mixin in mixins:
            node.mixins = [m for m in mixins if m != mixin]
            db.flush()


class PropertyRepository:
    """
    Repository for NodeProperty database operations.
    """

    @staticmethod
    def get(db: Session, node: TreeNode, name: str) -> Optional[NodeProperty]:
        """
        Get a property of a node.

        Returns:
            NodeProperty or None if the node has no such property
        """
        return db.query(NodeProperty).filter(
            NodeProperty.node_id == node.id,
            NodeProperty.name == name
        ).first()

    @staticmethod
    def set(
        db: Session,
        node: TreeNode,
        name: str,
        values: List[str],
        multiple: bool
    ) -> NodeProperty:
        """
        Create or overwrite a property.

        Args:
            db: Database session
            node: Owning node
            name: Property name
            values: Ordered string values
            multiple: False for a single string property

        Returns:
            The stored NodeProperty
        """
        prop = PropertyRepository.get(db, node, name)
        if prop is None:
            prop = NodeProperty(node=node, name=name, values=list(values), multiple=multiple)
            db.add(prop)
        else:
            prop.values = list(values)
            prop.multiple = multiple
        db.flush()
        return prop
