from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Collection, Dict, Iterator, List, Mapping, Optional, Set, Union


@dataclass
class Property:
    """A node property holding a single string or an ordered list of strings."""
    name: str
    values: List[str] = field(default_factory=list)
    multiple: bool = False

    @property
    def string(self) -> Optional[str]:
        """First value of the property (the value of a single-valued property)."""
        return self.values[0] if self.values else None


class Node(ABC):
    """
    Abstract node of the hierarchical tree.

    Lookups that find nothing raise NodeNotFoundError; every other storage
    error surfaces as StorageFailure.
    """

    @property
    @abstractmethod
    def path(self) -> str:
        """Absolute path of the node."""
        pass

    @property
    @abstractmethod
    def name(self) -> str:
        """Last path segment (empty for the root)."""
        pass

    @abstractmethod
    def get_parent(self) -> "Node":
        """Get the parent node. Raises NodeNotFoundError for the root."""
        pass

    @abstractmethod
    def is_node_type(self, mixin: str) -> bool:
        """Whether the node carries the given structural marker."""
        pass

    @abstractmethod
    def add_mixin(self, mixin: str) -> None:
        """Attach a structural marker."""
        pass

    @abstractmethod
    def remove_mixin(self, mixin: str) -> None:
        """Detach a structural marker."""
        pass

    @abstractmethod
    def has_node(self, name: str) -> bool:
        """Whether a child with this name exists."""
        pass

    @abstractmethod
    def get_node(self, name: str) -> "Node":
        """Get the first child with this name."""
        pass

    @abstractmethod
    def add_node(self, name: str) -> "Node":
        """Create a child; same-name siblings are allowed."""
        pass

    @abstractmethod
    def get_nodes(self) -> Iterator["Node"]:
        """Iterate over the children in creation order."""
        pass

    @abstractmethod
    def remove(self) -> None:
        """Remove this node and everything below it."""
        pass

    @abstractmethod
    def get_property(self, name: str) -> Property:
        """Read a property."""
        pass

    @abstractmethod
    def set_property(self, name: str, value: Union[str, List[str]]) -> None:
        """Write a string (single) or list of strings (multiple) property."""
        pass


class TreeSession(ABC):
    """Unit of work against the tree storage."""

    @abstractmethod
    def get_node(self, path: str) -> Node:
        """Get the node at an absolute path."""
        pass

    @abstractmethod
    def get_root_node(self) -> Node:
        """Get the root node."""
        pass

    @abstractmethod
    def save(self) -> None:
        """Persist pending changes."""
        pass

    @abstractmethod
    def logout(self) -> None:
        """Release the session, discarding unsaved changes."""
        pass


class AccessRolesProvider(ABC):
    """Abstract base class for access roles providers."""

    @abstractmethod
    def resolve(self, node: Node, effective: bool = False) -> Optional[Dict[str, Set[str]]]:
        """Get the roles assigned at (or, when effective, governing) a node."""
        pass

    @abstractmethod
    def replace(self, node: Node, assignments: Mapping[str, Collection[str]]) -> None:
        """Replace every role assignment on a node."""
        pass

    @abstractmethod
    def delete_all(self, node: Node) -> None:
        """Remove all role assignment state from a node."""
        pass

    @abstractmethod
    def locate(self, session: TreeSession, path: str) -> Node:
        """Find the closest existing node at or above a path."""
        pass

    def resolve_by_path(self, session: TreeSession, path: str) -> Optional[Dict[str, Set[str]]]:
        """Effective roles for a path that may not exist yet."""
        return self.resolve(self.locate(session, path), effective=True)
