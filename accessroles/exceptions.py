"""
Exceptions raised by the access roles core and its storage collaborators.

Hierarchy:
  - AccessRolesError: base class
  - NodeNotFoundError: a node or property is genuinely absent
  - MalformedRecordError: an assignment record cannot be read (skipped on read)
  - InvalidAssignmentsError: caller supplied an unusable assignment mapping
  - StorageFailure: any storage error other than "not found"
"""

from typing import Optional


class AccessRolesError(Exception):
    """Base class for access roles errors."""


class NodeNotFoundError(AccessRolesError, LookupError):
    """Raised when a node, child node or property does not exist."""

    def __init__(self, path: str, message: Optional[str] = None):
        self.path = path
        super().__init__(message or f"Node not found: {path}")


class MalformedRecordError(AccessRolesError):
    """Raised when an assignment record has an empty principal or no roles."""


class InvalidAssignmentsError(AccessRolesError, ValueError):
    """Raised when a role assignment mapping fails validation."""


class StorageFailure(AccessRolesError):
    """Raised when the tree storage reports an error unrelated to not-found."""
