"""
Role resolution and role assignment for tree nodes.

A node that carries the assignable marker owns an ACL child holding one
assignment record per principal. Reads merge those records into a
principal -> roles map; effective reads on nodes without an ACL walk up
the tree to the nearest node that has one.

Classes:
  - RbaclAccessRolesProvider: resolve, replace, delete_all, locate

Functions:
  - validate_assignments: reject unusable assignment mappings
"""

from typing import Collection, Dict, FrozenSet, Mapping, Optional, Set, Tuple

from loguru import logger

from accessroles.constants import (
    ACL_NODE, ASSIGNABLE_MIXIN, ASSIGNMENT_NODE, DEFAULT_ACCESS_ROLES,
    PRINCIPAL_PROPERTY, ROLE_PROPERTY,
)
from accessroles.exceptions import (
    InvalidAssignmentsError, MalformedRecordError, NodeNotFoundError,
)
from accessroles.interfaces import AccessRolesProvider, Node, TreeSession
from accessroles.paths import ROOT_PATH, iter_ancestor_paths


def validate_assignments(assignments: Mapping[str, Collection[str]]) -> None:
    """
    Check a role assignment mapping before it is written.

    Raises:
        InvalidAssignmentsError if the mapping is empty, a principal is
        blank, a role collection is missing, empty or a bare string, or a
        role is blank
    """
    if not assignments:
        raise InvalidAssignmentsError("Role assignments must not be empty")

    for principal, roles in assignments.items():
        if not isinstance(principal, str) or not principal.strip():
            raise InvalidAssignmentsError("Principal name must not be empty")
        if isinstance(roles, (str, bytes)):
            raise InvalidAssignmentsError(f"Roles for principal '{principal}' must be a collection of role names")
        if not roles:
            raise InvalidAssignmentsError(f"Roles for principal '{principal}' must not be empty")
        for role in roles:
            if not isinstance(role, str) or not role.strip():
                raise InvalidAssignmentsError(f"Principal '{principal}' has an empty role name")


class RbaclAccessRolesProvider(AccessRolesProvider):
    """
    Provides the effective access roles for role based authorization.

    The provider is stateless between calls; every operation works inside
    the caller's session and never saves it.
    """

    def __init__(self, default_roles: Mapping[str, FrozenSet[str]] = None):
        self.default_roles = default_roles if default_roles is not None else DEFAULT_ACCESS_ROLES

    # ==================== RESOLUTION ====================

    def resolve(self, node: Node, effective: bool = False) -> Optional[Dict[str, Set[str]]]:
        """
        Get the roles for a node.

        Args:
            node: Node to resolve
            effective: Walk up to the nearest ancestor with an ACL when the
                node has none of its own

        Returns:
            principal -> roles, or None when the node has no ACL and
            effective roles were not requested
        """
        if node is None:
            raise ValueError("Cannot resolve roles without a node")

        logger.debug(f"Finding roles for: {node.path}, effective={effective}")

        if node.is_node_type(ASSIGNABLE_MIXIN):
            return self._get_assignments(node)

        if not effective:
            return None

        try:
            ancestor = node.get_parent()
            while ancestor is not None:
                if ancestor.is_node_type(ASSIGNABLE_MIXIN):
                    logger.debug(f"Effective roles are assigned at node: {ancestor.path}")
                    data = self._get_assignments(ancestor)
                    for principal, roles in data.items():
                        logger.debug(f"{principal} has role(s) {sorted(roles)}")
                    return data
                ancestor = ancestor.get_parent()
        except NodeNotFoundError as e:
            logger.debug(f"Subject not found, using default access roles: {e}")

        return self._default_roles()

    def _default_roles(self) -> Dict[str, Set[str]]:
        return {principal: set(roles) for principal, roles in self.default_roles.items()}

    def _get_assignments(self, node: Node) -> Dict[str, Set[str]]:
        """Merge every readable assignment record under the node's ACL."""
        data: Dict[str, Set[str]] = {}

        try:
            acl = node.get_node(ACL_NODE)
        except NodeNotFoundError:
            logger.info(f"Found assignable marker without a corresponding ACL node at {node.path}")
            return data

        for record in acl.get_nodes():
            try:
                principal, roles = self._read_record(record)
            except MalformedRecordError as e:
                logger.warning(f"Skipping assignment {record.path} on node {node.path}: {e}")
                continue
            data.setdefault(principal, set()).update(roles)

        return data

    @staticmethod
    def _read_record(record: Node) -> Tuple[str, Set[str]]:
        try:
            principal = record.get_property(PRINCIPAL_PROPERTY).string
        except NodeNotFoundError:
            raise MalformedRecordError("no principal name")
        if principal is None or not principal.strip():
            raise MalformedRecordError("found empty principal name")

        try:
            values = record.get_property(ROLE_PROPERTY).values
        except NodeNotFoundError:
            raise MalformedRecordError(f"no roles for principal '{principal}'")

        roles = set()
        for value in values:
            if value is None or not value.strip():
                logger.warning(f"Found empty role name on {record.path}")
                continue
            roles.add(value.strip())
        if not roles:
            raise MalformedRecordError(f"no roles for principal '{principal}'")

        return principal.strip(), roles

    # ==================== ASSIGNMENT ====================

    def replace(self, node: Node, assignments: Mapping[str, Collection[str]]) -> None:
        """
        Replace the role assignments of a node.

        Old records are removed before the new ones are written; the
        result does not depend on the iteration order of `assignments`.
        Changes are left for the caller to save.

        Raises:
            InvalidAssignmentsError before anything is written
        """
        validate_assignments(assignments)

        if not node.is_node_type(ASSIGNABLE_MIXIN):
            node.add_mixin(ASSIGNABLE_MIXIN)
            logger.debug(f"Added assignable marker to {node.path}")

        if node.has_node(ACL_NODE):
            acl = node.get_node(ACL_NODE)
            for record in list(acl.get_nodes()):
                record.remove()
        else:
            acl = node.add_node(ACL_NODE)

        for principal in sorted(assignments, key=str.strip):
            record = acl.add_node(ASSIGNMENT_NODE)
            record.set_property(PRINCIPAL_PROPERTY, principal.strip())
            record.set_property(ROLE_PROPERTY, sorted({role.strip() for role in assignments[principal]}))

        logger.info(f"Assigned roles for {len(assignments)} principal(s) at {node.path}")

    def delete_all(self, node: Node) -> None:
        """Remove the ACL and the assignable marker. No-op without an ACL."""
        if not node.is_node_type(ASSIGNABLE_MIXIN):
            return

        try:
            node.get_node(ACL_NODE).remove()
        except NodeNotFoundError as e:
            logger.debug(f"Cannot find ACL node: {e}")

        node.remove_mixin(ASSIGNABLE_MIXIN)
        logger.info(f"Removed role assignments at {node.path}")

    # ==================== PATH LOOKUP ====================

    def locate(self, session: TreeSession, path: str) -> Node:
        """
        Find the closest existing node at or above `path`.

        The root is assumed to exist; failure to read it propagates.
        """
        for candidate in iter_ancestor_paths(path):
            if candidate == ROOT_PATH:
                return session.get_root_node()
            try:
                return session.get_node(candidate)
            except NodeNotFoundError:
                logger.trace(f"Cannot find node: {candidate}, trying parent.")
