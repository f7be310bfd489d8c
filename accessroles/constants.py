"""
Structural names used to store role assignments on tree nodes.

A node bearing access control carries the ASSIGNABLE_MIXIN marker and a
single ACL_NODE child. The ACL node owns one ASSIGNMENT_NODE child per
principal, each with a PRINCIPAL_PROPERTY string and a ROLE_PROPERTY list.
"""

from types import MappingProxyType
from typing import FrozenSet, Mapping

ASSIGNABLE_MIXIN = "rbacl:assignable"
ACL_NODE = "rbacl:acl"
ASSIGNMENT_NODE = "rbacl:assignment"
PRINCIPAL_PROPERTY = "rbacl:principal"
ROLE_PROPERTY = "rbacl:role"

EVERYONE = "EVERYONE"

# Applied when no node up the tree carries an ACL
DEFAULT_ACCESS_ROLES: Mapping[str, FrozenSet[str]] = MappingProxyType({
    EVERYONE: frozenset({"admin"}),
})
