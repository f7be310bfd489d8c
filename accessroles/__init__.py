from accessroles import config
from accessroles import constants
from accessroles import exceptions
from accessroles import interfaces
from accessroles import paths
from accessroles import provider

from accessroles.constants import (ACL_NODE, ASSIGNABLE_MIXIN, ASSIGNMENT_NODE,
                                   DEFAULT_ACCESS_ROLES, EVERYONE,
                                   PRINCIPAL_PROPERTY, ROLE_PROPERTY,)
from accessroles.exceptions import (AccessRolesError, InvalidAssignmentsError,
                                    MalformedRecordError, NodeNotFoundError,
                                    StorageFailure,)
from accessroles.interfaces import (AccessRolesProvider, Node, Property,
                                    TreeSession,)
from accessroles.provider import (RbaclAccessRolesProvider,
                                  validate_assignments,)

__all__ = ['ACL_NODE', 'ASSIGNABLE_MIXIN', 'ASSIGNMENT_NODE',
           'AccessRolesError', 'AccessRolesProvider', 'DEFAULT_ACCESS_ROLES',
           'EVERYONE', 'InvalidAssignmentsError', 'MalformedRecordError',
           'Node', 'NodeNotFoundError', 'PRINCIPAL_PROPERTY', 'Property',
           'ROLE_PROPERTY', 'RbaclAccessRolesProvider', 'StorageFailure',
           'TreeSession', 'config', 'constants', 'exceptions', 'interfaces',
           'paths', 'provider', 'validate_assignments']
