"""
Pydantic schemas for the access roles API.

These schemas handle:
1. Request parsing (what clients send)
2. Response serialization (what API returns)

Semantic validation of role assignments (blank principals, empty role
lists) is done by accessroles.validate_assignments so that it can be
reported as 400 rather than 422.
"""

from pydantic import BaseModel, Field, RootModel
from typing import Dict, List, Mapping, Optional, Set


# ============ Request Schemas ============

class AccessRolesRequest(RootModel[Dict[str, Optional[List[Optional[str]]]]]):
    """
    Complete role assignment for a node (replaces any previous one).

    Example:
        {
            "alice": ["writer", "reader"],
            "bob": ["reader"]
        }
    """

    def to_assignments(self) -> Dict[str, Optional[List[Optional[str]]]]:
        return dict(self.root)


# ============ Response Schemas ============

class AccessRolesResponse(RootModel[Dict[str, List[str]]]):
    """
    Roles assigned at or inherited by a node, principal -> sorted roles.

    Example:
        {
            "alice": ["reader", "writer"]
        }
    """

    @classmethod
    def from_roles(cls, roles: Mapping[str, Set[str]]) -> "AccessRolesResponse":
        return cls({principal: sorted(names) for principal, names in roles.items()})


class HealthResponse(BaseModel):
    """Service health"""
    status: str = Field(..., description="'healthy' or 'unhealthy'")
    database: bool = Field(..., description="Database reachable")
