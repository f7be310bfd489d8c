"""
Access roles API endpoints.

Every node path has an access roles sub-resource, `<path>/acl:roles`
(the root's is `/api/nodes/acl:roles`):

- GET    /api/nodes/{path}/acl:roles[?effective] - Roles at (or governing) a node
- POST   /api/nodes/{path}/acl:roles - Replace the node's role assignments
- DELETE /api/nodes/{path}/acl:roles - Remove the node's role assignments
"""

from fastapi import APIRouter, Body, Depends, HTTPException, Query, Request, Response
from loguru import logger
from typing import Optional

from accessroles.config import load_settings
from accessroles.exceptions import InvalidAssignmentsError, NodeNotFoundError, StorageFailure
from accessroles.interfaces import AccessRolesProvider
from accessroles.paths import normalize_path
from accessroles.provider import RbaclAccessRolesProvider, validate_assignments
from apps.api.schemas import AccessRolesRequest, AccessRolesResponse
from storage.database import DatabaseManager
from storage.session import SqlTreeSession

ACCESS_ROLES_SEGMENT = "acl:roles"

router = APIRouter(prefix="/api/nodes", tags=["access roles"])

# Global provider instance
provider = RbaclAccessRolesProvider(load_settings().default_roles)


def get_provider() -> AccessRolesProvider:
    """FastAPI dependency for the access roles provider."""
    return provider


@router.get("/" + ACCESS_ROLES_SEGMENT, response_model=AccessRolesResponse)
@router.get("/{node_path:path}/" + ACCESS_ROLES_SEGMENT, response_model=AccessRolesResponse)
def get_access_roles(
    node_path: str = "",
    effective: Optional[str] = Query(None, description="Present to include inherited roles"),
    tree: SqlTreeSession = Depends(DatabaseManager.get_tree_session),
    roles_provider: AccessRolesProvider = Depends(get_provider)
):
    """
    Get the roles assigned to a node.

    With `effective`, nodes without their own assignment report the roles
    of the nearest ancestor that has one, and a path that does not exist
    yet is resolved from its closest existing ancestor.

    Returns:
        200 with principal -> roles, or 204 when the node has no
        assignment and effective roles were not requested
    """
    path = normalize_path(node_path)
    try:
        if effective is not None:
            roles = roles_provider.resolve_by_path(tree, path)
        else:
            roles = roles_provider.resolve(tree.get_node(path), effective=False)
    except NodeNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))
    except StorageFailure as e:
        logger.error(f"Error reading access roles for {path}: {e}")
        raise HTTPException(status_code=500, detail="Internal server error")

    if roles is None:
        return Response(status_code=204)
    return AccessRolesResponse.from_roles(roles)


@router.post("/" + ACCESS_ROLES_SEGMENT, status_code=201)
@router.post("/{node_path:path}/" + ACCESS_ROLES_SEGMENT, status_code=201)
def post_access_roles(
    request: Request,
    node_path: str = "",
    body: AccessRolesRequest = Body(...),
    tree: SqlTreeSession = Depends(DatabaseManager.get_tree_session),
    roles_provider: AccessRolesProvider = Depends(get_provider)
):
    """
    Replace the role assignments of a node.

    Example request:
        {
            "alice": ["writer"],
            "bob": ["reader"]
        }

    Returns:
        201 with a Location header pointing at the access roles resource
    """
    path = normalize_path(node_path)
    assignments = body.to_assignments()
    try:
        validate_assignments(assignments)
    except InvalidAssignmentsError as e:
        logger.warning(f"Rejected role assignments for {path}: {e}")
        raise HTTPException(status_code=400, detail=str(e))

    try:
        node = tree.get_node(path)
        roles_provider.replace(node, assignments)
        tree.save()
    except NodeNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))
    except StorageFailure as e:
        logger.error(f"Error writing access roles for {path}: {e}")
        raise HTTPException(status_code=500, detail="Internal server error")

    logger.info(f"Updated access roles for {path}")
    return Response(status_code=201, headers={"Location": str(request.url)})


@router.delete("/" + ACCESS_ROLES_SEGMENT, status_code=204)
@router.delete("/{node_path:path}/" + ACCESS_ROLES_SEGMENT, status_code=204)
def delete_access_roles(
    node_path: str = "",
    tree: SqlTreeSession = Depends(DatabaseManager.get_tree_session),
    roles_provider: AccessRolesProvider = Depends(get_provider)
):
    """
    Remove every role assignment from a node.
    """
    path = normalize_path(node_path)
    try:
        roles_provider.delete_all(tree.get_node(path))
        tree.save()
    except NodeNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))
    except StorageFailure as e:
        logger.error(f"Error deleting access roles for {path}: {e}")
        raise HTTPException(status_code=500, detail="Internal server error")

    return Response(status_code=204)
