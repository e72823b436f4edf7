"""Programmatic permission queries by target id."""
from fastapi import APIRouter, Depends, HTTPException, Query

from ..deps import access_control, current_actor
from ..domain.policy import TARGET_TYPES, Actor, PermissionType
from ..domain.schemas import PermissionDecisionOut
from ..services.access import AccessControl

router = APIRouter()


@router.get("/{target_type}/{target_id}", response_model=PermissionDecisionOut)
def check_permission(
    target_type: str,
    target_id: int,
    permission: PermissionType = Query(PermissionType.READ),
    actor: Actor = Depends(current_actor),
    access: AccessControl = Depends(access_control),
) -> PermissionDecisionOut:
    if target_type not in TARGET_TYPES:
        raise HTTPException(status_code=404, detail="Unknown target type")
    allowed = access.delegating.has_permission_by_id(actor, target_id, target_type, permission)
    return PermissionDecisionOut(
        target_type=target_type,
        target_id=target_id,
        permission=permission,
        allowed=allowed,
    )
