"""Access router — what the current principal may see and do."""

from __future__ import annotations

from fastapi import APIRouter, Depends

from orgmanage.access.policy import Action, can_perform, visible_targets
from orgmanage.access.schemas import NavigationResponse
from orgmanage.auth.dependencies import Principal, get_current_principal

router = APIRouter(prefix="", tags=["access"])


@router.get("/navigation", response_model=NavigationResponse)
async def navigation(principal: Principal = Depends(get_current_principal)):
    return NavigationResponse(
        user_id=principal.id,
        roles=sorted(r.value for r in principal.effective_roles),
        targets=[t.value for t in visible_targets(principal.roles)],
        actions=[a.value for a in Action if can_perform(principal.roles, a)],
    )
