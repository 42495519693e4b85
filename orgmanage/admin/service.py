"""Admin service — edit principals and replace their role sets."""

from __future__ import annotations

import uuid

from sqlalchemy.ext.asyncio import AsyncSession

from orgmanage.admin.schemas import AdminUserUpdate
from orgmanage.auth.provider import AuthProvider, SessionChange
from orgmanage.auth.service import get_roles, replace_roles, revoke_all_user_sessions
from orgmanage.common.audit import create_audit_entry
from orgmanage.common.constants import NotificationType, Role
from orgmanage.notifications.dispatcher import notify
from orgmanage.profiles.models import Profile
from orgmanage.profiles.service import ProfileService


def _describe(roles: frozenset[Role]) -> str:
    return ", ".join(sorted(r.value for r in roles)) or Role.user.value


class AdminService:

    @staticmethod
    async def update_user(
        db: AsyncSession,
        provider: AuthProvider,
        user_id: uuid.UUID,
        actor_id: uuid.UUID,
        data: AdminUserUpdate,
    ) -> tuple[Profile, frozenset[Role]]:
        """Update profile fields, then replace the role set when one is given.

        The role rows are deleted and re-inserted in the caller's transaction,
        so a failure leaves the previous set intact.
        """
        profile = await ProfileService.get(db, user_id)
        changes = data.model_dump(exclude_unset=True, exclude={"roles"})
        await ProfileService.update(db, profile, actor_id, changes)

        roles = await get_roles(db, user_id)
        if data.roles is not None:
            new_roles = frozenset(data.roles) - {Role.user}
            if new_roles != roles:
                await replace_roles(db, user_id, set(new_roles))
                await create_audit_entry(
                    db,
                    action="role_change",
                    entity_type="user_roles",
                    entity_id=user_id,
                    actor_id=actor_id,
                    old_values={"roles": sorted(r.value for r in roles)},
                    new_values={"roles": sorted(r.value for r in new_roles)},
                )
                await notify(
                    db,
                    [user_id],
                    NotificationType.role_change,
                    "Your roles were updated",
                    f"Your roles are now: {_describe(new_roles)}.",
                    exclude=actor_id,
                )
                roles = new_roles

        if changes.get("is_active") is False:
            await revoke_all_user_sessions(db, user_id)
            provider.emit(db, SessionChange.SIGNED_OUT, user_id)
        else:
            provider.emit(db, SessionChange.USER_UPDATED, user_id)
        return profile, roles
