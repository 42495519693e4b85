"""Profile service — read and edit principal profiles."""

from __future__ import annotations

import uuid
from datetime import datetime, timezone
from typing import Any

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from orgmanage.auth.models import RoleAssignment
from orgmanage.common.audit import create_audit_entry
from orgmanage.common.constants import Role
from orgmanage.common.exceptions import NotFoundException
from orgmanage.profiles.models import Profile


class ProfileService:

    @staticmethod
    async def get(db: AsyncSession, profile_id: uuid.UUID) -> Profile:
        profile = await db.get(Profile, profile_id)
        if profile is None:
            raise NotFoundException("Profile", profile_id)
        return profile

    @staticmethod
    async def update(
        db: AsyncSession,
        profile: Profile,
        actor_id: uuid.UUID,
        changes: dict[str, Any],
    ) -> Profile:
        """Apply *changes* (already validated) and audit the old values."""
        if not changes:
            return profile
        old_values = {k: getattr(profile, k) for k in changes}
        for field, value in changes.items():
            setattr(profile, field, value)
        profile.updated_at = datetime.now(timezone.utc)
        await db.flush()

        await create_audit_entry(
            db,
            action="update",
            entity_type="profile",
            entity_id=profile.id,
            actor_id=actor_id,
            old_values=old_values,
            new_values=changes,
        )
        return profile

    @staticmethod
    async def list_with_roles(
        db: AsyncSession,
        *,
        include_inactive: bool = False,
    ) -> list[tuple[Profile, list[Role]]]:
        query = select(Profile).order_by(Profile.created_at.desc(), Profile.id)
        if not include_inactive:
            query = query.where(Profile.is_active.is_(True))
        profiles = list((await db.execute(query)).scalars().all())

        roles: dict[uuid.UUID, list[Role]] = {p.id: [] for p in profiles}
        if profiles:
            result = await db.execute(
                select(RoleAssignment.user_id, RoleAssignment.role).where(
                    RoleAssignment.user_id.in_(list(roles)),
                )
            )
            for user_id, role in result.all():
                roles[user_id].append(Role(role))
        return [(p, sorted(roles[p.id], key=lambda r: r.value)) for p in profiles]
