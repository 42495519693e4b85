"""Role-based access policy.

Static tables map navigation targets, mutating actions and realtime
collections to the roles allowed to use them. ``None`` means every tier,
including a principal with no role rows at all. Every function here is pure.
"""

from __future__ import annotations

import enum
from typing import Iterable, Optional

from orgmanage.common.constants import Role
from orgmanage.realtime.events import Collection


class NavTarget(str, enum.Enum):
    dashboard = "dashboard"
    ceo_overview = "ceo_overview"
    hr_management = "hr_management"
    it_assets = "it_assets"
    finance = "finance"
    manager = "manager"
    admin_panel = "admin_panel"
    profile = "profile"
    performance = "performance"
    goals = "goals"
    announcements = "announcements"


class Action(str, enum.Enum):
    transaction_create = "transaction:create"
    leave_request = "leave:request"
    expense_submit = "expense:submit"
    ticket_create = "ticket:create"
    profile_update_own = "profile:update_own"
    notification_manage_own = "notification:manage_own"
    goal_create = "goal:create"
    announcement_create = "announcement:create"
    admin_manage_users = "admin:manage_users"
    leave_review = "leave:review"
    expense_review = "expense:review"
    asset_manage = "asset:manage"
    ticket_manage = "ticket:manage"
    analytics_organization = "analytics:organization"


class Scope(str, enum.Enum):
    """How much of a collection a principal may read."""

    all = "all"
    own = "own"


def _tier(*roles: Role) -> frozenset[Role]:
    return frozenset(roles)


# Insertion order is the sidebar order.
NAVIGATION: dict[NavTarget, Optional[frozenset[Role]]] = {
    NavTarget.dashboard: None,
    NavTarget.ceo_overview: _tier(Role.ceo),
    NavTarget.hr_management: _tier(Role.hr, Role.ceo),
    NavTarget.it_assets: _tier(Role.it, Role.ceo),
    NavTarget.finance: _tier(Role.finance, Role.ceo),
    NavTarget.manager: _tier(Role.manager, Role.ceo),
    NavTarget.admin_panel: _tier(Role.hr, Role.ceo),
    NavTarget.profile: None,
    NavTarget.performance: None,
    NavTarget.goals: None,
    NavTarget.announcements: None,
}

ACTIONS: dict[Action, Optional[frozenset[Role]]] = {
    Action.transaction_create: None,
    Action.leave_request: None,
    Action.expense_submit: None,
    Action.ticket_create: None,
    Action.profile_update_own: None,
    Action.notification_manage_own: None,
    Action.goal_create: _tier(Role.manager, Role.ceo),
    Action.announcement_create: _tier(Role.hr, Role.ceo),
    Action.admin_manage_users: _tier(Role.hr, Role.ceo),
    Action.leave_review: _tier(Role.hr, Role.manager, Role.ceo),
    Action.expense_review: _tier(Role.finance, Role.ceo),
    Action.asset_manage: _tier(Role.it, Role.ceo),
    Action.ticket_manage: _tier(Role.it, Role.ceo),
    Action.analytics_organization: _tier(Role.ceo),
}

# Roles that read every row of a collection; everyone else reads only their own.
# An empty tier means the collection is always owner-scoped.
COLLECTION_READERS: dict[Collection, Optional[frozenset[Role]]] = {
    Collection.transactions: None,
    Collection.goals: None,
    Collection.announcements: None,
    Collection.notifications: frozenset(),
    Collection.leave_requests: ACTIONS[Action.leave_review],
    Collection.expenses: ACTIONS[Action.expense_review],
    Collection.it_assets: ACTIONS[Action.asset_manage],
    Collection.it_tickets: ACTIONS[Action.ticket_manage],
}


def _permits(allowed: Optional[frozenset[Role]], roles: Iterable[Role]) -> bool:
    if allowed is None:
        return True
    return not allowed.isdisjoint(roles)


def is_visible(roles: Iterable[Role], target: NavTarget) -> bool:
    return _permits(NAVIGATION[NavTarget(target)], frozenset(roles))


def can_perform(roles: Iterable[Role], action: Action) -> bool:
    return _permits(ACTIONS[Action(action)], frozenset(roles))


def visible_targets(roles: Iterable[Role]) -> list[NavTarget]:
    held = frozenset(roles)
    return [target for target, allowed in NAVIGATION.items() if _permits(allowed, held)]


def collection_scope(roles: Iterable[Role], collection: Collection) -> Scope:
    readers = COLLECTION_READERS[Collection(collection)]
    return Scope.all if _permits(readers, frozenset(roles)) else Scope.own
