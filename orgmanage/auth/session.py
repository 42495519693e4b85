"""SessionContext — the owned, observable principal and role set.

One context is created per long-lived consumer (a realtime connection, a
background job). It is the only writer of its principal id and roles;
consumers read them through the predicates or ``subscribe`` to changes.
Resolution failures of any kind leave the role set empty.
"""

from __future__ import annotations

import asyncio
import logging
import uuid
from typing import Callable, Iterable, Optional

from orgmanage.auth.provider import AuthProvider, SessionChange
from orgmanage.common.constants import Role
from orgmanage.config import settings

logger = logging.getLogger(__name__)

ContextListener = Callable[["SessionContext"], None]


class SessionContext:
    def __init__(
        self,
        provider: AuthProvider,
        access_token: str,
        timeout: Optional[float] = None,
    ) -> None:
        self._provider = provider
        self._access_token = access_token
        self._timeout = timeout if timeout is not None else settings.REQUEST_TIMEOUT_SECONDS
        self._lock = asyncio.Lock()
        self._listeners: list[ContextListener] = []
        self._pending: set[asyncio.Task] = set()
        self._unbind: Optional[Callable[[], None]] = None
        self.principal_id: Optional[uuid.UUID] = None
        self.roles: frozenset[Role] = frozenset()

    # ── Resolution ──────────────────────────────────────────────────

    async def resolve(self) -> frozenset[Role]:
        """Reload the session and role set from the provider."""
        async with self._lock:
            principal_id = self.principal_id
            try:
                session = await asyncio.wait_for(
                    self._provider.get_session(self._access_token), self._timeout,
                )
                if session is None:
                    self._set(None, frozenset())
                    return self.roles
                principal_id = session.user_id
                roles = await asyncio.wait_for(
                    self._provider.get_roles(session.user_id), self._timeout,
                )
            except Exception as exc:
                logger.warning(
                    "Role resolution failed for %s, treating as no roles: %r",
                    principal_id, exc,
                )
                self._set(principal_id, frozenset())
                return self.roles
            self._set(principal_id, roles)
            return self.roles

    def _set(self, principal_id: Optional[uuid.UUID], roles: frozenset[Role]) -> None:
        if principal_id == self.principal_id and roles == self.roles:
            return
        self.principal_id = principal_id
        self.roles = roles
        for listener in list(self._listeners):
            listener(self)

    # ── Provider binding ────────────────────────────────────────────

    def bind(self) -> None:
        """Follow session changes pushed by the provider until :meth:`close`."""
        if self._unbind is None:
            self._unbind = self._provider.on_session_change(self._on_session_change)

    def _on_session_change(self, change: SessionChange, user_id: uuid.UUID) -> None:
        if self.principal_id is not None and user_id != self.principal_id:
            return
        if change is SessionChange.SIGNED_OUT:
            self._set(None, frozenset())
            return
        task = asyncio.get_running_loop().create_task(self.resolve())
        self._pending.add(task)
        task.add_done_callback(self._pending.discard)

    async def close(self) -> None:
        if self._unbind is not None:
            self._unbind()
            self._unbind = None
        for task in list(self._pending):
            task.cancel()
        if self._pending:
            await asyncio.gather(*self._pending, return_exceptions=True)
        self._listeners.clear()

    # ── Reads ───────────────────────────────────────────────────────

    @property
    def is_authenticated(self) -> bool:
        return self.principal_id is not None

    @property
    def effective_roles(self) -> frozenset[Role]:
        return self.roles or frozenset({Role.user})

    def has_role(self, role: Role) -> bool:
        return role in self.effective_roles

    def has_any_role(self, roles: Iterable[Role]) -> bool:
        return not self.effective_roles.isdisjoint(roles)

    def subscribe(self, listener: ContextListener) -> Callable[[], None]:
        """Call *listener* after every change of principal or roles."""
        self._listeners.append(listener)

        def _unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return _unsubscribe
