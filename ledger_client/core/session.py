from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, fields, replace
from typing import Any, Dict, Optional, Set, Tuple

from ledger_client.core.logging import redact_token
from ledger_client.core.store import (
    ACCESS_TOKEN_KEY,
    COMPANY_ID_KEY,
    LEGACY_COMPANY_ID_KEYS,
    REFRESH_TOKEN_KEY,
    TENANT_ID_KEY,
    SessionStore,
)

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Session:
    access_token: Optional[str] = None
    refresh_token: Optional[str] = None
    tenant_id: Optional[str] = None
    company_id: Optional[str] = None


# Store keys per field, first match wins on hydration.
_STORE_KEYS: Dict[str, Tuple[str, ...]] = {
    "access_token": (ACCESS_TOKEN_KEY,),
    "refresh_token": (REFRESH_TOKEN_KEY,),
    "tenant_id": (TENANT_ID_KEY,),
    "company_id": (COMPANY_ID_KEY, *LEGACY_COMPANY_ID_KEYS),
}

_FIELD_NAMES = tuple(f.name for f in fields(Session))

_UNSET: Any = object()


class SessionState:
    """The one mutable session owned by a client instance.

    Memory is authoritative; the store is a best-effort mirror. Updates swap
    the whole `Session` snapshot so a concurrent reader never sees a token
    from one update paired with a tenant from another.
    """

    def __init__(
        self,
        *,
        default_tenant_id: str,
        store: SessionStore | None = None,
        initial: Session | None = None,
    ) -> None:
        if not default_tenant_id:
            raise ValueError("default_tenant_id must be non-empty")
        self._default_tenant_id = default_tenant_id
        self._store = store
        self._session = initial or Session()
        self._write_lock = asyncio.Lock()
        # Bumped on every write; a store read that spans a write is stale.
        self._generation = 0
        # Fields cleared in this process; the store is not consulted for them.
        self._cleared: Set[str] = set()

    @property
    def current(self) -> Session:
        """In-memory snapshot without hydration."""
        return self._session

    @property
    def default_tenant_id(self) -> str:
        return self._default_tenant_id

    async def get_access_token(self) -> Optional[str]:
        return await self._read("access_token")

    async def get_refresh_token(self) -> Optional[str]:
        return await self._read("refresh_token")

    async def get_tenant_id(self) -> str:
        return (await self._read("tenant_id")) or self._default_tenant_id

    async def get_company_id(self) -> Optional[str]:
        return await self._read("company_id")

    async def snapshot(self) -> Session:
        """Hydrated view of every field, tenant fallback applied."""

        for name in _FIELD_NAMES:
            await self._read(name)
        session = self._session
        if not session.tenant_id:
            session = replace(session, tenant_id=self._default_tenant_id)
        return session

    async def set_session(
        self,
        *,
        access_token: Optional[str] = _UNSET,
        refresh_token: Optional[str] = _UNSET,
        tenant_id: Optional[str] = _UNSET,
        company_id: Optional[str] = _UNSET,
    ) -> Session:
        """Apply a partial update to memory and the store.

        Only the given fields change; passing `None` clears a field.
        """

        changes = {
            name: value
            for name, value in (
                ("access_token", access_token),
                ("refresh_token", refresh_token),
                ("tenant_id", tenant_id),
                ("company_id", company_id),
            )
            if value is not _UNSET
        }
        if not changes:
            return self._session

        async with self._write_lock:
            self._generation += 1
            self._session = replace(self._session, **changes)
            for name, value in changes.items():
                if value:
                    self._cleared.discard(name)
                else:
                    self._cleared.add(name)
            logger.debug(
                "Session updated: fields=%s access_token=%s",
                sorted(changes),
                redact_token(self._session.access_token),
            )
            for name, value in changes.items():
                await self._persist(name, value)
            return self._session

    async def clear_session(self) -> None:
        async with self._write_lock:
            self._generation += 1
            self._session = Session()
            self._cleared = set(_FIELD_NAMES)
            for name in _FIELD_NAMES:
                await self._persist(name, None)
        logger.info("Session cleared")

    async def _read(self, name: str) -> Optional[str]:
        value = getattr(self._session, name)
        if value:
            return value
        if name in self._cleared:
            return None

        generation = self._generation
        hydrated = await self._lookup(name)
        if not hydrated:
            return None

        # Any write during the lookup wins over the stored value.
        if self._generation != generation or name in self._cleared:
            return getattr(self._session, name)
        if not getattr(self._session, name):
            self._session = replace(self._session, **{name: hydrated})
        return getattr(self._session, name)

    async def _lookup(self, name: str) -> Optional[str]:
        if self._store is None:
            return None
        for key in _STORE_KEYS[name]:
            try:
                value = await self._store.get(key)
            except Exception:
                logger.warning("Session store read failed for %s; skipping hydration", key, exc_info=True)
                return None
            if value:
                return value
        return None

    async def _persist(self, name: str, value: Optional[str]) -> None:
        if self._store is None:
            return
        keys = _STORE_KEYS[name]
        try:
            if value:
                await self._store.set(keys[0], value)
            else:
                for key in keys:
                    await self._store.delete(key)
        except Exception:
            logger.warning("Session store write failed for %s; continuing in memory", keys[0], exc_info=True)
