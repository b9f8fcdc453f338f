"""
Plugin Store

Persistence backends for plugin status rows used by the PluginManager.

PluginStore:           the contract the manager relies on.
InMemoryPluginStore:   process-local store, the default when no database is configured.
SQLAlchemyPluginStore: async SQLAlchemy store over the `plugins` table.

A missing row is not an error: updates and deletes report it as False and
lookups as None. A failing database is: the SQLAlchemy store logs it and
raises PluginStoreError so callers can tell the two apart.
"""

from __future__ import annotations

import copy
import logging
from dataclasses import dataclass, field, replace
from datetime import datetime, timezone
from typing import Any, Protocol

from sqlalchemy import delete, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncEngine, async_sessionmaker

from app.database import create_session_factory
from app.exceptions import PluginStoreError
from app.models.plugin import PluginRecord

logger = logging.getLogger(__name__)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


@dataclass
class StoredPlugin:
    """One persisted plugin row."""

    id: str
    name: str
    description: str = ""
    version: str = "1.0.0"
    author: str = ""
    category: str = "Other"
    is_active: bool = False
    installed_at: datetime = field(default_factory=_utcnow)
    updated_at: datetime = field(default_factory=_utcnow)
    config: dict[str, Any] = field(default_factory=dict)


class PluginStore(Protocol):
    async def get_all_plugins(self) -> list[StoredPlugin]: ...

    async def get_plugin_by_id(self, plugin_id: str) -> StoredPlugin | None: ...

    async def save_plugin(self, plugin: StoredPlugin) -> bool: ...

    async def update_plugin_status(self, plugin_id: str, is_active: bool) -> bool: ...

    async def update_plugin_config(self, plugin_id: str, config: dict[str, Any]) -> bool: ...

    async def delete_plugin(self, plugin_id: str) -> bool: ...


# ── In-memory ─────────────────────────────────────────────────────────────────


class InMemoryPluginStore:
    """Dict-backed store. Rows are copied in and out so callers cannot alias them."""

    def __init__(self) -> None:
        self._rows: dict[str, StoredPlugin] = {}

    async def get_all_plugins(self) -> list[StoredPlugin]:
        return [copy.deepcopy(row) for row in self._rows.values()]

    async def get_plugin_by_id(self, plugin_id: str) -> StoredPlugin | None:
        row = self._rows.get(plugin_id)
        return copy.deepcopy(row) if row else None

    async def save_plugin(self, plugin: StoredPlugin) -> bool:
        self._rows[plugin.id] = copy.deepcopy(plugin)
        return True

    async def update_plugin_status(self, plugin_id: str, is_active: bool) -> bool:
        row = self._rows.get(plugin_id)
        if row is None:
            return False
        self._rows[plugin_id] = replace(row, is_active=is_active, updated_at=_utcnow())
        return True

    async def update_plugin_config(self, plugin_id: str, config: dict[str, Any]) -> bool:
        row = self._rows.get(plugin_id)
        if row is None:
            return False
        merged = {**row.config, **copy.deepcopy(config)}
        self._rows[plugin_id] = replace(row, config=merged, updated_at=_utcnow())
        return True

    async def delete_plugin(self, plugin_id: str) -> bool:
        return self._rows.pop(plugin_id, None) is not None


# ── SQLAlchemy ────────────────────────────────────────────────────────────────


def _aware(value: datetime | None) -> datetime:
    if value is None:
        return _utcnow()
    # SQLite drops tzinfo on the way back
    return value if value.tzinfo else value.replace(tzinfo=timezone.utc)


def _from_record(record: PluginRecord) -> StoredPlugin:
    return StoredPlugin(
        id=record.id,
        name=record.name,
        description=record.description or "",
        version=record.version,
        author=record.author or "",
        category=record.category or "Other",
        is_active=bool(record.is_active),
        installed_at=_aware(record.installed_at),
        updated_at=_aware(record.updated_at),
        config=dict(record.config or {}),
    )


class SQLAlchemyPluginStore:
    """Store backed by the `plugins` table through an async session factory."""

    def __init__(self, session_factory: async_sessionmaker) -> None:
        self.session_factory = session_factory

    async def get_all_plugins(self) -> list[StoredPlugin]:
        try:
            async with self.session_factory() as session:
                result = await session.execute(select(PluginRecord).order_by(PluginRecord.installed_at))
                return [_from_record(record) for record in result.scalars().all()]
        except SQLAlchemyError as e:
            logger.error("Failed to load plugins: %s", e)
            raise PluginStoreError("load", error=str(e)) from e

    async def get_plugin_by_id(self, plugin_id: str) -> StoredPlugin | None:
        try:
            async with self.session_factory() as session:
                record = await session.get(PluginRecord, plugin_id)
                return _from_record(record) if record else None
        except SQLAlchemyError as e:
            logger.error("Failed to load plugin %s: %s", plugin_id, e)
            raise PluginStoreError("load", plugin_id, str(e)) from e

    async def save_plugin(self, plugin: StoredPlugin) -> bool:
        try:
            async with self.session_factory() as session:
                await session.merge(
                    PluginRecord(
                        id=plugin.id,
                        name=plugin.name,
                        description=plugin.description,
                        version=plugin.version,
                        author=plugin.author,
                        category=plugin.category,
                        is_active=plugin.is_active,
                        config=dict(plugin.config),
                        installed_at=plugin.installed_at,
                        updated_at=plugin.updated_at,
                    )
                )
                await session.commit()
                return True
        except SQLAlchemyError as e:
            logger.error("Failed to save plugin %s: %s", plugin.id, e)
            raise PluginStoreError("save", plugin.id, str(e)) from e

    async def update_plugin_status(self, plugin_id: str, is_active: bool) -> bool:
        try:
            async with self.session_factory() as session:
                record = await session.get(PluginRecord, plugin_id)
                if record is None:
                    return False
                record.is_active = is_active
                record.updated_at = _utcnow()
                await session.commit()
                return True
        except SQLAlchemyError as e:
            logger.error("Failed to update status of plugin %s: %s", plugin_id, e)
            raise PluginStoreError("status", plugin_id, str(e)) from e

    async def update_plugin_config(self, plugin_id: str, config: dict[str, Any]) -> bool:
        try:
            async with self.session_factory() as session:
                record = await session.get(PluginRecord, plugin_id)
                if record is None:
                    return False
                # new dict so the JSON column is seen as changed
                record.config = {**(record.config or {}), **config}
                record.updated_at = _utcnow()
                await session.commit()
                return True
        except SQLAlchemyError as e:
            logger.error("Failed to update config of plugin %s: %s", plugin_id, e)
            raise PluginStoreError("config", plugin_id, str(e)) from e

    async def delete_plugin(self, plugin_id: str) -> bool:
        try:
            async with self.session_factory() as session:
                result = await session.execute(delete(PluginRecord).where(PluginRecord.id == plugin_id))
                await session.commit()
                return result.rowcount > 0
        except SQLAlchemyError as e:
            logger.error("Failed to delete plugin %s: %s", plugin_id, e)
            raise PluginStoreError("delete", plugin_id, str(e)) from e


def build_plugin_store(database_url: str | None, echo: bool = False) -> tuple[PluginStore, AsyncEngine | None]:
    """In-memory store when no database URL is configured, SQLAlchemy otherwise."""
    if not database_url:
        logger.info("No database configured, plugin status is kept in memory")
        return InMemoryPluginStore(), None

    engine, session_factory = create_session_factory(database_url, echo=echo)
    return SQLAlchemyPluginStore(session_factory), engine
