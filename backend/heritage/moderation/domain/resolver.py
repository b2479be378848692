"""Resolve polymorphic (entity_type, entity_id) references for moderation."""

from __future__ import annotations

from heritage.moderation.domain.entities import EntityRegistry
from heritage.moderation.domain.models import EntitySummary, EntityType, ReporterSummary


class EntityResolver:
    """Existence checks and display summaries, dispatched per entity type."""

    def __init__(self, registry: EntityRegistry) -> None:
        self._registry = registry

    @property
    def registry(self) -> EntityRegistry:
        return self._registry

    async def exists(self, entity_type: EntityType, entity_id: str) -> bool:
        record = await self._registry.binding(entity_type).store.fetch(entity_id)
        return record is not None

    async def canonical_id(self, entity_type: EntityType, entity_id: str) -> str | None:
        """The id as the owning store spells it, or None when the entity is missing.

        Stores may accept several spellings of one key ("07" and "7" for an
        integer column); reports are keyed on the canonical form.
        """
        record = await self._registry.binding(entity_type).store.fetch(entity_id)
        if record is None:
            return None
        return record.entity_id

    async def summarize(self, entity_type: EntityType, entity_id: str) -> EntitySummary | None:
        """Return a display projection, or None when the entity is gone."""
        record = await self._registry.binding(entity_type).store.fetch(entity_id)
        if record is None:
            return None
        return EntitySummary(
            entity_type=entity_type,
            entity_id=record.entity_id,
            title=record.title,
            status=record.status,
        )

    async def describe_user(self, user_id: str) -> ReporterSummary | None:
        record = await self._registry.binding(EntityType.USER).store.fetch(user_id)
        if record is None:
            return None
        return ReporterSummary(user_id=record.entity_id, display_name=record.title)
