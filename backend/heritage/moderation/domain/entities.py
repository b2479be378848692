"""Dispatch table for the flaggable entity types.

Each entity type is bound to a store that can fetch and re-status its rows,
a vocabulary translating generic moderation intents into the status values
that particular table uses, and the actions that have a coded effect on it.
"""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from enum import Enum
from typing import Any, Iterator, Mapping, Optional, Protocol

from heritage.moderation.domain.models import EntityType, ModerationAction


class StatusIntent(str, Enum):
    REMOVED = "removed"
    SUSPENDED = "suspended"
    BANNED = "banned"


@dataclass(frozen=True)
class EntityRecord:
    entity_id: str
    title: Optional[str]
    status: Optional[str]


class EntityStore(Protocol):
    """Narrow view of a content table used by moderation."""

    async def fetch(self, entity_id: str) -> EntityRecord | None:
        ...

    async def set_status(self, entity_id: str, status: str, *, conn: Any = None) -> bool:
        """Write ``status``; returns False when the row no longer exists.

        ``conn`` is an open transaction to write through instead of the store's
        own connection source.
        """
        ...


@dataclass(frozen=True)
class StatusVocabulary:
    values: Mapping[StatusIntent, str] = field(default_factory=dict)

    def translate(self, intent: StatusIntent) -> str:
        try:
            return self.values[intent]
        except KeyError as exc:
            raise LookupError(f"no status for intent {intent.value}") from exc

    def supports(self, intent: StatusIntent) -> bool:
        return intent in self.values


# Status values as stored by each content table
DEFAULT_VOCABULARIES: Mapping[EntityType, StatusVocabulary] = {
    EntityType.COMMENT: StatusVocabulary({StatusIntent.REMOVED: "supprime"}),
    EntityType.ARTWORK: StatusVocabulary({StatusIntent.REMOVED: "supprime"}),
    EntityType.EVENT: StatusVocabulary({}),
    EntityType.USER: StatusVocabulary(
        {StatusIntent.SUSPENDED: "suspendu", StatusIntent.BANNED: "banni"}
    ),
    EntityType.CRAFT: StatusVocabulary({StatusIntent.REMOVED: "supprime"}),
}

# Only comments and users carry coded effects; everything else is a no-op.
DEFAULT_EFFECTS: Mapping[EntityType, Mapping[ModerationAction, StatusIntent]] = {
    EntityType.COMMENT: {ModerationAction.CONTENT_REMOVAL: StatusIntent.REMOVED},
    EntityType.USER: {
        ModerationAction.TEMPORARY_SUSPENSION: StatusIntent.SUSPENDED,
        ModerationAction.PERMANENT_SUSPENSION: StatusIntent.BANNED,
    },
}


@dataclass(frozen=True)
class EntityBinding:
    entity_type: EntityType
    store: EntityStore
    vocabulary: StatusVocabulary
    effects: Mapping[ModerationAction, StatusIntent]

    def effect_for(self, action: ModerationAction) -> Optional[tuple[StatusIntent, str]]:
        intent = self.effects.get(action)
        if intent is None:
            return None
        return intent, self.vocabulary.translate(intent)


class EntityRegistry:
    """Closed mapping of every EntityType to its binding."""

    def __init__(self, bindings: Mapping[EntityType, EntityBinding]) -> None:
        missing = [entity_type.value for entity_type in EntityType if entity_type not in bindings]
        if missing:
            raise ValueError(f"entity registry missing bindings: {', '.join(missing)}")
        for entity_type, binding in bindings.items():
            for action, intent in binding.effects.items():
                if not binding.vocabulary.supports(intent):
                    raise ValueError(
                        f"{entity_type.value}: action {action.value} maps to unsupported intent {intent.value}"
                    )
        self._bindings = dict(bindings)

    def binding(self, entity_type: EntityType) -> EntityBinding:
        return self._bindings[entity_type]

    def __iter__(self) -> Iterator[EntityBinding]:
        return iter(self._bindings.values())


def build_registry(
    stores: Mapping[EntityType, EntityStore],
    *,
    effects: Mapping[EntityType, Mapping[ModerationAction, StatusIntent]] = DEFAULT_EFFECTS,
    vocabularies: Mapping[EntityType, StatusVocabulary] = DEFAULT_VOCABULARIES,
) -> EntityRegistry:
    bindings: dict[EntityType, EntityBinding] = {}
    for entity_type, store in stores.items():
        bindings[entity_type] = EntityBinding(
            entity_type=entity_type,
            store=store,
            vocabulary=vocabularies.get(entity_type, StatusVocabulary()),
            effects=dict(effects.get(entity_type, {})),
        )
    return EntityRegistry(bindings)


class InMemoryEntityStore:
    """Dictionary-backed entity store for local development and tests."""

    def __init__(self, records: Mapping[str, EntityRecord] | None = None) -> None:
        self.records: dict[str, EntityRecord] = dict(records or {})

    def add(self, entity_id: str, *, title: str | None = None, status: str | None = None) -> EntityRecord:
        record = EntityRecord(entity_id=str(entity_id), title=title, status=status)
        self.records[record.entity_id] = record
        return record

    async def fetch(self, entity_id: str) -> EntityRecord | None:
        return self.records.get(str(entity_id))

    async def set_status(self, entity_id: str, status: str, *, conn: Any = None) -> bool:
        record = self.records.get(str(entity_id))
        if record is None:
            return False
        self.records[record.entity_id] = replace(record, status=status)
        return True


def build_memory_registry() -> tuple[EntityRegistry, dict[EntityType, InMemoryEntityStore]]:
    stores = {entity_type: InMemoryEntityStore() for entity_type in EntityType}
    return build_registry(stores), stores
