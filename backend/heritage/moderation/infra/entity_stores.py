"""asyncpg-backed entity stores for the flaggable content tables."""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass
from typing import Any, Optional

import asyncpg

from heritage.moderation.domain.entities import EntityRecord, EntityRegistry, build_registry
from heritage.moderation.domain.errors import StorageUnavailable
from heritage.moderation.domain.models import EntityType

logger = logging.getLogger(__name__)

_TITLE_LANGUAGES = ("fr", "en", "ar")
_TITLE_MAX_LENGTH = 120


@dataclass(frozen=True)
class EntityTable:
    """SQL for one content table; ``$1`` is always the integer primary key."""

    select_sql: str
    update_sql: str
    title_columns: tuple[str, ...] = ("title",)


ENTITY_TABLES: dict[EntityType, EntityTable] = {
    EntityType.COMMENT: EntityTable(
        select_sql="""
        SELECT id_commentaire AS id, contenu::text AS title, statut AS status
        FROM commentaire
        WHERE id_commentaire = $1
        """,
        update_sql="UPDATE commentaire SET statut = $2 WHERE id_commentaire = $1 RETURNING id_commentaire",
    ),
    EntityType.ARTWORK: EntityTable(
        select_sql="""
        SELECT id_oeuvre AS id, titre::text AS title, statut AS status
        FROM oeuvre
        WHERE id_oeuvre = $1
        """,
        update_sql="UPDATE oeuvre SET statut = $2 WHERE id_oeuvre = $1 RETURNING id_oeuvre",
    ),
    EntityType.EVENT: EntityTable(
        select_sql="""
        SELECT id_evenement AS id, nom_evenement::text AS title, statut AS status
        FROM evenement
        WHERE id_evenement = $1
        """,
        update_sql="UPDATE evenement SET statut = $2 WHERE id_evenement = $1 RETURNING id_evenement",
    ),
    EntityType.USER: EntityTable(
        select_sql="""
        SELECT id_user AS id, prenom::text AS first_name, nom::text AS last_name, statut AS status
        FROM "user"
        WHERE id_user = $1
        """,
        update_sql='UPDATE "user" SET statut = $2 WHERE id_user = $1 RETURNING id_user',
        title_columns=("first_name", "last_name"),
    ),
    # A craft has no title or status of its own; both live on its artwork row
    EntityType.CRAFT: EntityTable(
        select_sql="""
        SELECT a.id_artisanat AS id, o.titre::text AS title, o.statut AS status
        FROM artisanat a
        JOIN oeuvre o ON o.id_oeuvre = a.id_oeuvre
        WHERE a.id_artisanat = $1
        """,
        update_sql="""
        UPDATE oeuvre o
        SET statut = $2
        FROM artisanat a
        WHERE a.id_artisanat = $1 AND o.id_oeuvre = a.id_oeuvre
        RETURNING a.id_artisanat
        """,
    ),
}


def _parse_key(entity_id: str) -> int | None:
    try:
        return int(str(entity_id).strip())
    except (TypeError, ValueError):
        return None


def _localized(value: Any) -> Optional[str]:
    """Collapse a multilingual JSON label to a single display string."""
    if value is None:
        return None
    text = str(value)
    if text.startswith("{"):
        try:
            labels = json.loads(text)
        except ValueError:
            return text
        if isinstance(labels, dict):
            for language in _TITLE_LANGUAGES:
                if labels.get(language):
                    return str(labels[language])
            return next((str(label) for label in labels.values() if label), None)
    if text.startswith('"'):
        try:
            return str(json.loads(text))
        except ValueError:
            return text
    return text


def _title(record: asyncpg.Record, columns: tuple[str, ...]) -> Optional[str]:
    parts = [_localized(record[column]) for column in columns]
    title = " ".join(part for part in parts if part)
    if not title:
        return None
    return title[:_TITLE_MAX_LENGTH]


class PostgresEntityStore:
    def __init__(self, pool: asyncpg.Pool, entity_type: EntityType, table: EntityTable) -> None:
        self.pool = pool
        self.entity_type = entity_type
        self.table = table

    async def fetch(self, entity_id: str) -> EntityRecord | None:
        key = _parse_key(entity_id)
        if key is None:
            return None
        try:
            record = await self.pool.fetchrow(self.table.select_sql, key)
        except (asyncpg.PostgresError, asyncpg.InterfaceError, OSError) as exc:
            logger.exception("moderation entity lookup failed", extra={"entity_type": self.entity_type.value})
            raise StorageUnavailable() from exc
        if record is None:
            return None
        status = record["status"]
        return EntityRecord(
            entity_id=str(record["id"]),
            title=_title(record, self.table.title_columns),
            status=str(status) if status is not None else None,
        )

    async def set_status(self, entity_id: str, status: str, *, conn: asyncpg.Connection | None = None) -> bool:
        key = _parse_key(entity_id)
        if key is None:
            return False
        # Inside a resolution the write must share the report row's transaction
        executor = conn if conn is not None else self.pool
        updated = await executor.fetchval(self.table.update_sql, key, status)
        return updated is not None


def build_postgres_registry(pool: asyncpg.Pool) -> EntityRegistry:
    stores = {
        entity_type: PostgresEntityStore(pool, entity_type, table)
        for entity_type, table in ENTITY_TABLES.items()
    }
    return build_registry(stores)
