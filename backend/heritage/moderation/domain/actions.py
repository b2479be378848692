"""Apply the side effect of a resolution action to the reported entity."""

from __future__ import annotations

import logging
from typing import Any

from heritage.moderation.domain.entities import EntityRegistry
from heritage.moderation.domain.errors import ActionExecutionFailed
from heritage.moderation.domain.models import ActionOutcome, EntityType, ModerationAction

logger = logging.getLogger(__name__)


class ActionExecutor:
    """Runs the effect table: entity type x action -> status change or no-op."""

    def __init__(self, registry: EntityRegistry) -> None:
        self._registry = registry

    async def apply(
        self,
        entity_type: EntityType,
        entity_id: str,
        action: ModerationAction,
        *,
        conn: Any = None,
    ) -> ActionOutcome:
        if action.audit_only:
            return ActionOutcome(action=action)
        binding = self._registry.binding(entity_type)
        effect = binding.effect_for(action)
        if effect is None:
            logger.info(
                "moderation action has no effect on entity type",
                extra={"entity_type": entity_type.value, "action": action.value},
            )
            return ActionOutcome(action=action)
        intent, status_value = effect
        try:
            updated = await binding.store.set_status(entity_id, status_value, conn=conn)
        except Exception as exc:  # noqa: BLE001 - every store failure surfaces the same way
            raise ActionExecutionFailed() from exc
        if not updated:
            # Entity vanished after the report was filed
            logger.warning(
                "moderation target missing, effect skipped",
                extra={"entity_type": entity_type.value, "entity_id": entity_id, "action": action.value},
            )
            return ActionOutcome(action=action, effect=intent.value, applied=False)
        return ActionOutcome(action=action, effect=intent.value, applied=True)
