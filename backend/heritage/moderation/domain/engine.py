"""Report lifecycle orchestration: filing, the moderator queue and resolution."""

from __future__ import annotations

import logging
import time
import uuid
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Callable, Mapping, Optional, Protocol

from heritage.moderation.domain.actions import ActionExecutor
from heritage.moderation.domain.errors import (
    ActionExecutionFailed,
    AlreadyResolved,
    DuplicateReport,
    EntityNotFound,
    InvalidAction,
    InvalidEntityType,
    InvalidQuery,
    InvalidReason,
    ReportNotFound,
)
from heritage.moderation.domain.models import (
    BASELINE_PRIORITY,
    EntitySummary,
    EntityType,
    ModerationAction,
    Page,
    QueueItem,
    Report,
    ReporterSummary,
    ReportFilters,
    ReportOrdering,
    ReportPriority,
    ReportReason,
    ReportStatus,
)
from heritage.moderation.domain.priority import PriorityPolicy
from heritage.moderation.domain.rbac import Actor, ensure_moderator
from heritage.moderation.domain.resolver import EntityResolver
from heritage.moderation.domain.store import ReportStore
from heritage.obs import metrics as obs_metrics

logger = logging.getLogger(__name__)


class ReportEventPublisher(Protocol):
    async def publish(self, event: str, payload: Mapping[str, Any]) -> None:
        ...


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _new_report_id() -> str:
    return str(uuid.uuid4())


def _parse_entity_type(value: EntityType | str) -> EntityType:
    try:
        return EntityType(value)
    except ValueError as exc:
        raise InvalidEntityType() from exc


def _parse_reason(value: ReportReason | str) -> ReportReason:
    try:
        return ReportReason(value)
    except ValueError as exc:
        raise InvalidReason() from exc


def _parse_action(value: ModerationAction | str) -> ModerationAction:
    try:
        return ModerationAction(value)
    except ValueError as exc:
        raise InvalidAction() from exc


def _parse_status(value: ReportStatus | str | None) -> ReportStatus:
    if value is None:
        return ReportStatus.PENDING
    try:
        return ReportStatus(value)
    except ValueError as exc:
        raise InvalidQuery("invalid_status") from exc


def _parse_priority(value: ReportPriority | str | int | None) -> Optional[ReportPriority]:
    if value is None or isinstance(value, ReportPriority):
        return value
    try:
        if isinstance(value, int):
            return ReportPriority(value)
        return ReportPriority.from_label(value)
    except (KeyError, ValueError) as exc:
        raise InvalidQuery("invalid_priority") from exc


def _clean_text(value: Optional[str]) -> Optional[str]:
    if value is None:
        return None
    value = value.strip()
    return value or None


@dataclass
class ModerationEngine:
    store: ReportStore
    resolver: EntityResolver
    executor: ActionExecutor
    priority_policy: PriorityPolicy | None = None
    events: ReportEventPublisher | None = None
    clock: Callable[[], datetime] = field(default=_utcnow)
    id_factory: Callable[[], str] = field(default=_new_report_id)
    max_page_size: int = 100

    async def create_report(
        self,
        actor: Actor,
        *,
        entity_type: EntityType | str,
        entity_id: str,
        reason: ReportReason | str,
        description: Optional[str] = None,
        attachment_url: Optional[str] = None,
    ) -> QueueItem:
        """File a report against an existing entity on behalf of ``actor``."""
        parsed_type = _parse_entity_type(entity_type)
        parsed_reason = _parse_reason(reason)
        raw_id = str(entity_id).strip()
        canonical = await self.resolver.canonical_id(parsed_type, raw_id) if raw_id else None
        if canonical is None:
            raise EntityNotFound()
        entity_id = canonical

        now = self.clock()
        priority = BASELINE_PRIORITY
        if self.priority_policy is not None:
            priority = await self.priority_policy.assign(actor.user_id, parsed_reason, now)

        report = Report(
            report_id=self.id_factory(),
            entity_type=parsed_type,
            entity_id=entity_id,
            reporter_id=actor.user_id,
            reason=parsed_reason,
            description=_clean_text(description),
            attachment_url=_clean_text(attachment_url),
            priority=priority,
            status=ReportStatus.PENDING,
            created_at=now,
        )
        try:
            stored = await self.store.insert(report)
        except DuplicateReport:
            obs_metrics.report_conflict("duplicate_report")
            logger.info(
                "moderation duplicate report rejected",
                extra={"entity_type": parsed_type.value, "entity_id": entity_id, "reporter_id": actor.user_id},
            )
            raise

        obs_metrics.report_filed(parsed_reason.value)
        logger.info(
            "moderation report created",
            extra={
                "report_id": stored.report_id,
                "entity_type": parsed_type.value,
                "entity_id": entity_id,
                "reporter_id": actor.user_id,
                "priority": stored.priority.label,
            },
        )
        await self._publish(
            "report.created",
            {
                "report_id": stored.report_id,
                "entity_type": stored.entity_type.value,
                "entity_id": stored.entity_id,
                "reporter_id": stored.reporter_id,
                "reason": stored.reason.value,
                "priority": stored.priority.label,
            },
        )
        reporter = await self._describe_user(actor.user_id)
        return QueueItem(report=stored, entity=None, reporter=reporter)

    async def get_queue(
        self,
        actor: Actor,
        *,
        status: ReportStatus | str | None = None,
        priority: ReportPriority | str | int | None = None,
        page: int = 1,
        page_size: int = 20,
    ) -> Page[QueueItem]:
        """Return one page of reports, highest priority first, oldest first within a band."""
        ensure_moderator(actor)
        filters = ReportFilters(status=_parse_status(status), priority=_parse_priority(priority))
        self._check_paging(page, page_size)
        started = time.perf_counter()
        rows, total = await self.store.query(filters, ReportOrdering.QUEUE, page, page_size)
        items = await self._enrich(rows)
        obs_metrics.MOD_QUEUE_LATENCY_MS.observe((time.perf_counter() - started) * 1000.0)
        return Page(items=items, total=total, page=page, page_size=page_size)

    async def resolve(
        self,
        actor: Actor,
        report_id: str,
        action: ModerationAction | str,
        notes: Optional[str] = None,
    ) -> Report:
        """Apply ``action`` to the reported entity and close the report.

        The side effect and the status transition commit together: when a
        side-effecting action fails the report stays pending.
        """
        ensure_moderator(actor)
        parsed_action = _parse_action(action)
        report = await self.store.get(report_id)
        if report is None:
            raise ReportNotFound()
        if not report.is_pending:
            obs_metrics.report_conflict("already_resolved")
            raise AlreadyResolved()

        async def _apply_effect(current: Report, conn: Any) -> None:
            try:
                await self.executor.apply(current.entity_type, current.entity_id, parsed_action, conn=conn)
            except Exception as exc:
                if parsed_action.audit_only:
                    logger.warning(
                        "moderation audit-only action hook failed",
                        extra={"report_id": current.report_id, "action": parsed_action.value},
                        exc_info=True,
                    )
                    return
                obs_metrics.action_failed(parsed_action.value)
                logger.exception(
                    "moderation action failed, report left pending",
                    extra={
                        "report_id": current.report_id,
                        "entity_type": current.entity_type.value,
                        "entity_id": current.entity_id,
                        "action": parsed_action.value,
                    },
                )
                if isinstance(exc, ActionExecutionFailed):
                    raise
                raise ActionExecutionFailed() from exc

        try:
            resolved = await self.store.update_resolution(
                report.report_id,
                actor.user_id,
                parsed_action,
                _clean_text(notes),
                resolved_at=self.clock(),
                expected_status=ReportStatus.PENDING,
                apply_effect=_apply_effect,
            )
        except AlreadyResolved:
            obs_metrics.report_conflict("already_resolved")
            logger.info(
                "moderation resolution lost race",
                extra={"report_id": report.report_id, "moderator_id": actor.user_id},
            )
            raise

        obs_metrics.report_resolved(parsed_action.value)
        logger.info(
            "moderation report resolved",
            extra={
                "report_id": resolved.report_id,
                "moderator_id": actor.user_id,
                "action": parsed_action.value,
            },
        )
        await self._publish(
            "report.resolved",
            {
                "report_id": resolved.report_id,
                "entity_type": resolved.entity_type.value,
                "entity_id": resolved.entity_id,
                "resolver_id": actor.user_id,
                "action": parsed_action.value,
            },
        )
        return resolved

    async def get_report(self, actor: Actor, report_id: str) -> QueueItem:
        ensure_moderator(actor)
        report = await self.store.get(report_id)
        if report is None:
            raise ReportNotFound()
        items = await self._enrich([report])
        return items[0]

    async def list_reporter_reports(self, actor: Actor, *, page: int = 1, page_size: int = 20) -> Page[QueueItem]:
        """The caller's own reports, newest first."""
        self._check_paging(page, page_size)
        filters = ReportFilters(status=None, reporter_id=actor.user_id)
        rows, total = await self.store.query(filters, ReportOrdering.NEWEST, page, page_size)
        items = await self._enrich(rows)
        return Page(items=items, total=total, page=page, page_size=page_size)

    async def count_pending(self, actor: Actor) -> int:
        ensure_moderator(actor)
        _, total = await self.store.query(ReportFilters(), ReportOrdering.QUEUE, 1, 1)
        return total

    def _check_paging(self, page: int, page_size: int) -> None:
        if page < 1:
            raise InvalidQuery("invalid_page")
        if page_size < 1 or page_size > self.max_page_size:
            raise InvalidQuery("invalid_page_size")

    async def _enrich(self, rows: list[Report]) -> list[QueueItem]:
        users: dict[str, Optional[ReporterSummary]] = {}

        async def user(user_id: Optional[str]) -> Optional[ReporterSummary]:
            if not user_id:
                return None
            if user_id not in users:
                users[user_id] = await self._describe_user(user_id)
            return users[user_id]

        items: list[QueueItem] = []
        for report in rows:
            items.append(
                QueueItem(
                    report=report,
                    entity=await self._summarize(report),
                    reporter=await user(report.reporter_id),
                    resolver=await user(report.resolver_id),
                )
            )
        return items

    async def _summarize(self, report: Report) -> Optional[EntitySummary]:
        try:
            return await self.resolver.summarize(report.entity_type, report.entity_id)
        except Exception:  # noqa: BLE001 - a broken row must not fail the page
            logger.warning(
                "moderation entity summary unavailable",
                extra={"report_id": report.report_id, "entity_type": report.entity_type.value},
                exc_info=True,
            )
            return None

    async def _describe_user(self, user_id: str) -> Optional[ReporterSummary]:
        try:
            return await self.resolver.describe_user(user_id)
        except Exception:  # noqa: BLE001
            logger.warning("moderation user summary unavailable", extra={"user_id": user_id}, exc_info=True)
            return None

    async def _publish(self, event: str, payload: Mapping[str, Any]) -> None:
        if self.events is None:
            return
        try:
            await self.events.publish(event, payload)
        except Exception:  # noqa: BLE001 - the operation already committed
            logger.warning("moderation event publish failed", extra={"event": event}, exc_info=True)
