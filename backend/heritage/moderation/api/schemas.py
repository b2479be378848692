"""Request and response bodies for the moderation report endpoints."""

from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, Field

from heritage.moderation.domain.models import (
    EntitySummary,
    Page,
    QueueItem,
    Report,
    ReporterSummary,
)


class ReportIn(BaseModel):
    entity_type: str = Field(alias="entityType", min_length=1, max_length=32)
    entity_id: str = Field(alias="entityId", min_length=1, max_length=64)
    reason: str = Field(min_length=1, max_length=64)
    description: str | None = Field(default=None, max_length=5000)
    attachment_url: str | None = Field(default=None, alias="attachmentUrl", max_length=500)

    model_config = {"populate_by_name": True}


class ResolveIn(BaseModel):
    action: str = Field(min_length=1, max_length=64)
    notes: str | None = Field(default=None, max_length=5000)


class UserOut(BaseModel):
    id: str
    display_name: str | None = Field(default=None, alias="displayName")

    model_config = {"populate_by_name": True}

    @classmethod
    def from_summary(cls, summary: ReporterSummary | None) -> "UserOut | None":
        if summary is None:
            return None
        return cls(id=summary.user_id, display_name=summary.display_name)


class EntityOut(BaseModel):
    type: str
    id: str
    title: str | None = None
    status: str | None = None

    @classmethod
    def from_summary(cls, summary: EntitySummary | None) -> "EntityOut | None":
        if summary is None:
            return None
        return cls(
            type=summary.entity_type.value,
            id=summary.entity_id,
            title=summary.title,
            status=summary.status,
        )


class ReportOut(BaseModel):
    id: str
    entity_type: str = Field(alias="entityType")
    entity_id: str = Field(alias="entityId")
    reporter_id: str = Field(alias="reporterId")
    reason: str
    description: str | None = None
    attachment_url: str | None = Field(default=None, alias="attachmentUrl")
    priority: str
    status: str
    created_at: datetime = Field(alias="createdAt")
    resolver_id: str | None = Field(default=None, alias="resolverId")
    resolved_at: datetime | None = Field(default=None, alias="resolvedAt")
    action_taken: str | None = Field(default=None, alias="actionTaken")
    resolution_notes: str | None = Field(default=None, alias="resolutionNotes")
    reporter: UserOut | None = None
    resolver: UserOut | None = None
    entity: EntityOut | None = None

    model_config = {"populate_by_name": True}

    @classmethod
    def from_report(cls, report: Report) -> "ReportOut":
        return cls(
            id=report.report_id,
            entity_type=report.entity_type.value,
            entity_id=report.entity_id,
            reporter_id=report.reporter_id,
            reason=report.reason.value,
            description=report.description,
            attachment_url=report.attachment_url,
            priority=report.priority.label,
            status=report.status.value,
            created_at=report.created_at,
            resolver_id=report.resolver_id,
            resolved_at=report.resolved_at,
            action_taken=report.action_taken.value if report.action_taken else None,
            resolution_notes=report.resolution_notes,
        )

    @classmethod
    def from_item(cls, item: QueueItem) -> "ReportOut":
        out = cls.from_report(item.report)
        out.reporter = UserOut.from_summary(item.reporter)
        out.resolver = UserOut.from_summary(item.resolver)
        out.entity = EntityOut.from_summary(item.entity)
        return out


class PaginationOut(BaseModel):
    total: int
    page: int
    page_size: int = Field(alias="pageSize")
    total_pages: int = Field(alias="totalPages")

    model_config = {"populate_by_name": True}


class ReportPageOut(BaseModel):
    items: list[ReportOut]
    pagination: PaginationOut

    @classmethod
    def from_page(cls, page: Page[QueueItem]) -> "ReportPageOut":
        return cls(
            items=[ReportOut.from_item(item) for item in page.items],
            pagination=PaginationOut(
                total=page.total,
                page=page.page,
                page_size=page.page_size,
                total_pages=page.total_pages,
            ),
        )


class StatsOut(BaseModel):
    pending: int
