"""Records and closed vocabularies for content reports."""

from __future__ import annotations

import math
from dataclasses import dataclass, replace
from datetime import datetime
from enum import Enum, IntEnum
from typing import Generic, Optional, Sequence, TypeVar


class EntityType(str, Enum):
    COMMENT = "comment"
    ARTWORK = "artwork"
    EVENT = "event"
    USER = "user"
    CRAFT = "craft"


class ReportReason(str, Enum):
    SPAM = "spam"
    INAPPROPRIATE_CONTENT = "inappropriate_content"
    FALSE_CONTENT = "false_content"
    RIGHTS_VIOLATION = "rights_violation"
    HARASSMENT = "harassment"
    HATE_INCITEMENT = "hate_incitement"
    ILLEGAL_CONTENT = "illegal_content"
    OTHER = "other"


class ModerationAction(str, Enum):
    NONE = "none"
    WARNING = "warning"
    CONTENT_REMOVAL = "content_removal"
    TEMPORARY_SUSPENSION = "temporary_suspension"
    PERMANENT_SUSPENSION = "permanent_suspension"
    AUTHORITY_REFERRAL = "authority_referral"

    @property
    def audit_only(self) -> bool:
        """True for actions recorded for traceability without touching the entity."""
        return self in AUDIT_ONLY_ACTIONS


AUDIT_ONLY_ACTIONS = frozenset(
    {ModerationAction.NONE, ModerationAction.WARNING, ModerationAction.AUTHORITY_REFERRAL}
)


class ReportStatus(str, Enum):
    PENDING = "pending"
    RESOLVED = "resolved"


class ReportPriority(IntEnum):
    LOW = 0
    NORMAL = 1
    HIGH = 2
    URGENT = 3

    @property
    def label(self) -> str:
        return self.name.lower()

    @classmethod
    def from_label(cls, label: str) -> "ReportPriority":
        return cls[label.strip().upper()]


BASELINE_PRIORITY = ReportPriority.NORMAL


@dataclass
class Report:
    """A single user-filed flag against one entity."""

    report_id: str
    entity_type: EntityType
    entity_id: str
    reporter_id: str
    reason: ReportReason
    description: Optional[str]
    attachment_url: Optional[str]
    priority: ReportPriority
    status: ReportStatus
    created_at: datetime
    resolver_id: Optional[str] = None
    resolved_at: Optional[datetime] = None
    action_taken: Optional[ModerationAction] = None
    resolution_notes: Optional[str] = None

    @property
    def is_pending(self) -> bool:
        return self.status is ReportStatus.PENDING

    def resolved(
        self,
        *,
        resolver_id: str,
        action: ModerationAction,
        notes: Optional[str],
        resolved_at: datetime,
    ) -> "Report":
        """Return the terminal copy of this report; the original is left untouched."""
        return replace(
            self,
            status=ReportStatus.RESOLVED,
            resolver_id=resolver_id,
            resolved_at=resolved_at,
            action_taken=action,
            resolution_notes=notes,
        )


@dataclass(frozen=True)
class EntitySummary:
    """Read-only projection of a reported entity for display."""

    entity_type: EntityType
    entity_id: str
    title: Optional[str]
    status: Optional[str]


@dataclass(frozen=True)
class ReporterSummary:
    """Name-only view of a user; never carries contact details."""

    user_id: str
    display_name: Optional[str]


@dataclass
class QueueItem:
    report: Report
    entity: Optional[EntitySummary]
    reporter: Optional[ReporterSummary]
    resolver: Optional[ReporterSummary] = None


@dataclass(frozen=True)
class ActionOutcome:
    action: ModerationAction
    effect: Optional[str] = None
    applied: bool = False


@dataclass(frozen=True)
class ReportFilters:
    status: Optional[ReportStatus] = ReportStatus.PENDING
    priority: Optional[ReportPriority] = None
    reporter_id: Optional[str] = None


class ReportOrdering(str, Enum):
    # priority desc, then oldest first inside a priority band
    QUEUE = "queue"
    # newest first, used for a reporter's own history
    NEWEST = "newest"


T = TypeVar("T")


@dataclass
class Page(Generic[T]):
    items: Sequence[T]
    total: int
    page: int
    page_size: int

    @property
    def total_pages(self) -> int:
        if self.page_size <= 0:
            return 0
        return math.ceil(self.total / self.page_size)
