"""Error kinds raised by the moderation engine and its collaborators."""

from __future__ import annotations

from fastapi import status

if hasattr(status, "HTTP_422_UNPROCESSABLE_CONTENT"):
    _HTTP_422 = status.HTTP_422_UNPROCESSABLE_CONTENT
else:  # pragma: no cover - older Starlette builds
    _HTTP_422 = status.HTTP_422_UNPROCESSABLE_ENTITY


class ModerationError(Exception):
    """Base class for moderation failures surfaced to callers."""

    status_code: int = status.HTTP_400_BAD_REQUEST
    detail: str = "moderation_error"
    category: str = "validation"

    def __init__(self, detail: str | None = None) -> None:
        super().__init__(detail or self.detail)
        if detail:
            self.detail = detail


class InvalidEntityType(ModerationError):
    status_code = _HTTP_422
    detail = "invalid_entity_type"


class InvalidReason(ModerationError):
    status_code = _HTTP_422
    detail = "invalid_reason"


class InvalidAction(ModerationError):
    status_code = _HTTP_422
    detail = "invalid_action"


class InvalidQuery(ModerationError):
    """Paging or filter values outside their accepted range."""

    status_code = _HTTP_422
    detail = "invalid_query"


class EntityNotFound(ModerationError):
    status_code = status.HTTP_404_NOT_FOUND
    detail = "entity_not_found"
    category = "not_found"


class ReportNotFound(ModerationError):
    status_code = status.HTTP_404_NOT_FOUND
    detail = "report_not_found"
    category = "not_found"


class DuplicateReport(ModerationError):
    status_code = status.HTTP_409_CONFLICT
    detail = "duplicate_report"
    category = "conflict"


class AlreadyResolved(ModerationError):
    status_code = status.HTTP_409_CONFLICT
    detail = "already_resolved"
    category = "conflict"


class ModerationForbidden(ModerationError):
    status_code = status.HTTP_403_FORBIDDEN
    detail = "moderator_required"
    category = "forbidden"


class StorageUnavailable(ModerationError):
    """Wraps backend failures; the detail stays generic."""

    status_code = status.HTTP_503_SERVICE_UNAVAILABLE
    detail = "storage_unavailable"
    category = "infrastructure"


class ActionExecutionFailed(ModerationError):
    """A side-effecting resolution action could not be applied."""

    status_code = status.HTTP_502_BAD_GATEWAY
    detail = "action_execution_failed"
    category = "infrastructure"
