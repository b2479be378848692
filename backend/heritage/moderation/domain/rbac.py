"""Caller identity passed explicitly into moderation operations."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable

from heritage.moderation.domain.errors import ModerationForbidden

DEFAULT_STAFF_ROLES: tuple[str, ...] = ("moderator", "admin")


@dataclass(frozen=True, slots=True)
class Actor:
    user_id: str
    roles: tuple[str, ...] = ()
    staff_roles: tuple[str, ...] = DEFAULT_STAFF_ROLES

    @classmethod
    def of(cls, user_id: str, roles: Iterable[str] = (), *, staff_roles: Iterable[str] | None = None) -> "Actor":
        return cls(
            user_id=str(user_id),
            roles=tuple(roles),
            staff_roles=tuple(staff_roles) if staff_roles is not None else DEFAULT_STAFF_ROLES,
        )

    @property
    def is_moderator(self) -> bool:
        return any(role in self.staff_roles for role in self.roles)


def ensure_moderator(actor: Actor) -> Actor:
    if not actor.is_moderator:
        raise ModerationForbidden()
    return actor
