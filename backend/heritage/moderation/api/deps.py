"""FastAPI dependencies shared by the moderation routers."""

from __future__ import annotations

from fastapi import Depends

from heritage.infra.auth import AuthenticatedUser, get_current_user, require_roles
from heritage.moderation.domain.container import get_engine
from heritage.moderation.domain.engine import ModerationEngine
from heritage.moderation.domain.rbac import Actor
from heritage.settings import settings


def get_engine_dep() -> ModerationEngine:
    return get_engine()


def actor_from_user(user: AuthenticatedUser) -> Actor:
    return Actor.of(user.id, user.roles, staff_roles=settings.moderation_staff_roles)


async def get_actor(user: AuthenticatedUser = Depends(get_current_user)) -> Actor:
    return actor_from_user(user)


async def get_staff_actor(
    user: AuthenticatedUser = Depends(require_roles(*settings.moderation_staff_roles)),
) -> Actor:
    return actor_from_user(user)
