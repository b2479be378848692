from __future__ import annotations

import pytest
from fastapi import HTTPException

from heritage.infra import jwt as jwt_helper
from heritage.infra.auth import get_current_user, verify_access_jwt
from heritage.moderation.api.deps import actor_from_user
from heritage.settings import Settings, settings


def test_staff_roles_accept_csv_and_json(monkeypatch) -> None:
    monkeypatch.setenv("SECRET_KEY", "unit-secret-key-0123456789abcdef0123")
    monkeypatch.setenv("MODERATION_STAFF_ROLES", "moderator, admin ,curator")
    assert Settings().moderation_staff_roles == ("moderator", "admin", "curator")

    monkeypatch.setenv("MODERATION_STAFF_ROLES", '["admin"]')
    assert Settings().moderation_staff_roles == ("admin",)


def test_database_url_alias(monkeypatch) -> None:
    monkeypatch.setenv("SECRET_KEY", "unit-secret-key-0123456789abcdef0123")
    monkeypatch.delenv("POSTGRES_URL", raising=False)
    monkeypatch.setenv("DATABASE_URL", "postgresql://u:p@db:5432/patrimoine")
    assert Settings().postgres_url == "postgresql://u:p@db:5432/patrimoine"


def test_access_token_round_trip_builds_actor() -> None:
    token = jwt_helper.encode_access({"sub": "90", "roles": ["moderator"], "name": "Nadia"})
    user = verify_access_jwt(token)
    assert user.id == "90"
    assert user.display_name == "Nadia"
    actor = actor_from_user(user)
    assert actor.is_moderator


def test_tampered_token_is_rejected() -> None:
    token = jwt_helper.encode_access({"sub": "90"}) + "x"
    with pytest.raises(HTTPException) as excinfo:
        verify_access_jwt(token)
    assert excinfo.value.status_code == 401


@pytest.mark.asyncio
async def test_dev_headers_only_accepted_in_dev() -> None:
    user = await get_current_user(x_user_id="11", x_user_roles="user,moderator", credentials=None)
    assert user.roles == ("user", "moderator")

    settings.environment = "production"
    with pytest.raises(HTTPException) as excinfo:
        await get_current_user(x_user_id="11", x_user_roles=None, credentials=None)
    assert excinfo.value.detail == "invalid_token"
