from __future__ import annotations

import asyncio
from dataclasses import replace

import pytest

from tests.conftest import mint_token, seed_user
from tutoring.core.errors import UnauthenticatedError
from tutoring.models.user import User
from tutoring.repos.unit_of_work import InMemoryStore
from tutoring.services import token_service
from tutoring.services.registry import Services


def test_resolves_current_role_and_active_flag(
    store: InMemoryStore, services: Services
) -> None:
    user = seed_user(store, "tutor")
    principal = asyncio.run(services.resolver.resolve(mint_token(user)))
    assert principal.user_id == user.id
    assert principal.role == "tutor"
    assert principal.active is True


def test_role_change_applies_to_existing_token(
    store: InMemoryStore, services: Services
) -> None:
    user = seed_user(store, "student")
    token = mint_token(user)
    store.users._by_id[user.id] = replace(user, role="admin", is_active=False)

    principal = asyncio.run(services.resolver.resolve(token))
    assert principal.role == "admin"
    assert principal.active is False


@pytest.mark.parametrize("credential", [None, "", "not-a-jwt"])
def test_bad_credentials_are_unauthenticated(services: Services, credential: str | None) -> None:
    with pytest.raises(UnauthenticatedError):
        asyncio.run(services.resolver.resolve(credential))


def test_expired_token_is_unauthenticated(store: InMemoryStore, services: Services) -> None:
    user = seed_user(store)
    token = token_service.create_access_token(sub=str(user.id), ttl_minutes=-1)
    with pytest.raises(UnauthenticatedError, match="expired"):
        asyncio.run(services.resolver.resolve(token))


def test_token_for_unknown_user_is_unauthenticated(services: Services) -> None:
    ghost = User.new(email="ghost@test.com")
    with pytest.raises(UnauthenticatedError):
        asyncio.run(services.resolver.resolve(mint_token(ghost)))


def test_non_uuid_subject_is_unauthenticated(services: Services) -> None:
    token = token_service.create_access_token(sub="alice")
    with pytest.raises(UnauthenticatedError):
        asyncio.run(services.resolver.resolve(token))
