import pytest

from overlap.domain.common.errors import DomainError
from overlap.domain.profiles.exceptions import NicknameTooLong, UpgradeDisabled
from overlap.infra.auth import AuthenticatedUser
from overlap.settings import settings

ALICE = AuthenticatedUser(id="user-a", email="a@example.com")


@pytest.mark.asyncio
async def test_profile_is_created_on_first_read(profile_service, store):
    envelope = await profile_service.get_profile(ALICE)
    assert envelope.user.id == "user-a"
    assert envelope.user.email == "a@example.com"
    assert envelope.profile is not None
    assert envelope.profile.nickname is None
    assert envelope.profile.is_pro is False
    assert list(store.profiles) == ["user-a"]


@pytest.mark.asyncio
async def test_ensure_profile_is_idempotent(profile_service, store):
    await profile_service.ensure_profile("user-a")
    created_at = store.profiles["user-a"].created_at
    await profile_service.ensure_profile("user-a")
    assert store.profiles["user-a"].created_at == created_at


@pytest.mark.asyncio
async def test_nickname_is_trimmed_and_blank_clears_it(profile_service, store):
    await profile_service.update_nickname(ALICE, "  Night Owl ")
    assert store.profiles["user-a"].nickname == "Night Owl"
    await profile_service.update_nickname(ALICE, "   ")
    assert store.profiles["user-a"].nickname is None


@pytest.mark.asyncio
async def test_nickname_length_is_bounded(profile_service):
    with pytest.raises(NicknameTooLong):
        await profile_service.update_nickname(ALICE, "x" * 41)
    await profile_service.update_nickname(ALICE, "x" * 40)


@pytest.mark.asyncio
async def test_toggle_tier_flips_the_flag(profile_service):
    assert await profile_service.toggle_tier(ALICE) is True
    assert await profile_service.is_pro("user-a") is True
    assert await profile_service.toggle_tier(ALICE) is False
    assert await profile_service.is_pro("user-a") is False


@pytest.mark.asyncio
async def test_toggle_tier_can_be_disabled(profile_service, monkeypatch):
    monkeypatch.setattr(settings, "tier_toggle_enabled", False)
    with pytest.raises(DomainError) as excinfo:
        await profile_service.toggle_tier(ALICE)
    assert isinstance(excinfo.value, UpgradeDisabled)
    assert excinfo.value.reason == "upgrade_disabled"
