import asyncio

import pytest

from overlap.domain.common.errors import StorageFailure
from overlap.domain.overlap import sockets as alert_sockets
from overlap.domain.overlap.exceptions import IntentInvalid, PartnerRequired, RateLimited
from overlap.domain.overlap.models import AlertStatus
from overlap.infra.auth import AuthenticatedUser
from overlap.settings import settings

ALICE = AuthenticatedUser(id="user-a", email="a@example.com")
BOB = AuthenticatedUser(id="user-b", email="b@example.com")
CAROL = AuthenticatedUser(id="user-c")


@pytest.fixture
def emitted(monkeypatch):
    sent = []

    async def fake_emit(user_id, payload):
        sent.append((user_id, payload))

    monkeypatch.setattr(alert_sockets, "emit_alert_new", fake_emit)
    return sent


def _alert_status(store, user_id):
    return {alert["status"] for alert in store.alerts.values() if alert["user_id"] == user_id}


@pytest.mark.asyncio
async def test_single_declaration_has_no_overlap(overlap_service, store, emitted):
    outcome = await overlap_service.declare(ALICE, "partner@example.com", "exclusive")
    assert outcome.created is True
    assert outcome.overlap is False
    assert store.alerts == {}
    assert store.rooms == {}
    assert emitted == []


@pytest.mark.asyncio
async def test_second_declarer_alerts_both_and_opens_one_room(overlap_service, store, emitted):
    await overlap_service.declare(ALICE, "Partner@Example.com", "exclusive")
    outcome = await overlap_service.declare(BOB, " partner@example.com ", "casual")

    assert outcome.overlap is True
    assert len(store.partners) == 1
    assert set(outcome.fanout.alerted_user_ids) == {"user-a", "user-b"}
    assert outcome.fanout.failures == ()
    assert len(store.rooms) == 1
    assert outcome.fanout.room_id == next(iter(store.rooms.values()))
    assert {user for user, _ in emitted} == {"user-a", "user-b"}
    payload = emitted[0][1]
    assert set(payload) == {"partner_hint", "created_at"}


@pytest.mark.asyncio
async def test_redeclaring_is_idempotent(overlap_service, store):
    first = await overlap_service.declare(ALICE, "partner@example.com", None)
    again = await overlap_service.declare(ALICE, "PARTNER@example.com", "casual")
    assert first.created is True
    assert again.created is False
    assert again.overlap is False
    assert len(store.declarations) == 1


@pytest.mark.asyncio
async def test_self_duplicate_never_counts_as_overlap(overlap_service, store):
    for _ in range(3):
        outcome = await overlap_service.declare(ALICE, "partner@example.com", None)
    assert outcome.declarer_count == 1
    assert outcome.overlap is False
    assert store.alerts == {}


@pytest.mark.asyncio
async def test_later_fanout_keeps_read_status(overlap_service, store, emitted):
    await overlap_service.declare(ALICE, "partner@example.com", None)
    await overlap_service.declare(BOB, "partner@example.com", None)
    assert await overlap_service.mark_all_read(ALICE) == 1

    emitted.clear()
    outcome = await overlap_service.declare(CAROL, "partner@example.com", None)

    assert outcome.overlap is True
    assert _alert_status(store, "user-a") == {AlertStatus.READ.value}
    assert _alert_status(store, "user-c") == {AlertStatus.NEW.value}
    assert [user for user, _ in emitted] == ["user-c"]
    assert len(store.rooms) == 1


@pytest.mark.asyncio
async def test_failed_alert_for_one_user_does_not_block_others(overlap_service, store):
    await overlap_service.declare(ALICE, "partner@example.com", None)
    store.failing_alert_users.add("user-a")

    outcome = await overlap_service.declare(BOB, "partner@example.com", None)

    assert outcome.overlap is True
    assert outcome.fanout.alerted_user_ids == ("user-b",)
    assert outcome.fanout.failures == ("upsert_alert:user-a",)
    assert len(store.rooms) == 1

    store.failing_alert_users.clear()
    await overlap_service.declare(CAROL, "partner@example.com", None)
    assert _alert_status(store, "user-a") == {AlertStatus.NEW.value}


@pytest.mark.asyncio
async def test_failed_room_creation_is_completed_by_a_later_pass(overlap_service, store):
    await overlap_service.declare(ALICE, "partner@example.com", None)
    store.failing.add("ensure_chat_room")

    outcome = await overlap_service.declare(BOB, "partner@example.com", None)
    assert outcome.overlap is True
    assert outcome.fanout.failures == ("ensure_chat_room",)
    assert store.rooms == {}
    assert len(store.alerts) == 2

    store.failing.clear()
    partner_id, partner_hash = next((pid, digest) for digest, pid in store.partners.items())
    report = await overlap_service.fan_out(partner_id, partner_hash)
    assert report.failures == ()
    assert len(store.rooms) == 1
    assert report.created_user_ids == ()


@pytest.mark.asyncio
async def test_count_failure_surfaces_as_storage_failure(overlap_service, store):
    store.failing.add("count_declarers")
    with pytest.raises(StorageFailure) as excinfo:
        await overlap_service.declare(ALICE, "partner@example.com", None)
    assert excinfo.value.operation == "count_declarers"
    assert len(store.declarations) == 1


@pytest.mark.asyncio
@pytest.mark.parametrize("partner", [None, "", "   ", " - "])
async def test_blank_partner_is_rejected(overlap_service, store, partner):
    with pytest.raises(PartnerRequired):
        await overlap_service.declare(ALICE, partner, None)
    assert store.declarations == {}


@pytest.mark.asyncio
async def test_intent_is_validated_and_normalised(overlap_service, store):
    with pytest.raises(IntentInvalid):
        await overlap_service.declare(ALICE, "partner@example.com", "serious")
    await overlap_service.declare(ALICE, "partner@example.com", " Casual ")
    (row,) = store.declarations.values()
    assert row.intent == "casual"


@pytest.mark.asyncio
async def test_declarations_are_rate_limited_per_user(overlap_service, monkeypatch):
    monkeypatch.setattr(settings, "declare_rate_per_minute", 2)
    await overlap_service.declare(ALICE, "one@example.com", None)
    await overlap_service.declare(ALICE, "two@example.com", None)
    with pytest.raises(RateLimited):
        await overlap_service.declare(ALICE, "three@example.com", None)
    outcome = await overlap_service.declare(BOB, "three@example.com", None)
    assert outcome.created is True


@pytest.mark.asyncio
async def test_concurrent_declarations_converge_on_one_partner(overlap_service, store):
    users = [AuthenticatedUser(id=f"user-{idx}") for idx in range(5)]
    await asyncio.gather(*(overlap_service.declare(user, "partner@example.com", None) for user in users))
    assert len(store.partners) == 1
    assert len(store.declarations) == 5
    assert {alert["user_id"] for alert in store.alerts.values()} == {user.id for user in users}
    assert len(store.rooms) == 1


@pytest.mark.asyncio
async def test_fanout_writes_audit_event(overlap_service, fake_redis):
    await overlap_service.declare(ALICE, "partner@example.com", None)
    await overlap_service.declare(BOB, "partner@example.com", None)
    entries = await fake_redis.xrange("x:overlap.events")
    assert len(entries) == 1
    _, fields = entries[0]
    assert fields["event"] == "overlap.fanout"
    assert fields["alerted"] == "2"
    assert "partner@example.com" not in str(fields)


@pytest.mark.asyncio
async def test_standard_tier_alerts_are_locked(overlap_service):
    await overlap_service.declare(ALICE, "partner@example.com", "exclusive")
    await overlap_service.declare(BOB, "partner@example.com", "casual")

    alerts, is_pro = await overlap_service.list_alerts(ALICE)
    assert is_pro is False
    assert len(alerts) == 1
    alert = alerts[0]
    assert alert.locked is True
    assert alert.overlap_count is None
    assert alert.intents is None
    assert alert.upgrade_prompt
    assert alert.room_id is not None
    assert alert.partner_hint.count("...") == 1


@pytest.mark.asyncio
async def test_pro_tier_sees_stats_about_others_only(overlap_service, profile_service, store):
    await overlap_service.declare(ALICE, "partner@example.com", "exclusive")
    await overlap_service.declare(BOB, "partner@example.com", "casual")
    await overlap_service.declare(CAROL, "partner@example.com", "casual")
    assert await profile_service.toggle_tier(ALICE) is True

    alerts, is_pro = await overlap_service.list_alerts(ALICE)
    assert is_pro is True
    alert = alerts[0]
    assert alert.locked is False
    assert alert.overlap_count == 2
    assert alert.intents == ["casual"]
    assert alert.upgrade_prompt is None
    bob_decl = store.declarations[("user-b", store.partners[next(iter(store.partners))])]
    carol_decl = store.declarations[("user-c", bob_decl.partner_id)]
    assert alert.last_active == max(bob_decl.created_at, carol_decl.created_at)


@pytest.mark.asyncio
async def test_alerts_are_listed_newest_first(overlap_service):
    await overlap_service.declare(ALICE, "first@example.com", None)
    await overlap_service.declare(BOB, "first@example.com", None)
    await overlap_service.declare(ALICE, "second@example.com", None)
    await overlap_service.declare(CAROL, "second@example.com", None)

    alerts, _ = await overlap_service.list_alerts(ALICE)
    assert len(alerts) == 2
    assert alerts[0].created_at > alerts[1].created_at


@pytest.mark.asyncio
async def test_mark_all_read_only_touches_own_new_alerts(overlap_service, store):
    await overlap_service.declare(ALICE, "partner@example.com", None)
    await overlap_service.declare(BOB, "partner@example.com", None)

    assert await overlap_service.mark_all_read(ALICE) == 1
    assert await overlap_service.mark_all_read(ALICE) == 0
    assert _alert_status(store, "user-b") == {AlertStatus.NEW.value}


@pytest.mark.asyncio
async def test_global_stats_are_cached(overlap_service, store, fake_redis):
    await overlap_service.declare(ALICE, "partner@example.com", None)
    await overlap_service.declare(BOB, "partner@example.com", None)
    await overlap_service.declare(CAROL, "other@example.com", None)

    stats = await overlap_service.global_stats()
    assert stats.total_overlaps == 1
    assert stats.total_declarations == 3
    assert await fake_redis.ttl("stats:global") > 0

    store.failing.add("global_stats")
    cached = await overlap_service.global_stats()
    assert cached == stats
