from __future__ import annotations

import json
import threading

import pytest

from launch_watch.infra.seen_store import MemorySeenStore, RedisSeenStore

RETENTION = 86400


@pytest.fixture(params=["memory", "redis"])
def store(request, fake_clock, fake_redis):
    if request.param == "memory":
        return MemorySeenStore(clock=fake_clock)
    return RedisSeenStore(fake_redis, key_prefix="token:", clock=fake_clock)


def test_membership_boundary(store, fake_clock) -> None:
    store.mark_seen("FPM:F45yyX...", RETENTION)

    fake_clock.advance(RETENTION - 1)
    assert store.is_member("FPM:F45yyX...")

    fake_clock.advance(2)
    assert not store.is_member("FPM:F45yyX...")


def test_unknown_key_is_not_member(store) -> None:
    assert store.is_member("NOPE:none") is False


def test_count_and_clear(store) -> None:
    store.mark_seen("AAA:none", RETENTION)
    store.mark_seen("BBB:none", RETENTION)

    assert store.count_members() == 2
    assert store.clear() == 2
    assert store.count_members() == 0


def test_entries_report_keys_without_prefix(store) -> None:
    store.mark_seen("AAA:none", RETENTION)

    entries = store.entries()

    assert [entry["key"] for entry in entries] == ["AAA:none"]
    assert entries[0]["expires_at"] - entries[0]["sent_at"] == RETENTION


def test_memory_store_trims_oldest_when_over_cap(fake_clock) -> None:
    store = MemorySeenStore(clock=fake_clock, max_entries=1000, trim_to=500)
    for index in range(1001):
        fake_clock.advance(1)
        store.mark_seen(f"K{index}:none", RETENTION)

    assert store.count_members() == 500
    assert not store.is_member("K0:none")
    assert store.is_member("K1000:none")


def test_memory_store_count_ignores_expired(fake_clock) -> None:
    store = MemorySeenStore(clock=fake_clock)
    store.mark_seen("OLD:none", 10)
    fake_clock.advance(11)
    store.mark_seen("NEW:none", 10)

    assert store.count_members() == 1



def test_memory_store_concurrent_marks_keep_one_entry(fake_clock) -> None:
    store = MemorySeenStore(clock=fake_clock)
    retentions = [RETENTION + offset for offset in range(8)]
    barrier = threading.Barrier(len(retentions))

    def mark(retention: int) -> None:
        barrier.wait()
        for _ in range(200):
            store.mark_seen("FPM:F45yyX...", retention)

    threads = [threading.Thread(target=mark, args=(retention,)) for retention in retentions]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join()

    entries = store.entries()
    assert store.count_members() == 1
    assert [entry["key"] for entry in entries] == ["FPM:F45yyX..."]
    assert entries[0]["expires_at"] - entries[0]["sent_at"] in retentions


def test_redis_store_uses_setex_with_json_payload(fake_redis, fake_clock) -> None:
    store = RedisSeenStore(fake_redis, key_prefix="token:", clock=fake_clock)

    assert store.mark_seen("FPM:F45yyX...", RETENTION) is True

    assert fake_redis.ttls["token:FPM:F45yyX..."] == RETENTION
    payload = json.loads(fake_redis.values["token:FPM:F45yyX..."])
    assert payload == {"sent_at": fake_clock.now, "expires_at": fake_clock.now + RETENTION}


def test_redis_failures_degrade(broken_redis) -> None:
    store = RedisSeenStore(broken_redis)

    assert store.is_member("AAA:none") is False
    assert store.mark_seen("AAA:none", RETENTION) is False
    assert store.count_members() == 0
    assert store.clear() == 0
    assert store.entries() == []
    assert store.info()["connected"] is False
