"""Tests for audit entry digests."""

from __future__ import annotations

import hashlib
from concurrent.futures import ThreadPoolExecutor

import pytest

from campaign_governance.core.errors import Internal
from campaign_governance.governance.hashing import GENESIS_HASH, compute_hash

BASE = {
    "action": "campaign_approve",
    "resource_id": "c1",
    "actor_id": "manager-1",
    "timestamp": "2026-01-05T10:00:00+00:00",
}


def _hash(**overrides) -> str:
    fields = {**BASE, **overrides}
    return compute_hash(
        fields["action"], fields["resource_id"], fields["actor_id"], fields["timestamp"]
    )


def test_deterministic() -> None:
    assert _hash() == _hash()


def test_is_sha256_of_canonical_json() -> None:
    expected = hashlib.sha256(
        b'{"action":"campaign_approve","actorId":"manager-1",'
        b'"resourceId":"c1","timestamp":"2026-01-05T10:00:00+00:00"}'
    ).hexdigest()
    assert _hash() == expected


@pytest.mark.parametrize(
    "field,value",
    [
        ("action", "campaign_reject"),
        ("resource_id", "c2"),
        ("actor_id", "manager-2"),
        ("timestamp", "2026-01-05T10:00:01+00:00"),
    ],
)
def test_any_field_change_changes_digest(field: str, value: str) -> None:
    assert _hash(**{field: value}) != _hash()


def test_single_character_change() -> None:
    assert _hash(resource_id="c1 ") != _hash()


def test_metadata_and_previous_hash_are_covered() -> None:
    plain = _hash()
    with_meta = compute_hash(*BASE.values(), metadata={"reason": "ok"})
    with_prev = compute_hash(*BASE.values(), previous_hash=GENESIS_HASH)
    assert len({plain, with_meta, with_prev}) == 3
    assert compute_hash(*BASE.values(), metadata={"reason": "ok"}) != compute_hash(
        *BASE.values(), metadata={"reason": "OK"}
    )


def test_metadata_key_order_irrelevant() -> None:
    a = compute_hash(*BASE.values(), metadata={"a": 1, "b": 2})
    b = compute_hash(*BASE.values(), metadata={"b": 2, "a": 1})
    assert a == b


def test_safe_across_threads() -> None:
    with ThreadPoolExecutor(max_workers=8) as pool:
        digests = set(pool.map(lambda _: _hash(), range(200)))
    assert digests == {_hash()}


def test_unserializable_metadata_raises_internal() -> None:
    with pytest.raises(Internal):
        compute_hash(*BASE.values(), metadata={"bad": object()})
