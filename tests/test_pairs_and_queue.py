# -*- coding: utf-8 -*-
"""
Unit tests for identity, pair generation and the comparison queue.

Covers:
    - new_id / normalize_title / pair_key / split_pair_key
    - all_pairs: count, uniqueness, determinism
    - queue_item_added / queue_item_removed: incremental patching
    - rebuild_queue: order preservation and idempotence
    - next_pending / remove_from_queue
"""

import pytest

from prioritise import (
    PAIR_DELIMITER,
    EmptyQueue,
    InvalidPair,
    all_pairs,
    new_id,
    next_pending,
    normalize_title,
    pair_key,
    queue_item_added,
    queue_item_removed,
    rebuild_queue,
    remove_from_queue,
    split_pair_key,
)


class StubRng:
    """Deterministic stand-in for random.Random."""

    def __init__(self, index):
        self.index = index
        self.calls = []

    def randrange(self, n):
        self.calls.append(n)
        return self.index


# ---------------------------------------------------------------------------
# Identity and normalization
# ---------------------------------------------------------------------------

def test_new_id_is_unique_and_delimiter_free():
    ids = {new_id() for _ in range(500)}
    assert len(ids) == 500
    assert all(PAIR_DELIMITER not in i for i in ids)


@pytest.mark.parametrize("raw, expected", [
    ("  Fix   Bug ", "fix bug"),
    ("Ship\tfeature\n", "ship feature"),
    ("WRITE DOCS", "write docs"),
    ("", ""),
])
def test_normalize_title(raw, expected):
    assert normalize_title(raw) == expected


def test_pair_key_is_order_independent():
    assert pair_key("b", "a") == pair_key("a", "b") == "a|b"


def test_pair_key_rejects_identical_ids():
    with pytest.raises(InvalidPair):
        pair_key("a", "a")


def test_split_pair_key_inverts_pair_key():
    assert split_pair_key(pair_key("zz", "aa")) == ("aa", "zz")


@pytest.mark.parametrize("key", ["a", "a|a", "|b", "a|b|c"])
def test_split_pair_key_rejects_malformed(key):
    with pytest.raises(InvalidPair):
        split_pair_key(key)


# ---------------------------------------------------------------------------
# Pair generation
# ---------------------------------------------------------------------------

@pytest.mark.parametrize("n", [0, 1, 2, 3, 7])
def test_all_pairs_count_and_uniqueness(n):
    ids = [f"id{i}" for i in range(n)]
    pairs = all_pairs(ids)
    assert len(pairs) == n * (n - 1) // 2
    assert len(set(pairs)) == len(pairs)
    for key in pairs:
        a, b = split_pair_key(key)
        assert a in ids and b in ids and a != b


def test_all_pairs_is_deterministic_and_ignores_repeats():
    assert all_pairs(["a", "b", "c"]) == ["a|b", "a|c", "b|c"]
    assert all_pairs(["a", "b", "a"]) == ["a|b"]


# ---------------------------------------------------------------------------
# Incremental queue updates
# ---------------------------------------------------------------------------

def test_queue_item_added_appends_in_existing_order():
    queue = ["a|b"]
    added = queue_item_added(queue, "c", ["a", "b"], decisions={})
    assert added == ["a|c", "b|c"]
    assert queue == ["a|b", "a|c", "b|c"]


def test_queue_item_added_skips_decided_and_queued():
    queue = ["a|c"]
    added = queue_item_added(queue, "c", ["a", "b", "d"], decisions={"b|c": "b"})
    assert added == ["c|d"]
    assert queue == ["a|c", "c|d"]


def test_queue_item_removed_drops_every_reference():
    queue = ["a|b", "a|c", "b|c", "b|d"]
    removed = queue_item_removed(queue, "b")
    assert removed == ["a|b", "b|c", "b|d"]
    assert queue == ["a|c"]


def test_queue_item_removed_matches_whole_ids_only():
    queue = ["a|ab", "ab|c"]
    queue_item_removed(queue, "a")
    assert queue == ["ab|c"]


# ---------------------------------------------------------------------------
# Rebuild
# ---------------------------------------------------------------------------

def test_rebuild_queue_preserves_existing_order():
    queue = rebuild_queue(["a", "b", "c"], {"a|b": "a"}, ["b|c", "x|y"])
    assert queue == ["b|c", "a|c"]


def test_rebuild_queue_is_idempotent():
    ids = ["a", "b", "c", "d"]
    decisions = {"a|d": "d", "b|c": "b"}
    once = rebuild_queue(ids, decisions, ["c|d", "a|b"])
    twice = rebuild_queue(ids, decisions, once)
    assert once == twice
    assert set(once) == set(all_pairs(ids)) - set(decisions)


def test_rebuild_agrees_with_incremental_removal():
    ids = ["a", "b", "c", "d"]
    decisions = {"a|c": "a"}
    queue = rebuild_queue(ids, decisions)
    queue_item_removed(queue, "b")
    assert rebuild_queue(["a", "c", "d"], decisions, queue) == queue


# ---------------------------------------------------------------------------
# Selection and removal
# ---------------------------------------------------------------------------

def test_next_pending_uses_injected_rng():
    rng = StubRng(2)
    assert next_pending(["a|b", "a|c", "b|c"], rng) == ("b|c", 2)
    assert rng.calls == [3]


def test_next_pending_on_empty_queue():
    with pytest.raises(EmptyQueue):
        next_pending([], StubRng(0))


def test_remove_from_queue_returns_index_and_is_idempotent():
    queue = ["a|b", "a|c", "b|c"]
    assert remove_from_queue(queue, "a|c") == 1
    assert remove_from_queue(queue, "a|c") is None
    assert queue == ["a|b", "b|c"]
