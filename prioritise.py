#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""
Prioritise Everything - pairwise prioritisation engine

Ranks a list of items by asking a series of head-to-head
"which matters more?" questions and deriving a total order from
the accumulated decisions:
1. Every unordered pair of items is queued for a decision
2. Each decision records one winner for its pair (undoable)
3. Items are ranked by wins, then losses, then head-to-head,
   then title

Outputs:
- Ranking on the console (or in the desktop app)
- Excel or CSV export with the ranking, matchup matrix and notes

State is kept in a single JSON file and saved after every change.

Usage:
    python prioritise.py add "Ship feature" "Fix bug" "Write docs"
    python prioritise.py compare
    python prioritise.py rank
    python prioritise.py export ranking.xlsx
"""

import argparse
import functools
import json
import logging
import os
import random
import re
import sys
import time
from dataclasses import dataclass, field
from pathlib import Path
from typing import Iterable, Optional

import networkx as nx
import pandas as pd

logger = logging.getLogger(__name__)

STORAGE_KEY = "pe_state_v1"
PAIR_DELIMITER = "|"
DEFAULT_STATE_PATH = Path(
    os.environ.get("PRIORITISE_STATE", Path.home() / ".prioritise" / "state.json")
)


# =============================================================================
# Errors
# =============================================================================

class PrioritiseError(Exception):
    """Base class for all engine errors."""


class InvalidPair(PrioritiseError, ValueError):
    """A pair key was built from identical ids, or could not be parsed."""


class InvalidDecision(PrioritiseError, ValueError):
    """A decision named a winner outside its pair, or an unknown pair."""


class DuplicateItem(PrioritiseError, ValueError):
    """An item with the same normalized title already exists."""

    def __init__(self, title: str, existing: "Item"):
        super().__init__(f"An item titled '{existing.title}' already exists")
        self.title = title
        self.existing = existing


class EmptyTitle(PrioritiseError, ValueError):
    """An item title was blank."""


class EmptyQueue(PrioritiseError, LookupError):
    """No comparison is pending."""


# =============================================================================
# Data Classes
# =============================================================================

@dataclass
class Item:
    """A user-entered entity being ranked."""
    id: str
    title: str
    normalized_title: str


@dataclass
class HistoryEntry:
    """
    One recorded decision, kept for undo.

    previous_winner is set when the decision overwrote an earlier one;
    queue_index is where the pair sat in the queue before it was decided.
    """
    pair_key: str
    winner_id: str
    previous_winner: Optional[str] = None
    queue_index: Optional[int] = None


@dataclass
class RankingEntry:
    position: int
    item: Item
    wins: int
    losses: int


@dataclass
class RankingSnapshot:
    """Container for a computed ranking."""
    entries: list[RankingEntry] = field(default_factory=list)

    @property
    def items(self) -> list[Item]:
        return [entry.item for entry in self.entries]


@dataclass
class Progress:
    decided: int
    total: int

    @property
    def remaining(self) -> int:
        return self.total - self.decided

    @property
    def is_complete(self) -> bool:
        return self.total > 0 and self.decided >= self.total

    def __str__(self) -> str:
        return f"{self.decided} / {self.total}"


@dataclass
class Prompt:
    """
    What the presentation layer should show next.

    status is "too_few" (fewer than two items), "done" (nothing left
    to compare) or "pending" (key, item_a and item_b are set).
    """
    status: str
    key: Optional[str] = None
    item_a: Optional[Item] = None
    item_b: Optional[Item] = None


# =============================================================================
# Identity and Normalization
# =============================================================================

_BASE36 = "0123456789abcdefghijklmnopqrstuvwxyz"


def _to_base36(number: int) -> str:
    if number == 0:
        return "0"
    digits = []
    while number:
        number, rem = divmod(number, 36)
        digits.append(_BASE36[rem])
    return "".join(reversed(digits))


def new_id() -> str:
    """
    Generate a fresh item identifier.

    A random base-36 part followed by the current time in milliseconds,
    also in base 36. Never contains PAIR_DELIMITER.
    """
    return _to_base36(random.getrandbits(52)) + _to_base36(time.time_ns() // 1_000_000)


def normalize_title(text: str) -> str:
    """Trim, collapse internal whitespace and lowercase a title."""
    return " ".join(text.split()).lower()


def pair_key(id_a: str, id_b: str) -> str:
    """
    Build the canonical key for an unordered pair of item ids.

    Args:
        id_a: First item id
        id_b: Second item id

    Returns:
        The two ids, smaller first, joined by PAIR_DELIMITER

    Raises:
        InvalidPair: If both ids are the same
    """
    if id_a == id_b:
        raise InvalidPair(f"Cannot pair an item with itself: {id_a!r}")
    first, second = (id_a, id_b) if id_a < id_b else (id_b, id_a)
    return f"{first}{PAIR_DELIMITER}{second}"


def split_pair_key(key: str) -> tuple[str, str]:
    """
    Split a canonical pair key back into its two ids.

    Raises:
        InvalidPair: If the key does not encode two distinct ids
    """
    parts = key.split(PAIR_DELIMITER)
    if len(parts) != 2 or not parts[0] or not parts[1] or parts[0] == parts[1]:
        raise InvalidPair(f"Malformed pair key: {key!r}")
    return parts[0], parts[1]


def _key_mentions(key: str, item_id: str) -> bool:
    return item_id in key.split(PAIR_DELIMITER)


# =============================================================================
# Pair Set Generation
# =============================================================================

def all_pairs(item_ids: Iterable[str]) -> list[str]:
    """
    Enumerate every unordered pair of distinct item ids.

    For N ids this yields N*(N-1)/2 canonical keys, in i<j index order.
    Repeated ids in the input are ignored.

    Args:
        item_ids: Item ids in display order

    Returns:
        List of canonical pair keys
    """
    ids = list(dict.fromkeys(item_ids))
    pairs = []
    for i in range(len(ids) - 1):
        for j in range(i + 1, len(ids)):
            pairs.append(pair_key(ids[i], ids[j]))
    return pairs


# =============================================================================
# Comparison Queue
# =============================================================================

def queue_item_added(
    queue: list[str],
    item_id: str,
    existing_ids: Iterable[str],
    decisions
) -> list[str]:
    """
    Queue the pairs between a new item and every existing item.

    Pairs that are already decided or already queued are skipped. The
    existing queue order is kept and new pairs are appended in
    existing-item order. The queue is modified in place.

    Args:
        queue: Pending pair keys
        item_id: Id of the item just added
        existing_ids: Ids of the items already present
        decisions: Anything supporting ``key in decisions``

    Returns:
        The keys that were appended
    """
    queued = set(queue)
    added = []
    for other_id in existing_ids:
        if other_id == item_id:
            continue
        key = pair_key(item_id, other_id)
        if key in decisions or key in queued:
            continue
        queue.append(key)
        queued.add(key)
        added.append(key)
    return added


def queue_item_removed(queue: list[str], removed_id: str) -> list[str]:
    """Drop every queued pair that references removed_id, in place."""
    removed = [key for key in queue if _key_mentions(key, removed_id)]
    if removed:
        queue[:] = [key for key in queue if not _key_mentions(key, removed_id)]
    return removed


def rebuild_queue(
    item_ids: Iterable[str],
    decisions,
    current_queue: Iterable[str] = ()
) -> list[str]:
    """
    Recompute the pending queue from scratch.

    The result is every pair of current items minus the decided ones.
    Keys already in current_queue keep their relative order and come
    first; newly pending keys follow. Calling this twice in a row gives
    the same result.

    Args:
        item_ids: Ids of the current items
        decisions: Anything supporting ``key in decisions``
        current_queue: The queue as it stands

    Returns:
        The new queue
    """
    pending = [key for key in all_pairs(item_ids) if key not in decisions]
    pending_set = set(pending)
    kept = list(dict.fromkeys(key for key in current_queue if key in pending_set))
    kept_set = set(kept)
    return kept + [key for key in pending if key not in kept_set]


def next_pending(queue: list[str], rng) -> tuple[str, int]:
    """
    Pick a pending pair uniformly at random.

    Random rather than first-in-order so the same pairing does not
    always come up first.

    Args:
        queue: Pending pair keys
        rng: Source with a ``randrange(n)`` method, e.g. random.Random

    Returns:
        Tuple of (key, index in queue)

    Raises:
        EmptyQueue: If nothing is pending
    """
    if not queue:
        raise EmptyQueue("No pending pair")
    index = rng.randrange(len(queue))
    return queue[index], index


def remove_from_queue(queue: list[str], key: str) -> Optional[int]:
    """
    Remove the first occurrence of key; absent keys are ignored.

    Returns:
        The index the key was removed from, or None if it was not queued
    """
    try:
        index = queue.index(key)
    except ValueError:
        return None
    del queue[index]
    return index


# =============================================================================
# Decision Store
# =============================================================================

class DecisionStore:
    """Maps each decided pair key to the id of its winner."""

    def __init__(self, decisions: Optional[dict[str, str]] = None):
        self._winners: dict[str, str] = {}
        for key, winner_id in (decisions or {}).items():
            self.decide(key, winner_id)

    def __contains__(self, key) -> bool:
        return key in self._winners

    def __len__(self) -> int:
        return len(self._winners)

    def __iter__(self):
        return iter(self._winners)

    def items(self):
        return self._winners.items()

    def get(self, key: str, default: Optional[str] = None) -> Optional[str]:
        return self._winners.get(key, default)

    def as_dict(self) -> dict[str, str]:
        return dict(self._winners)

    def decide(self, key: str, winner_id: str) -> Optional[str]:
        """
        Record winner_id as the winner of the pair.

        Re-deciding a pair replaces the earlier winner.

        Returns:
            The previous winner, or None if the pair was undecided

        Raises:
            InvalidDecision: If winner_id is not one of the pair's ids
        """
        try:
            pair = split_pair_key(key)
        except InvalidPair as e:
            raise InvalidDecision(str(e)) from e
        if winner_id not in pair:
            raise InvalidDecision(
                f"Winner {winner_id!r} is not part of pair {key!r}"
            )
        previous = self._winners.get(key)
        self._winners[key] = winner_id
        return previous

    def retract(self, key: str) -> None:
        self._winners.pop(key, None)

    def winner_of(self, key: str) -> Optional[str]:
        """Return the recorded winner, or None when undecided."""
        return self._winners.get(key)

    def purge_item(self, item_id: str) -> list[str]:
        """Delete every decision that references item_id."""
        stale = [key for key in self._winners if _key_mentions(key, item_id)]
        for key in stale:
            del self._winners[key]
        return stale

    def decided_count(self, item_ids: Iterable[str]) -> int:
        """Count decisions whose two items are both in item_ids."""
        current = set(item_ids)
        count = 0
        for key in self._winners:
            a, b = split_pair_key(key)
            if a in current and b in current:
                count += 1
        return count


# =============================================================================
# Ranking
# =============================================================================

def compare_entries(first: RankingEntry, second: RankingEntry, decisions) -> int:
    """
    Order two ranking entries.

    1. More wins first
    2. Fewer losses first
    3. Head-to-head winner first, if that pair was decided
    4. Normalized title, lexicographically

    Step 3 makes this a comparator rather than a score: with cyclic
    decisions (A beat B, B beat C, C beat A) it is not globally
    transitive. Items are never reordered to hide a cycle.

    Returns:
        Negative if first sorts before second, positive if after, else 0
    """
    if first.item.id == second.item.id:
        return 0
    if first.wins != second.wins:
        return second.wins - first.wins
    if first.losses != second.losses:
        return first.losses - second.losses

    winner = decisions.get(pair_key(first.item.id, second.item.id))
    if winner == first.item.id:
        return -1
    if winner == second.item.id:
        return 1

    a, b = first.item.normalized_title, second.item.normalized_title
    if a != b:
        return -1 if a < b else 1
    return -1 if first.item.id < second.item.id else 1


def compute_ranking(items: list[Item], decisions) -> RankingSnapshot:
    """
    Rank items from the recorded decisions.

    Decisions that reference items no longer present are ignored.

    Args:
        items: Current items
        decisions: DecisionStore or plain dict of pair key -> winner id

    Returns:
        RankingSnapshot with positions, wins and losses
    """
    wins = {item.id: 0 for item in items}
    losses = {item.id: 0 for item in items}

    for key, winner_id in decisions.items():
        a, b = split_pair_key(key)
        if a not in wins or b not in wins:
            continue
        loser_id = b if winner_id == a else a
        wins[winner_id] += 1
        losses[loser_id] += 1

    entries = [
        RankingEntry(position=0, item=item, wins=wins[item.id], losses=losses[item.id])
        for item in items
    ]
    entries.sort(key=functools.cmp_to_key(
        lambda x, y: compare_entries(x, y, decisions)
    ))
    for position, entry in enumerate(entries, start=1):
        entry.position = position

    return RankingSnapshot(entries=entries)


# =============================================================================
# Engine
# =============================================================================

class Prioritiser:
    """
    Owns the whole prioritisation state and the operations on it.

    Every mutation is applied in memory first and then saved to the
    store, if one was given. A failed save never undoes the mutation.
    """

    def __init__(self, store=None, rng=None):
        self.items: list[Item] = []
        self.decisions = DecisionStore()
        self.queue: list[str] = []
        self.history: list[HistoryEntry] = []
        self.display_name = ""
        self.rng = rng if rng is not None else random.Random()
        self.store = store

        if store is not None:
            self.restore(store.load())

    # --- Lookup ---

    @property
    def item_ids(self) -> list[str]:
        return [item.id for item in self.items]

    def item_for(self, item_id: str) -> Optional[Item]:
        for item in self.items:
            if item.id == item_id:
                return item
        return None

    def find_item(self, title: str) -> Optional[Item]:
        """Find an item by title, ignoring case and whitespace."""
        wanted = normalize_title(title)
        for item in self.items:
            if item.normalized_title == wanted:
                return item
        return None

    # --- Mutations ---

    def add_item(self, title: str) -> Item:
        """
        Add an item and queue its pairs with every existing item.

        Raises:
            EmptyTitle: If the title is blank
            DuplicateItem: If an item with the same normalized title exists
        """
        title = title.strip()
        if not title:
            raise EmptyTitle("Item title cannot be blank")
        existing = self.find_item(title)
        if existing is not None:
            raise DuplicateItem(title, existing)

        item = Item(id=new_id(), title=title, normalized_title=normalize_title(title))
        existing_ids = self.item_ids
        self.items.append(item)
        added = queue_item_added(self.queue, item.id, existing_ids, self.decisions)
        logger.debug("Added item %r (%d new pairs)", title, len(added))

        self.save()
        return item

    def remove_item(self, item_id: str) -> Optional[Item]:
        """
        Remove an item with all of its decisions, queued pairs and history.

        Returns:
            The removed item, or None if no item has that id
        """
        item = self.item_for(item_id)
        if item is None:
            return None
        self.items.remove(item)

        purged = self.decisions.purge_item(item_id)
        queue_item_removed(self.queue, item_id)
        self.history = [
            entry for entry in self.history
            if not _key_mentions(entry.pair_key, item_id)
        ]
        self.queue = rebuild_queue(self.item_ids, self.decisions, self.queue)
        logger.debug("Removed item %r (%d decisions purged)", item.title, len(purged))

        self.save()
        return item

    def decide(self, key: str, winner_id: str) -> HistoryEntry:
        """
        Record the winner of a pair and take the pair off the queue.

        Raises:
            InvalidDecision: If the key is malformed, references an item
                that no longer exists, or winner_id is not in the pair
        """
        try:
            a, b = split_pair_key(key)
        except InvalidPair as e:
            raise InvalidDecision(str(e)) from e
        if self.item_for(a) is None or self.item_for(b) is None:
            raise InvalidDecision(f"Pair {key!r} references an unknown item")

        previous = self.decisions.decide(key, winner_id)
        queue_index = remove_from_queue(self.queue, key)

        entry = HistoryEntry(
            pair_key=key,
            winner_id=winner_id,
            previous_winner=previous,
            queue_index=queue_index,
        )
        self.history.append(entry)
        logger.debug("Decided %s -> %s", key, winner_id)

        self.save()
        return entry

    def undo(self) -> Optional[HistoryEntry]:
        """
        Reverse the most recent decision.

        Returns:
            The undone history entry, or None if there was nothing to undo

        Raises:
            InvalidDecision: If the entry's previous winner is not part of
                its pair; the entry stays on the history stack
        """
        if not self.history:
            return None
        entry = self.history[-1]
        key = entry.pair_key

        if entry.previous_winner is not None:
            self.decisions.decide(key, entry.previous_winner)
        else:
            self.decisions.retract(key)
        self.history.pop()

        if key not in self.queue and key not in self.decisions:
            if entry.queue_index is None:
                self.queue.append(key)
            else:
                self.queue.insert(min(entry.queue_index, len(self.queue)), key)
        logger.debug("Undid decision on %s", key)

        self.save()
        return entry

    def reset_all(self) -> None:
        self.items = []
        self.decisions = DecisionStore()
        self.queue = []
        self.history = []
        self.display_name = ""
        logger.debug("Reset all state")
        self.save()

    def set_display_name(self, name: str) -> None:
        self.display_name = " ".join(name.split())
        self.save()

    # --- Queries ---

    def current_prompt(self) -> Prompt:
        """
        Choose the next comparison to show.

        A queued pair that references a missing item causes the queue to
        be rebuilt and saved before trying again.
        """
        if len(self.items) < 2:
            return Prompt(status="too_few")
        try:
            key, _ = next_pending(self.queue, self.rng)
        except EmptyQueue:
            return Prompt(status="done")

        try:
            a_id, b_id = split_pair_key(key)
        except InvalidPair:
            a_id = b_id = None
        item_a = self.item_for(a_id) if a_id else None
        item_b = self.item_for(b_id) if b_id else None
        if item_a is None or item_b is None:
            logger.debug("Dropping stale queue entry %r", key)
            self.queue = rebuild_queue(self.item_ids, self.decisions, self.queue)
            self.save()
            return self.current_prompt()

        return Prompt(status="pending", key=key, item_a=item_a, item_b=item_b)

    def ranking_snapshot(self) -> RankingSnapshot:
        return compute_ranking(self.items, self.decisions)

    def progress(self) -> Progress:
        n = len(self.items)
        return Progress(
            decided=self.decisions.decided_count(self.item_ids),
            total=n * (n - 1) // 2,
        )

    # --- Persistence ---

    def to_snapshot(self) -> dict:
        """Serialisable snapshot of the whole state."""
        return {
            "items": [
                {"id": item.id, "title": item.title,
                 "normalized_title": item.normalized_title}
                for item in self.items
            ],
            "decisions": self.decisions.as_dict(),
            "queue": list(self.queue),
            "history": [
                {"pair_key": entry.pair_key, "winner_id": entry.winner_id,
                 "previous_winner": entry.previous_winner,
                 "queue_index": entry.queue_index}
                for entry in self.history
            ],
            "display_name": self.display_name,
        }

    def restore(self, snapshot: dict) -> None:
        """
        Replace the state with a loaded snapshot.

        Malformed parts are dropped rather than rejected. Snapshots saved
        by the browser version (tasks/results/name keys) are accepted.
        The queue is rebuilt afterwards so it matches items and decisions.
        """
        if not isinstance(snapshot, dict):
            snapshot = {}

        self.items = _parse_items(snapshot.get("items", snapshot.get("tasks")))
        self.decisions = _parse_decisions(snapshot.get("decisions", snapshot.get("results")))
        self.history = _parse_history(snapshot.get("history"), self.decisions, self.item_ids)

        queue = snapshot.get("queue")
        queue = [k for k in queue if isinstance(k, str)] if isinstance(queue, list) else []
        self.queue = rebuild_queue(self.item_ids, self.decisions, queue)

        name = snapshot.get("display_name", snapshot.get("name"))
        self.display_name = name if isinstance(name, str) else ""

    def save(self) -> bool:
        if self.store is None:
            return False
        return self.store.save(self.to_snapshot())


def _parse_items(raw) -> list[Item]:
    if not isinstance(raw, list):
        return []
    items = []
    seen_ids = set()
    seen_titles = set()
    for entry in raw:
        if not isinstance(entry, dict):
            continue
        item_id = entry.get("id")
        title = entry.get("title")
        if not isinstance(item_id, str) or not item_id or PAIR_DELIMITER in item_id:
            continue
        if not isinstance(title, str) or not title.strip():
            continue
        normalized = normalize_title(title)
        if item_id in seen_ids or normalized in seen_titles:
            continue
        seen_ids.add(item_id)
        seen_titles.add(normalized)
        items.append(Item(id=item_id, title=title.strip(), normalized_title=normalized))
    return items


def _parse_decisions(raw) -> DecisionStore:
    store = DecisionStore()
    if not isinstance(raw, dict):
        return store
    for key, winner_id in raw.items():
        if not isinstance(key, str) or not isinstance(winner_id, str):
            continue
        try:
            store.decide(key, winner_id)
        except InvalidDecision:
            logger.warning("Dropping malformed decision %r -> %r", key, winner_id)
    return store


def _parse_history(raw, decisions: DecisionStore, item_ids: Iterable[str]) -> list[HistoryEntry]:
    """Keep only entries that undo could apply to the current items."""
    if not isinstance(raw, list):
        return []
    current = set(item_ids)
    history = []
    for entry in raw:
        if not isinstance(entry, dict):
            continue
        key = entry.get("pair_key", entry.get("pairKey"))
        winner_id = entry.get("winner_id", entry.get("winnerId"))
        if not isinstance(key, str) or key not in decisions:
            continue
        try:
            pair = split_pair_key(key)
        except InvalidPair:
            continue
        if not current.issuperset(pair):
            logger.warning("Dropping history entry %r for a removed item", key)
            continue
        previous = entry.get("previous_winner")
        previous = previous if isinstance(previous, str) else None
        if winner_id not in pair or (previous is not None and previous not in pair):
            logger.warning("Dropping history entry %r with a winner outside its pair", key)
            continue
        queue_index = entry.get("queue_index")
        history.append(HistoryEntry(
            pair_key=key,
            winner_id=winner_id,
            previous_winner=previous,
            queue_index=queue_index if isinstance(queue_index, int) else None,
        ))
    return history


# =============================================================================
# State Storage
# =============================================================================

class JsonStateStore:
    """
    Key-value JSON file holding the snapshot under a single key.

    Other keys in the file are left untouched. Failures to read or write
    are logged and never raised.
    """

    def __init__(self, path, key: str = STORAGE_KEY):
        self.path = Path(path)
        self.key = key

    def _read_blob(self) -> dict:
        if not self.path.exists():
            return {}
        blob = json.loads(self.path.read_text(encoding="utf-8"))
        return blob if isinstance(blob, dict) else {}

    def load(self) -> dict:
        """
        Load the stored snapshot.

        Returns:
            The snapshot dict, or an empty dict if nothing usable is stored
        """
        try:
            snapshot = self._read_blob().get(self.key)
            # Browser localStorage keeps the snapshot as a JSON string
            if isinstance(snapshot, str):
                snapshot = json.loads(snapshot)
        except (OSError, ValueError) as e:
            logger.warning("Failed to load state from %s: %s", self.path, e)
            return {}
        return snapshot if isinstance(snapshot, dict) else {}

    def save(self, snapshot: dict) -> bool:
        """Write the snapshot; returns False if it could not be saved."""
        try:
            try:
                blob = self._read_blob()
            except ValueError:
                blob = {}
            blob[self.key] = snapshot
            text = json.dumps(blob, indent=2, ensure_ascii=False)

            self.path.parent.mkdir(parents=True, exist_ok=True)
            tmp_path = self.path.with_name(self.path.name + ".tmp")
            tmp_path.write_text(text, encoding="utf-8")
            os.replace(tmp_path, self.path)
        except (OSError, TypeError, ValueError) as e:
            logger.warning("Failed to save state to %s: %s", self.path, e)
            return False
        return True


# =============================================================================
# Analysis
# =============================================================================

def build_victory_graph(items: list[Item], decisions) -> nx.DiGraph:
    """
    Build a directed graph of decisions.

    An edge from A to B means A was chosen over B. Only decisions
    between current items are included.

    Args:
        items: Current items
        decisions: DecisionStore or dict of pair key -> winner id

    Returns:
        Directed graph keyed by item id, with a title node attribute
    """
    g = nx.DiGraph()
    for item in items:
        g.add_node(item.id, title=item.title)

    for key, winner_id in decisions.items():
        a, b = split_pair_key(key)
        if a in g and b in g:
            loser_id = b if winner_id == a else a
            g.add_edge(winner_id, loser_id)

    return g


def find_intransitive_groups(items: list[Item], decisions) -> list[list[str]]:
    """
    Find groups of items caught in preference cycles.

    Two items share a group when each can be reached from the other by
    following decisions (A over B over C over A), i.e. they lie in the
    same strongly connected component of the victory graph. Groups are
    only reported; the ranking does not try to resolve them.

    Args:
        items: Current items
        decisions: DecisionStore or dict of pair key -> winner id

    Returns:
        One alphabetical list of titles per group, groups ordered by
        their first title
    """
    graph = build_victory_graph(items, decisions)
    by_id = {item.id: item for item in items}

    groups = []
    for component in nx.strongly_connected_components(graph):
        if len(component) < 2:
            continue
        members = sorted((by_id[item_id] for item_id in component),
                         key=lambda item: (item.normalized_title, item.id))
        groups.append([item.title for item in members])

    groups.sort(key=lambda group: normalize_title(group[0]))
    return groups


def build_matchup_matrix(items: list[Item], decisions) -> pd.DataFrame:
    """
    Build the head-to-head matrix in ranking order.

    Entry (i, j) is 1 if item i was chosen over item j, -1 if j was
    chosen over i, and empty if the pair is undecided.

    Args:
        items: Current items
        decisions: DecisionStore or dict of pair key -> winner id

    Returns:
        DataFrame indexed and labelled by item title
    """
    ranked = compute_ranking(items, decisions).items
    titles = [item.title for item in ranked]

    matrix_data = []
    for row_item in ranked:
        row = []
        for col_item in ranked:
            if row_item.id == col_item.id:
                row.append(None)
                continue
            winner = decisions.get(pair_key(row_item.id, col_item.id))
            if winner is None:
                row.append(None)
            else:
                row.append(1 if winner == row_item.id else -1)
        matrix_data.append(row)

    return pd.DataFrame(matrix_data, index=titles, columns=titles)


# =============================================================================
# Output Generation
# =============================================================================

SMALL_WORDS = frozenset({
    "a", "an", "the", "and", "but", "or", "nor", "for", "so", "yet", "as",
    "at", "by", "in", "of", "on", "per", "to", "vs", "via",
})


def _capitalise_core(word: str) -> str:
    parts = word.lower().split("'")
    return "'".join(part[:1].upper() + part[1:] for part in parts)


def to_title_case(text: str) -> str:
    """
    Title-case an item for display.

    Acronyms (API, HR) and words with digits (Q1) are left alone, and
    small words stay lowercase unless first or last.
    """
    words = text.split() if text else []
    result = []
    for i, word in enumerate(words):
        if len(word) > 1 and re.fullmatch(r"[A-Z0-9]+", word) and re.search(r"[A-Z]", word):
            result.append(word)
        elif re.search(r"\d", word):
            result.append(word)
        elif 0 < i < len(words) - 1 and word.lower() in SMALL_WORDS:
            result.append(word.lower())
        else:
            result.append("-".join(_capitalise_core(seg) for seg in word.split("-")))
    return " ".join(result)


def possessive(name: str) -> str:
    """Possessive form of a name: James' or Alex's."""
    name = (name or "").strip()
    if not name:
        return ""
    return name + "’" if name[-1] in "sS" else name + "’s"


def list_title(display_name: str = "") -> str:
    display_name = (display_name or "").strip()
    if display_name:
        return f"{possessive(display_name)} Prioritised List"
    return "Prioritised List"


def _plural(count: int, singular: str, plural: str) -> str:
    return f"{count} {singular if count == 1 else plural}"


def format_ranking_lines(snapshot: RankingSnapshot) -> list[str]:
    """
    Format a ranking as numbered lines for printing.

    Example: "1. Ship Feature - 2 wins" or "2. Fix Bug - 1 win, 1 loss".
    """
    lines = []
    for entry in snapshot.entries:
        line = f"{entry.position}. {to_title_case(entry.item.title)} - "
        line += _plural(entry.wins, "win", "wins")
        if entry.losses:
            line += ", " + _plural(entry.losses, "loss", "losses")
        lines.append(line)
    return lines


def _ranking_frame(snapshot: RankingSnapshot) -> pd.DataFrame:
    return pd.DataFrame(
        [
            {
                "Rank": entry.position,
                "Item": to_title_case(entry.item.title),
                "Wins": entry.wins,
                "Losses": entry.losses,
            }
            for entry in snapshot.entries
        ],
        columns=["Rank", "Item", "Wins", "Losses"],
    )


def create_ranking_excel(prioritiser: Prioritiser, output_path: Path) -> None:
    """
    Create an Excel file with the current ranking.

    Sheets:
    - Ranking: Position, title, wins and losses
    - Matchups: Head-to-head decision matrix
    - Notes: Title, generation time, progress and intransitive groups

    Args:
        prioritiser: Engine holding the state to export
        output_path: Where to save the Excel file
    """
    snapshot = prioritiser.ranking_snapshot()
    progress = prioritiser.progress()
    groups = find_intransitive_groups(prioritiser.items, prioritiser.decisions)
    n = len(prioritiser.items)

    with pd.ExcelWriter(output_path) as writer:
        _ranking_frame(snapshot).to_excel(writer, sheet_name="Ranking", index=False)

        build_matchup_matrix(prioritiser.items, prioritiser.decisions).to_excel(
            writer, sheet_name="Matchups"
        )

        notes = [
            {"Type": "TITLE", "Message": list_title(prioritiser.display_name)},
            {"Type": "INFO", "Message": f"Generated on {time.strftime('%Y-%m-%d %H:%M')}"
                                        f" - {_plural(n, 'item', 'items')}"},
            {"Type": "INFO", "Message": f"Comparisons decided: {progress}"},
        ]
        if not progress.is_complete and progress.total:
            notes.append({
                "Type": "WARNING",
                "Message": f"{progress.remaining} comparisons still pending; ranking is provisional",
            })
        for group in groups:
            notes.append({
                "Type": "WARNING",
                "Message": "Intransitive preferences among: " + ", ".join(group),
            })
        pd.DataFrame(notes).to_excel(writer, sheet_name="Notes", index=False)


def create_ranking_csv(prioritiser: Prioritiser, output_path: Path) -> None:
    _ranking_frame(prioritiser.ranking_snapshot()).to_csv(output_path, index=False)


def export_ranking(prioritiser: Prioritiser, output_path: Path) -> Path:
    """
    Export the ranking, choosing the format from the file suffix.

    Raises:
        ValueError: If the suffix is not .xlsx or .csv
    """
    output_path = Path(output_path)
    suffix = output_path.suffix.lower()
    if suffix == ".xlsx":
        create_ranking_excel(prioritiser, output_path)
    elif suffix == ".csv":
        create_ranking_csv(prioritiser, output_path)
    else:
        raise ValueError(f"Unsupported export format '{suffix}'. Use .xlsx or .csv")
    return output_path


# =============================================================================
# Main Entry Point
# =============================================================================

def _require_item(prioritiser: Prioritiser, title: str) -> Item:
    item = prioritiser.find_item(title)
    if item is None:
        raise ValueError(f"No item titled '{title}'")
    return item


def run_compare(prioritiser: Prioritiser, limit: Optional[int] = None) -> int:
    """
    Ask comparisons on the console until done, quit or limit reached.

    Returns:
        Number of decisions recorded
    """
    decided = 0
    while limit is None or decided < limit:
        prompt = prioritiser.current_prompt()
        if prompt.status == "too_few":
            print("Add at least two items to start comparing.")
            break
        if prompt.status == "done":
            print("All comparisons complete.")
            break

        print(f"\nWhich matters more? ({prioritiser.progress()} decided)")
        print(f"  1) {prompt.item_a.title}")
        print(f"  2) {prompt.item_b.title}")
        try:
            answer = input("Choose 1, 2, u (undo) or q (quit): ").strip().lower()
        except EOFError:
            break

        if answer == "1":
            prioritiser.decide(prompt.key, prompt.item_a.id)
            decided += 1
        elif answer == "2":
            prioritiser.decide(prompt.key, prompt.item_b.id)
            decided += 1
        elif answer == "u":
            if prioritiser.undo() is None:
                print("Nothing to undo.")
        elif answer == "q":
            break
        else:
            print(f"Unrecognised choice '{answer}'")
    return decided


def print_ranking(prioritiser: Prioritiser) -> None:
    snapshot = prioritiser.ranking_snapshot()
    progress = prioritiser.progress()

    print("\n" + "=" * 60)
    print(list_title(prioritiser.display_name).upper())
    print("=" * 60)

    if not snapshot.entries:
        print("\nNo items yet.")
    else:
        if progress.total and not progress.is_complete:
            print(f"\n{progress.remaining} comparisons still pending - ranking is provisional.")
        print()
        for line in format_ranking_lines(snapshot):
            print(f"  {line}")

        groups = find_intransitive_groups(prioritiser.items, prioritiser.decisions)
        for group in groups:
            print("\nNote: intransitive preferences among " + ", ".join(group))

    print("\n" + "=" * 60)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Prioritise a list of items with head-to-head comparisons",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
    python prioritise.py add "Ship feature" "Fix bug" "Write docs"
    python prioritise.py compare --limit 5
    python prioritise.py rank
    python prioritise.py export ./ranking.xlsx
        """
    )

    parser.add_argument(
        "--state", "-s",
        type=Path,
        default=DEFAULT_STATE_PATH,
        help="State file (default: $PRIORITISE_STATE or ~/.prioritise/state.json)"
    )

    parser.add_argument(
        "--seed",
        type=int,
        default=None,
        help="Seed for pair selection, for repeatable sessions"
    )

    parser.add_argument(
        "--verbose", "-v",
        action="store_true",
        help="Print progress information"
    )

    commands = parser.add_subparsers(dest="command", required=True)

    add = commands.add_parser("add", help="Add one or more items")
    add.add_argument("titles", nargs="+", help="Item titles")

    remove = commands.add_parser("remove", help="Remove an item and its comparisons")
    remove.add_argument("title", help="Title of the item to remove")

    commands.add_parser("list", help="List items in the order they were added")

    compare = commands.add_parser("compare", help="Answer pending comparisons")
    compare.add_argument("--limit", type=int, default=None,
                         help="Stop after this many decisions")

    commands.add_parser("undo", help="Undo the most recent decision")
    commands.add_parser("rank", help="Show the current ranking")
    commands.add_parser("progress", help="Show how many comparisons are decided")

    name = commands.add_parser("name", help="Set the name shown in the list title")
    name.add_argument("name", help="Your name (empty string to clear)")

    export = commands.add_parser("export", help="Export the ranking to .xlsx or .csv")
    export.add_argument("output", type=Path, help="Output file")

    reset = commands.add_parser("reset", help="Remove all items and comparisons")
    reset.add_argument("--yes", "-y", action="store_true", help="Do not ask for confirmation")

    return parser


def main(argv: Optional[list[str]] = None) -> int:
    """Main entry point for command-line usage."""
    args = build_parser().parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(levelname)s: %(message)s",
    )

    rng = random.Random(args.seed)
    prioritiser = Prioritiser(store=JsonStateStore(args.state), rng=rng)

    if args.verbose:
        print(f"Loaded {len(prioritiser.items)} items from {args.state}")

    try:
        if args.command == "add":
            for title in args.titles:
                item = prioritiser.add_item(title)
                print(f"Added: {item.title}")
            print(f"{prioritiser.progress().remaining} comparisons pending")

        elif args.command == "remove":
            item = _require_item(prioritiser, args.title)
            prioritiser.remove_item(item.id)
            print(f"Removed: {item.title}")

        elif args.command == "list":
            if not prioritiser.items:
                print("No items yet.")
            for i, item in enumerate(prioritiser.items, start=1):
                print(f"  {i:>3}. {item.title}")

        elif args.command == "compare":
            decided = run_compare(prioritiser, limit=args.limit)
            if args.verbose:
                print(f"Recorded {decided} decisions")

        elif args.command == "undo":
            entry = prioritiser.undo()
            if entry is None:
                print("Nothing to undo.")
            else:
                a, b = (prioritiser.item_for(i) for i in split_pair_key(entry.pair_key))
                print(f"Undid: {a.title} vs {b.title}")

        elif args.command == "rank":
            print_ranking(prioritiser)

        elif args.command == "progress":
            progress = prioritiser.progress()
            print(f"{progress} comparisons decided")

        elif args.command == "name":
            prioritiser.set_display_name(args.name)
            print(f"Title: {list_title(prioritiser.display_name)}")

        elif args.command == "export":
            path = export_ranking(prioritiser, args.output)
            print(f"Saved ranking to {path}")

        elif args.command == "reset":
            if not args.yes:
                answer = input("Reset all items and comparisons? This cannot be undone. [y/N] ")
                if answer.strip().lower() not in ("y", "yes"):
                    print("Cancelled.")
                    return 0
            prioritiser.reset_all()
            print("All items and comparisons removed.")

    except (PrioritiseError, FileNotFoundError, ValueError) as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1

    return 0


if __name__ == "__main__":
    sys.exit(main())
