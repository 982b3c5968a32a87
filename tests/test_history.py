"""Tests for the per-scope conversation history store."""

import pytest

from agents.finance import results as r
from session.history import HistoryStore, ToolCall, Turn


class _Clock:
    def __init__(self):
        self.now = 1000.0

    def __call__(self):
        return self.now


def test_read_unknown_scope_is_empty():
    store = HistoryStore()
    assert store.read("nobody") == []
    assert "nobody" not in store


def test_append_keeps_order():
    store = HistoryStore()
    store.append("u1", Turn.human("hi"))
    store.append("u1", Turn.assistant("hello"))

    turns = store.read("u1")
    assert [t.role for t in turns] == ["human", "assistant"]
    assert [t.text for t in turns] == ["hi", "hello"]


def test_cap_drops_oldest_turns():
    store = HistoryStore(max_turns=20)
    for i in range(25):
        store.append("u1", Turn.human(f"m{i}"))

    turns = store.read("u1")
    assert len(turns) == 20
    assert turns[0].text == "m5"
    assert turns[-1].text == "m24"


def test_read_returns_a_copy():
    store = HistoryStore()
    store.append("u1", Turn.human("hi"))

    turns = store.read("u1")
    turns.append(Turn.assistant("injected"))
    assert len(store.read("u1")) == 1


def test_scopes_are_isolated():
    store = HistoryStore()
    store.append("private-user", Turn.human("mine"))
    store.append("group@g.us", Turn.human("ours"))

    assert [t.text for t in store.read("private-user")] == ["mine"]
    assert [t.text for t in store.read("group@g.us")] == ["ours"]


def test_lru_eviction_beyond_max_scopes():
    store = HistoryStore(max_scopes=2)
    store.append("a", Turn.human("1"))
    store.append("b", Turn.human("2"))
    store.read("a")  # touch a, so b is least recently used
    store.append("c", Turn.human("3"))

    assert "a" in store
    assert "b" not in store
    assert "c" in store
    assert len(store) == 2


def test_ttl_expires_idle_scopes():
    clock = _Clock()
    store = HistoryStore(ttl_seconds=60, clock=clock)
    store.append("u1", Turn.human("hi"))

    clock.now += 30
    assert len(store.read("u1")) == 1  # touching slides the expiry

    clock.now += 59
    assert len(store.read("u1")) == 1

    clock.now += 61
    assert store.read("u1") == []


def test_sweep_expired():
    clock = _Clock()
    store = HistoryStore(ttl_seconds=10, clock=clock)
    store.append("old", Turn.human("x"))
    clock.now += 5
    store.append("new", Turn.human("y"))
    clock.now += 6

    assert store.sweep_expired() == 1
    assert "old" not in store
    assert "new" in store


def test_tool_round_turn_pairs_calls_and_results():
    turn = Turn.tool_round(
        [ToolCall("add_expense", {"description": "light"})],
        [r.created("Expense registered: light - R$ 200.00 (housing)")],
    )
    assert turn.is_tool_round
    assert turn.role == "assistant"
    assert turn.results[0].kind == r.ResultKind.CREATED


def test_tool_round_rejects_mismatched_lengths():
    with pytest.raises(ValueError):
        Turn.tool_round([ToolCall("a"), ToolCall("b")], [r.other("only one")])


def test_invalid_cap():
    with pytest.raises(ValueError):
        HistoryStore(max_turns=0)
