import threading
import time
from collections import OrderedDict
from dataclasses import dataclass, field
from typing import Any, Dict, List, Literal, Optional, Tuple

from agents.finance.results import ToolResult


@dataclass(frozen=True)
class ToolCall:
    name: str
    args: Dict[str, Any] = field(default_factory=dict)


@dataclass(frozen=True)
class Turn:
    """
    One logged step of a conversation.

    Either plain text (a human message or an assistant reply), or one
    completed tool round: the calls the model asked for and their results,
    index-aligned.
    """
    role: Literal["human", "assistant"]
    text: Optional[str] = None
    calls: Tuple[ToolCall, ...] = ()
    results: Tuple[ToolResult, ...] = ()

    @classmethod
    def human(cls, text: str) -> "Turn":
        return cls(role="human", text=text)

    @classmethod
    def assistant(cls, text: str) -> "Turn":
        return cls(role="assistant", text=text)

    @classmethod
    def tool_round(cls, calls, results) -> "Turn":
        calls, results = tuple(calls), tuple(results)
        if len(calls) != len(results):
            raise ValueError("every tool call needs exactly one result")
        return cls(role="assistant", calls=calls, results=results)

    @property
    def is_tool_round(self) -> bool:
        return bool(self.calls)


class HistoryStore:
    """
    In-memory, per-scope conversation history with:
    - a hard cap on turns per scope (oldest whole turns dropped)
    - least-recently-used eviction once max_scopes is exceeded
    - sliding TTL (expires ttl_seconds after last touch)
    - thread-safe operations (Flask threads + the event loop thread)
    """

    def __init__(self, max_turns: int = 20, max_scopes: int = 1000, ttl_seconds: Optional[float] = None, clock=time.monotonic):
        if max_turns < 1:
            raise ValueError("max_turns must be at least 1")
        self.max_turns = max_turns
        self.max_scopes = max_scopes
        self.ttl_seconds = ttl_seconds
        self._clock = clock
        self._lock = threading.Lock()
        # scope -> {"turns": list[Turn], "expires_at": float | None}
        self._items: "OrderedDict[str, Dict[str, Any]]" = OrderedDict()

    def _expires_at(self) -> Optional[float]:
        if self.ttl_seconds is None:
            return None
        return self._clock() + self.ttl_seconds

    def _is_expired(self, item) -> bool:
        expires_at = item["expires_at"]
        return expires_at is not None and expires_at <= self._clock()

    def _get_unlocked(self, scope: str) -> Optional[Dict[str, Any]]:
        item = self._items.get(scope)
        if item is None:
            return None
        if self._is_expired(item):
            del self._items[scope]
            return None
        item["expires_at"] = self._expires_at()
        self._items.move_to_end(scope)
        return item

    def append(self, scope: str, turn: Turn) -> None:
        """
        Append a turn and prune the scope back to max_turns.
        """
        scope = str(scope)
        with self._lock:
            item = self._get_unlocked(scope)
            if item is None:
                item = {"turns": [], "expires_at": self._expires_at()}
                self._items[scope] = item
                self._evict_unlocked()

            turns = item["turns"]
            turns.append(turn)
            if len(turns) > self.max_turns:
                del turns[: len(turns) - self.max_turns]

    def read(self, scope: str) -> List[Turn]:
        """
        Returns a COPY of the scope's turns, oldest first.
        """
        with self._lock:
            item = self._get_unlocked(str(scope))
            if item is None:
                return []
            return list(item["turns"])

    def __len__(self) -> int:
        with self._lock:
            return len(self._items)

    def __contains__(self, scope) -> bool:
        with self._lock:
            item = self._items.get(str(scope))
            return item is not None and not self._is_expired(item)

    def _evict_unlocked(self) -> None:
        while self.max_scopes and len(self._items) > self.max_scopes:
            self._items.popitem(last=False)

    def sweep_expired(self) -> int:
        """
        Delete expired histories. Returns how many scopes were removed.
        """
        with self._lock:
            expired = [k for k, v in self._items.items() if self._is_expired(v)]
            for k in expired:
                del self._items[k]
        return len(expired)
