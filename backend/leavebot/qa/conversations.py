"""Per-channel conversation history held in a bounded LRU cache."""

from __future__ import annotations

from collections import OrderedDict, deque
from dataclasses import dataclass, field
from typing import Callable, Deque, Generic, Hashable, TypeVar

K = TypeVar("K", bound=Hashable)
V = TypeVar("V")

CONTEXT_MESSAGES = 4


class LRUCache(Generic[K, V]):
    """Fixed-capacity mapping that evicts the least recently used key.

    Eviction depends only on access order, never on wall-clock time.
    """

    def __init__(self, capacity: int) -> None:
        if capacity <= 0:
            raise ValueError("capacity must be positive")
        self.capacity = capacity
        self._items: OrderedDict[K, V] = OrderedDict()

    def get(self, key: K) -> V | None:
        if key not in self._items:
            return None
        self._items.move_to_end(key)
        return self._items[key]

    def get_or_create(self, key: K, factory: Callable[[], V]) -> V:
        value = self.get(key)
        if value is None:
            value = factory()
            self.put(key, value)
        return value

    def put(self, key: K, value: V) -> None:
        self._items[key] = value
        self._items.move_to_end(key)
        while len(self._items) > self.capacity:
            self._items.popitem(last=False)

    def __contains__(self, key: object) -> bool:
        return key in self._items

    def __len__(self) -> int:
        return len(self._items)


@dataclass(slots=True)
class ChatMessage:
    role: str
    content: str


@dataclass
class Conversation:
    """Recent exchanges between one user and the bot in one channel."""

    history: int = 10
    messages: Deque[ChatMessage] = field(init=False)

    def __post_init__(self) -> None:
        self.messages = deque(maxlen=self.history)

    def record(self, question: str, answer: str) -> None:
        self.messages.append(ChatMessage(role="user", content=question))
        self.messages.append(ChatMessage(role="assistant", content=answer))

    def contextualize(self, question: str) -> str:
        """Prefix the question with the last two exchanges, if any."""
        if not self.messages:
            return question
        recent = list(self.messages)[-CONTEXT_MESSAGES:]
        lines = "\n".join(f"{message.role}: {message.content}" for message in recent)
        return f"Previous conversation context:\n{lines}\n\nCurrent question: {question}"


class ConversationStore:
    def __init__(self, capacity: int = 1000, history: int = 10) -> None:
        self.history = history
        self._cache: LRUCache[tuple[str, str], Conversation] = LRUCache(capacity)

    def get(self, channel_id: str, user_id: str) -> Conversation:
        return self._cache.get_or_create((channel_id, user_id), lambda: Conversation(history=self.history))

    def __len__(self) -> int:
        return len(self._cache)

    def __contains__(self, key: object) -> bool:
        return key in self._cache


__all__ = ["LRUCache", "ChatMessage", "Conversation", "ConversationStore"]
