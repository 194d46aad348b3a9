"""Key-value session storage used by the voice/webhook layer.

The engine never imports this module; callers load a :class:`NegotiationState`
from a :class:`PushbackTracker` and pass it in explicitly.
"""

from __future__ import annotations

import logging
import threading
import time
from dataclasses import dataclass
from typing import Any, Callable, Dict, Mapping, Optional, Protocol, Tuple

from slot_negotiation.schemas import NegotiationState

logger = logging.getLogger(__name__)

DEFAULT_TTL_SECONDS = 60 * 60


class KeyValueStore(Protocol):
    def get(self, key: str) -> Optional[Any]:
        ...

    def set(self, key: str, value: Any, ttl_seconds: Optional[float] = None) -> None:
        ...

    def delete(self, key: str) -> None:
        ...

    def evict_expired(self) -> int:
        ...


class InMemoryTTLStore:
    """Thread-safe dict store whose entries expire ``ttl_seconds`` after their last write."""

    def __init__(
        self,
        default_ttl_seconds: Optional[float] = DEFAULT_TTL_SECONDS,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._default_ttl = default_ttl_seconds
        self._clock = clock
        self._lock = threading.Lock()
        self._entries: Dict[str, Tuple[Any, Optional[float]]] = {}

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)

    def _expired(self, expires_at: Optional[float], now: float) -> bool:
        return expires_at is not None and now >= expires_at

    def get(self, key: str) -> Optional[Any]:
        with self._lock:
            entry = self._entries.get(key)
            if entry is None:
                return None
            value, expires_at = entry
            if self._expired(expires_at, self._clock()):
                del self._entries[key]
                return None
            return value

    def set(self, key: str, value: Any, ttl_seconds: Optional[float] = None) -> None:
        ttl = self._default_ttl if ttl_seconds is None else ttl_seconds
        expires_at = self._clock() + ttl if ttl is not None else None
        with self._lock:
            self._entries[key] = (value, expires_at)

    def delete(self, key: str) -> None:
        with self._lock:
            self._entries.pop(key, None)

    def keys(self) -> Tuple[str, ...]:
        now = self._clock()
        with self._lock:
            return tuple(key for key, (_, exp) in self._entries.items() if not self._expired(exp, now))

    def evict_expired(self) -> int:
        now = self._clock()
        with self._lock:
            stale = [key for key, (_, exp) in self._entries.items() if self._expired(exp, now)]
            for key in stale:
                del self._entries[key]
        if stale:
            logger.debug("Evicted %d stale session entries", len(stale))
        return len(stale)


@dataclass(frozen=True)
class TrackerStats:
    active_calls: int
    call_ids: Tuple[str, ...]


class PushbackTracker:
    """Per-call pushback counters kept in a :class:`KeyValueStore`."""

    _PREFIX = "pushback:"

    def __init__(self, store: KeyValueStore, ttl_seconds: float = DEFAULT_TTL_SECONDS) -> None:
        self._store = store
        self._ttl = ttl_seconds
        self._calls: Dict[str, None] = {}

    def _key(self, call_id: str) -> str:
        return f"{self._PREFIX}{call_id}"

    def get_count(self, call_id: str) -> int:
        return int(self._store.get(self._key(call_id)) or 0)

    def state_for(self, call_id: str) -> NegotiationState:
        return NegotiationState(pushback_count=self.get_count(call_id))

    def _prune(self) -> Tuple[str, ...]:
        stale = [call_id for call_id in self._calls if self._store.get(self._key(call_id)) is None]
        for call_id in stale:
            del self._calls[call_id]
        return tuple(self._calls)

    def increment(self, call_id: str) -> int:
        count = self.get_count(call_id) + 1
        self._store.set(self._key(call_id), count, self._ttl)
        self._prune()
        self._calls[call_id] = None
        logger.info("Pushback %d recorded for call %s", count, call_id)
        return count

    def reset(self, call_id: str) -> None:
        self._store.delete(self._key(call_id))
        self._calls.pop(call_id, None)

    def stats(self) -> TrackerStats:
        active = self._prune()
        return TrackerStats(active_calls=len(active), call_ids=active)


def _string_id(container: Any, key: str = "id") -> Optional[str]:
    if isinstance(container, Mapping):
        value = container.get(key)
        if isinstance(value, str) and value:
            return value
    return None


def extract_call_id(body: Mapping[str, Any]) -> Optional[str]:
    """Find the call id in a voice-platform webhook body.

    Checks ``message.call.id``, then ``call.id``, then ``callId``.
    """

    message = body.get("message")
    if isinstance(message, Mapping):
        found = _string_id(message.get("call"))
        if found:
            return found
    found = _string_id(body.get("call"))
    if found:
        return found
    return _string_id(body, "callId")


__all__ = [
    "DEFAULT_TTL_SECONDS",
    "InMemoryTTLStore",
    "KeyValueStore",
    "PushbackTracker",
    "TrackerStats",
    "extract_call_id",
]
