"""Message and thinking-step helpers for the dispatcher UI."""

from __future__ import annotations

import itertools
import threading
import uuid
from typing import Iterable, Optional, Protocol, Tuple, Union


class IdGenerator(Protocol):
    def next_id(self) -> str:
        ...


class MonotonicIdGenerator:
    """``step-1``, ``step-2``, ... scoped to this instance."""

    def __init__(self, prefix: str = "step", start: int = 1) -> None:
        self._prefix = prefix
        self._counter = itertools.count(start)
        self._lock = threading.Lock()

    def next_id(self) -> str:
        with self._lock:
            return f"{self._prefix}-{next(self._counter)}"


class UuidIdGenerator:
    def __init__(self, prefix: Optional[str] = None) -> None:
        self._prefix = prefix

    def next_id(self) -> str:
        value = uuid.uuid4().hex
        return f"{self._prefix}-{value}" if self._prefix else value


StepContent = Union[None, str, Iterable[str]]


def normalize_steps(content: StepContent) -> Tuple[str, ...]:
    """Turn a string-or-list content field into an ordered tuple of non-empty lines."""

    if content is None:
        return ()
    if isinstance(content, str):
        items: Iterable[str] = content.splitlines()
    else:
        items = content
    steps = []
    for item in items:
        text = str(item).strip()
        if text:
            steps.append(text)
    return tuple(steps)


__all__ = ["IdGenerator", "MonotonicIdGenerator", "UuidIdGenerator", "normalize_steps"]
