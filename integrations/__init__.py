"""Caller-side collaborators: session storage, retries and UI message ids."""

from .messages import IdGenerator, MonotonicIdGenerator, UuidIdGenerator, normalize_steps
from .retry import RetryExhaustedError, RetryPolicy
from .session_store import InMemoryTTLStore, KeyValueStore, PushbackTracker, extract_call_id

__all__ = [
    "IdGenerator",
    "InMemoryTTLStore",
    "KeyValueStore",
    "MonotonicIdGenerator",
    "PushbackTracker",
    "RetryExhaustedError",
    "RetryPolicy",
    "UuidIdGenerator",
    "extract_call_id",
    "normalize_steps",
]
