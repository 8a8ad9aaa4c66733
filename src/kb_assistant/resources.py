"""Lazily acquired external handles and best-effort results.

External clients (Chroma, the embedding model, the chat model) are
expensive to build and may fail when credentials are missing.  They are
wrapped in a :class:`LazyResource`: the first caller triggers the
factory under a lock, every later caller gets the cached handle.  A
failed acquisition is cached as well, so a misconfigured client fails
fast on every call instead of re-trying the connection each time.
"""

from __future__ import annotations

import logging
import threading
from dataclasses import dataclass
from enum import Enum
from typing import Callable, Generic, TypeVar

logger = logging.getLogger(__name__)

T = TypeVar("T")


class ResourceState(str, Enum):
    PENDING = "pending"
    READY = "ready"
    FAILED = "failed"


class LazyResource(Generic[T]):
    """Initialise-on-first-use, memoised handle.

    Parameters
    ----------
    name:
        Label used in log messages.
    factory:
        Zero-argument callable that builds the handle.
    """

    def __init__(self, name: str, factory: Callable[[], T]) -> None:
        self.name = name
        self._factory = factory
        self._lock = threading.Lock()
        self._value: T | None = None
        self._error: BaseException | None = None
        self._state = ResourceState.PENDING

    @property
    def state(self) -> ResourceState:
        return self._state

    def get(self) -> T:
        """Return the handle, building it on the first call."""
        if self._state is ResourceState.PENDING:
            with self._lock:
                if self._state is ResourceState.PENDING:
                    self._acquire()
        if self._state is ResourceState.FAILED:
            assert self._error is not None
            raise self._error
        return self._value  # type: ignore[return-value]

    def _acquire(self) -> None:
        try:
            self._value = self._factory()
        except Exception as exc:
            logger.error("Initialisation of %s failed: %s", self.name, exc)
            self._error = exc
            self._state = ResourceState.FAILED
            return
        logger.info("%s initialised", self.name)
        self._state = ResourceState.READY


@dataclass(frozen=True)
class BestEffort(Generic[T]):
    """Result of an operation whose failure is tolerated.

    ``degraded`` is ``True`` when the operation failed and ``value`` holds
    the fallback instead of a real answer.
    """

    value: T
    degraded: bool = False
    error: str | None = None

    @classmethod
    def ok(cls, value: T) -> BestEffort[T]:
        return cls(value=value)

    @classmethod
    def fallback(cls, value: T, error: BaseException | str) -> BestEffort[T]:
        return cls(value=value, degraded=True, error=str(error))
