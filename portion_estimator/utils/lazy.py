"""Initialize-once holder for expensive model backends."""

from __future__ import annotations

import logging
import threading
import warnings
from typing import Callable, Generic, TypeVar

T = TypeVar("T")

logger = logging.getLogger(__name__)


class LazyLoader(Generic[T]):
    """Builds a resource on first use and memoizes it for the process lifetime.

    Concurrent first calls share a single build (double-checked locking). A
    failed build is remembered: ``get`` returns ``None`` without retrying until
    :meth:`reset` is called.
    """

    def __init__(self, factory: Callable[[], T], name: str = "resource") -> None:
        self._factory = factory
        self.name = name
        self._lock = threading.Lock()
        self._value: T | None = None
        self._loaded = False
        self._failed = False

    @property
    def loaded(self) -> bool:
        return self._loaded

    @property
    def failed(self) -> bool:
        return self._failed

    def get(self) -> T | None:
        if self._loaded or self._failed:
            return self._value
        with self._lock:
            if self._loaded or self._failed:
                return self._value
            try:
                value = self._factory()
            except Exception as exc:
                warnings.warn(f"{self.name} unavailable, excluding it from estimation: {exc}")
                self._failed = True
                return None
            self._value = value
            self._loaded = True
            logger.info("%s initialized", self.name)
            return value

    def reset(self) -> None:
        """Drop the memoized value (or failure) so the next ``get`` rebuilds."""
        with self._lock:
            self._value = None
            self._loaded = False
            self._failed = False


__all__ = ["LazyLoader"]
