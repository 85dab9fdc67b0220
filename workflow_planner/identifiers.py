"""Identifier generation for planning artifacts."""

from __future__ import annotations

import itertools
import threading
import uuid
from typing import Dict, Protocol


class IdGenerator(Protocol):
    def __call__(self, prefix: str) -> str: ...


class RandomIdGenerator:
    """Random ids such as ``task-3f9a1c2b0``."""

    def __call__(self, prefix: str) -> str:
        return f"{prefix}-{uuid.uuid4().hex[:9]}"


class SequentialIdGenerator:
    """Deterministic ids numbered per prefix: ``task-1``, ``task-2``..."""

    def __init__(self) -> None:
        self._counters: Dict[str, itertools.count] = {}
        self._lock = threading.Lock()

    def __call__(self, prefix: str) -> str:
        with self._lock:
            counter = self._counters.setdefault(prefix, itertools.count(1))
            return f"{prefix}-{next(counter)}"

    def reset(self) -> None:
        with self._lock:
            self._counters.clear()


default_id_generator = RandomIdGenerator()
