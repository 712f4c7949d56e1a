"""
Identifier generators for minted events and recommendations.

The engine never keeps module-level counters. Callers pass an ``IdGenerator``
(any zero-argument callable returning a string) into the services that mint
ids. Two implementations are provided:

- SequenceIdGenerator: deterministic ``prefix-1``, ``prefix-2``, ... sequence,
  the default inside the engine so repeated runs produce identical output.
- UuidIdGenerator: random UUID4 strings for callers that persist results.
"""

import itertools
import threading
from typing import Callable
from uuid import uuid4


IdGenerator = Callable[[], str]


class SequenceIdGenerator:
    """
    Monotonic, thread-safe id sequence.

    Example:
        >>> ids = SequenceIdGenerator(prefix="rec")
        >>> ids(), ids()
        ('rec-1', 'rec-2')
    """

    def __init__(self, prefix: str = "id", start: int = 1) -> None:
        self.prefix = prefix
        self._counter = itertools.count(start)
        self._lock = threading.Lock()

    def __call__(self) -> str:
        with self._lock:
            value = next(self._counter)
        return f"{self.prefix}-{value}"


class UuidIdGenerator:
    """Random UUID4 ids, optionally prefixed."""

    def __init__(self, prefix: str = "") -> None:
        self.prefix = prefix

    def __call__(self) -> str:
        if self.prefix:
            return f"{self.prefix}-{uuid4()}"
        return str(uuid4())
