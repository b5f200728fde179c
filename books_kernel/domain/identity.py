"""
Identity -- Injectable generators for record ids and display references.

Responsibility:
    Every record id, transaction reference and document number in the kernel
    comes from an ``IdFactory``.  Production uses random UUIDs; tests inject
    ``SequentialIdFactory`` so exported state is reproducible.

Architecture position:
    Kernel > Domain -- pure, apart from the entropy UuidIdFactory draws.
"""

from __future__ import annotations

import itertools
import random
import uuid
from abc import ABC, abstractmethod


class IdFactory(ABC):
    """
    Source of identifiers.

    Contract:
        ``new_id()`` returns a string never returned before by this factory.
        ``short_token(n)`` returns ``n`` upper-case hex characters.
    """

    @abstractmethod
    def new_id(self) -> str:
        ...

    @abstractmethod
    def short_token(self, length: int) -> str:
        ...

    def transaction_id(self) -> str:
        """Human-facing journal reference, ``TXN-`` + 8 hex characters."""
        return f"TXN-{self.short_token(8)}"


class UuidIdFactory(IdFactory):
    """Random UUID4 identifiers."""

    def new_id(self) -> str:
        return str(uuid.uuid4())

    def short_token(self, length: int) -> str:
        return uuid.uuid4().hex[:length].upper()


class SequentialIdFactory(IdFactory):
    """Deterministic identifiers for tests and replay: ``{prefix}-0001``..."""

    def __init__(self, prefix: str = "id", start: int = 1):
        self._prefix = prefix
        self._counter = itertools.count(start)
        self._tokens = itertools.count(start)

    def new_id(self) -> str:
        return f"{self._prefix}-{next(self._counter):04d}"

    def short_token(self, length: int) -> str:
        return f"{next(self._tokens):0{length}X}"[-length:]


class AccountCodeGenerator:
    """
    Synthetic account codes: type prefix + three random digits (100-998).

    The random source is injectable so tests can seed it.
    """

    def __init__(self, rng: random.Random | None = None):
        self._rng = rng or random.Random()

    def generate(self, prefix: str, taken: set[str]) -> str:
        """Return an unused code for ``prefix``; raises if the range is full."""
        for _ in range(2000):
            code = f"{prefix}{self._rng.randint(100, 998)}"
            if code not in taken:
                return code
        for number in range(100, 999):
            code = f"{prefix}{number}"
            if code not in taken:
                return code
        raise RuntimeError(f"No free account codes left for prefix {prefix!r}")
