"""Hand-off point between the projection stage and the aggregation engine.

The aggregation engine exposes one channel per ``Scope``; from the projection
stage's point of view that is a single ``SourceReceiver.receive`` call per
emitted record. Cross-call synchronization, if any, is the receiver's concern.
"""
from __future__ import annotations

from collections import defaultdict
from typing import DefaultDict, List, Protocol

from ..models.enums import Scope
from ..models.sources import Source

__all__ = ["SourceReceiver", "CollectingReceiver"]


class SourceReceiver(Protocol):
    def receive(self, source: Source) -> None: ...


class CollectingReceiver:
    """Keeps every received record in memory, grouped by scope."""

    def __init__(self) -> None:
        self._by_scope: DefaultDict[Scope, List[Source]] = defaultdict(list)
        self._order: List[Source] = []

    def receive(self, source: Source) -> None:
        self._by_scope[source.scope].append(source)
        self._order.append(source)

    def of(self, scope: Scope) -> List[Source]:
        return list(self._by_scope.get(scope, []))

    def all(self) -> List[Source]:
        """All records in the order they were received."""
        return list(self._order)

    def __len__(self) -> int:
        return len(self._order)
