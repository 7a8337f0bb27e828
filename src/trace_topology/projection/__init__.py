"""Projection subpackage: from one observed call to canonical source records.

All functions within this package are pure (no network I/O, no file access)
and deterministic. The public entry points remain in the top-level
`projector.py` facade; import from here only for the building blocks.

Modules:
    call_context: CallContext builder and the PreparedCall projections
    naming: NameNormalizer protocol and the default NamingControl policy
    identity: Deterministic service/instance/endpoint/relation id encoding
    tags: Dual ordered-list and key/value tag recording
    receiver: SourceReceiver protocol and an in-memory collecting receiver

Design Invariants:
    - No I/O
    - Identical inputs produce byte-identical entity ids
    - Names are normalized exactly once, before any projection runs
    - Suppression is a value (Suppressed), never an exception
"""
from __future__ import annotations

from . import identity as identity  # noqa: F401
from . import tags as tags  # noqa: F401

__all__ = ["identity", "tags"]
