"""Call tag recording in two parallel representations.

Each tag event lands in both:

* ``tags``: ordered list of ``"key:value"`` strings with key and value
  trimmed. Every event is appended, so repeated keys and duplicates stay.
* ``original_tags``: key -> value map with key and value exactly as
  reported. A repeated key keeps the last value.

The trimming asymmetry is deliberate and consumers rely on both forms.
"""
from __future__ import annotations

from typing import Dict, Iterable, List, Tuple, Union

from pydantic import BaseModel

__all__ = ["TagPair", "render_tag", "record_tag", "record_tags"]


class TagPair(BaseModel):
    """A key/value tag as reported by an agent."""

    key: str
    value: str


def render_tag(key: str, value: str) -> str:
    return f"{key.strip()}:{value.strip()}"


def record_tag(
    tags: List[str], original_tags: Dict[str, str], key: str, value: str
) -> None:
    """Record one tag event into both representations in place."""
    tags.append(render_tag(key, value))
    original_tags[key] = value


def record_tags(
    tags: List[str],
    original_tags: Dict[str, str],
    pairs: Iterable[Union[TagPair, Tuple[str, str]]],
) -> None:
    for pair in pairs:
        if isinstance(pair, TagPair):
            record_tag(tags, original_tags, pair.key, pair.value)
        else:
            key, value = pair
            record_tag(tags, original_tags, key, value)
