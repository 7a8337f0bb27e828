"""Name normalization applied to raw agent-reported names.

Agents written in different languages and frameworks report service, instance
and endpoint names with no shared policy. Before any identity is derived the
projection stage runs every name through a ``NameNormalizer`` so that the same
logical entity always lands on the same canonical name.

``NamingControl`` is the default normalizer:
    1. Endpoint grouping: the first configured rule whose service matches the
       owning service (or is ``"*"``) and whose pattern fully matches the
       endpoint name replaces the name with the rule's group name.
    2. Length policy: names longer than the configured maximum are truncated,
       or rejected with ``InvalidNameError`` in strict mode.

``None`` passes through untouched so optional names stay optional.
"""
from __future__ import annotations

import logging
import re
from typing import List, Optional, Pattern, Protocol, Sequence, Tuple

from ..config import EndpointGroupingRule, Settings

logger = logging.getLogger(__name__)

__all__ = ["InvalidNameError", "NameNormalizer", "NamingControl"]


class InvalidNameError(ValueError):
    """A name violates the naming policy and cannot be normalized."""

    def __init__(self, kind: str, name: str, max_length: int) -> None:
        self.kind = kind
        self.name = name
        self.max_length = max_length
        super().__init__(
            f"{kind} name exceeds {max_length} characters: {name[:max_length]!r}..."
        )


class NameNormalizer(Protocol):
    def format_service_name(self, name: Optional[str]) -> Optional[str]: ...

    def format_instance_name(self, name: Optional[str]) -> Optional[str]: ...

    def format_endpoint_name(
        self, service_name: Optional[str], endpoint_name: Optional[str]
    ) -> Optional[str]: ...


class NamingControl:
    """Default ``NameNormalizer``: endpoint grouping plus length policy."""

    def __init__(
        self,
        *,
        service_name_max_length: int = 70,
        instance_name_max_length: int = 70,
        endpoint_name_max_length: int = 150,
        strict: bool = False,
        grouping_rules: Sequence[EndpointGroupingRule] = (),
    ) -> None:
        self.service_name_max_length = service_name_max_length
        self.instance_name_max_length = instance_name_max_length
        self.endpoint_name_max_length = endpoint_name_max_length
        self.strict = strict
        self._rules: List[Tuple[str, Pattern[str], str]] = [
            (rule.service, re.compile(rule.pattern), rule.name) for rule in grouping_rules
        ]

    @classmethod
    def from_settings(cls, settings: Settings) -> "NamingControl":
        return cls(
            service_name_max_length=settings.SERVICE_NAME_MAX_LENGTH,
            instance_name_max_length=settings.INSTANCE_NAME_MAX_LENGTH,
            endpoint_name_max_length=settings.ENDPOINT_NAME_MAX_LENGTH,
            strict=settings.NAMING_STRICT,
            grouping_rules=settings.ENDPOINT_GROUPING_RULES,
        )

    def _limit(self, kind: str, name: str, max_length: int) -> str:
        if len(name) <= max_length:
            return name
        if self.strict:
            raise InvalidNameError(kind, name, max_length)
        logger.debug(
            "%s name truncated to %d characters: %r", kind, max_length, name
        )
        return name[:max_length]

    def format_service_name(self, name: Optional[str]) -> Optional[str]:
        if name is None:
            return None
        return self._limit("service", name, self.service_name_max_length)

    def format_instance_name(self, name: Optional[str]) -> Optional[str]:
        if name is None:
            return None
        return self._limit("instance", name, self.instance_name_max_length)

    def group_endpoint_name(self, service_name: Optional[str], endpoint_name: str) -> str:
        """Return the group name of the first matching rule, else the name itself."""
        for service, pattern, group in self._rules:
            if service != "*" and service != service_name:
                continue
            if pattern.fullmatch(endpoint_name):
                return group
        return endpoint_name

    def format_endpoint_name(
        self, service_name: Optional[str], endpoint_name: Optional[str]
    ) -> Optional[str]:
        if endpoint_name is None:
            return None
        grouped = self.group_endpoint_name(service_name, endpoint_name)
        return self._limit("endpoint", grouped, self.endpoint_name_max_length)
