"""Pydantic models for the canonical source records handed to aggregation.

One observed call is projected into up to nine of these records (see
``trace_topology.projection.call_context.PreparedCall``). They are the target
data structure of the projection stage and the only thing the downstream
aggregation engine consumes.

All records are frozen. Identity-bearing records compute ``entity_id`` (and,
for relations, the ids of both ends) lazily on first access and cache the
result on the instance.
"""
from __future__ import annotations

from dataclasses import dataclass
from functools import cached_property
from typing import ClassVar, Dict, Optional, Tuple, TypeVar, Union

from pydantic import BaseModel, ConfigDict, Field

from ..projection import identity
from .enums import DetectPoint, Layer, RequestType, Scope

__all__ = [
    "Source",
    "GlobalTraffic",
    "Service",
    "ServiceRelation",
    "ServiceInstance",
    "ServiceInstanceRelation",
    "Endpoint",
    "EndpointRelation",
    "ServiceMeta",
    "DatabaseAccess",
    "Suppressed",
    "Projection",
    "is_suppressed",
]


class Source(BaseModel):
    """Base of every source record.

    ``scope`` names the downstream channel. ``entity_id`` is ``None`` for
    records that are aggregation keys only (global traffic, database access).
    """

    model_config = ConfigDict(frozen=True)

    scope: ClassVar[Scope]

    time_bucket: int = 0

    @property
    def entity_id(self) -> Optional[str]:
        return None


class _CallOutcome(Source):
    """Outcome fields shared by the traffic-bearing records.

    ``http_response_status_code`` is authoritative. ``response_code`` is kept
    untouched for producers that still only report the deprecated field.
    """

    status: bool = False
    response_code: int = 0
    http_response_status_code: int = 0
    rpc_status_code: Optional[str] = None
    type: Optional[RequestType] = None


class _Traffic(_CallOutcome):
    latency: int = 0


class _Tagged(Source):
    # tags is a tuple so the record cannot grow new tag events. original_tags
    # is a per-record copy; changing it never reaches the call or its siblings.
    tags: Tuple[str, ...] = ()
    original_tags: Dict[str, str] = Field(default_factory=dict)


class GlobalTraffic(_Traffic, _Tagged):
    """System-wide traffic sample."""

    scope: ClassVar[Scope] = Scope.ALL

    name: Optional[str] = None
    service_instance_name: Optional[str] = None
    endpoint_name: Optional[str] = None


class Service(_Traffic, _Tagged):
    """Metrics-bearing record of the destination service.

    Distinct from ``ServiceMeta``: this one implies traffic.
    """

    scope: ClassVar[Scope] = Scope.SERVICE

    name: str
    service_instance_name: Optional[str] = None
    endpoint_name: Optional[str] = None
    layer: Optional[Layer] = None
    is_normal: bool = True

    @cached_property
    def entity_id(self) -> str:
        return identity.service_id(self.name, self.is_normal)


class ServiceRelation(_Traffic):
    """One observed call between two services."""

    scope: ClassVar[Scope] = Scope.SERVICE_RELATION

    source_service_name: str
    is_source_normal: bool = True
    source_service_instance_name: Optional[str] = None
    dest_service_name: str
    is_dest_normal: bool = True
    dest_service_instance_name: Optional[str] = None
    endpoint: Optional[str] = None
    component_id: int = 0
    detect_point: Optional[DetectPoint] = None

    @cached_property
    def source_service_id(self) -> str:
        return identity.service_id(self.source_service_name, self.is_source_normal)

    @cached_property
    def dest_service_id(self) -> str:
        return identity.service_id(self.dest_service_name, self.is_dest_normal)

    @cached_property
    def entity_id(self) -> str:
        return identity.relation_id(self.source_service_id, self.dest_service_id)


class ServiceInstance(_Traffic, _Tagged):
    """Per-instance traffic sample of the destination instance."""

    scope: ClassVar[Scope] = Scope.SERVICE_INSTANCE

    name: Optional[str] = None
    service_name: str
    is_service_normal: bool = True
    layer: Optional[Layer] = None
    endpoint_name: Optional[str] = None

    @cached_property
    def service_id(self) -> str:
        return identity.service_id(self.service_name, self.is_service_normal)

    @cached_property
    def entity_id(self) -> str:
        return identity.instance_id(self.service_id, self.name or "")


class ServiceInstanceRelation(_Traffic):
    """One observed call between two service instances.

    Only ever built when both instance names are known.
    """

    scope: ClassVar[Scope] = Scope.SERVICE_INSTANCE_RELATION

    source_service_name: str
    is_source_service_normal: bool = True
    source_service_instance_name: str
    dest_service_name: str
    is_dest_service_normal: bool = True
    dest_service_instance_name: str
    endpoint: Optional[str] = None
    component_id: int = 0
    detect_point: Optional[DetectPoint] = None

    @cached_property
    def source_service_instance_id(self) -> str:
        return identity.instance_id(
            identity.service_id(self.source_service_name, self.is_source_service_normal),
            self.source_service_instance_name,
        )

    @cached_property
    def dest_service_instance_id(self) -> str:
        return identity.instance_id(
            identity.service_id(self.dest_service_name, self.is_dest_service_normal),
            self.dest_service_instance_name,
        )

    @cached_property
    def entity_id(self) -> str:
        return identity.relation_id(
            self.source_service_instance_id, self.dest_service_instance_id
        )


class Endpoint(_Traffic, _Tagged):
    """Per-endpoint traffic sample of the destination endpoint."""

    scope: ClassVar[Scope] = Scope.ENDPOINT

    name: Optional[str] = None
    service_name: str
    is_service_normal: bool = True
    service_instance_name: Optional[str] = None

    @cached_property
    def service_id(self) -> str:
        return identity.service_id(self.service_name, self.is_service_normal)

    @cached_property
    def entity_id(self) -> str:
        return identity.endpoint_id(self.service_id, self.name or "")


class EndpointRelation(_CallOutcome):
    """One observed parent endpoint -> child endpoint call.

    ``service_name``/``is_service_normal`` describe the owner of the parent
    endpoint, which is not necessarily the service that issued the call (MQ
    consumers, un-instrumented proxies). ``rpc_latency`` replaces the generic
    ``latency`` field on this record.
    """

    scope: ClassVar[Scope] = Scope.ENDPOINT_RELATION

    endpoint: str
    service_name: str
    is_service_normal: bool = True
    service_instance_name: Optional[str] = None
    child_endpoint: str
    child_service_name: str
    is_child_service_normal: bool = True
    child_service_instance_name: Optional[str] = None
    component_id: int = 0
    rpc_latency: int = 0
    detect_point: Optional[DetectPoint] = None

    @cached_property
    def source_endpoint_id(self) -> str:
        return identity.endpoint_id(
            identity.service_id(self.service_name, self.is_service_normal), self.endpoint
        )

    @cached_property
    def dest_endpoint_id(self) -> str:
        return identity.endpoint_id(
            identity.service_id(self.child_service_name, self.is_child_service_normal),
            self.child_endpoint,
        )

    @cached_property
    def entity_id(self) -> str:
        return identity.relation_id(self.source_endpoint_id, self.dest_endpoint_id)


class ServiceMeta(Source):
    """Service catalog registration. Carries no metrics and no tags."""

    scope: ClassVar[Scope] = Scope.SERVICE_META

    name: str
    layer: Optional[Layer] = None
    is_normal: bool = True

    @cached_property
    def entity_id(self) -> str:
        return identity.service_id(self.name, self.is_normal)


class DatabaseAccess(Source):
    """Database traffic sample, tracked at service granularity only."""

    scope: ClassVar[Scope] = Scope.DATABASE_ACCESS

    name: Optional[str] = None
    database_type_id: int = 0
    latency: int = 0
    status: bool = False


@dataclass(frozen=True)
class Suppressed:
    """A projection that did not apply to this call.

    Not an error: the call simply produced no record of this scope. Falsy so
    that ``if result:`` reads naturally at call sites.
    """

    scope: Scope
    reason: str

    def __bool__(self) -> bool:
        return False


S = TypeVar("S", bound=Source)

Projection = Union[S, Suppressed]


def is_suppressed(result: object) -> bool:
    return isinstance(result, Suppressed)
