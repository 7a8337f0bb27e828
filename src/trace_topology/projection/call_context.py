"""Per-call accumulator and its projections into source records.

Lifecycle of one observed call:

1. The ingestion layer fills a ``CallContext`` (plain attribute assignment or
   keyword construction) and records tags through ``record_tag``.
2. ``CallContext.prepare(naming)`` normalizes all names in place and returns a
   frozen ``PreparedCall`` snapshot.
3. The ``to_*`` projections on ``PreparedCall`` each return either a
   populated record or a ``Suppressed`` marker. They are pure reads and may
   run in any order.

Projections live only on ``PreparedCall`` so that reading records from a call
whose names were never normalized is impossible by construction.

A ``CallContext`` is owned by exactly one worker and carries no locking.
``PreparedCall`` and the records it produces are immutable.
"""
from __future__ import annotations

from typing import Any, Dict, Iterable, List, Optional, Tuple, Union

from pydantic import BaseModel, ConfigDict, Field, model_validator

from ..models.enums import DetectPoint, Layer, RequestType, Scope
from ..models.sources import (
    DatabaseAccess,
    Endpoint,
    EndpointRelation,
    GlobalTraffic,
    Projection,
    Service,
    ServiceInstance,
    ServiceInstanceRelation,
    ServiceMeta,
    ServiceRelation,
    Suppressed,
)
from . import tags as _tags
from .naming import NameNormalizer
from .tags import TagPair

__all__ = ["CallContext", "PreparedCall"]

_TAG_FIELDS = ("tags", "original_tags")


class _CallFields(BaseModel):
    """Attribute set of one observed call, shared by builder and snapshot."""

    # Source side
    source_service_name: Optional[str] = None
    source_layer: Optional[Layer] = None
    is_source_normal: bool = True
    source_service_instance_name: Optional[str] = None
    # Set only when the source endpoint belongs to a service other than
    # source_service_name (MQ consumer, un-instrumented proxy). Always comes
    # from the span reference, so it always denotes a normal service.
    source_endpoint_owner_service_name: Optional[str] = None
    source_endpoint_name: Optional[str] = None

    # Destination side
    dest_service_name: Optional[str] = None
    dest_layer: Optional[Layer] = None
    is_dest_normal: bool = True
    dest_service_instance_name: Optional[str] = None
    dest_endpoint_name: Optional[str] = None

    # Call metadata
    component_id: int = 0
    latency: int = 0
    status: bool = False
    # Deprecated: kept for older producers. http_response_status_code wins.
    response_code: int = 0
    http_response_status_code: int = 0
    rpc_status_code: Optional[str] = None
    type: Optional[RequestType] = None
    detect_point: Optional[DetectPoint] = None
    time_bucket: int = 0

    tags: List[str] = Field(default_factory=list)
    original_tags: Dict[str, str] = Field(default_factory=dict)


class CallContext(_CallFields):
    """Mutable builder for one observed call.

    ``tags`` and ``original_tags`` are not accepted as input; they are filled
    only by ``record_tag`` and ``record_tags`` so the two stay in step.
    """

    @model_validator(mode="before")
    @classmethod
    def reject_tag_fields(cls, data: Any) -> Any:
        if isinstance(data, dict):
            given = sorted(k for k in _TAG_FIELDS if k in data)
            if given:
                raise ValueError(
                    f"{', '.join(given)} cannot be set directly; use record_tag"
                )
        return data

    def record_tag(self, key: str, value: str) -> None:
        _tags.record_tag(self.tags, self.original_tags, key, value)

    def record_tags(self, pairs: Iterable[Union[TagPair, Tuple[str, str]]]) -> None:
        _tags.record_tags(self.tags, self.original_tags, pairs)

    def prepare(self, naming: NameNormalizer) -> "PreparedCall":
        """Normalize all names in place and return the frozen snapshot.

        The source endpoint is formatted against the already normalized source
        service name, the dest endpoint against the normalized dest service
        name. Normalizer failures propagate unchanged.
        """
        self.source_service_name = naming.format_service_name(self.source_service_name)
        if self.source_endpoint_owner_service_name is not None:
            self.source_endpoint_owner_service_name = naming.format_service_name(
                self.source_endpoint_owner_service_name
            )
        self.source_service_instance_name = naming.format_instance_name(
            self.source_service_instance_name
        )
        self.source_endpoint_name = naming.format_endpoint_name(
            self.source_service_name, self.source_endpoint_name
        )
        self.dest_service_name = naming.format_service_name(self.dest_service_name)
        self.dest_service_instance_name = naming.format_instance_name(
            self.dest_service_instance_name
        )
        self.dest_endpoint_name = naming.format_endpoint_name(
            self.dest_service_name, self.dest_endpoint_name
        )
        return PreparedCall.model_validate(self.model_dump())


class PreparedCall(_CallFields):
    """Normalized, immutable view of a call. Owns the projections."""

    model_config = ConfigDict(frozen=True)

    source_service_name: str
    dest_service_name: str

    def _outcome(self) -> dict:
        return {
            "status": self.status,
            "response_code": self.response_code,
            "http_response_status_code": self.http_response_status_code,
            "rpc_status_code": self.rpc_status_code,
            "type": self.type,
            "time_bucket": self.time_bucket,
        }

    def _tag_copies(self) -> dict:
        return {"tags": tuple(self.tags), "original_tags": dict(self.original_tags)}

    def to_global_traffic(self) -> GlobalTraffic:
        return GlobalTraffic(
            name=self.dest_service_name,
            service_instance_name=self.dest_service_instance_name,
            endpoint_name=self.dest_endpoint_name,
            latency=self.latency,
            **self._outcome(),
            **self._tag_copies(),
        )

    def to_service(self) -> Service:
        return Service(
            name=self.dest_service_name,
            service_instance_name=self.dest_service_instance_name,
            endpoint_name=self.dest_endpoint_name,
            layer=self.dest_layer,
            is_normal=self.is_dest_normal,
            latency=self.latency,
            **self._outcome(),
            **self._tag_copies(),
        )

    def to_service_relation(self) -> ServiceRelation:
        return ServiceRelation(
            source_service_name=self.source_service_name,
            is_source_normal=self.is_source_normal,
            source_service_instance_name=self.source_service_instance_name,
            dest_service_name=self.dest_service_name,
            is_dest_normal=self.is_dest_normal,
            dest_service_instance_name=self.dest_service_instance_name,
            endpoint=self.dest_endpoint_name,
            component_id=self.component_id,
            latency=self.latency,
            detect_point=self.detect_point,
            **self._outcome(),
        )

    def to_service_instance(self) -> ServiceInstance:
        return ServiceInstance(
            name=self.dest_service_instance_name,
            service_name=self.dest_service_name,
            is_service_normal=self.is_dest_normal,
            layer=self.dest_layer,
            endpoint_name=self.dest_endpoint_name,
            latency=self.latency,
            **self._outcome(),
            **self._tag_copies(),
        )

    def to_service_instance_relation(self) -> Projection[ServiceInstanceRelation]:
        if not self.source_service_instance_name or not self.dest_service_instance_name:
            return Suppressed(
                Scope.SERVICE_INSTANCE_RELATION,
                "source or dest service instance name is empty",
            )
        return ServiceInstanceRelation(
            source_service_name=self.source_service_name,
            is_source_service_normal=self.is_source_normal,
            source_service_instance_name=self.source_service_instance_name,
            dest_service_name=self.dest_service_name,
            is_dest_service_normal=self.is_dest_normal,
            dest_service_instance_name=self.dest_service_instance_name,
            endpoint=self.dest_endpoint_name,
            component_id=self.component_id,
            latency=self.latency,
            detect_point=self.detect_point,
            **self._outcome(),
        )

    def to_endpoint(self) -> Endpoint:
        return Endpoint(
            name=self.dest_endpoint_name,
            service_name=self.dest_service_name,
            is_service_normal=self.is_dest_normal,
            service_instance_name=self.dest_service_instance_name,
            latency=self.latency,
            **self._outcome(),
            **self._tag_copies(),
        )

    def to_endpoint_relation(self) -> Projection[EndpointRelation]:
        """Parent endpoint -> child endpoint edge.

        An explicit endpoint owner replaces the source service and is always
        treated as normal, whatever ``is_source_normal`` says.
        """
        if not self.source_endpoint_name or not self.dest_endpoint_name:
            return Suppressed(
                Scope.ENDPOINT_RELATION, "source or dest endpoint name is empty"
            )
        if self.source_endpoint_owner_service_name is None:
            owner, owner_normal = self.source_service_name, self.is_source_normal
        else:
            owner, owner_normal = self.source_endpoint_owner_service_name, True
        return EndpointRelation(
            endpoint=self.source_endpoint_name,
            service_name=owner,
            is_service_normal=owner_normal,
            service_instance_name=self.source_service_instance_name,
            child_endpoint=self.dest_endpoint_name,
            child_service_name=self.dest_service_name,
            is_child_service_normal=self.is_dest_normal,
            child_service_instance_name=self.dest_service_instance_name,
            component_id=self.component_id,
            rpc_latency=self.latency,
            detect_point=self.detect_point,
            **self._outcome(),
        )

    def to_service_meta(self) -> ServiceMeta:
        return ServiceMeta(
            name=self.dest_service_name,
            layer=self.dest_layer,
            is_normal=self.is_dest_normal,
            time_bucket=self.time_bucket,
        )

    def to_database_access(self) -> Projection[DatabaseAccess]:
        if self.type is not RequestType.DATABASE:
            kind = self.type.value if self.type is not None else "unset"
            return Suppressed(Scope.DATABASE_ACCESS, f"request type is {kind}")
        return DatabaseAccess(
            database_type_id=self.component_id,
            latency=self.latency,
            name=self.dest_service_name,
            status=self.status,
            time_bucket=self.time_bucket,
        )
