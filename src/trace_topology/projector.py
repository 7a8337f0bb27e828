"""Public facade for projecting observed calls into source records.

This module provides the stable public API of the projection stage. The
mechanics live in the ``trace_topology.projection`` package; callers normally
need only:

Public Functions:
    project_call: Normalize one CallContext and run every projection
    dispatch: Deliver the emitted records of one call to a SourceReceiver
    default_naming: NamingControl built from the cached Settings

A call that fails normalization raises before any record is produced, so a
call is either projected completely or not at all.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass, fields
from typing import Iterator, List, Optional, Union

from .config import get_settings
from .models.sources import (
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
    Source,
    Suppressed,
)
from .projection.call_context import CallContext, PreparedCall
from .projection.naming import NameNormalizer, NamingControl
from .projection.receiver import SourceReceiver

logger = logging.getLogger(__name__)

__all__ = [
    "ProjectedSources",
    "project_call",
    "project_prepared",
    "dispatch",
    "default_naming",
]


@dataclass(frozen=True)
class ProjectedSources:
    """Everything one call produced, one slot per scope.

    Field order is the delivery order used by ``dispatch``.
    """

    global_traffic: GlobalTraffic
    service: Service
    service_relation: ServiceRelation
    service_instance: ServiceInstance
    service_instance_relation: Projection[ServiceInstanceRelation]
    endpoint: Endpoint
    endpoint_relation: Projection[EndpointRelation]
    service_meta: ServiceMeta
    database_access: Projection[DatabaseAccess]

    def slots(self) -> Iterator[Union[Source, Suppressed]]:
        for f in fields(self):
            yield getattr(self, f.name)

    def emitted(self) -> List[Source]:
        return [s for s in self.slots() if not isinstance(s, Suppressed)]

    def suppressed(self) -> List[Suppressed]:
        return [s for s in self.slots() if isinstance(s, Suppressed)]


def default_naming() -> NamingControl:
    return NamingControl.from_settings(get_settings())


def project_prepared(call: PreparedCall) -> ProjectedSources:
    return ProjectedSources(
        global_traffic=call.to_global_traffic(),
        service=call.to_service(),
        service_relation=call.to_service_relation(),
        service_instance=call.to_service_instance(),
        service_instance_relation=call.to_service_instance_relation(),
        endpoint=call.to_endpoint(),
        endpoint_relation=call.to_endpoint_relation(),
        service_meta=call.to_service_meta(),
        database_access=call.to_database_access(),
    )


def project_call(
    context: CallContext, naming: Optional[NameNormalizer] = None
) -> ProjectedSources:
    """Prepare ``context`` and run every projection on the result.

    Args:
        context: Fully populated call; normalized in place
        naming: Normalizer to apply; defaults to ``default_naming()``

    Returns:
        ProjectedSources with a record or a Suppressed marker per scope

    Raises:
        InvalidNameError: propagated unchanged from the normalizer
    """
    prepared = context.prepare(naming if naming is not None else default_naming())
    return project_prepared(prepared)


def dispatch(projected: ProjectedSources, receiver: SourceReceiver) -> int:
    """Deliver each emitted record exactly once; return how many were sent."""
    delivered = 0
    for slot in projected.slots():
        if isinstance(slot, Suppressed):
            logger.debug("No %s record for call: %s", slot.scope.value, slot.reason)
            continue
        receiver.receive(slot)
        delivered += 1
    return delivered
