"""Deterministic entity and relation identity encoding.

Every source record that represents a logical entity (service, instance,
endpoint) or an edge between two of them carries an id derived only from the
entity's defining attributes. Independent agents that report the same entity
therefore produce byte-identical ids, which is what lets the downstream
aggregation engine merge their observations.

ID Format:
    Service id:   b64(service_name) + "." + ("1" if normal else "0")
    Instance id:  service_id + "_" + b64(instance_name)
    Endpoint id:  service_id + "_" + b64(endpoint_name)
    Relation id:  source_id + "-" + dest_id

The standard base64 alphabet never produces ".", "_" or "-", so the
separators above cannot collide with encoded names and every id can be split
back into its parts (see the ``analyze_*`` helpers).

Design Invariant:
    The encoding is an immutable contract. Changing a separator or the
    alphabet silently splits every historical entity into two rows
    downstream.
"""
from __future__ import annotations

import base64
import binascii
from typing import NamedTuple, Tuple

SERVICE_ID_CONNECTOR = "."
ID_CONNECTOR = "_"
RELATION_ID_CONNECTOR = "-"

__all__ = [
    "ServiceIdentity",
    "OwnedIdentity",
    "service_id",
    "instance_id",
    "endpoint_id",
    "relation_id",
    "analyze_service_id",
    "analyze_instance_id",
    "analyze_endpoint_id",
    "analyze_relation_id",
]


class ServiceIdentity(NamedTuple):
    name: str
    is_normal: bool


class OwnedIdentity(NamedTuple):
    """Decoded instance or endpoint id: owning service id plus entity name."""

    service_id: str
    name: str


def _encode(name: str) -> str:
    return base64.b64encode(name.encode("utf-8")).decode("ascii")


def _decode(encoded: str, id_: str) -> str:
    try:
        return base64.b64decode(encoded.encode("ascii"), validate=True).decode("utf-8")
    except (binascii.Error, UnicodeError) as e:
        raise ValueError(f"Malformed id segment {encoded!r} in {id_!r}") from e


def service_id(name: str, is_normal: bool) -> str:
    """Build the id of a service.

    The normal flag is part of the id: a service observed directly by an agent
    and a conjectured peer with the same name are different entities.
    """
    flag = "1" if is_normal else "0"
    return f"{_encode(name)}{SERVICE_ID_CONNECTOR}{flag}"


def instance_id(owner_service_id: str, name: str) -> str:
    return f"{owner_service_id}{ID_CONNECTOR}{_encode(name)}"


def endpoint_id(owner_service_id: str, name: str) -> str:
    return f"{owner_service_id}{ID_CONNECTOR}{_encode(name)}"


def relation_id(source_id: str, dest_id: str) -> str:
    """Build the id of a directed edge. Order matters: (a, b) != (b, a)."""
    return f"{source_id}{RELATION_ID_CONNECTOR}{dest_id}"


def analyze_service_id(id_: str) -> ServiceIdentity:
    encoded, sep, flag = id_.rpartition(SERVICE_ID_CONNECTOR)
    if not sep or flag not in ("0", "1"):
        raise ValueError(f"Malformed service id {id_!r}")
    return ServiceIdentity(name=_decode(encoded, id_), is_normal=flag == "1")


def _analyze_owned(id_: str, kind: str) -> OwnedIdentity:
    owner, sep, encoded = id_.partition(ID_CONNECTOR)
    if not sep:
        raise ValueError(f"Malformed {kind} id {id_!r}")
    # validates the owner part as well
    analyze_service_id(owner)
    return OwnedIdentity(service_id=owner, name=_decode(encoded, id_))


def analyze_instance_id(id_: str) -> OwnedIdentity:
    return _analyze_owned(id_, "instance")


def analyze_endpoint_id(id_: str) -> OwnedIdentity:
    return _analyze_owned(id_, "endpoint")


def analyze_relation_id(id_: str) -> Tuple[str, str]:
    """Split a relation id into (source_id, dest_id)."""
    source, sep, dest = id_.partition(RELATION_ID_CONNECTOR)
    if not sep or not source or not dest:
        raise ValueError(f"Malformed relation id {id_!r}")
    return source, dest
