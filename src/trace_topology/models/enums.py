"""Enumerations shared by call contexts and source records.

Values are serialized by name (``str`` enums) so that newline-delimited JSON
produced by the CLI stays readable and stable across releases.
"""
from __future__ import annotations

from enum import Enum


class Layer(str, Enum):
    """Classification of a service at registration time."""

    UNDEFINED = "UNDEFINED"
    GENERAL = "GENERAL"
    MESH = "MESH"
    MESH_CP = "MESH_CP"
    MESH_DP = "MESH_DP"
    K8S_SERVICE = "K8S_SERVICE"
    FAAS = "FAAS"
    BROWSER = "BROWSER"
    DATABASE = "DATABASE"
    CACHE = "CACHE"
    MQ = "MQ"
    VIRTUAL_DATABASE = "VIRTUAL_DATABASE"
    VIRTUAL_MQ = "VIRTUAL_MQ"
    VIRTUAL_GATEWAY = "VIRTUAL_GATEWAY"


class RequestType(str, Enum):
    """Kind of request an observed call represents."""

    RPC = "RPC"
    HTTP = "HTTP"
    GRPC = "GRPC"
    DATABASE = "DATABASE"
    CACHE = "CACHE"
    MQ = "MQ"
    LOGIC = "LOGIC"


class DetectPoint(str, Enum):
    """Where the call was observed."""

    CLIENT = "CLIENT"
    SERVER = "SERVER"
    PROXY = "PROXY"


class Scope(str, Enum):
    """Downstream channel a source record is routed to."""

    ALL = "ALL"
    SERVICE = "SERVICE"
    SERVICE_RELATION = "SERVICE_RELATION"
    SERVICE_INSTANCE = "SERVICE_INSTANCE"
    SERVICE_INSTANCE_RELATION = "SERVICE_INSTANCE_RELATION"
    ENDPOINT = "ENDPOINT"
    ENDPOINT_RELATION = "ENDPOINT_RELATION"
    SERVICE_META = "SERVICE_META"
    DATABASE_ACCESS = "DATABASE_ACCESS"


__all__ = ["Layer", "RequestType", "DetectPoint", "Scope"]
