from __future__ import annotations

import pytest

from trace_topology.config import EndpointGroupingRule
from trace_topology.projection.naming import InvalidNameError, NamingControl


def test_none_passes_through():
    naming = NamingControl()
    assert naming.format_service_name(None) is None
    assert naming.format_instance_name(None) is None
    assert naming.format_endpoint_name("svc", None) is None


def test_long_names_truncated_by_default():
    naming = NamingControl(service_name_max_length=5, instance_name_max_length=3, endpoint_name_max_length=4)
    assert naming.format_service_name("abcdefgh") == "abcde"
    assert naming.format_instance_name("i-12345") == "i-1"
    assert naming.format_endpoint_name("svc", "/orders") == "/ord"
    assert naming.format_service_name("abc") == "abc"


def test_strict_mode_raises_invalid_name_error():
    naming = NamingControl(service_name_max_length=5, strict=True)
    with pytest.raises(InvalidNameError) as exc:
        naming.format_service_name("abcdefgh")
    assert exc.value.kind == "service"
    assert exc.value.max_length == 5
    assert exc.value.name == "abcdefgh"
    assert isinstance(exc.value, ValueError)


def test_endpoint_grouping_first_full_match_wins():
    naming = NamingControl(
        grouping_rules=[
            EndpointGroupingRule(service="orders", pattern=r"/orders/\d+", name="/orders/{id}"),
            EndpointGroupingRule(service="*", pattern=r"/orders/.*", name="/orders/*"),
        ]
    )
    assert naming.format_endpoint_name("orders", "/orders/42") == "/orders/{id}"
    # rule bound to another service is skipped, wildcard applies
    assert naming.format_endpoint_name("billing", "/orders/42") == "/orders/*"
    # partial match is not a match
    assert naming.format_endpoint_name("orders", "/v1/orders/42") == "/v1/orders/42"


def test_grouping_happens_before_truncation():
    naming = NamingControl(
        endpoint_name_max_length=8,
        grouping_rules=[EndpointGroupingRule(pattern=r"/very/long/path/\d+", name="/grouped")],
    )
    assert naming.format_endpoint_name("svc", "/very/long/path/1") == "/grouped"


def test_formatting_is_idempotent():
    naming = NamingControl(
        service_name_max_length=6,
        grouping_rules=[EndpointGroupingRule(pattern=r"/users/\d+", name="/users/{id}")],
    )
    once = naming.format_service_name("gateway-service")
    assert naming.format_service_name(once) == once
    ep = naming.format_endpoint_name("svc", "/users/7")
    assert naming.format_endpoint_name("svc", ep) == ep


def test_invalid_grouping_pattern_rejected():
    with pytest.raises(ValueError):
        EndpointGroupingRule(pattern="(unclosed", name="x")
