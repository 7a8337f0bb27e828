from __future__ import annotations

import pytest

from trace_topology.projection import identity


def test_service_id_encodes_name_and_normal_flag():
    assert identity.service_id("frontend", True) == "ZnJvbnRlbmQ=.1"
    assert identity.service_id("frontend", False) == "ZnJvbnRlbmQ=.0"
    assert identity.service_id("frontend", True) != identity.service_id("frontend", False)


def test_ids_are_deterministic():
    a = identity.instance_id(identity.service_id("orders", True), "i-1")
    b = identity.instance_id(identity.service_id("orders", True), "i-1")
    assert a == b


def test_relation_id_is_order_sensitive():
    src = identity.service_id("frontend", True)
    dst = identity.service_id("orders", True)
    assert identity.relation_id(src, dst) != identity.relation_id(dst, src)
    assert identity.analyze_relation_id(identity.relation_id(src, dst)) == (src, dst)


def test_analyze_service_id_round_trip_with_separator_characters():
    # names containing the id separators must survive encoding
    name = "svc.with_odd-chars"
    decoded = identity.analyze_service_id(identity.service_id(name, False))
    assert decoded.name == name
    assert decoded.is_normal is False


def test_analyze_endpoint_id_returns_owner_and_name():
    owner = identity.service_id("orders", True)
    eid = identity.endpoint_id(owner, "/createOrder")
    decoded = identity.analyze_endpoint_id(eid)
    assert decoded.service_id == owner
    assert decoded.name == "/createOrder"


def test_analyze_instance_id_returns_owner_and_name():
    owner = identity.service_id("orders", False)
    decoded = identity.analyze_instance_id(identity.instance_id(owner, "i-1"))
    assert decoded.service_id == owner
    assert decoded.name == "i-1"


@pytest.mark.parametrize("bad", ["", "noflag", "abc.2", "!!!.1"])
def test_malformed_service_id_rejected(bad):
    with pytest.raises(ValueError):
        identity.analyze_service_id(bad)


def test_malformed_relation_id_rejected():
    with pytest.raises(ValueError):
        identity.analyze_relation_id("ZnJvbnRlbmQ=.1")
