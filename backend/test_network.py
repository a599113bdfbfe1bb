"""Tests for the network allocator"""

import pytest

from topology.graph import ResourceGraph
from topology.ir import (
    InvalidParameterError,
    InvalidTopologyError,
    NodeKind,
    Relation,
    SubnetGroup,
    SubnetRole,
)
from topology.pipeline.network_stage import NetworkAllocator, availability_zone_names


def allocate(**kwargs):
    graph = ResourceGraph()
    kwargs.setdefault("cidr", "10.0.0.0/16")
    kwargs.setdefault("az_count", 2)
    allocation = NetworkAllocator().allocate(graph, **kwargs)
    return graph, allocation


def test_default_layout_splits_evenly():
    graph, allocation = allocate()

    cidrs = {s.id: s.cidr for s in allocation.subnets}
    assert cidrs == {
        "vpc-public-subnet-1": "10.0.0.0/18",
        "vpc-public-subnet-2": "10.0.64.0/18",
        "vpc-private-subnet-1": "10.0.128.0/18",
        "vpc-private-subnet-2": "10.0.192.0/18",
    }
    assert len(graph.nodes(NodeKind.SUBNET)) == 4
    assert graph.resolve("vpc").get("nat_gateways") == 2


def test_each_role_spans_every_zone():
    _, allocation = allocate(az_count=3)

    for role in (SubnetRole.PUBLIC, SubnetRole.PRIVATE_NAT):
        zones = [s.availability_zone for s in allocation.subnets_with_role(role)]
        assert zones == ["az-a", "az-b", "az-c"]


def test_subnets_depend_on_network_and_nat_host():
    graph, _ = allocate()

    assert graph.dependencies("vpc-public-subnet-1") == ["vpc"]
    assert set(graph.dependencies("vpc-private-subnet-2")) == {"vpc", "vpc-public-subnet-2"}


def test_single_nat_gateway_is_shared():
    graph, allocation = allocate(nat_gateways=1)

    hosts = [s.id for s in allocation.subnets if s.nat_gateway]
    assert hosts == ["vpc-public-subnet-1"]
    assert "vpc-public-subnet-1" in graph.dependencies("vpc-private-subnet-2")


def test_explicit_masks_are_honoured():
    layout = [
        SubnetGroup("ingress", SubnetRole.PUBLIC, cidr_mask=24),
        SubnetGroup("app", SubnetRole.PRIVATE_NAT, cidr_mask=20),
    ]
    _, allocation = allocate(layout=layout)

    cidrs = [s.cidr for s in allocation.subnets]
    assert cidrs == ["10.0.0.0/24", "10.0.1.0/24", "10.0.16.0/20", "10.0.32.0/20"]


def test_isolated_only_layout_needs_no_nat():
    _, allocation = allocate(layout=[SubnetGroup("data", SubnetRole.PRIVATE_ISOLATED)])

    assert allocation.nat_gateways == 0
    assert all(not s.nat_gateway for s in allocation.subnets)


def test_private_nat_without_public_fails():
    graph = ResourceGraph()

    with pytest.raises(InvalidTopologyError):
        NetworkAllocator().allocate(
            graph, "10.0.0.0/16", 2, layout=[SubnetGroup("app", SubnetRole.PRIVATE_NAT)]
        )

    assert len(graph) == 0


def test_zero_nat_gateways_with_private_nat_fails():
    with pytest.raises(InvalidTopologyError):
        allocate(nat_gateways=0)


def test_negative_nat_gateways_fails():
    with pytest.raises(InvalidParameterError):
        allocate(nat_gateways=-1)


def test_network_too_small_fails_without_partial_commit():
    graph = ResourceGraph()
    layout = [
        SubnetGroup("a", SubnetRole.PUBLIC, cidr_mask=25),
        SubnetGroup("b", SubnetRole.PRIVATE_NAT, cidr_mask=25),
    ]

    with pytest.raises(InvalidTopologyError):
        NetworkAllocator().allocate(graph, "10.0.0.0/24", 2, layout=layout)

    assert len(graph) == 0


@pytest.mark.parametrize("cidr", ["not-a-cidr", "10.0.0.1/16", "fd00::/8"])
def test_invalid_cidr(cidr):
    with pytest.raises(InvalidParameterError):
        allocate(cidr=cidr)


def test_mask_wider_than_network_fails():
    with pytest.raises(InvalidParameterError):
        allocate(layout=[SubnetGroup("wide", SubnetRole.PUBLIC, cidr_mask=8)])


def test_empty_layout_fails():
    with pytest.raises(InvalidParameterError):
        allocate(layout=[])


def test_zone_names():
    assert availability_zone_names(2) == ["az-a", "az-b"]
    with pytest.raises(InvalidParameterError):
        availability_zone_names(0)
    with pytest.raises(InvalidParameterError):
        availability_zone_names(27)


def test_second_allocation_with_same_id_is_rejected():
    graph, _ = allocate()

    with pytest.raises(InvalidTopologyError):
        NetworkAllocator().allocate(graph, "10.1.0.0/16", 2)

    assert len(graph.nodes(NodeKind.NETWORK)) == 1
    assert len(graph.edges(Relation.DEPENDS_ON)) == 6
