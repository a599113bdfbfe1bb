"""Tests for traffic front construction"""

import pytest

from topology.graph import ResourceGraph
from topology.ir import (
    AccessRule,
    ApplicationFront,
    ComputeSizing,
    FrontState,
    FrontVariant,
    InvalidParameterError,
    InvalidTopologyError,
    NetworkFront,
    NodeKind,
    NotFoundError,
    PortConflictError,
    Relation,
    SubnetGroup,
    SubnetRole,
    UnresolvedPlacementError,
)
from topology.compiler import compile_plan
from topology.ir.compliance_ir import AnnotatedGraph
from topology.ir.traffic_ir import TrafficFront
from topology.pipeline.compute_stage import ComputeTierBuilder
from topology.pipeline.controller import BuildResult
from topology.pipeline.network_stage import NetworkAllocator
from topology.pipeline.traffic_stage import RULE_WIRING, TrafficFrontBuilder, build_security_boundary
from topology.validation import validate_graph


def make_graph(tiers=("web",), layout=None):
    graph = ResourceGraph()
    kwargs = {"layout": layout} if layout is not None else {}
    NetworkAllocator().allocate(graph, "10.0.0.0/16", 2, **kwargs)
    placement = SubnetRole.PRIVATE_NAT if layout is None else layout[0].role
    built = {}
    for tier_id in tiers:
        built[tier_id] = ComputeTierBuilder().build(
            graph, tier_id, ComputeSizing("burstable3", "micro"), "amazon-linux-2",
            placement, 2, b"echo hi",
        )
    return graph, built


def snapshot(graph):
    return (
        sorted(n.id for n in graph.nodes()),
        sorted((e.source, e.target, e.relation.value) for e in graph.edges()),
        graph.listeners(),
    )


def open_boundary(graph, boundary_id="edge-sg", port=80):
    return build_security_boundary(
        graph,
        boundary_id,
        ingress=[AccessRule(id=f"{boundary_id}-in", port=port, description="HTTP", source_cidr="0.0.0.0/0")],
        network_id="vpc",
    )


def test_application_front_reaches_terminal_state():
    graph, tiers = make_graph()

    front = TrafficFrontBuilder().attach(graph, ApplicationFront(id="alb"), tiers["web"])

    assert front.state == FrontState.RULES_DERIVED
    assert front.is_complete
    assert [(b.port, b.tier_id) for b in graph.listeners("alb")] == [(80, "web")]
    assert [e.target for e in graph.outgoing("alb", Relation.ROUTES_TO)] == ["web"]
    assert graph.resolve("alb").get("internet_facing") is True

    rule = graph.resolve("alb-ingress-80")
    assert rule.get("source_cidr") == "0.0.0.0/0"
    assert rule.get("open_ingress") is True
    assert [e.target for e in graph.outgoing("alb-ingress-80", Relation.SECURES)] == ["alb"]


def test_front_depends_on_public_subnets_and_tier():
    graph, tiers = make_graph()

    TrafficFrontBuilder().attach(graph, ApplicationFront(id="alb"), tiers["web"])

    assert set(graph.dependencies("alb")) == {"vpc-public-subnet-1", "vpc-public-subnet-2", "web"}
    order = graph.topological_order()
    assert order.index("web") < order.index("alb") < order.index("alb-ingress-80")


def test_network_front_scopes_rule_to_boundary():
    graph, tiers = make_graph()
    boundary = open_boundary(graph)

    front = TrafficFrontBuilder().attach(
        graph, NetworkFront(id="nlb", port=80, boundary=boundary), tiers["web"]
    )

    assert front.is_complete
    rule = graph.resolve("web-from-edge-sg-80")
    assert rule.get("source_boundary") == "edge-sg"
    assert rule.get("source_cidr") is None
    assert rule.get("open_ingress") is False
    assert [e.target for e in graph.outgoing(rule.id, Relation.SECURES)] == ["web"]
    assert "edge-sg" in graph.dependencies("nlb")
    assert [e.target for e in graph.outgoing("edge-sg", Relation.SECURES)] == ["nlb"]


def test_network_front_without_boundary_fails():
    graph, tiers = make_graph()
    before = snapshot(graph)

    with pytest.raises(InvalidParameterError):
        TrafficFrontBuilder().attach(graph, NetworkFront(id="nlb"), tiers["web"])

    assert snapshot(graph) == before


def test_network_front_with_unbuilt_boundary_fails():
    graph, tiers = make_graph()
    scratch = ResourceGraph()
    boundary = build_security_boundary(scratch, "ghost-sg")

    with pytest.raises(NotFoundError) as exc:
        TrafficFrontBuilder().attach(graph, NetworkFront(id="nlb", boundary=boundary), tiers["web"])

    assert exc.value.object_id == "ghost-sg"
    assert "nlb" not in graph


def test_same_port_twice_conflicts_and_leaves_graph_unchanged():
    graph, tiers = make_graph()
    builder = TrafficFrontBuilder()
    builder.attach(graph, ApplicationFront(id="alb", port=80), tiers["web"])
    before = snapshot(graph)

    with pytest.raises(PortConflictError):
        builder.attach(graph, ApplicationFront(id="alb", port=80), tiers["web"])

    assert snapshot(graph) == before


def test_distinct_ports_give_two_listeners():
    graph, tiers = make_graph()
    builder = TrafficFrontBuilder()
    builder.attach(graph, ApplicationFront(id="alb", port=80), tiers["web"])
    builder.attach(graph, ApplicationFront(id="alb", port=443), tiers["web"])

    assert [b.port for b in graph.listeners("alb")] == [80, 443]
    assert {"alb-ingress-80", "alb-ingress-443"} <= {n.id for n in graph.nodes(NodeKind.SECURITY_RULE)}
    assert len(graph.nodes(NodeKind.TRAFFIC_FRONT)) == 1


@pytest.mark.parametrize("port", [0, 65536, -80])
def test_port_out_of_range(port):
    graph, tiers = make_graph()
    before = snapshot(graph)

    with pytest.raises(InvalidParameterError):
        TrafficFrontBuilder().attach(graph, ApplicationFront(id="alb", port=port), tiers["web"])

    assert snapshot(graph) == before


def test_tier_cannot_be_shared_between_fronts():
    graph, tiers = make_graph()
    builder = TrafficFrontBuilder()
    builder.attach(graph, ApplicationFront(id="alb"), tiers["web"])

    with pytest.raises(InvalidTopologyError):
        builder.attach(graph, ApplicationFront(id="alb2", port=8080), tiers["web"])

    assert "alb2" not in graph


def test_front_id_clash_with_other_variant():
    graph, tiers = make_graph(tiers=("web", "api"))
    boundary = open_boundary(graph)
    builder = TrafficFrontBuilder()
    builder.attach(graph, ApplicationFront(id="front"), tiers["web"])

    with pytest.raises(InvalidTopologyError):
        builder.attach(graph, NetworkFront(id="front", port=81, boundary=boundary), tiers["api"])


def test_internet_facing_front_needs_public_subnet():
    layout = [SubnetGroup("data", SubnetRole.PRIVATE_ISOLATED)]
    graph, tiers = make_graph(layout=layout)

    with pytest.raises(UnresolvedPlacementError):
        TrafficFrontBuilder().attach(graph, ApplicationFront(id="alb"), tiers["web"])

    assert "alb" not in graph


def test_target_must_be_a_compute_tier():
    graph, tiers = make_graph()
    tier = tiers["web"]
    impostor = type(tier)(
        id="vpc", sizing=tier.sizing, image_selector=tier.image_selector,
        placement=tier.placement, min_capacity=1, max_capacity=1, bootstrap=b"x",
    )

    with pytest.raises(InvalidParameterError):
        TrafficFrontBuilder().attach(graph, ApplicationFront(id="alb"), impostor)


def test_state_transitions_are_ordered():
    front = TrafficFront(declaration=ApplicationFront(id="alb"))

    with pytest.raises(InvalidTopologyError):
        front.advance(FrontState.TARGETS_BOUND)

    front.advance(FrontState.LISTENER_ATTACHED)
    front.advance(FrontState.TARGETS_BOUND)
    front.advance(FrontState.RULES_DERIVED)
    with pytest.raises(InvalidTopologyError):
        front.advance(FrontState.RULES_DERIVED)


def test_every_variant_has_rule_wiring():
    assert set(RULE_WIRING) == set(FrontVariant)


def test_access_rule_needs_exactly_one_source():
    with pytest.raises(InvalidParameterError):
        AccessRule(id="r", port=80, description="none")
    with pytest.raises(InvalidParameterError):
        AccessRule(id="r", port=80, description="both", source_cidr="0.0.0.0/0", source_boundary="sg")


def test_front_cannot_route_to_a_second_tier():
    graph, tiers = make_graph(tiers=("web", "api"))
    builder = TrafficFrontBuilder()
    builder.attach(graph, ApplicationFront(id="alb", port=80), tiers["web"])
    before = snapshot(graph)

    with pytest.raises(InvalidTopologyError) as exc:
        builder.attach(graph, ApplicationFront(id="alb", port=443), tiers["api"])

    assert exc.value.object_id == "alb"
    assert snapshot(graph) == before
    assert [e.target for e in graph.outgoing("alb", Relation.ROUTES_TO)] == ["web"]


def test_plan_policy_covers_every_listener():
    graph, tiers = make_graph()
    builder = TrafficFrontBuilder()
    builder.attach(graph, ApplicationFront(id="alb", port=80), tiers["web"])
    builder.attach(graph, ApplicationFront(id="alb", port=443), tiers["web"])
    result = BuildResult(
        annotated=AnnotatedGraph(graph=graph),
        fronts={},
        outputs={},
        validation=validate_graph(graph),
    )

    plan = compile_plan(result)

    front = next(r for r in plan["resources"] if r["id"] == "alb")
    assert front["attributes"]["security_policy"] == ["alb-ingress-80", "alb-ingress-443"]
    assert graph.security_policy("alb") == ["alb-ingress-80", "alb-ingress-443"]
    rules_by_port = {b["port"]: b["rules"] for b in plan["listeners"]}
    assert rules_by_port == {80: ["alb-ingress-80"], 443: ["alb-ingress-443"]}
