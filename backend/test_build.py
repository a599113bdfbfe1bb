"""End-to-end build tests: controller, validation, plan and mermaid output"""

import json
from pathlib import Path

import pytest

from topology.compiler import compile_to_mermaid
from topology.ir import (
    DanglingReferenceError,
    FrontState,
    FrontVariant,
    InvalidParameterError,
    InvalidTopologyError,
    NodeKind,
    NotFoundError,
    Relation,
    ResourceNode,
    UnresolvedPlacementError,
)
from topology.graph import ResourceGraph
from topology.ir.traffic_ir import ApplicationFront, TrafficFront
from topology.pipeline import BuildController, build_topology
from topology.schemas import BuildConfig
from topology.validation import validate_graph

BOOTSTRAP = b"#!/bin/bash\nyum install -y httpd\n"
SAMPLE_CONFIG = Path(__file__).resolve().parent.parent / "config" / "webapp.json"


def sample_config() -> BuildConfig:
    return BuildConfig.model_validate(json.loads(SAMPLE_CONFIG.read_text()))


def test_reference_scenario():
    result = build_topology(sample_config(), BOOTSTRAP)
    graph = result.graph

    assert len(graph.nodes(NodeKind.COMPUTE_TIER)) == 2
    assert len(graph.nodes(NodeKind.SECURITY_RULE)) == 3
    assert {f.variant for f in result.fronts.values()} == {FrontVariant.APPLICATION, FrontVariant.NETWORK}
    assert all(f.state == FrontState.RULES_DERIVED for f in result.fronts.values())
    assert result.output_values() == {
        "AlbHostname": "${alb.dns_name}",
        "NlbHostname": "${nlb.dns_name}",
    }
    assert result.validation.is_valid


def test_each_tier_is_routed_from_exactly_one_front():
    graph = build_topology(sample_config(), BOOTSTRAP).graph

    for tier in graph.nodes(NodeKind.COMPUTE_TIER):
        assert len(graph.incoming(tier.id, Relation.ROUTES_TO)) == 1
    assert [e.target for e in graph.outgoing("alb", Relation.ROUTES_TO)] == ["alb-asg"]
    assert [e.target for e in graph.outgoing("nlb", Relation.ROUTES_TO)] == ["nlb-asg"]


def test_sample_suppressions_cover_open_ingress():
    result = build_topology(sample_config(), BOOTSTRAP)
    annotated = result.annotated

    assert annotated.is_suppressed("vpc", "AwsSolutions-VPC7")
    assert annotated.is_suppressed("alb-ingress-80", "AwsSolutions-EC23")
    assert annotated.is_suppressed("nlb-sg-ingress-80", "AwsSolutions-EC23")
    assert not annotated.is_suppressed("vpc", "AwsSolutions-EC23")
    assert "OPEN_INGRESS_UNSUPPRESSED" not in result.validation.codes()


def test_default_config_warns_about_open_ingress():
    result = build_topology(BuildConfig(), BOOTSTRAP)

    codes = result.validation.codes()
    assert codes.count("OPEN_INGRESS_UNSUPPRESSED") == 2
    assert "NO_SUPPRESSIONS" in codes
    assert any("open to any IPv4" in w for w in result.warnings)
    assert result.validation.is_valid


def test_restricted_ingress_has_no_open_rule_on_alb():
    result = build_topology(BuildConfig(applicationIngressCidr="203.0.113.0/24"), BOOTSTRAP)

    rule = result.graph.resolve("alb-ingress-80")
    assert rule.get("open_ingress") is False
    assert not any("open to any IPv4" in w for w in result.warnings)


def test_zero_min_capacity_aborts_build():
    with pytest.raises(InvalidParameterError):
        build_topology(BuildConfig(minCapacity=0), BOOTSTRAP)


def test_isolated_placement_without_isolated_subnets_aborts():
    with pytest.raises(UnresolvedPlacementError):
        build_topology(BuildConfig(tierPlacement="PrivateIsolated"), BOOTSTRAP)


def test_dangling_suppression_aborts_build():
    config = BuildConfig(suppressions=[
        {"targetNodeId": "missing", "ruleId": "AwsSolutions-VPC7", "justification": "x"}
    ])

    with pytest.raises(DanglingReferenceError):
        build_topology(config, BOOTSTRAP)


def test_resolve_output():
    result = build_topology(BuildConfig(), BOOTSTRAP)

    assert result.resolve_output("NlbHostname") == "${nlb.dns_name}"
    with pytest.raises(NotFoundError):
        result.resolve_output("Missing")


def test_plan_lists_resources_in_construction_order():
    result = build_topology(sample_config(), BOOTSTRAP)
    plan = result.to_plan()

    ids = [r["id"] for r in plan["resources"]]
    assert ids[0] == "vpc"
    seen = set()
    for resource in plan["resources"]:
        assert set(resource["depends_on"]) <= seen
        seen.add(resource["id"])

    assert {"front": "alb", "port": 80, "target": "alb-asg", "rules": ["alb-ingress-80"]} in plan["listeners"]
    assert plan["outputs"]["AlbHostname"] == "${alb.dns_name}"
    tier = next(r for r in plan["resources"] if r["id"] == "alb-asg")
    assert tier["suppressions"] == ["AwsSolutions-AS3"]
    json.dumps(plan)


def test_plan_is_deterministic():
    first = build_topology(sample_config(), BOOTSTRAP).to_plan()
    second = build_topology(sample_config(), BOOTSTRAP).to_plan()

    assert first == second


def test_mermaid_groups_subnets_under_network():
    text = compile_to_mermaid(build_topology(BuildConfig(), BOOTSTRAP))

    assert text.startswith("flowchart TD")
    assert 'subgraph vpc["Network: vpc 10.0.0.0/16"]' in text
    assert "alb ==>|RoutesTo| alb_asg" in text
    assert "nlb_asg_from_nlb_sg_80 -->|Secures| nlb_asg" in text


def test_controller_reports_incomplete_front():
    class StallStage:
        name = "stall"

        def run(self, context):
            context.graph.add_node(ResourceNode("half", NodeKind.TRAFFIC_FRONT))
            context.fronts["half"] = TrafficFront(declaration=ApplicationFront(id="half"))

    with pytest.raises(InvalidTopologyError) as exc:
        BuildController(stages=[StallStage()]).run(BuildConfig(), BOOTSTRAP)

    assert "FRONT_NOT_TERMINAL" in exc.value.message


def test_validator_flags_unrouted_and_shared_tiers():
    graph = ResourceGraph()
    for node_id in ("a", "b"):
        graph.add_node(ResourceNode(node_id, NodeKind.TRAFFIC_FRONT))
    graph.add_node(ResourceNode("shared", NodeKind.COMPUTE_TIER))
    graph.add_node(ResourceNode("lonely", NodeKind.COMPUTE_TIER))
    graph.add_edge("a", "shared", Relation.ROUTES_TO)
    graph.add_edge("b", "shared", Relation.ROUTES_TO)

    result = validate_graph(graph)

    assert not result.is_valid
    codes = result.codes()
    assert "TIER_SHARED" in codes
    assert "TIER_UNROUTED" in codes
    assert "ORPHANED_NODE" in codes


def test_validator_flags_cycles():
    graph = ResourceGraph()
    graph.add_node(ResourceNode("x", NodeKind.SUBNET))
    graph.add_node(ResourceNode("y", NodeKind.SUBNET))
    graph.add_edge("x", "y", Relation.DEPENDS_ON)
    graph.add_edge("y", "x", Relation.DEPENDS_ON)

    result = validate_graph(graph)

    assert result.codes()[0] == "CYCLE"
    assert result.error_count == 1


def test_strict_mode_fails_on_warnings():
    result = build_topology(BuildConfig(), BOOTSTRAP)

    strict = validate_graph(result.graph, result.fronts.values(), result.annotated, strict=True)

    assert not strict.is_valid
    assert strict.error_count == 0


def test_validator_flags_front_routing_to_two_tiers():
    graph = ResourceGraph()
    graph.add_node(ResourceNode("alb", NodeKind.TRAFFIC_FRONT))
    for tier_id in ("web", "api"):
        graph.add_node(ResourceNode(tier_id, NodeKind.COMPUTE_TIER))
        graph.add_edge("alb", tier_id, Relation.ROUTES_TO)

    result = validate_graph(graph)

    assert not result.is_valid
    fanout = [i for i in result.issues if i.code == "FRONT_FANOUT"]
    assert [i.node_id for i in fanout] == ["alb"]
    assert "TIER_SHARED" not in result.codes()
