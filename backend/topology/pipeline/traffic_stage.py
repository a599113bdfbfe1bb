"""
Traffic fronts - entry points that distribute connections to a compute tier.

Every attach walks a front through

    Declared -> ListenerAttached -> TargetsBound -> RulesDerived

inside a staged draft of the graph. A failure at any step drops the draft,
so no partially wired front is ever committed.
"""

import logging
from typing import Callable, Dict, Iterable, Optional

from topology.graph import ResourceGraph
from topology.ir.base import NodeKind, Relation
from topology.ir.errors import InvalidParameterError, InvalidTopologyError, UnresolvedPlacementError
from topology.ir.infra_ir import ANY_IPV4, AccessRule, ComputeTier, SecurityBoundary, SubnetRole
from topology.ir.traffic_ir import (
    ApplicationFront,
    FrontDeclaration,
    FrontState,
    FrontVariant,
    NetworkFront,
    Output,
    TrafficFront,
)
from topology.pipeline.compute_stage import build_tier_from_config
from topology.pipeline.stage import PipelineStage

logger = logging.getLogger(__name__)


def build_security_boundary(
    graph: ResourceGraph,
    boundary_id: str,
    ingress: Iterable[AccessRule] = (),
    allow_all_outbound: bool = True,
    network_id: Optional[str] = None,
) -> SecurityBoundary:
    """Commit a security boundary and its ingress rules to the graph."""
    boundary = SecurityBoundary(
        id=boundary_id,
        ingress=tuple(ingress),
        allow_all_outbound=allow_all_outbound,
    )
    with graph.staged() as draft:
        draft.add_node(boundary.to_node())
        if network_id is not None:
            draft.add_edge(boundary_id, network_id, Relation.DEPENDS_ON)
        for rule in boundary.ingress:
            draft.add_node(rule.to_node())
            draft.add_edge(rule.id, boundary_id, Relation.SECURES)
            draft.add_edge(rule.id, boundary_id, Relation.DEPENDS_ON)
            if rule.open_ingress:
                logger.warning(
                    "boundary '%s' allows unrestricted ingress on port %d", boundary_id, rule.port
                )
    return boundary


# -------------------------
# Variant-specific rule wiring
# -------------------------

def _wire_application_rules(graph: ResourceGraph, front: TrafficFront, tier: ComputeTier) -> None:
    for rule in front.access_rules:
        graph.add_node(rule.to_node())
        graph.add_edge(rule.id, front.id, Relation.SECURES)
        graph.add_edge(rule.id, front.id, Relation.DEPENDS_ON)
        if rule.open_ingress:
            logger.warning(
                "application front '%s' is open to %s on port %d",
                front.id, rule.source_cidr, rule.port,
            )


def _wire_network_rules(graph: ResourceGraph, front: TrafficFront, tier: ComputeTier) -> None:
    boundary = front.declaration.require_boundary()
    graph.add_edge(front.id, boundary.id, Relation.DEPENDS_ON)
    graph.add_edge(boundary.id, front.id, Relation.SECURES)
    for rule in front.access_rules:
        graph.add_node(rule.to_node())
        graph.add_edge(rule.id, tier.id, Relation.SECURES)
        graph.add_edge(rule.id, tier.id, Relation.DEPENDS_ON)
        graph.add_edge(rule.id, boundary.id, Relation.DEPENDS_ON)


RULE_WIRING: Dict[FrontVariant, Callable[[ResourceGraph, TrafficFront, ComputeTier], None]] = {
    FrontVariant.APPLICATION: _wire_application_rules,
    FrontVariant.NETWORK: _wire_network_rules,
}


class TrafficFrontBuilder:
    def attach(
        self,
        graph: ResourceGraph,
        declaration: FrontDeclaration,
        tier: ComputeTier,
    ) -> TrafficFront:
        front = TrafficFront(declaration=declaration)

        with graph.staged() as draft:
            self._check_preconditions(draft, declaration, tier)
            front.access_rules = declaration.derive_access_rules(tier.id)

            self._declare_node(draft, front)

            listener = declaration.listener_for(tier.id)
            front.listeners.append(
                draft.bind_listener(
                    listener.front_id,
                    listener.port,
                    listener.tier_id,
                    rule_ids=[rule.id for rule in front.access_rules],
                )
            )
            front.advance(FrontState.LISTENER_ATTACHED)

            draft.add_edge(front.id, tier.id, Relation.ROUTES_TO)
            draft.add_edge(front.id, tier.id, Relation.DEPENDS_ON)
            front.advance(FrontState.TARGETS_BOUND)

            RULE_WIRING[front.variant](draft, front, tier)
            front.advance(FrontState.RULES_DERIVED)

        logger.info(
            "%s '%s' listening on %d routes to '%s' (%d access rules)",
            front.variant.value, front.id, declaration.port, tier.id, len(front.access_rules),
        )
        return front

    # ---------- helpers ----------

    def _check_preconditions(
        self, graph: ResourceGraph, declaration: FrontDeclaration, tier: ComputeTier
    ) -> None:
        declaration.validate_port()

        tier_node = graph.resolve(tier.id)
        if tier_node.kind != NodeKind.COMPUTE_TIER:
            raise InvalidParameterError(
                f"'{tier.id}' is a {tier_node.kind.value}, not a compute tier",
                object_id=tier.id,
            )

        owners = {e.source for e in graph.incoming(tier.id, Relation.ROUTES_TO)}
        owners.discard(declaration.id)
        if owners:
            raise InvalidTopologyError(
                f"compute tier '{tier.id}' is already owned by {sorted(owners)}",
                object_id=tier.id,
            )

        if declaration.id in graph:
            targets = {e.target for e in graph.outgoing(declaration.id, Relation.ROUTES_TO)}
            targets.discard(tier.id)
            if targets:
                raise InvalidTopologyError(
                    f"front '{declaration.id}' already routes to {sorted(targets)}; "
                    f"it cannot also route to '{tier.id}'",
                    object_id=declaration.id,
                )

        if isinstance(declaration, NetworkFront):
            boundary = declaration.require_boundary()
            boundary_node = graph.resolve(boundary.id)
            if boundary_node.kind != NodeKind.SECURITY_BOUNDARY:
                raise InvalidParameterError(
                    f"'{boundary.id}' is not a security boundary", object_id=boundary.id
                )

    def _declare_node(self, graph: ResourceGraph, front: TrafficFront) -> None:
        if front.id in graph:
            existing = graph.resolve(front.id)
            if existing.kind != NodeKind.TRAFFIC_FRONT or existing.get("variant") != front.variant.value:
                raise InvalidTopologyError(
                    f"'{front.id}' already exists as a different resource", object_id=front.id
                )
            return

        public = [
            n.id for n in graph.nodes(NodeKind.SUBNET)
            if n.get("role") == SubnetRole.PUBLIC.value
        ]
        if front.declaration.internet_facing and not public:
            raise UnresolvedPlacementError(
                f"internet-facing front '{front.id}' needs a public subnet",
                object_id=front.id,
            )

        graph.add_node(front.declaration.to_node([r.id for r in front.access_rules]))
        for subnet_id in public:
            graph.add_edge(front.id, subnet_id, Relation.DEPENDS_ON)


# -------------------------
# Stages
# -------------------------

ALB_TIER_ID = "alb-asg"
ALB_FRONT_ID = "alb"
NLB_TIER_ID = "nlb-asg"
NLB_FRONT_ID = "nlb"
NLB_BOUNDARY_ID = "nlb-sg"


def _register_output(context, name: str, front: TrafficFront) -> None:
    if not front.is_complete:
        raise InvalidTopologyError(
            f"output '{name}' requested before '{front.id}' reached {FrontState.RULES_DERIVED.value}",
            object_id=front.id,
        )
    context.outputs[name] = Output(name=name, node_id=front.id)


class ApplicationFrontStage(PipelineStage):
    name = "application_front"
    output_name = "AlbHostname"

    def __init__(self, builder: Optional[TrafficFrontBuilder] = None):
        self.builder = builder or TrafficFrontBuilder()

    def run(self, context):
        config = context.config
        declaration = ApplicationFront(
            id=ALB_FRONT_ID,
            port=config.http_port,
            ingress_cidr=config.application_ingress_cidr,
        )

        with context.graph.staged() as draft:
            tier = build_tier_from_config(draft, ALB_TIER_ID, config, context.bootstrap)
            front = self.builder.attach(draft, declaration, tier)

        if any(rule.open_ingress for rule in front.access_rules):
            context.add_warning(
                f"{front.id}: ingress on port {declaration.port} is open to any IPv4 address"
            )

        context.tiers[tier.id] = tier
        context.fronts[front.id] = front
        _register_output(context, self.output_name, front)


class NetworkFrontStage(PipelineStage):
    name = "network_front"
    output_name = "NlbHostname"

    def __init__(self, builder: Optional[TrafficFrontBuilder] = None):
        self.builder = builder or TrafficFrontBuilder()

    def run(self, context):
        config = context.config
        network_id = context.allocation.network_id if context.allocation else None

        with context.graph.staged() as draft:
            boundary = build_security_boundary(
                draft,
                NLB_BOUNDARY_ID,
                ingress=[
                    AccessRule(
                        id=f"{NLB_BOUNDARY_ID}-ingress-{config.http_port}",
                        source_cidr=ANY_IPV4,
                        port=config.http_port,
                        description="HTTP from anywhere",
                    )
                ],
                network_id=network_id,
            )
            tier = build_tier_from_config(draft, NLB_TIER_ID, config, context.bootstrap)
            front = self.builder.attach(
                draft,
                NetworkFront(id=NLB_FRONT_ID, port=config.http_port, boundary=boundary),
                tier,
            )

        context.tiers[tier.id] = tier
        context.fronts[front.id] = front
        _register_output(context, self.output_name, front)

