import logging
from typing import Optional

from topology.graph import ResourceGraph
from topology.ir.base import NodeKind, Relation
from topology.ir.errors import InvalidParameterError, UnresolvedPlacementError
from topology.ir.infra_ir import ComputeSizing, ComputeTier, SubnetRole
from topology.schemas import BuildConfig

logger = logging.getLogger(__name__)


class ComputeTierBuilder:
    """
    Declares an autoscaled group of identical instances placed in every
    subnet of one role.

    The bootstrap payload is opaque; the builder only guarantees it is
    attached before the tier is committed.
    """

    def build(
        self,
        graph: ResourceGraph,
        tier_id: str,
        sizing: ComputeSizing,
        image: str,
        placement_role: SubnetRole,
        min_capacity: int,
        bootstrap: bytes,
        max_capacity: Optional[int] = None,
    ) -> ComputeTier:
        if not isinstance(min_capacity, int) or min_capacity < 1:
            raise InvalidParameterError(
                f"min_capacity must be >= 1, got {min_capacity}", object_id=tier_id
            )
        if max_capacity is None:
            max_capacity = min_capacity
        if max_capacity < min_capacity:
            raise InvalidParameterError(
                f"max_capacity {max_capacity} is below min_capacity {min_capacity}",
                object_id=tier_id,
            )
        if not image:
            raise InvalidParameterError("image selector must not be empty", object_id=tier_id)
        if not bootstrap:
            raise InvalidParameterError("bootstrap payload must be attached", object_id=tier_id)

        placement = [
            node.id
            for node in graph.nodes(NodeKind.SUBNET)
            if node.get("role") == placement_role.value
        ]
        if not placement:
            raise UnresolvedPlacementError(
                f"no {placement_role.value} subnet exists for tier '{tier_id}'",
                object_id=tier_id,
            )

        tier = ComputeTier(
            id=tier_id,
            sizing=sizing,
            image_selector=image,
            placement=placement_role,
            min_capacity=min_capacity,
            max_capacity=max_capacity,
            bootstrap=bytes(bootstrap),
            subnet_ids=tuple(placement),
        )

        with graph.staged() as draft:
            draft.add_node(tier.to_node())
            for subnet_id in placement:
                draft.add_edge(tier_id, subnet_id, Relation.DEPENDS_ON)

        logger.info(
            "declared compute tier '%s' (%s, min=%d, max=%d) in %d %s subnets",
            tier_id, sizing.instance_type, min_capacity, max_capacity,
            len(placement), placement_role.value,
        )
        return tier


def build_tier_from_config(
    graph: ResourceGraph,
    tier_id: str,
    config: BuildConfig,
    bootstrap: bytes,
    builder: Optional[ComputeTierBuilder] = None,
) -> ComputeTier:
    builder = builder or ComputeTierBuilder()
    return builder.build(
        graph,
        tier_id,
        sizing=ComputeSizing(config.instance_class, config.instance_size),
        image=config.image_selector,
        placement_role=config.tier_placement,
        min_capacity=config.min_capacity,
        max_capacity=config.max_capacity,
        bootstrap=bootstrap,
    )
