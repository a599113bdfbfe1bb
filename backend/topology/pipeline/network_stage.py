import ipaddress
import logging
import math
import string
from typing import List, Optional, Sequence

from topology.graph import ResourceGraph
from topology.ir.base import NodeKind, Relation, ResourceNode
from topology.ir.errors import InvalidParameterError, InvalidTopologyError
from topology.ir.infra_ir import (
    DEFAULT_SUBNET_LAYOUT,
    NetworkAllocation,
    Subnet,
    SubnetGroup,
    SubnetRole,
)
from topology.pipeline.stage import PipelineStage

logger = logging.getLogger(__name__)

DEFAULT_NETWORK_ID = "vpc"


def availability_zone_names(az_count: int) -> List[str]:
    if az_count < 1:
        raise InvalidParameterError(f"az_count must be >= 1, got {az_count}")
    if az_count > len(string.ascii_lowercase):
        raise InvalidParameterError(f"az_count must be <= 26, got {az_count}")
    return [f"az-{letter}" for letter in string.ascii_lowercase[:az_count]]


class NetworkAllocator:
    """
    Carves a network CIDR into role-tagged subnets, one per (group, zone).

    Subnets are allocated in layout order, zone by zone. Groups without an
    explicit mask share the address space evenly.
    """

    def allocate(
        self,
        graph: ResourceGraph,
        cidr: str,
        az_count: int,
        layout: Sequence[SubnetGroup] = DEFAULT_SUBNET_LAYOUT,
        nat_gateways: Optional[int] = None,
        network_id: str = DEFAULT_NETWORK_ID,
    ) -> NetworkAllocation:
        zones = availability_zone_names(az_count)
        network = self._parse_cidr(cidr)
        layout = list(layout)

        if not layout:
            raise InvalidParameterError("subnet layout must not be empty", object_id=network_id)

        roles = {group.role for group in layout}
        if SubnetRole.PRIVATE_NAT in roles and SubnetRole.PUBLIC not in roles:
            raise InvalidTopologyError(
                "private subnets with NAT egress require a public subnet in the same network",
                object_id=network_id,
            )

        if nat_gateways is None:
            nat_gateways = az_count if SubnetRole.PRIVATE_NAT in roles else 0
        if nat_gateways < 0:
            raise InvalidParameterError(
                f"nat_gateways must be >= 0, got {nat_gateways}", object_id=network_id
            )
        if SubnetRole.PRIVATE_NAT in roles and nat_gateways == 0:
            raise InvalidTopologyError(
                "private subnets with NAT egress require at least one NAT gateway",
                object_id=network_id,
            )
        nat_gateways = min(nat_gateways, az_count) if SubnetRole.PUBLIC in roles else 0

        masks = self._subnet_masks(network, layout, az_count)
        nat_group = next((g for g in layout if g.role == SubnetRole.PUBLIC), None)

        allocation = NetworkAllocation(
            network_id=network_id,
            cidr=str(network),
            availability_zones=zones,
            nat_gateways=nat_gateways,
        )

        cursor = int(network.network_address)
        for group, mask in zip(layout, masks):
            for index, zone in enumerate(zones):
                block, cursor = self._carve(network, cursor, mask, network_id)
                allocation.subnets.append(
                    Subnet(
                        id=f"{network_id}-{group.name.lower()}-subnet-{index + 1}",
                        group=group.name,
                        role=group.role,
                        cidr=str(block),
                        availability_zone=zone,
                        nat_gateway=group is nat_group and index < nat_gateways,
                    )
                )

        with graph.staged() as draft:
            self._commit(draft, allocation)

        logger.info(
            "allocated network '%s' %s: %d subnets across %d zones, %d NAT gateways",
            network_id, allocation.cidr, len(allocation.subnets), az_count, nat_gateways,
        )
        return allocation

    # ---------- helpers ----------

    def _parse_cidr(self, cidr: str) -> ipaddress.IPv4Network:
        try:
            network = ipaddress.ip_network(cidr, strict=True)
        except ValueError as e:
            raise InvalidParameterError(f"invalid network CIDR '{cidr}': {e}")
        if network.version != 4:
            raise InvalidParameterError(f"network CIDR '{cidr}' must be IPv4")
        return network

    def _subnet_masks(self, network, layout: List[SubnetGroup], az_count: int) -> List[int]:
        even_mask = None
        if any(g.cidr_mask is None for g in layout):
            # even split over every subnet in the layout
            total = len(layout) * az_count
            even_mask = network.prefixlen + math.ceil(math.log2(total))

        masks = []
        for group in layout:
            mask = group.cidr_mask if group.cidr_mask is not None else even_mask
            if not network.prefixlen <= mask <= 32:
                raise InvalidParameterError(
                    f"subnet mask /{mask} for group '{group.name}' does not fit {network}",
                    object_id=group.name,
                )
            masks.append(mask)
        return masks

    def _carve(self, network, cursor: int, mask: int, network_id: str):
        size = 2 ** (32 - mask)
        start = -(-cursor // size) * size  # align up
        end = start + size - 1
        if end > int(network.broadcast_address):
            raise InvalidTopologyError(
                f"network {network} has no room left for a /{mask} subnet",
                object_id=network_id,
            )
        return ipaddress.ip_network(f"{ipaddress.IPv4Address(start)}/{mask}"), end + 1

    def _commit(self, graph: ResourceGraph, allocation: NetworkAllocation) -> None:
        graph.add_node(
            ResourceNode(
                id=allocation.network_id,
                kind=NodeKind.NETWORK,
                attributes={
                    "cidr": allocation.cidr,
                    "availability_zones": allocation.availability_zones,
                    "nat_gateways": allocation.nat_gateways,
                },
            )
        )

        nat_hosts = [s for s in allocation.subnets if s.nat_gateway]
        host_by_zone = {s.availability_zone: s for s in nat_hosts}

        for subnet in allocation.subnets:
            graph.add_node(subnet.to_node())
            graph.add_edge(subnet.id, allocation.network_id, Relation.DEPENDS_ON)

        for subnet in allocation.subnets_with_role(SubnetRole.PRIVATE_NAT):
            host = host_by_zone.get(subnet.availability_zone, nat_hosts[0])
            graph.add_edge(subnet.id, host.id, Relation.DEPENDS_ON)


class NetworkStage(PipelineStage):
    name = "network"

    def __init__(self, allocator: Optional[NetworkAllocator] = None):
        self.allocator = allocator or NetworkAllocator()

    def run(self, context):
        config = context.config
        context.allocation = self.allocator.allocate(
            context.graph,
            cidr=config.network_cidr,
            az_count=config.az_count,
            layout=config.subnet_layout(),
            nat_gateways=config.nat_gateways,
        )
