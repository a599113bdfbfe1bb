from typing import List

from topology.ir.base import Edge, NodeKind, ResourceNode

KIND_ORDER = [
    NodeKind.NETWORK,
    NodeKind.SUBNET,
    NodeKind.SECURITY_BOUNDARY,
    NodeKind.TRAFFIC_FRONT,
    NodeKind.COMPUTE_TIER,
    NodeKind.SECURITY_RULE,
]


def order_nodes(nodes: List[ResourceNode]) -> List[ResourceNode]:
    return sorted(nodes, key=lambda n: (KIND_ORDER.index(n.kind), n.id))


def order_edges(edges: List[Edge]) -> List[Edge]:
    return sorted(edges, key=lambda e: (e.source, e.target, e.relation.value))
