# backend/topology/compiler/render_mermaid.py

import re
from collections import defaultdict

from topology.compiler.layout import order_edges, order_nodes
from topology.graph import ResourceGraph
from topology.ir.base import NodeKind, Relation

EDGE_STYLE = {
    Relation.DEPENDS_ON: "-.->",
    Relation.ROUTES_TO: "==>",
    Relation.SECURES: "-->",
}


def mermaid_id(text: str) -> str:
    """Convert a resource id into a Mermaid-safe id."""
    return re.sub(r"[^a-zA-Z0-9_]", "_", text)


def node_label(node) -> str:
    if node.kind == NodeKind.SUBNET:
        return f"{node.id}<br/>{node.get('role')} {node.get('cidr')}"
    if node.kind == NodeKind.TRAFFIC_FRONT:
        return f"{node.get('variant')}: {node.id}"
    if node.kind == NodeKind.COMPUTE_TIER:
        return f"{node.id}<br/>{node.get('instance_type')} x{node.get('min_capacity')}"
    if node.kind == NodeKind.SECURITY_RULE:
        source = node.get("source_cidr") or node.get("source_boundary")
        return f"{node.id}<br/>{source} :{node.get('port')}"
    return f"{node.kind.value}: {node.id}"


def render_mermaid(graph: ResourceGraph, include_dependencies: bool = True) -> str:
    lines = ["flowchart TD"]

    # -------------------------
    # Group subnets under their network
    # -------------------------
    subnets_by_network = defaultdict(list)
    standalone = []

    for node in order_nodes(graph.nodes()):
        if node.kind == NodeKind.SUBNET:
            network = next(
                (t for t in graph.dependencies(node.id)
                 if graph.resolve(t).kind == NodeKind.NETWORK),
                None,
            )
            if network:
                subnets_by_network[network].append(node)
                continue
        standalone.append(node)

    for node in standalone:
        if node.kind == NodeKind.NETWORK and node.id in subnets_by_network:
            lines.append(f'subgraph {mermaid_id(node.id)}["Network: {node.id} {node.get("cidr")}"]')
            for subnet in subnets_by_network[node.id]:
                lines.append(f'  {mermaid_id(subnet.id)}["{node_label(subnet)}"]')
            lines.append("end")
        else:
            lines.append(f'{mermaid_id(node.id)}["{node_label(node)}"]')

    # -------------------------
    # Edges
    # -------------------------
    for edge in order_edges(graph.edges()):
        if edge.relation == Relation.DEPENDS_ON:
            if not include_dependencies:
                continue
            # subnet membership is already shown by the subgraph
            if graph.resolve(edge.target).kind == NodeKind.NETWORK and edge.source in {
                s.id for s in subnets_by_network.get(edge.target, [])
            }:
                continue
        arrow = EDGE_STYLE[edge.relation]
        lines.append(
            f"{mermaid_id(edge.source)} {arrow}|{edge.relation.value}| {mermaid_id(edge.target)}"
        )

    return "\n".join(lines)
