"""
Provisioning plan - the hand-off format for the external provisioning engine.

Resources are listed in construction order (dependencies first). Nothing in
here talks to a cloud API.
"""

from typing import Any, Dict

from topology.api.serializers import serialize_ir
from topology.ir.base import NodeKind, Relation

PLAN_FORMAT_VERSION = "1"


def compile_plan(result) -> Dict[str, Any]:
    annotated = result.annotated
    graph = annotated.graph

    resources = []
    for node_id in graph.topological_order():
        node = graph.resolve(node_id)
        attributes = dict(node.attributes)
        if node.kind == NodeKind.TRAFFIC_FRONT and graph.listeners(node.id):
            # the node keeps its first listener; the policy spans all of them
            attributes["security_policy"] = graph.security_policy(node.id)
        resources.append({
            "id": node.id,
            "kind": node.kind.value,
            "attributes": serialize_ir(attributes),
            "depends_on": sorted(graph.dependencies(node.id)),
            "suppressions": [r.rule_id for r in annotated.suppressions_for(node.id)],
        })

    edges = [
        {"source": e.source, "target": e.target, "relation": e.relation.value}
        for e in sorted(
            graph.edges(),
            key=lambda e: (e.relation.value, e.source, e.target),
        )
        if e.relation != Relation.DEPENDS_ON
    ]

    listeners = [
        {"front": b.front_id, "port": b.port, "target": b.tier_id, "rules": list(b.rule_ids)}
        for b in graph.listeners()
    ]

    return {
        "version": PLAN_FORMAT_VERSION,
        "resources": resources,
        "edges": edges,
        "listeners": listeners,
        "outputs": result.output_values(),
        "suppressions": annotated.index_as_dict(),
    }
