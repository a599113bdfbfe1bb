import logging
from typing import Dict, Iterable, Optional, Set, Union

from topology.compliance.registry import RuleRegistry, get_rule_registry
from topology.graph import ResourceGraph
from topology.ir.compliance_ir import AnnotatedGraph, SuppressionRecord
from topology.ir.errors import DanglingReferenceError, MissingJustificationError
from topology.pipeline.stage import PipelineStage

logger = logging.getLogger(__name__)


def annotate(
    graph: Union[ResourceGraph, AnnotatedGraph],
    records: Iterable[SuppressionRecord],
    registry: Optional[RuleRegistry] = None,
) -> AnnotatedGraph:
    """
    Index suppression records against the nodes they waive findings for.

    Pure function of (graph snapshot, records): annotating an already
    annotated graph with the same records returns an identical index.
    Records with ``applies_to_children`` are also indexed under every node
    that transitively depends on the target at this point in time.
    """
    registry = registry or get_rule_registry()

    if isinstance(graph, AnnotatedGraph):
        base = graph.graph
        known = list(graph.records)
    else:
        base = graph
        known = []

    merged = list(dict.fromkeys(known + list(records)))

    for record in merged:
        if record.target_node_id not in base:
            raise DanglingReferenceError(
                f"suppression {record.rule_id} targets unknown node '{record.target_node_id}'",
                object_id=record.target_node_id,
            )
        if not record.justification or not record.justification.strip():
            raise MissingJustificationError(
                f"suppression {record.rule_id} on '{record.target_node_id}' has no justification",
                object_id=record.target_node_id,
            )
        if not registry.is_known(record.rule_id):
            logger.warning(
                "suppression on '%s' names unknown rule '%s'; keeping it",
                record.target_node_id, record.rule_id,
            )

    index: Dict[str, Set[SuppressionRecord]] = {}
    for record in merged:
        index.setdefault(record.target_node_id, set()).add(record)
        if record.applies_to_children:
            for child_id in base.descendants(record.target_node_id):
                index.setdefault(child_id, set()).add(record)

    return AnnotatedGraph(
        graph=base,
        index={node_id: tuple(sorted(index[node_id])) for node_id in sorted(index)},
        records=tuple(sorted(merged)),
    )


def unknown_rule_ids(records: Iterable[SuppressionRecord], registry: Optional[RuleRegistry] = None):
    registry = registry or get_rule_registry()
    return sorted({r.rule_id for r in records if not registry.is_known(r.rule_id)})


class ComplianceStage(PipelineStage):
    name = "compliance"

    def __init__(self, registry: Optional[RuleRegistry] = None):
        self.registry = registry

    def run(self, context):
        records = context.config.suppression_records()
        context.annotated = annotate(context.graph, records, registry=self.registry)

        for rule_id in unknown_rule_ids(records, self.registry):
            context.add_warning(f"unknown compliance rule id '{rule_id}'")

        logger.info(
            "annotated %d nodes with %d suppression records",
            len(context.annotated.index), len(context.annotated.records),
        )
