"""
Graph Validator - Checks the consistency of an assembled resource graph.

Catches issues like:
- DependsOn cycles
- Traffic fronts that never reached their terminal state
- Compute tiers with no front, or shared between fronts
- Fronts routing to more than one tier
- Open ingress rules nobody has justified
- Orphaned nodes
"""

from dataclasses import dataclass, field
from typing import Dict, Iterable, List, Optional
from enum import Enum

from topology.compliance.catalog import OPEN_INGRESS_RULE_ID
from topology.graph import ResourceGraph
from topology.ir.base import NodeKind, Relation
from topology.ir.compliance_ir import AnnotatedGraph
from topology.ir.errors import InvalidTopologyError
from topology.ir.traffic_ir import FrontState, TrafficFront


class ValidationSeverity(Enum):
    ERROR = "error"      # Graph must not be handed to a provisioning engine
    WARNING = "warning"  # Graph is usable but has a finding
    INFO = "info"


@dataclass
class ValidationIssue:
    """A single validation issue found in the graph"""
    severity: ValidationSeverity
    code: str
    message: str
    node_id: Optional[str] = None
    suggestion: Optional[str] = None

    def to_dict(self) -> dict:
        return {
            "severity": self.severity.value,
            "code": self.code,
            "message": self.message,
            "node_id": self.node_id,
            "suggestion": self.suggestion,
        }


@dataclass
class GraphValidationResult:
    """Result of graph validation"""
    is_valid: bool
    issues: List[ValidationIssue] = field(default_factory=list)
    stats: Dict[str, int] = field(default_factory=dict)

    @property
    def error_count(self) -> int:
        return sum(1 for i in self.issues if i.severity == ValidationSeverity.ERROR)

    @property
    def warning_count(self) -> int:
        return sum(1 for i in self.issues if i.severity == ValidationSeverity.WARNING)

    @property
    def info_count(self) -> int:
        return sum(1 for i in self.issues if i.severity == ValidationSeverity.INFO)

    def codes(self) -> List[str]:
        return [i.code for i in self.issues]

    def to_dict(self) -> dict:
        return {
            "is_valid": self.is_valid,
            "error_count": self.error_count,
            "warning_count": self.warning_count,
            "info_count": self.info_count,
            "issues": [i.to_dict() for i in self.issues],
            "stats": self.stats,
        }

    def get_summary(self) -> str:
        status = "valid" if self.is_valid else "invalid"
        return (
            f"{status} | Errors: {self.error_count}, "
            f"Warnings: {self.warning_count}, Info: {self.info_count}"
        )


class GraphValidator:
    """
    Validates an assembled resource graph.

    Usage:
        validator = GraphValidator()
        result = validator.validate(graph, fronts=fronts, annotated=annotated)

        if not result.is_valid:
            for issue in result.issues:
                print(f"[{issue.severity.value}] {issue.message}")
    """

    def __init__(self, strict_mode: bool = False):
        self.strict_mode = strict_mode

    def validate(
        self,
        graph: ResourceGraph,
        fronts: Iterable[TrafficFront] = (),
        annotated: Optional[AnnotatedGraph] = None,
    ) -> GraphValidationResult:
        issues: List[ValidationIssue] = []

        issues.extend(self._check_cycles(graph))
        issues.extend(self._check_front_states(fronts))
        issues.extend(self._check_tier_routing(graph))
        issues.extend(self._check_front_fanout(graph))
        issues.extend(self._check_open_ingress(graph, annotated))
        issues.extend(self._check_orphaned_nodes(graph))
        issues.extend(self._check_suppressions(annotated))

        has_errors = any(i.severity == ValidationSeverity.ERROR for i in issues)
        has_warnings = any(i.severity == ValidationSeverity.WARNING for i in issues)

        is_valid = not has_errors
        if self.strict_mode:
            is_valid = not has_errors and not has_warnings

        return GraphValidationResult(is_valid=is_valid, issues=issues, stats=graph.stats())

    def _check_cycles(self, graph: ResourceGraph) -> List[ValidationIssue]:
        cycle = graph.find_cycle()
        if not cycle:
            return []
        return [ValidationIssue(
            severity=ValidationSeverity.ERROR,
            code="CYCLE",
            message=f"DependsOn cycle: {' -> '.join(cycle)}",
            node_id=cycle[0],
            suggestion="Remove one of the dependencies so construction order exists",
        )]

    def _check_front_states(self, fronts: Iterable[TrafficFront]) -> List[ValidationIssue]:
        issues = []
        for front in fronts:
            if front.state != FrontState.RULES_DERIVED:
                issues.append(ValidationIssue(
                    severity=ValidationSeverity.ERROR,
                    code="FRONT_NOT_TERMINAL",
                    message=f"Front '{front.id}' stopped in state {front.state.value}",
                    node_id=front.id,
                ))
        return issues

    def _check_tier_routing(self, graph: ResourceGraph) -> List[ValidationIssue]:
        issues = []
        for tier in graph.nodes(NodeKind.COMPUTE_TIER):
            owners = {e.source for e in graph.incoming(tier.id, Relation.ROUTES_TO)}
            if not owners:
                issues.append(ValidationIssue(
                    severity=ValidationSeverity.ERROR,
                    code="TIER_UNROUTED",
                    message=f"Compute tier '{tier.id}' receives no traffic",
                    node_id=tier.id,
                    suggestion="Attach a traffic front to the tier",
                ))
            elif len(owners) > 1:
                issues.append(ValidationIssue(
                    severity=ValidationSeverity.ERROR,
                    code="TIER_SHARED",
                    message=f"Compute tier '{tier.id}' is routed from {sorted(owners)}",
                    node_id=tier.id,
                ))
        return issues

    def _check_front_fanout(self, graph: ResourceGraph) -> List[ValidationIssue]:
        issues = []
        for front in graph.nodes(NodeKind.TRAFFIC_FRONT):
            targets = sorted({e.target for e in graph.outgoing(front.id, Relation.ROUTES_TO)})
            if len(targets) > 1:
                issues.append(ValidationIssue(
                    severity=ValidationSeverity.ERROR,
                    code="FRONT_FANOUT",
                    message=f"Front '{front.id}' routes to more than one tier: {targets}",
                    node_id=front.id,
                    suggestion="Give each compute tier its own front",
                ))
        return issues

    def _check_open_ingress(
        self, graph: ResourceGraph, annotated: Optional[AnnotatedGraph]
    ) -> List[ValidationIssue]:
        issues = []
        for rule in graph.nodes(NodeKind.SECURITY_RULE):
            if not rule.get("open_ingress"):
                continue
            if annotated is not None and annotated.is_suppressed(rule.id, OPEN_INGRESS_RULE_ID):
                continue
            issues.append(ValidationIssue(
                severity=ValidationSeverity.WARNING,
                code="OPEN_INGRESS_UNSUPPRESSED",
                message=f"Rule '{rule.id}' allows {rule.get('source_cidr')} on port {rule.get('port')} without a justification",
                node_id=rule.id,
                suggestion=f"Add a {OPEN_INGRESS_RULE_ID} suppression or narrow the source",
            ))
        return issues

    def _check_orphaned_nodes(self, graph: ResourceGraph) -> List[ValidationIssue]:
        connected = set()
        for edge in graph.edges():
            connected.add(edge.source)
            connected.add(edge.target)

        issues = []
        for node in graph.nodes():
            if node.id not in connected and len(graph) > 1:
                issues.append(ValidationIssue(
                    severity=ValidationSeverity.WARNING,
                    code="ORPHANED_NODE",
                    message=f"{node.kind.value} '{node.id}' has no relations",
                    node_id=node.id,
                ))
        return issues

    def _check_suppressions(self, annotated: Optional[AnnotatedGraph]) -> List[ValidationIssue]:
        if annotated is not None and annotated.records:
            return []
        return [ValidationIssue(
            severity=ValidationSeverity.INFO,
            code="NO_SUPPRESSIONS",
            message="No compliance suppressions were recorded",
        )]


def validate_graph(
    graph: ResourceGraph,
    fronts: Iterable[TrafficFront] = (),
    annotated: Optional[AnnotatedGraph] = None,
    strict: bool = False,
) -> GraphValidationResult:
    """Convenience function to validate a graph."""
    return GraphValidator(strict_mode=strict).validate(graph, fronts=fronts, annotated=annotated)


def raise_on_errors(result: GraphValidationResult) -> None:
    """Raise InvalidTopologyError carrying the first error, if any."""
    errors = [i for i in result.issues if i.severity == ValidationSeverity.ERROR]
    if errors:
        first = errors[0]
        raise InvalidTopologyError(
            f"[{first.code}] {first.message} ({len(errors)} error(s) total)",
            object_id=first.node_id,
        )
