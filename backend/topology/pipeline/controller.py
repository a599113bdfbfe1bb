import logging
from dataclasses import dataclass, field
from typing import Dict, List

from topology.graph import ResourceGraph
from topology.ir.compliance_ir import AnnotatedGraph
from topology.ir.errors import NotFoundError, TopologyError
from topology.ir.traffic_ir import Output, TrafficFront
from topology.pipeline.compliance_stage import ComplianceStage
from topology.pipeline.context import BuildContext
from topology.pipeline.network_stage import NetworkStage
from topology.pipeline.traffic_stage import ApplicationFrontStage, NetworkFrontStage
from topology.schemas import BuildConfig
from topology.compiler.plan import compile_plan
from topology.validation import (
    GraphValidationResult,
    ValidationSeverity,
    raise_on_errors,
    validate_graph,
)

logger = logging.getLogger(__name__)


@dataclass
class BuildResult:
    annotated: AnnotatedGraph
    fronts: Dict[str, TrafficFront]
    outputs: Dict[str, Output]
    validation: GraphValidationResult
    warnings: List[str] = field(default_factory=list)

    @property
    def graph(self) -> ResourceGraph:
        return self.annotated.graph

    def resolve_output(self, name: str) -> str:
        output = self.outputs.get(name)
        if output is None:
            raise NotFoundError(f"output '{name}' not found", object_id=name)
        return output.value

    def output_values(self) -> Dict[str, str]:
        return {name: output.value for name, output in sorted(self.outputs.items())}

    def to_plan(self) -> dict:
        return compile_plan(self)


class BuildController:
    """
    Runs the build stages in order over one fresh graph.

    Network first (subnets must exist before placement), then each front
    with its own tier, then the compliance pass over the finished graph.
    The first error aborts the build; nothing partial is returned.
    """

    def __init__(self, stages=None):
        self.stages = stages if stages is not None else [
            NetworkStage(),
            ApplicationFrontStage(),
            NetworkFrontStage(),
            ComplianceStage(),
        ]

    def run(self, config: BuildConfig, bootstrap: bytes) -> BuildResult:
        context = BuildContext(config=config, bootstrap=bootstrap)

        for stage in self.stages:
            logger.debug("running stage '%s'", stage.name)
            try:
                stage.run(context)
            except TopologyError as e:
                logger.error("stage '%s' failed: %s: %s", stage.name, e.kind, e.message)
                raise

        if context.annotated is None:
            context.annotated = AnnotatedGraph(graph=context.graph)

        validation = validate_graph(
            context.graph,
            fronts=context.fronts.values(),
            annotated=context.annotated,
        )
        raise_on_errors(validation)

        for issue in validation.issues:
            if issue.severity == ValidationSeverity.WARNING:
                logger.warning("[%s] %s", issue.code, issue.message)
                context.add_warning(f"[{issue.code}] {issue.message}")

        logger.info("build complete: %s", validation.get_summary())
        return BuildResult(
            annotated=context.annotated,
            fronts=dict(context.fronts),
            outputs=dict(context.outputs),
            validation=validation,
            warnings=list(context.warnings),
        )


def build_topology(config: BuildConfig, bootstrap: bytes) -> BuildResult:
    return BuildController().run(config, bootstrap)
