from dataclasses import dataclass, field
from typing import Optional, Dict, List

from topology.graph import ResourceGraph
from topology.ir.compliance_ir import AnnotatedGraph
from topology.ir.infra_ir import ComputeTier, NetworkAllocation
from topology.ir.traffic_ir import Output, TrafficFront
from topology.schemas import BuildConfig


@dataclass
class BuildContext:
    # Raw input (authoritative)
    config: BuildConfig
    bootstrap: bytes

    # Shared graph; the only mutable object of a build
    graph: ResourceGraph = field(default_factory=ResourceGraph)

    # Stage outputs
    allocation: Optional[NetworkAllocation] = None
    tiers: Dict[str, ComputeTier] = field(default_factory=dict)
    fronts: Dict[str, TrafficFront] = field(default_factory=dict)
    outputs: Dict[str, Output] = field(default_factory=dict)
    annotated: Optional[AnnotatedGraph] = None

    warnings: List[str] = field(default_factory=list)

    def add_warning(self, message: str):
        self.warnings.append(message)
