from topology.pipeline.compliance_stage import annotate
from topology.pipeline.compute_stage import ComputeTierBuilder
from topology.pipeline.controller import BuildController, BuildResult, build_topology
from topology.pipeline.network_stage import NetworkAllocator
from topology.pipeline.traffic_stage import TrafficFrontBuilder, build_security_boundary

__all__ = [
    "BuildController",
    "BuildResult",
    "ComputeTierBuilder",
    "NetworkAllocator",
    "TrafficFrontBuilder",
    "annotate",
    "build_security_boundary",
    "build_topology",
]
