from topology.ir.base import Edge, NodeKind, NodeRef, Relation, ResourceNode
from topology.ir.compliance_ir import AnnotatedGraph, SuppressionRecord
from topology.ir.errors import (
    BootstrapError,
    CycleDetectedError,
    DanglingReferenceError,
    DuplicateNodeError,
    InvalidParameterError,
    InvalidTopologyError,
    MissingJustificationError,
    NotFoundError,
    PortConflictError,
    TopologyError,
    UnknownNodeError,
    UnresolvedPlacementError,
)
from topology.ir.infra_ir import (
    ANY_IPV4,
    DEFAULT_SUBNET_LAYOUT,
    AccessRule,
    ComputeSizing,
    ComputeTier,
    NetworkAllocation,
    SecurityBoundary,
    Subnet,
    SubnetGroup,
    SubnetRole,
)
from topology.ir.traffic_ir import (
    ApplicationFront,
    FrontState,
    FrontVariant,
    ListenerBinding,
    NetworkFront,
    Output,
    TrafficFront,
)

__all__ = [
    "ANY_IPV4",
    "DEFAULT_SUBNET_LAYOUT",
    "AccessRule",
    "AnnotatedGraph",
    "ApplicationFront",
    "BootstrapError",
    "ComputeSizing",
    "ComputeTier",
    "CycleDetectedError",
    "DanglingReferenceError",
    "DuplicateNodeError",
    "Edge",
    "FrontState",
    "FrontVariant",
    "InvalidParameterError",
    "InvalidTopologyError",
    "ListenerBinding",
    "MissingJustificationError",
    "NetworkAllocation",
    "NetworkFront",
    "NodeKind",
    "NodeRef",
    "NotFoundError",
    "Output",
    "PortConflictError",
    "Relation",
    "ResourceNode",
    "SecurityBoundary",
    "Subnet",
    "SubnetGroup",
    "SubnetRole",
    "SuppressionRecord",
    "TopologyError",
    "TrafficFront",
    "UnknownNodeError",
    "UnresolvedPlacementError",
]
