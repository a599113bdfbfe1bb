from dataclasses import dataclass, field
from enum import Enum
from typing import List, Optional

from .base import NodeKind, ResourceNode
from .errors import InvalidParameterError

ANY_IPV4 = "0.0.0.0/0"
ANY_IPV6 = "::/0"


class SubnetRole(Enum):
    PUBLIC = "Public"
    PRIVATE_NAT = "PrivateNat"
    PRIVATE_ISOLATED = "PrivateIsolated"


# -------------------------
# Network
# -------------------------

@dataclass(frozen=True)
class SubnetGroup:
    """One subnet per availability zone is created for every group."""
    name: str
    role: SubnetRole
    cidr_mask: Optional[int] = None


DEFAULT_SUBNET_LAYOUT = (
    SubnetGroup(name="Public", role=SubnetRole.PUBLIC),
    SubnetGroup(name="Private", role=SubnetRole.PRIVATE_NAT),
)


@dataclass(frozen=True)
class Subnet:
    id: str
    group: str
    role: SubnetRole
    cidr: str
    availability_zone: str
    nat_gateway: bool = False

    def to_node(self) -> ResourceNode:
        return ResourceNode(
            id=self.id,
            kind=NodeKind.SUBNET,
            attributes={
                "group": self.group,
                "role": self.role.value,
                "cidr": self.cidr,
                "availability_zone": self.availability_zone,
                "nat_gateway": self.nat_gateway,
            },
        )


@dataclass
class NetworkAllocation:
    network_id: str
    cidr: str
    availability_zones: List[str] = field(default_factory=list)
    subnets: List[Subnet] = field(default_factory=list)
    nat_gateways: int = 0

    def subnets_with_role(self, role: SubnetRole) -> List[Subnet]:
        return [s for s in self.subnets if s.role == role]


# -------------------------
# Compute
# -------------------------

@dataclass(frozen=True)
class ComputeSizing:
    instance_class: str
    instance_size: str

    @property
    def instance_type(self) -> str:
        # burstable3 / micro -> t3.micro style naming is left to the provisioning engine
        return f"{self.instance_class}.{self.instance_size}"


@dataclass(frozen=True)
class ComputeTier:
    id: str
    sizing: ComputeSizing
    image_selector: str
    placement: SubnetRole
    min_capacity: int
    max_capacity: int
    bootstrap: bytes
    subnet_ids: tuple = ()

    def to_node(self) -> ResourceNode:
        return ResourceNode(
            id=self.id,
            kind=NodeKind.COMPUTE_TIER,
            attributes={
                "instance_class": self.sizing.instance_class,
                "instance_size": self.sizing.instance_size,
                "instance_type": self.sizing.instance_type,
                "image_selector": self.image_selector,
                "placement": self.placement.value,
                "min_capacity": self.min_capacity,
                "max_capacity": self.max_capacity,
                "bootstrap": self.bootstrap,
            },
        )


# -------------------------
# Access control
# -------------------------

@dataclass(frozen=True)
class AccessRule:
    id: str
    port: int
    description: str
    source_cidr: Optional[str] = None
    source_boundary: Optional[str] = None
    protocol: str = "tcp"

    def __post_init__(self):
        if (self.source_cidr is None) == (self.source_boundary is None):
            raise InvalidParameterError(
                "access rule needs exactly one of source_cidr or source_boundary",
                object_id=self.id,
            )
        if not 1 <= self.port <= 65535:
            raise InvalidParameterError(
                f"port {self.port} out of range 1-65535", object_id=self.id
            )

    @property
    def open_ingress(self) -> bool:
        return self.source_cidr in (ANY_IPV4, ANY_IPV6)

    def to_node(self) -> ResourceNode:
        return ResourceNode(
            id=self.id,
            kind=NodeKind.SECURITY_RULE,
            attributes={
                "source_cidr": self.source_cidr,
                "source_boundary": self.source_boundary,
                "protocol": self.protocol,
                "port": self.port,
                "description": self.description,
                "open_ingress": self.open_ingress,
            },
        )


@dataclass(frozen=True)
class SecurityBoundary:
    """A pre-built security group a network front is placed behind."""
    id: str
    ingress: tuple = ()
    allow_all_outbound: bool = True

    def to_node(self) -> ResourceNode:
        return ResourceNode(
            id=self.id,
            kind=NodeKind.SECURITY_BOUNDARY,
            attributes={
                "allow_all_outbound": self.allow_all_outbound,
                "ingress": [rule.id for rule in self.ingress],
            },
        )
