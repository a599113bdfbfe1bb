from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from enum import Enum
from typing import List, Optional

from .base import NodeKind, ResourceNode
from .errors import InvalidParameterError, InvalidTopologyError
from .infra_ir import ANY_IPV4, AccessRule, SecurityBoundary


class FrontVariant(Enum):
    APPLICATION = "ApplicationFront"
    NETWORK = "NetworkFront"


class FrontState(Enum):
    DECLARED = "Declared"
    LISTENER_ATTACHED = "ListenerAttached"
    TARGETS_BOUND = "TargetsBound"
    RULES_DERIVED = "RulesDerived"


FRONT_STATE_ORDER = [
    FrontState.DECLARED,
    FrontState.LISTENER_ATTACHED,
    FrontState.TARGETS_BOUND,
    FrontState.RULES_DERIVED,
]


@dataclass(frozen=True)
class ListenerBinding:
    front_id: str
    port: int
    tier_id: str
    rule_ids: tuple = ()  # access rules derived for this listener


@dataclass(frozen=True)
class Output:
    name: str
    node_id: str
    attribute: str = "dns_name"

    @property
    def value(self) -> str:
        return "${" + f"{self.node_id}.{self.attribute}" + "}"


# -------------------------
# Front declarations (tagged variant)
# -------------------------

class FrontDeclaration(ABC):
    """
    Capability set shared by every front variant.

    A declaration is inert: it only describes which listener to attach and
    which access rules follow from it. The traffic stage performs the wiring.
    """

    variant: FrontVariant
    id: str
    port: int

    def validate_port(self) -> None:
        if not isinstance(self.port, int) or not 1 <= self.port <= 65535:
            raise InvalidParameterError(
                f"listener port {self.port} out of range 1-65535", object_id=self.id
            )

    @property
    def internet_facing(self) -> bool:
        return True

    def to_node(self, rule_ids: List[str]) -> ResourceNode:
        return ResourceNode(
            id=self.id,
            kind=NodeKind.TRAFFIC_FRONT,
            attributes={
                "variant": self.variant.value,
                "internet_facing": self.internet_facing,
                "listener_port": self.port,
                "security_policy": list(rule_ids),
            },
        )

    def listener_for(self, tier_id: str) -> ListenerBinding:
        self.validate_port()
        return ListenerBinding(front_id=self.id, port=self.port, tier_id=tier_id)

    @abstractmethod
    def derive_access_rules(self, tier_id: str) -> List[AccessRule]:
        pass


@dataclass
class ApplicationFront(FrontDeclaration):
    id: str
    port: int = 80
    ingress_cidr: str = ANY_IPV4
    variant: FrontVariant = field(default=FrontVariant.APPLICATION, init=False)

    def derive_access_rules(self, tier_id: str) -> List[AccessRule]:
        return [
            AccessRule(
                id=f"{self.id}-ingress-{self.port}",
                source_cidr=self.ingress_cidr,
                port=self.port,
                description=f"Allow access to port {self.port} from {self.ingress_cidr}.",
            )
        ]


@dataclass
class NetworkFront(FrontDeclaration):
    id: str
    port: int = 80
    boundary: Optional[SecurityBoundary] = None
    variant: FrontVariant = field(default=FrontVariant.NETWORK, init=False)

    def require_boundary(self) -> SecurityBoundary:
        if self.boundary is None:
            raise InvalidParameterError(
                "network front requires an explicit security boundary",
                object_id=self.id,
            )
        return self.boundary

    def derive_access_rules(self, tier_id: str) -> List[AccessRule]:
        boundary = self.require_boundary()
        return [
            AccessRule(
                id=f"{tier_id}-from-{boundary.id}-{self.port}",
                source_boundary=boundary.id,
                port=self.port,
                description=f"Allow port {self.port} from {boundary.id}.",
            )
        ]


# -------------------------
# Construction state
# -------------------------

@dataclass
class TrafficFront:
    declaration: FrontDeclaration
    state: FrontState = FrontState.DECLARED
    listeners: List[ListenerBinding] = field(default_factory=list)
    access_rules: List[AccessRule] = field(default_factory=list)

    @property
    def id(self) -> str:
        return self.declaration.id

    @property
    def variant(self) -> FrontVariant:
        return self.declaration.variant

    @property
    def is_complete(self) -> bool:
        return self.state == FrontState.RULES_DERIVED

    def advance(self, target: FrontState) -> None:
        current = FRONT_STATE_ORDER.index(self.state)
        if FRONT_STATE_ORDER.index(target) != current + 1:
            raise InvalidTopologyError(
                f"front cannot move from {self.state.value} to {target.value}",
                object_id=self.id,
            )
        self.state = target
