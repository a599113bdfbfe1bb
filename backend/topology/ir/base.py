from dataclasses import dataclass, field
from enum import Enum
from types import MappingProxyType
from typing import Any, Mapping

from .errors import InvalidParameterError

NodeRef = str


class NodeKind(Enum):
    NETWORK = "Network"
    SUBNET = "Subnet"
    COMPUTE_TIER = "ComputeTier"
    TRAFFIC_FRONT = "TrafficFront"
    SECURITY_RULE = "SecurityRule"
    SECURITY_BOUNDARY = "SecurityBoundary"


class Relation(Enum):
    DEPENDS_ON = "DependsOn"
    ROUTES_TO = "RoutesTo"
    SECURES = "Secures"


def _freeze(value: Any) -> Any:
    # lists become tuples so a committed node cannot be edited through its attributes
    if isinstance(value, list):
        return tuple(_freeze(v) for v in value)
    if isinstance(value, dict):
        return MappingProxyType({k: _freeze(v) for k, v in value.items()})
    return value


@dataclass(frozen=True)
class ResourceNode:
    id: str
    kind: NodeKind
    attributes: Mapping[str, Any] = field(default_factory=dict)

    def __post_init__(self):
        if not self.id:
            raise InvalidParameterError("node id must not be empty")
        object.__setattr__(
            self,
            "attributes",
            MappingProxyType({k: _freeze(v) for k, v in dict(self.attributes).items()}),
        )

    def get(self, key: str, default: Any = None) -> Any:
        return self.attributes.get(key, default)


@dataclass(frozen=True)
class Edge:
    source: str
    target: str
    relation: Relation
