from dataclasses import dataclass, field
from types import MappingProxyType
from typing import TYPE_CHECKING, Dict, Mapping, Tuple

if TYPE_CHECKING:
    from topology.graph import ResourceGraph


@dataclass(frozen=True, order=True)
class SuppressionRecord:
    target_node_id: str
    rule_id: str
    justification: str
    applies_to_children: bool = False

    def to_dict(self) -> dict:
        return {
            "target_node_id": self.target_node_id,
            "rule_id": self.rule_id,
            "justification": self.justification,
            "applies_to_children": self.applies_to_children,
        }


@dataclass(frozen=True)
class AnnotatedGraph:
    """
    A resource graph plus the suppression index computed over it.

    The index maps node id -> records that apply to that node, either
    directly or inherited from an ancestor at annotation time.
    """

    graph: "ResourceGraph"
    index: Mapping[str, Tuple[SuppressionRecord, ...]] = field(default_factory=dict)
    records: Tuple[SuppressionRecord, ...] = ()

    def __post_init__(self):
        object.__setattr__(self, "index", MappingProxyType(dict(self.index)))

    def suppressions_for(self, node_id: str) -> Tuple[SuppressionRecord, ...]:
        return self.index.get(node_id, ())

    def is_suppressed(self, node_id: str, rule_id: str) -> bool:
        return any(r.rule_id == rule_id for r in self.suppressions_for(node_id))

    def index_as_dict(self) -> Dict[str, list]:
        return {
            node_id: [r.to_dict() for r in records]
            for node_id, records in self.index.items()
        }
