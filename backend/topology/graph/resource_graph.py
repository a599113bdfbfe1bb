"""
Resource Graph - write-once store of resource declarations and their relations.

Nodes are immutable once added. Edges are a set. The only way to change a
graph is to add to it, either directly or through a staged draft that is
committed as a whole.
"""

import heapq
import logging
from collections import defaultdict
from contextlib import contextmanager
from typing import Dict, Iterable, Iterator, List, Optional, Set

from topology.ir.base import Edge, NodeKind, NodeRef, Relation, ResourceNode
from topology.ir.errors import (
    CycleDetectedError,
    DuplicateNodeError,
    NotFoundError,
    PortConflictError,
    UnknownNodeError,
)
from topology.ir.traffic_ir import ListenerBinding

logger = logging.getLogger(__name__)


class ResourceGraph:
    def __init__(self):
        self._nodes: Dict[str, ResourceNode] = {}
        self._edges: Dict[Edge, None] = {}
        self._listeners: Dict[str, Dict[int, ListenerBinding]] = {}

    # ---------- mutation ----------

    def add_node(self, node: ResourceNode) -> NodeRef:
        if node.id in self._nodes:
            raise DuplicateNodeError(
                f"node '{node.id}' already exists", object_id=node.id
            )
        self._nodes[node.id] = node
        logger.debug("added %s node '%s'", node.kind.value, node.id)
        return node.id

    def add_edge(self, source: str, target: str, relation: Relation) -> None:
        for endpoint in (source, target):
            if endpoint not in self._nodes:
                raise UnknownNodeError(
                    f"edge {source} -[{relation.value}]-> {target} references unknown node '{endpoint}'",
                    object_id=endpoint,
                )
        self._edges.setdefault(Edge(source, target, relation), None)

    def bind_listener(
        self, front_id: str, port: int, tier_id: str, rule_ids: Iterable[str] = ()
    ) -> ListenerBinding:
        self.resolve(front_id)
        self.resolve(tier_id)
        bound = self._listeners.setdefault(front_id, {})
        if port in bound:
            raise PortConflictError(
                f"port {port} is already bound on '{front_id}'", object_id=front_id
            )
        binding = ListenerBinding(
            front_id=front_id, port=port, tier_id=tier_id, rule_ids=tuple(rule_ids)
        )
        bound[port] = binding
        return binding

    # ---------- staging ----------

    def copy(self) -> "ResourceGraph":
        clone = ResourceGraph()
        clone._nodes = dict(self._nodes)
        clone._edges = dict(self._edges)
        clone._listeners = {k: dict(v) for k, v in self._listeners.items()}
        return clone

    @contextmanager
    def staged(self) -> Iterator["ResourceGraph"]:
        """
        Yield a draft of this graph. The draft is committed only when the
        block exits without an exception; otherwise it is dropped and this
        graph is left as it was.
        """
        draft = self.copy()
        yield draft
        self._nodes = draft._nodes
        self._edges = draft._edges
        self._listeners = draft._listeners

    # ---------- queries ----------

    def __contains__(self, node_id: str) -> bool:
        return node_id in self._nodes

    def __len__(self) -> int:
        return len(self._nodes)

    def resolve(self, node_id: str) -> ResourceNode:
        node = self._nodes.get(node_id)
        if node is None:
            raise NotFoundError(f"node '{node_id}' not found", object_id=node_id)
        return node

    def nodes(self, kind: Optional[NodeKind] = None) -> List[ResourceNode]:
        return [n for n in self._nodes.values() if kind is None or n.kind == kind]

    def edges(self, relation: Optional[Relation] = None) -> List[Edge]:
        return [e for e in self._edges if relation is None or e.relation == relation]

    def outgoing(self, node_id: str, relation: Optional[Relation] = None) -> List[Edge]:
        return [e for e in self.edges(relation) if e.source == node_id]

    def incoming(self, node_id: str, relation: Optional[Relation] = None) -> List[Edge]:
        return [e for e in self.edges(relation) if e.target == node_id]

    def dependencies(self, node_id: str) -> List[str]:
        return [e.target for e in self.outgoing(node_id, Relation.DEPENDS_ON)]

    def dependents(self, node_id: str) -> List[str]:
        return [e.source for e in self.incoming(node_id, Relation.DEPENDS_ON)]

    def descendants(self, node_id: str) -> List[str]:
        """Every node that transitively depends on ``node_id``, in insertion order."""
        self.resolve(node_id)
        seen: Set[str] = set()
        stack = [node_id]
        while stack:
            current = stack.pop()
            for child in self.dependents(current):
                if child not in seen and child != node_id:
                    seen.add(child)
                    stack.append(child)
        return [nid for nid in self._nodes if nid in seen]

    def listeners(self, front_id: Optional[str] = None) -> List[ListenerBinding]:
        if front_id is not None:
            return sorted(self._listeners.get(front_id, {}).values(), key=lambda b: b.port)
        return [
            binding
            for fid in self._listeners
            for binding in sorted(self._listeners[fid].values(), key=lambda b: b.port)
        ]

    def security_policy(self, front_id: str) -> List[str]:
        """Access rule ids of every listener on the front, in port order."""
        self.resolve(front_id)
        policy: List[str] = []
        for binding in self.listeners(front_id):
            policy.extend(r for r in binding.rule_ids if r not in policy)
        return policy

    # ---------- ordering ----------

    def topological_order(self) -> List[NodeRef]:
        """
        Construction order over DependsOn edges, dependencies first.
        Ties are broken by insertion order so the result is deterministic.
        """
        position = {nid: i for i, nid in enumerate(self._nodes)}
        pending: Dict[str, int] = {nid: 0 for nid in self._nodes}
        unlocks: Dict[str, List[str]] = defaultdict(list)

        for edge in self.edges(Relation.DEPENDS_ON):
            pending[edge.source] += 1
            unlocks[edge.target].append(edge.source)

        ready = [(position[nid], nid) for nid, count in pending.items() if count == 0]
        heapq.heapify(ready)
        order: List[str] = []

        while ready:
            _, nid = heapq.heappop(ready)
            order.append(nid)
            for dependent in unlocks[nid]:
                pending[dependent] -= 1
                if pending[dependent] == 0:
                    heapq.heappush(ready, (position[dependent], dependent))

        if len(order) != len(self._nodes):
            cycle = self.find_cycle() or [nid for nid in self._nodes if nid not in set(order)]
            raise CycleDetectedError(
                f"DependsOn cycle detected: {' -> '.join(cycle)}", cycle=cycle
            )
        return order

    def find_cycle(self) -> Optional[List[str]]:
        adjacency: Dict[str, List[str]] = defaultdict(list)
        for edge in self.edges(Relation.DEPENDS_ON):
            adjacency[edge.source].append(edge.target)

        visited: Set[str] = set()
        rec_stack: List[str] = []

        def dfs(node: str) -> Optional[List[str]]:
            visited.add(node)
            rec_stack.append(node)
            for neighbor in adjacency.get(node, []):
                if neighbor in rec_stack:
                    return rec_stack[rec_stack.index(neighbor):] + [neighbor]
                if neighbor not in visited:
                    found = dfs(neighbor)
                    if found:
                        return found
            rec_stack.pop()
            return None

        for node in self._nodes:
            if node not in visited:
                found = dfs(node)
                if found:
                    return found
        return None

    def stats(self) -> Dict[str, int]:
        counts: Dict[str, int] = defaultdict(int)
        for node in self._nodes.values():
            counts[node.kind.value] += 1
        counts["nodes"] = len(self._nodes)
        counts["edges"] = len(self._edges)
        counts["listeners"] = len(self.listeners())
        return dict(counts)
