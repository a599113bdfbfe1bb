from topology.graph.resource_graph import ResourceGraph

__all__ = ["ResourceGraph"]
