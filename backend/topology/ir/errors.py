from typing import Optional


class TopologyError(Exception):
    """Base class for every plan-time validation failure."""

    level: str = "topology"

    def __init__(self, message: str, object_id: Optional[str] = None):
        super().__init__(message)
        self.message = message
        self.object_id = object_id

    @property
    def kind(self) -> str:
        return self.__class__.__name__

    def to_dict(self) -> dict:
        return {
            "error": self.kind,
            "level": self.level,
            "message": self.message,
            "object_id": self.object_id,
        }


# -------------------------
# Graph
# -------------------------

class UnknownNodeError(TopologyError):
    level = "graph"


class CycleDetectedError(TopologyError):
    level = "graph"

    def __init__(self, message: str, cycle: Optional[list] = None):
        super().__init__(message, object_id=cycle[0] if cycle else None)
        self.cycle = list(cycle or [])


class NotFoundError(TopologyError):
    level = "graph"


# -------------------------
# Topology / parameters
# -------------------------

class InvalidTopologyError(TopologyError):
    level = "topology"


class DuplicateNodeError(InvalidTopologyError):
    level = "graph"


class InvalidParameterError(TopologyError):
    level = "parameter"


class UnresolvedPlacementError(TopologyError):
    level = "compute"


class PortConflictError(TopologyError):
    level = "traffic"


# -------------------------
# Compliance
# -------------------------

class DanglingReferenceError(TopologyError):
    level = "compliance"


class MissingJustificationError(TopologyError):
    level = "compliance"


# -------------------------
# Collaborators (outside the core)
# -------------------------

class BootstrapError(Exception):
    """Raised when a bootstrap payload cannot be loaded."""
    pass
