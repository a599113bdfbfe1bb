from abc import ABC, abstractmethod
from topology.pipeline.context import BuildContext


class PipelineStage(ABC):
    name: str

    @abstractmethod
    def run(self, context: BuildContext) -> None:
        """
        Must:
        - read from context
        - write to context
        - raise a TopologyError on the first violation
        - NEVER call other stages
        """
        pass
