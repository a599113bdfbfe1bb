from topology.compiler.plan import compile_plan
from topology.compiler.render_mermaid import render_mermaid


def compile_to_mermaid(result, include_dependencies: bool = True) -> str:
    return render_mermaid(result.annotated.graph, include_dependencies=include_dependencies)


__all__ = ["compile_plan", "compile_to_mermaid", "render_mermaid"]
