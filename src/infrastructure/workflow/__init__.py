"""Round pipeline graph - LangGraph."""

from src.infrastructure.workflow.round_graph import (
    RoundState,
    build_round_graph,
    compile_round_graph,
)

__all__ = ["RoundState", "build_round_graph", "compile_round_graph"]
