"""Turn runtime: the LangGraph orchestrator and its dependency bundle."""

from .models import OrchestratorDeps
from .orchestrator import AgentOrchestrator, summarize_results

__all__ = ["AgentOrchestrator", "OrchestratorDeps", "summarize_results"]
