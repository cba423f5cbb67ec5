"""Cross-component source file unification."""

from .llm import LLMUnifier
from .orchestrator import FileUnificationOrchestrator, Unifier

__all__ = ["FileUnificationOrchestrator", "LLMUnifier", "Unifier"]
