"""
Chat module: prompt assembly, the Gemini gateway and turn orchestration.
"""
from .orchestrator import ChatOrchestrator

__all__ = ['ChatOrchestrator']
