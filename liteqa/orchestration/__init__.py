"""
Flow and suite orchestration.
"""

from .orchestrator import FlowOrchestrator, FlowPhase, default_runner_factory

__all__ = ["FlowOrchestrator", "FlowPhase", "default_runner_factory"]
