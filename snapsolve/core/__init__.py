"""Core functionality for snapsolve.

Components:
- ScreenshotStore: primary and auxiliary screenshot queues
- LLMGateway: one prompt in, response text out, with cancellation
- ProcessingOrchestrator: the Solve and Debug pipelines
- AppState: credits, language preference and UI readiness
"""

from .llm_gateway import LLMGateway
from .orchestrator import ProcessingOrchestrator
from .screenshot_store import ScreenshotStore
from .state import AppState, ProcessingSettings

__all__ = ['LLMGateway', 'ProcessingOrchestrator', 'ScreenshotStore', 'AppState', 'ProcessingSettings']
