"""Per-context orchestration of the policy pipeline."""

from returnclarity.orchestrator.events import ContextEventBus, StatusEvent
from returnclarity.orchestrator.host import HostBridge, LoggingHostBridge
from returnclarity.orchestrator.orchestrator import PolicyOrchestrator
from returnclarity.orchestrator.schemas import (
    ContextClosed,
    ContextNavigated,
    ContextState,
    DetectionIndicators,
    DetectionResult,
    GetContextState,
    HostMessage,
    PageSnapshot,
    SaveSnapshot,
    StorefrontDetected,
)
from returnclarity.orchestrator.state import ContextStore

__all__ = [
    "ContextClosed",
    "ContextEventBus",
    "ContextNavigated",
    "ContextState",
    "ContextStore",
    "DetectionIndicators",
    "DetectionResult",
    "GetContextState",
    "HostBridge",
    "HostMessage",
    "LoggingHostBridge",
    "PageSnapshot",
    "PolicyOrchestrator",
    "SaveSnapshot",
    "StatusEvent",
    "StorefrontDetected",
]
