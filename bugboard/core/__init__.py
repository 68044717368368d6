"""Core stuck-agent detection components.

The detector and configuration live in :mod:`bugboard.core.detector` and
:mod:`bugboard.core.config`; they are re-exported from :mod:`bugboard`.
"""

from bugboard.core.events import (
    AgentStuckDetected,
    BugBoardEvent,
    BugReported,
    BugReportFailed,
    EventBus,
)
from bugboard.core.models import (
    Bug,
    BugData,
    BugReportResult,
    BugStatus,
    EscalationReason,
    RetryDetectionState,
)

__all__ = [
    # Events
    "EventBus",
    "BugBoardEvent",
    "AgentStuckDetected",
    "BugReported",
    "BugReportFailed",
    # Models
    "Bug",
    "BugData",
    "BugReportResult",
    "BugStatus",
    "EscalationReason",
    "RetryDetectionState",
]
