"""
BugBoard AI agent SDK - report failing and stuck AI agents to the public bug board.
"""

__version__ = "0.1.0"

from bugboard.adapters.sink import (
    BugBoardError,
    BugNotFoundError,
    HttpReportSink,
    ReportSink,
    ReportSubmissionError,
)
from bugboard.core.config import BugBoardConfig, create_detector, create_sink
from bugboard.core.detector import StuckAgentDetector, report_bug
from bugboard.core.events import EventBus
from bugboard.core.models import Bug, BugData, BugReportResult, BugStatus, EscalationReason

__all__ = [
    # Version
    "__version__",
    # Core
    "StuckAgentDetector",
    "report_bug",
    "create_detector",
    "create_sink",
    "BugBoardConfig",
    "EventBus",
    # Models
    "Bug",
    "BugData",
    "BugReportResult",
    "BugStatus",
    "EscalationReason",
    # Adapters
    "ReportSink",
    "HttpReportSink",
    "BugBoardError",
    "BugNotFoundError",
    "ReportSubmissionError",
]
