"""Report sink adapters."""
from bugboard.adapters.sink.base import (
    BoardClient,
    BugBoardError,
    BugNotFoundError,
    ReportSink,
    ReportSubmissionError,
)
from bugboard.adapters.sink.http import HttpReportSink

__all__ = [
    "BoardClient",
    "BugBoardError",
    "BugNotFoundError",
    "ReportSink",
    "ReportSubmissionError",
    "HttpReportSink",
]
