"""Base interfaces for report sinks and board clients."""

from abc import ABC, abstractmethod

from bugboard.core.models import Bug, BugData, BugReportResult


class BugBoardError(Exception):
    """Base class for errors raised by BugBoard adapters."""


class ReportSubmissionError(BugBoardError):
    """Raised when the board rejects a request or the transport fails."""

    def __init__(self, message: str, status: int | None = None):
        super().__init__(message)
        self.status = status


class BugNotFoundError(ReportSubmissionError):
    """Raised when the board has no bug with the requested ID."""

    def __init__(self, bug_id: str):
        super().__init__(f"Bug not found: {bug_id}", status=404)
        self.bug_id = bug_id


class ReportSink(ABC):
    """Destination that persists bug reports (HTTP board, test double, ...)."""

    @abstractmethod
    async def submit(self, agent_name: str, data: BugData) -> BugReportResult:
        """
        Submit a bug report on behalf of ``agent_name``.

        Returns: Identifier and viewable URL of the stored report
        """
        pass

    @property
    @abstractmethod
    def name(self) -> str:
        """Sink name (e.g., 'http')."""
        pass


class BoardClient(ABC):
    """Read and triage operations on the public board."""

    @abstractmethod
    async def list_bugs(self) -> list[Bug]:
        """Return all bugs, newest first."""
        pass

    @abstractmethod
    async def get_bug(self, bug_id: str) -> Bug:
        """Return one bug. Raises ``BugNotFoundError`` if it does not exist."""
        pass

    @abstractmethod
    async def upvote_bug(self, bug_id: str) -> Bug:
        """Add one upvote and return the updated bug."""
        pass

    @abstractmethod
    async def resolve_bug(self, bug_id: str, fix_url: str, explanation: str | None = None) -> Bug:
        """Mark a bug resolved with a link to the fix."""
        pass
