"""Core data models for BugBoard agents and reports."""
from collections import deque
from dataclasses import dataclass, field
from enum import Enum
from typing import Any

# Number of recent agent outputs retained for loop detection.
OUTPUT_HISTORY_SIZE = 5
# Identical outputs in a row that count as an output loop.
REPEAT_THRESHOLD = 3
# Build failures before an automatic report is filed.
BUILD_FAILURE_THRESHOLD = 3
DEFAULT_TIMEOUT_MS = 300_000  # 5 minutes

DEFAULT_API_URL = "https://bugboard.ai/api"


class BugStatus(Enum):
    """Lifecycle status of a bug on the board."""

    OPEN = "open"
    IN_PROGRESS = "in_progress"
    RESOLVED = "resolved"
    WONT_FIX = "wont_fix"


class EscalationReason(Enum):
    """Why the detector filed an automatic report."""

    TIMED_OUT = "Agent timed out"
    OUTPUT_LOOP = "Agent stuck in output loop"
    BUILD_FAILURES = "Multiple build failures detected"


@dataclass
class RetryDetectionState:
    """Transient per-session state used by the stuck-agent heuristic."""

    last_activity: float
    outputs: deque[str] = field(default_factory=lambda: deque(maxlen=OUTPUT_HISTORY_SIZE))
    build_failures: int = 0

    def copy(self) -> "RetryDetectionState":
        return RetryDetectionState(
            last_activity=self.last_activity,
            outputs=deque(self.outputs, maxlen=OUTPUT_HISTORY_SIZE),
            build_failures=self.build_failures,
        )


@dataclass
class BugData:
    """Payload of a bug report."""

    input: str
    logs: str
    error: str | None = None


@dataclass
class BugReportResult:
    """Identifier and viewable URL of a submitted report."""

    id: str
    url: str


@dataclass
class Bug:
    """A bug as listed on the board."""

    id: str
    title: str = ""
    agent_name: str = ""
    input: str = ""
    logs: str = ""
    error_message: str | None = None
    status: BugStatus = BugStatus.OPEN
    bounty: int = 0
    upvotes: int = 0
    created_at: str | None = None
    fix_url: str | None = None
    fix_explanation: str | None = None
    resolved_at: str | None = None

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Bug":
        """Build a ``Bug`` from the board's JSON row, ignoring unknown keys."""
        raw_status = data.get("status") or BugStatus.OPEN.value
        try:
            status = BugStatus(raw_status)
        except ValueError:
            status = BugStatus.OPEN
        return cls(
            id=str(data["id"]),
            title=data.get("title") or "",
            agent_name=data.get("agent_name") or "",
            input=data.get("input") or "",
            logs=data.get("logs") or "",
            error_message=data.get("error_message"),
            status=status,
            bounty=int(data.get("bounty") or 0),
            upvotes=int(data.get("upvotes") or 0),
            created_at=data.get("created_at"),
            fix_url=data.get("fix_url"),
            fix_explanation=data.get("fix_explanation"),
            resolved_at=data.get("resolved_at"),
        )
