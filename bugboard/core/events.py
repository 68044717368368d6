"""Event Bus for BugBoard agents.

Lightweight, async-first publish/subscribe dispatcher. The stuck-agent
detector publishes escalation outcomes here so host applications can react
(alerting, metrics, UI) without coupling to the detector itself.

Usage::

    bus = EventBus()

    sub_id = bus.subscribe("bug.reported", my_handler)
    await bus.emit(BugReported(agent_name="planner", bug_id="42"))
    bus.unsubscribe(sub_id)
"""

import asyncio
import fnmatch
import logging
import threading
import uuid
from dataclasses import dataclass, field
from datetime import UTC, datetime
from typing import Any

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Event Types
# ---------------------------------------------------------------------------


@dataclass
class BugBoardEvent:
    """Base event for all BugBoard events."""

    event_type: str
    timestamp: datetime = field(default_factory=lambda: datetime.now(UTC))
    agent_name: str = ""
    data: dict[str, Any] = field(default_factory=dict)


@dataclass
class AgentStuckDetected(BugBoardEvent):
    """Emitted when the detector decides an agent is stuck."""

    event_type: str = "agent.stuck"
    reason: str = ""
    build_failures: int = 0
    output_count: int = 0


@dataclass
class BugReported(BugBoardEvent):
    """Emitted after an automatic report was accepted by the board."""

    event_type: str = "bug.reported"
    bug_id: str = ""
    url: str = ""


@dataclass
class BugReportFailed(BugBoardEvent):
    """Emitted when an automatic report could not be submitted."""

    event_type: str = "bug.report_failed"
    reason: str = ""
    error: str = ""


# ---------------------------------------------------------------------------
# Event Bus
# ---------------------------------------------------------------------------


@dataclass
class _Subscription:
    handler: Any  # Callable[[BugBoardEvent], Awaitable[None] | None]
    event_type: str
    is_pattern: bool = False

    def matches(self, event_type: str) -> bool:
        if self.is_pattern:
            return fnmatch.fnmatch(event_type, self.event_type)
        return self.event_type == event_type


class EventBus:
    """Async-first publish/subscribe event dispatcher.

    Subscriptions may be added or removed from any thread, since automatic
    reports are also published from the detector's worker thread. Matching
    handlers run concurrently; one failing handler never blocks the rest.
    """

    def __init__(self) -> None:
        self._subscriptions: dict[str, _Subscription] = {}
        self._lock = threading.Lock()

    def subscribe(self, event_type: str, handler: Any) -> str:
        """Call *handler* for every event whose type equals *event_type*.

        Args:
            event_type: Event type to listen for (e.g. ``"bug.reported"``).
            handler: Sync or async callable accepting a ``BugBoardEvent``.

        Returns:
            Subscription ID usable with :meth:`unsubscribe`.
        """
        return self._add(_Subscription(handler=handler, event_type=event_type))

    def subscribe_pattern(self, pattern: str, handler: Any) -> str:
        """Like :meth:`subscribe`, with a glob such as ``"bug.*"`` or ``"*"``."""
        return self._add(_Subscription(handler=handler, event_type=pattern, is_pattern=True))

    def unsubscribe(self, subscription_id: str) -> bool:
        """Drop a subscription; ``False`` if the ID was unknown."""
        with self._lock:
            return self._subscriptions.pop(subscription_id, None) is not None

    async def emit(self, event: BugBoardEvent) -> None:
        """Deliver *event* to every matching handler and log handler errors."""
        with self._lock:
            handlers = [
                sub.handler
                for sub in self._subscriptions.values()
                if sub.matches(event.event_type)
            ]
        if not handlers:
            return

        outcomes = await asyncio.gather(
            *(self._invoke(handler, event) for handler in handlers),
            return_exceptions=True,
        )
        for outcome in outcomes:
            if isinstance(outcome, Exception):
                logger.error(
                    "Handler for %s raised: %s", event.event_type, outcome, exc_info=outcome
                )

    def _add(self, subscription: _Subscription) -> str:
        sub_id = uuid.uuid4().hex
        with self._lock:
            self._subscriptions[sub_id] = subscription
        return sub_id

    @staticmethod
    async def _invoke(handler: Any, event: BugBoardEvent) -> None:
        result = handler(event)
        if asyncio.iscoroutine(result):
            await result
