"""Stuck-agent detection and automatic bug reporting.

An agent runtime feeds every textual output and build failure into a
:class:`StuckAgentDetector`. When the agent looks stuck the detector files a
bug report on the board without blocking the caller:

1. Timeout: more than ``timeout_ms`` elapsed between two tracked outputs.
2. Output loop: the last three outputs are exactly identical.
3. Build failures: three build failures since the last reset.

Timeouts are detected lazily, on the next ``track_output`` call; there is no
background timer.

Example usage::

    detector = StuckAgentDetector(agent_name="planner")

    for output in agent.run():
        detector.track_output(output)

    result = await detector.report_bug(BugData(input=prompt, logs=transcript))
    print(result.url)
"""

import asyncio
import logging
import threading
import time
from collections import deque
from collections.abc import Callable

from bugboard.adapters.sink.base import ReportSink
from bugboard.adapters.sink.http import HttpReportSink
from bugboard.core.events import (
    AgentStuckDetected,
    BugBoardEvent,
    BugReported,
    BugReportFailed,
    EventBus,
)
from bugboard.core.models import (
    BUILD_FAILURE_THRESHOLD,
    DEFAULT_TIMEOUT_MS,
    REPEAT_THRESHOLD,
    BugData,
    BugReportResult,
    EscalationReason,
    RetryDetectionState,
)

logger = logging.getLogger(__name__)

AUTO_REPORT_INPUT = "Auto-detected issue"
OUTPUT_SEPARATOR = "\n\n--- Next Output ---\n\n"


class StuckAgentDetector:
    """Watches one agent session and escalates when it appears stuck.

    Args:
        agent_name: Name the board files reports under.
        api_url: BugBoard API base URL, used when ``sink`` is not given.
        timeout_ms: Inactivity window after which the agent counts as hung.
        sink: Report sink; defaults to :class:`HttpReportSink` on ``api_url``.
        event_bus: Optional bus receiving escalation events.
        clock: Wall-clock source in seconds, injectable for tests.
    """

    def __init__(
        self,
        agent_name: str,
        api_url: str | None = None,
        timeout_ms: int = DEFAULT_TIMEOUT_MS,
        sink: ReportSink | None = None,
        event_bus: EventBus | None = None,
        clock: Callable[[], float] = time.time,
    ):
        self._agent_name = agent_name
        self._sink = sink or HttpReportSink(api_url)
        self._event_bus = event_bus
        self._clock = clock
        self._timeout_ms = timeout_ms
        self._state = RetryDetectionState(last_activity=clock())
        self._tasks: set[asyncio.Task] = set()
        self._backlog: deque = deque()
        self._backlog_size = 0
        self._worker: threading.Thread | None = None
        self._worker_lock = threading.Lock()

    @property
    def agent_name(self) -> str:
        return self._agent_name

    @property
    def sink(self) -> ReportSink:
        return self._sink

    @property
    def timeout_ms(self) -> int:
        return self._timeout_ms

    @property
    def state(self) -> RetryDetectionState:
        """Snapshot of the detection state."""
        return self._state.copy()

    @property
    def pending_reports(self) -> int:
        """Automatic reports still in flight."""
        with self._worker_lock:
            queued = self._backlog_size
        return sum(1 for t in self._tasks if not t.done()) + queued

    # ------------------------------------------------------------------
    # Tracking
    # ------------------------------------------------------------------

    def track_output(self, output: str) -> None:
        """Record an agent output and check whether the agent is stuck."""
        now = self._clock()
        elapsed_ms = (now - self._state.last_activity) * 1000
        self._state.outputs.append(output)
        self._state.last_activity = now
        self._check_for_stuck_agent(elapsed_ms)

    def track_build_failure(self) -> None:
        """Record a failed build; three in a row trigger an automatic report."""
        self._state.build_failures += 1
        self._state.last_activity = self._clock()
        if self._state.build_failures >= BUILD_FAILURE_THRESHOLD:
            self._auto_report_bug(EscalationReason.BUILD_FAILURES)

    def reset_retry_detection(self) -> None:
        """Clear output history and failure count."""
        self._state = RetryDetectionState(last_activity=self._clock())

    def set_timeout(self, timeout_ms: int) -> None:
        """Replace the inactivity window used by the next check."""
        self._timeout_ms = timeout_ms

    # ------------------------------------------------------------------
    # Reporting
    # ------------------------------------------------------------------

    async def report_bug(self, data: BugData) -> BugReportResult:
        """Submit a bug report and return its ID and URL.

        Sink and transport errors propagate to the caller.
        """
        try:
            return await self._sink.submit(self._agent_name, data)
        except Exception:
            logger.error("Failed to report bug to BugBoard for agent %s", self._agent_name)
            raise

    async def flush(self) -> None:
        """Wait for automatic reports on the current loop and in the worker thread."""
        tasks = [t for t in self._tasks if not t.done()]
        if tasks:
            await asyncio.gather(*tasks, return_exceptions=True)
        await asyncio.to_thread(self.join)

    def join(self, timeout: float | None = None) -> None:
        """Block until the background report worker has drained its backlog."""
        with self._worker_lock:
            worker = self._worker
        if worker is not None:
            worker.join(timeout)

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    def _check_for_stuck_agent(self, elapsed_ms: float) -> None:
        if elapsed_ms > self._timeout_ms:
            self._auto_report_bug(EscalationReason.TIMED_OUT)
            return

        outputs = self._state.outputs
        if len(outputs) >= REPEAT_THRESHOLD:
            last = list(outputs)[-REPEAT_THRESHOLD:]
            if all(item == last[0] for item in last[1:]):
                self._auto_report_bug(EscalationReason.OUTPUT_LOOP)

    def _auto_report_bug(self, reason: EscalationReason) -> None:
        """Capture the report payload, reset state and submit in the background."""
        state = self._state
        data = BugData(
            input=AUTO_REPORT_INPUT,
            logs=OUTPUT_SEPARATOR.join(state.outputs),
            error=f"Auto-reported: {reason.value}. Build failures: {state.build_failures}",
        )
        logger.warning(
            "Agent %s appears stuck: %s (build failures: %d)",
            self._agent_name,
            reason.value,
            state.build_failures,
        )
        stuck_event = AgentStuckDetected(
            agent_name=self._agent_name,
            reason=reason.value,
            build_failures=state.build_failures,
            output_count=len(state.outputs),
        )
        self.reset_retry_detection()

        coro = self._submit_auto_report(reason, data, stuck_event)
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            loop = None

        if loop is not None:
            task = loop.create_task(coro)
            self._tasks.add(task)
            task.add_done_callback(self._tasks.discard)
            return

        with self._worker_lock:
            self._backlog.append(coro)
            self._backlog_size += 1
            if self._worker is None:
                self._worker = threading.Thread(
                    target=self._drain_backlog,
                    name=f"bugboard-auto-report-{self._agent_name}",
                    daemon=True,
                )
                self._worker.start()

    def _drain_backlog(self) -> None:
        """Submit queued automatic reports one at a time, then exit."""
        while True:
            with self._worker_lock:
                if not self._backlog:
                    self._worker = None
                    return
                coro = self._backlog.popleft()
            try:
                asyncio.run(coro)
            finally:
                with self._worker_lock:
                    self._backlog_size -= 1

    async def _submit_auto_report(
        self,
        reason: EscalationReason,
        data: BugData,
        stuck_event: AgentStuckDetected,
    ) -> None:
        await self._emit(stuck_event)
        try:
            result = await self._sink.submit(self._agent_name, data)
        except Exception as exc:
            logger.error("Failed to auto-report bug for agent %s: %s", self._agent_name, exc)
            await self._emit(
                BugReportFailed(agent_name=self._agent_name, reason=reason.value, error=str(exc))
            )
            return
        logger.info("Auto-reported bug %s for agent %s: %s", result.id, self._agent_name, result.url)
        await self._emit(BugReported(agent_name=self._agent_name, bug_id=result.id, url=result.url))

    async def _emit(self, event: BugBoardEvent) -> None:
        if self._event_bus is not None:
            await self._event_bus.emit(event)


async def report_bug(data: BugData, agent_name: str, api_url: str | None = None) -> BugReportResult:
    """Submit one manual report without keeping a detector around."""
    return await StuckAgentDetector(agent_name=agent_name, api_url=api_url).report_bug(data)
