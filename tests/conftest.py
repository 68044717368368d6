"""Shared fixtures: recording sink, controllable clock and an in-process board."""
from datetime import UTC, datetime

import pytest
from aiohttp import web
from aiohttp.test_utils import TestServer

from bugboard.adapters.sink.base import ReportSink, ReportSubmissionError
from bugboard.core.models import BugData, BugReportResult


class RecordingSink(ReportSink):
    """Report sink that keeps submissions in memory."""

    def __init__(self, fail: bool = False):
        self.fail = fail
        self.reports: list[tuple[str, BugData]] = []

    @property
    def name(self) -> str:
        return "recording"

    async def submit(self, agent_name: str, data: BugData) -> BugReportResult:
        if self.fail:
            raise ReportSubmissionError("board unavailable", status=503)
        self.reports.append((agent_name, data))
        bug_id = str(len(self.reports))
        return BugReportResult(id=bug_id, url=f"https://bugboard.ai/bugs/{bug_id}")


class FakeClock:
    """Wall clock that only moves when told to."""

    def __init__(self, start: float = 1_000_000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance_ms(self, ms: float) -> None:
        self.now += ms / 1000


@pytest.fixture
def recording_sink():
    return RecordingSink()


@pytest.fixture
def failing_sink():
    return RecordingSink(fail=True)


@pytest.fixture
def fake_clock():
    return FakeClock()


class FakeBoard:
    """Minimal in-memory BugBoard REST API."""

    def __init__(self):
        self.bugs: dict[str, dict] = {}
        self.received: list[dict] = []
        self.fail_status: int | None = None
        self.omit_id = False
        self.raw_body: str | None = None
        self.raw_content_type = "application/json"
        self._next_id = 42

    def add_bug(self, bug_id: str, **fields) -> dict:
        row = {
            "id": bug_id,
            "title": fields.pop("title", f"Bug {bug_id}"),
            "agent_name": fields.pop("agent_name", "planner"),
            "input": "",
            "logs": "",
            "status": "open",
            "bounty": 5,
            "upvotes": 0,
            "created_at": datetime.now(UTC).isoformat(),
        }
        row.update(fields)
        self.bugs[bug_id] = row
        return row

    def app(self) -> web.Application:
        app = web.Application()
        app.router.add_get("/api/bugs", self.list_bugs)
        app.router.add_post("/api/bugs", self.create_bug)
        app.router.add_get("/api/bugs/{id}", self.get_bug)
        app.router.add_post("/api/bugs/{id}/upvote", self.upvote)
        app.router.add_patch("/api/bugs/{id}/resolve", self.resolve)
        return app

    def _raw(self, status: int = 200) -> web.Response:
        return web.Response(text=self.raw_body, status=status, content_type=self.raw_content_type)

    async def list_bugs(self, request):
        rows = sorted(self.bugs.values(), key=lambda r: r["created_at"], reverse=True)
        return web.json_response(rows)

    async def create_bug(self, request):
        body = await request.json()
        self.received.append(body)
        if self.fail_status:
            return web.json_response({"error": "Failed to create bug report"}, status=self.fail_status)
        if not body.get("agentName") or not body.get("input") or not body.get("logs"):
            return web.json_response({"error": "Missing required fields"}, status=400)
        if self.omit_id:
            return web.json_response({"title": "no id"}, status=201)
        if self.raw_body is not None:
            return self._raw(status=201)
        bug_id = str(self._next_id)
        self._next_id += 1
        row = self.add_bug(
            bug_id,
            agent_name=body["agentName"],
            input=body["input"],
            logs=body["logs"],
            error_message=body.get("error"),
        )
        return web.json_response(row, status=201)

    async def get_bug(self, request):
        if self.raw_body is not None:
            return self._raw()
        row = self.bugs.get(request.match_info["id"])
        if row is None:
            return web.json_response({"error": "Bug not found"}, status=404)
        return web.json_response(row)

    async def upvote(self, request):
        if self.raw_body is not None:
            return self._raw()
        row = self.bugs.get(request.match_info["id"])
        if row is None:
            return web.json_response({"error": "Bug not found"}, status=404)
        row["upvotes"] += 1
        return web.json_response(row)

    async def resolve(self, request):
        row = self.bugs.get(request.match_info["id"])
        if row is None:
            return web.json_response({"error": "Bug not found"}, status=404)
        body = await request.json()
        if not body.get("fixUrl"):
            return web.json_response({"error": "Fix URL is required"}, status=400)
        row.update(
            status="resolved",
            fix_url=body["fixUrl"],
            fix_explanation=body.get("explanation"),
            resolved_at=datetime.now(UTC).isoformat(),
        )
        return web.json_response(row)


@pytest.fixture
async def board():
    """Start a FakeBoard on a local port; yields ``(board, api_url)``."""
    fake = FakeBoard()
    server = TestServer(fake.app())
    await server.start_server()
    try:
        yield fake, str(server.make_url("/api"))
    finally:
        await server.close()
