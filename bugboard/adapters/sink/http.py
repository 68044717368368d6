"""HTTP report sink for the BugBoard REST API."""

import asyncio
import logging
from datetime import UTC, datetime
from typing import Any

import aiohttp

from bugboard.adapters.sink.base import (
    BoardClient,
    BugNotFoundError,
    ReportSink,
    ReportSubmissionError,
)
from bugboard.core.models import DEFAULT_API_URL, Bug, BugData, BugReportResult

logger = logging.getLogger(__name__)


def viewer_base_url(api_url: str) -> str:
    """Return the human-facing site root for an API base URL.

    ``https://bugboard.ai/api`` -> ``https://bugboard.ai``
    """
    base = api_url.rstrip("/")
    if base.endswith("/api"):
        base = base[: -len("/api")]
    return base


def _bug_from_body(body: Any, bug_id: str) -> Bug:
    if not isinstance(body, dict):
        raise ReportSubmissionError(f"BugBoard returned no bug record for {bug_id}")
    return Bug.from_dict(body)


class HttpReportSink(ReportSink, BoardClient):
    """Report sink and board client backed by the BugBoard REST API.

    Args:
        api_url: API base URL, e.g. ``http://localhost:3001/api``.
        request_timeout: Total seconds allowed per request. ``None`` keeps
            aiohttp's own default.

    A fresh ``aiohttp.ClientSession`` is opened per request, so one sink can
    be shared between the caller's event loop and the background loops the
    detector uses for automatic reports.
    """

    def __init__(self, api_url: str | None = None, request_timeout: float | None = None):
        self._api_url = (api_url or DEFAULT_API_URL).rstrip("/")
        self._request_timeout = request_timeout

    @property
    def name(self) -> str:
        return "http"

    @property
    def api_url(self) -> str:
        return self._api_url

    def bug_url(self, bug_id: str) -> str:
        """Viewable page URL for ``bug_id``."""
        return f"{viewer_base_url(self._api_url)}/bugs/{bug_id}"

    # ------------------------------------------------------------------
    # ReportSink interface
    # ------------------------------------------------------------------

    async def submit(self, agent_name: str, data: BugData) -> BugReportResult:
        """POST a bug report; returns its ID and viewable URL."""
        payload = {
            "agentName": agent_name,
            "input": data.input,
            "logs": data.logs,
            "timestamp": datetime.now(UTC).isoformat(),
        }
        if data.error is not None:
            payload["error"] = data.error
        body = await self._request("POST", "/bugs", json=payload)
        if not isinstance(body, dict) or body.get("id") is None:
            raise ReportSubmissionError("BugBoard response did not include a bug id")
        bug_id = str(body["id"])
        logger.info("Reported bug %s for agent %s", bug_id, agent_name)
        return BugReportResult(id=bug_id, url=self.bug_url(bug_id))

    # ------------------------------------------------------------------
    # BoardClient interface
    # ------------------------------------------------------------------

    async def list_bugs(self) -> list[Bug]:
        body = await self._request("GET", "/bugs")
        if not isinstance(body, list):
            raise ReportSubmissionError("BugBoard returned a non-list bug index")
        return [Bug.from_dict(row) for row in body]

    async def get_bug(self, bug_id: str) -> Bug:
        body = await self._request("GET", f"/bugs/{bug_id}", bug_id=bug_id)
        return _bug_from_body(body, bug_id)

    async def upvote_bug(self, bug_id: str) -> Bug:
        body = await self._request("POST", f"/bugs/{bug_id}/upvote", bug_id=bug_id)
        return _bug_from_body(body, bug_id)

    async def resolve_bug(self, bug_id: str, fix_url: str, explanation: str | None = None) -> Bug:
        if not fix_url:
            raise ValueError("fix_url is required to resolve a bug.")
        body = await self._request(
            "PATCH",
            f"/bugs/{bug_id}/resolve",
            json={"fixUrl": fix_url, "explanation": explanation},
            bug_id=bug_id,
        )
        logger.info("Resolved bug %s with fix %s", bug_id, fix_url)
        return _bug_from_body(body, bug_id)

    # ------------------------------------------------------------------
    # Internal helpers: HTTP
    # ------------------------------------------------------------------

    def _session_kwargs(self) -> dict[str, Any]:
        if self._request_timeout is None:
            return {}
        return {"timeout": aiohttp.ClientTimeout(total=self._request_timeout)}

    async def _request(
        self,
        method: str,
        path: str,
        *,
        json: dict | None = None,
        bug_id: str | None = None,
    ) -> Any:
        """Send a request and return the decoded JSON body.

        Raises ``BugNotFoundError`` for a 404 on a single-bug route and
        ``ReportSubmissionError`` for any other failure.
        """
        url = f"{self._api_url}{path}"
        try:
            async with aiohttp.ClientSession(**self._session_kwargs()) as session:
                async with session.request(
                    method,
                    url,
                    json=json,
                    headers={"Accept": "application/json"},
                ) as resp:
                    if resp.status == 404 and bug_id is not None:
                        raise BugNotFoundError(bug_id)
                    resp.raise_for_status()
                    try:
                        return await resp.json()
                    except (aiohttp.ContentTypeError, ValueError) as exc:
                        logger.error("BugBoard %s %s returned an unreadable body: %s", method, url, exc)
                        raise ReportSubmissionError(
                            f"BugBoard {method} {path} returned an unreadable body",
                            status=resp.status,
                        ) from exc
        except aiohttp.ClientResponseError as exc:
            logger.error("BugBoard %s %s failed with status %s", method, url, exc.status)
            raise ReportSubmissionError(
                f"BugBoard {method} {path} failed with status {exc.status}",
                status=exc.status,
            ) from exc
        except (aiohttp.ClientError, asyncio.TimeoutError) as exc:
            logger.error("BugBoard %s %s failed: %s", method, url, exc)
            raise ReportSubmissionError(f"BugBoard {method} {path} failed: {exc}") from exc
