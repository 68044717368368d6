"""Configuration for BugBoard agents.

Settings can come from keyword arguments, environment variables or a YAML
file. A YAML file may hold the settings at top level or nested under a
``bugboard:`` key::

    bugboard:
      agent_name: planner
      api_url: http://localhost:3001/api
      timeout_ms: 120000
"""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass, fields
from pathlib import Path
from typing import Any

import yaml

from bugboard.adapters.sink.http import HttpReportSink
from bugboard.core.detector import StuckAgentDetector
from bugboard.core.models import DEFAULT_API_URL, DEFAULT_TIMEOUT_MS

logger = logging.getLogger(__name__)

ENV_AGENT_NAME = "BUGBOARD_AGENT_NAME"
ENV_API_URL = "BUGBOARD_API_URL"
ENV_TIMEOUT_MS = "BUGBOARD_TIMEOUT_MS"
ENV_REQUEST_TIMEOUT = "BUGBOARD_REQUEST_TIMEOUT"


@dataclass
class BugBoardConfig:
    """Connection and detection settings for one reporting agent."""

    agent_name: str
    api_url: str = DEFAULT_API_URL
    timeout_ms: int = DEFAULT_TIMEOUT_MS
    request_timeout: float | None = None

    def __post_init__(self) -> None:
        self.timeout_ms = _parse_int("timeout_ms", self.timeout_ms)
        if self.timeout_ms < 0:
            raise ValueError("timeout_ms must not be negative")
        if self.request_timeout is not None:
            self.request_timeout = _parse_float("request_timeout", self.request_timeout)

    @classmethod
    def from_env(cls, **overrides: Any) -> BugBoardConfig:
        """Build a config from ``BUGBOARD_*`` environment variables.

        Non-``None`` keyword overrides win over the environment.
        """
        values: dict[str, Any] = {
            "agent_name": os.getenv(ENV_AGENT_NAME, ""),
            "api_url": os.getenv(ENV_API_URL) or DEFAULT_API_URL,
            "timeout_ms": os.getenv(ENV_TIMEOUT_MS) or DEFAULT_TIMEOUT_MS,
            "request_timeout": os.getenv(ENV_REQUEST_TIMEOUT) or None,
        }
        values.update({k: v for k, v in overrides.items() if v is not None})
        return cls(**values)

    @classmethod
    def from_yaml(cls, path: str | Path, **overrides: Any) -> BugBoardConfig:
        """Load a config from a YAML file, falling back to the environment.

        Raises:
            FileNotFoundError: If *path* does not exist.
            ValueError: If the file is not a mapping or has unknown keys.
        """
        path = Path(path)
        if not path.exists():
            raise FileNotFoundError(f"Config file not found: {path}")

        with open(path, encoding="utf-8") as fh:
            raw = yaml.safe_load(fh) or {}

        if not isinstance(raw, dict):
            raise ValueError(f"Config file {path} must contain a mapping")
        section = raw.get("bugboard", raw)
        if not isinstance(section, dict):
            raise ValueError(f"'bugboard' section in {path} must be a mapping")

        known = {f.name for f in fields(cls)}
        unknown = sorted(set(section) - known)
        if unknown:
            raise ValueError(f"Unknown BugBoard config keys in {path}: {', '.join(unknown)}")

        logger.debug("Loaded BugBoard config from %s", path)
        merged = {k: v for k, v in section.items() if v is not None}
        merged.update({k: v for k, v in overrides.items() if v is not None})
        return cls.from_env(**merged)


def _parse_int(name: str, value: Any) -> int:
    try:
        return int(value)
    except (TypeError, ValueError) as exc:
        raise ValueError(f"{name} must be an integer, got {value!r}") from exc


def _parse_float(name: str, value: Any) -> float:
    try:
        return float(value)
    except (TypeError, ValueError) as exc:
        raise ValueError(f"{name} must be a number, got {value!r}") from exc


def create_sink(config: BugBoardConfig) -> HttpReportSink:
    """Build the HTTP report sink described by *config*."""
    return HttpReportSink(config.api_url, request_timeout=config.request_timeout)


def create_detector(config: BugBoardConfig, **kwargs: Any) -> StuckAgentDetector:
    """Build a :class:`StuckAgentDetector` from *config*.

    Extra keyword arguments (``sink``, ``event_bus``, ``clock``) are passed
    through to the detector.
    """
    if not config.agent_name:
        raise ValueError(f"agent_name is required (set {ENV_AGENT_NAME} or pass --agent-name)")
    kwargs.setdefault("sink", create_sink(config))
    return StuckAgentDetector(
        agent_name=config.agent_name,
        api_url=config.api_url,
        timeout_ms=config.timeout_ms,
        **kwargs,
    )
