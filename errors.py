"""Error taxonomy shared by the API clients and orchestration layers."""

from __future__ import annotations

from typing import Any


class ResearchError(RuntimeError):
    """Base class for every failure the research workflows report."""


class NetworkError(ResearchError):
    """Transport failure talking to an upstream service."""


class UpstreamError(ResearchError):
    """Non-success HTTP status or unexpected payload shape from an upstream API."""

    def __init__(self, message: str, status_code: int | None = None, body: Any = None) -> None:
        if status_code is not None:
            message = f"{message} (status={status_code})"
        super().__init__(message)
        self.status_code = status_code
        self.body = body


class EmptyResultError(ResearchError):
    """A literature search returned zero hits."""


class ParseError(ResearchError):
    """Markup extraction failed; callers degrade to empty fields."""
