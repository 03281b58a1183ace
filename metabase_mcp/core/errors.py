# metabase_mcp/core/errors.py
from __future__ import annotations

from enum import Enum
from typing import Any, Dict, Optional


class Upstream(str, Enum):
    METABASE = "metabase"
    OPENAI = "openai"


class AppError(Exception):
    """
    Base for every failure a route can return.
    Subclasses pick the HTTP status and how the JSON body is shaped.
    """

    status_code: int = 500

    def __init__(self, message: str, details: Any = None) -> None:
        super().__init__(message)
        self.message = message
        self.details = details

    def body(self, endpoint: str) -> Dict[str, Any]:
        out: Dict[str, Any] = {"error": self.message}
        if self.details is not None:
            out["details"] = self.details
        return out


class ValidationError(AppError):
    status_code = 400


class ConfigurationError(AppError):
    pass


class GenerationEmpty(AppError):
    def __init__(self, message: str = "No SQL generated") -> None:
        super().__init__(message)


class UpstreamError(AppError):
    def __init__(
        self,
        upstream: Upstream,
        message: str,
        details: Any = None,
        status_code: Optional[int] = None,
    ) -> None:
        super().__init__(message, details)
        self.upstream = upstream
        self.upstream_status = status_code

    def body(self, endpoint: str) -> Dict[str, Any]:
        return {
            "error": f"{endpoint} failed",
            "details": self.details if self.details is not None else self.message,
        }


class NotConfigured(UpstreamError):
    pass


class UpstreamUnreachable(UpstreamError):
    pass


class UpstreamRejected(UpstreamError):
    pass


class _WrappedUpstreamError(AppError):
    """Handler-level failure that keeps the upstream diagnostics of its cause."""

    def __init__(self, cause: UpstreamError) -> None:
        details = cause.details if cause.details is not None else cause.message
        super().__init__(cause.message, details)
        self.cause = cause
        self.upstream = cause.upstream

    def body(self, endpoint: str) -> Dict[str, Any]:
        return {"error": f"{endpoint} failed", "details": self.details}


class CreationFailed(_WrappedUpstreamError):
    pass


class ExecutionFailed(_WrappedUpstreamError):
    pass
