"""sugar_sim exception hierarchy.

Oracle failures are split by cause so callers can tell a flaky transport
(retryable) from a malformed answer (never retried).
"""
from __future__ import annotations

from typing import Any

_BODY_PREVIEW_CHARS = 500


class SugarSimError(Exception):
    """Root of all sugar_sim domain exceptions."""


class ConfigurationError(SugarSimError):
    """Invalid or missing configuration."""


class OracleError(SugarSimError):
    """Base class for failures of the external decision oracle."""


class OracleAPIError(OracleError):
    """Transport, availability or authentication failure talking to the oracle."""

    def __init__(
        self,
        message: str,
        status_code: int | None = None,
        response_body: str | None = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.status_code = status_code
        self.response_body = response_body

    def __str__(self) -> str:
        if self.status_code is None:
            return self.message
        return f"{self.message} (status={self.status_code})"


class OracleSchemaError(OracleError):
    """A required field or envelope is missing, or the response is not JSON."""

    def __init__(
        self,
        message: str,
        agent_id: int | None = None,
        raw_response: Any = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.agent_id = agent_id
        self.raw_response = raw_response

    def __str__(self) -> str:
        if self.agent_id is None:
            return self.message
        return f"{self.message} (agent_id={self.agent_id})"


class OracleValidationError(OracleError):
    """A field is present but has the wrong type, shape or an inconsistent value."""

    def __init__(
        self,
        message: str,
        field: str,
        value: Any,
        agent_id: int | None = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.field = field
        self.value = value
        self.agent_id = agent_id

    def __str__(self) -> str:
        where = f"field={self.field} value={self.value!r}"
        if self.agent_id is not None:
            where = f"agent_id={self.agent_id} {where}"
        return f"{self.message} ({where})"


def format_oracle_error(exc: OracleError) -> str:
    """Multi-line diagnostic for logs."""
    lines = [f"{exc.__class__.__name__}: {getattr(exc, 'message', str(exc))}"]
    if isinstance(exc, OracleAPIError):
        if exc.status_code is not None:
            lines.append(f"  HTTP status: {exc.status_code}")
        if exc.response_body:
            body = exc.response_body
            if len(body) > _BODY_PREVIEW_CHARS:
                body = body[:_BODY_PREVIEW_CHARS] + "..."
            lines.append(f"  Response body: {body}")
    elif isinstance(exc, OracleSchemaError):
        if exc.agent_id is not None:
            lines.append(f"  Agent ID: {exc.agent_id}")
        if exc.raw_response is not None:
            raw = str(exc.raw_response)
            if len(raw) > _BODY_PREVIEW_CHARS:
                raw = raw[:_BODY_PREVIEW_CHARS] + "..."
            lines.append(f"  Raw response: {raw}")
    elif isinstance(exc, OracleValidationError):
        if exc.agent_id is not None:
            lines.append(f"  Agent ID: {exc.agent_id}")
        lines.append(f"  Field: {exc.field}")
        lines.append(f"  Invalid value: {exc.value!r}")
    return "\n".join(lines)
