"""Error taxonomy for the extraction and automation pipeline.

Every component catches lower-level transport or parsing errors at its
boundary and re-raises one of these kinds. The HTTP layer maps them to status
codes; each carries a stable `error_code` for logs.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Sequence


@dataclass(eq=False)
class DocumentAutomationError(Exception):
    """Base class for pipeline errors."""

    message: str
    error_code: str

    def __str__(self) -> str:  # pragma: no cover - trivial
        return f"{self.error_code}: {self.message}"


class ConfigurationError(DocumentAutomationError):
    def __init__(self, message: str = "Required configuration is missing") -> None:
        super().__init__(message=message, error_code="config_error")


class UnsupportedFormat(DocumentAutomationError):
    def __init__(self, declared_format: object = None) -> None:
        super().__init__(
            message=f"Unsupported file type: {declared_format!r}",
            error_code="unsupported_format",
        )
        self.declared_format = declared_format


class ParseFailure(DocumentAutomationError):
    def __init__(self, message: str = "Could not parse the uploaded file.") -> None:
        super().__init__(message=message, error_code="parse_failed")


class UnsupportedBackend(DocumentAutomationError):
    def __init__(
        self,
        message: str = (
            "AI client does not expose supported methods "
            "(models.generate_content, GenerativeModel, or generate)"
        ),
    ) -> None:
        super().__init__(message=message, error_code="unsupported_backend")


class GenerationFailure(DocumentAutomationError):
    def __init__(self, message: str = "AI invocation failed") -> None:
        super().__init__(message=message, error_code="generation_failed")


class NonJsonResponse(DocumentAutomationError):
    """The model answered, but not with parseable JSON."""

    def __init__(self, raw_text: str) -> None:
        super().__init__(
            message="AI returned non-JSON output", error_code="non_json_response"
        )
        self.raw_text = raw_text


class SchemaViolation(DocumentAutomationError):
    """Parsed JSON is missing or mis-shapes required schema fields."""

    def __init__(self, raw_text: str, problems: Sequence[str] = ()) -> None:
        detail = "; ".join(problems) or "response does not match schema"
        super().__init__(
            message=f"AI output violates the extraction schema: {detail}",
            error_code="schema_violation",
        )
        self.raw_text = raw_text
        self.problems = list(problems)


class EndpointNotConfigured(DocumentAutomationError):
    def __init__(self, message: str = "N8N_WEBHOOK_URL is not configured.") -> None:
        super().__init__(message=message, error_code="endpoint_not_configured")


class MissingFields(DocumentAutomationError):
    def __init__(self, fields: Sequence[str]) -> None:
        super().__init__(
            message=f"Missing required fields: {', '.join(fields)}",
            error_code="missing_fields",
        )
        self.fields = list(fields)


class AutomationDispatchFailure(DocumentAutomationError):
    def __init__(self, message: str = "Failed to trigger automation workflow") -> None:
        super().__init__(message=message, error_code="dispatch_failed")
