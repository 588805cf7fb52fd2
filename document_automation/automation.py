"""Forward extracted context to an external workflow endpoint (an n8n webhook).

The endpoint is expected to compose and send the notification and to reply
with JSON carrying optional `answer`, `email_body` and `status` fields.
"""

from __future__ import annotations

import json
import logging
from typing import Any, Dict, Mapping, Optional

import httpx

from .exceptions import AutomationDispatchFailure, EndpointNotConfigured, MissingFields
from .schema import AutomationRequest, AutomationResult

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT_SECONDS = 20.0


def build_notification_body(user_query: str, extracted_data: Any) -> str:
    return (
        "\nHere is the extracted information based on your document:\n\n"
        f"Query: {user_query}\n\n"
        "Extracted Data:\n"
        f"{json.dumps(extracted_data, indent=2, ensure_ascii=False)}\n\n"
        "Thank you for using our service.\n"
    )


def _as_text(value: Any) -> Optional[str]:
    if value is None or value == "":
        return None
    if isinstance(value, str):
        return value
    return json.dumps(value, ensure_ascii=False)


def normalize_automation_response(body: Any) -> AutomationResult:
    """Map the webhook reply onto a stable result; anything but a JSON object counts as empty."""
    data: Mapping[str, Any] = body if isinstance(body, Mapping) else {}
    return AutomationResult(
        analytical_answer=_as_text(data.get("answer")),
        generated_email_body=_as_text(data.get("email_body")),
        automation_status=_as_text(data.get("status")) or "unknown",
    )


class AutomationDispatcher:
    """
    Posts one fixed-shape payload per request; no retries.

    Pass `client` to reuse an `httpx.Client` (tests hand in one backed by
    `httpx.MockTransport`); otherwise a short-lived client is opened per call.
    """

    def __init__(
        self,
        endpoint: str | None,
        *,
        timeout: float = DEFAULT_TIMEOUT_SECONDS,
        client: httpx.Client | None = None,
    ):
        self.endpoint = endpoint
        self.timeout = timeout
        self.client = client

    def build_payload(self, request: AutomationRequest) -> Dict[str, Any]:
        return {
            "documentText": request.full_document_text,
            "extractedJSON": request.extracted_data,
            "userQuery": request.user_query,
            "recipientEmail": request.recipient_email,
            "generatedEmailBody": build_notification_body(
                request.user_query or "", request.extracted_data
            ),
        }

    def dispatch(self, request: AutomationRequest) -> AutomationResult:
        if not self.endpoint:
            raise EndpointNotConfigured()
        missing = request.missing_fields()
        if missing:
            raise MissingFields(missing)

        payload = self.build_payload(request)
        logger.info("Triggering automation workflow for %s", request.recipient_email)
        try:
            response = self._post(payload)
            response.raise_for_status()
        except httpx.HTTPStatusError as exc:
            logger.error(
                "Automation endpoint error response: %s %s",
                exc.response.status_code,
                exc.response.text,
            )
            raise AutomationDispatchFailure(
                f"Automation endpoint returned HTTP {exc.response.status_code}"
            ) from exc
        except (httpx.HTTPError, httpx.InvalidURL) as exc:
            # InvalidURL is not an HTTPError subclass; a malformed webhook URL lands here.
            logger.error("Automation endpoint request failed: %s", exc)
            raise AutomationDispatchFailure(f"Automation endpoint request failed: {exc}") from exc

        try:
            body = response.json()
        except ValueError:
            logger.warning("Automation endpoint replied with non-JSON body: %r", response.text[:200])
            body = {}
        result = normalize_automation_response(body)
        logger.info("Automation workflow status: %s", result.automation_status)
        return result

    def _post(self, payload: Dict[str, Any]) -> httpx.Response:
        headers = {"Content-Type": "application/json"}
        if self.client is not None:
            return self.client.post(
                self.endpoint, json=payload, headers=headers, timeout=self.timeout
            )
        with httpx.Client(timeout=self.timeout) as client:
            return client.post(self.endpoint, json=payload, headers=headers)
