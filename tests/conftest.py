"""Shared fixtures: generation backend stubs and a counting webhook transport."""

from __future__ import annotations

import json
from types import SimpleNamespace
from typing import Any, Callable, Dict, List

import fitz
import httpx
import pytest

INVOICE_JSON = (
    '{"documentType":"Invoice","queryContext":"Outstanding balance",'
    '"keyMetrics":[{"key":"Total","value":"$500"}]}'
)


class StubGenerator:
    """Stands in for GenerationAdapter: returns a fixed raw text and records calls."""

    def __init__(self, raw_text: str):
        self.raw_text = raw_text
        self.calls: List[Dict[str, Any]] = []

    def generate(self, prompt: str, schema: Dict[str, Any], model_name: str) -> str:
        self.calls.append({"prompt": prompt, "schema": schema, "model_name": model_name})
        return self.raw_text


class RecordingWebhook:
    """httpx.MockTransport handler that counts requests and replies with a fixed body."""

    def __init__(self, status_code: int = 200, body: Any = None):
        self.status_code = status_code
        self.body = {} if body is None else body
        self.requests: List[httpx.Request] = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        if isinstance(self.body, (dict, list)):
            return httpx.Response(self.status_code, json=self.body)
        return httpx.Response(self.status_code, text=str(self.body))

    @property
    def payloads(self) -> List[Dict[str, Any]]:
        return [json.loads(req.content) for req in self.requests]

    def client(self) -> httpx.Client:
        return httpx.Client(transport=httpx.MockTransport(self))


@pytest.fixture
def invoice_json() -> str:
    return INVOICE_JSON


@pytest.fixture
def invoice_generator() -> StubGenerator:
    return StubGenerator(INVOICE_JSON)


@pytest.fixture
def make_generator() -> Callable[[str], StubGenerator]:
    return StubGenerator


@pytest.fixture
def make_webhook() -> Callable[..., RecordingWebhook]:
    return RecordingWebhook


@pytest.fixture
def direct_client() -> Callable[[Any], SimpleNamespace]:
    """google-genai shaped client whose generate_content returns `response`."""

    def _build(response: Any) -> SimpleNamespace:
        calls: List[Dict[str, Any]] = []

        def generate_content(**kwargs: Any) -> Any:
            calls.append(kwargs)
            return response

        return SimpleNamespace(models=SimpleNamespace(generate_content=generate_content), calls=calls)

    return _build


@pytest.fixture
def pdf_bytes() -> bytes:
    doc = fitz.open()
    for text in ("Invoice total: $500", "Due date: 2024-01-31"):
        page = doc.new_page()
        page.insert_text((72, 72), text)
    data = doc.tobytes()
    doc.close()
    return data
