from __future__ import annotations

import copy
import json
import logging
from typing import Any, Callable, Dict, Mapping, Optional, Sequence, Tuple, Type

from google import genai
from pydantic import BaseModel

from .config import DEFAULT_MODEL
from .exceptions import GenerationFailure, UnsupportedBackend

logger = logging.getLogger(__name__)

JSON_MIME_TYPE = "application/json"

ResponseExtractor = Callable[[Any], Optional[str]]


def build_backend_client(api_key: str) -> Any:
    """Create the Gemini client used by the GenerationAdapter."""
    return genai.Client(api_key=api_key)


def _field(obj: Any, name: str) -> Any:
    """Read `name` from a mapping or an object attribute."""
    if isinstance(obj, Mapping):
        return obj.get(name)
    try:
        return getattr(obj, name, None)
    except ValueError:
        # Older SDK envelopes raise from `.text` when a candidate has no parts.
        return None


def _non_empty(value: Any) -> Optional[str]:
    if isinstance(value, str) and value:
        return value
    return None


# --- Response envelope extractors -----------------------------------------


def text_attribute(response: Any) -> Optional[str]:
    """Envelope exposes the payload as a plain `text` string."""
    return _non_empty(_field(response, "text"))


def text_accessor(response: Any) -> Optional[str]:
    """Envelope exposes `text()` as a callable accessor."""
    accessor = _field(response, "text")
    if callable(accessor):
        return _non_empty(accessor())
    return None


def output_text_block(response: Any) -> Optional[str]:
    """Envelope nests content blocks under `output[0].content`; pick the `output_text` block."""
    output = _field(response, "output")
    if not isinstance(output, Sequence) or isinstance(output, (str, bytes)) or not output:
        return None
    content = _field(output[0], "content") or []
    for block in content:
        if _field(block, "type") == "output_text":
            text = _non_empty(_field(block, "text"))
            if text:
                return text
    return None


def output_text_attribute(response: Any) -> Optional[str]:
    """Generic `generate` envelopes carry a flattened `output_text` field."""
    return _non_empty(_field(response, "output_text"))


RESPONSE_EXTRACTORS: Tuple[ResponseExtractor, ...] = (
    text_attribute,
    text_accessor,
    output_text_block,
    output_text_attribute,
)


def serialize_response(response: Any) -> str:
    """Last resort: hand back the whole envelope as JSON text."""
    if isinstance(response, BaseModel):
        return response.model_dump_json(exclude_none=True)
    return json.dumps(response, default=lambda o: getattr(o, "__dict__", str(o)))


def response_to_text(
    response: Any, extractors: Sequence[ResponseExtractor] = RESPONSE_EXTRACTORS
) -> str:
    for extractor in extractors:
        text = extractor(response)
        if text:
            logger.debug("Response text found via %s", extractor.__name__)
            return text
    logger.warning("No known text field on %s; serializing whole response", type(response).__name__)
    return serialize_response(response)


# --- Call conventions ------------------------------------------------------


class GenerationStrategy:
    """One backend call convention; `supports` is checked once at adapter construction."""

    name = "base"

    @classmethod
    def supports(cls, client: Any) -> bool:  # pragma: no cover - interface
        raise NotImplementedError

    def invoke(self, client: Any, prompt: str, schema: Dict[str, Any], model_name: str) -> Any:
        raise NotImplementedError  # pragma: no cover - interface


class DirectGenerateStrategy(GenerationStrategy):
    """`client.models.generate_content` with a response schema (google-genai)."""

    name = "models.generate_content"

    @classmethod
    def supports(cls, client: Any) -> bool:
        models = getattr(client, "models", None)
        return callable(getattr(models, "generate_content", None))

    def invoke(self, client: Any, prompt: str, schema: Dict[str, Any], model_name: str) -> Any:
        return client.models.generate_content(
            model=model_name,
            contents=prompt,
            config={
                "response_mime_type": JSON_MIME_TYPE,
                "response_schema": schema,
            },
        )


class ModelSessionStrategy(GenerationStrategy):
    """`client.GenerativeModel(...)` session object, then `generate_content`."""

    name = "GenerativeModel"

    @classmethod
    def supports(cls, client: Any) -> bool:
        return callable(getattr(client, "GenerativeModel", None))

    def invoke(self, client: Any, prompt: str, schema: Dict[str, Any], model_name: str) -> Any:
        model = client.GenerativeModel(
            model_name,
            generation_config={
                "response_mime_type": JSON_MIME_TYPE,
                "response_schema": schema,
            },
        )
        return model.generate_content([{"role": "user", "parts": [{"text": prompt}]}])


class GenericGenerateStrategy(GenerationStrategy):
    """Fallback `client.generate(...)` convention."""

    name = "generate"

    @classmethod
    def supports(cls, client: Any) -> bool:
        return callable(getattr(client, "generate", None))

    def invoke(self, client: Any, prompt: str, schema: Dict[str, Any], model_name: str) -> Any:
        return client.generate(
            model=model_name,
            prompt=prompt,
            response_schema=schema,
            response_mime_type=JSON_MIME_TYPE,
        )


STRATEGIES: Tuple[Type[GenerationStrategy], ...] = (
    DirectGenerateStrategy,
    ModelSessionStrategy,
    GenericGenerateStrategy,
)


def select_strategy(
    client: Any, strategies: Sequence[Type[GenerationStrategy]] = STRATEGIES
) -> GenerationStrategy:
    for strategy_cls in strategies:
        if strategy_cls.supports(client):
            return strategy_cls()
    raise UnsupportedBackend()


class GenerationAdapter:
    """
    Sends a prompt plus schema to a generative backend and returns raw text.

    The call convention is chosen once from the client's capabilities; the
    returned text is expected to be JSON but is not parsed here.
    """

    def __init__(
        self,
        client: Any,
        *,
        strategies: Sequence[Type[GenerationStrategy]] = STRATEGIES,
        extractors: Sequence[ResponseExtractor] = RESPONSE_EXTRACTORS,
    ):
        self.client = client
        self.strategy = select_strategy(client, strategies)
        self.extractors = tuple(extractors)
        logger.info("Generation backend convention: %s", self.strategy.name)

    def generate(
        self, prompt: str, schema: Dict[str, Any], model_name: str = DEFAULT_MODEL
    ) -> str:
        try:
            response = self.strategy.invoke(
                self.client, prompt, copy.deepcopy(schema), model_name
            )
            return response_to_text(response, self.extractors)
        except Exception as exc:
            logger.error("AI invocation failed via %s: %s", self.strategy.name, exc)
            raise GenerationFailure(f"AI invocation failed: {exc}") from exc
