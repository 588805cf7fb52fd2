from __future__ import annotations

from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field

# JSON-Schema-like contract handed to the generation backend. The 5-8 metrics
# range is advisory to the model and is not enforced on the parsed output.
EXTRACTION_SCHEMA: Dict[str, Any] = {
    "type": "object",
    "properties": {
        "documentType": {
            "type": "string",
            "description": (
                "The type of document (e.g., Invoice, Contract, Meeting Notes, Resume)."
            ),
        },
        "queryContext": {
            "type": "string",
            "description": "A one-sentence summary of the user's question.",
        },
        "keyMetrics": {
            "type": "array",
            "description": (
                "A list of 5-8 most relevant key-value pairs from the document "
                "that answer the user's query."
            ),
            "items": {
                "type": "object",
                "properties": {
                    "key": {"type": "string"},
                    "value": {"type": "string"},
                },
            },
        },
    },
    "required": ["documentType", "queryContext", "keyMetrics"],
}

MIN_KEY_METRICS = 5
MAX_KEY_METRICS = 8


class KeyMetric(BaseModel):
    key: str
    value: str


class ExtractedResult(BaseModel):
    """
    Typed view of a model response that satisfies EXTRACTION_SCHEMA.

    Only used when strict schema checking is enabled; extra keys the model adds
    are kept so the caller still receives them.
    """

    document_type: str = Field(..., alias="documentType")
    query_context: str = Field(..., alias="queryContext")
    key_metrics: List[KeyMetric] = Field(..., alias="keyMetrics")

    model_config = ConfigDict(populate_by_name=True, extra="allow", frozen=True)


class AutomationRequest(BaseModel):
    """
    Context the caller round-trips from the extraction phase plus a recipient.

    Fields are optional at construction so that absence can be reported as a
    single MissingFields error by the dispatcher instead of a validation error.
    """

    full_document_text: Optional[str] = Field(None, alias="fullDocumentText")
    extracted_data: Any = Field(None, alias="extractedData")
    user_query: Optional[str] = Field(None, alias="userQuery")
    recipient_email: Optional[str] = Field(None, alias="recipientEmail")

    model_config = ConfigDict(populate_by_name=True, frozen=True)

    def missing_fields(self) -> List[str]:
        """Wire names of mandatory fields that are absent or empty."""
        missing: List[str] = []
        for name, field in type(self).model_fields.items():
            value = getattr(self, name)
            if value is None or (isinstance(value, str) and not value):
                missing.append(field.alias or name)
        return missing


class AutomationResult(BaseModel):
    analytical_answer: Optional[str] = Field(None, alias="analyticalAnswer")
    generated_email_body: Optional[str] = Field(None, alias="generatedEmailBody")
    automation_status: str = Field("unknown", alias="automationStatus")

    model_config = ConfigDict(populate_by_name=True, frozen=True)
