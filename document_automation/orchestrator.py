from __future__ import annotations

import json
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, List, Literal, Protocol, Sequence

import pandas as pd
from pydantic import ValidationError

from .config import DEFAULT_MODEL
from .exceptions import (
    DocumentAutomationError,
    NonJsonResponse,
    SchemaViolation,
    UnsupportedFormat,
)
from .preprocess import PDFPreprocessor, load_document
from .schema import EXTRACTION_SCHEMA, MAX_KEY_METRICS, MIN_KEY_METRICS, ExtractedResult

logger = logging.getLogger(__name__)

# Metric keys matching these are written as `metric_<key>`.
FIXED_COLUMNS = frozenset(
    {"document_name", "status", "error", "documentType", "queryContext"}
)


class Generator(Protocol):
    def generate(self, prompt: str, schema: Dict[str, Any], model_name: str) -> str:
        ...


@dataclass
class DocumentResult:
    document: Path
    status: Literal["ok", "error", "skipped"]
    data: Any = None
    error: str | None = None


def _schema_problems(exc: ValidationError) -> List[str]:
    return [
        f"{'.'.join(str(part) for part in err['loc']) or '<root>'}: {err['msg']}"
        for err in exc.errors()
    ]


class ExtractionOrchestrator:
    """
    Builds the extraction prompt, calls the generation backend and parses its JSON.
    """

    def __init__(
        self,
        generator: Generator,
        *,
        model_name: str = DEFAULT_MODEL,
        strict_schema: bool = False,
        pdf_preprocessor: PDFPreprocessor | None = None,
    ):
        self.generator = generator
        self.model_name = model_name
        self.strict_schema = strict_schema
        self.pdf_preprocessor = pdf_preprocessor or PDFPreprocessor()

    def build_prompt(self, document_text: str, user_query: str) -> str:
        return "\n\n".join(
            [
                "You are an extraction agent.",
                "Given the document text and the user's question, return a JSON object "
                "with the EXACT schema described below.",
                "Return valid JSON only, no extra commentary.",
                f"Schema: {json.dumps(EXTRACTION_SCHEMA, separators=(',', ':'))}",
                f"Document: {document_text}",
                f"User Query: {user_query}",
                f"Return the most relevant {MIN_KEY_METRICS}-{MAX_KEY_METRICS} keyMetrics "
                "(key/value pairs) that answer the user's query.",
            ]
        )

    def extract(self, document_text: str, user_query: str) -> Any:
        """
        Run one extraction and return the parsed model output.

        The parse is returned as-is unless strict schema checking is enabled.
        """
        prompt = self.build_prompt(document_text, user_query)
        raw_text = self.generator.generate(prompt, EXTRACTION_SCHEMA, self.model_name)

        try:
            extracted = json.loads(raw_text)
        except (TypeError, ValueError) as exc:
            logger.error("Failed to parse AI response as JSON: %s", exc)
            logger.error("AI raw output: %s", raw_text)
            raise NonJsonResponse(raw_text) from exc

        if self.strict_schema:
            try:
                ExtractedResult.model_validate(extracted)
            except ValidationError as exc:
                problems = _schema_problems(exc)
                logger.error("AI output violates schema: %s", problems)
                raise SchemaViolation(raw_text, problems) from exc
        elif not isinstance(extracted, dict):
            logger.warning("AI output is JSON but not an object: %s", type(extracted).__name__)
        return extracted

    def process(self, files: Sequence[Path], user_query: str) -> List[DocumentResult]:
        """
        Extract every file against the same query; one failure does not stop the batch.
        """
        results: List[DocumentResult] = []
        for file_path in files:
            path = Path(file_path)
            try:
                logger.info("Preprocessing %s", path)
                document_text = load_document(path, pdf_preprocessor=self.pdf_preprocessor)
                logger.info("Extracting fields for %s", path.name)
                data = self.extract(document_text, user_query)
                results.append(DocumentResult(document=path, status="ok", data=data))
            except UnsupportedFormat as exc:
                logger.warning("Skipping %s: %s", path.name, exc.message)
                results.append(DocumentResult(document=path, status="skipped", error=exc.message))
            except DocumentAutomationError as exc:
                logger.error("Extraction failed for %s: %s", path.name, exc)
                results.append(DocumentResult(document=path, status="error", error=exc.message))
        return results

    def to_dataframe(self, results: Sequence[DocumentResult]) -> pd.DataFrame:
        """
        Convert extraction results into a flat DataFrame.

        Columns: document_name, status, error, documentType, queryContext, <metric keys...>
        """
        rows: List[Dict[str, Any]] = []
        for res in results:
            row: Dict[str, Any] = {
                "document_name": res.document.name,
                "status": res.status,
                "error": res.error,
            }
            if isinstance(res.data, dict):
                row["documentType"] = res.data.get("documentType")
                row["queryContext"] = res.data.get("queryContext")
                metrics = res.data.get("keyMetrics")
                if not isinstance(metrics, list):
                    metrics = []
                for metric in metrics:
                    if isinstance(metric, dict) and metric.get("key"):
                        column = str(metric["key"])
                        if column in FIXED_COLUMNS:
                            column = f"metric_{column}"
                        row[column] = metric.get("value")
            rows.append(row)
        return pd.DataFrame(rows)

    def to_excel(self, results: Sequence[DocumentResult], output_path: Path) -> None:
        """
        Write results to an Excel file with sheet 'extractions'.
        """
        df = self.to_dataframe(results)
        output_path.parent.mkdir(parents=True, exist_ok=True)
        logger.info("Writing results to %s", output_path)
        with pd.ExcelWriter(output_path, engine="openpyxl") as writer:
            df.to_excel(writer, sheet_name="extractions", index=False)
