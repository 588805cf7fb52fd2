"""HTTP boundary: upload-and-extract plus the automation trigger."""

from __future__ import annotations

import logging
from typing import Any, Dict, Optional, Type

from fastapi import APIRouter, Body, Depends, FastAPI, File, Form, Request, UploadFile
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, PlainTextResponse
from pydantic import ValidationError

from .automation import AutomationDispatcher
from .config import Settings
from .exceptions import (
    AutomationDispatchFailure,
    ConfigurationError,
    DocumentAutomationError,
    EndpointNotConfigured,
    GenerationFailure,
    MissingFields,
    NonJsonResponse,
    ParseFailure,
    SchemaViolation,
    UnsupportedBackend,
    UnsupportedFormat,
)
from .generation import GenerationAdapter, build_backend_client
from .orchestrator import ExtractionOrchestrator
from .preprocess import extract_text, format_from_filename
from .schema import AutomationRequest

logger = logging.getLogger(__name__)

# (status code, client-facing message) per error kind; unlisted kinds are 500s.
ERROR_RESPONSES: Dict[Type[DocumentAutomationError], tuple[int, str]] = {
    UnsupportedFormat: (400, "Unsupported file type. Upload a .pdf or .txt document."),
    ParseFailure: (500, "Could not parse the uploaded file."),
    UnsupportedBackend: (500, "Failed to process document with AI."),
    GenerationFailure: (500, "Failed to process document with AI."),
    NonJsonResponse: (500, "AI returned non-JSON output. See server logs for raw output."),
    SchemaViolation: (500, "AI output does not match the extraction schema."),
    EndpointNotConfigured: (500, "N8N_WEBHOOK_URL is not configured."),
    MissingFields: (400, "Missing required fields in request body."),
    AutomationDispatchFailure: (500, "Failed to trigger n8n workflow."),
    ConfigurationError: (500, "Service is not configured."),
}

router = APIRouter(prefix="/api/documents")


def get_settings(request: Request) -> Settings:
    return request.app.state.settings


def get_orchestrator(request: Request) -> ExtractionOrchestrator:
    return request.app.state.orchestrator


def get_dispatcher(request: Request) -> AutomationDispatcher:
    return request.app.state.dispatcher


def _error(status_code: int, message: str, **extra: Any) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"error": message, **extra})


async def handle_pipeline_error(request: Request, exc: DocumentAutomationError) -> JSONResponse:
    status_code, message = ERROR_RESPONSES.get(type(exc), (500, "Internal server error."))
    logger.error("%s %s failed: %s", request.method, request.url.path, exc)
    if isinstance(exc, (NonJsonResponse, SchemaViolation)):
        return _error(status_code, message, ai_raw=exc.raw_text)
    return _error(status_code, message)


async def handle_invalid_request(request: Request, exc: RequestValidationError) -> JSONResponse:
    logger.warning("%s %s rejected: %s", request.method, request.url.path, exc.errors())
    if request.url.path.endswith("/send-alert"):
        return _error(400, "Missing required fields in request body.")
    return _error(400, "Invalid request.")


@router.post("/extract")
def extract_document(
    file: Optional[UploadFile] = File(None),
    query: Optional[str] = Form(None),
    settings: Settings = Depends(get_settings),
    orchestrator: ExtractionOrchestrator = Depends(get_orchestrator),
):
    if file is None or not query:
        return _error(400, "File and query are required.")

    data = file.file.read(settings.max_upload_bytes + 1)
    if len(data) > settings.max_upload_bytes:
        return _error(413, "Uploaded file is too large.")

    document_text = extract_text(data, format_from_filename(file.filename or ""))
    extracted = orchestrator.extract(document_text, query)
    return {
        "message": "Extraction successful.",
        "extractedData": extracted,
        "fullDocumentText": document_text,
        "userQuery": query,
    }


@router.post("/send-alert")
def send_alert(
    payload: Optional[Dict[str, Any]] = Body(None),
    dispatcher: AutomationDispatcher = Depends(get_dispatcher),
):
    try:
        automation_request = AutomationRequest.model_validate(payload or {})
    except ValidationError as exc:
        logger.warning("Rejected send-alert body: %s", exc)
        return _error(400, "Missing required fields in request body.")

    result = dispatcher.dispatch(automation_request)
    return {
        "message": "n8n workflow triggered successfully.",
        **result.model_dump(by_alias=True),
        "structuredDataExtracted": automation_request.extracted_data,
    }


def create_app(
    settings: Settings | None = None,
    *,
    orchestrator: ExtractionOrchestrator | None = None,
    dispatcher: AutomationDispatcher | None = None,
) -> FastAPI:
    """
    Build the service. Without an injected orchestrator a Gemini client is
    created, so a missing GEMINI_API_KEY fails here at startup.
    """
    if settings is None:
        settings = Settings.from_env()
    if orchestrator is None:
        adapter = GenerationAdapter(build_backend_client(settings.require_api_key()))
        orchestrator = ExtractionOrchestrator(
            adapter,
            model_name=settings.model_name,
            strict_schema=settings.strict_schema,
        )
    if dispatcher is None:
        dispatcher = AutomationDispatcher(
            settings.webhook_url, timeout=settings.automation_timeout
        )

    app = FastAPI(title="Document Automation API")
    app.state.settings = settings
    app.state.orchestrator = orchestrator
    app.state.dispatcher = dispatcher

    app.add_middleware(
        CORSMiddleware,
        allow_origins=[settings.frontend_url],
        allow_methods=["GET", "POST"],
        allow_headers=["Content-Type", "Authorization"],
    )
    app.add_exception_handler(DocumentAutomationError, handle_pipeline_error)
    app.add_exception_handler(RequestValidationError, handle_invalid_request)
    app.include_router(router)

    @app.get("/", response_class=PlainTextResponse)
    def root() -> str:
        return "Welcome to the AI Orchestrator API!"

    @app.get("/health")
    def health() -> Dict[str, str]:
        return {"status": "ok"}

    return app
