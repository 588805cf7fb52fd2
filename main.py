import json
import logging
from pathlib import Path
from typing import List, Optional

from dotenv import load_dotenv
import typer
from pydantic import ValidationError
import uvicorn

from document_automation.api import create_app
from document_automation.automation import AutomationDispatcher
from document_automation.config import Settings
from document_automation.exceptions import DocumentAutomationError
from document_automation.generation import GenerationAdapter, build_backend_client
from document_automation.orchestrator import ExtractionOrchestrator
from document_automation.schema import AutomationRequest

load_dotenv()


app = typer.Typer(add_completion=False)


def configure_logging(log_level: str, log_path: Optional[Path] = None) -> None:
    handlers: List[logging.Handler] = [logging.StreamHandler()]
    if log_path is not None:
        log_path.parent.mkdir(parents=True, exist_ok=True)
        handlers.append(logging.FileHandler(log_path))
    logging.basicConfig(
        level=getattr(logging, log_level.upper(), logging.INFO),
        format="%(asctime)s %(levelname)s %(name)s - %(message)s",
        handlers=handlers,
    )


@app.command()
def extract(
    files: List[Path],
    query: str = typer.Option(
        ..., "--query", "-q", help="Question to answer from each document"
    ),
    output: Path = typer.Option(
        Path("extractions.xlsx"),
        "--output",
        "-o",
        help="Output Excel file path",
    ),
    log_level: str = typer.Option(
        "INFO",
        "--log-level",
        help="Logging level (DEBUG, INFO, WARNING, ERROR)",
    ),
):
    """
    Extract key metrics answering QUERY from each .pdf/.txt document into an Excel sheet.
    """
    log_path = output.with_suffix(".log")
    configure_logging(log_level, log_path)
    logger = logging.getLogger(__name__)
    logger.info("Logging to %s", log_path)

    try:
        settings = Settings.from_env()
        adapter = GenerationAdapter(build_backend_client(settings.require_api_key()))
    except DocumentAutomationError as exc:
        typer.echo(f"Error: {exc.message}", err=True)
        raise typer.Exit(code=1)

    orchestrator = ExtractionOrchestrator(
        adapter,
        model_name=settings.model_name,
        strict_schema=settings.strict_schema,
    )
    results = orchestrator.process(files=files, user_query=query)
    orchestrator.to_excel(results, output)
    for result in results:
        typer.echo(f"{result.document.name}: {result.status} ({result.error or 'ok'})")
    typer.echo(f"Wrote results to {output}")


@app.command("send-alert")
def send_alert(
    context: Path = typer.Argument(
        ..., help="JSON file holding a saved /extract response (extractedData, fullDocumentText, userQuery)"
    ),
    recipient: str = typer.Option(..., "--recipient", "-r", help="Recipient email address"),
    log_level: str = typer.Option("INFO", "--log-level"),
):
    """
    Forward a previous extraction to the automation webhook.
    """
    configure_logging(log_level)
    try:
        saved = json.loads(context.read_text(encoding="utf-8"))
    except (OSError, ValueError) as exc:
        typer.echo(f"Error: could not read {context}: {exc}", err=True)
        raise typer.Exit(code=1)
    if not isinstance(saved, dict):
        typer.echo(f"Error: {context} must hold a JSON object", err=True)
        raise typer.Exit(code=1)

    try:
        settings = Settings.from_env()
        request = AutomationRequest(
            full_document_text=saved.get("fullDocumentText"),
            extracted_data=saved.get("extractedData"),
            user_query=saved.get("userQuery"),
            recipient_email=recipient,
        )
        dispatcher = AutomationDispatcher(settings.webhook_url, timeout=settings.automation_timeout)
        result = dispatcher.dispatch(request)
    except ValidationError as exc:
        typer.echo(f"Error: {context} has invalid fields: {exc}", err=True)
        raise typer.Exit(code=1)
    except DocumentAutomationError as exc:
        typer.echo(f"Error: {exc.message}", err=True)
        raise typer.Exit(code=1)
    typer.echo(json.dumps(result.model_dump(by_alias=True), indent=2))


@app.command()
def serve(
    host: Optional[str] = typer.Option(None, "--host"),
    port: Optional[int] = typer.Option(None, "--port"),
):
    """
    Run the HTTP API.
    """
    try:
        settings = Settings.from_env()
    except DocumentAutomationError as exc:
        typer.echo(f"Error: {exc.message}", err=True)
        raise typer.Exit(code=1)
    configure_logging(settings.log_level)
    uvicorn.run(
        create_app(settings),
        host=host or settings.host,
        port=port or settings.port,
        log_level=settings.log_level.lower(),
    )


def main():
    app()


if __name__ == "__main__":
    main()
