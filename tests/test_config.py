import pytest

from document_automation import exceptions
from document_automation.config import DEFAULT_MODEL, Settings
from document_automation.schema import AutomationRequest, EXTRACTION_SCHEMA


def test_settings_defaults():
    settings = Settings.from_env({})
    assert settings.model_name == DEFAULT_MODEL
    assert settings.webhook_url is None
    assert settings.port == 4000
    assert settings.automation_timeout == 20.0
    assert settings.max_upload_bytes == 10 * 1024 * 1024
    assert settings.strict_schema is False


def test_settings_from_env():
    settings = Settings.from_env(
        {
            "GEMINI_API_KEY": "key",
            "N8N_WEBHOOK_URL": "https://hooks.example.com/x",
            "PORT": "8080",
            "STRICT_SCHEMA": "true",
            "MAX_UPLOAD_MB": "2",
        }
    )
    assert settings.require_api_key() == "key"
    assert settings.webhook_url == "https://hooks.example.com/x"
    assert settings.port == 8080
    assert settings.strict_schema is True
    assert settings.max_upload_bytes == 2 * 1024 * 1024


@pytest.mark.parametrize(
    "variable, value",
    [
        ("PORT", "abc"),
        ("AUTOMATION_TIMEOUT", "soon"),
        ("MAX_UPLOAD_MB", "-1"),
        ("STRICT_SCHEMA", "maybe"),
    ],
)
def test_invalid_values_raise_configuration_error(variable, value):
    with pytest.raises(exceptions.ConfigurationError) as excinfo:
        Settings.from_env({variable: value})
    assert variable in excinfo.value.message


def test_log_level_is_normalized():
    assert Settings.from_env({"LOG_LEVEL": " debug "}).log_level == "DEBUG"


def test_missing_api_key():
    with pytest.raises(exceptions.ConfigurationError) as excinfo:
        Settings.from_env({"GEMINI_API_KEY": ""}).require_api_key()
    assert "GEMINI_API_KEY" in excinfo.value.message


def test_schema_requires_all_top_level_fields():
    assert EXTRACTION_SCHEMA["required"] == ["documentType", "queryContext", "keyMetrics"]
    assert EXTRACTION_SCHEMA["properties"]["keyMetrics"]["type"] == "array"


def test_automation_request_accepts_wire_and_field_names():
    wire = AutomationRequest.model_validate({"userQuery": "q", "recipientEmail": "a@b.com"})
    named = AutomationRequest(user_query="q", recipient_email="a@b.com")
    assert wire == named
    assert wire.missing_fields() == ["fullDocumentText", "extractedData"]


def test_exception_error_codes():
    assert exceptions.UnsupportedFormat("docx").error_code == "unsupported_format"
    assert exceptions.ParseFailure().error_code == "parse_failed"
    assert exceptions.UnsupportedBackend().error_code == "unsupported_backend"
    assert exceptions.GenerationFailure().error_code == "generation_failed"
    assert exceptions.EndpointNotConfigured().error_code == "endpoint_not_configured"
    assert exceptions.AutomationDispatchFailure().error_code == "dispatch_failed"

    err = exceptions.NonJsonResponse("oops")
    assert isinstance(err, exceptions.DocumentAutomationError)
    assert err.raw_text == "oops"
    assert str(err).startswith("non_json_response:")

    missing = exceptions.MissingFields(["recipientEmail"])
    assert missing.fields == ["recipientEmail"]
    assert "recipientEmail" in missing.message
