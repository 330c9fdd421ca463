import json
import logging

from oidc_flow.app.logging_config import JsonFormatter


def test_json_formatter_includes_error_title():
    record = logging.LogRecord("oidc_flow.classifier", logging.ERROR, __file__, 1, "Refresh Token Error : boom", None, None)
    record.title = "Refresh Token Error"

    payload = json.loads(JsonFormatter().format(record))

    assert payload["level"] == "error"
    assert payload["logger"] == "oidc_flow.classifier"
    assert payload["message"] == "Refresh Token Error : boom"
    assert payload["title"] == "Refresh Token Error"


def test_json_formatter_without_extras():
    record = logging.LogRecord("oidc_flow.handler", logging.INFO, __file__, 1, "hello %s", ("world",), None)
    payload = json.loads(JsonFormatter().format(record))
    assert payload["message"] == "hello world"
    assert "title" not in payload
