"""Tests for log sanitizing."""

import json
import logging

from client_console.core.logging import SanitizingFormatter


def format_record(message, **extra):
    formatter = SanitizingFormatter(fmt="%(levelname)s %(name)s %(message)s")
    record = logging.LogRecord("console", logging.INFO, __file__, 1, message, None, None)
    for key, value in extra.items():
        setattr(record, key, value)
    return json.loads(formatter.format(record))


def test_sensitive_extra_fields_are_redacted():
    output = format_record(
        "Client created",
        tenant_admin_email="jane@acme.test",
        tenant_admin_mobile="+12345678901",
        organization_name="Acme",
    )

    assert output["tenant_admin_email"] == "***REDACTED***"
    assert output["tenant_admin_mobile"] == "***REDACTED***"
    assert output["organization_name"] == "Acme"


def test_token_query_parameter_is_redacted():
    output = format_record('"GET /api/v1/ws/clients?token=eyJhbGciOi.abc.def&x=1 HTTP/1.1"')

    assert "eyJhbGciOi" not in output["message"]
    assert "token=***REDACTED***&x=1" in output["message"]


def test_service_metadata_is_added():
    output = format_record("ready")

    assert output["service"] == "Client Console"
    assert "environment" in output
    assert "version" in output
