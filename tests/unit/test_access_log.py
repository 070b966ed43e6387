"""
Unit tests for access logging.
"""

import json
import logging
import time

from staticserver.access_log import AccessLogger, RequestLog
from staticserver.http.status_codes import HTTPStatus


def make_entry(**overrides) -> RequestLog:
    values = {
        "connection_id": "abcd1234",
        "client_ip": "127.0.0.1",
        "request_line": "GET /index.html HTTP/1.0",
        "status_code": 200,
        "bytes_sent": 79,
        "duration_ms": 0.5,
        "timestamp": "19/Oct/2026:10:00:00 +0000",
    }
    values.update(overrides)
    return RequestLog(**values)


class TestRequestLog:

    def test_to_text(self):
        text = make_entry().to_text()

        assert text.startswith("127.0.0.1 - - [19/Oct/2026:10:00:00 +0000] ")
        assert '"GET /index.html HTTP/1.0" 200 79 0.50ms' in text

    def test_to_text_without_request(self):
        text = make_entry(request_line=None, status_code=None, bytes_sent=0).to_text()
        assert '"-" - 0' in text

    def test_to_dict(self):
        data = make_entry(duration_ms=1.23456).to_dict()

        assert data["request"] == "GET /index.html HTTP/1.0"
        assert data["status_code"] == 200
        assert data["duration_ms"] == 1.23


class TestAccessLogger:

    def test_record(self):
        entry = AccessLogger().record(
            connection_id="abcd1234",
            client_ip="10.0.0.1",
            request_line=None,
            status_code=HTTPStatus.NOT_FOUND,
            bytes_sent=10,
            started_at=time.time(),
        )

        assert entry.status_code == 404
        assert type(entry.status_code) is int
        assert entry.duration_ms >= 0

    def test_text_output(self, caplog):
        caplog.set_level(logging.INFO, logger="staticserver.access")

        AccessLogger().log(make_entry())

        assert len(caplog.records) == 1
        assert caplog.records[0].name == "staticserver.access"
        assert '"GET /index.html HTTP/1.0" 200' in caplog.records[0].getMessage()

    def test_json_output(self, caplog):
        caplog.set_level(logging.INFO, logger="staticserver.access")

        AccessLogger(log_format="json").log(make_entry())

        data = json.loads(caplog.records[0].getMessage())
        assert data["connection_id"] == "abcd1234"
        assert data["status_code"] == 200
