"""
=============================================================================
ACCESS LOGGING
=============================================================================

One record per connection, written when the connection is done.

=============================================================================
LOG FORMATS
=============================================================================

TEXT (Apache-like, for humans and grep):

    127.0.0.1 - - [19/Oct/2026:10:00:00 +0000] "GET /index.html HTTP/1.0" 200 79 0.41ms

JSON (one object per line, for log aggregators):

    {"connection_id": "3f2a9c1d", "client_ip": "127.0.0.1",
     "request": "GET /index.html HTTP/1.0", "status_code": 200,
     "bytes_sent": 79, "duration_ms": 0.41, "timestamp": "..."}

A connection that sent nothing gets status "-" and request "-": it was
closed without a response.

=============================================================================
"""

import json
import time
import logging
from dataclasses import dataclass
from typing import Optional


# Namespaced so access logs can be routed separately:
#   logging.getLogger("staticserver.access").addHandler(file_handler)
logger = logging.getLogger("staticserver.access")


@dataclass
class RequestLog:
    """
    Structured log entry for one connection.

    Attributes:
        connection_id: Connection identifier, matches other log lines.
        client_ip: Peer address.
        request_line: "METHOD TARGET VERSION", or None if nothing parsed.
        status_code: Status sent, or None if no response was sent.
        bytes_sent: Bytes written to the socket.
        duration_ms: Time from accept to close.
        timestamp: When the record was created.
    """

    connection_id: str
    client_ip: str
    request_line: Optional[str]
    status_code: Optional[int]
    bytes_sent: int
    duration_ms: float
    timestamp: str

    def to_dict(self) -> dict:
        return {
            "connection_id": self.connection_id,
            "client_ip": self.client_ip,
            "request": self.request_line,
            "status_code": self.status_code,
            "bytes_sent": self.bytes_sent,
            "duration_ms": round(self.duration_ms, 2),
            "timestamp": self.timestamp,
        }

    def to_text(self) -> str:
        request = self.request_line or "-"
        status = self.status_code if self.status_code is not None else "-"
        return (
            f'{self.client_ip} - - [{self.timestamp}] '
            f'"{request}" {status} '
            f'{self.bytes_sent} {self.duration_ms:.2f}ms'
        )


class AccessLogger:
    """
    Emits RequestLog records to the "staticserver.access" logger.

    Usage:
        access = AccessLogger(log_format="json")
        access.log(entry)
    """

    def __init__(self, log_format: str = "text", log_level: int = logging.INFO):
        """
        Args:
            log_format: "text" or "json".
            log_level: Level used for access records.
        """
        self.log_format = log_format
        self.log_level = log_level

    def record(
        self,
        connection_id: str,
        client_ip: str,
        request_line: Optional[str],
        status_code: Optional[int],
        bytes_sent: int,
        started_at: float,
    ) -> RequestLog:
        """Build a RequestLog, measuring duration from started_at."""
        return RequestLog(
            connection_id=connection_id,
            client_ip=client_ip,
            request_line=request_line,
            status_code=None if status_code is None else int(status_code),
            bytes_sent=bytes_sent,
            duration_ms=(time.time() - started_at) * 1000,
            timestamp=time.strftime("%d/%b/%Y:%H:%M:%S %z"),
        )

    def log(self, entry: RequestLog) -> None:
        if self.log_format == "json":
            logger.log(self.log_level, json.dumps(entry.to_dict()))
        else:
            logger.log(self.log_level, entry.to_text())
