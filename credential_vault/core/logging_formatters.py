"""
JSON log rendering for the credential vault.

Each record becomes one line holding a fixed envelope (``service``,
``severity``, ``logger``, ``event``, ``source``) plus optional ``request``,
``context`` and ``error`` sections. Vault log lines never carry secrets:
``AppLogger`` callers only pass ids and field names as context.
"""

import json
import logging
from datetime import datetime, timezone

REQUEST_ATTRIBUTES = ("request_id", "user_id", "ip", "http_method", "path")


class StructuredJSONFormatter(logging.Formatter):
    """Render a log record as a single-line JSON document."""

    def __init__(self, *args, service="credential-vault", **kwargs):
        super().__init__(*args, **kwargs)
        self.service = service

    def format(self, record):
        document = {
            "time": datetime.fromtimestamp(record.created, tz=timezone.utc).isoformat(),
            "service": self.service,
            "severity": record.levelname,
            "logger": record.name,
            "event": record.getMessage(),
            "source": f"{record.module}:{record.lineno}",
        }

        request = self._request_section(record)
        if request:
            document["request"] = request

        context = getattr(record, "context", None)
        if isinstance(context, dict) and context:
            document["context"] = context

        if record.exc_info:
            document["error"] = self._error_section(record)
        elif record.stack_info:
            document["stack"] = self.formatStack(record.stack_info)

        return json.dumps(document, default=str)

    @staticmethod
    def _request_section(record):
        section = {}
        for attribute in REQUEST_ATTRIBUTES:
            value = getattr(record, attribute, None)
            if value not in (None, ""):
                section[attribute] = value
        return section

    def _error_section(self, record):
        exc_type, exc_value, _ = record.exc_info
        return {
            "type": exc_type.__name__ if exc_type else None,
            "detail": str(exc_value) if exc_value is not None else "",
            "traceback": self.formatException(record.exc_info),
        }
