# change_audit/config/logging.py

import json
import logging
from datetime import datetime, timezone
from typing import Optional

from change_audit.config.settings import get_settings
from change_audit.core.context import correlation_id_ctx, tenant_id_ctx, user_id_ctx

# Attributes every LogRecord carries; anything else arrived through extra=.
_RESERVED_ATTRS = frozenset(
    vars(logging.LogRecord("", 0, "", 0, "", (), None)).keys()
) | {"message", "asctime"}


class JsonFormatter(logging.Formatter):
    def format(self, record):
        log_record = {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "level": record.levelname,
            "message": record.getMessage(),
            "logger": record.name,
            "correlation_id": correlation_id_ctx.get(),
            "user_id": user_id_ctx.get(),
            "tenant_id": tenant_id_ctx.get(),
        }
        for key, value in record.__dict__.items():
            if key not in _RESERVED_ATTRS:
                log_record[key] = value
        if record.exc_info:
            log_record["exc_info"] = self.formatException(record.exc_info)
        return json.dumps(log_record, default=str)


def configure_logging(log_level: Optional[str] = None) -> logging.Handler:
    """Send JSON lines to stderr. Level defaults to AuditSettings.log_level."""
    handler = logging.StreamHandler()
    handler.setFormatter(JsonFormatter())

    root_logger = logging.getLogger()
    root_logger.setLevel(log_level or get_settings().log_level)
    root_logger.addHandler(handler)
    return handler
