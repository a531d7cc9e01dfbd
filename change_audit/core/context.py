# change_audit/core/context.py

import contextvars

correlation_id_ctx = contextvars.ContextVar("correlation_id", default=None)
user_id_ctx = contextvars.ContextVar("user_id", default=None)
tenant_id_ctx = contextvars.ContextVar("tenant_id", default=None)
