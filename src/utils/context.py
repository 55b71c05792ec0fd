from contextvars import ContextVar

# Designer session id, attached to every log record
session_id: ContextVar[str | None] = ContextVar[str | None]("session_id", default=None)

# Product variant the current session is customizing
variant_id: ContextVar[str | None] = ContextVar[str | None]("variant_id", default=None)
