"""Correlation IDs for tracing one request through services and SQL logs."""

import uuid
from contextvars import ContextVar, Token

correlation_id_var: ContextVar[str] = ContextVar("staybook_correlation_id", default="")

CORRELATION_ID_HEADER = "X-Correlation-ID"


def generate_correlation_id() -> str:
    return uuid.uuid4().hex


def get_correlation_id() -> str:
    """Correlation ID bound to the current context, or "" outside a request."""
    return correlation_id_var.get()


def set_correlation_id(cid: str) -> Token[str]:
    return correlation_id_var.set(cid)


def reset_correlation_id(token: Token[str]) -> None:
    correlation_id_var.reset(token)


def ensure_correlation_id(incoming: str | None) -> str:
    """Use the caller-supplied ID when it looks sane, otherwise mint one."""
    if incoming and len(incoming) <= 128 and incoming.isprintable():
        return incoming.strip()
    return generate_correlation_id()
