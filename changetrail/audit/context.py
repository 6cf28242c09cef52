"""Operation-scoped audit context.

The context of a mutation is either passed explicitly to the engine or
bound for the duration of one logical operation:

    with audit_context(actor_id="user-42", ip_address=request_ip):
        await engine.update(conn, "users", sql, *args)

Bindings live in a ContextVar, so concurrent tasks never see each
other's actor data.
"""

from collections.abc import Iterator
from contextlib import contextmanager
from contextvars import ContextVar
from typing import Any

from changetrail.audit.models import AuditContext

_current_context: ContextVar[AuditContext | None] = ContextVar(
    "changetrail_audit_context", default=None
)


def current_context() -> AuditContext | None:
    """Return the context bound in the current task, if any."""
    return _current_context.get()


@contextmanager
def audit_context(
    context: AuditContext | None = None,
    **fields: Any,
) -> Iterator[AuditContext]:
    """Bind an AuditContext for the enclosed block.

    Accepts either a ready AuditContext or its fields as keyword
    arguments. Nested blocks override the outer binding until they exit.
    """
    bound = context if context is not None else AuditContext(**fields)
    token = _current_context.set(bound)
    try:
        yield bound
    finally:
        _current_context.reset(token)
