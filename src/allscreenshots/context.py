# -*- coding: utf-8 -*-
"""
Operation tracking across async calls.
"""
import uuid
from contextlib import contextmanager
from contextvars import ContextVar

# Context variable for operation ID (accessible across async calls)
operation_id_ctx: ContextVar[str | None] = ContextVar("operation_id", default=None)


def get_operation_id() -> str | None:
    """Get current operation ID from context."""
    return operation_id_ctx.get()


@contextmanager
def operation_scope(operation_id: str | None = None):
    """
    Bind an operation ID for the duration of one logical operation.

    Nested scopes reuse the outer ID so that a capture and the status
    queries it triggers log under the same identifier.
    """
    current = operation_id_ctx.get()
    if current is not None and operation_id is None:
        yield current
        return

    op_id = operation_id or uuid.uuid4().hex[:12]
    token = operation_id_ctx.set(op_id)
    try:
        yield op_id
    finally:
        operation_id_ctx.reset(token)
