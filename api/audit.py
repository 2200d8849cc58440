"""
api/audit.py -- Request-side helpers for writing audit entries.

Routes call record() after a mutation has succeeded. The write is synchronous
and not wrapped: if it raises, the exception reaches the generic 500 handler
and the already-committed mutation stays committed.
"""

from __future__ import annotations

from fastapi import Request

from audit.models import AuditAction, AuditLogEntry
from audit.store import AuditStore
from auth.models import User


def client_ip(request: Request) -> str | None:
    """Return the first X-Forwarded-For hop, else the socket peer address."""
    forwarded = request.headers.get("x-forwarded-for")
    if forwarded:
        first = forwarded.split(",")[0].strip()
        if first:
            return first
    return request.client.host if request.client else None


def record(
    request: Request,
    user: User,
    action: AuditAction,
    entity: str | None = None,
    entity_id: int | None = None,
    detail: str | None = None,
) -> AuditLogEntry:
    audit: AuditStore = request.app.state.audit
    return audit.record(
        user.id,
        user.name,
        action,
        entity=entity,
        entity_id=entity_id,
        detail=detail,
        ip_address=client_ip(request),
    )
