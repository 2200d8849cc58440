"""
audit/store.py -- Append-only persistence for the audit trail.

Pattern: Repository + Data Mapper, same as auth/store.py. The repository
exposes record() and read queries only: there is no update or delete method,
so the application cannot rewrite history.

record() runs synchronously inside the request that triggered it. It is not in
the same transaction as the business write it describes: if the insert fails,
the exception propagates (the request becomes a 500) but the already-committed
mutation stays. See DESIGN.md for the trade-off.
"""

from __future__ import annotations

import logging
from dataclasses import replace
from datetime import datetime, timezone

from sqlalchemy import Column, Integer, MetaData, String, Table, Text, func, select
from sqlalchemy.engine import Engine

from audit.models import AuditAction, AuditLogEntry
from core.database import DEFAULT_DB_URL, build_engine

logger = logging.getLogger("officedesk.audit")

_metadata = MetaData()

_audit_log = Table(
    "audit_log",
    _metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("user_id", Integer),  # no FK: may outlive the user row
    Column("user_name", String(255), nullable=False),  # snapshot at write time
    Column("action", String(50), nullable=False, index=True),
    Column("entity", String(50)),
    Column("entity_id", String(64)),
    Column("detail", Text),
    Column("created_at", String(32), nullable=False, index=True),
    Column("ip_address", String(64)),
)


def _now_iso() -> str:
    return datetime.now(timezone.utc).isoformat(timespec="microseconds")


class AuditStore:
    """Writer and reader for AuditLogEntry records.

    Usage:
        audit = AuditStore()
        audit.record(user.id, user.name, AuditAction.login, ip_address="10.0.0.1")
        audit.list_recent(100)
    """

    def __init__(self, db_url: str = DEFAULT_DB_URL) -> None:
        self.engine: Engine = build_engine(db_url)
        _metadata.create_all(self.engine)

    def record(
        self,
        user_id: int | None,
        user_name: str,
        action: AuditAction | str,
        entity: str | None = None,
        entity_id: int | str | None = None,
        detail: str | None = None,
        ip_address: str | None = None,
    ) -> AuditLogEntry:
        """Append one entry and return it with its assigned id."""
        action_code = action.value if isinstance(action, AuditAction) else AuditAction(action).value
        entry = AuditLogEntry(
            user_id=user_id,
            user_name=user_name,
            action=action_code,
            entity=entity,
            entity_id=str(entity_id) if entity_id is not None else None,
            detail=detail,
            created_at=_now_iso(),
            ip_address=ip_address,
        )
        with self.engine.connect() as conn:
            result = conn.execute(
                _audit_log.insert().values(
                    user_id=entry.user_id,
                    user_name=entry.user_name,
                    action=entry.action,
                    entity=entry.entity,
                    entity_id=entry.entity_id,
                    detail=entry.detail,
                    created_at=entry.created_at,
                    ip_address=entry.ip_address,
                )
            )
            conn.commit()
            entry_id = result.inserted_primary_key[0]
        logger.info("audit %s by %s (%s %s)", entry.action, user_name, entity or "-", entry.entity_id or "-")
        return replace(entry, id=entry_id)

    def list_recent(self, limit: int = 100) -> list[AuditLogEntry]:
        """Return the newest entries first."""
        with self.engine.connect() as conn:
            rows = conn.execute(
                _audit_log.select().order_by(_audit_log.c.created_at.desc(), _audit_log.c.id.desc()).limit(limit)
            ).fetchall()
        return [_row_to_entry(r) for r in rows]

    def list_for(self, action: AuditAction | str | None = None, user_id: int | None = None) -> list[AuditLogEntry]:
        """Return entries filtered by action and/or actor, oldest first."""
        query = _audit_log.select()
        if action is not None:
            code = action.value if isinstance(action, AuditAction) else action
            query = query.where(_audit_log.c.action == code)
        if user_id is not None:
            query = query.where(_audit_log.c.user_id == user_id)
        with self.engine.connect() as conn:
            rows = conn.execute(query.order_by(_audit_log.c.id)).fetchall()
        return [_row_to_entry(r) for r in rows]

    def count(self) -> int:
        with self.engine.connect() as conn:
            return conn.execute(select(func.count()).select_from(_audit_log)).scalar() or 0

    def close(self) -> None:
        self.engine.dispose()


def _row_to_entry(row) -> AuditLogEntry:
    return AuditLogEntry(
        id=row.id,
        user_id=row.user_id,
        user_name=row.user_name,
        action=row.action,
        entity=row.entity,
        entity_id=row.entity_id,
        detail=row.detail,
        created_at=row.created_at,
        ip_address=row.ip_address,
    )
