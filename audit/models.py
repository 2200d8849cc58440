"""
audit/models.py -- Audit trail entry and the fixed action vocabulary.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum


class AuditAction(str, Enum):
    """Every action code the application may write to the audit trail."""

    login = "login"
    logout = "logout"
    change_password = "alterar_senha"
    create_client = "criar_cliente"
    edit_client = "editar_cliente"
    delete_client = "excluir_cliente"
    upload_document = "upload_documento"
    edit_document = "editar_documento"
    delete_document = "excluir_documento"
    create_legal_document = "criar_documento_juridico"
    edit_legal_document = "editar_documento_juridico"
    delete_legal_document = "excluir_documento_juridico"
    create_user = "criar_usuario"
    edit_user = "editar_usuario"
    toggle_user_active = "alterar_status_usuario"
    create_document_status = "criar_status_documento"
    edit_document_status = "editar_status_documento"
    delete_document_status = "excluir_status_documento"


@dataclass(frozen=True)
class AuditLogEntry:
    """Immutable record of one audited action.

    user_id is a plain reference with no foreign key: the account may later be
    changed or gone. user_name is a snapshot taken at write time so historical
    entries stay readable regardless.
    """

    user_name: str
    action: str
    created_at: str  # ISO 8601 UTC
    id: int | None = None
    user_id: int | None = None  # None for system-initiated actions
    entity: str | None = None  # "cliente" | "documento" | "usuario" | ...
    entity_id: str | None = None
    detail: str | None = None
    ip_address: str | None = None
