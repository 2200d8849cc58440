"""
api/routes/documents.py -- Client document routes.

Routes (in registration order to avoid FastAPI path capture conflicts):
  GET    /api/documentos                 -- list documents (?client_id= filter)
  POST   /api/documentos/upload          -- multipart upload (PDF, JPEG, PNG)
  GET    /api/documentos/{id}            -- document metadata
  GET    /api/documentos/{id}/arquivo    -- download the stored file
  PATCH  /api/documentos/{id}            -- update name/description/status
  DELETE /api/documentos/{id}            -- delete file and row

File uploads:
  /documentos/upload accepts multipart/form-data with fields file, client_id, and
  optional name, description and status. File size is capped at
  MAX_UPLOAD_BYTES (10 MB). Type is taken from the part's content type; only
  application/pdf, image/jpeg and image/png are accepted. If the row insert
  fails after the file is written, the file is removed before the error
  propagates.

Status values: one of the built-in statuses or the name of an active entry in
the status catalog.
"""

import logging
from typing import Optional

from fastapi import APIRouter, Depends, File, Form, HTTPException, Request, Response, UploadFile
from fastapi.responses import FileResponse

from api import audit as audit_log
from api.models import DocumentPatch, DocumentResponse, ErrorDetail
from api.routes.clients import get_client_or_404
from audit.models import AuditAction
from auth.dependencies import BUSINESS, require_password_change_satisfied
from auth.models import User
from core.config import get_settings
from records.files import MEDIA_TYPES, FileStorage, classify_upload
from records.models import DEFAULT_DOCUMENT_STATUSES, Document
from records.store import RecordsStore

logger = logging.getLogger("officedesk.records")

router = APIRouter(dependencies=BUSINESS)


@router.get("/documentos", response_model=list[DocumentResponse])
def list_documents(request: Request, client_id: Optional[int] = None) -> list[DocumentResponse]:
    records: RecordsStore = request.app.state.records
    return [document_to_response(d) for d in records.list_documents(client_id=client_id)]


@router.post("/documentos/upload", response_model=DocumentResponse, status_code=201)
def upload_document(
    request: Request,
    file: UploadFile = File(...),
    client_id: int = Form(...),
    name: Optional[str] = Form(default=None, max_length=255),
    description: Optional[str] = Form(default=None, max_length=2000),
    status: Optional[str] = Form(default=None, max_length=50),
    current_user: User = Depends(require_password_change_satisfied),
) -> DocumentResponse:
    """Store an uploaded file for a client and register it as a document."""
    records: RecordsStore = request.app.state.records
    files: FileStorage = request.app.state.files
    max_bytes = get_settings().max_upload_bytes

    get_client_or_404(records, client_id)

    kind = classify_upload(file.content_type)
    if kind is None:
        raise HTTPException(
            status_code=400,
            detail=ErrorDetail(
                code="unsupported_type",
                message="Only PDF, JPEG and PNG files are accepted.",
            ).model_dump(),
        )
    file_type, extension = kind

    status_value = status or DEFAULT_DOCUMENT_STATUSES[0]
    _ensure_valid_status(records, status_value)

    # Size guard -- read up to the limit + 1 byte; reject if over limit
    data = file.file.read(max_bytes + 1)
    if len(data) > max_bytes:
        raise HTTPException(
            status_code=413,
            detail=ErrorDetail(
                code="file_too_large",
                message=f"Upload must be {max_bytes // (1024 * 1024)} MB or smaller.",
            ).model_dump(),
        )
    if not data:
        raise HTTPException(
            status_code=400,
            detail=ErrorDetail(code="empty_file", message="Uploaded file is empty.").model_dump(),
        )

    file_name, path = files.save(data, extension)
    try:
        document_id = records.create_document(
            Document(
                client_id=client_id,
                name=(name or file.filename or file_name).strip() or file_name,
                description=description,
                file_name=file_name,
                file_type=file_type,
                size_bytes=len(data),
                file_path=path,
                status=status_value,
                uploaded_by_id=current_user.id,
            )
        )
    except Exception:
        files.delete(path)
        logger.warning("Removed orphan upload %s after failed insert", file_name)
        raise

    created = records.get_document(document_id)
    audit_log.record(
        request,
        current_user,
        AuditAction.upload_document,
        entity="documento",
        entity_id=document_id,
        detail=f"Uploaded {created.name} for client {client_id}",
    )
    return document_to_response(created)


@router.get("/documentos/{document_id}", response_model=DocumentResponse)
def get_document(request: Request, document_id: int) -> DocumentResponse:
    records: RecordsStore = request.app.state.records
    return document_to_response(_get_or_404(records, document_id))


@router.get("/documentos/{document_id}/arquivo")
def download_document(request: Request, document_id: int) -> FileResponse:
    records: RecordsStore = request.app.state.records
    files: FileStorage = request.app.state.files
    document = _get_or_404(records, document_id)
    if not files.exists(document.file_path):
        raise HTTPException(
            status_code=404,
            detail={"code": "file_missing", "message": "Stored file not found."},
        )
    return FileResponse(
        document.file_path,
        media_type=MEDIA_TYPES.get(document.file_type, "application/octet-stream"),
        filename=document.file_name,
    )


@router.patch("/documentos/{document_id}", response_model=DocumentResponse)
def update_document(
    request: Request,
    document_id: int,
    body: DocumentPatch,
    current_user: User = Depends(require_password_change_satisfied),
) -> DocumentResponse:
    records: RecordsStore = request.app.state.records
    existing = _get_or_404(records, document_id)

    updates = body.model_dump(exclude_unset=True, exclude_none=True)
    if not updates:
        raise HTTPException(
            status_code=400,
            detail={"code": "no_changes", "message": "No fields to update."},
        )
    if "status" in updates:
        _ensure_valid_status(records, updates["status"])

    records.update_document(document_id, **updates)
    detail = f"Updated document {existing.name}"
    if "status" in updates and updates["status"] != existing.status:
        detail += f" (status {existing.status} -> {updates['status']})"
    audit_log.record(
        request,
        current_user,
        AuditAction.edit_document,
        entity="documento",
        entity_id=document_id,
        detail=detail,
    )
    return document_to_response(records.get_document(document_id))


@router.delete("/documentos/{document_id}", status_code=204)
def delete_document(
    request: Request,
    document_id: int,
    current_user: User = Depends(require_password_change_satisfied),
) -> Response:
    records: RecordsStore = request.app.state.records
    files: FileStorage = request.app.state.files
    existing = _get_or_404(records, document_id)

    records.delete_document(document_id)
    files.delete(existing.file_path)

    audit_log.record(
        request,
        current_user,
        AuditAction.delete_document,
        entity="documento",
        entity_id=document_id,
        detail=f"Deleted document {existing.name}",
    )
    return Response(status_code=204)


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _get_or_404(records: RecordsStore, document_id: int) -> Document:
    document = records.get_document(document_id)
    if document is None:
        raise HTTPException(
            status_code=404,
            detail={"code": "not_found", "message": "Document not found."},
        )
    return document


def _ensure_valid_status(records: RecordsStore, status: str) -> None:
    if not records.is_valid_document_status(status):
        raise HTTPException(
            status_code=400,
            detail={"code": "invalid_status", "message": f"Unknown document status: {status}"},
        )


def document_to_response(document: Document) -> DocumentResponse:
    return DocumentResponse(
        id=document.id,
        client_id=document.client_id,
        name=document.name,
        description=document.description,
        file_name=document.file_name,
        file_type=document.file_type,
        size_bytes=document.size_bytes,
        status=document.status,
        status_updated_at=document.status_updated_at,
        uploaded_by_id=document.uploaded_by_id,
        uploaded_at=document.uploaded_at,
    )
