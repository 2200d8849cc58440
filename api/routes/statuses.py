"""
api/routes/statuses.py -- Document status catalog.

Routes:
  GET    /api/status-documentos        -- active entries ordered by order (BUSINESS)
  POST   /api/status-documentos        -- create entry (ADMIN)
  PATCH  /api/status-documentos/{id}   -- update entry (ADMIN)
  DELETE /api/status-documentos/{id}   -- delete entry (ADMIN)

Reads and writes sit on different routers so each carries one gate list.
Documents already holding a deleted or deactivated status keep the value;
only new assignments are validated against the catalog.
"""

from fastapi import APIRouter, Depends, HTTPException, Request, Response
from sqlalchemy.exc import IntegrityError

from api import audit as audit_log
from api.models import StatusCreate, StatusPatch, StatusResponse
from audit.models import AuditAction
from auth.dependencies import ADMIN, BUSINESS, require_admin
from auth.models import User
from records.models import DocumentStatus
from records.store import RecordsStore

router = APIRouter(dependencies=BUSINESS)
admin_router = APIRouter(dependencies=ADMIN)

_DUPLICATE_NAME = {"code": "conflict", "message": "A status with that name already exists."}


@router.get("/status-documentos", response_model=list[StatusResponse])
def list_statuses(request: Request) -> list[StatusResponse]:
    records: RecordsStore = request.app.state.records
    return [status_to_response(s) for s in records.list_statuses()]


@admin_router.post("/status-documentos", response_model=StatusResponse, status_code=201)
def create_status(
    request: Request,
    body: StatusCreate,
    current_user: User = Depends(require_admin),
) -> StatusResponse:
    records: RecordsStore = request.app.state.records
    try:
        status_id = records.create_status(DocumentStatus(**body.model_dump()))
    except IntegrityError as exc:
        raise HTTPException(status_code=409, detail=_DUPLICATE_NAME) from exc

    audit_log.record(
        request,
        current_user,
        AuditAction.create_document_status,
        entity="status_documento",
        entity_id=status_id,
        detail=f"Created status {body.name}",
    )
    return status_to_response(records.get_status(status_id))


@admin_router.patch("/status-documentos/{status_id}", response_model=StatusResponse)
def update_status(
    request: Request,
    status_id: int,
    body: StatusPatch,
    current_user: User = Depends(require_admin),
) -> StatusResponse:
    records: RecordsStore = request.app.state.records
    existing = _get_or_404(records, status_id)

    updates = body.model_dump(exclude_unset=True, exclude_none=True)
    if not updates:
        raise HTTPException(
            status_code=400,
            detail={"code": "no_changes", "message": "No fields to update."},
        )
    try:
        records.update_status(status_id, **updates)
    except IntegrityError as exc:
        raise HTTPException(status_code=409, detail=_DUPLICATE_NAME) from exc

    audit_log.record(
        request,
        current_user,
        AuditAction.edit_document_status,
        entity="status_documento",
        entity_id=status_id,
        detail=f"Updated status {existing.name}",
    )
    return status_to_response(records.get_status(status_id))


@admin_router.delete("/status-documentos/{status_id}", status_code=204)
def delete_status(
    request: Request,
    status_id: int,
    current_user: User = Depends(require_admin),
) -> Response:
    records: RecordsStore = request.app.state.records
    existing = _get_or_404(records, status_id)
    records.delete_status(status_id)

    audit_log.record(
        request,
        current_user,
        AuditAction.delete_document_status,
        entity="status_documento",
        entity_id=status_id,
        detail=f"Deleted status {existing.name}",
    )
    return Response(status_code=204)


def _get_or_404(records: RecordsStore, status_id: int) -> DocumentStatus:
    status = records.get_status(status_id)
    if status is None:
        raise HTTPException(
            status_code=404,
            detail={"code": "not_found", "message": "Document status not found."},
        )
    return status


def status_to_response(status: DocumentStatus) -> StatusResponse:
    return StatusResponse(
        id=status.id,
        name=status.name,
        description=status.description,
        color=status.color,
        order=status.order,
        is_active=status.is_active,
    )
