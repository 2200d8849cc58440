"""
api/routes/legal_documents.py -- Legal document editor routes.

Routes (preview is registered before /{id} so it is not captured as an id):
  GET    /api/documentos-juridicos           -- list, newest first
  POST   /api/documentos-juridicos           -- create
  POST   /api/documentos-juridicos/preview   -- substitute {{campo}} placeholders
  GET    /api/documentos-juridicos/{id}      -- detail
  PATCH  /api/documentos-juridicos/{id}      -- update title/content/client
  DELETE /api/documentos-juridicos/{id}      -- delete

Content is stored exactly as written; placeholders are only substituted by
the preview endpoint.
"""

from fastapi import APIRouter, Depends, HTTPException, Request, Response

from api import audit as audit_log
from api.models import LegalDocumentCreate, LegalDocumentPatch, LegalDocumentResponse, PreviewRequest, PreviewResponse
from api.routes.clients import get_client_or_404
from audit.models import AuditAction
from auth.dependencies import BUSINESS, require_password_change_satisfied
from auth.models import User
from records.interpolation import client_field_values, interpolate
from records.models import LegalDocument
from records.store import RecordsStore

router = APIRouter(dependencies=BUSINESS)


@router.get("/documentos-juridicos", response_model=list[LegalDocumentResponse])
def list_legal_documents(request: Request) -> list[LegalDocumentResponse]:
    records: RecordsStore = request.app.state.records
    return [legal_to_response(d) for d in records.list_legal_documents()]


@router.post("/documentos-juridicos", response_model=LegalDocumentResponse, status_code=201)
def create_legal_document(
    request: Request,
    body: LegalDocumentCreate,
    current_user: User = Depends(require_password_change_satisfied),
) -> LegalDocumentResponse:
    records: RecordsStore = request.app.state.records
    if body.client_id is not None:
        get_client_or_404(records, body.client_id)

    document_id = records.create_legal_document(
        LegalDocument(
            title=body.title.strip(),
            content=body.content,
            client_id=body.client_id,
            created_by_id=current_user.id,
        )
    )
    audit_log.record(
        request,
        current_user,
        AuditAction.create_legal_document,
        entity="documento_juridico",
        entity_id=document_id,
        detail=f"Created legal document {body.title.strip()}",
    )
    return legal_to_response(records.get_legal_document(document_id))


@router.post("/documentos-juridicos/preview", response_model=PreviewResponse)
def preview(request: Request, body: PreviewRequest) -> PreviewResponse:
    """Render content with the selected client's values. Nothing is stored or audited."""
    records: RecordsStore = request.app.state.records
    if body.client_id is None:
        return PreviewResponse(content=body.content)
    client = get_client_or_404(records, body.client_id)
    return PreviewResponse(content=interpolate(body.content, client_field_values(client)))


@router.get("/documentos-juridicos/{document_id}", response_model=LegalDocumentResponse)
def get_legal_document(request: Request, document_id: int) -> LegalDocumentResponse:
    records: RecordsStore = request.app.state.records
    return legal_to_response(_get_or_404(records, document_id))


@router.patch("/documentos-juridicos/{document_id}", response_model=LegalDocumentResponse)
def update_legal_document(
    request: Request,
    document_id: int,
    body: LegalDocumentPatch,
    current_user: User = Depends(require_password_change_satisfied),
) -> LegalDocumentResponse:
    records: RecordsStore = request.app.state.records
    existing = _get_or_404(records, document_id)

    # exclude_unset keeps an explicit "client_id": null (detach)
    updates = body.model_dump(exclude_unset=True)
    for required in ("title", "content"):
        if required in updates and updates[required] is None:
            updates.pop(required)
    if not updates:
        raise HTTPException(
            status_code=400,
            detail={"code": "no_changes", "message": "No fields to update."},
        )
    if updates.get("client_id") is not None:
        get_client_or_404(records, updates["client_id"])
    if "title" in updates:
        updates["title"] = updates["title"].strip()

    records.update_legal_document(document_id, **updates)
    audit_log.record(
        request,
        current_user,
        AuditAction.edit_legal_document,
        entity="documento_juridico",
        entity_id=document_id,
        detail=f"Updated legal document {existing.title}",
    )
    return legal_to_response(records.get_legal_document(document_id))


@router.delete("/documentos-juridicos/{document_id}", status_code=204)
def delete_legal_document(
    request: Request,
    document_id: int,
    current_user: User = Depends(require_password_change_satisfied),
) -> Response:
    records: RecordsStore = request.app.state.records
    existing = _get_or_404(records, document_id)
    records.delete_legal_document(document_id)

    audit_log.record(
        request,
        current_user,
        AuditAction.delete_legal_document,
        entity="documento_juridico",
        entity_id=document_id,
        detail=f"Deleted legal document {existing.title}",
    )
    return Response(status_code=204)


def _get_or_404(records: RecordsStore, document_id: int) -> LegalDocument:
    document = records.get_legal_document(document_id)
    if document is None:
        raise HTTPException(
            status_code=404,
            detail={"code": "not_found", "message": "Legal document not found."},
        )
    return document


def legal_to_response(document: LegalDocument) -> LegalDocumentResponse:
    return LegalDocumentResponse(
        id=document.id,
        client_id=document.client_id,
        title=document.title,
        content=document.content,
        created_by_id=document.created_by_id,
        created_at=document.created_at,
        updated_at=document.updated_at,
    )
