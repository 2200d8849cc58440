"""
api/routes/clients.py -- Client registry routes.

Routes:
  GET    /api/clientes              -- list clients, newest first
  POST   /api/clientes              -- create client (409 on duplicate tax_id)
  GET    /api/clientes/{id}         -- client detail
  PATCH  /api/clientes/{id}         -- update client fields
  DELETE /api/clientes/{id}         -- delete client, its documents and their files
  GET    /api/clientes/{id}/campos  -- editor placeholder values for the client

BUSINESS gate group: authenticated and past the first-access password change.
"""

import logging

from fastapi import APIRouter, Depends, HTTPException, Request, Response
from sqlalchemy.exc import IntegrityError

from api import audit as audit_log
from api.models import ClientCreate, ClientPatch, ClientResponse
from audit.models import AuditAction
from auth.dependencies import BUSINESS, require_password_change_satisfied
from auth.models import User
from records.files import FileStorage
from records.interpolation import client_field_values
from records.models import Client
from records.store import RecordsStore

logger = logging.getLogger("officedesk.records")

router = APIRouter(dependencies=BUSINESS)

_DUPLICATE_TAX_ID = {"code": "conflict", "message": "A client with that CPF/CNPJ already exists."}


@router.get("/clientes", response_model=list[ClientResponse])
def list_clients(request: Request) -> list[ClientResponse]:
    records: RecordsStore = request.app.state.records
    return [client_to_response(c) for c in records.list_clients()]


@router.post("/clientes", response_model=ClientResponse, status_code=201)
def create_client(
    request: Request,
    body: ClientCreate,
    current_user: User = Depends(require_password_change_satisfied),
) -> ClientResponse:
    records: RecordsStore = request.app.state.records
    values = body.model_dump()
    if values.get("state"):
        values["state"] = values["state"].upper()
    if values.get("email") is not None:
        values["email"] = str(values["email"])
    try:
        client_id = records.create_client(Client(**values), created_by_id=current_user.id)
    except IntegrityError as exc:
        raise HTTPException(status_code=409, detail=_DUPLICATE_TAX_ID) from exc

    audit_log.record(
        request,
        current_user,
        AuditAction.create_client,
        entity="cliente",
        entity_id=client_id,
        detail=f"Created client {body.name}",
    )
    return client_to_response(records.get_client(client_id))


@router.get("/clientes/{client_id}", response_model=ClientResponse)
def get_client(request: Request, client_id: int) -> ClientResponse:
    records: RecordsStore = request.app.state.records
    return client_to_response(get_client_or_404(records, client_id))


@router.patch("/clientes/{client_id}", response_model=ClientResponse)
def update_client(
    request: Request,
    client_id: int,
    body: ClientPatch,
    current_user: User = Depends(require_password_change_satisfied),
) -> ClientResponse:
    records: RecordsStore = request.app.state.records
    existing = get_client_or_404(records, client_id)

    updates = body.model_dump(exclude_unset=True)
    for required in ("kind", "name", "tax_id"):
        if required in updates and updates[required] is None:
            raise HTTPException(
                status_code=400,
                detail={"code": "validation_error", "message": f"{required} cannot be null."},
            )
    if updates.get("state"):
        updates["state"] = updates["state"].upper()
    if updates.get("email") is not None:
        updates["email"] = str(updates["email"])
    if not updates:
        raise HTTPException(
            status_code=400,
            detail={"code": "no_changes", "message": "No fields to update."},
        )

    try:
        records.update_client(client_id, **updates)
    except IntegrityError as exc:
        raise HTTPException(status_code=409, detail=_DUPLICATE_TAX_ID) from exc

    audit_log.record(
        request,
        current_user,
        AuditAction.edit_client,
        entity="cliente",
        entity_id=client_id,
        detail=f"Updated client {existing.name}",
    )
    return client_to_response(records.get_client(client_id))


@router.delete("/clientes/{client_id}", status_code=204)
def delete_client(
    request: Request,
    client_id: int,
    current_user: User = Depends(require_password_change_satisfied),
) -> Response:
    """Delete the client with its documents; legal documents are detached, not deleted."""
    records: RecordsStore = request.app.state.records
    files: FileStorage = request.app.state.files
    existing = get_client_or_404(records, client_id)

    paths = records.delete_client(client_id)
    for path in paths:
        files.delete(path)
    logger.info("Deleted client id=%s with %d document file(s)", client_id, len(paths))

    audit_log.record(
        request,
        current_user,
        AuditAction.delete_client,
        entity="cliente",
        entity_id=client_id,
        detail=f"Deleted client {existing.name}",
    )
    return Response(status_code=204)


@router.get("/clientes/{client_id}/campos", response_model=dict[str, str])
def client_fields(request: Request, client_id: int) -> dict[str, str]:
    """Return the {{campo}} placeholder values the editor can insert for this client."""
    records: RecordsStore = request.app.state.records
    return client_field_values(get_client_or_404(records, client_id))


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def get_client_or_404(records: RecordsStore, client_id: int) -> Client:
    client = records.get_client(client_id)
    if client is None:
        raise HTTPException(
            status_code=404,
            detail={"code": "not_found", "message": "Client not found."},
        )
    return client


def client_to_response(client: Client) -> ClientResponse:
    return ClientResponse(
        id=client.id,
        kind=client.kind,
        name=client.name,
        tax_id=client.tax_id,
        registration_id=client.registration_id,
        birth_date=client.birth_date,
        birth_place=client.birth_place,
        occupation=client.occupation,
        postal_code=client.postal_code,
        street=client.street,
        number=client.number,
        complement=client.complement,
        district=client.district,
        city=client.city,
        state=client.state,
        phone=client.phone,
        mobile=client.mobile,
        email=client.email,
        notes=client.notes,
        created_by_id=client.created_by_id,
        created_at=client.created_at,
        updated_at=client.updated_at,
    )
