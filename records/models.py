"""
records/models.py -- Domain dataclasses for clients, documents and the editor.

These are pure data containers with zero logic. Persistence lives in
records/store.py, file handling in records/files.py.

id is None before the record is written to the database.
"""

from dataclasses import dataclass
from typing import Optional

# Built-in document statuses. The configurable catalog (DocumentStatus) adds to
# these; it never removes them.
DEFAULT_DOCUMENT_STATUSES = ("em_analise", "em_uso", "devolvido", "arquivado")


@dataclass
class Client:
    """A client of the office: an individual ("pf") or an organization ("pj").

    birth_date / birth_place only make sense for individuals; occupation holds
    the occupation of an individual or the trade sector of an organization.
    tax_id (CPF or CNPJ) is unique across all clients.
    """

    kind: str  # "pf" | "pj"
    name: str
    tax_id: str
    id: Optional[int] = None
    registration_id: Optional[str] = None  # RG or state registration
    birth_date: Optional[str] = None
    birth_place: Optional[str] = None
    occupation: Optional[str] = None
    # Address
    postal_code: Optional[str] = None
    street: Optional[str] = None
    number: Optional[str] = None
    complement: Optional[str] = None
    district: Optional[str] = None
    city: Optional[str] = None
    state: Optional[str] = None
    # Contact
    phone: Optional[str] = None
    mobile: Optional[str] = None
    email: Optional[str] = None
    notes: Optional[str] = None
    created_by_id: Optional[int] = None
    created_at: str = ""
    updated_at: str = ""


@dataclass
class Document:
    """An uploaded file bound to a client, with a review status."""

    client_id: int
    name: str
    file_name: str
    file_type: str  # "pdf" | "jpeg" | "png"
    size_bytes: int
    file_path: str
    status: str = "em_analise"
    description: Optional[str] = None
    id: Optional[int] = None
    uploaded_by_id: Optional[int] = None
    uploaded_at: str = ""
    status_updated_at: str = ""


@dataclass
class DocumentStatus:
    """A configurable document status (catalog entry)."""

    name: str
    color: str  # "#RRGGBB"
    order: int = 0
    description: Optional[str] = None
    is_active: bool = True
    id: Optional[int] = None


@dataclass
class LegalDocument:
    """A titled document written in the editor, optionally tied to a client."""

    title: str
    content: str  # editor HTML
    client_id: Optional[int] = None
    id: Optional[int] = None
    created_by_id: Optional[int] = None
    created_at: str = ""
    updated_at: str = ""
