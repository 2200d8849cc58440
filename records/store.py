"""
records/store.py -- SQLAlchemy-backed persistence for the office records.

Uses SQLAlchemy Core (not ORM) so the domain dataclasses in records/models.py
remain the authoritative domain representation. Swapping SQLite for PostgreSQL
is a connection string change, not a rewrite.

Pattern: Repository + Data Mapper. RecordsStore is the repository (one clean
interface per entity). The _row_to_* functions are the mappers. Route handlers
never touch SQL directly.

Security: all queries use bound parameters. No f-strings in SQL. Dynamic
update() calls only accept column names from per-table whitelists.

Usage:
    store = RecordsStore()                               # SQLite default
    store = RecordsStore("postgresql://user:pw@host/db") # PostgreSQL
    client_id = store.create_client(client, created_by_id=1)
    store.create_document(document)
    store.list_documents(client_id=client_id)
    store.close()
"""

from datetime import datetime, timezone
from typing import Optional

from sqlalchemy import Column, ForeignKey, Integer, MetaData, String, Table, Text, func, select
from sqlalchemy.engine import Engine

from core.database import DEFAULT_DB_URL, build_engine
from records.models import DEFAULT_DOCUMENT_STATUSES, Client, Document, DocumentStatus, LegalDocument

# ---------------------------------------------------------------------------
# Schema
# ---------------------------------------------------------------------------

metadata = MetaData()

_clients = Table(
    "clients",
    metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("kind", String(2), nullable=False),  # "pf" | "pj"
    Column("name", String(255), nullable=False),
    Column("tax_id", String(20), nullable=False, unique=True),
    Column("registration_id", String(30)),
    Column("birth_date", String(10)),  # YYYY-MM-DD
    Column("birth_place", String(255)),
    Column("occupation", String(255)),
    Column("postal_code", String(9)),
    Column("street", String(255)),
    Column("number", String(20)),
    Column("complement", String(255)),
    Column("district", String(255)),
    Column("city", String(255)),
    Column("state", String(2)),
    Column("phone", String(20)),
    Column("mobile", String(20)),
    Column("email", String(255)),
    Column("notes", Text),
    Column("created_by_id", Integer),
    Column("created_at", String(32), nullable=False),
    Column("updated_at", String(32), nullable=False),
)

_documents = Table(
    "documents",
    metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("client_id", Integer, ForeignKey("clients.id", ondelete="CASCADE"), nullable=False, index=True),
    Column("name", String(255), nullable=False),
    Column("description", Text),
    Column("file_name", String(255), nullable=False),
    Column("file_type", String(10), nullable=False),
    Column("size_bytes", Integer, nullable=False),
    Column("file_path", Text, nullable=False),
    Column("status", String(50), nullable=False, server_default="em_analise"),
    Column("status_updated_at", String(32), nullable=False),
    Column("uploaded_by_id", Integer),
    Column("uploaded_at", String(32), nullable=False),
)

_statuses = Table(
    "document_statuses",
    metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("name", String(50), nullable=False, unique=True),
    Column("description", Text),
    Column("color", String(7), nullable=False),
    Column("sort_order", Integer, nullable=False, server_default="0"),
    Column("is_active", Integer, nullable=False, server_default="1"),
)

_legal_documents = Table(
    "legal_documents",
    metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("client_id", Integer, ForeignKey("clients.id", ondelete="SET NULL"), index=True),
    Column("title", String(255), nullable=False),
    Column("content", Text, nullable=False),
    Column("created_by_id", Integer),
    Column("created_at", String(32), nullable=False),
    Column("updated_at", String(32), nullable=False),
)

_CLIENT_FIELDS = {
    "kind",
    "name",
    "tax_id",
    "registration_id",
    "birth_date",
    "birth_place",
    "occupation",
    "postal_code",
    "street",
    "number",
    "complement",
    "district",
    "city",
    "state",
    "phone",
    "mobile",
    "email",
    "notes",
}
_DOCUMENT_FIELDS = {"name", "description", "status"}
_STATUS_FIELDS = {"name", "description", "color", "order", "is_active"}
_LEGAL_FIELDS = {"title", "content", "client_id"}


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _now_iso() -> str:
    return datetime.now(timezone.utc).isoformat(timespec="microseconds")


def _check_fields(fields: dict, allowed: set) -> None:
    unknown = set(fields) - allowed
    if unknown:
        raise ValueError(f"Unknown fields: {sorted(unknown)!r}")


# ---------------------------------------------------------------------------
# Repository
# ---------------------------------------------------------------------------


class RecordsStore:
    """Repository for Client, Document, DocumentStatus and LegalDocument."""

    def __init__(self, db_url: str = DEFAULT_DB_URL) -> None:
        self.engine: Engine = build_engine(db_url)
        metadata.create_all(self.engine)

    # ------------------------------------------------------------------
    # Clients
    # ------------------------------------------------------------------

    def create_client(self, client: Client, created_by_id: Optional[int] = None) -> int:
        """Insert a client and return its id.

        Raises sqlalchemy.exc.IntegrityError if tax_id is already registered.
        """
        now = _now_iso()
        values = {f: getattr(client, f) for f in _CLIENT_FIELDS}
        with self.engine.connect() as conn:
            result = conn.execute(
                _clients.insert().values(**values, created_by_id=created_by_id, created_at=now, updated_at=now)
            )
            conn.commit()
            return result.inserted_primary_key[0]

    def get_client(self, client_id: int) -> Optional[Client]:
        with self.engine.connect() as conn:
            row = conn.execute(_clients.select().where(_clients.c.id == client_id)).fetchone()
        return _row_to_client(row) if row is not None else None

    def get_client_by_tax_id(self, tax_id: str) -> Optional[Client]:
        with self.engine.connect() as conn:
            row = conn.execute(_clients.select().where(_clients.c.tax_id == tax_id)).fetchone()
        return _row_to_client(row) if row is not None else None

    def list_clients(self) -> list[Client]:
        """Return all clients, newest first."""
        with self.engine.connect() as conn:
            rows = conn.execute(_clients.select().order_by(_clients.c.created_at.desc(), _clients.c.id.desc())).fetchall()
        return [_row_to_client(r) for r in rows]

    def update_client(self, client_id: int, **fields) -> bool:
        """Update client fields and bump updated_at. Returns False if not found.

        Raises sqlalchemy.exc.IntegrityError if tax_id collides with another client.
        """
        _check_fields(fields, _CLIENT_FIELDS)
        with self.engine.connect() as conn:
            result = conn.execute(
                _clients.update().where(_clients.c.id == client_id).values(**fields, updated_at=_now_iso())
            )
            conn.commit()
        return result.rowcount > 0

    def delete_client(self, client_id: int) -> list[str]:
        """Delete a client with its documents; detach its legal documents.

        Done explicitly in one transaction rather than trusting the SQLite
        foreign_keys pragma. Returns the file paths of the removed documents
        so the caller can delete the files.
        """
        with self.engine.begin() as conn:
            paths = [
                r.file_path
                for r in conn.execute(select(_documents.c.file_path).where(_documents.c.client_id == client_id))
            ]
            conn.execute(_documents.delete().where(_documents.c.client_id == client_id))
            conn.execute(
                _legal_documents.update().where(_legal_documents.c.client_id == client_id).values(client_id=None)
            )
            conn.execute(_clients.delete().where(_clients.c.id == client_id))
        return paths

    def count_clients(self) -> int:
        with self.engine.connect() as conn:
            return conn.execute(select(func.count()).select_from(_clients)).scalar() or 0

    # ------------------------------------------------------------------
    # Documents
    # ------------------------------------------------------------------

    def create_document(self, document: Document) -> int:
        now = _now_iso()
        with self.engine.connect() as conn:
            result = conn.execute(
                _documents.insert().values(
                    client_id=document.client_id,
                    name=document.name,
                    description=document.description,
                    file_name=document.file_name,
                    file_type=document.file_type,
                    size_bytes=document.size_bytes,
                    file_path=document.file_path,
                    status=document.status,
                    status_updated_at=now,
                    uploaded_by_id=document.uploaded_by_id,
                    uploaded_at=now,
                )
            )
            conn.commit()
            return result.inserted_primary_key[0]

    def get_document(self, document_id: int) -> Optional[Document]:
        with self.engine.connect() as conn:
            row = conn.execute(_documents.select().where(_documents.c.id == document_id)).fetchone()
        return _row_to_document(row) if row is not None else None

    def list_documents(self, client_id: Optional[int] = None) -> list[Document]:
        """Return documents newest first, optionally for one client."""
        query = _documents.select()
        if client_id is not None:
            query = query.where(_documents.c.client_id == client_id)
        with self.engine.connect() as conn:
            rows = conn.execute(query.order_by(_documents.c.uploaded_at.desc(), _documents.c.id.desc())).fetchall()
        return [_row_to_document(r) for r in rows]

    def update_document(self, document_id: int, **fields) -> bool:
        """Update name/description/status. A status change stamps status_updated_at."""
        _check_fields(fields, _DOCUMENT_FIELDS)
        if not fields:
            return self.get_document(document_id) is not None
        if "status" in fields:
            fields["status_updated_at"] = _now_iso()
        with self.engine.connect() as conn:
            result = conn.execute(_documents.update().where(_documents.c.id == document_id).values(**fields))
            conn.commit()
        return result.rowcount > 0

    def delete_document(self, document_id: int) -> bool:
        with self.engine.connect() as conn:
            result = conn.execute(_documents.delete().where(_documents.c.id == document_id))
            conn.commit()
        return result.rowcount > 0

    def count_documents(self) -> int:
        with self.engine.connect() as conn:
            return conn.execute(select(func.count()).select_from(_documents)).scalar() or 0

    # ------------------------------------------------------------------
    # Document status catalog
    # ------------------------------------------------------------------

    def list_statuses(self, include_inactive: bool = False) -> list[DocumentStatus]:
        """Return catalog entries ordered for display."""
        query = _statuses.select()
        if not include_inactive:
            query = query.where(_statuses.c.is_active == 1)
        with self.engine.connect() as conn:
            rows = conn.execute(query.order_by(_statuses.c.sort_order, _statuses.c.id)).fetchall()
        return [_row_to_status(r) for r in rows]

    def get_status(self, status_id: int) -> Optional[DocumentStatus]:
        with self.engine.connect() as conn:
            row = conn.execute(_statuses.select().where(_statuses.c.id == status_id)).fetchone()
        return _row_to_status(row) if row is not None else None

    def create_status(self, status: DocumentStatus) -> int:
        """Raises sqlalchemy.exc.IntegrityError if the name is taken."""
        with self.engine.connect() as conn:
            result = conn.execute(
                _statuses.insert().values(
                    name=status.name,
                    description=status.description,
                    color=status.color,
                    sort_order=status.order,
                    is_active=1 if status.is_active else 0,
                )
            )
            conn.commit()
            return result.inserted_primary_key[0]

    def update_status(self, status_id: int, **fields) -> bool:
        _check_fields(fields, _STATUS_FIELDS)
        if not fields:
            return self.get_status(status_id) is not None
        if "order" in fields:
            fields["sort_order"] = fields.pop("order")
        if "is_active" in fields:
            fields["is_active"] = 1 if fields["is_active"] else 0
        with self.engine.connect() as conn:
            result = conn.execute(_statuses.update().where(_statuses.c.id == status_id).values(**fields))
            conn.commit()
        return result.rowcount > 0

    def delete_status(self, status_id: int) -> bool:
        with self.engine.connect() as conn:
            result = conn.execute(_statuses.delete().where(_statuses.c.id == status_id))
            conn.commit()
        return result.rowcount > 0

    def is_valid_document_status(self, value: str) -> bool:
        """True for a built-in status or the name of an active catalog entry."""
        if value in DEFAULT_DOCUMENT_STATUSES:
            return True
        with self.engine.connect() as conn:
            row = conn.execute(
                select(_statuses.c.id).where((_statuses.c.name == value) & (_statuses.c.is_active == 1))
            ).fetchone()
        return row is not None

    # ------------------------------------------------------------------
    # Legal documents
    # ------------------------------------------------------------------

    def create_legal_document(self, document: LegalDocument) -> int:
        now = _now_iso()
        with self.engine.connect() as conn:
            result = conn.execute(
                _legal_documents.insert().values(
                    client_id=document.client_id,
                    title=document.title,
                    content=document.content,
                    created_by_id=document.created_by_id,
                    created_at=now,
                    updated_at=now,
                )
            )
            conn.commit()
            return result.inserted_primary_key[0]

    def get_legal_document(self, document_id: int) -> Optional[LegalDocument]:
        with self.engine.connect() as conn:
            row = conn.execute(_legal_documents.select().where(_legal_documents.c.id == document_id)).fetchone()
        return _row_to_legal(row) if row is not None else None

    def list_legal_documents(self) -> list[LegalDocument]:
        with self.engine.connect() as conn:
            rows = conn.execute(
                _legal_documents.select().order_by(_legal_documents.c.created_at.desc(), _legal_documents.c.id.desc())
            ).fetchall()
        return [_row_to_legal(r) for r in rows]

    def update_legal_document(self, document_id: int, **fields) -> bool:
        _check_fields(fields, _LEGAL_FIELDS)
        with self.engine.connect() as conn:
            result = conn.execute(
                _legal_documents.update()
                .where(_legal_documents.c.id == document_id)
                .values(**fields, updated_at=_now_iso())
            )
            conn.commit()
        return result.rowcount > 0

    def delete_legal_document(self, document_id: int) -> bool:
        with self.engine.connect() as conn:
            result = conn.execute(_legal_documents.delete().where(_legal_documents.c.id == document_id))
            conn.commit()
        return result.rowcount > 0

    def count_legal_documents(self) -> int:
        with self.engine.connect() as conn:
            return conn.execute(select(func.count()).select_from(_legal_documents)).scalar() or 0

    def close(self) -> None:
        self.engine.dispose()


# ---------------------------------------------------------------------------
# Row mappers (Data Mapper pattern)
# ---------------------------------------------------------------------------


def _row_to_client(row) -> Client:
    return Client(
        id=row.id,
        kind=row.kind,
        name=row.name,
        tax_id=row.tax_id,
        registration_id=row.registration_id,
        birth_date=row.birth_date,
        birth_place=row.birth_place,
        occupation=row.occupation,
        postal_code=row.postal_code,
        street=row.street,
        number=row.number,
        complement=row.complement,
        district=row.district,
        city=row.city,
        state=row.state,
        phone=row.phone,
        mobile=row.mobile,
        email=row.email,
        notes=row.notes,
        created_by_id=row.created_by_id,
        created_at=row.created_at,
        updated_at=row.updated_at,
    )


def _row_to_document(row) -> Document:
    return Document(
        id=row.id,
        client_id=row.client_id,
        name=row.name,
        description=row.description,
        file_name=row.file_name,
        file_type=row.file_type,
        size_bytes=row.size_bytes,
        file_path=row.file_path,
        status=row.status,
        status_updated_at=row.status_updated_at,
        uploaded_by_id=row.uploaded_by_id,
        uploaded_at=row.uploaded_at,
    )


def _row_to_status(row) -> DocumentStatus:
    return DocumentStatus(
        id=row.id,
        name=row.name,
        description=row.description,
        color=row.color,
        order=row.sort_order,
        is_active=bool(row.is_active),
    )


def _row_to_legal(row) -> LegalDocument:
    return LegalDocument(
        id=row.id,
        client_id=row.client_id,
        title=row.title,
        content=row.content,
        created_by_id=row.created_by_id,
        created_at=row.created_at,
        updated_at=row.updated_at,
    )
