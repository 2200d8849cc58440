"""
API request and response models for OfficeDesk REST endpoints.

These Pydantic v2 models define the HTTP transport contract for the API layer.
They are intentionally separate from the dataclasses in auth/models.py,
audit/models.py and records/models.py, which own the internal domain
representation. Route handlers map between the two.

Separation of concerns: domain dataclasses = domain truth; api/ models = API contract.
No response model carries a password or password hash field.
"""

from enum import Enum
from typing import Any, Literal, Optional

from pydantic import BaseModel, ConfigDict, EmailStr, Field

from auth.service import MIN_PASSWORD_LENGTH

# ---------------------------------------------------------------------------
# Constants
# ---------------------------------------------------------------------------

COLOR_PATTERN = r"^#[0-9A-Fa-f]{6}$"


# ---------------------------------------------------------------------------
# Enums
# ---------------------------------------------------------------------------


class RoleEnum(str, Enum):
    admin = "admin"
    user = "user"


# ---------------------------------------------------------------------------
# Errors and health
# ---------------------------------------------------------------------------


class ErrorDetail(BaseModel):
    """Machine-readable error payload."""

    model_config = ConfigDict(frozen=True)

    code: str
    message: str
    detail: Optional[Any] = None


class ErrorResponse(BaseModel):
    """Top-level error envelope returned on 4xx/5xx responses."""

    model_config = ConfigDict(frozen=True)

    error: ErrorDetail


class HealthResponse(BaseModel):
    """Response for GET /api/health."""

    model_config = ConfigDict(frozen=True)

    status: str = "ok"
    version: str


# ---------------------------------------------------------------------------
# Auth
# ---------------------------------------------------------------------------


class LoginRequest(BaseModel):
    username: str = Field(min_length=1, max_length=128)
    password: str = Field(min_length=1, max_length=128)


class ChangePasswordRequest(BaseModel):
    """Body for POST /api/change-password.

    The new password length is checked by AuthService, not here, so a short
    password is reported as a password_policy error after the current
    password has been verified.
    """

    current_password: str = Field(min_length=1, max_length=128)
    new_password: str = Field(max_length=128)


class UserResponse(BaseModel):
    """Public view of a user. Has no password field by construction."""

    id: int
    username: str
    email: str
    name: str
    role: str
    is_active: bool
    first_access: bool
    last_access: Optional[str] = None
    created_at: str


# ---------------------------------------------------------------------------
# User administration
# ---------------------------------------------------------------------------


class UserCreate(BaseModel):
    model_config = ConfigDict(str_strip_whitespace=True)

    username: str = Field(min_length=3, max_length=50, pattern=r"^[A-Za-z0-9_.-]+$")
    password: str = Field(min_length=MIN_PASSWORD_LENGTH, max_length=128)
    email: EmailStr
    name: str = Field(min_length=1, max_length=255)
    role: RoleEnum = RoleEnum.user


class UserPatch(BaseModel):
    """Body for PATCH /api/usuarios/{id}.

    extra="forbid" rejects a username field: usernames are immutable.
    """

    model_config = ConfigDict(extra="forbid", str_strip_whitespace=True)

    name: Optional[str] = Field(default=None, min_length=1, max_length=255)
    email: Optional[EmailStr] = None
    role: Optional[RoleEnum] = None
    password: Optional[str] = Field(default=None, min_length=MIN_PASSWORD_LENGTH, max_length=128)


class ToggleActiveRequest(BaseModel):
    is_active: bool


# ---------------------------------------------------------------------------
# Audit log and dashboard
# ---------------------------------------------------------------------------


class AuditLogResponse(BaseModel):
    id: int
    user_id: Optional[int] = None
    user_name: str
    action: str
    entity: Optional[str] = None
    entity_id: Optional[str] = None
    detail: Optional[str] = None
    ip_address: Optional[str] = None
    created_at: str


class DashboardStats(BaseModel):
    total_clients: int
    total_documents: int
    total_legal_documents: int


# ---------------------------------------------------------------------------
# Clients
# ---------------------------------------------------------------------------


class ClientCreate(BaseModel):
    model_config = ConfigDict(str_strip_whitespace=True)

    kind: Literal["pf", "pj"]
    name: str = Field(min_length=1, max_length=255)
    tax_id: str = Field(min_length=11, max_length=20)
    registration_id: Optional[str] = Field(default=None, max_length=30)
    birth_date: Optional[str] = Field(default=None, pattern=r"^\d{4}-\d{2}-\d{2}$")
    birth_place: Optional[str] = Field(default=None, max_length=255)
    occupation: Optional[str] = Field(default=None, max_length=255)
    postal_code: Optional[str] = Field(default=None, pattern=r"^\d{5}-?\d{3}$")
    street: Optional[str] = Field(default=None, max_length=255)
    number: Optional[str] = Field(default=None, max_length=20)
    complement: Optional[str] = Field(default=None, max_length=255)
    district: Optional[str] = Field(default=None, max_length=255)
    city: Optional[str] = Field(default=None, max_length=255)
    state: Optional[str] = Field(default=None, pattern=r"^[A-Za-z]{2}$")
    phone: Optional[str] = Field(default=None, max_length=20)
    mobile: Optional[str] = Field(default=None, max_length=20)
    email: Optional[EmailStr] = None
    notes: Optional[str] = Field(default=None, max_length=5000)


class ClientPatch(BaseModel):
    model_config = ConfigDict(extra="forbid", str_strip_whitespace=True)

    kind: Optional[Literal["pf", "pj"]] = None
    name: Optional[str] = Field(default=None, min_length=1, max_length=255)
    tax_id: Optional[str] = Field(default=None, min_length=11, max_length=20)
    registration_id: Optional[str] = Field(default=None, max_length=30)
    birth_date: Optional[str] = Field(default=None, pattern=r"^\d{4}-\d{2}-\d{2}$")
    birth_place: Optional[str] = Field(default=None, max_length=255)
    occupation: Optional[str] = Field(default=None, max_length=255)
    postal_code: Optional[str] = Field(default=None, pattern=r"^\d{5}-?\d{3}$")
    street: Optional[str] = Field(default=None, max_length=255)
    number: Optional[str] = Field(default=None, max_length=20)
    complement: Optional[str] = Field(default=None, max_length=255)
    district: Optional[str] = Field(default=None, max_length=255)
    city: Optional[str] = Field(default=None, max_length=255)
    state: Optional[str] = Field(default=None, pattern=r"^[A-Za-z]{2}$")
    phone: Optional[str] = Field(default=None, max_length=20)
    mobile: Optional[str] = Field(default=None, max_length=20)
    email: Optional[EmailStr] = None
    notes: Optional[str] = Field(default=None, max_length=5000)


class ClientResponse(BaseModel):
    id: int
    kind: str
    name: str
    tax_id: str
    registration_id: Optional[str] = None
    birth_date: Optional[str] = None
    birth_place: Optional[str] = None
    occupation: Optional[str] = None
    postal_code: Optional[str] = None
    street: Optional[str] = None
    number: Optional[str] = None
    complement: Optional[str] = None
    district: Optional[str] = None
    city: Optional[str] = None
    state: Optional[str] = None
    phone: Optional[str] = None
    mobile: Optional[str] = None
    email: Optional[str] = None
    notes: Optional[str] = None
    created_by_id: Optional[int] = None
    created_at: str
    updated_at: str


# ---------------------------------------------------------------------------
# Documents and the status catalog
# ---------------------------------------------------------------------------


class DocumentPatch(BaseModel):
    model_config = ConfigDict(extra="forbid", str_strip_whitespace=True)

    name: Optional[str] = Field(default=None, min_length=1, max_length=255)
    description: Optional[str] = Field(default=None, max_length=2000)
    status: Optional[str] = Field(default=None, min_length=1, max_length=50)


class DocumentResponse(BaseModel):
    id: int
    client_id: int
    name: str
    description: Optional[str] = None
    file_name: str
    file_type: str
    size_bytes: int
    status: str
    status_updated_at: str
    uploaded_by_id: Optional[int] = None
    uploaded_at: str


class StatusCreate(BaseModel):
    model_config = ConfigDict(str_strip_whitespace=True)

    name: str = Field(min_length=1, max_length=50)
    description: Optional[str] = Field(default=None, max_length=500)
    color: str = Field(pattern=COLOR_PATTERN)
    order: int = Field(default=0, ge=0)
    is_active: bool = True


class StatusPatch(BaseModel):
    model_config = ConfigDict(extra="forbid", str_strip_whitespace=True)

    name: Optional[str] = Field(default=None, min_length=1, max_length=50)
    description: Optional[str] = Field(default=None, max_length=500)
    color: Optional[str] = Field(default=None, pattern=COLOR_PATTERN)
    order: Optional[int] = Field(default=None, ge=0)
    is_active: Optional[bool] = None


class StatusResponse(BaseModel):
    id: int
    name: str
    description: Optional[str] = None
    color: str
    order: int
    is_active: bool


# ---------------------------------------------------------------------------
# Legal documents
# ---------------------------------------------------------------------------


class LegalDocumentCreate(BaseModel):
    title: str = Field(min_length=1, max_length=255)
    content: str = Field(default="", max_length=500_000)
    client_id: Optional[int] = None


class LegalDocumentPatch(BaseModel):
    """client_id may be sent as null to detach the document from its client."""

    model_config = ConfigDict(extra="forbid")

    title: Optional[str] = Field(default=None, min_length=1, max_length=255)
    content: Optional[str] = Field(default=None, max_length=500_000)
    client_id: Optional[int] = None


class LegalDocumentResponse(BaseModel):
    id: int
    client_id: Optional[int] = None
    title: str
    content: str
    created_by_id: Optional[int] = None
    created_at: str
    updated_at: str


class PreviewRequest(BaseModel):
    content: str = Field(max_length=500_000)
    client_id: Optional[int] = None


class PreviewResponse(BaseModel):
    content: str


# ---------------------------------------------------------------------------
# Reference data
# ---------------------------------------------------------------------------


class CepResponse(BaseModel):
    cep: str
    logradouro: str
    complemento: str
    bairro: str
    localidade: str
    uf: str


class StateResponse(BaseModel):
    id: int
    sigla: str
    nome: str


class MunicipalityResponse(BaseModel):
    id: int
    nome: str
