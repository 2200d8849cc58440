"""
api/routes/reference.py -- Postal code and region lookups.

Routes:
  GET /api/cep/{cep}             -- ViaCEP address lookup (NNNNN-NNN or NNNNNNNN)
  GET /api/ibge/estados          -- IBGE states
  GET /api/ibge/municipios/{uf}  -- IBGE municipalities of a state

Format errors are 400, an unknown CEP is 404. LookupTimeout and UpstreamError
propagate to the handlers in api/main.py (504 / 502).
"""

from fastapi import APIRouter, HTTPException, Request

from api.models import CepResponse, ErrorDetail, MunicipalityResponse, StateResponse
from auth.dependencies import BUSINESS
from core.fetcher import CEP_PATTERN, UF_PATTERN
from core.lookup import ReferenceDataService

router = APIRouter(dependencies=BUSINESS)


@router.get("/cep/{cep}", response_model=CepResponse)
def lookup_cep(request: Request, cep: str) -> CepResponse:
    if not CEP_PATTERN.match(cep):
        raise HTTPException(
            status_code=400,
            detail=ErrorDetail(code="invalid_cep", message="CEP must have 8 digits (NNNNN-NNN).").model_dump(),
        )
    reference: ReferenceDataService = request.app.state.reference
    address = reference.cep(cep)
    if address is None:
        raise HTTPException(
            status_code=404,
            detail=ErrorDetail(code="not_found", message="CEP not found.").model_dump(),
        )
    return CepResponse(**address)


@router.get("/ibge/estados", response_model=list[StateResponse])
def list_states(request: Request) -> list[StateResponse]:
    reference: ReferenceDataService = request.app.state.reference
    return [StateResponse(**s) for s in reference.states()]


@router.get("/ibge/municipios/{uf}", response_model=list[MunicipalityResponse])
def list_municipalities(request: Request, uf: str) -> list[MunicipalityResponse]:
    if not UF_PATTERN.match(uf):
        raise HTTPException(
            status_code=400,
            detail=ErrorDetail(code="invalid_uf", message="UF must be two letters.").model_dump(),
        )
    reference: ReferenceDataService = request.app.state.reference
    return [MunicipalityResponse(**m) for m in reference.municipalities(uf)]
