"""
fetcher.py -- All external reference-data fetching.
Both sources are free public APIs: ViaCEP (postal codes) and IBGE (states and
municipalities). Neither needs an API key.

Failures are never turned into empty results. A timeout raises LookupTimeout,
any other transport or upstream failure raises UpstreamError; the API layer
maps them to 504 and 502. "Not found" is a normal answer (None), not an error.
"""

import logging
import re
from typing import Any, Optional

import requests

logger = logging.getLogger("officedesk.fetcher")

VIACEP_URL = "https://viacep.com.br/ws/{cep}/json/"
IBGE_STATES_URL = "https://servicodados.ibge.gov.br/api/v1/localidades/estados"
IBGE_MUNICIPALITIES_URL = "https://servicodados.ibge.gov.br/api/v1/localidades/estados/{uf}/municipios"

DEFAULT_TIMEOUT = 5.0

CEP_PATTERN = re.compile(r"^\d{5}-?\d{3}$")
UF_PATTERN = re.compile(r"^[A-Za-z]{2}$")

# Module-level session shared across all fetcher calls for connection pooling.
# max_redirects=3 replaces the requests default of 30 -- these are known public APIs,
# 3 hops is generous and protects against open redirect / SSRF via redirect chains.
_session = requests.Session()
_session.max_redirects = 3


class ReferenceLookupError(Exception):
    """Base class for reference-data failures."""


class LookupTimeout(ReferenceLookupError):
    """The upstream service did not answer within the timeout."""


class UpstreamError(ReferenceLookupError):
    """The upstream service failed or returned something unusable."""


def normalize_cep(cep: str) -> str:
    """Strip the optional dash. Raises ValueError unless cep is NNNNN-NNN or NNNNNNNN."""
    if not CEP_PATTERN.match(cep or ""):
        raise ValueError("Invalid CEP format")
    return cep.replace("-", "")


def normalize_uf(uf: str) -> str:
    if not UF_PATTERN.match(uf or ""):
        raise ValueError("Invalid UF format")
    return uf.upper()


def _get_json(url: str, what: str, timeout: float, params: Optional[dict[str, str]] = None) -> Any:
    try:
        resp = _session.get(url, params=params, timeout=timeout)
        resp.raise_for_status()
        return resp.json()
    except requests.Timeout as e:
        logger.warning("%s lookup timed out: %s", what, e)
        raise LookupTimeout(f"Timed out fetching {what}") from e
    except requests.RequestException as e:
        logger.warning("%s lookup failed: %s", what, e)
        raise UpstreamError(f"Error fetching {what}") from e
    except ValueError as e:
        logger.warning("%s lookup returned invalid JSON: %s", what, e)
        raise UpstreamError(f"Invalid response fetching {what}") from e


def fetch_cep(cep: str, timeout: float = DEFAULT_TIMEOUT) -> Optional[dict[str, Any]]:
    """Fetch an address from ViaCEP.

    Returns None when ViaCEP reports the CEP does not exist ({"erro": true}).
    Raises ValueError for a malformed CEP, LookupTimeout or UpstreamError
    when the lookup itself fails.
    """
    clean = normalize_cep(cep)
    data = _get_json(VIACEP_URL.format(cep=clean), "CEP", timeout)
    if not isinstance(data, dict):
        raise UpstreamError("Unexpected CEP response")
    # ViaCEP sends "erro": true, older deployments "erro": "true"
    if data.get("erro") in (True, "true"):
        return None
    return {
        "cep": data.get("cep", ""),
        "logradouro": data.get("logradouro", ""),
        "complemento": data.get("complemento", ""),
        "bairro": data.get("bairro", ""),
        "localidade": data.get("localidade", ""),
        "uf": data.get("uf", ""),
    }


def fetch_states(timeout: float = DEFAULT_TIMEOUT) -> list[dict[str, Any]]:
    """Fetch the list of Brazilian states from IBGE, ordered by name."""
    data = _get_json(IBGE_STATES_URL, "states", timeout, params={"orderBy": "nome"})
    if not isinstance(data, list):
        raise UpstreamError("Unexpected states response")
    return [{"id": s.get("id"), "sigla": s.get("sigla"), "nome": s.get("nome")} for s in data]


def fetch_municipalities(uf: str, timeout: float = DEFAULT_TIMEOUT) -> list[dict[str, Any]]:
    """Fetch the municipalities of a state from IBGE, ordered by name.

    An unknown UF yields an empty list from IBGE; that is passed through.
    """
    clean = normalize_uf(uf)
    data = _get_json(IBGE_MUNICIPALITIES_URL.format(uf=clean), "municipalities", timeout, params={"orderBy": "nome"})
    if not isinstance(data, list):
        raise UpstreamError("Unexpected municipalities response")
    return [{"id": m.get("id"), "nome": m.get("nome")} for m in data]
