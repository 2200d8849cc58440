"""
tests/test_reference.py -- Unit tests for the reference-data fetchers,
the TTL cache and the service that combines them.

No network access: the shared requests session in core.fetcher is patched.
"""

from __future__ import annotations

from unittest.mock import MagicMock, patch

import pytest
import requests

from cache.store import TTLCache
from core import fetcher
from core.fetcher import LookupTimeout, UpstreamError
from core.lookup import ReferenceDataService

VIACEP_SE = {
    "cep": "01001-000",
    "logradouro": "Praça da Sé",
    "complemento": "lado ímpar",
    "bairro": "Sé",
    "localidade": "São Paulo",
    "uf": "SP",
    "ibge": "3550308",
}


def _response(payload, status: int = 200) -> MagicMock:
    resp = MagicMock()
    resp.status_code = status
    resp.json.return_value = payload
    if status >= 400:
        resp.raise_for_status.side_effect = requests.HTTPError(f"{status} error")
    return resp


class FakeClock:
    def __init__(self) -> None:
        self.now = 1000.0

    def __call__(self) -> float:
        return self.now


# ---------------------------------------------------------------------------
# Fetchers
# ---------------------------------------------------------------------------


class TestFetchCep:
    def test_found(self) -> None:
        with patch.object(fetcher._session, "get", return_value=_response(VIACEP_SE)) as get:
            result = fetcher.fetch_cep("01001-000", timeout=5)
        assert result["localidade"] == "São Paulo"
        assert "ibge" not in result
        url = get.call_args.args[0]
        assert url == "https://viacep.com.br/ws/01001000/json/"
        assert get.call_args.kwargs["timeout"] == 5

    def test_not_found_is_none(self) -> None:
        with patch.object(fetcher._session, "get", return_value=_response({"erro": True})):
            assert fetcher.fetch_cep("99999999") is None

    def test_timeout_raises_lookup_timeout(self) -> None:
        with patch.object(fetcher._session, "get", side_effect=requests.Timeout("slow")):
            with pytest.raises(LookupTimeout):
                fetcher.fetch_cep("01001000")

    def test_connection_error_raises_upstream_error(self) -> None:
        with patch.object(fetcher._session, "get", side_effect=requests.ConnectionError("down")):
            with pytest.raises(UpstreamError):
                fetcher.fetch_cep("01001000")

    def test_http_error_raises_upstream_error(self) -> None:
        with patch.object(fetcher._session, "get", return_value=_response({}, status=500)):
            with pytest.raises(UpstreamError):
                fetcher.fetch_cep("01001000")

    def test_invalid_json_raises_upstream_error(self) -> None:
        resp = _response(None)
        resp.json.side_effect = ValueError("not json")
        with patch.object(fetcher._session, "get", return_value=resp):
            with pytest.raises(UpstreamError):
                fetcher.fetch_cep("01001000")

    @pytest.mark.parametrize("bad", ["0100100", "01001-0000", "abcde-fgh", ""])
    def test_malformed_cep(self, bad: str) -> None:
        with pytest.raises(ValueError):
            fetcher.fetch_cep(bad)


class TestFetchIbge:
    def test_states(self) -> None:
        payload = [{"id": 35, "sigla": "SP", "nome": "São Paulo", "regiao": {"id": 3}}]
        with patch.object(fetcher._session, "get", return_value=_response(payload)) as get:
            states = fetcher.fetch_states()
        assert states == [{"id": 35, "sigla": "SP", "nome": "São Paulo"}]
        assert get.call_args.kwargs["params"] == {"orderBy": "nome"}

    def test_municipalities_uppercases_uf(self) -> None:
        with patch.object(fetcher._session, "get", return_value=_response([{"id": 1, "nome": "Campinas"}])) as get:
            result = fetcher.fetch_municipalities("sp")
        assert result == [{"id": 1, "nome": "Campinas"}]
        assert "/estados/SP/municipios" in get.call_args.args[0]

    def test_municipalities_timeout(self) -> None:
        with patch.object(fetcher._session, "get", side_effect=requests.Timeout()):
            with pytest.raises(LookupTimeout):
                fetcher.fetch_municipalities("RJ")

    @pytest.mark.parametrize("bad", ["S", "SPX", "1A", ""])
    def test_malformed_uf(self, bad: str) -> None:
        with pytest.raises(ValueError):
            fetcher.fetch_municipalities(bad)


# ---------------------------------------------------------------------------
# TTL cache
# ---------------------------------------------------------------------------


class TestTTLCache:
    def test_hit_before_expiry(self) -> None:
        clock = FakeClock()
        cache = TTLCache(ttl=60, clock=clock)
        cache.set("k", {"v": 1})
        clock.now += 59
        assert cache.get("k") == {"v": 1}

    def test_miss_after_expiry(self) -> None:
        clock = FakeClock()
        cache = TTLCache(ttl=60, clock=clock)
        cache.set("k", {"v": 1})
        clock.now += 60
        assert cache.get("k") is None
        assert len(cache) == 0

    def test_get_or_load_caches_value(self) -> None:
        cache = TTLCache(ttl=60, clock=FakeClock())
        loader = MagicMock(return_value=[1, 2])
        assert cache.get_or_load("k", loader) == [1, 2]
        assert cache.get_or_load("k", loader) == [1, 2]
        loader.assert_called_once()

    def test_get_or_load_does_not_cache_none(self) -> None:
        cache = TTLCache(ttl=60, clock=FakeClock())
        loader = MagicMock(return_value=None)
        cache.get_or_load("k", loader)
        cache.get_or_load("k", loader)
        assert loader.call_count == 2

    def test_get_or_load_does_not_cache_errors(self) -> None:
        cache = TTLCache(ttl=60, clock=FakeClock())
        loader = MagicMock(side_effect=[UpstreamError("down"), ["ok"]])
        with pytest.raises(UpstreamError):
            cache.get_or_load("k", loader)
        assert cache.get_or_load("k", loader) == ["ok"]

    def test_purge_expired(self) -> None:
        clock = FakeClock()
        cache = TTLCache(ttl=60, clock=clock)
        cache.set("old", 1)
        clock.now += 30
        cache.set("new", 2)
        clock.now += 31
        assert cache.purge_expired() == 1
        assert cache.get("new") == 2


# ---------------------------------------------------------------------------
# Service
# ---------------------------------------------------------------------------


class TestReferenceDataService:
    def test_cep_cached_for_ttl(self) -> None:
        clock = FakeClock()
        service = ReferenceDataService(TTLCache(ttl=86400, clock=clock), timeout=5)
        with patch.object(fetcher._session, "get", return_value=_response(VIACEP_SE)) as get:
            service.cep("01001-000")
            service.cep("01001000")  # same key with or without the dash
            assert get.call_count == 1
            clock.now += 86400
            service.cep("01001-000")
            assert get.call_count == 2

    def test_not_found_not_cached(self) -> None:
        service = ReferenceDataService(TTLCache(ttl=86400, clock=FakeClock()))
        with patch.object(fetcher._session, "get", return_value=_response({"erro": True})) as get:
            assert service.cep("99999-999") is None
            assert service.cep("99999-999") is None
            assert get.call_count == 2

    def test_timeout_propagates_and_is_not_cached(self) -> None:
        service = ReferenceDataService(TTLCache(ttl=86400, clock=FakeClock()))
        with patch.object(fetcher._session, "get", side_effect=requests.Timeout()):
            with pytest.raises(LookupTimeout):
                service.states()
        with patch.object(fetcher._session, "get", return_value=_response([])):
            assert service.states() == []

    def test_municipalities_keyed_by_uppercase_uf(self) -> None:
        service = ReferenceDataService(TTLCache(ttl=86400, clock=FakeClock()))
        with patch.object(fetcher._session, "get", return_value=_response([{"id": 1, "nome": "Niterói"}])) as get:
            service.municipalities("rj")
            service.municipalities("RJ")
        assert get.call_count == 1

    def test_timeout_passed_to_fetcher(self) -> None:
        service = ReferenceDataService(TTLCache(ttl=60, clock=FakeClock()), timeout=2.5)
        with patch.object(fetcher._session, "get", return_value=_response([])) as get:
            service.states()
        assert get.call_args.kwargs["timeout"] == 2.5
