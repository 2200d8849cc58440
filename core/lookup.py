"""
core/lookup.py -- Reference-data service: fetcher calls behind a TTL cache.

Wiring only: the HTTP calls live in core/fetcher.py and the cache in
cache/store.py. Successful answers are cached; "not found" (None) and failures
are not, so a transient outage or a mistyped CEP never sticks.
"""

from typing import Any, Optional

from cache.store import TTLCache
from core import fetcher


class ReferenceDataService:
    """Usage:
    reference = ReferenceDataService(TTLCache(ttl=86400), timeout=5.0)
    reference.cep("01001-000")
    reference.states()
    reference.municipalities("sp")
    """

    def __init__(self, cache: TTLCache, timeout: float = fetcher.DEFAULT_TIMEOUT) -> None:
        self.cache = cache
        self.timeout = timeout

    def cep(self, cep: str) -> Optional[dict[str, Any]]:
        clean = fetcher.normalize_cep(cep)
        return self.cache.get_or_load(f"cep:{clean}", lambda: fetcher.fetch_cep(clean, timeout=self.timeout))

    def states(self) -> list[dict[str, Any]]:
        return self.cache.get_or_load("ibge:states", lambda: fetcher.fetch_states(timeout=self.timeout))

    def municipalities(self, uf: str) -> list[dict[str, Any]]:
        clean = fetcher.normalize_uf(uf)
        return self.cache.get_or_load(
            f"ibge:municipalities:{clean}",
            lambda: fetcher.fetch_municipalities(clean, timeout=self.timeout),
        )
