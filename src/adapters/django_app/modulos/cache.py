"""
Cache de acesso a módulos sobre o Django cache framework.

Em produção aponta para Redis (compartilhado entre processos); em
desenvolvimento e testes, LocMem. O timeout curto limita a janela de
leitura desatualizada caso uma invalidação se perca.
"""

from typing import FrozenSet, Optional
import logging

from django.conf import settings
from django.core.cache import caches

logger = logging.getLogger(__name__)


class DjangoAccessCache:
    """
    Implementação do AccessCache com ``django.core.cache``.

    Example:
        cache = DjangoAccessCache(timeout=30)
        cache.set("clinica-1", frozenset({"PEP"}))
        cache.get("clinica-1")  # frozenset({'PEP'})
    """

    cache_prefix: str = "modulos:acesso"

    def __init__(self, timeout: Optional[int] = None, alias: str = "default"):
        if timeout is None:
            timeout = getattr(settings, "MODULOS_ACCESS_CACHE_TIMEOUT", 30)
        self.timeout = timeout
        self.alias = alias

    @property
    def _cache(self):
        return caches[self.alias]

    def _get_cache_key(self, tenant_id: str, generation: int) -> str:
        return f"{self.cache_prefix}:{tenant_id}:g{generation}"

    def _generation_key(self, tenant_id: str) -> str:
        return f"{self.cache_prefix}:{tenant_id}:geracao"

    def generation(self, tenant_id: str) -> int:
        return self._cache.get(self._generation_key(tenant_id), 0)

    def get(self, tenant_id: str) -> Optional[FrozenSet[str]]:
        chave = self._get_cache_key(tenant_id, self.generation(tenant_id))
        valor = self._cache.get(chave)
        if valor is None:
            return None
        return frozenset(valor)

    def set(
        self, tenant_id: str, active_keys: FrozenSet[str], generation: Optional[int] = None
    ) -> None:
        if generation is None:
            generation = self.generation(tenant_id)
        # Geração obsoleta grava numa chave que nenhum get consulta mais
        self._cache.set(
            self._get_cache_key(tenant_id, generation), sorted(active_keys), self.timeout
        )

    def invalidate(self, tenant_id: str) -> None:
        chave_geracao = self._generation_key(tenant_id)
        # Sem expiração: a geração só cresce enquanto o cache existir
        self._cache.add(chave_geracao, 0, timeout=None)
        anterior = self._cache.incr(chave_geracao) - 1
        self._cache.delete(self._get_cache_key(tenant_id, anterior))
        logger.debug(f"Cache invalidado: {chave_geracao} -> {anterior + 1}")
