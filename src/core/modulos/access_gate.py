"""
AccessGate - Superfície de leitura consumida pelo resto da aplicação.

``has_access(tenant_id, module_key)`` responde apenas com base em
``active``; assinatura sozinha nunca concede acesso. A leitura é
servida do cache (invalidado de forma síncrona a cada escrita) ou do
caminho de leitura do repositório, sem lock e sem transação.

Chave desconhecida é erro de configuração de quem chama: o gate
devolve False e registra warning, nunca propaga exceção para a UI.
"""

import logging
from typing import FrozenSet, Iterable, List, Optional

from src.core.shared.exceptions import ValidationError

from .entities import ModuleKey, normalize_key
from .navigation import MENU_PRINCIPAL, MenuItem, MenuSection
from .ports import AccessCache, InMemoryAccessCache, TenantModuleStateRepository
from .registry import ModuleRegistry


logger = logging.getLogger(__name__)


class AccessGate:
    """
    Consulta de acesso a módulos por clínica.

    Attributes:
        registry: Catálogo para validar chaves
        state_repo: Fonte do conjunto de módulos ativos
        cache: Cache por clínica (em memória se não informado)
    """

    def __init__(
        self,
        registry: ModuleRegistry,
        state_repo: TenantModuleStateRepository,
        cache: Optional[AccessCache] = None,
    ):
        self.registry = registry
        self.state_repo = state_repo
        self.cache = cache if cache is not None else InMemoryAccessCache()

    def active_modules(self, tenant_id: str) -> FrozenSet[str]:
        if not tenant_id:
            logger.warning("Consulta de acesso sem clínica; negando todos os módulos")
            return frozenset()

        # Geração lida antes do banco: invalidação concorrente descarta este preenchimento
        geracao = self.cache.generation(tenant_id)
        em_cache = self.cache.get(tenant_id)
        if em_cache is not None:
            logger.debug(f"Cache de acesso (hit) para clínica {tenant_id}")
            return em_cache

        ativos = frozenset(self.state_repo.active_module_keys(tenant_id))
        self.cache.set(tenant_id, ativos, geracao)
        logger.debug(f"Cache de acesso (miss) para clínica {tenant_id}: {len(ativos)} ativos")
        return ativos

    def has_access(self, tenant_id: str, module_key) -> bool:
        try:
            chave = normalize_key(module_key)
        except ValidationError:
            logger.warning(f"Verificação de acesso com chave inválida: {module_key!r}")
            return False

        if chave not in self.registry:
            logger.warning(
                f"Verificação de acesso para módulo desconhecido '{chave}' "
                f"(clínica {tenant_id})"
            )
            return False

        return chave in self.active_modules(tenant_id)

    def invalidate(self, tenant_id: str) -> None:
        self.cache.invalidate(tenant_id)
        logger.debug(f"Cache de acesso invalidado para clínica {tenant_id}")

    def filter_menu(
        self, tenant_id: str, sections: Iterable[MenuSection] = MENU_PRINCIPAL
    ) -> List[MenuSection]:
        """
        Filtra a navegação pelos módulos ativos da clínica.

        Seções sem nenhum item visível são removidas; itens-grupo
        (sem url) somem quando nenhum filho sobra.
        """
        ativos = self.active_modules(tenant_id)
        visiveis = []
        for secao in sections:
            itens = tuple(
                item
                for item in (self._filtrar_item(i, ativos) for i in secao.items)
                if item is not None
            )
            if itens:
                visiveis.append(MenuSection(secao.label, itens))
        return visiveis

    def _filtrar_item(self, item: MenuItem, ativos: FrozenSet[str]) -> Optional[MenuItem]:
        if item.module_key is not None and item.module_key.value not in ativos:
            return None
        if not item.children:
            return item
        filhos = tuple(
            f
            for f in (self._filtrar_item(c, ativos) for c in item.children)
            if f is not None
        )
        if not filhos and item.url is None:
            return None
        return MenuItem(item.title, item.url, item.module_key, filhos)


def menu_module_keys(sections: Iterable[MenuSection] = MENU_PRINCIPAL) -> FrozenSet[ModuleKey]:
    """Todas as chaves referenciadas pela navegação (inclui filhos)."""
    chaves = set()

    def visitar(item: MenuItem):
        if item.module_key is not None:
            chaves.add(item.module_key)
        for filho in item.children:
            visitar(filho)

    for secao in sections:
        for item in secao.items:
            visitar(item)
    return frozenset(chaves)
