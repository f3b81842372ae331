"""
ModuleRegistry - Catálogo imutável de módulos e do grafo de dependências.

Carregado uma única vez na inicialização do processo. Durante o
``load`` o grafo é validado (chaves duplicadas, dependências
desconhecidas e ciclos) e os fechos transitivos, diretos e reversos,
são calculados e congelados. Depois disso o objeto é somente leitura
e pode ser compartilhado entre threads sem lock.

Example:
    registry = ModuleRegistry.load(DEFAULT_MODULES)
    registry.transitive_dependencies_of(ModuleKey.IA)
    # frozenset({'PEP', 'FLUXO_DIGITAL'})
"""

import logging
from types import MappingProxyType
from typing import Dict, FrozenSet, Iterable, Iterator, List, Mapping, Optional, Union

from src.core.shared.exceptions import (
    CycleDetectedError,
    EntityNotFoundError,
    RegistryDefinitionError,
    ValidationError,
)

from .catalog import ModuleCategory
from .entities import ModuleDefinition, ModuleKey, normalize_key


logger = logging.getLogger(__name__)

KeyLike = Union[str, ModuleKey]

_BRANCO, _CINZA, _PRETO = 0, 1, 2


def _ordem_de_exibicao(definicao: ModuleDefinition) -> tuple:
    # Categorias fora do catálogo padrão vão para o fim
    try:
        posicao = ModuleCategory.ORDEM.index(definicao.category)
    except ValueError:
        posicao = len(ModuleCategory.ORDEM)
    return (posicao, definicao.category, definicao.name)


def _find_cycle(definicoes: Mapping[str, ModuleDefinition]) -> Optional[List[str]]:
    """
    Busca em profundidade com pilha explícita e marcação em três cores.

    Returns:
        Caminho fechado do primeiro ciclo encontrado, ou None.
    """
    cor = {chave: _BRANCO for chave in definicoes}

    for raiz in sorted(definicoes):
        if cor[raiz] != _BRANCO:
            continue
        caminho = [raiz]
        cor[raiz] = _CINZA
        pilha = [iter(sorted(definicoes[raiz].depends_on))]

        while pilha:
            proximo = next(pilha[-1], None)
            if proximo is None:
                pilha.pop()
                cor[caminho.pop()] = _PRETO
                continue
            if cor[proximo] == _CINZA:
                inicio = caminho.index(proximo)
                return caminho[inicio:] + [proximo]
            if cor[proximo] == _BRANCO:
                cor[proximo] = _CINZA
                caminho.append(proximo)
                pilha.append(iter(sorted(definicoes[proximo].depends_on)))

    return None


def _topological_order(definicoes: Mapping[str, ModuleDefinition]) -> List[str]:
    """Kahn com desempate alfabético: dependências antes dos dependentes."""
    pendentes = {chave: set(d.depends_on) for chave, d in definicoes.items()}
    ordem: List[str] = []
    prontos = sorted(chave for chave, deps in pendentes.items() if not deps)

    while prontos:
        atual = prontos.pop(0)
        ordem.append(atual)
        liberados = []
        for chave, deps in pendentes.items():
            if atual in deps:
                deps.discard(atual)
                if not deps:
                    liberados.append(chave)
        prontos = sorted(prontos + liberados)

    return ordem


class ModuleRegistry:
    """
    Catálogo de módulos validado e acíclico.

    Não instanciar diretamente; usar ``ModuleRegistry.load``.

    Attributes (somente leitura):
        _definitions: chave -> ModuleDefinition
        _deps / _deps_transitivas: dependências diretas e fecho
        _dependentes / _dependentes_transitivos: arestas reversas e fecho
        _ordem: ordem topológica global (dependências primeiro)
    """

    def __init__(self, definitions: Mapping[str, ModuleDefinition]):
        self._definitions = MappingProxyType(dict(definitions))
        self._ordem = tuple(_topological_order(self._definitions))
        self._posicao = MappingProxyType({k: i for i, k in enumerate(self._ordem)})

        deps: Dict[str, FrozenSet[str]] = {
            k: frozenset(d.depends_on) for k, d in self._definitions.items()
        }
        fecho: Dict[str, FrozenSet[str]] = {}
        for chave in self._ordem:
            acumulado = set(deps[chave])
            for dep in deps[chave]:
                acumulado |= fecho[dep]
            fecho[chave] = frozenset(acumulado)

        dependentes: Dict[str, set] = {k: set() for k in self._definitions}
        dependentes_trans: Dict[str, set] = {k: set() for k in self._definitions}
        for chave in self._definitions:
            for dep in deps[chave]:
                dependentes[dep].add(chave)
            for dep in fecho[chave]:
                dependentes_trans[dep].add(chave)

        self._deps = MappingProxyType(deps)
        self._deps_transitivas = MappingProxyType(fecho)
        self._dependentes = MappingProxyType(
            {k: frozenset(v) for k, v in dependentes.items()}
        )
        self._dependentes_transitivos = MappingProxyType(
            {k: frozenset(v) for k, v in dependentes_trans.items()}
        )

    @classmethod
    def load(cls, definitions: Iterable[ModuleDefinition]) -> "ModuleRegistry":
        """
        Constrói e valida o registry.

        Args:
            definitions: Definições de módulos com dependências diretas

        Returns:
            Registry imutável pronto para uso

        Raises:
            RegistryDefinitionError: Chave duplicada ou dependência desconhecida
            CycleDetectedError: Ciclo no grafo (inclui auto-referência)
        """
        por_chave: Dict[str, ModuleDefinition] = {}
        for definicao in definitions:
            if definicao.key in por_chave:
                raise RegistryDefinitionError(
                    f"Módulo {definicao.key} declarado mais de uma vez",
                    module_key=definicao.key,
                )
            por_chave[definicao.key] = definicao

        for definicao in por_chave.values():
            if definicao.key in definicao.depends_on:
                raise CycleDetectedError([definicao.key, definicao.key])
            desconhecidas = definicao.depends_on - por_chave.keys()
            if desconhecidas:
                raise RegistryDefinitionError(
                    f"Módulo {definicao.key} depende de módulos inexistentes: "
                    f"{', '.join(sorted(desconhecidas))}",
                    module_key=definicao.key,
                )

        ciclo = _find_cycle(por_chave)
        if ciclo:
            raise CycleDetectedError(ciclo)

        registry = cls(por_chave)
        logger.info(f"Registry de módulos carregado: {len(registry)} módulos")
        return registry

    # ------------------------------------------------------------------
    # Consultas
    # ------------------------------------------------------------------

    def _chave(self, key: KeyLike) -> str:
        chave = normalize_key(key)
        if chave not in self._definitions:
            raise EntityNotFoundError(
                f"Módulo {chave} não existe no catálogo",
                entity_type="Module",
                entity_id=chave,
            )
        return chave

    def get(self, key: KeyLike) -> ModuleDefinition:
        return self._definitions[self._chave(key)]

    def keys(self) -> FrozenSet[str]:
        return frozenset(self._definitions)

    def definitions(self) -> List[ModuleDefinition]:
        """Definições na ordem de ModuleCategory.ORDEM e depois por nome."""
        return sorted(self._definitions.values(), key=_ordem_de_exibicao)

    def dependencies_of(self, key: KeyLike) -> FrozenSet[str]:
        return self._deps[self._chave(key)]

    def transitive_dependencies_of(self, key: KeyLike) -> FrozenSet[str]:
        return self._deps_transitivas[self._chave(key)]

    def dependents_of(self, key: KeyLike) -> FrozenSet[str]:
        return self._dependentes[self._chave(key)]

    def transitive_dependents_of(self, key: KeyLike) -> FrozenSet[str]:
        return self._dependentes_transitivos[self._chave(key)]

    def topological_order(self, keys: Optional[Iterable[KeyLike]] = None) -> List[str]:
        """
        Ordena chaves com dependências antes dos dependentes.

        Sem argumento, devolve a ordem global do catálogo.
        """
        if keys is None:
            return list(self._ordem)
        return sorted({self._chave(k) for k in keys}, key=self._posicao.__getitem__)

    def __contains__(self, key: object) -> bool:
        if not isinstance(key, str):
            return False
        try:
            return normalize_key(key) in self._definitions
        except ValidationError:
            return False

    def __iter__(self) -> Iterator[str]:
        return iter(self._ordem)

    def __len__(self) -> int:
        return len(self._definitions)
