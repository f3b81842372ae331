"""
DependencyResolver - Cálculo puro sobre registry + snapshot da clínica.

Nenhuma operação daqui escreve estado ou lança exceção para fluxo
esperado: rejeições são devolvidas como ``ToggleRejection``. Todas as
verificações usam o fecho transitivo das dependências, de modo que um
módulo intermediário inativo nunca deixa passar uma ativação.

Example:
    resolver = DependencyResolver(registry)
    resolver.unmet_dependencies(snapshot, "IA")
    # frozenset({'FLUXO_DIGITAL'})
"""

from dataclasses import dataclass
from typing import FrozenSet, Iterable, List, Optional, Tuple

from .entities import ToggleErrorCode, TenantSnapshot
from .registry import KeyLike, ModuleRegistry


@dataclass(frozen=True)
class ToggleRejection:
    """
    Motivo tipado de rejeição.

    Attributes:
        code: Código do erro (NOT_SUBSCRIBED, UNMET_DEPENDENCY, ...)
        details: Chaves de módulo que causaram a rejeição, ordenadas
    """

    code: ToggleErrorCode
    details: Tuple[str, ...] = ()

    @classmethod
    def de(cls, code: ToggleErrorCode, chaves: Iterable[str]) -> "ToggleRejection":
        return cls(code=code, details=tuple(sorted(chaves)))


class DependencyResolver:
    """
    Regras de legalidade de ativação e desativação.

    Stateless além do registry (imutável), então uma única instância
    é compartilhada entre threads.
    """

    def __init__(self, registry: ModuleRegistry):
        self.registry = registry

    def unmet_dependencies(self, snapshot: TenantSnapshot, key: KeyLike) -> FrozenSet[str]:
        """Dependências do fecho transitivo que não estão ativas."""
        return frozenset(
            dep
            for dep in self.registry.transitive_dependencies_of(key)
            if not snapshot.is_active(dep)
        )

    def blocking_dependents(self, snapshot: TenantSnapshot, key: KeyLike) -> FrozenSet[str]:
        """Dependentes transitivos atualmente ativos."""
        return frozenset(
            dep
            for dep in self.registry.transitive_dependents_of(key)
            if snapshot.is_active(dep)
        )

    def can_activate(self, snapshot: TenantSnapshot, key: KeyLike) -> bool:
        return snapshot.is_subscribed(key) and not self.unmet_dependencies(snapshot, key)

    def can_deactivate(self, snapshot: TenantSnapshot, key: KeyLike) -> bool:
        return not self.blocking_dependents(snapshot, key)

    def evaluate_activation(
        self, snapshot: TenantSnapshot, key: KeyLike
    ) -> Optional[ToggleRejection]:
        """
        Avalia ativação.

        Assinatura é verificada primeiro: um módulo não contratado é
        rejeitado como NOT_SUBSCRIBED mesmo que também tenha
        dependências pendentes.

        Returns:
            None se a ativação é legal, senão o motivo da rejeição
        """
        chave = self.registry.get(key).key
        if not snapshot.is_subscribed(chave):
            return ToggleRejection.de(ToggleErrorCode.NOT_SUBSCRIBED, [chave])
        faltando = self.unmet_dependencies(snapshot, chave)
        if faltando:
            return ToggleRejection.de(ToggleErrorCode.UNMET_DEPENDENCY, faltando)
        return None

    def evaluate_deactivation(
        self, snapshot: TenantSnapshot, key: KeyLike
    ) -> Optional[ToggleRejection]:
        bloqueando = self.blocking_dependents(snapshot, key)
        if bloqueando:
            return ToggleRejection.de(ToggleErrorCode.BLOCKING_DEPENDENTS, bloqueando)
        return None

    def activation_plan(
        self, snapshot: TenantSnapshot, targets: Iterable[KeyLike]
    ) -> List[str]:
        """
        Sequência legal de ativação para chegar a ``targets`` ativos.

        Inclui o fecho transitivo dos alvos, exclui o que já está
        ativo e ordena dependências primeiro. Qualquer ordem
        topologicamente válida leva ao mesmo estado final; esta é a
        ordem determinística do registry.
        """
        necessarios = set()
        for alvo in targets:
            chave = self.registry.get(alvo).key
            necessarios.add(chave)
            necessarios |= self.registry.transitive_dependencies_of(chave)
        pendentes = [k for k in necessarios if not snapshot.is_active(k)]
        return self.registry.topological_order(pendentes)

    def invariant_violations(self, snapshot: TenantSnapshot) -> List[str]:
        """
        Lista violações de invariantes no snapshot.

        Vazia para qualquer estado produzido pelos use cases; usada em
        testes e no health check do admin.
        """
        violacoes = []
        for chave in sorted(snapshot.active_keys()):
            if chave not in self.registry:
                violacoes.append(f"{chave}: ativo mas ausente do catálogo")
                continue
            if not snapshot.is_subscribed(chave):
                violacoes.append(f"{chave}: ativo sem assinatura")
            faltando = self.unmet_dependencies(snapshot, chave)
            if faltando:
                violacoes.append(
                    f"{chave}: ativo com dependências inativas {sorted(faltando)}"
                )
        return violacoes
