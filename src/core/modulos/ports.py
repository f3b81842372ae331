"""
Ports (Interfaces) do Domínio de Módulos.

Contratos que os Adapters de infraestrutura implementam:
- TenantModuleStateRepository: estado assinado/ativo por clínica
- AuditLogRepository: trilha de auditoria append-only
- AccessCache: cache do conjunto de módulos ativos por clínica

Também traz as implementações em memória usadas por testes e
desenvolvimento local.

Example:
    # No Adapter (Django)
    class DjangoTenantModuleStateRepository:
        def get_snapshot(self, tenant_id, for_update=False):
            ...
"""

import threading
from datetime import datetime
from typing import Dict, FrozenSet, Iterable, List, Optional, Protocol, Tuple, runtime_checkable

from src.core.shared.exceptions import ConcurrencyError

from .entities import AuditRecord, TenantModuleState, TenantSnapshot, normalize_key


@runtime_checkable
class TenantModuleStateRepository(Protocol):
    """
    Interface para persistência do estado de módulos por clínica.

    Implementações:
    - DjangoTenantModuleStateRepository (PostgreSQL via ORM)
    - InMemoryTenantModuleStateRepository (para testes)
    """

    def get_snapshot(self, tenant_id: str, for_update: bool = False) -> TenantSnapshot:
        """
        Lê todos os estados da clínica e a versão atual.

        Args:
            tenant_id: Clínica
            for_update: Bloqueia as linhas da clínica até o fim da transação

        Returns:
            Snapshot consistente (vazio se a clínica não foi provisionada)
        """
        ...

    def save_states(
        self, tenant_id: str, states: List[TenantModuleState], expected_version: int
    ) -> int:
        """
        Grava estados (upsert) se a versão da clínica ainda for ``expected_version``.

        Returns:
            Nova versão da clínica

        Raises:
            ConcurrencyError: Se a versão mudou desde a leitura
        """
        ...

    def provision(self, tenant_id: str, module_keys: Iterable[str]) -> int:
        """
        Cria linhas ausentes (não assinado, inativo). Idempotente.

        Returns:
            Quantidade de linhas criadas
        """
        ...

    def active_module_keys(self, tenant_id: str) -> FrozenSet[str]:
        """Caminho de leitura do AccessGate: sem lock, sem transação."""
        ...


@runtime_checkable
class AuditLogRepository(Protocol):
    """Trilha de auditoria append-only; registros nunca são alterados."""

    def append(self, record: AuditRecord) -> None:
        ...

    def list_for_tenant(
        self,
        tenant_id: str,
        since: Optional[datetime] = None,
        until: Optional[datetime] = None,
        module_key: Optional[str] = None,
        limit: Optional[int] = None,
    ) -> List[AuditRecord]:
        """Registros da clínica em ordem cronológica."""
        ...


@runtime_checkable
class AccessCache(Protocol):
    """
    Cache do conjunto de módulos ativos, por clínica.

    Cada clínica tem uma geração; ``invalidate`` a incrementa. Um
    ``set`` com geração anterior à atual nunca é servido por ``get``,
    então um leitor atrasado não republica um conjunto já invalidado.
    """

    def generation(self, tenant_id: str) -> int:
        ...

    def get(self, tenant_id: str) -> Optional[FrozenSet[str]]:
        ...

    def set(
        self, tenant_id: str, active_keys: FrozenSet[str], generation: Optional[int] = None
    ) -> None:
        ...

    def invalidate(self, tenant_id: str) -> None:
        ...


# =============================================================================
# IMPLEMENTAÇÕES EM MEMÓRIA
# =============================================================================

class InMemoryTenantModuleStateRepository:
    """
    Implementação em memória do TenantModuleStateRepository.

    Guarda cópias dos estados (nunca expõe as instâncias internas) e
    aplica a mesma checagem de versão otimista do adapter Django.

    Não usar em produção!
    """

    def __init__(self):
        self._lock = threading.Lock()
        self._states: Dict[str, Dict[str, TenantModuleState]] = {}
        self._versions: Dict[str, int] = {}

    def get_snapshot(self, tenant_id: str, for_update: bool = False) -> TenantSnapshot:
        with self._lock:
            estados = [s.copia() for s in self._states.get(tenant_id, {}).values()]
            versao = self._versions.get(tenant_id, 0)
        return TenantSnapshot.from_states(tenant_id, estados, versao)

    def save_states(
        self, tenant_id: str, states: List[TenantModuleState], expected_version: int
    ) -> int:
        with self._lock:
            atual = self._versions.get(tenant_id, 0)
            if atual != expected_version:
                raise ConcurrencyError(
                    f"Clínica {tenant_id} na versão {atual}, esperada {expected_version}"
                )
            linhas = self._states.setdefault(tenant_id, {})
            for state in states:
                linhas[state.module_key] = state.copia()
            self._versions[tenant_id] = atual + 1
            return atual + 1

    def provision(self, tenant_id: str, module_keys: Iterable[str]) -> int:
        criadas = 0
        with self._lock:
            linhas = self._states.setdefault(tenant_id, {})
            for key in module_keys:
                chave = normalize_key(key)
                if chave not in linhas:
                    linhas[chave] = TenantModuleState.novo(tenant_id, chave)
                    criadas += 1
        return criadas

    def active_module_keys(self, tenant_id: str) -> FrozenSet[str]:
        with self._lock:
            linhas = dict(self._states.get(tenant_id, {}))
        return frozenset(k for k, s in linhas.items() if s.active)

    def clear(self) -> None:
        with self._lock:
            self._states.clear()
            self._versions.clear()


class InMemoryAuditLogRepository:
    """Implementação em memória da trilha de auditoria."""

    def __init__(self):
        self._lock = threading.Lock()
        self._records: List[AuditRecord] = []

    def append(self, record: AuditRecord) -> None:
        with self._lock:
            self._records.append(record)

    def list_for_tenant(
        self,
        tenant_id: str,
        since: Optional[datetime] = None,
        until: Optional[datetime] = None,
        module_key: Optional[str] = None,
        limit: Optional[int] = None,
    ) -> List[AuditRecord]:
        with self._lock:
            registros = [r for r in self._records if r.tenant_id == tenant_id]
        if since is not None:
            registros = [r for r in registros if r.timestamp >= since]
        if until is not None:
            registros = [r for r in registros if r.timestamp <= until]
        if module_key is not None:
            chave = normalize_key(module_key)
            registros = [r for r in registros if r.module_key == chave]
        registros.sort(key=lambda r: r.timestamp)
        if limit is not None:
            registros = registros[:limit]
        return registros

    def __len__(self) -> int:
        return len(self._records)


class InMemoryAccessCache:
    """Cache em dicionário, com a geração gravada junto de cada conjunto."""

    def __init__(self):
        self._lock = threading.Lock()
        self._data: Dict[str, Tuple[int, FrozenSet[str]]] = {}
        self._geracoes: Dict[str, int] = {}

    def generation(self, tenant_id: str) -> int:
        with self._lock:
            return self._geracoes.get(tenant_id, 0)

    def get(self, tenant_id: str) -> Optional[FrozenSet[str]]:
        with self._lock:
            entrada = self._data.get(tenant_id)
            if entrada is None or entrada[0] != self._geracoes.get(tenant_id, 0):
                return None
            return entrada[1]

    def set(
        self, tenant_id: str, active_keys: FrozenSet[str], generation: Optional[int] = None
    ) -> None:
        with self._lock:
            atual = self._geracoes.get(tenant_id, 0)
            if generation is not None and generation != atual:
                return
            self._data[tenant_id] = (atual, frozenset(active_keys))

    def invalidate(self, tenant_id: str) -> None:
        with self._lock:
            self._geracoes[tenant_id] = self._geracoes.get(tenant_id, 0) + 1
            self._data.pop(tenant_id, None)
