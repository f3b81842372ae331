"""
Interfaces (Ports) - Contratos entre Core e Adapters.

São os "Ports" da Arquitetura Hexagonal:
- UnitOfWork: fronteira transacional de um caso de uso
- EventPublisher: publicação de eventos após commit
- TenantLockProvider: serialização de escritas por clínica

Princípio: Core define interfaces; Adapters implementam.
O fluxo de dependência sempre aponta para o Core.
"""

from abc import ABC, abstractmethod
from typing import ContextManager, List

from .events import DomainEvent


class UnitOfWork(ABC):
    """
    Unit of Work - Coordena transações atômicas.

    Garante que a escrita de estado e o registro de auditoria de uma
    alternância de módulo sejam persistidos juntos ou não sejam
    persistidos.

    Pattern: Context Manager
        with uow:
            state_repo.save_states(tenant_id, [estado], expected_version)
            audit_repo.append(registro)
            uow.publish_event(evento)
        # Commit automático ao sair sem erro
        # Rollback automático se exceção

    Uma mesma instância pode ser reutilizada em blocos ``with``
    sucessivos (o use case repete a transação em caso de conflito);
    cada entrada começa com a fila de eventos vazia.
    """

    def __init__(self):
        self._events: List[DomainEvent] = []

    def __enter__(self) -> "UnitOfWork":
        self._events = []
        self._begin_transaction()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> bool:
        if exc_type is not None:
            self.rollback()
        else:
            self.commit()
        return False  # Não suprime exceções

    @abstractmethod
    def _begin_transaction(self) -> None:
        """Inicia uma nova transação no adapter específico."""
        raise NotImplementedError

    @abstractmethod
    def commit(self) -> None:
        """
        Persiste todas as mudanças e publica eventos.

        Ordem de execução:
        1. Commit da transação no banco
        2. Publicação de eventos enfileirados
        3. Limpeza de estado interno

        Note:
            Eventos só são publicados após commit bem-sucedido.
        """
        raise NotImplementedError

    @abstractmethod
    def rollback(self) -> None:
        """Desfaz todas as mudanças e descarta eventos."""
        raise NotImplementedError

    def publish_event(self, event: DomainEvent) -> None:
        """Enfileira evento para publicação após commit."""
        self._events.append(event)

    def collect_events(self) -> List[DomainEvent]:
        """Retorna eventos enfileirados (para testing/debugging)."""
        return list(self._events)

    def clear_events(self) -> None:
        self._events.clear()


class EventPublisher(ABC):
    """
    Interface para publicação de eventos.

    Adapters implementam para integrar com diferentes
    sistemas de mensageria (Celery, log, memória).
    """

    @abstractmethod
    def publish(self, event: DomainEvent) -> None:
        raise NotImplementedError

    @abstractmethod
    def publish_batch(self, events: List[DomainEvent]) -> None:
        raise NotImplementedError


class TenantLockProvider(ABC):
    """
    Serializa a sequência ler-validar-escrever por clínica.

    Duas alternâncias da mesma clínica nunca intercalam; clínicas
    diferentes nunca disputam o mesmo lock.

    Example:
        with locks.lock(tenant_id):
            snapshot = repo.get_snapshot(tenant_id, for_update=True)
            ...
    """

    @abstractmethod
    def lock(self, tenant_id: str) -> ContextManager[None]:
        raise NotImplementedError
