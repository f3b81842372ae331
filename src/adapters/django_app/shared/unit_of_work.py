"""
Unit of Work - Implementação Django.

Gerencia a transação que envolve a escrita de estado de módulos e o
registro de auditoria de um mesmo pedido.

Responsabilidades:
- Abrir/fechar bloco ``transaction.atomic``
- Commit/Rollback coordenado
- Publicar eventos somente após commit bem-sucedido

Usa ``transaction.atomic`` (e não autocommit manual) para aninhar
corretamente dentro de requests ATOMIC_REQUESTS e de testes: dentro
de outro bloco atômico vira um savepoint.
"""

from typing import List, Optional
import logging

from django.db import transaction

from src.core.shared.interfaces import EventPublisher, UnitOfWork
from src.core.shared.events import DomainEvent

logger = logging.getLogger(__name__)


class DjangoUnitOfWork(UnitOfWork):
    """
    Implementação Django do Unit of Work.

    Example:
        with DjangoUnitOfWork(publisher) as uow:
            state_repo.save_states(tenant_id, [estado], versao)
            audit_repo.append(registro)
            uow.publish_event(ModuloAtivadoEvent(...))
        # Commit automático + eventos publicados

    Example com rollback:
        with DjangoUnitOfWork() as uow:
            state_repo.save_states(...)
            raise ConcurrencyError("...")
        # Rollback automático, eventos descartados
    """

    def __init__(self, event_publisher: Optional[EventPublisher] = None, using: Optional[str] = None):
        super().__init__()
        self._event_publisher = event_publisher
        self._using = using
        self._atomic = None
        self._committed = False
        self._rolled_back = False

    def _begin_transaction(self) -> None:
        self._committed = False
        self._rolled_back = False
        self._atomic = transaction.atomic(using=self._using)
        self._atomic.__enter__()
        logger.debug("Transaction started")

    def commit(self) -> None:
        """
        Ordem de execução:
        1. Commit da transação (ou liberação do savepoint)
        2. Publicação dos eventos enfileirados
        """
        if self._atomic is None:
            logger.warning("Transaction already finalized")
            return

        atomic, self._atomic = self._atomic, None
        try:
            atomic.__exit__(None, None, None)
        except Exception as e:
            logger.error(f"Commit failed: {e}")
            self._rolled_back = True
            self.clear_events()
            raise

        self._committed = True
        logger.debug("Transaction committed")

        if self._events:
            self._publish_events()

    def rollback(self) -> None:
        if self._atomic is None:
            return

        atomic, self._atomic = self._atomic, None
        try:
            transaction.set_rollback(True, using=self._using)
            atomic.__exit__(None, None, None)
            logger.debug("Transaction rolled back")
        finally:
            self._rolled_back = True
            self.clear_events()

    def _publish_events(self) -> None:
        eventos: List[DomainEvent] = list(self._events)
        self.clear_events()
        for event in eventos:
            logger.info(
                f"Publishing event: {event.event_type} "
                f"for aggregate {event.aggregate_id}"
            )
            if self._event_publisher:
                try:
                    self._event_publisher.publish(event)
                except Exception as e:
                    # Estado já comitado; publicação é best-effort
                    logger.error(f"Failed to publish event: {e}")

    @property
    def is_committed(self) -> bool:
        return self._committed

    @property
    def is_rolled_back(self) -> bool:
        return self._rolled_back


class InMemoryUnitOfWork(UnitOfWork):
    """
    Unit of Work em memória para testes.

    Não persiste nada; conta commits/rollbacks e entrega eventos ao
    publisher (se informado) após cada commit.

    Example:
        uow = InMemoryUnitOfWork()
        with uow:
            uow.publish_event(event)

        assert uow.committed
        assert len(uow.published_events) == 1
    """

    def __init__(self, event_publisher: Optional[EventPublisher] = None):
        super().__init__()
        self._event_publisher = event_publisher
        self.commits = 0
        self.rollbacks = 0
        self._published_events: List[DomainEvent] = []

    def _begin_transaction(self) -> None:
        pass

    def commit(self) -> None:
        self.commits += 1
        eventos = list(self._events)
        self.clear_events()
        self._published_events.extend(eventos)
        if self._event_publisher:
            self._event_publisher.publish_batch(eventos)

    def rollback(self) -> None:
        self.rollbacks += 1
        self.clear_events()

    @property
    def committed(self) -> bool:
        return self.commits > 0

    @property
    def rolled_back(self) -> bool:
        return self.rollbacks > 0

    @property
    def published_events(self) -> List[DomainEvent]:
        return list(self._published_events)
