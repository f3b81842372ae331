"""
Shared Domain Components.

Contém componentes compartilhados entre todos os domínios:
- Exceções de domínio
- Interfaces (Ports)
- Base classes para Domain Events
- Locks por clínica (tenant)
"""

from .exceptions import (
    DomainException,
    ValidationError,
    EntityNotFoundError,
    BusinessRuleViolationError,
    ConcurrencyError,
    RegistryDefinitionError,
    CycleDetectedError,
)
from .events import DomainEvent
from .interfaces import UnitOfWork, EventPublisher, TenantLockProvider

__all__ = [
    "DomainException",
    "ValidationError",
    "EntityNotFoundError",
    "BusinessRuleViolationError",
    "ConcurrencyError",
    "RegistryDefinitionError",
    "CycleDetectedError",
    "DomainEvent",
    "UnitOfWork",
    "EventPublisher",
    "TenantLockProvider",
]
