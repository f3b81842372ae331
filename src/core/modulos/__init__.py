"""
Domínio de Módulos - Motor de Dependência e Ativação.

Decide, por clínica, quais módulos opcionais estão contratados e
ativos, mantendo o grafo de dependências consistente sob escrita
concorrente.
"""

from .entities import (
    AuditAction,
    AuditOutcome,
    AuditRecord,
    ModuleDefinition,
    ModuleKey,
    TenantModuleState,
    TenantSnapshot,
    ToggleErrorCode,
)
from .registry import ModuleRegistry
from .resolver import DependencyResolver, ToggleRejection
from .access_gate import AccessGate

__all__ = [
    "AuditAction",
    "AuditOutcome",
    "AuditRecord",
    "ModuleDefinition",
    "ModuleKey",
    "TenantModuleState",
    "TenantSnapshot",
    "ToggleErrorCode",
    "ModuleRegistry",
    "DependencyResolver",
    "ToggleRejection",
    "AccessGate",
]
