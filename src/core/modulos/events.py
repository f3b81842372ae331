"""
Domain Events do Domínio de Módulos.

Eventos:
- ModuloAtivadoEvent: módulo passou a ativo para a clínica
- ModuloDesativadoEvent: módulo passou a inativo
- AlternanciaRejeitadaEvent: pedido rejeitado pelo resolver
- AssinaturaAlteradaEvent: flag de assinatura mudou

O agregado é a clínica: ``aggregate_id`` é sempre o tenant_id, o que
permite aos handlers invalidar o cache de acesso da clínica certa.

Uso:
    with uow:
        ...
        uow.publish_event(ModuloAtivadoEvent(aggregate_id=tenant_id, ...))
"""

from dataclasses import dataclass, field
from typing import List, Optional

from src.core.shared.events import DomainEvent


@dataclass
class _ClinicaModulosEvent(DomainEvent):
    module_key: str = ""
    actor_id: Optional[str] = None

    @property
    def aggregate_type(self) -> str:
        return "ClinicaModulos"

    @property
    def tenant_id(self) -> str:
        return self.aggregate_id


@dataclass
class ModuloAtivadoEvent(_ClinicaModulosEvent):
    """
    Evento: módulo ativado.

    Handlers típicos:
    - Invalidar cache de acesso em outros processos
    - Registrar métrica de adoção
    """


@dataclass
class ModuloDesativadoEvent(_ClinicaModulosEvent):
    """Evento: módulo desativado."""


@dataclass
class AlternanciaRejeitadaEvent(_ClinicaModulosEvent):
    """
    Evento: pedido de alteração rejeitado.

    Attributes:
        action: Ação pedida (ACTIVATE, DEACTIVATE, ...)
        error_code: Código tipado da rejeição
        details: Chaves que bloquearam o pedido
    """

    action: str = ""
    error_code: str = ""
    details: List[str] = field(default_factory=list)


@dataclass
class AssinaturaAlteradaEvent(_ClinicaModulosEvent):
    subscribed: bool = False
