"""
Data Transfer Objects (DTOs) do Domínio de Módulos.

Tipos de DTOs:
- Input DTOs: pedidos já com tenant_id e ator explícitos
- Result DTOs: resultados tipados (sucesso ou rejeição) dos use cases
- Query/Output DTOs: listagem do catálogo e consulta de auditoria

Os ``to_dict`` destes DTOs são o contrato JSON consumido pela UI
administrativa; mudanças de nome de campo quebram o front-end.
"""

from dataclasses import dataclass, field
from datetime import datetime
from typing import List, Optional, Tuple

from .entities import AuditRecord, ToggleErrorCode


# =============================================================================
# INPUT DTOs (Entrada)
# =============================================================================

@dataclass(frozen=True)
class AlternarModuloInputDTO:
    """
    DTO de entrada para alternar/ativar/desativar um módulo.

    Attributes:
        tenant_id: Clínica alvo (sempre explícita)
        module_key: Chave do módulo
        actor_id: Usuário que fez o pedido
        desired_active: None alterna; True/False fixa o estado (idempotente)
    """

    tenant_id: str
    module_key: str
    actor_id: Optional[str] = None
    desired_active: Optional[bool] = None


@dataclass(frozen=True)
class AlterarAssinaturaInputDTO:
    tenant_id: str
    module_key: str
    subscribed: bool
    actor_id: Optional[str] = None


@dataclass(frozen=True)
class AplicarTemplateInputDTO:
    """
    DTO de entrada para aplicar um template de configuração.

    Attributes:
        tenant_id: Clínica alvo
        template_name: Nome do template (ex: "Ortodontia"), só para log/auditoria
        module_keys: Módulos que devem terminar ativos
        actor_id: Usuário que fez o pedido
    """

    tenant_id: str
    template_name: str
    module_keys: Tuple[str, ...] = field(default_factory=tuple)
    actor_id: Optional[str] = None


@dataclass(frozen=True)
class ConsultarAuditoriaQueryDTO:
    tenant_id: str
    since: Optional[datetime] = None
    until: Optional[datetime] = None
    module_key: Optional[str] = None
    limit: Optional[int] = None


# =============================================================================
# RESULT DTOs (Resultados tipados)
# =============================================================================

@dataclass(frozen=True)
class ToggleResult:
    """
    Resultado de alternância ou alteração de assinatura.

    Rejeições esperadas não são exceções: ``success=False`` com
    ``error`` e ``details`` listando exatamente as chaves que
    bloquearam, para a UI montar uma mensagem acionável.
    """

    success: bool
    module_key: str
    active: Optional[bool] = None
    subscribed: Optional[bool] = None
    error: Optional[ToggleErrorCode] = None
    details: Tuple[str, ...] = ()
    changed: bool = False

    @classmethod
    def ok(cls, module_key: str, active: bool, subscribed: bool, changed: bool) -> "ToggleResult":
        return cls(
            success=True,
            module_key=module_key,
            active=active,
            subscribed=subscribed,
            changed=changed,
        )

    @classmethod
    def rejeitado(
        cls, module_key: str, error: ToggleErrorCode, details: Tuple[str, ...] = ()
    ) -> "ToggleResult":
        return cls(success=False, module_key=module_key, error=error, details=tuple(details))

    def to_dict(self) -> dict:
        if self.success:
            return {"success": True, "active": self.active}
        return {
            "success": False,
            "error": self.error.value,
            "details": list(self.details),
        }


@dataclass(frozen=True)
class TemplateResult:
    success: bool
    template_name: str
    activated: Tuple[str, ...] = ()
    error: Optional[ToggleErrorCode] = None
    details: Tuple[str, ...] = ()

    def to_dict(self) -> dict:
        if self.success:
            return {
                "success": True,
                "template": self.template_name,
                "activated": list(self.activated),
            }
        return {
            "success": False,
            "template": self.template_name,
            "error": self.error.value,
            "details": list(self.details),
        }


# =============================================================================
# QUERY / OUTPUT DTOs
# =============================================================================

@dataclass(frozen=True)
class ModuloCatalogoItemDTO:
    """
    Linha da listagem do catálogo para a UI administrativa.

    Traz as saídas do resolver pré-calculadas; a UI não tem lógica de
    grafo própria.
    """

    module_key: str
    name: str
    category: str
    description: str
    icon: str
    is_subscribed: bool
    is_active: bool
    can_activate: bool
    can_deactivate: bool
    unmet_dependencies: Tuple[str, ...] = ()
    blocking_dependencies: Tuple[str, ...] = ()

    def to_dict(self) -> dict:
        return {
            "module_key": self.module_key,
            "name": self.name,
            "category": self.category,
            "description": self.description,
            "icon": self.icon,
            "is_subscribed": self.is_subscribed,
            "is_active": self.is_active,
            "can_activate": self.can_activate,
            "can_deactivate": self.can_deactivate,
            "unmet_dependencies": list(self.unmet_dependencies),
            "blocking_dependencies": list(self.blocking_dependencies),
        }


@dataclass(frozen=True)
class AuditRecordDTO:
    id: str
    tenant_id: str
    module_key: str
    action: str
    outcome: str
    actor_id: Optional[str]
    reason: Tuple[str, ...]
    error_code: Optional[str]
    timestamp: datetime

    @classmethod
    def from_entity(cls, registro: AuditRecord) -> "AuditRecordDTO":
        return cls(
            id=registro.id,
            tenant_id=registro.tenant_id,
            module_key=registro.module_key,
            action=registro.action.value,
            outcome=registro.outcome.value,
            actor_id=registro.actor_id,
            reason=tuple(registro.reason),
            error_code=registro.error_code.value if registro.error_code else None,
            timestamp=registro.timestamp,
        )

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "tenant_id": self.tenant_id,
            "module_key": self.module_key,
            "action": self.action,
            "outcome": self.outcome,
            "actor_id": self.actor_id,
            "reason": list(self.reason),
            "error_code": self.error_code,
            "timestamp": self.timestamp.isoformat(),
        }


def to_dict_list(items: List) -> List[dict]:
    return [item.to_dict() for item in items]
