"""
Mappers para conversão entre Entities (Core) e Models (Django).

Responsabilidades:
- TenantModuleStateModel <-> TenantModuleState
- ModuleAuditLogModel <-> AuditRecord

Mappers são stateless e não contêm lógica de negócio.
"""

from typing import Iterable, List

from src.core.modulos.entities import (
    AuditAction,
    AuditOutcome,
    AuditRecord,
    TenantModuleState,
    ToggleErrorCode,
)

from .models import ModuleAuditLogModel, TenantModuleStateModel


class TenantModuleStateMapper:

    @staticmethod
    def to_entity(model: TenantModuleStateModel) -> TenantModuleState:
        return TenantModuleState(
            tenant_id=model.tenant_id,
            module_key=model.module_key,
            subscribed=model.subscribed,
            active=model.active,
            updated_at=model.updated_at,
            updated_by=model.updated_by,
            subscribed_at=model.subscribed_at,
        )

    @staticmethod
    def to_defaults(entity: TenantModuleState) -> dict:
        """Campos para ``update_or_create`` (sem a chave natural)."""
        return {
            "subscribed": entity.subscribed,
            "active": entity.active,
            "subscribed_at": entity.subscribed_at,
            "updated_at": entity.updated_at,
            "updated_by": entity.updated_by,
        }

    @classmethod
    def to_entity_list(cls, models: Iterable[TenantModuleStateModel]) -> List[TenantModuleState]:
        return [cls.to_entity(m) for m in models]


class AuditRecordMapper:

    @staticmethod
    def to_model(entity: AuditRecord) -> ModuleAuditLogModel:
        return ModuleAuditLogModel(
            record_id=entity.id,
            tenant_id=entity.tenant_id,
            module_key=entity.module_key,
            action=entity.action.value,
            actor_id=entity.actor_id,
            outcome=entity.outcome.value,
            reason=list(entity.reason),
            error_code=entity.error_code.value if entity.error_code else None,
            created_at=entity.timestamp,
        )

    @staticmethod
    def to_entity(model: ModuleAuditLogModel) -> AuditRecord:
        return AuditRecord(
            id=model.record_id,
            tenant_id=model.tenant_id,
            module_key=model.module_key,
            action=AuditAction(model.action),
            outcome=AuditOutcome(model.outcome),
            actor_id=model.actor_id,
            reason=tuple(model.reason or ()),
            error_code=ToggleErrorCode(model.error_code) if model.error_code else None,
            timestamp=model.created_at,
        )
