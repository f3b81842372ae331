"""
Repositórios Django para persistência do domínio de Módulos.

Implementam os Ports definidos em src/core/modulos/ports.py.

Concorrência:
- ``get_snapshot(for_update=True)`` bloqueia a linha de versão da
  clínica (``select_for_update``) e as linhas de estado dela; duas
  transações da mesma clínica ficam serializadas no banco.
- ``save_states`` faz compare-and-set da versão; se outra transação
  escreveu no meio (banco sem FOR UPDATE, ou leitura sem lock),
  lança ``ConcurrencyError`` e o use case repete.
- ``active_module_keys`` é o caminho de leitura: sem lock e pode ser
  roteado para réplica.
"""

from datetime import datetime
from typing import FrozenSet, Iterable, List, Optional
import logging

from django.db.models import F
from django.utils import timezone

from src.core.modulos.entities import AuditRecord, TenantModuleState, TenantSnapshot, normalize_key
from src.core.shared.exceptions import ConcurrencyError

from .mappers import AuditRecordMapper, TenantModuleStateMapper
from .models import ModuleAuditLogModel, TenantModuleStateModel, TenantModuleVersionModel

logger = logging.getLogger(__name__)


class DjangoTenantModuleStateRepository:
    """
    Implementação Django do TenantModuleStateRepository.

    Example:
        repo = DjangoTenantModuleStateRepository()
        with DjangoUnitOfWork():
            snapshot = repo.get_snapshot("clinica-1", for_update=True)
            repo.save_states("clinica-1", [estado], snapshot.version)
    """

    def __init__(self):
        self._mapper = TenantModuleStateMapper()

    def get_snapshot(self, tenant_id: str, for_update: bool = False) -> TenantSnapshot:
        linhas = TenantModuleStateModel.objects.filter(tenant_id=tenant_id)

        if for_update:
            versao_model, _ = (
                TenantModuleVersionModel.objects
                .select_for_update()
                .get_or_create(tenant_id=tenant_id)
            )
            versao = versao_model.version
            linhas = linhas.select_for_update()
        else:
            versao = (
                TenantModuleVersionModel.objects
                .filter(tenant_id=tenant_id)
                .values_list('version', flat=True)
                .first()
            ) or 0

        estados = self._mapper.to_entity_list(linhas)
        return TenantSnapshot.from_states(tenant_id, estados, versao)

    def save_states(
        self, tenant_id: str, states: List[TenantModuleState], expected_version: int
    ) -> int:
        TenantModuleVersionModel.objects.get_or_create(tenant_id=tenant_id)
        atualizadas = (
            TenantModuleVersionModel.objects
            .filter(tenant_id=tenant_id, version=expected_version)
            .update(version=F('version') + 1, updated_at=timezone.now())
        )
        if atualizadas == 0:
            raise ConcurrencyError(
                f"Estado de módulos da clínica {tenant_id} modificado por outro processo"
            )

        for state in states:
            TenantModuleStateModel.objects.update_or_create(
                tenant_id=tenant_id,
                module_key=state.module_key,
                defaults=self._mapper.to_defaults(state),
            )

        logger.debug(f"Clínica {tenant_id}: {len(states)} estados gravados")
        return expected_version + 1

    def provision(self, tenant_id: str, module_keys: Iterable[str]) -> int:
        existentes = set(
            TenantModuleStateModel.objects
            .filter(tenant_id=tenant_id)
            .values_list('module_key', flat=True)
        )
        novas = [
            TenantModuleStateModel(tenant_id=tenant_id, module_key=chave)
            for chave in dict.fromkeys(normalize_key(k) for k in module_keys)
            if chave not in existentes
        ]
        if novas:
            TenantModuleStateModel.objects.bulk_create(novas, ignore_conflicts=True)
        return len(novas)

    def active_module_keys(self, tenant_id: str) -> FrozenSet[str]:
        return frozenset(
            TenantModuleStateModel.objects
            .filter(tenant_id=tenant_id, active=True)
            .values_list('module_key', flat=True)
        )


class DjangoAuditLogRepository:
    """Trilha de auditoria append-only (somente INSERT e SELECT)."""

    def __init__(self):
        self._mapper = AuditRecordMapper()

    def append(self, record: AuditRecord) -> None:
        self._mapper.to_model(record).save(force_insert=True)

    def list_for_tenant(
        self,
        tenant_id: str,
        since: Optional[datetime] = None,
        until: Optional[datetime] = None,
        module_key: Optional[str] = None,
        limit: Optional[int] = None,
    ) -> List[AuditRecord]:
        queryset = ModuleAuditLogModel.objects.filter(tenant_id=tenant_id)
        if since is not None:
            queryset = queryset.filter(created_at__gte=since)
        if until is not None:
            queryset = queryset.filter(created_at__lte=until)
        if module_key:
            queryset = queryset.filter(module_key=normalize_key(module_key))
        queryset = queryset.order_by('created_at', 'sequencia')
        if limit is not None:
            queryset = queryset[:limit]
        return [self._mapper.to_entity(m) for m in queryset]
