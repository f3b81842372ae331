"""
Testes para o admin somente leitura.
"""

import pytest
from django.contrib import admin
from django.test import RequestFactory

from src.adapters.django_app.modulos.admin import TenantModuleStateAdmin, TenantModuleVersionAdmin
from src.adapters.django_app.modulos.models import (
    ModuleAuditLogModel,
    TenantModuleStateModel,
    TenantModuleVersionModel,
)


class TestAdminSomenteLeitura:

    @pytest.mark.parametrize("model", [
        TenantModuleStateModel,
        TenantModuleVersionModel,
        ModuleAuditLogModel,
    ])
    def test_sem_escrita(self, model):
        """Nenhuma alteração deve ser possível pelo admin."""
        model_admin = admin.site._registry[model]
        request = RequestFactory().get('/admin/')

        assert not model_admin.has_add_permission(request)
        assert not model_admin.has_change_permission(request)
        assert not model_admin.has_delete_permission(request)

    def test_badge_ativo(self):
        model_admin = TenantModuleStateAdmin(TenantModuleStateModel, admin.site)

        html = model_admin.ativo_badge(TenantModuleStateModel(active=True))

        assert 'Ativo' in html


@pytest.mark.django_db
class TestConsistencia:
    """Coluna de invariantes por clínica."""

    def _admin(self):
        return TenantModuleVersionAdmin(TenantModuleVersionModel, admin.site)

    def test_clinica_consistente(self):
        TenantModuleStateModel.objects.create(
            tenant_id="c1", module_key="FINANCEIRO", subscribed=True, active=True
        )

        html = self._admin().consistencia(TenantModuleVersionModel(tenant_id="c1"))

        assert 'OK' in html

    def test_clinica_com_violacao(self):
        """SPLIT_PAGAMENTO ativo sem FINANCEIRO deve aparecer como violação."""
        TenantModuleStateModel.objects.create(
            tenant_id="c2", module_key="SPLIT_PAGAMENTO", subscribed=True, active=True
        )

        html = self._admin().consistencia(TenantModuleVersionModel(tenant_id="c2"))

        assert '1 violações' in html
        assert 'FINANCEIRO' in html
