"""
Django Admin para o domínio de Módulos.

Somente leitura: toda alteração de estado passa pelos use cases
(validação de dependências, lock por clínica e auditoria).
"""

from django.contrib import admin
from django.utils.html import format_html

from src.config.container import get_container

from .models import ModuleAuditLogModel, TenantModuleStateModel, TenantModuleVersionModel


class ReadOnlyAdminMixin:
    """Bloqueia inclusão, edição e remoção pelo admin."""

    def has_add_permission(self, request):
        return False

    def has_change_permission(self, request, obj=None):
        return False

    def has_delete_permission(self, request, obj=None):
        return False


@admin.register(TenantModuleStateModel)
class TenantModuleStateAdmin(ReadOnlyAdminMixin, admin.ModelAdmin):
    """Admin para TenantModuleStateModel."""

    list_display = [
        'tenant_id',
        'module_key',
        'subscribed',
        'ativo_badge',
        'updated_by',
        'updated_at',
    ]

    list_filter = [
        'active',
        'subscribed',
        'module_key',
    ]

    search_fields = [
        'tenant_id',
        'module_key',
    ]

    ordering = ['tenant_id', 'module_key']

    def ativo_badge(self, obj):
        """Exibe estado com badge colorido."""
        color = '#28a745' if obj.active else '#6c757d'
        label = 'Ativo' if obj.active else 'Inativo'
        return format_html(
            '<span style="background-color: {}; color: white; padding: 3px 8px; '
            'border-radius: 3px;">{}</span>',
            color,
            label,
        )
    ativo_badge.short_description = 'Estado'


@admin.register(TenantModuleVersionModel)
class TenantModuleVersionAdmin(ReadOnlyAdminMixin, admin.ModelAdmin):
    """Uma linha por clínica, com a checagem de invariantes do estado atual."""

    list_display = ['tenant_id', 'version', 'consistencia', 'updated_at']
    search_fields = ['tenant_id']

    def consistencia(self, obj):
        container = get_container()
        snapshot = container.state_repository().get_snapshot(obj.tenant_id)
        violacoes = container.resolver().invariant_violations(snapshot)
        if not violacoes:
            return format_html('<span style="color: #28a745;">{}</span>', 'OK')
        return format_html(
            '<span style="color: #dc3545;" title="{}">{} violações</span>',
            '; '.join(violacoes),
            len(violacoes),
        )
    consistencia.short_description = 'Consistência'


@admin.register(ModuleAuditLogModel)
class ModuleAuditLogAdmin(ReadOnlyAdminMixin, admin.ModelAdmin):
    """Admin para a trilha de auditoria."""

    list_display = [
        'created_at',
        'tenant_id',
        'module_key',
        'action',
        'outcome',
        'error_code',
        'actor_id',
    ]

    list_filter = [
        'action',
        'outcome',
        'error_code',
        'created_at',
    ]

    search_fields = [
        'tenant_id',
        'module_key',
        'actor_id',
        'record_id',
    ]

    ordering = ['-created_at', '-sequencia']

    date_hierarchy = 'created_at'
