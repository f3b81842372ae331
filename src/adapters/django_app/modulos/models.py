"""
Django Models para o domínio de Módulos.

Estes models são ADAPTERS - persistem as entidades definidas em
src/core/modulos/entities.py.

IMPORTANTE:
- Models NÃO contêm lógica de negócio
- Toda mutação passa pelos use cases (o admin é somente leitura)
- Linhas de estado nunca são apagadas, só alteradas

Tabelas:
- tenant_module_state: uma linha por clínica × módulo
- tenant_module_version: versão otimista por clínica
- module_audit_log: trilha de auditoria append-only
"""

from django.db import models
from django.utils import timezone


class AuditActionChoices(models.TextChoices):
    """Espelha AuditAction do Core."""
    ACTIVATE = 'ACTIVATE', 'Ativar'
    DEACTIVATE = 'DEACTIVATE', 'Desativar'
    SUBSCRIBE = 'SUBSCRIBE', 'Assinar'
    UNSUBSCRIBE = 'UNSUBSCRIBE', 'Cancelar assinatura'


class AuditOutcomeChoices(models.TextChoices):
    """Espelha AuditOutcome do Core."""
    SUCCESS = 'SUCCESS', 'Sucesso'
    REJECTED = 'REJECTED', 'Rejeitado'


class TenantModuleStateModel(models.Model):
    """
    Estado de um módulo para uma clínica.

    Fields:
        tenant_id: Clínica (string para independência do model de clínicas)
        module_key: Chave do módulo no catálogo
        subscribed: Módulo contratado
        active: Módulo ligado (único valor consultado pelo AccessGate)
        subscribed_at: Quando foi contratado
        updated_at / updated_by: Última alteração
    """

    tenant_id = models.CharField(
        max_length=100,
        db_index=True,
        help_text="ID da clínica"
    )

    module_key = models.CharField(
        max_length=50,
        help_text="Chave do módulo (ModuleKey)"
    )

    subscribed = models.BooleanField(
        default=False,
        help_text="Módulo contratado pela clínica"
    )

    active = models.BooleanField(
        default=False,
        help_text="Módulo ligado para a clínica"
    )

    subscribed_at = models.DateTimeField(
        null=True,
        blank=True,
        help_text="Data/hora da contratação"
    )

    updated_at = models.DateTimeField(
        default=timezone.now,
        help_text="Data/hora da última alteração"
    )

    updated_by = models.CharField(
        max_length=100,
        null=True,
        blank=True,
        help_text="Usuário da última alteração"
    )

    class Meta:
        db_table = 'tenant_module_state'
        verbose_name = 'Estado de Módulo'
        verbose_name_plural = 'Estados de Módulos'
        ordering = ['tenant_id', 'module_key']
        constraints = [
            models.UniqueConstraint(
                fields=['tenant_id', 'module_key'],
                name='uniq_tenant_module_state',
            ),
        ]
        indexes = [
            models.Index(fields=['tenant_id', 'active'], name='tenant_modu_tenant__a1c3e2_idx'),
        ]

    def __str__(self):
        return f"{self.tenant_id}:{self.module_key} (ativo={self.active})"


class TenantModuleVersionModel(models.Model):
    """
    Versão otimista do conjunto de estados de uma clínica.

    Bloqueada com ``select_for_update`` na leitura e incrementada com
    compare-and-set em toda escrita de estado da clínica.
    """

    tenant_id = models.CharField(
        max_length=100,
        primary_key=True,
        help_text="ID da clínica"
    )

    version = models.BigIntegerField(
        default=0,
        help_text="Incrementada a cada escrita de estado"
    )

    updated_at = models.DateTimeField(
        auto_now=True,
        help_text="Data/hora da última escrita"
    )

    class Meta:
        db_table = 'tenant_module_version'
        verbose_name = 'Versão de Módulos da Clínica'
        verbose_name_plural = 'Versões de Módulos das Clínicas'

    def __str__(self):
        return f"{self.tenant_id} v{self.version}"


class ModuleAuditLogModel(models.Model):
    """
    Registro de auditoria append-only.

    Um registro por pedido (inclusive no-ops e rejeições). ``reason``
    guarda as chaves que bloquearam a operação.
    """

    # Desempate de created_at: ordem de inserção
    sequencia = models.BigAutoField(
        primary_key=True,
        help_text="Ordem de inserção"
    )

    record_id = models.CharField(
        max_length=36,
        unique=True,
        editable=False,
        help_text="UUID do registro"
    )

    tenant_id = models.CharField(
        max_length=100,
        help_text="ID da clínica"
    )

    module_key = models.CharField(
        max_length=50,
        help_text="Chave do módulo"
    )

    action = models.CharField(
        max_length=20,
        choices=AuditActionChoices.choices,
        help_text="Ação pedida"
    )

    actor_id = models.CharField(
        max_length=100,
        null=True,
        blank=True,
        help_text="Usuário que fez o pedido"
    )

    outcome = models.CharField(
        max_length=20,
        choices=AuditOutcomeChoices.choices,
        help_text="Resultado do pedido"
    )

    reason = models.JSONField(
        default=list,
        blank=True,
        help_text="Chaves de módulo que causaram a rejeição"
    )

    error_code = models.CharField(
        max_length=50,
        null=True,
        blank=True,
        help_text="Código tipado da rejeição"
    )

    created_at = models.DateTimeField(
        default=timezone.now,
        help_text="Data/hora do pedido"
    )

    class Meta:
        db_table = 'module_audit_log'
        verbose_name = 'Auditoria de Módulo'
        verbose_name_plural = 'Auditoria de Módulos'
        ordering = ['created_at', 'sequencia']
        indexes = [
            models.Index(fields=['tenant_id', 'created_at'], name='module_audi_tenant__5b7f0d_idx'),
            models.Index(
                fields=['tenant_id', 'module_key', 'created_at'],
                name='module_audi_tenant__9e2c41_idx',
            ),
        ]

    def __str__(self):
        return f"{self.action} {self.module_key} -> {self.outcome} @ {self.created_at}"
