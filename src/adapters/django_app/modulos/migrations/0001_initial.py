"""
Migration inicial para o domínio de Módulos.

Cria as tabelas:
- tenant_module_state: Estado por clínica × módulo
- tenant_module_version: Versão otimista por clínica
- module_audit_log: Auditoria append-only
"""

from django.db import migrations, models
import django.utils.timezone


class Migration(migrations.Migration):
    """Migration inicial."""

    initial = True

    dependencies = [
    ]

    operations = [
        # =================================================================
        # Tabela: tenant_module_state
        # =================================================================
        migrations.CreateModel(
            name='TenantModuleStateModel',
            fields=[
                ('id', models.BigAutoField(
                    auto_created=True,
                    primary_key=True,
                    serialize=False,
                    verbose_name='ID'
                )),
                ('tenant_id', models.CharField(
                    max_length=100,
                    db_index=True,
                    help_text='ID da clínica'
                )),
                ('module_key', models.CharField(
                    max_length=50,
                    help_text='Chave do módulo (ModuleKey)'
                )),
                ('subscribed', models.BooleanField(
                    default=False,
                    help_text='Módulo contratado pela clínica'
                )),
                ('active', models.BooleanField(
                    default=False,
                    help_text='Módulo ligado para a clínica'
                )),
                ('subscribed_at', models.DateTimeField(
                    null=True,
                    blank=True,
                    help_text='Data/hora da contratação'
                )),
                ('updated_at', models.DateTimeField(
                    default=django.utils.timezone.now,
                    help_text='Data/hora da última alteração'
                )),
                ('updated_by', models.CharField(
                    max_length=100,
                    null=True,
                    blank=True,
                    help_text='Usuário da última alteração'
                )),
            ],
            options={
                'verbose_name': 'Estado de Módulo',
                'verbose_name_plural': 'Estados de Módulos',
                'db_table': 'tenant_module_state',
                'ordering': ['tenant_id', 'module_key'],
                'indexes': [
                    models.Index(
                        fields=['tenant_id', 'active'],
                        name='tenant_modu_tenant__a1c3e2_idx'
                    ),
                ],
                'constraints': [
                    models.UniqueConstraint(
                        fields=('tenant_id', 'module_key'),
                        name='uniq_tenant_module_state'
                    ),
                ],
            },
        ),

        # =================================================================
        # Tabela: tenant_module_version
        # =================================================================
        migrations.CreateModel(
            name='TenantModuleVersionModel',
            fields=[
                ('tenant_id', models.CharField(
                    max_length=100,
                    primary_key=True,
                    serialize=False,
                    help_text='ID da clínica'
                )),
                ('version', models.BigIntegerField(
                    default=0,
                    help_text='Incrementada a cada escrita de estado'
                )),
                ('updated_at', models.DateTimeField(
                    auto_now=True,
                    help_text='Data/hora da última escrita'
                )),
            ],
            options={
                'verbose_name': 'Versão de Módulos da Clínica',
                'verbose_name_plural': 'Versões de Módulos das Clínicas',
                'db_table': 'tenant_module_version',
            },
        ),

        # =================================================================
        # Tabela: module_audit_log
        # =================================================================
        migrations.CreateModel(
            name='ModuleAuditLogModel',
            fields=[
                ('sequencia', models.BigAutoField(
                    primary_key=True,
                    serialize=False,
                    help_text='Ordem de inserção'
                )),
                ('record_id', models.CharField(
                    max_length=36,
                    unique=True,
                    editable=False,
                    help_text='UUID do registro'
                )),
                ('tenant_id', models.CharField(
                    max_length=100,
                    help_text='ID da clínica'
                )),
                ('module_key', models.CharField(
                    max_length=50,
                    help_text='Chave do módulo'
                )),
                ('action', models.CharField(
                    max_length=20,
                    choices=[
                        ('ACTIVATE', 'Ativar'),
                        ('DEACTIVATE', 'Desativar'),
                        ('SUBSCRIBE', 'Assinar'),
                        ('UNSUBSCRIBE', 'Cancelar assinatura'),
                    ],
                    help_text='Ação pedida'
                )),
                ('actor_id', models.CharField(
                    max_length=100,
                    null=True,
                    blank=True,
                    help_text='Usuário que fez o pedido'
                )),
                ('outcome', models.CharField(
                    max_length=20,
                    choices=[
                        ('SUCCESS', 'Sucesso'),
                        ('REJECTED', 'Rejeitado'),
                    ],
                    help_text='Resultado do pedido'
                )),
                ('reason', models.JSONField(
                    default=list,
                    blank=True,
                    help_text='Chaves de módulo que causaram a rejeição'
                )),
                ('error_code', models.CharField(
                    max_length=50,
                    null=True,
                    blank=True,
                    help_text='Código tipado da rejeição'
                )),
                ('created_at', models.DateTimeField(
                    default=django.utils.timezone.now,
                    help_text='Data/hora do pedido'
                )),
            ],
            options={
                'verbose_name': 'Auditoria de Módulo',
                'verbose_name_plural': 'Auditoria de Módulos',
                'db_table': 'module_audit_log',
                'ordering': ['created_at', 'sequencia'],
                'indexes': [
                    models.Index(
                        fields=['tenant_id', 'created_at'],
                        name='module_audi_tenant__5b7f0d_idx'
                    ),
                    models.Index(
                        fields=['tenant_id', 'module_key', 'created_at'],
                        name='module_audi_tenant__9e2c41_idx'
                    ),
                ],
            },
        ),
    ]
