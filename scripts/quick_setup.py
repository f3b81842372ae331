#!/usr/bin/env python
"""
Setup rápido para desenvolvimento local.

Este script:
1. Configura Django (SQLite local, ignorando DATABASE_URL/DATABASE_HOST)
2. Executa migrations
3. Provisiona uma clínica de exemplo (opcional)
4. Verifica invariantes de dependência de todas as clínicas (opcional)

Uso:
    python scripts/quick_setup.py
    python scripts/quick_setup.py --with-sample-data
    python scripts/quick_setup.py --verificar
"""

import os
import sys
import argparse

sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

CLINICA_DEMO = "clinica-demo"
TEMPLATE_DEMO = ("AGENDA", "PEP", "FINANCEIRO", "ORCAMENTOS")


def setup_django():
    os.environ.setdefault('DJANGO_SETTINGS_MODULE', 'src.config.settings')

    # Vazias (e não removidas) para o .env não reintroduzir PostgreSQL
    os.environ['DATABASE_URL'] = ''
    os.environ['DATABASE_HOST'] = ''

    import django
    django.setup()


def run_migrations():
    from django.core.management import call_command

    print("📦 Executando migrations...")
    call_command('migrate', verbosity=1)
    print("✅ Migrations concluídas!")


def create_sample_data():
    """Provisiona clínica de exemplo, contrata tudo e aplica um template."""
    from src.config.container import get_container
    from src.core.modulos.dtos import AlterarAssinaturaInputDTO, AplicarTemplateInputDTO

    container = get_container()
    registry = container.module_registry()

    criadas = container.provisionar_clinica_service().execute(CLINICA_DEMO)
    print(f"📝 {CLINICA_DEMO}: {criadas} módulos provisionados")

    assinatura = container.alterar_assinatura_service()
    for chave in registry.topological_order():
        assinatura.execute(
            AlterarAssinaturaInputDTO(CLINICA_DEMO, chave, True, actor_id="quick_setup")
        )
    print(f"   ✓ {len(registry)} módulos contratados")

    resultado = container.aplicar_template_service().execute(
        AplicarTemplateInputDTO(
            tenant_id=CLINICA_DEMO,
            template_name="Clínica Geral",
            module_keys=TEMPLATE_DEMO,
            actor_id="quick_setup",
        )
    )
    ativados = ', '.join(resultado.activated) or 'nada a ativar'
    print(f"   ✓ Template 'Clínica Geral': {ativados}")


def verificar_invariantes() -> int:
    """Lista violações por clínica; devolve o total encontrado."""
    from src.adapters.django_app.modulos.models import TenantModuleStateModel
    from src.config.container import get_container

    container = get_container()
    resolver = container.resolver()
    repo = container.state_repository()

    clinicas = (
        TenantModuleStateModel.objects
        .values_list('tenant_id', flat=True)
        .distinct()
        .order_by('tenant_id')
    )

    total = 0
    for tenant_id in clinicas:
        violacoes = resolver.invariant_violations(repo.get_snapshot(tenant_id))
        total += len(violacoes)
        status = "✅" if not violacoes else "❌"
        print(f"{status} {tenant_id}")
        for violacao in violacoes:
            print(f"     - {violacao}")
    return total


def show_info():
    from django.conf import settings

    print("\n" + "=" * 60)
    print(f"  Banco: {settings.DATABASES['default']['ENGINE']}")
    print(f"  Publisher de eventos: {settings.MODULOS_EVENT_PUBLISHER}")
    print("=" * 60)
    print("\n🚀 Próximos passos:")
    print("   1. django-admin runserver --settings=src.config.settings")
    print("   2. http://localhost:8000/admin/")
    print("   3. http://localhost:8000/modulos/api/acesso/ (clinic_id na sessão)")
    print()


def main():
    parser = argparse.ArgumentParser(description='Setup rápido do OrthoMais Módulos')
    parser.add_argument(
        '--with-sample-data',
        action='store_true',
        help=f'Provisionar {CLINICA_DEMO} com template inicial'
    )
    parser.add_argument(
        '--verificar',
        action='store_true',
        help='Apenas verificar invariantes de dependência'
    )
    args = parser.parse_args()

    setup_django()

    if args.verificar:
        sys.exit(1 if verificar_invariantes() else 0)

    run_migrations()

    if args.with_sample_data:
        create_sample_data()

    show_info()


if __name__ == '__main__':
    main()
