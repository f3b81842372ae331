"""
Dependency Injection Container.

Configura e gerencia todas as dependências da aplicação.
Usa dependency-injector para lazy-loading e injeção automática.

Padrões:
- Singleton: Uma instância para toda app (registry, repositories, gate, locks)
- Factory: Nova instância por chamada (services, UoW)
- Configuration: valores vindos de settings

O ModuleRegistry é Singleton: carregado uma vez no boot (ModulosConfig.ready)
e somente leitura depois disso. Um catálogo inválido derruba o processo
na inicialização.
"""

from dependency_injector import containers, providers
from typing import Optional

from src.core.modulos.catalog import DEFAULT_MODULES
from src.core.modulos.registry import ModuleRegistry
from src.core.modulos.resolver import DependencyResolver
from src.core.modulos.access_gate import AccessGate
from src.core.modulos.use_cases import (
    DEFAULT_MAX_TENTATIVAS,
    AlternarModuloService,
    AlterarAssinaturaService,
    AplicarTemplateService,
    ListarModulosService,
    ProvisionarClinicaService,
    ConsultarAuditoriaService,
)
from src.core.shared.locks import InProcessTenantLockProvider


class Container(containers.DeclarativeContainer):
    """
    Container principal de Dependency Injection.

    Organização:
    - Configuration: Variáveis de ambiente/settings
    - Domínio: Registry e Resolver
    - Infrastructure: Publisher, cache, locks
    - Repositories: Persistência
    - Unit of Work: Transações
    - Services: Use Cases

    Example:
        from src.config.container import get_container

        service = get_container().alternar_modulo_service()
        result = service.toggle("clinica-1", "FINANCEIRO", "user-1")
    """

    # =========================================================================
    # Configuration
    # =========================================================================

    config = providers.Configuration()

    # =========================================================================
    # Domínio (Singleton - imutável após o boot)
    # =========================================================================

    module_registry = providers.Singleton(ModuleRegistry.load, DEFAULT_MODULES)

    resolver = providers.Singleton(DependencyResolver, registry=module_registry)

    # =========================================================================
    # Infrastructure (Lazy - criado sob demanda)
    # =========================================================================

    event_publisher = providers.Singleton(
        lambda mode: __import__(
            'src.adapters.django_app.events.publishers',
            fromlist=['get_event_publisher']
        ).get_event_publisher(mode),
        mode=config.event_publisher,
    )

    tenant_locks = providers.Singleton(InProcessTenantLockProvider)

    access_cache = providers.Singleton(
        lambda timeout: __import__(
            'src.adapters.django_app.modulos.cache',
            fromlist=['DjangoAccessCache']
        ).DjangoAccessCache(timeout=timeout),
        timeout=config.access_cache_timeout,
    )

    # =========================================================================
    # Repositories (Singleton - uma instância por app)
    # =========================================================================

    state_repository = providers.Singleton(
        # Lazy import: models só depois de apps.ready
        providers.Factory(
            lambda: __import__(
                'src.adapters.django_app.modulos.repositories',
                fromlist=['DjangoTenantModuleStateRepository']
            ).DjangoTenantModuleStateRepository()
        )
    )

    audit_repository = providers.Singleton(
        providers.Factory(
            lambda: __import__(
                'src.adapters.django_app.modulos.repositories',
                fromlist=['DjangoAuditLogRepository']
            ).DjangoAuditLogRepository()
        )
    )

    access_gate = providers.Singleton(
        AccessGate,
        registry=module_registry,
        state_repo=state_repository,
        cache=access_cache,
    )

    # =========================================================================
    # Unit of Work (Factory - nova instância por operação)
    # =========================================================================

    unit_of_work = providers.Factory(
        lambda event_publisher: __import__(
            'src.adapters.django_app.shared.unit_of_work',
            fromlist=['DjangoUnitOfWork']
        ).DjangoUnitOfWork(event_publisher=event_publisher),
        event_publisher=event_publisher,
    )

    # =========================================================================
    # Services / Use Cases (Factory - nova instância por chamada)
    # =========================================================================

    alternar_modulo_service = providers.Factory(
        AlternarModuloService,
        registry=module_registry,
        resolver=resolver,
        state_repo=state_repository,
        audit_repo=audit_repository,
        uow=unit_of_work,
        tenant_locks=tenant_locks,
        access_gate=access_gate,
        max_tentativas=config.toggle_max_tentativas,
    )

    alterar_assinatura_service = providers.Factory(
        AlterarAssinaturaService,
        registry=module_registry,
        state_repo=state_repository,
        audit_repo=audit_repository,
        uow=unit_of_work,
        tenant_locks=tenant_locks,
        max_tentativas=config.toggle_max_tentativas,
    )

    aplicar_template_service = providers.Factory(
        AplicarTemplateService,
        registry=module_registry,
        resolver=resolver,
        state_repo=state_repository,
        audit_repo=audit_repository,
        uow=unit_of_work,
        tenant_locks=tenant_locks,
        access_gate=access_gate,
        max_tentativas=config.toggle_max_tentativas,
    )

    # Leitura (sem UoW)
    listar_modulos_service = providers.Factory(
        ListarModulosService,
        registry=module_registry,
        resolver=resolver,
        state_repo=state_repository,
    )

    provisionar_clinica_service = providers.Factory(
        ProvisionarClinicaService,
        registry=module_registry,
        state_repo=state_repository,
    )

    consultar_auditoria_service = providers.Factory(
        ConsultarAuditoriaService,
        audit_repo=audit_repository,
    )


def _config_from_settings() -> dict:
    from django.conf import settings

    return {
        'event_publisher': getattr(settings, 'MODULOS_EVENT_PUBLISHER', 'logging'),
        'access_cache_timeout': getattr(settings, 'MODULOS_ACCESS_CACHE_TIMEOUT', 30),
        'toggle_max_tentativas': getattr(
            settings, 'MODULOS_TOGGLE_MAX_TENTATIVAS', DEFAULT_MAX_TENTATIVAS
        ),
    }


# =============================================================================
# Container Global (Singleton)
# =============================================================================

_container: Optional[Container] = None


def get_container() -> Container:
    """
    Retorna instância global do container.

    Cria se não existir (lazy initialization), com configuração lida
    de django.conf.settings.

    Returns:
        Container configurado
    """
    global _container

    if _container is None:
        _container = Container()
        _container.config.from_dict(_config_from_settings())

    return _container


def reset_container() -> None:
    """
    Reset do container (para testes).

    Permite criar novo container limpo.
    """
    global _container
    _container = None


# =============================================================================
# Testing Container
# =============================================================================

class TestingContainer(containers.DeclarativeContainer):
    """
    Container para testes com implementações InMemory.

    Não toca banco nem cache do Django.

    Example:
        container = TestingContainer()
        service = container.alternar_modulo_service()
        container.state_repository().provision("c1", ["PEP"])
    """

    module_registry = providers.Singleton(ModuleRegistry.load, DEFAULT_MODULES)

    resolver = providers.Singleton(DependencyResolver, registry=module_registry)

    event_publisher = providers.Singleton(
        lambda: __import__(
            'src.adapters.django_app.events.publishers',
            fromlist=['InMemoryEventPublisher']
        ).InMemoryEventPublisher()
    )

    tenant_locks = providers.Singleton(InProcessTenantLockProvider)

    state_repository = providers.Singleton(
        lambda: __import__(
            'src.core.modulos.ports',
            fromlist=['InMemoryTenantModuleStateRepository']
        ).InMemoryTenantModuleStateRepository()
    )

    audit_repository = providers.Singleton(
        lambda: __import__(
            'src.core.modulos.ports',
            fromlist=['InMemoryAuditLogRepository']
        ).InMemoryAuditLogRepository()
    )

    access_gate = providers.Singleton(
        AccessGate,
        registry=module_registry,
        state_repo=state_repository,
    )

    unit_of_work = providers.Factory(
        lambda event_publisher: __import__(
            'src.adapters.django_app.shared.unit_of_work',
            fromlist=['InMemoryUnitOfWork']
        ).InMemoryUnitOfWork(event_publisher=event_publisher),
        event_publisher=event_publisher,
    )

    alternar_modulo_service = providers.Factory(
        AlternarModuloService,
        registry=module_registry,
        resolver=resolver,
        state_repo=state_repository,
        audit_repo=audit_repository,
        uow=unit_of_work,
        tenant_locks=tenant_locks,
        access_gate=access_gate,
    )

    alterar_assinatura_service = providers.Factory(
        AlterarAssinaturaService,
        registry=module_registry,
        state_repo=state_repository,
        audit_repo=audit_repository,
        uow=unit_of_work,
        tenant_locks=tenant_locks,
    )

    aplicar_template_service = providers.Factory(
        AplicarTemplateService,
        registry=module_registry,
        resolver=resolver,
        state_repo=state_repository,
        audit_repo=audit_repository,
        uow=unit_of_work,
        tenant_locks=tenant_locks,
        access_gate=access_gate,
    )

    listar_modulos_service = providers.Factory(
        ListarModulosService,
        registry=module_registry,
        resolver=resolver,
        state_repo=state_repository,
    )

    provisionar_clinica_service = providers.Factory(
        ProvisionarClinicaService,
        registry=module_registry,
        state_repo=state_repository,
    )

    consultar_auditoria_service = providers.Factory(
        ConsultarAuditoriaService,
        audit_repo=audit_repository,
    )
