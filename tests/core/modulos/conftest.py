"""
Fixtures do domínio de Módulos.

Registries pequenos (cenário FINANCEIRO/CRM e cadeia A -> B -> C),
adapters em memória e uma fábrica que monta os use cases sobre eles.
"""

from types import SimpleNamespace

import pytest

from src.core.modulos.access_gate import AccessGate
from src.core.modulos.catalog import DEFAULT_MODULES
from src.core.modulos.entities import ModuleDefinition
from src.core.modulos.ports import (
    InMemoryAccessCache,
    InMemoryAuditLogRepository,
    InMemoryTenantModuleStateRepository,
)
from src.core.modulos.registry import ModuleRegistry
from src.core.modulos.resolver import DependencyResolver
from src.core.modulos.use_cases import (
    AlternarModuloService,
    AlterarAssinaturaService,
    AplicarTemplateService,
    ConsultarAuditoriaService,
    ListarModulosService,
    ProvisionarClinicaService,
)
from src.core.shared.locks import InProcessTenantLockProvider
from src.adapters.django_app.events.publishers import InMemoryEventPublisher
from src.adapters.django_app.shared.unit_of_work import InMemoryUnitOfWork


TENANT = "clinica-1"


def definicao(key, *deps, category="Teste"):
    return ModuleDefinition(
        key=key, name=key.title(), category=category, depends_on=frozenset(deps)
    )


@pytest.fixture
def cenario_registry():
    """FINANCEIRO <- CRM."""
    return ModuleRegistry.load([
        definicao("FINANCEIRO"),
        definicao("CRM", "FINANCEIRO"),
    ])


@pytest.fixture
def cadeia_registry():
    """A <- B <- C."""
    return ModuleRegistry.load([
        definicao("A"),
        definicao("B", "A"),
        definicao("C", "B"),
    ])


@pytest.fixture
def catalogo_registry():
    return ModuleRegistry.load(DEFAULT_MODULES)


@pytest.fixture
def state_repo():
    return InMemoryTenantModuleStateRepository()


@pytest.fixture
def audit_repo():
    return InMemoryAuditLogRepository()


@pytest.fixture
def event_publisher():
    return InMemoryEventPublisher()


@pytest.fixture
def assinar(state_repo):
    """Marca módulos como assinados direto no repositório."""

    def _assinar(tenant_id, *keys, ativos=()):
        snapshot = state_repo.get_snapshot(tenant_id)
        estados = []
        for key in keys:
            estado = snapshot.state_of(key)
            estado.alterar_assinatura(True, "setup")
            if key in ativos:
                estado.ativar("setup")
            estados.append(estado)
        state_repo.save_states(tenant_id, estados, snapshot.version)

    return _assinar


@pytest.fixture
def montar(state_repo, audit_repo, event_publisher):
    """
    Monta todos os use cases sobre um registry.

    Cada serviço de escrita recebe seu próprio UnitOfWork; todos
    compartilham repositórios, locks, gate e publisher.
    """

    def _montar(registry, max_tentativas=3, repo=None):
        repo = repo if repo is not None else state_repo
        resolver = DependencyResolver(registry)
        locks = InProcessTenantLockProvider()
        cache = InMemoryAccessCache()
        gate = AccessGate(registry, repo, cache)

        def uow():
            return InMemoryUnitOfWork(event_publisher=event_publisher)

        return SimpleNamespace(
            registry=registry,
            resolver=resolver,
            state_repo=repo,
            audit_repo=audit_repo,
            publisher=event_publisher,
            locks=locks,
            cache=cache,
            gate=gate,
            alternar=AlternarModuloService(
                registry, resolver, repo, audit_repo, uow(), locks, gate, max_tentativas
            ),
            assinatura=AlterarAssinaturaService(
                registry, repo, audit_repo, uow(), locks, max_tentativas
            ),
            template=AplicarTemplateService(
                registry, resolver, repo, audit_repo, uow(), locks, gate, max_tentativas
            ),
            listar=ListarModulosService(registry, resolver, repo),
            provisionar=ProvisionarClinicaService(registry, repo),
            auditoria=ConsultarAuditoriaService(audit_repo),
        )

    return _montar
