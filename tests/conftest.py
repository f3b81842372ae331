"""
Configurações globais do Pytest para OrthoMais Módulos.

Este arquivo é carregado automaticamente pelo pytest e
fornece fixtures e configurações compartilhadas.

Django é configurado aqui (SQLite em memória, cache LocMem) para que
testes de core e de adapters rodem sem PostgreSQL, Redis ou broker.
"""

import pytest
from pathlib import Path


TEST_SETTINGS = dict(
    DEBUG=True,
    SECRET_KEY='test-secret-key',
    DATABASES={
        'default': {
            'ENGINE': 'django.db.backends.sqlite3',
            'NAME': ':memory:',
        }
    },
    CACHES={
        'default': {
            'BACKEND': 'django.core.cache.backends.locmem.LocMemCache',
            'LOCATION': 'modulos-tests',
        }
    },
    INSTALLED_APPS=[
        'django.contrib.admin',
        'django.contrib.contenttypes',
        'django.contrib.auth',
        'django.contrib.messages',
        'django.contrib.sessions',
        'src.adapters.django_app.modulos',
    ],
    MIDDLEWARE=[
        'django.contrib.sessions.middleware.SessionMiddleware',
        'django.contrib.auth.middleware.AuthenticationMiddleware',
        'django.contrib.messages.middleware.MessageMiddleware',
    ],
    TEMPLATES=[{
        'BACKEND': 'django.template.backends.django.DjangoTemplates',
        'DIRS': [],
        'APP_DIRS': True,
        'OPTIONS': {
            'context_processors': [
                'django.template.context_processors.request',
                'django.contrib.auth.context_processors.auth',
                'django.contrib.messages.context_processors.messages',
            ],
        },
    }],
    ROOT_URLCONF='src.config.urls',
    DEFAULT_AUTO_FIELD='django.db.models.BigAutoField',
    USE_TZ=True,
    TIME_ZONE='America/Sao_Paulo',
    MODULOS_TOGGLE_MAX_TENTATIVAS=3,
    MODULOS_ACCESS_CACHE_TIMEOUT=30,
    MODULOS_EVENT_PUBLISHER='memory',
)


@pytest.fixture(scope="session")
def project_root():
    """Retorna o caminho raiz do projeto."""
    return Path(__file__).parent.parent


@pytest.fixture(autouse=True)
def reset_singletons():
    """
    Reset de singletons entre testes.

    Container DI e cache de acesso começam limpos em cada teste.
    """
    from django.core.cache import cache
    from src.config.container import reset_container

    reset_container()
    cache.clear()
    yield
    reset_container()
    cache.clear()


def pytest_configure(config):
    """Configuração do pytest e do Django."""
    import django
    from django.conf import settings

    if not settings.configured:
        settings.configure(**TEST_SETTINGS)
        django.setup()

    config.addinivalue_line(
        "markers", "unit: marks tests as unit tests (no database)"
    )
    config.addinivalue_line(
        "markers", "slow: marks tests as slow (deselect with '-m \"not slow\"')"
    )
    config.addinivalue_line(
        "markers", "integration: marks tests as integration tests"
    )


def pytest_collection_modifyitems(config, items):
    """Modifica coleção de testes."""
    skip_integration = pytest.mark.skip(reason="Integration tests require --run-integration")

    for item in items:
        if item.get_closest_marker("integration") is not None:
            if not config.getoption("--run-integration", default=False):
                item.add_marker(skip_integration)


def pytest_addoption(parser):
    """Adiciona opções de linha de comando."""
    parser.addoption(
        "--run-integration",
        action="store_true",
        default=False,
        help="run integration tests",
    )
