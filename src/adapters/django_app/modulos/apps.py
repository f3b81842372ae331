"""
Configuração do Django App para Módulos.

Carrega e valida o ModuleRegistry no boot.
"""

import logging

from django.apps import AppConfig

logger = logging.getLogger(__name__)


class ModulosConfig(AppConfig):
    """Configuração do app Módulos."""

    default_auto_field = 'django.db.models.BigAutoField'
    name = 'src.adapters.django_app.modulos'
    label = 'modulos'
    verbose_name = 'Módulos por Clínica'

    def ready(self):
        """
        Executado quando o app está pronto.

        Materializa o registry do container: catálogo com dependência
        desconhecida ou ciclo impede a inicialização do processo.
        """
        from src.config.container import get_container

        registry = get_container().module_registry()
        logger.info(f"Catálogo de módulos pronto: {len(registry)} módulos")
