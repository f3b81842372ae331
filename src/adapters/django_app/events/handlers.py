"""
Event Handlers - Processadores de Eventos de Módulos.

Executados de forma assíncrona via Celery quando Domain Events de
módulos são publicados:

- Invalidação do cache de acesso (rede de segurança entre processos;
  a invalidação principal é síncrona no use case)
- Métricas de adoção e de rejeição

Padrão:
    @shared_task(bind=True, ...)
    def handle_<evento>(self, event_data: dict) -> None:
        ...
"""

import logging
from typing import Dict, Any

from celery import shared_task

logger = logging.getLogger(__name__)


def _dados(event_data: Dict[str, Any]) -> Dict[str, Any]:
    return event_data.get('data', {}) or {}


def _invalidar_cache_acesso(tenant_id: str) -> None:
    from src.config.container import get_container

    get_container().access_gate().invalidate(tenant_id)


# =============================================================================
# Event Handlers - Módulos
# =============================================================================

@shared_task(
    bind=True,
    max_retries=3,
    default_retry_delay=30,
    autoretry_for=(Exception,),
    acks_late=True,
)
def handle_modulo_alterado(self, event_data: Dict[str, Any]) -> None:
    """
    Handler para ModuloAtivadoEvent e ModuloDesativadoEvent.

    Ações:
    - Invalidar cache de acesso da clínica
    - Registrar métrica de ativação/desativação

    Args:
        event_data: Evento serializado (DomainEvent.to_dict)
    """
    tenant_id = event_data.get('aggregate_id')
    dados = _dados(event_data)
    module_key = dados.get('module_key')
    ativado = event_data.get('event_type') == 'ModuloAtivadoEvent'

    logger.info(
        f"[HANDLER] {event_data.get('event_type')}: clínica {tenant_id} | "
        f"módulo {module_key} | ator {dados.get('actor_id')}"
    )

    _invalidar_cache_acesso(tenant_id)

    record_metric.delay(
        metric_name='modulos_ativados' if ativado else 'modulos_desativados',
        value=1,
        tags={'module_key': module_key},
    )


@shared_task(bind=True, max_retries=3, default_retry_delay=60, acks_late=True)
def handle_alternancia_rejeitada(self, event_data: Dict[str, Any]) -> None:
    """
    Handler para AlternanciaRejeitadaEvent.

    Rejeições são esperadas (admin tentou fora de ordem); só viram
    métrica por código de erro.
    """
    dados = _dados(event_data)

    logger.info(
        f"[HANDLER] AlternanciaRejeitada: clínica {event_data.get('aggregate_id')} | "
        f"{dados.get('action')} {dados.get('module_key')} -> "
        f"{dados.get('error_code')} {dados.get('details')}"
    )

    record_metric.delay(
        metric_name='modulos_rejeicoes',
        value=1,
        tags={
            'module_key': dados.get('module_key'),
            'error_code': dados.get('error_code'),
        },
    )


@shared_task(bind=True, max_retries=3, default_retry_delay=60)
def handle_assinatura_alterada(self, event_data: Dict[str, Any]) -> None:
    dados = _dados(event_data)

    logger.info(
        f"[HANDLER] AssinaturaAlterada: clínica {event_data.get('aggregate_id')} | "
        f"módulo {dados.get('module_key')} | assinado={dados.get('subscribed')}"
    )

    record_metric.delay(
        metric_name='modulos_assinados' if dados.get('subscribed') else 'modulos_cancelados',
        value=1,
        tags={'module_key': dados.get('module_key')},
    )


# =============================================================================
# Event Dispatcher (Router)
# =============================================================================

EVENT_HANDLERS = {
    'ModuloAtivadoEvent': handle_modulo_alterado,
    'ModuloDesativadoEvent': handle_modulo_alterado,
    'AlternanciaRejeitadaEvent': handle_alternancia_rejeitada,
    'AssinaturaAlteradaEvent': handle_assinatura_alterada,
}


@shared_task(bind=True, max_retries=5, default_retry_delay=30)
def dispatch_domain_event(self, event_type: str, event_data: Dict[str, Any]) -> None:
    """
    Dispatcher central para Domain Events.

    Args:
        event_type: Tipo do evento (ex: 'ModuloAtivadoEvent')
        event_data: Dados do evento serializado
    """
    handler = EVENT_HANDLERS.get(event_type)

    if handler:
        logger.info(f"[DISPATCHER] Roteando {event_type} para handler")
        handler.delay(event_data)
    else:
        logger.warning(f"[DISPATCHER] Handler não encontrado para {event_type}")


# =============================================================================
# Metric Tasks
# =============================================================================

@shared_task(bind=True, ignore_result=True)
def record_metric(
    self,
    metric_name: str,
    value: float,
    tags: Dict[str, str] = None
) -> None:
    """
    Registra métrica para monitoramento.

    Args:
        metric_name: Nome da métrica
        value: Valor
        tags: Tags para dimensões
    """
    logger.info(
        f"[METRIC] {metric_name}={value} | tags={tags or {}}"
    )
