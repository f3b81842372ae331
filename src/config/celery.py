"""
App Celery dos workers de eventos de módulos.

Os workers consomem os Domain Events publicados pelo
CeleryEventPublisher depois do commit:
- fila ``events``: invalidação do cache de acesso entre processos
- fila ``metrics``: métricas de alternância e rejeição

Broker, backend e política de ack vêm de ``settings`` (prefixo CELERY_).

Uso:
    celery -A src.config.celery worker -l INFO -Q events,metrics
"""

import os
from celery import Celery
from kombu import Queue, Exchange

os.environ.setdefault('DJANGO_SETTINGS_MODULE', 'src.config.settings')

app = Celery('orthomais_modulos')
app.config_from_object('django.conf:settings', namespace='CELERY')

_eventos = Exchange('modulos.eventos', type='topic')

app.conf.task_default_queue = 'events'
app.conf.task_queues = (
    Queue('events', _eventos, routing_key='modulos.eventos.#'),
    Queue('metrics', _eventos, routing_key='modulos.metricas.#'),
)

app.conf.task_routes = {
    'src.adapters.django_app.events.handlers.record_metric': {
        'queue': 'metrics',
        'routing_key': 'modulos.metricas.registrar',
    },
    'src.adapters.django_app.events.handlers.*': {
        'queue': 'events',
        'routing_key': 'modulos.eventos.despachar',
    },
}

app.conf.worker_send_task_events = True
app.conf.task_send_sent_event = True

app.autodiscover_tasks(['src.adapters.django_app.events'], related_name='handlers')
