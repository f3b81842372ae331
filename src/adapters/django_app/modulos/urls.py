"""
URL patterns para o domínio de Módulos.

Endpoints API JSON:
- GET  /modulos/api/ - Catálogo da clínica
- POST /modulos/api/toggle/ - Alternar módulo
- POST /modulos/api/templates/aplicar/ - Aplicar template
- GET  /modulos/api/acesso/ - Módulos ativos e menu
- GET  /modulos/api/acesso/<key>/ - Acesso a um módulo
- GET  /modulos/api/auditoria/ - Trilha de auditoria
- POST /modulos/api/<key>/ativar/ - Ativar
- POST /modulos/api/<key>/desativar/ - Desativar
- POST /modulos/api/<key>/assinatura/ - Contratação
"""

from django.urls import path
from . import api_views

app_name = 'modulos'

urlpatterns = [
    path('api/', api_views.ModuloAPIListView.as_view(), name='api_list'),

    # Rotas fixas antes de <key> para não conflitar
    path('api/toggle/', api_views.ModuloAPIToggleView.as_view(), name='api_toggle'),
    path('api/templates/aplicar/', api_views.TemplateAPIAplicarView.as_view(), name='api_template'),
    path('api/acesso/', api_views.AcessoAPIView.as_view(), name='api_acesso'),
    path('api/acesso/<str:key>/', api_views.AcessoModuloAPIView.as_view(), name='api_acesso_modulo'),
    path('api/auditoria/', api_views.AuditoriaAPIView.as_view(), name='api_auditoria'),

    # Ações por módulo
    path('api/<str:key>/ativar/', api_views.ModuloAPIAtivarView.as_view(), name='api_ativar'),
    path('api/<str:key>/desativar/', api_views.ModuloAPIDesativarView.as_view(), name='api_desativar'),
    path('api/<str:key>/assinatura/', api_views.ModuloAPIAssinaturaView.as_view(), name='api_assinatura'),
]
