"""
URL Configuration para OrthoMais Módulos.

Estrutura:
- /admin/ - Django Admin (somente leitura para módulos)
- /modulos/api/ - API de módulos por clínica
- /health/ - Health check
"""

from django.contrib import admin
from django.http import JsonResponse
from django.urls import path, include

urlpatterns = [
    # Django Admin
    path('admin/', admin.site.urls),

    # Módulos App
    path('modulos/', include('src.adapters.django_app.modulos.urls')),

    # Health check
    path('health/', lambda r: JsonResponse({'status': 'ok'})),
]
