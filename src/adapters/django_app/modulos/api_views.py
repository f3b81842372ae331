"""
API Views JSON para o domínio de Módulos.

Endpoints:
- GET  /modulos/api/ - Catálogo com estado e legalidade por módulo
- POST /modulos/api/toggle/ - Alternar módulo {module_key}
- POST /modulos/api/<key>/ativar/ - Ativar (idempotente)
- POST /modulos/api/<key>/desativar/ - Desativar (idempotente)
- POST /modulos/api/<key>/assinatura/ - Marcar contratação {subscribed}
- POST /modulos/api/templates/aplicar/ - Aplicar template {template, module_keys}
- GET  /modulos/api/acesso/ - Módulos ativos + menu filtrado
- GET  /modulos/api/acesso/<key>/ - Verificação pontual de acesso
- GET  /modulos/api/auditoria/ - Trilha de auditoria (desde, ate, module_key, limit)

Clínica e ator vêm da sessão/usuário autenticado e são repassados
explicitamente aos use cases.

Formato das respostas de alteração (contrato da UI administrativa):
- {"success": true, "active": bool}
- {"success": false, "error": "<CODE>", "details": [module_key, ...]}
"""

import json
import logging
from typing import Any, Dict, Optional

from django.views import View
from django.http import JsonResponse, HttpRequest
from django.utils.dateparse import parse_datetime
from django.utils import timezone
from django.utils.decorators import method_decorator
from django.views.decorators.csrf import csrf_exempt

from src.core.modulos.dtos import (
    AlterarAssinaturaInputDTO,
    AplicarTemplateInputDTO,
    ConsultarAuditoriaQueryDTO,
    ToggleResult,
    TemplateResult,
    to_dict_list,
)
from src.core.modulos.entities import ToggleErrorCode
from src.core.shared.exceptions import (
    ValidationError,
    EntityNotFoundError,
    BusinessRuleViolationError,
    ConcurrencyError,
    DomainException,
)
from src.config.container import get_container

logger = logging.getLogger(__name__)


# =============================================================================
# Helpers
# =============================================================================

def json_response(success: bool, data: Any = None, error: str = None,
                  status: int = 200, meta: Dict = None) -> JsonResponse:
    """
    Cria resposta JSON padronizada {success, data/error, meta}.
    """
    response = {'success': success}

    if data is not None:
        response['data'] = data

    if error is not None:
        response['error'] = error

    if meta is not None:
        response['meta'] = meta

    return JsonResponse(response, status=status)


def parse_json_body(request: HttpRequest) -> Dict:
    """
    Parseia body JSON do request.

    Raises:
        ValueError: Se JSON inválido ou não for objeto
    """
    if not request.body:
        return {}

    try:
        data = json.loads(request.body)
    except json.JSONDecodeError as e:
        raise ValueError(f"JSON inválido: {e}")

    if not isinstance(data, dict):
        raise ValueError("Corpo JSON deve ser um objeto")
    return data


def get_user_id(request: HttpRequest) -> Optional[str]:
    """Extrai ID do usuário do request."""
    user = getattr(request, 'user', None)
    if user is not None and user.is_authenticated:
        return str(user.id)
    return None


def get_tenant_id(request: HttpRequest) -> str:
    """
    Resolve a clínica do usuário autenticado ou da sessão.

    Raises:
        ValidationError: Se nenhuma clínica estiver associada
    """
    user = getattr(request, 'user', None)
    tenant_id = getattr(user, 'clinic_id', None) if user is not None else None
    if not tenant_id:
        session = getattr(request, 'session', None)
        if session is not None:
            tenant_id = session.get('clinic_id')
    if not tenant_id:
        raise ValidationError("Clínica não identificada na sessão", field="tenant_id")
    return str(tenant_id)


def result_status(result) -> int:
    """HTTP status de um ToggleResult/TemplateResult."""
    if result.success:
        return 200
    if result.error == ToggleErrorCode.CONCURRENT_MODIFICATION:
        return 409
    return 412


# =============================================================================
# Base API View
# =============================================================================

@method_decorator(csrf_exempt, name='dispatch')
class BaseAPIView(View):
    """
    View base para APIs JSON.

    Fornece:
    - Parsing de JSON
    - Acesso ao container DI
    - Tratamento de erros padronizado
    """

    def get_container(self):
        return get_container()

    def get_service(self, service_name: str):
        """Obtém provider do container pelo nome e instancia."""
        return getattr(self.get_container(), service_name)()

    def parse_body(self, request: HttpRequest) -> Dict:
        return parse_json_body(request)

    def result_response(self, result) -> JsonResponse:
        return JsonResponse(result.to_dict(), status=result_status(result))

    def handle_exception(self, e: Exception) -> JsonResponse:
        """
        Mapeia exceções para respostas HTTP.

        Rejeições esperadas não passam por aqui: chegam como
        resultado tipado.
        """
        if isinstance(e, ValidationError):
            return json_response(
                success=False,
                error=str(e),
                status=400,
                meta={'field': getattr(e, 'field', None)}
            )

        if isinstance(e, EntityNotFoundError):
            return json_response(
                success=False,
                error=str(e),
                status=404
            )

        if isinstance(e, BusinessRuleViolationError):
            return json_response(
                success=False,
                error=str(e),
                status=422,
                meta={'rule': getattr(e, 'rule', None)}
            )

        if isinstance(e, ConcurrencyError):
            return json_response(
                success=False,
                error=str(e),
                status=409
            )

        if isinstance(e, DomainException):
            return json_response(
                success=False,
                error=str(e),
                status=400
            )

        if isinstance(e, ValueError):
            return json_response(
                success=False,
                error=str(e),
                status=400
            )

        logger.exception(f"Erro inesperado na API: {e}")
        return json_response(
            success=False,
            error="Erro interno do servidor",
            status=500
        )


# =============================================================================
# Módulos API Views
# =============================================================================

class ModuloAPIListView(BaseAPIView):
    """GET /modulos/api/ - Catálogo da clínica."""

    def get(self, request: HttpRequest) -> JsonResponse:
        try:
            tenant_id = get_tenant_id(request)
            itens = self.get_service('listar_modulos_service').execute(tenant_id)

            return json_response(
                success=True,
                data=to_dict_list(itens),
                meta={
                    'total': len(itens),
                    'active': sum(1 for i in itens if i.is_active),
                    'subscribed': sum(1 for i in itens if i.is_subscribed),
                }
            )

        except Exception as e:
            return self.handle_exception(e)


class ModuloAPIToggleView(BaseAPIView):
    """
    POST /modulos/api/toggle/ - Alterna o módulo.

    Body JSON:
    {
        "module_key": "FINANCEIRO"
    }
    """

    def post(self, request: HttpRequest) -> JsonResponse:
        try:
            data = self.parse_body(request)
            module_key = data.get('module_key')
            if not module_key:
                raise ValidationError("module_key é obrigatório", field="module_key")

            result: ToggleResult = self.get_service('alternar_modulo_service').toggle(
                get_tenant_id(request), module_key, get_user_id(request)
            )
            return self.result_response(result)

        except Exception as e:
            return self.handle_exception(e)


class ModuloAPIAtivarView(BaseAPIView):
    """POST /modulos/api/<key>/ativar/"""

    def post(self, request: HttpRequest, key: str) -> JsonResponse:
        try:
            result = self.get_service('alternar_modulo_service').activate(
                get_tenant_id(request), key, get_user_id(request)
            )
            return self.result_response(result)

        except Exception as e:
            return self.handle_exception(e)


class ModuloAPIDesativarView(BaseAPIView):
    """POST /modulos/api/<key>/desativar/"""

    def post(self, request: HttpRequest, key: str) -> JsonResponse:
        try:
            result = self.get_service('alternar_modulo_service').deactivate(
                get_tenant_id(request), key, get_user_id(request)
            )
            return self.result_response(result)

        except Exception as e:
            return self.handle_exception(e)


class ModuloAPIAssinaturaView(BaseAPIView):
    """
    POST /modulos/api/<key>/assinatura/

    Body JSON:
    {
        "subscribed": true
    }
    """

    def post(self, request: HttpRequest, key: str) -> JsonResponse:
        try:
            data = self.parse_body(request)
            subscribed = data.get('subscribed')
            if not isinstance(subscribed, bool):
                raise ValidationError("subscribed deve ser booleano", field="subscribed")

            result = self.get_service('alterar_assinatura_service').execute(
                AlterarAssinaturaInputDTO(
                    tenant_id=get_tenant_id(request),
                    module_key=key,
                    subscribed=subscribed,
                    actor_id=get_user_id(request),
                )
            )
            return self.result_response(result)

        except Exception as e:
            return self.handle_exception(e)


class TemplateAPIAplicarView(BaseAPIView):
    """
    POST /modulos/api/templates/aplicar/

    Body JSON:
    {
        "template": "Ortodontia",
        "module_keys": ["ORCAMENTOS", "IA"]
    }
    """

    def post(self, request: HttpRequest) -> JsonResponse:
        try:
            data = self.parse_body(request)
            module_keys = data.get('module_keys') or []
            if not isinstance(module_keys, list):
                raise ValidationError("module_keys deve ser uma lista", field="module_keys")

            result: TemplateResult = self.get_service('aplicar_template_service').execute(
                AplicarTemplateInputDTO(
                    tenant_id=get_tenant_id(request),
                    template_name=data.get('template') or 'personalizado',
                    module_keys=tuple(module_keys),
                    actor_id=get_user_id(request),
                )
            )
            return self.result_response(result)

        except Exception as e:
            return self.handle_exception(e)


class AcessoAPIView(BaseAPIView):
    """GET /modulos/api/acesso/ - Módulos ativos e menu visível."""

    def get(self, request: HttpRequest) -> JsonResponse:
        try:
            tenant_id = get_tenant_id(request)
            gate = self.get_service('access_gate')

            return json_response(
                success=True,
                data={
                    'active_modules': sorted(gate.active_modules(tenant_id)),
                    'menu': to_dict_list(gate.filter_menu(tenant_id)),
                }
            )

        except Exception as e:
            return self.handle_exception(e)


class AcessoModuloAPIView(BaseAPIView):
    """GET /modulos/api/acesso/<key>/ - Verificação pontual."""

    def get(self, request: HttpRequest, key: str) -> JsonResponse:
        try:
            tenant_id = get_tenant_id(request)
            gate = self.get_service('access_gate')

            return json_response(
                success=True,
                data={'module_key': key, 'has_access': gate.has_access(tenant_id, key)}
            )

        except Exception as e:
            return self.handle_exception(e)


class AuditoriaAPIView(BaseAPIView):
    """
    GET /modulos/api/auditoria/

    Query params:
    - desde / ate: ISO 8601
    - module_key: filtrar por módulo
    - limit: máximo de registros
    """

    def _parse_data(self, request: HttpRequest, nome: str):
        valor = request.GET.get(nome)
        if not valor:
            return None
        data = parse_datetime(valor)
        if data is None:
            raise ValidationError(f"Data inválida em '{nome}': {valor}", field=nome)
        if timezone.is_naive(data):
            data = timezone.make_aware(data)
        return data

    def get(self, request: HttpRequest) -> JsonResponse:
        try:
            limit = request.GET.get('limit')
            query = ConsultarAuditoriaQueryDTO(
                tenant_id=get_tenant_id(request),
                since=self._parse_data(request, 'desde'),
                until=self._parse_data(request, 'ate'),
                module_key=request.GET.get('module_key') or None,
                limit=int(limit) if limit else None,
            )
            registros = self.get_service('consultar_auditoria_service').execute(query)

            return json_response(
                success=True,
                data=to_dict_list(registros),
                meta={'total': len(registros)}
            )

        except Exception as e:
            return self.handle_exception(e)
