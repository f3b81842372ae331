"""
Testes para a API JSON do domínio de Módulos.

Testa:
- Contrato de resposta das alternâncias (200 / 412 / 409)
- Mapeamento de exceções para HTTP
- Resolução da clínica pela sessão/usuário
- Rotas nomeadas
"""

import json
from datetime import datetime, timezone
from types import SimpleNamespace
from unittest.mock import Mock, patch

import pytest
from django.test import RequestFactory
from django.urls import resolve, reverse

from src.adapters.django_app.modulos import api_views
from src.core.modulos.dtos import (
    AlterarAssinaturaInputDTO,
    AuditRecordDTO,
    ModuloCatalogoItemDTO,
    TemplateResult,
    ToggleResult,
)
from src.core.modulos.entities import ToggleErrorCode
from src.core.modulos.navigation import MenuItem, MenuSection
from src.core.shared.exceptions import (
    BusinessRuleViolationError,
    EntityNotFoundError,
    ValidationError,
)


CONTAINER = 'src.adapters.django_app.modulos.api_views.get_container'


# =============================================================================
# Fixtures
# =============================================================================

@pytest.fixture
def rf():
    """Request Factory para criar requests."""
    return RequestFactory()


@pytest.fixture
def com_clinica():
    """Anexa sessão com clínica ao request."""

    def _anexar(request, clinic_id="clinica-1"):
        request.session = {'clinic_id': clinic_id} if clinic_id else {}
        return request

    return _anexar


@pytest.fixture
def post_json(rf, com_clinica):
    def _post(url, body=None, clinic_id="clinica-1"):
        request = rf.post(url, data=json.dumps(body or {}), content_type='application/json')
        return com_clinica(request, clinic_id)

    return _post


def conteudo(response):
    return json.loads(response.content)


def item_catalogo(key, ativo=False, assinado=True):
    return ModuloCatalogoItemDTO(
        module_key=key,
        name=key.title(),
        category="Financeiro e Gestão",
        description="",
        icon="ti-box",
        is_subscribed=assinado,
        is_active=ativo,
        can_activate=assinado and not ativo,
        can_deactivate=True,
    )


# =============================================================================
# Helpers
# =============================================================================

class TestHelpers:
    """Testes para funções auxiliares."""

    def test_get_tenant_id_da_sessao(self, rf, com_clinica):
        request = com_clinica(rf.get('/'), "clinica-9")

        assert api_views.get_tenant_id(request) == "clinica-9"

    def test_get_tenant_id_do_usuario(self, rf, com_clinica):
        """Clínica do usuário tem prioridade sobre a sessão."""
        request = com_clinica(rf.get('/'), "da-sessao")
        request.user = SimpleNamespace(clinic_id=42, is_authenticated=True, id=7)

        assert api_views.get_tenant_id(request) == "42"
        assert api_views.get_user_id(request) == "7"

    def test_sem_clinica(self, rf, com_clinica):
        request = com_clinica(rf.get('/'), None)

        with pytest.raises(ValidationError):
            api_views.get_tenant_id(request)

    def test_usuario_anonimo(self, rf):
        from django.contrib.auth.models import AnonymousUser

        request = rf.get('/')
        request.user = AnonymousUser()

        assert api_views.get_user_id(request) is None

    def test_parse_json_body_invalido(self, rf):
        request = rf.post('/', data='{nao e json', content_type='application/json')

        with pytest.raises(ValueError):
            api_views.parse_json_body(request)

    def test_parse_json_body_lista(self, rf):
        request = rf.post('/', data='[1, 2]', content_type='application/json')

        with pytest.raises(ValueError):
            api_views.parse_json_body(request)

    @pytest.mark.parametrize("resultado,status", [
        (ToggleResult.ok("A", True, True, True), 200),
        (ToggleResult.rejeitado("A", ToggleErrorCode.UNMET_DEPENDENCY, ("B",)), 412),
        (ToggleResult.rejeitado("A", ToggleErrorCode.NOT_SUBSCRIBED, ("A",)), 412),
        (ToggleResult.rejeitado("A", ToggleErrorCode.CONCURRENT_MODIFICATION), 409),
    ])
    def test_result_status(self, resultado, status):
        assert api_views.result_status(resultado) == status


# =============================================================================
# Alternância
# =============================================================================

class TestModuloAPIToggleView:
    """Testes para ModuloAPIToggleView."""

    def test_sucesso(self, post_json):
        mock_service = Mock()
        mock_service.toggle.return_value = ToggleResult.ok("FINANCEIRO", True, True, True)

        with patch(CONTAINER) as mock_container:
            mock_container.return_value.alternar_modulo_service.return_value = mock_service

            request = post_json('/modulos/api/toggle/', {'module_key': 'FINANCEIRO'})
            response = api_views.ModuloAPIToggleView().post(request)

        assert response.status_code == 200
        assert conteudo(response) == {"success": True, "active": True}
        mock_service.toggle.assert_called_once_with("clinica-1", "FINANCEIRO", None)

    def test_dependencia_nao_atendida(self, post_json):
        """Rejeição esperada vira 412 com as chaves que bloquearam."""
        mock_service = Mock()
        mock_service.toggle.return_value = ToggleResult.rejeitado(
            "CRM", ToggleErrorCode.UNMET_DEPENDENCY, ("FINANCEIRO",)
        )

        with patch(CONTAINER) as mock_container:
            mock_container.return_value.alternar_modulo_service.return_value = mock_service

            response = api_views.ModuloAPIToggleView().post(
                post_json('/modulos/api/toggle/', {'module_key': 'CRM'})
            )

        assert response.status_code == 412
        assert conteudo(response) == {
            "success": False,
            "error": "UNMET_DEPENDENCY",
            "details": ["FINANCEIRO"],
        }

    def test_conflito_concorrente(self, post_json):
        mock_service = Mock()
        mock_service.toggle.return_value = ToggleResult.rejeitado(
            "CRM", ToggleErrorCode.CONCURRENT_MODIFICATION
        )

        with patch(CONTAINER) as mock_container:
            mock_container.return_value.alternar_modulo_service.return_value = mock_service

            response = api_views.ModuloAPIToggleView().post(
                post_json('/modulos/api/toggle/', {'module_key': 'CRM'})
            )

        assert response.status_code == 409
        assert conteudo(response)["error"] == "CONCURRENT_MODIFICATION"

    def test_module_key_obrigatorio(self, post_json):
        with patch(CONTAINER):
            response = api_views.ModuloAPIToggleView().post(post_json('/modulos/api/toggle/', {}))

        assert response.status_code == 400
        assert conteudo(response)["meta"]["field"] == "module_key"

    def test_modulo_desconhecido(self, post_json):
        mock_service = Mock()
        mock_service.toggle.side_effect = EntityNotFoundError("Módulo XYZ não encontrado", "Módulo", "XYZ")

        with patch(CONTAINER) as mock_container:
            mock_container.return_value.alternar_modulo_service.return_value = mock_service

            response = api_views.ModuloAPIToggleView().post(
                post_json('/modulos/api/toggle/', {'module_key': 'XYZ'})
            )

        assert response.status_code == 404
        assert conteudo(response)["success"] is False

    def test_sem_clinica(self, post_json):
        with patch(CONTAINER):
            response = api_views.ModuloAPIToggleView().post(
                post_json('/modulos/api/toggle/', {'module_key': 'CRM'}, clinic_id=None)
            )

        assert response.status_code == 400
        assert conteudo(response)["meta"]["field"] == "tenant_id"

    def test_json_invalido(self, rf, com_clinica):
        request = com_clinica(
            rf.post('/modulos/api/toggle/', data='{', content_type='application/json')
        )

        with patch(CONTAINER):
            response = api_views.ModuloAPIToggleView().post(request)

        assert response.status_code == 400

    def test_erro_inesperado(self, post_json):
        mock_service = Mock()
        mock_service.toggle.side_effect = RuntimeError("boom")

        with patch(CONTAINER) as mock_container:
            mock_container.return_value.alternar_modulo_service.return_value = mock_service

            response = api_views.ModuloAPIToggleView().post(
                post_json('/modulos/api/toggle/', {'module_key': 'CRM'})
            )

        assert response.status_code == 500
        assert conteudo(response)["error"] == "Erro interno do servidor"

    def test_violacao_de_regra(self, post_json):
        mock_service = Mock()
        mock_service.toggle.side_effect = BusinessRuleViolationError(
            "inconsistente", rule="activation_plan_order"
        )

        with patch(CONTAINER) as mock_container:
            mock_container.return_value.alternar_modulo_service.return_value = mock_service

            response = api_views.ModuloAPIToggleView().post(
                post_json('/modulos/api/toggle/', {'module_key': 'CRM'})
            )

        assert response.status_code == 422
        assert conteudo(response)["meta"]["rule"] == "activation_plan_order"


class TestAtivarDesativar:
    """Testes para ModuloAPIAtivarView e ModuloAPIDesativarView."""

    def test_ativar(self, post_json):
        mock_service = Mock()
        mock_service.activate.return_value = ToggleResult.ok("PEP", True, True, False)

        with patch(CONTAINER) as mock_container:
            mock_container.return_value.alternar_modulo_service.return_value = mock_service

            response = api_views.ModuloAPIAtivarView().post(
                post_json('/modulos/api/PEP/ativar/'), key="PEP"
            )

        assert response.status_code == 200
        mock_service.activate.assert_called_once_with("clinica-1", "PEP", None)

    def test_desativar_bloqueado(self, post_json):
        mock_service = Mock()
        mock_service.deactivate.return_value = ToggleResult.rejeitado(
            "PEP", ToggleErrorCode.BLOCKING_DEPENDENTS, ("IA", "TISS")
        )

        with patch(CONTAINER) as mock_container:
            mock_container.return_value.alternar_modulo_service.return_value = mock_service

            response = api_views.ModuloAPIDesativarView().post(
                post_json('/modulos/api/PEP/desativar/'), key="PEP"
            )

        assert response.status_code == 412
        assert conteudo(response)["details"] == ["IA", "TISS"]


class TestModuloAPIAssinaturaView:
    """Testes para ModuloAPIAssinaturaView."""

    def test_assinar(self, post_json):
        mock_service = Mock()
        mock_service.execute.return_value = ToggleResult.ok("CRM", False, True, True)

        with patch(CONTAINER) as mock_container:
            mock_container.return_value.alterar_assinatura_service.return_value = mock_service

            response = api_views.ModuloAPIAssinaturaView().post(
                post_json('/modulos/api/CRM/assinatura/', {'subscribed': True}), key="CRM"
            )

        assert response.status_code == 200
        mock_service.execute.assert_called_once_with(
            AlterarAssinaturaInputDTO("clinica-1", "CRM", True, None)
        )

    @pytest.mark.parametrize("valor", [None, "true", 1])
    def test_subscribed_deve_ser_booleano(self, post_json, valor):
        with patch(CONTAINER):
            response = api_views.ModuloAPIAssinaturaView().post(
                post_json('/modulos/api/CRM/assinatura/', {'subscribed': valor}), key="CRM"
            )

        assert response.status_code == 400

    def test_modulo_ativo(self, post_json):
        mock_service = Mock()
        mock_service.execute.return_value = ToggleResult.rejeitado(
            "CRM", ToggleErrorCode.MODULE_ACTIVE, ("CRM",)
        )

        with patch(CONTAINER) as mock_container:
            mock_container.return_value.alterar_assinatura_service.return_value = mock_service

            response = api_views.ModuloAPIAssinaturaView().post(
                post_json('/modulos/api/CRM/assinatura/', {'subscribed': False}), key="CRM"
            )

        assert response.status_code == 412
        assert conteudo(response)["error"] == "MODULE_ACTIVE"


class TestTemplateAPIAplicarView:
    """Testes para TemplateAPIAplicarView."""

    def test_aplicar(self, post_json):
        mock_service = Mock()
        mock_service.execute.return_value = TemplateResult(
            success=True, template_name="Ortodontia", activated=("ODONTOGRAMA", "ORCAMENTOS")
        )

        with patch(CONTAINER) as mock_container:
            mock_container.return_value.aplicar_template_service.return_value = mock_service

            response = api_views.TemplateAPIAplicarView().post(post_json(
                '/modulos/api/templates/aplicar/',
                {'template': 'Ortodontia', 'module_keys': ['ORCAMENTOS']},
            ))

        assert response.status_code == 200
        assert conteudo(response) == {
            "success": True,
            "template": "Ortodontia",
            "activated": ["ODONTOGRAMA", "ORCAMENTOS"],
        }
        dto = mock_service.execute.call_args[0][0]
        assert dto.module_keys == ("ORCAMENTOS",)
        assert dto.tenant_id == "clinica-1"

    def test_module_keys_deve_ser_lista(self, post_json):
        with patch(CONTAINER):
            response = api_views.TemplateAPIAplicarView().post(post_json(
                '/modulos/api/templates/aplicar/', {'module_keys': 'IA'}
            ))

        assert response.status_code == 400

    def test_nao_assinado(self, post_json):
        mock_service = Mock()
        mock_service.execute.return_value = TemplateResult(
            success=False,
            template_name="Implantes",
            error=ToggleErrorCode.NOT_SUBSCRIBED,
            details=("FLUXO_DIGITAL",),
        )

        with patch(CONTAINER) as mock_container:
            mock_container.return_value.aplicar_template_service.return_value = mock_service

            response = api_views.TemplateAPIAplicarView().post(post_json(
                '/modulos/api/templates/aplicar/',
                {'template': 'Implantes', 'module_keys': ['IA']},
            ))

        assert response.status_code == 412
        assert conteudo(response)["details"] == ["FLUXO_DIGITAL"]


# =============================================================================
# Leitura
# =============================================================================

class TestModuloAPIListView:
    """Testes para ModuloAPIListView."""

    def test_lista_catalogo(self, rf, com_clinica):
        mock_service = Mock()
        mock_service.execute.return_value = [
            item_catalogo("FINANCEIRO", ativo=True),
            item_catalogo("CRM"),
            item_catalogo("BI", assinado=False),
        ]

        with patch(CONTAINER) as mock_container:
            mock_container.return_value.listar_modulos_service.return_value = mock_service

            response = api_views.ModuloAPIListView().get(com_clinica(rf.get('/modulos/api/')))

        assert response.status_code == 200
        data = conteudo(response)
        assert len(data['data']) == 3
        assert data['meta'] == {'total': 3, 'active': 1, 'subscribed': 2}
        assert data['data'][0]['module_key'] == "FINANCEIRO"


class TestAcessoAPIView:
    """Testes para AcessoAPIView e AcessoModuloAPIView."""

    def test_acesso(self, rf, com_clinica):
        gate = Mock()
        gate.active_modules.return_value = frozenset({"PEP", "AGENDA"})
        gate.filter_menu.return_value = [
            MenuSection("Início", (MenuItem("Visão Geral", "/"),)),
        ]

        with patch(CONTAINER) as mock_container:
            mock_container.return_value.access_gate.return_value = gate

            response = api_views.AcessoAPIView().get(com_clinica(rf.get('/modulos/api/acesso/')))

        data = conteudo(response)['data']
        assert data['active_modules'] == ["AGENDA", "PEP"]
        assert data['menu'][0]['label'] == "Início"

    def test_acesso_modulo(self, rf, com_clinica):
        gate = Mock()
        gate.has_access.return_value = False

        with patch(CONTAINER) as mock_container:
            mock_container.return_value.access_gate.return_value = gate

            response = api_views.AcessoModuloAPIView().get(
                com_clinica(rf.get('/modulos/api/acesso/IA/')), key="IA"
            )

        assert conteudo(response)['data'] == {'module_key': 'IA', 'has_access': False}
        gate.has_access.assert_called_once_with("clinica-1", "IA")


class TestAuditoriaAPIView:
    """Testes para AuditoriaAPIView."""

    def test_lista_registros(self, rf, com_clinica):
        agora = datetime(2026, 1, 10, 12, 0, tzinfo=timezone.utc)
        mock_service = Mock()
        mock_service.execute.return_value = [
            AuditRecordDTO(
                id="r1", tenant_id="clinica-1", module_key="CRM", action="ACTIVATE",
                outcome="REJECTED", actor_id="7", reason=("FINANCEIRO",),
                error_code="UNMET_DEPENDENCY", timestamp=agora,
            ),
        ]

        with patch(CONTAINER) as mock_container:
            mock_container.return_value.consultar_auditoria_service.return_value = mock_service

            request = com_clinica(rf.get('/modulos/api/auditoria/', {
                'desde': '2026-01-01T00:00:00+00:00',
                'module_key': 'crm',
                'limit': '10',
            }))
            response = api_views.AuditoriaAPIView().get(request)

        assert response.status_code == 200
        data = conteudo(response)
        assert data['meta'] == {'total': 1}
        assert data['data'][0]['reason'] == ["FINANCEIRO"]

        query = mock_service.execute.call_args[0][0]
        assert query.since == datetime(2026, 1, 1, tzinfo=timezone.utc)
        assert query.until is None
        assert query.module_key == 'crm'
        assert query.limit == 10

    def test_data_invalida(self, rf, com_clinica):
        with patch(CONTAINER):
            response = api_views.AuditoriaAPIView().get(
                com_clinica(rf.get('/modulos/api/auditoria/', {'desde': 'ontem'}))
            )

        assert response.status_code == 400
        assert conteudo(response)['meta']['field'] == 'desde'

    def test_data_sem_fuso_usa_fuso_do_projeto(self, rf, com_clinica):
        """Deve tornar aware a data sem fuso para compará-la com a outra."""
        mock_service = Mock()
        mock_service.execute.return_value = []

        with patch(CONTAINER) as mock_container:
            mock_container.return_value.consultar_auditoria_service.return_value = mock_service

            response = api_views.AuditoriaAPIView().get(
                com_clinica(rf.get('/modulos/api/auditoria/', {
                    'desde': '2026-01-01T00:00:00+00:00',
                    'ate': '2026-01-02T00:00:00',
                }))
            )

        assert response.status_code == 200
        query = mock_service.execute.call_args[0][0]
        assert query.until.utcoffset() is not None
        assert query.since < query.until

    def test_limite_nao_numerico(self, rf, com_clinica):
        with patch(CONTAINER):
            response = api_views.AuditoriaAPIView().get(
                com_clinica(rf.get('/modulos/api/auditoria/', {'limit': 'muitos'}))
            )

        assert response.status_code == 400


# =============================================================================
# URLs
# =============================================================================

class TestUrls:
    """Rotas nomeadas do app."""

    @pytest.mark.parametrize("nome,kwargs,esperado", [
        ('modulos:api_list', {}, '/modulos/api/'),
        ('modulos:api_toggle', {}, '/modulos/api/toggle/'),
        ('modulos:api_template', {}, '/modulos/api/templates/aplicar/'),
        ('modulos:api_acesso', {}, '/modulos/api/acesso/'),
        ('modulos:api_acesso_modulo', {'key': 'PEP'}, '/modulos/api/acesso/PEP/'),
        ('modulos:api_auditoria', {}, '/modulos/api/auditoria/'),
        ('modulos:api_ativar', {'key': 'PEP'}, '/modulos/api/PEP/ativar/'),
        ('modulos:api_desativar', {'key': 'PEP'}, '/modulos/api/PEP/desativar/'),
        ('modulos:api_assinatura', {'key': 'PEP'}, '/modulos/api/PEP/assinatura/'),
    ])
    def test_reverse(self, nome, kwargs, esperado):
        assert reverse(nome, kwargs=kwargs) == esperado

    def test_rotas_fixas_antes_de_key(self):
        """'toggle' não deve ser capturado como chave de módulo."""
        assert resolve('/modulos/api/toggle/').url_name == 'api_toggle'
        assert resolve('/modulos/api/acesso/IA/').url_name == 'api_acesso_modulo'
