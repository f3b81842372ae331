"""
Testes para AccessGate, filtragem de menu e locks por clínica.
"""

import threading

import pytest

from src.core.modulos.access_gate import AccessGate, menu_module_keys
from src.core.modulos.entities import ModuleKey
from src.core.modulos.navigation import MENU_PRINCIPAL, MenuItem, MenuSection
from src.core.modulos.ports import InMemoryAccessCache, InMemoryTenantModuleStateRepository
from src.core.shared.locks import InProcessTenantLockProvider


TENANT = "clinica-1"


class RepositorioContador(InMemoryTenantModuleStateRepository):
    """Conta leituras do caminho do AccessGate."""

    def __init__(self):
        super().__init__()
        self.leituras = 0

    def active_module_keys(self, tenant_id):
        self.leituras += 1
        return super().active_module_keys(tenant_id)


@pytest.fixture
def repo(assinar, state_repo):
    assinar(TENANT, "PEP", "FINANCEIRO", "SPLIT_PAGAMENTO", ativos={"PEP", "FINANCEIRO"})
    return state_repo


@pytest.fixture
def gate(catalogo_registry, repo):
    return AccessGate(catalogo_registry, repo, InMemoryAccessCache())


class TestHasAccess:
    """Testes para has_access."""

    def test_somente_ativo_concede_acesso(self, gate):
        """Assinado mas inativo não tem acesso."""
        assert gate.has_access(TENANT, ModuleKey.PEP) is True
        assert gate.has_access(TENANT, "financeiro") is True
        assert gate.has_access(TENANT, ModuleKey.SPLIT_PAGAMENTO) is False
        assert gate.has_access(TENANT, ModuleKey.IA) is False

    def test_chave_desconhecida_devolve_false(self, gate, caplog):
        """Chave fora do catálogo devolve False e registra warning."""
        with caplog.at_level("WARNING"):
            assert gate.has_access(TENANT, "MODULO_FANTASMA") is False

        assert "MODULO_FANTASMA" in caplog.text

    @pytest.mark.parametrize("chave", ["", None, 7])
    def test_chave_invalida(self, gate, chave):
        assert gate.has_access(TENANT, chave) is False

    def test_clinica_vazia_nega_tudo(self, gate):
        assert gate.active_modules("") == frozenset()
        assert gate.has_access("", ModuleKey.PEP) is False

    def test_clinica_nao_provisionada(self, gate):
        assert gate.active_modules("outra-clinica") == frozenset()


class TestCache:
    """Testes do cache-aside do AccessGate."""

    def test_hit_nao_consulta_repositorio(self, catalogo_registry):
        repo = RepositorioContador()
        gate = AccessGate(catalogo_registry, repo, InMemoryAccessCache())

        gate.has_access(TENANT, ModuleKey.PEP)
        gate.has_access(TENANT, ModuleKey.CRM)
        gate.active_modules(TENANT)

        assert repo.leituras == 1

    def test_invalidate_forca_releitura(self, catalogo_registry):
        repo = RepositorioContador()
        gate = AccessGate(catalogo_registry, repo, InMemoryAccessCache())

        gate.active_modules(TENANT)
        gate.invalidate(TENANT)
        gate.active_modules(TENANT)

        assert repo.leituras == 2

    def test_invalidate_isolado_por_clinica(self, catalogo_registry):
        cache = InMemoryAccessCache()
        gate = AccessGate(catalogo_registry, RepositorioContador(), cache)
        gate.active_modules("a")
        gate.active_modules("b")

        gate.invalidate("a")

        assert cache.get("a") is None
        assert cache.get("b") == frozenset()

    def test_preenchimento_atrasado_nao_republica_modulo_desativado(
        self, catalogo_registry, repo
    ):
        """Deve negar acesso se a desativação ocorrer entre a leitura e o preenchimento."""
        gate = AccessGate(catalogo_registry, repo, InMemoryAccessCache())
        leitura_original = repo.active_module_keys

        def ler_e_desativar(tenant_id):
            lido = leitura_original(tenant_id)
            snapshot = repo.get_snapshot(tenant_id)
            pep = snapshot.state_of("PEP")
            pep.desativar("outro-processo")
            repo.save_states(tenant_id, [pep], snapshot.version)
            gate.invalidate(tenant_id)
            return lido

        repo.active_module_keys = ler_e_desativar
        assert gate.has_access(TENANT, ModuleKey.PEP) is True

        repo.active_module_keys = leitura_original
        assert gate.has_access(TENANT, ModuleKey.PEP) is False

    def test_set_com_geracao_obsoleta_e_descartado(self):
        cache = InMemoryAccessCache()
        geracao = cache.generation(TENANT)

        cache.invalidate(TENANT)
        cache.set(TENANT, frozenset({"PEP"}), geracao)

        assert cache.generation(TENANT) == geracao + 1
        assert cache.get(TENANT) is None

    def test_cache_padrao_em_memoria(self, catalogo_registry, repo):
        gate = AccessGate(catalogo_registry, repo)

        assert isinstance(gate.cache, InMemoryAccessCache)
        assert gate.active_modules(TENANT) == frozenset({"PEP", "FINANCEIRO"})


class TestFilterMenu:
    """Testes para filter_menu."""

    def _titulos(self, secoes):
        def visitar(item):
            yield item.title
            for filho in item.children:
                yield from visitar(filho)

        return [t for s in secoes for i in s.items for t in visitar(i)]

    def test_sem_modulos_mantem_itens_livres(self, gate):
        """Itens sem module_key são sempre visíveis."""
        secoes = gate.filter_menu("sem-modulos")

        assert [s.label for s in secoes] == ["Início", "Suporte"]

    def test_filtra_por_modulos_ativos(self, gate):
        secoes = gate.filter_menu(TENANT)
        titulos = self._titulos(secoes)

        assert "Pacientes" in titulos
        assert "Equipe" in titulos and "Dentistas" in titulos
        assert "Caixa" in titulos
        assert "Orçamentos" not in titulos
        assert "Pagamentos Avançados" not in titulos
        assert "Crescimento" not in [s.label for s in secoes]

    def test_filho_com_modulo_proprio(self, catalogo_registry, assinar, state_repo):
        """Grupo visível mostra só os filhos liberados."""
        assinar(
            TENANT, "FINANCEIRO", "SPLIT_PAGAMENTO",
            ativos={"FINANCEIRO", "SPLIT_PAGAMENTO"},
        )
        gate = AccessGate(catalogo_registry, state_repo)

        financeiro = next(s for s in gate.filter_menu(TENANT) if s.label == "Financeiro")
        grupo = next(i for i in financeiro.items if i.title == "Pagamentos Avançados")

        assert [f.title for f in grupo.children] == ["Split"]

    def test_grupo_sem_filhos_some(self, catalogo_registry, repo):
        secoes = (
            MenuSection("Teste", (
                MenuItem("Grupo", None, None, (
                    MenuItem("Oculto", "/ia", ModuleKey.IA),
                )),
                MenuItem("Livre", "/livre"),
            )),
        )
        gate = AccessGate(catalogo_registry, repo)

        filtrado = gate.filter_menu(TENANT, secoes)

        assert [i.title for i in filtrado[0].items] == ["Livre"]

    def test_item_com_url_mantido_sem_filhos(self, catalogo_registry, repo):
        secoes = (
            MenuSection("Teste", (
                MenuItem("Página", "/pagina", ModuleKey.PEP, (
                    MenuItem("Oculto", "/ia", ModuleKey.IA),
                )),
            )),
        )
        gate = AccessGate(catalogo_registry, repo)

        item = gate.filter_menu(TENANT, secoes)[0].items[0]

        assert item.title == "Página"
        assert item.children == ()

    def test_to_dict(self, gate):
        secao = gate.filter_menu(TENANT)[0]

        assert secao.to_dict() == {
            "label": "Início",
            "items": [{"title": "Visão Geral", "url": "/", "module_key": None}],
        }


class TestNavegacao:
    """Coerência entre menu e catálogo."""

    def test_menu_so_referencia_chaves_do_catalogo(self, catalogo_registry):
        """Toda chave do menu deve existir no catálogo."""
        chaves = {k.value for k in menu_module_keys(MENU_PRINCIPAL)}

        assert chaves <= catalogo_registry.keys()

    def test_inclui_chaves_de_filhos(self):
        assert ModuleKey.INADIMPLENCIA in menu_module_keys()


class TestInProcessTenantLockProvider:
    """Testes para InProcessTenantLockProvider."""

    def test_lock_reentrante(self):
        locks = InProcessTenantLockProvider()

        with locks.lock("a"):
            with locks.lock("a"):
                pass

        assert len(locks) == 1

    def test_serializa_mesma_clinica(self):
        locks = InProcessTenantLockProvider()
        dentro = []
        sobreposicoes = []

        def trabalhador():
            for _ in range(200):
                with locks.lock("a"):
                    dentro.append(1)
                    if len(dentro) > 1:
                        sobreposicoes.append(len(dentro))
                    dentro.pop()

        threads = [threading.Thread(target=trabalhador) for _ in range(4)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        assert sobreposicoes == []

    def test_clinicas_diferentes_nao_contendem(self):
        locks = InProcessTenantLockProvider()
        liberado = threading.Event()

        def segurar_a():
            with locks.lock("a"):
                liberado.wait(timeout=5)

        t = threading.Thread(target=segurar_a)
        t.start()
        try:
            with locks.lock("b"):
                adquirido = True
        finally:
            liberado.set()
            t.join()

        assert adquirido
        assert len(locks) == 2
