"""
Navegação principal com o módulo exigido anexado a cada item.

O mapeamento módulo -> rota é dado do próprio item de menu
(``MenuItem.module_key``), tipado por ``ModuleKey``. Itens sem
``module_key`` são sempre visíveis.
"""

from dataclasses import dataclass, field
from typing import Optional, Tuple

from .entities import ModuleKey


@dataclass(frozen=True)
class MenuItem:
    title: str
    url: Optional[str] = None
    module_key: Optional[ModuleKey] = None
    children: Tuple["MenuItem", ...] = ()

    def to_dict(self) -> dict:
        data = {
            "title": self.title,
            "url": self.url,
            "module_key": self.module_key.value if self.module_key else None,
        }
        if self.children:
            data["children"] = [c.to_dict() for c in self.children]
        return data


@dataclass(frozen=True)
class MenuSection:
    label: str
    items: Tuple[MenuItem, ...] = field(default_factory=tuple)

    def to_dict(self) -> dict:
        return {"label": self.label, "items": [i.to_dict() for i in self.items]}


MENU_PRINCIPAL: Tuple[MenuSection, ...] = (
    MenuSection("Início", (
        MenuItem("Visão Geral", "/"),
    )),
    MenuSection("Atendimento", (
        MenuItem("Agenda", "/agenda", ModuleKey.AGENDA),
        MenuItem("Pacientes", "/pacientes", ModuleKey.PEP),
        MenuItem("Prontuário (PEP)", "/pep", ModuleKey.PEP),
        MenuItem("Odontograma", "/odontograma", ModuleKey.ODONTOGRAMA),
        MenuItem("Tratamentos", "/tratamentos", ModuleKey.PEP),
        MenuItem("Teleodontologia", "/teleodonto", ModuleKey.TELEODONTO),
    )),
    MenuSection("Financeiro", (
        MenuItem("Visão Geral", "/financeiro", ModuleKey.FINANCEIRO),
        MenuItem("Caixa", "/fluxo-caixa", ModuleKey.FINANCEIRO),
        MenuItem("Orçamentos", "/orcamentos", ModuleKey.ORCAMENTOS),
        MenuItem("Contas a Receber", "/financeiro/contas-receber", ModuleKey.FINANCEIRO),
        MenuItem("Contas a Pagar", "/financeiro/contas-pagar", ModuleKey.FINANCEIRO),
        MenuItem("PDV", "/pdv", ModuleKey.FINANCEIRO),
        MenuItem("Pagamentos Avançados", None, ModuleKey.SPLIT_PAGAMENTO, (
            MenuItem("Split", "/split-pagamento"),
            MenuItem("Inadimplência", "/inadimplencia", ModuleKey.INADIMPLENCIA),
        )),
    )),
    MenuSection("Operações", (
        MenuItem("Equipe", None, ModuleKey.PEP, (
            MenuItem("Dentistas", "/dentistas"),
            MenuItem("Funcionários", "/funcionarios"),
        )),
        MenuItem("Procedimentos", "/procedimentos", ModuleKey.PROCEDIMENTOS),
        MenuItem("Contratos", "/contratos", ModuleKey.ORCAMENTOS),
        MenuItem("Estoque", None, ModuleKey.ESTOQUE, (
            MenuItem("Visão Geral", "/estoque"),
            MenuItem("Produtos", "/estoque/cadastros"),
            MenuItem("Requisições", "/estoque/requisicoes"),
            MenuItem("Inventário", "/estoque/inventario"),
        )),
    )),
    MenuSection("Crescimento", (
        MenuItem("CRM", "/crm", ModuleKey.CRM),
        MenuItem("Funil de Vendas", "/crm/funil", ModuleKey.CRM),
        MenuItem("Campanhas", "/marketing-auto", ModuleKey.MARKETING_AUTO),
        MenuItem("Fidelidade", "/programa-fidelidade", ModuleKey.CRM),
        MenuItem("Analytics", "/bi", ModuleKey.BI),
    )),
    MenuSection("Conformidade", (
        MenuItem("LGPD", "/lgpd", ModuleKey.LGPD),
        MenuItem("Assinatura Digital", "/assinatura-digital", ModuleKey.ASSINATURA_ICP),
        MenuItem("TISS", "/tiss", ModuleKey.TISS),
        MenuItem("Auditoria", "/auditoria", ModuleKey.LGPD),
    )),
    MenuSection("Ferramentas Avançadas", (
        MenuItem("IA Diagnóstico", "/ia-radiografia", ModuleKey.IA),
        MenuItem("Fluxo Digital", "/fluxo-digital", ModuleKey.FLUXO_DIGITAL),
    )),
    MenuSection("Suporte", (
        MenuItem("Central de Ajuda", "/ajuda"),
    )),
)
