"""
Catálogo padrão de módulos do produto.

Fonte única das definições carregadas pelo ``ModuleRegistry`` na
inicialização do processo. Toda chave de ``ModuleKey`` aparece aqui
exatamente uma vez.
"""

from typing import Tuple

from .entities import ModuleDefinition, ModuleKey


class ModuleCategory:
    ATENDIMENTO_CLINICO = "Atendimento Clínico"
    GESTAO_FINANCEIRA = "Gestão Financeira"
    RELACIONAMENTO_VENDAS = "Relacionamento & Vendas"
    CONFORMIDADE_LEGAL = "Conformidade & Legal"
    TECNOLOGIAS_AVANCADAS = "Tecnologias Avançadas"

    ORDEM: Tuple[str, ...] = (
        ATENDIMENTO_CLINICO,
        GESTAO_FINANCEIRA,
        RELACIONAMENTO_VENDAS,
        CONFORMIDADE_LEGAL,
        TECNOLOGIAS_AVANCADAS,
    )


def _modulo(key, name, description, category, icon, depends_on=()):
    return ModuleDefinition(
        key=key,
        name=name,
        description=description,
        category=category,
        icon=icon,
        depends_on=frozenset(depends_on),
    )


DEFAULT_MODULES: Tuple[ModuleDefinition, ...] = (
    # Atendimento clínico
    _modulo(ModuleKey.DASHBOARD, "Dashboard", "Visão geral do sistema",
            ModuleCategory.ATENDIMENTO_CLINICO, "LayoutDashboard"),
    _modulo(ModuleKey.AGENDA, "Agenda Inteligente",
            "Gestão de consultas e automação via WhatsApp",
            ModuleCategory.ATENDIMENTO_CLINICO, "CalendarDays"),
    _modulo(ModuleKey.PACIENTES, "Pacientes", "Cadastro e gestão de pacientes",
            ModuleCategory.ATENDIMENTO_CLINICO, "Users"),
    _modulo(ModuleKey.PEP, "Prontuário Eletrônico (PEP)", "Prontuário digital completo",
            ModuleCategory.ATENDIMENTO_CLINICO, "FileHeart"),
    _modulo(ModuleKey.ODONTOGRAMA, "Odontograma", "Mapa dental 2D e 3D",
            ModuleCategory.ATENDIMENTO_CLINICO, "Microscope"),
    _modulo(ModuleKey.ESTOQUE, "Controle de Estoque", "Gestão de materiais e insumos",
            ModuleCategory.ATENDIMENTO_CLINICO, "Package"),
    _modulo(ModuleKey.PROCEDIMENTOS, "Procedimentos",
            "Catálogo de procedimentos odontológicos",
            ModuleCategory.ATENDIMENTO_CLINICO, "Clipboard"),
    _modulo(ModuleKey.ORCAMENTOS, "Orçamentos", "Criação e gestão de orçamentos",
            ModuleCategory.ATENDIMENTO_CLINICO, "FileText",
            depends_on=[ModuleKey.ODONTOGRAMA]),
    # Gestão financeira
    _modulo(ModuleKey.FINANCEIRO, "Gestão Financeira",
            "Fluxo de caixa e controles financeiros",
            ModuleCategory.GESTAO_FINANCEIRA, "BarChart3"),
    _modulo(ModuleKey.SPLIT_PAGAMENTO, "Split de Pagamento",
            "Divisão automática de pagamentos",
            ModuleCategory.GESTAO_FINANCEIRA, "Split",
            depends_on=[ModuleKey.FINANCEIRO]),
    _modulo(ModuleKey.INADIMPLENCIA, "Controle de Inadimplência", "Cobrança automatizada",
            ModuleCategory.GESTAO_FINANCEIRA, "AlertTriangle",
            depends_on=[ModuleKey.FINANCEIRO]),
    # Relacionamento & vendas
    _modulo(ModuleKey.CRM, "CRM", "Gestão de relacionamento com pacientes",
            ModuleCategory.RELACIONAMENTO_VENDAS, "Target"),
    _modulo(ModuleKey.MARKETING_AUTO, "Automação de Marketing", "Campanhas automatizadas",
            ModuleCategory.RELACIONAMENTO_VENDAS, "Send"),
    _modulo(ModuleKey.BI, "Business Intelligence", "Dashboards e relatórios avançados",
            ModuleCategory.RELACIONAMENTO_VENDAS, "PieChart"),
    # Conformidade & legal
    _modulo(ModuleKey.TELEODONTO, "Teleodontologia", "Atendimento remoto",
            ModuleCategory.CONFORMIDADE_LEGAL, "Video"),
    _modulo(ModuleKey.LGPD, "Segurança e Conformidade LGPD",
            "Gestão de privacidade e dados",
            ModuleCategory.CONFORMIDADE_LEGAL, "ShieldCheck"),
    _modulo(ModuleKey.ASSINATURA_ICP, "Assinatura Digital",
            "Assinatura qualificada ICP-Brasil",
            ModuleCategory.CONFORMIDADE_LEGAL, "FileSignature",
            depends_on=[ModuleKey.PEP]),
    _modulo(ModuleKey.TISS, "Faturamento TISS", "Padrão TISS para convênios",
            ModuleCategory.CONFORMIDADE_LEGAL, "FileSpreadsheet",
            depends_on=[ModuleKey.PEP]),
    # Tecnologias avançadas
    _modulo(ModuleKey.FLUXO_DIGITAL, "Fluxo Digital",
            "Integração com scanners e laboratórios",
            ModuleCategory.TECNOLOGIAS_AVANCADAS, "Workflow",
            depends_on=[ModuleKey.PEP]),
    _modulo(ModuleKey.IA, "Inteligência Artificial", "IA aplicada à odontologia",
            ModuleCategory.TECNOLOGIAS_AVANCADAS, "BrainCircuit",
            depends_on=[ModuleKey.PEP, ModuleKey.FLUXO_DIGITAL]),
)
