"""
Entidades do Domínio de Módulos.

Entidades:
- ModuleKey: Enumeração tipada das chaves de módulo do produto
- ModuleDefinition: Definição estática de um módulo no catálogo
- TenantModuleState: Estado (assinado/ativo) de um módulo numa clínica
- TenantSnapshot: Visão consistente de todos os estados de uma clínica
- AuditRecord: Registro append-only de cada pedido de alteração

Regras de Negócio Encapsuladas:
- Módulo ativo precisa estar assinado
- Cancelar assinatura exige módulo inativo
- Estado ausente equivale a não assinado e inativo
"""

from dataclasses import dataclass, field, replace
from datetime import datetime, timezone
from enum import Enum
from types import MappingProxyType
from typing import FrozenSet, Iterable, Mapping, Optional, Tuple, Union
import uuid

from src.core.shared.exceptions import BusinessRuleViolationError, ValidationError


def _agora() -> datetime:
    return datetime.now(timezone.utc)


class ModuleKey(str, Enum):
    """
    Chaves estáveis dos módulos opcionais do produto.

    Compartilhada entre o catálogo (registry) e a navegação: cada item
    de menu carrega seu ``ModuleKey``, então não existe tabela paralela
    de strings para divergir do catálogo.

    Por herdar de ``str``, ``ModuleKey.PEP == "PEP"`` e ambos têm o mesmo
    hash; conjuntos de chaves aceitam as duas formas.
    """

    DASHBOARD = "DASHBOARD"
    AGENDA = "AGENDA"
    PACIENTES = "PACIENTES"
    PEP = "PEP"
    ODONTOGRAMA = "ODONTOGRAMA"
    ESTOQUE = "ESTOQUE"
    PROCEDIMENTOS = "PROCEDIMENTOS"
    TELEODONTO = "TELEODONTO"
    FINANCEIRO = "FINANCEIRO"
    SPLIT_PAGAMENTO = "SPLIT_PAGAMENTO"
    INADIMPLENCIA = "INADIMPLENCIA"
    ORCAMENTOS = "ORCAMENTOS"
    CRM = "CRM"
    MARKETING_AUTO = "MARKETING_AUTO"
    BI = "BI"
    LGPD = "LGPD"
    ASSINATURA_ICP = "ASSINATURA_ICP"
    TISS = "TISS"
    FLUXO_DIGITAL = "FLUXO_DIGITAL"
    IA = "IA"

    def __str__(self) -> str:
        return self.value


def normalize_key(key: Union[str, ModuleKey]) -> str:
    """Converte ``ModuleKey`` ou string para a chave textual canônica."""
    if isinstance(key, ModuleKey):
        return key.value
    if not isinstance(key, str) or not key.strip():
        raise ValidationError("Chave de módulo é obrigatória", field="module_key")
    return key.strip().upper()


class AuditAction(str, Enum):
    ACTIVATE = "ACTIVATE"
    DEACTIVATE = "DEACTIVATE"
    SUBSCRIBE = "SUBSCRIBE"
    UNSUBSCRIBE = "UNSUBSCRIBE"


class AuditOutcome(str, Enum):
    SUCCESS = "SUCCESS"
    REJECTED = "REJECTED"


class ToggleErrorCode(str, Enum):
    """
    Códigos de rejeição devolvidos como resultado tipado.

    - NOT_SUBSCRIBED: ativação de módulo não contratado
    - UNMET_DEPENDENCY: dependências (transitivas) inativas
    - BLOCKING_DEPENDENTS: dependentes ativos impedem desativação
    - MODULE_ACTIVE: cancelamento de assinatura de módulo ativo
    - CONCURRENT_MODIFICATION: conflito persistente após retries (transitório)
    """

    NOT_SUBSCRIBED = "NOT_SUBSCRIBED"
    UNMET_DEPENDENCY = "UNMET_DEPENDENCY"
    BLOCKING_DEPENDENTS = "BLOCKING_DEPENDENTS"
    MODULE_ACTIVE = "MODULE_ACTIVE"
    CONCURRENT_MODIFICATION = "CONCURRENT_MODIFICATION"


@dataclass(frozen=True)
class ModuleDefinition:
    """
    Definição estática de um módulo.

    ``depends_on`` lista apenas dependências diretas; o fecho
    transitivo é calculado pelo ``ModuleRegistry``.

    Attributes:
        key: Chave estável (ex: "FINANCEIRO")
        name: Nome de exibição
        category: Categoria de exibição (não usada pelo resolver)
        depends_on: Chaves exigidas diretamente
        description: Descrição curta para o catálogo
        icon: Nome do ícone usado pela UI
    """

    key: str
    name: str
    category: str = ""
    depends_on: FrozenSet[str] = field(default_factory=frozenset)
    description: str = ""
    icon: str = ""

    def __post_init__(self):
        object.__setattr__(self, "key", normalize_key(self.key))
        object.__setattr__(
            self, "depends_on", frozenset(normalize_key(d) for d in self.depends_on)
        )
        if not self.name or not self.name.strip():
            raise ValidationError(
                f"Módulo {self.key} precisa de nome", field="name"
            )


@dataclass
class TenantModuleState:
    """
    Estado de um módulo para uma clínica.

    Invariante local: ``active`` implica ``subscribed``. As invariantes
    de grafo (dependências) são verificadas pelo DependencyResolver
    antes de qualquer chamada aos métodos de transição.
    """

    tenant_id: str
    module_key: str
    subscribed: bool = False
    active: bool = False
    updated_at: datetime = field(default_factory=_agora)
    updated_by: Optional[str] = None
    subscribed_at: Optional[datetime] = None

    @classmethod
    def novo(cls, tenant_id: str, module_key: Union[str, ModuleKey]) -> "TenantModuleState":
        """Estado inicial de provisionamento: não assinado e inativo."""
        if not tenant_id:
            raise ValidationError("Clínica é obrigatória", field="tenant_id")
        return cls(tenant_id=tenant_id, module_key=normalize_key(module_key))

    def ativar(self, ator_id: Optional[str]) -> None:
        if not self.subscribed:
            raise BusinessRuleViolationError(
                f"Módulo {self.module_key} não assinado não pode ser ativado",
                rule="active_requires_subscription",
            )
        self.active = True
        self._tocar(ator_id)

    def desativar(self, ator_id: Optional[str]) -> None:
        self.active = False
        self._tocar(ator_id)

    def alterar_assinatura(self, assinado: bool, ator_id: Optional[str]) -> None:
        if not assinado and self.active:
            raise BusinessRuleViolationError(
                f"Módulo {self.module_key} ativo não pode ter assinatura cancelada",
                rule="active_requires_subscription",
            )
        if assinado and not self.subscribed:
            self.subscribed_at = _agora()
        if not assinado:
            self.subscribed_at = None
        self.subscribed = assinado
        self._tocar(ator_id)

    def copia(self) -> "TenantModuleState":
        return replace(self)

    def _tocar(self, ator_id: Optional[str]) -> None:
        self.updated_at = _agora()
        self.updated_by = ator_id


@dataclass(frozen=True)
class TenantSnapshot:
    """
    Fotografia consistente dos estados de uma clínica.

    ``version`` é a versão otimista da clínica no momento da leitura;
    a escrita só é aceita se a versão persistida ainda for a mesma.
    """

    tenant_id: str
    states: Mapping[str, TenantModuleState] = field(default_factory=dict)
    version: int = 0

    def __post_init__(self):
        object.__setattr__(self, "states", MappingProxyType(dict(self.states)))

    @classmethod
    def from_states(
        cls, tenant_id: str, states: Iterable[TenantModuleState], version: int = 0
    ) -> "TenantSnapshot":
        return cls(
            tenant_id=tenant_id,
            states={s.module_key: s for s in states},
            version=version,
        )

    def state_of(self, module_key: Union[str, ModuleKey]) -> TenantModuleState:
        """Cópia do estado do módulo (estado padrão se a linha não existe)."""
        key = normalize_key(module_key)
        state = self.states.get(key)
        if state is None:
            return TenantModuleState.novo(self.tenant_id, key)
        return state.copia()

    def is_active(self, module_key: Union[str, ModuleKey]) -> bool:
        state = self.states.get(normalize_key(module_key))
        return bool(state and state.active)

    def is_subscribed(self, module_key: Union[str, ModuleKey]) -> bool:
        state = self.states.get(normalize_key(module_key))
        return bool(state and state.subscribed)

    def active_keys(self) -> FrozenSet[str]:
        return frozenset(k for k, s in self.states.items() if s.active)

    def with_state(self, state: TenantModuleState) -> "TenantSnapshot":
        """Novo snapshot com ``state`` substituído (mesma versão)."""
        states = dict(self.states)
        states[state.module_key] = state
        return TenantSnapshot(tenant_id=self.tenant_id, states=states, version=self.version)


@dataclass(frozen=True)
class AuditRecord:
    """
    Registro de auditoria append-only.

    Cada pedido gera exatamente um registro, inclusive no-ops e
    rejeições; em rejeições ``reason`` traz as chaves que bloquearam.
    """

    tenant_id: str
    module_key: str
    action: AuditAction
    outcome: AuditOutcome
    actor_id: Optional[str] = None
    reason: Tuple[str, ...] = ()
    error_code: Optional[ToggleErrorCode] = None
    timestamp: datetime = field(default_factory=_agora)
    id: str = field(default_factory=lambda: str(uuid.uuid4()))

    @classmethod
    def sucesso(
        cls, tenant_id: str, module_key: str, action: AuditAction, actor_id: Optional[str]
    ) -> "AuditRecord":
        return cls(
            tenant_id=tenant_id,
            module_key=module_key,
            action=action,
            outcome=AuditOutcome.SUCCESS,
            actor_id=actor_id,
        )

    @classmethod
    def rejeicao(
        cls,
        tenant_id: str,
        module_key: str,
        action: AuditAction,
        actor_id: Optional[str],
        error_code: ToggleErrorCode,
        reason: Iterable[str],
    ) -> "AuditRecord":
        return cls(
            tenant_id=tenant_id,
            module_key=module_key,
            action=action,
            outcome=AuditOutcome.REJECTED,
            actor_id=actor_id,
            reason=tuple(sorted(reason)),
            error_code=error_code,
        )
