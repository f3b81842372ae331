"""
Use Cases (Application Services) do Domínio de Módulos.

Use Cases implementados:
- AlternarModuloService: alterna/ativa/desativa um módulo (ActivationService)
- AlterarAssinaturaService: marca ou desmarca módulo como contratado
- AplicarTemplateService: ativa um conjunto de módulos em ordem topológica
- ListarModulosService: catálogo com saídas do resolver pré-calculadas
- ProvisionarClinicaService: cria linhas de estado ausentes
- ConsultarAuditoriaService: trilha de auditoria por clínica e período

Toda escrita segue a mesma sequência:
    lock da clínica -> UnitOfWork -> snapshot for_update -> resolver
    -> save_states(expected_version) + auditoria + eventos -> commit
    -> invalidação síncrona do cache de acesso -> resultado tipado

Conflitos de versão (``ConcurrencyError``) repetem a sequência inteira
até ``max_tentativas``; esgotado o limite, o resultado é a rejeição
transitória CONCURRENT_MODIFICATION e o estado fica inalterado.
"""

import logging
from typing import Callable, List, Optional, TypeVar

from src.core.shared.exceptions import (
    BusinessRuleViolationError,
    ConcurrencyError,
    ValidationError,
)
from src.core.shared.interfaces import TenantLockProvider, UnitOfWork

from .access_gate import AccessGate
from .dtos import (
    AlterarAssinaturaInputDTO,
    AlternarModuloInputDTO,
    AplicarTemplateInputDTO,
    AuditRecordDTO,
    ConsultarAuditoriaQueryDTO,
    ModuloCatalogoItemDTO,
    TemplateResult,
    ToggleResult,
)
from .entities import AuditAction, AuditRecord, ToggleErrorCode
from .events import (
    AlternanciaRejeitadaEvent,
    AssinaturaAlteradaEvent,
    ModuloAtivadoEvent,
    ModuloDesativadoEvent,
)
from .ports import AuditLogRepository, TenantModuleStateRepository
from .registry import ModuleRegistry
from .resolver import DependencyResolver, ToggleRejection


logger = logging.getLogger(__name__)

R = TypeVar("R")

DEFAULT_MAX_TENTATIVAS = 3


def _validar_tenant(tenant_id: Optional[str]) -> str:
    if not tenant_id or not str(tenant_id).strip():
        raise ValidationError("Clínica é obrigatória", field="tenant_id")
    return str(tenant_id).strip()


class _EscritaSerializadaService:
    """
    Base dos use cases que escrevem estado de módulos.

    Encapsula o lock por clínica, a repetição em conflito de versão e
    o registro de rejeições (auditoria + evento).
    """

    def __init__(
        self,
        registry: ModuleRegistry,
        state_repo: TenantModuleStateRepository,
        audit_repo: AuditLogRepository,
        uow: UnitOfWork,
        tenant_locks: TenantLockProvider,
        max_tentativas: int = DEFAULT_MAX_TENTATIVAS,
    ):
        if max_tentativas < 1:
            raise ValueError("max_tentativas deve ser pelo menos 1")
        self.registry = registry
        self.state_repo = state_repo
        self.audit_repo = audit_repo
        self.uow = uow
        self.tenant_locks = tenant_locks
        self.max_tentativas = max_tentativas

    def _com_retry(
        self,
        tenant_id: str,
        descricao: str,
        operacao: Callable[[], R],
        ao_esgotar: Callable[[], R],
    ) -> R:
        for tentativa in range(1, self.max_tentativas + 1):
            try:
                with self.tenant_locks.lock(tenant_id):
                    return operacao()
            except ConcurrencyError as e:
                logger.warning(
                    f"Conflito de concorrência em {descricao} "
                    f"(clínica {tenant_id}, tentativa {tentativa}/{self.max_tentativas}): {e}"
                )

        logger.error(
            f"Tentativas esgotadas em {descricao} para clínica {tenant_id}; "
            f"estado inalterado"
        )
        return ao_esgotar()

    def _registrar_rejeicao(
        self,
        tenant_id: str,
        chave: str,
        acao: AuditAction,
        actor_id: Optional[str],
        rejeicao: ToggleRejection,
    ) -> None:
        self.audit_repo.append(
            AuditRecord.rejeicao(
                tenant_id, chave, acao, actor_id, rejeicao.code, rejeicao.details
            )
        )
        self.uow.publish_event(
            AlternanciaRejeitadaEvent(
                aggregate_id=tenant_id,
                module_key=chave,
                actor_id=actor_id,
                action=acao.value,
                error_code=rejeicao.code.value,
                details=list(rejeicao.details),
            )
        )
        logger.warning(
            f"{acao.value} de {chave} rejeitado para clínica {tenant_id}: "
            f"{rejeicao.code.value} {list(rejeicao.details)}"
        )


class AlternarModuloService(_EscritaSerializadaService):
    """
    Use Case: alternar um módulo de uma clínica (ActivationService).

    Fluxo:
    1. Ler snapshot da clínica bloqueando para atualização
    2. Decidir ação (alternar, ou estado desejado explícito)
    3. Validar via DependencyResolver
    4. Em sucesso: gravar estado, auditar SUCCESS, enfileirar evento
    5. Em rejeição: auditar REJECTED e devolver o motivo sem alterar estado
    6. Após commit: invalidar o cache de acesso antes de responder

    Pedido que não muda nada (ativar módulo já ativo) é no-op com
    sucesso e ainda gera registro de auditoria.

    Example:
        service = AlternarModuloService(registry, resolver, state_repo,
                                        audit_repo, uow, locks, gate)
        resultado = service.toggle("clinica-1", "FINANCEIRO", "user-1")
        resultado.to_dict()  # {"success": True, "active": True}
    """

    def __init__(
        self,
        registry: ModuleRegistry,
        resolver: DependencyResolver,
        state_repo: TenantModuleStateRepository,
        audit_repo: AuditLogRepository,
        uow: UnitOfWork,
        tenant_locks: TenantLockProvider,
        access_gate: AccessGate,
        max_tentativas: int = DEFAULT_MAX_TENTATIVAS,
    ):
        super().__init__(registry, state_repo, audit_repo, uow, tenant_locks, max_tentativas)
        self.resolver = resolver
        self.access_gate = access_gate

    def toggle(self, tenant_id: str, module_key, actor_id: Optional[str] = None) -> ToggleResult:
        return self.execute(AlternarModuloInputDTO(tenant_id, module_key, actor_id))

    def activate(self, tenant_id: str, module_key, actor_id: Optional[str] = None) -> ToggleResult:
        return self.execute(AlternarModuloInputDTO(tenant_id, module_key, actor_id, True))

    def deactivate(self, tenant_id: str, module_key, actor_id: Optional[str] = None) -> ToggleResult:
        return self.execute(AlternarModuloInputDTO(tenant_id, module_key, actor_id, False))

    def execute(self, input_dto: AlternarModuloInputDTO) -> ToggleResult:
        """
        Executa o pedido com lock da clínica e retry em conflito.

        Raises:
            ValidationError: Se tenant_id vazio
            EntityNotFoundError: Se módulo não existe no catálogo
        """
        tenant_id = _validar_tenant(input_dto.tenant_id)
        chave = self.registry.get(input_dto.module_key).key

        def operacao() -> ToggleResult:
            resultado = self._executar(tenant_id, chave, input_dto)
            if resultado.changed:
                self.access_gate.invalidate(tenant_id)
            return resultado

        return self._com_retry(
            tenant_id,
            f"alternância de {chave}",
            operacao,
            lambda: ToggleResult.rejeitado(chave, ToggleErrorCode.CONCURRENT_MODIFICATION),
        )

    def _executar(
        self, tenant_id: str, chave: str, input_dto: AlternarModuloInputDTO
    ) -> ToggleResult:
        with self.uow:
            snapshot = self.state_repo.get_snapshot(tenant_id, for_update=True)
            estado = snapshot.state_of(chave)

            if input_dto.desired_active is None:
                ativar = not estado.active
            else:
                ativar = input_dto.desired_active
            acao = AuditAction.ACTIVATE if ativar else AuditAction.DEACTIVATE

            if ativar == estado.active:
                self.audit_repo.append(
                    AuditRecord.sucesso(tenant_id, chave, acao, input_dto.actor_id)
                )
                logger.info(
                    f"{acao.value} de {chave} sem efeito para clínica {tenant_id} "
                    f"(já {'ativo' if estado.active else 'inativo'})"
                )
                return ToggleResult.ok(chave, estado.active, estado.subscribed, changed=False)

            if ativar:
                rejeicao = self.resolver.evaluate_activation(snapshot, chave)
            else:
                rejeicao = self.resolver.evaluate_deactivation(snapshot, chave)

            if rejeicao is not None:
                self._registrar_rejeicao(tenant_id, chave, acao, input_dto.actor_id, rejeicao)
                return ToggleResult.rejeitado(chave, rejeicao.code, rejeicao.details)

            if ativar:
                estado.ativar(input_dto.actor_id)
                evento = ModuloAtivadoEvent(
                    aggregate_id=tenant_id, module_key=chave, actor_id=input_dto.actor_id
                )
            else:
                estado.desativar(input_dto.actor_id)
                evento = ModuloDesativadoEvent(
                    aggregate_id=tenant_id, module_key=chave, actor_id=input_dto.actor_id
                )

            self.state_repo.save_states(tenant_id, [estado], snapshot.version)
            self.audit_repo.append(
                AuditRecord.sucesso(tenant_id, chave, acao, input_dto.actor_id)
            )
            self.uow.publish_event(evento)

            logger.info(f"{acao.value} de {chave} concluído para clínica {tenant_id}")
            return ToggleResult.ok(chave, estado.active, estado.subscribed, changed=True)


class AlterarAssinaturaService(_EscritaSerializadaService):
    """
    Use Case: marcar módulo como contratado (ou não) pela clínica.

    Apenas registra a flag contratual; preço e cobrança ficam fora
    deste domínio. Cancelar assinatura de módulo ativo é rejeitado
    com MODULE_ACTIVE (ativo implica assinado).
    """

    def execute(self, input_dto: AlterarAssinaturaInputDTO) -> ToggleResult:
        tenant_id = _validar_tenant(input_dto.tenant_id)
        chave = self.registry.get(input_dto.module_key).key

        return self._com_retry(
            tenant_id,
            f"assinatura de {chave}",
            lambda: self._executar(tenant_id, chave, input_dto),
            lambda: ToggleResult.rejeitado(chave, ToggleErrorCode.CONCURRENT_MODIFICATION),
        )

    def _executar(
        self, tenant_id: str, chave: str, input_dto: AlterarAssinaturaInputDTO
    ) -> ToggleResult:
        assinar = bool(input_dto.subscribed)
        acao = AuditAction.SUBSCRIBE if assinar else AuditAction.UNSUBSCRIBE

        with self.uow:
            snapshot = self.state_repo.get_snapshot(tenant_id, for_update=True)
            estado = snapshot.state_of(chave)

            if estado.subscribed == assinar:
                self.audit_repo.append(
                    AuditRecord.sucesso(tenant_id, chave, acao, input_dto.actor_id)
                )
                return ToggleResult.ok(chave, estado.active, estado.subscribed, changed=False)

            if not assinar and estado.active:
                rejeicao = ToggleRejection.de(ToggleErrorCode.MODULE_ACTIVE, [chave])
                self._registrar_rejeicao(tenant_id, chave, acao, input_dto.actor_id, rejeicao)
                return ToggleResult.rejeitado(chave, rejeicao.code, rejeicao.details)

            estado.alterar_assinatura(assinar, input_dto.actor_id)
            self.state_repo.save_states(tenant_id, [estado], snapshot.version)
            self.audit_repo.append(
                AuditRecord.sucesso(tenant_id, chave, acao, input_dto.actor_id)
            )
            self.uow.publish_event(
                AssinaturaAlteradaEvent(
                    aggregate_id=tenant_id,
                    module_key=chave,
                    actor_id=input_dto.actor_id,
                    subscribed=assinar,
                )
            )
            logger.info(f"{acao.value} de {chave} concluído para clínica {tenant_id}")
            return ToggleResult.ok(chave, estado.active, estado.subscribed, changed=True)


class AplicarTemplateService(_EscritaSerializadaService):
    """
    Use Case: aplicar template de configuração (ex: por especialidade).

    Calcula o plano de ativação (fecho transitivo dos alvos ainda
    inativos, em ordem topológica) e aplica tudo numa única transação
    sob o lock da clínica. Se algum módulo do plano não estiver
    assinado, nada muda e o resultado é NOT_SUBSCRIBED com a lista.

    Cada módulo do pedido gera seu registro de auditoria; cada módulo
    ativado pelo plano também.
    """

    def __init__(
        self,
        registry: ModuleRegistry,
        resolver: DependencyResolver,
        state_repo: TenantModuleStateRepository,
        audit_repo: AuditLogRepository,
        uow: UnitOfWork,
        tenant_locks: TenantLockProvider,
        access_gate: AccessGate,
        max_tentativas: int = DEFAULT_MAX_TENTATIVAS,
    ):
        super().__init__(registry, state_repo, audit_repo, uow, tenant_locks, max_tentativas)
        self.resolver = resolver
        self.access_gate = access_gate

    def execute(self, input_dto: AplicarTemplateInputDTO) -> TemplateResult:
        tenant_id = _validar_tenant(input_dto.tenant_id)
        if not input_dto.module_keys:
            raise ValidationError("Template sem módulos", field="module_keys")
        alvos = sorted({self.registry.get(k).key for k in input_dto.module_keys})

        def operacao() -> TemplateResult:
            resultado = self._executar(tenant_id, alvos, input_dto)
            if resultado.activated:
                self.access_gate.invalidate(tenant_id)
            return resultado

        return self._com_retry(
            tenant_id,
            f"template {input_dto.template_name}",
            operacao,
            lambda: TemplateResult(
                success=False,
                template_name=input_dto.template_name,
                error=ToggleErrorCode.CONCURRENT_MODIFICATION,
            ),
        )

    def _executar(
        self, tenant_id: str, alvos: List[str], input_dto: AplicarTemplateInputDTO
    ) -> TemplateResult:
        ator = input_dto.actor_id

        with self.uow:
            snapshot = self.state_repo.get_snapshot(tenant_id, for_update=True)
            plano = self.resolver.activation_plan(snapshot, alvos)

            nao_assinados = [k for k in plano if not snapshot.is_subscribed(k)]
            if nao_assinados:
                rejeicao = ToggleRejection.de(ToggleErrorCode.NOT_SUBSCRIBED, nao_assinados)
                for chave in alvos:
                    self._registrar_rejeicao(
                        tenant_id, chave, AuditAction.ACTIVATE, ator, rejeicao
                    )
                return TemplateResult(
                    success=False,
                    template_name=input_dto.template_name,
                    error=rejeicao.code,
                    details=rejeicao.details,
                )

            projetado = snapshot
            alterados = []
            for chave in plano:
                if self.resolver.evaluate_activation(projetado, chave) is not None:
                    raise BusinessRuleViolationError(
                        f"Plano de ativação inconsistente em {chave}",
                        rule="activation_plan_order",
                    )
                estado = projetado.state_of(chave)
                estado.ativar(ator)
                alterados.append(estado)
                projetado = projetado.with_state(estado)

            if alterados:
                self.state_repo.save_states(tenant_id, alterados, snapshot.version)

            for chave in sorted(set(alvos) | set(plano), key=self._ordem_plano(plano)):
                self.audit_repo.append(
                    AuditRecord.sucesso(tenant_id, chave, AuditAction.ACTIVATE, ator)
                )
            for estado in alterados:
                self.uow.publish_event(
                    ModuloAtivadoEvent(
                        aggregate_id=tenant_id, module_key=estado.module_key, actor_id=ator
                    )
                )

            logger.info(
                f"Template '{input_dto.template_name}' aplicado na clínica {tenant_id}: "
                f"{len(plano)} módulos ativados"
            )
            return TemplateResult(
                success=True,
                template_name=input_dto.template_name,
                activated=tuple(plano),
            )

    def _ordem_plano(self, plano: List[str]) -> Callable[[str], tuple]:
        posicoes = {k: i for i, k in enumerate(plano)}
        return lambda chave: (posicoes.get(chave, len(plano)), chave)


class ListarModulosService:
    """
    Use Case: listar catálogo com estado e legalidade para a clínica.

    Leitura sem lock; cada linha traz ``can_activate``,
    ``can_deactivate``, ``unmet_dependencies`` e
    ``blocking_dependencies`` já calculados.
    """

    def __init__(
        self,
        registry: ModuleRegistry,
        resolver: DependencyResolver,
        state_repo: TenantModuleStateRepository,
    ):
        self.registry = registry
        self.resolver = resolver
        self.state_repo = state_repo

    def execute(self, tenant_id: str) -> List[ModuloCatalogoItemDTO]:
        tenant_id = _validar_tenant(tenant_id)
        snapshot = self.state_repo.get_snapshot(tenant_id)

        itens = []
        for definicao in self.registry.definitions():
            chave = definicao.key
            faltando = self.resolver.unmet_dependencies(snapshot, chave)
            bloqueando = self.resolver.blocking_dependents(snapshot, chave)
            itens.append(
                ModuloCatalogoItemDTO(
                    module_key=chave,
                    name=definicao.name,
                    category=definicao.category,
                    description=definicao.description,
                    icon=definicao.icon,
                    is_subscribed=snapshot.is_subscribed(chave),
                    is_active=snapshot.is_active(chave),
                    can_activate=snapshot.is_subscribed(chave) and not faltando,
                    can_deactivate=not bloqueando,
                    unmet_dependencies=tuple(sorted(faltando)),
                    blocking_dependencies=tuple(sorted(bloqueando)),
                )
            )
        return itens


class ProvisionarClinicaService:
    """
    Use Case: provisionar clínica.

    Cria linhas (não assinado, inativo) para todo módulo do catálogo
    que ainda não tem linha. Idempotente: rodar de novo após adicionar
    um módulo ao catálogo cria só a linha nova.
    """

    def __init__(self, registry: ModuleRegistry, state_repo: TenantModuleStateRepository):
        self.registry = registry
        self.state_repo = state_repo

    def execute(self, tenant_id: str) -> int:
        tenant_id = _validar_tenant(tenant_id)
        criadas = self.state_repo.provision(tenant_id, self.registry.topological_order())
        if criadas:
            logger.info(f"Clínica {tenant_id} provisionada: {criadas} módulos novos")
        return criadas


class ConsultarAuditoriaService:
    """Use Case: consultar trilha de auditoria por clínica e período."""

    def __init__(self, audit_repo: AuditLogRepository):
        self.audit_repo = audit_repo

    def execute(self, query: ConsultarAuditoriaQueryDTO) -> List[AuditRecordDTO]:
        tenant_id = _validar_tenant(query.tenant_id)
        # Registros de auditoria são gravados em UTC
        for campo, valor in (("since", query.since), ("until", query.until)):
            if valor is not None and valor.utcoffset() is None:
                raise ValidationError(
                    f"Data sem fuso horário em '{campo}'", field=campo
                )
        if query.since and query.until and query.since > query.until:
            raise ValidationError("Início do período após o fim", field="since")
        if query.limit is not None and query.limit < 1:
            raise ValidationError("Limite deve ser positivo", field="limit")

        registros = self.audit_repo.list_for_tenant(
            tenant_id,
            since=query.since,
            until=query.until,
            module_key=query.module_key,
            limit=query.limit,
        )
        return [AuditRecordDTO.from_entity(r) for r in registros]
