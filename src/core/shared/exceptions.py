"""
Exceções de Domínio do motor de módulos.

Exceções são reservadas para entradas inválidas, defeitos de catálogo
e falhas inesperadas. Rejeições esperadas de ativação/desativação
(dependência não atendida, dependentes ativos, módulo não assinado)
são devolvidas como resultados tipados pelos use cases.

Hierarquia:
    DomainException (base)
    ├── ValidationError (validação de entrada)
    ├── EntityNotFoundError (entidade não existe)
    ├── BusinessRuleViolationError (regra de negócio violada)
    ├── ConcurrencyError (modificação concorrente, sinal de retry)
    └── RegistryDefinitionError (catálogo de módulos inválido)
        └── CycleDetectedError (ciclo no grafo de dependências)
"""

from typing import List, Optional


class DomainException(Exception):
    """
    Exceção base para todos os erros de domínio.

    Example:
        try:
            registry = ModuleRegistry.load(definicoes)
        except DomainException as e:
            logger.error(f"Erro de domínio: {e}")
    """

    def __init__(self, message: str, code: str = None):
        self.message = message
        self.code = code or self.__class__.__name__
        super().__init__(self.message)

    def __str__(self) -> str:
        return f"[{self.code}] {self.message}"

    def to_dict(self) -> dict:
        """Serializa exceção para dicionário (útil para APIs)."""
        return {
            "error": self.code,
            "message": self.message,
        }


class ValidationError(DomainException):
    """
    Erro de validação de dados de entrada.

    Example:
        if not input_dto.tenant_id:
            raise ValidationError("Clínica é obrigatória", field="tenant_id")
    """

    def __init__(self, message: str, field: str = None):
        self.field = field
        code = f"VALIDATION_ERROR_{field.upper()}" if field else "VALIDATION_ERROR"
        super().__init__(message, code)

    def to_dict(self) -> dict:
        result = super().to_dict()
        if self.field:
            result["field"] = self.field
        return result


class EntityNotFoundError(DomainException):
    """
    Entidade não encontrada.

    Lançada, por exemplo, quando a chave de módulo pedida não
    existe no catálogo.
    """

    def __init__(self, message: str, entity_type: str = None, entity_id: str = None):
        self.entity_type = entity_type
        self.entity_id = entity_id
        super().__init__(message, "ENTITY_NOT_FOUND")

    def to_dict(self) -> dict:
        result = super().to_dict()
        if self.entity_type:
            result["entity_type"] = self.entity_type
        if self.entity_id:
            result["entity_id"] = self.entity_id
        return result


class BusinessRuleViolationError(DomainException):
    """
    Violação de regra de negócio.

    Usada pelas entidades como última barreira: os use cases validam
    antes via resolver, então chegar aqui indica erro de programação.

    Example:
        if not self.subscribed:
            raise BusinessRuleViolationError(
                "Módulo não assinado não pode ser ativado",
                rule="active_requires_subscription",
            )
    """

    def __init__(self, message: str, rule: str = None):
        self.rule = rule
        super().__init__(message, "BUSINESS_RULE_VIOLATION")

    def to_dict(self) -> dict:
        result = super().to_dict()
        if self.rule:
            result["rule"] = self.rule
        return result


class ConcurrencyError(DomainException):
    """
    Erro de concorrência/conflito de versão.

    Lançada pelo repositório quando a versão da clínica mudou entre a
    leitura e a escrita. O use case repete a sequência
    ler-validar-escrever um número limitado de vezes.

    Example:
        if versao_atual != expected_version:
            raise ConcurrencyError("Estado da clínica foi modificado por outro processo")
    """

    def __init__(self, message: str):
        super().__init__(message, "CONCURRENT_MODIFICATION")


class RegistryDefinitionError(DomainException):
    """
    Catálogo de módulos inválido (chave duplicada, dependência
    desconhecida). Fatal na inicialização do processo.
    """

    def __init__(self, message: str, module_key: Optional[str] = None, code: str = None):
        self.module_key = module_key
        super().__init__(message, code or "REGISTRY_DEFINITION_ERROR")

    def to_dict(self) -> dict:
        result = super().to_dict()
        if self.module_key:
            result["module_key"] = self.module_key
        return result


class CycleDetectedError(RegistryDefinitionError):
    """
    Ciclo no grafo de dependências do catálogo.

    O atributo ``cycle`` contém o caminho fechado, por exemplo
    ``["A", "B", "A"]``; auto-referência aparece como ``["A", "A"]``.
    """

    def __init__(self, cycle: List[str]):
        self.cycle = list(cycle)
        caminho = " -> ".join(self.cycle)
        super().__init__(
            f"Ciclo de dependências detectado: {caminho}",
            module_key=self.cycle[0] if self.cycle else None,
            code="CYCLE_DETECTED",
        )

    def to_dict(self) -> dict:
        result = super().to_dict()
        result["cycle"] = list(self.cycle)
        return result
