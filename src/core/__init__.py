"""
Core Domain Layer - O Hexágono.

Contém o motor de dependência e ativação de módulos por clínica,
sem dependências de frameworks.
Características:
- Zero dependências externas (Django, Celery, etc.)
- 100% testável sem banco de dados
- tenant_id sempre explícito, nunca lido de contexto global
"""
