"""
Exceções canônicas da camada de configuração do Sluice.

Falhas ao carregar, mesclar ou interpretar o arquivo de um pipeline são
**violações estruturais explícitas**: interrompem a run antes de qualquer
script ser executado.

Invariantes:
    - Todas as exceções de configuração herdam de `ConfigError`
    - Nenhuma exceção aqui representa falha de script ou de dados

Limites explícitos:
    - Não realiza fallback ou recovery
"""


class ConfigError(Exception):
    """Exceção base para erros de configuração de pipeline."""


class ConfigNotFoundError(ConfigError):
    """
    Arquivo principal do pipeline não encontrado.

    O arquivo principal é obrigatório; o override local é opcional e sua
    ausência não é erro.
    """


class UnsupportedConfigFormatError(ConfigError):
    """
    Formato de arquivo não suportado.

    Formatos suportados (v1):
        - YAML (.yaml, .yml)
        - JSON (.json)
    """


class InvalidConfigRootTypeError(ConfigError):
    """O conteúdo raiz do arquivo não é um mapa chave-valor."""


class ConfigTypeConflictError(ConfigError):
    """
    Conflito de tipos durante o deep-merge.

    Exemplo:
        - base:     {"model": {"options": {"seed": 1}}}
        - override: {"model": "py:my_model"}
    """


class InvalidPipelineConfigError(ConfigError):
    """
    Configuração carregada não descreve um pipeline válido.

    Exemplos: `datasource` ausente, `dataflow` que não é lista, referência
    de stage vazia, `options` que não é mapa.
    """
