"""
Sluice — Canonical Exceptions (v1)

Este módulo define as exceções tipadas do Sluice.

Objetivo:
- Permitir que accessors, data sources, runtime e runner levantem falhas
  semânticas tipadas
- Facilitar o mapeamento determinístico para ErrorPayload
- Separar explicitamente as categorias de falha do contrato:
    - violação de pré-condição (argumentos inválidos, uso reentrante)
    - falha de materialização de amostra
    - falha de resolução de módulo
    - artefato ausente (modelo não salvo)

Regras:
- Exaustão de um split NÃO é exceção (é o sentinel `None`).
- Exceções carregam apenas dados estruturados (serializáveis) em `details`.
- Nenhuma exceção aqui implica retry ou recuperação automática.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, Optional


@dataclass(frozen=True, eq=False)
class SluiceException(Exception):
    """Base class para exceções internas do Sluice.

    Importante:
    - Sempre carregar dados estruturados em `details`
    - Não embedar stack trace em payloads de erro
    - Mensagem deve ser curta e humana
    """

    message: str
    details: Dict[str, Any] = field(default_factory=dict)
    hint: Optional[str] = None

    def __str__(self) -> str:  # pragma: no cover
        return self.message


# ---------------------------------------------------------------------------
# Pré-condições (falha imediata, nunca clamp silencioso)
# ---------------------------------------------------------------------------

class PreconditionViolation(SluiceException):
    """Argumento inválido ou uso indevido de uma operação do contrato."""


class InvalidBatchSize(PreconditionViolation):
    """`next_batch` recebeu batch_size que não é inteiro positivo."""


class SeekOutOfRange(PreconditionViolation):
    """`seek` recebeu posição negativa, não inteira ou além do tamanho do split."""


class AccessorBusy(PreconditionViolation):
    """Chamada concorrente sobre a mesma instância de accessor."""


class InvalidSampleLabel(PreconditionViolation):
    """Label de Sample não é um índice inteiro não negativo."""


class InvalidProgressValue(PreconditionViolation):
    """progress_value fora do intervalo [0, 100]."""


class InvalidModelFilename(PreconditionViolation):
    """Nome de artefato de modelo vazio ou contendo componentes de caminho."""


# ---------------------------------------------------------------------------
# Dados / contrato de data source
# ---------------------------------------------------------------------------

class SampleMaterializationError(SluiceException):
    """Registro ilegível ou malformado ao materializar uma amostra."""


class DataSourceContractError(SluiceException):
    """Data source não satisfaz o contrato (splits, tamanhos, metadata)."""


class IncompatibleDataSource(SluiceException):
    """Dataflow recebeu um data source de tipo que não sabe transformar."""


# ---------------------------------------------------------------------------
# Contexto de execução / runtime
# ---------------------------------------------------------------------------

class ModuleResolutionError(SluiceException):
    """Módulo solicitado via bridge não pôde ser localizado ou carregado."""


class WorkspaceInUse(SluiceException):
    """Workspace já pertence a outra execução em andamento."""


class ModelNotFound(SluiceException):
    """Nenhum modelo salvo para a identidade de pipeline atual."""


class ScriptResolutionError(SluiceException):
    """Referência de script do pipeline não resolve para um entry chamável."""
