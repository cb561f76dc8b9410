"""
Sluice — Canonical Error Structures (v1)

Este módulo define o payload canônico de erros do Sluice.
Erros que interrompem uma run são registrados no StageResult como
dados estruturados, devendo ser:

- explícitos
- serializáveis
- rastreáveis
- acionáveis

Nenhuma falha é convertida em sentinel de exaustão, e nenhuma falha é
recuperada silenciosamente pelo core.
"""

from __future__ import annotations

from dataclasses import dataclass, asdict
from typing import Any, Dict, Optional

from .exceptions import (
    DataSourceContractError,
    ModelNotFound,
    ModuleResolutionError,
    PreconditionViolation,
    SampleMaterializationError,
    ScriptResolutionError,
    SluiceException,
)


# ---------------------------------------------------------------------------
# Payload canônico
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class ErrorPayload:
    """
    Payload canônico de erro do Sluice.

    Campos:
    - type: código estável do erro (não é texto livre)
    - message: mensagem curta, humana e objetiva
    - details: dados estruturados relevantes para diagnóstico
    - hint: ação sugerida ao autor do script (onde corrigir)
    """

    type: str
    message: str
    details: Dict[str, Any]
    hint: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        """Retorna representação serializável do erro."""
        return asdict(self)


# ---------------------------------------------------------------------------
# Catálogo canônico de tipos de erro (v1)
# ---------------------------------------------------------------------------

PRECONDITION_VIOLATION = "PRECONDITION_VIOLATION"
SAMPLE_MATERIALIZATION_FAILED = "SAMPLE_MATERIALIZATION_FAILED"
DATASOURCE_CONTRACT_VIOLATION = "DATASOURCE_CONTRACT_VIOLATION"
MODULE_RESOLUTION_FAILED = "MODULE_RESOLUTION_FAILED"
MODEL_NOT_FOUND = "MODEL_NOT_FOUND"
SCRIPT_RESOLUTION_FAILED = "SCRIPT_RESOLUTION_FAILED"

RUNNER_EXECUTION_ERROR = "RUNNER_EXECUTION_ERROR"
RUNNER_CONFIGURATION_ERROR = "RUNNER_CONFIGURATION_ERROR"


_CODES_BY_CLASS = (
    (PreconditionViolation, PRECONDITION_VIOLATION),
    (SampleMaterializationError, SAMPLE_MATERIALIZATION_FAILED),
    (DataSourceContractError, DATASOURCE_CONTRACT_VIOLATION),
    (ModuleResolutionError, MODULE_RESOLUTION_FAILED),
    (ModelNotFound, MODEL_NOT_FOUND),
    (ScriptResolutionError, SCRIPT_RESOLUTION_FAILED),
)


def error_code_for(exc: BaseException) -> str:
    """Código estável para uma exceção; a ordem do catálogo define a precedência."""
    for cls, code in _CODES_BY_CLASS:
        if isinstance(exc, cls):
            return code
    if isinstance(exc, SluiceException):
        return exc.__class__.__name__
    return RUNNER_EXECUTION_ERROR


def exception_to_error(exc: BaseException, *, stage_id: Optional[str] = None) -> ErrorPayload:
    """Converte exceções em ErrorPayload (serializável, acionável).

    Regras:
    - SluiceException: já vem com message/details/hint.
    - Outras exceções: encapsular como RUNNER_EXECUTION_ERROR sem expor stack trace.
    """
    if isinstance(exc, SluiceException):
        details = dict(exc.details or {})
        details.setdefault("exception_class", exc.__class__.__name__)
        if stage_id is not None:
            details.setdefault("stage", stage_id)
        return ErrorPayload(
            type=error_code_for(exc),
            message=str(exc) or "Erro de execução",
            details=details,
            hint=exc.hint,
        )

    return ErrorPayload(
        type=RUNNER_EXECUTION_ERROR,
        message=str(exc) or "Erro inesperado durante execução",
        details={
            "exception_class": exc.__class__.__name__,
            "stage": stage_id,
        },
        hint="Verifique o event log da run e o script do stage indicado.",
    )


# ---------------------------------------------------------------------------
# Helpers de fábrica
# ---------------------------------------------------------------------------

def runner_configuration_error(
    *,
    message: str = "Configuração inválida para execução do pipeline",
    details: Optional[Dict[str, Any]] = None,
    hint: str = "Revise o arquivo do pipeline (datasource, dataflow, model) antes de reexecutar.",
) -> ErrorPayload:
    return ErrorPayload(
        type=RUNNER_CONFIGURATION_ERROR,
        message=message,
        details=details or {},
        hint=hint,
    )

