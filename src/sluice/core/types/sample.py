"""
Sample: unidade atômica que trafega pelo pipeline.

Um Sample é um dado rotulado: um índice de label e um payload opaco.

Invariantes:
    - `label` é sempre um inteiro não negativo (índice no label map)
    - labels textuais devem ser resolvidos pelo label map antes da construção
    - `data` nunca é inspecionado pela camada de accessors

Limites explícitos:
    - Não valida se o label existe no label map (responsabilidade do data source)
    - Não interpreta nem copia o payload
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Generic, TypeVar

from sluice.core.exceptions import InvalidSampleLabel


T = TypeVar("T")


def validate_label(label: Any) -> int:
    # bool é subclasse de int, mas nunca é um índice válido
    if isinstance(label, bool) or not isinstance(label, int):
        raise InvalidSampleLabel(
            message="Sample label must be an int index",
            details={"label": repr(label), "label_type": type(label).__name__},
            hint="Resolva labels textuais pelo label map antes de construir o Sample.",
        )
    if label < 0:
        raise InvalidSampleLabel(
            message="Sample label must be non-negative",
            details={"label": label},
        )
    return label


@dataclass(frozen=True)
class Sample(Generic[T]):
    """Dado rotulado: `label` (índice) + `data` (payload opaco)."""

    label: int
    data: T

    def __post_init__(self) -> None:
        validate_label(self.label)
