"""
Deep-merge de configuração de pipeline.

Usado para aplicar um override local (ex.: caminhos de dados da máquina do
desenvolvedor) sobre o arquivo versionado do pipeline.

Política de merge (v1):
    - dict → merge recursivo por chave
    - list → sobrescrita total (a lista de dataflows nunca é mesclada
      elemento a elemento)
    - escalar → sobrescrita direta
    - conflito de tipos → `ConfigTypeConflictError`

Invariantes:
    - Nenhum input é mutado
    - A mesma entrada sempre produz a mesma saída
"""

from copy import deepcopy
from typing import Any, Dict

from .errors import ConfigTypeConflictError


def _same_kind(a: Any, b: Any) -> bool:
    # None anula/define chaves opcionais (ex.: validation) sem conflito
    if a is None or b is None:
        return True
    if isinstance(a, bool) or isinstance(b, bool):
        return isinstance(a, bool) and isinstance(b, bool)
    if isinstance(a, (int, float)) and isinstance(b, (int, float)):
        return True
    return type(a) is type(b)


def deep_merge(base: Dict[str, Any], override: Dict[str, Any]) -> Dict[str, Any]:
    """
    Combina `base` e `override` sem mutar nenhum dos dois.

    Args:
        base: configuração versionada do pipeline.
        override: overrides locais explícitos.

    Returns:
        Novo dicionário resultante.

    Raises:
        ConfigTypeConflictError: tipos incompatíveis para a mesma chave.
    """
    if not isinstance(base, dict) or not isinstance(override, dict):
        raise ConfigTypeConflictError(
            f"Deep-merge requer dicts no nível raiz, recebido: "
            f"{type(base).__name__} vs {type(override).__name__}"
        )

    result: Dict[str, Any] = deepcopy(base)

    for key, override_value in override.items():
        if key not in result:
            result[key] = deepcopy(override_value)
            continue

        base_value = result[key]

        if isinstance(base_value, dict) and isinstance(override_value, dict):
            result[key] = deep_merge(base_value, override_value)
            continue

        if isinstance(override_value, list) and (base_value is None or isinstance(base_value, list)):
            result[key] = deepcopy(override_value)
            continue

        if not _same_kind(base_value, override_value):
            raise ConfigTypeConflictError(
                f"Conflito de tipo na chave '{key}': "
                f"{type(base_value).__name__} vs {type(override_value).__name__}"
            )

        result[key] = deepcopy(override_value)

    return result
