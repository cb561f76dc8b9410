"""
Loader de arquivos de pipeline.

A configuração efetiva de um pipeline é resolvida a partir de:
    - um arquivo principal (obrigatório, versionado junto com os scripts)
    - um arquivo local de overrides (opcional)

Formatos: YAML (PyYAML, `safe_load`) e JSON.

Invariantes:
    - O arquivo principal é obrigatório
    - O resultado é sempre um dict puro
    - Overrides nunca mutam a base

Limites explícitos:
    - Não interpreta a estrutura do pipeline (ver `sluice.core.pipeline.meta`)
    - Não executa scripts
"""

import json
from pathlib import Path
from typing import Any, Dict, Optional, Union

import yaml  # PyYAML

from .errors import (
    ConfigNotFoundError,
    InvalidConfigRootTypeError,
    UnsupportedConfigFormatError,
)
from .merge import deep_merge


PathLike = Union[str, Path]


def _load_file(path: Path) -> Dict[str, Any]:
    """
    Lê um arquivo YAML/JSON e valida que a raiz é um dict.

    Arquivos vazios valem como `{}`.

    Raises:
        ConfigNotFoundError: arquivo inexistente.
        UnsupportedConfigFormatError: extensão desconhecida.
        InvalidConfigRootTypeError: raiz não é dict.
    """
    if not path.exists():
        raise ConfigNotFoundError(f"Arquivo de pipeline não encontrado: {path}")

    suffix = path.suffix.lower()
    if suffix in {".yaml", ".yml"}:
        with path.open("r", encoding="utf-8") as f:
            data = yaml.safe_load(f)
    elif suffix == ".json":
        with path.open("r", encoding="utf-8") as f:
            data = json.load(f)
    else:
        raise UnsupportedConfigFormatError(f"Formato não suportado: {path.suffix}")

    if data is None:
        data = {}

    if not isinstance(data, dict):
        raise InvalidConfigRootTypeError(
            f"Config root deve ser dict, recebido: {type(data).__name__}"
        )

    return data


def load_config(
    *,
    defaults_path: PathLike,
    local_path: Optional[PathLike] = None,
) -> Dict[str, Any]:
    """
    Carrega o arquivo principal e aplica o override local, se existir.

    Args:
        defaults_path: arquivo principal do pipeline.
        local_path: override local opcional; ignorado se não existir.

    Returns:
        Configuração efetiva.
    """
    effective = _load_file(Path(defaults_path))

    if local_path is not None:
        local_file = Path(local_path)
        if local_file.exists():
            effective = deep_merge(effective, _load_file(local_file))

    return effective
